import json
import logging
from collections.abc import Sequence
from hashlib import sha256
from typing import TYPE_CHECKING, Any

from stackwire.plan import PlanContext

from .constants import DEPLOYMENT

if TYPE_CHECKING:
    from stackwire.aws.cors import CorsConfig
    from stackwire.routes import RouteBinding

logger = logging.getLogger(__name__)


def _get_cors_key(cors_config: "CorsConfig | None") -> dict | None:
    """Gets a serializable representation of CORS config."""
    if cors_config is None:
        return None

    def sort_if_list(val: str | list[str] | None) -> str | list[str] | None:
        return sorted(val) if isinstance(val, list) else val

    return {
        key: sort_if_list(value) if key != "allow_headers" else value
        for key, value in cors_config.to_dict().items()
    }


def calculate_deployment_hash(
    bindings: Sequence["RouteBinding"], cors_config: "CorsConfig | None" = None
) -> str:
    """Calculates a stable hash for deployment trigger based on API configuration."""
    routes = sorted(
        (
            {
                "path": binding.path_str,
                "method": binding.method,
                "handler": binding.handler,
                "auth": binding.authorization.key,
            }
            for binding in bindings
        ),
        key=lambda r: (r["path"], r["method"]),
    )
    config = {"routes": routes, "cors": _get_cors_key(cors_config)}
    return sha256(json.dumps(config, sort_keys=True).encode()).hexdigest()


def create_deployment(
    ctx: PlanContext,
    rest_api: Any,  # noqa: ANN401
    api_name: str,
    trigger_hash: str,
    depends_on: list[str],
) -> str:
    """Plans the API deployment, triggering redeployment based on config changes."""
    logger.debug("API '%s' deployment trigger hash: %s", api_name, trigger_hash)

    return ctx.plan.add(
        api_name,
        DEPLOYMENT,
        ctx.context.prefix(f"{api_name}-deployment"),
        rest_api=rest_api,
        # Trigger new deployment only when API route config changes
        triggers={"configuration_hash": trigger_hash},
        # Ensure deployment happens after all methods/integrations are created
        depends_on=depends_on,
    )
