"""CORS support for API Gateway REST APIs.

This module plans:
1. OPTIONS methods with MOCK integration for preflight requests
2. Gateway responses with CORS headers for error responses (4XX/5XX)
"""

from collections.abc import Sequence
from typing import Any

from stackwire.aws.cors import CorsConfig
from stackwire.expressions import Attr
from stackwire.naming import path_to_resource_name, safe_name
from stackwire.plan import PlanContext

from .constants import GATEWAY_RESPONSE, INTEGRATION, INTEGRATION_RESPONSE, METHOD, METHOD_RESPONSE

STANDARD_METHODS = frozenset({"DELETE", "GET", "HEAD", "OPTIONS", "PATCH", "POST", "PUT"})


def create_cors_gateway_responses(
    ctx: PlanContext, rest_api: Any, cors_config: CorsConfig, api_name: str  # noqa: ANN401
) -> list[str]:
    """Plan gateway responses with CORS headers for error responses.

    Gateway responses handle errors that occur before reaching Lambda (auth failures,
    rate limits, etc.). Without CORS headers on these responses, browsers block them
    with CORS errors instead of showing the actual error.

    Error responses cannot echo the request origin, so with several allowed origins they
    carry the first one.

    Returns:
        Names of the planned gateway responses, for deployment dependencies
    """
    # Values must be wrapped in single quotes: "'*'" or "'value1,value2'"
    origin = (
        cors_config.allow_origins
        if isinstance(cors_config.allow_origins, str)
        else cors_config.allow_origins[0]
    )
    response_parameters = {"gatewayresponse.header.Access-Control-Allow-Origin": f"'{origin}'"}

    if cors_config.expose_headers:
        expose_value = _format_cors_header_value(cors_config.expose_headers)
        response_parameters["gatewayresponse.header.Access-Control-Expose-Headers"] = (
            f"'{expose_value}'"
        )

    if cors_config.allow_credentials:
        response_parameters["gatewayresponse.header.Access-Control-Allow-Credentials"] = "'true'"

    return [
        ctx.plan.add(
            api_name,
            GATEWAY_RESPONSE,
            safe_name(
                ctx.context.prefix(),
                f"{api_name}-gateway-response-cors-{response_type.lower()}",
                128,
            ),
            rest_api_id=rest_api,
            response_type=response_type,
            response_parameters=response_parameters,
        )
        for response_type in ("DEFAULT_4XX", "DEFAULT_5XX")
    ]


def create_cors_options_method(  # noqa: PLR0913
    ctx: PlanContext,
    rest_api: Any,  # noqa: ANN401
    resource_id: Any,  # noqa: ANN401
    path_parts: Sequence[str],
    route_methods: set[str],
    cors_config: CorsConfig,
    api_name: str,
) -> list[str]:
    """Plan an OPTIONS method with MOCK integration answering preflight requests for a path.

    Plans:
    1. Method (OPTIONS)
    2. MethodResponse (200 with CORS headers)
    3. Integration (MOCK type - no backend)
    4. IntegrationResponse (maps to MethodResponse)
    """
    resource_name_part = path_to_resource_name(tuple(path_parts))
    prefix = ctx.context.prefix()
    response_headers = build_cors_response_headers(cors_config, route_methods)
    multi_origin = isinstance(cors_config.allow_origins, list) and (
        len(cors_config.allow_origins) > 1
    )
    header_names = [*response_headers, "Access-Control-Allow-Origin"] if multi_origin else [
        *response_headers
    ]

    # No authorization for preflight
    method = ctx.plan.add(
        api_name,
        METHOD,
        safe_name(prefix, f"{api_name}-method-OPTIONS-{resource_name_part}", 128),
        rest_api=rest_api,
        resource_id=resource_id,
        http_method="OPTIONS",
        authorization="NONE",
    )

    method_response = ctx.plan.add(
        api_name,
        METHOD_RESPONSE,
        safe_name(prefix, f"{api_name}-method-response-OPTIONS-{resource_name_part}", 128),
        rest_api=rest_api,
        resource_id=resource_id,
        http_method=Attr(method, "http_method"),
        status_code="200",
        response_parameters={f"method.response.header.{key}": False for key in header_names},
    )

    integration = ctx.plan.add(
        api_name,
        INTEGRATION,
        safe_name(prefix, f"{api_name}-integration-OPTIONS-{resource_name_part}", 128),
        rest_api=rest_api,
        resource_id=resource_id,
        http_method=Attr(method, "http_method"),
        type="MOCK",
        request_templates={"application/json": '{"statusCode": 200}'},
    )

    integration_response = ctx.plan.add(
        api_name,
        INTEGRATION_RESPONSE,
        safe_name(prefix, f"{api_name}-integration-response-OPTIONS-{resource_name_part}", 128),
        rest_api=rest_api,
        resource_id=resource_id,
        http_method=Attr(method, "http_method"),
        status_code=Attr(method_response, "status_code"),
        response_parameters={
            f"method.response.header.{key}": f"'{value}'"
            for key, value in response_headers.items()
        },
        response_templates={"application/json": origin_echo_template(cors_config.allow_origins)}
        if multi_origin
        else None,
        depends_on=[integration],
    )

    return [method, method_response, integration, integration_response]


def origin_echo_template(origins: Sequence[str]) -> str:
    """VTL mapping template answering with the request origin when it is allowed."""
    condition = " || ".join(f'$origin == "{origin}"' for origin in origins)
    return "\n".join(
        [
            '#set($origin = $input.params().header.get("Origin"))',
            '#if($origin == "")#set($origin = $input.params().header.get("origin"))#end',
            f"#if({condition})",
            "#set($context.responseOverride.header.Access-Control-Allow-Origin = $origin)",
            "#end",
        ]
    )


def build_cors_response_headers(
    cors_config: CorsConfig, route_methods: set[str]
) -> dict[str, str]:
    """Build CORS response headers (without quotes) for an OPTIONS method.

    With several allowed origins Access-Control-Allow-Origin is set by the response template,
    and Vary tells caches the answer depends on the origin.
    """
    headers = {}
    if isinstance(cors_config.allow_origins, str) or len(cors_config.allow_origins) == 1:
        headers["Access-Control-Allow-Origin"] = _format_cors_header_value(
            cors_config.allow_origins
        )
    else:
        headers["Vary"] = "Origin"

    allowed_methods = get_allowed_methods(route_methods, cors_config)
    headers["Access-Control-Allow-Methods"] = ",".join(sorted(allowed_methods))

    headers["Access-Control-Allow-Headers"] = _format_cors_header_value(cors_config.allow_headers)

    if cors_config.max_age is not None:
        headers["Access-Control-Max-Age"] = str(cors_config.max_age)

    if cors_config.allow_credentials:
        headers["Access-Control-Allow-Credentials"] = "true"

    return headers


def get_allowed_methods(route_methods: set[str], cors_config: CorsConfig) -> set[str]:
    """Get allowed HTTP methods for a path.

    If cors_config.allow_methods is "*", returns all standard methods.
    Otherwise, returns intersection of route methods and configured methods.
    Always includes OPTIONS.
    """
    if cors_config.allow_methods == "*":
        return set(STANDARD_METHODS)

    methods = STANDARD_METHODS if "ANY" in route_methods else route_methods
    methods_list = (
        cors_config.allow_methods
        if isinstance(cors_config.allow_methods, list)
        else [cors_config.allow_methods]
    )
    configured = {m.upper() for m in methods_list}

    return configured.intersection(methods) | {"OPTIONS"}


def _format_cors_header_value(value: str | list[str]) -> str:
    if isinstance(value, str):
        return value
    return ",".join(value)
