import json
import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from stackwire.aws.s3 import emit_bucket_policies
from stackwire.exceptions import StackwireError, SynthesisError
from stackwire.grants import emit_grant_policies
from stackwire.kinds import KindRegistry
from stackwire.plan import PlannedResource, PlanContext
from stackwire.resolver import materialization_order, substitute, substitute_config
from stackwire.routes import emit_routes
from stackwire.template import render

if TYPE_CHECKING:
    from stackwire.descriptor import Descriptor

logger = logging.getLogger(__name__)

TEMPLATE_FILE_NAME = "Pulumi.yaml"


@dataclass(frozen=True)
class Artifact:
    """Result of synthesis: provider resources in dependency order plus named outputs."""

    app: str
    env: str
    resources: tuple[PlannedResource, ...]
    outputs: Mapping[str, Any]
    region: str | None = None
    root: Path | None = field(default=None, compare=False)

    def resource(self, name: str) -> PlannedResource:
        for resource in self.resources:
            if resource.name == name:
                return resource
        raise KeyError(f"no planned resource named '{name}'")

    def resources_of_type(self, type_: str) -> list[PlannedResource]:
        return [r for r in self.resources if r.type == type_]

    def resources_of(self, declaration_id: str) -> list[PlannedResource]:
        return [r for r in self.resources if r.owner == declaration_id]

    def to_template(self, output_dir: Path | None = None) -> dict[str, Any]:
        """Pulumi YAML program document.

        Code archive paths are relative to the app root; with ``output_dir`` they are rewritten
        relative to the directory the template will be written to.
        """
        return render(self, output_dir)

    def to_json(self, output_dir: Path | None = None) -> str:
        return json.dumps(self.to_template(output_dir), indent=2, sort_keys=True) + "\n"

    def write(self, output_dir: Path) -> Path:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / TEMPLATE_FILE_NAME
        # JSON is a subset of YAML
        path.write_text(self.to_json(output_dir), encoding="utf-8")
        return path


@contextmanager
def _planning(declaration_id: str | None) -> Iterator[None]:
    """Attribute errors to the declaration being planned; wrap unexpected ones."""
    try:
        yield
    except StackwireError as e:
        if e.declaration_id is None and declaration_id is not None:
            raise e.for_declaration(declaration_id) from e
        raise
    except (ValueError, TypeError, KeyError, AttributeError) as e:
        raise SynthesisError(
            f"materialization failed: {type(e).__name__}: {e}", declaration_id=declaration_id
        ) from e


def synthesize(descriptor: "Descriptor") -> Artifact:
    """Turn a descriptor into an artifact.

    Runs, in order: reference cycle check, topological materialization, policy emission,
    route emission and outputs. Any error aborts the run without an artifact and leaves the
    descriptor unsealed; on success the descriptor is sealed.
    """
    descriptor.check_not_sealed()
    context = descriptor.context
    logger.info("Synthesizing '%s' for env '%s'", context.name, context.env)

    order = materialization_order(descriptor)

    ctx = PlanContext(context, {d.id: d for d in descriptor.declarations})
    for declaration_id in order:
        declaration = descriptor.get(declaration_id)
        with _planning(declaration_id):
            spec = KindRegistry.get(declaration.kind)
            config = substitute_config(declaration.config, ctx)
            attributes = spec.materialize(ctx, declaration, config)
            ctx.record(declaration_id, MappingProxyType(dict(attributes)))

    with _planning(None):
        emit_grant_policies(ctx, descriptor.grants)
        emit_bucket_policies(ctx)

    with _planning(None):
        emit_routes(ctx, descriptor)

    outputs = {}
    for output in descriptor.outputs:
        with _planning(None):
            outputs[output.name] = substitute(output.value, ctx)

    with _planning(None):
        resources = ctx.plan.ordered()

    artifact = Artifact(
        app=context.name,
        env=context.env,
        resources=resources,
        outputs=MappingProxyType(outputs),
        region=context.aws.region,
        root=context.root,
    )
    descriptor.seal({d: ctx.generated_attributes(d) for d in order})
    logger.info(
        "Synthesized %d provider resources from %d declarations",
        len(resources),
        len(order),
    )
    return artifact
