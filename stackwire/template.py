"""Render an artifact as a Pulumi YAML program.

Property names become camelCase, references become ``${resource.attribute}`` interpolations,
policy documents use ``fn::toJSON`` and code archives ``fn::fileArchive``.
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from stackwire.expressions import Archive, Attr, Format, Json
from stackwire.naming import camel_case

if TYPE_CHECKING:
    from stackwire.synth import Artifact

# Keys whose children are user data (env var names, stage variables, trigger names, tags)
OPAQUE_KEYS = frozenset({"variables", "triggers", "tags"})


def render(artifact: "Artifact", output_dir: Path | None = None) -> dict[str, Any]:
    renderer = _Renderer(artifact.root, output_dir)
    document: dict[str, Any] = {
        "name": artifact.app,
        "runtime": "yaml",
        "description": f"{artifact.app} ({artifact.env})",
    }
    if artifact.region:
        document["config"] = {"aws:region": {"value": artifact.region}}
    document["resources"] = {
        resource.name: renderer.resource(resource) for resource in artifact.resources
    }
    if artifact.outputs:
        document["outputs"] = {
            name: renderer.value(value) for name, value in artifact.outputs.items()
        }
    return document


class _Renderer:
    def __init__(self, root: Path | None, output_dir: Path | None) -> None:
        self.root = root
        self.output_dir = output_dir

    def resource(self, resource: Any) -> dict[str, Any]:  # noqa: ANN401
        rendered: dict[str, Any] = {
            "type": resource.type,
            "properties": self.properties(resource.properties),
        }
        options = {}
        if resource.depends_on:
            options["dependsOn"] = [f"${{{name}}}" for name in resource.depends_on]
        if resource.retain_on_delete:
            options["retainOnDelete"] = True
        if options:
            rendered["options"] = options
        return rendered

    def properties(self, properties: Mapping[str, Any]) -> dict[str, Any]:
        return {
            camel_case(key): self.value(value, opaque=key in OPAQUE_KEYS)
            for key, value in properties.items()
        }

    def value(self, value: Any, *, opaque: bool = False) -> Any:  # noqa: ANN401, PLR0911
        if isinstance(value, Attr):
            return f"${{{value.resource}.{camel_case(value.attribute)}}}"
        if isinstance(value, Format):
            return self.interpolate(value)
        if isinstance(value, Json):
            return {"fn::toJSON": self.document(value.document)}
        if isinstance(value, Archive):
            return {"fn::fileArchive": self.archive_path(value.path)}
        if isinstance(value, Mapping):
            if opaque:
                return {key: self.value(v) for key, v in value.items()}
            return self.properties(value)
        if isinstance(value, list | tuple):
            return [self.value(v) for v in value]
        return value

    def document(self, value: Any) -> Any:  # noqa: ANN401
        """JSON document contents keep their keys as written."""
        if isinstance(value, Mapping):
            return {key: self.document(v) for key, v in value.items()}
        if isinstance(value, list | tuple):
            return [self.document(v) for v in value]
        if isinstance(value, Attr | Format | Json | Archive):
            return self.value(value)
        return value

    def interpolate(self, value: Format) -> str:
        pieces = value.template.split("{}")
        rendered = [pieces[0].replace("${", "$${")]
        for arg, piece in zip(value.args, pieces[1:], strict=True):
            rendered.append(self._inline(arg))
            rendered.append(piece.replace("${", "$${"))
        return "".join(rendered)

    def _inline(self, value: Any) -> str:  # noqa: ANN401
        if isinstance(value, Attr | Format):
            return self.value(value)
        if isinstance(value, Json | Archive):
            raise TypeError(f"{type(value).__name__} cannot be interpolated into a string")
        return str(value)

    def archive_path(self, path: str) -> str:
        if self.root is None or self.output_dir is None or Path(path).is_absolute():
            return path
        return os.path.relpath(self.root / path, self.output_dir)
