import logging
import re
from collections.abc import Callable
from pathlib import Path
from typing import final

from stackwire.config import StackwireAppConfig
from stackwire.context import AppContext
from stackwire.descriptor import Descriptor
from stackwire.exceptions import ValidationError
from stackwire.synth import Artifact, synthesize

logger = logging.getLogger(__name__)

_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9-]*$")

type StackwireConfigFn = Callable[[str], StackwireAppConfig]
type AssembleFn = Callable[[Descriptor], None]


@final
class StackwireApp:
    """Entry point of a stackwire app file.

    ```python
    app = StackwireApp("shop")

    @app.config
    def configuration(env: str) -> StackwireAppConfig:
        return StackwireAppConfig(aws=AwsConfig(region="eu-west-1"))

    @app.assemble
    def assemble(d: Descriptor) -> None:
        d.table("orders", partition_key_name="id", partition_key_type="STRING")
    ```
    """

    def __init__(self, name: str) -> None:
        if not isinstance(name, str) or not _NAME_PATTERN.match(name):
            raise ValidationError(
                f"invalid app name {name!r}; use letters, digits and dashes, "
                "starting with a letter"
            )
        self._name = name
        self._config_func: StackwireConfigFn | None = None
        self._assemble_func: AssembleFn | None = None

    @property
    def name(self) -> str:
        return self._name

    def config(self, func: StackwireConfigFn) -> StackwireConfigFn:
        if self._config_func:
            raise RuntimeError("Config function already registered.")
        self._config_func = func
        logger.debug("Config function '%s' registered for app '%s'.", func.__name__, self._name)
        return func

    def assemble(self, func: AssembleFn) -> AssembleFn:
        if self._assemble_func:
            raise RuntimeError("Assemble function already registered.")
        self._assemble_func = func
        logger.debug(
            "Assemble function '%s' registered for app '%s'.", func.__name__, self._name
        )
        return func

    def load_config(self, env: str) -> StackwireAppConfig:
        """Run the ``@app.config`` function; apps without one get the default config."""
        if self._config_func is None:
            config = StackwireAppConfig()
        else:
            config = self._config_func(env)
        if not isinstance(config, StackwireAppConfig):
            raise ValidationError(
                "@app.config function must return an instance of StackwireAppConfig."
            )
        if not config.is_valid_environment(env):
            raise ValidationError(
                f"Invalid environment '{env}'. Use one of: {', '.join(config.environments)}"
            )
        return config

    def build(self, env: str, root: Path | None = None) -> Descriptor:
        """Assemble a fresh descriptor for the environment."""
        if self._assemble_func is None:
            raise RuntimeError("No @StackwireApp.assemble function defined.")
        config = self.load_config(env)
        descriptor = Descriptor(AppContext(name=self._name, env=env, aws=config.aws, root=root))
        self._assemble_func(descriptor)
        logger.debug("Assembled %r", descriptor)
        return descriptor

    def synth(self, env: str, root: Path | None = None) -> Artifact:
        return synthesize(self.build(env, root))
