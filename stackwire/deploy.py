"""Pulumi Automation API wiring for preview, deploy, destroy and outputs.

The stack program is built from the same artifact ``stackwire synth`` writes, so a preview
shows exactly the resources in the synthesized template. State lives in a local file backend
under ``.stackwire/state`` in the project root.
"""

import logging
import os
import secrets
from pathlib import Path
from typing import Self

from pulumi.automation import (
    ConfigValue,
    LocalWorkspaceOptions,
    ProjectBackend,
    ProjectSettings,
    Stack,
    create_or_select_stack,
    fully_qualified_stack_name,
)

from stackwire.project import get_dot_stackwire_dir, get_project_root, load_app
from stackwire.pulumi_program import program
from stackwire.synth import Artifact, synthesize

logger = logging.getLogger(__name__)

PASSPHRASE_ENV_VAR = "PULUMI_CONFIG_PASSPHRASE"  # noqa: S105


def _get_or_create_passphrase(dot_dir: Path, env: str) -> str:
    if passphrase := os.environ.get(PASSPHRASE_ENV_VAR):
        return passphrase
    path = dot_dir / f"{env}.passphrase"
    if path.is_file():
        return path.read_text(encoding="utf-8").strip()
    passphrase = secrets.token_urlsafe(32)
    path.write_text(passphrase, encoding="utf-8")
    path.chmod(0o600)
    logger.debug("Created state passphrase for env '%s' at %s", env, path)
    return passphrase


def create_stack(
    artifact: Artifact, passphrase: str, state_dir: Path, profile: str | None = None
) -> Stack:
    stack_name = fully_qualified_stack_name("organization", artifact.app, artifact.env)
    logger.debug("Fully qualified stack name: %s", stack_name)
    backend = ProjectBackend(f"file://{state_dir}")
    project_settings = ProjectSettings(name=artifact.app, runtime="python", backend=backend)
    env_vars = {PASSPHRASE_ENV_VAR: passphrase}
    if artifact.region:
        env_vars["AWS_REGION"] = artifact.region
    if profile:
        env_vars["AWS_PROFILE"] = profile
    opts = LocalWorkspaceOptions(env_vars=env_vars, project_settings=project_settings)
    logger.debug("Creating stack")
    stack = create_or_select_stack(
        stack_name=stack_name,
        project_name=artifact.app,
        program=program(artifact),
        opts=opts,
    )
    if artifact.region:
        stack.set_config("aws:region", ConfigValue(value=artifact.region))
    logger.debug("Successfully initialized stack")
    return stack


class CommandRun:
    """Load the app, synthesize it and open its Pulumi stack.

    ```python
    with CommandRun("dev") as run:
        run.stack.preview()
    ```
    """

    def __init__(self, env: str, cwd: Path | None = None) -> None:
        self.env = env
        self._cwd = cwd
        self._artifact: Artifact | None = None
        self._stack: Stack | None = None

    def __enter__(self) -> Self:
        root = get_project_root(self._cwd)
        app = load_app(root)
        descriptor = app.build(self.env, root)
        self._artifact = synthesize(descriptor)

        dot_dir = get_dot_stackwire_dir(root)
        state_dir = dot_dir / "state"
        state_dir.mkdir(parents=True, exist_ok=True)
        passphrase = _get_or_create_passphrase(dot_dir, self.env)

        self._stack = create_stack(
            self._artifact, passphrase, state_dir, descriptor.context.aws.profile
        )
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> bool:
        return False

    @property
    def stack(self) -> Stack:
        return self._stack

    @property
    def artifact(self) -> Artifact:
        return self._artifact

    @property
    def app_name(self) -> str:
        return self._artifact.app
