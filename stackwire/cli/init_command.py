import logging
import textwrap
from pathlib import Path

logger = logging.getLogger(__name__)

STACK_APP_FILE = "stack_app.py"

TEMPLATE_CONTENT = """\
from stackwire.app import StackwireApp
from stackwire.config import AwsConfig, StackwireAppConfig
from stackwire.descriptor import Descriptor
from stackwire.routes import Authorization
from stackwire.topology import ServerlessWebSettings, serverless_web

app = StackwireApp("{project_name}")


@app.config
def configuration(env: str) -> StackwireAppConfig:
    return StackwireAppConfig(
        aws=AwsConfig(
            # region="us-east-1",        # Uncomment to override AWS CLI/env var region
            # profile="your-profile",    # Uncomment to use specific AWS profile
        ),
    )


@app.assemble
def assemble(descriptor: Descriptor) -> None:
    serverless_web(
        descriptor,
        ServerlessWebSettings(
            # Every /items route uses this; change to Authorization.none() for a public API
            route_authorization=Authorization.iam(),
            code_location="lambda",
        ),
    )
"""


def get_stack_app_path() -> tuple[Path, bool]:
    cwd = Path.cwd()
    logger.info("CWD %s", cwd)
    stack_app_path = cwd / STACK_APP_FILE
    return stack_app_path, stack_app_path.exists() and stack_app_path.is_file()


def project_name_for(directory: Path) -> str:
    """App name derived from a directory name: lowercase letters, digits and dashes."""
    name = "".join(c if c.isalnum() else "-" for c in directory.name.lower()).strip("-")
    if not name or not name[0].isalpha():
        name = f"app-{name}".rstrip("-")
    return name


def create_stack_app_file(stack_app_path: Path) -> None:
    project_name = project_name_for(stack_app_path.parent)
    file_content = textwrap.dedent(TEMPLATE_CONTENT).format(project_name=project_name)
    with stack_app_path.open("w", encoding="utf-8") as f:
        f.write(file_content)
