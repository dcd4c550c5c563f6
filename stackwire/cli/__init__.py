import logging
import os
from collections.abc import Callable
from functools import wraps
from importlib import metadata
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import click
from appdirs import user_log_dir
from pulumi.automation import CommandError
from rich.console import Console
from rich.logging import RichHandler

from stackwire.audit import Severity
from stackwire.cli.commands import (
    run_check,
    run_deploy,
    run_destroy,
    run_outputs,
    run_preview,
    run_synth,
)
from stackwire.cli.init_command import create_stack_app_file, get_stack_app_path
from stackwire.exceptions import StackwireError

console = Console()

app_logger = logging.getLogger("stackwire")
# Set the logger to capture ALL messages from 'stackwire' internally
app_logger.setLevel(logging.DEBUG)

app_name = "stackwire"
log_dir = Path(user_log_dir(app_name))
log_dir.mkdir(parents=True, exist_ok=True)
log_file_path = log_dir / f"{app_name}.log"
file_handler = TimedRotatingFileHandler(
    filename=str(log_file_path), when="D", interval=1, backupCount=7, encoding="utf-8"
)
file_handler.setLevel(logging.DEBUG)  # All debug messages and above go to the file
file_formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
file_handler.setFormatter(file_formatter)
app_logger.addHandler(file_handler)

logger = logging.getLogger(__name__)

# Suppress gRPC and absl logging
os.environ["GRPC_VERBOSITY"] = "ERROR"
os.environ["GRPC_TRACE"] = ""
logging.getLogger("grpc").setLevel(logging.ERROR)
logging.getLogger("absl").setLevel(logging.ERROR)

DEFAULT_ENV = "dev"
ENV_VAR = "STACKWIRE_ENV"
DEBUG_ENV_VAR = "STACKWIRE_DEBUG"


def handle_errors[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Print stackwire and Pulumi errors as one line and exit with status 1."""

    @wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except (StackwireError, CommandError) as e:
            logger.exception("%s failed", func.__name__)
            if os.getenv(DEBUG_ENV_VAR, "0") == "1":
                raise
            console.print(f"[bold red]✗[/bold red] {_error_message(e)}", highlight=False)
            raise SystemExit(1) from None

    return wrapper


def _error_message(error: Exception) -> str:
    if isinstance(error, CommandError):
        lines = [line for line in str(error).splitlines() if line.strip()]
        return lines[-1].strip() if lines else "Pulumi command failed"
    return str(error)


@click.group(invoke_without_command=True)
@click.option(
    "--verbose", "-v", count=True, help="Increase verbosity. -v for INFO, -vv for DEBUG logs."
)
@click.option("--version", is_flag=True, help="Show stackwire and Pulumi versions.")
@click.pass_context
def cli(ctx: click.Context, verbose: int, version: bool) -> None:
    if version:
        _version()
        ctx.exit(0)

    # If no command was invoked, show help
    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())
        ctx.exit(0)

    if verbose > 0:
        console_handler = RichHandler(
            console=console,
            show_time=False,
            show_level=True,
            markup=True,
            tracebacks_suppress=[click],
            rich_tracebacks=True,
        )
        if verbose == 1:
            console_handler.setLevel(logging.INFO)
            console.print("[italic blue]Console verbosity: INFO[/]")
        elif verbose >= 2:  # noqa: PLR2004
            console_handler.setLevel(logging.DEBUG)
            console.print("[italic green]Console verbosity: DEBUG[/]")

        console.print(f"[italic dim]Logs saved to: {log_file_path}[/]")
        app_logger.addHandler(console_handler)


@click.command()
def init() -> None:
    """
    Initialize a stackwire project in the current directory.
    Creates stack_app.py with the serverless web topology.
    """
    stack_app_path, app_exists = get_stack_app_path()
    if app_exists:
        logger.info("stack_app.py exists")
        console.print("[green]stackwire project already exists.")
        return

    logger.info("stack_app.py does not exist. Initializing stackwire project")
    create_stack_app_file(stack_app_path)

    console.print("[bold green]✓[/bold green] Created stack_app.py")
    console.print("\nPut your handler code in ./lambda and your site files in your build output.")
    console.print("Run [bold]stackwire check[/bold] to review the topology before deploying.")


@click.command()
@click.argument("env", default=None, required=False)
@click.option(
    "--out",
    "output_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output directory (default: .stackwire/out/<env>)",
)
@handle_errors
def synth(env: str | None, output_dir: Path | None) -> None:
    """Synthesizes the app into a Pulumi YAML template."""
    run_synth(determine_env(env), output_dir)


@click.command()
@click.argument("env", default=None, required=False)
@click.option(
    "--fail-on",
    type=click.Choice([s.name.lower() for s in Severity]),
    default="high",
    show_default=True,
    help="Exit with status 1 when a finding of this severity or higher is reported.",
)
@handle_errors
def check(env: str | None, fail_on: str) -> None:
    """Reports security and durability findings for the app."""
    if not run_check(determine_env(env), Severity[fail_on.upper()]):
        raise SystemExit(1)


@click.command()
@click.argument("env", default=None, required=False)
@handle_errors
def preview(env: str | None) -> None:
    """Shows the changes that will be made when you deploy."""
    run_preview(determine_env(env))


@click.command()
@click.argument("env", default=None, required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@handle_errors
def deploy(env: str | None, yes: bool) -> None:
    """Deploys your app."""
    # Ask for confirmation on explicitly named environments unless --yes
    if not yes and env is not None:
        console.print(f"About to deploy to [bold red]{env}[/bold red] environment.")
        if not click.confirm(f"Deploy to {env}?"):
            console.print("Deployment cancelled.")
            return
    run_deploy(determine_env(env))


@click.command()
@click.argument("env", default=None, required=False)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@handle_errors
def destroy(env: str | None, yes: bool) -> None:
    """Destroys all resources in your app."""
    run_destroy(determine_env(env), skip_confirm=yes)


@click.command()
@click.argument("env", default=None, required=False)
@click.option("--json", is_flag=True, help="Output in JSON format")
@handle_errors
def outputs(env: str | None, json: bool) -> None:
    """
    Shows environment outputs in key-value pairs (as JSON object if `--json` is passed).
    """
    run_outputs(determine_env(env), json_output=json)


cli.add_command(init)
cli.add_command(synth)
cli.add_command(check)
cli.add_command(preview)
cli.add_command(deploy)
cli.add_command(destroy)
cli.add_command(outputs)


def determine_env(environment: str | None) -> str:
    if environment:
        return environment
    return os.environ.get(ENV_VAR) or DEFAULT_ENV


def _version() -> None:
    console.print(f"stackwire version: {_package_version('stackwire')}", highlight=False)
    console.print(f"Pulumi version: {_package_version('pulumi')}", highlight=False)


def _package_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError:
        return "unknown"
