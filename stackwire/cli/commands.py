import logging
from pathlib import Path

from pulumi.automation import CommandError, OutputMap
from rich.console import Console
from rich.table import Table

from stackwire.app import StackwireApp
from stackwire.audit import Finding, Severity, audit
from stackwire.deploy import CommandRun
from stackwire.project import get_dot_stackwire_dir, get_project_root, load_app

console = Console()
logger = logging.getLogger(__name__)

SEVERITY_STYLES = {Severity.HIGH: "bold red", Severity.MEDIUM: "yellow", Severity.LOW: "dim"}


def print_operation_header(operation: str, app_name: str, environment: str) -> None:
    console.print(f"{operation} ", style="bold", end="")
    console.print(f"{app_name}", style="bold cyan", end="")
    console.print(" → ", style="dim", end="")
    console.print(f"{environment}", style="bold yellow")


def _load_app() -> tuple[Path, StackwireApp]:
    root = get_project_root()
    return root, load_app(root)


def run_synth(env: str, output_dir: Path | None = None) -> Path:
    root, app = _load_app()
    print_operation_header("Synthesizing", app.name, env)
    artifact = app.synth(env, root)
    output_dir = output_dir or get_dot_stackwire_dir(root) / "out" / env
    path = artifact.write(output_dir.resolve())
    console.print(
        f"[bold green]✓[/bold green] {len(artifact.resources)} resources, "
        f"{len(artifact.outputs)} outputs written to {path}",
        highlight=False,
    )
    return path


def run_check(env: str, fail_on: Severity = Severity.HIGH) -> bool:
    """Print audit findings; returns False when any reaches ``fail_on``."""
    _, app = _load_app()
    print_operation_header("Checking", app.name, env)
    findings = audit(app.build(env))
    if not findings:
        console.print("[bold green]✓[/bold green] No findings")
        return True
    console.print(_findings_table(findings))
    failing = [f for f in findings if f.severity >= fail_on]
    if failing:
        console.print(
            f"[bold red]✗[/bold red] {len(failing)} finding(s) at {fail_on.name} or above",
            highlight=False,
        )
        return False
    return True


def _findings_table(findings: list[Finding]) -> Table:
    table = Table("Severity", "Declaration", "Rule", "Message")
    for finding in findings:
        table.add_row(
            f"[{SEVERITY_STYLES[finding.severity]}]{finding.severity.name}[/]",
            finding.declaration_id,
            finding.rule,
            finding.message,
        )
    return table


def run_preview(env: str) -> None:
    status = console.status("Loading app...")
    status.start()
    try:
        with CommandRun(env) as run:
            status.stop()
            print_operation_header("Preview for", run.app_name, env)
            result = run.stack.preview(on_output=_print_engine_output)
            console.print(f"\n[bold]{_summary(result.change_summary)}[/bold]")
    finally:
        status.stop()


def run_deploy(env: str) -> None:
    status = console.status("Loading app...")
    status.start()
    try:
        with CommandRun(env) as run:
            status.stop()
            print_operation_header("Deploying", run.app_name, env)
            result = run.stack.up(on_output=_print_engine_output)
            console.print("\n[bold green]✓[/bold green] Deployed")
            _print_outputs(result.outputs)
    finally:
        status.stop()


def _confirm_destroy(env: str) -> bool:
    """Ask user to confirm destroy by typing environment name. Returns True if confirmed."""
    console.print(
        f"About to [bold red]destroy all resources[/bold red] in [bold]{env}[/bold] environment."
    )
    console.print("[bold yellow]Warning:[/bold yellow] This action cannot be undone!")

    typed_env = console.input(f"Type the environment name '[bold]{env}[/bold]' to confirm: ")
    if typed_env != env:
        console.print(f"Environment name mismatch. Expected '{env}', got '{typed_env}'.")
        console.print("Destruction cancelled.")
        return False
    return True


def run_destroy(env: str, skip_confirm: bool = False) -> None:
    if not skip_confirm and not _confirm_destroy(env):
        return
    status = console.status("Loading app...")
    status.start()
    try:
        with CommandRun(env) as run:
            status.stop()
            print_operation_header("Destroying", run.app_name, env)
            run.stack.destroy(on_output=_print_engine_output)
            console.print("\n[bold green]✓[/bold green] Destroyed")
    finally:
        status.stop()


def run_outputs(env: str, json_output: bool = False) -> None:
    status = console.status("Loading app...")
    status.start()
    try:
        with CommandRun(env) as run:
            status.stop()
            if not json_output:
                print_operation_header("Outputs for", run.app_name, env)
            try:
                stack_outputs = run.stack.outputs()
            except CommandError:
                logger.exception("Could not read outputs for %s/%s", run.app_name, env)
                raise
            if json_output:
                console.print_json(data={key: value.value for key, value in stack_outputs.items()})
            elif stack_outputs:
                _print_outputs(stack_outputs)
            else:
                console.print(f"[yellow]No outputs found for {run.app_name} in {env}[/yellow]")
    finally:
        status.stop()


def _print_outputs(stack_outputs: OutputMap) -> None:
    for key, value in stack_outputs.items():
        console.print(f"[cyan]{key}[/cyan]: {value.value}")


def _print_engine_output(line: str) -> None:
    console.print(line, highlight=False, markup=False)


def _summary(change_summary: dict[str, int]) -> str:
    changes = {op: count for op, count in change_summary.items() if op != "same" and count}
    if not changes:
        return "No changes"
    return ", ".join(f"{count} to {op}" for op, count in sorted(changes.items()))
