"""Command-line interface for bastion."""

import json
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
load_dotenv()

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bastion import __version__
from bastion.db.session import init_db, session_scope
from bastion.exceptions import InvalidInputError, NotFoundError
from bastion.scoring.engine import RiskAssessor
from bastion.scoring.factors import RiskAssessment, RiskLevel
from bastion.scoring.signals import AccessContext, DevicePosture, TransactionContext, UserProfile
from bastion.services.assessor import assess_user_device

app = typer.Typer(
    name="bastion",
    help="Device posture and access context risk scoring",
    add_completion=False,
)
console = Console()

LEVEL_COLORS = {
    RiskLevel.CRITICAL: "red",
    RiskLevel.HIGH: "orange1",
    RiskLevel.MEDIUM: "yellow",
    RiskLevel.LOW: "green",
}


def version_callback(value: bool):
    if value:
        console.print(f"bastion version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging"),
):
    """Bastion - device posture and access context risk scoring."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _load_json(path: Path) -> dict:
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {path}: {e}[/red]")
        raise typer.Exit(1)


def _transaction(amount: Optional[float]) -> Optional[TransactionContext]:
    return TransactionContext(amount=amount) if amount is not None else None


@app.command()
def init():
    """Initialize the database."""
    console.print("Initializing database...")
    init_db()
    console.print("[green]Database initialized successfully[/green]")


@app.command()
def device(
    posture_file: Path = typer.Argument(..., help="JSON file with the device posture"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="Transaction amount being authorized"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Score a device posture on its own."""
    try:
        posture = DevicePosture.from_dict(_load_json(posture_file))
        assessment = RiskAssessor().assess_device(posture, transaction=_transaction(amount))
    except InvalidInputError as e:
        console.print(f"[red]Invalid device posture: {e}[/red]")
        raise typer.Exit(1)

    _output(assessment, output_json, title=posture.device_id or posture_file.name)


@app.command()
def assess(
    posture_file: Path = typer.Option(..., "--posture", "-p", help="JSON file with the device posture"),
    profile_file: Path = typer.Option(..., "--profile", "-u", help="JSON file with the user profile"),
    context_file: Optional[Path] = typer.Option(None, "--context", "-c", help="JSON file with the access context"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="Transaction amount being authorized"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Assess an access attempt from posture, context and profile files."""
    try:
        posture = DevicePosture.from_dict(_load_json(posture_file))
        profile = UserProfile.from_dict(_load_json(profile_file))
        context = AccessContext.from_dict(_load_json(context_file)) if context_file else None
        assessment = RiskAssessor().assess(posture, context, profile, _transaction(amount))
    except InvalidInputError as e:
        console.print(f"[red]Invalid input: {e}[/red]")
        raise typer.Exit(1)

    _output(assessment, output_json, title=profile.id)


@app.command()
def user(
    user_id: str = typer.Argument(..., help="User to assess"),
    amount: Optional[float] = typer.Option(None, "--amount", "-a", help="Transaction amount being authorized"),
    output_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
):
    """Assess the device registered to a stored user."""
    try:
        with session_scope() as session:
            assessment = assess_user_device(session, user_id, _transaction(amount))
    except NotFoundError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    except InvalidInputError as e:
        console.print(f"[red]Invalid input: {e}[/red]")
        raise typer.Exit(1)

    _output(assessment, output_json, title=user_id)


def _output(assessment: RiskAssessment, output_json: bool, title: str) -> None:
    if output_json:
        typer.echo(json.dumps(assessment.to_dict(), indent=2))
    else:
        _display_results(assessment, title)


def _display_results(assessment: RiskAssessment, title: str):
    """Display results in a formatted way."""
    color = LEVEL_COLORS[assessment.level]

    score_text = (
        f"[bold {color}]{assessment.level.semaphore} {assessment.score} - {assessment.level.value}[/bold {color}]\n"
        f"{assessment.level.description}"
    )
    console.print(Panel(score_text, title=f"[bold]{title}[/bold]", border_style=color))

    if assessment.factors:
        table = Table(title="Risk Factors")
        table.add_column("Factor", style="cyan")
        table.add_column("Severity")
        table.add_column("Points", justify="right")
        table.add_column("Detail")
        for factor in assessment.factors:
            table.add_row(factor.name, factor.severity.value, f"{factor.weight:+d}", factor.description)
        table.add_section()
        table.add_row("[bold]Total[/bold]", "", f"[bold]{assessment.raw_score}[/bold]", "")
        console.print(table)
    else:
        console.print("No risk factors detected.")

    console.print(f"\n[bold]Decision:[/bold] {assessment.decision.value}")
    if assessment.block_access:
        console.print("  [red]Access blocked[/red]")
    elif assessment.requires_mfa:
        console.print("  [yellow]Step-up verification required[/yellow]")


if __name__ == "__main__":
    app()
