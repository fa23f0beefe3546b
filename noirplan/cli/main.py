"""CLI interface for NoirPlan"""

import asyncio
import logging
import yaml
from pathlib import Path
from typing import Optional
import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt, Confirm
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from noirplan.api.session import create_session
from noirplan.export import MarkdownExporter
from noirplan.llm import GenerationError
from noirplan.memory import ResetNotConfirmedError
from noirplan.models import Mystery, Stage
from noirplan.orchestrator import (
    BulkRunError,
    EntityNotFoundError,
    LuckyConfig,
    MysterySession,
    SlotBusyError,
    StageGateError,
    StagePreconditionError,
    StageStatus,
)
from noirplan.validation import beat_coverage, guilt_matrix


console = Console()

# Failures reported to the user rather than as a traceback
USER_ERRORS = (
    GenerationError,
    StagePreconditionError,
    StageGateError,
    SlotBusyError,
    EntityNotFoundError,
    BulkRunError,
    ResetNotConfirmedError,
    ValueError,
)

STATUS_STYLES = {
    StageStatus.COMPLETED: "[green]done[/green]",
    StageStatus.READY: "[yellow]ready[/yellow]",
    StageStatus.BLOCKED: "[dim]blocked[/dim]",
}


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.yaml"""
    config_path = config_path or Path(__file__).parent.parent.parent / "config" / "config.yaml"
    if not config_path.exists():
        console.print(f"[yellow]Warning: Config file not found at {config_path}[/yellow]")
        return {}

    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True
    )


def get_session(ctx: click.Context) -> MysterySession:
    obj = ctx.obj
    if "session" not in obj:
        obj["session"] = create_session(
            obj["config"],
            llm_provider=obj.get("llm_provider"),
            state=obj.get("state")
        )
    return obj["session"]


def run(ctx: click.Context, operation, description: str = "Working..."):
    """Run one session coroutine with a spinner, reporting failures in red"""
    session = get_session(ctx)

    async def _run():
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True
            ) as progress:
                task = progress.add_task(description, total=None)
                return await operation(session, progress, task)
        finally:
            await session.close()

    try:
        return asyncio.run(_run())
    except USER_ERRORS as e:
        fail(str(e))


def apply(ctx: click.Context, action):
    """Run one synchronous session edit, reporting failures in red"""
    try:
        return action(get_session(ctx))
    except USER_ERRORS as e:
        fail(str(e))


def fail(message: str):
    console.print(f"[red]Error: {message}[/red]")
    raise SystemExit(1)


def show_concept(mystery: Mystery):
    console.print(Panel(
        f"[bold]Victim:[/bold] {mystery.victim_name}\n"
        f"[bold]Setting:[/bold] {mystery.environment}\n"
        f"[bold]Parties:[/bold] {mystery.general_parties}\n\n"
        f"[bold]Incident:[/bold] {mystery.core_story}\n\n"
        f"[bold]Twist:[/bold] {mystery.twist}",
        title=mystery.title or "Untitled Mystery",
        border_style="blue"
    ))


def show_cast(mystery: Mystery):
    table = Table(title="Suspects")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Archetype")
    table.add_column("Motive")
    table.add_column("Role")
    table.add_column("Dossier")

    for character in mystery.characters:
        roles = []
        if character.id == mystery.killer_id:
            roles.append("[red]killer[/red]")
        if character.id == mystery.saboteur_id:
            roles.append("[magenta]saboteur[/magenta]")
        table.add_row(
            character.id,
            f"{character.name} ({character.gender.value})",
            character.archetype,
            character.initial_motive,
            ", ".join(roles),
            "✓" if character.is_fleshed else "✗"
        )
    console.print(table)


def show_report(mystery: Mystery):
    report = mystery.consistency_report
    if report is None:
        console.print("[yellow]No audit yet[/yellow]")
        return

    verdict = "[green]VALID[/green]" if report.is_valid else "[red]ISSUES FOUND[/red]"
    console.print(Panel(report.notes or "(no notes)", title=f"Audit: {verdict}", border_style="magenta"))

    if report.issues:
        table = Table(title="Issues")
        table.add_column("ID", style="dim")
        table.add_column("Description")
        table.add_column("Suggestion")
        table.add_column("Fixed")
        for issue in report.issues:
            table.add_row(issue.id, issue.description, issue.suggestion, "✓" if issue.fixed else "✗")
        console.print(table)

    if mystery.beats:
        table = Table(title="Rule of Three")
        table.add_column("Beat", style="cyan")
        table.add_column("Paths")
        table.add_column("Solvable")
        for row in beat_coverage(mystery.beats):
            table.add_row(row.beat_name, str(row.paths), "✓" if row.meets_threshold else "✗")
        console.print(table)

    table = Table(title="Guilt Matrix")
    table.add_column("Suspect", style="cyan")
    table.add_column("Role")
    table.add_column("Dark acts")
    for row in guilt_matrix(mystery):
        role = "killer" if row.is_killer else ""
        if row.is_saboteur:
            role = f"{role}, saboteur" if role else "saboteur"
        table.add_row(row.name, role, "\n".join(row.dark_acts) or "[dim]none[/dim]")
    console.print(table)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to config file"
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool):
    """NoirPlan - Murder Mystery Party Builder"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    if "config" not in ctx.obj:
        ctx.obj["config"] = load_config(config_path)


@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show the stage cursor and what has been built so far"""
    session = get_session(ctx)
    mystery = session.mystery
    statuses = session.status()

    table = Table(title=mystery.title or "Untitled Mystery")
    table.add_column("#")
    table.add_column("Stage", style="cyan")
    table.add_column("Status")
    for stage, stage_status in statuses.items():
        marker = "▶ " if stage is session.stage else ""
        table.add_row(str(stage.position), f"{marker}{stage.label}", STATUS_STYLES[stage_status])
    console.print(table)

    console.print(
        f"Suspects: {len(mystery.characters)}  "
        f"Clues: {len(mystery.clues)}  "
        f"Timeline: {'✓' if mystery.timeline else '✗'}  "
        f"Audit: {'✓' if mystery.consistency_report else '✗'}"
    )


@main.command()
@click.option("--theme", type=str, help="Mystery theme (prompted if omitted)")
@click.option("--location", type=str, default="", help="Where the party takes place")
@click.option("--guests", type=click.IntRange(1, 12), help="Number of suspects")
@click.option("--details", type=str, default="", help="Anything else the story should include")
@click.pass_context
def concept(ctx: click.Context, theme: Optional[str], location: str, guests: Optional[int], details: str):
    """Draft the base story"""
    theme = theme or Prompt.ask("[bold]Theme[/bold]", console=console)

    async def operation(session, progress, task):
        return await session.pipeline.generate_concept(theme, location, guests, details)

    show_concept(run(ctx, operation, "Drafting concept..."))


@main.command()
@click.argument("suggestion")
@click.pass_context
def refine(ctx: click.Context, suggestion: str):
    """Revise the concept with a suggestion"""
    async def operation(session, progress, task):
        return await session.pipeline.refine_concept(suggestion)

    show_concept(run(ctx, operation, "Refining concept..."))


@main.command()
@click.option("--guests", type=click.IntRange(1, 12), help="Number of suspects")
@click.option("--keep-roles", is_flag=True, help="Do not pick a new killer and saboteur")
@click.pass_context
def cast(ctx: click.Context, guests: Optional[int], keep_roles: bool):
    """Cast the suspects"""
    async def operation(session, progress, task):
        return await session.pipeline.cast_suspects(guests, assign_roles=not keep_roles)

    show_cast(run(ctx, operation, "Casting suspects..."))


@main.command()
@click.pass_context
def roles(ctx: click.Context):
    """Pick a new killer and saboteur at random"""
    show_cast(apply(ctx, lambda session: session.pipeline.assign_roles()))


@main.command()
@click.argument("character_id")
@click.pass_context
def recast(ctx: click.Context, character_id: str):
    """Replace one suspect with a new persona"""
    async def operation(session, progress, task):
        return await session.regenerator.recast_one(character_id)

    show_cast(run(ctx, operation, "Recasting..."))


@main.command()
@click.argument("character_id")
@click.argument("name")
@click.pass_context
def rename(ctx: click.Context, character_id: str, name: str):
    """Rename one suspect"""
    show_cast(apply(ctx, lambda session: session.editor.rename(character_id, name)))


@main.command()
@click.argument("character_id")
@click.option(
    "--set",
    "assignments",
    multiple=True,
    required=True,
    metavar="FIELD=VALUE",
    help="Dossier field to overwrite (repeatable)"
)
@click.pass_context
def edit(ctx: click.Context, character_id: str, assignments):
    """Overwrite dossier fields by hand"""
    changes = {}
    for assignment in assignments:
        field, sep, value = assignment.partition("=")
        if not sep:
            fail(f"Expected FIELD=VALUE, got {assignment!r}")
        changes[field.strip()] = value

    mystery = apply(ctx, lambda session: session.editor.edit(character_id, **changes))
    character = mystery.get_character(character_id)
    console.print(f"[green]Updated {character.name}:[/green] {', '.join(sorted(changes))}")


@main.command()
@click.argument("character_id")
@click.pass_context
def gender(ctx: click.Context, character_id: str):
    """Flip one suspect's gender"""
    show_cast(apply(ctx, lambda session: session.editor.toggle_gender(character_id)))


@main.command(name="add-suspect")
@click.pass_context
def add_suspect(ctx: click.Context):
    """Add a blank suspect to fill in by hand"""
    show_cast(apply(ctx, lambda session: session.editor.add_blank()))


@main.command(name="remove-suspect")
@click.argument("character_id")
@click.pass_context
def remove_suspect(ctx: click.Context, character_id: str):
    """Remove one suspect from the cast"""
    mystery = apply(ctx, lambda session: session.editor.remove(character_id))
    show_cast(mystery)
    dangling = (mystery.killer_id and mystery.killer is None) or (mystery.saboteur_id and mystery.saboteur is None)
    if dangling:
        console.print("[yellow]A role now points at nobody; run 'noirplan roles' to reassign[/yellow]")


@main.command()
@click.pass_context
def timeline(ctx: click.Context):
    """Write the master timeline"""
    async def operation(session, progress, task):
        return await session.pipeline.build_timeline()

    mystery = run(ctx, operation, "Writing the timeline...")
    console.print(Panel(mystery.timeline, title="The Truth", border_style="red"))


@main.command()
@click.option("--tools", type=str, help="What you can make clues with")
@click.pass_context
def clues(ctx: click.Context, tools: Optional[str]):
    """Design the evidence kit"""
    async def operation(session, progress, task):
        return await session.pipeline.generate_clues(tools)

    mystery = run(ctx, operation, "Designing clues...")

    table = Table(title="Clues")
    table.add_column("ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Hide")
    table.add_column("Relevance")
    for clue in mystery.clues:
        table.add_row(clue.id, clue.name, clue.location_to_hide, clue.relevance)
    console.print(table)


@main.command(name="delete-clue")
@click.argument("clue_id")
@click.pass_context
def delete_clue(ctx: click.Context, clue_id: str):
    """Drop one clue from the kit"""
    mystery = apply(ctx, lambda session: session.pipeline.delete_clue(clue_id))
    console.print(f"[green]Deleted clue {clue_id}[/green] ({len(mystery.clues)} left)")


@main.command()
@click.argument("character_id")
@click.pass_context
def dossier(ctx: click.Context, character_id: str):
    """Write (or rewrite) one character's dossier"""
    async def operation(session, progress, task):
        return await session.regenerator.regenerate_dossier(character_id)

    mystery = run(ctx, operation, "Writing dossier...")
    character = mystery.get_character(character_id)
    console.print(Panel(character.background, title=character.name, border_style="cyan"))


@main.command()
@click.pass_context
def dossiers(ctx: click.Context):
    """Write every missing dossier"""
    async def operation(session, progress, task):
        def on_progress(done, total, character):
            progress.update(task, description=f"Dossier {done}/{total}: {character.name}")

        return await session.regenerator.flesh_all(on_progress)

    show_cast(run(ctx, operation, "Writing dossiers..."))


@main.command()
@click.pass_context
def audit(ctx: click.Context):
    """Audit the mystery for contradictions"""
    async def operation(session, progress, task):
        return await session.audit.run_audit()

    show_report(run(ctx, operation, "Auditing..."))


@main.command()
@click.argument("issue_id")
@click.pass_context
def fix(ctx: click.Context, issue_id: str):
    """Patch the timeline to resolve one audit issue"""
    async def operation(session, progress, task):
        return await session.audit.resolve_issue(issue_id)

    show_report(run(ctx, operation, f"Fixing {issue_id}..."))


@main.command()
@click.option("--theme", type=str, help="Mystery theme (prompted if omitted)")
@click.option("--location", type=str, default="", help="Where the party takes place")
@click.option("--guests", type=click.IntRange(1, 12), default=6, show_default=True, help="Number of suspects")
@click.option("--details", type=str, default="", help="Anything else the story should include")
@click.option("--tools", type=str, help="What you can make clues with")
@click.option("--no-audit", is_flag=True, help="Skip the final audit")
@click.pass_context
def lucky(
    ctx: click.Context,
    theme: Optional[str],
    location: str,
    guests: int,
    details: str,
    tools: Optional[str],
    no_audit: bool
):
    """I'm feeling lucky: generate the whole mystery in one go"""
    theme = theme or Prompt.ask("[bold]Theme[/bold]", console=console)
    lucky_config = LuckyConfig(
        theme=theme,
        location=location,
        num_guests=guests,
        details=details,
        clue_tools=tools,
        run_audit=not no_audit
    )

    async def operation(session, progress, task):
        def on_progress(stage: Stage, message: str):
            progress.update(task, description=f"[{stage.label}] {message}")

        return await session.lucky.run(lucky_config, on_progress)

    mystery = run(ctx, operation, "Feeling lucky...")
    console.print(Panel(
        f"[bold green]Mystery complete![/bold green]\n\n"
        f"{len(mystery.characters)} suspects, {len(mystery.clues)} clues",
        title=mystery.title,
        border_style="green"
    ))


@main.command()
@click.argument("stage", type=click.Choice([s.value for s in Stage], case_sensitive=False))
@click.pass_context
def goto(ctx: click.Context, stage: str):
    """Jump to a stage"""
    moved = get_session(ctx).go_to(Stage(stage.lower()))
    console.print(f"Now at [cyan]{moved.label}[/cyan]")


@main.command(name="next")
@click.pass_context
def next_stage(ctx: click.Context):
    """Move to the next stage"""
    try:
        moved = get_session(ctx).advance()
    except StageGateError as e:
        fail(str(e))
    console.print(f"Now at [cyan]{moved.label}[/cyan]")


@main.command()
@click.pass_context
def back(ctx: click.Context):
    """Move to the previous stage"""
    moved = get_session(ctx).back()
    console.print(f"Now at [cyan]{moved.label}[/cyan]")


@main.command()
@click.option(
    "--output",
    type=click.Path(path_type=Path),
    default=Path("output"),
    help="Output directory for the game kit"
)
@click.option("--host-packet", is_flag=True, help="Include the host-only truth")
@click.pass_context
def export(ctx: click.Context, output: Path, host_packet: bool):
    """Write the printable game kit"""
    mystery = get_session(ctx).mystery
    if not mystery.characters:
        fail("Nothing to export yet; cast some suspects first")

    slug = "".join(c if c.isalnum() else "_" for c in (mystery.title or "mystery").lower()).strip("_")
    output_path = output / f"{slug or 'mystery'}.md"
    MarkdownExporter(include_host_packet=host_packet).export_to_file(mystery, output_path)

    console.print(Panel(
        f"[bold green]Game kit exported![/bold green]\n\n"
        f"Saved to: [cyan]{output_path}[/cyan]",
        title="Success",
        border_style="green"
    ))


@main.command()
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def reset(ctx: click.Context, yes: bool):
    """Discard the current mystery and start over"""
    confirmed = yes or Confirm.ask("Discard the current mystery?", console=console)
    if not confirmed:
        console.print("[yellow]Cancelled[/yellow]")
        return

    get_session(ctx).new_mystery(confirmed=True)
    console.print("[green]Started a new mystery[/green]")


if __name__ == "__main__":
    main()
