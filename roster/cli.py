from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from roster.core.cancellation import CancellationToken, cancel_on_sigint
from roster.core.logging import setup_logging
from roster.core.settings import get_settings
from roster.db.session import session_scope
from roster.plans.executor import resume_summary
from roster.plans.models import PASS_LABELS
from roster.plans.review import reject_actions, restore_actions
from roster.plans.store import PlanFileError, load_plan, save_plan
from roster.resolution.coordinator import DeduplicationCoordinator, PassReport
from roster.resolution.mutations import deduplicate_connections, recompute_person_counts

app = typer.Typer(
    name="roster-dedup",
    help="Person roster deduplication: dry-run, apply, or execute a reviewed plan",
    add_completion=False,
)

console = Console()


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every proposed and applied action"),
) -> None:
    setup_logging("DEBUG" if verbose else None)


def _print_pass_report(report: PassReport) -> None:
    table = Table(title=f"Deduplication ({report.mode})")
    table.add_column("Pass", justify="right")
    table.add_column("Label", style="bold")
    table.add_column("Count", justify="right")
    for pass_no, count in sorted(report.pass_counts.items()):
        table.add_row(str(pass_no), PASS_LABELS[pass_no][1], str(count))
    table.add_row("", "total", str(report.total))
    console.print(table)
    console.print(f"Persons: {report.person_count_before} → {report.person_count_after}")


def _load_plan_or_exit(path: Path):
    try:
        return load_plan(path)
    except PlanFileError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)


@app.command("dry-run")
def dry_run_command(
    plan: Path = typer.Option(None, "--plan", help="Where to write the plan (defaults to PLAN_PATH)"),
):
    """
    Propose every merge and delete without touching the store.
    """
    settings = get_settings()
    plan_path = plan or Path(settings.plan_path)
    with session_scope() as db:
        coordinator = DeduplicationCoordinator.from_settings(db, settings)
        _, report = coordinator.dry_run(plan_path)
    _print_pass_report(report)
    console.print(f"Plan written to {report.plan_path}")


@app.command("apply")
def apply_command():
    """
    Run every pass and commit each action immediately.
    """
    settings = get_settings()
    with session_scope() as db:
        report = DeduplicationCoordinator.from_settings(db, settings).apply()
    _print_pass_report(report)


@app.command("execute-plan")
def execute_plan_command(
    plan: Path = typer.Argument(..., help="Plan file written by dry-run"),
    batch: int = typer.Option(None, "--batch", min=1, help="Checkpoint and pause after this many actions"),
):
    """
    Apply the pending actions of a reviewed plan. Ctrl-C stops after the current action.
    """
    settings = get_settings()
    token = CancellationToken()
    try:
        with session_scope() as db, cancel_on_sigint(token):
            coordinator = DeduplicationCoordinator.from_settings(db, settings)
            report = coordinator.execute_plan(plan, batch_size=batch, token=token)
    except PlanFileError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    table = Table(title="Plan execution")
    table.add_column("Outcome", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Executed", str(report.executed))
    table.add_row("Skipped", str(report.skipped))
    table.add_row("Already processed", str(report.already_done))
    table.add_row("Remaining", str(report.remaining))
    console.print(table)
    console.print(f"Persons remaining: {report.person_count_after}")
    if report.interrupted:
        console.print("[yellow]Interrupted; re-run the same command to resume.[/yellow]")
        raise typer.Exit(code=130)


@app.command("plan-summary")
def plan_summary_command(plan: Path = typer.Argument(...)):
    """
    Show per-pass and per-status counts of a plan.
    """
    loaded = _load_plan_or_exit(plan)

    table = Table(title=f"Plan {plan} ({loaded.created_at:%Y-%m-%d %H:%M} UTC)")
    table.add_column("Pass", justify="right")
    table.add_column("Type")
    table.add_column("Label", style="bold")
    table.add_column("Actions", justify="right")
    for key, summary in sorted(loaded.summary.by_pass.items(), key=lambda kv: int(kv[0])):
        table.add_row(key, summary.type, summary.label, str(summary.count))
    table.add_row("", "", "total", str(loaded.summary.total_actions))
    console.print(table)

    status_table = Table(title="Status")
    status_table.add_column("Status", style="bold")
    status_table.add_column("Count", justify="right")
    for status, count in resume_summary(loaded).items():
        status_table.add_row(status, str(count))
    console.print(status_table)
    console.print(f"Persons at dry-run: {loaded.person_count_before}")


def _review(plan: Path, action_ids: list[int], apply_review, verb: str) -> None:
    loaded = _load_plan_or_exit(plan)
    try:
        changed = apply_review(loaded, action_ids)
    except (KeyError, ValueError) as exc:
        console.print(f"[red]{exc.args[0] if exc.args else exc}[/red]")
        raise typer.Exit(code=1)
    save_plan(loaded, plan)
    console.print(f"{verb} {len(changed)} action(s) in {plan}")


@app.command("reject")
def reject_command(
    plan: Path = typer.Argument(...),
    action_ids: list[int] = typer.Argument(..., help="Action ids to veto"),
):
    """
    Mark pending actions as rejected so execute-plan leaves them alone.
    """
    _review(plan, action_ids, reject_actions, "Rejected")


@app.command("restore")
def restore_command(
    plan: Path = typer.Argument(...),
    action_ids: list[int] = typer.Argument(..., help="Action ids to restore"),
):
    """
    Return rejected actions to pending.
    """
    _review(plan, action_ids, restore_actions, "Restored")


@app.command("dedupe-connections")
def dedupe_connections_command():
    """
    Keep one connection per person pair and drop self-loops.
    """
    with session_scope() as db:
        removed = deduplicate_connections(db)
        db.commit()
    console.print(f"Removed {removed} connection(s)")


@app.command("recount")
def recount_command():
    """
    Recompute document and connection counts for every person.
    """
    with session_scope() as db:
        changed = recompute_person_counts(db)
        db.commit()
    console.print(f"Updated counts for {changed} person(s)")


def main():
    app()


if __name__ == "__main__":
    main()
