"""Interactive CLI application."""
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from cert_planner.config import DEFAULT_CERTIFICATION_ID, LOCAL_USER_ID, configure_logging
from cert_planner.db import DEFAULT_DB_PATH, init_db
from cert_planner.errors import PlannerError
from cert_planner.planner import (
    abandon_study_plan,
    generate_study_plan,
    get_active_study_plan,
    plan_progress,
    regenerate_study_plan,
)
from cert_planner.readiness import get_domain_readiness, get_readiness_color, get_readiness_label
from cert_planner.reviews import count_due_reviews
from cert_planner.seed import is_seeded, seed_all
from cert_planner.streaks import get_study_streak
from cert_planner.study import complete_task

console = Console()

TASK_STYLES = {
    "learning": "cyan",
    "practice": "magenta",
    "review": "green",
    "drill": "yellow",
}


def show_welcome():
    console.print(Panel(
        "[bold]Certification Study Planner[/bold]\n[dim]Adaptive day-by-day exam prep[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("new", "Create a study plan for an exam date"),
        ("plan", "View the active plan"),
        ("today", "Today's tasks"),
        ("done", "Mark a task complete"),
        ("regenerate", "Re-plan remaining days"),
        ("abandon", "Abandon the active plan"),
        ("dashboard", "Readiness, streak and due reviews"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _require_active_plan(db_path: str):
    plan = get_active_study_plan(db_path, LOCAL_USER_ID, DEFAULT_CERTIFICATION_ID)
    if not plan:
        console.print("[yellow]No active study plan. Use 'new' to create one.[/yellow]")
    return plan


def render_tasks(tasks: list, title: str) -> None:
    if not tasks:
        console.print(f"[dim]{title}: nothing scheduled.[/dim]")
        return
    table = Table(title=title)
    table.add_column("ID", justify="right")
    table.add_column("Type")
    table.add_column("Task")
    table.add_column("Min", justify="right")
    table.add_column("Status")
    for t in tasks:
        style = TASK_STYLES.get(t.task_type, "white")
        table.add_row(
            str(t.id),
            f"[{style}]{t.task_type}[/{style}]",
            t.notes or "",
            str(t.estimated_minutes),
            "[green]Done[/green]" if t.completed_at else "",
        )
    console.print(table)


def cmd_new(db_path: str):
    target = Prompt.ask("Target exam date (YYYY-MM-DD)")
    existing = get_active_study_plan(db_path, LOCAL_USER_ID, DEFAULT_CERTIFICATION_ID)
    if existing and not Confirm.ask("Replace the current active plan?", default=False):
        return
    plan = generate_study_plan(db_path, LOCAL_USER_ID, DEFAULT_CERTIFICATION_ID, target)
    progress = plan_progress(plan)
    console.print(
        f"[green]Plan created:[/green] {progress['total_days']} days, "
        f"{progress['total_tasks']} tasks until {plan.target_exam_date}"
    )
    render_tasks(progress["todays_tasks"], "Today")


def cmd_plan(db_path: str):
    plan = _require_active_plan(db_path)
    if not plan:
        return
    progress = plan_progress(plan)
    console.print(Panel(
        f"Exam on [bold]{plan.target_exam_date}[/bold]\n"
        f"Days complete: {progress['completed_days']}/{progress['total_days']}  |  "
        f"Tasks complete: {progress['completed_tasks']}/{progress['total_tasks']} "
        f"({progress['percent_complete']}%)",
        title="Study Plan", border_style="blue",
    ))
    table = Table()
    table.add_column("Date")
    table.add_column("Tasks")
    table.add_column("Minutes", justify="right")
    table.add_column("Status")
    today = date.today().isoformat()
    for day in plan.days:
        kinds = ", ".join(t.task_type for t in day.tasks) or "-"
        minutes = sum(t.estimated_minutes for t in day.tasks)
        if day.is_complete:
            status = "[green]Done[/green]"
        elif day.date == today:
            status = "[cyan]Today[/cyan]"
        else:
            status = ""
        table.add_row(day.date, kinds, str(minutes), status)
    console.print(table)


def cmd_today(db_path: str):
    plan = _require_active_plan(db_path)
    if plan:
        render_tasks(plan_progress(plan)["todays_tasks"], "Today's Tasks")


def cmd_done(db_path: str):
    plan = _require_active_plan(db_path)
    if not plan:
        return
    task_id = IntPrompt.ask("Task ID")
    notes = Prompt.ask("Notes (optional)", default="")
    task, day_complete = complete_task(db_path, plan.id, task_id, notes=notes or None)
    console.print(f"[green]Completed:[/green] {task['notes']}")
    if day_complete:
        console.print("[bold green]All tasks for the day are done![/bold green]")


def cmd_regenerate(db_path: str):
    plan = _require_active_plan(db_path)
    if not plan:
        return
    keep = Confirm.ask("Keep completed tasks?", default=True)
    result = regenerate_study_plan(db_path, plan.id, keep_completed_tasks=keep)
    console.print(
        f"[green]Plan regenerated:[/green] {result.tasks_removed} removed, "
        f"{result.tasks_generated} generated"
    )


def cmd_abandon(db_path: str):
    plan = _require_active_plan(db_path)
    if plan and Confirm.ask("Abandon the active plan?", default=False):
        abandon_study_plan(db_path, plan.id)
        console.print("[yellow]Plan abandoned.[/yellow]")


def cmd_dashboard(db_path: str):
    domains = get_domain_readiness(db_path, LOCAL_USER_ID, DEFAULT_CERTIFICATION_ID)
    table = Table(title="Domain Readiness")
    table.add_column("Domain", style="cyan")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for d in domains:
        color = get_readiness_color(d.score)
        table.add_row(d.domain_name, f"{d.score}%", f"[{color}]{get_readiness_label(d.score)}[/{color}]")
    console.print(table)

    streak = get_study_streak(db_path, LOCAL_USER_ID)
    due = count_due_reviews(db_path, LOCAL_USER_ID)
    console.print(f"\n  Streak: [bold]{streak}[/bold] days  |  Reviews due: [bold]{due}[/bold]")

    if domains:
        weakest = min(domains, key=lambda d: d.score)
        if weakest.score < 70:
            console.print(f"\n  [yellow]Recommendation: Focus on {weakest.domain_name}[/yellow]")


COMMANDS = {
    "new": cmd_new,
    "plan": cmd_plan,
    "today": cmd_today,
    "done": cmd_done,
    "regenerate": cmd_regenerate,
    "abandon": cmd_abandon,
    "dashboard": cmd_dashboard,
}


def run_command(db_path: str, choice: str) -> bool:
    """Run one menu command. Returns False when the user asked to quit."""
    if choice in ("quit", "exit", "q"):
        console.print("[dim]Good luck on your exam![/dim]")
        return False
    handler = COMMANDS.get(choice)
    if handler is None:
        console.print("[red]Unknown command. Try again.[/red]")
        return True
    try:
        handler(db_path)
    except PlannerError as e:
        console.print(f"[red]Error: {e}[/red]")
    return True


def main():
    configure_logging()
    db_path = DEFAULT_DB_PATH
    init_db(db_path)
    first_run = not is_seeded(db_path)
    if first_run:
        console.print("[dim]Setting up for first use...[/dim]")
    seed_all(db_path)
    if first_run:
        console.print("[green]Ready![/green]\n")

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="today").strip().lower()
        try:
            if not run_command(db_path, choice):
                break
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")


if __name__ == "__main__":
    main()
