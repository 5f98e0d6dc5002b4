"""Interactive CLI application."""
import logging
from datetime import datetime

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Prompt, IntPrompt
from rich.table import Table

from studytimer.config import settings
from studytimer.db import SqliteGateway
from studytimer.events import LevelUp, RankUp, RecordBroken, RecordKind
from studytimer.grades import classify
from studytimer.progression import OperationResult, ProgressionCoordinator
from studytimer.stats import format_duration, format_hours, progress_bar

console = Console()
logger = logging.getLogger(__name__)


def show_welcome():
    console.print(Panel(
        "[bold]Study Timer[/bold]\n[dim]Sessions, levels, streaks and GPA[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("register", "Create your account or start a new term"),
        ("start", "Start a study session"),
        ("pause", "Take a break"),
        ("resume", "End the break"),
        ("info", "Current session"),
        ("stop", "Finish the session"),
        ("stats", "Levels, streaks and totals"),
        ("course", "Add or remove a term course"),
        ("subject", "Add or remove a graded account course"),
        ("grade", "Set a course grade"),
        ("gpa", "Grades and GPA"),
        ("endterm", "Close the current term"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def _timestamp(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def show_failure(result: OperationResult) -> None:
    console.print(f"[red]{result.message}[/red]")


def show_events(events: list) -> None:
    for event in events:
        if isinstance(event, LevelUp):
            console.print(f"[green]Level up! +{event.levels_gained} → level {event.new_level} "
                          f"({event.leftover_points:,} XP carried over)[/green]")
        elif isinstance(event, RankUp):
            console.print(f"[magenta]Rank up! +{event.levels_gained} → rank {event.new_rank} "
                          f"({event.leftover_points:,} RP carried over)[/magenta]")
        elif isinstance(event, RecordBroken):
            kind = "session" if event.kind is RecordKind.SESSION else "term"
            console.print(f"[yellow]New longest {kind}: {format_duration(event.value)}[/yellow]")


def cmd_register(coordinator: ProgressionCoordinator, user_id: str):
    name = Prompt.ask("Term name (blank for account only)", default="").strip()
    result = coordinator.register(user_id, name or None)
    if not result.ok:
        show_failure(result)
        return
    if name:
        console.print(f"[green]Term '{name}' started.[/green]")
    else:
        console.print("[green]Account created.[/green]")


def cmd_start(coordinator: ProgressionCoordinator, user_id: str):
    topic = Prompt.ask("Topic (e.g. CS101 - Recursion)", default="").strip()
    result = coordinator.start(user_id, topic or None)
    if not result.ok:
        show_failure(result)
        return
    console.print("[green]Timer started.[/green]")
    if result.recap["courses"]:
        console.print(f"[dim]Studying: {', '.join(result.recap['courses'])}[/dim]")


def cmd_pause(coordinator: ProgressionCoordinator, user_id: str):
    result = coordinator.pause(user_id)
    if not result.ok:
        show_failure(result)
        return
    console.print("[yellow]Break started.[/yellow]")


def cmd_resume(coordinator: ProgressionCoordinator, user_id: str):
    result = coordinator.resume(user_id)
    if not result.ok:
        show_failure(result)
        return
    console.print(f"[green]Back to work after {format_duration(result.value)}.[/green]")


def cmd_info(coordinator: ProgressionCoordinator, user_id: str):
    result = coordinator.info(user_id)
    if not result.ok:
        show_failure(result)
        return
    s = result.value
    lines = []
    if s.open_break_seconds:
        lines.append(f"Active Break: {format_duration(s.open_break_seconds)}\n")
    lines += [
        f"Time Elapsed: {format_duration(s.net_seconds)}",
        f"Break Time: {format_duration(s.break_seconds)}",
        f"Number of Breaks: {s.break_count}",
        f"Start Time: {_timestamp(s.start_ms)}",
    ]
    console.print(Panel("\n".join(lines), title="Session", border_style="cyan"))


def cmd_stop(coordinator: ProgressionCoordinator, user_id: str):
    result = coordinator.stop(user_id)
    if not result.ok:
        show_failure(result)
        return
    r = result.recap
    lines = [
        f"Start Time: {_timestamp(r['start_ms'])}",
        f"Time Elapsed: {format_duration(r['wall_seconds'])}",
        f"Session Time: {format_duration(r['net_seconds'])}",
        "",
        f"Total Break Time: {format_duration(r['break_seconds']) if r['break_seconds'] else 'No Breaks Taken'}",
        f"Average Break Time: {format_duration(r['avg_break_seconds']) if r['avg_break_seconds'] else 'No Breaks Taken'}",
        f"Number of Breaks: {r['break_count']}",
        f"Studied Courses: {', '.join(r['courses']) if r['courses'] else 'None'}",
        "",
        f"XP & RP Earned: {r['points_earned']:,}",
        f"Streak: {r['streak']}",
    ]
    console.print(Panel("\n".join(lines), title="Session Complete", border_style="green"))
    show_events(result.events)


def cmd_stats(coordinator: ProgressionCoordinator, user_id: str):
    result = coordinator.stats(user_id)
    if not result.ok:
        show_failure(result)
        return
    st = result.value
    console.print(Panel(
        f"Lifetime Study Time: [bold]{format_duration(st['lifetime_seconds'])}[/bold] "
        f"[{format_hours(st['lifetime_seconds'])}]",
        title="Study Stats", border_style="blue",
    ))
    if st["has_term"]:
        table = Table(title=f"Term: {st['term_name']}")
        table.add_column("Stat", style="cyan")
        table.add_column("Value", justify="right")
        rows = [
            ("Term Study Time", format_duration(st["term_seconds"])),
            ("Total Sessions", str(st["session_count"])),
            ("Average Session", format_duration(st["avg_session_seconds"])),
            ("Average / 7 Sessions", format_duration(st["avg_weekly_seconds"])),
            ("Longest Session", format_duration(st["longest_session_seconds"])),
            ("Break Time", format_duration(st["break_seconds"])),
            ("Total Breaks", str(st["break_count"])),
            ("Average Break", format_duration(st["avg_break_seconds"])),
            ("Time Between Breaks", format_duration(st["avg_between_breaks_seconds"])),
            ("Average Start Time", _timestamp(st["avg_start_ms"]) if st["avg_start_ms"] else "N/A"),
            ("Streak", f"{st['streak']} (longest {st['longest_streak']})"),
        ]
        for label, value in rows:
            table.add_row(label, value)
        console.print(table)

        if st["courses_by_study"]:
            console.print("\n[bold]Courses:[/bold]")
            for c in st["courses_by_study"]:
                console.print(f"  {c.name} [dim]({c.code})[/dim] [{c.times_studied}]")

        console.print(f"\n  Level [bold]{st['level']}[/bold]  {st['xp']:,}/{st['xp_required']:,} XP "
                      f"{progress_bar(st['level_percent'])} {st['level_percent']}%  "
                      f"[dim]{format_duration(st['seconds_to_level'])} to go[/dim]")

    console.print(f"  Rank [bold]{st['rank']}[/bold] ({st['rank_badge']})  {st['rp']:,}/{st['rp_required']:,} RP "
                  f"{progress_bar(st['rank_percent'])} {st['rank_percent']}%  "
                  f"[dim]{format_duration(st['seconds_to_rank'])} to go[/dim]")
    if st["record_term"]:
        rec = st["record_term"]
        console.print(f"  Longest Term: {rec['name']} - {format_duration(rec['seconds'])}")
    console.print(f"  GPA: {st['gpa'] if st['gpa'] is not None else 'N/A'}")


def cmd_course(coordinator: ProgressionCoordinator, user_id: str):
    action = Prompt.ask("Action", choices=["add", "remove"], default="add")
    code = Prompt.ask("Course code").strip()
    if action == "add":
        name = Prompt.ask("Course name").strip()
        result = coordinator.add_term_course(user_id, code, name)
    else:
        result = coordinator.remove_term_course(user_id, code)
    if not result.ok:
        show_failure(result)
        return
    console.print(f"[green]Course {code} {'added' if action == 'add' else 'removed'}.[/green]")


def cmd_subject(coordinator: ProgressionCoordinator, user_id: str):
    action = Prompt.ask("Action", choices=["add", "remove"], default="add")
    code = Prompt.ask("Course code").strip()
    if action == "add":
        name = Prompt.ask("Course name").strip()
        hours = IntPrompt.ask("Credit hours", default=3)
        grade = Prompt.ask("Grade (blank if none yet)", default="").strip()
        result = coordinator.add_account_course(user_id, code, name, hours, grade or None)
    else:
        result = coordinator.remove_account_course(user_id, code)
    if not result.ok:
        show_failure(result)
        return
    console.print(f"[green]Subject {code} {'added' if action == 'add' else 'removed'}.[/green]")


def cmd_grade(coordinator: ProgressionCoordinator, user_id: str):
    code = Prompt.ask("Course code").strip()
    grade = Prompt.ask("Grade (e.g. A-, B+, W, P)").strip()
    result = coordinator.set_grade(user_id, code, grade)
    if not result.ok:
        show_failure(result)
        return
    console.print(f"[green]{code}: {result.value} ({classify(result.value)})[/green]")


def cmd_gpa(coordinator: ProgressionCoordinator, user_id: str):
    result = coordinator.gpa(user_id)
    if not result.ok:
        show_failure(result)
        return
    table = Table(title="Grades")
    table.add_column("Course", style="cyan")
    table.add_column("Grade")
    table.add_column("Credits", justify="right")
    for c in result.recap["courses"]:
        table.add_row(c.name, str(c.grade) if c.grade else "N/A", str(c.credit_hours))
    console.print(table)
    gpa = result.value
    console.print(f"  GPA: [bold]{gpa.gpa if gpa.has_gpa else 'N/A'}[/bold] "
                  f"over {gpa.total_credit_hours} credit hours")
    if result.recap["line"]:
        console.print(f"  {result.recap['line']}")


def cmd_endterm(coordinator: ProgressionCoordinator, user_id: str):
    confirm = Prompt.ask("End the current term?", choices=["y", "n"], default="n")
    if confirm != "y":
        return
    result = coordinator.end_term(user_id)
    if not result.ok:
        show_failure(result)
        return
    r = result.recap
    console.print(Panel(
        f"Total Time: {format_duration(r['total_seconds'])}\n"
        f"Number of Sessions: {r['session_count']}\n"
        f"Total Break Time: {format_duration(r['break_seconds'])}\n"
        f"Longest Session: {format_duration(r['longest_session_seconds'])}\n"
        f"Term Level: {r['level']}\n"
        f"XP Converted to RP: {r['points_converted']:,}",
        title=f"Term '{r['term']}' Complete", border_style="green",
    ))
    show_events(result.events)


COMMANDS = {
    "register": cmd_register,
    "start": cmd_start,
    "pause": cmd_pause,
    "resume": cmd_resume,
    "info": cmd_info,
    "stop": cmd_stop,
    "stats": cmd_stats,
    "course": cmd_course,
    "subject": cmd_subject,
    "grade": cmd_grade,
    "gpa": cmd_gpa,
    "endterm": cmd_endterm,
}


def main():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    coordinator = ProgressionCoordinator(SqliteGateway(settings.db_path), settings=settings)
    user_id = settings.user_id

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="stats").strip().lower()
        if choice in ("quit", "exit", "q"):
            console.print("[dim]Keep the streak going![/dim]")
            break
        command = COMMANDS.get(choice)
        if command is None:
            console.print("[red]Unknown command. Try again.[/red]")
            continue
        try:
            command(coordinator, user_id)
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            logger.exception("Command %s failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
