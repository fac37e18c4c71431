"""Interactive CLI application."""
import logging

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from brainbuddy.config import load_settings
from brainbuddy.dashboard import (
    get_badge_rows, get_level_bar, get_performance_color, get_performance_label,
    get_pet_summary, get_progress_summary,
)
from brainbuddy.engine import EventType, ProgressEngine, ProgressEvent
from brainbuddy.logger import setup_logger

logger = logging.getLogger(__name__)

console = Console()

EXIT_WORDS = ("q", "menu")
OPTION_KEYS = ["a", "b", "c", "d"]


class SessionExitRequested(Exception):
    """Raised when the learner leaves a quiz mid-way."""


def session_prompt(prompt: str, choices: list[str] | None = None, **kwargs) -> str:
    if choices is not None:
        choices = list(choices) + list(EXIT_WORDS)
    answer = Prompt.ask(prompt, choices=choices, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def show_welcome(engine: ProgressEngine):
    console.print(Panel(
        f"[bold]BrainBuddy[/bold]\n[dim]Learning progress for {engine.user_id}[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Level, XP, streak and quiz progress"),
        ("quiz", "Today's ten-question quiz"),
        ("pet", "Your virtual pet"),
        ("feed", "Feed your pet"),
        ("play", "Play with your pet"),
        ("badges", "Achievements and badges"),
        ("sync", "Sync progress with the server"),
        ("reset", "Reset quizzes, achievements and badges"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_event(event: ProgressEvent) -> None:
    if event.type is EventType.LEVEL_UP:
        console.print(f"[bold magenta]🎉 Congratulations! You've reached Level {event.value}![/bold magenta]")
    elif event.type is EventType.ACHIEVEMENT_UNLOCKED:
        console.print(f"[bold yellow]{event.value.icon} Achievement unlocked: {event.value.name}[/bold yellow]")
    elif event.type is EventType.BADGE_EARNED:
        console.print(f"[yellow]{event.value.icon} Badge earned: {event.value.name}[/yellow]")
    elif event.type is EventType.PET_EVOLVED:
        console.print(f"[green]🎉 Your pet evolved to Level {event.value}! +20 XP bonus![/green]")
    elif event.type is EventType.QUIZ_COMPLETED:
        console.print("[bold green]🎊 You've completed all quizzes for today![/bold green]")
    elif event.type is EventType.DAILY_RESET:
        console.print("[dim]A new day, a fresh quiz.[/dim]")


def run_quiz_session(engine: ProgressEngine) -> tuple[int, int]:
    """Ask the remaining questions of today's set. Returns (correct, answered)."""
    view = engine.quiz_view()
    if view["complete"]:
        console.print("[yellow]Today's quiz is done. Come back tomorrow![/yellow]")
        return 0, 0
    correct = answered = 0
    while not view["complete"]:
        item, index = view["item"], view["index"]
        console.print(f"\n[bold]Question {index + 1} of {view['total']}[/bold]  "
                      f"[dim]Reward: {item.xp_reward} XP[/dim]")
        console.print(f"{item.question}\n")
        for key, option in zip(OPTION_KEYS, item.options):
            console.print(f"  [cyan]{key})[/cyan] {option}")
        key = session_prompt("\nYour answer", choices=OPTION_KEYS)
        result = engine.submit_answer(item.options[OPTION_KEYS.index(key)], index=index)
        if not result.ok:
            console.print(f"[red]{result.message or result.reason.value}[/red]")
        else:
            answered += 1
            if result.correct:
                correct += 1
                console.print(f"[green]Correct! You earned {result.xp_awarded} XP![/green]")
            else:
                console.print(f"[red]Wrong answer.[/red] The correct answer is: "
                              f"[green]{result.correct_option}[/green]  "
                              f"[dim](-{result.point.penalty:g} performance)[/dim]")
        engine.tick()
        view = engine.quiz_view()
    console.print(f"\n[bold]Score: {view['score']:g}[/bold]")
    return correct, answered


def cmd_quiz(engine: ProgressEngine):
    console.print("\n[bold]Daily Quiz[/bold] [dim](q to stop)[/dim]")
    try:
        run_quiz_session(engine)
    except SessionExitRequested:
        console.print("[dim]Quiz paused. Your answers so far are saved.[/dim]")


def cmd_dashboard(engine: ProgressEngine):
    s = get_progress_summary(engine)
    console.print(Panel(
        f"[bold]Level {s['level']}[/bold]  •  {s['xp']} XP  •  🔥 {s['streak_days']} day streak",
        title="Progress Dashboard", border_style="blue",
    ))
    console.print(f"\n  Level progress: {get_level_bar(s['level_percent'])} "
                  f"{s['xp_into_level']}/{s['xp_needed']} XP\n")
    console.print(f"  Quizzes today: [bold]{s['quizzes_completed']}/{s['quiz_total']}[/bold]  |  "
                  f"Score: [bold]{s['quiz_score']:g}[/bold]")
    if s["performance"] is not None:
        color = get_performance_color(s["performance"])
        console.print(f"  Performance: [{color}]{s['performance']:g} "
                      f"{get_performance_label(s['performance'])}[/{color}]")
    if s["accuracy_pct"] is not None:
        console.print(f"  Accuracy: [bold]{s['accuracy_pct']}%[/bold]")
    if engine.remote_stats:
        console.print(f"  [dim]Server reports {engine.remote_stats.get('xp', '?')} XP, "
                      f"{engine.remote_stats.get('completedLessons', 0)} lessons completed[/dim]")


def cmd_pet(engine: ProgressEngine):
    summary = get_pet_summary(engine)
    if summary is None:
        console.print("\n[bold]Choose your pet[/bold]")
        catalog = engine.pet.catalog
        for species_id, species in catalog.items():
            console.print(f"  [cyan]{species_id:<10}[/cyan] {species['levels']['0']['emoji']} "
                          f"{species['name']}: {species['description']}")
        species = Prompt.ask("Species", choices=list(catalog))
        name = Prompt.ask("Pet name")
        result = engine.select_pet(species, name)
        console.print(f"[green]{result.message}[/green]" if result.ok else f"[red]{result.message}[/red]")
        return
    console.print(Panel(
        f"{summary['emoji']}  [bold]{summary['name']}[/bold] the {summary['species']} ({summary['stage']})\n"
        f"Level {summary['level']}  •  Experience {summary['experience']}/100\n"
        f"Happiness {summary['happiness']}%  •  Energy {summary['energy']}%",
        title="Virtual Pet", border_style="magenta",
    ))
    if summary["feed_wait"]:
        console.print(f"  [dim]Can eat again in {summary['feed_wait'] // 60 + 1} min[/dim]")
    if summary["play_wait"]:
        console.print(f"  [dim]Can play again in {summary['play_wait'] // 60 + 1} min[/dim]")


def cmd_feed(engine: ProgressEngine):
    result = engine.feed()
    if result.ok:
        console.print(f"[green]🍖 {result.message} +{result.xp_awarded} XP for being caring![/green]")
    else:
        console.print(f"[yellow]🍖 {result.message}[/yellow]")


def cmd_play(engine: ProgressEngine):
    result = engine.play()
    if result.ok:
        console.print(f"[green]🎾 {result.message} +{result.xp_awarded} XP![/green]")
    else:
        console.print(f"[yellow]🎾 {result.message}[/yellow]")


def cmd_badges(engine: ProgressEngine):
    table = Table(title="Badges")
    table.add_column("Badge")
    table.add_column("Requirement")
    table.add_column("Status")
    for row in get_badge_rows(engine):
        status = "[green]Earned[/green]" if row["earned"] else "[dim]Locked[/dim]"
        table.add_row(f"{row['icon']} {row['name']}", row["requirement"], status)
    console.print(table)
    if engine.achievements.log:
        console.print("\n[bold]Achievements:[/bold]")
        for a in engine.achievements.log:
            console.print(f"  {a.icon} [bold]{a.title}[/bold]  [dim]{a.description} "
                          f"({a.earned_at:%Y-%m-%d})[/dim]")


def cmd_sync(engine: ProgressEngine):
    report = engine.sync.sync()
    if report.skipped:
        console.print(f"[yellow]Sync skipped: {report.skipped}[/yellow]")
    elif report.error:
        console.print("[red]Server unavailable, will retry later.[/red]")
    else:
        console.print(f"[green]Synced. Server had {report.pulled.xp} XP, "
                      f"{report.pulled.streak_days} day streak.[/green]")


def cmd_reset(engine: ProgressEngine):
    confirm = Prompt.ask("Reset quizzes, achievements and badges?", choices=["y", "n"], default="n")
    if confirm == "y":
        engine.reset_quizzes()
        console.print("[green]Quizzes reset.[/green]")


def main():
    settings = load_settings()
    setup_logger(settings.log_dir)
    engine = ProgressEngine.from_settings(settings)
    engine.add_listener(show_event)
    engine.load()
    engine.start()

    show_welcome(engine)
    commands = {
        "dashboard": cmd_dashboard,
        "quiz": cmd_quiz,
        "pet": cmd_pet,
        "feed": cmd_feed,
        "play": cmd_play,
        "badges": cmd_badges,
        "sync": cmd_sync,
        "reset": cmd_reset,
    }

    try:
        while True:
            engine.tick()
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
            try:
                if choice in commands:
                    commands[choice](engine)
                elif choice in ("quit", "exit", "q"):
                    console.print("[dim]See you tomorrow![/dim]")
                    break
                else:
                    console.print("[red]Unknown command. Try again.[/red]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except Exception as e:
                logger.exception(f"Command {choice!r} failed")
                console.print(f"[red]Error: {e}[/red]")
    finally:
        engine.close()


if __name__ == "__main__":
    main()
