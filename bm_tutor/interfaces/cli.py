#!/usr/bin/env python3
"""
CLI Interface - Interactive command-line tutor.

This module provides a terminal interface for the BM Tutor. It supports:
- Free-form questions to the tutor
- Topic listing (/topics)
- Quizzes answered in the terminal and graded on the spot (/quiz)
- Ingesting syllabus notes from .txt or .pdf files (/ingest)
- Ingesting a folder of textbook part PDFs (/ingest-dir)
- Recent quiz results (/progress)

Run with:
    python -m bm_tutor --child aina --year 3
"""

import argparse
import shlex
from pathlib import Path

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from bm_tutor.config import DEFAULT_QUIZ_ITEMS, DEFAULT_SUBJECT, DIFFICULTIES, LANGUAGE_MODES
from bm_tutor.exceptions import TutorError, ValidationError
from bm_tutor.ingestion.batch import find_part_pdfs, ingest_pdf_parts
from bm_tutor.logging_utils import setup_logging
from bm_tutor.pipeline import IngestResult, TutorPipeline

# Rich console for output
console = Console()


class Session:
    """Who is learning what, for the length of one CLI run."""

    def __init__(self, child_id: str, subject: str, year: int, language_mode: str):
        self.child_id = child_id
        self.subject = subject
        self.year = year
        self.language_mode = language_mode
        self.topic_key: str | None = None


def print_welcome(session: Session):
    """Print welcome message and instructions."""
    welcome_text = f"""
[bold blue]Selamat datang ke BM Tutor![/bold blue]

Murid: [cyan]{session.child_id}[/cyan]   Subjek: [cyan]{session.subject}[/cyan]   Tahun: [cyan]{session.year}[/cyan]

Tanya apa-apa tentang pelajaran, atau cuba kuiz!

[dim]Type /help for all commands[/dim]
"""
    console.print(Panel(welcome_text, border_style="blue"))


def print_help():
    """Print help message with available commands."""
    table = Table(title="Available Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="dim")

    commands = [
        ("(any message)", "Ask the tutor", "Apa itu kata adjektif?"),
        ("/topics", "List topics for this subject/year", "/topics"),
        ("/focus [topic key]", "Focus tutor replies on a topic (no key clears)", "/focus unit 2"),
        ("/quiz <topic> [n] [difficulty]", "Take an n-question quiz", "/quiz peribahasa 6 easy"),
        ("/ingest <source> <file>", "Ingest a .txt or .pdf file", '/ingest "Nota Unit 1" nota.txt'),
        ("/ingest-dir <folder> [start] [end]", "Ingest part PDFs as Textbook Part N", "/ingest-dir buku 1 5"),
        ("/progress", "Show recent quiz results", "/progress"),
        ("/clear", "Clear the screen", "/clear"),
        ("/help", "Show this help message", "/help"),
        ("/exit", "Exit the tutor", "/exit"),
    ]

    for cmd, desc, example in commands:
        table.add_row(cmd, desc, example)

    console.print(table)


def parse_command(user_input: str) -> tuple[str, list[str]]:
    """
    Parse user input into command and arguments.

    Arguments honour shell-style quoting. For regular messages the
    command is 'ask'.
    """
    user_input = user_input.strip()

    if not user_input:
        return ("empty", [])

    if user_input.startswith("/"):
        try:
            parts = shlex.split(user_input[1:])
        except ValueError:
            parts = user_input[1:].split()
        if not parts:
            return ("empty", [])
        return (parts[0].lower(), parts[1:])

    return ("ask", [user_input])


def handle_ask(pipeline: TutorPipeline, session: Session, message: str):
    """Send a message to the tutor and render the reply."""
    with console.status("[bold green]Berfikir...", spinner="dots"):
        result = pipeline.tutor_reply(
            session.child_id,
            session.subject,
            session.year,
            message,
            language_mode=session.language_mode,
            topic_key=session.topic_key,
        )

    console.print("\n[bold green]🎓 Cikgu BM:[/bold green]")
    console.print(Markdown(result.reply))
    if result.sources:
        labels = ", ".join(sorted({s.source for s in result.sources}))
        console.print(f"[dim]Sumber: {labels}[/dim]")


def handle_topics(pipeline: TutorPipeline, session: Session):
    """Handle /topics command."""
    topics = pipeline.retrieve_topics(session.subject, session.year)

    if not topics:
        console.print("[yellow]No topics yet. Ingest some notes with /ingest first.[/yellow]")
        return

    table = Table(title=f"Topics - {session.subject} Tahun {session.year}", header_style="bold cyan")
    table.add_column("Key", style="cyan")
    table.add_column("Label", style="white")
    for topic in topics:
        table.add_row(topic.key, topic.label)
    console.print(table)


def handle_focus(session: Session, args: list[str]):
    """Handle /focus command."""
    session.topic_key = " ".join(args).strip() or None
    if session.topic_key:
        console.print(f"[cyan]Tutor replies now focus on '{session.topic_key}'.[/cyan]")
    else:
        console.print("[cyan]Topic focus cleared.[/cyan]")


def handle_quiz(pipeline: TutorPipeline, session: Session, args: list[str]):
    """Handle /quiz command: generate, answer, grade."""
    if not args:
        console.print("[yellow]Usage: /quiz <topic> [number_of_questions] [difficulty][/yellow]")
        console.print("[dim]Example: /quiz peribahasa 6 easy[/dim]")
        return

    topic = args[0]
    try:
        count = int(args[1]) if len(args) > 1 else DEFAULT_QUIZ_ITEMS
    except ValueError:
        console.print(f"[yellow]Number of questions must be a number, got '{args[1]}'[/yellow]")
        return
    difficulty = args[2] if len(args) > 2 else "easy"

    console.print(f"\n[cyan]Generating {count} quiz questions about {topic}...[/cyan]")
    with console.status("[bold green]Thinking...", spinner="dots"):
        quiz_session = pipeline.generate_quiz(
            session.child_id, session.year, session.subject, topic, difficulty, count
        )

    quiz = quiz_session.quiz
    console.print(f"\n[bold green]📝 {quiz.title}[/bold green]")
    if quiz.passage:
        console.print(Panel(quiz.passage, title="Petikan", border_style="magenta"))

    answers = {}
    for number, item in enumerate(quiz.items, start=1):
        console.print(f"\n[bold]S{number}.[/bold] {item.question}")
        if item.type == "mcq" and item.choices:
            letters = "ABCDEFGH"[: len(item.choices)]
            for letter, choice in zip(letters, item.choices):
                console.print(f"   {letter}) {choice}")
            picked = Prompt.ask("Jawapan", choices=list(letters) + list(letters.lower()))
            answers[item.id] = item.choices[letters.index(picked.upper())]
        else:
            answers[item.id] = Prompt.ask("Jawapan", default="")

    with console.status("[bold green]Menyemak...", spinner="dots"):
        report = pipeline.submit_attempt(quiz_session.attempt_id, answers)

    table = Table(title="Keputusan", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim")
    table.add_column("Your answer")
    table.add_column("Correct answer", style="green")
    table.add_column("", justify="center")
    for number, result in enumerate(report.results, start=1):
        mark = "[green]✓[/green]" if result.is_correct else "[red]✗[/red]"
        table.add_row(str(number), result.user_answer, result.correct_answer, mark)
    console.print(table)
    console.print(
        f"[bold]Markah: {report.score}/{report.total} ({report.percentage}%)[/bold]"
    )


def read_ingest_file(path: Path) -> str:
    """
    Read a plain-text notes file.

    Raises:
        ValidationError: If the file cannot be read or is not UTF-8 text
    """
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValidationError(f"{path.name} is not UTF-8 text: {e.reason}") from e
    except OSError as e:
        raise ValidationError(f"Cannot read {path}: {e.strerror or e}") from e


def handle_ingest(pipeline: TutorPipeline, session: Session, args: list[str]):
    """Handle /ingest command."""
    if len(args) < 2:
        console.print("[yellow]Usage: /ingest <source label> <file.txt|file.pdf>[/yellow]")
        return

    source, path = args[0], Path(args[1]).expanduser()
    if not path.exists():
        console.print(f"[red]File not found: {path}[/red]")
        return

    with console.status("[bold green]Ingesting...", spinner="dots"):
        if path.suffix.lower() == ".pdf":
            result = pipeline.ingest_pdf(session.subject, session.year, source, path)
        else:
            result = pipeline.ingest(session.subject, session.year, source, read_ingest_file(path))

    print_ingest_result(result)


def print_ingest_result(result: IngestResult):
    console.print(
        f"[green]Inserted {result.inserted_count}/{result.total_chunks} chunk(s).[/green]"
    )
    for error in result.errors:
        console.print(f"[yellow]  {error}[/yellow]")


def handle_ingest_dir(pipeline: TutorPipeline, session: Session, args: list[str]):
    """Handle /ingest-dir command: ingest BM-Tahun3-part1.pdf, part2.pdf, ..."""
    if not args:
        console.print("[yellow]Usage: /ingest-dir <folder> [start_part] [end_part][/yellow]")
        return

    folder = Path(args[0]).expanduser()
    try:
        start = int(args[1]) if len(args) > 1 else 1
        end = int(args[2]) if len(args) > 2 else None
    except ValueError:
        console.print("[yellow]Part numbers must be whole numbers[/yellow]")
        return

    parts = find_part_pdfs(folder, start, end)
    if not parts:
        console.print(f"[yellow]No part PDFs found in {folder}[/yellow]")
        return

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(f"[cyan]Ingesting {len(parts)} part(s)...", total=len(parts))
        outcomes = ingest_pdf_parts(
            pipeline, session.subject, session.year, folder, start, end,
            on_part=lambda outcome: progress.advance(task),
        )

    table = Table(title="Ingestion Summary", show_header=True, header_style="bold cyan")
    table.add_column("Part", style="cyan", justify="right")
    table.add_column("File", style="dim")
    table.add_column("Chunks", style="green", justify="right")
    table.add_column("Status")
    for outcome in outcomes:
        if outcome.ok:
            chunks = f"{outcome.result.inserted_count}/{outcome.result.total_chunks}"
            status = "[green]ok[/green]"
        else:
            chunks = "-"
            status = "[red]failed[/red]"
        table.add_row(str(outcome.number), outcome.path.name, chunks, status)
    console.print(table)

    failed = [o for o in outcomes if not o.ok]
    for outcome in failed:
        console.print(f"[yellow]  Part {outcome.number} ({outcome.path.name}): {escape(outcome.error)}[/yellow]")
    if failed:
        console.print(f"[yellow]{len(failed)} part(s) failed; the rest were ingested.[/yellow]")


def handle_progress(pipeline: TutorPipeline):
    """Handle /progress command."""
    attempts = pipeline.list_attempts()
    if not attempts:
        console.print("[yellow]No quiz attempts yet.[/yellow]")
        return

    table = Table(title="Recent Quizzes", show_header=True, header_style="bold cyan")
    table.add_column("When", style="dim")
    table.add_column("Child")
    table.add_column("Topic")
    table.add_column("Score", style="green")
    for attempt in attempts:
        table.add_row(
            attempt.created_at.strftime("%Y-%m-%d %H:%M"),
            attempt.child_id,
            attempt.topic,
            f"{attempt.score}/{attempt.total}",
        )
    console.print(table)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bm_tutor", description="Interactive BM tutor")
    parser.add_argument("--child", default="murid", help="Child id used for quiz attempts")
    parser.add_argument("--subject", default=DEFAULT_SUBJECT)
    parser.add_argument("--year", type=int, default=3, help="School year (Tahun)")
    parser.add_argument("--language", choices=LANGUAGE_MODES, default="BM_EN")
    parser.add_argument("--log-level", default="WARNING")
    return parser


def main(argv: list[str] | None = None):
    """Main CLI loop."""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level, console=console)

    session = Session(args.child, args.subject, args.year, args.language)
    print_welcome(session)

    try:
        pipeline = TutorPipeline.from_config()
    except TutorError as e:
        console.print(f"[red]Error initializing: {e}[/red]")
        console.print("[yellow]Make sure Ollama is running: ollama serve[/yellow]")
        return 1

    while True:
        try:
            command, cmd_args = parse_command(Prompt.ask("[bold cyan]Kamu[/bold cyan]"))

            if command == "empty":
                continue
            elif command in ("exit", "quit"):
                console.print("\n[bold blue]Jumpa lagi! Teruskan belajar! 📚[/bold blue]")
                break
            elif command == "help":
                print_help()
            elif command == "clear":
                console.clear()
                print_welcome(session)
            elif command == "topics":
                handle_topics(pipeline, session)
            elif command == "focus":
                handle_focus(session, cmd_args)
            elif command == "quiz":
                if len(cmd_args) > 2 and cmd_args[2] not in DIFFICULTIES:
                    console.print(f"[yellow]Difficulty must be one of {', '.join(DIFFICULTIES)}[/yellow]")
                    continue
                handle_quiz(pipeline, session, cmd_args)
            elif command == "ingest":
                handle_ingest(pipeline, session, cmd_args)
            elif command == "ingest-dir":
                handle_ingest_dir(pipeline, session, cmd_args)
            elif command == "progress":
                handle_progress(pipeline)
            elif command == "ask":
                handle_ask(pipeline, session, cmd_args[0])
            else:
                console.print(f"[yellow]Unknown command /{command}. Type /help.[/yellow]")

            console.print()

        except KeyboardInterrupt:
            console.print("\n\n[bold blue]Jumpa lagi! Teruskan belajar! 📚[/bold blue]")
            break
        except TutorError as e:
            console.print(f"[red]Error: {e}[/red]")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
