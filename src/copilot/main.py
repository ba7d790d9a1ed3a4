"""
Upstate Home Copilot - CLI Entry Point.

Usage:
    copilot onboard              Start conversational onboarding
    copilot onboard --offline    Onboard against the in-memory store
    copilot health               Check configuration
    copilot db                   Check database connection and tables
    copilot --help               Show help
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner

app = typer.Typer(
    name="copilot",
    help="Upstate Home Copilot - an assistant for second-home owners.",
    add_completion=False,
)
console = Console()


@app.command()
def onboard(
    offline: bool = typer.Option(False, "--offline", help="Use the in-memory store instead of Supabase"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all LLM prompts to prompt_logs/"),
    log_session: bool = typer.Option(False, "--log", help="Enable session logging to session_logs/"),
) -> None:
    """Set up a house profile through conversation."""
    from copilot.config import settings
    from copilot.llm.prompt_logger import enable_prompt_logging
    from copilot.observability.session_logger import close_session_logger, init_session_logger

    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s: %(message)s")

    if log_prompts or settings.copilot_log_prompts:
        enable_prompt_logging(True)
        console.print("[dim]Prompt logging enabled. Check prompt_logs/ after the session.[/dim]")

    session_logger = None
    if log_session:
        session_logger = init_session_logger()
        console.print(f"[dim]Session logging enabled: {session_logger.log_path}[/dim]")

    console.print(
        Panel.fit(
            "[bold green]Upstate Home Copilot[/bold green]\n"
            "Let's set up your house profile.\n\n"
            "[dim]Type 'exit' or 'quit' to end the session.[/dim]\n"
            "[dim]Type 'profile' to see what we know so far.[/dim]\n"
            "[dim]Type 'reset' to start over.[/dim]",
            title="Welcome",
            border_style="green",
        )
    )

    try:
        asyncio.run(_onboarding_session(offline=offline, session_logger=session_logger))
    except (KeyboardInterrupt, EOFError):
        console.print("\n\n[dim]Session interrupted. Goodbye![/dim]")

    if session_logger:
        log_path = close_session_logger()
        console.print(f"[dim]Session log saved: {log_path}[/dim]")


def _build_store(offline: bool):
    """Supabase when configured, otherwise the in-memory store."""
    from copilot.config import settings
    from copilot.db.memory import InMemoryPropertyStore

    if offline or not settings.has_supabase:
        if not offline:
            console.print("[yellow]WARN[/yellow] Supabase not configured; using the in-memory store")
        return InMemoryPropertyStore()

    from copilot.db.client import SupabasePropertyStore

    return SupabasePropertyStore(
        poll_interval=settings.message_poll_interval_seconds,
        history_limit=settings.message_history_limit,
    )


def _build_assistant(offline: bool):
    from copilot.config import settings
    from onboarding.assistant import OpenAIAssistant

    if offline or not (settings.assistant_phrasing and settings.has_openai):
        return None
    return OpenAIAssistant(model=settings.openai_model, temperature=settings.assistant_temperature)


async def _onboarding_session(offline: bool, session_logger=None) -> None:
    """Run the whole conversation on one event loop so saves and the feed keep running."""
    from copilot.config import settings
    from copilot.db.request_context import clear_session_context, set_session_context
    from onboarding.dialogue import OnboardingDialogue

    session = set_session_context(user_id=settings.dev_user_id)
    dialogue = OnboardingDialogue(
        _build_store(offline),
        session=session,
        assistant=_build_assistant(offline),
        assistant_timeout=settings.assistant_timeout_seconds,
    )

    opening = await dialogue.start()
    console.print(f"\n[bold green]Copilot:[/bold green] {opening.text}")

    try:
        while True:
            user_input = (await asyncio.to_thread(console.input, "\n[bold blue]You:[/bold blue] ")).strip()

            if user_input.lower() in ("exit", "quit", "q"):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if not user_input:
                continue

            if user_input.lower() == "profile":
                _show_profile(dialogue)
                continue

            if user_input.lower() == "reset":
                await dialogue.reset(delete_record=True)
                if session_logger:
                    session_logger.record_event("reset", None)
                opening = await dialogue.start()
                console.print(f"\n[bold green]Copilot:[/bold green] {opening.text}")
                continue

            if dialogue.is_complete:
                console.print("\n[dim]Your house profile is set up. Type 'profile' to review it.[/dim]")
                continue

            if session_logger:
                session_logger.turn_start(user_input)

            with Live(Spinner("dots", text="Thinking..."), console=console, transient=True):
                result = await dialogue.handle_reply(user_input)

            if result is None:
                continue

            if session_logger:
                session_logger.turn_end(
                    result.assistant_message.text,
                    question=str(result.question),
                    decision=result.decision.value,
                    next_question=str(result.next_question),
                )
                if result.record_created:
                    session_logger.record_event("created", dialogue.record_id)
                elif result.save_issued:
                    session_logger.record_event("saved", dialogue.record_id, dialogue.progress.to_dict())

            console.print(f"\n[bold green]Copilot:[/bold green] {result.assistant_message.text}")

            if dialogue.notice:
                console.print(f"[yellow]{dialogue.notice}[/yellow]")

    finally:
        await dialogue.close()
        clear_session_context()


def _show_profile(dialogue) -> None:
    """Show the profile built so far."""
    from onboarding.record_builder import derive_risk_factors
    from onboarding.sequencer import remaining_questions

    progress = dialogue.progress
    console.print("\n[bold yellow]House Profile[/bold yellow]")
    console.print(f"[dim]Record: {dialogue.record_id or '(not saved yet)'}[/dim]")
    console.print(f"[dim]Next question: {dialogue.question}[/dim]")
    console.print(f"[dim]Questions left: {remaining_questions(progress)}[/dim]")

    if progress.location:
        console.print(f"\n[bold]Location:[/bold] {progress.location.display()}")
    if progress.age is not None:
        console.print(f"[bold]Age:[/bold] {progress.age} years")
    if progress.systems:
        console.print("[bold]Systems:[/bold]")
        for system_type in progress.systems:
            console.print(f"  • {system_type.value}")
    usage = progress.usage_pattern
    if usage and usage.occupancy_frequency:
        seasonal = " (seasonal)" if usage.seasonal else ""
        console.print(f"[bold]Usage:[/bold] {usage.occupancy_frequency.value}{seasonal}")

    risks = derive_risk_factors(progress)
    if risks:
        console.print("[bold]Risk Factors:[/bold]")
        for risk in risks:
            console.print(f"  • {risk.type.value} ({risk.severity.value}): {risk.description}")

    console.print("")


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from copilot.config import get_settings

    console.print("\n[bold]Upstate Home Copilot Health Check[/bold]\n")

    try:
        settings = get_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.copilot_env}")
        console.print(f"   Log level: {settings.log_level}")

        # Check OpenAI
        if not settings.has_openai:
            console.print("[dim]INFO[/dim] OpenAI not configured; questions use templated text")
        elif settings.openai_api_key.startswith("sk-"):
            console.print("[green]OK[/green] OpenAI API key configured")
        else:
            console.print("[yellow]WARN[/yellow] OpenAI API key may be invalid")

        # Check Supabase
        if not settings.has_supabase:
            console.print("[dim]INFO[/dim] Supabase not configured; onboarding runs offline")
        elif settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[red]FAIL[/red] Supabase URL invalid")
            raise typer.Exit(1)

        console.print("\n[green]All checks passed![/green]")

    except typer.Exit:
        raise
    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def db() -> None:
    """Check database connection and schema."""
    from copilot.db.client import MESSAGES_TABLE, PROFILES_TABLE, get_client

    console.print("\n[bold]Database Connection Check[/bold]\n")

    try:
        client = get_client()
        console.print("[green]OK[/green] Connected to Supabase")

        console.print("\n[bold]Table Status:[/bold]")
        for table in (PROFILES_TABLE, MESSAGES_TABLE):
            try:
                result = client.table(table).select("*", count="exact").limit(0).execute()
                count = result.count if hasattr(result, "count") else "?"
                console.print(f"  [green]OK[/green] {table}: {count} rows")
            except Exception as e:
                console.print(f"  [red]FAIL[/red] {table}: {e}")

        console.print("\n[green]Database check complete![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Database connection failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from copilot import __version__

    console.print(f"Upstate Home Copilot version {__version__}")


if __name__ == "__main__":
    app()
