"""Interfaz de línea de comandos de Urna.

English: Urna command line interface.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional

import typer

from urna.adapter import InputSurface, RawBallotInput
from urna.config import UrnaSettings, load_settings
from urna.errors import ElectionAlreadyClosedError, SubmissionError, UrnaError
from urna.logging import setup_logging
from urna.results import build_figure
from urna.session import Session, open_session
from urna.submitter import (
    ACTION_CAST_VOTE,
    ACTION_PROPOSE_CLOSE,
    ACTION_VALIDATE_VOTER,
    FAILURE_PREFIXES,
    acknowledge_registration,
    describe_receipt,
)
from urna.sync import ClientView

app = typer.Typer(help="Urna election client CLI")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config file."),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Override LOG_LEVEL from settings."),
) -> None:
    """Cliente de la elección en cadena.

    English: On-chain election client.
    """
    setup_logging(log_level or "WARNING")
    ctx.obj = {"config": config, "log_level": log_level}


def format_view(view: ClientView) -> List[str]:
    """Líneas legibles para un snapshot / Human-readable lines for a snapshot."""
    lines = [
        f"Account:          {view.identity}",
        f"Voting system:    {view.election.voting_system.label}",
        f"Election status:  {view.election.status_label}",
        f"Total registered: {view.election.total_registered}",
        f"Total cast:       {view.election.total_cast}",
        f"Voter status:     {view.voter.status_label}",
        f"Has voted:        {view.voter.vote_label}",
    ]
    if view.surface is InputSurface.RANKED_CHOICE:
        lines.append("Vote form:        ranked choice (rank all 5 candidates)")
    elif view.surface is InputSurface.SINGLE_CHOICE:
        lines.append("Vote form:        single choice")
    if view.actions.panel_visible:
        if view.actions.close_election is not None:
            state = "enabled" if view.actions.close_election.enabled else "disabled"
            lines.append(f"Admin action:     {view.actions.close_election.label} ({state})")
        if view.actions.validate_voter is not None:
            lines.append(f"Registrar action: {view.actions.validate_voter.label}")
    if view.results is not None:
        lines.append(f"Results system:   {view.results.system_label}")
        lines.append(f"{view.results.style.heading}: {view.results.outcome.label}")
        lines.extend(f"  {entry.label}" for entry in view.results.legend)
    return lines


def _load_settings(ctx: typer.Context) -> UrnaSettings:
    """Carga la configuración y aplica su logging; ``--log-level`` tiene prioridad.

    English: Loads settings and applies their logging; ``--log-level`` wins.
    """
    options = ctx.obj or {}
    try:
        settings = load_settings(options.get("config"))
    except ValueError as exc:
        typer.echo(f"Contract initialization error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    setup_logging(options.get("log_level") or settings.LOG_LEVEL, settings.LOG_DIR)
    return settings


def _run(ctx: typer.Context, action: Callable[[Session], Awaitable[Any]], *, polling: bool = False) -> Any:
    settings = _load_settings(ctx)

    async def runner() -> Any:
        session = await open_session(settings)
        async with session:
            await session.connect(start_polling=polling)
            return await action(session)

    try:
        return asyncio.run(runner())
    except UrnaError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


def _submission(prefix_key: str, call: Callable[[Session], Awaitable[Any]]) -> Callable[[Session], Awaitable[Any]]:
    async def wrapped(session: Session) -> Any:
        try:
            receipt = await call(session)
        except ElectionAlreadyClosedError:
            raise
        except SubmissionError as exc:
            raise SubmissionError(f"{FAILURE_PREFIXES[prefix_key]}{exc}") from exc
        typer.echo(describe_receipt(receipt))
        return receipt

    return wrapped


@app.command()
def status(ctx: typer.Context) -> None:
    """Muestra el estado actual / Shows the current state."""

    async def action(session: Session) -> None:
        view = session.sync.latest
        if view is None:
            error = session.sync.last_error
            raise error if error is not None else UrnaError("No snapshot available.")
        typer.echo("\n".join(format_view(view)))

    _run(ctx, action)


@app.command()
def watch(
    ctx: typer.Context,
    ticks: int = typer.Option(0, "--ticks", help="Stop after N snapshots (0 = forever)."),
) -> None:
    """Sondea el contrato y muestra cada snapshot / Polls and prints every snapshot."""

    async def action(session: Session) -> None:
        done = asyncio.Event()
        seen = 0

        def on_view(view: ClientView) -> None:
            nonlocal seen
            seen += 1
            typer.echo("\n".join(format_view(view)) + "\n")
            if ticks and seen >= ticks:
                done.set()

        session.sync.subscribe(on_view)
        session.sync.subscribe_errors(lambda error: typer.echo(str(error), err=True))
        await done.wait()

    try:
        _run(ctx, action, polling=True)
    except KeyboardInterrupt:
        typer.echo("Stopped.")


def _parse_ranking(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@app.command()
def vote(
    ctx: typer.Context,
    card_id: str = typer.Option(..., "--card-id", help="Voter card ID."),
    candidate: Optional[int] = typer.Option(None, "--candidate", help="Candidate for single-choice systems."),
    ranking: Optional[str] = typer.Option(None, "--ranking", help="Comma separated ranking for instant-runoff."),
) -> None:
    """Emite un voto / Casts a vote."""
    raw = RawBallotInput(
        selected=() if candidate is None else (candidate,),
        ranking=_parse_ranking(ranking) if ranking else (),
    )
    _run(ctx, _submission(ACTION_CAST_VOTE, lambda session: session.submit_ballot(raw, card_id)))


@app.command("close")
def close_election(ctx: typer.Context) -> None:
    """Propone el cierre de la elección / Proposes closing the election."""
    _run(ctx, _submission(ACTION_PROPOSE_CLOSE, lambda session: session.propose_close()))


@app.command()
def validate(ctx: typer.Context, voter_address: str, card_id: str) -> None:
    """Valida un votante (registrador) / Validates a voter (registrar)."""
    _run(ctx, _submission(ACTION_VALIDATE_VOTER, lambda session: session.validate_voter(voter_address, card_id)))


@app.command()
def register(card_id: str) -> None:
    """Envía el ID para verificación / Sends the card ID for verification."""
    try:
        typer.echo(acknowledge_registration(card_id))
    except UrnaError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def results(
    ctx: typer.Context,
    html: Optional[Path] = typer.Option(None, "--html", help="Write the results chart to an HTML file."),
) -> None:
    """Muestra el resultado final / Shows the final result."""

    async def action(session: Session) -> None:
        view = session.sync.latest
        if view is None:
            error = session.sync.last_error
            raise error if error is not None else UrnaError("No snapshot available.")
        if view.results is None:
            raise UrnaError("Election is still open.")
        typer.echo("\n".join(format_view(view)))
        if html is not None:
            build_figure(view.results).write_html(str(html))
            typer.echo(f"Chart written to {html}")

    _run(ctx, action)


if __name__ == "__main__":
    app()
