"""Typer CLI entrypoint."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer

from remotectl.backends.console import ConsoleHost
from remotectl.backends.memory import RecordingServiceInvoker, SnapshotStateStore
from remotectl.core.config_loader import Card, default_card_path
from remotectl.core.errors import RemoteCtlError
from remotectl.core.model import InteractionKind
from remotectl.core.service import RemoteService

app = typer.Typer(help="Media remote control panel actions driven by YAML cards")

CardOption = typer.Option(None, "--card", help="Card YAML (default: $XDG_CONFIG_HOME/remotectl/card.yaml)")
StatesOption = typer.Option(None, "--states", help="Entity state snapshot (YAML or JSON)")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


def _print_call(call) -> None:
    target = f" target={call.target}" if call.target else ""
    typer.echo(f"call {call.domain}.{call.service} data={call.data}{target}")


def _build_service(
    card: Path | None,
    states: Path | None,
    *,
    host: ConsoleHost | None = None,
    card_optional: bool = False,
) -> RemoteService:
    store = SnapshotStateStore.from_file(states) if states else SnapshotStateStore()
    blank = Card() if card_optional and card is None and not default_card_path().exists() else None
    service = RemoteService(
        blank,
        card_path=card,
        states=store,
        services=RecordingServiceInvoker(forward=_print_call),
        host=host or ConsoleHost(),
    )
    for warning in service.load_warnings:
        typer.echo(f"Warning: {warning}", err=True)
    return service


@app.command("keys")
def list_keys(card: Path | None = CardOption) -> None:
    """List custom and default keys and sources."""
    try:
        service = _build_service(card, None, card_optional=True)
        for section, entries in service.catalog().items():
            if not entries:
                continue
            typer.echo(f"{section}:")
            for name, info in sorted(entries.items()):
                detail = info.get("key") or info.get("source") or info.get("service") or ""
                typer.echo(f"  {name}: {detail}".rstrip())
    except RemoteCtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("elements")
def list_elements(card: Path | None = CardOption) -> None:
    """List elements laid out in the card rows."""
    try:
        service = _build_service(card, None)
        names = service.list_elements()
        if not names:
            typer.echo("No elements in card rows")
            return
        for name in names:
            config = service.element_config(name)
            tap = config.tap_action
            typer.echo(f"{name}: {tap.action if tap else '<none>'}")
    except RemoteCtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("press")
def press(
    name: str,
    gesture: str = typer.Option("tap", "--gesture", "-g", help="tap, hold, double_tap, multi_tap, ..."),
    hold_ms: float | None = typer.Option(None, "--hold-ms", help="Simulated press duration"),
    card: Path | None = CardOption,
    states: Path | None = StatesOption,
    user: str | None = typer.Option(None, "--user", help="Current user id for confirmation exemptions"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve confirmations without asking"),
    text: str | None = typer.Option(None, "--text", help="Answer for text input prompts"),
    launch: bool = typer.Option(False, "--launch", help="Open url actions in the browser"),
) -> None:
    """Dispatch the action an element has configured for GESTURE.

    Service calls and emitted signals are printed as they happen.
    """
    try:
        host = ConsoleHost(user_id=user, assume_yes=yes, text=text, launch_urls=launch)
        service = _build_service(card, states, host=host)
        kind = InteractionKind.parse(gesture)
        asyncio.run(service.press(name, kind, hold_ms=hold_ms))
        service.teardown()
    except RemoteCtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("value")
def value(
    name: str,
    card: Path | None = CardOption,
    states: Path | None = StatesOption,
) -> None:
    """Print the live value derived for an element."""
    try:
        service = _build_service(card, states)
        typer.echo(f"{name}={service.value(name)}")
    except RemoteCtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("render")
def render(
    template: str,
    element: str | None = typer.Option(None, "--element", help="Render with this element's context"),
    card: Path | None = CardOption,
    states: Path | None = StatesOption,
) -> None:
    """Render a template string against the state snapshot."""
    try:
        service = _build_service(card, states, card_optional=True)
        typer.echo(service.render(template, element))
    except RemoteCtlError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
