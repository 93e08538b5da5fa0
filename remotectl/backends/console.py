"""Terminal host: prompts through Typer, records navigation and signals."""

from __future__ import annotations

import logging
from typing import Any

import typer

from remotectl.backends.base import AssistBridge
from remotectl.core.model import Signal

LOGGER = logging.getLogger(__name__)


class ConsoleHost:
    def __init__(
        self,
        *,
        user_id: str | None = None,
        location: str = "http://homeassistant.local:8123/lovelace/0",
        assume_yes: bool = False,
        text: str | None = None,
        launch_urls: bool = False,
        echo: bool = True,
        assist_bridge: AssistBridge | None = None,
    ) -> None:
        self.user_id = user_id
        self.location = location
        self.assist_bridge = assist_bridge
        self.assume_yes = assume_yes
        self.text = text
        self.launch_urls = launch_urls
        self.echo = echo
        self.history: list[str] = []
        self.opened: list[tuple[str, str]] = []
        self.signals: list[Signal] = []

    def _say(self, message: str) -> None:
        if self.echo:
            typer.echo(message)

    async def confirm(self, text: str) -> bool | None:
        if self.assume_yes:
            return True
        try:
            return typer.confirm(text, default=False)
        except typer.Abort:
            return None

    async def prompt(self, text: str) -> str | None:
        if self.text is not None:
            return self.text
        try:
            return typer.prompt(text.rstrip(": ").rstrip(), default="", show_default=False)
        except typer.Abort:
            return None

    def push_state(self, path: str) -> None:
        self.history.append(path)
        self._say(f"navigate {path}")

    def replace_state(self, path: str) -> None:
        if self.history:
            self.history[-1] = path
        else:
            self.history.append(path)
        self._say(f"navigate {path} (replace)")

    def open_url(self, url: str, target: str = "_blank") -> None:
        self.opened.append((url, target))
        self._say(f"open {url} ({target})")
        if self.launch_urls:
            typer.launch(url)

    def fire_event(self, name: str, detail: Any) -> None:
        self.signals.append(Signal(name=name, detail=detail))
        LOGGER.debug("signal %s %r", name, detail)
        self._say(f"signal {name} {detail}")

    def read_text_input(self) -> str | None:
        return self.text
