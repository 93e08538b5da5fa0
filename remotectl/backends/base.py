"""Collaborator interfaces consumed by the remote element engine."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from remotectl.core.model import EntityState


class ExpressionEvaluator(Protocol):
    def evaluate(self, raw: Any, context: Mapping[str, Any]) -> Any:
        """Expand expressions in `raw`; return `raw` unchanged when it holds none."""


class StateStore(Protocol):
    def get(self, entity_id: str) -> EntityState | None:
        """Return the current state of an entity, or None if it is unknown."""


class ServiceInvoker(Protocol):
    def call_service(
        self,
        domain: str,
        service: str,
        data: Mapping[str, Any] | None = None,
        target: Mapping[str, Any] | None = None,
    ) -> None:
        """Fire-and-forget dispatch of `domain.service`."""


class AssistBridge(Protocol):
    has_assist: bool

    def fire_message(self, message: Mapping[str, Any]) -> None:
        """Forward a message to the companion app hosting the dashboard."""


class Host(Protocol):
    """Browser-level side effects and interactive prompts."""

    user_id: str | None
    location: str
    assist_bridge: AssistBridge | None

    async def confirm(self, text: str) -> bool | None:
        """Ask the user to confirm. None means the prompt was dismissed."""

    async def prompt(self, text: str) -> str | None:
        """Ask the user for text. None means the prompt was dismissed."""

    def push_state(self, path: str) -> None: ...

    def replace_state(self, path: str) -> None: ...

    def open_url(self, url: str, target: str = "_blank") -> None: ...

    def fire_event(self, name: str, detail: Any) -> None: ...

    def read_text_input(self) -> str | None: ...
