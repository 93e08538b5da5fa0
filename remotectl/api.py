"""Stable public API for building tooling on top of remotectl.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from remotectl.backends.base import ExpressionEvaluator, Host, ServiceInvoker, StateStore
from remotectl.backends.console import ConsoleHost
from remotectl.backends.jinja import JinjaEvaluator
from remotectl.backends.memory import RecordingServiceInvoker, SnapshotStateStore
from remotectl.core.config_loader import Card
from remotectl.core.element import RemoteElement
from remotectl.core.errors import (
    ConfigLoadError,
    ConfigValidationError,
    ElementNotFoundError,
    RemoteCtlError,
    ServiceCallError,
    StateStoreError,
    TemplateRenderError,
)
from remotectl.core.model import (
    Action,
    ActionKind,
    Confirmation,
    ElementConfig,
    EntityState,
    Exemption,
    InteractionKind,
    ServiceCall,
    Signal,
)
from remotectl.core.resolver import resolve_action
from remotectl.core.service import RemoteService
from remotectl.core.values import utcnow

__all__ = [
    "RemoteCtlError",
    "ConfigLoadError",
    "ConfigValidationError",
    "ElementNotFoundError",
    "ServiceCallError",
    "StateStoreError",
    "TemplateRenderError",
    "Action",
    "ActionKind",
    "Card",
    "Confirmation",
    "ElementConfig",
    "EntityState",
    "Exemption",
    "InteractionKind",
    "ServiceCall",
    "Signal",
    "ConsoleHost",
    "JinjaEvaluator",
    "RecordingServiceInvoker",
    "SnapshotStateStore",
    "RemoteElement",
    "resolve_action",
    "PressResult",
    "Client",
]


@dataclass(frozen=True)
class PressResult:
    """Effects observed while dispatching one gesture."""

    element: str
    kind: InteractionKind
    calls: tuple[ServiceCall, ...]
    value: Any


class Client:
    """Public client for driving remote elements.

    A `Client` wraps card loading, element construction, and gesture dispatch
    behind a synchronous API intended for scripts and tests. Async callers can
    use `press_async` or the underlying `RemoteElement` directly.
    """

    def __init__(
        self,
        card: Card | dict[str, Any] | None = None,
        *,
        card_path: Path | None = None,
        states: StateStore | None = None,
        services: ServiceInvoker | None = None,
        host: Host | None = None,
        evaluator: ExpressionEvaluator | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.services = services if services is not None else RecordingServiceInvoker()
        kwargs: dict[str, Any] = dict(
            states=states,
            services=self.services,
            host=host,
            evaluator=evaluator,
            clock=clock,
        )
        if isinstance(card, dict):
            self._service = RemoteService.from_mapping(card, **kwargs)
        else:
            self._service = RemoteService(card, card_path=card_path, **kwargs)

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def card(self) -> Card:
        return self._service.card

    def list_elements(self) -> list[str]:
        return self._service.list_elements()

    def get_catalog(self) -> dict[str, dict[str, dict[str, Any]]]:
        return self._service.catalog()

    def get_element(self, name: str) -> RemoteElement:
        return self._service.element(name)

    def get_value(self, name: str) -> Any:
        return self._service.value(name)

    def render(self, template: str, *, element: str | None = None) -> Any:
        return self._service.render(template, element)

    async def press_async(
        self,
        name: str,
        kind: InteractionKind | str = InteractionKind.TAP,
        *,
        hold_ms: float | None = None,
    ) -> PressResult:
        calls = getattr(self.services, "calls", None)
        before = len(calls) if calls is not None else 0
        element = await self._service.press(name, kind, hold_ms=hold_ms)
        new_calls = tuple(calls[before:]) if calls is not None else ()
        return PressResult(
            element=name,
            kind=InteractionKind.parse(kind),
            calls=new_calls,
            value=element.value,
        )

    def press(
        self,
        name: str,
        kind: InteractionKind | str = InteractionKind.TAP,
        *,
        hold_ms: float | None = None,
    ) -> PressResult:
        return asyncio.run(self.press_async(name, kind, hold_ms=hold_ms))

    def close(self) -> None:
        self._service.teardown()
