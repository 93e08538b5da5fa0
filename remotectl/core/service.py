"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from remotectl.backends.base import ExpressionEvaluator, Host, ServiceInvoker, StateStore
from remotectl.backends.console import ConsoleHost
from remotectl.backends.jinja import JinjaEvaluator
from remotectl.backends.memory import RecordingServiceInvoker, SnapshotStateStore
from remotectl.core.config_loader import Card, build_card, load_card, load_keys
from remotectl.core.element import RemoteElement
from remotectl.core.errors import ElementNotFoundError
from remotectl.core.model import ElementConfig, InteractionKind
from remotectl.core.values import utcnow

LOGGER = logging.getLogger(__name__)

INPUT_ELEMENTS = frozenset({"keyboard", "textbox", "search"})
COMPOSITE_ELEMENTS: dict[str, tuple[str, ...]] = {
    "volume_buttons": ("volume_up", "volume_down", "volume_mute"),
    "navigation_buttons": ("up", "left", "center", "right", "down"),
    "navigation_touchpad": ("touchpad", "up", "down", "left", "right"),
}
_ACTION_KEYS = frozenset(kind.value for kind in InteractionKind)


class RemoteService:
    def __init__(
        self,
        card: Card | None = None,
        *,
        card_path: Path | None = None,
        states: StateStore | None = None,
        services: ServiceInvoker | None = None,
        host: Host | None = None,
        evaluator: ExpressionEvaluator | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        loaded = load_keys()
        self.default_keys = loaded.keys
        self.default_sources = loaded.sources
        self.load_warnings = loaded.warnings
        self.card = card if card is not None else load_card(card_path)
        self.states = states if states is not None else SnapshotStateStore()
        self.services = services if services is not None else RecordingServiceInvoker()
        self.host = host if host is not None else ConsoleHost()
        self.evaluator = evaluator or JinjaEvaluator(self.states, user_id=self.host.user_id)
        self.clock = clock
        self._elements: dict[str, RemoteElement] = {}

    @classmethod
    def from_mapping(cls, raw: dict[str, Any], **kwargs: Any) -> RemoteService:
        return cls(build_card(raw), **kwargs)

    def get_info(self, name: str) -> dict[str, Any]:
        """Look a name up in custom keys, custom sources, default keys, then default sources."""
        for catalog in (
            self.card.custom_keys,
            self.card.custom_sources,
            self.default_keys,
            self.default_sources,
        ):
            if name in catalog:
                return dict(catalog[name])
        return {}

    def element_config(self, name: str) -> ElementConfig:
        if name == "touchpad":
            return self._touchpad_config()

        info = self.get_info(name)
        if any(key in info for key in _ACTION_KEYS):
            return ElementConfig.from_dict(info)

        extra = {"icon": info["icon"]} if "icon" in info else {}
        if name in INPUT_ELEMENTS:
            tap_action: dict[str, Any] = {"action": name}
            if self.card.keyboard_id:
                tap_action["target"] = {"entity_id": self.card.keyboard_id}
            if self.card.keyboard_mode:
                tap_action["platform"] = self.card.keyboard_mode
            return ElementConfig.from_dict({"tap_action": tap_action, **extra})
        if "service" in info:
            tap_action = {"action": "call-service", "service": info["service"]}
            if info.get("data"):
                tap_action["data"] = info["data"]
            return ElementConfig.from_dict({"tap_action": tap_action, **extra})
        if "key" in info:
            return ElementConfig.from_dict({"tap_action": {"action": "key", "key": info["key"]}, **extra})
        if "source" in info:
            return ElementConfig.from_dict(
                {"tap_action": {"action": "source", "source": info["source"]}, **extra}
            )
        raise ElementNotFoundError(
            f"No key, source, or custom action named '{name}'. Use 'remotectl keys' to list them."
        )

    def _touchpad_config(self) -> ElementConfig:
        raw = self.card.raw
        config: dict[str, Any] = {}
        center = self.element_config("center").tap_action
        long_press = self.element_config(raw.get("long_click_keycode") or "center").tap_action
        if center is not None:
            config["tap_action"] = center.to_dict()
        if long_press is not None:
            config["hold_action"] = long_press.to_dict()
        if raw.get("enable_double_click"):
            double = self.element_config(raw.get("double_click_keycode") or "back").tap_action
            if double is not None:
                config["double_tap_action"] = double.to_dict()
        return ElementConfig.from_dict(config)

    def element(self, name: str) -> RemoteElement:
        element = self._elements.get(name)
        if element is None:
            element = RemoteElement(
                self.element_config(name),
                states=self.states,
                services=self.services,
                host=self.host,
                evaluator=self.evaluator,
                remote_id=self.card.remote_id,
                media_player_id=self.card.media_player_id,
                autofill_entity_id=self.card.autofill_entity_id,
                clock=self.clock,
                name=name,
            )
            self._elements[name] = element
        element.set_value()
        return element

    def list_elements(self) -> list[str]:
        names: list[str] = []

        def _walk(row: Any) -> None:
            if isinstance(row, list):
                for item in row:
                    _walk(item)
                return
            for name in COMPOSITE_ELEMENTS.get(row, (row,)):
                if name not in names:
                    names.append(name)

        _walk(self.card.rows)
        return names

    def catalog(self) -> dict[str, dict[str, dict[str, Any]]]:
        return {
            "custom_keys": self.card.custom_keys,
            "custom_sources": self.card.custom_sources,
            "keys": self.default_keys,
            "sources": self.default_sources,
        }

    async def press(
        self,
        name: str,
        kind: InteractionKind | str = InteractionKind.TAP,
        *,
        hold_ms: float | None = None,
    ) -> RemoteElement:
        """Run one gesture against a named element, clearing press state afterwards."""
        element = self.element(name)
        if hold_ms is not None:
            element.start_press()
            element.end_press(element.press_start + hold_ms)
        try:
            await element.send_action(kind)
        finally:
            element.end_action()
        return element

    def value(self, name: str) -> Any:
        return self.element(name).value

    def render(self, template: str, name: str | None = None) -> Any:
        if name is not None:
            return self.element(name).render_template(template)
        return self.evaluator.evaluate(template, {})

    def teardown(self) -> None:
        for element in self._elements.values():
            element.teardown()
        self._elements.clear()
