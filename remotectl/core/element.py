"""A single remote element: live value, press tracking, and gesture dispatch."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from remotectl.backends.base import ExpressionEvaluator, Host, ServiceInvoker, StateStore
from remotectl.core.confirmation import ConfirmationGate, to_bool
from remotectl.core.context import TemplateRenderer, hold_seconds, to_text
from remotectl.core.dispatcher import ActionDispatcher
from remotectl.core.model import ElementConfig, InteractionKind
from remotectl.core.resolver import resolve_action
from remotectl.core.values import RefreshTimer, ValueEngine, utcnow

LOGGER = logging.getLogger(__name__)

RIPPLE_OFF_DELAY_S = 2.0
RIPPLE_ON_DELAY_S = 2.5


def now_ms() -> float:
    return time.time() * 1000


class RemoteElement:
    """Owns the per-element state that the engine components share.

    Timers (value refresh, keyboard poll, ripple) are fields of the element
    and are all cancelled by `teardown`.
    """

    def __init__(
        self,
        config: ElementConfig | Mapping[str, Any],
        *,
        states: StateStore,
        services: ServiceInvoker,
        host: Host,
        evaluator: ExpressionEvaluator,
        remote_id: str | None = None,
        media_player_id: str | None = None,
        autofill_entity_id: bool | str = False,
        clock: Callable[[], datetime] = utcnow,
        name: str | None = None,
    ) -> None:
        if not isinstance(config, ElementConfig):
            config = ElementConfig.from_dict(config)
        self.name = name
        self.config = config
        self.states = states
        self.services = services
        self.host = host
        self.remote_id = remote_id
        self.media_player_id = media_player_id
        self.autofill_entity_id = autofill_entity_id

        self.value: Any = 0
        self.entity_id: str | None = None

        self.press_start: float | None = None
        self.press_end: float | None = None
        self.swiping = False
        self.initial_x: float | None = None
        self.initial_y: float | None = None

        self.render_ripple = True
        self._ripple_off = RefreshTimer("ripple-off")
        self._ripple_on = RefreshTimer("ripple-on")
        self.keyboard_timer = RefreshTimer("keyboard")

        self.renderer = TemplateRenderer(evaluator, self)
        self.values = ValueEngine(states, self._publish_value, clock=clock)
        self.gate = ConfirmationGate(self.render_template, host, self.fire_haptic)
        self.dispatcher = ActionDispatcher(self)

    @property
    def precision(self) -> int | None:
        return self.config.precision

    @property
    def hold_secs(self) -> float:
        return hold_seconds(self.press_start, self.press_end)

    def config_snapshot(self) -> dict[str, Any]:
        return self.config.to_dict()

    def render_template(self, raw: Any, extra: Mapping[str, Any] | None = None) -> Any:
        return self.renderer.render(raw, extra)

    def fire_haptic(self, haptic: str) -> None:
        enabled = self.render_template(self.config.haptics)
        if enabled is None or to_bool(enabled):
            self.host.fire_event("haptic", haptic)

    def _publish_value(self, value: Any) -> None:
        self.value = value

    def set_value(self) -> Any:
        """Re-bind the entity id and re-derive the value from fresh state."""
        self.values.stop()
        tap_action = self.config.tap_action
        entity_id = self.render_template(tap_action.entity_id if tap_action else None)
        self.entity_id = to_text(entity_id) or None

        if self.entity_id:
            attribute = self.render_template(self.config.value_attribute)
            self.values.derive(self.entity_id, to_text(attribute) or None)
        return self.value

    def start_press(self, timestamp_ms: float | None = None) -> None:
        self.press_start = now_ms() if timestamp_ms is None else timestamp_ms
        self.press_end = None

    def end_press(self, timestamp_ms: float | None = None) -> None:
        self.press_end = now_ms() if timestamp_ms is None else timestamp_ms

    def end_action(self) -> None:
        self.press_start = None
        self.press_end = None

        self.swiping = False
        self.initial_x = None
        self.initial_y = None

    async def send_action(
        self,
        kind: InteractionKind | str = InteractionKind.TAP,
        config: ElementConfig | None = None,
    ) -> None:
        """Resolve, confirm, and dispatch the action configured for a gesture.

        Any exception raised while the action runs clears press tracking
        before propagating.
        """
        kind = InteractionKind.parse(kind)
        action = resolve_action(kind, config or self.config)
        if action is None:
            LOGGER.debug("No action configured for %s on %s", kind.value, self.name)
            return
        if not await self.gate.approve(action):
            return

        try:
            await self.dispatcher.dispatch(action, kind)
        except Exception:
            self.end_action()
            raise

    def toggle_ripple(self) -> None:
        def _hide() -> None:
            self.render_ripple = False

        def _show() -> None:
            self.render_ripple = True

        self._ripple_off.start(RIPPLE_OFF_DELAY_S, _hide)
        self._ripple_on.start(RIPPLE_ON_DELAY_S, _show)

    def teardown(self) -> None:
        self.values.stop()
        self.keyboard_timer.cancel()
        self._ripple_off.cancel()
        self._ripple_on.cancel()
        self.end_action()
