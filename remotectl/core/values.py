"""Derived value engine: reads entity state and extrapolates position/timer values."""

from __future__ import annotations

import asyncio
import logging
import math
import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from remotectl.backends.base import StateStore
from remotectl.core.model import EntityState

LOGGER = logging.getLogger(__name__)

REFRESH_INTERVAL_S = 0.5
_INDEX_RE = re.compile(r"\[(\d+)\]$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        parsed = raw
    else:
        text = str(raw).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def hms_to_seconds(raw: Any) -> int:
    """Convert an `H:M:S` duration string to whole seconds."""
    hours, minutes, seconds = str(raw).split(":")
    return int(float(hours)) * 3600 + int(float(minutes)) * 60 + int(float(seconds))


class RefreshTimer:
    """Owns at most one pending event-loop callback.

    `start` always cancels the previous callback first, so a purpose backed by
    one `RefreshTimer` can never have two timers alive.
    """

    def __init__(self, name: str = "refresh") -> None:
        self.name = name
        self._handle: asyncio.TimerHandle | None = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, delay_s: float, callback: Callable[[], Any], *, repeat: bool = False) -> bool:
        """Schedule `callback`. With `repeat`, re-arm for as long as it returns True."""
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; %s timer not installed", self.name)
            return False

        def _fire() -> None:
            self._handle = None
            keep_going = callback()
            if repeat and keep_going:
                self._handle = loop.call_later(delay_s, _fire)

        self._handle = loop.call_later(delay_s, _fire)
        return True

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class ValueEngine:
    """Computes an element's live value from the state store.

    The result is pushed through `publish` rather than returned only, because
    media position and timer values keep changing on a 500 ms tick after the
    initial derivation.
    """

    def __init__(
        self,
        states: StateStore,
        publish: Callable[[Any], None],
        *,
        clock: Callable[[], datetime] = utcnow,
        interval_s: float = REFRESH_INTERVAL_S,
    ) -> None:
        self.states = states
        self.publish = publish
        self.clock = clock
        self.interval_s = interval_s
        self.timer = RefreshTimer("value")
        self.value: Any = None

    def stop(self) -> None:
        self.timer.cancel()

    def derive(self, entity_id: str | None, attribute: str | None) -> Any:
        self.timer.cancel()

        if not entity_id:
            return self._set(None)
        entity = self.states.get(entity_id)
        if entity is None:
            return self._set(None)

        attribute = str(attribute or "state").lower()
        if attribute == "state":
            return self._set(entity.state)

        name, raw = _read_attribute(entity, attribute)
        if raw is None and name != "elapsed":
            return self._set(None)

        if name == "brightness":
            return self._set(_scale_brightness(raw))
        if name == "media_position":
            return self._media_position(entity_id, raw)
        if name == "elapsed" and entity_id.startswith("timer."):
            return self._timer_elapsed(entity_id)
        return self._set(raw)

    def _set(self, value: Any) -> Any:
        self.value = value
        self.publish(value)
        return value

    def _run(self, compute: Callable[[], bool], fallback: Callable[[], Any], what: str) -> None:
        """Compute once, then keep ticking while `compute` reports the entity active."""

        def _tick() -> bool:
            try:
                return compute()
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.warning("Could not derive %s: %s", what, exc)
                self._set(fallback())
                return False

        if _tick():
            self.timer.start(self.interval_s, _tick, repeat=True)

    def _media_position(self, entity_id: str, base: Any) -> Any:
        def compute() -> bool:
            entity = self.states.get(entity_id)
            if entity is None:
                self._set(base)
                return False
            current = entity.attributes.get("media_position", base)
            if entity.state != "playing":
                self._set(current)
                return False

            updated_at = parse_timestamp(entity.attributes["media_position_updated_at"])
            elapsed = (self.clock() - updated_at).total_seconds()
            position = math.floor(math.floor(float(current)) + elapsed)
            duration = entity.attributes.get("media_duration")
            if duration is not None:
                position = min(position, math.floor(float(duration)))
            self._set(position)
            return True

        self._run(compute, lambda: base, "media position")
        return self.value

    def _timer_elapsed(self, entity_id: str) -> Any:
        def compute() -> bool:
            entity = self.states.get(entity_id)
            if entity is None or entity.state == "idle":
                self._set(0)
                return False

            duration = hms_to_seconds(entity.attributes["duration"])
            if entity.state == "active":
                finishes_at = parse_timestamp(entity.attributes["finishes_at"])
                remaining = (finishes_at - self.clock()).total_seconds()
                self._set(min(math.floor(duration - remaining), duration))
                return True

            remaining = hms_to_seconds(entity.attributes["remaining"])
            self._set(math.floor(duration - remaining))
            return False

        self._run(compute, lambda: 0, "timer elapsed")
        return self.value


def _read_attribute(entity: EntityState, attribute: str) -> tuple[str, Any]:
    match = _INDEX_RE.search(attribute)
    if not match:
        return attribute, entity.attributes.get(attribute)

    name = attribute[: match.start()]
    value = entity.attributes.get(name)
    index = int(match.group(1))
    if isinstance(value, (list, tuple)) and index < len(value):
        return name, value[index]
    return name, None


def _scale_brightness(raw: Any) -> Any:
    try:
        level = int(float(raw))
    except (TypeError, ValueError):
        LOGGER.warning("Brightness attribute %r is not numeric", raw)
        return raw
    return math.floor(100 * level / 255 + 0.5)
