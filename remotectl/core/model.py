"""Core data models used across loader, engine, service, and CLI."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Union

TARGET_KEYS = ("entity_id", "device_id", "area_id", "label_id")


class ActionKind(str, Enum):
    NAVIGATE = "navigate"
    URL = "url"
    ASSIST = "assist"
    MORE_INFO = "more-info"
    CALL_SERVICE = "call-service"
    SOURCE = "source"
    KEY = "key"
    FIRE_DOM_EVENT = "fire-dom-event"
    TEXTBOX = "textbox"
    SEARCH = "search"
    KEYBOARD = "keyboard"
    REPEAT = "repeat"


class InteractionKind(str, Enum):
    """Gesture-derived request types; values double as element config keys."""

    TAP = "tap_action"
    HOLD = "hold_action"
    DOUBLE_TAP = "double_tap_action"
    MOMENTARY_START = "momentary_start_action"
    MOMENTARY_END = "momentary_end_action"
    MULTI_TAP = "multi_tap_action"
    MULTI_HOLD = "multi_hold_action"
    MULTI_DOUBLE_TAP = "multi_double_tap_action"

    @classmethod
    def parse(cls, value: str | InteractionKind) -> InteractionKind:
        """Accept config keys (`hold_action`) and CLI spellings (`hold`, `double-tap`)."""
        if isinstance(value, cls):
            return value
        normalized = value.strip().lower().replace("-", "_")
        if not normalized.endswith("_action"):
            normalized = f"{normalized}_action"
        try:
            return cls(normalized)
        except ValueError:
            return cls.TAP


_ACTION_KEYS = frozenset(kind.value for kind in InteractionKind)


@dataclass(frozen=True)
class Exemption:
    user: str


@dataclass(frozen=True)
class Confirmation:
    text: str | None = None
    exemptions: tuple[Exemption, ...] | None = None

    @classmethod
    def parse(cls, raw: Any) -> ConfirmationPolicy:
        if raw is None or isinstance(raw, (bool, str)):
            return raw
        if isinstance(raw, Mapping):
            exemptions = raw.get("exemptions")
            return cls(
                text=raw.get("text"),
                exemptions=tuple(Exemption(user=str(e["user"])) for e in exemptions)
                if exemptions is not None
                else None,
            )
        return bool(raw)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.text is not None:
            out["text"] = self.text
        if self.exemptions is not None:
            out["exemptions"] = [{"user": e.user} for e in self.exemptions]
        return out


ConfirmationPolicy = Union[bool, str, Confirmation, None]


@dataclass(frozen=True)
class Action:
    action: str
    key: str | None = None
    source: str | None = None
    service: str | None = None
    data: dict[str, Any] | None = None
    target: dict[str, Any] | None = None
    confirmation: ConfirmationPolicy = None
    platform: str | None = None
    navigation_path: str | None = None
    navigation_replace: bool | str | None = None
    url_path: str | None = None
    pipeline_id: str | None = None
    start_listening: bool | None = None
    event_type: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> ActionKind | None:
        try:
            return ActionKind(self.action)
        except ValueError:
            return None

    @property
    def entity_id(self) -> Any:
        """Entity id from the target selector, falling back to the data payload."""
        for mapping in (self.target, self.data):
            if mapping and mapping.get("entity_id") is not None:
                return mapping["entity_id"]
        return None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Action:
        known = {f.name for f in fields(cls)} - {"extra"}
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in raw.items():
            if key in known:
                kwargs[key] = value
            else:
                extra[key] = value
        if "action" not in kwargs:
            kwargs["action"] = "none"
        kwargs["action"] = str(kwargs["action"])
        for key in ("data", "target"):
            if kwargs.get(key) is not None:
                kwargs[key] = dict(kwargs[key])
        kwargs["confirmation"] = Confirmation.parse(kwargs.get("confirmation"))
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "extra":
                continue
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, Confirmation):
                value = value.to_dict()
            out[f.name] = value
        out.update(self.extra)
        return out


@dataclass(frozen=True)
class ElementConfig:
    tap_action: Action | None = None
    hold_action: Action | None = None
    double_tap_action: Action | None = None
    momentary_start_action: Action | None = None
    momentary_end_action: Action | None = None
    multi_tap_action: Action | None = None
    multi_hold_action: Action | None = None
    multi_double_tap_action: Action | None = None
    value_attribute: str | None = None
    precision: int | None = None
    haptics: bool | str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def action_for(self, kind: InteractionKind) -> Action | None:
        return getattr(self, kind.value)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> ElementConfig:
        kwargs: dict[str, Any] = {}
        extra: dict[str, Any] = {}
        for key, value in raw.items():
            if key in _ACTION_KEYS:
                kwargs[key] = Action.from_dict(value) if value else None
            elif key in {"value_attribute", "haptics"}:
                kwargs[key] = value
            elif key == "precision":
                kwargs[key] = int(value) if value is not None else None
            else:
                extra[key] = value
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        for kind in InteractionKind:
            action = self.action_for(kind)
            if action is not None:
                out[kind.value] = action.to_dict()
        for key in ("value_attribute", "precision", "haptics"):
            value = getattr(self, key)
            if value is not None:
                out[key] = value
        return out


@dataclass(frozen=True)
class EntityState:
    entity_id: str
    state: str
    attributes: dict[str, Any] = field(default_factory=dict)
    last_changed: str | None = None
    last_updated: str | None = None

    @property
    def domain(self) -> str:
        return self.entity_id.split(".", 1)[0]

    @classmethod
    def from_dict(cls, entity_id: str, raw: Mapping[str, Any]) -> EntityState:
        return cls(
            entity_id=entity_id,
            state=str(raw.get("state", "")),
            attributes=dict(raw.get("attributes") or {}),
            last_changed=raw.get("last_changed"),
            last_updated=raw.get("last_updated"),
        )


@dataclass(frozen=True)
class ServiceCall:
    domain: str
    service: str
    data: dict[str, Any] | None
    target: dict[str, Any] | None


@dataclass(frozen=True)
class Signal:
    name: str
    detail: Any
