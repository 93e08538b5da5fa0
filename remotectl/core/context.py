"""Template context assembly and rendering with legacy token interpolation."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from remotectl.backends.base import ExpressionEvaluator

LEGACY_TOKENS = ("VALUE", "HOLD_SECS")


class TemplateSource(Protocol):
    """Live element state a template context is built from."""

    value: Any
    entity_id: str | None
    precision: int | None

    @property
    def hold_secs(self) -> float: ...

    def config_snapshot(self) -> dict[str, Any]: ...


def hold_seconds(press_start_ms: float | None, press_end_ms: float | None) -> float:
    if press_start_ms and press_end_ms:
        return (press_end_ms - press_start_ms) / 1000
    return 0


def to_text(value: Any) -> str:
    """Stringify a context value for bare-token substitution."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_context(
    *,
    value: Any,
    hold_secs: float,
    config: Mapping[str, Any],
    entity_id: str | None,
    precision: int | None = None,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    context: dict[str, Any] = {
        "VALUE": value,
        "HOLD_SECS": hold_secs,
        "value": value,
        "hold_secs": hold_secs,
        "config": {**config, "entity": entity_id},
    }
    if extra:
        context.update(extra)

    current = context.get("value")
    if precision is not None and isinstance(current, (int, float)) and not isinstance(current, bool):
        formatted = f"{current:.{precision}f}"
        context["VALUE"] = formatted
        context["value"] = formatted
    return context


def substitute_legacy_tokens(raw: str, context: Mapping[str, Any]) -> Any:
    text = raw
    for token in LEGACY_TOKENS:
        if text == token:
            return context.get(token)
        if token in text:
            text = text.replace(token, to_text(context.get(token)))
    return text


class TemplateRenderer:
    """Expands configuration strings against an element's live state.

    The evaluator gets first go. Its result is returned whenever it differs
    from the input; otherwise the bare `VALUE` / `HOLD_SECS` tokens are
    substituted from the context.
    """

    def __init__(self, evaluator: ExpressionEvaluator, source: TemplateSource) -> None:
        self.evaluator = evaluator
        self.source = source

    def build_context(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        context = build_context(
            value=self.source.value,
            hold_secs=self.source.hold_secs,
            config=self.source.config_snapshot(),
            entity_id=self.source.entity_id,
            precision=self.source.precision,
            extra=extra,
        )
        # Nested renders take the same path as top-level ones, legacy tokens included.
        context.setdefault("render", lambda nested: self.render(nested, extra))
        return context

    def render(self, raw: Any, extra: Mapping[str, Any] | None = None) -> Any:
        context = self.build_context(extra)
        result = self.evaluator.evaluate(raw, context)
        if result != raw:
            return result
        if isinstance(raw, str):
            return substitute_legacy_tokens(raw, context)
        return raw
