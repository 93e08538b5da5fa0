"""Jinja2 expression evaluator with Home Assistant style helpers."""

from __future__ import annotations

import functools
import re
from collections.abc import Mapping
from typing import Any

from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment

from remotectl.backends.base import StateStore
from remotectl.core.errors import TemplateRenderError

_EXPRESSION_MARKERS = ("{{", "{%", "{#")
_EMPTY_RESULTS = frozenset({"None", "none", "null", "undefined"})
_INT_RE = re.compile(r"^-?\d+$")
_FLOAT_RE = re.compile(r"^-?\d*\.\d+$")
_MISSING_STATES = frozenset({"unknown", "unavailable"})


def has_expression(raw: Any) -> bool:
    return isinstance(raw, str) and any(marker in raw for marker in _EXPRESSION_MARKERS)


def coerce_result(rendered: str) -> Any:
    """Turn rendered text back into a scalar the way dashboard templates expect."""
    text = rendered.strip()
    if text in _EMPTY_RESULTS:
        return ""
    lowered = text.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if _INT_RE.match(text):
        return int(text)
    if _FLOAT_RE.match(text):
        return float(text)
    return text


class JinjaEvaluator:
    def __init__(
        self,
        states: StateStore | None = None,
        *,
        user_id: str | None = None,
        user_name: str | None = None,
    ) -> None:
        self.states = states
        self.user_id = user_id
        self.user_name = user_name
        self._env = SandboxedEnvironment(undefined=ChainableUndefined, autoescape=False)
        self._env.globals.update(
            states=self._states,
            is_state=self._is_state,
            state_attr=self._state_attr,
            is_state_attr=self._is_state_attr,
            has_value=self._has_value,
        )
        self._compile = functools.lru_cache(maxsize=256)(self._env.from_string)

    def evaluate(self, raw: Any, context: Mapping[str, Any]) -> Any:
        if not has_expression(raw):
            return raw

        variables: dict[str, Any] = {"user": {"id": self.user_id, "name": self.user_name}}
        variables.update(context)
        variables.setdefault("render", lambda nested: self.evaluate(nested, context))

        try:
            rendered = self._compile(raw).render(variables)
        except TemplateError as exc:
            raise TemplateRenderError(f"Could not render template {raw!r}: {exc}") from exc
        return coerce_result(rendered)

    def _lookup(self, entity_id: str):
        if self.states is None or not entity_id:
            return None
        return self.states.get(str(entity_id))

    def _states(self, entity_id: str) -> str:
        entity = self._lookup(entity_id)
        return entity.state if entity else "unknown"

    def _is_state(self, entity_id: str, value: Any) -> bool:
        current = self._states(entity_id)
        if isinstance(value, (list, tuple)):
            return current in value
        return current == value

    def _state_attr(self, entity_id: str, attribute: str) -> Any:
        entity = self._lookup(entity_id)
        return entity.attributes.get(attribute) if entity else None

    def _is_state_attr(self, entity_id: str, attribute: str, value: Any) -> bool:
        return self._state_attr(entity_id, attribute) == value

    def _has_value(self, entity_id: str) -> bool:
        entity = self._lookup(entity_id)
        return entity is not None and entity.state not in _MISSING_STATES
