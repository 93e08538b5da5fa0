from __future__ import annotations

from typing import Any

import pytest

from remotectl.backends.jinja import JinjaEvaluator, coerce_result, has_expression
from remotectl.backends.memory import SnapshotStateStore
from remotectl.core.context import (
    TemplateRenderer,
    build_context,
    hold_seconds,
    substitute_legacy_tokens,
    to_text,
)
from remotectl.core.errors import TemplateRenderError


class FakeSource:
    def __init__(
        self,
        value: Any = 0,
        *,
        hold_secs: float = 0,
        entity_id: str | None = "media_player.tv",
        precision: int | None = None,
    ) -> None:
        self.value = value
        self.hold_secs = hold_secs
        self.entity_id = entity_id
        self.precision = precision

    def config_snapshot(self) -> dict[str, Any]:
        return {"value_attribute": "volume_level"}


def _renderer(source: FakeSource, store: SnapshotStateStore | None = None) -> TemplateRenderer:
    return TemplateRenderer(JinjaEvaluator(store or SnapshotStateStore(), user_id="u-1"), source)


def test_context_carries_both_aliases_and_entity() -> None:
    context = build_context(
        value=5,
        hold_secs=1.5,
        config={"value_attribute": "brightness"},
        entity_id="light.lamp",
    )

    assert context["VALUE"] == context["value"] == 5
    assert context["HOLD_SECS"] == context["hold_secs"] == 1.5
    assert context["config"] == {"value_attribute": "brightness", "entity": "light.lamp"}


def test_context_extra_overrides_and_precision_formats_value() -> None:
    context = build_context(
        value=3.14159,
        hold_secs=0,
        config={},
        entity_id=None,
        precision=2,
        extra={"value": 2.5},
    )

    assert context["value"] == "2.50"
    assert context["VALUE"] == "2.50"
    assert context["config"]["entity"] is None


def test_hold_seconds_requires_both_timestamps() -> None:
    assert hold_seconds(1000, 2500) == 1.5
    assert hold_seconds(1000, None) == 0
    assert hold_seconds(None, None) == 0


def test_to_text_matches_dashboard_stringification() -> None:
    assert to_text(None) == ""
    assert to_text(True) == "true"
    assert to_text(2.0) == "2"
    assert to_text(0.25) == "0.25"


def test_legacy_tokens_replace_whole_value_or_substring() -> None:
    context = {"VALUE": 7, "HOLD_SECS": 1.5}

    assert substitute_legacy_tokens("VALUE", context) == 7
    assert substitute_legacy_tokens("HOLD_SECS", context) == 1.5
    assert substitute_legacy_tokens("Volume VALUE%", context) == "Volume 7%"
    assert substitute_legacy_tokens("hold for HOLD_SECS s", context) == "hold for 1.5 s"


@pytest.mark.parametrize("raw", ["plain text", 42, None, True, {"a": 1}])
def test_expression_free_values_pass_through(raw: Any) -> None:
    assert _renderer(FakeSource()).render(raw) == raw


def test_render_uses_live_value_and_hold_secs() -> None:
    renderer = _renderer(FakeSource(7, hold_secs=1.5))

    assert renderer.render("{{ value }}") == 7
    assert renderer.render("VALUE") == 7
    assert renderer.render("Volume VALUE%") == "Volume 7%"
    assert renderer.render("HOLD_SECS") == 1.5
    assert renderer.render("{{ config.entity }}") == "media_player.tv"
    assert renderer.render("{{ config.value_attribute }}") == "volume_level"


def test_evaluator_result_takes_precedence_over_legacy_tokens() -> None:
    renderer = _renderer(FakeSource(7))

    assert renderer.render("{{ 'VALUE' }}") == "VALUE"


def test_extra_context_reaches_templates() -> None:
    renderer = _renderer(FakeSource(7))

    assert renderer.render("{{ value * 2 }}", {"value": 4}) == 8


def test_nested_render_and_user_variables() -> None:
    renderer = _renderer(FakeSource(3))

    assert renderer.render("{{ render('{{ value }}') }}") == 3
    assert renderer.render("{{ user.id }}") == "u-1"


def test_nested_render_substitutes_legacy_tokens() -> None:
    renderer = _renderer(FakeSource(0.5, hold_secs=2))

    assert renderer.render("VALUE") == 0.5
    assert renderer.render("{{ render('VALUE') }}") == 0.5
    assert renderer.render("{{ render('held HOLD_SECS s') }}") == "held 2 s"


def test_evaluator_compiles_each_template_once() -> None:
    evaluator = JinjaEvaluator(SnapshotStateStore())

    for value in range(3):
        assert evaluator.evaluate("{{ value + 1 }}", {"value": value}) == value + 1

    info = evaluator._compile.cache_info()
    assert info.misses == 1
    assert info.hits == 2
    assert info.maxsize == 256


def test_state_helpers_read_the_store() -> None:
    store = SnapshotStateStore()
    store.set("light.lamp", "on", {"brightness": 128, "color_mode": "hs"})
    store.set("sensor.gone", "unavailable")
    renderer = _renderer(FakeSource(), store)

    assert renderer.render("{{ states('light.lamp') }}") == "on"
    assert renderer.render("{{ states('light.missing') }}") == "unknown"
    assert renderer.render("{{ is_state('light.lamp', 'on') }}") is True
    assert renderer.render("{{ is_state('light.lamp', ['off', 'idle']) }}") is False
    assert renderer.render("{{ state_attr('light.lamp', 'brightness') }}") == 128
    assert renderer.render("{{ is_state_attr('light.lamp', 'color_mode', 'hs') }}") is True
    assert renderer.render("{{ has_value('sensor.gone') }}") is False
    assert renderer.render("{{ state_attr('light.lamp', 'missing') }}") == ""


def test_undefined_names_render_empty() -> None:
    assert _renderer(FakeSource()).render("{{ nothing.here }}") == ""


def test_template_errors_are_wrapped() -> None:
    with pytest.raises(TemplateRenderError, match="Could not render template"):
        _renderer(FakeSource()).render("{{ value | no_such_filter }}")


def test_coerce_result_scalars() -> None:
    assert has_expression("{% if x %}y{% endif %}")
    assert not has_expression("VALUE")
    assert coerce_result(" 12 ") == 12
    assert coerce_result("-0.5") == -0.5
    assert coerce_result("False") is False
    assert coerce_result("None") == ""
    assert coerce_result("DPAD_UP") == "DPAD_UP"
