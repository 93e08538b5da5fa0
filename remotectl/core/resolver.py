"""Gesture to action resolution."""

from __future__ import annotations

from remotectl.core.model import Action, ElementConfig, InteractionKind

_FALLBACKS: dict[InteractionKind, tuple[InteractionKind, ...]] = {
    InteractionKind.MOMENTARY_START: (InteractionKind.MOMENTARY_START,),
    InteractionKind.MOMENTARY_END: (InteractionKind.MOMENTARY_END,),
    InteractionKind.MULTI_HOLD: (
        InteractionKind.MULTI_HOLD,
        InteractionKind.HOLD,
        InteractionKind.MULTI_TAP,
        InteractionKind.TAP,
    ),
    InteractionKind.MULTI_DOUBLE_TAP: (
        InteractionKind.MULTI_DOUBLE_TAP,
        InteractionKind.DOUBLE_TAP,
        InteractionKind.MULTI_TAP,
        InteractionKind.TAP,
    ),
    InteractionKind.MULTI_TAP: (InteractionKind.MULTI_TAP, InteractionKind.TAP),
    InteractionKind.HOLD: (InteractionKind.HOLD, InteractionKind.TAP),
    InteractionKind.DOUBLE_TAP: (InteractionKind.DOUBLE_TAP, InteractionKind.TAP),
    InteractionKind.TAP: (InteractionKind.TAP,),
}


def fallback_chain(kind: InteractionKind | str) -> tuple[InteractionKind, ...]:
    return _FALLBACKS[InteractionKind.parse(kind)]


def resolve_action(kind: InteractionKind | str, config: ElementConfig) -> Action | None:
    """Return the first configured action along the fallback chain for `kind`."""
    for candidate in fallback_chain(kind):
        action = config.action_for(candidate)
        if action is not None:
            return action
    return None
