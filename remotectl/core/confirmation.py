"""Per-action confirmation policy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from remotectl.backends.base import Host
from remotectl.core.context import to_text
from remotectl.core.model import Action, Confirmation

LOGGER = logging.getLogger(__name__)

_FALSE_STRINGS = frozenset({"", "false", "0", "no", "off", "none"})


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


class ConfirmationGate:
    def __init__(
        self,
        render: Callable[[Any], Any],
        host: Host,
        haptic: Callable[[str], None],
    ) -> None:
        self.render = render
        self.host = host
        self.haptic = haptic

    def message(self, action: Action, policy: Any) -> str:
        if isinstance(policy, Confirmation) and policy.text:
            return to_text(self.render(policy.text))
        return f"Are you sure you want to run action '{to_text(self.render(action.action))}'?"

    async def approve(self, action: Action) -> bool:
        """Return True when `action` may run, prompting the host if the policy asks for it."""
        policy = action.confirmation
        if policy is None:
            return True
        if isinstance(policy, str):
            policy = to_bool(self.render(policy))
        if policy is False:
            return True

        self.haptic("warning")
        text = self.message(action, policy)

        if isinstance(policy, Confirmation) and policy.exemptions is not None:
            exempt_users = {to_text(self.render(exemption.user)) for exemption in policy.exemptions}
            if self.host.user_id is not None and self.host.user_id in exempt_users:
                LOGGER.debug("User %s exempt from confirming '%s'", self.host.user_id, action.action)
                return True

        confirmed = await self.host.confirm(text)
        if not confirmed:
            LOGGER.info("Action '%s' not confirmed", action.action)
            return False
        return True
