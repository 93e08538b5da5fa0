"""Interprets resolved actions and performs their effects."""

from __future__ import annotations

import copy
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol

from remotectl.backends.base import Host, ServiceInvoker
from remotectl.core.confirmation import to_bool
from remotectl.core.context import to_text
from remotectl.core.model import TARGET_KEYS, Action, ActionKind, ElementConfig, InteractionKind
from remotectl.core.values import RefreshTimer

LOGGER = logging.getLogger(__name__)

HOLD_SECS = 0.5
DEFAULT_EVENT_TYPE = "ll-custom"
KEYBOARD_POLL_INTERVAL_S = 1.0
KEYBOARD_POLL_READS = 11

MEDIA_PLAYER_DOMAINS = frozenset({"media_player", "kodi", "denonavr"})

KODI = "KODI"
ROKU = "ROKU"
FIRE_TV = "FIRE TV"
ANDROID_TV = "ANDROID TV"

GLOBAL_SEARCH_INTENT = 'am start -a "android.search.action.GLOBAL_SEARCH" --es query "{text}"'


class DispatchOwner(Protocol):
    """The element whose configuration and bindings an action runs against."""

    config: ElementConfig
    remote_id: str | None
    media_player_id: str | None
    autofill_entity_id: bool | str
    services: ServiceInvoker
    host: Host
    keyboard_timer: RefreshTimer

    def render_template(self, raw: Any, extra: Mapping[str, Any] | None = None) -> Any: ...


Handler = Callable[[Action, InteractionKind], Awaitable[None]]


class ActionDispatcher:
    def __init__(self, owner: DispatchOwner) -> None:
        self.owner = owner
        self._handlers: dict[ActionKind, Handler] = {
            ActionKind.NAVIGATE: self.navigate,
            ActionKind.URL: self.to_url,
            ActionKind.ASSIST: self.assist,
            ActionKind.MORE_INFO: self.more_info,
            ActionKind.CALL_SERVICE: self.call_service,
            ActionKind.SOURCE: self.change_source,
            ActionKind.KEY: self.send_command,
            ActionKind.FIRE_DOM_EVENT: self.fire_dom_event,
            ActionKind.TEXTBOX: self.textbox,
            ActionKind.SEARCH: self.search,
            ActionKind.KEYBOARD: self.keyboard,
            ActionKind.REPEAT: self.noop,
        }

    def handler_for(self, kind: ActionKind) -> Handler:
        return self._handlers[kind]

    async def dispatch(self, action: Action, kind: InteractionKind) -> None:
        action_kind = action.kind
        if action_kind is None:
            LOGGER.debug("Ignoring unrecognized action '%s'", action.action)
            return
        await self._handlers[action_kind](action, kind)

    def _render(self, raw: Any) -> Any:
        return self.owner.render_template(raw)

    def _call(
        self,
        domain: str,
        service: str,
        data: Mapping[str, Any] | None = None,
        target: Mapping[str, Any] | None = None,
    ) -> None:
        self.owner.services.call_service(domain, service, data, target)

    async def noop(self, action: Action, kind: InteractionKind) -> None:
        return None

    async def send_command(self, action: Action, kind: InteractionKind) -> None:
        data: dict[str, Any] = {
            "entity_id": self._render(self.owner.remote_id),
            "command": self._render(action.key or ""),
        }
        if kind is InteractionKind.HOLD and self.owner.config.hold_action is None:
            data["hold_secs"] = HOLD_SECS
        self._call("remote", "send_command", data)

    async def change_source(self, action: Action, kind: InteractionKind) -> None:
        self._call(
            "remote",
            "turn_on",
            {
                "entity_id": self._render(self.owner.remote_id),
                "activity": self._render(action.source or ""),
            },
        )

    def _render_mapping(self, mapping: Mapping[str, Any] | None) -> dict[str, Any] | None:
        if mapping is None:
            return None
        rendered = copy.deepcopy(dict(mapping))
        for key, value in rendered.items():
            if isinstance(value, list):
                rendered[key] = [self._render(item) for item in value]
            else:
                rendered[key] = self._render(value)
        return rendered

    def _default_entity(self, domain: str) -> Any:
        if domain == "remote":
            return self._render(self.owner.remote_id)
        if domain in MEDIA_PLAYER_DOMAINS:
            return self._render(self.owner.media_player_id)
        return None

    async def call_service(self, action: Action, kind: InteractionKind) -> None:
        domain, _, service = to_text(self._render(action.service or "")).partition(".")
        data = self._render_mapping(action.data)
        target = self._render_mapping(action.target)

        if to_bool(self._render(self.owner.autofill_entity_id)):
            entity_id = self._default_entity(domain)
            already_targeted = any(
                (data or {}).get(key) or (target or {}).get(key) for key in TARGET_KEYS
            )
            if entity_id and not already_targeted:
                target = {**(target or {}), "entity_id": entity_id}

        self._call(domain, service, data, target)

    async def navigate(self, action: Action, kind: InteractionKind) -> None:
        path = to_text(self._render(action.navigation_path))
        replace = self._render(action.navigation_replace)
        replace = to_bool(replace) if replace is not None else False

        if "//" in path:
            LOGGER.error(
                "Protocol detected in navigation path %r. To navigate to another website "
                "use the action 'url' with the key 'url_path' instead.",
                path,
            )
            return

        if replace:
            self.owner.host.replace_state(path)
        else:
            self.owner.host.push_state(path)
        self.owner.host.fire_event("location-changed", {"replace": replace})

    async def to_url(self, action: Action, kind: InteractionKind) -> None:
        url = to_text(self._render(action.url_path))
        if "//" not in url:
            url = f"https://{url}"
        self.owner.host.open_url(url)

    async def assist(self, action: Action, kind: InteractionKind) -> None:
        bridge = self.owner.host.assist_bridge
        if bridge is not None and bridge.has_assist:
            bridge.fire_message(
                {
                    "type": "assist/show",
                    "payload": {
                        "pipeline_id": action.pipeline_id,
                        "start_listening": action.start_listening,
                    },
                }
            )
            return
        self.owner.host.open_url(f"{self.owner.host.location}?conversation=1", target="_self")

    async def more_info(self, action: Action, kind: InteractionKind) -> None:
        entity_id = self._render(action.entity_id)
        self.owner.host.fire_event("hass-more-info", {"entityId": entity_id})

    async def fire_dom_event(self, action: Action, kind: InteractionKind) -> None:
        self.owner.host.fire_event(action.event_type or DEFAULT_EVENT_TYPE, action.to_dict())

    def _platform(self, action: Action) -> str:
        return to_text(self._render(action.platform or "")).upper()

    def roku_id(self, entity_id: str, domain: str) -> Any:
        """Swap in the bound remote or media player when `entity_id` is in another domain."""
        if entity_id.split(".", 1)[0] == domain:
            return entity_id
        if domain == "media_player":
            return self._render(self.owner.media_player_id)
        return self._render(self.owner.remote_id)

    async def textbox(self, action: Action, kind: InteractionKind) -> None:
        entity_id = action.entity_id
        platform = self._platform(action)
        if not entity_id:
            return

        text = await self.owner.host.prompt("Text Input: ")
        if not text:
            return

        if platform == KODI:
            self._call(
                "kodi",
                "call_method",
                {"entity_id": entity_id, "method": "Input.SendText", "text": text, "done": False},
            )
        elif platform == ROKU:
            self._call(
                "remote",
                "send_command",
                {"entity_id": self.roku_id(entity_id, "remote"), "command": f"Lit_{text}"},
            )
        else:
            self._call(
                "androidtv",
                "adb_command",
                {"entity_id": entity_id, "command": f'input text "{text}"'},
            )

    async def search(self, action: Action, kind: InteractionKind) -> None:
        entity_id = action.entity_id
        platform = self._platform(action)
        if not entity_id:
            return

        if platform == KODI:
            self._call(
                "kodi",
                "call_method",
                {
                    "entity_id": entity_id,
                    "method": "Addons.ExecuteAddon",
                    "addonid": "script.globalsearch",
                },
            )
        if platform in {KODI, ROKU, FIRE_TV}:
            prompt_text = "Global Search: "
        else:
            prompt_text = "Google Assistant Search: "

        text = await self.owner.host.prompt(prompt_text)
        if not text:
            return

        if platform == KODI:
            self._call(
                "kodi",
                "call_method",
                {"entity_id": entity_id, "method": "Input.SendText", "text": text, "done": True},
            )
        elif platform == ROKU:
            self._call(
                "roku",
                "search",
                {"entity_id": self.roku_id(entity_id, "media_player"), "keyword": text},
            )
        else:
            self._call(
                "androidtv",
                "adb_command",
                {"entity_id": entity_id, "command": GLOBAL_SEARCH_INTENT.format(text=text)},
            )

    async def keyboard(self, action: Action, kind: InteractionKind) -> None:
        self.owner.host.fire_event("dialog-open", action.to_dict())

        # TODO: forward polled text to the keyboard entity once the dialog contract is settled.
        reads = 0

        def _poll() -> bool:
            nonlocal reads
            LOGGER.debug("keyboard text input: %r", self.owner.host.read_text_input())
            reads += 1
            return reads < KEYBOARD_POLL_READS

        self.owner.keyboard_timer.start(KEYBOARD_POLL_INTERVAL_S, _poll, repeat=True)
