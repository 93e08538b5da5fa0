"""In-process state store and service invoker backends."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import yaml

from remotectl.core.errors import StateStoreError
from remotectl.core.model import EntityState, ServiceCall

LOGGER = logging.getLogger(__name__)


class SnapshotStateStore:
    """State store backed by a mutable snapshot of entity states.

    Snapshots are either a mapping of entity id to state object or a list of
    state objects carrying their own `entity_id`, which is the shape returned
    by the Home Assistant REST `/api/states` endpoint.
    """

    def __init__(self, states: Mapping[str, EntityState] | None = None) -> None:
        self._states: dict[str, EntityState] = dict(states or {})

    @classmethod
    def from_snapshot(cls, raw: Any) -> SnapshotStateStore:
        states: dict[str, EntityState] = {}
        if raw is None:
            return cls()
        if isinstance(raw, Mapping):
            items = raw.items()
        elif isinstance(raw, list):
            try:
                items = [(item["entity_id"], item) for item in raw]
            except (KeyError, TypeError) as exc:
                raise StateStoreError("State list entries must be mappings with an 'entity_id'") from exc
        else:
            raise StateStoreError("State snapshot must be a mapping or a list of states")

        for entity_id, state in items:
            if not isinstance(state, Mapping):
                raise StateStoreError(f"State for '{entity_id}' must be a mapping")
            states[str(entity_id)] = EntityState.from_dict(str(entity_id), state)
        return cls(states)

    @classmethod
    def from_file(cls, path: Path) -> SnapshotStateStore:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StateStoreError(f"Could not read state snapshot {path}: {exc}") from exc
        try:
            raw = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise StateStoreError(f"Invalid YAML/JSON in {path}: {exc}") from exc
        return cls.from_snapshot(raw)

    def get(self, entity_id: str) -> EntityState | None:
        return self._states.get(entity_id)

    def set(
        self,
        entity_id: str,
        state: str,
        attributes: Mapping[str, Any] | None = None,
        *,
        last_updated: str | None = None,
    ) -> EntityState:
        entity = EntityState(
            entity_id=entity_id,
            state=state,
            attributes=dict(attributes or {}),
            last_changed=last_updated,
            last_updated=last_updated,
        )
        self._states[entity_id] = entity
        return entity


class RecordingServiceInvoker:
    """Service invoker that records calls and optionally forwards them."""

    def __init__(self, forward: Callable[[ServiceCall], None] | None = None) -> None:
        self.calls: list[ServiceCall] = []
        self._forward = forward

    def call_service(
        self,
        domain: str,
        service: str,
        data: Mapping[str, Any] | None = None,
        target: Mapping[str, Any] | None = None,
    ) -> None:
        call = ServiceCall(
            domain=domain,
            service=service,
            data=copy.deepcopy(dict(data)) if data is not None else None,
            target=copy.deepcopy(dict(target)) if target is not None else None,
        )
        LOGGER.info("service call %s.%s data=%s target=%s", domain, service, call.data, call.target)
        self.calls.append(call)
        if self._forward is not None:
            self._forward(call)
