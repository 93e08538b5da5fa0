"""Card configuration and key catalog loading for remotectl."""

from __future__ import annotations

import copy
import json
import logging
import os
import re
from dataclasses import dataclass, field
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from remotectl.core.errors import ConfigLoadError, ConfigValidationError

LOGGER = logging.getLogger(__name__)

DEFAULT_THEME = "default"
_CUSTOM_ACTION_KEYS = ("custom_keys", "custom_sources")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys.

    Only `true`/`false` resolve to booleans, so key names and states such as
    `on`, `off`, `yes` and `no` stay strings.
    """


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]

UniqueKeyLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class Card:
    remote_id: str | None = None
    media_player_id: str | None = None
    keyboard_id: str | None = None
    keyboard_mode: str | None = None
    autofill_entity_id: bool | str = False
    haptics: bool | str | None = None
    title: str | None = None
    theme: str = DEFAULT_THEME
    rows: list[Any] = field(default_factory=list)
    custom_keys: dict[str, dict[str, Any]] = field(default_factory=dict)
    custom_sources: dict[str, dict[str, Any]] = field(default_factory=dict)
    custom_icons: dict[str, str] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class LoadedKeys:
    keys: dict[str, dict[str, Any]]
    sources: dict[str, dict[str, Any]]
    warnings: tuple[str, ...]


def _load_schema_validator(name: str) -> Any:
    schema_text = resources.files("remotectl.schemas").joinpath(name).read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _validate(doc: dict[str, Any], schema_name: str, source: Path | Traversable | str) -> None:
    validator = _load_schema_validator(schema_name)
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def config_dir() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "remotectl"


def default_card_path() -> Path:
    return config_dir() / "card.yaml"


def _key_dirs() -> tuple[Path, Path]:
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return config_dir() / "keys", xdg_data / "remotectl/keys"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc
    return parse_yaml(content, source=path)


def parse_yaml(content: str, *, source: Path | Traversable | str = "<string>") -> dict[str, Any]:
    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {source}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {source} must contain a mapping at root")
    return loaded


def update_deprecated_keys(config: dict[str, Any]) -> dict[str, Any]:
    if "adb_id" in config and "keyboard_id" not in config:
        config["keyboard_id"] = config["adb_id"]
    return config


def convert_to_rows(config: dict[str, Any]) -> dict[str, Any]:
    """Build `rows` from legacy `*_row` keys when no rows are configured."""
    if config.get("rows"):
        return config

    rows: list[list[str]] = []
    for name in [key for key in config if "_row" in key]:
        row = config[name]
        if isinstance(row, str):
            row = [row]
        if name == "volume_row":
            row = [f"volume_{row[0]}"]
        elif name == "navigation_row":
            row = [f"navigation_{row[0]}"]
        rows.append(list(row))
    config["rows"] = rows
    return config


def combine_service_fields(config: dict[str, Any]) -> dict[str, Any]:
    """Fold legacy `service_data` and `target` of service custom actions into `data`."""
    for key in _CUSTOM_ACTION_KEYS:
        for custom_action in (config.get(key) or {}).values():
            if "service" in custom_action:
                custom_action["data"] = {
                    **(custom_action.get("data") or {}),
                    **(custom_action.get("service_data") or {}),
                    **(custom_action.get("target") or {}),
                }
    return config


def build_card(doc: dict[str, Any], source: Path | Traversable | str = "<string>") -> Card:
    _validate(doc, "card.schema.json", source)

    config = copy.deepcopy(doc)
    config = {"theme": DEFAULT_THEME, **config}
    config = update_deprecated_keys(config)
    config = convert_to_rows(config)
    config = combine_service_fields(config)

    return Card(
        remote_id=config.get("remote_id"),
        media_player_id=config.get("media_player_id"),
        keyboard_id=config.get("keyboard_id"),
        keyboard_mode=config.get("keyboard_mode"),
        autofill_entity_id=config.get("autofill_entity_id", False),
        haptics=config.get("haptics"),
        title=config.get("title"),
        theme=config["theme"],
        rows=list(config.get("rows") or []),
        custom_keys=dict(config.get("custom_keys") or {}),
        custom_sources=dict(config.get("custom_sources") or {}),
        custom_icons=dict(config.get("custom_icons") or {}),
        raw=config,
    )


def load_card(path: Path | None = None) -> Card:
    path = path or default_card_path()
    if not path.exists():
        raise ConfigLoadError(f"Card config {path} does not exist")
    return build_card(_read_yaml(path), path)


def _iter_packaged_key_paths() -> list[Traversable]:
    key_root = resources.files("remotectl.keys")
    return [item for item in key_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_key_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _key_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_keys() -> LoadedKeys:
    keys: dict[str, dict[str, Any]] = {}
    sources: dict[str, dict[str, Any]] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_key_paths(), key=lambda p: p.name):
        doc = _read_yaml(path)
        _validate(doc, "keys.schema.json", path)
        keys.update(doc.get("keys") or {})
        sources.update(doc.get("sources") or {})

    for path in _iter_user_key_paths():
        doc = _read_yaml(path)
        _validate(doc, "keys.schema.json", path)
        for section, catalog in (("keys", keys), ("sources", sources)):
            for name, entry in (doc.get(section) or {}).items():
                if name in catalog:
                    warning = f"User {section[:-1]} '{name}' overrides packaged {section[:-1]}"
                    LOGGER.warning(warning)
                    warnings.append(warning)
                catalog[name] = entry

    return LoadedKeys(keys=keys, sources=sources, warnings=tuple(warnings))
