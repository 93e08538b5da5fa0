from __future__ import annotations

from pathlib import Path

import pytest

from remotectl.core.config_loader import build_card, load_card, load_keys, parse_yaml
from remotectl.core.errors import ConfigLoadError, ConfigValidationError


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    return tmp_path


def test_load_packaged_keys(xdg: Path) -> None:
    loaded = load_keys()

    assert loaded.keys["up"]["key"] == "DPAD_UP"
    assert loaded.keys["volume_mute"]["key"] == "VOLUME_MUTE"
    assert loaded.sources["netflix"]["source"] == "netflix://"
    assert loaded.warnings == ()


def test_user_key_overrides_packaged(xdg: Path) -> None:
    _write(
        xdg / "cfg" / "remotectl" / "keys" / "override.yaml",
        """
keys:
  up:
    key: KEYCODE_DPAD_UP
  guide:
    key: GUIDE
""",
    )
    _write(
        xdg / "data" / "remotectl" / "keys" / "extra.yml",
        """
sources:
  crunchyroll:
    source: crunchyroll://
""",
    )

    loaded = load_keys()

    assert loaded.keys["up"]["key"] == "KEYCODE_DPAD_UP"
    assert loaded.keys["guide"]["key"] == "GUIDE"
    assert loaded.sources["crunchyroll"]["source"] == "crunchyroll://"
    assert loaded.warnings == ("User key 'up' overrides packaged key",)


def test_user_keys_with_unknown_section_rejected(xdg: Path) -> None:
    _write(xdg / "cfg" / "remotectl" / "keys" / "bad.yaml", "buttons:\n  up:\n    key: UP\n")

    with pytest.raises(ConfigValidationError, match="Schema validation failed"):
        load_keys()


def test_duplicate_keys_rejected() -> None:
    with pytest.raises(ConfigValidationError, match="Duplicate key 'remote_id'"):
        parse_yaml("remote_id: remote.a\nremote_id: remote.b\n")


def test_non_mapping_root_rejected() -> None:
    with pytest.raises(ConfigValidationError, match="must contain a mapping"):
        parse_yaml("- remote.tv\n")


def test_only_true_false_are_booleans() -> None:
    doc = parse_yaml("a: on\nb: off\nc: yes\nd: true\ne: False\n")

    assert doc == {"a": "on", "b": "off", "c": "yes", "d": True, "e": False}


def test_build_card_defaults() -> None:
    card = build_card({"remote_id": "remote.tv", "rows": [["up", "down"]]})

    assert card.remote_id == "remote.tv"
    assert card.theme == "default"
    assert card.autofill_entity_id is False
    assert card.rows == [["up", "down"]]


def test_schema_errors_name_the_field() -> None:
    with pytest.raises(ConfigValidationError, match=r"\(rows\)"):
        build_card({"remote_id": "remote.tv", "rows": 3})


def test_custom_action_requires_action_kind() -> None:
    with pytest.raises(ConfigValidationError):
        build_card({"custom_keys": {"x": {"tap_action": {"service": "light.toggle"}}}})


def test_adb_id_migrates_to_keyboard_id() -> None:
    card = build_card({"remote_id": "remote.tv", "adb_id": "media_player.adb"})

    assert card.keyboard_id == "media_player.adb"


def test_adb_id_does_not_override_keyboard_id() -> None:
    card = build_card({"adb_id": "media_player.adb", "keyboard_id": "remote.kbd"})

    assert card.keyboard_id == "remote.kbd"


def test_legacy_rows_are_converted() -> None:
    card = build_card(
        {
            "remote_id": "remote.tv",
            "power_row": ["power", "home"],
            "volume_row": "buttons",
            "navigation_row": "touchpad",
            "source_row": ["netflix"],
        }
    )

    assert card.rows == [["power", "home"], ["volume_buttons"], ["navigation_touchpad"], ["netflix"]]


def test_explicit_rows_win_over_legacy_rows() -> None:
    card = build_card({"rows": [["up"]], "volume_row": "buttons"})

    assert card.rows == [["up"]]


def test_service_fields_are_combined_into_data() -> None:
    card = build_card(
        {
            "custom_keys": {
                "lamp": {
                    "service": "light.toggle",
                    "data": {"transition": 2},
                    "service_data": {"brightness_pct": 50},
                    "target": {"entity_id": "light.lamp"},
                },
                "up": {"key": "DPAD_UP"},
            }
        }
    )

    assert card.custom_keys["lamp"]["data"] == {
        "transition": 2,
        "brightness_pct": 50,
        "entity_id": "light.lamp",
    }
    assert "data" not in card.custom_keys["up"]


def test_build_card_does_not_mutate_input() -> None:
    doc = {"adb_id": "media_player.adb", "volume_row": "buttons"}

    build_card(doc)

    assert doc == {"adb_id": "media_player.adb", "volume_row": "buttons"}


def test_load_card_from_default_path(xdg: Path) -> None:
    _write(xdg / "cfg" / "remotectl" / "card.yaml", "remote_id: remote.tv\ntitle: Living room\n")

    card = load_card()

    assert card.remote_id == "remote.tv"
    assert card.title == "Living room"


def test_load_card_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="does not exist"):
        load_card(tmp_path / "nope.yaml")
