from __future__ import annotations

import json
from pathlib import Path

import pytest

from speechtranslator.app import config as app_config


def test_load_default_config_contains_expected_keys() -> None:
    cfg = app_config.load_default_config()
    assert cfg["translator"] in {"stub", "argos"}
    assert "debounce_ms" in cfg
    assert "input_locale" in cfg
    assert "target_language" in cfg
    assert set(cfg) == set(app_config.CONFIG_KEYS)


def test_resolve_defaults_uses_explicit_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "explicit.json"
    cfg_path.write_text(json.dumps({"sr": 16000, "model": "tiny"}), encoding="utf-8")
    defaults, used = app_config.resolve_defaults(str(cfg_path))
    assert used == cfg_path
    assert defaults["sr"] == 16000
    assert defaults["model"] == "tiny"


def test_load_user_config_missing_explicit_path_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as info:
        app_config.load_user_config(str(tmp_path / "nope.json"))
    assert "Config file not found" in str(info.value)


def test_ensure_user_config_exists_creates_file(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(app_config, "user_config_dir", lambda appname, appauthor=None: str(tmp_path))
    created = app_config.ensure_user_config_exists({"translator": "stub", "sr": 16000})
    assert created.exists()
    loaded = json.loads(created.read_text(encoding="utf-8"))
    assert loaded["translator"] == "stub"
    assert loaded["sr"] == 16000


def test_load_user_config_ignores_unknown_keys(tmp_path: Path) -> None:
    cfg_path = tmp_path / "user.json"
    cfg_path.write_text(
        json.dumps({"sr": 48000, "translator": "argos", "unexpected": 1}),
        encoding="utf-8",
    )
    loaded, used = app_config.load_user_config(str(cfg_path))
    assert used == cfg_path
    assert loaded["sr"] == 48000
    assert loaded["translator"] == "argos"
    assert "unexpected" not in loaded


def test_load_user_config_accepts_bom(tmp_path: Path) -> None:
    cfg_path = tmp_path / "bom.json"
    cfg_path.write_bytes(b"\xef\xbb\xbf" + json.dumps({"target_language": "es"}).encode("utf-8"))
    loaded, _ = app_config.load_user_config(str(cfg_path))
    assert loaded["target_language"] == "es"


def test_resolve_args_cli_overrides_config(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(
        json.dumps({"translator": "stub", "sr": 16000, "debounce_ms": 800}),
        encoding="utf-8",
    )
    args = app_config.resolve_args(
        [
            "--config",
            str(cfg_path),
            "--translator",
            "argos",
            "--debounce-ms",
            "250",
        ]
    )
    assert args.translator == "argos"
    assert args.sr == 16000
    assert args.debounce_ms == 250


def test_resolve_args_languages_and_flags(tmp_path: Path) -> None:
    cfg_path = tmp_path / "app.json"
    cfg_path.write_text(
        json.dumps({"input_locale": "fr-FR", "clear_transcript_on_start": True}),
        encoding="utf-8",
    )
    args = app_config.resolve_args(
        [
            "--config",
            str(cfg_path),
            "--target-language",
            "de",
            "--no-clear-transcript-on-start",
            "--check-support",
        ]
    )
    assert args.input_locale == "fr-FR"
    assert args.target_language == "de"
    assert args.clear_transcript_on_start is False
    assert args.check_support is True
    assert args.list_locales is False
