from __future__ import annotations

import argparse
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

DEFAULTS: dict[str, Any] = {
    "device": None,
    "sr": 16000,
    "channels": 1,
    "chunk_sec": 0.5,
    "rms_th": 250.0,
    "silence_chunks": 2,
    "min_utter_sec": 0.6,
    "max_utter_sec": 6.0,
    "model": "tiny",
    "input_locale": "en-US",
    "target_language": "ja",
    "translator": "argos",
    "debounce_ms": 500,
    "clear_transcript_on_start": False,
    "print_console": True,
    "debug": False,
}
CONFIG_KEYS: tuple[str, ...] = tuple(DEFAULTS.keys())


@dataclass(frozen=True)
class AppPaths:
    config_dir: Path
    config_path: Path


def default_asset_config_path() -> Path:
    return Path(__file__).resolve().parents[2] / "assets" / "config" / "default.json"


def app_paths() -> AppPaths:
    config_dir = Path(user_config_dir("SpeechTranslator", "SpeechTranslator"))
    return AppPaths(config_dir=config_dir, config_path=config_dir / "config.json")


def _load_json_dict(path: Path) -> dict[str, Any]:
    # Accept UTF-8 with or without BOM for Windows-edited config files.
    with path.open("r", encoding="utf-8-sig") as f:
        loaded = json.load(f)
    if not isinstance(loaded, dict):
        raise ValueError(f"config must be a JSON object: {path}")
    return loaded


def _write_json_dict(path: Path, payload: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)
        f.write("\n")


def _known_only(payload: dict[str, Any]) -> dict[str, Any]:
    return {key: payload[key] for key in CONFIG_KEYS if key in payload}


def load_default_config() -> dict[str, Any]:
    out = copy.deepcopy(DEFAULTS)
    path = default_asset_config_path()
    if path.exists():
        out.update(_known_only(_load_json_dict(path)))
    return out


def ensure_user_config_exists(defaults: dict[str, Any] | None = None) -> Path:
    paths = app_paths()
    if paths.config_path.exists():
        return paths.config_path
    _write_json_dict(paths.config_path, defaults or load_default_config())
    return paths.config_path


def load_user_config(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    defaults = load_default_config()
    if config_path:
        chosen = Path(config_path)
        if not chosen.exists():
            raise SystemExit(f"Config file not found: {chosen}")
    else:
        chosen = ensure_user_config_exists(defaults)
    merged = dict(defaults)
    merged.update(_known_only(_load_json_dict(chosen)))
    return merged, chosen


def resolve_defaults(config_path: str | None = None) -> tuple[dict[str, Any], Path]:
    return load_user_config(config_path=config_path)


def parser_with_defaults(defaults: dict[str, Any]) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="speechtranslator")
    p.add_argument("--config", default=None, help="JSON config path (CLI flags override config)")
    p.add_argument("--list-devices", action="store_true", help="print audio devices and exit")
    p.add_argument("--list-locales", action="store_true", help="print recognition locales and exit")
    p.add_argument("--list-languages", action="store_true", help="print translation target languages and exit")
    p.add_argument(
        "--check-support",
        action="store_true",
        help="report which recognition locales can also be translated, then exit",
    )
    p.add_argument("--device", type=int, default=defaults["device"], help="sounddevice input device id")
    p.add_argument("--sr", type=int, default=defaults["sr"], help="sample rate (Hz)")
    p.add_argument("--channels", type=int, default=defaults["channels"], help="input channels")
    p.add_argument("--chunk-sec", type=float, default=defaults["chunk_sec"], help="mic chunk size in seconds")
    p.add_argument("--rms-th", type=float, default=defaults["rms_th"], help="RMS threshold for speech VAD")
    p.add_argument(
        "--silence-chunks",
        type=int,
        default=defaults["silence_chunks"],
        help="finalize an utterance after this many non-speech chunks",
    )
    p.add_argument(
        "--min-utter-sec",
        type=float,
        default=defaults["min_utter_sec"],
        help="ignore utterances shorter than this",
    )
    p.add_argument(
        "--max-utter-sec",
        type=float,
        default=defaults["max_utter_sec"],
        help="force finalize while continuously speaking (seconds)",
    )
    p.add_argument("--model", default=defaults["model"], help="faster-whisper model size")
    p.add_argument("--input-locale", default=defaults["input_locale"], help="recognition locale, e.g. en-US")
    p.add_argument("--target-language", default=defaults["target_language"], help="translation target, e.g. ja")
    p.add_argument("--translator", default=defaults["translator"], choices=["argos", "stub"], help="translator")
    p.add_argument(
        "--debounce-ms",
        type=int,
        default=defaults["debounce_ms"],
        help="quiet time after the last transcript update before translating",
    )
    p.add_argument(
        "--clear-transcript-on-start",
        action=argparse.BooleanOptionalAction,
        default=defaults["clear_transcript_on_start"],
        help="start every recording with an empty transcript",
    )
    p.add_argument(
        "--print-console",
        action=argparse.BooleanOptionalAction,
        default=defaults["print_console"],
        help="print source/target text changes to console",
    )
    p.add_argument("--debug", action="store_true", default=defaults["debug"], help="log at DEBUG level")
    return p


def resolve_args(argv: list[str] | None = None) -> argparse.Namespace:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", default=None)
    pre_args, _ = pre.parse_known_args(argv)
    defaults, _ = resolve_defaults(config_path=pre_args.config)
    parser = parser_with_defaults(defaults)
    return parser.parse_args(argv)
