from __future__ import annotations


def summarize_exception(detail: str, *, max_len: int = 220) -> str:
    text = str(detail or "").strip()
    if not text:
        return "Unknown runtime error."
    lines = [ln.strip() for ln in text.splitlines() if ln.strip()]
    for ln in reversed(lines):
        if ln.startswith(("File ", "^", "Traceback ")):
            continue
        out = ln
        break
    else:
        out = lines[-1]
    if len(out) > max_len:
        return out[: max_len - 3].rstrip() + "..."
    return out


def hint_for_exception(summary: str) -> str:
    s = str(summary or "").lower()
    if "not authorized to recognize" in s:
        return "Speech recognition is not authorized. Check the recognizer configuration."
    if "not permitted to record" in s or ("microphone" in s and "failed" in s):
        return "Microphone access failed. Check --device (see --list-devices) and OS mic permissions."
    if "recognizer is unavailable" in s or "whisper model" in s:
        return "Speech model could not be loaded. Check --model and that faster-whisper is installed."
    if "no argos package" in s or "not supported" in s:
        return "Install an Argos package for this language pair (argospm install translate-xx_yy)."
    if "no module named" in s:
        return "A required package is missing in this virtualenv. Reinstall dependencies and retry."
    if "config file not found" in s:
        return "Configured JSON file is missing. Update the config path or restore the file."
    return "Check logs for full traceback."
