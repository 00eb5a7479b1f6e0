from __future__ import annotations

import logging
import signal
import sys
import threading
import traceback
from typing import Optional, TextIO

from speechtranslator.app.config import resolve_args
from speechtranslator.app.diagnostics import hint_for_exception, summarize_exception
from speechtranslator.app.logging_setup import setup_app_logger
from speechtranslator.app.services import PipelineServices, build_coordinator, build_services
from speechtranslator.audio.mic import SoundDeviceMicSource
from speechtranslator.contracts import Language, Locale, PipelineState
from speechtranslator.languages import describe_language, describe_locale
from speechtranslator.live.coordinator import PipelineCoordinator, PipelineError

HELP_TEXT = (
    "Commands: :locale <id>  :target <code>  :pause  :resume  :reset  :status  :quit"
)


class ConsolePresenter:
    """Prints pipeline snapshots; read-only with respect to the coordinator."""

    def __init__(self, out: TextIO = sys.stdout, enabled: bool = True) -> None:
        self.out = out
        self.enabled = enabled
        self._last = PipelineState()

    def on_state(self, state: PipelineState) -> None:
        prev, self._last = self._last, state
        if not self.enabled:
            return
        if state.source_text != prev.source_text and state.source_text:
            last_line = state.source_text.splitlines()[-1]
            print(f"[src] {last_line}", file=self.out)
        if state.target_text != prev.target_text and state.target_text:
            print(f"[dst] {state.target_text}", file=self.out)
        if state.translation_enabled != prev.translation_enabled:
            print(f"[translation {'on' if state.translation_enabled else 'off'}]", file=self.out)
        if state.recording != prev.recording:
            print(f"[recording {'on' if state.recording else 'off'}]", file=self.out)

    def on_error(self, event: PipelineError) -> None:
        summary = summarize_exception(event.message)
        print(f"[{event.stage} error] {summary}", file=self.out)
        print(f"  hint: {hint_for_exception(summary)}", file=self.out)


def handle_command(coordinator: PipelineCoordinator, line: str, out: TextIO = sys.stdout) -> bool:
    """Apply one console command. Returns False when the session should end."""
    parts = line.strip().split()
    if not parts:
        return True
    cmd, rest = parts[0].lower(), parts[1:]
    if cmd in (":quit", ":q"):
        return False
    if cmd in (":locale", ":target") and rest:
        try:
            if cmd == ":locale":
                coordinator.set_input_locale(Locale(rest[0]))
                print(f"input: {describe_locale(coordinator.input_locale)}", file=out)
            else:
                coordinator.set_target_language(Language(rest[0]))
                print(f"target: {describe_language(coordinator.target_language)}", file=out)
        except ValueError as e:
            print(f"error: {e}", file=out)
            print(HELP_TEXT, file=out)
    elif cmd == ":pause":
        coordinator.stop_recording()
    elif cmd == ":resume":
        coordinator.start_recording()
    elif cmd == ":reset":
        coordinator.reset()
    elif cmd == ":status":
        state = coordinator.state
        print(
            f"{describe_locale(coordinator.input_locale)} -> {describe_language(coordinator.target_language)} | "
            f"recording={state.recording} translation={state.translation_enabled} "
            f"recognizer_available={coordinator.recognizer_available}",
            file=out,
        )
    else:
        print(HELP_TEXT, file=out)
    return True


def warm_up_recognizer(services: PipelineServices, logger: logging.Logger, out: TextIO = sys.stderr) -> bool:
    """Load the speech model up front so a broken install is reported before use."""
    ok = services.recognizer.warm_up()
    logger.info("recognizer_warm_up", extra={"recognizer": services.recognizer.name, "ok": ok})
    if not ok:
        summary = f"Recognizer is unavailable ({services.recognizer.name})"
        print(f"Warning: {summary}", file=out)
        print(f"  hint: {hint_for_exception(summary)}", file=out)
    return ok


def _read_commands(coordinator: PipelineCoordinator, stop_event: threading.Event) -> None:
    for line in sys.stdin:
        if stop_event.is_set():
            return
        if not handle_command(coordinator, line):
            break
    stop_event.set()


def main(argv: list[str] | None = None) -> int:
    args = resolve_args(argv)
    logger, log_dir, log_path = setup_app_logger(level=logging.DEBUG if args.debug else logging.INFO)
    logger.info("app_start", extra={"config_path": str(getattr(args, "config", "")), "argv": argv or []})

    if args.list_devices:
        print(SoundDeviceMicSource.list_devices())
        return 0

    services = build_services(args, logger=logger)

    if args.list_locales or args.check_support:
        warm_up_recognizer(services, logger)
    if args.list_locales:
        for locale in services.oracle.supported_input_locales():
            print(f"{locale.identifier}\t{describe_locale(locale)}")
        return 0
    if args.list_languages:
        for language in services.oracle.supported_target_languages():
            print(f"{language.code}\t{describe_language(language)}")
        return 0
    if args.check_support:
        for entry in services.oracle.support_report():
            print(f"{entry.locale.identifier}: {entry.label}")
        return 0

    coordinator: Optional[PipelineCoordinator] = None
    stop_event = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: stop_event.set())
    try:
        warm_up_recognizer(services, logger)
        coordinator = build_coordinator(args, services, logger=logger)
        presenter = ConsolePresenter(enabled=bool(args.print_console))
        coordinator.states.subscribe(presenter.on_state)
        coordinator.errors.subscribe(presenter.on_error)
        coordinator.start()
        coordinator.start_recording()

        threading.Thread(
            target=_read_commands,
            args=(coordinator, stop_event),
            name="speechtranslator-console",
            daemon=True,
        ).start()
        print(
            f"SpeechTranslator: {describe_locale(coordinator.input_locale)} -> "
            f"{describe_language(coordinator.target_language)}. Press Ctrl+C to quit."
        )
        print(HELP_TEXT)
        print(f"Logs: {log_path}")
        stop_event.wait()
    except Exception:
        detail = traceback.format_exc()
        logger.exception("app_crash")
        summary = summarize_exception(detail)
        print(f"Error: {summary}", file=sys.stderr)
        print(f"Hint: {hint_for_exception(summary)}", file=sys.stderr)
        return 1
    finally:
        if coordinator is not None:
            coordinator.dispose()
        logger.info("app_quit")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
