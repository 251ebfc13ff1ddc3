# src/deadline_bell/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState and the alarm runtime, then runs the
console REPL (optional) until /exit or a termination signal.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal

from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import level_from_name, setup_logging
from .bootstrap import AlarmRuntime, build_runtime, create_initial_state

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for store in (state.task_store, state.alarm_store):
        try:
            close = getattr(store, "close", None)
            if close is not None:
                close()
        except Exception:
            logger.debug("Store close failed.", exc_info=True)


def _install_signal_handlers(
    loop: asyncio.AbstractEventLoop,
    runtime: AlarmRuntime,
    stop: asyncio.Event,
) -> None:
    def _handle_stop(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop.set()

    def _handle_suspend() -> None:
        # Ctrl+Z: the app is hidden until the shell sends SIGCONT.
        runtime.visibility.set_visible(False)
        os.kill(os.getpid(), signal.SIGSTOP)

    def _handle_resume() -> None:
        runtime.visibility.set_visible(True)

    handlers = [
        (getattr(signal, "SIGINT", None), lambda: _handle_stop(signal.SIGINT)),
        (getattr(signal, "SIGTERM", None), lambda: _handle_stop(signal.SIGTERM)),
        (getattr(signal, "SIGTSTP", None), _handle_suspend),
        (getattr(signal, "SIGCONT", None), _handle_resume),
    ]
    for sig, handler in handlers:
        if sig is None:
            continue
        # Some platforms (Windows) do not support loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError, ValueError):
            loop.add_signal_handler(sig, handler)


async def _run(settings) -> None:
    state = create_initial_state(settings=settings)
    runtime = build_runtime(state)

    stop = asyncio.Event()
    _install_signal_handlers(asyncio.get_running_loop(), runtime, stop)

    def _on_focus() -> None:
        print("\a[ALARM] Notification clicked. Use /ack or /snooze.", flush=True)

    await runtime.start(on_focus=_on_focus)
    try:
        if settings.console_enabled:
            await run_console_loop(runtime, stop=stop, app_name=settings.app_name)
        else:
            logger.info("Console disabled. Running alarms only. Press Ctrl+C to stop.")
            await stop.wait()
    finally:
        await runtime.stop()
        _shutdown(state)


def main() -> None:
    settings = get_settings()

    setup_logging(
        log_dir=settings.data_dir,
        console_level=level_from_name(getattr(settings, "log_level", "INFO")),
    )

    logger.info("Starting %s...", settings.app_name)

    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
