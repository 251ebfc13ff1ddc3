# src/deadline_bell/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
import sys
import threading
from datetime import datetime

from ..cli.bootstrap import AlarmRuntime
from ..cli.commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, lines: asyncio.Queue[str | None]) -> None:
    """
    Read stdin on a daemon thread so timers, the poller and the helper
    listener keep running on the event loop while we wait for input.
    None is queued on EOF.
    """

    def reader() -> None:
        while True:
            try:
                line = sys.stdin.readline()
            except (OSError, ValueError):
                line = ""
            try:
                loop.call_soon_threadsafe(lines.put_nowait, line if line else None)
            except RuntimeError:
                return
            if not line:
                return

    threading.Thread(target=reader, name="console-stdin", daemon=True).start()


async def run_console_loop(
    runtime: AlarmRuntime,
    *,
    stop: asyncio.Event,
    app_name: str = "deadline-bell",
) -> None:
    logger.info("Console connector started.")
    _print_ts(f"[{app_name}] Use /help for commands, /add to create a task, /exit to quit.")
    for notice in runtime.state.pop_notices():
        _print_ts(notice)

    lines: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(asyncio.get_running_loop(), lines)

    def emit(text: str) -> None:
        _print_ts(text)

    while not stop.is_set():
        get_line = asyncio.ensure_future(lines.get())
        wait_stop = asyncio.ensure_future(stop.wait())
        done, pending = await asyncio.wait(
            {get_line, wait_stop}, return_when=asyncio.FIRST_COMPLETED
        )
        for fut in pending:
            fut.cancel()

        if get_line not in done:
            break

        raw = get_line.result()
        if raw is None:
            logger.info("Console EOF received, exiting.")
            break

        user_input = raw.strip()
        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        if not user_input.startswith("/"):
            _print_ts("Commands start with '/'. Use /help to list them.")
            continue

        try:
            response = command_registry.handle(runtime, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            response = "Internal error while handling a command."

        if response is not None:
            _print_ts(response)
        for notice in runtime.state.pop_notices():
            _print_ts(notice)

    logger.info("Console connector finished.")
