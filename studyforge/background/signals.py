# studyforge/background/signals.py
"""
Signal handling for Windows and Unix.

Registers SIGINT/SIGTERM handlers that run an async callback on the loop.
"""

import asyncio
import logging
import signal
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SignalHandler = Callable[[str], Awaitable[None]]


def setup_signal_handlers(handler: SignalHandler) -> None:
    """
    Route SIGINT (Ctrl+C) and SIGTERM to an async handler.

    On Windows (ProactorEventLoop), add_signal_handler is not supported,
    so we fall back to signal.signal().

    Args:
        handler: Coroutine function called with the signal name
    """
    loop = asyncio.get_running_loop()

    def _signal_callback(sig_num, frame) -> None:
        sig_name = signal.Signals(sig_num).name
        logger.info(f"Signal handler triggered: {sig_name}")
        loop.call_soon_threadsafe(lambda: loop.create_task(handler(sig_name)))

    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(
                sig, lambda name=sig.name: loop.create_task(handler(name))
            )
        logger.debug("Signal handlers registered (loop-based)")

    except NotImplementedError:
        signal.signal(signal.SIGINT, _signal_callback)
        signal.signal(signal.SIGTERM, _signal_callback)
        logger.debug("Signal handlers registered (fallback for Windows)")


def remove_signal_handlers() -> None:
    """Restore default SIGINT/SIGTERM behavior."""
    loop = asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)
    except NotImplementedError:
        signal.signal(signal.SIGINT, signal.default_int_handler)
        signal.signal(signal.SIGTERM, signal.SIG_DFL)
