"""Deferred work that must outlive the HTTP response."""

from __future__ import annotations

import atexit
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from .logging_utils import get_json_logger, log_exception

LOGGER = get_json_logger("ministry.background")


class BackgroundScheduler:
    """Capability to run ``fn`` after the caller has returned."""

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        raise NotImplementedError


def _run_logged(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    name = getattr(fn, "__qualname__", repr(fn))
    LOGGER.info("Background task start", extra={"event": "background_start", "task": name})
    try:
        result = fn(*args, **kwargs)
    except Exception:
        log_exception(LOGGER, "Background task failed", extra={"event": "background_error", "task": name})
        return None
    LOGGER.info("Background task done", extra={"event": "background_done", "task": name})
    return result


class ThreadPoolBackgroundScheduler(BackgroundScheduler):
    """Runs tasks on a process-wide pool.

    Worker threads are non-daemon and the pool is shut down with
    ``wait=True`` at exit, so an accepted task always runs to completion.
    """

    def __init__(self, max_workers: int = 2) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="ministry-bg")
        atexit.register(self._executor.shutdown, wait=True)

    def schedule(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._executor.submit(_run_logged, fn, *args, **kwargs)
