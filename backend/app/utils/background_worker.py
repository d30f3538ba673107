"""Thread-based worker for fire-and-forget side effects (notification email).

Jobs are retried with linear backoff; jobs that still fail are parked in a
dead-letter queue for inspection and never propagate to the caller that
enqueued them.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="notify")
_tasks: Dict[str, Future] = {}


@dataclass
class DeadLetter:
    func_name: str
    args: tuple
    kwargs: dict
    error: Exception


dead_letter_queue: deque[DeadLetter] = deque(maxlen=1000)


def _run_with_retry(
    func: Callable[..., Any], *args: Any, retries: int = 3, backoff: float = 1.0, **kwargs: Any
) -> Any:
    """Execute ``func`` with retry and linear backoff; dead-letter on exhaustion."""

    for attempt in range(1, retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            logger.error(
                "Background task %s failed on attempt %s/%s: %s", func.__name__, attempt, retries, exc
            )
            if attempt == retries:
                dead_letter_queue.append(DeadLetter(func.__name__, args, kwargs, exc))
                return None
            time.sleep(backoff * attempt)
    return None


def enqueue(
    func: Callable[..., Any], *args: Any, retries: int = 3, backoff: float = 1.0, **kwargs: Any
) -> str:
    """Submit ``func`` to the worker and return a task id."""

    task_id = str(uuid.uuid4())
    future = _executor.submit(_run_with_retry, func, *args, retries=retries, backoff=backoff, **kwargs)
    _tasks[task_id] = future
    future.add_done_callback(lambda _f: _tasks.pop(task_id, None))
    return task_id


def wait_all(timeout: float | None = None) -> None:
    """Block until every queued job has finished (used at shutdown and in tests)."""
    for future in list(_tasks.values()):
        try:
            future.result(timeout=timeout)
        except Exception as exc:
            logger.warning("Background task did not finish cleanly: %s", exc)
