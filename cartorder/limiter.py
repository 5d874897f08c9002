"""A ticking rate limiter and a decorator that applies it to calls."""

from __future__ import annotations

import functools
import threading
from typing import Any, Callable, Optional, TypeVar

F = TypeVar("F", bound=Callable[..., Any])


class Limiter:
    """Hands out one permit per tick, ``count_request_limit`` ticks a second."""

    def __init__(self, count_request_limit: int) -> None:
        if count_request_limit <= 0:
            raise ValueError("count_request_limit must be positive")
        self._interval = 1.0 / count_request_limit
        self._cond = threading.Condition()
        self._permit = False
        self._closed = False
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._tick, name="limiter", daemon=True)
        self._thread.start()

    def _tick(self) -> None:
        while not self._stop.wait(self._interval):
            with self._cond:
                self._permit = True
                self._cond.notify()

    def wait(self, timeout: Optional[float] = None) -> None:
        """Block until a permit is available; raise TimeoutError after ``timeout``.

        Once the limiter is closed, waiting returns at once.
        """
        with self._cond:
            if not self._cond.wait_for(lambda: self._closed or self._permit, timeout):
                raise TimeoutError("rate limiter wait timed out")
            if not self._closed:
                self._permit = False

    def close(self) -> None:
        """Stop ticking and release every waiter."""
        self._stop.set()
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        if threading.current_thread() is not self._thread:
            self._thread.join()

    def __enter__(self) -> "Limiter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def limit_interceptor(limiter: Limiter, timeout: float = 3.0) -> Callable[[F], F]:
    """Decorate a call so that it first waits for a permit from ``limiter``."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            limiter.wait(timeout)
            return func(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator