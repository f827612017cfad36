"""Cross-cutting utilities: logging setup and async retry decorator."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable, TypeVar

T = TypeVar("T")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """Configure root logger with a console handler and an optional file handler."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers)
    # Silence noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)


def retry(
    max_retries: int = 3,
    backoff_factor: float = 1.0,
    retryable_exceptions: tuple[type[BaseException], ...] = (Exception,),
) -> Callable:
    """Async decorator with exponential back-off.

    ``max_retries`` is the total number of attempts. Exceptions outside
    ``retryable_exceptions`` propagate immediately.

    Usage::

        @retry(max_retries=3, backoff_factor=1.5)
        async def call_api(...): ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            logger = logging.getLogger(func.__module__)
            last_exc: BaseException | None = None
            for attempt in range(1, max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    last_exc = exc
                    if attempt == max_retries:
                        break
                    wait = backoff_factor * (2 ** (attempt - 1))
                    logger.warning(
                        "Attempt %d/%d for %s failed: %s, retrying in %.1fs",
                        attempt,
                        max_retries,
                        func.__name__,
                        exc,
                        wait,
                    )
                    await asyncio.sleep(wait)
            raise last_exc  # type: ignore[misc]

        return wrapper

    return decorator


def preview(text: str | None, limit: int = 120) -> str:
    """Single-line, truncated rendering of model output for log messages."""
    if not text:
        return ""
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 1] + "…"
