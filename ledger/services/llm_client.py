"""Rate-limited wrapper around the Groq chat completions client.

A single instance is shared by every ingestion job in the process, so one large statement cannot starve
the others: call starts are spaced at least ``min_interval`` seconds apart across all threads, and
rate-limit or connection errors are retried after each delay in ``backoff``.
"""

import threading
import time
from collections.abc import Callable

import groq

from ledger.core.utils import get_logger

logger = get_logger("statement-ledger.llm")

RETRYABLE_ERRORS: tuple[type[Exception], ...] = (groq.RateLimitError, groq.APIConnectionError)


class RateLimitedClient:
    """Serialize and throttle chat completion calls, retrying transient failures with backoff."""

    def __init__(
        self,
        client: object,
        min_interval: float = 0.25,
        backoff: tuple[float, ...] = (1.0, 2.0, 4.0),
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Wrap a Groq-compatible client."""
        self.client = client
        self.min_interval = min_interval
        self.backoff = backoff
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._next_slot = 0.0
        self.retries_used = 0

    def _wait_for_slot(self) -> None:
        with self._lock:
            now = self._clock()
            wait = self._next_slot - now
            self._next_slot = max(now, self._next_slot) + self.min_interval
        if wait > 0:
            self._sleep(wait)

    def complete(self, **kwargs: object) -> str:
        """Run one chat completion and return the message content."""
        attempts = 1 + len(self.backoff)
        for attempt in range(attempts):
            self._wait_for_slot()
            try:
                completion = self.client.chat.completions.create(**kwargs)
            except RETRYABLE_ERRORS as exc:
                if attempt >= len(self.backoff):
                    raise
                delay = self.backoff[attempt]
                self.retries_used += 1
                logger.warning(
                    f"Classification call failed ({type(exc).__name__}). "
                    f"Retrying in {delay}s (attempt {attempt + 1}/{len(self.backoff)})."
                )
                self._sleep(delay)
                continue
            return completion.choices[0].message.content or ""
        msg = "Classification call retries exhausted"
        raise RuntimeError(msg)
