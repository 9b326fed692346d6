"""Logging utilities for domainproof library."""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import NamedTuple

_root = logging.getLogger("domainproof")
_root.addHandler(logging.NullHandler())


class ChallengeContext(NamedTuple):
    """The challenge a task is working on, as it appears in log records."""

    challenge_type: str
    identifier: str


_current_challenge: ContextVar[ChallengeContext | None] = ContextVar(
    "current_challenge", default=None
)


@contextmanager
def challenge_context(challenge_type: str, identifier: str) -> Iterator[ChallengeContext]:
    """Tag log records emitted inside the block with a challenge.

    Concurrent tasks each see their own challenge, so a Route 53 wait
    and a listener running side by side log under separate identifiers.

    Args:
        challenge_type: ACME challenge type, e.g. "http-01" or "dns-01".
        identifier: Resource path (http-01) or TXT record name (dns-01).

    Yields:
        The active context.
    """
    context = ChallengeContext(challenge_type, identifier)
    token = _current_challenge.set(context)
    try:
        yield context
    finally:
        _current_challenge.reset(token)


def get_challenge_extra() -> dict[str, str]:
    """Log extra fields for the active challenge, empty outside one."""
    context = _current_challenge.get()
    if context is None:
        return {}
    return {"challenge_type": context.challenge_type, "challenge": context.identifier}


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the domainproof namespace.

    Args:
        name: The module name (typically __name__).

    Returns:
        A logger instance for the module.
    """
    return logging.getLogger(name)


class Stopwatch:
    """Monotonic stopwatch for propagation waits.

    ``elapsed`` can be read while running, so a poll loop can compare
    it against its deadline and report the total once stopped:

        with Stopwatch() as watch:
            while not done and watch.elapsed < timeout:
                ...
        logger.info("Done", extra={"elapsed_ms": watch.elapsed_ms})
    """

    def __init__(self) -> None:
        self._started: float | None = None
        self._stopped: float | None = None

    def __enter__(self) -> "Stopwatch":
        self._started = time.monotonic()
        self._stopped = None
        return self

    def __exit__(self, *args: object) -> None:
        self._stopped = time.monotonic()

    @property
    def elapsed(self) -> float:
        """Seconds since entering the block, frozen once it exits."""
        if self._started is None:
            return 0.0
        end = self._stopped if self._stopped is not None else time.monotonic()
        return end - self._started

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000
