"""Exponential backoff for remote store reconnects."""

import random
from typing import Optional


class ExponentialBackoff:
    """
    Stateful backoff controller.

    Delays start at ``initial_delay`` and grow by ``factor`` per failed
    attempt up to ``max_delay``. There is no attempt limit; the caller
    decides when to stop.
    """

    def __init__(
        self,
        initial_delay: float = 0.1,
        max_delay: float = 30.0,
        factor: float = 2.0,
        jitter: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        if initial_delay <= 0 or max_delay < initial_delay:
            raise ValueError("Require 0 < initial_delay <= max_delay")
        if factor < 1:
            raise ValueError("factor must be >= 1")
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.factor = factor
        self.jitter = jitter
        self._rng = rng or random.Random()
        self.attempts = 0

    def peek(self) -> float:
        """The undisturbed delay the next call to ``next_delay`` is based on."""
        # Past this point the cap always wins; avoids float overflow on long outages
        if self.attempts > 64:
            return self.max_delay
        return min(self.max_delay, self.initial_delay * (self.factor ** self.attempts))

    def next_delay(self) -> float:
        delay = self.peek()
        if self.jitter:
            delay = delay * (1 - self.jitter) + self._rng.uniform(0, delay * self.jitter)
        self.attempts += 1
        return delay

    def reset(self) -> None:
        self.attempts = 0
