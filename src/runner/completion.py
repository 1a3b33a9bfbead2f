"""Completion counter - turns N check completions into one run completion."""

import asyncio
import logging

logger = logging.getLogger(__name__)


class CompletionCounter:
    """
    Resolves exactly once, when the expected number of checks finished.

    With zero expected checks it is resolved on creation.
    """

    def __init__(self, expected: int):
        if expected < 0:
            raise ValueError(f"expected must be >= 0, got {expected}")
        self.expected = expected
        self.finished = 0
        self._done = asyncio.get_running_loop().create_future()
        if expected == 0:
            self._done.set_result(None)

    @property
    def done(self) -> bool:
        return self._done.done()

    def mark_finished(self) -> None:
        """Count one finished check."""
        if self._done.done():
            logger.warning("Check finished after all expected checks completed")
            return
        self.finished += 1
        logger.debug(f"{self.finished}/{self.expected} checks finished")
        if self.finished == self.expected:
            self._done.set_result(None)

    async def wait(self) -> None:
        await asyncio.shield(self._done)
