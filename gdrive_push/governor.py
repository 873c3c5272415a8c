"""Ceiling on the number of mutating Drive operations per run."""

import logging

from .exceptions import OperationLimitExceeded

logger = logging.getLogger(__name__)


class OperationGovernor:
    """Counts mutating remote operations and aborts past a ceiling.

    Every mutating call (folder creation, file upload, each leg of a
    relocation) must call :meth:`tally` first. The count never resets;
    one governor lives for the whole run.

    Examples:
        >>> governor = OperationGovernor(ceiling=2)
        >>> governor.tally("create_folder")
        1
        >>> governor.remaining
        1
    """

    def __init__(self, ceiling: int):
        if ceiling < 1:
            raise ValueError(f"Operation ceiling must be at least 1, got {ceiling}")
        self.ceiling = ceiling
        self._count = 0

    @property
    def count(self) -> int:
        """Number of operations tallied so far (including a rejected one)."""
        return self._count

    @property
    def remaining(self) -> int:
        return max(self.ceiling - self._count, 0)

    def tally(self, operation: str) -> int:
        """Record one mutating operation.

        Args:
            operation: Name of the operation, for logging only

        Returns:
            The new operation count

        Raises:
            OperationLimitExceeded: If the new count is above the ceiling
        """
        self._count += 1
        logger.debug(f"op #{self._count}/{self.ceiling}: {operation}")
        if self._count > self.ceiling:
            raise OperationLimitExceeded(self._count, self.ceiling)
        return self._count
