"""
Capacity prober: finds the largest list that can be allocated and filled.
"""
import logging
from typing import Any, Callable, List, MutableSequence, Optional

from memprobe.config import settings
from memprobe.models.schemas import ProbeResult, RetryRecord
from memprobe.services.memory_service import MemoryService, memory_service

logger = logging.getLogger(__name__)

# MemoryError is the usual signal; OverflowError comes from sizes the
# interpreter cannot represent at all.
ALLOCATION_ERRORS = (MemoryError, OverflowError)


class CapacityExhaustedError(Exception):
    """No capacity, however small, could be allocated and filled."""

    def __init__(self, initial_capacity: int, retries: Optional[List[RetryRecord]] = None):
        self.initial_capacity = initial_capacity
        self.retries = retries or []
        super().__init__(
            f"Could not allocate and populate a list of any capacity "
            f"(started at {initial_capacity:,}, {len(self.retries)} failed attempts)"
        )


def reserve_list(capacity: int) -> List[Any]:
    """Allocate a list of exactly ``capacity`` empty slots."""
    return [None] * capacity


class CapacityProber:
    """Searches for a workable list capacity by halving after each failure."""

    def __init__(
        self,
        container_factory: Callable[[int], MutableSequence] = reserve_list,
        placeholder_factory: Callable[[], Any] = object,
        memory: Optional[MemoryService] = None,
    ):
        """Initialize prober."""
        self.container_factory = container_factory
        self.placeholder_factory = placeholder_factory
        self.memory = memory or memory_service

    def _populate(self, container: MutableSequence, capacity: int):
        """Fill every reserved slot in place; the list never grows."""
        placeholder = self.placeholder_factory
        for index in range(capacity):
            container[index] = placeholder()

    def probe(
        self,
        initial_capacity: Optional[int] = None,
        on_retry: Optional[Callable[[RetryRecord], None]] = None,
    ) -> ProbeResult:
        """
        Allocate and fill a list, halving the capacity on every failure.

        Returns the first capacity that could be both reserved and fully
        populated, together with the populated list. Raises
        CapacityExhaustedError when the capacity halves down to zero.
        """
        if initial_capacity is None:
            initial_capacity = settings.initial_capacity
        if initial_capacity < 0:
            raise ValueError(f"initial_capacity must not be negative: {initial_capacity}")

        logger.info(f"Probing list capacity starting at {initial_capacity:,}")

        capacity = initial_capacity
        retries: List[RetryRecord] = []

        while capacity > 0:
            container = None
            try:
                container = self.container_factory(capacity)
                self._populate(container, capacity)
            except ALLOCATION_ERRORS:
                # Must be released before the next attempt or it eats into it
                if container is not None:
                    container.clear()
                    container = None
            else:
                logger.info(f"Allocated and populated {capacity:,} items after {len(retries)} retries")
                return ProbeResult(capacity=capacity, container=container, retries=retries)

            record = RetryRecord(attempted_capacity=capacity, next_capacity=capacity // 2)
            retries.append(record)
            logger.debug(f"Allocation of {capacity:,} items failed, retrying with {record.next_capacity:,}")
            if on_retry is not None:
                on_retry(record)

            self.memory.reclaim()
            capacity = record.next_capacity

        logger.error(f"Capacity exhausted after {len(retries)} failed attempts")
        raise CapacityExhaustedError(initial_capacity, retries)


# Global prober instance
capacity_prober = CapacityProber()
