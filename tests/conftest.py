"""
Shared fixtures for probe tests.
"""
import weakref

import pytest

from memprobe.services.memory_service import MemoryService


class TrackedList(list):
    """A list that can be weakly referenced."""


class FakeHeap:
    """
    Simulated memory for the prober.

    Reservations above ``reserve_limit`` items and more than ``fill_limit``
    placeholders in one container fail with MemoryError.
    """

    def __init__(self, reserve_limit=None, fill_limit=None, error=MemoryError):
        self.reserve_limit = reserve_limit
        self.fill_limit = fill_limit
        self.error = error
        self.requested = []
        self.containers = []
        self.live_at_reserve = []
        self.filled = 0

    def live_containers(self):
        return [ref() for ref in self.containers if ref() is not None]

    def reserve(self, capacity):
        self.live_at_reserve.append(len(self.live_containers()))
        self.requested.append(capacity)
        if self.reserve_limit is not None and capacity > self.reserve_limit:
            raise self.error("reservation too large")
        container = TrackedList([None] * capacity)
        self.containers.append(weakref.ref(container))
        self.filled = 0
        return container

    def placeholder(self):
        if self.fill_limit is not None and self.filled >= self.fill_limit:
            raise self.error("heap full")
        self.filled += 1
        return object()


class CountingMemory(MemoryService):
    """Memory service that records collector hints instead of running them."""

    def __init__(self):
        super().__init__(collect_garbage=False)
        self.reclaims = 0

    def reclaim(self):
        self.reclaims += 1
        return 0


@pytest.fixture
def memory():
    return CountingMemory()


@pytest.fixture
def heap_factory():
    return FakeHeap
