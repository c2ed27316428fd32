"""
Memory service for snapshots, collector hints and address-space limits.
"""
import gc
import logging
from datetime import datetime
from typing import Optional

import psutil

from memprobe.config import settings
from memprobe.models.schemas import MemorySnapshot

logger = logging.getLogger(__name__)


def to_mib(num_bytes: int) -> int:
    """Convert a byte count to whole MiB."""
    return num_bytes // 1024 // 1024


class MemoryService:
    """Reads memory statistics for the current process and host."""

    def __init__(self, collect_garbage: Optional[bool] = None):
        """Initialize memory service."""
        if collect_garbage is None:
            collect_garbage = settings.collect_garbage
        self.collect_garbage = collect_garbage
        self.process = psutil.Process()

    def reclaim(self) -> int:
        """
        Ask the collector to run now.

        This is a hint. CPython frees most objects by reference counting as
        soon as they are dropped, so the count returned here is only
        informational.
        """
        if not self.collect_garbage:
            return 0
        collected = gc.collect()
        logger.debug(f"Garbage collector found {collected} unreachable objects")
        return collected

    def address_space_limit(self) -> Optional[int]:
        """Current soft address-space limit in bytes, or None when unlimited."""
        try:
            import resource
        except ImportError:
            return None
        soft, _ = resource.getrlimit(resource.RLIMIT_AS)
        if soft == resource.RLIM_INFINITY:
            return None
        return soft

    def free_bytes(self) -> int:
        """
        Memory this process can still take.

        Under an address-space limit that is the smaller of the host's
        available memory and the room left below the limit.
        """
        available = psutil.virtual_memory().available
        limit = self.address_space_limit()
        if limit is None:
            return available
        return max(0, min(available, limit - self.process.memory_info().vms))

    def default_limit_mb(self) -> int:
        """Address-space cap covering what is mapped now plus what the host has free."""
        return to_mib(self.process.memory_info().vms + psutil.virtual_memory().available)

    def snapshot(self) -> MemorySnapshot:
        """Take a memory reading after hinting the collector."""
        self.reclaim()
        snapshot = MemorySnapshot(
            free_mib=to_mib(self.free_bytes()),
            rss_mib=to_mib(self.process.memory_info().rss),
            taken_at=datetime.now(),
        )
        logger.debug(f"Memory snapshot: {snapshot.free_mib} MiB free, {snapshot.rss_mib} MiB resident")
        return snapshot

    def apply_memory_limit(self, limit_mb: int) -> bool:
        """
        Cap the address space of this process at ``limit_mb`` MiB.

        Allocations past the cap fail with MemoryError inside the process
        instead of getting it killed from outside. The cap is never raised
        above the current hard limit. Returns False when the platform does
        not support the limit.
        """
        try:
            import resource
        except ImportError:
            logger.warning("Address-space limits are not supported on this platform")
            return False

        limit_bytes = limit_mb * 1024 * 1024
        _, hard = resource.getrlimit(resource.RLIMIT_AS)
        if hard != resource.RLIM_INFINITY:
            limit_bytes = min(limit_bytes, hard)

        try:
            resource.setrlimit(resource.RLIMIT_AS, (limit_bytes, hard))
        except (ValueError, OSError) as e:
            logger.warning(f"Failed to set address-space limit of {limit_mb} MiB: {e}")
            return False

        logger.info(f"Address-space limit set to {to_mib(limit_bytes)} MiB")
        return True


# Global memory service instance
memory_service = MemoryService()
