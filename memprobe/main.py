"""
Command-line entry point for the capacity probe.

Prints free memory, idles so the reading can be compared with an outside
monitor, then searches for the largest list that can be allocated and fully
populated. Tuned through MEMPROBE_* environment variables only.
"""
import logging
import sys
import time

from memprobe.config import settings
from memprobe.models.schemas import MemorySnapshot, RetryRecord
from memprobe.services.memory_service import memory_service
from memprobe.services.prober import CapacityExhaustedError, capacity_prober

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INTERRUPTED = 1
EXIT_EXHAUSTED = 2


def configure_logging():
    """Configure root logging from settings."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def print_free(label: str, snapshot: MemorySnapshot):
    print(f"{label:<8} Free Heap Space:  {snapshot.free_mib} MiB")


def print_retry(record: RetryRecord):
    print(f"Can't allocate {record.attempted_capacity:,} objects with a list of the same size.")
    print(f"Retrying allocation with capacity {record.next_capacity:,}")
    print()


def main() -> int:
    """Run the probe and report; returns the process exit code."""
    # Without a cap, overcommit lets the OOM killer end the run before any
    # MemoryError reaches the prober
    limit_mb = settings.memory_limit_mb or memory_service.default_limit_mb()
    memory_service.apply_memory_limit(limit_mb)

    before = memory_service.snapshot()

    try:
        print_free("[BEFORE]", before)
        print()
        time.sleep(settings.idle_seconds)
    except KeyboardInterrupt:
        logger.error("Interrupted before the test started")
        return EXIT_INTERRUPTED

    try:
        result = capacity_prober.probe(settings.initial_capacity, on_retry=print_retry)
    except CapacityExhaustedError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_EXHAUSTED

    # The populated list is still alive here
    after = memory_service.snapshot()

    print()
    print_free("[BEFORE]", before)
    print_free("[AFTER]", after)
    print()
    print(f"Allocated and fully populated list with {len(result.container):,} objects")
    return EXIT_OK


def run():
    """Console script entry point."""
    configure_logging()
    sys.exit(main())


if __name__ == "__main__":
    run()
