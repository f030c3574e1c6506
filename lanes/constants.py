"""
Concurrency arena constants.

All timing is expressed in ticks; a tick is one discrete simulation step
issued by the driver every TICK_INTERVAL_MS of wall-clock time.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Driver cadence
# ---------------------------------------------------------------------------
TICK_INTERVAL_MS: int = 100

# ---------------------------------------------------------------------------
# Task progress accounting
# ---------------------------------------------------------------------------
PROGRESS_MIN: int = 0
PROGRESS_MAX: int = 100

IO_STEP: int = 20  # IO setup / non-blocking progress per tick
CPU_STEP: int = 2  # CPU-bound progress per tick
IO_SETUP_THRESHOLD: int = 30  # IO tasks block (or hand off) from here on
IO_WAIT_TICKS: int = 10  # ticks spent in WAITING_IO

# ---------------------------------------------------------------------------
# Lane shapes
# ---------------------------------------------------------------------------
DEFAULT_WORKER_COUNT: int = 4
EVENT_LOOP_WORKER_COUNT: int = 1

# ---------------------------------------------------------------------------
# Process / thread lanes
# ---------------------------------------------------------------------------
MEMORY_MIN: int = 0
MEMORY_MAX: int = 100
PROCESS_MEMORY_PER_TASK: int = 10  # one address space per worker
THREAD_MEMORY_PER_TASK: int = 3  # shared address space, stack only

LOCK_CONTENTION_PROBABILITY: float = 0.3
CONTENTION_BUSY_THRESHOLD: int = 2  # contention only once more workers are busy

# ---------------------------------------------------------------------------
# Work-stealing lane
# ---------------------------------------------------------------------------
STEAL_THRESHOLD: int = 2  # donor queue must be strictly longer than this

# ---------------------------------------------------------------------------
# Task injection
# ---------------------------------------------------------------------------
DEFAULT_IO_BATCH: int = 20
CPU_INJECTION_QUEUE: int = 0  # work-stealing queue receiving CPU tasks
