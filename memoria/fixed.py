"""User memory split into fixed partitions whose sizes come from the configuration."""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Optional, Tuple

from memoria.config import FitAlgorithm
from memoria.models import NoSpaceError, Process, ProcessNotFound, ProcessTable

logger = logging.getLogger(__name__)


def round_up_to_multiple(base: int, value: int) -> int:
    """Round ``value`` up to a multiple of ``base``; zero counts as one."""
    if base <= 0:
        raise ValueError(f"base must be positive, got {base}")
    number = 1 if value == 0 else value
    return -(-number // base) * base


class FixedPartitions:
    """Fixed-size blocks of user memory, each holding at most one process."""

    def __init__(
        self,
        partitions: Iterable[int],
        algorithm: FitAlgorithm,
        processes: Optional[ProcessTable] = None,
    ) -> None:
        self.partitions: Tuple[int, ...] = tuple(int(size) for size in partitions)
        if any(size < 0 for size in self.partitions):
            raise ValueError("partition sizes must not be negative")
        self.algorithm = FitAlgorithm(algorithm)
        self.processes = processes if processes is not None else ProcessTable()
        self._used = [False] * len(self.partitions)
        self._blocks: Dict[int, int] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self.partitions)

    def is_used(self, block: int) -> bool:
        """Tell whether ``block`` currently holds a process."""
        if not 0 <= block < len(self.partitions):
            raise IndexError(f"block {block} outside the {len(self.partitions)} partitions")
        with self._lock:
            return self._used[block]

    def _free_fitting(self, size: int):
        return (
            (block, block_size)
            for block, block_size in enumerate(self.partitions)
            if size <= block_size and not self._used[block]
        )

    def choose_block(self, size: int) -> int:
        """Pick the block for a process of ``size`` bytes by the configured algorithm."""
        if size <= 0:
            raise ValueError(f"process size must be positive, got {size}")
        with self._lock:
            candidates = list(self._free_fitting(size))
        if not candidates:
            raise NoSpaceError(f"no free partition can hold {size} bytes")
        if self.algorithm is FitAlgorithm.FIRST:
            block, _ = candidates[0]
        elif self.algorithm is FitAlgorithm.BEST:
            # min/max keep the first of equal sizes, as the strict comparison does
            block, _ = min(candidates, key=lambda item: item[1])
        else:
            block, _ = max(candidates, key=lambda item: item[1])
        return block

    def base_of(self, block: int) -> int:
        """Address where ``block`` starts: the sizes of the blocks before it."""
        if not 0 <= block < len(self.partitions):
            raise IndexError(f"block {block} outside the {len(self.partitions)} partitions")
        return sum(self.partitions[:block])

    def allocate(self, pid: int, size: int) -> Process:
        """Place process ``pid`` of ``size`` bytes in a block and register it."""
        with self._lock:
            if pid in self._blocks:
                raise ValueError(f"process {pid} already holds block {self._blocks[pid]}")
            block = self.choose_block(size)
            self._used[block] = True
            self._blocks[pid] = block
            base = self.base_of(block)
            process = Process(pid=pid, base=base, limit=base + self.partitions[block])
            self.processes.add(process)
        logger.debug("block %d chosen for process %d of size %d", block, pid, size)
        return process

    def block_of(self, pid: int) -> int:
        """The block that process ``pid`` occupies."""
        with self._lock:
            try:
                return self._blocks[pid]
            except KeyError:
                raise ProcessNotFound(f"process {pid} holds no partition") from None

    def release(self, pid: int) -> Process:
        """Free the block of process ``pid`` and drop the process."""
        with self._lock:
            block = self.block_of(pid)
            self._used[block] = False
            del self._blocks[pid]
            process = self.processes.remove(pid)
        logger.debug("block %d released by process %d", block, pid)
        return process