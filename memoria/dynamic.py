"""User memory carved into partitions sized to each process as it arrives."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional

from memoria.config import FitAlgorithm
from memoria.models import NoSpaceError, Process, ProcessNotFound, ProcessTable

logger = logging.getLogger(__name__)


@dataclass
class Partition:
    """A run of user memory, ``[start, start + size)``, free or held by a process."""

    start: int
    size: int
    pid: Optional[int] = None
    tid: Optional[int] = None
    used: bool = False

    @property
    def end(self) -> int:
        """First address past the partition."""
        return self.start + self.size


class DynamicPartitions:
    """Partitions kept in address order, split on allocation and merged on release."""

    def __init__(
        self,
        memory_size: int,
        algorithm: FitAlgorithm,
        processes: Optional[ProcessTable] = None,
    ) -> None:
        if memory_size < 0:
            raise ValueError(f"memory size must not be negative, got {memory_size}")
        self.memory_size = memory_size
        self.algorithm = FitAlgorithm(algorithm)
        self.processes = processes if processes is not None else ProcessTable()
        self.partitions: List[Partition] = [Partition(start=0, size=memory_size)]
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self.partitions)

    def __iter__(self) -> Iterator[Partition]:
        with self._lock:
            return iter(list(self.partitions))

    def _free_fitting(self, size: int) -> List[Partition]:
        with self._lock:
            return [p for p in self.partitions if not p.used and p.size >= size]

    def find_first_fit(self, size: int) -> Optional[Partition]:
        """The first free partition that can hold ``size`` bytes, or None."""
        candidates = self._free_fitting(size)
        return candidates[0] if candidates else None

    def find_best_fit(self, size: int) -> Optional[Partition]:
        """The smallest free partition that can hold ``size`` bytes, or None."""
        candidates = self._free_fitting(size)
        # min keeps the first of equal sizes, as the strict comparison does
        return min(candidates, key=lambda p: p.size) if candidates else None

    def find_worst_fit(self, size: int) -> Optional[Partition]:
        """The largest free partition that can hold ``size`` bytes, or None."""
        candidates = self._free_fitting(size)
        return max(candidates, key=lambda p: p.size) if candidates else None

    def find(self, size: int) -> Optional[Partition]:
        """Pick a free partition for ``size`` bytes by the configured algorithm."""
        finders: dict[FitAlgorithm, Callable[[int], Optional[Partition]]] = {
            FitAlgorithm.FIRST: self.find_first_fit,
            FitAlgorithm.BEST: self.find_best_fit,
            FitAlgorithm.WORST: self.find_worst_fit,
        }
        return finders[self.algorithm](size)

    def allocate(self, pid: int, size: int) -> Process:
        """Give process ``pid`` a partition of exactly ``size`` bytes and register it."""
        if size < 0:
            raise ValueError(f"process size must not be negative, got {size}")
        with self._lock:
            if any(p.used and p.pid == pid for p in self.partitions):
                raise ValueError(f"process {pid} already holds a partition")
            partition = self.find(size)
            if partition is None:
                logger.error("no free partition can hold %d bytes", size)
                raise NoSpaceError(f"no free partition can hold {size} bytes")
            partition.pid = pid
            return self.split(partition, size)

    def split(self, partition: Partition, size: int) -> Process:
        """Occupy the first ``size`` bytes of ``partition``; the rest stays free."""
        if partition.pid is None:
            raise ValueError("partition has no process assigned")
        if size > partition.size:
            raise ValueError(
                f"cannot place {size} bytes in a partition of {partition.size}"
            )
        with self._lock:
            index = self.partitions.index(partition)
            remainder = partition.size - size
            partition.size = size
            partition.used = True
            if remainder:
                free = Partition(start=partition.start + size, size=remainder)
                self.partitions.insert(index + 1, free)
                logger.debug("free partition of %d bytes left at %d", remainder, free.start)
            process = Process(
                pid=partition.pid, base=partition.start, limit=partition.start + size
            )
            self.processes.add(process)
        logger.debug("partition at %d given to process %d", partition.start, partition.pid)
        return process

    def index_of(self, pid: int) -> int:
        """Position in the list of the partition held by process ``pid``."""
        with self._lock:
            for index, partition in enumerate(self.partitions):
                if partition.used and partition.pid == pid:
                    return index
        raise ProcessNotFound(f"no partition held by process {pid}")

    def partition_of(self, pid: int) -> Partition:
        """The partition held by process ``pid``."""
        with self._lock:
            return self.partitions[self.index_of(pid)]

    def merge(self, index: int) -> None:
        """Join the partition at ``index`` with free neighbours on either side."""
        with self._lock:
            current = self.partitions[index]
            if index + 1 < len(self.partitions):
                following = self.partitions[index + 1]
                if not following.used:
                    current.size += following.size
                    del self.partitions[index + 1]
                    logger.debug("merged with following free partition")
            if index - 1 >= 0:
                previous = self.partitions[index - 1]
                if not previous.used:
                    previous.size += current.size
                    del self.partitions[index]
                    logger.debug("merged with previous free partition")

    def release(self, pid: int) -> Process:
        """Free the partition of process ``pid``, merge it and drop the process."""
        with self._lock:
            index = self.index_of(pid)
            partition = self.partitions[index]
            partition.used = False
            partition.pid = None
            partition.tid = None
            self.merge(index)
            process = self.processes.remove(pid)
        logger.debug("process %d released its partition", pid)
        return process