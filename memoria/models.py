"""Processes, threads and their execution contexts as the memory module keeps them."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


class ProcessNotFound(LookupError):
    """No process with the requested pid is loaded."""


class ThreadNotFound(LookupError):
    """The process has no thread with the requested tid."""


class NoSpaceError(Exception):
    """User memory has no free partition large enough for a process."""


@dataclass
class Registers:
    """CPU registers saved for a thread."""

    pc: int = 0
    ax: int = 0
    bx: int = 0
    cx: int = 0
    dx: int = 0
    ex: int = 0
    fx: int = 0
    gx: int = 0
    hx: int = 0


@dataclass
class Thread:
    """A thread of a process: its registers and its pseudocode."""

    tid: int
    registers: Registers = field(default_factory=Registers)
    instructions: List[str] = field(default_factory=list)


@dataclass
class Process:
    """A process loaded in user memory, occupying ``[base, limit)``."""

    pid: int
    base: int
    limit: int
    threads: List[Thread] = field(default_factory=list)

    def size(self) -> int:
        """Number of bytes of user memory the process owns."""
        return self.limit - self.base

    def contains(self, address: int) -> bool:
        """Tell whether ``address`` lies inside the process's space."""
        return self.base <= address < self.limit

    def _thread(self, tid: int) -> Thread:
        for thread in self.threads:
            if thread.tid == tid:
                return thread
        raise ThreadNotFound(f"process {self.pid} has no thread {tid}")


@dataclass
class Context:
    """What the CPU needs to run a thread: registers plus the process bounds."""

    pid: int
    tid: int
    registers: Registers = field(default_factory=Registers)
    base: int = 0
    limit: int = 0


class ProcessTable:
    """The processes currently loaded, safe to use from several threads."""

    def __init__(self) -> None:
        self._processes: List[Process] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._processes)

    def __iter__(self) -> Iterator[Process]:
        with self._lock:
            return iter(list(self._processes))

    def add(self, process: Process) -> None:
        """Register a newly loaded process."""
        with self._lock:
            self._processes.append(process)
        logger.debug("process %d added (base %d, limit %d)", process.pid, process.base, process.limit)

    def get(self, pid: int) -> Process:
        """Return the process with ``pid``."""
        with self._lock:
            for process in self._processes:
                if process.pid == pid:
                    return process
        raise ProcessNotFound(f"no process with pid {pid}")

    def contains(self, pid: int) -> bool:
        """Tell whether a process with ``pid`` is loaded."""
        with self._lock:
            return any(process.pid == pid for process in self._processes)

    def has_thread(self, pid: int, tid: int) -> bool:
        """Tell whether process ``pid`` has a thread ``tid``."""
        with self._lock:
            return any(
                thread.tid == tid
                for process in self._processes
                if process.pid == pid
                for thread in process.threads
            )

    def remove(self, pid: int) -> Process:
        """Drop the process with ``pid`` and return it."""
        with self._lock:
            process = self.get(pid)
            self._processes.remove(process)
        logger.debug("process %d removed", pid)
        return process

    def add_thread(self, pid: int, thread: Thread) -> None:
        """Attach ``thread`` to process ``pid``."""
        with self._lock:
            self.get(pid).threads.append(thread)
        logger.debug("thread %d added to process %d", thread.tid, pid)

    def remove_thread(self, pid: int, tid: int) -> Thread:
        """Detach thread ``tid`` from process ``pid`` and return it."""
        with self._lock:
            process = self.get(pid)
            thread = process._thread(tid)
            process.threads.remove(thread)
        logger.debug("thread %d of process %d removed", tid, pid)
        return thread

    def process_size(self, pid: int) -> int:
        """Size in bytes of process ``pid``."""
        return self.get(pid).size()

    def find_context(self, pid: int, tid: int) -> Context:
        """Return a copy of the execution context of thread ``tid`` of ``pid``."""
        with self._lock:
            process = self.get(pid)
            thread = process._thread(tid)
            return Context(
                pid=pid,
                tid=tid,
                registers=replace(thread.registers),
                base=process.base,
                limit=process.limit,
            )

    def update_context(self, context: Context) -> None:
        """Store the registers of ``context`` in its thread."""
        with self._lock:
            thread = self.get(context.pid)._thread(context.tid)
            thread.registers = replace(context.registers)

    def process_at(self, address: int) -> Optional[Process]:
        """The process whose space holds ``address``, or None."""
        with self._lock:
            for process in self._processes:
                if process.contains(address):
                    return process
        return None

    def instruction(self, pid: int, tid: int, program_counter: int) -> str:
        """The instruction at ``program_counter`` of thread ``tid`` of ``pid``."""
        with self._lock:
            instructions = self.get(pid)._thread(tid).instructions
            if not 0 <= program_counter < len(instructions):
                raise IndexError(
                    f"program counter {program_counter} outside the "
                    f"{len(instructions)} instructions of {pid}:{tid}"
                )
            return instructions[program_counter]