"""
=============================================================================
CONNECTION THREAD POOL
=============================================================================

Bounded pool of worker threads that serve accepted connections.

=============================================================================
DESIGN
=============================================================================

    accept loop ──submit(job)──▶ ┌──────────────────┐
                                 │  queue.Queue     │  bounded: when full,
                                 │  (max_queue_size)│  submit() returns False
                                 └────────┬─────────┘  and the server answers 503
                                          │ get()
                     ┌────────────────────┼────────────────────┐
                     ▼                    ▼                    ▼
                 Worker-0             Worker-1     ...     Worker-N
                 (min_workers at start, grown on demand up to max_workers)

A connection occupies its worker for its whole life: reading requests,
resolving them, and streaming the bodies with blocking sendall(). Slow
clients therefore consume workers, not memory.

A job that waited in the queue longer than its `timeout` is not run; its
`on_expired` callback runs instead, so the server can still answer 503 and
close the socket rather than leak it.

Shutdown puts one None ("poison pill") per worker on the queue. Exceptions
inside a job are logged and the worker carries on.

Bundle stat() fan-out does NOT run here. It has its own executor in the
resolver, so a worker never waits on a pool it is itself part of.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """One queued call, usually "serve this connection"."""

    func: Callable[..., Any]
    args: tuple = ()
    timeout: Optional[float] = None
    on_expired: Optional[Callable[[], None]] = None
    queued_at: float = field(default_factory=time.monotonic)

    @property
    def waited(self) -> float:
        return time.monotonic() - self.queued_at

    @property
    def expired(self) -> bool:
        return self.timeout is not None and self.waited > self.timeout


class Worker(threading.Thread):
    """Takes jobs off the shared queue until it receives None."""

    def __init__(self, jobs: "queue.Queue[Optional[Job]]", index: int):
        super().__init__(name=f"conn-worker-{index}", daemon=True)
        self.jobs = jobs
        self.state = WorkerState.IDLE
        self.served = 0
        self.failed = 0

    def run(self) -> None:
        while True:
            job = self.jobs.get()
            try:
                if job is None:
                    break
                self._run_job(job)
            finally:
                self.jobs.task_done()
        self.state = WorkerState.STOPPED

    def _run_job(self, job: Job) -> None:
        if job.expired:
            logger.warning("Job expired after %.2fs in the queue", job.waited)
            self.failed += 1
            if job.on_expired is not None:
                self._guarded(job.on_expired)
            return

        self.state = WorkerState.BUSY
        try:
            if self._guarded(job.func, *job.args):
                self.served += 1
            else:
                self.failed += 1
        finally:
            self.state = WorkerState.IDLE

    def _guarded(self, func: Callable[..., Any], *args) -> bool:
        try:
            func(*args)
            return True
        except Exception:
            logger.exception("%s: job %r failed", self.name, func)
            return False


class ThreadPool:
    """
    Connection worker pool.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(serve, args=(conn,), timeout=30, on_expired=conn.close):
            ...  # queue full: refuse the connection
        pool.shutdown()

    submit() never blocks: the accept loop must keep accepting even when
    every worker is busy.
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        max_queue_size: int = 100,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = max_queue_size

        self._jobs: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=max_queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            for _ in range(self.min_workers):
                self._add_worker()
            self._running = True
        logger.info("Thread pool started with %d workers", self.min_workers)

    def _add_worker(self) -> None:
        # Caller holds self._lock
        worker = Worker(self._jobs, len(self._workers))
        self._workers.append(worker)
        worker.start()

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        timeout: Optional[float] = None,
        on_expired: Optional[Callable[[], None]] = None,
    ) -> bool:
        """
        Queue `func(*args)`.

        Args:
            timeout: Longest the job may wait in the queue before it is
                given up on and `on_expired` runs instead
            on_expired: Called (on a worker thread) for an expired job

        Returns:
            True if queued, False if the queue is full

        Raises:
            RuntimeError: If the pool is not running
        """
        if not self._running:
            raise RuntimeError("Thread pool is not running")

        try:
            self._jobs.put_nowait(Job(func, args, timeout, on_expired))
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self) -> None:
        with self._lock:
            if len(self._workers) >= self.max_workers or self._jobs.empty():
                return
            if any(w.state is WorkerState.IDLE for w in self._workers):
                return
            self._add_worker()
            logger.debug("Thread pool grown to %d workers", len(self._workers))

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop the workers.

        Args:
            wait: Let queued and running jobs finish first
            timeout: Upper bound on that wait, in seconds
        """
        with self._lock:
            if not self._running:
                return
            self._running = False
            workers = list(self._workers)
            self._workers.clear()

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while self._jobs.unfinished_tasks:
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Thread pool shutdown timed out with jobs pending")
                    break
                time.sleep(0.05)

        # The pills may queue behind unfinished jobs; the threads are daemons
        for _ in workers:
            try:
                self._jobs.put_nowait(None)
            except queue.Full:
                break
        for worker in workers:
            worker.join(timeout=2.0)

        logger.info("Thread pool stopped")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state is WorkerState.BUSY)

    @property
    def queued(self) -> int:
        return self._jobs.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "queued": self.queued,
            "served": sum(w.served for w in self._workers),
            "failed": sum(w.failed for w in self._workers),
        }
