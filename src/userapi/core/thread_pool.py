"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Each accepted connection becomes one job. A small set of worker threads
takes jobs off a bounded queue, so a burst of clients cannot spawn an
unbounded number of threads.

    accept loop                     bounded queue              workers
    ───────────                     ─────────────              ───────
    submit(conn) ──► put() ──► [ j5 | j4 | j3 ] ──► get() ──► Worker-0 (busy)
                                                      └──────► Worker-1 (busy)
                                                      └──────► Worker-2 (idle)

    queue full      → submit() returns False, the caller answers 503
    every worker busy with jobs still waiting
                    → one more worker, up to max_workers
    shutdown()      → optional drain, then one STOP marker per worker

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

# Queued in place of a job to tell one worker to exit.
STOP = None


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Job:
    """func(*args, **kwargs), queued at submitted_at."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)

    def __call__(self) -> Any:
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """
    Runs jobs until it dequeues STOP or its stop flag is set.

    A job that raises is logged and counted; the worker keeps going.
    """

    def __init__(self, jobs: queue.Queue, number: int, poll_interval: float = 60.0):
        super().__init__(name=f"Worker-{number}", daemon=True)
        self.jobs = jobs
        self.number = number
        self.poll_interval = poll_interval
        self.state = WorkerState.IDLE
        self.completed = 0
        self.failed = 0
        self._stopping = threading.Event()

    def run(self):
        logger.debug(f"{self.name} started")

        while not self._stopping.is_set():
            try:
                job = self.jobs.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            if job is STOP:
                self.jobs.task_done()
                break

            try:
                self._run_job(job)
            finally:
                self.jobs.task_done()

        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} stopped after {self.completed} jobs")

    def _run_job(self, job: Job):
        self.state = WorkerState.BUSY
        waited = time.monotonic() - job.submitted_at
        if waited > 1.0:
            logger.debug(f"{self.name} picked up a job queued {waited:.2f}s ago")

        try:
            job()
        except Exception as e:
            self.failed += 1
            logger.exception(f"{self.name} job failed: {e}")
        else:
            self.completed += 1
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stopping.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(handle_connection, args=(conn,), block=False)
        pool.shutdown(wait=True, timeout=5)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue_size = queue_size
        self.idle_timeout = idle_timeout

        self._jobs: "queue.Queue[Optional[Job]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._running = False
        self._closing = False
        self._spawned = 0

    @property
    def running(self) -> bool:
        return self._running and not self._closing

    def start(self):
        with self._lock:
            if self._running:
                return
            self._closing = False
            for _ in range(self.min_workers):
                self._spawn_locked()
            self._running = True

        logger.info(f"Thread pool started: {self.min_workers}-{self.max_workers} workers, "
                    f"queue of {self.max_queue_size}")

    def _spawn_locked(self) -> Worker:
        """Start one more worker. Caller holds self._lock."""
        worker = Worker(self._jobs, self._spawned, poll_interval=self.idle_timeout)
        self._spawned += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        block: bool = True,
        queue_timeout: Optional[float] = None
    ) -> bool:
        """
        Queue func(*args, **kwargs).

        Returns:
            True once queued, False when the queue stayed full.

        Raises:
            RuntimeError: The pool is not started or is shutting down.
        """
        if not self.running:
            state = "shutting down" if self._closing else "not started"
            raise RuntimeError(f"Thread pool {state}")

        try:
            self._jobs.put(Job(func, args, kwargs or {}), block=block, timeout=queue_timeout)
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        with self._lock:
            saturated = all(w.state == WorkerState.BUSY for w in self._workers)
            if saturated and len(self._workers) < self.max_workers and not self._jobs.empty():
                worker = self._spawn_locked()
                logger.debug(f"All workers busy, started {worker.name} ({len(self._workers)} total)")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop every worker.

        Args:
            wait: Give queued jobs a chance to run first.
            timeout: Seconds to wait for the queue to drain.
        """
        if not self._running:
            return

        logger.info("Shutting down thread pool...")
        self._closing = True

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._jobs.empty():
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning(f"{self._jobs.qsize()} jobs still queued at shutdown")
                    break
                time.sleep(0.1)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for worker in workers:
            worker.stop()
            try:
                self._jobs.put_nowait(STOP)
            except queue.Full:
                pass
        for worker in workers:
            worker.join(timeout=2.0)

        self._running = False
        logger.info(f"Thread pool stopped: {self._summary(workers)}")

    @staticmethod
    def _summary(workers: List[Worker]) -> str:
        completed = sum(w.completed for w in workers)
        failed = sum(w.failed for w in workers)
        return f"{completed} jobs completed, {failed} failed"

    @property
    def stats(self) -> dict:
        """Worker and job counters."""
        return {
            "workers": {
                "total": len(self._workers),
                "busy": sum(1 for w in self._workers if w.state == WorkerState.BUSY),
                "idle": sum(1 for w in self._workers if w.state == WorkerState.IDLE),
            },
            "jobs": {
                "queued": self._jobs.qsize(),
                "completed": sum(w.completed for w in self._workers),
                "failed": sum(w.failed for w in self._workers),
            },
        }
