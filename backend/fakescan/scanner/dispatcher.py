# fakescan/scanner/dispatcher.py
"""
Worker dispatcher: a fixed pool of daemon threads draining one bounded
FIFO queue.

    dispatcher = Dispatcher(workers=4)          # queue depth 4 * 5 = 20
    dispatcher.start()
    dispatcher.dispatch(lambda: do_work())      # returns immediately

`dispatch()` never blocks: when the queue is full it raises
QueueSaturatedError and the job is not accepted. A job that raises is
logged and the worker moves on to the next one.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Callable, List, Optional

from fakescan.errors import QueueSaturatedError

logger = logging.getLogger(__name__)

QUEUE_DEPTH_PER_WORKER = 5

Job = Callable[[], None]

_STOP = object()


class Dispatcher:

    def __init__(self, workers: int, queue_size: Optional[int] = None, name: str = "scan-worker"):
        if workers <= 0:
            raise ValueError(f"workers must be larger than 0, got {workers}")
        self.workers = workers
        self.queue_size = queue_size if queue_size is not None else workers * QUEUE_DEPTH_PER_WORKER
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=self.queue_size)
        self._threads: List[threading.Thread] = []
        self._name = name
        self._lock = threading.Lock()
        # set when stop() gives up on draining; workers exit after their current job
        self._abandon = threading.Event()

    @property
    def running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    def pending(self) -> int:
        """Approximate number of queued jobs not yet picked by a worker."""
        return self._queue.qsize()

    def start(self) -> None:
        with self._lock:
            if self._threads:
                logger.warning("Dispatcher already started")
                return
            self._abandon.clear()
            for i in range(self.workers):
                t = threading.Thread(target=self._loop, daemon=True, name=f"{self._name}-{i}")
                t.start()
                self._threads.append(t)
        logger.info(f"Dispatcher started with {self.workers} workers, queue size {self.queue_size}")

    def dispatch(self, job: Job) -> None:
        try:
            self._queue.put_nowait(job)
        except queue.Full:
            logger.warning(f"Job queue is full ({self.queue_size} pending), rejecting job")
            raise QueueSaturatedError(
                f"scan queue is full ({self.queue_size} pending jobs), try again later"
            ) from None

    def stop(self, timeout: Optional[float] = 10) -> None:
        """
        Stop the workers after the jobs already queued have run.
        Blocks until every worker exits or the timeout elapses.

        If the queue stays full until the timeout, queued jobs that have not
        started are dropped and each worker exits once its current job returns.
        """
        with self._lock:
            threads, self._threads = self._threads, []
        deadline = None if timeout is None else time.monotonic() + timeout

        def remaining() -> Optional[float]:
            return None if deadline is None else max(0.0, deadline - time.monotonic())

        try:
            for _ in threads:
                self._queue.put(_STOP, timeout=remaining())
        except queue.Full:
            logger.warning(f"Job queue still full after {timeout}s, dropping queued jobs")
            self._abandon.set()

        for t in threads:
            t.join(timeout=remaining())
        logger.info("Dispatcher stopped")

    def _loop(self) -> None:
        while True:
            job = self._queue.get()
            try:
                if job is _STOP or self._abandon.is_set():
                    return
                job()
            except Exception:
                logger.exception("Dispatched job failed")
            finally:
                self._queue.task_done()
