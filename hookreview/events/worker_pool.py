import queue
import threading
from typing import Any, Callable, List, Optional

from hookreview.core.exceptions import QueueFullError
from hookreview.utils.logger import logger

_STOP = object()


class ReviewWorkerPool:
    """Fixed set of threads consuming a bounded in-process queue.

    ``submit`` never blocks: a full queue is reported to the caller. Shutting
    down with ``drain=True`` lets the workers finish every queued job first.
    """

    def __init__(
        self,
        handler: Callable[[Any], None],
        worker_count: int = 2,
        max_size: int = 100,
    ):
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        self.handler = handler
        self.worker_count = worker_count
        self._queue: "queue.Queue[Any]" = queue.Queue(maxsize=max_size)
        self._threads: List[threading.Thread] = []
        self._accepting = False
        self._lock = threading.Lock()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        with self._lock:
            if self._threads:
                return
            for index in range(self.worker_count):
                thread = threading.Thread(
                    target=self._run, name=f"review-worker-{index}", daemon=True
                )
                thread.start()
                self._threads.append(thread)
            self._accepting = True
        logger.info(f"Started {self.worker_count} review workers.")

    def submit(self, item: Any) -> None:
        if not self._accepting:
            raise QueueFullError("Review queue is not accepting work")
        try:
            self._queue.put_nowait(item)
        except queue.Full:
            raise QueueFullError(
                f"Review queue is full ({self._queue.maxsize} pending jobs)"
            )

    def shutdown(self, drain: bool = True, timeout: Optional[float] = None) -> None:
        with self._lock:
            self._accepting = False
            threads, self._threads = self._threads, []

        if not drain:
            dropped = 0
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
                self._queue.task_done()
                dropped += 1
            if dropped:
                logger.warning(f"Dropped {dropped} queued reviews on shutdown.")

        for _ in threads:
            self._queue.put(_STOP)
        for thread in threads:
            thread.join(timeout)
        logger.info("Review workers stopped.")

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self.handler(item)
            except Exception as e:
                # One failed job must not take the worker down with it.
                logger.exception(f"Review job failed: {e}")
            finally:
                self._queue.task_done()
