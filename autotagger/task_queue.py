"""Sequential task queue for overlapping I/O-bound and CPU-bound work."""

import logging
import queue
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Placed on the queue by close(); tells the executor to exit
_STOP = object()


class TaskQueue:
    """
    Queue of tasks that run in sequence without blocking the submitter.

    This is most useful for pipelining an I/O-bound step and a CPU-bound step.
    The I/O step runs in a loop on the calling thread, and instead of running
    the CPU-bound step directly it is pushed onto this queue, where it runs once
    the previous CPU-bound task has finished.

    Extracting subtitles is the motivating case: mkvextract is I/O-bound, and
    vobsubocr is CPU-bound and already parallel internally, so OCR jobs must not
    run alongside each other, but extracting the next track barely slows them.

    A single executor thread is started eagerly and consumes the queue until
    close() is called. Tasks run strictly in submission order and never
    overlap. Exceptions raised by a task are logged and otherwise ignored; a
    task that needs to report failure must do so itself.
    """

    def __init__(self, name: str = "task-queue"):
        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()
        self._executor = threading.Thread(target=self._run, name=name, daemon=True)
        self._executor.start()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is _STOP:
                break
            func, args, kwargs = item
            try:
                func(*args, **kwargs)
            except Exception:
                logger.exception(f"Queued task {getattr(func, '__name__', func)!r} failed")
        logger.debug("Task queue executor exiting")

    @property
    def closed(self) -> bool:
        return self._closed

    def add_task(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        """
        Enqueue a task and return immediately.

        The arguments are captured now, so later changes to the caller's
        variables do not affect the task. The return value is discarded.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("Cannot add tasks to a closed TaskQueue")
            self._queue.put((func, args, kwargs))

    def wait_for_queued_tasks(self) -> None:
        """Block until every task submitted before this call has completed."""
        done = threading.Event()
        self.add_task(done.set)
        done.wait()

    def close(self, wait: bool = True) -> None:
        """
        Stop accepting tasks. The executor finishes the tasks already queued and exits.

        Args:
            wait: Block until the executor thread has exited (default: True)
        """
        with self._lock:
            if not self._closed:
                self._closed = True
                self._queue.put(_STOP)
        if wait and threading.current_thread() is not self._executor:
            self._executor.join()

    def __enter__(self) -> "TaskQueue":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
