"""
Fixed-size worker pool running the per-photo pipeline.
"""

import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Callable, Iterable, Optional

from tqdm import tqdm

DEFAULT_WORKERS = 4


class WorkerPool:
    """
    Runs a task for every queued photo on a fixed number of threads.

    Workers pull paths from one shared queue until it is empty. The task is
    expected to handle per-photo failures itself; any exception escaping it
    is treated as fatal. The failing worker sets the stop flag before the
    error leaves its thread, so no other worker picks up a new photo; the
    pool waits for in-flight photos to finish and re-raises the error.
    """

    def __init__(self, task: Callable[[Path], object], workers: int = DEFAULT_WORKERS,
                 progress_bar: Optional[tqdm] = None):
        """
        Initialize the worker pool.

        Args:
            task: Callable processing a single photo
            workers: Number of worker threads
            progress_bar: Optional progress bar advanced once per photo
        """
        if workers < 1:
            raise ValueError(f"Worker count must be at least 1, got {workers}")

        self.logger = logging.getLogger(__name__)
        self.task = task
        self.workers = workers
        self.progress_bar = progress_bar
        self._progress_lock = threading.Lock()

    def run(self, paths: Iterable[Path]) -> int:
        """
        Process every path and wait for all workers to finish.

        Args:
            paths: Photos to process

        Returns:
            Number of photos handed to the task
        """
        work_queue: "queue.Queue[Path]" = queue.Queue()
        for path in paths:
            work_queue.put(path)
        total = work_queue.qsize()

        stop = threading.Event()
        processed = [0] * self.workers
        first_error: Optional[BaseException] = None

        self.logger.info(f"Processing {total} photos with {self.workers} workers")
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="sorter") as executor:
            futures = [
                executor.submit(self._work, work_queue, stop, processed, index)
                for index in range(self.workers)
            ]
            for future in as_completed(futures):
                error = future.exception()
                if error is not None and first_error is None:
                    self.logger.error(f"Stopping workers after fatal error: {error}")
                    stop.set()
                    first_error = error

        if first_error is not None:
            raise first_error

        return sum(processed)

    def _work(self, work_queue: "queue.Queue[Path]", stop: threading.Event,
              processed: list, index: int):
        while not stop.is_set():
            try:
                path = work_queue.get_nowait()
            except queue.Empty:
                return
            try:
                self.task(path)
                processed[index] += 1
            except BaseException:
                stop.set()
                raise
            finally:
                work_queue.task_done()
                self._advance_progress()

    def _advance_progress(self):
        if self.progress_bar is None:
            return
        with self._progress_lock:
            self.progress_bar.update(1)
