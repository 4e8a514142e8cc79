"""
Single place for scheduling: in-memory timers and one-off background jobs.
Results of background jobs go onto result_queue for the UI thread to drain.
"""
import logging
import threading
from datetime import datetime
from queue import Queue
from threading import Timer
from typing import Any, Callable, Dict


class TaskManager:
    def __init__(self):
        self.tasks: Dict[str, Timer] = {}
        self.result_queue = Queue()
        self.logger = logging.getLogger("TaskManager")

    def schedule_task(self, name: str, callback: Callable, delay: float) -> None:
        """Schedule a one-time task to run after delay seconds. Re-arms by calling this again."""
        try:
            self.logger.info(f"Scheduling task {name} with delay {delay} seconds")
            if name in self.tasks:
                self.logger.info(f"Cancelling existing task {name}")
                self.tasks[name].cancel()

            scheduled_time = datetime.now().timestamp() + delay
            timer = Timer(delay, self._run_task, args=(name, callback))
            timer.daemon = True

            self.tasks[name] = timer
            timer.start()
            self.logger.info(f"Timer started for {name}, scheduled for {datetime.fromtimestamp(scheduled_time)}")
        except Exception as e:
            self.logger.error(f"Error scheduling task {name}: {e}")

    def _run_task(self, name: str, callback: Callable) -> None:
        try:
            callback()
        except Exception as e:
            self.logger.error(f"Error running task {name}: {e}")
        finally:
            # The callback may have re-armed a new timer under the same name
            if self.tasks.get(name) is threading.current_thread():
                del self.tasks[name]

    def run_in_background(self, name: str, job: Callable[[], Any]) -> threading.Thread:
        """Run job on a worker thread and put (name, result) on result_queue when done.
        A failing job is logged and reported as (name, None)."""
        def worker():
            result = None
            try:
                result = job()
            except Exception as e:
                self.logger.exception(f"Background job {name} failed: {e}")
            finally:
                self.result_queue.put((name, result))

        thread = threading.Thread(target=worker, name=f"job-{name}", daemon=True)
        thread.start()
        self.logger.debug(f"Background job {name} started")
        return thread

    def cancel_task(self, name: str) -> None:
        timer = self.tasks.pop(name, None)
        if timer:
            timer.cancel()

    def stop(self) -> None:
        """Stop all scheduled tasks."""
        for task in self.tasks.values():
            task.cancel()
        self.tasks.clear()
