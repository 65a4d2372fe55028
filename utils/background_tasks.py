"""
Background tasks for HF Band Simulation.
Runs the periodic propagation update on its own scheduler thread.
"""

import time
import threading
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TaskManager:
    """Manages background tasks with scheduling and monitoring."""

    def __init__(self, tick_seconds: float = 1.0):
        self.tasks = {}
        self.running = False
        self.thread: Optional[threading.Thread] = None
        self.lock = threading.Lock()
        self.tick_seconds = tick_seconds
        self._stop_event = threading.Event()

    def add_task(self, name: str, task_func: Callable, interval_seconds: float = 300):
        """Add a new background task."""
        with self.lock:
            self.tasks[name] = {
                'func': task_func,
                'interval': interval_seconds,
                'last_run': None,
                'next_run': time.time() + interval_seconds,
                'running': False,
                'runs': 0,
                'errors': 0,
                'last_error': None
            }
            logger.info(f"Added task: {name} (interval: {interval_seconds}s)")

    def remove_task(self, name: str):
        """Remove a background task."""
        with self.lock:
            if name in self.tasks:
                del self.tasks[name]
                logger.info(f"Removed task: {name}")

    def set_interval(self, name: str, interval_seconds: float):
        """Change a task interval; the next run is rescheduled from now."""
        with self.lock:
            task_info = self.tasks.get(name)
            if task_info is None:
                raise KeyError(name)
            task_info['interval'] = interval_seconds
            task_info['next_run'] = time.time() + interval_seconds

    def start_all(self):
        """Start all background tasks."""
        with self.lock:
            if self.running:
                logger.warning("Task manager already running")
                return

            self.running = True
            self._stop_event.clear()
            self.thread = threading.Thread(target=self._run_scheduler, name='propagation-scheduler', daemon=True)
            self.thread.start()
            logger.info("Task manager started")

    def stop_all(self):
        """Stop all background tasks."""
        with self.lock:
            self.running = False
            self._stop_event.set()
            thread = self.thread
            self.thread = None

        if thread and thread is not threading.current_thread():
            thread.join(timeout=5)
        logger.info("Task manager stopped")

    def _run_scheduler(self):
        """Main scheduler loop."""
        while not self._stop_event.is_set():
            try:
                current_time = time.time()
                due = []

                with self.lock:
                    for name, task_info in self.tasks.items():
                        if not task_info['running'] and current_time >= task_info['next_run']:
                            task_info['running'] = True
                            task_info['next_run'] = current_time + task_info['interval']
                            due.append((name, task_info))

                for name, task_info in due:
                    # Run task in separate thread to avoid blocking the scheduler
                    threading.Thread(
                        target=self._run_task,
                        args=(name, task_info),
                        daemon=True
                    ).start()

                self._stop_event.wait(self.tick_seconds)

            except Exception as e:
                logger.error(f"Error in scheduler loop: {e}")
                self._stop_event.wait(5)

    def _run_task(self, name: str, task_info: dict):
        """Run a single task with error handling."""
        start_time = time.time()
        try:
            task_info['func']()

            with self.lock:
                task_info['last_run'] = time.time()
                task_info['runs'] += 1
                task_info['last_error'] = None

            logger.debug(f"Task {name} completed in {time.time() - start_time:.2f}s")

        except Exception as e:
            logger.error(f"Error running task {name}: {e}")

            with self.lock:
                task_info['errors'] += 1
                task_info['last_error'] = str(e)

        finally:
            with self.lock:
                task_info['running'] = False

    def run_now(self, name: str):
        """Run a task synchronously on the calling thread."""
        with self.lock:
            task_info = self.tasks.get(name)
            if task_info is None:
                raise KeyError(name)
            task_info['running'] = True
        self._run_task(name, task_info)

    def get_status(self) -> dict:
        """Get status of all tasks."""
        with self.lock:
            status = {
                'running': self.running,
                'tasks': {}
            }

            for name, task_info in self.tasks.items():
                status['tasks'][name] = {
                    'interval': task_info['interval'],
                    'last_run': task_info['last_run'],
                    'next_run': task_info['next_run'],
                    'runs': task_info['runs'],
                    'errors': task_info['errors'],
                    'last_error': task_info['last_error']
                }

            return status
