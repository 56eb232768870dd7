# logger.py

"""
Run log for the operation runner. Every run gets its own timestamped file
under the log directory; each line is prefixed with a millisecond timestamp.
"""

import os
import datetime
import json
import threading
import time
from contextlib import contextmanager

class Logger:
    def __init__(self, log_dir="logs"):
        os.makedirs(log_dir, exist_ok=True)

        self.run_timestamp = datetime.datetime.now().strftime("%Y%m%d-%H%M%S-%f")
        self.log_filepath = os.path.join(log_dir, f"run-{self.run_timestamp}.log")
        self.start_time = datetime.datetime.now()
        # Batch workers share one file
        self._lock = threading.Lock()

    def _write(self, message: str):
        with self._lock:
            with open(self.log_filepath, 'a', encoding='utf-8') as f:
                f.write(message + '\n')

    def log(self, message: str):
        stamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        self._write(f"[{stamp}] {message}")

    def log_config(self, config_obj):
        self.log("Starting run with the following configuration:")
        try:
            self._write(json.dumps(config_obj.to_dict(), indent=2))
        except (TypeError, ValueError, AttributeError) as e:
            self.log(f"Could not serialize config object: {e}")
        self.log("-" * 20)

    @contextmanager
    def timed(self, op_name: str, params: dict, buffers):
        """Logs op_name, its parameters, the input sizes and the elapsed time on exit."""
        sizes = ", ".join(f"{b.width}x{b.height}" for b in buffers)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            self.log(f"{op_name} on [{sizes}] failed: {e}")
            raise
        self.log(f"{op_name} on [{sizes}] with {json.dumps(params)} took {time.perf_counter() - start:.3f}s")

    def log_batch(self, op_name: str, count: int, elapsed_seconds: float):
        self.log(f"Batch '{op_name}' of {count} input(s) took {elapsed_seconds:.3f}s")

    def log_total_time(self):
        duration = datetime.datetime.now() - self.start_time
        self.log(f"Total execution time: {duration}")
