"""
Copyright (c) 2025 Aaron Baca

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

# pipeline_runner.py

"""
Runs configured operations against pixel buffers.
Each operation reads its parameters from the Config, dispatches to the
matching engine and, when a log directory is configured, records the call
and its duration in the run log. Batches of independent buffers are spread
over a thread pool.
"""

import concurrent.futures
import contextlib
import time
from dataclasses import asdict
from typing import Any, List, Optional, Sequence

import numpy as np

import frequency_processor
import noise_generator
import spatial_filters
import tone_processor
from config import Config
from logger import Logger
from pixel_buffer import PixelBuffer, InvalidInputError, to_grayscale

# A reference to the application configuration (will be set externally)
_config_ref: Optional[Config] = None

def set_config_reference(config_instance: Config):
    """Sets the reference to the global Config instance."""
    global _config_ref
    _config_ref = config_instance


class OperationRunner:
    """
    Dispatches named operations to the noise, spatial, tone and frequency engines.
    """
    def __init__(self, config: Optional[Config] = None, logger: Optional[Logger] = None):
        self.config = config or _config_ref or Config()
        if logger is None and self.config.log_dir:
            logger = Logger(self.config.log_dir)
            logger.log_config(self.config)
        self.logger = logger

        self._op_map = {
            "noise": self.apply_noise,
            "spatial_filter": self.apply_spatial_filter,
            "frequency_filter": self.apply_frequency_filter,
            "hybrid": self.apply_hybrid,
            "normalize": self.normalize,
            "equalize": self.equalize,
            "grayscale": self.to_grayscale,
            "histogram": self.histogram,
        }

    @property
    def operation_names(self) -> List[str]:
        return sorted(self._op_map)

    def _timed(self, op_name: str, params: dict, *buffers: PixelBuffer):
        if self.logger is None:
            return contextlib.nullcontext()
        return self.logger.timed(op_name, params, buffers)

    def _rng(self) -> np.random.Generator:
        # A fresh generator per call so no random state carries over
        return np.random.default_rng(self.config.random_seed)

    def _batch_rngs(self, count: int) -> List[np.random.Generator]:
        # Independent child streams, one per batch item
        children = np.random.SeedSequence(self.config.random_seed).spawn(count)
        return [np.random.default_rng(child) for child in children]

    # --- Operations ---

    def apply_noise(self, buffer: PixelBuffer, rng: Optional[np.random.Generator] = None) -> PixelBuffer:
        op = self.config.noise
        with self._timed("noise", asdict(op), buffer):
            return noise_generator.add_noise(buffer, op.type, op.percentage, rng or self._rng())

    def apply_spatial_filter(self, buffer: PixelBuffer) -> PixelBuffer:
        op = self.config.spatial_filter
        with self._timed("spatial_filter", asdict(op), buffer):
            return spatial_filters.apply_spatial_filter(buffer, op.type, op.kernel_size)

    def apply_frequency_filter(self, buffer: PixelBuffer) -> frequency_processor.FrequencyResult:
        op = self.config.frequency_filter
        with self._timed("frequency_filter", asdict(op), buffer):
            return frequency_processor.apply_frequency_filter(buffer, op.pass_type, op.radius)

    def apply_hybrid(self, first: PixelBuffer, second: PixelBuffer) -> PixelBuffer:
        op = self.config.hybrid
        with self._timed("hybrid", asdict(op), first, second):
            return frequency_processor.create_hybrid_image(
                frequency_processor.forward_transform(first),
                frequency_processor.forward_transform(second),
                op.mode1, op.mode2, op.radius1, op.radius2,
            )

    def normalize(self, buffer: PixelBuffer) -> PixelBuffer:
        with self._timed("normalize", {}, buffer):
            return tone_processor.normalize_image(buffer)

    def equalize(self, buffer: PixelBuffer) -> PixelBuffer:
        with self._timed("equalize", {}, buffer):
            return tone_processor.equalize_image(buffer)

    def to_grayscale(self, buffer: PixelBuffer) -> PixelBuffer:
        with self._timed("grayscale", {}, buffer):
            return to_grayscale(buffer)

    def histogram(self, buffer: PixelBuffer) -> tone_processor.Histogram:
        with self._timed("histogram", {}, buffer):
            return tone_processor.compute_histogram(buffer)

    # --- Dispatch ---

    def run(self, op_name: str, *buffers: PixelBuffer) -> Any:
        op_func = self._op_map.get(op_name)
        if op_func is None:
            raise InvalidInputError(f"Unknown operation '{op_name}'. Expected one of {self.operation_names}.")
        return op_func(*buffers)

    def run_batch(self, op_name: str, inputs: Sequence) -> List[Any]:
        """
        Runs one operation over many independent inputs on a thread pool.

        Args:
            op_name (str): Name of the operation to run.
            inputs (Sequence): PixelBuffers, or tuples of buffers for multi-input
                               operations such as 'hybrid'.

        Returns:
            List[Any]: Results in input order. The first failure is re-raised.
            Noise batches draw each item from its own child seed, so a seeded
            batch is repeatable without every item getting the same pattern.
        """
        if op_name not in self._op_map:
            raise InvalidInputError(f"Unknown operation '{op_name}'. Expected one of {self.operation_names}.")

        def _task(item):
            args = item if isinstance(item, tuple) else (item,)
            return self.run(op_name, *args)

        start = time.perf_counter()
        with concurrent.futures.ThreadPoolExecutor(max_workers=self.config.thread_count) as executor:
            if op_name == "noise":
                results = list(executor.map(self.apply_noise, inputs, self._batch_rngs(len(inputs))))
            else:
                results = list(executor.map(_task, inputs))
        if self.logger is not None:
            self.logger.log_batch(op_name, len(results), time.perf_counter() - start)
        return results

    def close(self):
        if self.logger is not None:
            self.logger.log_total_time()
