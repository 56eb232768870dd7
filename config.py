# config.py

from dataclasses import dataclass, field, asdict, fields
from typing import Optional
import json
import os

# Define a sensible default for thread count, using system core count
DEFAULT_NUM_WORKERS = max(1, (os.cpu_count() or 2) - 1)

MIN_KERNEL_SIZE = 3
MAX_KERNEL_SIZE = 15
MAX_RADIUS = 200

# --- Data Classes for Operations ---

@dataclass
class NoiseOperation:
    """Parameters for the noise synthesizer."""
    type: str = "gaussian"
    percentage: float = 20

    def __post_init__(self):
        self.type = self.type.lower()
        self.percentage = max(1, min(100, self.percentage))


@dataclass
class SpatialFilterOperation:
    """
    Parameters for a spatial filter. kernel_size is only used by
    average, gaussian, median and canny.
    """
    type: str = "average"
    kernel_size: int = 3

    def __post_init__(self):
        self.type = self.type.lower()
        self.kernel_size = self._ensure_odd_ksize(self.kernel_size)

    def _ensure_odd_ksize(self, ksize: int) -> int:
        ksize = max(MIN_KERNEL_SIZE, min(MAX_KERNEL_SIZE, int(ksize)))
        return ksize if ksize % 2 != 0 else ksize + 1


@dataclass
class FrequencyFilterOperation:
    """Parameters for a radial low/high-pass filter."""
    pass_type: str = "low"
    radius: float = 30

    def __post_init__(self):
        self.pass_type = self.pass_type.lower()
        self.radius = max(1, min(MAX_RADIUS, self.radius))


@dataclass
class HybridOperation:
    """Per-source pass type and radius for hybrid-image composition."""
    mode1: str = "low"
    radius1: float = 30
    mode2: str = "high"
    radius2: float = 30

    def __post_init__(self):
        self.mode1 = self.mode1.lower()
        self.mode2 = self.mode2.lower()
        self.radius1 = max(1, min(MAX_RADIUS, self.radius1))
        self.radius2 = max(1, min(MAX_RADIUS, self.radius2))


_NESTED_OPERATIONS = {
    "noise": NoiseOperation,
    "spatial_filter": SpatialFilterOperation,
    "frequency_filter": FrequencyFilterOperation,
    "hybrid": HybridOperation,
}


@dataclass
class Config:
    """
    Main application configuration.
    Holds the parameters of every operation the runner can dispatch.
    """
    noise: NoiseOperation = field(default_factory=NoiseOperation)
    spatial_filter: SpatialFilterOperation = field(default_factory=SpatialFilterOperation)
    frequency_filter: FrequencyFilterOperation = field(default_factory=FrequencyFilterOperation)
    hybrid: HybridOperation = field(default_factory=HybridOperation)

    thread_count: int = DEFAULT_NUM_WORKERS
    # Empty disables the run log
    log_dir: str = ""
    random_seed: Optional[int] = None

    def __post_init__(self):
        self.thread_count = max(1, int(self.thread_count))

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Config":
        config_instance = cls() # Start with default config instance

        field_map = {f.name: f for f in fields(cls)}

        for key, value in data.items():
            if key not in field_map:
                print(f"Warning: Unrecognized config key '{key}' found in loaded data. Skipping.")
                continue

            if key in _NESTED_OPERATIONS:
                op_cls = _NESTED_OPERATIONS[key]
                if not isinstance(value, dict):
                    print(f"Warning: Expected an object for '{key}', got {type(value).__name__}. Using default.")
                    continue
                # Reconstruct the operation, filtering data to match its fields
                op_field_names = {f.name for f in fields(op_cls)}
                filtered_op_data = {k: v for k, v in value.items() if k in op_field_names}
                try:
                    setattr(config_instance, key, op_cls(**filtered_op_data))
                except (TypeError, ValueError, AttributeError) as e:
                    print(f"Warning: Failed to build '{key}' from {value}. Error: {e}. Using default.")
            else:
                try:
                    if key == "thread_count":
                        value = max(1, int(value))
                    setattr(config_instance, key, value)
                except (TypeError, ValueError) as e:
                    print(f"Warning: Failed to assign value '{value}' to field '{key}'. Error: {e}. Using default.")
        return config_instance

    def save(self, filepath: str):
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=4)

    @classmethod
    def load(cls, filepath: str) -> "Config":
        if not os.path.exists(filepath):
            print(f"Config file not found: {filepath}. Creating default config and saving it.")
            default_config = cls()
            try:
                default_config.save(filepath)
            except OSError as e:
                print(f"Error saving default config to {filepath}: {e}")
            return default_config

        try:
            with open(filepath, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            print(f"Error decoding JSON from config file '{filepath}': {e}. Using default config.")
            return cls()
        except OSError as e:
            print(f"Error reading config file '{filepath}': {e}. Using default config.")
            return cls()

        if not isinstance(data, dict):
            print(f"Error: Config file '{filepath}' does not contain an object. Using default config.")
            return cls()
        return cls.from_dict(data)
