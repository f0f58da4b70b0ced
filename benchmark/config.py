#------------------------------------------------------------------------------
# Fixed configuration of the predator-prey benchmark experiment
#------------------------------------------------------------------------------

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Tuple

from representation import (
    DEFAULT_TSPAN,
    DEFAULT_U0,
    INFERENCE_SOLVER,
    TRUE_PARAMS,
    SolverConfig,
    default_time_grid,
)
from samplers import SamplerConfig
from scoring import PriorSet

BACKEND_ORDER: Tuple[str, ...] = ("numpyro", "blackjax", "stan")


@dataclass
class BenchmarkConfig:
    """Configuration for one benchmark run (data generation + all backends)."""
    u0: Tuple[float, float] = DEFAULT_U0
    tspan: Tuple[float, float] = DEFAULT_TSPAN
    true_params: Tuple[float, ...] = TRUE_PARAMS
    time_grid: np.ndarray = field(default_factory=default_time_grid)
    noise_sigma: float = 0.49        # Observation noise std
    data_seed: int = 0               # Seed for the noise draw
    num_samples: int = 10_000        # Post-warmup draws per chain, every backend
    backends: Tuple[str, ...] = BACKEND_ORDER
    data_solver: SolverConfig = field(default_factory=SolverConfig)
    inference_solver: SolverConfig = INFERENCE_SOLVER
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    priors: Optional[PriorSet] = None   # None -> default_priors()
    output_file: Optional[str] = None   # HDF5 path for the full report

    def __post_init__(self):
        if self.num_samples < 1:
            raise ValueError("num_samples must be >= 1")
        if self.noise_sigma < 0:
            raise ValueError("noise_sigma must be non-negative")
        self.time_grid = np.asarray(self.time_grid, dtype=float)
