#------------------------------------------------------------------------------
# Synthetic observations: sample a trajectory on a time grid and add
# i.i.d. Gaussian noise to every coordinate
#------------------------------------------------------------------------------

import jax
import jax.numpy as jnp
import numpy as np
from dataclasses import dataclass
from typing import Optional

from .lotka_volterra import ArrayLike, STATE_NAMES
from .simulate import ForwardSimulator, Trajectory


@dataclass(frozen=True)
class NoisyDataset:
    """
    Observed data shared by every inference backend.

    Attributes:
        time_grid: Observation times, shape (n,)
        values: Noisy states, shape (2, n); column i is the state at time_grid[i]
        sigma: Standard deviation of the injected noise
        seed: Seed used for the noise draw (None if a raw key was supplied)
    """
    time_grid: jnp.ndarray
    values: jnp.ndarray
    sigma: float
    seed: Optional[int] = None

    def __post_init__(self):
        n = self.time_grid.shape[0]
        assert self.values.shape == (len(STATE_NAMES), n), \
            f"values must be ({len(STATE_NAMES)}, {n}), got {self.values.shape}"

    @property
    def n_observations(self) -> int:
        return self.time_grid.shape[0]

    @property
    def observations(self) -> jnp.ndarray:
        """Row-per-time view, shape (n, 2)."""
        return self.values.T


def generate(
    trajectory: Trajectory,
    time_grid: ArrayLike,
    sigma: float = 0.49,
    seed: Optional[int] = 0,
    key: Optional[jax.Array] = None,
) -> NoisyDataset:
    """
    Evaluate a trajectory on `time_grid` and perturb each state coordinate
    with independent Normal(0, sigma) noise.

    Args:
        trajectory: Dense solution to sample from
        time_grid: Observation times inside the trajectory span
        sigma: Noise standard deviation (0 gives the exact states)
        seed: Integer seed for the noise; ignored when `key` is given
        key: Explicit JAX PRNG key

    Returns:
        NoisyDataset with values of shape (2, len(time_grid))
    """
    if sigma < 0:
        raise ValueError(f"sigma must be non-negative, got {sigma}")
    if key is None:
        if seed is None:
            raise ValueError("either seed or key must be given")
        key = jax.random.PRNGKey(seed)
    else:
        seed = None

    ts = jnp.asarray(time_grid, dtype=float)
    clean = trajectory.evaluate(ts).T   # (2, n)
    noise = sigma * jax.random.normal(key, clean.shape, dtype=clean.dtype)
    return NoisyDataset(time_grid=ts, values=clean + noise, sigma=float(sigma), seed=seed)


def generate_from_simulator(
    simulator: ForwardSimulator,
    params: ArrayLike,
    time_grid: ArrayLike,
    sigma: float = 0.49,
    seed: Optional[int] = 0,
) -> NoisyDataset:
    """Simulate ground truth and generate noisy data in one call."""
    return generate(simulator.simulate(params), time_grid, sigma=sigma, seed=seed)


def empirical_noise(dataset: NoisyDataset, trajectory: Trajectory) -> np.ndarray:
    """Residuals between observations and the noiseless trajectory, shape (2, n)."""
    return np.asarray(dataset.values - trajectory.evaluate(dataset.time_grid).T)
