#------------------------------------------------------------------------------
# Lotka-Volterra predator-prey vector field
#   dx/dt =  a*x - b*x*y      (prey)
#   dy/dt = -c*y + d*x*y      (predator)
#------------------------------------------------------------------------------

import jax.numpy as jnp
import numpy as np
from typing import Sequence, Tuple, Union

PARAMETER_NAMES: Tuple[str, ...] = ("a", "b", "c", "d")
STATE_NAMES: Tuple[str, ...] = ("prey", "predator")
NOISE_NAME = "sigma"

# Ground truth of the benchmark experiment
TRUE_PARAMS: Tuple[float, ...] = (1.5, 1.0, 3.0, 1.0)
DEFAULT_U0: Tuple[float, float] = (1.0, 1.0)
DEFAULT_TSPAN: Tuple[float, float] = (0.0, 10.0)

ArrayLike = Union[jnp.ndarray, np.ndarray, Sequence[float]]


def lotka_volterra(state, params, t):
    """Time derivative of (prey, predator) under rate constants (a, b, c, d).

    No domain restriction is applied: negative populations and negative rates
    are evaluated as written.
    """
    x, y = state[0], state[1]
    a, b, c, d = params[0], params[1], params[2], params[3]
    dx_dt = a * x - b * x * y
    dy_dt = -c * y + d * x * y
    return jnp.stack([dx_dt, dy_dt])


def vector_field(t, y, args):
    """diffrax-compatible signature f(t, y, args)."""
    return lotka_volterra(y, args, t)


def as_parameter_vector(params: ArrayLike) -> jnp.ndarray:
    """Validate and convert to a (4,) float array."""
    p = jnp.asarray(params, dtype=float)
    if p.shape != (len(PARAMETER_NAMES),):
        raise ValueError(
            f"parameter vector must have shape ({len(PARAMETER_NAMES)},), got {p.shape}"
        )
    return p


def as_state_vector(state: ArrayLike) -> jnp.ndarray:
    """Validate and convert to a (2,) float array."""
    u = jnp.asarray(state, dtype=float)
    if u.shape != (len(STATE_NAMES),):
        raise ValueError(f"state vector must have shape ({len(STATE_NAMES)},), got {u.shape}")
    return u


def validate_time_grid(time_grid: ArrayLike, tspan: Tuple[float, float]) -> np.ndarray:
    """Check that a time grid is 1-D, strictly increasing and inside (t0, t1]."""
    ts = np.asarray(time_grid, dtype=float)
    t0, t1 = float(tspan[0]), float(tspan[1])
    if ts.ndim != 1 or ts.size == 0:
        raise ValueError(f"time grid must be a non-empty 1-D sequence, got shape {ts.shape}")
    if np.any(np.diff(ts) <= 0):
        raise ValueError("time grid must be strictly increasing")
    if ts[0] <= t0 or ts[-1] > t1:
        raise ValueError(f"time grid [{ts[0]}, {ts[-1]}] must lie in ({t0}, {t1}]")
    return ts


def default_time_grid() -> np.ndarray:
    """Observation times 1, 2, ..., 10."""
    return np.arange(1.0, 11.0)
