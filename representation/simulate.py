#------------------------------------------------------------------------------
# Forward simulator: adaptive explicit Runge-Kutta integration with diffrax
#
# Two variants share one solver configuration:
#   - simulate(): host-level call returning a dense Trajectory, raises
#     SolverFailure when integration does not succeed
#   - solve_at(): jit-compiled, fixed output shape (len(ts), 2), never raises;
#     returns an `ok` flag instead. This is what the likelihood calls once per
#     posterior evaluation.
#------------------------------------------------------------------------------

import jax
import jax.numpy as jnp
import numpy as np
import diffrax
from dataclasses import dataclass
from functools import partial
from typing import Optional, Tuple

from .lotka_volterra import (
    ArrayLike,
    DEFAULT_TSPAN,
    DEFAULT_U0,
    as_parameter_vector,
    as_state_vector,
    vector_field,
)

_SOLVERS = {
    "tsit5": diffrax.Tsit5,
    "dopri5": diffrax.Dopri5,
    "dopri8": diffrax.Dopri8,
}


@dataclass(frozen=True)
class SolverConfig:
    """ODE solver settings (hashable, so usable as a static jit argument)."""
    rtol: float = 1e-8
    atol: float = 1e-8
    max_steps: int = 4096
    dt0: Optional[float] = None      # None lets the controller pick the first step
    solver: str = "tsit5"

    def __post_init__(self):
        if self.solver not in _SOLVERS:
            raise ValueError(f"unknown solver {self.solver!r}, expected one of {sorted(_SOLVERS)}")
        if self.rtol <= 0 or self.atol <= 0:
            raise ValueError("rtol and atol must be positive")
        if self.max_steps < 1:
            raise ValueError("max_steps must be >= 1")

    def make_solver(self):
        return _SOLVERS[self.solver]()

    def make_controller(self):
        return diffrax.PIDController(rtol=self.rtol, atol=self.atol)


# Tolerances used when fitting: looser than ground-truth generation
INFERENCE_SOLVER = SolverConfig(rtol=1e-3, atol=1e-6)


class SolverFailure(Exception):
    """ODE integration did not succeed (step limit, non-finite state, ...)."""

    def __init__(self, params, result=None, message: str = ""):
        self.params = np.asarray(params)
        self.result = result
        detail = message or "integration did not complete successfully"
        super().__init__(f"{detail} for params={self.params.tolist()}")


def _diffeqsolve(u0, params, t0, t1, saveat, config: SolverConfig):
    return diffrax.diffeqsolve(
        diffrax.ODETerm(vector_field),
        config.make_solver(),
        t0=t0,
        t1=t1,
        dt0=config.dt0,
        y0=u0,
        args=params,
        saveat=saveat,
        stepsize_controller=config.make_controller(),
        max_steps=config.max_steps,
        throw=False,
    )


@partial(jax.jit, static_argnames=("config",))
def _solve_dense(u0, params, t0, t1, config: SolverConfig):
    saveat = diffrax.SaveAt(steps=True, dense=True)
    return _diffeqsolve(u0, params, t0, t1, saveat, config)


@partial(jax.jit, static_argnames=("config",))
def _solve_on_grid(u0, params, t0, ts, config: SolverConfig):
    sol = _diffeqsolve(u0, params, t0, ts[-1], diffrax.SaveAt(ts=ts), config)
    ys = sol.ys
    ok = (sol.result == diffrax.RESULTS.successful) & jnp.all(jnp.isfinite(ys))
    return ys, ok


@dataclass(frozen=True)
class Trajectory:
    """Dense solution of one simulation call; read-only afterwards."""
    solution: diffrax.Solution
    params: jnp.ndarray
    t0: float
    t1: float

    @property
    def ts(self) -> jnp.ndarray:
        """Accepted solver step times (padding removed)."""
        mask = jnp.isfinite(self.solution.ts)
        return self.solution.ts[mask]

    @property
    def ys(self) -> jnp.ndarray:
        """States at the accepted solver steps, shape (n_steps, 2)."""
        mask = jnp.isfinite(self.solution.ts)
        return self.solution.ys[mask]

    def evaluate(self, ts: ArrayLike) -> jnp.ndarray:
        """Interpolate the states at arbitrary times in [t0, t1], shape (len(ts), 2)."""
        ts = jnp.atleast_1d(jnp.asarray(ts, dtype=float))
        if ts.ndim != 1:
            raise ValueError(f"times must be scalar or 1-D, got shape {ts.shape}")
        if bool(jnp.any(ts < self.t0)) or bool(jnp.any(ts > self.t1)):
            raise ValueError(f"evaluation times must lie in [{self.t0}, {self.t1}]")
        return jax.vmap(self.solution.evaluate)(ts)

    def __call__(self, t: float) -> jnp.ndarray:
        return self.evaluate(t)[0]


class ForwardSimulator:
    """
    Integrates the Lotka-Volterra model from a fixed initial state.

    Args:
        u0: Initial (prey, predator) state
        tspan: (t0, t1) integration window
        config: Solver tolerances and method

    Example:
        >>> sim = ForwardSimulator((1.0, 1.0), (0.0, 10.0))
        >>> traj = sim.simulate((1.5, 1.0, 3.0, 1.0))
        >>> traj(5.0).shape
        (2,)
    """

    def __init__(
        self,
        u0: ArrayLike = DEFAULT_U0,
        tspan: Tuple[float, float] = DEFAULT_TSPAN,
        config: Optional[SolverConfig] = None,
    ):
        self.u0 = as_state_vector(u0)
        t0, t1 = float(tspan[0]), float(tspan[1])
        if not t1 > t0:
            raise ValueError(f"tspan must satisfy t0 < t1, got {tspan}")
        self.tspan = (t0, t1)
        self.config = config if config is not None else SolverConfig()

    def simulate(self, params: ArrayLike) -> Trajectory:
        """Integrate over the full tspan; raises SolverFailure on divergence."""
        p = as_parameter_vector(params)
        t0, t1 = self.tspan
        sol = _solve_dense(self.u0, p, t0, t1, self.config)
        if not bool(sol.result == diffrax.RESULTS.successful):
            raise SolverFailure(p, sol.result)
        finite = jnp.isfinite(sol.ts)
        if not bool(jnp.all(jnp.isfinite(sol.ys[finite]))):
            raise SolverFailure(p, sol.result, "non-finite state")
        return Trajectory(solution=sol, params=p, t0=t0, t1=t1)

    def solve_at(self, params, ts) -> Tuple[jnp.ndarray, jnp.ndarray]:
        """
        Fixed-shape solve for use inside traced code.

        `ts` must be increasing and lie in tspan (see validate_time_grid).
        Returns (states of shape (len(ts), 2), ok flag). Never raises on
        solver failure.
        """
        return _solve_on_grid(self.u0, params, self.tspan[0], jnp.asarray(ts, dtype=float), self.config)

    def __repr__(self):
        return f"ForwardSimulator(u0={self.u0.tolist()}, tspan={self.tspan}, config={self.config})"


def simulate(
    u0: ArrayLike,
    tspan: Tuple[float, float],
    params: ArrayLike,
    config: Optional[SolverConfig] = None,
) -> Trajectory:
    """Functional shortcut for ForwardSimulator(u0, tspan, config).simulate(params)."""
    return ForwardSimulator(u0, tspan, config).simulate(params)
