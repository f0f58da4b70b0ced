#------------------------------------------------------------------------------
# Tests for the Lotka-Volterra model and the forward simulator
#------------------------------------------------------------------------------

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from representation import (
    TRUE_PARAMS,
    ForwardSimulator,
    SolverConfig,
    SolverFailure,
    lotka_volterra,
    simulate,
    validate_time_grid,
    default_time_grid,
)

UNSTABLE_PARAMS = (1.5, -1.0, -3.0, 1.0)   # both populations feed each other: finite-time blow-up


@pytest.fixture(scope="module")
def simulator():
    return ForwardSimulator((1.0, 1.0), (0.0, 10.0))


class TestVectorField:

    def test_known_value(self):
        du = lotka_volterra(jnp.array([1.0, 1.0]), jnp.array(TRUE_PARAMS), 0.0)
        # a - b = 0.5, -c + d = -2
        assert jnp.allclose(du, jnp.array([0.5, -2.0]))

    def test_time_independent(self):
        u = jnp.array([2.0, 0.5])
        p = jnp.array(TRUE_PARAMS)
        assert jnp.allclose(lotka_volterra(u, p, 0.0), lotka_volterra(u, p, 7.3))

    def test_negative_state_is_evaluated(self):
        du = lotka_volterra(jnp.array([-1.0, 2.0]), jnp.array(TRUE_PARAMS), 0.0)
        # -1.5 + 2 = 0.5, -6 - 2 = -8
        assert jnp.allclose(du, jnp.array([0.5, -8.0]))

    def test_fixed_point(self):
        # (c/d, a/b) is an equilibrium
        a, b, c, d = TRUE_PARAMS
        du = lotka_volterra(jnp.array([c / d, a / b]), jnp.array(TRUE_PARAMS), 0.0)
        assert jnp.allclose(du, 0.0)

    def test_jit_and_grad(self):
        f = jax.jit(lambda p: jnp.sum(lotka_volterra(jnp.array([1.0, 1.0]), p, 0.0)))
        g = jax.grad(f)(jnp.array(TRUE_PARAMS))
        # d/dp of (a*x - b*x*y) + (-c*y + d*x*y) at x=y=1
        assert jnp.allclose(g, jnp.array([1.0, -1.0, -1.0, 1.0]))


class TestForwardSimulator:

    def test_deterministic(self, simulator):
        t = jnp.linspace(0.0, 10.0, 37)
        y1 = simulator.simulate(TRUE_PARAMS).evaluate(t)
        y2 = simulator.simulate(TRUE_PARAMS).evaluate(t)
        assert jnp.allclose(y1, y2, rtol=1e-8, atol=1e-8)

    def test_initial_state(self, simulator):
        traj = simulator.simulate(TRUE_PARAMS)
        assert jnp.allclose(traj(0.0), jnp.array([1.0, 1.0]), atol=1e-10)

    def test_dense_output_between_steps(self, simulator):
        traj = simulator.simulate(TRUE_PARAMS)
        t_mid = float(0.5 * (traj.ts[3] + traj.ts[4]))
        y_mid = traj(t_mid)
        # a fresh solve ending exactly at t_mid agrees with the interpolant
        y_ref = ForwardSimulator((1.0, 1.0), (0.0, t_mid)).simulate(TRUE_PARAMS)(t_mid)
        assert jnp.allclose(y_mid, y_ref, rtol=1e-5, atol=1e-6)

    def test_conserved_quantity(self, simulator):
        # V = d*x - c*log(x) + b*y - a*log(y) is constant along orbits
        a, b, c, d = TRUE_PARAMS
        ys = simulator.simulate(TRUE_PARAMS).evaluate(jnp.linspace(0.0, 10.0, 50))
        x, y = ys[:, 0], ys[:, 1]
        V = d * x - c * jnp.log(x) + b * y - a * jnp.log(y)
        assert float(jnp.max(V) - jnp.min(V)) < 1e-5

    def test_solve_at_matches_dense(self, simulator):
        ts = default_time_grid()
        dense = simulator.simulate(TRUE_PARAMS).evaluate(ts)
        grid, ok = simulator.solve_at(jnp.array(TRUE_PARAMS), ts)
        assert bool(ok)
        assert grid.shape == (10, 2)
        assert jnp.allclose(grid, dense, rtol=1e-5, atol=1e-6)

    def test_loose_tolerance_close_to_tight(self):
        ts = default_time_grid()
        tight = ForwardSimulator(config=SolverConfig(rtol=1e-10, atol=1e-10)).simulate(TRUE_PARAMS).evaluate(ts)
        loose = ForwardSimulator(config=SolverConfig(rtol=1e-3, atol=1e-6)).simulate(TRUE_PARAMS).evaluate(ts)
        assert jnp.allclose(tight, loose, rtol=0.05, atol=0.05)

    def test_functional_shortcut(self):
        traj = simulate((1.0, 1.0), (0.0, 10.0), TRUE_PARAMS)
        assert traj(10.0).shape == (2,)

    def test_evaluate_outside_span_raises(self, simulator):
        traj = simulator.simulate(TRUE_PARAMS)
        with pytest.raises(ValueError):
            traj.evaluate([5.0, 11.0])

    @pytest.mark.parametrize("solver", ["tsit5", "dopri5", "dopri8"])
    def test_solvers_agree(self, solver):
        sim = ForwardSimulator(config=SolverConfig(rtol=1e-8, atol=1e-8, solver=solver))
        y = sim.simulate(TRUE_PARAMS)(10.0)
        ref = ForwardSimulator().simulate(TRUE_PARAMS)(10.0)
        assert jnp.allclose(y, ref, rtol=1e-5, atol=1e-6)


class TestSolverFailure:

    def test_simulate_raises(self, simulator):
        with pytest.raises(SolverFailure) as info:
            simulator.simulate(UNSTABLE_PARAMS)
        assert np.allclose(info.value.params, UNSTABLE_PARAMS)

    def test_solve_at_flags_failure(self, simulator):
        _, ok = simulator.solve_at(jnp.array(UNSTABLE_PARAMS), default_time_grid())
        assert not bool(ok)

    def test_step_limit_is_failure(self):
        sim = ForwardSimulator(config=SolverConfig(max_steps=2))
        with pytest.raises(SolverFailure):
            sim.simulate(TRUE_PARAMS)


class TestValidation:

    def test_bad_parameter_length(self, simulator):
        with pytest.raises(ValueError):
            simulator.simulate((1.0, 2.0, 3.0))

    def test_bad_state_length(self):
        with pytest.raises(ValueError):
            ForwardSimulator((1.0, 1.0, 1.0), (0.0, 10.0))

    def test_bad_tspan(self):
        with pytest.raises(ValueError):
            ForwardSimulator((1.0, 1.0), (10.0, 0.0))

    def test_unknown_solver(self):
        with pytest.raises(ValueError):
            SolverConfig(solver="euler")

    def test_time_grid_checks(self):
        assert validate_time_grid(default_time_grid(), (0.0, 10.0)).shape == (10,)
        with pytest.raises(ValueError):
            validate_time_grid([1.0, 1.0, 2.0], (0.0, 10.0))
        with pytest.raises(ValueError):
            validate_time_grid([1.0, 12.0], (0.0, 10.0))
        with pytest.raises(ValueError):
            validate_time_grid([], (0.0, 10.0))
        # observation times start strictly after t0
        with pytest.raises(ValueError):
            validate_time_grid([0.0, 1.0, 2.0], (0.0, 10.0))
        assert validate_time_grid([10.0], (0.0, 10.0)).shape == (1,)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
