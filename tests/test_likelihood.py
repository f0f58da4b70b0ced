#------------------------------------------------------------------------------
# Tests for the Gaussian likelihood and the log-posterior adapter
#------------------------------------------------------------------------------

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import jax
import jax.numpy as jnp
import numpy as np
import pytest

from representation import (
    TRUE_PARAMS,
    ForwardSimulator,
    INFERENCE_SOLVER,
    default_time_grid,
    generate,
)
from scoring import (
    LogPosterior,
    PriorSet,
    default_priors,
    gaussian_log_likelihood,
    truncated_normal,
)

THETA_TRUE = jnp.array(TRUE_PARAMS + (0.49,))
UNSTABLE = jnp.array([1.5, -1.0, -3.0, 1.0, 0.49])


@pytest.fixture(scope="module")
def dataset():
    truth = ForwardSimulator((1.0, 1.0), (0.0, 10.0)).simulate(TRUE_PARAMS)
    return generate(truth, default_time_grid(), sigma=0.49, seed=0)


@pytest.fixture(scope="module")
def log_posterior(dataset):
    simulator = ForwardSimulator((1.0, 1.0), (0.0, 10.0), config=INFERENCE_SOLVER)
    return LogPosterior(simulator, default_time_grid(), dataset, default_priors())


def test_gaussian_log_likelihood_closed_form():
    y = jnp.array([[1.0, 2.0], [3.0, 4.0]])
    mu = jnp.array([[1.0, 1.0], [3.0, 3.0]])
    # two unit residuals, four observations
    expected = -0.5 * 4 * np.log(2 * np.pi * 0.25) - 0.5 * (2 * (1.0 / 0.5) ** 2)
    assert jnp.allclose(gaussian_log_likelihood(y, mu, 0.5), expected)


class TestLogPosterior:

    def test_finite_at_truth(self, log_posterior):
        assert jnp.isfinite(log_posterior(THETA_TRUE))

    def test_sum_of_prior_and_likelihood(self, log_posterior):
        lp = log_posterior.log_prior(THETA_TRUE)
        ll = log_posterior.log_likelihood(THETA_TRUE[:4], THETA_TRUE[4])
        assert jnp.allclose(log_posterior(THETA_TRUE), lp + ll)

    def test_truth_beats_wrong_parameters(self, log_posterior):
        wrong = jnp.array([1.0, 1.5, 2.0, 1.5, 0.49])
        assert log_posterior(THETA_TRUE) > log_posterior(wrong)

    def test_solver_failure_is_minus_inf(self, log_posterior):
        ll = log_posterior.log_likelihood(UNSTABLE[:4], UNSTABLE[4])
        assert ll == -jnp.inf

    def test_solver_failure_under_jit(self, log_posterior):
        ll = jax.jit(log_posterior.log_likelihood)(UNSTABLE[:4], UNSTABLE[4])
        assert ll == -jnp.inf

    def test_outside_prior_is_minus_inf(self, log_posterior):
        assert log_posterior(jnp.array([3.0, 1.0, 3.0, 1.0, 0.49])) == -jnp.inf
        assert log_posterior(jnp.array([1.5, 1.0, 3.0, 1.0, -0.1])) == -jnp.inf

    def test_gradient_at_truth(self, log_posterior):
        g = jax.grad(log_posterior)(THETA_TRUE)
        assert g.shape == (5,)
        assert jnp.all(jnp.isfinite(g))

    def test_unconstrained_gradient(self, log_posterior):
        z = log_posterior.to_unconstrained(THETA_TRUE)
        assert jnp.all(jnp.isfinite(jax.grad(log_posterior.unconstrained)(z)))


class TestUnconstrained:

    def test_round_trip(self, log_posterior):
        z = log_posterior.to_unconstrained(THETA_TRUE)
        assert jnp.allclose(log_posterior.to_constrained(z), THETA_TRUE)

    def test_every_point_maps_into_support(self, log_posterior):
        z = jax.random.normal(jax.random.PRNGKey(0), (50, 5)) * 5.0
        theta = jax.vmap(log_posterior.to_constrained)(z)
        assert jnp.all(jnp.isfinite(jax.vmap(log_posterior.log_prior)(theta)))

    def test_jacobian_term(self, log_posterior):
        z = log_posterior.to_unconstrained(THETA_TRUE)
        # sigma is log-transformed: the Jacobian contributes log(sigma)
        diff = log_posterior.unconstrained(z) - log_posterior(THETA_TRUE)
        transforms = default_priors().transforms()
        expected = sum(t.log_abs_det_jacobian(z[i], THETA_TRUE[i]) for i, t in enumerate(transforms))
        assert jnp.allclose(diff, expected)
        assert jnp.allclose(transforms[-1].log_abs_det_jacobian(z[-1], THETA_TRUE[-1]), jnp.log(0.49))

    def test_initial_position(self, log_posterior):
        z = log_posterior.initial_position(jax.random.PRNGKey(3))
        assert z.shape == (5,)
        assert jnp.all(jnp.abs(z) <= 2.0)
        assert jnp.isfinite(log_posterior.unconstrained(z))


class TestConstruction:

    def test_attributes(self, log_posterior, dataset):
        assert log_posterior.names == ("a", "b", "c", "d", "sigma")
        assert log_posterior.dim == 5
        assert log_posterior.dataset is dataset

    def test_wrong_prior_names(self, dataset):
        priors = PriorSet([(n, truncated_normal(1.0, 0.5, 0.0, 2.0)) for n in "abcde"])
        with pytest.raises(ValueError):
            LogPosterior(ForwardSimulator(), default_time_grid(), dataset, priors)

    def test_time_grid_mismatch(self, dataset):
        with pytest.raises(ValueError):
            LogPosterior(ForwardSimulator(), np.arange(1.0, 10.0), dataset, default_priors())
        with pytest.raises(ValueError):
            LogPosterior(ForwardSimulator(), np.arange(1.0, 11.0) - 0.5, dataset, default_priors())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
