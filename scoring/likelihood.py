#------------------------------------------------------------------------------
# Gaussian observation likelihood and the shared log-posterior adapter
#
# A LogPosterior is built once per experiment and handed to every inference
# backend. Parameter vectors are ordered (a, b, c, d, sigma).
#------------------------------------------------------------------------------

import jax
import jax.numpy as jnp
import numpy as np
from typing import Optional

from representation import (
    NOISE_NAME,
    PARAMETER_NAMES,
    ForwardSimulator,
    NoisyDataset,
    validate_time_grid,
)
from .priors import PriorSet

EXPECTED_NAMES = PARAMETER_NAMES + (NOISE_NAME,)


def gaussian_log_likelihood(observed, predicted, sigma):
    """
    Isotropic Gaussian log-likelihood, covariance sigma^2 * I.

    log p(y | mu, sigma) = -0.5 * N * log(2*pi*sigma^2) - 0.5 * sum((y - mu)/sigma)^2
    """
    n = observed.size
    resid = (observed - predicted) / sigma
    return -0.5 * n * jnp.log(2 * jnp.pi * sigma**2) - 0.5 * jnp.sum(resid**2)


class LogPosterior:
    """
    Log posterior density of the Lotka-Volterra parameters (up to a constant).

    Args:
        simulator: Forward simulator used for every likelihood evaluation
        time_grid: Observation times
        dataset: Noisy observations on `time_grid`
        priors: Priors named and ordered (a, b, c, d, sigma)

    Solver failures and out-of-support values map to -inf; nothing raises
    once the object is constructed.
    """

    def __init__(
        self,
        simulator: ForwardSimulator,
        time_grid,
        dataset: NoisyDataset,
        priors: PriorSet,
    ):
        if tuple(priors.names) != EXPECTED_NAMES:
            raise ValueError(f"priors must be named and ordered {EXPECTED_NAMES}, got {priors.names}")
        ts = validate_time_grid(time_grid, simulator.tspan)
        if ts.shape[0] != dataset.n_observations or not np.allclose(ts, np.asarray(dataset.time_grid)):
            raise ValueError("time grid does not match the dataset's observation times")

        self.simulator = simulator
        self.time_grid = jnp.asarray(ts)
        self.dataset = dataset
        self.priors = priors
        self.names = EXPECTED_NAMES
        self.dim = len(EXPECTED_NAMES)
        self._observed = jnp.asarray(dataset.observations)   # (n, 2)
        self._transforms = priors.transforms()

    def log_likelihood(self, params, sigma):
        """Gaussian log-likelihood of the data; -inf when the solve fails."""
        states, ok = self.simulator.solve_at(params, self.time_grid)
        # keep the untaken branch finite so gradients stay finite
        states = jnp.where(ok, states, self._observed)
        sigma_ok = sigma > 0
        sigma = jnp.where(sigma_ok, sigma, 1.0)
        ll = gaussian_log_likelihood(self._observed, states, sigma)
        return jnp.where(ok & sigma_ok, ll, -jnp.inf)

    def log_prior(self, theta):
        return self.priors.log_prob(theta)

    def __call__(self, theta):
        """Log posterior on the constrained parameter space."""
        theta = jnp.asarray(theta)
        lp = self.log_prior(theta)
        ll = self.log_likelihood(theta[:-1], theta[-1])
        return jnp.where(jnp.isfinite(lp), lp + ll, -jnp.inf)

    def to_constrained(self, z):
        z = jnp.asarray(z)
        return jnp.stack([t(z[i]) for i, t in enumerate(self._transforms)])

    def to_unconstrained(self, theta):
        theta = jnp.asarray(theta)
        return jnp.stack([t.inv(theta[i]) for i, t in enumerate(self._transforms)])

    def unconstrained(self, z):
        """Log density on R^dim, including the log-Jacobian of the support maps."""
        z = jnp.asarray(z)
        theta = self.to_constrained(z)
        log_det = sum(t.log_abs_det_jacobian(z[i], theta[i]) for i, t in enumerate(self._transforms))
        return self(theta) + log_det

    def initial_position(self, key: jax.Array, radius: float = 2.0, max_tries: int = 100):
        """
        Uniform draw in [-radius, radius]^dim (unconstrained) with a finite
        log density.
        """
        for _ in range(max_tries):
            key, subkey = jax.random.split(key)
            z = jax.random.uniform(subkey, (self.dim,), minval=-radius, maxval=radius)
            if bool(jnp.isfinite(self.unconstrained(z))):
                return z
        raise ValueError(f"no initial position with finite log density after {max_tries} draws")

    def __repr__(self):
        return (f"LogPosterior(names={self.names}, n_obs={self.dataset.n_observations}, "
                f"simulator={self.simulator!r})")
