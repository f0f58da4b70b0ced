"""
Tests for synthetic data generation - determinism, noise level and shapes.
"""
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
    NoisyDataset,
    default_time_grid,
    empirical_noise,
    generate,
    generate_from_simulator,
)


@pytest.fixture(scope="module")
def trajectory():
    return ForwardSimulator((1.0, 1.0), (0.0, 10.0)).simulate(TRUE_PARAMS)


def test_shape_and_columns(trajectory):
    ts = default_time_grid()
    data = generate(trajectory, ts, sigma=0.49, seed=1)

    assert data.values.shape == (2, 10)
    assert data.observations.shape == (10, 2)
    assert data.n_observations == 10
    assert jnp.array_equal(data.time_grid, jnp.asarray(ts))
    assert data.sigma == 0.49
    assert data.seed == 1


def test_same_seed_is_reproducible(trajectory):
    ts = default_time_grid()
    d1 = generate(trajectory, ts, sigma=0.49, seed=42)
    d2 = generate(trajectory, ts, sigma=0.49, seed=42)
    assert jnp.array_equal(d1.values, d2.values)


def test_different_seeds_differ(trajectory):
    ts = default_time_grid()
    d1 = generate(trajectory, ts, seed=0)
    d2 = generate(trajectory, ts, seed=1)
    assert not jnp.allclose(d1.values, d2.values)


def test_explicit_key(trajectory):
    key = jax.random.PRNGKey(7)
    d1 = generate(trajectory, default_time_grid(), key=key)
    d2 = generate(trajectory, default_time_grid(), key=key)
    assert jnp.array_equal(d1.values, d2.values)
    assert d1.seed is None


def test_zero_noise_is_exact(trajectory):
    ts = default_time_grid()
    data = generate(trajectory, ts, sigma=0.0, seed=3)
    assert jnp.allclose(data.values, trajectory.evaluate(ts).T)


def test_noise_level_across_seeds(trajectory):
    ts = default_time_grid()
    residuals = np.concatenate([
        empirical_noise(generate(trajectory, ts, sigma=0.49, seed=s), trajectory).ravel()
        for s in range(500)
    ])
    # 10,000 draws: the sample std is within a few percent of sigma
    assert abs(np.std(residuals) - 0.49) < 0.02
    assert abs(np.mean(residuals)) < 0.02


def test_generate_from_simulator(trajectory):
    sim = ForwardSimulator((1.0, 1.0), (0.0, 10.0))
    d1 = generate_from_simulator(sim, TRUE_PARAMS, default_time_grid(), sigma=0.49, seed=5)
    d2 = generate(trajectory, default_time_grid(), sigma=0.49, seed=5)
    assert jnp.allclose(d1.values, d2.values)


def test_negative_sigma_rejected(trajectory):
    with pytest.raises(ValueError):
        generate(trajectory, default_time_grid(), sigma=-0.1)


def test_dataset_is_frozen(trajectory):
    data = generate(trajectory, default_time_grid(), seed=0)
    with pytest.raises(Exception):
        data.sigma = 1.0


def test_dataset_shape_check():
    with pytest.raises(AssertionError):
        NoisyDataset(time_grid=jnp.arange(3.0), values=jnp.zeros((3, 2)), sigma=0.1)
