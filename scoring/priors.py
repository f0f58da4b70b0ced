#------------------------------------------------------------------------------
# Prior specification for the kinetic parameters and the noise scale
#
# Each prior is a small descriptor (family, params, bounds) that can be turned
# into a numpyro distribution, evaluated, sampled, mapped to an unconstrained
# space, or rendered as a Stan sampling statement.
#------------------------------------------------------------------------------

import jax
import jax.numpy as jnp
import numpy as np
import numpyro.distributions as dist
from numpyro.distributions import constraints
from numpyro.distributions.transforms import biject_to
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Dict, Iterator, Sequence, Tuple, Union

from representation import NOISE_NAME, PARAMETER_NAMES

TRUNCATED_NORMAL = "truncated_normal"
INVERSE_GAMMA = "inverse_gamma"

_N_PARAMS = {TRUNCATED_NORMAL: 2, INVERSE_GAMMA: 2}


class PriorSupportViolation(ValueError):
    """A parameter value lies outside the declared support of its prior."""

    def __init__(self, name: str, value: float, lower: float, upper: float):
        self.name = name
        self.value = value
        self.lower = lower
        self.upper = upper
        super().__init__(f"{name}={value} outside prior support [{lower}, {upper}]")


@dataclass(frozen=True)
class Prior:
    """
    Bounded prior descriptor.

    truncated_normal: params = (mu, sd), support [lower, upper]
    inverse_gamma:    params = (shape, scale), support (lower, upper), lower = 0
    """
    family: str
    params: Tuple[float, ...]
    lower: float = -np.inf
    upper: float = np.inf

    def __post_init__(self):
        if self.family not in _N_PARAMS:
            raise ValueError(f"unknown prior family {self.family!r}")
        if len(self.params) != _N_PARAMS[self.family]:
            raise ValueError(f"{self.family} takes {_N_PARAMS[self.family]} parameters, got {self.params}")
        if not self.lower < self.upper:
            raise ValueError(f"prior bounds must satisfy lower < upper, got [{self.lower}, {self.upper}]")
        if self.family == INVERSE_GAMMA and (self.lower != 0 or np.isfinite(self.upper)):
            raise ValueError("inverse_gamma priors are supported on (0, inf) only")

    @property
    def open_lower(self) -> bool:
        # inverse gamma has zero density at its lower bound
        return self.family == INVERSE_GAMMA

    @property
    def support(self):
        """numpyro constraint matching the declared bounds."""
        if np.isfinite(self.lower) and np.isfinite(self.upper):
            return constraints.interval(self.lower, self.upper)
        if np.isfinite(self.lower):
            return constraints.greater_than(self.lower)
        if np.isfinite(self.upper):
            return constraints.less_than(self.upper)
        return constraints.real

    def transform(self):
        """Bijection from the real line onto the support."""
        return biject_to(self.support)

    def distribution(self) -> dist.Distribution:
        if self.family == TRUNCATED_NORMAL:
            mu, sd = self.params
            low = self.lower if np.isfinite(self.lower) else None
            high = self.upper if np.isfinite(self.upper) else None
            return dist.TruncatedNormal(loc=mu, scale=sd, low=low, high=high)
        # rate of the underlying gamma == scale of the inverse gamma
        shape, scale = self.params
        return dist.InverseGamma(concentration=shape, rate=scale)

    def support_contains(self, x):
        x = jnp.asarray(x)
        above = x > self.lower if self.open_lower else x >= self.lower
        return above & (x <= self.upper)

    def _interior_point(self) -> float:
        if self.family == TRUNCATED_NORMAL:
            return float(np.clip(self.params[0], self.lower, self.upper))
        shape, scale = self.params
        return scale / (shape + 1.0)    # mode

    def log_prob(self, x):
        """Log density; -inf outside the support."""
        x = jnp.asarray(x, dtype=float)
        inside = self.support_contains(x)
        x_safe = jnp.where(inside, x, self._interior_point())
        return jnp.where(inside, self.distribution().log_prob(x_safe), -jnp.inf)

    def sample(self, key: jax.Array, n: int = 1) -> jnp.ndarray:
        return self.distribution().sample(key, (n,))

    def stan_bounds(self) -> str:
        bounds = []
        if np.isfinite(self.lower):
            bounds.append(f"lower={self.lower!r}")
        if np.isfinite(self.upper):
            bounds.append(f"upper={self.upper!r}")
        return f"<{', '.join(bounds)}>" if bounds else ""

    def to_stan(self, name: str) -> str:
        """Stan sampling statement for this prior."""
        if self.family == TRUNCATED_NORMAL:
            mu, sd = self.params
            lo = repr(float(self.lower)) if np.isfinite(self.lower) else ""
            hi = repr(float(self.upper)) if np.isfinite(self.upper) else ""
            return f"{name} ~ normal({float(mu)!r}, {float(sd)!r}) T[{lo}, {hi}];"
        shape, scale = self.params
        return f"{name} ~ inv_gamma({float(shape)!r}, {float(scale)!r});"


def truncated_normal(mu: float, sd: float, lower: float, upper: float) -> Prior:
    return Prior(TRUNCATED_NORMAL, (float(mu), float(sd)), float(lower), float(upper))


def inverse_gamma(shape: float, scale: float) -> Prior:
    return Prior(INVERSE_GAMMA, (float(shape), float(scale)), 0.0, np.inf)


class PriorSet(Mapping):
    """
    Ordered, read-only mapping name -> Prior.

    The order defines the layout of parameter vectors passed to log_prob
    and returned by sample.
    """

    def __init__(self, priors: Union[Mapping, Sequence[Tuple[str, Prior]]]):
        items = list(priors.items()) if isinstance(priors, Mapping) else list(priors)
        if not items:
            raise ValueError("PriorSet needs at least one prior")
        self._priors: Dict[str, Prior] = dict(items)
        if len(self._priors) != len(items):
            raise ValueError("duplicate prior names")

    def __getitem__(self, name: str) -> Prior:
        return self._priors[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._priors)

    def __len__(self) -> int:
        return len(self._priors)

    def __repr__(self):
        body = ", ".join(f"{k}: {v.family}{v.params} [{v.lower}, {v.upper}]" for k, v in self.items())
        return f"PriorSet({body})"

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._priors)

    def log_prob(self, theta) -> jnp.ndarray:
        """Joint log density of a vector ordered like `names`."""
        theta = jnp.asarray(theta)
        return sum(prior.log_prob(theta[i]) for i, prior in enumerate(self._priors.values()))

    def sample(self, key: jax.Array, n: int = 1) -> jnp.ndarray:
        """Independent prior draws, shape (n, len(self))."""
        keys = jax.random.split(key, len(self))
        return jnp.stack(
            [prior.sample(k, n) for k, prior in zip(keys, self._priors.values())], axis=1
        )

    def transforms(self) -> list:
        return [prior.transform() for prior in self._priors.values()]

    def check_support(self, values: Union[Mapping, Sequence[float]]) -> None:
        """Raise PriorSupportViolation for the first value outside its prior."""
        if not isinstance(values, Mapping):
            values = dict(zip(self.names, values))
        for name, value in values.items():
            prior = self._priors[name]
            if not bool(prior.support_contains(value)):
                raise PriorSupportViolation(name, float(value), prior.lower, prior.upper)


def default_priors() -> PriorSet:
    """Priors of the benchmark experiment."""
    kinetic = [
        truncated_normal(1.5, 0.5, 0.5, 2.5),   # a
        truncated_normal(1.2, 0.5, 0.0, 2.0),   # b
        truncated_normal(3.0, 0.5, 1.0, 4.0),   # c
        truncated_normal(1.0, 0.5, 0.0, 2.0),   # d
    ]
    return PriorSet(list(zip(PARAMETER_NAMES, kinetic)) + [(NOISE_NAME, inverse_gamma(2.0, 3.0))])
