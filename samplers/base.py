#------------------------------------------------------------------------------
# Inference backend interface, configuration and posterior chain container
#------------------------------------------------------------------------------

import time
import numpy as np
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, NamedTuple, Optional, Sequence, Tuple

from numpyro.diagnostics import summary as numpyro_summary

from representation import ForwardSimulator, NoisyDataset
from scoring import LogPosterior, PriorSet


@dataclass
class SamplerConfig:
    """Configuration shared by all inference backends."""
    num_warmup: int = 1000           # Adaptation steps per chain
    num_chains: int = 1              # Chains run per backend call
    target_accept: float = 0.65      # Step-size adaptation target
    max_tree_depth: int = 10         # NUTS max doublings
    seed: int = 0                    # Sampler RNG seed
    timeout: Optional[float] = None  # Wall-clock cap in seconds for one backend call
    chunk_size: int = 1000           # Draws per chunk between deadline checks
    progress_bar: bool = False       # Library progress bars
    stan_dir: Optional[str] = None   # Where generated Stan programs are compiled

    def __post_init__(self):
        if self.num_warmup < 0:
            raise ValueError("num_warmup must be >= 0")
        if self.num_chains < 1:
            raise ValueError("num_chains must be >= 1")
        if not 0.0 < self.target_accept < 1.0:
            raise ValueError("target_accept must lie in (0, 1)")
        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")


class BackendFailure(Exception):
    """An inference backend could not complete its sampling run."""

    def __init__(self, backend: str, cause: Optional[BaseException] = None, message: str = ""):
        self.backend = backend
        self.cause = cause
        self.elapsed: Optional[float] = None     # set by InferenceBackend.infer
        detail = message or (f"{type(cause).__name__}: {cause}" if cause is not None else "failed")
        super().__init__(f"[{backend}] {detail}")


class BackendTimeout(BackendFailure):
    """The wall-clock cap for a backend call was exceeded."""

    def __init__(self, backend: str, timeout: float):
        self.timeout = timeout
        super().__init__(backend, message=f"exceeded wall-clock cap of {timeout:.1f}s")


class Deadline:
    """Wall-clock cap checked cooperatively between sampling chunks."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._start = time.perf_counter()

    def elapsed(self) -> float:
        return time.perf_counter() - self._start

    def remaining(self) -> Optional[float]:
        if self.timeout is None:
            return None
        return max(0.0, self.timeout - self.elapsed())

    def expired(self) -> bool:
        return self.timeout is not None and self.elapsed() >= self.timeout

    def check(self, backend: str) -> None:
        if self.expired():
            raise BackendTimeout(backend, self.timeout)


# numpyro.diagnostics.summary asserts on shorter chains
MIN_SUMMARY_DRAWS = 4


@dataclass
class PosteriorChain:
    """
    Posterior draws from one backend run.

    Attributes:
        backend: Name of the backend that produced the draws
        names: Parameter names, in vector order
        samples: name -> array of shape (num_chains, num_samples)
        diagnostics: Sampler statistics (acceptance_rate, num_divergent, step_size)
    """
    backend: str
    names: Tuple[str, ...]
    samples: Dict[str, np.ndarray]
    diagnostics: Dict[str, float] = field(default_factory=dict)

    def __post_init__(self):
        shapes = {np.shape(self.samples[name]) for name in self.names}
        assert len(shapes) == 1, f"all parameters need the same (chains, draws) shape, got {shapes}"
        assert len(next(iter(shapes))) == 2, "samples must be (num_chains, num_samples)"

    @property
    def num_chains(self) -> int:
        return np.shape(self.samples[self.names[0]])[0]

    @property
    def num_samples(self) -> int:
        """Draws per chain."""
        return np.shape(self.samples[self.names[0]])[1]

    def __len__(self) -> int:
        return self.num_chains * self.num_samples

    def flat(self, name: str) -> np.ndarray:
        return np.asarray(self.samples[name]).reshape(-1)

    def as_array(self) -> np.ndarray:
        """All draws, chains concatenated, shape (len(self), len(names))."""
        return np.stack([self.flat(name) for name in self.names], axis=1)

    def mean(self) -> Dict[str, float]:
        return {name: float(np.mean(self.flat(name))) for name in self.names}

    def std(self) -> Dict[str, float]:
        return {name: float(np.std(self.flat(name))) for name in self.names}

    def quantiles(self, qs: Sequence[float] = (0.05, 0.5, 0.95)) -> Dict[str, np.ndarray]:
        return {name: np.quantile(self.flat(name), qs) for name in self.names}

    def summary(self, prob: float = 0.9) -> Dict[str, Dict[str, float]]:
        """
        Per-parameter mean, std, median, credible interval, n_eff and r_hat.

        numpyro needs at least MIN_SUMMARY_DRAWS draws per chain; shorter
        chains get plain numpy moments and equal-tailed quantiles, with
        n_eff and r_hat set to nan.
        """
        if self.num_samples < MIN_SUMMARY_DRAWS:
            lo, hi = (1.0 - prob) / 2, (1.0 + prob) / 2
            stats = {}
            for name in self.names:
                x = self.flat(name)
                stats[name] = {
                    'mean': float(np.mean(x)),
                    'std': float(np.std(x)),
                    'median': float(np.median(x)),
                    f'{100 * lo:.1f}%': float(np.quantile(x, lo)),
                    f'{100 * hi:.1f}%': float(np.quantile(x, hi)),
                    'n_eff': float('nan'),
                    'r_hat': float('nan'),
                }
            return stats
        stats = numpyro_summary(
            {name: np.asarray(self.samples[name]) for name in self.names},
            prob=prob,
            group_by_chain=True,
        )
        return {name: {k: float(v) for k, v in stats[name].items()} for name in self.names}


class InferenceResult(NamedTuple):
    """Result of one backend call."""
    chain: PosteriorChain
    elapsed: float              # Wall-clock seconds for the full sampling run


class InferenceBackend(ABC):
    """
    One MCMC backend. Subclasses implement `sample`; `infer` adds timing and
    maps any escaping exception to BackendFailure.
    """
    name: str = "backend"

    def infer(
        self,
        simulator: ForwardSimulator,
        time_grid,
        dataset: NoisyDataset,
        priors: PriorSet,
        num_samples: int,
        config: Optional[SamplerConfig] = None,
        log_posterior: Optional[LogPosterior] = None,
        verbose: bool = False,
    ) -> InferenceResult:
        """
        Draw `num_samples` posterior samples per chain.

        Args:
            simulator: Forward simulator (initial state, span, solver tolerances)
            time_grid: Observation times
            dataset: Noisy observations
            priors: Prior set ordered (a, b, c, d, sigma)
            num_samples: Post-warmup draws per chain
            config: Sampler configuration, defaults to SamplerConfig()
            log_posterior: Prebuilt adapter for (simulator, time_grid, dataset, priors)
            verbose: Print progress

        Returns:
            InferenceResult(chain, elapsed)

        Raises:
            BackendFailure: sampling could not complete (BackendTimeout on cap)
        """
        if num_samples < 1:
            raise ValueError(f"num_samples must be >= 1, got {num_samples}")
        if config is None:
            config = SamplerConfig()
        if log_posterior is None:
            log_posterior = LogPosterior(simulator, time_grid, dataset, priors)

        deadline = Deadline(config.timeout)
        start = time.perf_counter()
        try:
            chain = self.sample(log_posterior, num_samples, config, deadline, verbose=verbose)
        except BackendFailure as exc:
            exc.elapsed = time.perf_counter() - start
            raise
        except Exception as exc:
            failure = BackendFailure(self.name, exc)
            failure.elapsed = time.perf_counter() - start
            raise failure from exc
        elapsed = time.perf_counter() - start
        return InferenceResult(chain=chain, elapsed=elapsed)

    @abstractmethod
    def sample(
        self,
        log_posterior: LogPosterior,
        num_samples: int,
        config: SamplerConfig,
        deadline: Deadline,
        verbose: bool = False,
    ) -> PosteriorChain:
        ...

    def __repr__(self):
        return f"{type(self).__name__}(name={self.name!r})"


def n_chunks(num_samples: int, chunk_size: int) -> int:
    return -(-num_samples // chunk_size)
