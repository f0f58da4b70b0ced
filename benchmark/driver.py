#------------------------------------------------------------------------------
# Benchmark driver
#
#   true params -> ground-truth trajectory -> noisy dataset (fixed seed)
#   -> one shared LogPosterior -> each backend in turn, timed
#
# Backends run sequentially so timings do not contend for resources. A
# backend failure is recorded and the driver moves on to the next one.
#------------------------------------------------------------------------------

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from io_utils import save_benchmark_to_hdf5
from representation import (
    NOISE_NAME,
    PARAMETER_NAMES,
    ForwardSimulator,
    NoisyDataset,
    generate,
)
from samplers import BackendFailure, InferenceBackend, PosteriorChain, get_backend
from scoring import LogPosterior, default_priors
from .config import BenchmarkConfig


@dataclass
class BenchmarkRecord:
    """Outcome of one backend call."""
    backend: str
    elapsed: float
    summary: Dict[str, Dict[str, float]] = field(default_factory=dict)
    chain: Optional[PosteriorChain] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def posterior_means(self) -> Dict[str, float]:
        return {name: stats['mean'] for name, stats in self.summary.items()}


@dataclass
class BenchmarkReport:
    """All backend records of one run, with the shared dataset."""
    dataset: NoisyDataset
    true_params: tuple
    records: List[BenchmarkRecord] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(record.ok for record in self.records)

    def __getitem__(self, backend: str) -> BenchmarkRecord:
        for record in self.records:
            if record.backend == backend:
                return record
        raise KeyError(backend)

    def truth(self) -> Dict[str, float]:
        truth = dict(zip(PARAMETER_NAMES, map(float, self.true_params)))
        if self.dataset.sigma > 0:
            truth[NOISE_NAME] = self.dataset.sigma
        return truth

    def format_table(self) -> str:
        names = PARAMETER_NAMES + (NOISE_NAME,)
        truth = self.truth()
        header = f"{'backend':<10} {'time (s)':>9} " + " ".join(f"{n:>15}" for n in names) + "  error"
        lines = [header, "-" * len(header)]
        lines.append(f"{'truth':<10} {'':>9} " + " ".join(
            f"{truth[n]:>15.3f}" if n in truth else f"{'-':>15}" for n in names))
        for record in self.records:
            if record.summary:
                cells = " ".join(
                    f"{record.summary[n]['mean']:>7.3f} ± {record.summary[n]['std']:<5.3f}" for n in names
                )
            else:
                cells = " ".join(f"{'-':>15}" for _ in names)
            lines.append(f"{record.backend:<10} {record.elapsed:>9.2f} {cells}  {record.error or ''}")
        return "\n".join(lines)


def _resolve_backends(backends: Optional[Sequence[Union[str, InferenceBackend]]], config: BenchmarkConfig):
    if backends is None:
        backends = config.backends
    return [get_backend(b) if isinstance(b, str) else b for b in backends]


def run_benchmark(
    config: Optional[BenchmarkConfig] = None,
    backends: Optional[Sequence[Union[str, InferenceBackend]]] = None,
    verbose: bool = True,
) -> BenchmarkReport:
    """
    Run the full experiment once.

    Args:
        config: Experiment configuration, defaults to BenchmarkConfig()
        backends: Backend instances or names; defaults to config.backends
        verbose: Print progress and the final table

    Returns:
        BenchmarkReport with one record per backend, in call order
    """
    if config is None:
        config = BenchmarkConfig()
    priors = config.priors if config.priors is not None else default_priors()

    # every prior must contain its generating value
    truth = dict(zip(PARAMETER_NAMES, config.true_params))
    if config.noise_sigma > 0:
        truth[NOISE_NAME] = config.noise_sigma
    priors.check_support(truth)

    if verbose:
        print(f"{'='*70}")
        print("Lotka-Volterra Bayesian inference benchmark")
        print(f"{'='*70}")
        print(f"u0: {tuple(config.u0)}  tspan: {tuple(config.tspan)}")
        print(f"True params (a, b, c, d): {tuple(config.true_params)}")
        print(f"Time grid: {config.time_grid.tolist()}")
        print(f"Noise sigma: {config.noise_sigma}  seed: {config.data_seed}")
        print(f"Samples per backend: {config.num_samples:,}")
        print(f"{'='*70}\n")

    ground_truth = ForwardSimulator(config.u0, config.tspan, config.data_solver)
    trajectory = ground_truth.simulate(config.true_params)
    dataset = generate(trajectory, config.time_grid, sigma=config.noise_sigma, seed=config.data_seed)

    simulator = ForwardSimulator(config.u0, config.tspan, config.inference_solver)
    log_posterior = LogPosterior(simulator, config.time_grid, dataset, priors)

    report = BenchmarkReport(dataset=dataset, true_params=tuple(config.true_params))
    for backend in _resolve_backends(backends, config):
        if verbose:
            print(f"{'-'*70}")
            print(f"Running backend: {backend.name}")
            print(f"{'-'*70}")
        try:
            result = backend.infer(
                simulator,
                config.time_grid,
                dataset,
                priors,
                config.num_samples,
                config=config.sampler,
                log_posterior=log_posterior,
                verbose=verbose,
            )
        except BackendFailure as exc:
            report.records.append(BenchmarkRecord(backend=backend.name, elapsed=exc.elapsed or 0.0, error=str(exc)))
            if verbose:
                print(f"FAILED: {exc}\n")
            continue

        record = BenchmarkRecord(
            backend=backend.name,
            elapsed=result.elapsed,
            summary=result.chain.summary(),
            chain=result.chain,
        )
        report.records.append(record)
        if verbose:
            means = ", ".join(f"{k}={v:.3f}" for k, v in record.posterior_means().items())
            print(f"Done in {result.elapsed:.2f}s: {means}\n")

    if verbose:
        print(f"{'='*70}")
        print(report.format_table())
        print(f"{'='*70}")

    if config.output_file:
        save_benchmark_to_hdf5(config.output_file, report)

    return report
