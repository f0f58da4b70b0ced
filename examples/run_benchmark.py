#---------------------------------------------------------------
# Run the predator-prey benchmark: NumPyro vs BlackJAX vs Stan
#
#   python examples/run_benchmark.py -n 10000 --output lv_benchmark.h5
#---------------------------------------------------------------

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import jax

from benchmark import BACKEND_ORDER, BenchmarkConfig, run_benchmark
from io_utils import plot_chain_diagnostics, print_chain_diagnostics
from representation import SolverConfig
from samplers import SamplerConfig


def main(args):
    print("JAX is using device:", jax.default_backend())

    config = BenchmarkConfig(
        num_samples=args.num_samples,
        noise_sigma=args.sigma,
        data_seed=args.data_seed,
        backends=tuple(args.backends),
        inference_solver=SolverConfig(rtol=args.rtol, atol=args.atol),
        sampler=SamplerConfig(
            num_warmup=args.num_warmup,
            num_chains=args.num_chains,
            target_accept=args.target_accept,
            seed=args.seed,
            timeout=args.timeout,
            progress_bar=args.progress_bar,
            stan_dir=args.stan_dir,
        ),
        output_file=args.output,
    )
    report = run_benchmark(config)

    truth = report.truth()
    for record in report.records:
        if record.chain is None:
            continue
        print_chain_diagnostics(record.chain, truth)
        if args.plots:
            plot_chain_diagnostics(record.chain, args.plots, truth)

    return 0 if report.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Lotka-Volterra Bayesian inference benchmark")
    parser.add_argument("-n", "--num-samples", default=10_000, type=int)
    parser.add_argument("--num-warmup", default=1000, type=int)
    parser.add_argument("--num-chains", default=1, type=int)
    parser.add_argument("--seed", default=0, type=int, help="sampler seed")
    parser.add_argument("--data-seed", default=0, type=int, help="noise seed")
    parser.add_argument("--sigma", default=0.49, type=float, help="observation noise std")
    parser.add_argument("--backends", nargs="+", default=list(BACKEND_ORDER), choices=BACKEND_ORDER)
    parser.add_argument("--target-accept", default=0.65, type=float)
    parser.add_argument("--rtol", default=1e-3, type=float, help="solver rtol during inference")
    parser.add_argument("--atol", default=1e-6, type=float, help="solver atol during inference")
    parser.add_argument("--timeout", default=None, type=float, help="wall-clock cap per backend (s)")
    parser.add_argument("--stan-dir", default=None, type=str, help="directory for compiled Stan models")
    parser.add_argument("--output", default=None, type=str, help="HDF5 file for chains + dataset")
    parser.add_argument("--plots", default=None, type=str, help="directory for diagnostic plots")
    parser.add_argument("--progress-bar", action="store_true")
    args = parser.parse_args()

    sys.exit(main(args))
