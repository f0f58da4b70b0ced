#------------------------------------------------------------------------------
# Modelling-language backend: the model is rendered as a Stan program,
# compiled by CmdStan and sampled out-of-process through cmdstanpy.
#
# Stan rejects any proposal whose ODE solve throws (step limit, non-finite
# state), which is the -inf log-likelihood convention of the other backends.
#------------------------------------------------------------------------------

import hashlib
import tempfile
import numpy as np
from pathlib import Path
from string import Template
from typing import Optional

import cmdstanpy

from scoring import LogPosterior, PriorSet
from .base import BackendTimeout, Deadline, InferenceBackend, PosteriorChain, SamplerConfig

STAN_TEMPLATE = Template("""\
functions {
  vector lotka_volterra(real t, vector u, real a, real b, real c, real d) {
    vector[2] du_dt;
    du_dt[1] = a * u[1] - b * u[1] * u[2];
    du_dt[2] = -c * u[2] + d * u[1] * u[2];
    return du_dt;
  }
}
data {
  int<lower=1> T;
  array[T] real ts;
  real t0;
  vector[2] u0;
  array[T] vector[2] y;
  real<lower=0> rel_tol;
  real<lower=0> abs_tol;
  int<lower=1> max_num_steps;
}
parameters {
$declarations
}
model {
  array[T] vector[2] mu = ode_rk45_tol(lotka_volterra, u0, t0, ts, rel_tol, abs_tol,
                                       max_num_steps, a, b, c, d);
$priors
  for (i in 1:T) {
    y[i] ~ normal(mu[i], $noise);
  }
}
""")


def render_stan_program(priors: PriorSet) -> str:
    """Stan source for the Lotka-Volterra model with the given priors."""
    names = priors.names
    declarations = "\n".join(f"  real{priors[n].stan_bounds()} {n};" for n in names)
    statements = "\n".join(f"  {priors[n].to_stan(n)}" for n in names)
    return STAN_TEMPLATE.substitute(declarations=declarations, priors=statements, noise=names[-1])


def stan_data(log_posterior: LogPosterior) -> dict:
    simulator = log_posterior.simulator
    return {
        "T": int(log_posterior.dataset.n_observations),
        "ts": np.asarray(log_posterior.time_grid).tolist(),
        "t0": float(simulator.tspan[0]),
        "u0": np.asarray(simulator.u0).tolist(),
        "y": np.asarray(log_posterior.dataset.observations).tolist(),
        "rel_tol": float(simulator.config.rtol),
        "abs_tol": float(simulator.config.atol),
        "max_num_steps": int(simulator.config.max_steps),
    }


def write_stan_program(code: str, stan_dir: Optional[str] = None) -> Path:
    """Write the program under a content-hashed name so compiled models are reused."""
    directory = Path(stan_dir) if stan_dir else Path(tempfile.gettempdir()) / "jax_lv_benchmark_stan"
    directory.mkdir(parents=True, exist_ok=True)
    code_hash = hashlib.sha256(code.encode("utf-8")).hexdigest()[:16]
    path = directory / f"lotka_volterra_{code_hash}.stan"
    if not path.exists():
        path.write_text(code)
    return path


class StanNUTSBackend(InferenceBackend):
    """CmdStan NUTS run as a separate process."""
    name = "stan"

    def sample(self, log_posterior, num_samples, config: SamplerConfig, deadline: Deadline, verbose=False):
        stan_file = write_stan_program(render_stan_program(log_posterior.priors), config.stan_dir)
        if verbose:
            print(f"[{self.name}] compiling {stan_file}")
        model = cmdstanpy.CmdStanModel(stan_file=str(stan_file))

        deadline.check(self.name)
        if verbose:
            print(f"[{self.name}] sampling: {config.num_warmup} warmup + {num_samples} draws "
                  f"x {config.num_chains} chain(s)")
        try:
            fit = model.sample(
                data=stan_data(log_posterior),
                chains=config.num_chains,
                parallel_chains=config.num_chains,
                iter_warmup=config.num_warmup,
                iter_sampling=num_samples,
                seed=config.seed,
                adapt_delta=config.target_accept,
                max_treedepth=config.max_tree_depth,
                show_progress=config.progress_bar,
                timeout=deadline.remaining(),
            )
        except TimeoutError as exc:
            raise BackendTimeout(self.name, config.timeout) from exc

        samples = {
            name: np.asarray(fit.stan_variable(name)).reshape(config.num_chains, num_samples)
            for name in log_posterior.names
        }
        method = fit.method_variables()
        if verbose:
            print(f"[{self.name}] done in {deadline.elapsed():.1f}s")
        return PosteriorChain(
            backend=self.name,
            names=log_posterior.names,
            samples=samples,
            diagnostics={
                "acceptance_rate": float(np.mean(method["accept_stat__"])),
                "num_divergent": int(np.sum(method["divergent__"])),
                "step_size": float(np.mean(method["stepsize__"])),
            },
        )
