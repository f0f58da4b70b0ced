#------------------------------------------------------------------------------
# Probabilistic-programming backend: NumPyro model + NUTS
#
# Priors are declared as numpyro sample sites; the shared likelihood enters
# the model as a factor. NumPyro handles the unconstrained reparameterisation.
#------------------------------------------------------------------------------

import jax.numpy as jnp
import numpy as np
import numpyro
from functools import partial
from jax import random
from numpyro.infer import MCMC, NUTS, init_to_uniform

from scoring import LogPosterior, PriorSet
from .base import Deadline, InferenceBackend, PosteriorChain, SamplerConfig, n_chunks


def lotka_volterra_model(priors: PriorSet, log_posterior: LogPosterior):
    """NumPyro model: parameter priors plus the Gaussian ODE likelihood."""
    values = [numpyro.sample(name, prior.distribution()) for name, prior in priors.items()]
    theta = jnp.stack(values)
    numpyro.factor("log_likelihood", log_posterior.log_likelihood(theta[:-1], theta[-1]))


class NumPyroNUTSBackend(InferenceBackend):
    """General-purpose PPL sampler (NumPyro NUTS)."""
    name = "numpyro"

    def sample(self, log_posterior, num_samples, config: SamplerConfig, deadline: Deadline, verbose=False):
        chunk = min(config.chunk_size, num_samples)
        total_chunks = n_chunks(num_samples, chunk)

        model = partial(lotka_volterra_model, log_posterior.priors, log_posterior)
        kernel = NUTS(
            model,
            target_accept_prob=config.target_accept,
            max_tree_depth=config.max_tree_depth,
            init_strategy=init_to_uniform,
        )
        mcmc = MCMC(
            kernel,
            num_warmup=config.num_warmup,
            num_samples=chunk,
            num_chains=config.num_chains,
            chain_method="sequential",
            progress_bar=config.progress_bar,
        )

        deadline.check(self.name)
        if verbose:
            print(f"[{self.name}] warmup: {config.num_warmup} steps x {config.num_chains} chain(s)")
        mcmc.warmup(random.PRNGKey(config.seed), collect_warmup=False)

        draws = {name: [] for name in log_posterior.names}
        accept, diverging = [], []
        for i in range(total_chunks):
            deadline.check(self.name)
            mcmc.run(mcmc.post_warmup_state.rng_key, extra_fields=("accept_prob", "diverging"))
            samples = mcmc.get_samples(group_by_chain=True)
            for name in log_posterior.names:
                draws[name].append(np.asarray(samples[name]))
            extra = mcmc.get_extra_fields(group_by_chain=True)
            accept.append(np.asarray(extra["accept_prob"]))
            diverging.append(np.asarray(extra["diverging"]))
            mcmc.post_warmup_state = mcmc.last_state

            if verbose:
                print(f"[{self.name}] chunk {i + 1:3d}/{total_chunks} | "
                      f"draws: {min((i + 1) * chunk, num_samples):7,} | "
                      f"accept: {np.mean(accept[-1]):5.1%} | "
                      f"elapsed: {deadline.elapsed():8.1f}s")

        samples = {name: np.concatenate(v, axis=1)[:, :num_samples] for name, v in draws.items()}
        accept = np.concatenate(accept, axis=1)[:, :num_samples]
        diverging = np.concatenate(diverging, axis=1)[:, :num_samples]
        step_size = np.asarray(mcmc.last_state.adapt_state.step_size)

        return PosteriorChain(
            backend=self.name,
            names=log_posterior.names,
            samples=samples,
            diagnostics={
                "acceptance_rate": float(np.mean(accept)),
                "num_divergent": int(np.sum(diverging)),
                "step_size": float(np.mean(step_size)),
            },
        )
