#------------------------------------------------------------------------------
# Standalone dynamic HMC backend: BlackJAX NUTS with Stan-style window
# adaptation, run on the unconstrained log density of the shared adapter
#------------------------------------------------------------------------------

import jax
import jax.numpy as jnp
import numpy as np
from jax import random
import blackjax

from .base import Deadline, InferenceBackend, PosteriorChain, SamplerConfig, n_chunks


def make_chunk_runner(kernel):
    """Jit-compiled scan over a fixed number of NUTS transitions."""
    def one_step(state, key):
        state, info = kernel(key, state)
        return state, (state.position, info.acceptance_rate, info.is_divergent)

    @jax.jit
    def run_chunk(state, keys):
        return jax.lax.scan(one_step, state, keys)

    return run_chunk


class BlackJAXNUTSBackend(InferenceBackend):
    """Dynamic HMC (NUTS) driven directly on a log-density function."""
    name = "blackjax"

    def sample(self, log_posterior, num_samples, config: SamplerConfig, deadline: Deadline, verbose=False):
        logdensity_fn = log_posterior.unconstrained
        to_constrained = jax.jit(jax.vmap(log_posterior.to_constrained))
        chunk = min(config.chunk_size, num_samples)
        total_chunks = n_chunks(num_samples, chunk)

        chains, accepts, divergent, step_sizes = [], [], [], []
        key = random.PRNGKey(config.seed)
        for c in range(config.num_chains):
            key, init_key, warmup_key, sample_key = random.split(key, 4)
            deadline.check(self.name)

            initial_position = log_posterior.initial_position(init_key)
            if config.num_warmup > 0:
                warmup = blackjax.window_adaptation(
                    blackjax.nuts,
                    logdensity_fn,
                    target_acceptance_rate=config.target_accept,
                    max_num_doublings=config.max_tree_depth,
                )
                if verbose:
                    print(f"[{self.name}] chain {c + 1}: window adaptation, {config.num_warmup} steps")
                (state, parameters), _ = warmup.run(warmup_key, initial_position, num_steps=config.num_warmup)
            else:
                parameters = {
                    "step_size": 0.1,
                    "inverse_mass_matrix": jnp.ones(log_posterior.dim),
                    "max_num_doublings": config.max_tree_depth,
                }
                state = blackjax.nuts.init(initial_position, logdensity_fn)
            kernel = blackjax.nuts(logdensity_fn, **parameters).step
            run_chunk = make_chunk_runner(kernel)

            positions, chain_accept, chain_div = [], [], []
            for i in range(total_chunks):
                deadline.check(self.name)
                sample_key, chunk_key = random.split(sample_key)
                state, (pos, acc, div) = run_chunk(state, random.split(chunk_key, chunk))
                positions.append(np.asarray(to_constrained(pos)))
                chain_accept.append(np.asarray(acc))
                chain_div.append(np.asarray(div))

                if verbose:
                    print(f"[{self.name}] chain {c + 1} chunk {i + 1:3d}/{total_chunks} | "
                          f"draws: {min((i + 1) * chunk, num_samples):7,} | "
                          f"accept: {np.mean(acc):5.1%} | "
                          f"step: {float(parameters['step_size']):.4f} | "
                          f"elapsed: {deadline.elapsed():8.1f}s")

            chains.append(np.concatenate(positions, axis=0)[:num_samples])
            accepts.append(np.concatenate(chain_accept)[:num_samples])
            divergent.append(np.concatenate(chain_div)[:num_samples])
            step_sizes.append(float(parameters["step_size"]))

        draws = np.stack(chains)    # (num_chains, num_samples, dim)
        samples = {name: draws[:, :, i] for i, name in enumerate(log_posterior.names)}
        return PosteriorChain(
            backend=self.name,
            names=log_posterior.names,
            samples=samples,
            diagnostics={
                "acceptance_rate": float(np.mean(accepts)),
                "num_divergent": int(np.sum(divergent)),
                "step_size": float(np.mean(step_sizes)),
            },
        )
