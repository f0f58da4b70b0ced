# Samplers module for Bayesian inference
# Three NUTS backends behind one InferenceBackend interface:
# NumPyro (PPL), BlackJAX (standalone dynamic HMC), CmdStan (out-of-process)

from .base import (
    SamplerConfig,
    PosteriorChain,
    InferenceResult,
    InferenceBackend,
    BackendFailure,
    BackendTimeout,
    Deadline,
)
from .numpyro_nuts import NumPyroNUTSBackend, lotka_volterra_model
from .blackjax_nuts import BlackJAXNUTSBackend
from .stan_nuts import StanNUTSBackend, render_stan_program, stan_data

BACKENDS = {
    NumPyroNUTSBackend.name: NumPyroNUTSBackend,
    BlackJAXNUTSBackend.name: BlackJAXNUTSBackend,
    StanNUTSBackend.name: StanNUTSBackend,
}


def get_backend(name: str) -> InferenceBackend:
    """Instantiate a backend by name ('numpyro', 'blackjax' or 'stan')."""
    try:
        return BACKENDS[name]()
    except KeyError:
        raise ValueError(f"unknown backend {name!r}, expected one of {sorted(BACKENDS)}") from None
