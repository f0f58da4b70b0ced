#------------------------------------------------------------------------------
# Scoring module for Bayesian inference
# Priors, Gaussian likelihood and the shared log-posterior adapter
#------------------------------------------------------------------------------

from .priors import (
    Prior,
    PriorSet,
    PriorSupportViolation,
    TRUNCATED_NORMAL,
    INVERSE_GAMMA,
    truncated_normal,
    inverse_gamma,
    default_priors,
)

from .likelihood import (
    EXPECTED_NAMES,
    LogPosterior,
    gaussian_log_likelihood,
)

__all__ = [
    # Priors
    'Prior',
    'PriorSet',
    'PriorSupportViolation',
    'TRUNCATED_NORMAL',
    'INVERSE_GAMMA',
    'truncated_normal',
    'inverse_gamma',
    'default_priors',
    # Likelihood
    'EXPECTED_NAMES',
    'LogPosterior',
    'gaussian_log_likelihood',
]
