#------------------------------------------------------------------------------
# Representation stage: Lotka-Volterra model, forward simulation and
# synthetic observations
#------------------------------------------------------------------------------

import jax

# ODE accuracy at tight tolerances needs double precision
jax.config.update("jax_enable_x64", True)

from .lotka_volterra import (
    PARAMETER_NAMES,
    STATE_NAMES,
    NOISE_NAME,
    TRUE_PARAMS,
    DEFAULT_U0,
    DEFAULT_TSPAN,
    lotka_volterra,
    vector_field,
    as_parameter_vector,
    as_state_vector,
    validate_time_grid,
    default_time_grid,
)
from .simulate import (
    SolverConfig,
    SolverFailure,
    INFERENCE_SOLVER,
    Trajectory,
    ForwardSimulator,
    simulate,
)
from .synthetic import (
    NoisyDataset,
    generate,
    generate_from_simulator,
    empirical_noise,
)

__all__ = [
    # Model
    'PARAMETER_NAMES',
    'STATE_NAMES',
    'NOISE_NAME',
    'TRUE_PARAMS',
    'DEFAULT_U0',
    'DEFAULT_TSPAN',
    'lotka_volterra',
    'vector_field',
    'as_parameter_vector',
    'as_state_vector',
    'validate_time_grid',
    'default_time_grid',
    # Simulation
    'SolverConfig',
    'SolverFailure',
    'INFERENCE_SOLVER',
    'Trajectory',
    'ForwardSimulator',
    'simulate',
    # Data
    'NoisyDataset',
    'generate',
    'generate_from_simulator',
    'empirical_noise',
]
