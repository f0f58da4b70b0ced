#------------------------------------------------------------------------------
# Validation stage: HDF5 persistence and MCMC diagnostics
#------------------------------------------------------------------------------

from .save_as_h5py import (
    save_chain_to_hdf5,
    load_chain_from_hdf5,
    save_dataset_to_hdf5,
    load_dataset_from_hdf5,
    save_benchmark_to_hdf5,
    load_benchmark_chains,
)
from .diagnostics_mcmc import (
    autocorrelation,
    print_chain_diagnostics,
    plot_chain_diagnostics,
)
