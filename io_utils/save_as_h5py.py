#------------------------------------------------------------------------------
# HDF5 I/O utilities for posterior chains, datasets and benchmark reports
# Part of the Validation stage in Bayesian inference pipeline
#------------------------------------------------------------------------------

import numpy as np
from jax import numpy as jnp
import h5py
from datetime import datetime
from typing import Dict, Optional, Tuple, TYPE_CHECKING
import json

from representation import NoisyDataset
from samplers import PosteriorChain

if TYPE_CHECKING:
    from benchmark import BenchmarkReport


def _write_chain(grp: h5py.Group, chain: PosteriorChain, elapsed: Optional[float] = None) -> None:
    grp.attrs['backend'] = chain.backend
    grp.attrs['names'] = json.dumps(list(chain.names))
    grp.attrs['num_chains'] = chain.num_chains
    grp.attrs['num_samples'] = chain.num_samples
    grp.attrs['diagnostics'] = json.dumps(chain.diagnostics)
    if elapsed is not None:
        grp.attrs['elapsed'] = float(elapsed)

    samples_grp = grp.create_group('samples')
    for name in chain.names:
        samples_grp.create_dataset(name, data=np.asarray(chain.samples[name]), compression='gzip')


def _read_chain(grp: h5py.Group) -> Tuple[PosteriorChain, Optional[float]]:
    names = tuple(json.loads(grp.attrs['names']))
    samples = {name: grp['samples'][name][:] for name in names}
    chain = PosteriorChain(
        backend=str(grp.attrs['backend']),
        names=names,
        samples=samples,
        diagnostics=json.loads(grp.attrs.get('diagnostics', '{}')),
    )
    elapsed = float(grp.attrs['elapsed']) if 'elapsed' in grp.attrs else None
    return chain, elapsed


def _write_dataset(grp: h5py.Group, dataset: NoisyDataset) -> None:
    grp.create_dataset('time_grid', data=np.asarray(dataset.time_grid))
    grp.create_dataset('values', data=np.asarray(dataset.values))
    grp.attrs['sigma'] = dataset.sigma
    if dataset.seed is not None:
        grp.attrs['seed'] = dataset.seed


def _read_dataset(grp: h5py.Group) -> NoisyDataset:
    return NoisyDataset(
        time_grid=jnp.asarray(grp['time_grid'][:]),
        values=jnp.asarray(grp['values'][:]),
        sigma=float(grp.attrs['sigma']),
        seed=int(grp.attrs['seed']) if 'seed' in grp.attrs else None,
    )


def save_chain_to_hdf5(
    filename: str,
    chain: PosteriorChain,
    elapsed: Optional[float] = None,
    metadata: Optional[Dict] = None,
) -> None:
    """
    Save one posterior chain to HDF5.

    File structure:
        /samples/<name>    (num_chains, num_samples) per parameter
        attrs: backend, names, num_chains, num_samples, diagnostics, elapsed
        /metadata          optional user attributes
    """
    with h5py.File(filename, 'w') as f:
        f.attrs['creation_date'] = datetime.now().isoformat()
        _write_chain(f, chain, elapsed)
        if metadata:
            meta_grp = f.create_group('metadata')
            for key, value in metadata.items():
                meta_grp.attrs[key] = value

    print(f"Saved chain to {filename}")
    print(f"  Backend: {chain.backend}")
    print(f"  Draws: {chain.num_chains} x {chain.num_samples}")


def load_chain_from_hdf5(filename: str) -> Tuple[PosteriorChain, Optional[float]]:
    """Load a chain written by save_chain_to_hdf5. Returns (chain, elapsed)."""
    with h5py.File(filename, 'r') as f:
        return _read_chain(f)


def save_dataset_to_hdf5(filename: str, dataset: NoisyDataset) -> None:
    with h5py.File(filename, 'w') as f:
        f.attrs['creation_date'] = datetime.now().isoformat()
        _write_dataset(f.create_group('dataset'), dataset)
    print(f"Dataset saved to {filename}")


def load_dataset_from_hdf5(filename: str) -> NoisyDataset:
    """Read the dataset group from a dataset or benchmark file."""
    with h5py.File(filename, 'r') as f:
        return _read_dataset(f['dataset'])


def save_benchmark_to_hdf5(filename: str, report: 'BenchmarkReport') -> None:
    """
    Save a full benchmark run: the shared dataset plus one group per backend.

    File structure:
        /dataset                       time_grid, values, sigma, seed
        /backends/<name>               chain group (absent draws if it failed)
        /backends/<name>.attrs[error]  failure message, if any
    """
    with h5py.File(filename, 'w') as f:
        f.attrs['creation_date'] = datetime.now().isoformat()
        f.attrs['true_params'] = np.asarray(report.true_params)
        _write_dataset(f.create_group('dataset'), report.dataset)

        backends_grp = f.create_group('backends')
        for record in report.records:
            grp = backends_grp.create_group(record.backend)
            if record.chain is not None:
                _write_chain(grp, record.chain, record.elapsed)
            else:
                grp.attrs['elapsed'] = float(record.elapsed)
            if record.error is not None:
                grp.attrs['error'] = record.error

    print(f"Saved benchmark to {filename}")
    print(f"  Backends: {', '.join(r.backend for r in report.records)}")


def load_benchmark_chains(filename: str) -> Dict[str, Tuple[Optional[PosteriorChain], Optional[float], Optional[str]]]:
    """Return backend -> (chain or None, elapsed, error or None)."""
    results = {}
    with h5py.File(filename, 'r') as f:
        for name, grp in f['backends'].items():
            error = str(grp.attrs['error']) if 'error' in grp.attrs else None
            if 'samples' in grp:
                chain, elapsed = _read_chain(grp)
            else:
                chain, elapsed = None, float(grp.attrs.get('elapsed', 0.0))
            results[name] = (chain, elapsed, error)
    return results
