import numpy as np
import matplotlib
matplotlib.use('Agg')  # Non-interactive backend
import matplotlib.pyplot as plt
from pathlib import Path
from typing import Dict, Optional

from samplers import PosteriorChain


def plot_trace(ax, data: np.ndarray, ylabel: str, title: str,
               target_value: Optional[float] = None):
    """Trace plot; `data` is (num_chains, num_samples), one line per chain."""
    series = np.atleast_2d(data)
    for i, chain in enumerate(series):
        ax.plot(chain, linewidth=0.5, alpha=0.8, label=f'chain {i}' if len(series) > 1 else None)
    if target_value is not None:
        ax.axhline(target_value, color='red', linestyle='--',
                   linewidth=2, label=f'True ({target_value:.2f})')
    if ax.get_legend_handles_labels()[0]:
        ax.legend()
    ax.set_xlabel('Sample', fontsize=14)
    ax.set_ylabel(ylabel, fontsize=14)
    ax.set_title(title, fontsize=16, fontweight='bold')
    ax.grid(alpha=0.3)


def plot_histogram(ax, data: np.ndarray, xlabel: str, title: str,
                   target_value: Optional[float] = None, bins: int = 50):
    """Posterior histogram with the mean and, if given, the true value."""
    data = np.ravel(data)
    ax.hist(data, bins=bins, alpha=0.7, edgecolor='black', density=True)
    if target_value is not None:
        ax.axvline(target_value, color='red', linestyle='--',
                   linewidth=2, label=f'True ({target_value:.2f})')
    ax.axvline(np.mean(data), color='blue', linestyle='--',
               linewidth=2, label=f'Mean ({np.mean(data):.3f})')
    ax.set_xlabel(xlabel, fontsize=14)
    ax.set_ylabel('Density', fontsize=14)
    ax.set_title(title, fontsize=16, fontweight='bold')
    ax.legend()
    ax.grid(alpha=0.3, axis='y')


def autocorrelation(data: np.ndarray, max_lag: int = 500) -> np.ndarray:
    """Normalised autocorrelation of a 1-D series up to max_lag."""
    data = np.ravel(data)
    max_lag = min(max_lag, len(data) // 2)
    centered = data - np.mean(data)
    acf = np.correlate(centered, centered, mode='full')[len(data) - 1:]
    if acf[0] == 0:
        return np.zeros(max_lag)
    return acf[:max_lag] / acf[0]


def plot_autocorrelation(ax, data: np.ndarray, max_lag: int = 500):
    ax.plot(autocorrelation(data, max_lag), linewidth=1.5)
    ax.axhline(0, color='black', linestyle='--', linewidth=1)
    ax.set_xlabel('Lag', fontsize=14)
    ax.set_ylabel('Autocorrelation', fontsize=14)
    ax.set_title('Autocorrelation Function', fontsize=14, fontweight='bold')
    ax.grid(alpha=0.3)


def print_chain_diagnostics(chain: PosteriorChain, truth: Optional[Dict[str, float]] = None) -> Dict[str, Dict[str, float]]:
    """Print the posterior summary table of one chain and return it."""
    stats = chain.summary()
    truth = truth or {}

    print(f"{'='*70}")
    print(f"Posterior summary: {chain.backend} ({chain.num_chains} x {chain.num_samples} draws)")
    print(f"{'='*70}")
    print(f"{'param':>8} {'true':>8} {'mean':>9} {'std':>8} {'5%':>8} {'95%':>8} {'n_eff':>9} {'r_hat':>7}")
    for name in chain.names:
        s = stats[name]
        true_val = f"{truth[name]:8.3f}" if name in truth else f"{'-':>8}"
        print(f"{name:>8} {true_val} {s['mean']:9.4f} {s['std']:8.4f} "
              f"{s['5.0%']:8.4f} {s['95.0%']:8.4f} {s['n_eff']:9.1f} {s['r_hat']:7.3f}")
    for key, value in chain.diagnostics.items():
        print(f"  {key}: {value}")
    print(f"{'='*70}")
    return stats


def plot_chain_diagnostics(
    chain: PosteriorChain,
    output_dir: str = "output_figures",
    truth: Optional[Dict[str, float]] = None,
) -> Dict[str, float]:
    """
    Write trace, histogram and autocorrelation plots for every parameter.

    Args:
        chain: Posterior draws of one backend
        output_dir: Directory for the PNG files
        truth: Optional name -> true value, drawn as reference lines

    Returns:
        Dictionary with posterior means and standard deviations
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    truth = truth or {}

    print(f"{'='*70}")
    print(f"Generating MCMC Diagnostics: {chain.backend}")
    print(f"{'='*70}")
    print(f"Output directory: {output_dir}")

    stats = {'n_samples': len(chain)}
    prefix = chain.backend

    for name in chain.names:
        draws = np.asarray(chain.samples[name])
        target = truth.get(name)

        fig, ax = plt.subplots(figsize=(12, 4))
        plot_trace(ax, draws, name, f'MCMC Trace: {name}', target)
        plt.tight_layout()
        plt.savefig(output_path / f"{prefix}_trace_{name}.png", dpi=150)
        plt.close()

        fig, ax = plt.subplots(figsize=(8, 6))
        plot_histogram(ax, draws, name, f'Posterior: {name}', target)
        plt.tight_layout()
        plt.savefig(output_path / f"{prefix}_hist_{name}.png", dpi=150)
        plt.close()

        if chain.num_samples > 100:
            fig, ax = plt.subplots(figsize=(10, 4))
            plot_autocorrelation(ax, draws[0])
            ax.set_title(f'Autocorrelation: {name}', fontsize=16, fontweight='bold')
            plt.tight_layout()
            plt.savefig(output_path / f"{prefix}_autocorr_{name}.png", dpi=150)
            plt.close()

        stats[f'{name}_mean'] = float(np.mean(draws))
        stats[f'{name}_std'] = float(np.std(draws))

    print("Generated plots:")
    for file in sorted(output_path.glob(f"{prefix}_*.png")):
        print(f"  - {file.name}")
    print(f"{'='*70}")
    return stats
