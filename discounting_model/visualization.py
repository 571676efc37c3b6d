"""
Visualization Module for the Delay Discounting Model

This module provides plotting functions for sampler diagnostics and
per-subject parameter estimates.
"""

import numpy as np
import matplotlib.pyplot as plt
import arviz as az
from typing import List, Optional

from .utils import SUMMARY_COLUMNS

# Set plotting style
plt.style.use('default')
plt.rcParams['axes.grid'] = True
plt.rcParams['grid.alpha'] = 0.3
plt.rcParams['font.size'] = 10
plt.rcParams['figure.dpi'] = 100


def plot_trace_diagnostics(
    result,
    var_names: Optional[List[str]] = None,
    figsize: tuple = (12, 10)
) -> plt.Figure:
    """
    Plot MCMC trace diagnostics.

    Chains should look like hairy caterpillars and overlap.

    Parameters
    ----------
    result : ModelResult
        Output of dd_cs_single()
    var_names : list of str, optional
        Variables to plot. If None, plots r, s and beta.
    figsize : tuple, default=(12, 10)
        Figure size

    Returns
    -------
    fig : plt.Figure
        Matplotlib figure
    """
    if var_names is None:
        var_names = ['r', 's', 'beta']

    axes = az.plot_trace(
        result.fit,
        var_names=var_names,
        figsize=figsize,
        compact=True
    )
    fig = np.asarray(axes).ravel()[0].figure

    fig.suptitle(f'MCMC Trace Diagnostics - {result.model}',
                 fontsize=14, fontweight='bold', y=1.01)

    return fig


def plot_posterior_distributions(
    result,
    var_names: Optional[List[str]] = None,
    hdi_prob: float = 0.95,
    figsize: tuple = (12, 8)
) -> plt.Figure:
    """
    Plot pooled posterior distributions for key parameters.

    Parameters
    ----------
    result : ModelResult
        Output of dd_cs_single()
    var_names : list of str, optional
        Variables to plot. If None, plots r, logR, s and beta.
    hdi_prob : float, default=0.95
        HDI probability
    figsize : tuple, default=(12, 8)
        Figure size

    Returns
    -------
    fig : plt.Figure
        Matplotlib figure
    """
    if var_names is None:
        var_names = list(SUMMARY_COLUMNS)

    fig, axes = plt.subplots(2, 2, figsize=figsize)
    axes = axes.flatten()

    for i, var_name in enumerate(var_names):
        if i >= len(axes):
            break

        ax = axes[i]

        az.plot_posterior(
            result.par_vals[var_name].ravel(),
            hdi_prob=hdi_prob,
            ax=ax
        )

        ax.set_title(var_name, fontweight='bold')

    fig.suptitle(f'Posterior Distributions - {result.model}',
                 fontsize=14, fontweight='bold')
    fig.tight_layout()

    return fig


def plot_subject_parameters(
    result,
    param: str = 'r',
    hdi_prob: float = 0.95,
    figsize: tuple = (10, 6)
) -> plt.Figure:
    """
    Plot subject-specific parameter estimates with HDI.

    Parameters
    ----------
    result : ModelResult
        Output of dd_cs_single()
    param : str, default='r'
        Parameter to plot
    hdi_prob : float, default=0.95
        HDI probability
    figsize : tuple, default=(10, 6)
        Figure size

    Returns
    -------
    fig : plt.Figure
        Matplotlib figure
    """
    draws = result.par_vals[param]
    subjects = [str(s) for s in result.all_ind_pars['subjID']]
    estimates = result.all_ind_pars[param].to_numpy()

    hdi = np.array([az.hdi(draws[:, i], hdi_prob=hdi_prob) for i in range(draws.shape[1])])

    # Sort by estimate
    sort_idx = np.argsort(estimates)
    subjects = [subjects[i] for i in sort_idx]
    estimates = estimates[sort_idx]
    hdi = hdi[sort_idx]

    errors = np.clip([estimates - hdi[:, 0], hdi[:, 1] - estimates], 0, None)

    fig, ax = plt.subplots(figsize=figsize)

    y_pos = np.arange(len(subjects))

    ax.barh(y_pos, estimates, xerr=errors, capsize=3,
            color='steelblue', alpha=0.7, edgecolor='black')

    ax.set_yticks(y_pos)
    ax.set_yticklabels(subjects)
    ax.set_xlabel(f'{param} (estimate ± {hdi_prob*100:.0f}% HDI)', fontweight='bold')
    ax.set_ylabel('Subject', fontweight='bold')
    ax.set_title(f'Subject-Specific {param} Estimates - {result.model}',
                 fontsize=14, fontweight='bold')
    ax.grid(axis='x', alpha=0.3)

    fig.tight_layout()

    return fig
