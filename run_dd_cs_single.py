"""
Fit the Constant-Sensitivity delay discounting model to a choice data file.

Runs dd_cs_single() on DATA_PATH, prints the per-subject estimates and fit
criteria, and saves diagnostic figures to FIGURES_PATH.
"""

import os
import matplotlib.pyplot as plt

from discounting_model import dd_cs_single
from discounting_model.utils import rhat, print_fit, print_model_summary
from discounting_model.visualization import (
    plot_trace_diagnostics,
    plot_posterior_distributions,
    plot_subject_parameters
)

# Paths
DATA_PATH = 'example'
RESULTS_PATH = os.path.join('results', 'dd_cs_single')
FIGURES_PATH = os.path.join('figures', 'dd_cs_single')

# Configuration
NITER = 2000
NWARMUP = 1000
NCHAIN = 4
NCORE = 4
IND_PARS = 'mean'
RANDOM_SEED = 42


if __name__ == "__main__":
    print("=" * 80)
    print("DELAY DISCOUNTING: CONSTANT-SENSITIVITY MODEL")
    print("=" * 80)

    output = dd_cs_single(
        data=DATA_PATH,
        niter=NITER,
        nwarmup=NWARMUP,
        nchain=NCHAIN,
        ncore=NCORE,
        ind_pars=IND_PARS,
        save_dir=RESULTS_PATH,
        random_seed=RANDOM_SEED
    )

    print_model_summary(output, detailed=True)

    print("\nR-hat (should be <= 1.1):")
    print(rhat(output).to_string(index=False))

    print("\nModel fit:")
    print_fit(output, ic='both')

    os.makedirs(FIGURES_PATH, exist_ok=True)
    figures = {
        'trace.png': plot_trace_diagnostics(output),
        'posteriors.png': plot_posterior_distributions(output),
        'subject_r.png': plot_subject_parameters(output, param='r'),
    }
    for fn, fig in figures.items():
        fig_path = os.path.join(FIGURES_PATH, fn)
        fig.savefig(fig_path, bbox_inches='tight')
        plt.close(fig)
        print(f"Saved: {fig_path}")

    print("\n" + "=" * 80)
    print("COMPLETE")
    print("=" * 80)
