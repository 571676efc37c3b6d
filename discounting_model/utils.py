"""
Utility Functions for the Delay Discounting Model

Helper functions for posterior summaries, persistence, notification,
and fit reporting.
"""

import os
import pickle
import smtplib
import numpy as np
import pandas as pd
import arviz as az
from datetime import datetime
from email.message import EmailMessage
from scipy.stats import gaussian_kde
from typing import Dict, List, Optional, Sequence

# Column order of the per-subject summary table
SUMMARY_COLUMNS = ['r', 'logR', 's', 'beta']

IND_PARS_OPTIONS = ('mean', 'median', 'mode')

DEFAULT_SMTP_HOST = 'localhost'
DEFAULT_SMTP_PORT = 25
DEFAULT_SENDER = 'discounting-model@localhost'


def estimate_mode(x: np.ndarray, n_grid: int = 512) -> float:
    """
    Estimate the mode of a sample as the peak of a Gaussian KDE.

    Parameters
    ----------
    x : np.ndarray
        Posterior draws
    n_grid : int, default=512
        Number of grid points the density is evaluated on

    Returns
    -------
    mode : float
        Location of the density peak
    """
    x = np.asarray(x, dtype=float).ravel()
    if np.ptp(x) == 0:
        return float(x[0])

    kde = gaussian_kde(x)
    grid = np.linspace(x.min(), x.max(), n_grid)
    return float(grid[np.argmax(kde(grid))])


REDUCERS = {
    'mean': lambda x: float(np.mean(x)),
    'median': lambda x: float(np.median(x)),
    'mode': estimate_mode,
}


def extract_posterior_draws(trace: az.InferenceData,
                            var_names: Sequence[str]) -> Dict[str, np.ndarray]:
    """
    Pool posterior draws across chains.

    Parameters
    ----------
    trace : az.InferenceData
        Posterior samples with dims (chain, draw, subject)
    var_names : sequence of str
        Variables to extract

    Returns
    -------
    par_vals : dict
        Mapping variable → array of shape (n_chains * n_draws, n_subjects)
    """
    par_vals = {}
    for name in var_names:
        stacked = trace.posterior[name].stack(sample=('chain', 'draw'))
        par_vals[name] = stacked.transpose('sample', ...).values
    return par_vals


def summarize_individual_parameters(par_vals: Dict[str, np.ndarray],
                                    subjects: Sequence,
                                    ind_pars: str = 'mean') -> pd.DataFrame:
    """
    Reduce posterior draws to one value per subject and parameter.

    Parameters
    ----------
    par_vals : dict
        Output from extract_posterior_draws()
    subjects : sequence
        Subject identifiers, in the order of the subject dimension
    ind_pars : str, default='mean'
        Reducer: 'mean', 'median' or 'mode'

    Returns
    -------
    all_ind_pars : pd.DataFrame
        One row per subject with columns r, logR, s, beta, subjID
    """
    if ind_pars not in REDUCERS:
        raise ValueError(f"Invalid ind_pars: {ind_pars!r}. Must be one of {IND_PARS_OPTIONS}.")
    reduce = REDUCERS[ind_pars]

    rows = []
    for i, subject in enumerate(subjects):
        row = {param: reduce(np.asarray(par_vals[param])[:, i]) for param in SUMMARY_COLUMNS}
        row['subjID'] = subject
        rows.append(row)

    return pd.DataFrame(rows, columns=SUMMARY_COLUMNS + ['subjID'])


def result_filename(model_name: str, data_path: str, when: Optional[datetime] = None) -> str:
    """Archive name: <model>_<data file stem>_<YYYY-MM-DD>_<HH>_<MM>.pkl"""
    when = when or datetime.now()
    stem = os.path.splitext(os.path.basename(data_path))[0]
    return f"{model_name}_{stem}_{when:%Y-%m-%d_%H_%M}.pkl"


def save_model_result(result, save_dir: str, data_path: str,
                      when: Optional[datetime] = None) -> str:
    """
    Pickle a fitted model result into ``save_dir``.

    Parameters
    ----------
    result : ModelResult
        Output of dd_cs_single()
    save_dir : str
        Directory to write to (created if missing)
    data_path : str
        Data file the model was fitted on; its stem is part of the name
    when : datetime, optional
        Time stamp for the file name. Defaults to now.

    Returns
    -------
    path : str
        Path of the written file
    """
    os.makedirs(save_dir, exist_ok=True)
    path = os.path.join(save_dir, result_filename(result.model, data_path, when))
    with open(path, 'wb') as f:
        pickle.dump(result, f)
    print(f"Model saved to: {path}")
    return path


def load_model_result(path: str):
    """Load a model result saved with save_model_result()."""
    with open(path, 'rb') as f:
        result = pickle.load(f)
    print(f"Model loaded from: {path}")
    return result


def send_completion_email(address: str,
                          model_name: str,
                          data_path: str,
                          elapsed,
                          smtp_host: str = DEFAULT_SMTP_HOST,
                          smtp_port: int = DEFAULT_SMTP_PORT,
                          sender: str = DEFAULT_SENDER) -> EmailMessage:
    """
    Notify ``address`` that a fit has finished.

    Parameters
    ----------
    address : str
        Recipient e-mail address
    model_name : str
        Name of the fitted model
    data_path : str
        Data file the model was fitted on
    elapsed : timedelta
        Duration of the fit
    smtp_host, smtp_port : str, int
        SMTP server to send through
    sender : str
        From address

    Returns
    -------
    msg : EmailMessage
        The message that was sent
    """
    msg = EmailMessage()
    msg['Subject'] = f"model={model_name}, fileName = {data_path}"
    msg['From'] = sender
    msg['To'] = address
    msg.set_content(f"Check {os.getcwd()}. It took {elapsed}")

    with smtplib.SMTP(smtp_host, smtp_port) as server:
        server.send_message(msg)

    return msg


def rhat(result, less: Optional[float] = None) -> pd.DataFrame:
    """
    Maximum R-hat per parameter.

    Parameters
    ----------
    result : ModelResult
        Output of dd_cs_single()
    less : float, optional
        If given, return whether each R-hat is <= ``less`` instead.

    Returns
    -------
    table : pd.DataFrame
        One row per parameter
    """
    rhats = az.rhat(result.fit, var_names=list(SUMMARY_COLUMNS))
    table = pd.DataFrame({
        'parameter': list(SUMMARY_COLUMNS),
        'rhat': [float(np.max(rhats[p].values)) for p in SUMMARY_COLUMNS],
    })

    if less is not None:
        table['rhat'] = table['rhat'] <= less

    return table


def print_fit(*results, ic: str = 'looic') -> pd.DataFrame:
    """
    Print and return information criteria for one or more fits.

    Parameters
    ----------
    *results : ModelResult
        Fitted models to compare
    ic : str, default='looic'
        'looic', 'waic', or 'both'

    Returns
    -------
    table : pd.DataFrame
        Columns model and LOOIC and/or WAIC (deviance scale)
    """
    if ic not in ('looic', 'waic', 'both'):
        raise ValueError(f"Invalid ic: {ic!r}. Must be 'looic', 'waic', or 'both'.")

    rows: List[Dict] = []
    for result in results:
        row = {'model': result.model}
        if ic in ('looic', 'both'):
            row['LOOIC'] = -2 * float(az.loo(result.fit).elpd_loo)
        if ic in ('waic', 'both'):
            row['WAIC'] = -2 * float(az.waic(result.fit).elpd_waic)
        rows.append(row)

    table = pd.DataFrame(rows)
    print(table.to_string(index=False))
    return table


def print_model_summary(result, detailed: bool = False):
    """
    Print a formatted summary of model results.

    Parameters
    ----------
    result : ModelResult
        Fitted model
    detailed : bool, default=False
        Print every subject instead of the first five
    """
    table = result.all_ind_pars
    n_samples = next(iter(result.par_vals.values())).shape[0]

    print("\n" + "="*80)
    print(f"MODEL SUMMARY: {result.model}")
    print("="*80)

    print("\nDATA:")
    print(f"  Subjects: {len(table)}")
    print(f"  Trials: {len(result.raw_data)}")
    print(f"  Posterior samples: {n_samples:,}")

    print("\nINDIVIDUAL PARAMETERS:")
    shown = table if detailed else table.head(5)
    for _, row in shown.iterrows():
        print(f"  {str(row['subjID']):12s}: " +
              "  ".join(f"{p}={row[p]:7.3f}" for p in SUMMARY_COLUMNS))
    if not detailed and len(table) > 5:
        print(f"  (+{len(table) - 5} more)")

    print("="*80)
