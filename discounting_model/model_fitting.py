"""
Delay Discounting Task: Constant-Sensitivity Model (Ebert & Prelec, 2007)

Fits individual parameters r (exponential discounting rate), s (impatience)
and β (inverse temperature) to choices between a sooner/smaller and a
later/larger reward, and summarizes the posterior per subject.

Example:
    >>> from discounting_model import dd_cs_single
    >>> output = dd_cs_single(data='example', niter=2000, nwarmup=1000,
    ...                       nchain=3, ncore=3)
    >>> output.all_ind_pars
"""

import numpy as np
import pandas as pd
import arviz as az
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Sequence, Union

from .data_preprocessing import (
    resolve_data_path,
    load_choice_data,
    structure_model_data,
    summarize_model_data,
)
from .bayesian_model import (
    MODEL_NAME,
    PARAMETERS_OF_INTEREST,
    PyMCSampler,
    SamplerConfig,
    resolve_cores,
    resolve_initial_values,
)
from .utils import (
    IND_PARS_OPTIONS,
    extract_posterior_draws,
    summarize_individual_parameters,
    save_model_result,
    send_completion_email,
)


@dataclass(frozen=True)
class ModelResult:
    """
    Output of one model fit.

    Attributes
    ----------
    model : str
        Model name ('dd_cs_single')
    all_ind_pars : pd.DataFrame
        Summarized parameter values for each subject
    par_vals : dict
        Posterior draws per parameter, shape (n_samples, n_subjects)
    fit : az.InferenceData
        Full trace returned by the sampler
    raw_data : pd.DataFrame
        Data the model was fitted on
    """
    model: str
    all_ind_pars: pd.DataFrame
    par_vals: Dict[str, np.ndarray]
    fit: az.InferenceData
    raw_data: pd.DataFrame


def dd_cs_single(data: str = 'choose',
                 niter: int = 3000,
                 nwarmup: int = 1000,
                 nchain: int = 4,
                 ncore: int = 1,
                 nthin: int = 1,
                 inits: Union[str, Sequence[float]] = 'fixed',
                 ind_pars: str = 'mean',
                 save_dir: Optional[str] = None,
                 email: Optional[str] = None,
                 model_regressor: bool = False,
                 adapt_delta: float = 0.95,
                 stepsize: float = 1,
                 max_treedepth: int = 10,
                 random_seed: Optional[int] = None,
                 sampler=None,
                 verbose: bool = True) -> ModelResult:
    """
    Fit the Constant-Sensitivity delay discounting model.

    Parameters
    ----------
    data : str, default='choose'
        Path to a tab-delimited .txt file with columns 'subjID',
        'delay_later', 'amount_later', 'delay_sooner', 'amount_sooner' and
        'choice' (0 = sooner, 1 = later). Extra columns are ignored.
        'example' uses the bundled example data; 'choose' prompts for a path.
    niter : int, default=3000
        Number of iterations per chain, including warm-up
    nwarmup : int, default=1000
        Number of iterations used for warm-up only
    nchain : int, default=4
        Number of chains
    ncore : int, default=1
        Number of CPUs to sample on. Capped to the local CPU count.
    nthin : int, default=1
        Keep every ``nthin``-th sample
    inits : str or sequence of float, default='fixed'
        'fixed', 'random', or initial values for (r, s, beta)
    ind_pars : str, default='mean'
        Summary of individual parameters: 'mean', 'median' or 'mode'
    save_dir : str, optional
        Directory to pickle the result into
    email : str, optional
        Address to notify on completion
    model_regressor : bool, default=False
        Export model-based regressors. Not available for this model.
    adapt_delta : float, default=0.95
        Target acceptance probability, between 0 and 1
    stepsize : float, default=1
        Step size scale of the sampler
    max_treedepth : int, default=10
        Maximum tree depth of the sampler
    random_seed : int, optional
        Random seed for reproducibility
    sampler : object, optional
        Object with a ``sample(model_input, config, initvals)`` method
        returning az.InferenceData. Defaults to PyMCSampler().
    verbose : bool, default=True
        Print progress

    Returns
    -------
    result : ModelResult
        Model name, per-subject summaries, posterior draws, trace and raw data
    """
    if model_regressor:
        raise NotImplementedError("** Model-based regressors are not available for this model **")

    if ind_pars not in IND_PARS_OPTIONS:
        raise ValueError(f"Invalid ind_pars: {ind_pars!r}. Must be one of {IND_PARS_OPTIONS}.")

    initvals = resolve_initial_values(inits)

    start_time = datetime.now()

    data_path = resolve_data_path(data)
    raw_data = load_choice_data(data_path)

    cores = resolve_cores(ncore)
    config = SamplerConfig(niter=niter, nwarmup=nwarmup, nchain=nchain,
                           ncore=cores, nthin=nthin, adapt_delta=adapt_delta,
                           stepsize=stepsize, max_treedepth=max_treedepth,
                           random_seed=random_seed)

    model_input = structure_model_data(raw_data)

    if verbose:
        print(f"\nModel name = {MODEL_NAME}")
        print("\nDetails:")
        print(f" # of chains                       = {nchain}")
        print(f" # of cores used                   = {cores}")
        print(f" # of MCMC samples (per chain)     = {niter}")
        print(f" # of burn-in samples              = {nwarmup}")
        summarize_model_data(model_input, data_path)
        print("\n" + "="*40)
        print("Fitting model with MCMC...")
        print("="*40)

    if sampler is None:
        sampler = PyMCSampler(progressbar=verbose)

    trace = sampler.sample(model_input, config, initvals)

    par_vals = extract_posterior_draws(trace, PARAMETERS_OF_INTEREST)
    all_ind_pars = summarize_individual_parameters(par_vals, model_input['subjects'], ind_pars)

    result = ModelResult(model=MODEL_NAME,
                         all_ind_pars=all_ind_pars,
                         par_vals=par_vals,
                         fit=trace,
                         raw_data=raw_data)

    elapsed = datetime.now() - start_time

    if save_dir is not None:
        save_model_result(result, save_dir, data_path)

    if email is not None:
        send_completion_email(email, MODEL_NAME, data_path, elapsed)

    if verbose:
        print("\n" + "="*40)
        print("Model fitting is complete!")
        print(f"  Elapsed: {elapsed}")
        print("="*40)

    return result
