"""
Bayesian Model for Delay Discounting (Constant-Sensitivity)

This module implements the PyMC model for the Constant-Sensitivity (CS)
discounting function (Ebert & Prelec, 2007) and the sampler that fits it.

Model equation:
    V = A · exp(-(r·D)^s)
    P(later) = logistic(β · (V_later - V_sooner))

where:
    A: Reward amount
    D: Delay of the reward
    r: Exponential discounting rate (subject-specific)
    s: Impatience (subject-specific)
    β: Inverse temperature (subject-specific)
"""

import os
import warnings
import numpy as np
import pymc as pm
import arviz as az
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

MODEL_NAME = 'dd_cs_single'

# Free parameters, in the order of a user-supplied initial value vector
PARAMETER_NAMES = ('r', 's', 'beta')

# Quantities returned to the caller
PARAMETERS_OF_INTEREST = ('r', 's', 'beta', 'logR')

# Starting values used with inits='fixed'
DEFAULT_INITS = (0.1, 1.0, 1.0)

# Uniform prior bounds per parameter
PRIOR_BOUNDS = {
    'r': (0.0, 1.0),
    's': (0.0, 10.0),
    'beta': (0.0, 5.0),
}


@dataclass
class SamplerConfig:
    """
    MCMC settings for one fit.

    Attributes
    ----------
    niter : int
        Number of iterations per chain, including warm-up
    nwarmup : int
        Number of warm-up (tuning) iterations
    nchain : int
        Number of chains
    ncore : int
        Number of CPU cores for parallel chains
    nthin : int
        Keep every ``nthin``-th draw
    adapt_delta : float
        Target acceptance probability for NUTS
    stepsize : float
        Initial step size scale for NUTS
    max_treedepth : int
        Maximum tree depth for NUTS
    random_seed : int, optional
        Random seed for reproducibility
    """
    niter: int = 3000
    nwarmup: int = 1000
    nchain: int = 4
    ncore: int = 1
    nthin: int = 1
    adapt_delta: float = 0.95
    stepsize: float = 1.0
    max_treedepth: int = 10
    random_seed: Optional[int] = None

    def __post_init__(self):
        for name in ('niter', 'nchain', 'ncore', 'nthin', 'max_treedepth'):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer, got {getattr(self, name)}")
        if not 0 <= self.nwarmup < self.niter:
            raise ValueError(f"nwarmup must be in [0, niter), got nwarmup={self.nwarmup}, niter={self.niter}")
        if not 0 < self.adapt_delta < 1:
            raise ValueError(f"adapt_delta must be between 0 and 1, got {self.adapt_delta}")
        if self.stepsize <= 0:
            raise ValueError(f"stepsize must be positive, got {self.stepsize}")

    @property
    def ndraws(self) -> int:
        """Post-warm-up draws per chain, before thinning."""
        return self.niter - self.nwarmup


def resolve_initial_values(inits: Union[str, Sequence[float]]) -> Optional[Dict[str, float]]:
    """
    Resolve the ``inits`` argument to starting values.

    Parameters
    ----------
    inits : str or sequence of float
        'fixed' for default starting values, 'random' to let the sampler
        choose, or one value per parameter in the order (r, s, beta).

    Returns
    -------
    initvals : dict or None
        Mapping parameter name → starting value, or None for 'random'.
    """
    if isinstance(inits, str):
        if inits == 'random':
            return None
        if inits == 'fixed':
            values = DEFAULT_INITS
        else:
            raise ValueError(f"Invalid inits: {inits!r}. Must be 'fixed', 'random', "
                             f"or {len(PARAMETER_NAMES)} numeric values.")
    else:
        values = list(inits)
        if len(values) != len(PARAMETER_NAMES):
            raise ValueError(f"Check your initial values! Expected {len(PARAMETER_NAMES)} "
                             f"values {PARAMETER_NAMES}, got {len(values)}.")

    return {name: float(value) for name, value in zip(PARAMETER_NAMES, values)}


def resolve_cores(ncore: int) -> int:
    """
    Number of cores to sample on, capped to what is locally available.

    Issues a warning when the requested number exceeds the local CPU count.
    """
    if ncore <= 1:
        return 1

    available = os.cpu_count() or 1
    if ncore > available:
        warnings.warn(f"Number of cores specified for parallel computing ({ncore}) is greater "
                      f"than the number of locally available cores ({available}). "
                      f"Using all locally available cores.")
        return available

    return ncore


def _discount(r, s, delay: np.ndarray):
    """exp(-(r·D)^s), with D = 0 mapped to 1 so gradients stay finite."""
    has_delay = delay > 0
    safe_delay = np.where(has_delay, delay, 1.0)
    return pm.math.switch(has_delay, pm.math.exp(-((r * safe_delay) ** s)), 1.0)


def build_cs_model(model_input: Dict) -> pm.Model:
    """
    Build the PyMC Constant-Sensitivity model.

    Each subject gets independent r, s and β with uniform priors.

    Parameters
    ----------
    model_input : dict
        Structured data from data_preprocessing.structure_model_data()

    Returns
    -------
    model : pm.Model
        Configured PyMC model with a 'subject' dimension
    """
    subject_idx = model_input['subject_idx']
    coords = {
        'subject': [str(s) for s in model_input['subjects']],
        'trial': np.arange(model_input['Tsubj']),
    }

    with pm.Model(coords=coords) as model:
        r = pm.Uniform('r', *PRIOR_BOUNDS['r'], dims='subject')
        s = pm.Uniform('s', *PRIOR_BOUNDS['s'], dims='subject')
        beta = pm.Uniform('beta', *PRIOR_BOUNDS['beta'], dims='subject')

        pm.Deterministic('logR', pm.math.log(r), dims='subject')

        r_t = r[subject_idx]
        s_t = s[subject_idx]

        ev_later = model_input['amount_later'] * _discount(r_t, s_t, model_input['delay_later'])
        ev_sooner = model_input['amount_sooner'] * _discount(r_t, s_t, model_input['delay_sooner'])

        pm.Bernoulli('choice',
                     logit_p=beta[subject_idx] * (ev_later - ev_sooner),
                     observed=model_input['choice'],
                     dims='trial')

    return model


def random_initial_values(n_subjects: int,
                          n_chains: int,
                          random_seed: Optional[int] = None) -> List[Dict[str, np.ndarray]]:
    """
    Draw random starting values for each chain.

    Values are drawn uniformly on (-2, 2) in the unconstrained space and
    mapped back into each parameter's prior bounds.

    Parameters
    ----------
    n_subjects : int
        Number of subjects
    n_chains : int
        Number of chains
    random_seed : int, optional
        Seed for the draws

    Returns
    -------
    initvals : list of dict
        One mapping parameter name → array of shape (n_subjects,) per chain
    """
    rng = np.random.default_rng(random_seed)
    initvals = []
    for _ in range(n_chains):
        chain_init = {}
        for name in PARAMETER_NAMES:
            lower, upper = PRIOR_BOUNDS[name]
            u = rng.uniform(-2.0, 2.0, size=n_subjects)
            chain_init[name] = lower + (upper - lower) / (1.0 + np.exp(-u))
        initvals.append(chain_init)
    return initvals


class PyMCSampler:
    """
    NUTS sampler backed by PyMC.

    Any object with a matching ``sample`` method can be passed to
    dd_cs_single() in its place.

    Attributes
    ----------
    model : pm.Model
        PyMC model from the last call to sample()
    """

    def __init__(self, progressbar: bool = True):
        self.progressbar = progressbar
        self.model = None

    def sample(self,
               model_input: Dict,
               config: SamplerConfig,
               initvals: Optional[Dict[str, float]] = None) -> az.InferenceData:
        """
        Fit the CS model with NUTS.

        Parameters
        ----------
        model_input : dict
            Structured data from data_preprocessing.structure_model_data()
        config : SamplerConfig
            MCMC settings
        initvals : dict, optional
            Starting value per parameter, shared across subjects and chains.
            If None, each chain starts from random values.

        Returns
        -------
        trace : az.InferenceData
            Thinned posterior samples with log-likelihood
        """
        self.model = build_cs_model(model_input)
        n_subjects = model_input['n_subjects']

        if initvals is None:
            start = random_initial_values(n_subjects, config.nchain, config.random_seed)
        else:
            start = {name: np.full(n_subjects, value) for name, value in initvals.items()}

        with self.model:
            step = pm.NUTS(target_accept=config.adapt_delta,
                           max_treedepth=config.max_treedepth,
                           step_scale=config.stepsize)

            trace = pm.sample(
                draws=config.ndraws,
                tune=config.nwarmup,
                chains=config.nchain,
                cores=resolve_cores(config.ncore),
                step=step,
                initvals=start,
                random_seed=config.random_seed,
                progressbar=self.progressbar,
                idata_kwargs={'log_likelihood': True},
                return_inferencedata=True
            )

        if config.nthin > 1:
            trace = trace.isel(draw=slice(None, None, config.nthin))

        return trace
