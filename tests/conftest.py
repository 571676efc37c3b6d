"""Shared fixtures: choice data files and a sampler that skips MCMC."""

import numpy as np
import pandas as pd
import arviz as az
import pytest

from discounting_model.data_preprocessing import REQUIRED_COLUMNS


class FakeSampler:
    """Returns synthetic draws in the shape PyMCSampler produces."""

    def __init__(self, n_chains: int = 2, n_draws: int = 400, seed: int = 0):
        self.n_chains = n_chains
        self.n_draws = n_draws
        self.seed = seed
        self.calls = []

    def sample(self, model_input, config, initvals):
        self.calls.append((model_input, config, initvals))
        rng = np.random.default_rng(self.seed)
        shape = (self.n_chains, self.n_draws, model_input['n_subjects'])

        r = rng.uniform(0.01, 0.2, size=shape)
        posterior = {
            'r': r,
            's': rng.uniform(0.5, 1.5, size=shape),
            'beta': rng.uniform(0.5, 2.0, size=shape),
            'logR': np.log(r),
        }
        return az.from_dict(
            posterior=posterior,
            coords={'subject': [str(s) for s in model_input['subjects']]},
            dims={name: ['subject'] for name in posterior},
        )


def make_trials(subjects, choices_by_subject=None):
    """Trials on a shared design: later 15-25 after 28-170 days vs 10 now."""
    design = [(28, 15.0), (85, 20.0), (170, 25.0), (28, 20.0), (85, 25.0)]
    rows = []
    for subject in subjects:
        for t, (delay, amount) in enumerate(design):
            choice = 1 if choices_by_subject is None else choices_by_subject[subject]
            rows.append({
                'subjID': subject,
                'trial': t + 1,
                'delay_later': delay,
                'amount_later': amount,
                'delay_sooner': 0,
                'amount_sooner': 10.0,
                'choice': choice,
            })
    return pd.DataFrame(rows)


@pytest.fixture
def write_choice_file(tmp_path):
    def _write(df: pd.DataFrame, name: str = 'choices.txt') -> str:
        path = tmp_path / name
        df.to_csv(path, sep='\t', index=False)
        return str(path)
    return _write


@pytest.fixture
def two_subject_file(write_choice_file):
    df = make_trials(['s01', 's02'], {'s01': 0, 's02': 1})
    assert set(REQUIRED_COLUMNS) <= set(df.columns)
    return write_choice_file(df)


@pytest.fixture
def fake_sampler():
    return FakeSampler()
