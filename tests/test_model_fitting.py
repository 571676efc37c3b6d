import os

import numpy as np
import pandas as pd
import pytest

from discounting_model import dd_cs_single, ModelResult
from discounting_model import model_fitting
from discounting_model.bayesian_model import SamplerConfig
from conftest import FakeSampler, make_trials


@pytest.mark.parametrize('kwargs', [
    {},
    {'data': 'does/not/exist.txt'},
    {'inits': [1, 2]},
    {'ind_pars': 'mean', 'nchain': 1, 'email': 'x@y.z'},
])
def test_model_regressor_always_fails_first(kwargs) -> None:
    sampler = FakeSampler()
    with pytest.raises(NotImplementedError, match="not available"):
        dd_cs_single(model_regressor=True, sampler=sampler, verbose=False, **kwargs)
    assert sampler.calls == []


def test_missing_data_file_fails(tmp_path, fake_sampler) -> None:
    with pytest.raises(FileNotFoundError):
        dd_cs_single(data=str(tmp_path / 'missing.txt'), sampler=fake_sampler, verbose=False)
    assert fake_sampler.calls == []


@pytest.mark.parametrize('n', [1, 2, 4, 6])
def test_wrong_length_inits_fail(two_subject_file, fake_sampler, n) -> None:
    with pytest.raises(ValueError, match="initial values"):
        dd_cs_single(data=two_subject_file, inits=[0.5] * n,
                     sampler=fake_sampler, verbose=False)
    assert fake_sampler.calls == []


def test_invalid_ind_pars_fails_before_sampling(two_subject_file, fake_sampler) -> None:
    with pytest.raises(ValueError):
        dd_cs_single(data=two_subject_file, ind_pars='max',
                     sampler=fake_sampler, verbose=False)
    assert fake_sampler.calls == []


def test_result_bundles_summary_draws_fit_and_data(two_subject_file, fake_sampler) -> None:
    result = dd_cs_single(data=two_subject_file, sampler=fake_sampler, verbose=False)

    assert isinstance(result, ModelResult)
    assert result.model == 'dd_cs_single'
    assert list(result.all_ind_pars['subjID']) == ['s01', 's02']
    assert list(result.all_ind_pars.columns) == ['r', 'logR', 's', 'beta', 'subjID']
    assert set(result.par_vals) == {'r', 's', 'beta', 'logR'}
    assert result.par_vals['r'].shape == (fake_sampler.n_chains * fake_sampler.n_draws, 2)
    assert result.fit is not None
    pd.testing.assert_frame_equal(result.raw_data, pd.read_csv(two_subject_file, sep='\t'))

    with pytest.raises(Exception):
        result.model = 'other'


def test_one_row_per_distinct_subject(write_choice_file, fake_sampler) -> None:
    df = pd.concat([make_trials([3, 1, 2]), make_trials([1])], ignore_index=True)
    result = dd_cs_single(data=write_choice_file(df), sampler=fake_sampler, verbose=False)
    assert len(result.all_ind_pars) == 3
    assert list(result.all_ind_pars['subjID']) == [3, 1, 2]


def test_sampler_receives_tuning_configuration(two_subject_file, fake_sampler) -> None:
    dd_cs_single(data=two_subject_file, niter=500, nwarmup=200, nchain=3, nthin=2,
                 adapt_delta=0.9, stepsize=0.5, max_treedepth=12, random_seed=4,
                 inits=[0.05, 1.5, 2.0], sampler=fake_sampler, verbose=False)

    model_input, config, initvals = fake_sampler.calls[0]
    assert config == SamplerConfig(niter=500, nwarmup=200, nchain=3, ncore=1, nthin=2,
                                   adapt_delta=0.9, stepsize=0.5, max_treedepth=12,
                                   random_seed=4)
    assert initvals == {'r': 0.05, 's': 1.5, 'beta': 2.0}
    assert model_input['Tsubj'] == 10
    assert model_input['subjects'] == ['s01', 's02']


def test_random_inits_are_left_to_sampler(two_subject_file, fake_sampler) -> None:
    dd_cs_single(data=two_subject_file, inits='random', sampler=fake_sampler, verbose=False)
    assert fake_sampler.calls[0][2] is None


def test_excess_cores_are_capped(monkeypatch, two_subject_file, fake_sampler) -> None:
    monkeypatch.setattr(os, 'cpu_count', lambda: 2)
    with pytest.warns(UserWarning):
        dd_cs_single(data=two_subject_file, ncore=16, sampler=fake_sampler, verbose=False)
    assert fake_sampler.calls[0][1].ncore == 2


def test_ind_pars_select_the_reducer(two_subject_file) -> None:
    means = dd_cs_single(data=two_subject_file, ind_pars='mean',
                         sampler=FakeSampler(), verbose=False).all_ind_pars
    medians = dd_cs_single(data=two_subject_file, ind_pars='median',
                           sampler=FakeSampler(), verbose=False).all_ind_pars
    result = dd_cs_single(data=two_subject_file, ind_pars='mode',
                          sampler=FakeSampler(), verbose=False)

    np.testing.assert_allclose(means['r'], result.par_vals['r'].mean(axis=0))
    np.testing.assert_allclose(medians['r'], np.median(result.par_vals['r'], axis=0))
    assert np.all((result.all_ind_pars['r'] >= 0.01) & (result.all_ind_pars['r'] <= 0.2))


def test_save_dir_writes_timestamped_archive(tmp_path, two_subject_file, fake_sampler) -> None:
    save_dir = tmp_path / 'saved'
    dd_cs_single(data=two_subject_file, save_dir=str(save_dir),
                 sampler=fake_sampler, verbose=False)
    files = os.listdir(save_dir)
    assert len(files) == 1
    assert files[0].startswith('dd_cs_single_choices_')
    assert files[0].endswith('.pkl')


def test_email_notification_on_completion(monkeypatch, two_subject_file, fake_sampler) -> None:
    sent = []
    monkeypatch.setattr(model_fitting, 'send_completion_email',
                        lambda address, model, path, elapsed: sent.append((address, model, path)))
    dd_cs_single(data=two_subject_file, email='me@example.org',
                 sampler=fake_sampler, verbose=False)
    assert sent == [('me@example.org', 'dd_cs_single', two_subject_file)]


def test_sampler_errors_propagate(two_subject_file) -> None:
    class BrokenSampler:
        def sample(self, model_input, config, initvals):
            raise RuntimeError("sampler exploded")

    with pytest.raises(RuntimeError, match="exploded"):
        dd_cs_single(data=two_subject_file, sampler=BrokenSampler(), verbose=False)


def test_verbose_prints_run_details(capsys, two_subject_file, fake_sampler) -> None:
    dd_cs_single(data=two_subject_file, sampler=fake_sampler, verbose=True)
    out = capsys.readouterr().out
    assert 'Model name = dd_cs_single' in out
    assert '# of subjects                     = 2' in out
    assert 'Model fitting is complete!' in out


@pytest.mark.slow
def test_impatient_subject_discounts_more(two_subject_file) -> None:
    # s01 always takes the sooner reward, s02 always waits
    kwargs = dict(data=two_subject_file, niter=1000, nwarmup=500, nchain=2,
                  random_seed=1, verbose=False)
    result = dd_cs_single(**kwargs)
    table = result.all_ind_pars.set_index('subjID')

    assert table.loc['s01', 'r'] > table.loc['s02', 'r']
    assert result.par_vals['r'].shape == (1000, 2)
    assert np.all((result.par_vals['r'] > 0) & (result.par_vals['r'] < 1))
    np.testing.assert_allclose(result.par_vals['logR'], np.log(result.par_vals['r']))

    again = dd_cs_single(**kwargs).all_ind_pars.set_index('subjID')
    np.testing.assert_allclose(again['r'], table['r'], rtol=0.1, atol=0.02)


@pytest.mark.slow
def test_thinning_keeps_every_nth_draw(two_subject_file) -> None:
    result = dd_cs_single(data=two_subject_file, niter=400, nwarmup=200, nchain=1,
                          nthin=4, random_seed=2, verbose=False)
    assert result.par_vals['r'].shape == (50, 2)
    assert 'choice' in result.fit.log_likelihood
