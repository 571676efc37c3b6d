"""
Bayesian Delay Discounting Model

This package fits the Constant-Sensitivity (CS) delay discounting model
(Ebert & Prelec, 2007) to choices between sooner/smaller and later/larger
rewards, and summarizes the posterior per subject.

Model equation:
    V = A · exp(-(r·D)^s)

where:
    V: Subjective value of a reward
    A: Reward amount
    D: Delay of the reward
    r: Exponential discounting rate (subject-specific)
    s: Impatience (subject-specific)

Choices follow a logistic rule with inverse temperature β on V_later - V_sooner.
"""

__version__ = "0.1.0"

from . import data_preprocessing
from . import bayesian_model
from . import utils
from .model_fitting import dd_cs_single, ModelResult

__all__ = ['data_preprocessing', 'bayesian_model', 'utils',
           'dd_cs_single', 'ModelResult']
