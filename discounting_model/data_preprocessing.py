"""
Data Preprocessing Module for the Delay Discounting Model

This module handles locating, loading, and structuring trial-by-trial choice
data for the Constant-Sensitivity delay discounting model.

Key functions:
- resolve_data_path: Map 'example' / 'choose' to an actual file path
- load_choice_data: Load a tab-delimited choice file
- structure_model_data: Structure trials for the PyMC model
"""

import os
import numpy as np
import pandas as pd
from typing import Dict, Optional

# Columns consumed by the model
REQUIRED_COLUMNS = ['subjID', 'delay_later', 'amount_later',
                    'delay_sooner', 'amount_sooner', 'choice']

# Bundled example data set (one subject)
EXAMPLE_DATA_PATH = os.path.join(os.path.dirname(__file__), 'data',
                                 'dd_single_exampleData.txt')


def resolve_data_path(data: str) -> str:
    """
    Resolve the ``data`` argument to a file path.

    Parameters
    ----------
    data : str
        'example' for the bundled example data, 'choose' to be prompted for
        a path, or a path to a tab-delimited text file.

    Returns
    -------
    path : str
        Path to the data file (not checked for existence here)
    """
    if data == 'example':
        return EXAMPLE_DATA_PATH
    if data == 'choose':
        return input("Path to data file (tab-delimited .txt): ").strip()
    return data


def load_choice_data(path: str, verbose: bool = False) -> pd.DataFrame:
    """
    Load trial-by-trial choice data.

    Parameters
    ----------
    path : str
        Path to a tab-delimited text file with a header row.
    verbose : bool, default=False
        Print loading statistics.

    Returns
    -------
    df : pd.DataFrame
        Raw data, one row per trial. Extra columns are kept untouched.

    Raises
    ------
    FileNotFoundError
        If ``path`` does not point to an existing file.
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(
            f"** The data file does not exist. Please check it again. **\n"
            f"  e.g., data = '/MyFolder/SubFolder/dataFile.txt' (got: {path!r})"
        )

    df = pd.read_csv(path, sep='\t')

    if verbose:
        print(f"Loaded {len(df):,} trials from: {path}")

    return df


def structure_model_data(df: pd.DataFrame,
                         subject_col: str = 'subjID') -> Dict:
    """
    Structure raw trials into the input bundle expected by the model.

    Parameters
    ----------
    df : pd.DataFrame
        Raw trial data from load_choice_data()
    subject_col : str, default='subjID'
        Column holding the subject identifier

    Returns
    -------
    model_input : dict
        Dictionary containing:
        - Tsubj: Number of trials
        - amount_later, delay_later: Later option per trial
        - amount_sooner, delay_sooner: Sooner option per trial
        - choice: Observed choice per trial (0 = sooner, 1 = later)
        - subjects: Unique subject identifiers in order of appearance
        - subject_idx: Index into ``subjects`` for each trial
        - n_subjects: Number of subjects

    Raises
    ------
    KeyError
        If one of the required columns is absent.
    """
    # Unique preserves order of first appearance
    subjects = pd.unique(df[subject_col])
    subject_idx = pd.Categorical(df[subject_col], categories=subjects).codes

    return {
        'Tsubj': int(df.shape[0]),
        'amount_later': df['amount_later'].to_numpy(dtype=float),
        'delay_later': df['delay_later'].to_numpy(dtype=float),
        'amount_sooner': df['amount_sooner'].to_numpy(dtype=float),
        'delay_sooner': df['delay_sooner'].to_numpy(dtype=float),
        'choice': df['choice'].to_numpy(dtype=int),
        'subjects': list(subjects),
        'subject_idx': np.asarray(subject_idx, dtype=int),
        'n_subjects': len(subjects),
    }


def summarize_model_data(model_input: Dict, data_path: Optional[str] = None):
    """Print the data summary shown before sampling."""
    if data_path is not None:
        print(f"Data file  = {data_path}")
    print(f" # of subjects                     = {model_input['n_subjects']}")
    print(f" # of (max) trials of this subject = {model_input['Tsubj']}")
