"""
Pytest configuration and shared fixtures for hmcdiag tests.
"""

# hmcdiag must load before jax so that jax_config can enable float64
import hmcdiag  # noqa: F401

import pytest
import numpy as np

from hmcdiag.settings import METADATA_FIELDS
from hmcdiag.synthetic_fits import make_fit


@pytest.fixture
def rng_seed():
    """Default RNG seed for reproducible tests."""
    return 42


@pytest.fixture(scope="module")
def clean_fit():
    """4 chains x 1000 iterations x 8 parameters that pass every check."""
    return make_fit(seed=7)


@pytest.fixture(scope="module")
def divergent_fit():
    """Like clean_fit, but chain 1 has 17 divergent iterations."""
    return make_fit(seed=7, divergences={1: 17})


@pytest.fixture
def single_chain_fit():
    """One chain, otherwise well behaved."""
    return make_fit(seed=3, n_chains=1, n_iter=500, n_params=2)


def make_metadata_dict(n_iter, divergent=None, treedepth=None, energy=None):
    """
    Plain metadata dict with every required field.

    Args:
        n_iter: Number of iterations
        divergent: Optional per-iteration divergence flags
        treedepth: Optional per-iteration tree depths
        energy: Optional per-iteration energies (default: iid normal)

    Returns:
        Dict of field name -> list
    """
    rng = np.random.default_rng(0)
    meta = {
        'divergent': [0] * n_iter if divergent is None else list(divergent),
        'treedepth': [3] * n_iter if treedepth is None else list(treedepth),
        'stepsize': [0.2] * n_iter,
        'energy': list(rng.normal(size=n_iter)) if energy is None else list(energy),
        'n_leapfrog': [7] * n_iter,
        'elapsed_time': [0.01] * n_iter,
    }
    assert set(meta) == set(METADATA_FIELDS)
    return meta


def make_chain_dict(draws, **metadata_kwargs):
    """Chain dict for build_fit_result from a 2D draws array."""
    draws = np.asarray(draws, dtype=float)
    return {
        'sampling_draws': draws,
        'metadata': make_metadata_dict(draws.shape[0], **metadata_kwargs),
    }
