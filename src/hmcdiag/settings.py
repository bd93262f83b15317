"""
Diagnostic threshold configuration.

This module defines the canonical diagnostic thresholds and provides
utilities to fill in a user configuration dict with defaults.

All config keys use lowercase with underscores:
    max_treedepth     - Tree depth ceiling configured on the sampler
    energy_threshold  - Minimum acceptable E-BFMI per chain
    min_neff_ratio    - Minimum acceptable n_eff / total iterations
    max_rhat          - Maximum acceptable split R-hat

The thresholds are the empirical heuristics of the Stan workflow and should
be changed only deliberately; max_treedepth is the one setting callers are
expected to raise, to match a sampler run with a larger ceiling.
"""

from enum import IntEnum


class WarningBit(IntEnum):
    """
    Bit positions of each failed check in a diagnostic warning code.
    """
    N_EFF = 0
    SPLIT_RHAT = 1
    DIVERGENCE = 2
    TREEDEPTH = 3
    ENERGY = 4


# Default values for each setting
DIAGNOSTIC_DEFAULTS = {
    'max_treedepth': 10,
    'energy_threshold': 0.2,
    'min_neff_ratio': 0.001,
    'max_rhat': 1.1,
}

# Within-chain variance below this is treated as a frozen chain
ZERO_VARIANCE_TOL = 1e-10

# Per-iteration sampler metadata fields every chain must carry
METADATA_FIELDS = (
    'divergent',
    'treedepth',
    'stepsize',
    'energy',
    'n_leapfrog',
    'elapsed_time',
)


def clean_config(diagnostic_config=None):
    """
    Cleans the config dict and sets defaults.

    Returns a new dict; the caller's dict is left untouched.
    """
    diagnostic_config = dict(diagnostic_config or {})

    for key, default in DIAGNOSTIC_DEFAULTS.items():
        diagnostic_config.setdefault(key, default)

    return diagnostic_config
