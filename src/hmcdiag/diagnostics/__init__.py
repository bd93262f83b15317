"""
Diagnostics Subpackage - Numerical core of the fit checks.

This package contains:
- statistics: Jitted estimators (split R-hat, autocovariance, n_eff, E-BFMI)
- checks: Threshold checks returning DiagnosticWarning lists, warning codes
- partition: Divergent / non-divergent draw partitioning
"""

from .statistics import (
    compute_split_rhat,
    compute_autocovariance,
    compute_ess,
    compute_ess_all,
    compute_energy_bfmi,
    summarize_parameters,
)
from .checks import (
    check_effective_sample_size,
    check_split_rhat,
    check_treedepth,
    check_energy,
    check_divergences,
    check_all,
    warning_code,
    parse_warning_code,
)
from .partition import partition_divergences

__all__ = [
    # Statistics
    'compute_split_rhat',
    'compute_autocovariance',
    'compute_ess',
    'compute_ess_all',
    'compute_energy_bfmi',
    'summarize_parameters',
    # Checks
    'check_effective_sample_size',
    'check_split_rhat',
    'check_treedepth',
    'check_energy',
    'check_divergences',
    'check_all',
    'warning_code',
    'parse_warning_code',
    # Partition
    'partition_divergences',
]
