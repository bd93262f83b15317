"""
Diagnostic Checks.

Each check takes an immutable FitResult and returns a list of
DiagnosticWarning records (empty when the check passes):
- check_effective_sample_size: n_eff / iteration ratio per parameter
- check_split_rhat: split R-hat per parameter
- check_treedepth: iterations saturating the tree depth ceiling
- check_energy: E-BFMI per chain
- check_divergences: divergent iterations across all chains
- check_all: all of the above, in that order

Warning codes summarize a list of warnings as a bitmask (see WarningBit).

Structural problems in the fit (EmptyInput, MalformedFitResult) are raised
before any statistic is computed.
"""

from typing import List

import numpy as np

from ..error_handling import InsufficientChains, validate_fit_result
from ..settings import DIAGNOSTIC_DEFAULTS, WarningBit
from ..types import DiagnosticWarning, FitResult, WarningKind
from .statistics import compute_energy_bfmi, compute_ess_all, compute_split_rhat


def check_effective_sample_size(
    fit: FitResult,
    min_ratio: float = DIAGNOSTIC_DEFAULTS['min_neff_ratio'],
) -> List[DiagnosticWarning]:
    """
    Flag parameters whose effective sample size per iteration is too small.

    The ratio is n_eff over the total number of sampling iterations across
    all chains. Below 0.001 the n_eff estimator itself is likely biased
    high, so the estimate cannot be trusted.

    Args:
        fit: FitResult
        min_ratio: Minimum acceptable n_eff / iteration ratio

    Returns:
        One warning per flagged parameter
    """
    validate_fit_result(fit)

    total = fit.total_iterations
    n_effs = compute_ess_all(fit.draws_array())

    warnings = []
    for name, n_eff in zip(fit.parameter_names, n_effs):
        ratio = float(n_eff / total)
        if ratio < min_ratio:
            warnings.append(DiagnosticWarning(
                kind=WarningKind.N_EFF,
                message=f"n_eff / iter for parameter {name} is {ratio:.3g}!",
                parameter=name,
                value=ratio,
            ))
    return warnings


def check_split_rhat(
    fit: FitResult,
    max_rhat: float = DIAGNOSTIC_DEFAULTS['max_rhat'],
) -> List[DiagnosticWarning]:
    """
    Flag parameters whose split R-hat exceeds max_rhat.

    A non-finite R-hat means every split chain is frozen and is flagged too.
    With fewer than 2 chains the statistic is undefined; the result is a
    single INSUFFICIENT_CHAINS warning rather than an error.

    Args:
        fit: FitResult
        max_rhat: Maximum acceptable split R-hat

    Returns:
        One warning per flagged parameter
    """
    validate_fit_result(fit)

    try:
        rhats = compute_split_rhat(fit.draws_array())
    except InsufficientChains as e:
        return [DiagnosticWarning(
            kind=WarningKind.INSUFFICIENT_CHAINS,
            message=f"Split R-hat cannot be computed: {e}",
            count=e.num_chains,
        )]

    warnings = []
    for name, rhat in zip(fit.parameter_names, rhats):
        rhat = float(rhat)
        if not np.isfinite(rhat) or rhat > max_rhat:
            warnings.append(DiagnosticWarning(
                kind=WarningKind.SPLIT_RHAT,
                message=f"Rhat for parameter {name} is {rhat:.3f}!",
                parameter=name,
                value=rhat,
            ))
    return warnings


def check_treedepth(
    fit: FitResult,
    max_depth: int = DIAGNOSTIC_DEFAULTS['max_treedepth'],
) -> List[DiagnosticWarning]:
    """
    Count iterations whose tree depth reached the sampler's ceiling.

    The comparison is inclusive: an iteration at exactly max_depth counts.
    Saturation costs efficiency; it does not by itself indicate bias.

    Args:
        fit: FitResult
        max_depth: Tree depth ceiling the sampler was run with

    Returns:
        A single warning with the saturated count, or an empty list
    """
    validate_fit_result(fit)

    depths = fit.metadata_array('treedepth')
    n_saturated = int(np.sum(depths >= max_depth))
    total = int(depths.size)

    if n_saturated == 0:
        return []

    pct = 100.0 * n_saturated / total
    return [DiagnosticWarning(
        kind=WarningKind.TREEDEPTH,
        message=(f"{n_saturated} of {total} iterations saturated the maximum "
                 f"tree depth of {max_depth} ({pct:.3g}%)"),
        value=float(max_depth),
        count=n_saturated,
        total=total,
    )]


def check_energy(
    fit: FitResult,
    threshold: float = DIAGNOSTIC_DEFAULTS['energy_threshold'],
) -> List[DiagnosticWarning]:
    """
    Flag chains whose E-BFMI falls below threshold.

    A chain with a constant energy trace has an undefined E-BFMI and is
    flagged.

    Args:
        fit: FitResult
        threshold: Minimum acceptable E-BFMI

    Returns:
        One warning per flagged chain, in chain order
    """
    validate_fit_result(fit)

    bfmis = np.asarray(compute_energy_bfmi(fit.metadata_array('energy')))

    warnings = []
    for chain_idx, bfmi in enumerate(bfmis):
        bfmi = float(bfmi)
        if not np.isfinite(bfmi) or bfmi < threshold:
            warnings.append(DiagnosticWarning(
                kind=WarningKind.ENERGY,
                message=f"Chain {chain_idx}: E-BFMI = {bfmi:.3f}",
                chain=chain_idx,
                value=bfmi,
            ))
    return warnings


def check_divergences(fit: FitResult) -> List[DiagnosticWarning]:
    """
    Count divergent iterations across all chains.

    There is no tolerance: a single divergence is reported, since even rare
    divergences mark a region the sampler could not explore.

    Args:
        fit: FitResult

    Returns:
        A single warning with the divergent count, or an empty list
    """
    validate_fit_result(fit)

    divergent = fit.metadata_array('divergent')
    n_divergent = int(np.sum(divergent))
    total = int(divergent.size)

    if n_divergent == 0:
        return []

    pct = 100.0 * n_divergent / total
    return [DiagnosticWarning(
        kind=WarningKind.DIVERGENCE,
        message=f"{n_divergent} of {total} iterations ended with a divergence ({pct:.3g}%)",
        count=n_divergent,
        total=total,
    )]


def check_all(
    fit: FitResult,
    max_depth: int = DIAGNOSTIC_DEFAULTS['max_treedepth'],
    energy_threshold: float = DIAGNOSTIC_DEFAULTS['energy_threshold'],
    min_neff_ratio: float = DIAGNOSTIC_DEFAULTS['min_neff_ratio'],
    max_rhat: float = DIAGNOSTIC_DEFAULTS['max_rhat'],
) -> List[DiagnosticWarning]:
    """
    Run every check and concatenate the results.

    Order: n_eff, split R-hat, tree depth, energy, divergences. Every check
    runs regardless of what the earlier ones found.
    """
    warnings = []
    warnings += check_effective_sample_size(fit, min_ratio=min_neff_ratio)
    warnings += check_split_rhat(fit, max_rhat=max_rhat)
    warnings += check_treedepth(fit, max_depth=max_depth)
    warnings += check_energy(fit, threshold=energy_threshold)
    warnings += check_divergences(fit)
    return warnings


# =============================================================================
# WARNING CODES
# =============================================================================

_KIND_TO_BIT = {
    WarningKind.N_EFF: WarningBit.N_EFF,
    WarningKind.SPLIT_RHAT: WarningBit.SPLIT_RHAT,
    WarningKind.DIVERGENCE: WarningBit.DIVERGENCE,
    WarningKind.TREEDEPTH: WarningBit.TREEDEPTH,
    WarningKind.ENERGY: WarningBit.ENERGY,
}

_BIT_LABELS = {
    WarningBit.N_EFF: "n_eff warning",
    WarningBit.SPLIT_RHAT: "rhat warning",
    WarningBit.DIVERGENCE: "divergence warning",
    WarningBit.TREEDEPTH: "treedepth warning",
    WarningBit.ENERGY: "energy warning",
}


def warning_code(warnings: List[DiagnosticWarning]) -> int:
    """
    Summarize warnings as a bitmask with one bit per failed check.

    INSUFFICIENT_CHAINS is informational and sets no bit.
    """
    code = 0
    for warning in warnings:
        bit = _KIND_TO_BIT.get(warning.kind)
        if bit is not None:
            code |= 1 << bit
    return code


def parse_warning_code(code: int) -> List[str]:
    """Translate a warning code into the names of the failed checks."""
    return [label for bit, label in _BIT_LABELS.items() if code & (1 << bit)]
