"""
Rendering of diagnostic results for consoles and logs.

- format_warnings: Warning messages plus advice for each failed check
- print_diagnostic_summary: print() of format_warnings
- log_warnings: Send each warning to the 'hmcdiag' logger
- summarize_sampler_metadata: Per-chain step size, leapfrog and timing summary
- print_sampler_summary: print() of summarize_sampler_metadata
"""

import textwrap
from typing import Any, Dict, List, Optional

import numpy as np

from .error_handling import validate_fit_result
from .types import DiagnosticWarning, FitResult, WarningKind

import logging
logger = logging.getLogger('hmcdiag')


_ADVICE = {
    WarningKind.N_EFF: (
        "n_eff / iter below 0.001 indicates that the effective sample size "
        "has likely been overestimated."
    ),
    WarningKind.SPLIT_RHAT: (
        "Split R-hat above 1.1 indicates that the chains very likely have "
        "not mixed."
    ),
    WarningKind.INSUFFICIENT_CHAINS: (
        "Run at least 2 chains to check convergence with split R-hat."
    ),
    WarningKind.TREEDEPTH: (
        "Run again with max_depth set to a larger value to avoid saturation."
    ),
    WarningKind.ENERGY: (
        "E-BFMI below 0.2 indicates you may need to reparameterize your model."
    ),
    WarningKind.DIVERGENCE: (
        "Try running with larger adapt_delta to remove the divergences. If "
        "they persist, the model likely needs to be reparameterized."
    ),
}


def format_warnings(warnings: List[DiagnosticWarning], max_width: int = 72) -> str:
    """
    Format warnings as readable text.

    Warning messages come first, in the order given, followed by one advice
    paragraph per kind of warning present.

    Args:
        warnings: Warnings from any check (typically check_all)
        max_width: Maximum line width for advice paragraphs

    Returns:
        Multi-line string
    """
    if not warnings:
        return "All diagnostics are consistent with accurate Markov chain Monte Carlo."

    lines = [f"  {warning.message}" for warning in warnings]

    seen = []
    for warning in warnings:
        if warning.kind not in seen:
            seen.append(warning.kind)

    for kind in seen:
        lines.append("")
        lines.extend(textwrap.wrap(_ADVICE[kind], max_width))

    return "\n".join(lines)


def print_diagnostic_summary(warnings: List[DiagnosticWarning]) -> None:
    """Print formatted warnings."""
    print(format_warnings(warnings))


def log_warnings(warnings: List[DiagnosticWarning], log: Optional[logging.Logger] = None) -> None:
    """
    Log each warning at WARNING level.

    INSUFFICIENT_CHAINS is informational and logged at INFO.
    """
    log = log or logger
    for warning in warnings:
        if warning.kind == WarningKind.INSUFFICIENT_CHAINS:
            log.info(warning.message)
        else:
            log.warning(warning.message)


def summarize_sampler_metadata(fit: FitResult) -> List[Dict[str, Any]]:
    """
    Summarize sampler metadata per chain.

    Elapsed time is reported as the sum of the per-iteration times.

    Args:
        fit: FitResult

    Returns:
        One dict per chain with keys: chain, stepsize, mean_n_leapfrog,
        max_n_leapfrog, max_treedepth, num_divergent, elapsed_time
    """
    validate_fit_result(fit)

    summaries = []
    for chain_idx, chain in enumerate(fit.chains):
        meta = chain.metadata
        summaries.append({
            'chain': chain_idx,
            'stepsize': float(np.mean(meta.stepsize)),
            'mean_n_leapfrog': float(np.mean(meta.n_leapfrog)),
            'max_n_leapfrog': int(np.max(meta.n_leapfrog)),
            'max_treedepth': int(np.max(meta.treedepth)),
            'num_divergent': int(np.sum(meta.divergent)),
            'elapsed_time': float(np.sum(meta.elapsed_time)),
        })
    return summaries


def print_sampler_summary(fit: FitResult) -> None:
    """
    Print per-chain sampler metadata statistics.

    Args:
        fit: FitResult
    """
    summaries = summarize_sampler_metadata(fit)

    print(f"\n--- Sampler Summary ({fit.num_chains} chains x {fit.num_iterations} iterations) ---")
    for s in summaries:
        print(f"  Chain {s['chain']}: stepsize {s['stepsize']:.3g}  "
              f"leapfrog mean {s['mean_n_leapfrog']:.1f} / max {s['max_n_leapfrog']}  "
              f"treedepth max {s['max_treedepth']}  "
              f"divergent {s['num_divergent']}  "
              f"time {s['elapsed_time']:.2f}s")

    stepsizes = np.array([s['stepsize'] for s in summaries])
    if len(stepsizes) > 1 and np.max(stepsizes) > 2 * np.min(stepsizes):
        print("  WARNING: Adapted step sizes differ by more than a factor of 2 across chains")
