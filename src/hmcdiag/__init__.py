"""
hmcdiag - Hamiltonian Monte Carlo Fit Diagnostics

Public API:
    Fit Data:
        FitResult - Immutable bundle of per-chain draws and sampler metadata
        ChainResult - Draws and metadata of one chain
        SamplerMetadata - Per-iteration divergent/treedepth/stepsize/energy/n_leapfrog/elapsed_time
        build_fit_result - Build a FitResult from per-chain dicts (Stan-style names accepted)

    Checks (each returns a list of DiagnosticWarning):
        check_effective_sample_size - n_eff / iteration below 0.001
        check_split_rhat - Split R-hat above 1.1
        check_treedepth - Iterations saturating the tree depth ceiling
        check_energy - E-BFMI below 0.2 per chain
        check_divergences - Any divergent iteration
        check_all - All five checks, in that order
        warning_code / parse_warning_code - Bitmask summary of failed checks

    Divergences:
        partition_divergences - Split draws into divergent / non-divergent
        DivergencePartition, DivergentDraw

    Evaluation:
        DiagnosticEvaluator - Config-bound runner with logging
        compare_fits - check_all over a sequence of independent fits
        summarize_parameters - n_eff and split R-hat per parameter

    Reporting:
        format_warnings - Warning text plus advice for each failed check
        summarize_sampler_metadata - Per-chain step size, leapfrog and timing summary

    Errors:
        DiagnosticError - Base class (a ValueError)
        MalformedFitResult, EmptyInput, InsufficientChains, InvalidDiagnosticConfig

Example:
    from hmcdiag import build_fit_result, DiagnosticEvaluator, format_warnings

    fit = build_fit_result(chains)  # one dict per chain from the sampler
    evaluator = DiagnosticEvaluator({'max_treedepth': 12})
    warnings = evaluator.check_all(fit)
    print(format_warnings(warnings))

    partition = evaluator.partition_divergences(fit)
    plot(partition.non_divergent_array('tau'), partition.divergent_array('tau'))
"""
# CRITICAL: Import jax_config FIRST to set environment variables before JAX loads
from . import jax_config  # noqa: F401

from .error_handling import (
    DiagnosticError,
    MalformedFitResult,
    EmptyInput,
    InsufficientChains,
    InvalidDiagnosticConfig,
    validate_diagnostic_config,
    validate_fit_result,
)
from .settings import DIAGNOSTIC_DEFAULTS, WarningBit, clean_config
from .types import (
    SamplerMetadata,
    ChainResult,
    FitResult,
    ParameterSummary,
    DivergentDraw,
    DivergencePartition,
    DiagnosticWarning,
    WarningKind,
    build_fit_result,
)
from .diagnostics import (
    check_effective_sample_size,
    check_split_rhat,
    check_treedepth,
    check_energy,
    check_divergences,
    check_all,
    warning_code,
    parse_warning_code,
    partition_divergences,
    summarize_parameters,
)
from .evaluator import DiagnosticEvaluator, FitComparison, compare_fits
from .reporting import (
    format_warnings,
    print_diagnostic_summary,
    log_warnings,
    summarize_sampler_metadata,
    print_sampler_summary,
)
