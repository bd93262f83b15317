"""
Error Handling and Validation Utilities for Diagnostic Evaluation

This module provides the error kinds raised on malformed sampler output and
the validation functions that raise them.
"""

from typing import Any, Dict

import numpy as np

import logging
logger = logging.getLogger('hmcdiag')


class DiagnosticError(ValueError):
    """Base class for all diagnostic input errors."""


class MalformedFitResult(DiagnosticError):
    """Chains disagree on parameter names, shapes or iteration counts."""


class EmptyInput(DiagnosticError):
    """Zero chains or zero sampling iterations were supplied."""


class InsufficientChains(DiagnosticError):
    """
    An ensemble statistic was requested with fewer than 2 chains.

    The split R-hat check downgrades this to an informational warning.
    """

    def __init__(self, num_chains: int, required: int = 2):
        self.num_chains = num_chains
        self.required = required
        super().__init__(
            f"Split R-hat needs at least {required} chains, got {num_chains}"
        )


class InvalidDiagnosticConfig(DiagnosticError):
    """Diagnostic threshold configuration is not usable."""


def validate_diagnostic_config(diagnostic_config: Dict[str, Any]) -> None:
    """
    Validates that diagnostic configuration is sensible.

    Args:
        diagnostic_config: Configuration dictionary (after clean_config)

    Raises:
        InvalidDiagnosticConfig: If configuration is invalid
    """
    errors = []

    required_keys = ['max_treedepth', 'energy_threshold', 'min_neff_ratio', 'max_rhat']
    for key in required_keys:
        if key not in diagnostic_config:
            errors.append(f"Missing required config key: '{key}'")

    if 'max_treedepth' in diagnostic_config:
        depth = diagnostic_config['max_treedepth']
        if isinstance(depth, bool) or not isinstance(depth, (int, np.integer)):
            errors.append(f"max_treedepth must be an integer, got {depth!r}")
        elif depth < 1:
            errors.append("max_treedepth must be >= 1")

    if 'energy_threshold' in diagnostic_config:
        if not diagnostic_config['energy_threshold'] > 0:
            errors.append("energy_threshold must be > 0")

    if 'min_neff_ratio' in diagnostic_config:
        ratio = diagnostic_config['min_neff_ratio']
        if not 0 < ratio < 1:
            errors.append(f"min_neff_ratio must be in (0, 1), got {ratio}")

    if 'max_rhat' in diagnostic_config:
        if not diagnostic_config['max_rhat'] >= 1:
            errors.append("max_rhat must be >= 1")

    unknown = sorted(set(diagnostic_config) - set(required_keys))
    if unknown:
        errors.append(f"Unknown config keys: {unknown}")

    if errors:
        raise InvalidDiagnosticConfig(
            "Invalid diagnostic configuration:\n  " + "\n  ".join(errors)
        )


def validate_fit_result(fit) -> None:
    """
    Validates the structural invariants of a FitResult.

    Checks that there is at least one chain with at least one sampling
    iteration, that every chain has the same parameter columns and iteration
    count, that every sampling draw is finite, and that every metadata field
    has one entry per iteration.

    Args:
        fit: FitResult to validate

    Raises:
        EmptyInput: If there are no chains or no sampling iterations
        MalformedFitResult: If chains are inconsistent with each other
    """
    if len(fit.chains) == 0:
        raise EmptyInput("FitResult has no chains")

    n_params = len(fit.parameter_names)
    if len(set(fit.parameter_names)) != n_params:
        raise MalformedFitResult(
            f"Duplicate parameter names: {list(fit.parameter_names)}"
        )

    not_2d = [
        f"Chain {c}: sampling draws must be 2D, got shape {chain.sampling_draws.shape}"
        for c, chain in enumerate(fit.chains)
        if chain.sampling_draws.ndim != 2
    ]
    if not_2d:
        raise MalformedFitResult("Malformed fit result:\n  " + "\n  ".join(not_2d))

    n_iter = fit.chains[0].sampling_draws.shape[0]
    errors = []

    for c, chain in enumerate(fit.chains):
        draws = chain.sampling_draws
        if draws.shape[1] != n_params:
            errors.append(
                f"Chain {c}: {draws.shape[1]} parameter columns, expected {n_params}"
            )
        if draws.shape[0] != n_iter:
            errors.append(
                f"Chain {c}: {draws.shape[0]} sampling iterations, chain 0 has {n_iter}"
            )
        finite = np.isfinite(draws)
        if not np.all(finite):
            bad_columns = np.flatnonzero(~np.all(finite, axis=0))
            bad_names = [fit.parameter_names[p] for p in bad_columns if p < n_params]
            errors.append(
                f"Chain {c}: {int(np.sum(~finite))} non-finite sampling draws "
                f"(parameters {bad_names})"
            )
        if chain.warmup_draws is not None and chain.warmup_draws.ndim == 2:
            if chain.warmup_draws.shape[1] != n_params:
                errors.append(
                    f"Chain {c}: warmup draws have {chain.warmup_draws.shape[1]} "
                    f"parameter columns, expected {n_params}"
                )
        for field, values in chain.metadata.fields().items():
            if values.shape != (draws.shape[0],):
                errors.append(
                    f"Chain {c}: metadata '{field}' has shape {values.shape}, "
                    f"expected ({draws.shape[0]},)"
                )

    if errors:
        raise MalformedFitResult("Malformed fit result:\n  " + "\n  ".join(errors))

    if n_iter == 0:
        raise EmptyInput("FitResult has zero sampling iterations")

    logger.debug(f"Validated fit: {len(fit.chains)} chains x {n_iter} iterations x {n_params} params")
