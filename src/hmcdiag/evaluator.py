"""
Diagnostic Evaluator - Config-bound entry point for fit validation.

DiagnosticEvaluator validates a threshold configuration once and then runs
the checks of hmcdiag.diagnostics with it, logging what it finds.
compare_fits applies one evaluator to a sequence of independent fits, e.g.
the same model re-run with different adaptation targets.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .diagnostics import checks
from .diagnostics.partition import partition_divergences
from .diagnostics.statistics import summarize_parameters
from .error_handling import validate_diagnostic_config
from .reporting import log_warnings
from .settings import clean_config
from .types import DiagnosticWarning, DivergencePartition, FitResult, ParameterSummary, WarningKind

import logging
logger = logging.getLogger('hmcdiag')


class DiagnosticEvaluator:
    """
    Runs the fit diagnostics with a fixed threshold configuration.

    The evaluator holds no per-fit state; one instance can check any number
    of fits, from any number of callers.

    Example:
        evaluator = DiagnosticEvaluator({'max_treedepth': 12})
        warnings = evaluator.check_all(fit)
        if warnings:
            print(format_warnings(warnings))
    """

    def __init__(self, diagnostic_config: Optional[Dict[str, Any]] = None):
        config = clean_config(diagnostic_config)
        validate_diagnostic_config(config)
        self._config = config

    @property
    def config(self) -> Dict[str, Any]:
        return dict(self._config)

    def _setting(self, key: str, override: Any) -> Any:
        """Configured value for key, or a per-call override validated like the config."""
        if override is None:
            return self._config[key]
        validate_diagnostic_config({**self._config, key: override})
        return override

    def _run(self, label: str, check, fit: FitResult, **kwargs) -> List[DiagnosticWarning]:
        logger.info(f"Checking {label}...")
        warnings = check(fit, **kwargs)
        log_warnings(warnings)
        return warnings

    def check_effective_sample_size(self, fit: FitResult) -> List[DiagnosticWarning]:
        return self._run("effective sample size", checks.check_effective_sample_size, fit,
                         min_ratio=self._config['min_neff_ratio'])

    def check_split_rhat(self, fit: FitResult) -> List[DiagnosticWarning]:
        return self._run("split R-hat", checks.check_split_rhat, fit,
                         max_rhat=self._config['max_rhat'])

    def check_treedepth(self, fit: FitResult, max_depth: Optional[int] = None) -> List[DiagnosticWarning]:
        max_depth = self._setting('max_treedepth', max_depth)
        return self._run("tree depth", checks.check_treedepth, fit, max_depth=max_depth)

    def check_energy(self, fit: FitResult, threshold: Optional[float] = None) -> List[DiagnosticWarning]:
        threshold = self._setting('energy_threshold', threshold)
        return self._run("E-BFMI", checks.check_energy, fit, threshold=threshold)

    def check_divergences(self, fit: FitResult) -> List[DiagnosticWarning]:
        return self._run("divergences", checks.check_divergences, fit)

    def check_all(
        self,
        fit: FitResult,
        max_depth: Optional[int] = None,
        energy_threshold: Optional[float] = None,
    ) -> List[DiagnosticWarning]:
        """
        Run all five checks in order: n_eff, split R-hat, tree depth,
        energy, divergences.
        """
        warnings = []
        warnings += self.check_effective_sample_size(fit)
        warnings += self.check_split_rhat(fit)
        warnings += self.check_treedepth(fit, max_depth=max_depth)
        warnings += self.check_energy(fit, threshold=energy_threshold)
        warnings += self.check_divergences(fit)

        code = checks.warning_code(warnings)
        if code:
            logger.warning(f"Diagnostics failed: {', '.join(checks.parse_warning_code(code))}")
        else:
            logger.info("No diagnostic failures")
        return warnings

    def partition_divergences(self, fit: FitResult) -> DivergencePartition:
        return partition_divergences(fit)

    def summarize_parameters(self, fit: FitResult) -> List[ParameterSummary]:
        return summarize_parameters(fit)


@dataclass(frozen=True)
class FitComparison:
    """check_all outcome for one fit in a comparison."""
    label: str
    warnings: List[DiagnosticWarning]
    warning_code: int
    num_divergent: int

    @property
    def passed(self) -> bool:
        return self.warning_code == 0


def compare_fits(
    fits: Sequence[FitResult],
    labels: Optional[Sequence[str]] = None,
    evaluator: Optional[DiagnosticEvaluator] = None,
) -> List[FitComparison]:
    """
    Run check_all on each of a sequence of fits.

    Args:
        fits: Independent FitResults, e.g. one per adapt_delta setting
        labels: One label per fit (default: "fit 0", "fit 1", ...)
        evaluator: Evaluator to use (default: DiagnosticEvaluator())

    Returns:
        One FitComparison per fit, in input order

    Raises:
        ValueError: If labels and fits differ in length
    """
    fits = list(fits)
    if labels is None:
        labels = [f"fit {i}" for i in range(len(fits))]
    labels = list(labels)
    if len(labels) != len(fits):
        raise ValueError(f"Got {len(labels)} labels for {len(fits)} fits")

    evaluator = evaluator or DiagnosticEvaluator()

    results = []
    for label, fit in zip(labels, fits):
        logger.info(f"--- {label} ---")
        warnings = evaluator.check_all(fit)
        num_divergent = sum(
            w.count for w in warnings if w.kind == WarningKind.DIVERGENCE
        )
        results.append(FitComparison(
            label=label,
            warnings=warnings,
            warning_code=checks.warning_code(warnings),
            num_divergent=num_divergent,
        ))
    return results
