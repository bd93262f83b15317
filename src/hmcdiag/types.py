"""
Diagnostic Data Structures and Type Definitions.

This module contains the core data structures used by the diagnostic checks:
- SamplerMetadata: Per-iteration sampler diagnostics for one chain
- ChainResult: Draws and metadata of one chain
- FitResult: Immutable bundle of all chains produced by one sampler run
- ParameterSummary: Derived n_eff / split R-hat for one parameter
- DivergentDraw, DivergencePartition: Draws split by divergence flag
- DiagnosticWarning, WarningKind: Records returned by every check
- build_fit_result: Factory from loosely typed per-chain mappings

All records are frozen dataclasses and every array they hold is a private,
read-only copy, so a FitResult can be shared freely between callers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from .error_handling import MalformedFitResult
from .settings import METADATA_FIELDS

import logging
logger = logging.getLogger('hmcdiag')


_METADATA_DTYPES = {
    'divergent': bool,
    'treedepth': np.int64,
    'stepsize': np.float64,
    'energy': np.float64,
    'n_leapfrog': np.int64,
    'elapsed_time': np.float64,
}


def _frozen_array(values, dtype) -> np.ndarray:
    """Copy values into a new read-only array."""
    arr = np.array(values, dtype=dtype, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class SamplerMetadata:
    """
    Per-iteration sampler diagnostics for a single chain.

    Every field is a 1D array with one entry per post-warmup iteration.
    """
    divergent: np.ndarray     # (n_iter,) bool
    treedepth: np.ndarray     # (n_iter,) int
    stepsize: np.ndarray      # (n_iter,) float
    energy: np.ndarray        # (n_iter,) float
    n_leapfrog: np.ndarray    # (n_iter,) int
    elapsed_time: np.ndarray  # (n_iter,) float

    def __post_init__(self):
        for name, dtype in _METADATA_DTYPES.items():
            object.__setattr__(self, name, _frozen_array(getattr(self, name), dtype))

    def fields(self) -> Dict[str, np.ndarray]:
        """Metadata arrays keyed by field name, in canonical order."""
        return {name: getattr(self, name) for name in METADATA_FIELDS}


@dataclass(frozen=True, eq=False)
class ChainResult:
    """
    Output of a single Markov chain.

    sampling_draws has shape (n_iter, n_params) with columns ordered as the
    parent FitResult's parameter_names. Warmup draws are kept for reference
    only; no diagnostic reads them.
    """
    sampling_draws: np.ndarray
    metadata: SamplerMetadata
    warmup_draws: Optional[np.ndarray] = None

    def __post_init__(self):
        object.__setattr__(self, 'sampling_draws', _frozen_array(self.sampling_draws, np.float64))
        if self.warmup_draws is not None:
            object.__setattr__(self, 'warmup_draws', _frozen_array(self.warmup_draws, np.float64))

    @property
    def num_iterations(self) -> int:
        return int(self.sampling_draws.shape[0])


@dataclass(frozen=True, eq=False)
class FitResult:
    """
    Immutable output of one sampler run.

    Chain order is significant: chains[i] is chain index i in every warning
    and partition record. Each re-fit of a model with different settings
    produces a new FitResult; nothing here is ever updated in place.
    """
    chains: Tuple[ChainResult, ...]
    parameter_names: Tuple[str, ...]

    def __post_init__(self):
        object.__setattr__(self, 'chains', tuple(self.chains))
        object.__setattr__(self, 'parameter_names', tuple(self.parameter_names))

    @property
    def num_chains(self) -> int:
        return len(self.chains)

    @property
    def num_iterations(self) -> int:
        """Sampling iterations per chain (0 when there are no chains)."""
        return self.chains[0].num_iterations if self.chains else 0

    @property
    def total_iterations(self) -> int:
        return sum(chain.num_iterations for chain in self.chains)

    @property
    def num_parameters(self) -> int:
        return len(self.parameter_names)

    def parameter_index(self, name: str) -> int:
        try:
            return self.parameter_names.index(name)
        except ValueError:
            raise KeyError(f"Unknown parameter '{name}'. Available: {list(self.parameter_names)}") from None

    def draws_array(self) -> np.ndarray:
        """All sampling draws stacked as (n_chains, n_iter, n_params)."""
        return np.stack([chain.sampling_draws for chain in self.chains])

    def parameter_draws(self, name: str) -> np.ndarray:
        """Sampling draws of one parameter as (n_chains, n_iter)."""
        idx = self.parameter_index(name)
        return np.stack([chain.sampling_draws[:, idx] for chain in self.chains])

    def metadata_array(self, name: str) -> np.ndarray:
        """One metadata field across chains as (n_chains, n_iter)."""
        if name not in METADATA_FIELDS:
            raise KeyError(f"Unknown metadata field '{name}'. Available: {list(METADATA_FIELDS)}")
        return np.stack([getattr(chain.metadata, name) for chain in self.chains])


@dataclass(frozen=True)
class ParameterSummary:
    """Derived convergence statistics for one parameter."""
    name: str
    n_eff: float
    n_eff_ratio: float
    split_rhat: float


class WarningKind(Enum):
    """Which check produced a DiagnosticWarning."""
    N_EFF = 'n_eff'
    SPLIT_RHAT = 'split_rhat'
    INSUFFICIENT_CHAINS = 'insufficient_chains'
    TREEDEPTH = 'treedepth'
    ENERGY = 'energy'
    DIVERGENCE = 'divergence'


@dataclass(frozen=True)
class DiagnosticWarning:
    """
    A single diagnostic finding.

    Attributes:
        kind: Check that produced the warning
        message: Human-readable description, suitable for printing
        parameter: Affected parameter name (n_eff / R-hat warnings)
        chain: Affected chain index (energy warnings)
        value: Offending statistic (ratio, R-hat, E-BFMI)
        count: Number of flagged iterations (tree depth / divergence warnings)
        total: Number of iterations count is taken over
    """
    kind: WarningKind
    message: str
    parameter: Optional[str] = None
    chain: Optional[int] = None
    value: Optional[float] = None
    count: Optional[int] = None
    total: Optional[int] = None

    @property
    def percentage(self) -> Optional[float]:
        if self.count is None or not self.total:
            return None
        return 100.0 * self.count / self.total

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True, eq=False)
class DivergentDraw:
    """A sampling draw tagged with where it came from."""
    chain: int
    iteration: int
    values: Dict[str, float]

    @property
    def position(self) -> Tuple[int, int]:
        return (self.chain, self.iteration)


@dataclass(frozen=True)
class DivergencePartition:
    """
    Sampling draws split by their divergence flag.

    Both sequences keep chain-major, iteration-minor order.
    """
    divergent: Tuple[DivergentDraw, ...] = field(default_factory=tuple)
    non_divergent: Tuple[DivergentDraw, ...] = field(default_factory=tuple)

    @property
    def num_divergent(self) -> int:
        return len(self.divergent)

    @property
    def num_non_divergent(self) -> int:
        return len(self.non_divergent)

    def divergent_array(self, name: str) -> np.ndarray:
        return np.array([draw.values[name] for draw in self.divergent], dtype=np.float64)

    def non_divergent_array(self, name: str) -> np.ndarray:
        return np.array([draw.values[name] for draw in self.non_divergent], dtype=np.float64)


# =============================================================================
# CONSTRUCTION FROM LOOSE INPUT
# =============================================================================

def _draws_to_array(draws, parameter_names, chain_idx, label):
    """
    Convert one chain's draws into an (n_iter, n_params) array.

    Accepts either an array-like of rows or a sequence of {name: value}
    mappings that must carry exactly the declared parameter names.
    """
    if isinstance(draws, np.ndarray):
        return draws

    draws = list(draws)
    if not draws:
        return np.empty((0, len(parameter_names)))

    if not isinstance(draws[0], Mapping):
        try:
            return np.asarray(draws, dtype=np.float64)
        except ValueError as e:
            raise MalformedFitResult(
                f"Chain {chain_idx}: {label} draws are not a rectangular numeric array: {e}"
            ) from e

    expected = set(parameter_names)
    rows = []
    for i, draw in enumerate(draws):
        if set(draw) != expected:
            missing = sorted(expected - set(draw))
            extra = sorted(set(draw) - expected)
            raise MalformedFitResult(
                f"Chain {chain_idx}: {label} draw {i} has mismatched parameters "
                f"(missing {missing}, unexpected {extra})"
            )
        rows.append([draw[name] for name in parameter_names])
    return np.asarray(rows, dtype=np.float64)


def _infer_parameter_names(chains):
    """Take parameter names from the first dict-style draw, if any."""
    for chain in chains:
        draws = chain.get('sampling_draws')
        if draws is None or isinstance(draws, np.ndarray):
            continue
        for draw in draws:
            if isinstance(draw, Mapping):
                return list(draw.keys())
            break
    raise MalformedFitResult(
        "parameter_names must be given when draws are not {name: value} mappings"
    )


def _build_metadata(raw, chain_idx):
    """Normalize Stan-style names (divergent__) and build SamplerMetadata."""
    if not isinstance(raw, Mapping):
        raise MalformedFitResult(f"Chain {chain_idx}: metadata must be a mapping of field -> values")

    normalized = {}
    for key, values in raw.items():
        name = key.rstrip('_')
        if name in METADATA_FIELDS:
            normalized[name] = values
        else:
            logger.debug(f"Chain {chain_idx}: ignoring metadata field '{key}'")

    missing = [name for name in METADATA_FIELDS if name not in normalized]
    if missing:
        raise MalformedFitResult(f"Chain {chain_idx}: missing metadata fields {missing}")

    try:
        return SamplerMetadata(**normalized)
    except (TypeError, ValueError) as e:
        raise MalformedFitResult(f"Chain {chain_idx}: invalid metadata values: {e}") from e


def build_fit_result(chains: Sequence[Mapping], parameter_names: Optional[Sequence[str]] = None) -> FitResult:
    """
    Build a FitResult from per-chain mappings.

    Args:
        chains: Sequence of dicts, one per chain, with keys:
            sampling_draws: (n_iter, n_params) array or list of {name: value}
            metadata: {field: per-iteration values}; Stan's trailing
                double-underscore names (divergent__, treedepth__, ...) are accepted
            warmup_draws: optional, same format as sampling_draws
        parameter_names: Column names. Inferred from dict draws when omitted.

    Returns:
        FitResult (not validated; every check validates before running)

    Raises:
        MalformedFitResult: If draws or metadata cannot be coerced

    Example:
        fit = build_fit_result([
            {'sampling_draws': [{'mu': 0.1, 'tau': 1.2}, ...],
             'metadata': {'divergent__': [0, ...], 'treedepth__': [3, ...], ...}},
            ...
        ])
    """
    chains = list(chains)
    if parameter_names is None:
        parameter_names = _infer_parameter_names(chains) if chains else []
    parameter_names = list(parameter_names)

    results = []
    for c, chain in enumerate(chains):
        if 'sampling_draws' not in chain:
            raise MalformedFitResult(f"Chain {c}: missing 'sampling_draws'")
        if 'metadata' not in chain:
            raise MalformedFitResult(f"Chain {c}: missing 'metadata'")

        sampling = _draws_to_array(chain['sampling_draws'], parameter_names, c, 'sampling')
        warmup = chain.get('warmup_draws')
        if warmup is not None:
            warmup = _draws_to_array(warmup, parameter_names, c, 'warmup')

        metadata = _build_metadata(chain['metadata'], c)
        try:
            results.append(ChainResult(sampling_draws=sampling, metadata=metadata, warmup_draws=warmup))
        except ValueError as e:
            raise MalformedFitResult(f"Chain {c}: draws are not a rectangular numeric array: {e}") from e

    return FitResult(chains=tuple(results), parameter_names=tuple(parameter_names))
