"""
Divergence partitioning.

Splits the sampling draws of a fit by their divergence flag so that a
plotting collaborator can show where divergent transitions concentrate in
parameter space.
"""

from ..error_handling import validate_fit_result
from ..types import DivergencePartition, DivergentDraw, FitResult


def partition_divergences(fit: FitResult) -> DivergencePartition:
    """
    Partition every sampling draw into divergent and non-divergent sets.

    The two sets are disjoint and together contain every sampling draw of
    every chain exactly once. Each keeps chain-major, iteration-minor order.

    Args:
        fit: FitResult

    Returns:
        DivergencePartition
    """
    validate_fit_result(fit)

    divergent = []
    non_divergent = []
    names = fit.parameter_names

    for chain_idx, chain in enumerate(fit.chains):
        for iteration, (row, is_div) in enumerate(zip(chain.sampling_draws, chain.metadata.divergent)):
            draw = DivergentDraw(
                chain=chain_idx,
                iteration=iteration,
                values={name: float(v) for name, v in zip(names, row)},
            )
            if is_div:
                divergent.append(draw)
            else:
                non_divergent.append(draw)

    return DivergencePartition(divergent=tuple(divergent), non_divergent=tuple(non_divergent))
