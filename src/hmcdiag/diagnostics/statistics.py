"""
Diagnostic Statistics.

Numerical estimators behind the diagnostic checks:
- compute_split_rhat: Split R-hat per parameter (Gelman et al., BDA3)
- compute_autocovariance: FFT autocovariance along the iteration axis
- compute_ess: Multi-chain effective sample size (Stan's estimator)
- compute_energy_bfmi: Energy Bayesian fraction of missing information per chain
- summarize_parameters: ParameterSummary for every parameter of a fit

Array math runs on device under jax.jit. The Geyer truncation in
compute_ess stops at a data-dependent lag and runs on host with numpy.
"""

from typing import List

import jax
import jax.numpy as jnp
import numpy as np

from ..error_handling import InsufficientChains, validate_fit_result
from ..settings import ZERO_VARIANCE_TOL
from ..types import FitResult, ParameterSummary


@jax.jit
def _split_rhat_kernel(draws: jnp.ndarray) -> jnp.ndarray:
    """
    Split R-hat for every parameter.

    Args:
        draws: (n_chains, n_iter, n_params)

    Returns:
        (n_params,) split R-hat, NaN where all split chains are frozen
    """
    n_iter = draws.shape[1]
    half = n_iter // 2

    # Odd-length chains drop the middle iteration so both halves match
    split = jnp.concatenate([draws[:, :half, :], draws[:, n_iter - half:, :]], axis=0)
    n = half

    # Within-split-chain variance (W), averaged over the 2 * n_chains halves
    W = jnp.mean(jnp.var(split, axis=1, ddof=1), axis=0)

    # Between-split-chain variance (B)
    split_means = jnp.mean(split, axis=1)
    B = n * jnp.var(split_means, axis=0, ddof=1)

    var_plus = ((n - 1) / n) * W + B / n

    return jnp.where(W > ZERO_VARIANCE_TOL, jnp.sqrt(var_plus / W), jnp.nan)


def compute_split_rhat(draws) -> np.ndarray:
    """
    Compute split R-hat for every parameter.

    Each chain is split at its midpoint and the halves are treated as
    separate chains. R-hat is the square root of the ratio between the
    pooled posterior variance estimate and the within-split-chain variance;
    it approaches 1 as the split chains agree.

    Args:
        draws: Array of shape (n_chains, n_iter, n_params)

    Returns:
        (n_params,) numpy array of split R-hat values

    Raises:
        InsufficientChains: If fewer than 2 chains are given
    """
    draws = jnp.asarray(draws)
    if draws.shape[0] < 2:
        raise InsufficientChains(draws.shape[0])
    if draws.shape[1] < 4:
        # Halves of fewer than 2 draws have no within-chain variance
        return np.full(draws.shape[2], np.nan)
    return np.asarray(_split_rhat_kernel(draws))


@jax.jit
def compute_autocovariance(samples: jnp.ndarray) -> jnp.ndarray:
    """
    Biased autocovariance along the last axis, computed with an FFT.

    Args:
        samples: Array of shape (..., n_iter)

    Returns:
        Array of shape (..., n_iter); entry t is the lag-t autocovariance
        normalized by n_iter
    """
    n = samples.shape[-1]
    centered = samples - jnp.mean(samples, axis=-1, keepdims=True)

    # Zero-pad to avoid circular wrap-around
    n_fft = 2 ** int(np.ceil(np.log2(max(2 * n - 1, 1))))
    freq = jnp.fft.rfft(centered, n=n_fft, axis=-1)
    acov = jnp.fft.irfft(freq * jnp.conj(freq), n=n_fft, axis=-1)[..., :n]

    return acov / n


def _ess_from_autocovariance(acov: np.ndarray, chain_means: np.ndarray) -> float:
    """
    Stan's multi-chain effective sample size from per-chain autocovariances.

    Args:
        acov: (n_chains, n_iter) autocovariances
        chain_means: (n_chains,) per-chain means

    Returns:
        Effective sample size; 0.0 if any chain is frozen or chains are too
        short for the estimator
    """
    n_chains, n = acov.shape
    if n < 4:
        return 0.0

    chain_vars = acov[:, 0] * n / (n - 1)

    # The estimator is biased high when any chain is stuck; report no
    # effective draws at all.
    if np.any(chain_vars < ZERO_VARIANCE_TOL):
        return 0.0

    mean_var = np.mean(chain_vars)
    var_plus = mean_var * (n - 1) / n
    if n_chains > 1:
        var_plus += np.var(chain_means, ddof=1)

    rho_hat = np.zeros(n)
    rho_hat_even = 1.0
    rho_hat[0] = rho_hat_even
    rho_hat_odd = 1.0 - (mean_var - np.mean(acov[:, 1])) / var_plus
    rho_hat[1] = rho_hat_odd

    # Geyer's initial positive sequence
    t = 1
    while t < n - 4 and rho_hat_even + rho_hat_odd > 0:
        rho_hat_even = 1.0 - (mean_var - np.mean(acov[:, t + 1])) / var_plus
        rho_hat_odd = 1.0 - (mean_var - np.mean(acov[:, t + 2])) / var_plus
        if rho_hat_even + rho_hat_odd >= 0:
            rho_hat[t + 1] = rho_hat_even
            rho_hat[t + 2] = rho_hat_odd
        t += 2

    max_t = t
    if rho_hat_even > 0:
        rho_hat[max_t + 1] = rho_hat_even

    # Initial monotone sequence, up to and including the pair at max_t - 2
    for t in range(1, max_t - 1, 2):
        if rho_hat[t + 1] + rho_hat[t + 2] > rho_hat[t - 1] + rho_hat[t]:
            rho_hat[t + 1] = (rho_hat[t - 1] + rho_hat[t]) / 2
            rho_hat[t + 2] = rho_hat[t + 1]

    total_draws = n_chains * n
    tau_hat = -1.0 + 2.0 * np.sum(rho_hat[:max_t]) + rho_hat[max_t + 1]
    tau_hat = max(tau_hat, 1.0 / np.log10(total_draws))

    return float(total_draws / tau_hat)


def compute_ess(samples) -> float:
    """
    Compute the effective sample size of one parameter across chains.

    Args:
        samples: Array of shape (n_chains, n_iter)

    Returns:
        Effective sample size over all chains combined
    """
    samples = np.asarray(samples, dtype=np.float64)
    acov = np.asarray(compute_autocovariance(jnp.asarray(samples)))
    return _ess_from_autocovariance(acov, np.mean(samples, axis=1))


def compute_ess_all(draws) -> np.ndarray:
    """
    Effective sample size for every parameter.

    Args:
        draws: Array of shape (n_chains, n_iter, n_params)

    Returns:
        (n_params,) numpy array
    """
    draws = np.asarray(draws, dtype=np.float64)
    by_param = np.transpose(draws, (2, 0, 1))  # (n_params, n_chains, n_iter)
    acov = np.asarray(compute_autocovariance(jnp.asarray(by_param)))
    chain_means = np.mean(by_param, axis=2)

    return np.array([
        _ess_from_autocovariance(acov[p], chain_means[p])
        for p in range(by_param.shape[0])
    ])


@jax.jit
def compute_energy_bfmi(energy: jnp.ndarray) -> jnp.ndarray:
    """
    Energy Bayesian fraction of missing information (E-BFMI) per chain.

    The sum of squared successive energy differences divided by the number
    of iterations, over the (population) variance of the energy trace. Values
    below 0.2 suggest the momentum resampling cannot explore the energy
    level sets; this threshold is an empirical heuristic.

    Args:
        energy: Array of shape (n_chains, n_iter)

    Returns:
        (n_chains,) E-BFMI, NaN for a chain with a constant energy trace
    """
    n = energy.shape[1]
    numer = jnp.sum(jnp.diff(energy, axis=1) ** 2, axis=1) / n
    denom = jnp.var(energy, axis=1)
    return jnp.where(denom > ZERO_VARIANCE_TOL, numer / denom, jnp.nan)


def summarize_parameters(fit: FitResult) -> List[ParameterSummary]:
    """
    Compute n_eff and split R-hat for every parameter of a fit.

    Split R-hat is NaN when the fit has a single chain.

    Args:
        fit: FitResult

    Returns:
        List of ParameterSummary in parameter_names order
    """
    validate_fit_result(fit)

    draws = fit.draws_array()
    n_effs = compute_ess_all(draws)
    try:
        rhats = compute_split_rhat(draws)
    except InsufficientChains:
        rhats = np.full(fit.num_parameters, np.nan)

    total = fit.total_iterations
    return [
        ParameterSummary(
            name=name,
            n_eff=float(n_eff),
            n_eff_ratio=float(n_eff / total),
            split_rhat=float(rhat),
        )
        for name, n_eff, rhat in zip(fit.parameter_names, n_effs, rhats)
    ]
