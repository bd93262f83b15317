"""
Synthetic Fits - Sampler Output with Known Diagnostic Outcomes

This module builds FitResults whose diagnostics are known in advance:
stationary AR(1) draws (R-hat ~ 1, n_eff ~ N(1 - rho)/(1 + rho)), AR(1)
energy traces (E-BFMI ~ 2(1 - rho)), and divergences or tree depth
saturation injected at chosen counts.

DO NOT use these fits to draw conclusions about a real model.
They exist for testing and for demonstrating the checks.
"""

import numpy as np
import jax
import jax.numpy as jnp
import jax.random as random

from .types import FitResult, build_fit_result


# ============================================================================
# DRAW GENERATORS
# ============================================================================

def ar1_draws(key, n_chains, n_iter, n_params, rho=0.0):
    """
    Stationary AR(1) draws with unit marginal variance.

    Args:
        key: JAX PRNG key
        n_chains: Number of chains
        n_iter: Iterations per chain
        n_params: Number of parameters
        rho: Lag-1 autocorrelation in [0, 1)

    Returns:
        numpy array of shape (n_chains, n_iter, n_params)
    """
    noise = random.normal(key, (n_iter, n_chains, n_params))
    scale = jnp.sqrt(1.0 - rho ** 2)

    def step(prev, eps):
        x = rho * prev + scale * eps
        return x, x

    # First draw comes from the stationary distribution
    init = noise[0]
    _, rest = jax.lax.scan(step, init, noise[1:])
    draws = jnp.concatenate([init[None], rest], axis=0)  # (n_iter, n_chains, n_params)

    return np.array(jnp.transpose(draws, (1, 0, 2)))


def _spread_iterations(rng, n_iter, count):
    """Choose count distinct iterations, sorted."""
    if count > n_iter:
        raise ValueError(f"Cannot flag {count} of {n_iter} iterations")
    return np.sort(rng.choice(n_iter, size=count, replace=False))


def make_metadata(n_iter, energy, divergent_iterations=(), saturated_iterations=(),
                  treedepth=3, max_treedepth=10, stepsize=0.1):
    """
    Per-iteration sampler metadata in Stan's naming.

    Args:
        n_iter: Number of iterations
        energy: (n_iter,) energy trace
        divergent_iterations: Iterations flagged as divergent
        saturated_iterations: Iterations whose tree depth equals max_treedepth
        treedepth: Tree depth of all other iterations
        max_treedepth: Ceiling used for saturated iterations
        stepsize: Constant post-warmup step size

    Returns:
        Dict of field name -> numpy array
    """
    divergent = np.zeros(n_iter, dtype=int)
    divergent[list(divergent_iterations)] = 1

    depths = np.full(n_iter, treedepth, dtype=int)
    depths[list(saturated_iterations)] = max_treedepth

    return {
        'divergent__': divergent,
        'treedepth__': depths,
        'stepsize__': np.full(n_iter, stepsize),
        'energy__': np.asarray(energy),
        'n_leapfrog__': 2 ** depths - 1,
        'elapsed_time__': np.full(n_iter, 1e-3),
    }


# ============================================================================
# FIT BUILDERS
# ============================================================================

def make_fit(seed=42, n_chains=4, n_iter=1000, n_params=8, rho=0.0,
             divergences=None, saturated=None, max_treedepth=10,
             energy_rho=0.0, identical_chains=False, constant_parameters=(),
             chain_offsets=None, n_warmup=0) -> FitResult:
    """
    Build a synthetic FitResult.

    Args:
        seed: Seed for both JAX and numpy generators
        n_chains, n_iter, n_params: Shape of the sampling draws
        rho: AR(1) autocorrelation of parameter draws
        divergences: {chain_index: number of divergent iterations}
        saturated: {chain_index: number of iterations at max_treedepth}
        max_treedepth: Tree depth ceiling
        energy_rho: AR(1) autocorrelation of energy traces
        identical_chains: Copy chain 0's draws into every chain
        constant_parameters: Parameter indices frozen at a constant value
        chain_offsets: Per-chain shift added to every parameter
        n_warmup: Warmup draws to attach to each chain

    Returns:
        FitResult with parameters named theta[0], theta[1], ...
    """
    divergences = divergences or {}
    saturated = saturated or {}

    key = random.PRNGKey(seed)
    draw_key, energy_key, warmup_key = random.split(key, 3)
    rng = np.random.default_rng(seed)

    draws = ar1_draws(draw_key, n_chains, n_iter, n_params, rho=rho)
    if identical_chains:
        draws = np.repeat(draws[:1], n_chains, axis=0)
    for p in constant_parameters:
        draws[:, :, p] = 1.5
    if chain_offsets is not None:
        draws = draws + np.asarray(chain_offsets, dtype=float)[:, None, None]

    energies = ar1_draws(energy_key, n_chains, n_iter, 1, rho=energy_rho)[:, :, 0]
    warmup = ar1_draws(warmup_key, n_chains, n_warmup, n_params) if n_warmup else None

    names = [f"theta[{p}]" for p in range(n_params)]
    chains = []
    for c in range(n_chains):
        chain = {
            'sampling_draws': draws[c],
            'metadata': make_metadata(
                n_iter,
                energy=energies[c] * 10.0 + 50.0,
                divergent_iterations=_spread_iterations(rng, n_iter, divergences.get(c, 0)),
                saturated_iterations=_spread_iterations(rng, n_iter, saturated.get(c, 0)),
                max_treedepth=max_treedepth,
            ),
        }
        if warmup is not None:
            chain['warmup_draws'] = warmup[c]
        chains.append(chain)

    return build_fit_result(chains, parameter_names=names)
