"""
JAX Configuration - MUST be imported before any JAX imports.

Diagnostic statistics are variance ratios and long autocorrelation sums,
which float32 round-off visibly biases. This module enables double
precision through the environment so it applies when JAX first loads.
"""
import os

# --- PRECISION ---
os.environ.setdefault("JAX_ENABLE_X64", "True")
