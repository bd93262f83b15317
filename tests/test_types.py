"""
Fit Data Structure Tests

Tests FitResult construction and validation:
- build_fit_result from dict draws and from arrays
- Stan-style metadata names
- Structural errors (MalformedFitResult, EmptyInput)
- Immutability of stored arrays

Run with: pytest tests/test_types.py -v
"""

import numpy as np
import pytest

from hmcdiag.types import (
    FitResult,
    DiagnosticWarning,
    WarningKind,
    build_fit_result,
)
from hmcdiag.error_handling import (
    DiagnosticError,
    EmptyInput,
    MalformedFitResult,
    validate_fit_result,
)

from .conftest import make_chain_dict, make_metadata_dict


# ============================================================================
# CONSTRUCTION
# ============================================================================

class TestBuildFitResult:
    """Test building FitResults from loosely typed input."""

    def test_dict_draws_infer_names(self):
        """Parameter names come from the first draw mapping, in key order."""
        draws = [{'mu': 0.1 * i, 'tau': 1.0 + i} for i in range(5)]
        fit = build_fit_result([{'sampling_draws': draws, 'metadata': make_metadata_dict(5)}])

        assert fit.parameter_names == ('mu', 'tau')
        assert fit.num_chains == 1
        assert fit.num_iterations == 5
        np.testing.assert_allclose(fit.parameter_draws('tau')[0], [1.0, 2.0, 3.0, 4.0, 5.0])

    def test_dict_draws_follow_declared_order(self):
        """Columns follow parameter_names, not the draw's key order."""
        draws = [{'tau': 2.0, 'mu': 1.0}] * 3
        fit = build_fit_result(
            [{'sampling_draws': draws, 'metadata': make_metadata_dict(3)}],
            parameter_names=['mu', 'tau'],
        )
        np.testing.assert_allclose(fit.chains[0].sampling_draws[0], [1.0, 2.0])

    def test_array_draws(self):
        chains = [make_chain_dict(np.arange(12).reshape(6, 2)) for _ in range(3)]
        fit = build_fit_result(chains, parameter_names=['a', 'b'])

        assert fit.draws_array().shape == (3, 6, 2)
        assert fit.total_iterations == 18
        assert fit.num_parameters == 2

    def test_array_draws_require_names(self):
        with pytest.raises(MalformedFitResult):
            build_fit_result([make_chain_dict(np.zeros((4, 2)))])

    def test_stan_metadata_names(self):
        """Trailing double underscores are stripped; extra fields are ignored."""
        n = 4
        meta = {f"{k}__": v for k, v in make_metadata_dict(n).items()}
        meta['accept_stat__'] = [0.9] * n
        fit = build_fit_result(
            [{'sampling_draws': np.zeros((n, 1)), 'metadata': meta}],
            parameter_names=['x'],
        )
        assert fit.metadata_array('stepsize').shape == (1, n)
        assert fit.chains[0].metadata.divergent.dtype == bool

    def test_missing_metadata_field(self):
        meta = make_metadata_dict(4)
        del meta['energy']
        with pytest.raises(MalformedFitResult, match="energy"):
            build_fit_result(
                [{'sampling_draws': np.zeros((4, 1)), 'metadata': meta}],
                parameter_names=['x'],
            )

    def test_mismatched_draw_keys(self):
        draws = [{'mu': 0.0, 'tau': 1.0}, {'mu': 0.0, 'sigma': 1.0}]
        with pytest.raises(MalformedFitResult, match="draw 1"):
            build_fit_result([{'sampling_draws': draws, 'metadata': make_metadata_dict(2)}])

    def test_ragged_draws(self):
        with pytest.raises(MalformedFitResult):
            build_fit_result(
                [{'sampling_draws': [[1.0, 2.0], [3.0]], 'metadata': make_metadata_dict(2)}],
                parameter_names=['a', 'b'],
            )

    def test_warmup_kept_but_separate(self):
        chain = make_chain_dict(np.ones((5, 2)))
        chain['warmup_draws'] = np.zeros((3, 2))
        fit = build_fit_result([chain], parameter_names=['a', 'b'])

        assert fit.chains[0].warmup_draws.shape == (3, 2)
        assert fit.total_iterations == 5
        assert np.all(fit.draws_array() == 1.0)


# ============================================================================
# IMMUTABILITY AND ACCESSORS
# ============================================================================

class TestFitResultAccess:
    """Test FitResult accessors and immutability."""

    def test_arrays_are_read_only_copies(self):
        source = np.zeros((4, 2))
        fit = build_fit_result([make_chain_dict(source)], parameter_names=['a', 'b'])

        source[0, 0] = 99.0
        assert fit.chains[0].sampling_draws[0, 0] == 0.0

        with pytest.raises(ValueError):
            fit.chains[0].sampling_draws[0, 0] = 1.0
        with pytest.raises(ValueError):
            fit.chains[0].metadata.energy[0] = 1.0

    def test_frozen_dataclass(self):
        fit = build_fit_result([make_chain_dict(np.zeros((4, 1)))], parameter_names=['a'])
        with pytest.raises(AttributeError):
            fit.parameter_names = ('b',)

    def test_unknown_parameter(self):
        fit = build_fit_result([make_chain_dict(np.zeros((4, 1)))], parameter_names=['a'])
        with pytest.raises(KeyError):
            fit.parameter_draws('b')
        with pytest.raises(KeyError):
            fit.metadata_array('accept_stat')

    def test_warning_percentage(self):
        w = DiagnosticWarning(kind=WarningKind.DIVERGENCE, message="x", count=17, total=4000)
        assert w.percentage == pytest.approx(0.425)
        assert str(w) == "x"
        assert DiagnosticWarning(kind=WarningKind.ENERGY, message="y").percentage is None


# ============================================================================
# VALIDATION
# ============================================================================

class TestValidateFitResult:
    """Test structural validation of FitResults."""

    def test_no_chains(self):
        with pytest.raises(EmptyInput):
            validate_fit_result(FitResult(chains=(), parameter_names=('a',)))

    def test_zero_iterations(self):
        fit = build_fit_result([make_chain_dict(np.empty((0, 2)))], parameter_names=['a', 'b'])
        with pytest.raises(EmptyInput):
            validate_fit_result(fit)

    def test_inconsistent_iteration_counts(self):
        fit = build_fit_result(
            [make_chain_dict(np.zeros((5, 1))), make_chain_dict(np.zeros((6, 1)))],
            parameter_names=['a'],
        )
        with pytest.raises(MalformedFitResult, match="Chain 1"):
            validate_fit_result(fit)

    def test_inconsistent_parameter_columns(self):
        fit = build_fit_result(
            [make_chain_dict(np.zeros((5, 2))), make_chain_dict(np.zeros((5, 3)))],
            parameter_names=['a', 'b'],
        )
        with pytest.raises(MalformedFitResult):
            validate_fit_result(fit)

    def test_metadata_length_mismatch(self):
        chain = make_chain_dict(np.zeros((5, 1)))
        chain['metadata']['treedepth'] = [3] * 4
        fit = build_fit_result([chain], parameter_names=['a'])
        with pytest.raises(MalformedFitResult, match="treedepth"):
            validate_fit_result(fit)

    @pytest.mark.parametrize("bad_value", [np.nan, np.inf])
    def test_non_finite_draws(self, bad_value):
        draws = np.random.default_rng(0).normal(size=(200, 2))
        draws[5, 0] = bad_value
        fit = build_fit_result(
            [make_chain_dict(draws), make_chain_dict(np.zeros((200, 2)) + 1.0)],
            parameter_names=['a', 'b'],
        )
        with pytest.raises(MalformedFitResult, match=r"Chain 0: 1 non-finite.*\['a'\]"):
            validate_fit_result(fit)

    def test_duplicate_names(self):
        fit = build_fit_result([make_chain_dict(np.zeros((5, 2)))], parameter_names=['a', 'a'])
        with pytest.raises(MalformedFitResult):
            validate_fit_result(fit)

    def test_errors_are_value_errors(self):
        assert issubclass(MalformedFitResult, DiagnosticError)
        assert issubclass(EmptyInput, ValueError)

    def test_valid_fit_passes(self, clean_fit):
        validate_fit_result(clean_fit)
