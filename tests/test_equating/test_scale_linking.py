"""Tests for the scale linking orchestrator."""

import logging

import numpy as np
import pytest

from irtequate.equating import (
    DimensionMismatchError,
    HaebaraCriterion,
    LinkingCoefficients,
    ScaleLinkingResult,
    StockingLordCriterion,
    link,
    link_scales,
    minimize_criterion,
)


class TestLinkScalesReference:
    """Reference values from published linking examples."""

    def test_kolen_3pl(self, kolen_common_items):
        """Kolen and Brennan (2014) Table 6.5."""
        result = link_scales(*kolen_common_items, random_state=42)

        assert not result.rasch_family
        assert result.haebara.intercept == pytest.approx(-0.471281, abs=1e-4)
        assert result.haebara.slope == pytest.approx(1.067800, abs=1e-4)
        assert result.haebara.objective_value == pytest.approx(0.001506, rel=1e-2)
        assert result.stocking_lord.intercept == pytest.approx(-0.487619, abs=1e-4)
        assert result.stocking_lord.slope == pytest.approx(1.083417, abs=1e-4)
        assert result.stocking_lord.objective_value == pytest.approx(0.009666, rel=1e-2)
        assert result.success

    def test_kolen_3pl_cobyqa(self, kolen_common_items):
        """The derivative-free search reaches the same minimum."""
        result = link_scales(*kolen_common_items, optimizer="cobyqa", random_state=1)
        assert result.haebara.intercept == pytest.approx(-0.471281, abs=1e-3)
        assert result.haebara.slope == pytest.approx(1.067800, abs=1e-3)
        assert result.stocking_lord.intercept == pytest.approx(-0.487619, abs=1e-3)
        assert result.stocking_lord.slope == pytest.approx(1.083417, abs=1e-3)

    def test_mixed_format(self, mixed_format_forms):
        """STUIRT example 2 with 3PL and GPCM items."""
        result = link_scales(*mixed_format_forms, random_state=42)
        assert result.haebara.intercept == pytest.approx(-0.446101, abs=1e-4)
        assert result.haebara.slope == pytest.approx(0.805049, abs=1e-4)
        assert result.stocking_lord.intercept == pytest.approx(-0.456487, abs=1e-4)
        assert result.stocking_lord.slope == pytest.approx(0.815445, abs=1e-4)

    def test_rasch(self, rasch_forms):
        """sirt equating.rasch example: only the intercept is estimated."""
        result = link_scales(*rasch_forms, random_state=42)

        assert result.rasch_family
        assert result.mean_mean.intercept == pytest.approx(0.068484, abs=1e-4)
        assert result.haebara.intercept == pytest.approx(0.06468396, abs=1e-4)
        assert result.stocking_lord.intercept == pytest.approx(0.05736233, abs=1e-4)
        assert result.haebara.slope == 1.0
        assert result.stocking_lord.slope == 1.0

    def test_partial_credit(self, pcm_forms):
        """Rasch branch with partial credit items."""
        result = link_scales(*pcm_forms, random_state=42)

        assert result.rasch_family
        assert result.mean_mean.intercept == pytest.approx(0.005485, abs=1e-4)
        assert result.mean_sigma.intercept == pytest.approx(0.005485, abs=1e-4)
        assert result.haebara.intercept == pytest.approx(0.003107, abs=1e-4)
        assert result.haebara.objective_value == pytest.approx(1.470726e-4, rel=1e-2)
        assert result.stocking_lord.intercept == pytest.approx(0.009525, abs=1e-4)
        assert result.stocking_lord.objective_value == pytest.approx(0.0032013068, rel=1e-2)


class TestLinkScalesBehavior:
    """Tests for orchestrator behavior."""

    def test_identity(self, kolen_common_items):
        """Linking a form to itself gives the identity for every method."""
        _, form_y, _, quad_y = kolen_common_items
        result = link_scales(form_y, form_y, quad_y, quad_y, random_state=0)
        for coef in result.methods().values():
            assert coef.slope == pytest.approx(1.0, abs=1e-4)
            assert coef.intercept == pytest.approx(0.0, abs=1e-4)

    def test_known_shift(self, five_item_forms):
        """A pure shift of 0.5 is recovered by every method."""
        result = link_scales(*five_item_forms, random_state=0)
        for name, coef in result.methods().items():
            assert coef.slope == pytest.approx(1.0, abs=1e-4), name
            assert coef.intercept == pytest.approx(0.5, abs=1e-4), name

    def test_mismatch(self, kolen_common_items):
        """Mismatched forms raise before any optimization."""
        form_x, form_y, quad_x, quad_y = kolen_common_items
        form_x = {k: v for k, v in form_x.items() if k != "item12"}
        with pytest.raises(DimensionMismatchError):
            link_scales(form_x, form_y, quad_x, quad_y)

    def test_unknown_optimizer(self, kolen_common_items):
        """Only the supported optimizers are accepted."""
        with pytest.raises(ValueError, match="Unknown optimizer"):
            link_scales(*kolen_common_items, optimizer="newton")

    def test_reproducible(self, pcm_forms):
        """A fixed seed gives identical results."""
        first = link_scales(*pcm_forms, random_state=7)
        second = link_scales(*pcm_forms, random_state=7)
        assert first.haebara == second.haebara
        assert first.stocking_lord == second.stocking_lord

    def test_criterion_choice(self, kolen_common_items):
        """Single component criteria still converge."""
        result = link_scales(
            *kolen_common_items,
            haebara_criterion="Q1",
            stocking_lord_criterion="Q2",
            random_state=0,
        )
        assert result.success
        assert 0.9 < result.haebara.slope < 1.25
        assert 0.9 < result.stocking_lord.slope < 1.25

    def test_summary(self, kolen_common_items):
        """The summary lists all four methods."""
        result = link_scales(*kolen_common_items, random_state=0)
        text = result.summary()
        for label in ["Mean/Mean", "Mean/Sigma", "Haebara", "Stocking-Lord"]:
            assert label in text
        assert isinstance(result, ScaleLinkingResult)


class TestLink:
    """Tests for single method linking."""

    def test_moment_methods_need_no_quadrature(self, kolen_common_items):
        """Moment methods work without quadrature rules."""
        form_x, form_y, _, _ = kolen_common_items
        coef = link(form_x, form_y, method="mean_sigma")
        assert coef.slope == pytest.approx(1.168891, abs=1e-4)

    def test_curve_method(self, kolen_common_items):
        """Characteristic curve methods go through the orchestrator."""
        coef = link(*kolen_common_items, method="haebara", random_state=0)
        assert coef.method == "haebara"
        assert coef.slope == pytest.approx(1.067800, abs=1e-4)

    def test_curve_method_needs_quadrature(self, kolen_common_items):
        """Characteristic curve methods require quadrature rules."""
        form_x, form_y, _, _ = kolen_common_items
        with pytest.raises(ValueError, match="quadrature"):
            link(form_x, form_y, method="stocking_lord")

    def test_unknown_method(self, kolen_common_items):
        """Unknown methods are rejected."""
        with pytest.raises(ValueError, match="Unknown linking method"):
            link(*kolen_common_items, method="robust")


class TestOptimizerFailure:
    """Tests for optimizer failure handling."""

    def test_failure_is_reported(self, kolen_common_items, caplog):
        """A non-finite start is reported as a failure, not raised."""
        crit = HaebaraCriterion(*kolen_common_items)
        start = LinkingCoefficients(slope=0.0, intercept=0.0)

        with caplog.at_level(logging.WARNING, logger="irtequate.equating.scale_linking"):
            coef, info = minimize_criterion(crit, start, rasch_family=False)

        assert not coef.success
        assert np.isnan(coef.slope)
        assert np.isnan(coef.intercept)
        assert "haebara" in caplog.text
        assert "error" in info

    def test_iteration_cap(self, kolen_common_items, caplog):
        """Hitting the iteration cap marks the result unconverged."""
        crit = HaebaraCriterion(*kolen_common_items)
        start = LinkingCoefficients(slope=3.0, intercept=2.0)

        with caplog.at_level(logging.WARNING, logger="irtequate.equating.scale_linking"):
            coef, _ = minimize_criterion(crit, start, rasch_family=False, max_iterations=1)

        assert not coef.success
        assert np.isfinite(coef.slope)
        assert "did not converge" in caplog.text


class TestScaleLinkingDataFrame:
    """Tests for DataFrame export."""

    def test_to_dataframe(self, rasch_forms):
        """One row per method with coefficients and flags."""
        pytest.importorskip("pandas")
        df = link_scales(*rasch_forms, random_state=0).to_dataframe()
        assert list(df.index) == ["mean_mean", "mean_sigma", "haebara", "stocking_lord"]
        assert df.loc["haebara", "slope"] == 1.0
        assert bool(df["success"].all())


class TestInterceptSearch:
    """Tests for the intercept-only search of Rasch-family forms."""

    @pytest.mark.parametrize(
        "start, first_bounds",
        [(3.9, (1.9, 4.0)), (-3.9, (-4.0, -1.9)), (0.5, (-1.5, 2.5))],
    )
    def test_first_search_around_start(self, rasch_forms, start, first_bounds):
        """The first bounded search is centered on the start value."""
        crit = HaebaraCriterion(*rasch_forms)
        coef, info = minimize_criterion(
            crit,
            LinkingCoefficients(intercept=start),
            rasch_family=True,
            n_starts=0,
            rng=np.random.default_rng(0),
        )

        assert info["start"] == start
        assert info["bounds"][0] == pytest.approx(first_bounds)
        assert info["bounds"][1] == (-4.0, 4.0)
        assert info["n_starts"] == 2
        assert coef.intercept == pytest.approx(0.06468396, abs=1e-4)

    def test_start_outside_interval_is_clipped(self, rasch_forms):
        """Starts beyond the search interval are clipped to it."""
        crit = StockingLordCriterion(*rasch_forms)
        _, info = minimize_criterion(
            crit, LinkingCoefficients(intercept=10.0), rasch_family=True, n_starts=3
        )
        assert info["start"] == 4.0
        assert len(info["bounds"]) == 5


class TestSingleCommonItem:
    """Linking with a single common item."""

    def test_mean_sigma_failure_is_contained(self, kolen_common_items, caplog):
        """Mean/sigma is marked failed; the curve methods still run."""
        form_x, form_y, quad_x, quad_y = kolen_common_items
        form_x = {"item1": form_x["item1"]}
        form_y = {"item1": form_y["item1"]}

        with caplog.at_level(logging.WARNING, logger="irtequate.equating.scale_linking"):
            result = link_scales(form_x, form_y, quad_x, quad_y, random_state=0)

        assert not result.mean_sigma.success
        assert np.isnan(result.mean_sigma.slope)
        assert "at least two difficulties" in result.mean_sigma.message
        assert "mean_sigma" in caplog.text
        assert result.mean_mean.success
        assert result.haebara.objective_value is not None
        assert result.stocking_lord.objective_value is not None
        assert "Mean/Sigma" in result.summary()


class _FailingCriterion(HaebaraCriterion):
    def _discrepancy(self, reference, transformed, quadrature):
        raise RuntimeError("item model failure")


class TestUnexpectedOptimizerErrors:
    """Errors of any type inside the criterion are contained."""

    @pytest.mark.parametrize("rasch_family", [False, True])
    def test_runtime_error(self, kolen_common_items, rasch_family, caplog):
        """A RuntimeError from an item model yields a failed result."""
        crit = _FailingCriterion(*kolen_common_items)
        with caplog.at_level(logging.WARNING, logger="irtequate.equating.scale_linking"):
            coef, info = minimize_criterion(
                crit, LinkingCoefficients(), rasch_family=rasch_family
            )

        assert not coef.success
        assert np.isnan(coef.intercept)
        assert "RuntimeError" in coef.message
        assert info["error"] == "item model failure"
        assert "optimization failed" in caplog.text
