"""
Tests for interest rate delta, vega and curvature margin.
"""

import math
import random

import numpy as np
import pytest
from scipy.stats import norm

from simm_core.exceptions import SimmInvariantError
from simm_core.margin import SensitivityGroups, ir_curvature_margin, ir_delta_margin, ir_vega_margin
from simm_core.model import RiskClass, RiskType, SimmSide

Q2 = norm.ppf(0.995) ** 2


class TestIRDeltaMargin:
    """Tests for interest rate delta."""

    def test_not_applicable(self, simm_config, make_record) -> None:
        """Without IR delta sensitivities the risk class does not apply."""
        groups = SensitivityGroups([make_record(RiskType.IR_VOL, "USD", "", "10y", amount_usd=1e6)])
        assert ir_delta_margin(groups, simm_config, "USD") == ({"All": 0.0}, False)

    def test_single_tenor(self, simm_config, make_record) -> None:
        """A single 10y sensitivity gives RW * amount."""
        groups = SensitivityGroups([make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6)])

        margins, applies = ir_delta_margin(groups, simm_config, "USD")

        assert applies
        assert np.isclose(margins["USD"], 1e7)
        assert np.isclose(margins["All"], 1e7)

    def test_tenor_correlation(self, simm_config, make_record) -> None:
        """Tenors of a currency use the tenor correlation."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "2y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, simm_config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(2e14 + 2 * 0.5 * 1e14))

    def test_sub_curve_correlation(self, simm_config, make_record) -> None:
        """Sub curves of the same tenor use the sub curve correlation."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "Libor3m", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, simm_config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(2e14 + 2 * 0.9 * 1e14))

    def test_tenor_and_sub_curve(self, simm_config, make_record) -> None:
        """Tenor and sub curve correlations multiply."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "2y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "Libor3m", amount_usd=-1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, simm_config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(2e14 - 2 * 0.45 * 1e14))

    def test_inflation(self, simm_config, make_record) -> None:
        """Inflation joins the currency with its own correlation."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.INFLATION, "USD", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, simm_config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(1e14 + 4e14 + 2 * 0.3 * 1e7 * 2e7))

    def test_xccy_basis(self, simm_config, make_record) -> None:
        """Cross currency basis joins the currency with its own correlation."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.XCCY_BASIS, "USD", label2="EUR", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, simm_config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(1e14 + 25e12 + 2 * 0.1 * 1e7 * 5e6))

    def test_xccy_basis_only(self, simm_config, make_record) -> None:
        """A currency with only cross currency basis risk is still calculated."""
        groups = SensitivityGroups([make_record(RiskType.XCCY_BASIS, "EUR", amount_usd=-1e6)])
        margins, applies = ir_delta_margin(groups, simm_config, "USD")
        assert applies
        assert np.isclose(margins["EUR"], 5e6)

    def test_concentration_excludes_xccy_basis(self, make_simm_config, make_record) -> None:
        """Concentration risk scales curve and inflation but not cross currency basis."""
        config = make_simm_config(concentration_thresholds={RiskType.IR_CURVE: {"default": 1e6}})
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.INFLATION, "USD", amount_usd=3e6),
                make_record(RiskType.XCCY_BASIS, "USD", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, config, "USD")

        # CR = sqrt((1e6 + 3e6) / 1e6) = 2
        curve, inflation, xccy = 1e7 * 2, 6e7 * 2, 5e6
        expected = math.sqrt(
            curve**2 + inflation**2 + xccy**2
            + 2 * 0.3 * curve * inflation
            + 2 * 0.1 * curve * xccy
            + 2 * 0.1 * inflation * xccy
        )
        assert np.isclose(margins["USD"], expected)

    def test_two_inflation_records_invalid(self, simm_config, make_record) -> None:
        """A currency has at most one net inflation sensitivity."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.INFLATION, "USD", label2="CPI", amount_usd=1e6),
                make_record(RiskType.INFLATION, "USD", label2="HICP", amount_usd=1e6),
            ]
        )
        with pytest.raises(SimmInvariantError, match="Risk_Inflation"):
            ir_delta_margin(groups, simm_config, "USD")

    def test_cross_currency(self, simm_config, make_record) -> None:
        """Currencies are aggregated with the cross currency correlation."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "EUR", "1", "10y", "ESTR", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, simm_config, "USD")

        assert np.isclose(margins["EUR"], 1e7)
        assert np.isclose(margins["USD"], 1e7)
        assert np.isclose(margins["All"], math.sqrt(2e14 + 2 * 0.25 * 1e14))

    def test_cross_currency_concentration_ratio(self, make_simm_config, make_record) -> None:
        """Cross currency terms are scaled by min(CR) / max(CR)."""
        config = make_simm_config(
            concentration_thresholds={RiskType.IR_CURVE: {"by_qualifier": {"EUR": 2.5e5}}}
        )
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "EUR", "1", "10y", "ESTR", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, config, "USD")

        # CR_EUR = 2, CR_USD = 1
        assert np.isclose(margins["EUR"], 2e7)
        expected = math.sqrt(1e14 + 4e14 + 2 * 0.25 * 0.5 * 1e7 * 2e7)
        assert np.isclose(margins["All"], expected)


class TestIRVegaMargin:
    """Tests for interest rate vega."""

    def test_single(self, simm_config, make_record) -> None:
        """IR vega WS = RW * amount."""
        groups = SensitivityGroups([make_record(RiskType.IR_VOL, "USD", "", "10y", amount_usd=1e6)])

        margins, applies = ir_vega_margin(groups, simm_config, "USD")

        assert applies
        assert np.isclose(margins["All"], 2e5)

    def test_with_inflation_vol(self, simm_config, make_record) -> None:
        """Inflation volatility joins the currency."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_VOL, "USD", "", "10y", amount_usd=1e6),
                make_record(RiskType.INFLATION_VOL, "USD", "", "10y", amount_usd=1e6),
            ]
        )

        margins, _ = ir_vega_margin(groups, simm_config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(8e10 + 2 * 0.3 * 4e10))

    def test_shared_concentration(self, make_simm_config, make_record) -> None:
        """IR and inflation volatility share one concentration factor."""
        config = make_simm_config(concentration_thresholds={RiskType.IR_VOL: {"default": 5e5}})
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_VOL, "USD", "", "10y", amount_usd=1e6),
                make_record(RiskType.INFLATION_VOL, "USD", "", "10y", amount_usd=1e6),
            ]
        )

        margins, _ = ir_vega_margin(groups, config, "USD")

        # CR = sqrt(2e6 / 5e5) = 2
        assert np.isclose(margins["USD"], 2.0 * math.sqrt(8e10 + 2 * 0.3 * 4e10))

    def test_not_applicable(self, simm_config, make_record) -> None:
        """Without IR vega sensitivities the risk class does not apply."""
        groups = SensitivityGroups([make_record(RiskType.IR_CURVE, "USD", "1", "10y", amount_usd=1e6)])
        assert ir_vega_margin(groups, simm_config, "USD")[1] is False


class TestIRCurvatureMargin:
    """Tests for interest rate curvature."""

    def test_call_long_volatility(self, simm_config, make_record) -> None:
        """A single long position gives q^2 * CVR on the Call side."""
        groups = SensitivityGroups([make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6)])

        margins, applies = ir_curvature_margin(groups, simm_config, SimmSide.CALL)

        assert applies
        assert np.isclose(margins["USD"], 5e5)
        assert np.isclose(margins["All"], Q2 * 5e5)

    def test_post_flips_sign(self, simm_config, make_record) -> None:
        """On the Post side the same position has no curvature margin."""
        groups = SensitivityGroups([make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6)])

        margins, _ = ir_curvature_margin(groups, simm_config, SimmSide.POST)

        assert np.isclose(margins["All"], 0.0, atol=1e-6)

    def test_non_negative(self, simm_config, make_record) -> None:
        """Curvature margin is floored at zero."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=-1e6),
                make_record(RiskType.IR_VOL, "EUR", "", "2w", amount_usd=-3e6),
            ]
        )
        margins, _ = ir_curvature_margin(groups, simm_config, SimmSide.CALL)
        assert margins["All"] >= 0.0

    def test_scaling(self, make_simm_config, make_record) -> None:
        """The total is scaled by the interest rate curvature scaling."""
        config = make_simm_config(curvature_margin_scaling={RiskClass.INTEREST_RATE: 2.3})
        groups = SensitivityGroups([make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6)])

        margins, _ = ir_curvature_margin(groups, config, SimmSide.CALL)

        assert np.isclose(margins["All"], 2.3 * Q2 * 5e5)
        assert np.isclose(margins["USD"], 5e5)

    def test_inflation_vol_term(self, simm_config, make_record) -> None:
        """Inflation volatility adds one correlated term per currency."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6),
                make_record(RiskType.INFLATION_VOL, "USD", "", "2w", amount_usd=1e6),
            ]
        )

        margins, _ = ir_curvature_margin(groups, simm_config, SimmSide.CALL)

        k = 5e5 * math.sqrt(2 + 2 * 0.3**2)
        assert np.isclose(margins["USD"], k)
        assert np.isclose(margins["All"], 1e6 + (Q2 - 1.0) * k)

    def test_inflation_vol_ignored_in_version_1_0(self, make_simm_config, make_record) -> None:
        """SIMM 1.0 has no inflation volatility curvature."""
        config = make_simm_config(version="1.0")
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6),
                make_record(RiskType.INFLATION_VOL, "USD", "", "2w", amount_usd=1e6),
            ]
        )

        margins, _ = ir_curvature_margin(groups, config, SimmSide.CALL)

        assert np.isclose(margins["All"], Q2 * 5e5)

    def test_zero_curvature(self, simm_config, make_record) -> None:
        """Zero curvature sensitivities give a zero margin."""
        groups = SensitivityGroups([make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=0.0)])
        assert ir_curvature_margin(groups, simm_config, SimmSide.CALL) == ({"All": 0.0}, True)

    def test_cross_currency_squared_correlation(self, simm_config, make_record) -> None:
        """Currencies are aggregated with squared correlations."""
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6),
                make_record(RiskType.IR_VOL, "EUR", "", "2w", amount_usd=1e6),
            ]
        )

        margins, _ = ir_curvature_margin(groups, simm_config, SimmSide.CALL)

        root = math.sqrt(2 * 25e10 + 2 * 0.25**2 * 25e10)
        assert np.isclose(margins["All"], 1e6 + (Q2 - 1.0) * root)


class TestIRDeltaProperties:
    """Structural properties of interest rate delta."""

    def test_record_order_irrelevant(self, simm_config, make_record) -> None:
        """Shuffled and reversed inputs give the same margins."""
        records = [
            make_record(RiskType.IR_CURVE, "USD", "1", "2y", "OIS", amount_usd=1e6),
            make_record(RiskType.IR_CURVE, "USD", "1", "10y", "Libor3m", amount_usd=-4e5),
            make_record(RiskType.INFLATION, "USD", amount_usd=2e5),
            make_record(RiskType.IR_CURVE, "EUR", "1", "10y", "ESTR", amount_usd=7e5),
            make_record(RiskType.XCCY_BASIS, "EUR", amount_usd=-1e6),
        ]
        shuffled = list(records)
        random.Random(11).shuffle(shuffled)

        expected, _ = ir_delta_margin(SensitivityGroups(records), simm_config, "USD")
        for ordering in (shuffled, list(reversed(records))):
            margins, _ = ir_delta_margin(SensitivityGroups(ordering), simm_config, "USD")
            assert margins.keys() == expected.keys()
            for qualifier, value in expected.items():
                assert np.isclose(margins[qualifier], value), qualifier

    def test_zero_correlation(self, make_simm_config, make_record) -> None:
        """Without correlations tenors and currencies add in quadrature."""
        config = make_simm_config(
            correlations={
                RiskType.IR_CURVE: {
                    "label1": {"labels": ["2y", "10y"], "matrix": [[1.0, 0.0], [0.0, 1.0]]},
                    "label2_different": 0.0,
                    "different_qualifier": 0.0,
                }
            }
        )
        groups = SensitivityGroups(
            [
                make_record(RiskType.IR_CURVE, "USD", "1", "2y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6),
                make_record(RiskType.IR_CURVE, "EUR", "1", "10y", "ESTR", amount_usd=1e6),
            ]
        )

        margins, _ = ir_delta_margin(groups, config, "USD")

        assert np.isclose(margins["USD"], math.sqrt(2e14))
        assert np.isclose(margins["EUR"], 1e7)
        assert np.isclose(margins["All"], math.sqrt(margins["USD"] ** 2 + margins["EUR"] ** 2))
