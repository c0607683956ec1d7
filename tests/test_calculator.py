"""
End-to-end tests for the SIMM calculator.
"""

import math

import numpy as np
import pytest
from scipy.stats import norm

from simm_core import CalculatorConfig, SimmCalculator
from simm_core.exceptions import (
    FxRateError,
    InvalidCurrencyError,
    SimmCalculationError,
    SimmConfigurationError,
    SimmResultsKeyError,
)
from simm_core.model import MarginType, NettingSetDetails, ProductClass, RiskClass, RiskType, SimmSide

Q2 = norm.ppf(0.995) ** 2


def _ir(make_record, currency: str = "USD", amount_usd: float = 1e6, **kwargs):
    return make_record(RiskType.IR_CURVE, currency, "1", "10y", "OIS", amount_usd=amount_usd, **kwargs)


class TestSimmCalculator:
    """Tests for the full calculation."""

    def test_single_sensitivity(self, simm_config, make_record, netting_set) -> None:
        """Without regulations every side gets an Unspecified result."""
        calc = SimmCalculator([_ir(make_record, trade_id="T1")], simm_config)

        for side in (SimmSide.CALL, SimmSide.POST):
            regulation, results = calc.final_results[side][netting_set]
            assert regulation == "Unspecified"
            assert np.isclose(results.initial_margin, 1e7)
            assert results.result_currency == "USD"

        assert calc.winning_regulations[SimmSide.CALL][netting_set] == "Unspecified"
        assert np.isclose(
            calc.simm_results[SimmSide.CALL][netting_set]["Unspecified"].get(
                ProductClass.RATES_FX, RiskClass.INTEREST_RATE, MarginType.DELTA
            ),
            1e7,
        )

    def test_trade_ids(self, simm_config, make_record, netting_set) -> None:
        """Trade ids are tracked per regulation and for the winners."""
        records = [
            _ir(make_record, trade_id="T1"),
            _ir(make_record, "EUR", trade_id="T2"),
        ]

        calc = SimmCalculator(records, simm_config)

        assert calc.trade_ids[SimmSide.CALL][netting_set]["Unspecified"] == {"T1", "T2"}
        assert calc.final_trade_ids[SimmSide.POST] == {"T1", "T2"}

    def test_sec_cftc(self, simm_config, make_record, netting_set) -> None:
        """CFTC sensitivities count towards SEC, which then wins."""
        records = [
            _ir(make_record, "USD", trade_id="A", collect_regulations="SEC"),
            _ir(make_record, "EUR", trade_id="B", collect_regulations="CFTC"),
        ]
        settings = CalculatorConfig(enforce_im_regulations=True)

        calc = SimmCalculator(records, simm_config, settings)

        by_regulation = calc.simm_results[SimmSide.CALL][netting_set]
        assert np.isclose(by_regulation["CFTC"].initial_margin, 1e7)
        assert np.isclose(by_regulation["SEC"].initial_margin, math.sqrt(2.5e14))
        assert calc.winning_regulations[SimmSide.CALL][netting_set] == "SEC"
        # Collect regulations are given, so nothing is posted
        assert netting_set not in calc.simm_results[SimmSide.POST]
        assert netting_set not in calc.final_results[SimmSide.POST]

    def test_tie_default_priority(self, simm_config, make_record, netting_set) -> None:
        """Equal margins are resolved by the default priority list."""
        records = [_ir(make_record, collect_regulations="SEC,ESA")]

        calc = SimmCalculator(records, simm_config, CalculatorConfig(enforce_im_regulations=True))

        assert calc.winning_regulations[SimmSide.CALL][netting_set] == "ESA"

    def test_tie_custom_priority(self, simm_config, make_record, netting_set) -> None:
        """The priority list is configurable."""
        records = [_ir(make_record, collect_regulations="SEC,ESA")]
        settings = CalculatorConfig(enforce_im_regulations=True, regulation_priority=["SEC", "ESA"])

        calc = SimmCalculator(records, simm_config, settings)

        assert calc.winning_regulations[SimmSide.CALL][netting_set] == "SEC"

    def test_result_currency(self, simm_config, make_record, netting_set) -> None:
        """Results are converted before the winner is chosen."""
        settings = CalculatorConfig(result_currency="EUR")

        calc = SimmCalculator([_ir(make_record)], simm_config, settings, fx_spot={"USDEUR": 1.25}.__getitem__)

        regulation, results = calc.final_results[SimmSide.CALL][netting_set]
        assert results.result_currency == "EUR"
        assert np.isclose(results.initial_margin, 8e6)
        assert results.calculation_currency == "USD"

    def test_result_currency_without_fx(self, simm_config, make_record) -> None:
        """Converting needs a spot function."""
        with pytest.raises(FxRateError):
            SimmCalculator([_ir(make_record)], simm_config, CalculatorConfig(result_currency="EUR"))

    def test_invalid_currency(self, simm_config, make_record) -> None:
        """The calculation currency must be an ISO code."""
        with pytest.raises(InvalidCurrencyError):
            SimmCalculator([_ir(make_record)], simm_config, CalculatorConfig(calculation_currency="ABC"))

    def test_missing_parameters(self, make_simm_config, make_record) -> None:
        """A failing calculation names the side, netting set and regulation."""
        config = make_simm_config(without_risk_weights=(RiskType.COMMODITY,))
        records = [make_record(RiskType.COMMODITY, "Gold", "12", amount_usd=1e6)]

        with pytest.raises(SimmCalculationError, match="Unspecified") as exc_info:
            SimmCalculator(records, config)

        assert exc_info.value.side == "Call"
        assert exc_info.value.regulation == "Unspecified"
        assert "CPTY_A" in exc_info.value.netting_set
        assert isinstance(exc_info.value.__cause__, SimmConfigurationError)

    def test_parallel_matches_sequential(self, simm_config, make_record) -> None:
        """Thread pool results equal sequential results."""
        records = []
        for i in range(4):
            nsd = NettingSetDetails(f"CPTY_{i}")
            records += [
                _ir(make_record, "USD", 1e6 * (i + 1), netting_set_details=nsd, collect_regulations="SEC,ESA"),
                make_record(RiskType.FX, "EUR", amount_usd=-2e6, netting_set_details=nsd, post_regulations="UK"),
                make_record(RiskType.EQUITY, "ACME", "1", amount_usd=5e5 * i, netting_set_details=nsd),
            ]

        sequential = SimmCalculator(records, simm_config, CalculatorConfig(enforce_im_regulations=True))
        parallel = SimmCalculator(
            records, simm_config, CalculatorConfig(enforce_im_regulations=True, max_workers=4)
        )

        for side in (SimmSide.CALL, SimmSide.POST):
            assert sequential.winning_regulations[side] == parallel.winning_regulations[side]
            for nsd, by_regulation in sequential.simm_results[side].items():
                for regulation, results in by_regulation.items():
                    other = parallel.simm_results[side][nsd][regulation]
                    assert dict(results.items()) == dict(other.items())

    def test_fixed_add_on_only(self, simm_config, make_record) -> None:
        """A netting set with only a fixed add-on still gets a margin."""
        nsd = NettingSetDetails("CPTY_B")
        records = [make_record(RiskType.ADD_ON_FIXED_AMOUNT, amount_usd=5e5, netting_set_details=nsd)]

        calc = SimmCalculator(records, simm_config)

        regulation, results = calc.final_results[SimmSide.CALL][nsd]
        assert regulation == "Unspecified"
        assert np.isclose(results.initial_margin, 5e5)

    def test_manual_winners(self, simm_config, make_record, netting_set) -> None:
        """Winners can be chosen externally."""
        records = [_ir(make_record, collect_regulations="SEC,ESA", trade_id="T1")]
        settings = CalculatorConfig(enforce_im_regulations=True, determine_winning_regulations=False)

        calc = SimmCalculator(records, simm_config, settings)
        assert calc.final_results == {}

        calc.populate_final_results({SimmSide.CALL: {netting_set: "SEC"}})

        regulation, results = calc.final_results[SimmSide.CALL][netting_set]
        assert regulation == "SEC"
        assert np.isclose(results.initial_margin, 1e7)
        assert calc.final_trade_ids[SimmSide.CALL] == {"T1"}

    def test_manual_winners_incomplete(self, simm_config, make_record) -> None:
        """An external winning map must cover every netting set with results."""
        a, b = NettingSetDetails("CPTY_A"), NettingSetDetails("CPTY_B")
        records = [
            _ir(make_record, netting_set_details=a),
            _ir(make_record, netting_set_details=b),
        ]
        settings = CalculatorConfig(determine_winning_regulations=False)
        calc = SimmCalculator(records, simm_config, settings)

        with pytest.raises(SimmResultsKeyError, match="CPTY_B"):
            calc.populate_final_results(
                {
                    SimmSide.CALL: {a: "Unspecified", b: "Unspecified"},
                    SimmSide.POST: {a: "Unspecified"},
                }
            )

    def test_read_only_views(self, simm_config, make_record) -> None:
        """Results cannot be modified through the properties."""
        calc = SimmCalculator([_ir(make_record)], simm_config)

        with pytest.raises(TypeError):
            calc.simm_results[SimmSide.CALL] = {}  # type: ignore[index]
        with pytest.raises(TypeError):
            calc.final_results[SimmSide.POST] = {}  # type: ignore[index]

    def test_ir_vol(self, simm_config, make_record, netting_set) -> None:
        """Volatility sensitivities give vega and curvature margin."""
        records = [make_record(RiskType.IR_VOL, "USD", "", "2w", amount_usd=1e6)]

        calc = SimmCalculator(records, simm_config)

        _, call = calc.final_results[SimmSide.CALL][netting_set]
        assert np.isclose(call.get(ProductClass.RATES_FX, RiskClass.INTEREST_RATE, MarginType.VEGA), 2e5)
        assert np.isclose(
            call.get(ProductClass.RATES_FX, RiskClass.INTEREST_RATE, MarginType.CURVATURE), Q2 * 5e5
        )
        assert np.isclose(call.initial_margin, 2e5 + Q2 * 5e5)

        _, post = calc.final_results[SimmSide.POST][netting_set]
        assert np.isclose(post.initial_margin, 2e5)

    def test_base_correlation(self, simm_config, make_record, netting_set) -> None:
        """Base correlation margin is part of the credit qualifying risk class."""
        records = [make_record(RiskType.BASE_CORR, "CDX.NA.IG", amount_usd=1e6)]

        calc = SimmCalculator(records, simm_config)

        _, results = calc.final_results[SimmSide.CALL][netting_set]
        assert np.isclose(
            results.get(ProductClass.CREDIT, RiskClass.CREDIT_QUALIFYING, MarginType.BASE_CORR), 1e7
        )
        assert np.isclose(results.initial_margin, 1e7)

    def test_repr(self, simm_config, make_record) -> None:
        """The representation shows currencies and result count."""
        calc = SimmCalculator([_ir(make_record)], simm_config)
        assert "n_results=2" in repr(calc)
