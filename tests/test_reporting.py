"""
Tests for SIMM reporting tables.
"""

import numpy as np
import pytest

from simm_core import CalculatorConfig, SimmCalculator
from simm_core.model import RiskType, SimmSide
from simm_core.reporting import (
    create_final_results_table,
    create_im_summary_table,
    create_simm_results_table,
)


@pytest.fixture
def calculator(simm_config, make_record) -> SimmCalculator:
    """Calculator with an IR sensitivity under SEC and ESA."""
    records = [
        make_record(RiskType.IR_CURVE, "USD", "1", "10y", "OIS", amount_usd=1e6, collect_regulations="SEC,ESA"),
        make_record(RiskType.IR_CURVE, "EUR", "1", "10y", "OIS", amount_usd=1e6, collect_regulations="ESA"),
    ]
    return SimmCalculator(records, simm_config, CalculatorConfig(enforce_im_regulations=True))


class TestResultsTables:
    """Tests for the full and final results tables."""

    def test_simm_results_table(self, calculator: SimmCalculator) -> None:
        """One row per result entry, keyed by side, netting set and regulation."""
        df = create_simm_results_table(calculator.simm_results)

        assert list(df.columns) == [
            "Side",
            "NettingSet",
            "Regulation",
            "ProductClass",
            "RiskClass",
            "MarginType",
            "Bucket",
            "Margin",
            "Currency",
        ]
        assert set(df["Regulation"]) == {"ESA", "SEC"}
        assert set(df["Side"]) == {"Call"}
        assert (df["NettingSet"] == "NettingSetId=CPTY_A, AgreementType=ISDA").all()

        total = df[
            (df["Regulation"] == "SEC")
            & (df["ProductClass"] == "All")
            & (df["RiskClass"] == "All")
            & (df["MarginType"] == "All")
        ]["Margin"]
        assert len(total) == 1
        assert np.isclose(total.iloc[0], 1e7)

    def test_empty_table(self) -> None:
        """Empty results give an empty frame with the usual columns."""
        df = create_simm_results_table({SimmSide.CALL: {}, SimmSide.POST: {}})

        assert df.empty
        assert "Margin" in df.columns
        assert "Side" in df.columns

    def test_final_results_table(self, calculator: SimmCalculator) -> None:
        """The final table only holds the winning regulations."""
        df = create_final_results_table(calculator.final_results)

        _, esa = next(iter(calculator.final_results[SimmSide.CALL].values()))
        assert set(df["Regulation"]) == {"ESA"}
        assert len(df) == len(esa)


class TestImSummaryTable:
    """Tests for the initial margin summary."""

    def test_summary(self, calculator: SimmCalculator) -> None:
        """One row per side, netting set and regulation."""
        df = create_im_summary_table(calculator.simm_results)

        assert list(df.columns) == ["Side", "NettingSet", "Regulation", "InitialMargin", "Currency"]
        assert len(df) == 2
        im = df.set_index("Regulation")["InitialMargin"]
        assert np.isclose(im["SEC"], 1e7)
        assert im["ESA"] > im["SEC"]

    def test_winning_column(self, calculator: SimmCalculator) -> None:
        """The Winning column flags the winner."""
        df = create_im_summary_table(calculator.simm_results, calculator.winning_regulations)

        assert df.columns[-1] == "Winning"
        winners = df[df["Winning"]]["Regulation"].tolist()
        assert winners == ["ESA"]
