#!/usr/bin/env python3
"""
SIMM Calculation Engine - Demo Script

This script demonstrates the complete SIMM workflow:
1. Load SIMM risk parameters and calculator settings
2. Define net sensitivities for two netting sets
3. Run the SIMM calculation per side, netting set and regulation
4. Inspect the margin breakdown
5. Show the winning regulations and final initial margin
6. Export results

Usage:
    python examples/run_demo.py
"""

import logging
from pathlib import Path

from simm_core import (
    NettingSetDetails,
    ProductClass,
    RiskType,
    SensitivityRecord,
    SimmCalculator,
    SimmSide,
    load_config,
)
from simm_core.reporting import (
    create_final_results_table,
    create_im_summary_table,
    create_simm_results_table,
)

DATA_DIR = Path(__file__).parent.parent / "data"


def build_portfolio() -> list[SensitivityRecord]:
    """Net sensitivities of a rates/FX book and an equity book."""
    rates_book = NettingSetDetails("CPTY_A", agreement_type="ISDA")
    equity_book = NettingSetDetails("CPTY_B", agreement_type="ISDA")

    both = {"collect_regulations": "SEC,CFTC", "post_regulations": "SEC"}
    esa = {"collect_regulations": "ESA", "post_regulations": "ESA"}

    return [
        # USD swaps
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.IR_CURVE, "USD", "1", "2y", "OIS",
                          amount=-45_000, amount_usd=-45_000, trade_id="IRS_1", **both),
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.IR_CURVE, "USD", "1", "10y", "OIS",
                          amount=120_000, amount_usd=120_000, trade_id="IRS_2", **both),
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.IR_CURVE, "USD", "1", "10y", "Libor3m",
                          amount=-30_000, amount_usd=-30_000, trade_id="IRS_2", **both),
        # EUR swap and swaption
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.IR_CURVE, "EUR", "1", "5y", "ESTR",
                          amount=80_000, amount_currency="EUR", amount_usd=87_000, trade_id="IRS_3", **esa),
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.IR_VOL, "EUR", "", "5y",
                          amount=2_500_000, amount_currency="EUR", amount_usd=2_717_500, trade_id="SWPT_1", **esa),
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.FX, "EUR",
                          amount=9_000_000, amount_usd=9_000_000, trade_id="IRS_3", **esa),
        # Cross currency swap, SEC only
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.XCCY_BASIS, "EUR", "", "", "USD",
                          amount_usd=15_000, trade_id="XCCY_1", collect_regulations="SEC", post_regulations="SEC"),
        SensitivityRecord(rates_book, ProductClass.RATES_FX, RiskType.FX, "EUR",
                          amount_usd=-4_000_000, trade_id="XCCY_1", collect_regulations="SEC", post_regulations="SEC"),
        # Equity options
        SensitivityRecord(equity_book, ProductClass.EQUITY, RiskType.EQUITY, "ACME", "5",
                          amount_usd=1_500_000, trade_id="EQO_1", **esa),
        SensitivityRecord(equity_book, ProductClass.EQUITY, RiskType.EQUITY, "GLOBEX", "7",
                          amount_usd=-600_000, trade_id="EQO_2", **esa),
        SensitivityRecord(equity_book, ProductClass.EQUITY, RiskType.EQUITY_VOL, "ACME", "5", "6m",
                          amount_usd=40_000, trade_id="EQO_1", **esa),
        SensitivityRecord(equity_book, ProductClass.EQUITY, RiskType.EQUITY_VOL, "ACME", "5", "1y",
                          amount_usd=25_000, trade_id="EQO_1", **esa),
        # Product class multiplier and fixed add-on
        SensitivityRecord(equity_book, ProductClass.EMPTY, RiskType.PRODUCT_CLASS_MULTIPLIER, "Equity",
                          amount=1.2, amount_usd=1.2, **esa),
        SensitivityRecord(equity_book, ProductClass.EMPTY, RiskType.ADD_ON_FIXED_AMOUNT,
                          amount_usd=250_000, **esa),
    ]


def main() -> None:
    """Run the SIMM demo."""
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("SIMM Calculation Engine - Demo")
    print("=" * 60)
    print()

    # =========================================================================
    # 1. Load Configuration
    # =========================================================================
    print("1. Loading configuration...")

    config = load_config(DATA_DIR / "simm_parameters.yaml", DATA_DIR / "calculator.yaml")
    simm_config = config["simm"]
    settings = config["calculator"]
    fx_rates = config["fx_rates"]

    print(f"   SIMM version: {simm_config.version}")
    print(f"   Calculation currency: {settings.calculation_currency}")
    print(f"   Result currency: {settings.effective_result_currency}")
    print()

    # =========================================================================
    # 2. Define Sensitivities
    # =========================================================================
    print("2. Defining sensitivities...")

    records = build_portfolio()
    netting_sets = {r.netting_set_details for r in records}

    print(f"   Sensitivities: {len(records)}")
    print(f"   Netting sets: {len(netting_sets)}")
    print()

    # =========================================================================
    # 3. Run SIMM
    # =========================================================================
    print("3. Running SIMM calculation...")

    calc = SimmCalculator(records, simm_config, settings, fx_spot=fx_rates.__getitem__)

    print(f"   {calc!r}")
    print()

    # =========================================================================
    # 4. Margin Breakdown
    # =========================================================================
    print("4. Margin breakdown by regulation...")

    summary = create_im_summary_table(calc.simm_results, calc.winning_regulations)
    print()
    print(summary.to_string(index=False))
    print()

    # =========================================================================
    # 5. Winning Regulations
    # =========================================================================
    print("5. Final initial margin...")
    print()

    for side in (SimmSide.CALL, SimmSide.POST):
        for nsd, (regulation, results) in calc.final_results.get(side, {}).items():
            print(
                f"   {side.value:<5} [{nsd}] {regulation:<8} "
                f"{results.initial_margin:>16,.0f} {results.result_currency}"
            )
    print()

    # =========================================================================
    # 6. Export Results
    # =========================================================================
    print("6. Exporting results...")

    output_dir = Path(__file__).parent / "outputs"
    output_dir.mkdir(exist_ok=True)

    files = {
        "simm": output_dir / "demo_simm.csv",
        "final": output_dir / "demo_simm_final.csv",
        "summary": output_dir / "demo_simm_summary.csv",
    }
    create_simm_results_table(calc.simm_results).to_csv(files["simm"], index=False)
    create_final_results_table(calc.final_results).to_csv(files["final"], index=False)
    summary.to_csv(files["summary"], index=False)

    for name, path in files.items():
        print(f"   Saved: {path}")

    print()
    print("=" * 60)
    print("Demo complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
