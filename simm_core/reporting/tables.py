"""
Table generation utilities for SIMM reporting.

Creates pandas DataFrames from calculator output for display or for a
downstream report writer.
"""

from collections.abc import Mapping

import pandas as pd

from simm_core.model.records import NettingSetDetails
from simm_core.model.results import SimmResults
from simm_core.model.types import SimmSide

_KEY_COLUMNS = ["Side", "NettingSet", "Regulation"]


def create_simm_results_table(
    simm_results: Mapping[SimmSide, Mapping[NettingSetDetails, Mapping[str, SimmResults]]],
) -> pd.DataFrame:
    """
    Create the full results table of every side, netting set and regulation.

    Parameters
    ----------
    simm_results : Mapping
        Results per side, netting set and regulation

    Returns
    -------
    pd.DataFrame
        One row per result entry with columns Side, NettingSet, Regulation,
        ProductClass, RiskClass, MarginType, Bucket, Margin, Currency
    """
    frames = []
    for side, by_netting_set in simm_results.items():
        for nsd, by_regulation in by_netting_set.items():
            for regulation, results in by_regulation.items():
                frame = results.to_frame()
                frame.insert(0, "Regulation", regulation)
                frame.insert(0, "NettingSet", str(nsd))
                frame.insert(0, "Side", side.value)
                frames.append(frame)

    if not frames:
        return pd.DataFrame(columns=_KEY_COLUMNS + list(SimmResults().to_frame().columns))
    return pd.concat(frames, ignore_index=True)


def create_final_results_table(
    final_results: Mapping[SimmSide, Mapping[NettingSetDetails, tuple[str, SimmResults]]],
) -> pd.DataFrame:
    """
    Create the results table of the winning regulations.

    Parameters
    ----------
    final_results : Mapping
        (winning regulation, results) per side and netting set

    Returns
    -------
    pd.DataFrame
        Same columns as :func:`create_simm_results_table`
    """
    return create_simm_results_table(
        {
            side: {nsd: {regulation: results} for nsd, (regulation, results) in by_nsd.items()}
            for side, by_nsd in final_results.items()
        }
    )


def create_im_summary_table(
    simm_results: Mapping[SimmSide, Mapping[NettingSetDetails, Mapping[str, SimmResults]]],
    winning_regulations: Mapping[SimmSide, Mapping[NettingSetDetails, str]] | None = None,
) -> pd.DataFrame:
    """
    Create a summary of total initial margin per regulation.

    Parameters
    ----------
    simm_results : Mapping
        Results per side, netting set and regulation
    winning_regulations : Mapping | None
        If given, a Winning column flags the winning regulation

    Returns
    -------
    pd.DataFrame
        Columns Side, NettingSet, Regulation, InitialMargin, Currency and
        optionally Winning
    """
    rows = []
    for side, by_netting_set in simm_results.items():
        for nsd, by_regulation in by_netting_set.items():
            for regulation, results in by_regulation.items():
                row = {
                    "Side": side.value,
                    "NettingSet": str(nsd),
                    "Regulation": regulation,
                    "InitialMargin": results.initial_margin,
                    "Currency": results.result_currency,
                }
                if winning_regulations is not None:
                    row["Winning"] = winning_regulations.get(side, {}).get(nsd) == regulation
                rows.append(row)

    columns = _KEY_COLUMNS + ["InitialMargin", "Currency"]
    if winning_regulations is not None:
        columns.append("Winning")
    return pd.DataFrame(rows, columns=columns)
