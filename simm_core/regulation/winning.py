"""
Selection of the winning regulation per side and netting set.

The winning regulation is the one with the highest total margin. Ties,
within floating point tolerance, are broken by a configured priority list.
"""

import logging
from collections.abc import Mapping, Sequence

from simm_core.exceptions import SimmResultsKeyError
from simm_core.margin.common import close_enough
from simm_core.model.records import NettingSetDetails
from simm_core.model.results import SimmResults
from simm_core.model.types import REGULATIONS, SimmSide

logger = logging.getLogger(__name__)

ResultsBySide = Mapping[SimmSide, Mapping[NettingSetDetails, Mapping[str, SimmResults]]]
WinningRegulations = dict[SimmSide, dict[NettingSetDetails, str]]


def select_winning_regulation(
    margins: Mapping[str, float], priority: Sequence[str] = REGULATIONS
) -> str:
    """
    Pick the regulation with the highest margin.

    Parameters
    ----------
    margins : Mapping[str, float]
        Total margin per regulation
    priority : Sequence[str]
        Tie-break order; regulations not listed rank after listed ones, in
        alphabetical order

    Returns
    -------
    str
        Winning regulation

    Example
    -------
    >>> select_winning_regulation({"SEC": 100.0, "ESA": 120.0})
    'ESA'
    >>> select_winning_regulation({"SEC": 100.0, "CFTC": 100.0})
    'CFTC'
    """
    if not margins:
        raise ValueError("Cannot select a winning regulation without margins")

    highest = max(margins.values())
    winners = [reg for reg, im in margins.items() if close_enough(im, highest)]
    if len(winners) == 1:
        return winners[0]

    rank = {reg: i for i, reg in enumerate(priority)}
    return min(winners, key=lambda reg: (rank.get(reg, len(rank)), reg))


def determine_winning_regulations(
    results: ResultsBySide, priority: Sequence[str] = REGULATIONS, quiet: bool = False
) -> WinningRegulations:
    """
    Winning regulation of every (side, netting set) in a results map.

    Parameters
    ----------
    results : ResultsBySide
        Results per side, netting set and regulation
    priority : Sequence[str]
        Tie-break order
    quiet : bool
        Suppress log messages

    Returns
    -------
    WinningRegulations
        Winning regulation per side and netting set
    """
    winning: WinningRegulations = {}
    for side, by_netting_set in results.items():
        winning[side] = {}
        for nsd, by_regulation in by_netting_set.items():
            if not by_regulation:
                continue
            margins = {reg: res.initial_margin for reg, res in by_regulation.items()}
            winning[side][nsd] = select_winning_regulation(margins, priority)
            if not quiet:
                logger.debug(
                    "Winning %s regulation for netting set [%s]: %s",
                    side.value,
                    nsd,
                    winning[side][nsd],
                )
    return winning


def populate_final_results(
    results: ResultsBySide,
    winning: Mapping[SimmSide, Mapping[NettingSetDetails, str]],
    trade_ids: Mapping[SimmSide, Mapping[NettingSetDetails, Mapping[str, set[str]]]],
    result_currency: str,
) -> tuple[
    dict[SimmSide, dict[NettingSetDetails, tuple[str, SimmResults]]],
    dict[SimmSide, set[str]],
]:
    """
    Collect the results and trade ids of the winning regulations.

    Parameters
    ----------
    results : ResultsBySide
        Results per side, netting set and regulation
    winning : Mapping[SimmSide, Mapping[NettingSetDetails, str]]
        Winning regulation per side and netting set
    trade_ids : Mapping
        Trade ids per side, netting set and regulation
    result_currency : str
        Currency of the empty results used when the winning regulation has
        no SIMM results (e.g. Schedule only netting sets)

    Returns
    -------
    tuple
        Final (regulation, results) per side and netting set, and the trade
        ids of the winning regulations per side

    Raises
    ------
    SimmResultsKeyError
        If a (side, netting set) with results has no winning regulation
    """
    for side, by_netting_set in results.items():
        for nsd, by_regulation in by_netting_set.items():
            if by_regulation and nsd not in winning.get(side, {}):
                raise SimmResultsKeyError(
                    f"No winning {side.value} regulation for netting set [{nsd}]"
                )

    final_trade_ids: dict[SimmSide, set[str]] = {}
    for side, by_netting_set in winning.items():
        ids = final_trade_ids.setdefault(side, set())
        for nsd, regulation in by_netting_set.items():
            ids.update(trade_ids.get(side, {}).get(nsd, {}).get(regulation, set()))

    final: dict[SimmSide, dict[NettingSetDetails, tuple[str, SimmResults]]] = {}
    for side, by_netting_set in winning.items():
        final[side] = {}
        for nsd, regulation in by_netting_set.items():
            by_regulation = results.get(side, {}).get(nsd, {})
            final[side][nsd] = (
                regulation,
                by_regulation.get(regulation, SimmResults(result_currency)),
            )
    return final, final_trade_ids
