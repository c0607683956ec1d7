"""
Splitting of sensitivities into per-regulation sets.

Every sensitivity carries the regulations under which it is collected
(Call side) and posted (Post side). The splitter builds, for each side and
netting set, one net sensitivity set per regulation, applying the rules on
"Excluded" and "Unspecified" regulations and the SEC/CFTC overlap rule.
"""

import logging
from collections.abc import Iterable
from typing import TypeAlias

from simm_core.model.records import NettingSetDetails, RiskKey, SensitivityRecord
from simm_core.model.types import (
    EXCLUDED,
    REGULATIONS,
    UNSPECIFIED,
    RiskType,
    SimmSide,
)

logger = logging.getLogger(__name__)

_KNOWN_REGULATIONS = frozenset(REGULATIONS)


class RegulationSensitivitySet:
    """
    Net sensitivities of one (side, netting set, regulation).

    Records added with the same risk key are netted: their amounts are
    summed. The native amount currency is not part of the key.

    Parameters
    ----------
    side : SimmSide
        SIMM side
    netting_set_details : NettingSetDetails
        Netting set
    regulation : str
        Regulation label
    """

    def __init__(
        self, side: SimmSide, netting_set_details: NettingSetDetails, regulation: str
    ) -> None:
        self.side = side
        self.netting_set_details = netting_set_details
        self.regulation = regulation
        self.trade_ids: set[str] = set()
        self._records: dict[RiskKey, SensitivityRecord] = {}

    def add(self, record: SensitivityRecord) -> None:
        """Net a record into the set."""
        key = record.risk_key
        existing = self._records.get(key)
        self._records[key] = record if existing is None else existing.netted_with(record)

    def contains(self, record: SensitivityRecord) -> bool:
        """Whether a record with the same risk key is already in the set."""
        return record.risk_key in self._records

    def net_records(self) -> list[SensitivityRecord]:
        """All net records, parameters included, sorted by risk key."""
        return [self._records[key] for key in sorted(self._records)]

    def sensitivities(self) -> list[SensitivityRecord]:
        """Net records that are risk sensitivities (no add-on parameters)."""
        return [r for r in self.net_records() if not r.is_simm_parameter]

    def simm_parameters(self) -> list[SensitivityRecord]:
        """Net add-on parameter records."""
        return [r for r in self.net_records() if r.is_simm_parameter]

    @property
    def has_sensitivities(self) -> bool:
        """True if the set holds at least one non-parameter record."""
        return any(not r.is_simm_parameter for r in self._records.values())

    @property
    def has_fixed_add_on(self) -> bool:
        """True if the set holds a fixed amount add-on."""
        return any(
            r.risk_type is RiskType.ADD_ON_FIXED_AMOUNT for r in self._records.values()
        )

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return (
            f"RegulationSensitivitySet(side={self.side.value}, "
            f"netting_set=[{self.netting_set_details}], regulation={self.regulation}, "
            f"n_records={len(self._records)})"
        )


RegulationSets: TypeAlias = dict[
    SimmSide, dict[NettingSetDetails, dict[str, RegulationSensitivitySet]]
]


def parse_regulation_string(regulations: str) -> set[str]:
    """
    Parse a comma separated regulation string.

    Parameters
    ----------
    regulations : str
        Regulations, e.g. "SEC,CFTC" or "[ESA, UK]"

    Returns
    -------
    set[str]
        Known regulations in the string; {"Unspecified"} for an empty
        string. Unknown tokens are dropped with a warning.

    Example
    -------
    >>> sorted(parse_regulation_string("[SEC, CFTC]"))
    ['CFTC', 'SEC']
    >>> parse_regulation_string("")
    {'Unspecified'}
    """
    text = regulations.strip()
    if text.startswith("[") and text.endswith("]"):
        text = text[1:-1]
    tokens = [token.strip() for token in text.split(",") if token.strip()]
    if not tokens:
        return {UNSPECIFIED}

    parsed = set()
    for token in tokens:
        if token in _KNOWN_REGULATIONS:
            parsed.add(token)
        else:
            logger.warning("Dropping unknown regulation %r in %r", token, regulations)
    return parsed


def split_by_regulation(
    records: Iterable[SensitivityRecord],
    determine_winning_regulations: bool,
    enforce_im_regulations: bool,
    quiet: bool = False,
) -> RegulationSets:
    """
    Split sensitivities into net sets per (side, netting set, regulation).

    Parameters
    ----------
    records : Iterable[SensitivityRecord]
        All sensitivities of the calculation
    determine_winning_regulations : bool
        Whether winning regulations will be determined (controls the
        warning on skipped Schedule records)
    enforce_im_regulations : bool
        Use the records' regulations; if False every record is treated as
        "Unspecified"
    quiet : bool
        Suppress log messages

    Returns
    -------
    RegulationSets
        Sets keyed by side, netting set and regulation, sorted by netting
        set and regulation

    Notes
    -----
    - "Excluded" is always dropped.
    - "Unspecified" is dropped when regulations are enforced and the
      netting set specifies collect or post regulations anywhere.
    - With both SEC and CFTC present, CFTC records are added to SEC unless
      SEC already holds a record with the same risk key.
    - "Unspecified" is dropped when other regulations exist for the same
      side and netting set.
    """
    simm_records: list[SensitivityRecord] = []
    collect_regs_empty: dict[NettingSetDetails, bool] = {}
    post_regs_empty: dict[NettingSetDetails, bool] = {}

    for record in records:
        if record.is_schedule:
            if not quiet and determine_winning_regulations:
                logger.warning(
                    "Skipping over Schedule record of trade %s (%s)",
                    record.trade_id,
                    record.trade_type,
                )
            continue

        nsd = record.netting_set_details
        collect_regs_empty[nsd] = collect_regs_empty.get(nsd, True) and not record.collect_regulations
        post_regs_empty[nsd] = post_regs_empty.get(nsd, True) and not record.post_regulations
        simm_records.append(record)

    sets: RegulationSets = {SimmSide.CALL: {}, SimmSide.POST: {}}
    if not simm_records:
        return sets

    if not quiet:
        logger.info("Splitting up sensitivity records into their collect/post regulations")

    for record in simm_records:
        nsd = record.netting_set_details
        regs_specified = not (collect_regs_empty[nsd] and post_regs_empty[nsd])
        for side in (SimmSide.CALL, SimmSide.POST):
            _add_record(sets[side], record, side, enforce_im_regulations, regs_specified)

    for side, netting_sets in sets.items():
        for nsd, regulation_sets in netting_sets.items():
            if "CFTC" in regulation_sets and "SEC" in regulation_sets:
                sec = regulation_sets["SEC"]
                for record in regulation_sets["CFTC"].net_records():
                    if not sec.contains(record):
                        if not quiet:
                            logger.debug(
                                "Inserting %s CFTC record into SEC records of [%s]: %s",
                                side.value,
                                nsd,
                                record.risk_key,
                            )
                        sec.add(record)

            if UNSPECIFIED in regulation_sets and len(regulation_sets) > 1:
                del regulation_sets[UNSPECIFIED]

    return {
        side: {
            nsd: dict(sorted(netting_sets[nsd].items()))
            for nsd in sorted(netting_sets)
        }
        for side, netting_sets in sets.items()
    }


def _add_record(
    netting_sets: dict[NettingSetDetails, dict[str, RegulationSensitivitySet]],
    record: SensitivityRecord,
    side: SimmSide,
    enforce_im_regulations: bool,
    regs_specified: bool,
) -> None:
    """Add one record to the sets of every regulation it applies to on a side."""
    regs_string = ""
    if enforce_im_regulations:
        regs_string = record.collect_regulations if side is SimmSide.CALL else record.post_regulations

    nsd = record.netting_set_details
    cleared = record.with_regulations_cleared()
    for regulation in sorted(parse_regulation_string(regs_string)):
        if regulation == EXCLUDED:
            continue
        if regulation == UNSPECIFIED and enforce_im_regulations and regs_specified:
            continue

        regulation_sets = netting_sets.setdefault(nsd, {})
        if regulation not in regulation_sets:
            regulation_sets[regulation] = RegulationSensitivitySet(side, nsd, regulation)
        regulation_set = regulation_sets[regulation]
        if not cleared.is_simm_parameter:
            regulation_set.trade_ids.add(cleared.trade_id)
        regulation_set.add(cleared)
