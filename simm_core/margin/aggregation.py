"""
Aggregation of leaf margins into the higher levels of the SIMM hierarchy.
"""

import math
from collections.abc import Callable, Iterable

from simm_core.config.simm_configuration import SimmConfiguration
from simm_core.model.results import SimmResults
from simm_core.model.types import ALL_BUCKETS, MarginType, ProductClass, RiskClass


def _sum_existing(
    results: SimmResults, keys: Iterable[tuple[ProductClass, RiskClass, MarginType]]
) -> float | None:
    """Sum of the "All" bucket entries that exist, None if none does."""
    values = [results.get(*key) for key in keys if results.has(*key)]
    return sum(values) if values else None


def _across_risk_classes(
    results: SimmResults,
    risk_classes: list[RiskClass],
    key: Callable[[RiskClass], tuple[ProductClass, RiskClass, MarginType]],
    config: SimmConfiguration,
) -> float | None:
    """sqrt(sum IM_r^2 + sum_{r != s} psi_rs IM_r IM_s) over existing risk classes."""
    present = [(rc, results.get(*key(rc))) for rc in risk_classes if results.has(*key(rc))]
    if not present:
        return None
    total = 0.0
    for i, (rc_outer, im_outer) in enumerate(present):
        total += im_outer * im_outer
        for rc_inner, im_inner in present[:i]:
            total += 2.0 * config.correlation_risk_classes(rc_outer, rc_inner) * im_outer * im_inner
    return math.sqrt(max(total, 0.0))


def populate_results(results: SimmResults, config: SimmConfiguration) -> None:
    """
    Fill in the aggregate levels of a results table from its leaf margins.

    Parameters
    ----------
    results : SimmResults
        Results holding (pc, rc, mt, "All") leaf margins, updated in place
    config : SimmConfiguration
        Provides the product classes, risk classes and margin types to
        aggregate over and the risk class correlations psi

    Notes
    -----
    In order:

    1. (pc, rc, All) = sum over margin types
    2. (pc, All, All) = sqrt(sum IM_r^2 + sum_{r != s} psi_rs IM_r IM_s)
    3. (All, All, All) = sum over product classes, always written
    4. (pc, All, mt) by psi aggregation; (All, rc, mt), (All, rc, All) and
       (All, All, mt) by summing over product classes

    An aggregate is only written if at least one of its inputs exists.
    """
    pcs = config.product_classes()
    rcs = config.risk_classes()
    mts = config.margin_types()

    def add(pc: ProductClass, rc: RiskClass, mt: MarginType, value: float | None) -> None:
        if value is not None:
            results.add(pc, rc, mt, ALL_BUCKETS, value)

    for pc in pcs:
        for rc in rcs:
            add(pc, rc, MarginType.ALL, _sum_existing(results, ((pc, rc, mt) for mt in mts)))

    for pc in pcs:
        add(
            pc,
            RiskClass.ALL,
            MarginType.ALL,
            _across_risk_classes(results, rcs, lambda rc: (pc, rc, MarginType.ALL), config),
        )

    im = _sum_existing(results, ((pc, RiskClass.ALL, MarginType.ALL) for pc in pcs))
    add(ProductClass.ALL, RiskClass.ALL, MarginType.ALL, im or 0.0)

    for pc in pcs:
        for mt in mts:
            add(
                pc,
                RiskClass.ALL,
                mt,
                _across_risk_classes(results, rcs, lambda rc: (pc, rc, mt), config),
            )

    for rc in rcs:
        for mt in mts:
            add(ProductClass.ALL, rc, mt, _sum_existing(results, ((pc, rc, mt) for pc in pcs)))

    for rc in rcs:
        add(
            ProductClass.ALL,
            rc,
            MarginType.ALL,
            _sum_existing(results, ((pc, rc, MarginType.ALL) for pc in pcs)),
        )

    for mt in mts:
        add(
            ProductClass.ALL,
            RiskClass.ALL,
            mt,
            _sum_existing(results, ((pc, RiskClass.ALL, mt) for pc in pcs)),
        )
