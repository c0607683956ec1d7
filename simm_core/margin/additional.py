"""
Additional initial margin from SIMM parameter records.

Add-ons do not diversify: they are added on top of the aggregated SIMM
margin of a (side, netting set, regulation).
"""

import logging
from collections.abc import Sequence

from simm_core.exceptions import SimmInvariantError
from simm_core.model.records import SensitivityRecord
from simm_core.model.results import SimmResults
from simm_core.model.types import ALL_BUCKETS, MarginType, ProductClass, RiskClass, RiskType

logger = logging.getLogger(__name__)


def _add_on(
    results: SimmResults, product_class: ProductClass, amount: float, quiet: bool
) -> None:
    """Accumulate an add-on at product class and netting set level."""
    for pc, mt in (
        (product_class, MarginType.ADDITIONAL_IM),
        (product_class, MarginType.ALL),
        (ProductClass.ALL, MarginType.ADDITIONAL_IM),
        (ProductClass.ALL, MarginType.ALL),
    ):
        results.add(pc, RiskClass.ALL, mt, ALL_BUCKETS, amount)
    if not quiet:
        logger.debug("Added additional margin %s for product class %s", amount, product_class.value)


def calculate_additional_margin(
    results: SimmResults,
    records: Sequence[SensitivityRecord],
    quiet: bool = False,
) -> None:
    """
    Add product class multiplier, fixed and notional based add-ons.

    Parameters
    ----------
    results : SimmResults
        Aggregated results of one (side, netting set, regulation), updated
        in place
    records : Sequence[SensitivityRecord]
        Net records of the same set, including parameter records
    quiet : bool
        Suppress debug messages

    Raises
    ------
    SimmInvariantError
        If a multiplier is negative, a multiplier qualifier is not a product
        class, or a notional factor matches more than one Notional record

    Notes
    -----
    - Param_ProductClassMultiplier with factor f on product class pc adds
      (f - 1) * IM(pc), provided pc has a margin.
    - Param_AddOnFixedAmount adds its USD amount.
    - Param_AddOnNotionalFactor with qualifier Q adds
      notional(Q) * factor / 100, where notional(Q) is the USD amount of the
      Notional record with qualifier Q. Without such a record nothing is
      added.
    """
    parameters = [r for r in records if r.product_class is ProductClass.EMPTY]

    for record in parameters:
        if record.risk_type is not RiskType.PRODUCT_CLASS_MULTIPLIER:
            continue
        try:
            product_class = ProductClass(record.qualifier)
        except ValueError as exc:
            raise SimmInvariantError(
                f"Qualifier {record.qualifier!r} of risk type {record.risk_type.value} "
                f"is not a product class"
            ) from exc
        if not results.has(product_class, RiskClass.ALL, MarginType.ALL):
            continue
        factor = record.amount
        if factor < 0.0:
            raise SimmInvariantError(
                f"Amount for risk type {record.risk_type.value} must be greater than "
                f"or equal to 0 but we got {factor}"
            )
        im = results.get(product_class, RiskClass.ALL, MarginType.ALL)
        _add_on(results, product_class, (factor - 1.0) * im, quiet)

    for record in parameters:
        if record.risk_type is RiskType.ADD_ON_FIXED_AMOUNT:
            _add_on(results, ProductClass.ADD_ON_FIXED_AMOUNT, record.amount_usd, quiet)

    for record in parameters:
        if record.risk_type is not RiskType.ADD_ON_NOTIONAL_FACTOR:
            continue
        notionals = [
            r
            for r in parameters
            if r.risk_type is RiskType.NOTIONAL and r.qualifier == record.qualifier
        ]
        if len(notionals) > 1:
            raise SimmInvariantError(
                f"Expected either 0 or 1 elements for risk type {RiskType.NOTIONAL.value} "
                f"and qualifier {record.qualifier} but got {len(notionals)}"
            )
        if notionals:
            amount = notionals[0].amount_usd * record.amount / 100.0
            _add_on(results, ProductClass.ADD_ON_NOTIONAL_FACTOR, amount, quiet)
