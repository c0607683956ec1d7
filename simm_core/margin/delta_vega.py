"""
Delta, vega and base correlation margin for the bucketed risk classes.

Implements the two-level SIMM aggregation: weighted sensitivities are
aggregated within each bucket into K_b, then bucket margins are aggregated
across buckets with the inter-bucket correlation. The Residual bucket does
not diversify and is added on top.
"""

import logging
from collections import defaultdict

import numpy as np

from simm_core._types import MarginResult
from simm_core.config.simm_configuration import SimmConfiguration
from simm_core.margin.common import (
    SensitivityGroups,
    clamp,
    close_enough,
    concentration_factor,
    correlated_sum,
    cross_bucket_sum,
    pairwise_matrix,
)
from simm_core.model.records import SensitivityRecord
from simm_core.model.types import ALL_BUCKETS, RESIDUAL, RiskType

logger = logging.getLogger(__name__)

FX_RISK_TYPES = frozenset({RiskType.FX, RiskType.FX_VOL})


def margin(
    groups: SensitivityGroups,
    risk_type: RiskType,
    config: SimmConfiguration,
    calculation_currency: str,
    quiet: bool = False,
) -> MarginResult:
    """
    Delta or vega margin of one risk type within a product class.

    Parameters
    ----------
    groups : SensitivityGroups
        Net sensitivities of the product class
    risk_type : RiskType
        Delta, vega or base correlation risk type (not interest rate)
    config : SimmConfiguration
        Risk parameters
    calculation_currency : str
        SIMM calculation currency; Risk_FX sensitivities to it are ignored
    quiet : bool
        Suppress debug messages

    Returns
    -------
    MarginResult
        Margin per bucket (per qualifier for FX) and "All", and whether the
        risk type is present at all

    Notes
    -----
    Concentration risk per qualifier:

        CR_q = max(1, sqrt(|sum amountUsd * sigma * HVR| / T_q))

    Weighted sensitivity WS_k = RW_k * amountUsd * sigma * HVR * CR_q, and

        K_b = sqrt(sum WS_k^2 + sum_{k != l} rho_kl f_kl WS_k WS_l)
        IM = sqrt(sum K_b^2 + sum_{b != c} gamma_bc S_b S_c) + K_residual

    with f_kl = min(CR)/max(CR) and S_b = clamp(sum WS, -K_b, K_b).
    """
    buckets = groups.buckets(risk_type)
    if not buckets:
        return {ALL_BUCKETS: 0.0}, False

    is_fx = risk_type in FX_RISK_TYPES
    hvr = config.historical_volatility_ratio(risk_type)

    def excluded(record: SensitivityRecord) -> bool:
        return risk_type is RiskType.FX and record.qualifier == calculation_currency

    bucket_margin: dict[str, float] = {}
    sum_weighted: dict[str, float] = {}
    fx_margins: dict[str, float] = defaultdict(float)

    for bucket, by_qualifier in buckets.items():
        concentration: dict[str, float] = {}
        for qualifier, records in by_qualifier.items():
            if excluded(records[0]):
                if not quiet:
                    logger.debug(
                        "Skipping qualifier %s of risk type %s since it equals the "
                        "calculation currency",
                        qualifier,
                        risk_type.value,
                    )
                continue
            net = sum(
                r.amount_usd
                * config.sigma(risk_type, r.qualifier, r.label1, calculation_currency, bucket)
                * hvr
                for r in records
            )
            threshold = config.concentration_threshold(risk_type, qualifier, bucket)
            concentration[qualifier] = concentration_factor(net, threshold)

        records = [r for r in groups.bucket_records(risk_type, bucket) if not excluded(r)]
        weighted = np.array(
            [
                config.weight(risk_type, r.qualifier, r.label1, calculation_currency, bucket)
                * (
                    r.amount_usd
                    * config.sigma(risk_type, r.qualifier, r.label1, calculation_currency, bucket)
                    * hvr
                )
                * concentration[r.qualifier]
                for r in records
            ]
        )

        def intra_bucket(i: int, j: int) -> float:
            ri, rj = records[i], records[j]
            corr = config.correlation(
                risk_type, ri.qualifier, ri.label1, ri.label2,
                risk_type, rj.qualifier, rj.label1, rj.label2,
                calculation_currency, bucket, bucket,
            )
            cr_i, cr_j = concentration[ri.qualifier], concentration[rj.qualifier]
            return corr * min(cr_i, cr_j) / max(cr_i, cr_j)

        bucket_margin[bucket] = correlated_sum(
            weighted, pairwise_matrix(len(records), intra_bucket)
        )
        sum_weighted[bucket] = float(weighted.sum())

        if is_fx:
            for record, ws in zip(records, weighted):
                fx_margins[record.qualifier] += float(ws)

    residual_margin = bucket_margin.pop(RESIDUAL, 0.0)
    sum_weighted.pop(RESIDUAL, None)

    names = list(bucket_margin)
    k = np.array([bucket_margin[b] for b in names])
    s = np.array([clamp(sum_weighted[b], bucket_margin[b]) for b in names])

    def inter_bucket(i: int, j: int) -> float:
        # Any qualifier of each bucket identifies the bucket pair
        outer, inner = names[i], names[j]
        return config.correlation(
            risk_type, next(iter(buckets[outer])), "", "",
            risk_type, next(iter(buckets[inner])), "", "",
            calculation_currency, outer, inner,
        )

    gamma = pairwise_matrix(len(names), inter_bucket, diagonal=0.0)
    total = np.sqrt(max(cross_bucket_sum(k, s, gamma), 0.0)) + residual_margin

    margins: dict[str, float] = {}
    if is_fx:
        margins.update(fx_margins)
    if not close_enough(residual_margin, 0.0):
        margins[RESIDUAL] = residual_margin
    if is_fx:
        margins = {key: abs(value) for key, value in margins.items()}
    else:
        margins.update(bucket_margin)

    margins[ALL_BUCKETS] = float(total)
    return margins, True
