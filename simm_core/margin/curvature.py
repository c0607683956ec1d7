"""
Curvature margin for the non interest rate risk classes.
"""

import math
from collections import defaultdict

import numpy as np

from simm_core._types import MarginResult
from simm_core.config.simm_configuration import SimmConfiguration
from simm_core.margin.common import (
    SensitivityGroups,
    clamp,
    close_enough,
    correlated_sum,
    cross_bucket_sum,
    lambda_theta,
    pairwise_matrix,
)
from simm_core.margin.delta_vega import FX_RISK_TYPES
from simm_core.model.types import ALL_BUCKETS, RESIDUAL, RiskType, SimmSide


# Equity volatility bucket without curvature risk from SIMM 2.2 on
_EQUITY_INDEX_VOL_BUCKET = "12"


def curvature_margin(
    groups: SensitivityGroups,
    risk_type: RiskType,
    config: SimmConfiguration,
    calculation_currency: str,
    side: SimmSide,
    rf_labels: bool = True,
) -> MarginResult:
    """
    Curvature margin of one volatility risk type within a product class.

    Parameters
    ----------
    groups : SensitivityGroups
        Net sensitivities of the product class
    risk_type : RiskType
        One of Risk_FXVol, Risk_CreditVol, Risk_CreditVolNonQ,
        Risk_EquityVol, Risk_CommodityVol
    config : SimmConfiguration
        Risk parameters
    calculation_currency : str
        SIMM calculation currency
    side : SimmSide
        Post side curvature sensitivities are sign flipped
    rf_labels : bool
        If True, the absolute curvature sum of a bucket adds |CVR| of every
        risk factor row; otherwise CVRs are netted per qualifier first

    Returns
    -------
    MarginResult
        Margin per bucket (per qualifier for FX) and the scaled total under
        "All"

    Notes
    -----
    CVR_k = SF(label1) * ((amountUsd * m) * sigma) with m = +1 (Call) or
    -1 (Post). Non residual buckets are aggregated as

        theta = min(sum CVR / sum |CVR|, 0)
        IM = max(sum CVR + lambda(theta) * sqrt(sum K_b^2
             + sum_{b != c} gamma_bc^2 S_b S_c), 0)

    and the Residual bucket, with its own theta, adds
    max(sum CVR_res + lambda(theta_res) * K_res, 0).
    """
    buckets = groups.buckets(risk_type)
    if not buckets:
        return {ALL_BUCKETS: 0.0}, False

    is_fx = risk_type in FX_RISK_TYPES
    multiplier = side.curvature_multiplier
    zero_index_vol = config.version_tuple >= (2, 2) and risk_type is RiskType.EQUITY_VOL

    bucket_margin: dict[str, float] = {}
    sum_weighted: dict[str, float] = {}
    sum_abs_weighted: dict[str, float] = {}
    fx_margins: dict[str, float] = defaultdict(float)

    for bucket in buckets:
        records = groups.bucket_records(risk_type, bucket)
        cvr = []
        for r in records:
            sf = config.curvature_weight(risk_type, r.label1)
            sigma = config.sigma(risk_type, r.qualifier, r.label1, calculation_currency, bucket)
            value = sf * ((r.amount_usd * multiplier) * sigma)
            if zero_index_vol and bucket == _EQUITY_INDEX_VOL_BUCKET:
                value = 0.0
            cvr.append(value)

        by_qualifier: dict[str, float] = defaultdict(float)
        for r, value in zip(records, cvr):
            by_qualifier[r.qualifier] += abs(value) if rf_labels else value
            if is_fx:
                fx_margins[r.qualifier] += value

        def intra_bucket(i: int, j: int) -> float:
            ri, rj = records[i], records[j]
            corr = config.correlation(
                risk_type, ri.qualifier, ri.label1, ri.label2,
                risk_type, rj.qualifier, rj.label1, rj.label2,
                calculation_currency, bucket, bucket,
            )
            return corr * corr

        ws = np.array(cvr)
        bucket_margin[bucket] = correlated_sum(ws, pairwise_matrix(len(records), intra_bucket))
        sum_weighted[bucket] = float(ws.sum())
        sum_abs_weighted[bucket] = sum(abs(v) for v in by_qualifier.values())

    residual_margin = bucket_margin.pop(RESIDUAL, 0.0)
    residual_sum = sum_weighted.pop(RESIDUAL, 0.0)
    residual_abs_sum = sum_abs_weighted.pop(RESIDUAL, 0.0)

    total = 0.0
    sum_cvr = sum(sum_weighted.values())
    sum_abs_cvr = sum(sum_abs_weighted.values())
    if not close_enough(sum_abs_cvr, 0.0):
        theta = min(sum_cvr / sum_abs_cvr, 0.0)
        names = list(bucket_margin)
        k = np.array([bucket_margin[b] for b in names])
        s = np.array([clamp(sum_weighted[b], bucket_margin[b]) for b in names])

        def inter_bucket(i: int, j: int) -> float:
            outer, inner = names[i], names[j]
            corr = config.correlation(
                risk_type, next(iter(buckets[outer])), "", "",
                risk_type, next(iter(buckets[inner])), "", "",
                calculation_currency, outer, inner,
            )
            return corr * corr

        gamma = pairwise_matrix(len(names), inter_bucket, diagonal=0.0)
        total = max(
            sum_cvr + lambda_theta(theta) * math.sqrt(max(cross_bucket_sum(k, s, gamma), 0.0)),
            0.0,
        )

    if not close_enough(residual_abs_sum, 0.0):
        theta = min(residual_sum / residual_abs_sum, 0.0)
        bucket_margin[RESIDUAL] = max(residual_sum + lambda_theta(theta) * residual_margin, 0.0)
        total += bucket_margin[RESIDUAL]

    if is_fx:
        margins = {key: abs(value) for key, value in fx_margins.items()}
    else:
        margins = dict(bucket_margin)

    margins[ALL_BUCKETS] = config.curvature_margin_scaling(risk_type.risk_class) * total
    return margins, True
