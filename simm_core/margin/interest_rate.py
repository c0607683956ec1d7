"""
Interest rate delta, vega and curvature margin.

For interest rate risk the currency (CRIF qualifier) plays the role of the
bucket. Within a currency the yield curve, inflation and cross currency
basis sensitivities are aggregated together into one K_b, and currencies
are then aggregated with the cross currency correlation.
"""

import math

import numpy as np

from simm_core._types import MarginResult
from simm_core.config.simm_configuration import SimmConfiguration
from simm_core.exceptions import SimmInvariantError
from simm_core.margin.common import (
    SensitivityGroups,
    clamp,
    close_enough,
    concentration_factor,
    correlated_sum,
    cross_bucket_sum,
    lambda_theta,
    pairwise_matrix,
)
from simm_core.model.records import SensitivityRecord
from simm_core.model.types import ALL_BUCKETS, RiskClass, RiskType, SimmSide


def _qualifiers(groups: SensitivityGroups, *risk_types: RiskType) -> list[str]:
    found: set[str] = set()
    for risk_type in risk_types:
        found.update(groups.qualifiers(risk_type))
    return sorted(found)


def _single(groups: SensitivityGroups, risk_type: RiskType, qualifier: str) -> SensitivityRecord | None:
    """The net record of a risk type for a currency; more than one is an error."""
    records = groups.records(risk_type, qualifier)
    if len(records) > 1:
        raise SimmInvariantError(
            f"Expected either 0 or 1 elements for risk type {risk_type.value} and "
            f"qualifier {qualifier} but got {len(records)}"
        )
    return records[0] if records else None


def _vol_group(records: list[SensitivityRecord]) -> str | None:
    """Volatility group (CRIF bucket) of a currency, if the records carry one."""
    for record in records:
        if record.bucket:
            return record.bucket
    return None


def _aggregate_currencies(
    qualifiers: list[str],
    currency_margins: dict[str, float],
    sum_weighted: dict[str, float],
    concentration: dict[str, float],
    risk_type: RiskType,
    config: SimmConfiguration,
    calculation_currency: str,
) -> float:
    """sqrt(sum K_b^2 + sum_{b != c} gamma_bc g_bc S_b S_c) across currencies."""
    k = np.array([currency_margins[q] for q in qualifiers])
    s = np.array([clamp(sum_weighted[q], currency_margins[q]) for q in qualifiers])

    def cross_currency(i: int, j: int) -> float:
        qi, qj = qualifiers[i], qualifiers[j]
        g = min(concentration[qi], concentration[qj]) / max(concentration[qi], concentration[qj])
        corr = config.correlation(
            risk_type, qi, "", "", risk_type, qj, "", "", calculation_currency
        )
        return corr * g

    gamma = pairwise_matrix(len(qualifiers), cross_currency, diagonal=0.0)
    return math.sqrt(max(cross_bucket_sum(k, s, gamma), 0.0))


def ir_delta_margin(
    groups: SensitivityGroups,
    config: SimmConfiguration,
    calculation_currency: str,
) -> MarginResult:
    """
    Interest rate delta margin of a product class.

    Parameters
    ----------
    groups : SensitivityGroups
        Net sensitivities of the product class
    config : SimmConfiguration
        Risk parameters
    calculation_currency : str
        SIMM calculation currency

    Returns
    -------
    MarginResult
        K_b per currency and "All"; not applicable without any Risk_IRCurve,
        Risk_Inflation or Risk_XCcyBasis sensitivity

    Raises
    ------
    SimmInvariantError
        If a currency has more than one net Risk_Inflation or
        Risk_XCcyBasis record

    Notes
    -----
    The concentration risk of a currency uses the yield curve and inflation
    amounts with the yield curve threshold. Cross currency basis is neither
    part of it nor scaled by it.
    """
    qualifiers = _qualifiers(groups, RiskType.IR_CURVE, RiskType.XCCY_BASIS, RiskType.INFLATION)
    if not qualifiers:
        return {ALL_BUCKETS: 0.0}, False

    concentration: dict[str, float] = {}
    currency_margins: dict[str, float] = {}
    sum_weighted: dict[str, float] = {}

    for qualifier in qualifiers:
        curve = groups.records(RiskType.IR_CURVE, qualifier)
        xccy = _single(groups, RiskType.XCCY_BASIS, qualifier)
        inflation = _single(groups, RiskType.INFLATION, qualifier)
        vol_group = _vol_group(curve)

        net = sum(r.amount_usd for r in curve)
        if inflation is not None:
            net += inflation.amount_usd
        cr = concentration_factor(
            net, config.concentration_threshold(RiskType.IR_CURVE, qualifier, vol_group)
        )
        concentration[qualifier] = cr

        weighted = [
            config.weight(RiskType.IR_CURVE, qualifier, r.label1, calculation_currency, r.bucket or None)
            * r.amount_usd
            * cr
            for r in curve
        ]

        def curve_correlation(i: int, j: int) -> float:
            ri, rj = curve[i], curve[j]
            sub_curve = config.correlation(
                RiskType.IR_CURVE, qualifier, "", ri.label2,
                RiskType.IR_CURVE, qualifier, "", rj.label2,
            )
            tenor = config.correlation(
                RiskType.IR_CURVE, qualifier, ri.label1, "",
                RiskType.IR_CURVE, qualifier, rj.label1, "",
            )
            return sub_curve * tenor

        n_curve = len(curve)
        extras: list[RiskType] = []
        if inflation is not None:
            weighted.append(
                config.weight(RiskType.INFLATION, qualifier, inflation.label1, calculation_currency, inflation.bucket or None)
                * inflation.amount_usd
                * cr
            )
            extras.append(RiskType.INFLATION)
        if xccy is not None:
            weighted.append(
                config.weight(RiskType.XCCY_BASIS, qualifier, xccy.label1, calculation_currency, xccy.bucket or None)
                * xccy.amount_usd
            )
            extras.append(RiskType.XCCY_BASIS)

        def correlation(i: int, j: int) -> float:
            if i < n_curve:
                return curve_correlation(i, j)
            # Inflation and cross currency basis against curve tenors and each other
            rt_i = extras[i - n_curve]
            rt_j = RiskType.IR_CURVE if j < n_curve else extras[j - n_curve]
            return config.correlation(rt_j, qualifier, "", "", rt_i, qualifier, "", "")

        ws = np.array(weighted)
        currency_margins[qualifier] = correlated_sum(ws, pairwise_matrix(len(weighted), correlation))
        sum_weighted[qualifier] = float(ws.sum())

    total = _aggregate_currencies(
        qualifiers, currency_margins, sum_weighted, concentration,
        RiskType.IR_CURVE, config, calculation_currency,
    )
    margins = dict(currency_margins)
    margins[ALL_BUCKETS] = total
    return margins, True


def ir_vega_margin(
    groups: SensitivityGroups,
    config: SimmConfiguration,
    calculation_currency: str,
) -> MarginResult:
    """
    Interest rate vega margin of a product class.

    Risk_IRVol and Risk_InflationVol sensitivities of a currency share one
    concentration risk factor, computed with the Risk_IRVol threshold.

    Returns
    -------
    MarginResult
        K_b per currency and "All"
    """
    qualifiers = _qualifiers(groups, RiskType.IR_VOL, RiskType.INFLATION_VOL)
    if not qualifiers:
        return {ALL_BUCKETS: 0.0}, False

    concentration: dict[str, float] = {}
    currency_margins: dict[str, float] = {}
    sum_weighted: dict[str, float] = {}

    for qualifier in qualifiers:
        vol = groups.records(RiskType.IR_VOL, qualifier)
        inflation_vol = groups.records(RiskType.INFLATION_VOL, qualifier)
        records = vol + inflation_vol

        net = sum(r.amount_usd for r in records)
        cr = concentration_factor(
            net, config.concentration_threshold(RiskType.IR_VOL, qualifier, _vol_group(records))
        )
        concentration[qualifier] = cr

        ws = np.array(
            [
                config.weight(r.risk_type, qualifier, r.label1, calculation_currency, r.bucket or None)
                * r.amount_usd
                * cr
                for r in records
            ]
        )

        def correlation(i: int, j: int) -> float:
            ri, rj = records[i], records[j]
            return config.correlation(
                ri.risk_type, qualifier, ri.label1, "", rj.risk_type, qualifier, rj.label1, ""
            )

        currency_margins[qualifier] = correlated_sum(ws, pairwise_matrix(len(records), correlation))
        sum_weighted[qualifier] = float(ws.sum())

    total = _aggregate_currencies(
        qualifiers, currency_margins, sum_weighted, concentration,
        RiskType.IR_VOL, config, calculation_currency,
    )
    margins = dict(currency_margins)
    margins[ALL_BUCKETS] = total
    return margins, True


def ir_curvature_margin(
    groups: SensitivityGroups,
    config: SimmConfiguration,
    side: SimmSide,
) -> MarginResult:
    """
    Interest rate curvature margin of a product class.

    Parameters
    ----------
    groups : SensitivityGroups
        Net sensitivities of the product class
    config : SimmConfiguration
        Risk parameters
    side : SimmSide
        Post side curvature sensitivities are sign flipped

    Returns
    -------
    MarginResult
        K_b per currency and the scaled total under "All"

    Notes
    -----
    CVR_k = SF(label1) * amountUsd * m with m = +1 (Call) or -1 (Post).
    Correlations enter squared. Risk_InflationVol sensitivities of a
    currency are summed into a single term (SIMM versions after 1.0).

        theta = min(sum CVR / sum |CVR|, 0)
        IM = scaling * max(sum CVR + lambda(theta) * sqrt(sum K_b^2
             + sum_{b != c} gamma_bc^2 S_b S_c), 0)
    """
    qualifiers = _qualifiers(groups, RiskType.IR_VOL, RiskType.INFLATION_VOL)
    if not qualifiers:
        return {ALL_BUCKETS: 0.0}, False

    multiplier = side.curvature_multiplier
    with_inflation = config.version_tuple > (1, 0)

    currency_margins: dict[str, float] = {}
    sum_weighted: dict[str, float] = {}
    sum_ws = 0.0
    sum_abs_ws = 0.0

    for qualifier in qualifiers:
        vol = groups.records(RiskType.IR_VOL, qualifier)
        cvr = [
            config.curvature_weight(RiskType.IR_VOL, r.label1) * (r.amount_usd * multiplier)
            for r in vol
        ]
        sum_ws += sum(cvr)
        sum_abs_ws += sum(abs(v) for v in cvr)

        inflation_vol = groups.records(RiskType.INFLATION_VOL, qualifier)
        has_inflation = with_inflation and bool(inflation_vol)
        if has_inflation:
            inflation_cvr = sum(
                config.curvature_weight(RiskType.INFLATION_VOL, r.label1) * (r.amount_usd * multiplier)
                for r in inflation_vol
            )
            cvr.append(inflation_cvr)
            sum_ws += inflation_cvr
            sum_abs_ws += abs(inflation_cvr)

        n_vol = len(vol)

        def correlation(i: int, j: int) -> float:
            if i < n_vol:
                corr = config.correlation(
                    RiskType.IR_VOL, qualifier, vol[i].label1, "",
                    RiskType.IR_VOL, qualifier, vol[j].label1, "",
                )
            else:
                corr = config.correlation(
                    RiskType.INFLATION_VOL, qualifier, "", "",
                    RiskType.IR_VOL, qualifier, vol[j].label1, "",
                )
            return corr * corr

        ws = np.array(cvr)
        currency_margins[qualifier] = correlated_sum(ws, pairwise_matrix(len(cvr), correlation))
        sum_weighted[qualifier] = float(ws.sum())

    if close_enough(sum_abs_ws, 0.0):
        return {ALL_BUCKETS: 0.0}, True

    theta = min(sum_ws / sum_abs_ws, 0.0)

    k = np.array([currency_margins[q] for q in qualifiers])
    s = np.array([clamp(sum_weighted[q], currency_margins[q]) for q in qualifiers])

    def cross_currency(i: int, j: int) -> float:
        corr = config.correlation(
            RiskType.IR_VOL, qualifiers[i], "", "", RiskType.IR_VOL, qualifiers[j], "", ""
        )
        return corr * corr

    gamma = pairwise_matrix(len(qualifiers), cross_currency, diagonal=0.0)
    total = sum_ws + lambda_theta(theta) * math.sqrt(max(cross_bucket_sum(k, s, gamma), 0.0))

    margins = dict(currency_margins)
    margins[ALL_BUCKETS] = config.curvature_margin_scaling(RiskClass.INTEREST_RATE) * max(total, 0.0)
    return margins, True
