"""
SIMM risk parameter lookup.

:class:`SimmConfiguration` is the read-only interface every margin
calculator queries for weights, correlations and thresholds. It is passed
explicitly to the calculators; there is no global parameter state.

:class:`TableSimmConfiguration` implements it on top of the validated
:class:`~simm_core.config.models.SimmParameters` tables.
"""

import math
import re
from abc import ABC, abstractmethod

from scipy.stats import norm

from simm_core.config.models import SimmParameters
from simm_core.exceptions import SimmConfigurationError
from simm_core.model.types import (
    SIMM_PARAMETER_RISK_TYPES,
    MarginType,
    ProductClass,
    RiskClass,
    RiskType,
    parse_simm_version,
)

# Delta risk type whose weight drives the vega sigma of a volatility risk type
_VEGA_TO_DELTA = {
    RiskType.EQUITY_VOL: RiskType.EQUITY,
    RiskType.COMMODITY_VOL: RiskType.COMMODITY,
    RiskType.FX_VOL: RiskType.FX,
}

_TENOR_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)([dwmy])$", re.IGNORECASE)
_DAYS_PER_UNIT = {"d": 1.0, "w": 7.0, "m": 365.0 / 12.0, "y": 365.0}


def tenor_to_days(tenor: str) -> float:
    """
    Convert a CRIF tenor label to a number of calendar days.

    Parameters
    ----------
    tenor : str
        Tenor such as "2w", "3m" or "10y"

    Returns
    -------
    float
        Tenor length in days

    Example
    -------
    >>> tenor_to_days("1y")
    365.0
    """
    match = _TENOR_PATTERN.match(tenor.strip())
    if match is None:
        raise SimmConfigurationError(f"Cannot interpret tenor label {tenor!r}")
    return float(match.group(1)) * _DAYS_PER_UNIT[match.group(2).lower()]


class SimmConfiguration(ABC):
    """
    Interface of a versioned SIMM risk parameter set.

    Where a method accepts ``bucket`` arguments, the caller passes the SIMM
    bucket of the sensitivity when it knows it; implementations may fall
    back to their own qualifier to bucket mapping.
    """

    @property
    @abstractmethod
    def version(self) -> str:
        """SIMM version string."""

    @abstractmethod
    def weight(
        self,
        risk_type: RiskType,
        qualifier: str,
        label1: str,
        calculation_currency: str = "",
        bucket: str | None = None,
    ) -> float:
        """Risk weight of a sensitivity."""

    @abstractmethod
    def correlation(
        self,
        risk_type_1: RiskType,
        qualifier_1: str,
        label1_1: str,
        label2_1: str,
        risk_type_2: RiskType,
        qualifier_2: str,
        label1_2: str,
        label2_2: str,
        calculation_currency: str = "",
        bucket_1: str | None = None,
        bucket_2: str | None = None,
    ) -> float:
        """Correlation between two sensitivities, in [-1, 1]."""

    @abstractmethod
    def concentration_threshold(
        self, risk_type: RiskType, qualifier: str, bucket: str | None = None
    ) -> float:
        """Concentration threshold in USD (``math.inf`` if none applies)."""

    @abstractmethod
    def curvature_weight(self, risk_type: RiskType, label1: str) -> float:
        """Curvature scaling weight SF(label1)."""

    @abstractmethod
    def sigma(
        self,
        risk_type: RiskType,
        qualifier: str,
        label1: str,
        calculation_currency: str = "",
        bucket: str | None = None,
    ) -> float:
        """Vega to delta conversion factor, 1.0 where not applicable."""

    @abstractmethod
    def historical_volatility_ratio(self, risk_type: RiskType) -> float:
        """Historical volatility ratio, 1.0 where not applicable."""

    @abstractmethod
    def correlation_risk_classes(self, risk_class_1: RiskClass, risk_class_2: RiskClass) -> float:
        """Correlation between two risk classes (psi)."""

    def curvature_margin_scaling(self, risk_class: RiskClass) -> float:
        """Scaling applied to the total curvature margin of a risk class."""
        return 1.0

    def bucket(self, risk_type: RiskType, qualifier: str) -> str | None:
        """SIMM bucket of a qualifier, None if unknown."""
        return None

    def is_valid_risk_type(self, risk_type: RiskType) -> bool:
        """Whether the risk type is part of this SIMM version."""
        return True

    def product_classes(self) -> list[ProductClass]:
        """Product classes to aggregate over (without 'All')."""
        return [
            ProductClass.RATES_FX,
            ProductClass.CREDIT,
            ProductClass.EQUITY,
            ProductClass.COMMODITY,
        ]

    def risk_classes(self) -> list[RiskClass]:
        """Risk classes to aggregate over (without 'All')."""
        return [rc for rc in RiskClass if rc is not RiskClass.ALL]

    def margin_types(self) -> list[MarginType]:
        """Margin types to aggregate over (without 'All')."""
        return [mt for mt in MarginType if mt is not MarginType.ALL]

    @property
    def version_tuple(self) -> tuple[int, ...]:
        """Version as a comparable tuple."""
        return parse_simm_version(self.version)


class TableSimmConfiguration(SimmConfiguration):
    """
    Table driven SIMM configuration.

    Parameters
    ----------
    parameters : SimmParameters
        Validated parameter tables

    Example
    -------
    >>> params = load_simm_parameters("data/simm_parameters.yaml")
    >>> config = TableSimmConfiguration(params)
    >>> config.weight(RiskType.IR_CURVE, "USD", "10y", bucket="1")
    """

    def __init__(self, parameters: SimmParameters) -> None:
        self._parameters = parameters
        self._sigma_multiplier = (
            parameters.sigma_multiplier
            if parameters.sigma_multiplier is not None
            else math.sqrt(365.0 / 14.0) / norm.ppf(0.99)
        )
        self._risk_type_correlations: dict[frozenset[RiskType], float] = {}
        for entry in parameters.risk_type_correlations:
            key = frozenset((entry.risk_type_1, entry.risk_type_2))
            self._risk_type_correlations[key] = entry.value

    @property
    def parameters(self) -> SimmParameters:
        """Underlying parameter tables."""
        return self._parameters

    @property
    def version(self) -> str:
        return self._parameters.version

    def bucket(self, risk_type: RiskType, qualifier: str) -> str | None:
        risk_class = risk_type.risk_class
        if risk_class is None:
            return None
        return self._parameters.bucket_mappings.get(risk_class, {}).get(qualifier)

    def _resolve_bucket(self, risk_type: RiskType, qualifier: str, bucket: str | None) -> str | None:
        if bucket:
            return bucket
        return self.bucket(risk_type, qualifier)

    def weight(
        self,
        risk_type: RiskType,
        qualifier: str,
        label1: str,
        calculation_currency: str = "",
        bucket: str | None = None,
    ) -> float:
        table = self._parameters.risk_weights.get(risk_type)
        if table is None:
            raise SimmConfigurationError(
                f"No risk weights configured for risk type {risk_type.value} "
                f"in SIMM version {self.version}"
            )
        value = table.lookup(qualifier, self._resolve_bucket(risk_type, qualifier, bucket), label1)
        if value is None:
            raise SimmConfigurationError(
                f"No risk weight for risk type {risk_type.value}, qualifier "
                f"{qualifier!r}, label1 {label1!r}"
            )
        return value

    def correlation(
        self,
        risk_type_1: RiskType,
        qualifier_1: str,
        label1_1: str,
        label2_1: str,
        risk_type_2: RiskType,
        qualifier_2: str,
        label1_2: str,
        label2_2: str,
        calculation_currency: str = "",
        bucket_1: str | None = None,
        bucket_2: str | None = None,
    ) -> float:
        # Different risk types are only correlated on the same qualifier
        if risk_type_1 is not risk_type_2:
            key = frozenset((risk_type_1, risk_type_2))
            if key not in self._risk_type_correlations:
                raise SimmConfigurationError(
                    f"No correlation configured between risk types "
                    f"{risk_type_1.value} and {risk_type_2.value}"
                )
            return self._risk_type_correlations[key]

        table = self._parameters.correlations.get(risk_type_1)
        if table is None:
            raise SimmConfigurationError(
                f"No correlations configured for risk type {risk_type_1.value}"
            )

        if qualifier_1 == qualifier_2:
            corr = 1.0
            if label1_1.lower() != label1_2.lower():
                tenor_corr = table.label1.value(label1_1, label1_2) if table.label1 else None
                corr *= table.label1_default if tenor_corr is None else tenor_corr
            if label2_1 != label2_2:
                corr *= table.label2_different
            return corr

        b1 = self._resolve_bucket(risk_type_1, qualifier_1, bucket_1)
        b2 = self._resolve_bucket(risk_type_2, qualifier_2, bucket_2)
        if b1 == b2:
            if b1 is not None and b1 in table.different_qualifier_by_bucket:
                return table.different_qualifier_by_bucket[b1]
            return table.different_qualifier

        if table.inter_bucket_matrix is not None and b1 is not None and b2 is not None:
            value = table.inter_bucket_matrix.value(b1, b2)
            if value is not None:
                return value
        return table.inter_bucket

    def concentration_threshold(
        self, risk_type: RiskType, qualifier: str, bucket: str | None = None
    ) -> float:
        table = self._parameters.concentration_thresholds.get(risk_type)
        if table is None:
            return math.inf
        value = table.lookup(qualifier, self._resolve_bucket(risk_type, qualifier, bucket), "")
        if value is None:
            return math.inf
        if value <= 0:
            raise SimmConfigurationError(
                f"Concentration threshold for {risk_type.value}/{qualifier} must be "
                f"positive, got {value}"
            )
        return value

    def curvature_weight(self, risk_type: RiskType, label1: str) -> float:
        overrides = self._parameters.curvature_weights.get(risk_type, {})
        if label1.lower() in overrides:
            return overrides[label1.lower()]
        return 0.5 * min(1.0, 14.0 / tenor_to_days(label1))

    def sigma(
        self,
        risk_type: RiskType,
        qualifier: str,
        label1: str,
        calculation_currency: str = "",
        bucket: str | None = None,
    ) -> float:
        delta_risk_type = _VEGA_TO_DELTA.get(risk_type)
        if delta_risk_type is None:
            return 1.0
        rw = self.weight(delta_risk_type, qualifier, "", calculation_currency, bucket)
        return rw * self._sigma_multiplier

    def historical_volatility_ratio(self, risk_type: RiskType) -> float:
        return self._parameters.historical_volatility_ratios.get(risk_type, 1.0)

    def correlation_risk_classes(self, risk_class_1: RiskClass, risk_class_2: RiskClass) -> float:
        if risk_class_1 is risk_class_2:
            return 1.0
        matrix = self._parameters.risk_class_correlations
        value = matrix.value(risk_class_1.value, risk_class_2.value) if matrix else None
        if value is None:
            raise SimmConfigurationError(
                f"No correlation configured between risk classes "
                f"{risk_class_1.value} and {risk_class_2.value}"
            )
        return value

    def curvature_margin_scaling(self, risk_class: RiskClass) -> float:
        return self._parameters.curvature_margin_scaling.get(risk_class, 1.0)

    def is_valid_risk_type(self, risk_type: RiskType) -> bool:
        return (
            risk_type in self._parameters.risk_weights
            or risk_type in SIMM_PARAMETER_RISK_TYPES
            or risk_type is RiskType.NOTIONAL
        )

    def product_classes(self) -> list[ProductClass]:
        return list(self._parameters.product_classes)

    def risk_classes(self) -> list[RiskClass]:
        return list(self._parameters.risk_classes)

    def margin_types(self) -> list[MarginType]:
        return list(self._parameters.margin_types)
