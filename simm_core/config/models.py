"""
Pydantic configuration models for the SIMM calculation engine.

These models provide validation and type-safe configuration for:
- SIMM risk parameters (weights, correlations, thresholds, ...)
- Calculator settings (currencies, regulation handling, parallelism)
"""

import math
import warnings

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from simm_core.model.types import (
    REGULATIONS,
    MarginType,
    ProductClass,
    RiskClass,
    RiskType,
    parse_simm_version,
)


def _lower_keys(values: dict[str, float]) -> dict[str, float]:
    return {key.lower(): value for key, value in values.items()}


class ParameterTable(BaseModel):
    """
    Lookup table for a scalar SIMM parameter of one risk type.

    Lookups are tried from most to least specific: qualifier, bucket and
    label1, bucket, label1, default. Label keys are case-insensitive.

    Attributes
    ----------
    default : float | None
        Value used when nothing more specific matches
    by_qualifier : dict[str, float]
        Values per qualifier (e.g. per currency)
    by_bucket_label1 : dict[str, dict[str, float]]
        Values per bucket and label1 (e.g. IR weights per volatility
        group and tenor)
    by_bucket : dict[str, float]
        Values per bucket
    by_label1 : dict[str, float]
        Values per label1 (e.g. per tenor)

    Example
    -------
    >>> table = ParameterTable(default=50.0, by_label1={"10y": 57.0})
    >>> table.lookup("USD", None, "10Y")
    57.0
    """

    default: float | None = None
    by_qualifier: dict[str, float] = Field(default_factory=dict)
    by_bucket_label1: dict[str, dict[str, float]] = Field(default_factory=dict)
    by_bucket: dict[str, float] = Field(default_factory=dict)
    by_label1: dict[str, float] = Field(default_factory=dict)

    @field_validator("by_label1")
    @classmethod
    def normalise_label1(cls, v: dict[str, float]) -> dict[str, float]:
        """Store label1 keys in lower case."""
        return _lower_keys(v)

    @field_validator("by_bucket_label1")
    @classmethod
    def normalise_bucket_label1(
        cls, v: dict[str, dict[str, float]]
    ) -> dict[str, dict[str, float]]:
        """Store label1 keys in lower case."""
        return {bucket: _lower_keys(values) for bucket, values in v.items()}

    def lookup(self, qualifier: str, bucket: str | None, label1: str) -> float | None:
        """
        Return the most specific value, or None if nothing matches.

        Parameters
        ----------
        qualifier : str
            Risk factor qualifier
        bucket : str | None
            SIMM bucket, if known
        label1 : str
            First label (tenor)
        """
        if qualifier in self.by_qualifier:
            return self.by_qualifier[qualifier]
        label = label1.lower()
        if bucket is not None:
            if label in self.by_bucket_label1.get(bucket, {}):
                return self.by_bucket_label1[bucket][label]
            if bucket in self.by_bucket:
                return self.by_bucket[bucket]
        if label in self.by_label1:
            return self.by_label1[label]
        return self.default


class LabelMatrix(BaseModel):
    """
    Symmetric correlation matrix indexed by labels.

    Attributes
    ----------
    labels : list[str]
        Row/column labels (case-insensitive)
    matrix : list[list[float]]
        Correlation values in [-1, 1]
    """

    labels: list[str]
    matrix: list[list[float]]

    @model_validator(mode="after")
    def validate_matrix(self) -> "LabelMatrix":
        """Check shape, symmetry and range; warn if not positive semi-definite."""
        n = len(self.labels)
        if len({label.lower() for label in self.labels}) != n:
            raise ValueError(f"Duplicate labels in correlation matrix: {self.labels}")
        if len(self.matrix) != n or any(len(row) != n for row in self.matrix):
            raise ValueError(f"Correlation matrix must be {n}x{n} to match its labels")

        corr_matrix = np.array(self.matrix, dtype=float)
        if np.any(np.abs(corr_matrix) > 1.0):
            raise ValueError("Correlations must be in [-1, 1]")
        if not np.allclose(corr_matrix, corr_matrix.T):
            raise ValueError("Correlation matrix must be symmetric")

        eigenvalues = np.linalg.eigvalsh(corr_matrix)
        if np.any(eigenvalues < -1e-10):
            warnings.warn(
                f"Correlation matrix over {self.labels} is not positive "
                f"semi-definite. Eigenvalues: {eigenvalues}",
                UserWarning,
                stacklevel=2,
            )
        return self

    def value(self, label_a: str, label_b: str) -> float | None:
        """Correlation between two labels, None if either is unknown."""
        index = {label.lower(): i for i, label in enumerate(self.labels)}
        i = index.get(label_a.lower())
        j = index.get(label_b.lower())
        if i is None or j is None:
            return None
        return self.matrix[i][j]


class CorrelationTable(BaseModel):
    """
    Correlations between sensitivities of one risk type.

    Attributes
    ----------
    label1 : LabelMatrix | None
        Correlation between label1 values (tenors) on the same qualifier
    label1_default : float
        Same qualifier, different label1, when no matrix entry exists
    label2_different : float
        Same qualifier, different label2 (e.g. sub curve)
    different_qualifier : float
        Different qualifiers in the same bucket
    different_qualifier_by_bucket : dict[str, float]
        Bucket-specific overrides of ``different_qualifier``
    inter_bucket : float
        Correlation between buckets when no matrix entry exists
    inter_bucket_matrix : LabelMatrix | None
        Correlation between buckets, indexed by bucket
    """

    label1: LabelMatrix | None = None
    label1_default: float = Field(ge=-1, le=1, default=1.0)
    label2_different: float = Field(ge=-1, le=1, default=1.0)
    different_qualifier: float = Field(ge=-1, le=1, default=1.0)
    different_qualifier_by_bucket: dict[str, float] = Field(default_factory=dict)
    inter_bucket: float = Field(ge=-1, le=1, default=0.0)
    inter_bucket_matrix: LabelMatrix | None = None

    @field_validator("different_qualifier_by_bucket")
    @classmethod
    def in_range(cls, v: dict[str, float]) -> dict[str, float]:
        """Validate bucket correlations are in [-1, 1]."""
        for bucket, value in v.items():
            if not -1 <= value <= 1:
                raise ValueError(f"Correlation for bucket {bucket} must be in [-1, 1], got {value}")
        return v


class RiskTypeCorrelation(BaseModel):
    """Correlation between two different risk types on the same qualifier."""

    risk_type_1: RiskType
    risk_type_2: RiskType
    value: float = Field(ge=-1, le=1)


class SimmParameters(BaseModel):
    """
    Complete, versioned set of SIMM risk parameters.

    Attributes
    ----------
    version : str
        SIMM version, e.g. "2.6"
    risk_weights : dict[RiskType, ParameterTable]
        Risk weights per risk type
    concentration_thresholds : dict[RiskType, ParameterTable]
        Concentration thresholds in USD; missing means no threshold
    correlations : dict[RiskType, CorrelationTable]
        Intra risk type correlations
    risk_type_correlations : list[RiskTypeCorrelation]
        Correlations between risk types on the same qualifier
        (e.g. IRCurve vs. Inflation)
    risk_class_correlations : LabelMatrix | None
        Correlation between risk classes (psi), indexed by risk class
    historical_volatility_ratios : dict[RiskType, float]
        HVR per risk type, 1.0 when absent
    curvature_weights : dict[RiskType, dict[str, float]]
        Explicit curvature weights per label1, overriding the
        0.5 * min(1, 14 / days) scaling function
    curvature_margin_scaling : dict[RiskClass, float]
        Scaling applied to the curvature margin per risk class
    bucket_mappings : dict[RiskClass, dict[str, str]]
        Qualifier to bucket mapping per risk class
    sigma_multiplier : float | None
        Vega to delta conversion multiplier; defaults to
        sqrt(365 / 14) / Phi^-1(0.99)
    product_classes, risk_classes, margin_types : list
        Enumerations used when aggregating results
    """

    version: str = "2.6"
    risk_weights: dict[RiskType, ParameterTable]
    concentration_thresholds: dict[RiskType, ParameterTable] = Field(default_factory=dict)
    correlations: dict[RiskType, CorrelationTable] = Field(default_factory=dict)
    risk_type_correlations: list[RiskTypeCorrelation] = Field(default_factory=list)
    risk_class_correlations: LabelMatrix | None = None
    historical_volatility_ratios: dict[RiskType, float] = Field(default_factory=dict)
    curvature_weights: dict[RiskType, dict[str, float]] = Field(default_factory=dict)
    curvature_margin_scaling: dict[RiskClass, float] = Field(default_factory=dict)
    bucket_mappings: dict[RiskClass, dict[str, str]] = Field(default_factory=dict)
    sigma_multiplier: float | None = Field(default=None, gt=0)
    product_classes: list[ProductClass] = Field(
        default_factory=lambda: [
            ProductClass.RATES_FX,
            ProductClass.CREDIT,
            ProductClass.EQUITY,
            ProductClass.COMMODITY,
        ]
    )
    risk_classes: list[RiskClass] = Field(
        default_factory=lambda: [rc for rc in RiskClass if rc is not RiskClass.ALL]
    )
    margin_types: list[MarginType] = Field(
        default_factory=lambda: [mt for mt in MarginType if mt is not MarginType.ALL]
    )

    @field_validator("version")
    @classmethod
    def version_parses(cls, v: str) -> str:
        """Validate the version string is understood."""
        parse_simm_version(v)
        return v

    @field_validator("curvature_weights")
    @classmethod
    def normalise_curvature_labels(
        cls, v: dict[RiskType, dict[str, float]]
    ) -> dict[RiskType, dict[str, float]]:
        """Store curvature weight labels in lower case."""
        return {rt: _lower_keys(values) for rt, values in v.items()}

    @field_validator("historical_volatility_ratios", "curvature_margin_scaling")
    @classmethod
    def positive_values(cls, v: dict) -> dict:
        """Ratios and scalings must be positive and finite."""
        for key, value in v.items():
            if not (value > 0 and math.isfinite(value)):
                raise ValueError(f"Value for {key} must be positive, got {value}")
        return v

    @field_validator("product_classes")
    @classmethod
    def no_aggregate_product_class(cls, v: list[ProductClass]) -> list[ProductClass]:
        """The aggregate 'All' is not a product class of its own."""
        if ProductClass.ALL in v:
            raise ValueError("product_classes must not contain 'All'")
        return v

    @field_validator("risk_classes")
    @classmethod
    def no_aggregate_risk_class(cls, v: list[RiskClass]) -> list[RiskClass]:
        """The aggregate 'All' is not a risk class of its own."""
        if RiskClass.ALL in v:
            raise ValueError("risk_classes must not contain 'All'")
        return v

    @field_validator("margin_types")
    @classmethod
    def no_aggregate_margin_type(cls, v: list[MarginType]) -> list[MarginType]:
        """The aggregate 'All' is not a margin type of its own."""
        if MarginType.ALL in v:
            raise ValueError("margin_types must not contain 'All'")
        return v

    @model_validator(mode="after")
    def risk_class_labels_known(self) -> "SimmParameters":
        """Validate the psi matrix is indexed by risk class names."""
        if self.risk_class_correlations is not None:
            known = {rc.value.lower() for rc in RiskClass}
            unknown = [
                label for label in self.risk_class_correlations.labels if label.lower() not in known
            ]
            if unknown:
                raise ValueError(f"Unknown risk classes in risk_class_correlations: {unknown}")
        return self


class CalculatorConfig(BaseModel):
    """
    Settings of one SIMM calculation.

    Attributes
    ----------
    calculation_currency : str
        Currency of the SIMM calculation (ISO code)
    result_currency : str | None
        Currency of the reported results, defaults to the calculation currency
    determine_winning_regulations : bool
        Select a winning regulation per netting set and side
    enforce_im_regulations : bool
        Split sensitivities by their collect/post regulations
    regulation_priority : list[str]
        Tie-break order among regulations with equal margin
    max_workers : int
        Worker threads for the per-regulation calculations (<= 1: sequential)
    quiet : bool
        Suppress the calculator's log messages
    """

    calculation_currency: str = Field(default="USD", min_length=3, max_length=3)
    result_currency: str | None = Field(default=None, min_length=3, max_length=3)
    determine_winning_regulations: bool = True
    enforce_im_regulations: bool = False
    regulation_priority: list[str] = Field(default_factory=lambda: list(REGULATIONS))
    max_workers: int = Field(ge=0, le=64, default=1)
    quiet: bool = False

    @field_validator("calculation_currency", "result_currency")
    @classmethod
    def upper_case(cls, v: str | None) -> str | None:
        """Currency codes are upper case."""
        return v.upper() if v is not None else v

    @field_validator("regulation_priority")
    @classmethod
    def unique_regulations(cls, v: list[str]) -> list[str]:
        """Each regulation may appear only once in the priority list."""
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate regulations in priority list: {v}")
        return v

    @property
    def effective_result_currency(self) -> str:
        """Result currency, falling back to the calculation currency."""
        return self.result_currency or self.calculation_currency
