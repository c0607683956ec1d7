"""
Enumerations of the SIMM methodology.

Member values are the strings used in CRIF files and reports, so that
``RiskType("Risk_IRCurve")`` parses a CRIF risk type directly.
"""

from enum import Enum


class SimmSide(Enum):
    """Side of the margin calculation: collected (Call) or posted (Post)."""

    CALL = "Call"
    POST = "Post"

    @property
    def curvature_multiplier(self) -> float:
        """Sign applied to curvature sensitivities (+1 Call, -1 Post)."""
        return 1.0 if self is SimmSide.CALL else -1.0


class ProductClass(Enum):
    """SIMM product classes, plus the pseudo classes used for add-ons."""

    RATES_FX = "RatesFX"
    CREDIT = "Credit"
    EQUITY = "Equity"
    COMMODITY = "Commodity"
    EMPTY = ""
    OTHER = "Other"
    ADD_ON_NOTIONAL_FACTOR = "AddOnNotionalFactor"
    ADD_ON_FIXED_AMOUNT = "AddOnFixedAmount"
    ALL = "All"


class RiskClass(Enum):
    """SIMM risk classes, in the order of the cross risk class matrix."""

    INTEREST_RATE = "InterestRate"
    CREDIT_QUALIFYING = "CreditQualifying"
    CREDIT_NON_QUALIFYING = "CreditNonQualifying"
    EQUITY = "Equity"
    COMMODITY = "Commodity"
    FX = "FX"
    ALL = "All"


class MarginType(Enum):
    """SIMM margin types."""

    DELTA = "Delta"
    VEGA = "Vega"
    CURVATURE = "Curvature"
    BASE_CORR = "BaseCorr"
    ADDITIONAL_IM = "AdditionalIM"
    ALL = "All"


class RiskType(Enum):
    """CRIF risk types understood by the engine."""

    IR_CURVE = "Risk_IRCurve"
    IR_VOL = "Risk_IRVol"
    INFLATION = "Risk_Inflation"
    INFLATION_VOL = "Risk_InflationVol"
    XCCY_BASIS = "Risk_XCcyBasis"
    FX = "Risk_FX"
    FX_VOL = "Risk_FXVol"
    CREDIT_Q = "Risk_CreditQ"
    CREDIT_VOL = "Risk_CreditVol"
    CREDIT_NON_Q = "Risk_CreditNonQ"
    CREDIT_VOL_NON_Q = "Risk_CreditVolNonQ"
    BASE_CORR = "Risk_BaseCorr"
    EQUITY = "Risk_Equity"
    EQUITY_VOL = "Risk_EquityVol"
    COMMODITY = "Risk_Commodity"
    COMMODITY_VOL = "Risk_CommodityVol"
    PRODUCT_CLASS_MULTIPLIER = "Param_ProductClassMultiplier"
    ADD_ON_NOTIONAL_FACTOR = "Param_AddOnNotionalFactor"
    ADD_ON_FIXED_AMOUNT = "Param_AddOnFixedAmount"
    NOTIONAL = "Notional"

    @property
    def is_simm_parameter(self) -> bool:
        """True for the parameter risk types that carry add-on inputs."""
        return self in SIMM_PARAMETER_RISK_TYPES

    @property
    def risk_class(self) -> RiskClass | None:
        """Risk class of a sensitivity risk type, None for parameters."""
        return _RISK_CLASS_OF.get(self)


SIMM_PARAMETER_RISK_TYPES = frozenset(
    {
        RiskType.PRODUCT_CLASS_MULTIPLIER,
        RiskType.ADD_ON_NOTIONAL_FACTOR,
        RiskType.ADD_ON_FIXED_AMOUNT,
    }
)

_RISK_CLASS_OF = {
    RiskType.IR_CURVE: RiskClass.INTEREST_RATE,
    RiskType.IR_VOL: RiskClass.INTEREST_RATE,
    RiskType.INFLATION: RiskClass.INTEREST_RATE,
    RiskType.INFLATION_VOL: RiskClass.INTEREST_RATE,
    RiskType.XCCY_BASIS: RiskClass.INTEREST_RATE,
    RiskType.FX: RiskClass.FX,
    RiskType.FX_VOL: RiskClass.FX,
    RiskType.CREDIT_Q: RiskClass.CREDIT_QUALIFYING,
    RiskType.CREDIT_VOL: RiskClass.CREDIT_QUALIFYING,
    RiskType.BASE_CORR: RiskClass.CREDIT_QUALIFYING,
    RiskType.CREDIT_NON_Q: RiskClass.CREDIT_NON_QUALIFYING,
    RiskType.CREDIT_VOL_NON_Q: RiskClass.CREDIT_NON_QUALIFYING,
    RiskType.EQUITY: RiskClass.EQUITY,
    RiskType.EQUITY_VOL: RiskClass.EQUITY,
    RiskType.COMMODITY: RiskClass.COMMODITY,
    RiskType.COMMODITY_VOL: RiskClass.COMMODITY,
}

# Regulation labels. The order is the default tie-break priority used when
# several regulations produce the same margin.
REGULATIONS: tuple[str, ...] = (
    "APRA",
    "CFTC",
    "ESA",
    "FINMA",
    "KFSC",
    "HKMA",
    "JFSA",
    "MAS",
    "OSFI",
    "RBI",
    "SEC",
    "SEC-unseg",
    "USPR",
    "NONREG",
    "BACEN",
    "SANT",
    "SFC",
    "UK",
    "AMFQ",
    "Excluded",
    "Unspecified",
)

EXCLUDED = "Excluded"
UNSPECIFIED = "Unspecified"
SCHEDULE = "Schedule"
ALL_BUCKETS = "All"
RESIDUAL = "Residual"


def parse_simm_version(version: str) -> tuple[int, ...]:
    """
    Parse a SIMM version string into a comparable tuple.

    Parameters
    ----------
    version : str
        Version such as "2.6", "2.5A" or "1.3.38"

    Returns
    -------
    tuple[int, ...]
        Numeric components, e.g. (2, 5) for "2.5A"

    Example
    -------
    >>> parse_simm_version("2.5A") >= (2, 2)
    True
    """
    parts: list[int] = []
    for token in version.strip().split("."):
        digits = ""
        for char in token:
            if not char.isdigit():
                break
            digits += char
        if not digits:
            break
        parts.append(int(digits))
        if len(digits) != len(token):
            break
    if not parts:
        raise ValueError(f"Invalid SIMM version: {version!r}")
    return tuple(parts)
