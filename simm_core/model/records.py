"""
Sensitivity records and netting set keys.

A sensitivity record is one net risk sensitivity in CRIF terms. Records are
immutable; the engine never modifies a record in place but derives copies
(e.g. with regulations cleared) where it needs to.
"""

from dataclasses import dataclass, field, replace

from simm_core._types import Amount
from simm_core.model.types import SCHEDULE, ProductClass, RiskType


@dataclass(frozen=True, order=True)
class NettingSetDetails:
    """
    Composite key identifying a netting set.

    Attributes
    ----------
    netting_set_id : str
        Portfolio or netting set identifier
    agreement_type : str
        Optional margin agreement type
    call_type : str
        Optional call type
    initial_margin_type : str
        Optional IM type
    calculation_currency : str
        Optional agreement-level calculation currency

    Example
    -------
    >>> nsd = NettingSetDetails("CPTY_A", agreement_type="ISDA")
    >>> str(nsd)
    'NettingSetId=CPTY_A, AgreementType=ISDA'
    """

    netting_set_id: str
    agreement_type: str = ""
    call_type: str = ""
    initial_margin_type: str = ""
    calculation_currency: str = ""

    def __str__(self) -> str:
        fields = [
            ("NettingSetId", self.netting_set_id),
            ("AgreementType", self.agreement_type),
            ("CallType", self.call_type),
            ("InitialMarginType", self.initial_margin_type),
            ("CalculationCurrency", self.calculation_currency),
        ]
        return ", ".join(f"{name}={value}" for name, value in fields if value)


RiskKey = tuple[NettingSetDetails, str, str, str, str, str, str]


@dataclass(frozen=True)
class SensitivityRecord:
    """
    One net risk sensitivity.

    Attributes
    ----------
    netting_set_details : NettingSetDetails
        Netting set the sensitivity belongs to
    product_class : ProductClass
        SIMM product class (Empty for parameter records)
    risk_type : RiskType
        CRIF risk type
    qualifier : str
        Risk factor identifier, e.g. a currency or an issuer
    bucket : str
        SIMM bucket ("" where the risk class has none)
    label1 : str
        First label, usually a tenor
    label2 : str
        Second label, e.g. a sub curve
    amount : float
        Amount in ``amount_currency``
    amount_currency : str
        Currency of ``amount``
    amount_usd : float
        Amount converted to USD
    trade_id : str
        Originating trade (empty for netted records)
    trade_type : str
        Originating trade type
    collect_regulations : str
        Comma separated regulations applying to the Call side
    post_regulations : str
        Comma separated regulations applying to the Post side
    im_model : str
        IM model tag; "Schedule" records are not SIMM records
    """

    netting_set_details: NettingSetDetails
    product_class: ProductClass
    risk_type: RiskType
    qualifier: str = ""
    bucket: str = ""
    label1: str = ""
    label2: str = ""
    amount: Amount = 0.0
    amount_currency: str = "USD"
    amount_usd: Amount = 0.0
    trade_id: str = ""
    trade_type: str = ""
    collect_regulations: str = ""
    post_regulations: str = ""
    im_model: str = field(default="SIMM")

    @property
    def is_simm_parameter(self) -> bool:
        """True for add-on parameter records."""
        return self.risk_type.is_simm_parameter

    @property
    def is_schedule(self) -> bool:
        """True for Schedule-method records."""
        return self.im_model == SCHEDULE

    @property
    def risk_key(self) -> RiskKey:
        """
        Identity of the risk factor, used for netting and record matching.

        The amount currency is not part of the key: only the USD amount is
        used by the calculation, so records that differ only in their
        native currency describe the same risk.
        """
        return (
            self.netting_set_details,
            self.product_class.value,
            self.risk_type.value,
            self.qualifier,
            self.bucket,
            self.label1,
            self.label2,
        )

    def with_regulations_cleared(self) -> "SensitivityRecord":
        """Return a copy with both regulation strings emptied."""
        return replace(self, collect_regulations="", post_regulations="")

    def netted_with(self, other: "SensitivityRecord") -> "SensitivityRecord":
        """
        Return the net of this record and another with the same risk key.

        Parameters
        ----------
        other : SensitivityRecord
            Record to net in

        Returns
        -------
        SensitivityRecord
            Record with summed amounts and no trade attribution
        """
        if other.risk_key != self.risk_key:
            raise ValueError(
                f"Cannot net records with different risk keys: "
                f"{self.risk_key} and {other.risk_key}"
            )
        return replace(
            self,
            amount=self.amount + other.amount,
            amount_usd=self.amount_usd + other.amount_usd,
            trade_id="",
            trade_type="",
        )
