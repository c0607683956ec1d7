"""
SIMM results container.

Holds the margin figures of one (side, netting set, regulation) keyed by
product class, risk class, margin type and bucket. The value "All" at any
level denotes the aggregate over that level.
"""

from collections.abc import Iterator

import pandas as pd

from simm_core._types import Amount
from simm_core.exceptions import FxRateError, SimmResultsKeyError
from simm_core.model.types import ALL_BUCKETS, MarginType, ProductClass, RiskClass

ResultKey = tuple[ProductClass, RiskClass, MarginType, str]

_MISSING = object()


class SimmResults:
    """
    Sparse table of SIMM margins.

    Parameters
    ----------
    result_currency : str
        Currency the margins are expressed in
    calculation_currency : str
        Currency the SIMM calculation was performed in

    Example
    -------
    >>> results = SimmResults("USD")
    >>> results.add(ProductClass.RATES_FX, RiskClass.FX, MarginType.DELTA, "All", 1e6)
    >>> results.get(ProductClass.RATES_FX, RiskClass.FX, MarginType.DELTA)
    1000000.0
    """

    def __init__(self, result_currency: str = "USD", calculation_currency: str = "USD") -> None:
        self._data: dict[ResultKey, Amount] = {}
        self.result_currency = result_currency
        self.calculation_currency = calculation_currency

    def add(
        self,
        product_class: ProductClass,
        risk_class: RiskClass,
        margin_type: MarginType,
        bucket: str,
        margin: Amount,
        overwrite: bool = False,
    ) -> None:
        """
        Add a margin amount.

        A new key is inserted. An existing key is accumulated into unless
        ``overwrite`` is set, in which case its value is replaced.

        Parameters
        ----------
        product_class, risk_class, margin_type : enums
            Result coordinates
        bucket : str
            Bucket, qualifier or "All"
        margin : Amount
            Margin amount in the result currency
        overwrite : bool
            Replace instead of accumulate when the key exists
        """
        key = (product_class, risk_class, margin_type, bucket)
        if key in self._data and not overwrite:
            self._data[key] += margin
        else:
            self._data[key] = margin

    def has(
        self,
        product_class: ProductClass,
        risk_class: RiskClass,
        margin_type: MarginType,
        bucket: str = ALL_BUCKETS,
    ) -> bool:
        """Check whether a margin exists for the given coordinates."""
        return (product_class, risk_class, margin_type, bucket) in self._data

    def get(
        self,
        product_class: ProductClass,
        risk_class: RiskClass,
        margin_type: MarginType,
        bucket: str = ALL_BUCKETS,
        default: object = _MISSING,
    ) -> Amount:
        """
        Return the margin for the given coordinates.

        Raises
        ------
        SimmResultsKeyError
            If the entry is absent and no default was given
        """
        key = (product_class, risk_class, margin_type, bucket)
        if key in self._data:
            return self._data[key]
        if default is not _MISSING:
            return default  # type: ignore[return-value]
        raise SimmResultsKeyError(
            f"No SIMM result for product class {product_class.value}, risk class "
            f"{risk_class.value}, margin type {margin_type.value}, bucket {bucket}"
        )

    @property
    def initial_margin(self) -> Amount:
        """Total margin of the netting set, 0.0 if nothing was calculated."""
        return self.get(ProductClass.ALL, RiskClass.ALL, MarginType.ALL, ALL_BUCKETS, 0.0)

    def convert(self, fx_spot: float, currency: str) -> None:
        """
        Convert all margins from USD to another currency in place.

        Parameters
        ----------
        fx_spot : float
            USD value of one unit of ``currency``; every margin is divided by it
        currency : str
            New result currency
        """
        if not fx_spot > 0:
            raise FxRateError(f"The USD spot rate must be positive, got {fx_spot}")
        for key in self._data:
            self._data[key] /= fx_spot
        self.result_currency = currency

    def items(self) -> Iterator[tuple[ResultKey, Amount]]:
        """Iterate over (key, margin) pairs in insertion order."""
        return iter(self._data.items())

    @property
    def empty(self) -> bool:
        """True if no margin has been added."""
        return not self._data

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return (
            f"SimmResults(result_currency={self.result_currency!r}, "
            f"n_entries={len(self._data)}, im={self.initial_margin:,.2f})"
        )

    def to_frame(self) -> pd.DataFrame:
        """
        Flatten the results into a DataFrame.

        Returns
        -------
        pd.DataFrame
            Columns: ProductClass, RiskClass, MarginType, Bucket, Margin,
            Currency
        """
        rows = [
            {
                "ProductClass": pc.value,
                "RiskClass": rc.value,
                "MarginType": mt.value,
                "Bucket": bucket,
                "Margin": margin,
                "Currency": self.result_currency,
            }
            for (pc, rc, mt, bucket), margin in self._data.items()
        ]
        columns = ["ProductClass", "RiskClass", "MarginType", "Bucket", "Margin", "Currency"]
        return pd.DataFrame(rows, columns=columns)
