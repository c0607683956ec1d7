"""
Currency validation and conversion of SIMM results.

Margins are calculated in USD and converted to the result currency with a
single USD spot rate.
"""

import logging
from collections.abc import Iterable

from simm_core._types import FxSpotFunction
from simm_core.exceptions import FxRateError, InvalidCurrencyError
from simm_core.model.results import SimmResults

logger = logging.getLogger(__name__)

# Active ISO 4217 currency codes
ISO_CURRENCIES = frozenset(
    """
    AED AFN ALL AMD ANG AOA ARS AUD AWG AZN BAM BBD BDT BGN BHD BIF BMD BND BOB
    BOV BRL BSD BTN BWP BYN BZD CAD CDF CHE CHF CHW CLF CLP CNH CNY COP COU CRC
    CUC CUP CVE CZK DJF DKK DOP DZD EGP ERN ETB EUR FJD FKP GBP GEL GHS GIP GMD
    GNF GTQ GYD HKD HNL HRK HTG HUF IDR ILS INR IQD IRR ISK JMD JOD JPY KES KGS
    KHR KMF KPW KRW KWD KYD KZT LAK LBP LKR LRD LSL LYD MAD MDL MGA MKD MMK MNT
    MOP MRU MUR MVR MWK MXN MXV MYR MZN NAD NGN NIO NOK NPR NZD OMR PAB PEN PGK
    PHP PKR PLN PYG QAR RON RSD RUB RWF SAR SBD SCR SDG SEK SGD SHP SLE SLL SOS
    SRD SSP STN SVC SYP SZL THB TJS TMT TND TOP TRY TTD TWD TZS UAH UGX USD USN
    UYI UYU UYW UZS VED VES VND VUV WST XAF XAG XAU XCD XDR XOF XPD XPF XPT XSU
    XUA YER ZAR ZMW ZWL
    """.split()
)


def check_currency(code: str) -> str:
    """
    Validate an ISO 4217 currency code.

    Parameters
    ----------
    code : str
        Three letter currency code

    Returns
    -------
    str
        The validated code

    Raises
    ------
    InvalidCurrencyError
        If the code is not a known ISO currency
    """
    if code not in ISO_CURRENCIES:
        raise InvalidCurrencyError(f"{code!r} is not a valid ISO currency code")
    return code


def convert_results(
    results: Iterable[SimmResults],
    result_currency: str,
    fx_spot: FxSpotFunction | None,
) -> None:
    """
    Convert SIMM results from USD to the result currency in place.

    Parameters
    ----------
    results : Iterable[SimmResults]
        Results to convert
    result_currency : str
        Target currency; nothing happens for USD
    fx_spot : FxSpotFunction | None
        Spot lookup, called once with "USD" + result_currency

    Raises
    ------
    FxRateError
        If no lookup is given, the lookup fails or the rate is not positive
    """
    if result_currency == "USD":
        return

    if fx_spot is None:
        raise FxRateError(f"No FX spot function given to convert results to {result_currency}")

    pair = "USD" + result_currency
    try:
        rate = float(fx_spot(pair))
    except LookupError as exc:
        raise FxRateError(f"Market FX/USD/{result_currency} rate not found") from exc

    if not rate > 0:
        raise FxRateError(f"The USD spot rate must be positive, got {rate} for {pair}")

    logger.info("Converting SIMM results from USD to %s at %s", result_currency, rate)
    for res in results:
        res.convert(rate, result_currency)
