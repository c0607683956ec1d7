"""
Exceptions raised by the SIMM calculation engine.

All engine errors derive from :class:`SimmError`, itself a ``ValueError``
so that callers validating inputs the usual way keep working.
"""


class SimmError(ValueError):
    """Base class for all SIMM engine errors."""


class InvalidCurrencyError(SimmError):
    """A calculation or result currency is not a valid ISO 4217 code."""


class FxRateError(SimmError):
    """The FX spot rate needed for result conversion is missing or invalid."""


class SimmConfigurationError(SimmError):
    """A risk parameter is missing from, or invalid in, the configuration."""


class SimmInvariantError(SimmError):
    """The sensitivities violate an invariant the methodology relies on."""


class SimmResultsKeyError(KeyError):
    """A requested entry does not exist in a :class:`SimmResults`."""


class SimmCalculationError(SimmError):
    """
    Fatal failure while calculating one (side, netting set, regulation).

    Attributes
    ----------
    side : str
        SIMM side being calculated ("Call" or "Post")
    netting_set : str
        Netting set details in display form
    regulation : str
        Regulation being calculated
    """

    def __init__(self, side: str, netting_set: str, regulation: str, reason: str) -> None:
        self.side = side
        self.netting_set = netting_set
        self.regulation = regulation
        super().__init__(
            f"SIMM {side} calculation failed for netting set [{netting_set}], "
            f"regulation {regulation}: {reason}"
        )
