"""
Data model of the SIMM engine.

Provides the immutable sensitivity records, netting set keys, SIMM
enumerations and the results container.
"""

from simm_core.model.records import NettingSetDetails, SensitivityRecord
from simm_core.model.results import SimmResults
from simm_core.model.types import (
    REGULATIONS,
    MarginType,
    ProductClass,
    RiskClass,
    RiskType,
    SimmSide,
    parse_simm_version,
)

__all__ = [
    "NettingSetDetails",
    "SensitivityRecord",
    "SimmResults",
    "ProductClass",
    "RiskClass",
    "MarginType",
    "RiskType",
    "SimmSide",
    "REGULATIONS",
    "parse_simm_version",
]
