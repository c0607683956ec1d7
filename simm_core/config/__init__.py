"""
Configuration module for the SIMM calculation engine.

Provides Pydantic-validated parameter and calculator models, the SIMM
parameter lookup interface and YAML loading utilities.
"""

from simm_core.config.loader import load_calculator_config, load_config, load_simm_parameters
from simm_core.config.models import (
    CalculatorConfig,
    CorrelationTable,
    LabelMatrix,
    ParameterTable,
    RiskTypeCorrelation,
    SimmParameters,
)
from simm_core.config.simm_configuration import (
    SimmConfiguration,
    TableSimmConfiguration,
    tenor_to_days,
)

__all__ = [
    # Models
    "ParameterTable",
    "LabelMatrix",
    "CorrelationTable",
    "RiskTypeCorrelation",
    "SimmParameters",
    "CalculatorConfig",
    # Lookup
    "SimmConfiguration",
    "TableSimmConfiguration",
    "tenor_to_days",
    # Loaders
    "load_config",
    "load_simm_parameters",
    "load_calculator_config",
]
