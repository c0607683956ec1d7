"""
SIMM Calculation Engine - Core Package.

An implementation of the ISDA Standard Initial Margin Model (SIMM) for
regulatory initial margin: delta, vega, curvature and base correlation
margins aggregated from risk factor to netting set, calculated per
regulation and side, with selection of the winning regulation.

Example
-------
>>> from simm_core import SimmCalculator, SimmSide, load_config
>>> config = load_config("data/simm_parameters.yaml", "data/calculator.yaml")
>>> calc = SimmCalculator(records, config["simm"], config["calculator"])
>>> for nsd, (regulation, results) in calc.final_results[SimmSide.CALL].items():
...     print(nsd, regulation, results.initial_margin)
"""

__version__ = "1.0.0"

# Core types
from simm_core._types import Amount, BucketMargins, FxSpotFunction, MarginResult

# Exceptions
from simm_core.exceptions import (
    FxRateError,
    InvalidCurrencyError,
    SimmCalculationError,
    SimmConfigurationError,
    SimmError,
    SimmInvariantError,
    SimmResultsKeyError,
)

# Data model
from simm_core.model import (
    REGULATIONS,
    MarginType,
    NettingSetDetails,
    ProductClass,
    RiskClass,
    RiskType,
    SensitivityRecord,
    SimmResults,
    SimmSide,
)

# Configuration
from simm_core.config import (
    CalculatorConfig,
    SimmConfiguration,
    SimmParameters,
    TableSimmConfiguration,
    load_calculator_config,
    load_config,
    load_simm_parameters,
)

# Regulations
from simm_core.regulation import (
    RegulationSensitivitySet,
    determine_winning_regulations,
    parse_regulation_string,
    select_winning_regulation,
    split_by_regulation,
)

# Margin calculators
from simm_core.margin import (
    SensitivityGroups,
    calculate_additional_margin,
    curvature_margin,
    ir_curvature_margin,
    ir_delta_margin,
    ir_vega_margin,
    margin,
    populate_results,
)

# Currency
from simm_core.currency import check_currency, convert_results

# Orchestration
from simm_core.calculator import SimmCalculator

# Reporting
from simm_core.reporting import (
    create_final_results_table,
    create_im_summary_table,
    create_simm_results_table,
)

__all__ = [
    # Version
    "__version__",
    # Types
    "Amount",
    "BucketMargins",
    "MarginResult",
    "FxSpotFunction",
    # Exceptions
    "SimmError",
    "InvalidCurrencyError",
    "FxRateError",
    "SimmConfigurationError",
    "SimmInvariantError",
    "SimmCalculationError",
    "SimmResultsKeyError",
    # Data model
    "NettingSetDetails",
    "SensitivityRecord",
    "SimmResults",
    "ProductClass",
    "RiskClass",
    "MarginType",
    "RiskType",
    "SimmSide",
    "REGULATIONS",
    # Config
    "CalculatorConfig",
    "SimmParameters",
    "SimmConfiguration",
    "TableSimmConfiguration",
    "load_config",
    "load_simm_parameters",
    "load_calculator_config",
    # Regulations
    "RegulationSensitivitySet",
    "parse_regulation_string",
    "split_by_regulation",
    "select_winning_regulation",
    "determine_winning_regulations",
    # Margin
    "SensitivityGroups",
    "margin",
    "ir_delta_margin",
    "ir_vega_margin",
    "ir_curvature_margin",
    "curvature_margin",
    "populate_results",
    "calculate_additional_margin",
    # Currency
    "check_currency",
    "convert_results",
    # Calculator
    "SimmCalculator",
    # Reporting
    "create_simm_results_table",
    "create_final_results_table",
    "create_im_summary_table",
]
