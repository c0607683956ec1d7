"""
SIMM margin calculators.

Pure functions computing the margin of one risk class and margin type for
the net sensitivities of a product class, plus the add-on and aggregation
steps applied per (side, netting set, regulation).
"""

from simm_core.margin.additional import calculate_additional_margin
from simm_core.margin.aggregation import populate_results
from simm_core.margin.common import SensitivityGroups, close_enough, lambda_theta
from simm_core.margin.curvature import curvature_margin
from simm_core.margin.delta_vega import margin
from simm_core.margin.interest_rate import ir_curvature_margin, ir_delta_margin, ir_vega_margin

__all__ = [
    "SensitivityGroups",
    "close_enough",
    "lambda_theta",
    # Risk class margins
    "margin",
    "ir_delta_margin",
    "ir_vega_margin",
    "ir_curvature_margin",
    "curvature_margin",
    # Aggregation and add-ons
    "populate_results",
    "calculate_additional_margin",
]
