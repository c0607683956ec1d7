"""
Regulation handling: splitting sensitivities per regulation and selecting
the winning regulation per netting set.
"""

from simm_core.regulation.splitter import (
    RegulationSensitivitySet,
    RegulationSets,
    parse_regulation_string,
    split_by_regulation,
)
from simm_core.regulation.winning import (
    determine_winning_regulations,
    populate_final_results,
    select_winning_regulation,
)

__all__ = [
    "RegulationSensitivitySet",
    "RegulationSets",
    "parse_regulation_string",
    "split_by_regulation",
    "select_winning_regulation",
    "determine_winning_regulations",
    "populate_final_results",
]
