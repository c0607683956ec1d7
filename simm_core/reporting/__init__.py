"""
Reporting module for SIMM results.

Provides DataFrame views of the calculator output.
"""

from simm_core.reporting.tables import (
    create_final_results_table,
    create_im_summary_table,
    create_simm_results_table,
)

__all__ = [
    "create_simm_results_table",
    "create_final_results_table",
    "create_im_summary_table",
]
