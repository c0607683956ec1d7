"""
YAML configuration loading utilities.

Provides functions to load and validate configuration from YAML files,
returning properly typed Pydantic model instances.
"""

from pathlib import Path
from typing import Any

import yaml

from simm_core.config.models import CalculatorConfig, SimmParameters
from simm_core.config.simm_configuration import TableSimmConfiguration


def _load_yaml(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dictionary.

    Parameters
    ----------
    path : Path
        Path to the YAML file

    Returns
    -------
    dict[str, Any]
        Parsed YAML contents

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    yaml.YAMLError
        If the file contains invalid YAML
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_simm_parameters(path: Path | str) -> SimmParameters:
    """
    Load SIMM risk parameters from a YAML file.

    Parameters
    ----------
    path : Path | str
        Path to the parameter YAML file

    Returns
    -------
    SimmParameters
        Validated parameter tables

    Example
    -------
    >>> params = load_simm_parameters("data/simm_parameters.yaml")
    >>> print(params.version)
    2.6
    """
    data = _load_yaml(Path(path))

    # Handle nested 'simm' key if present
    if "simm" in data:
        data = data["simm"]

    return SimmParameters(**data)


def load_calculator_config(path: Path | str) -> CalculatorConfig:
    """
    Load calculator settings from a YAML file.

    Parameters
    ----------
    path : Path | str
        Path to the calculator YAML file

    Returns
    -------
    CalculatorConfig
        Validated calculator settings
    """
    data = _load_yaml(Path(path))

    # Handle nested 'calculator' key if present
    if "calculator" in data:
        data = data["calculator"]

    return CalculatorConfig(**data)


def load_config(
    parameters_path: Path | str | None = None,
    calculator_path: Path | str | None = None,
) -> dict[str, Any]:
    """
    Load complete configuration from YAML files.

    Parameters
    ----------
    parameters_path : Path | str | None
        Path to the SIMM parameter file
    calculator_path : Path | str | None
        Path to the calculator settings file

    Returns
    -------
    dict[str, Any]
        Dictionary containing:
        - 'simm': TableSimmConfiguration (if parameters_path provided)
        - 'calculator': CalculatorConfig (defaults if calculator_path is None)
        - 'fx_rates': dict[str, float] (from the calculator file, may be empty)

    Example
    -------
    >>> config = load_config("data/simm_parameters.yaml", "data/calculator.yaml")
    >>> print(config["calculator"].calculation_currency)
    """
    result: dict[str, Any] = {}

    if parameters_path is not None:
        result["simm"] = TableSimmConfiguration(load_simm_parameters(parameters_path))

    result["calculator"] = CalculatorConfig()
    result["fx_rates"] = {}
    if calculator_path is not None:
        data = _load_yaml(Path(calculator_path))
        if "calculator" in data:
            result["calculator"] = CalculatorConfig(**data["calculator"])
        if "fx_rates" in data:
            result["fx_rates"] = {str(k): float(v) for k, v in data["fx_rates"].items()}

    return result
