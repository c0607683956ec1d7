"""
Pytest fixtures for SIMM testing.

Provides a small parameter set with round numbers, so that expected margins
can be worked out by hand, and factories for sensitivity records.
"""

import copy
from collections.abc import Callable
from typing import Any

import pytest

from simm_core.config import SimmParameters, TableSimmConfiguration
from simm_core.model import NettingSetDetails, ProductClass, RiskClass, RiskType, SensitivityRecord

_PRODUCT_CLASS_OF = {
    RiskClass.INTEREST_RATE: ProductClass.RATES_FX,
    RiskClass.FX: ProductClass.RATES_FX,
    RiskClass.CREDIT_QUALIFYING: ProductClass.CREDIT,
    RiskClass.CREDIT_NON_QUALIFYING: ProductClass.CREDIT,
    RiskClass.EQUITY: ProductClass.EQUITY,
    RiskClass.COMMODITY: ProductClass.COMMODITY,
}

# Off-diagonal risk class correlation
PSI = 0.2


def _parameter_data() -> dict[str, Any]:
    """Round-number SIMM parameters."""
    risk_classes = [rc.value for rc in RiskClass if rc is not RiskClass.ALL]
    psi = [[1.0 if i == j else PSI for j in range(6)] for i in range(6)]
    tenors = {"labels": ["2y", "10y"], "matrix": [[1.0, 0.5], [0.5, 1.0]]}

    return {
        "version": "2.6",
        "sigma_multiplier": 1.0,
        "risk_weights": {
            RiskType.IR_CURVE: {"default": 10.0},
            RiskType.INFLATION: {"default": 20.0},
            RiskType.XCCY_BASIS: {"default": 5.0},
            RiskType.IR_VOL: {"default": 0.2},
            RiskType.INFLATION_VOL: {"default": 0.2},
            RiskType.FX: {"default": 8.0},
            RiskType.FX_VOL: {"default": 0.3},
            RiskType.CREDIT_Q: {"by_bucket": {"1": 50.0, "2": 60.0, "Residual": 100.0}},
            RiskType.CREDIT_VOL: {"default": 0.3},
            RiskType.CREDIT_NON_Q: {"default": 100.0},
            RiskType.CREDIT_VOL_NON_Q: {"default": 0.3},
            RiskType.BASE_CORR: {"default": 10.0},
            RiskType.EQUITY: {
                "default": 25.0,
                "by_bucket": {"1": 20.0, "2": 30.0, "Residual": 40.0},
            },
            RiskType.EQUITY_VOL: {"default": 0.5},
            RiskType.COMMODITY: {"default": 15.0},
            RiskType.COMMODITY_VOL: {"default": 0.4},
        },
        "correlations": {
            RiskType.IR_CURVE: {"label1": tenors, "label2_different": 0.9, "different_qualifier": 0.25},
            RiskType.IR_VOL: {"label1": tenors, "different_qualifier": 0.25},
            RiskType.INFLATION_VOL: {"label1_default": 1.0},
            RiskType.FX: {"different_qualifier": 0.5},
            RiskType.FX_VOL: {"different_qualifier": 0.5},
            RiskType.CREDIT_Q: {
                "label1_default": 0.9,
                "different_qualifier": 0.4,
                "different_qualifier_by_bucket": {"Residual": 0.5},
                "inter_bucket": 0.3,
            },
            RiskType.CREDIT_VOL: {"label1_default": 0.9, "different_qualifier": 0.4, "inter_bucket": 0.3},
            RiskType.CREDIT_NON_Q: {"different_qualifier": 0.3, "inter_bucket": 0.2},
            RiskType.CREDIT_VOL_NON_Q: {"different_qualifier": 0.3, "inter_bucket": 0.2},
            RiskType.BASE_CORR: {"different_qualifier": 0.2},
            RiskType.EQUITY: {"label1_default": 1.0, "different_qualifier": 0.2, "inter_bucket": 0.15},
            RiskType.EQUITY_VOL: {"label1_default": 1.0, "different_qualifier": 0.2, "inter_bucket": 0.15},
            RiskType.COMMODITY: {"different_qualifier": 0.4, "inter_bucket": 0.2},
            RiskType.COMMODITY_VOL: {"different_qualifier": 0.4, "inter_bucket": 0.2},
        },
        "risk_type_correlations": [
            {"risk_type_1": RiskType.IR_CURVE, "risk_type_2": RiskType.INFLATION, "value": 0.3},
            {"risk_type_1": RiskType.IR_CURVE, "risk_type_2": RiskType.XCCY_BASIS, "value": 0.1},
            {"risk_type_1": RiskType.INFLATION, "risk_type_2": RiskType.XCCY_BASIS, "value": 0.1},
            {"risk_type_1": RiskType.IR_VOL, "risk_type_2": RiskType.INFLATION_VOL, "value": 0.3},
        ],
        "risk_class_correlations": {"labels": risk_classes, "matrix": psi},
    }


@pytest.fixture
def simm_parameters() -> SimmParameters:
    """Round-number SIMM parameters."""
    return SimmParameters(**_parameter_data())


@pytest.fixture
def simm_config(simm_parameters: SimmParameters) -> TableSimmConfiguration:
    """SIMM configuration over the round-number parameters."""
    return TableSimmConfiguration(simm_parameters)


@pytest.fixture
def make_simm_config() -> Callable[..., TableSimmConfiguration]:
    """
    Factory for variations of the round-number configuration.

    Dictionary valued parameters given as keyword arguments are merged into
    the defaults, other parameters replace them. Risk types listed in
    ``without_risk_weights`` lose their risk weights.
    """

    def _make(
        without_risk_weights: tuple[RiskType, ...] = (), **overrides: Any
    ) -> TableSimmConfiguration:
        data = copy.deepcopy(_parameter_data())
        for key, value in overrides.items():
            if isinstance(value, dict) and isinstance(data.get(key), dict):
                data[key].update(value)
            else:
                data[key] = value
        for risk_type in without_risk_weights:
            data["risk_weights"].pop(risk_type)
        return TableSimmConfiguration(SimmParameters(**data))

    return _make


@pytest.fixture
def netting_set() -> NettingSetDetails:
    """Standard netting set."""
    return NettingSetDetails("CPTY_A", agreement_type="ISDA")


@pytest.fixture
def make_record(netting_set: NettingSetDetails) -> Callable[..., SensitivityRecord]:
    """
    Factory for sensitivity records.

    The product class follows from the risk type (Empty for parameters and
    notionals) and the native amount defaults to the USD amount.
    """

    def _make(
        risk_type: RiskType,
        qualifier: str = "",
        bucket: str = "",
        label1: str = "",
        label2: str = "",
        amount_usd: float = 0.0,
        **kwargs: Any,
    ) -> SensitivityRecord:
        risk_class = risk_type.risk_class
        kwargs.setdefault("netting_set_details", netting_set)
        kwargs.setdefault(
            "product_class",
            ProductClass.EMPTY if risk_class is None else _PRODUCT_CLASS_OF[risk_class],
        )
        kwargs.setdefault("amount", amount_usd)
        return SensitivityRecord(
            risk_type=risk_type,
            qualifier=qualifier,
            bucket=bucket,
            label1=label1,
            label2=label2,
            amount_usd=amount_usd,
            **kwargs,
        )

    return _make
