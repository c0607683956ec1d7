"""
SIMM calculation orchestrator.

:class:`SimmCalculator` takes the net sensitivities of a portfolio and
produces SIMM results per side, netting set and regulation, the winning
regulation of each netting set and the final results.

Each (side, netting set, regulation) is calculated independently into its
own results table, so these calculations may run on a thread pool.
"""

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from types import MappingProxyType

from simm_core._types import FxSpotFunction, MarginResult
from simm_core.config.models import CalculatorConfig
from simm_core.config.simm_configuration import SimmConfiguration
from simm_core.currency import check_currency, convert_results
from simm_core.exceptions import SimmCalculationError
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
from simm_core.model.records import NettingSetDetails, SensitivityRecord
from simm_core.model.results import SimmResults
from simm_core.model.types import MarginType, ProductClass, RiskClass, RiskType, SimmSide
from simm_core.regulation import (
    RegulationSensitivitySet,
    determine_winning_regulations,
    populate_final_results,
    split_by_regulation,
)

logger = logging.getLogger(__name__)

# (risk class, risk type) in calculation order, interest rate handled separately
_DELTA_RISK_TYPES = (
    (RiskClass.FX, RiskType.FX),
    (RiskClass.CREDIT_QUALIFYING, RiskType.CREDIT_Q),
    (RiskClass.CREDIT_NON_QUALIFYING, RiskType.CREDIT_NON_Q),
    (RiskClass.EQUITY, RiskType.EQUITY),
    (RiskClass.COMMODITY, RiskType.COMMODITY),
)
_VEGA_RISK_TYPES = (
    (RiskClass.FX, RiskType.FX_VOL),
    (RiskClass.CREDIT_QUALIFYING, RiskType.CREDIT_VOL),
    (RiskClass.CREDIT_NON_QUALIFYING, RiskType.CREDIT_VOL_NON_Q),
    (RiskClass.EQUITY, RiskType.EQUITY_VOL),
    (RiskClass.COMMODITY, RiskType.COMMODITY_VOL),
)
# Credit curvature sums absolute CVRs per risk factor row
_CURVATURE_RF_LABELS = {
    RiskType.FX_VOL: False,
    RiskType.CREDIT_VOL: True,
    RiskType.CREDIT_VOL_NON_Q: True,
    RiskType.EQUITY_VOL: False,
    RiskType.COMMODITY_VOL: False,
}

ResultsMap = dict[SimmSide, dict[NettingSetDetails, dict[str, SimmResults]]]
FinalResultsMap = dict[SimmSide, dict[NettingSetDetails, tuple[str, SimmResults]]]


class SimmCalculator:
    """
    ISDA SIMM initial margin calculator.

    The calculation runs on construction; the results are then available
    through read-only properties.

    Parameters
    ----------
    records : Iterable[SensitivityRecord]
        Net sensitivities of all netting sets
    simm_config : SimmConfiguration
        SIMM risk parameters
    settings : CalculatorConfig | None
        Calculator settings (defaults if None)
    fx_spot : FxSpotFunction | None
        USD spot lookup, required when the result currency is not USD

    Raises
    ------
    InvalidCurrencyError
        If the calculation or result currency is not an ISO code
    SimmCalculationError
        If the calculation of any (side, netting set, regulation) fails
    FxRateError
        If the results cannot be converted to the result currency

    Example
    -------
    >>> config = load_config("data/simm_parameters.yaml", "data/calculator.yaml")
    >>> calc = SimmCalculator(
    ...     records,
    ...     config["simm"],
    ...     config["calculator"],
    ...     fx_spot=config["fx_rates"].__getitem__,
    ... )
    >>> regulation, results = calc.final_results[SimmSide.CALL][nsd]
    >>> print(f"{regulation}: {results.initial_margin:,.0f} {results.result_currency}")
    """

    def __init__(
        self,
        records: Iterable[SensitivityRecord],
        simm_config: SimmConfiguration,
        settings: CalculatorConfig | None = None,
        fx_spot: FxSpotFunction | None = None,
    ) -> None:
        settings = settings if settings is not None else CalculatorConfig()

        self.simm_config = simm_config
        self.settings = settings
        self.calculation_currency = check_currency(settings.calculation_currency)
        self.result_currency = check_currency(settings.effective_result_currency)
        self.quiet = settings.quiet

        self._simm_results: ResultsMap = {SimmSide.CALL: {}, SimmSide.POST: {}}
        self._trade_ids: dict[SimmSide, dict[NettingSetDetails, dict[str, set[str]]]] = {
            SimmSide.CALL: {},
            SimmSide.POST: {},
        }
        self._winning_regulations: dict[SimmSide, dict[NettingSetDetails, str]] = {}
        self._final_results: FinalResultsMap = {}
        self._final_trade_ids: dict[SimmSide, set[str]] = {}

        self._calculate(records, fx_spot)

    def _calculate(self, records: Iterable[SensitivityRecord], fx_spot: FxSpotFunction | None) -> None:
        sets = split_by_regulation(
            records,
            self.settings.determine_winning_regulations,
            self.settings.enforce_im_regulations,
            self.quiet,
        )

        tasks: list[RegulationSensitivitySet] = []
        for side, by_netting_set in sets.items():
            for nsd, by_regulation in by_netting_set.items():
                for regulation, regulation_set in by_regulation.items():
                    self._trade_ids[side].setdefault(nsd, {})[regulation] = set(
                        regulation_set.trade_ids
                    )
                    if regulation_set.has_sensitivities or regulation_set.has_fixed_add_on:
                        tasks.append(regulation_set)

        if self.settings.max_workers > 1 and len(tasks) > 1:
            with ThreadPoolExecutor(max_workers=self.settings.max_workers) as executor:
                futures = [executor.submit(self._calculate_regulation, task) for task in tasks]
                calculated = [future.result() for future in futures]
        else:
            calculated = [self._calculate_regulation(task) for task in tasks]

        for task, results in zip(tasks, calculated):
            by_regulation = self._simm_results[task.side].setdefault(task.netting_set_details, {})
            by_regulation[task.regulation] = results

        convert_results(
            (
                res
                for by_netting_set in self._simm_results.values()
                for by_regulation in by_netting_set.values()
                for res in by_regulation.values()
            ),
            self.result_currency,
            fx_spot,
        )

        if self.settings.determine_winning_regulations:
            if not self.quiet:
                logger.info("Determining winning regulations")
            self.populate_final_results(
                determine_winning_regulations(
                    self._simm_results, self.settings.regulation_priority, self.quiet
                )
            )

    def _calculate_regulation(self, regulation_set: RegulationSensitivitySet) -> SimmResults:
        """Calculate one (side, netting set, regulation), labelling any failure."""
        side = regulation_set.side
        nsd = regulation_set.netting_set_details
        regulation = regulation_set.regulation
        if not self.quiet:
            logger.info(
                "Calculating SIMM %s for netting set [%s], regulation %s",
                side.value,
                nsd,
                regulation,
            )

        try:
            results = SimmResults("USD", self.calculation_currency)
            net_records = regulation_set.net_records()
            for product_class, groups in SensitivityGroups.by_product_class(
                regulation_set.sensitivities()
            ).items():
                self._calculate_product_class(results, product_class, groups, side)
            populate_results(results, self.simm_config)
            calculate_additional_margin(results, net_records, self.quiet)
        except Exception as exc:
            raise SimmCalculationError(side.value, str(nsd), regulation, str(exc)) from exc
        return results

    def _calculate_product_class(
        self,
        results: SimmResults,
        product_class: ProductClass,
        groups: SensitivityGroups,
        side: SimmSide,
    ) -> None:
        """Delta, vega, curvature and base correlation margins of a product class."""
        if not self.quiet:
            logger.debug("Calculating SIMM for product class %s", product_class.value)

        config = self.simm_config
        ccy = self.calculation_currency

        def add(risk_class: RiskClass, margin_type: MarginType, result: MarginResult) -> None:
            bucket_margins, applies = result
            if not applies:
                return
            for bucket, value in bucket_margins.items():
                results.add(product_class, risk_class, margin_type, bucket, value)
                if not self.quiet:
                    logger.debug(
                        "Calculated %s margin for [%s, %s, %s, %s]: %s",
                        side.value,
                        product_class.value,
                        risk_class.value,
                        margin_type.value,
                        bucket,
                        value,
                    )

        add(RiskClass.INTEREST_RATE, MarginType.DELTA, ir_delta_margin(groups, config, ccy))
        for risk_class, risk_type in _DELTA_RISK_TYPES:
            add(risk_class, MarginType.DELTA, margin(groups, risk_type, config, ccy, self.quiet))

        add(RiskClass.INTEREST_RATE, MarginType.VEGA, ir_vega_margin(groups, config, ccy))
        for risk_class, risk_type in _VEGA_RISK_TYPES:
            add(risk_class, MarginType.VEGA, margin(groups, risk_type, config, ccy, self.quiet))

        add(RiskClass.INTEREST_RATE, MarginType.CURVATURE, ir_curvature_margin(groups, config, side))
        for risk_class, risk_type in _VEGA_RISK_TYPES:
            add(
                risk_class,
                MarginType.CURVATURE,
                curvature_margin(
                    groups, risk_type, config, ccy, side, _CURVATURE_RF_LABELS[risk_type]
                ),
            )

        if config.is_valid_risk_type(RiskType.BASE_CORR):
            add(
                RiskClass.CREDIT_QUALIFYING,
                MarginType.BASE_CORR,
                margin(groups, RiskType.BASE_CORR, config, ccy, self.quiet),
            )

    def populate_final_results(
        self, winning_regulations: Mapping[SimmSide, Mapping[NettingSetDetails, str]]
    ) -> None:
        """
        Set the winning regulations and collect the final results.

        Parameters
        ----------
        winning_regulations : Mapping[SimmSide, Mapping[NettingSetDetails, str]]
            Winning regulation per side and netting set, e.g. chosen
            externally

        Raises
        ------
        SimmResultsKeyError
            If a (side, netting set) with results has no winning regulation
        """
        if not self.quiet:
            logger.info("Populating final winning regulations' IM")
        self._winning_regulations = {
            side: dict(by_netting_set) for side, by_netting_set in winning_regulations.items()
        }
        self._final_results, self._final_trade_ids = populate_final_results(
            self._simm_results,
            self._winning_regulations,
            self._trade_ids,
            self.result_currency,
        )

    @property
    def simm_results(self) -> Mapping[SimmSide, Mapping[NettingSetDetails, Mapping[str, SimmResults]]]:
        """Results per side, netting set and regulation."""
        return MappingProxyType(self._simm_results)

    @property
    def winning_regulations(self) -> Mapping[SimmSide, Mapping[NettingSetDetails, str]]:
        """Winning regulation per side and netting set."""
        return MappingProxyType(
            {side: MappingProxyType(regs) for side, regs in self._winning_regulations.items()}
        )

    @property
    def final_results(self) -> Mapping[SimmSide, Mapping[NettingSetDetails, tuple[str, SimmResults]]]:
        """(winning regulation, results) per side and netting set."""
        return MappingProxyType(self._final_results)

    @property
    def trade_ids(self) -> Mapping[SimmSide, Mapping[NettingSetDetails, Mapping[str, set[str]]]]:
        """Trade ids per side, netting set and regulation."""
        return MappingProxyType(self._trade_ids)

    @property
    def final_trade_ids(self) -> Mapping[SimmSide, set[str]]:
        """Trade ids of the winning regulations per side."""
        return MappingProxyType(self._final_trade_ids)

    def __repr__(self) -> str:
        n_sets = sum(len(regs) for by_nsd in self._simm_results.values() for regs in by_nsd.values())
        return (
            f"SimmCalculator(calculation_currency={self.calculation_currency!r}, "
            f"result_currency={self.result_currency!r}, n_results={n_sets})"
        )
