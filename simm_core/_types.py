"""
Common type aliases used throughout the SIMM calculation engine.

These aliases keep the nested result and grouping maps readable in
signatures without introducing extra container classes.
"""

from collections.abc import Callable
from typing import TypeAlias

Amount: TypeAlias = float
"""Monetary amount (sensitivity or margin)."""

BucketMargins: TypeAlias = dict[str, float]
"""
Margin per bucket (or per qualifier for IR and FX) for one risk class and
margin type. The key ``"All"`` holds the aggregated margin.
"""

MarginResult: TypeAlias = tuple[BucketMargins, bool]
"""
Return type of the margin calculators: bucket margins and a flag telling
whether the risk class applies at all to the given product class.
"""

FxSpotFunction: TypeAlias = Callable[[str], float]
"""
Spot FX lookup, called with a currency pair such as ``"USDEUR"``. Results
are converted by dividing USD amounts by the returned rate, i.e. the rate is
the USD value of one unit of the second currency.
"""
