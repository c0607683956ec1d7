"""
Shared building blocks of the margin calculators.

Contains the grouping pass that indexes the net sensitivities of one
product class by risk type, bucket and qualifier, and the small numerical
helpers used by every aggregation step.
"""

import math
import sys
from collections import defaultdict
from collections.abc import Callable, Iterable

import numpy as np
from scipy.stats import norm

from simm_core.model.records import SensitivityRecord
from simm_core.model.types import ProductClass, RiskType

# 99.5% quantile of the standard normal distribution
_Q_995 = norm.ppf(0.995)

_EPSILON = sys.float_info.epsilon


def close_enough(x: float, y: float, n: int = 42) -> bool:
    """
    Check two reals for equality up to a relative tolerance.

    The tolerance is ``n`` machine epsilons. When either value is zero the
    comparison falls back to an absolute tolerance of ``(n * eps) ** 2``.

    Example
    -------
    >>> close_enough(0.1 + 0.2, 0.3)
    True
    >>> close_enough(1.0, 1.0 + 1e-10)
    False
    """
    if x == y:
        return True
    diff = abs(x - y)
    tolerance = n * _EPSILON
    if x * y == 0.0:
        return diff < tolerance * tolerance
    return diff <= tolerance * abs(x) or diff <= tolerance * abs(y)


def lambda_theta(theta: float) -> float:
    """
    Curvature skew adjustment lambda(theta) = (q^2 - 1)(1 + theta) - theta.

    Parameters
    ----------
    theta : float
        min(sum CVR / sum |CVR|, 0), in [-1, 0]

    Returns
    -------
    float
        Scaling applied to the square root term of the curvature margin
    """
    return (_Q_995 * _Q_995 - 1.0) * (1.0 + theta) - theta


def clamp(value: float, bound: float) -> float:
    """Restrict ``value`` to [-bound, bound]."""
    return max(min(value, bound), -bound)


def concentration_factor(net_amount: float, threshold: float) -> float:
    """
    Concentration risk factor max(1, sqrt(|net| / threshold)).

    An infinite threshold gives a factor of 1.
    """
    return max(1.0, math.sqrt(abs(net_amount / threshold)))


def pairwise_matrix(
    size: int, value: Callable[[int, int], float], diagonal: float = 1.0
) -> np.ndarray:
    """
    Build a symmetric matrix from a pairwise function.

    ``value(i, j)`` is called once for each pair with ``j < i``.

    Parameters
    ----------
    size : int
        Matrix dimension
    value : Callable[[int, int], float]
        Off-diagonal entry for a pair of indices
    diagonal : float
        Value placed on the diagonal

    Returns
    -------
    np.ndarray
        Symmetric (size, size) matrix
    """
    matrix = np.zeros((size, size))
    np.fill_diagonal(matrix, diagonal)
    for i in range(size):
        for j in range(i):
            matrix[i, j] = matrix[j, i] = value(i, j)
    return matrix


def correlated_sum(weighted: np.ndarray, correlation: np.ndarray) -> float:
    """
    Aggregate weighted sensitivities: sqrt(max(ws' C ws, 0)).

    With a unit diagonal this is sqrt(sum ws_k^2 + sum_{k != l} C_kl ws_k ws_l).
    """
    if weighted.size == 0:
        return 0.0
    return math.sqrt(max(float(weighted @ correlation @ weighted), 0.0))


def cross_bucket_sum(
    bucket_margins: np.ndarray, bucket_sums: np.ndarray, correlation: np.ndarray
) -> float:
    """
    Aggregate bucket margins K_b with clamped sums S_b.

    Returns sum K_b^2 + sum_{b != c} C_bc S_b S_c, before the square root.
    ``correlation`` must have a zero diagonal.
    """
    if bucket_margins.size == 0:
        return 0.0
    return float(bucket_margins @ bucket_margins + bucket_sums @ correlation @ bucket_sums)


class SensitivityGroups:
    """
    Net sensitivities of one product class indexed by risk type, bucket and
    qualifier.

    The index is built once and replaces repeated scans of the record list.
    Buckets and qualifiers are iterated in sorted order, and records within
    a qualifier keep the order they were given in.

    Parameters
    ----------
    records : Iterable[SensitivityRecord]
        Net sensitivities, all of the same product class

    Example
    -------
    >>> groups = SensitivityGroups(records)
    >>> for bucket, by_qualifier in groups.buckets(RiskType.EQUITY).items():
    ...     print(bucket, sorted(by_qualifier))
    """

    def __init__(self, records: Iterable[SensitivityRecord]) -> None:
        nested: dict[RiskType, dict[str, dict[str, list[SensitivityRecord]]]] = defaultdict(
            lambda: defaultdict(lambda: defaultdict(list))
        )
        for record in records:
            nested[record.risk_type][record.bucket][record.qualifier].append(record)

        self._groups: dict[RiskType, dict[str, dict[str, list[SensitivityRecord]]]] = {
            risk_type: {
                bucket: {qualifier: by_qualifier[qualifier] for qualifier in sorted(by_qualifier)}
                for bucket, by_qualifier in sorted(by_bucket.items())
            }
            for risk_type, by_bucket in nested.items()
        }

    @classmethod
    def by_product_class(
        cls, records: Iterable[SensitivityRecord]
    ) -> dict[ProductClass, "SensitivityGroups"]:
        """
        Split records by product class and group each class.

        Product classes are returned in enumeration order.
        """
        split: dict[ProductClass, list[SensitivityRecord]] = defaultdict(list)
        for record in records:
            split[record.product_class].append(record)
        return {pc: cls(split[pc]) for pc in ProductClass if pc in split}

    def __contains__(self, risk_type: RiskType) -> bool:
        return risk_type in self._groups

    def buckets(self, risk_type: RiskType) -> dict[str, dict[str, list[SensitivityRecord]]]:
        """Bucket -> qualifier -> records for a risk type (empty if absent)."""
        return self._groups.get(risk_type, {})

    def bucket_records(self, risk_type: RiskType, bucket: str) -> list[SensitivityRecord]:
        """All records of a risk type in one bucket, ordered by qualifier."""
        by_qualifier = self.buckets(risk_type).get(bucket, {})
        return [record for records in by_qualifier.values() for record in records]

    def qualifiers(self, risk_type: RiskType) -> list[str]:
        """Sorted distinct qualifiers of a risk type."""
        found = set()
        for by_qualifier in self.buckets(risk_type).values():
            found.update(by_qualifier)
        return sorted(found)

    def records(self, risk_type: RiskType, qualifier: str | None = None) -> list[SensitivityRecord]:
        """Records of a risk type, optionally restricted to one qualifier."""
        result = []
        for by_qualifier in self.buckets(risk_type).values():
            for q, records in by_qualifier.items():
                if qualifier is None or q == qualifier:
                    result.extend(records)
        return result
