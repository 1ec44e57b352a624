"""Robust z screening of common items for parameter drift.

Before linking, each common item is compared across forms:

- discriminations through the difference of their logarithms
- difficulties (steps for polytomous items) through b_Y - slope * b_X

A robust z statistic built from the median and interquartile range of
these differences flags items that drifted. The means over the items that
were not flagged give drift-resistant slope and intercept estimates.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats

from irtequate.constants import ROBUST_Z_IQR_SCALE
from irtequate.equating.linking import LinkingCoefficients, _pooled_parameters
from irtequate.equating.validation import check_common_items
from irtequate.models.base import ItemResponseModel, ItemSet

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RobustZResult:
    """Robust z screening of common items.

    Attributes
    ----------
    item_names : list[str]
        Common items in Form Y order.
    discrimination_z : NDArray[np.float64] | None
        Robust z of the log discrimination differences, one per item.
        None when every discrimination on both forms is one.
    discrimination_p : NDArray[np.float64] | None
        One-sided p-values of ``discrimination_z``.
    difficulty_items : list[str]
        Item owning each difficulty; polytomous items repeat per step.
    difficulty_z : NDArray[np.float64]
        Robust z of the difficulty differences.
    difficulty_p : NDArray[np.float64]
        One-sided p-values of ``difficulty_z``.
    slope : float
        exp of the mean log discrimination difference over unflagged items,
        or 1 without discriminations.
    intercept : float
        Mean difficulty difference over unflagged difficulties.
    significance_level : float
        Two-sided significance level of the test.
    """

    item_names: list[str]
    discrimination_z: NDArray[np.float64] | None
    discrimination_p: NDArray[np.float64] | None
    difficulty_items: list[str]
    difficulty_z: NDArray[np.float64]
    difficulty_p: NDArray[np.float64]
    slope: float
    intercept: float
    significance_level: float

    @property
    def flagged_discrimination(self) -> NDArray[np.bool_]:
        if self.discrimination_p is None:
            return np.zeros(len(self.item_names), dtype=bool)
        return self.discrimination_p <= self.significance_level / 2.0

    @property
    def flagged_difficulty(self) -> NDArray[np.bool_]:
        return self.difficulty_p <= self.significance_level / 2.0

    @property
    def flagged_items(self) -> list[str]:
        """Items flagged on the discrimination or on any difficulty."""
        flagged = {
            name
            for name, f in zip(self.item_names, self.flagged_discrimination)
            if f
        }
        flagged.update(
            name for name, f in zip(self.difficulty_items, self.flagged_difficulty) if f
        )
        return [name for name in self.item_names if name in flagged]

    @property
    def stable_items(self) -> list[str]:
        flagged = set(self.flagged_items)
        return [name for name in self.item_names if name not in flagged]

    def coefficients(self) -> LinkingCoefficients:
        """Drift-resistant coefficients from the unflagged items."""
        return LinkingCoefficients(
            slope=self.slope, intercept=self.intercept, method="robust_z"
        )

    def to_dataframe(
        self, parameter: Literal["difficulty", "discrimination"] = "difficulty"
    ) -> "pd.DataFrame":
        """Convert one of the two tests to a pandas DataFrame."""
        import pandas as pd

        if parameter == "difficulty":
            return pd.DataFrame(
                {
                    "item": self.difficulty_items,
                    "z": self.difficulty_z,
                    "p_value": self.difficulty_p,
                    "flagged": self.flagged_difficulty,
                }
            )
        if parameter != "discrimination":
            raise ValueError(f"Unknown parameter: {parameter}")
        if self.discrimination_z is None:
            raise ValueError("Discriminations are all one; no discrimination test")
        return pd.DataFrame(
            {
                "item": self.item_names,
                "z": self.discrimination_z,
                "p_value": self.discrimination_p,
                "flagged": self.flagged_discrimination,
            }
        )

    def summary(self) -> str:
        sections = []
        if self.discrimination_z is not None:
            sections.append(
                _table(
                    "Robust z Test for Item Discrimination",
                    self.item_names,
                    self.discrimination_z,
                    self.discrimination_p,
                    self.flagged_discrimination,
                )
            )
        sections.append(
            _table(
                "Robust z Test for Item (Step) Difficulty",
                self.difficulty_items,
                self.difficulty_z,
                self.difficulty_p,
                self.flagged_difficulty,
            )
        )
        return "\n\n".join(sections)


def _table(title, names, z, p, flagged) -> str:
    lines = [
        title,
        "=" * 48,
        f"{'Item':<25}{'z':>9}{'p-value':>9}  Sig",
        "-" * 48,
    ]
    for name, zi, pi, fi in zip(names, z, p, flagged):
        lines.append(f"{name:<25}{zi:>9.4f}{pi:>9.4f}  {'*' if fi else ''}")
    lines.append("=" * 48)
    return "\n".join(lines)


def robust_z(values: ArrayLike) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Robust z statistics and one-sided p-values.

        z = (x - median) / (0.74 * IQR)

    Quartiles use the Weibull plotting position. With a vanishing
    interquartile range every z is 0.

    Parameters
    ----------
    values : array-like
        Differences to screen.

    Returns
    -------
    z : NDArray[np.float64]
    p_values : NDArray[np.float64]
        Upper tail probability of ``|z|`` under the standard normal.
    """
    values = np.asarray(values, dtype=np.float64)
    q1, median, q3 = np.percentile(values, [25, 50, 75], method="weibull")
    iqr = q3 - q1
    if iqr < 1e-10:
        z = np.zeros_like(values)
    else:
        z = (values - median) / (ROBUST_Z_IQR_SCALE * iqr)
    return z, stats.norm.sf(np.abs(z))


def _difficulty_owners(items: ItemSet, names: list[str]) -> list[str]:
    owners = []
    for name in names:
        model: ItemResponseModel = items[name]
        owners.extend([name] * len(model.linking_difficulties()))
    return owners


def robust_z_screening(
    form_x: ItemSet,
    form_y: ItemSet,
    significance_level: float = 0.05,
) -> RobustZResult:
    """Screen common items for drift with robust z statistics.

    The discrimination test runs only when some discrimination on either
    form differs from one. Its slope, the exponential of the mean log
    discrimination difference over unflagged items, is then used in the
    difficulty test; otherwise the slope is 1.

    Parameters
    ----------
    form_x : ItemSet
        Common items calibrated on Form X.
    form_y : ItemSet
        Common items calibrated on Form Y.
    significance_level : float
        Two-sided significance level, in (0, 0.5).

    Returns
    -------
    RobustZResult

    Raises
    ------
    DimensionMismatchError
        If the forms do not share exactly the same items.
    ValueError
        If the significance level is out of range or a discrimination is
        not positive.
    """
    if not 0.0 < significance_level < 0.5:
        raise ValueError(
            f"significance_level must lie in (0, 0.5), got {significance_level}"
        )
    names = check_common_items(form_x, form_y)
    a_x, b_x = _pooled_parameters(form_x, names)
    a_y, b_y = _pooled_parameters(form_y, names)
    cutoff = significance_level / 2.0

    z_a = p_a = None
    slope = 1.0
    if np.any(a_x != 1.0) or np.any(a_y != 1.0):
        if np.any(a_x <= 0.0) or np.any(a_y <= 0.0):
            raise ValueError("Robust z screening needs positive discriminations")
        log_diff = np.log(a_x) - np.log(a_y)
        z_a, p_a = robust_z(log_diff)
        slope = float(np.exp(np.mean(log_diff[p_a > cutoff])))

    b_diff = b_y - slope * b_x
    z_b, p_b = robust_z(b_diff)
    intercept = float(np.mean(b_diff[p_b > cutoff]))

    result = RobustZResult(
        item_names=names,
        discrimination_z=z_a,
        discrimination_p=p_a,
        difficulty_items=_difficulty_owners(form_y, names),
        difficulty_z=z_b,
        difficulty_p=p_b,
        slope=slope,
        intercept=intercept,
        significance_level=significance_level,
    )
    if result.flagged_items:
        logger.info(
            "Robust z flagged %d of %d common items: %s",
            len(result.flagged_items),
            len(names),
            ", ".join(result.flagged_items),
        )
    return result


def purify_anchors(
    form_x: ItemSet,
    form_y: ItemSet,
    significance_level: float = 0.05,
    min_anchors: int = 3,
) -> tuple[dict[str, ItemResponseModel], dict[str, ItemResponseModel], list[str]]:
    """Remove drifting items from the common-item set.

    Parameters
    ----------
    form_x : ItemSet
        Common items calibrated on Form X.
    form_y : ItemSet
        Common items calibrated on Form Y.
    significance_level : float
        Two-sided significance level of the robust z test.
    min_anchors : int
        Minimum number of common items to retain. When screening would
        leave fewer, no item is removed.

    Returns
    -------
    tuple[dict, dict, list[str]]
        Purified Form X and Form Y common items and the removed names.
    """
    result = robust_z_screening(form_x, form_y, significance_level)
    stable = result.stable_items
    if len(stable) < min_anchors:
        logger.warning(
            "Removing %d drifting items would leave %d common items (minimum %d); "
            "keeping all items",
            len(result.flagged_items),
            len(stable),
            min_anchors,
        )
        stable = result.item_names
    removed = [name for name in result.item_names if name not in stable]
    return (
        {name: form_x[name] for name in stable},
        {name: form_y[name] for name in stable},
        removed,
    )
