"""Linking coefficients and closed-form linking methods.

This module provides the linear transformation that places Form X on the
Form Y scale together with the mean/mean and mean/sigma moment methods
and the Rasch-family check that decides how many coefficients the
characteristic curve methods estimate.
"""

import math
from dataclasses import dataclass, replace

import numpy as np
from numpy.typing import ArrayLike, NDArray

from irtequate.constants import DEFAULT_PRECISION
from irtequate.equating.validation import check_common_items
from irtequate.models.base import ItemResponseModel, ItemSet
from irtequate.models.dichotomous import FourParameterLogistic


@dataclass(frozen=True)
class LinkingCoefficients:
    """Linear transformation from the Form X scale to the Form Y scale.

        theta_Y = slope * theta_X + intercept
        a_Y = a_X / slope
        b_Y = slope * b_X + intercept

    Attributes
    ----------
    slope : float
        Slope of the transformation (A).
    intercept : float
        Intercept of the transformation (B).
    method : str
        Linking method that produced the coefficients.
    objective_value : float | None
        Minimized criterion value for characteristic curve methods.
    success : bool
        False when the optimizer raised or did not converge.
    message : str
        Optimizer status message.
    precision : int
        Number of decimals used by :meth:`rounded`.
    """

    slope: float = 1.0
    intercept: float = 0.0
    method: str = ""
    objective_value: float | None = None
    success: bool = True
    message: str = ""
    precision: int = DEFAULT_PRECISION

    def transform(self, x: ArrayLike) -> float | NDArray[np.float64]:
        """Map abilities or difficulties from the Form X scale to Form Y."""
        values = self.slope * np.asarray(x, dtype=np.float64) + self.intercept
        return float(values) if values.ndim == 0 else values

    def rounded(self) -> tuple[float, float]:
        """Intercept and slope rounded to ``precision`` decimals."""
        return round(self.intercept, self.precision), round(self.slope, self.precision)

    def transform_items(self, items: ItemSet) -> dict[str, ItemResponseModel]:
        """Rescale every item of a Form X item set onto the Form Y scale."""
        if not self.is_valid():
            raise ValueError(
                f"Cannot transform items with unfitted {self.method} coefficients"
            )
        return {
            name: model.rescale(self.intercept, self.slope)
            for name, model in items.items()
        }

    def is_valid(self) -> bool:
        return math.isfinite(self.slope) and math.isfinite(self.intercept) and self.slope != 0

    def with_precision(self, precision: int) -> "LinkingCoefficients":
        return replace(self, precision=precision)


def is_rasch_family(items: ItemSet) -> bool:
    """Check whether every item belongs to the Rasch family.

    An item qualifies when it is a partial credit model, or a dichotomous
    logistic model with unit discrimination, zero guessing and an upper
    asymptote of one.

    Parameters
    ----------
    items : ItemSet
        Items of one form.

    Returns
    -------
    bool
    """
    for model in items.values():
        if model.is_rasch_model:
            continue
        if (
            isinstance(model, FourParameterLogistic)
            and model.discrimination == 1.0
            and model.guessing == 0.0
            and model.slipping == 1.0
        ):
            continue
        return False
    return True


def _pooled_parameters(
    items: ItemSet, names: list[str]
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    discrimination = np.array([items[name].discrimination for name in names])
    difficulty = np.concatenate([items[name].linking_difficulties() for name in names])
    return discrimination, difficulty


def mean_mean(
    form_x: ItemSet,
    form_y: ItemSet,
    precision: int = DEFAULT_PRECISION,
) -> LinkingCoefficients:
    """Mean/mean linking.

    slope = mean(a_X) / mean(a_Y)
    intercept = mean(b_Y) - slope * mean(b_X)

    Every item contributes one discrimination; polytomous items contribute
    one difficulty per step.

    Parameters
    ----------
    form_x : ItemSet
        Common items calibrated on Form X.
    form_y : ItemSet
        Common items calibrated on Form Y.
    precision : int
        Decimals used when reporting.

    Returns
    -------
    LinkingCoefficients
    """
    names = check_common_items(form_x, form_y)
    a_x, b_x = _pooled_parameters(form_x, names)
    a_y, b_y = _pooled_parameters(form_y, names)

    slope = float(np.mean(a_x) / np.mean(a_y))
    intercept = float(np.mean(b_y) - slope * np.mean(b_x))
    return LinkingCoefficients(
        slope=slope, intercept=intercept, method="mean_mean", precision=precision
    )


def mean_sigma(
    form_x: ItemSet,
    form_y: ItemSet,
    unbiased_sd: bool = True,
    precision: int = DEFAULT_PRECISION,
) -> LinkingCoefficients:
    """Mean/sigma linking.

    slope = SD(b_Y) / SD(b_X)
    intercept = mean(b_Y) - slope * mean(b_X)

    The slope is fixed at 1 when both forms are Rasch family.

    Parameters
    ----------
    form_x : ItemSet
        Common items calibrated on Form X.
    form_y : ItemSet
        Common items calibrated on Form Y.
    unbiased_sd : bool
        Use the n - 1 denominator for the standard deviations. With False
        the population (n) denominator is used.
    precision : int
        Decimals used when reporting.

    Returns
    -------
    LinkingCoefficients
    """
    names = check_common_items(form_x, form_y)
    _, b_x = _pooled_parameters(form_x, names)
    _, b_y = _pooled_parameters(form_y, names)

    if is_rasch_family(form_x) and is_rasch_family(form_y):
        slope = 1.0
    else:
        ddof = 1 if unbiased_sd else 0
        if b_x.shape[0] <= ddof:
            raise ValueError("Mean/sigma linking needs at least two difficulties")
        slope = float(np.std(b_y, ddof=ddof) / np.std(b_x, ddof=ddof))
    intercept = float(np.mean(b_y) - slope * np.mean(b_x))
    return LinkingCoefficients(
        slope=slope, intercept=intercept, method="mean_sigma", precision=precision
    )
