"""Characteristic curve criteria for IRT scale linking.

Both criteria compare Form Y curves with Form X curves placed on the
Form Y scale by a candidate (intercept, slope):

- Q1 is evaluated over the Form Y ability distribution and transforms
  Form X with t-star.
- Q2 is evaluated over the Form X ability distribution and transforms
  Form Y back with t-sharp.

Haebara compares item category curves; Stocking-Lord compares test
characteristic curves.
"""

from abc import ABC, abstractmethod
from typing import get_args

import numpy as np
from numpy.typing import ArrayLike

from irtequate.equating.validation import check_common_items
from irtequate.models.base import ItemResponseModel, ItemSet, tcc
from irtequate.quadrature import QuadratureRule
from irtequate.typing import CriterionType


class CharacteristicCurveCriterion(ABC):
    """Objective function for characteristic curve linking.

    The criterion is immutable. The optimizer calls one of two pure
    functions of the parameter vector: :meth:`intercept_only` for
    Rasch-family forms and :meth:`intercept_slope` otherwise.

    Parameters
    ----------
    form_x : ItemSet
        Common items calibrated on Form X.
    form_y : ItemSet
        Common items calibrated on Form Y.
    quad_x : QuadratureRule
        Form X ability distribution.
    quad_y : QuadratureRule
        Form Y ability distribution.
    criterion : {"Q1", "Q2", "Q1Q2"}
        Which component criteria to sum.
    standardized : bool
        Divide each component by its normalizing constant.
    """

    method_name: str = ""

    def __init__(
        self,
        form_x: ItemSet,
        form_y: ItemSet,
        quad_x: QuadratureRule,
        quad_y: QuadratureRule,
        criterion: CriterionType = "Q1Q2",
        standardized: bool = True,
    ) -> None:
        if criterion not in get_args(CriterionType):
            raise ValueError(
                f"Unknown criterion: {criterion}. Use one of {get_args(CriterionType)}"
            )
        names = check_common_items(form_x, form_y)
        self.item_names = names
        self.form_x: list[ItemResponseModel] = [form_x[name] for name in names]
        self.form_y: list[ItemResponseModel] = [form_y[name] for name in names]
        self.quad_x = quad_x
        self.quad_y = quad_y
        self.criterion = criterion
        self.standardized = standardized

    def q1(self, intercept: float, slope: float = 1.0) -> float:
        """Form Y curves against transformed Form X curves on the Form Y quadrature."""
        total = self._discrepancy(
            self.form_y,
            [m.t_star(intercept, slope) for m in self.form_x],
            self.quad_y,
        )
        return total / self._normalizer(self.quad_y) if self.standardized else total

    def q2(self, intercept: float, slope: float = 1.0) -> float:
        """Form X curves against back-transformed Form Y curves on the Form X quadrature."""
        total = self._discrepancy(
            self.form_x,
            [m.t_sharp(intercept, slope) for m in self.form_y],
            self.quad_x,
        )
        return total / self._normalizer(self.quad_x) if self.standardized else total

    def value(self, intercept: float, slope: float = 1.0) -> float:
        """Criterion value at a candidate transformation."""
        if self.criterion == "Q1":
            return self.q1(intercept, slope)
        if self.criterion == "Q2":
            return self.q2(intercept, slope)
        return self.q1(intercept, slope) + self.q2(intercept, slope)

    def intercept_only(self, params: ArrayLike) -> float:
        """Criterion as a function of ``[intercept]`` with the slope fixed at 1."""
        params = np.atleast_1d(np.asarray(params, dtype=np.float64))
        if params.shape != (1,):
            raise ValueError(
                f"intercept_only expects 1 parameter, got {params.shape[0]}"
            )
        return self.value(float(params[0]), 1.0)

    def intercept_slope(self, params: ArrayLike) -> float:
        """Criterion as a function of ``[intercept, slope]``."""
        params = np.atleast_1d(np.asarray(params, dtype=np.float64))
        if params.shape != (2,):
            raise ValueError(
                f"intercept_slope expects 2 parameters, got {params.shape[0]}"
            )
        return self.value(float(params[0]), float(params[1]))

    @abstractmethod
    def _discrepancy(
        self,
        reference: list[ItemResponseModel],
        transformed: list[ItemResponseModel],
        quadrature: QuadratureRule,
    ) -> float: ...

    @abstractmethod
    def _normalizer(self, quadrature: QuadratureRule) -> float: ...


class HaebaraCriterion(CharacteristicCurveCriterion):
    """Haebara criterion: squared differences of item category curves.

    Standardized components are divided by the total number of response
    categories times the sum of the quadrature weights.

    Examples
    --------
    >>> crit = HaebaraCriterion(form_x, form_y, quad_x, quad_y)
    >>> crit.intercept_slope([-0.47, 1.07])
    """

    method_name = "haebara"

    def _discrepancy(
        self,
        reference: list[ItemResponseModel],
        transformed: list[ItemResponseModel],
        quadrature: QuadratureRule,
    ) -> float:
        theta = quadrature.points
        weights = quadrature.weights[:, None]
        total = 0.0
        for ref, trans in zip(reference, transformed):
            diff = ref.probability(theta) - trans.probability(theta)
            total += float(np.sum(diff * diff * weights))
        return total

    def _normalizer(self, quadrature: QuadratureRule) -> float:
        n_categories = sum(model.n_categories for model in self.form_y)
        return n_categories * float(np.sum(quadrature.weights))


class StockingLordCriterion(CharacteristicCurveCriterion):
    """Stocking-Lord criterion: squared differences of test characteristic curves.

    Standardized components are divided by the sum of the quadrature
    weights.
    """

    method_name = "stocking_lord"

    def _discrepancy(
        self,
        reference: list[ItemResponseModel],
        transformed: list[ItemResponseModel],
        quadrature: QuadratureRule,
    ) -> float:
        theta = quadrature.points
        diff = tcc(reference, theta) - tcc(transformed, theta)
        return float(np.sum(diff * diff * quadrature.weights))

    def _normalizer(self, quadrature: QuadratureRule) -> float:
        return float(np.sum(quadrature.weights))
