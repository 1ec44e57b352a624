from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Self

import numpy as np
from numpy.typing import ArrayLike, NDArray

from irtequate.constants import DEFAULT_SCALING_CONSTANT
from irtequate.typing import ProbabilityMatrix, ThetaArray


class ItemResponseModel(ABC):
    """Calibrated item response model for a single item.

    Instances are immutable once constructed. Linking and equating code
    depends only on the methods defined here, never on the parameter
    layout of a particular family.

    Parameters
    ----------
    D : float, default=1.7
        Logistic scaling constant. Use 1.0 for the logistic metric.
    score_weights : array-like, optional
        Score assigned to each response category. Defaults to
        ``0, 1, ..., n_categories - 1``.
    """

    model_name: str = "BaseModel"
    is_rasch_model: bool = False

    def __init__(
        self,
        D: float = DEFAULT_SCALING_CONSTANT,
        score_weights: ArrayLike | None = None,
    ) -> None:
        if D <= 0:
            raise ValueError(f"D must be positive, got {D}")
        self.D = float(D)

        if score_weights is None:
            weights = np.arange(self.n_categories, dtype=np.float64)
        else:
            weights = np.asarray(score_weights, dtype=np.float64).copy()
            if weights.shape != (self.n_categories,):
                raise ValueError(
                    f"score_weights must have length {self.n_categories}, "
                    f"got shape {weights.shape}"
                )
        weights.setflags(write=False)
        self._score_weights = weights

    @property
    @abstractmethod
    def n_categories(self) -> int: ...

    @property
    @abstractmethod
    def discrimination(self) -> float: ...

    @property
    def guessing(self) -> float:
        """Lower asymptote. Zero for models without one."""
        return 0.0

    @property
    def slipping(self) -> float:
        """Upper asymptote. One for models without one."""
        return 1.0

    @property
    def score_weights(self) -> NDArray[np.float64]:
        return self._score_weights

    @property
    def min_score_weight(self) -> float:
        return float(self._score_weights.min())

    @property
    def max_score_weight(self) -> float:
        return float(self._score_weights.max())

    @abstractmethod
    def linking_difficulties(self) -> NDArray[np.float64]:
        """Location parameters used by the moment linking methods."""
        ...

    @abstractmethod
    def probability(self, theta: ArrayLike) -> ProbabilityMatrix:
        """Category response probabilities.

        Parameters
        ----------
        theta : array-like of shape (n_theta,)
            Ability values.

        Returns
        -------
        ndarray of shape (n_theta, n_categories)
        """
        ...

    @abstractmethod
    def _expected_value_derivative(
        self, theta: NDArray[np.float64]
    ) -> NDArray[np.float64]: ...

    @abstractmethod
    def rescale(self, intercept: float, slope: float) -> Self:
        """Return a copy of the item placed on a new scale.

        Abilities map as ``theta* = slope * theta + intercept``, so
        discriminations are divided by ``slope`` and locations become
        ``slope * b + intercept``.
        """
        ...

    def expected_value(self, theta: ArrayLike) -> NDArray[np.float64]:
        """Expected item score at each theta."""
        return self.probability(theta) @ self._score_weights

    def deriv_theta(self, theta: ArrayLike) -> NDArray[np.float64]:
        """First derivative of the expected item score with respect to theta."""
        return self._expected_value_derivative(_as_theta(theta))

    def t_star(self, intercept: float, slope: float) -> "ItemResponseModel":
        """Item placed on the Form Y scale by the candidate transformation."""
        return self.rescale(intercept, slope)

    def t_sharp(self, intercept: float, slope: float) -> "ItemResponseModel":
        """Item placed on the Form X scale by the inverse transformation."""
        return self.rescale(-intercept / slope, 1.0 / slope)

    def t_star_probability(
        self, theta: ArrayLike, intercept: float, slope: float
    ) -> NDArray[np.float64]:
        return self.t_star(intercept, slope).probability(theta)

    def t_sharp_probability(
        self, theta: ArrayLike, intercept: float, slope: float
    ) -> NDArray[np.float64]:
        return self.t_sharp(intercept, slope).probability(theta)

    def t_star_expected_value(
        self, theta: ArrayLike, intercept: float, slope: float
    ) -> NDArray[np.float64]:
        return self.t_star(intercept, slope).expected_value(theta)

    def t_sharp_expected_value(
        self, theta: ArrayLike, intercept: float, slope: float
    ) -> NDArray[np.float64]:
        return self.t_sharp(intercept, slope).expected_value(theta)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._parameter_repr()}, D={self.D})"

    def _parameter_repr(self) -> str:
        return f"discrimination={self.discrimination}"


ItemSet = Mapping[str, ItemResponseModel]
"""Ordered mapping from item name to calibrated model, one per form."""


def _as_theta(theta: ArrayLike) -> ThetaArray:
    return np.atleast_1d(np.asarray(theta, dtype=np.float64)).ravel()


def tcc(
    items: ItemSet | list[ItemResponseModel], theta: ArrayLike
) -> NDArray[np.float64]:
    """Sum of expected item scores at each theta.

    Parameters
    ----------
    items : mapping or list of ItemResponseModel
        Items of one form.
    theta : array-like of shape (n_theta,)
        Ability values.

    Returns
    -------
    ndarray of shape (n_theta,)
    """
    models = items.values() if isinstance(items, Mapping) else items
    theta = _as_theta(theta)
    curve = np.zeros(theta.shape[0])
    for model in models:
        curve += model.expected_value(theta)
    return curve


def tcc_derivative(
    items: ItemSet | list[ItemResponseModel], theta: ArrayLike
) -> NDArray[np.float64]:
    """Derivative of the test characteristic curve with respect to theta."""
    models = items.values() if isinstance(items, Mapping) else items
    theta = _as_theta(theta)
    deriv = np.zeros(theta.shape[0])
    for model in models:
        deriv += model.deriv_theta(theta)
    return deriv

