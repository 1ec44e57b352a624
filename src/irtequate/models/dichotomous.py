"""Dichotomous IRT models: 1PL, 2PL, 3PL, 4PL."""

from typing import Self

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.special import expit

from irtequate.constants import DEFAULT_SCALING_CONSTANT
from irtequate.models.base import ItemResponseModel, _as_theta


class FourParameterLogistic(ItemResponseModel):
    """Four-Parameter Logistic (4PL) IRT Model.

    P(X=1|θ) = c + (d - c) / (1 + exp(-D * a * (θ - b)))

    Parameters
    ----------
    discrimination : float, default=1.0
        Item discrimination (a).
    difficulty : float, default=0.0
        Item difficulty (b).
    guessing : float, default=0.0
        Lower asymptote (c).
    slipping : float, default=1.0
        Upper asymptote (d).
    D : float, default=1.7
        Logistic scaling constant.
    score_weights : array-like of length 2, optional
        Scores for an incorrect and a correct response.

    Examples
    --------
    >>> item = FourParameterLogistic(1.2, 0.5, guessing=0.2, slipping=0.95)
    >>> item.probability([0.0]).shape
    (1, 2)
    """

    model_name = "4PL"

    def __init__(
        self,
        discrimination: float = 1.0,
        difficulty: float = 0.0,
        guessing: float = 0.0,
        slipping: float = 1.0,
        D: float = DEFAULT_SCALING_CONSTANT,
        score_weights: ArrayLike | None = None,
    ) -> None:
        if not 0.0 <= guessing < slipping <= 1.0:
            raise ValueError(
                "Asymptotes must satisfy 0 <= guessing < slipping <= 1, "
                f"got guessing={guessing}, slipping={slipping}"
            )
        self._discrimination = float(discrimination)
        self._difficulty = float(difficulty)
        self._guessing = float(guessing)
        self._slipping = float(slipping)
        super().__init__(D=D, score_weights=score_weights)

    @property
    def n_categories(self) -> int:
        return 2

    @property
    def discrimination(self) -> float:
        return self._discrimination

    @property
    def difficulty(self) -> float:
        return self._difficulty

    @property
    def guessing(self) -> float:
        return self._guessing

    @property
    def slipping(self) -> float:
        return self._slipping

    def linking_difficulties(self) -> NDArray[np.float64]:
        return np.array([self._difficulty])

    def prob_correct(self, theta: ArrayLike) -> NDArray[np.float64]:
        """Probability of a correct response at each theta."""
        z = self.D * self._discrimination * (_as_theta(theta) - self._difficulty)
        return self._guessing + (self._slipping - self._guessing) * expit(z)

    def probability(self, theta: ArrayLike) -> NDArray[np.float64]:
        p = self.prob_correct(theta)
        return np.column_stack([1.0 - p, p])

    def _expected_value_derivative(
        self, theta: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        s = expit(self.D * self._discrimination * (theta - self._difficulty))
        weight_gap = self._score_weights[1] - self._score_weights[0]
        return (
            weight_gap
            * (self._slipping - self._guessing)
            * self.D
            * self._discrimination
            * s
            * (1.0 - s)
        )

    def rescale(self, intercept: float, slope: float) -> Self:
        return self._with(
            discrimination=self._discrimination / slope,
            difficulty=self._difficulty * slope + intercept,
        )

    def _with(self, discrimination: float, difficulty: float) -> Self:
        return FourParameterLogistic(
            discrimination,
            difficulty,
            guessing=self._guessing,
            slipping=self._slipping,
            D=self.D,
            score_weights=self._score_weights,
        )

    def _parameter_repr(self) -> str:
        return (
            f"discrimination={self._discrimination}, difficulty={self._difficulty}, "
            f"guessing={self._guessing}, slipping={self._slipping}"
        )


class ThreeParameterLogistic(FourParameterLogistic):
    """Three-Parameter Logistic (3PL) IRT Model and its 1PL/2PL special cases.

    P(X=1|θ) = c + (1 - c) / (1 + exp(-D * a * (θ - b)))

    Parameters
    ----------
    discrimination : float, default=1.0
        Item discrimination (a).
    difficulty : float, default=0.0
        Item difficulty (b).
    guessing : float, default=0.0
        Lower asymptote (c).
    D : float, default=1.7
        Logistic scaling constant.
    n_parameters : {1, 2, 3}, default=3
        Number of free parameters the item was calibrated with. A 1PL item
        has a fixed discrimination and no guessing; a 2PL item has no
        guessing.
    score_weights : array-like of length 2, optional
        Scores for an incorrect and a correct response.

    Examples
    --------
    >>> rasch_item = ThreeParameterLogistic(difficulty=-0.5, D=1.0, n_parameters=1)
    >>> rasch_item.model_name
    '1PL'
    """

    def __init__(
        self,
        discrimination: float = 1.0,
        difficulty: float = 0.0,
        guessing: float = 0.0,
        D: float = DEFAULT_SCALING_CONSTANT,
        n_parameters: int = 3,
        score_weights: ArrayLike | None = None,
    ) -> None:
        if n_parameters not in (1, 2, 3):
            raise ValueError(f"n_parameters must be 1, 2, or 3, got {n_parameters}")
        if n_parameters < 3 and guessing != 0.0:
            raise ValueError(f"A {n_parameters}PL item cannot have a guessing parameter")
        self.n_parameters = n_parameters
        super().__init__(
            discrimination,
            difficulty,
            guessing=guessing,
            slipping=1.0,
            D=D,
            score_weights=score_weights,
        )

    @property
    def model_name(self) -> str:  # type: ignore[override]
        return f"{self.n_parameters}PL"

    def _with(self, discrimination: float, difficulty: float) -> Self:
        return ThreeParameterLogistic(
            discrimination,
            difficulty,
            guessing=self._guessing,
            D=self.D,
            n_parameters=self.n_parameters,
            score_weights=self._score_weights,
        )

    def _parameter_repr(self) -> str:
        return (
            f"discrimination={self._discrimination}, difficulty={self._difficulty}, "
            f"guessing={self._guessing}, n_parameters={self.n_parameters}"
        )
