"""Polytomous IRT models: GPCM, PCM, GRM."""

from typing import Self

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.special import expit, softmax

from irtequate.constants import DEFAULT_SCALING_CONSTANT
from irtequate.models.base import ItemResponseModel, _as_theta


def _as_parameters(values: ArrayLike, name: str) -> NDArray[np.float64]:
    params = np.atleast_1d(np.asarray(values, dtype=np.float64)).copy()
    if params.ndim != 1 or params.shape[0] < 1:
        raise ValueError(f"{name} must be a non-empty 1-D sequence")
    params.setflags(write=False)
    return params


class GeneralizedPartialCredit(ItemResponseModel):
    """Generalized Partial Credit Model (GPCM).

    For category k = 0, ..., m the numerator is

    exp(Σ_{v<k} D * a * (θ - b_v))

    with an empty sum for k = 0, and the probability is the numerator
    divided by the sum over all categories.

    Parameters
    ----------
    discrimination : float
        Item discrimination (a).
    steps : array-like of shape (n_categories - 1,)
        Step parameters b_v.
    D : float, default=1.7
        Logistic scaling constant.
    score_weights : array-like, optional
        Category scores. Defaults to 0, ..., n_categories - 1.

    Examples
    --------
    >>> item = GeneralizedPartialCredit(0.9, [-1.0, 0.2, 1.1])
    >>> item.n_categories
    4
    """

    model_name = "GPCM"

    def __init__(
        self,
        discrimination: float,
        steps: ArrayLike,
        D: float = DEFAULT_SCALING_CONSTANT,
        score_weights: ArrayLike | None = None,
    ) -> None:
        self._discrimination = float(discrimination)
        self._steps = _as_parameters(steps, "steps")
        super().__init__(D=D, score_weights=score_weights)

    @classmethod
    def from_thresholds(
        cls,
        discrimination: float,
        difficulty: float,
        thresholds: ArrayLike,
        D: float = DEFAULT_SCALING_CONSTANT,
        score_weights: ArrayLike | None = None,
    ) -> "GeneralizedPartialCredit":
        """Build an item from the location-threshold parameterization.

        The logit of each step is D * a * (θ - b + d_v), so the step
        parameters are b - d_v.
        """
        steps = float(difficulty) - np.asarray(thresholds, dtype=np.float64)
        return cls(discrimination, steps, D=D, score_weights=score_weights)

    @property
    def n_categories(self) -> int:
        return self._steps.shape[0] + 1

    @property
    def discrimination(self) -> float:
        return self._discrimination

    @property
    def steps(self) -> NDArray[np.float64]:
        return self._steps

    def linking_difficulties(self) -> NDArray[np.float64]:
        return self._steps.copy()

    def _logits(self, theta: NDArray[np.float64]) -> NDArray[np.float64]:
        z = self.D * self._discrimination * (theta[:, None] - self._steps[None, :])
        cumulative = np.cumsum(z, axis=1)
        return np.hstack([np.zeros((theta.shape[0], 1)), cumulative])

    def probability(self, theta: ArrayLike) -> NDArray[np.float64]:
        return softmax(self._logits(_as_theta(theta)), axis=1)

    def _expected_value_derivative(
        self, theta: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        probs = self.probability(theta)
        k = np.arange(self.n_categories, dtype=np.float64)
        w = self._score_weights
        covariance = probs @ (w * k) - (probs @ w) * (probs @ k)
        return self.D * self._discrimination * covariance

    def rescale(self, intercept: float, slope: float) -> "GeneralizedPartialCredit":
        return GeneralizedPartialCredit(
            self._discrimination / slope,
            self._steps * slope + intercept,
            D=self.D,
            score_weights=self._score_weights,
        )

    def _parameter_repr(self) -> str:
        return f"discrimination={self._discrimination}, steps={self._steps.tolist()}"


class PartialCreditModel(GeneralizedPartialCredit):
    """Partial Credit Model (PCM), a Rasch-family polytomous model.

    A GPCM with unit discrimination whose steps are b + τ_v.

    Parameters
    ----------
    difficulty : float
        Overall item location (b).
    thresholds : array-like of shape (n_categories - 1,)
        Threshold deviations τ_v from the item location.
    D : float, default=1.7
        Logistic scaling constant.
    score_weights : array-like, optional
        Category scores. Defaults to 0, ..., n_categories - 1.
    """

    model_name = "PCM"
    is_rasch_model = True

    def __init__(
        self,
        difficulty: float,
        thresholds: ArrayLike,
        D: float = DEFAULT_SCALING_CONSTANT,
        score_weights: ArrayLike | None = None,
    ) -> None:
        self._difficulty = float(difficulty)
        self._thresholds = _as_parameters(thresholds, "thresholds")
        super().__init__(
            1.0,
            self._difficulty + self._thresholds,
            D=D,
            score_weights=score_weights,
        )

    @property
    def difficulty(self) -> float:
        return self._difficulty

    @property
    def thresholds(self) -> NDArray[np.float64]:
        return self._thresholds

    def rescale(self, intercept: float, slope: float) -> GeneralizedPartialCredit:
        if slope == 1.0:
            return PartialCreditModel(
                self._difficulty + intercept,
                self._thresholds,
                D=self.D,
                score_weights=self._score_weights,
            )
        # A slope other than one leaves the Rasch family.
        return super().rescale(intercept, slope)

    def _parameter_repr(self) -> str:
        return f"difficulty={self._difficulty}, thresholds={self._thresholds.tolist()}"


class GradedResponseModel(ItemResponseModel):
    """Graded Response Model (GRM).

    Boundary curves P*(X >= k|θ) = 1 / (1 + exp(-D * a * (θ - b_k))) for
    k = 1, ..., m, with P*(X >= 0) = 1. Category probabilities are the
    differences of adjacent boundary curves.

    Parameters
    ----------
    discrimination : float
        Item discrimination (a).
    thresholds : array-like of shape (n_categories - 1,)
        Increasing boundary locations b_k.
    D : float, default=1.7
        Logistic scaling constant.
    score_weights : array-like, optional
        Category scores. Defaults to 0, ..., n_categories - 1.
    """

    model_name = "GRM"

    def __init__(
        self,
        discrimination: float,
        thresholds: ArrayLike,
        D: float = DEFAULT_SCALING_CONSTANT,
        score_weights: ArrayLike | None = None,
    ) -> None:
        self._discrimination = float(discrimination)
        self._thresholds = _as_parameters(thresholds, "thresholds")
        if np.any(np.diff(self._thresholds) * np.sign(self._discrimination) < 0):
            raise ValueError("GRM thresholds must be ordered")
        super().__init__(D=D, score_weights=score_weights)

    @property
    def n_categories(self) -> int:
        return self._thresholds.shape[0] + 1

    @property
    def discrimination(self) -> float:
        return self._discrimination

    @property
    def thresholds(self) -> NDArray[np.float64]:
        return self._thresholds

    def linking_difficulties(self) -> NDArray[np.float64]:
        return self._thresholds.copy()

    def _boundaries(self, theta: NDArray[np.float64]) -> NDArray[np.float64]:
        z = self.D * self._discrimination * (theta[:, None] - self._thresholds[None, :])
        return expit(z)

    def probability(self, theta: ArrayLike) -> NDArray[np.float64]:
        theta = _as_theta(theta)
        n = theta.shape[0]
        cumulative = np.hstack([np.ones((n, 1)), self._boundaries(theta), np.zeros((n, 1))])
        return cumulative[:, :-1] - cumulative[:, 1:]

    def _expected_value_derivative(
        self, theta: NDArray[np.float64]
    ) -> NDArray[np.float64]:
        p_star = self._boundaries(theta)
        d_star = self.D * self._discrimination * p_star * (1.0 - p_star)
        n = theta.shape[0]
        d_cumulative = np.hstack([np.zeros((n, 1)), d_star, np.zeros((n, 1))])
        return (d_cumulative[:, :-1] - d_cumulative[:, 1:]) @ self._score_weights

    def rescale(self, intercept: float, slope: float) -> Self:
        return GradedResponseModel(
            self._discrimination / slope,
            self._thresholds * slope + intercept,
            D=self.D,
            score_weights=self._score_weights,
        )

    def _parameter_repr(self) -> str:
        return (
            f"discrimination={self._discrimination}, "
            f"thresholds={self._thresholds.tolist()}"
        )
