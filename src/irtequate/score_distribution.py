"""Model-implied summed score distributions.

This module computes the marginal distribution of the summed score on a
form from item response models and a quadrature rule, using the
Lord-Wingersky recursion generalized to polytomous items.
"""

from collections.abc import Mapping

import numpy as np
from numpy.typing import NDArray

from irtequate.models.base import ItemResponseModel, ItemSet
from irtequate.quadrature import QuadratureRule


def _integer_weights(model: ItemResponseModel) -> NDArray[np.int_]:
    weights = model.score_weights
    rounded = np.rint(weights)
    if not np.allclose(weights, rounded):
        raise ValueError(
            f"Summed score distributions need integer score weights, got {weights.tolist()}"
        )
    return rounded.astype(int)


def lord_wingersky_recursion(
    items: ItemSet | list[ItemResponseModel],
    theta: NDArray[np.float64],
) -> tuple[NDArray[np.float64], int]:
    """Conditional summed score probabilities at each theta.

    Items are added one at a time. For each theta the probability of
    summed score x after adding item j is

        L_j(x) = Σ_k L_{j-1}(x - w_k) P_j(k|θ)

    where w_k is the score weight of category k.

    Parameters
    ----------
    items : mapping or list of ItemResponseModel
        Items of one form. Score weights must be integers.
    theta : ndarray of shape (n_theta,)
        Ability values.

    Returns
    -------
    likelihood : ndarray of shape (n_theta, n_scores)
        P(X = min_score + s | θ) in column s.
    min_score : int
        Smallest attainable summed score.
    """
    models = list(items.values()) if isinstance(items, Mapping) else list(items)
    if not models:
        raise ValueError("At least one item is required")

    weights = [_integer_weights(model) for model in models]
    min_score = int(sum(w.min() for w in weights))
    max_score = int(sum(w.max() for w in weights))
    n_scores = max_score - min_score + 1

    theta = np.asarray(theta, dtype=np.float64).ravel()
    likelihood = np.zeros((theta.shape[0], n_scores))
    likelihood[:, 0] = 1.0
    span = 0

    for model, w in zip(models, weights):
        probs = model.probability(theta)
        offsets = w - w.min()
        updated = np.zeros_like(likelihood)
        for k, offset in enumerate(offsets):
            updated[:, offset : offset + span + 1] += (
                likelihood[:, : span + 1] * probs[:, k : k + 1]
            )
        likelihood = updated
        span += int(offsets.max())

    return likelihood, min_score


class SummedScoreDistribution:
    """Marginal summed score distribution of a form.

    Parameters
    ----------
    items : mapping or list of ItemResponseModel
        Items of one form. Score weights must be integers.
    quadrature : QuadratureRule
        Ability distribution of the population.

    Attributes
    ----------
    density : ndarray of shape (n_scores,)
        P(X = x) for x = min_score, ..., max_score.
    conditional : ndarray of shape (n_points, n_scores)
        P(X = x | θ_i) at each quadrature point.
    min_score : int
        Smallest attainable summed score.
    scores : ndarray of shape (n_scores,)
        Attainable summed scores.

    Examples
    --------
    >>> dist = SummedScoreDistribution(items, QuadratureRule.normal(41))
    >>> dist.density.sum()
    1.0
    """

    def __init__(
        self,
        items: ItemSet | list[ItemResponseModel],
        quadrature: QuadratureRule,
    ) -> None:
        self.quadrature = quadrature
        self.conditional, self.min_score = lord_wingersky_recursion(
            items, quadrature.points
        )
        self.density = quadrature.weights @ self.conditional
        self.scores = np.arange(
            self.min_score, self.min_score + self.density.shape[0], dtype=np.float64
        )

    @property
    def n_scores(self) -> int:
        return self.density.shape[0]

    @property
    def max_score(self) -> int:
        return self.min_score + self.n_scores - 1

    def density_at(self, score: int) -> float:
        """P(X = score), zero outside the attainable range."""
        index = score - self.min_score
        if index < 0 or index >= self.n_scores:
            return 0.0
        return float(self.density[index])

    def eap(self, score: int) -> float:
        """Posterior mean of theta given a summed score."""
        index = score - self.min_score
        if index < 0 or index >= self.n_scores:
            raise ValueError(
                f"score must lie in [{self.min_score}, {self.max_score}], got {score}"
            )
        joint = self.quadrature.weights * self.conditional[:, index]
        return float(np.sum(self.quadrature.points * joint) / np.sum(joint))

    def eap_table(self) -> NDArray[np.float64]:
        """EAP theta for every attainable summed score."""
        joint = self.quadrature.weights[:, None] * self.conditional
        return (self.quadrature.points @ joint) / joint.sum(axis=0)
