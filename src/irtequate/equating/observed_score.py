"""IRT observed score equating.

Model-implied summed score distributions of both forms are computed for
both populations, mixed into synthetic population densities, and Form X
scores are mapped to Form Y by equipercentile equating of the continuized
distributions.

References
----------
Kolen, M. J., & Brennan, R. L. (2014). Test equating, scaling, and
linking (3rd ed.). Springer. Chapters 2 and 6.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from irtequate.constants import PERCENTILE_EPSILON
from irtequate.equating.linking import LinkingCoefficients
from irtequate.models.base import ItemSet
from irtequate.quadrature import QuadratureRule
from irtequate.score_distribution import SummedScoreDistribution
from irtequate.typing import DensityArray

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistributionMoments:
    """First four moments of a score distribution.

    Kurtosis is the standardized fourth moment, 3 for a normal
    distribution.
    """

    mean: float
    sd: float
    skewness: float
    kurtosis: float


@dataclass(frozen=True)
class ObservedScoreEquatingResult:
    """Score table of IRT observed score equating.

    Attributes
    ----------
    raw_scores : ndarray of shape (n_scores_x,)
        Form X summed scores.
    y_equivalent : ndarray of shape (n_scores_x,)
        Form Y equivalents of the Form X scores.
    form_x_density : ndarray of shape (n_scores_x,)
        Form X synthetic population density.
    form_y_density : ndarray of shape (n_scores_y,)
        Form Y synthetic population density.
    f1, f2 : SummedScoreDistribution
        Form X distributions in the Form X and Form Y populations.
    g1, g2 : SummedScoreDistribution
        Form Y distributions in the Form X and Form Y populations.
    weight_x : float
        Weight of the Form X population in the synthetic population.
    """

    raw_scores: NDArray[np.float64]
    y_equivalent: NDArray[np.float64]
    form_x_density: DensityArray
    form_y_density: DensityArray
    f1: SummedScoreDistribution
    f2: SummedScoreDistribution
    g1: SummedScoreDistribution
    g2: SummedScoreDistribution
    weight_x: float

    @property
    def weight_y(self) -> float:
        return 1.0 - self.weight_x

    @property
    def form_x_moments(self) -> DistributionMoments:
        return distribution_moments(self.form_x_density)

    @property
    def form_y_moments(self) -> DistributionMoments:
        return distribution_moments(self.form_y_density)

    def equivalent_at(self, score: int) -> float:
        """Form Y equivalent of a score, clamped to the score range."""
        index = int(np.clip(score - self.raw_scores[0], 0, len(self.raw_scores) - 1))
        return float(self.y_equivalent[index])

    def to_dataframe(self) -> "pd.DataFrame":
        """Convert the score table to a pandas DataFrame indexed by Form X score.

        Returns
        -------
        pandas.DataFrame
            Component densities, the synthetic Form X density and the
            Form Y equivalents.
        """
        import pandas as pd

        df = pd.DataFrame(
            {
                "f1": self.f1.density,
                "f2": self.f2.density,
                "synthetic": self.form_x_density,
                "y_equivalent": self.y_equivalent,
            },
            index=self.raw_scores.astype(int),
        )
        df.index.name = "score"
        return df

    def summary(self) -> str:
        lines = [
            f"{'Score':>10}  {'Group 1':>10}  {'Group 2':>10}  {'Group S':>10}  {'Y-Equiv':>10}",
            "-" * 58,
        ]
        for i, score in enumerate(self.raw_scores):
            lines.append(
                f"{score:>10.0f}  {self.f1.density[i]:>10.5f}  {self.f2.density[i]:>10.5f}  "
                f"{self.form_x_density[i]:>10.5f}  {self.y_equivalent[i]:>10.5f}"
            )
        lines.append("")
        x_moments = self.form_x_moments
        y_moments = self.form_y_moments
        lines.append(f"{'':>10}  {'Form X':>10}  {'Form Y':>10}")
        for label, field in [
            ("Mean", "mean"),
            ("S.D.", "sd"),
            ("Skewness", "skewness"),
            ("Kurtosis", "kurtosis"),
        ]:
            lines.append(
                f"{label:>10}  {getattr(x_moments, field):>10.4f}  "
                f"{getattr(y_moments, field):>10.4f}"
            )
        return "\n".join(lines)


def percentile_rank(
    min_score: float,
    max_score: float,
    increment: float,
    cdf: ArrayLike,
    x: float,
) -> float:
    """Percentile rank of ``x`` under the continuized distribution.

    Each score is spread uniformly over the interval of width
    ``increment`` centered on it.

    Parameters
    ----------
    min_score : float
        Smallest score.
    max_score : float
        Largest score.
    increment : float
        Distance between adjacent scores.
    cdf : array-like of shape (n_scores,)
        Cumulative distribution at each score.
    x : float
        Score to rank.

    Returns
    -------
    float
        Percentile rank in [0, 100].
    """
    cdf = np.asarray(cdf, dtype=np.float64)
    half = increment / 2.0
    if x < min_score - half:
        return 0.0
    if x < min_score + half:
        return 100.0 * ((x - (min_score - half)) / increment) * cdf[0]
    if x >= max_score + half:
        return 100.0

    i = int(np.floor((x - min_score) / increment + 0.5))
    i = min(max(i, 1), cdf.shape[0] - 1)
    lower = min_score + i * increment - half
    return 100.0 * (cdf[i - 1] + ((x - lower) / increment) * (cdf[i] - cdf[i - 1]))


def percentile_point(
    n_scores: int,
    min_score: float,
    increment: float,
    cdf: ArrayLike,
    rank: float,
) -> float:
    """Score with a given percentile rank, the inverse of :func:`percentile_rank`.

    When the rank falls on a flat stretch of the cumulative distribution
    the midpoint of the upper and lower percentile points is returned.

    Parameters
    ----------
    n_scores : int
        Number of scores.
    min_score : float
        Smallest score.
    increment : float
        Distance between adjacent scores.
    cdf : array-like of shape (n_scores,)
        Cumulative distribution at each score.
    rank : float
        Percentile rank in [0, 100].

    Returns
    -------
    float
    """
    cdf = np.asarray(cdf, dtype=np.float64)
    p = rank / 100.0

    if p <= PERCENTILE_EPSILON:
        above = np.flatnonzero(cdf[:n_scores] > PERCENTILE_EPSILON)
        i = int(above[0]) if above.size else n_scores
        upper = i - 0.5
        lower = -0.5
        return min_score + increment * (upper + lower) / 2.0

    if p >= 1.0 - PERCENTILE_EPSILON:
        below = np.flatnonzero(cdf[:n_scores] < 1.0 - PERCENTILE_EPSILON)
        j = int(below[-1]) if below.size else -1
        upper = n_scores - 0.5
        lower = j + 1.5
        return min_score + increment * (upper + lower) / 2.0

    if cdf[0] > p:
        return min_score + increment * (p / cdf[0] - 0.5)

    # Smallest score whose cumulative proportion exceeds p.
    i = 1
    while i < n_scores - 1 and not cdf[i] > p:
        i += 1
    if cdf[i] != cdf[i - 1]:
        upper = (p - cdf[i - 1]) / (cdf[i] - cdf[i - 1]) + (i - 0.5)
    else:
        upper = i - 0.5

    # Largest score whose cumulative proportion is below p.
    j = n_scores - 2
    while j >= 0 and not cdf[j] < p:
        j -= 1
    below_j = cdf[j] if j >= 0 else 0.0
    if cdf[j + 1] != below_j:
        lower = (p - below_j) / (cdf[j + 1] - below_j) + (j + 0.5)
    else:
        lower = j + 0.5

    return min_score + increment * (upper + lower) / 2.0


def equipercentile_equating(
    n_scores_y: int,
    min_score_y: float,
    increment_y: float,
    cdf_y: ArrayLike,
    ranks_x: ArrayLike,
) -> NDArray[np.float64]:
    """Form Y scores with the same percentile ranks as the Form X scores."""
    return np.array(
        [
            percentile_point(n_scores_y, min_score_y, increment_y, cdf_y, rank)
            for rank in np.asarray(ranks_x, dtype=np.float64)
        ]
    )


def distribution_moments(
    density: ArrayLike, scores: ArrayLike | None = None
) -> DistributionMoments:
    """Mean, standard deviation, skewness and kurtosis of a score density.

    Parameters
    ----------
    density : array-like of shape (n_scores,)
        Probability of each score.
    scores : array-like of shape (n_scores,), optional
        Score values. Defaults to the indices 0, ..., n_scores - 1.

    Returns
    -------
    DistributionMoments
    """
    density = np.asarray(density, dtype=np.float64)
    if scores is None:
        scores = np.arange(density.shape[0], dtype=np.float64)
    else:
        scores = np.asarray(scores, dtype=np.float64)

    mean = float(np.sum(scores * density))
    dev = scores - mean
    variance = float(np.sum(dev**2 * density))
    sd = float(np.sqrt(variance))
    if sd == 0.0:
        return DistributionMoments(mean=mean, sd=0.0, skewness=np.nan, kurtosis=np.nan)
    skewness = float(np.sum(dev**3 * density)) / sd**3
    kurtosis = float(np.sum(dev**4 * density)) / sd**4
    return DistributionMoments(mean=mean, sd=sd, skewness=skewness, kurtosis=kurtosis)


def synthetic_density(
    population_x: DensityArray,
    population_y: DensityArray,
    weight_x: float,
) -> DensityArray:
    """Mix the densities of one form in the two populations."""
    return weight_x * population_x + (1.0 - weight_x) * population_y


def observed_score_equating(
    form_x: ItemSet,
    quad_x: QuadratureRule,
    form_y: ItemSet,
    quad_y: QuadratureRule,
    weight_x: float = 1.0,
    linking: LinkingCoefficients | None = None,
) -> ObservedScoreEquatingResult:
    """Equate Form X summed scores to Form Y with IRT observed score equating.

    Parameters
    ----------
    form_x : ItemSet
        All Form X items. Score weights must be integers.
    quad_x : QuadratureRule
        Ability distribution of the population that took Form X.
    form_y : ItemSet
        All Form Y items. Score weights must be integers.
    quad_y : QuadratureRule
        Ability distribution of the population that took Form Y.
    weight_x : float, default=1.0
        Weight of the Form X population in the synthetic population.
    linking : LinkingCoefficients, optional
        Coefficients that place Form X on the Form Y scale. Both the Form X
        items and the Form X ability distribution are transformed.

    Returns
    -------
    ObservedScoreEquatingResult

    Examples
    --------
    >>> result = observed_score_equating(form_x, quad_x, form_y, quad_y)
    >>> result.y_equivalent[:3]
    """
    if not 0.0 <= weight_x <= 1.0:
        raise ValueError(f"weight_x must lie in [0, 1], got {weight_x}")
    if len(form_x) == 0 or len(form_y) == 0:
        raise ValueError("Both forms need at least one item")
    if linking is not None:
        form_x = linking.transform_items(form_x)
        quad_x = quad_x.transform(linking.intercept, linking.slope)

    f1 = SummedScoreDistribution(form_x, quad_x)
    f2 = SummedScoreDistribution(form_x, quad_y)
    g1 = SummedScoreDistribution(form_y, quad_x)
    g2 = SummedScoreDistribution(form_y, quad_y)

    density_x = synthetic_density(f1.density, f2.density, weight_x)
    density_y = synthetic_density(g1.density, g2.density, weight_x)
    cdf_x = np.cumsum(density_x)
    cdf_y = np.cumsum(density_y)

    raw_scores = f1.scores
    ranks_x = np.array(
        [
            percentile_rank(f1.min_score, f1.max_score, 1.0, cdf_x, score)
            for score in raw_scores
        ]
    )
    y_equivalent = equipercentile_equating(
        g1.n_scores, g1.min_score, 1.0, cdf_y, ranks_x
    )
    logger.debug(
        "Equated %d Form X scores to %d Form Y scores", raw_scores.shape[0], g1.n_scores
    )

    return ObservedScoreEquatingResult(
        raw_scores=raw_scores,
        y_equivalent=y_equivalent,
        form_x_density=density_x,
        form_y_density=density_y,
        f1=f1,
        f2=f2,
        g1=g1,
        g2=g2,
        weight_x=float(weight_x),
    )
