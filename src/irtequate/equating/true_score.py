"""IRT true score equating.

Each Form X number-correct score is inverted through the Form X test
characteristic curve with Newton-Raphson, and the resulting theta is
mapped through the Form Y test characteristic curve. Both forms must
already be on the same scale; pass ``linking`` to rescale Form X first.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from irtequate.constants import NEWTON_MAX_ITERATIONS, NEWTON_TOLERANCE, THETA_BOUND
from irtequate.equating.linking import LinkingCoefficients
from irtequate.models.base import ItemSet, tcc, tcc_derivative
from irtequate.typing import EquatingStatus

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrueScoreEquatingResult:
    """Score table of IRT true score equating.

    Attributes
    ----------
    raw_scores : ndarray of shape (n_scores,)
        Form X scores 0, 1, ..., maximum score.
    theta : ndarray of shape (n_scores,)
        Form X theta with the given true score.
    y_equivalent : ndarray of shape (n_scores,)
        Form Y true score at that theta.
    iterations : ndarray of shape (n_scores,)
        Newton-Raphson iterations; 0 for boundary rows.
    status : list of str
        "Y" converged, "N" not converged, "-" boundary row.
    min_score_x : float
        Lowest attainable Form X true score (sum of lower asymptotes).
    min_score_y : float
        Lowest attainable Form Y true score.
    low_scale : float
        Ratio applied to Form X scores at or below ``min_score_x``.
    """

    raw_scores: NDArray[np.float64]
    theta: NDArray[np.float64]
    y_equivalent: NDArray[np.float64]
    iterations: NDArray[np.int_]
    status: list[EquatingStatus]
    min_score_x: float
    min_score_y: float
    low_scale: float

    @property
    def converged(self) -> bool:
        """True when no Newton-Raphson row failed."""
        return "N" not in self.status

    def rounded_equivalents(self) -> NDArray[np.int_]:
        return np.rint(self.y_equivalent).astype(int)

    def to_dataframe(self) -> "pd.DataFrame":
        """Convert the score table to a pandas DataFrame indexed by Form X score."""
        import pandas as pd

        df = pd.DataFrame(
            {
                "theta": self.theta,
                "y_equivalent": self.y_equivalent,
                "iterations": self.iterations,
                "status": self.status,
            },
            index=self.raw_scores.astype(int),
        )
        df.index.name = "score"
        return df

    def summary(self) -> str:
        lines = [
            f"{'Score':>8}{'Theta':>10}{'Y-Equiv':>10}{'Round':>7}{'Iter':>6}  Conv",
            "-" * 47,
        ]
        for score, theta, y, r, it, st in zip(
            self.raw_scores,
            self.theta,
            self.y_equivalent,
            self.rounded_equivalents(),
            self.iterations,
            self.status,
        ):
            lines.append(
                f"{int(score):>8}{theta:>10.4f}{y:>10.4f}{r:>7}{it:>6}  {st:>4}"
            )
        return "\n".join(lines)


def _lowest_true_score(items: ItemSet) -> float:
    # Expected score as theta goes to minus infinity.
    return float(
        sum(
            m.min_score_weight * (1.0 - m.guessing) + m.max_score_weight * m.guessing
            for m in items.values()
        )
    )


def theta_for_true_score(
    items: ItemSet,
    true_score: float,
    tolerance: float = NEWTON_TOLERANCE,
    max_iterations: int = NEWTON_MAX_ITERATIONS,
) -> tuple[float, int, bool]:
    """Invert a test characteristic curve with Newton-Raphson.

    Starting from theta = 0, iterates

        θ ← θ + (τ - TCC(θ)) / TCC'(θ)

    clamping theta to [-99, 99] after each update.

    Parameters
    ----------
    items : ItemSet
        Items of the form.
    true_score : float
        Target true score.
    tolerance : float
        Convergence tolerance on the absolute theta change.
    max_iterations : int
        Iteration cap.

    Returns
    -------
    theta : float
        Last theta reached.
    iterations : int
        Number of updates performed.
    converged : bool
        Whether the theta change fell below ``tolerance``. A zero or
        non-finite derivative stops the iteration unconverged.
    """
    theta = 0.0
    delta = np.inf
    iterations = 0
    while delta > tolerance and iterations < max_iterations:
        slope = float(tcc_derivative(items, theta)[0])
        if not np.isfinite(slope) or slope == 0.0:
            logger.debug("Zero TCC derivative at theta=%.4f for score %.4f", theta, true_score)
            break
        step = (true_score - float(tcc(items, theta)[0])) / slope
        previous = theta
        theta = min(max(theta + step, -THETA_BOUND), THETA_BOUND)
        delta = abs(theta - previous)
        iterations += 1
    return theta, iterations, bool(delta < tolerance)


def true_score_equating(
    form_x: ItemSet,
    form_y: ItemSet,
    linking: LinkingCoefficients | None = None,
    tolerance: float = NEWTON_TOLERANCE,
    max_iterations: int = NEWTON_MAX_ITERATIONS,
) -> TrueScoreEquatingResult:
    """Equate Form X number-correct scores to Form Y true scores.

    The forms may contain different items; only their scales must agree.

    Parameters
    ----------
    form_x : ItemSet
        All Form X items.
    form_y : ItemSet
        All Form Y items.
    linking : LinkingCoefficients, optional
        Coefficients that place Form X on the Form Y scale. When omitted
        Form X is assumed to be on the Form Y scale already.
    tolerance : float
        Newton-Raphson tolerance on the theta change.
    max_iterations : int
        Newton-Raphson iteration cap.

    Returns
    -------
    TrueScoreEquatingResult
    """
    if len(form_x) == 0 or len(form_y) == 0:
        raise ValueError("Both forms need at least one item")
    if linking is not None:
        form_x = linking.transform_items(form_x)

    min_x = _lowest_true_score(form_x)
    min_y = _lowest_true_score(form_y)
    max_score = float(sum(m.max_score_weight for m in form_x.values()))
    low_scale = min_y / min_x if min_y > 0 and min_x > 0 else 1.0

    raw_scores = np.arange(int(max_score) + 1, dtype=np.float64)
    n = raw_scores.shape[0]
    theta = np.empty(n)
    y_equivalent = np.empty(n)
    iterations = np.zeros(n, dtype=int)
    status: list[EquatingStatus] = []

    for i, score in enumerate(raw_scores):
        if score <= min_x:
            theta[i] = -THETA_BOUND
            y_equivalent[i] = low_scale * score
            status.append("-")
        elif score == max_score:
            theta[i] = THETA_BOUND
            y_equivalent[i] = tcc(form_y, THETA_BOUND)[0]
            status.append("-")
        else:
            theta[i], iterations[i], ok = theta_for_true_score(
                form_x, score, tolerance, max_iterations
            )
            y_equivalent[i] = tcc(form_y, theta[i])[0]
            status.append("Y" if ok else "N")
            if not ok:
                logger.warning(
                    "Newton-Raphson did not converge for score %d after %d iterations",
                    int(score),
                    iterations[i],
                )

    return TrueScoreEquatingResult(
        raw_scores=raw_scores,
        theta=theta,
        y_equivalent=y_equivalent,
        iterations=iterations,
        status=status,
        min_score_x=min_x,
        min_score_y=min_y,
        low_scale=low_scale,
    )
