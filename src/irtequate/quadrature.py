"""Quadrature rules approximating a latent ability distribution."""

from collections.abc import Callable

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import stats
from scipy.special import roots_hermite


class QuadratureRule:
    """Discrete approximation to an ability distribution.

    Weighted sums over the points stand in for integrals over theta:

        ∫ f(θ) g(θ) dθ ≈ Σ w_i × f(θ_i)

    Weights supplied by the caller are used as given. The normal, uniform
    and Gauss-Hermite constructors return weights that sum to one.

    Parameters
    ----------
    points : array-like of shape (n_points,)
        Ability values.
    weights : array-like of shape (n_points,)
        Density weight of each point.

    Attributes
    ----------
    points : ndarray of shape (n_points,)
        Quadrature points (read-only).
    weights : ndarray of shape (n_points,)
        Quadrature weights (read-only).

    Examples
    --------
    >>> quad = QuadratureRule.normal(21, -4.0, 4.0)
    >>> len(quad)
    21
    >>> round(float(quad.weights.sum()), 12)
    1.0
    """

    def __init__(self, points: ArrayLike, weights: ArrayLike) -> None:
        points = np.asarray(points, dtype=np.float64).ravel().copy()
        weights = np.asarray(weights, dtype=np.float64).ravel().copy()
        if points.shape[0] < 1:
            raise ValueError("A quadrature rule needs at least one point")
        if points.shape != weights.shape:
            raise ValueError(
                f"points and weights must have the same length, "
                f"got {points.shape[0]} and {weights.shape[0]}"
            )
        if np.any(weights < 0):
            raise ValueError("Quadrature weights must be non-negative")

        points.setflags(write=False)
        weights.setflags(write=False)
        self._points = points
        self._weights = weights

    @classmethod
    def normal(
        cls,
        n_points: int = 49,
        min_theta: float = -4.0,
        max_theta: float = 4.0,
        mean: float = 0.0,
        sd: float = 1.0,
    ) -> "QuadratureRule":
        """Equally spaced points with normalized normal density weights."""
        points = _equally_spaced(n_points, min_theta, max_theta)
        if sd <= 0:
            raise ValueError(f"sd must be positive, got {sd}")
        weights = stats.norm.pdf(points, loc=mean, scale=sd)
        return cls(points, weights / weights.sum())

    @classmethod
    def uniform(
        cls,
        n_points: int = 49,
        min_theta: float = -4.0,
        max_theta: float = 4.0,
    ) -> "QuadratureRule":
        """Equally spaced points with equal weights 1 / n_points."""
        points = _equally_spaced(n_points, min_theta, max_theta)
        return cls(points, np.full(n_points, 1.0 / n_points))

    @classmethod
    def gauss_hermite(
        cls,
        n_points: int = 21,
        mean: float = 0.0,
        sd: float = 1.0,
    ) -> "QuadratureRule":
        """Gauss-Hermite rule for a normal ability distribution."""
        if n_points < 1:
            raise ValueError("n_points must be at least 1")
        if sd <= 0:
            raise ValueError(f"sd must be positive, got {sd}")
        # scipy's roots_hermite returns physicist's Hermite polynomials
        nodes, weights = roots_hermite(n_points)
        nodes = nodes * np.sqrt(2) * sd + mean
        weights = weights / np.sqrt(np.pi)
        return cls(nodes, weights)

    @property
    def points(self) -> NDArray[np.float64]:
        return self._points

    @property
    def weights(self) -> NDArray[np.float64]:
        return self._weights

    @property
    def n_points(self) -> int:
        return self._points.shape[0]

    def __len__(self) -> int:
        return self.n_points

    def transform(self, intercept: float, slope: float) -> "QuadratureRule":
        """Map the points through ``slope * θ + intercept``; weights are kept."""
        return QuadratureRule(slope * self._points + intercept, self._weights)

    def mean(self) -> float:
        return float(np.sum(self._weights * self._points) / np.sum(self._weights))

    def sd(self) -> float:
        center = self.mean()
        variance = np.sum(self._weights * (self._points - center) ** 2)
        return float(np.sqrt(variance / np.sum(self._weights)))

    def integrate(self, func: Callable[[NDArray[np.float64]], ArrayLike]) -> float:
        """Approximate ∫ f(θ) g(θ) dθ by Σ w_i f(θ_i)."""
        values = np.asarray(func(self._points), dtype=np.float64)
        return float(np.sum(self._weights * values))

    def __repr__(self) -> str:
        return (
            f"QuadratureRule(n_points={self.n_points}, "
            f"min={self._points.min():.4f}, max={self._points.max():.4f})"
        )


def _equally_spaced(n_points: int, min_theta: float, max_theta: float) -> NDArray[np.float64]:
    if n_points < 2:
        raise ValueError("n_points must be at least 2")
    if min_theta > max_theta:
        min_theta, max_theta = max_theta, min_theta
    return np.linspace(min_theta, max_theta, n_points)
