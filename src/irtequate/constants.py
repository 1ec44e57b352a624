"""Constants for linking and equating routines.

These are true constants that should not be user-configurable.
For configurable values, use function arguments with defaults.
"""

DEFAULT_SCALING_CONSTANT: float = 1.7
"""Logistic scaling constant D that approximates the normal ogive metric."""

THETA_BOUND: float = 99.0
"""Absolute bound on theta in true score equating; also the boundary theta
reported for scores at or below the chance level and at the maximum score."""

NEWTON_TOLERANCE: float = 1e-4
"""Convergence tolerance on the absolute theta change in Newton-Raphson."""

NEWTON_MAX_ITERATIONS: int = 150
"""Iteration cap for Newton-Raphson inversion of the test characteristic curve."""

PERCENTILE_EPSILON: float = 1e-8
"""Tolerance used to detect percentile ranks of 0 and 100 when inverting a
cumulative distribution."""

RASCH_SEARCH_INTERVAL: tuple[float, float] = (-4.0, 4.0)
"""Search interval for the intercept when only the intercept is estimated."""

RASCH_RANDOM_STARTS: int = 5
"""Number of random restarts of the bounded scalar search."""

RASCH_MAX_EVALUATIONS: int = 500
"""Evaluation cap for each bounded scalar search."""

MULTISTART_STARTS: int = 10
"""Number of starts for the derivative-free two parameter search."""

MAX_EVALUATIONS: int = 1000
"""Evaluation cap for each derivative-free two parameter search."""

MAX_ITERATIONS: int = 200
"""Iteration cap for the quasi-Newton two parameter search."""

GRADIENT_TOLERANCE: float = 1e-9
"""Gradient norm tolerance for the quasi-Newton two parameter search."""

PRECISION_LOSS_GRADIENT: float = 1e-6
"""Largest gradient norm accepted when the quasi-Newton search stops on
precision loss instead of the gradient tolerance."""

MIN_SLOPE: float = 1e-4
"""Lower bound on the slope for the derivative-free two parameter search."""

DEFAULT_PRECISION: int = 4
"""Default number of decimals used when reporting linking coefficients."""

ROBUST_Z_IQR_SCALE: float = 0.74
"""Multiplier of the interquartile range in the robust z statistic; 0.74 * IQR
estimates the standard deviation of a normal distribution."""
