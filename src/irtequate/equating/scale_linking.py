"""IRT scale linking with moment and characteristic curve methods.

The orchestrator computes mean/mean and mean/sigma coefficients in closed
form, then minimizes the Haebara and Stocking-Lord criteria starting from
the mean/mean solution. Rasch-family forms estimate the intercept only;
other forms estimate intercept and slope.
"""

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, get_args

import numpy as np
from scipy import optimize

from irtequate.constants import (
    DEFAULT_PRECISION,
    GRADIENT_TOLERANCE,
    MAX_EVALUATIONS,
    MAX_ITERATIONS,
    MIN_SLOPE,
    MULTISTART_STARTS,
    PRECISION_LOSS_GRADIENT,
    RASCH_MAX_EVALUATIONS,
    RASCH_RANDOM_STARTS,
    RASCH_SEARCH_INTERVAL,
)
from irtequate.equating.criteria import (
    CharacteristicCurveCriterion,
    HaebaraCriterion,
    StockingLordCriterion,
)
from irtequate.equating.linking import (
    LinkingCoefficients,
    is_rasch_family,
    mean_mean,
    mean_sigma,
)
from irtequate.equating.validation import check_common_items
from irtequate.models.base import ItemSet
from irtequate.quadrature import QuadratureRule
from irtequate.typing import CriterionType, LinkingMethod, OptimizerType

if TYPE_CHECKING:
    import pandas as pd

logger = logging.getLogger(__name__)


@dataclass
class ScaleLinkingResult:
    """Coefficients of all four linking methods.

    Attributes
    ----------
    mean_mean : LinkingCoefficients
        Mean/mean coefficients; also the start values of the
        characteristic curve methods.
    mean_sigma : LinkingCoefficients
        Mean/sigma coefficients.
    haebara : LinkingCoefficients
        Haebara coefficients with the minimized criterion value.
    stocking_lord : LinkingCoefficients
        Stocking-Lord coefficients with the minimized criterion value.
    rasch_family : bool
        Whether only the intercept was estimated.
    convergence_info : dict
        Raw optimizer output per characteristic curve method.
    """

    mean_mean: LinkingCoefficients
    mean_sigma: LinkingCoefficients
    haebara: LinkingCoefficients
    stocking_lord: LinkingCoefficients
    rasch_family: bool
    convergence_info: dict = field(default_factory=dict)

    def methods(self) -> dict[str, LinkingCoefficients]:
        return {
            "mean_mean": self.mean_mean,
            "mean_sigma": self.mean_sigma,
            "haebara": self.haebara,
            "stocking_lord": self.stocking_lord,
        }

    @property
    def success(self) -> bool:
        """True when both characteristic curve searches succeeded."""
        return self.haebara.success and self.stocking_lord.success

    def summary(self) -> str:
        """Fixed-width table of intercepts, slopes and criterion values."""
        lines = [
            f"{'Method':<16}{'Intercept':>14}{'Slope':>14}{'Criterion':>14}  Converged",
            "-" * 68,
        ]
        labels = {
            "mean_mean": "Mean/Mean",
            "mean_sigma": "Mean/Sigma",
            "haebara": "Haebara",
            "stocking_lord": "Stocking-Lord",
        }
        for name, coef in self.methods().items():
            intercept, slope = coef.rounded()
            value = "" if coef.objective_value is None else f"{coef.objective_value:.6f}"
            lines.append(
                f"{labels[name]:<16}{intercept:>14}{slope:>14}{value:>14}  "
                f"{'yes' if coef.success else 'no'}"
            )
        return "\n".join(lines)

    def to_dataframe(self) -> "pd.DataFrame":
        """Convert the coefficients to a pandas DataFrame, one row per method."""
        import pandas as pd

        rows = {
            name: {
                "intercept": coef.intercept,
                "slope": coef.slope,
                "criterion": coef.objective_value,
                "success": coef.success,
            }
            for name, coef in self.methods().items()
        }
        df = pd.DataFrame.from_dict(rows, orient="index")
        df.index.name = "method"
        return df


def link_scales(
    form_x: ItemSet,
    form_y: ItemSet,
    quad_x: QuadratureRule,
    quad_y: QuadratureRule,
    haebara_criterion: CriterionType = "Q1Q2",
    stocking_lord_criterion: CriterionType = "Q1Q2",
    standardized: bool = True,
    optimizer: OptimizerType = "bfgs",
    unbiased_sd: bool = True,
    precision: int = DEFAULT_PRECISION,
    n_starts: int | None = None,
    max_iterations: int = MAX_ITERATIONS,
    max_evaluations: int | None = None,
    random_state: int | np.random.Generator | None = None,
) -> ScaleLinkingResult:
    """Place Form X on the Form Y scale with all four linking methods.

    Each method fails on its own: a mean/sigma failure or an optimizer error is
    reported as NaN coefficients with ``success=False`` and the remaining
    methods still run.

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
    haebara_criterion : {"Q1", "Q2", "Q1Q2"}
        Component criteria summed by Haebara.
    stocking_lord_criterion : {"Q1", "Q2", "Q1Q2"}
        Component criteria summed by Stocking-Lord.
    standardized : bool
        Standardize the characteristic curve criteria.
    optimizer : {"bfgs", "cobyqa"}
        Two parameter search used for non-Rasch forms:
        - "bfgs": quasi-Newton with a finite-difference gradient
        - "cobyqa": derivative-free multi-start trust region search
    unbiased_sd : bool
        Use n - 1 standard deviations in mean/sigma.
    precision : int
        Decimals used when reporting coefficients.
    n_starts : int | None
        Random restarts. Defaults to 5 for the intercept-only search and
        10 for the derivative-free search.
    max_iterations : int
        Iteration cap of the quasi-Newton search.
    max_evaluations : int | None
        Evaluation cap of each bounded or derivative-free search.
    random_state : int | Generator | None
        Seed for the restarts.

    Returns
    -------
    ScaleLinkingResult
        Coefficients of all four methods.

    Raises
    ------
    DimensionMismatchError
        If the forms do not share exactly the same items.
    """
    check_common_items(form_x, form_y)
    if optimizer not in get_args(OptimizerType):
        raise ValueError(
            f"Unknown optimizer: {optimizer}. Use one of {get_args(OptimizerType)}"
        )

    rng = np.random.default_rng(random_state)
    mm = mean_mean(form_x, form_y, precision=precision)
    try:
        ms = mean_sigma(form_x, form_y, unbiased_sd=unbiased_sd, precision=precision)
    except ValueError as e:
        logger.warning("mean_sigma linking failed: %s", e)
        ms = LinkingCoefficients(
            slope=float("nan"),
            intercept=float("nan"),
            method="mean_sigma",
            success=False,
            message=str(e),
            precision=precision,
        )
    rasch = is_rasch_family(form_x) and is_rasch_family(form_y)

    criteria: list[CharacteristicCurveCriterion] = [
        HaebaraCriterion(
            form_x, form_y, quad_x, quad_y, haebara_criterion, standardized
        ),
        StockingLordCriterion(
            form_x, form_y, quad_x, quad_y, stocking_lord_criterion, standardized
        ),
    ]

    fitted: dict[str, LinkingCoefficients] = {}
    convergence_info: dict = {}
    for criterion in criteria:
        coef, info = minimize_criterion(
            criterion,
            start=mm,
            rasch_family=rasch,
            optimizer=optimizer,
            precision=precision,
            n_starts=n_starts,
            max_iterations=max_iterations,
            max_evaluations=max_evaluations,
            rng=rng,
        )
        fitted[criterion.method_name] = coef
        convergence_info[criterion.method_name] = info

    return ScaleLinkingResult(
        mean_mean=mm,
        mean_sigma=ms,
        haebara=fitted["haebara"],
        stocking_lord=fitted["stocking_lord"],
        rasch_family=rasch,
        convergence_info=convergence_info,
    )


def link(
    form_x: ItemSet,
    form_y: ItemSet,
    quad_x: QuadratureRule | None = None,
    quad_y: QuadratureRule | None = None,
    method: LinkingMethod = "stocking_lord",
    **kwargs,
) -> LinkingCoefficients:
    """Link two forms with a single method.

    Parameters
    ----------
    form_x : ItemSet
        Common items calibrated on Form X.
    form_y : ItemSet
        Common items calibrated on Form Y.
    quad_x, quad_y : QuadratureRule | None
        Ability distributions; required by the characteristic curve
        methods.
    method : str
        Linking method:
        - "mean_mean": Mean/mean method
        - "mean_sigma": Mean/sigma method
        - "haebara": Haebara item characteristic curve method
        - "stocking_lord": Stocking-Lord test characteristic curve method
    **kwargs
        Passed to :func:`link_scales`.

    Returns
    -------
    LinkingCoefficients
    """
    if method not in get_args(LinkingMethod):
        raise ValueError(f"Unknown linking method: {method}")

    precision = kwargs.get("precision", DEFAULT_PRECISION)
    if method == "mean_mean":
        return mean_mean(form_x, form_y, precision=precision)
    if method == "mean_sigma":
        return mean_sigma(
            form_x,
            form_y,
            unbiased_sd=kwargs.get("unbiased_sd", True),
            precision=precision,
        )

    if quad_x is None or quad_y is None:
        raise ValueError(f"{method} linking requires quadrature rules for both forms")
    result = link_scales(form_x, form_y, quad_x, quad_y, **kwargs)
    return result.methods()[method]


def minimize_criterion(
    criterion: CharacteristicCurveCriterion,
    start: LinkingCoefficients,
    rasch_family: bool,
    optimizer: OptimizerType = "bfgs",
    precision: int = DEFAULT_PRECISION,
    n_starts: int | None = None,
    max_iterations: int = MAX_ITERATIONS,
    max_evaluations: int | None = None,
    rng: np.random.Generator | None = None,
) -> tuple[LinkingCoefficients, dict]:
    """Minimize one characteristic curve criterion.

    Failures never propagate: an optimizer exception yields NaN
    coefficients with ``success=False``; non-convergence keeps the best
    point found with ``success=False``.

    Parameters
    ----------
    criterion : CharacteristicCurveCriterion
        Haebara or Stocking-Lord criterion.
    start : LinkingCoefficients
        Start values, usually the mean/mean solution.
    rasch_family : bool
        Estimate the intercept only, with the slope fixed at 1.
    optimizer : {"bfgs", "cobyqa"}
        Two parameter search for non-Rasch forms.
    precision : int
        Decimals used when reporting.
    n_starts : int | None
        Random restarts.
    max_iterations : int
        Iteration cap of the quasi-Newton search.
    max_evaluations : int | None
        Evaluation cap of each bounded or derivative-free search.
    rng : Generator | None
        Random generator for the restarts.

    Returns
    -------
    coefficients : LinkingCoefficients
    info : dict
        Optimizer diagnostics.
    """
    if rng is None:
        rng = np.random.default_rng()
    method = criterion.method_name

    try:
        if rasch_family:
            intercept, slope, value, success, info = _search_intercept(
                criterion,
                start.intercept,
                RASCH_RANDOM_STARTS if n_starts is None else n_starts,
                RASCH_MAX_EVALUATIONS if max_evaluations is None else max_evaluations,
                rng,
            )
        elif optimizer == "bfgs":
            intercept, slope, value, success, info = _search_quasi_newton(
                criterion, start, max_iterations
            )
        else:
            intercept, slope, value, success, info = _search_multistart(
                criterion,
                start,
                MULTISTART_STARTS if n_starts is None else n_starts,
                MAX_EVALUATIONS if max_evaluations is None else max_evaluations,
                rng,
            )
    except Exception as e:
        logger.warning("%s optimization failed: %s", method, e, exc_info=True)
        return (
            LinkingCoefficients(
                slope=float("nan"),
                intercept=float("nan"),
                method=method,
                objective_value=None,
                success=False,
                message=f"optimizer raised {type(e).__name__}: {e}",
                precision=precision,
            ),
            {"error": str(e)},
        )

    message = str(info.get("message", ""))
    if not success:
        logger.warning("%s optimization did not converge: %s", method, message)
    else:
        logger.debug(
            "%s converged: intercept=%.6f slope=%.6f criterion=%.8g",
            method,
            intercept,
            slope,
            value,
        )

    return (
        LinkingCoefficients(
            slope=slope,
            intercept=intercept,
            method=method,
            objective_value=value,
            success=success,
            message=message,
            precision=precision,
        ),
        info,
    )


def _search_intercept(
    criterion: CharacteristicCurveCriterion,
    start: float,
    n_starts: int,
    max_evaluations: int,
    rng: np.random.Generator,
) -> tuple[float, float, float, bool, dict]:
    """Bounded Brent search for the intercept with random restarts.

    The first search covers the sub-interval of half the width centered
    on ``start``, the second covers the whole interval, and each restart
    searches the half-width sub-interval centered on a random start. All
    sub-intervals are clipped to the interval.
    """
    lower, upper = RASCH_SEARCH_INTERVAL
    half_width = (upper - lower) / 4.0

    def around(center: float) -> tuple[float, float]:
        return (max(lower, center - half_width), min(upper, center + half_width))

    start = float(np.clip(start, lower, upper))
    searches = [around(start), (lower, upper)]
    searches += [around(float(c)) for c in rng.uniform(lower, upper, size=n_starts)]

    best = None
    n_converged = 0
    total_evaluations = 0
    for i, bounds in enumerate(searches):
        res = optimize.minimize_scalar(
            lambda b: criterion.intercept_only([b]),
            bounds=bounds,
            method="bounded",
            options={"xatol": 1e-10, "maxiter": max_evaluations},
        )
        total_evaluations += int(res.nfev)
        if res.success:
            n_converged += 1
        logger.debug(
            "%s search %d on [%.4f, %.4f]: intercept=%.6f criterion=%.8g",
            criterion.method_name,
            i,
            bounds[0],
            bounds[1],
            res.x,
            res.fun,
        )
        if best is None or res.fun < best.fun:
            best = res

    info = {
        "message": best.message,
        "start": start,
        "bounds": searches,
        "n_starts": len(searches),
        "n_converged": n_converged,
        "nfev": total_evaluations,
    }
    return float(best.x), 1.0, float(best.fun), bool(best.success), info


def _search_quasi_newton(
    criterion: CharacteristicCurveCriterion,
    start: LinkingCoefficients,
    max_iterations: int,
) -> tuple[float, float, float, bool, dict]:
    res = optimize.minimize(
        criterion.intercept_slope,
        x0=np.array([start.intercept, start.slope]),
        method="BFGS",
        jac="3-point",
        options={"maxiter": max_iterations, "gtol": GRADIENT_TOLERANCE},
    )
    success = bool(res.success)
    # Status 2 is precision loss in the line search near a flat minimum.
    if not success and res.status == 2:
        success = bool(np.linalg.norm(res.jac) < PRECISION_LOSS_GRADIENT)
    info = {
        "message": res.message,
        "status": int(res.status),
        "nit": int(res.nit),
        "nfev": int(res.nfev),
        "gradient": np.asarray(res.jac).tolist(),
    }
    return float(res.x[0]), float(res.x[1]), float(res.fun), success, info


def _search_multistart(
    criterion: CharacteristicCurveCriterion,
    start: LinkingCoefficients,
    n_starts: int,
    max_evaluations: int,
    rng: np.random.Generator,
) -> tuple[float, float, float, bool, dict]:
    """Derivative-free trust region search from several starts.

    The first start is the given start; the others add a standard normal
    perturbation to it. The slope is kept above ``MIN_SLOPE``.
    """
    x0 = np.array([start.intercept, start.slope])
    starts = [x0] + [x0 + rng.standard_normal(2) for _ in range(max(n_starts - 1, 0))]
    bounds = optimize.Bounds([-np.inf, MIN_SLOPE], [np.inf, np.inf])

    best = None
    n_converged = 0
    total_evaluations = 0
    for i, x in enumerate(starts):
        x = np.array([x[0], max(x[1], MIN_SLOPE)])
        res = optimize.minimize(
            criterion.intercept_slope,
            x0=x,
            method="COBYQA",
            bounds=bounds,
            options={"maxfev": max_evaluations, "final_tr_radius": 1e-10},
        )
        total_evaluations += int(res.nfev)
        if res.success:
            n_converged += 1
        logger.debug(
            "%s start %d: intercept=%.6f slope=%.6f criterion=%.8g",
            criterion.method_name,
            i,
            res.x[0],
            res.x[1],
            res.fun,
        )
        if best is None or res.fun < best.fun:
            best = res

    info = {
        "message": best.message,
        "n_starts": len(starts),
        "n_converged": n_converged,
        "nfev": total_evaluations,
    }
    return float(best.x[0]), float(best.x[1]), float(best.fun), bool(best.success), info
