"""irtequate: IRT scale linking and score equating.

Place two IRT calibrated test forms on a common scale and equate their
scores.

Examples
--------
>>> from irtequate import QuadratureRule, ThreeParameterLogistic, link_scales
>>> quad = QuadratureRule.normal(41)
>>> result = link_scales(common_x, common_y, quad, quad)
>>> result.stocking_lord.rounded()
"""

from irtequate._version import __version__
from irtequate.equating import (
    DimensionMismatchError,
    LinkingCoefficients,
    ObservedScoreEquatingResult,
    ScaleLinkingResult,
    TrueScoreEquatingResult,
    link,
    link_scales,
    mean_mean,
    mean_sigma,
    observed_score_equating,
    purify_anchors,
    robust_z_screening,
    true_score_equating,
)
from irtequate.models import (
    FourParameterLogistic,
    GeneralizedPartialCredit,
    GradedResponseModel,
    ItemResponseModel,
    PartialCreditModel,
    ThreeParameterLogistic,
    tcc,
)
from irtequate.quadrature import QuadratureRule
from irtequate.score_distribution import SummedScoreDistribution

__all__ = [
    "__version__",
    # Models
    "ItemResponseModel",
    "ThreeParameterLogistic",
    "FourParameterLogistic",
    "GeneralizedPartialCredit",
    "PartialCreditModel",
    "GradedResponseModel",
    "tcc",
    # Distributions
    "QuadratureRule",
    "SummedScoreDistribution",
    # Linking
    "DimensionMismatchError",
    "LinkingCoefficients",
    "ScaleLinkingResult",
    "link",
    "link_scales",
    "mean_mean",
    "mean_sigma",
    "purify_anchors",
    "robust_z_screening",
    # Equating
    "TrueScoreEquatingResult",
    "ObservedScoreEquatingResult",
    "true_score_equating",
    "observed_score_equating",
]
