"""Scale linking and score equating for IRT calibrated test forms.

This module provides:

- Moment linking methods (mean/mean, mean/sigma)
- Robust z screening of common items for drift
- Characteristic curve linking (Haebara, Stocking-Lord)
- True score equating
- Observed score equating

Examples
--------
Link Form X to the Form Y scale:

>>> from irtequate.equating import link_scales
>>> result = link_scales(common_x, common_y, quad_x, quad_y)
>>> print(result.summary())

Equate scores with the Stocking-Lord coefficients:

>>> from irtequate.equating import true_score_equating
>>> table = true_score_equating(form_x, form_y, linking=result.stocking_lord)
>>> print(table.y_equivalent)
"""

from irtequate.equating.criteria import (
    CharacteristicCurveCriterion,
    HaebaraCriterion,
    StockingLordCriterion,
)
from irtequate.equating.drift import (
    RobustZResult,
    purify_anchors,
    robust_z,
    robust_z_screening,
)
from irtequate.equating.linking import (
    LinkingCoefficients,
    is_rasch_family,
    mean_mean,
    mean_sigma,
)
from irtequate.equating.observed_score import (
    DistributionMoments,
    ObservedScoreEquatingResult,
    distribution_moments,
    equipercentile_equating,
    observed_score_equating,
    percentile_point,
    percentile_rank,
    synthetic_density,
)
from irtequate.equating.scale_linking import (
    ScaleLinkingResult,
    link,
    link_scales,
    minimize_criterion,
)
from irtequate.equating.true_score import (
    TrueScoreEquatingResult,
    theta_for_true_score,
    true_score_equating,
)
from irtequate.equating.validation import DimensionMismatchError, check_common_items

__all__ = [
    # Validation
    "DimensionMismatchError",
    "check_common_items",
    # Moment linking
    "LinkingCoefficients",
    "is_rasch_family",
    "mean_mean",
    "mean_sigma",
    # Common-item drift
    "RobustZResult",
    "purify_anchors",
    "robust_z",
    "robust_z_screening",
    # Characteristic curve linking
    "CharacteristicCurveCriterion",
    "HaebaraCriterion",
    "StockingLordCriterion",
    "ScaleLinkingResult",
    "link",
    "link_scales",
    "minimize_criterion",
    # True score equating
    "TrueScoreEquatingResult",
    "theta_for_true_score",
    "true_score_equating",
    # Observed score equating
    "DistributionMoments",
    "ObservedScoreEquatingResult",
    "distribution_moments",
    "equipercentile_equating",
    "observed_score_equating",
    "percentile_point",
    "percentile_rank",
    "synthetic_density",
]
