"""Item response models consumed by linking and equating."""

from irtequate.models.base import ItemResponseModel, ItemSet, tcc, tcc_derivative
from irtequate.models.dichotomous import FourParameterLogistic, ThreeParameterLogistic
from irtequate.models.polytomous import (
    GeneralizedPartialCredit,
    GradedResponseModel,
    PartialCreditModel,
)

__all__ = [
    # Base
    "ItemResponseModel",
    "ItemSet",
    "tcc",
    "tcc_derivative",
    # Dichotomous
    "ThreeParameterLogistic",
    "FourParameterLogistic",
    # Polytomous
    "GeneralizedPartialCredit",
    "PartialCreditModel",
    "GradedResponseModel",
]
