"""Type definitions for the irtequate package."""

from typing import Literal

import numpy as np
from numpy.typing import NDArray

# Array types
ThetaArray = NDArray[np.float64]  # Shape: (n_theta,)
ProbabilityMatrix = NDArray[np.float64]  # Shape: (n_theta, n_categories)
DensityArray = NDArray[np.float64]  # Shape: (n_scores,)

# Characteristic curve criteria
CriterionType = Literal["Q1", "Q2", "Q1Q2"]

# Optimizers for the two parameter search
OptimizerType = Literal["bfgs", "cobyqa"]

# Linking methods
LinkingMethod = Literal["mean_mean", "mean_sigma", "haebara", "stocking_lord"]

# Status symbols of a true score equating table
EquatingStatus = Literal["Y", "N", "-"]
