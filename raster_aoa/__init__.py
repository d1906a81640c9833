#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Raster Area of Applicability Package.

Computes a Dissimilarity Index (DI) and an Area of Applicability (AOA) mask
for raster predictions, telling where a trained classifier operates inside
the feature-space support of its training data.
"""

__version__ = "0.1.0"
__author__ = "Elena Project Team"
__email__ = "user@example.com"

from raster_aoa.aoa.estimator import AreaOfApplicability
from raster_aoa.aoa.matrix import FeatureMatrix
from raster_aoa.aoa.assemble import AOAResult
from raster_aoa.core.exceptions import (
    AOAError, FeatureMismatch, DegenerateTrainingSet,
    InvalidWeights, MalformedTrainingData, NotFittedError
)

__all__ = [
    "AreaOfApplicability", "FeatureMatrix", "AOAResult",
    "AOAError", "FeatureMismatch", "DegenerateTrainingSet",
    "InvalidWeights", "MalformedTrainingData", "NotFittedError",
]
