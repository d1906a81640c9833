#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Error types raised by the area of applicability pipeline.

Every error carries the context needed to act on it (sample index,
feature name, offending feature lists) both as attributes and in its
message.
"""
from typing import Optional, Sequence


class AOAError(Exception):
    """Base class for all area of applicability errors."""


class FeatureMismatch(AOAError):
    """Query features differ in name, count or order from the training features."""

    def __init__(self, expected: Sequence[str], received: Sequence[str]):
        self.expected = list(expected)
        self.received = list(received)

        if len(self.expected) != len(self.received):
            detail = f"expected {len(self.expected)} features, got {len(self.received)}"
        else:
            position = next(
                i for i, (a, b) in enumerate(zip(self.expected, self.received)) if a != b
            )
            detail = (
                f"feature {position} is '{self.received[position]}', "
                f"expected '{self.expected[position]}'"
            )
        super().__init__(
            f"Query features do not match training features: {detail} "
            f"(expected {self.expected}, got {self.received})"
        )


class DegenerateTrainingSet(AOAError):
    """The training set cannot define a reference distance distribution."""


class InvalidWeights(AOAError):
    """Feature weights are negative, non-finite or all zero."""

    def __init__(self, message: str, feature: Optional[str] = None):
        self.feature = feature
        super().__init__(message)


class MalformedTrainingData(AOAError):
    """Training data holds NaN/infinite values or inconsistent group labels."""

    def __init__(self, message: str,
                 sample_index: Optional[int] = None,
                 feature: Optional[str] = None):
        self.sample_index = sample_index
        self.feature = feature
        super().__init__(message)


class NotFittedError(AOAError):
    """Score was requested before the Fit phase completed."""
