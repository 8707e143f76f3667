"""Exceptions raised by the classification pipeline."""


class InvalidInput(ValueError):
    """
    Raised when a stage receives input that violates its preconditions.

    Examples: missing band, empty training set, mismatched sequence lengths,
    geometry outside the raster extent, split threshold out of range.
    """
