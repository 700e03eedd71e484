"""Error taxonomy for the restoration pipeline."""

from __future__ import annotations


class RestorationError(Exception):
    """Base class for all restoration errors."""


class InvalidInput(RestorationError):
    """An image is empty, malformed, or exceeds the supported size."""


class NoImageLoaded(RestorationError):
    """The operation needs an original image and none is set."""


class UnsupportedConversion(RestorationError):
    """A channel count or dtype that cannot be bridged to 8-bit gray or BGR."""


class TransformationFailed(RestorationError):
    """A stage of the transformation chain produced no usable image.

    Attributes:
        name: Name of the failing transformation.
        cause: The underlying exception, if the stage raised one.
    """

    def __init__(self, name: str, cause: BaseException | None = None):
        self.name = name
        self.cause = cause
        if cause is None:
            message = f"Transformation '{name}' returned an empty result"
        else:
            message = f"Transformation '{name}' failed: {cause}"
        super().__init__(message)
