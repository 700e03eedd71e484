"""
Transformation base class with a common interface.

A transformation is a pure function of (input image, parameters) -> output
image. It never mutates its input and owns no image data. Each one exposes
two entry points:

- apply(): full quality, used for the exported image
- apply_preview(): speed-optimized, used for interactive preview

Usage:
    from restoration.transformations import TwoDOtsuBinarizer

    binarizer = TwoDOtsuBinarizer(region_count=1)
    binarizer.set_parameters({"window_radius": 8})
    binary = binarizer.apply(image)
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, ClassVar, Mapping

import numpy as np
from pydantic import BaseModel

from ..config import DEFAULT_CONFIG, PipelineConfig
from ..errors import InvalidInput
from ..images import is_empty
from .params import merge_parameters


class TransformationKind(str, Enum):
    """The closed set of transformation variants."""

    TWOD_OTSU = "twod_otsu"
    LANCZOS4 = "lanczos4"


class Transformation(ABC):
    """Base class for pipeline transformations.

    Subclasses declare their parameter model and implement _apply(). The
    base class owns the parameter snapshot: set_parameters() swaps in a new
    frozen model under a lock, and every apply call reads exactly one model
    at entry, so a concurrent edit never yields a result computed from a
    mixture of old and new values.

    Args:
        config: Shared pipeline configuration. Defaults to PipelineConfig().
        **params: Initial parameter values. Unlike set_parameters(), invalid
                  values here raise pydantic.ValidationError.
    """

    kind: ClassVar[TransformationKind]
    parameters_model: ClassVar[type[BaseModel]]

    def __init__(self, config: PipelineConfig | None = None, **params: Any):
        self._config = config or DEFAULT_CONFIG
        self._params_lock = threading.Lock()
        self._params = self.parameters_model(**params)
        self._closed = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging and error reporting."""

    @abstractmethod
    def _apply(self, img: np.ndarray, params: Any, preview: bool) -> np.ndarray:
        """Run the transformation with one parameter snapshot.

        Args:
            img: Non-empty input image. Must not be mutated.
            params: Parameter snapshot taken at call entry.
            preview: True on the speed-optimized preview path.

        Returns:
            Output image as a new numpy array.
        """

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def closed(self) -> bool:
        return self._closed

    def apply(self, img: np.ndarray) -> np.ndarray:
        """Apply at full quality."""
        return self._run(img, preview=False)

    def apply_preview(self, img: np.ndarray) -> np.ndarray:
        """Apply with the speed-optimized preview settings."""
        return self._run(img, preview=True)

    def _run(self, img: np.ndarray, preview: bool) -> np.ndarray:
        if is_empty(img):
            raise InvalidInput(f"{self.name}: input image is empty")
        return self._apply(img, self.snapshot(), preview)

    def snapshot(self) -> Any:
        """Return the current (immutable) parameter model."""
        with self._params_lock:
            return self._params

    def get_parameters(self) -> dict[str, Any]:
        """Return the current parameters as a plain dictionary."""
        return self.snapshot().model_dump()

    def set_parameters(self, params: Mapping[str, Any]) -> None:
        """Update parameters from a string-keyed dictionary.

        Unknown keys and out-of-range values are ignored; the prior value
        is retained.
        """
        with self._params_lock:
            self._params = merge_parameters(self._params, params)

    def close(self) -> None:
        """Release resources held by this transformation.

        Transformations hold no image buffers, so this only marks the
        instance closed. The pipeline calls it on removal.
        """
        self._closed = True

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_parameters()!r})"
