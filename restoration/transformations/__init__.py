"""
Pipeline transformations.

Key components:
- base: Transformation ABC, parameter snapshots, TransformationKind
- params: pydantic parameter models and merge_parameters()
- twod_otsu: TwoDOtsuBinarizer (guided filter + 2D histogram thresholds)
- lanczos: Lanczos4Scaler (pre/post-filtered Lanczos4 resampling)
- guided_filter, threshold_search: the binarizer's building blocks
"""

from __future__ import annotations

from typing import Any

from ..config import PipelineConfig
from .base import Transformation, TransformationKind
from .lanczos import Lanczos4Scaler, dpi_scale_factor, resolve_scale_factor
from .params import Lanczos4Parameters, TwoDOtsuParameters, merge_parameters
from .twod_otsu import TwoDOtsuBinarizer

TRANSFORMATION_CLASSES: dict[TransformationKind, type[Transformation]] = {
    TransformationKind.TWOD_OTSU: TwoDOtsuBinarizer,
    TransformationKind.LANCZOS4: Lanczos4Scaler,
}


def create_transformation(
    kind: TransformationKind | str,
    config: PipelineConfig | None = None,
    **params: Any,
) -> Transformation:
    """Build a transformation by kind, e.g. create_transformation("lanczos4", scale_factor=0.5).

    Raises:
        ValueError: If kind is unknown or a parameter is invalid.
    """
    cls = TRANSFORMATION_CLASSES[TransformationKind(kind)]
    return cls(config, **params)


__all__ = [
    "Transformation",
    "TransformationKind",
    "TwoDOtsuBinarizer",
    "Lanczos4Scaler",
    "TwoDOtsuParameters",
    "Lanczos4Parameters",
    "merge_parameters",
    "dpi_scale_factor",
    "resolve_scale_factor",
    "create_transformation",
    "TRANSFORMATION_CLASSES",
]
