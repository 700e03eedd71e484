"""
Parameter models for the transformations.

Each transformation keeps its parameters in one frozen pydantic model.
Updates build a new model and swap it in whole, which is what lets
apply() read a consistent snapshot without holding a lock for the whole run.

Types are strict: True is not accepted as an int, "5" is not accepted as a
number. Values outside the ranges in config.py fail validation, and the
caller-facing set_parameters() turns that failure into a no-op.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from config import (
    LANCZOS_DPI_RANGE,
    LANCZOS_ITERATIVE_DOWNSCALE,
    LANCZOS_ORIGINAL_DPI,
    LANCZOS_SCALE_FACTOR,
    LANCZOS_SCALE_RANGE,
    LANCZOS_TARGET_DPI,
    TWOD_OTSU_ACCELERATED_SEARCH,
    TWOD_OTSU_EPSILON,
    TWOD_OTSU_EPSILON_RANGE,
    TWOD_OTSU_MORPH_KERNEL_RANGE,
    TWOD_OTSU_MORPH_KERNEL_SIZE,
    TWOD_OTSU_NOISE_REDUCTION,
    TWOD_OTSU_REGION_COUNT,
    TWOD_OTSU_REGION_COUNT_RANGE,
    TWOD_OTSU_WINDOW_RADIUS,
    TWOD_OTSU_WINDOW_RADIUS_RANGE,
)

logger = logging.getLogger(__name__)

ParamsT = TypeVar("ParamsT", bound=BaseModel)


class TwoDOtsuParameters(BaseModel):
    """Parameters of the 2D Otsu binarizer.

    Attributes:
        window_radius: Guided filter window radius.
        epsilon: Guided filter regularizer on [0, 1] intensities.
        morph_kernel_size: Odd side of the close/open structuring element;
                           1 disables the cleanup.
        noise_reduction: Run bilateral + median denoising first.
        use_accelerated_search: Use the summed-area-table threshold search.
        region_count: Tiles per side; 1 binarizes the image as a whole.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    window_radius: int = Field(
        default=TWOD_OTSU_WINDOW_RADIUS,
        ge=TWOD_OTSU_WINDOW_RADIUS_RANGE[0],
        le=TWOD_OTSU_WINDOW_RADIUS_RANGE[1],
    )
    epsilon: float = Field(
        default=TWOD_OTSU_EPSILON,
        gt=TWOD_OTSU_EPSILON_RANGE[0],
        le=TWOD_OTSU_EPSILON_RANGE[1],
        allow_inf_nan=False,
    )
    morph_kernel_size: int = Field(
        default=TWOD_OTSU_MORPH_KERNEL_SIZE,
        ge=TWOD_OTSU_MORPH_KERNEL_RANGE[0],
        le=TWOD_OTSU_MORPH_KERNEL_RANGE[1],
    )
    noise_reduction: bool = TWOD_OTSU_NOISE_REDUCTION
    use_accelerated_search: bool = TWOD_OTSU_ACCELERATED_SEARCH
    region_count: int = Field(
        default=TWOD_OTSU_REGION_COUNT,
        ge=TWOD_OTSU_REGION_COUNT_RANGE[0],
        le=TWOD_OTSU_REGION_COUNT_RANGE[1],
    )

    @field_validator("morph_kernel_size")
    @classmethod
    def _validate_odd_kernel(cls, v: int) -> int:
        if v % 2 == 0:
            raise ValueError(f"morph_kernel_size must be odd, got {v}")
        return v


class Lanczos4Parameters(BaseModel):
    """Parameters of the Lanczos4 scaler.

    Attributes:
        scale_factor: Explicit scale factor.
        target_dpi: Desired output resolution.
        original_dpi: Resolution the document was scanned at.
        use_iterative_downscale: Shrink in area-averaged steps before the
                                 final Lanczos pass on large reductions.
        use_dpi: Derive the scale factor from target_dpi / original_dpi.
    """

    model_config = ConfigDict(frozen=True, strict=True, extra="forbid")

    scale_factor: float = Field(
        default=LANCZOS_SCALE_FACTOR,
        ge=LANCZOS_SCALE_RANGE[0],
        le=LANCZOS_SCALE_RANGE[1],
        allow_inf_nan=False,
    )
    target_dpi: float = Field(
        default=LANCZOS_TARGET_DPI,
        ge=LANCZOS_DPI_RANGE[0],
        le=LANCZOS_DPI_RANGE[1],
        allow_inf_nan=False,
    )
    original_dpi: float = Field(
        default=LANCZOS_ORIGINAL_DPI,
        ge=LANCZOS_DPI_RANGE[0],
        le=LANCZOS_DPI_RANGE[1],
        allow_inf_nan=False,
    )
    use_iterative_downscale: bool = LANCZOS_ITERATIVE_DOWNSCALE
    use_dpi: bool = False


def merge_parameters(current: ParamsT, updates: Mapping[str, Any]) -> ParamsT:
    """Apply each recognized, valid key of updates to current.

    Keys are applied one at a time so a bad value for one key does not
    block the others. Unknown keys and invalid values are skipped and the
    prior value is kept.

    Returns:
        A new parameter model (or current itself if nothing changed).
    """
    model_cls = type(current)
    merged = current
    for key, value in updates.items():
        if key not in model_cls.model_fields:
            logger.debug("Ignoring unknown parameter %r for %s", key, model_cls.__name__)
            continue
        try:
            merged = model_cls.model_validate({**merged.model_dump(), key: value})
        except ValidationError as exc:
            logger.debug(
                "Ignoring invalid value %r for %s.%s: %s",
                value,
                model_cls.__name__,
                key,
                exc.errors()[0]["msg"],
            )
    return merged
