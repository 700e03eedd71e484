"""
Configuration for the restoration pipeline.

The pipeline and every transformation share one immutable PipelineConfig.
It is passed in at construction time and never mutated afterwards, so two
pipelines in the same process can run with different bounds.
"""

from dataclasses import dataclass

from config import (
    MAX_IMAGE_DIMENSION,
    MAX_SCALED_DIMENSION,
    PREVIEW_SCALE,
    PREVIEW_MAX_SCALE_FACTOR,
)


@dataclass(frozen=True)
class PipelineConfig:
    """Bounds and switches shared by the pipeline and its transformations.

    Attributes:
        max_image_dimension: Largest width or height accepted by
                             ImagePipeline.set_original().
        max_scaled_dimension: Largest width or height a scaling step may
                              produce.
        preview_scale: Downsample factor the binarizer uses on its preview
                       path. Must be in (0, 1].
        preview_max_scale_factor: Cap on the scale factor the scaler uses on
                                  its preview path.
        log_step_timings: Log the duration of every chain stage at DEBUG.
    """

    max_image_dimension: int = MAX_IMAGE_DIMENSION
    max_scaled_dimension: int = MAX_SCALED_DIMENSION
    preview_scale: float = PREVIEW_SCALE
    preview_max_scale_factor: float = PREVIEW_MAX_SCALE_FACTOR
    log_step_timings: bool = False

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ValueError: If any parameter is invalid.
        """
        if self.max_image_dimension <= 0:
            raise ValueError(
                f"max_image_dimension must be positive, got {self.max_image_dimension}"
            )
        if self.max_scaled_dimension <= 0:
            raise ValueError(
                f"max_scaled_dimension must be positive, got {self.max_scaled_dimension}"
            )
        if not (0.0 < self.preview_scale <= 1.0):
            raise ValueError(
                f"preview_scale must be in (0, 1], got {self.preview_scale}"
            )
        if self.preview_max_scale_factor <= 0:
            raise ValueError(
                "preview_max_scale_factor must be positive, "
                f"got {self.preview_max_scale_factor}"
            )


DEFAULT_CONFIG = PipelineConfig()
