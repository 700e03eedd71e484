"""
Document image restoration.

Restores and binarizes scanned document images through a composable chain
of transformations, then scores the result against the original.

Key components:
- pipeline: ImagePipeline, which owns the original/processed/preview images
  and replays the transformation chain on every change
- transformations: TwoDOtsuBinarizer and Lanczos4Scaler
- metrics: PSNR, SSIM and supporting quality metrics
- raster: load_image() / save_image()
- config: PipelineConfig, the immutable configuration shared by all of the above
- errors: RestorationError and its subclasses
"""

from .config import DEFAULT_CONFIG, PipelineConfig
from .errors import (
    InvalidInput,
    NoImageLoaded,
    RestorationError,
    TransformationFailed,
    UnsupportedConversion,
)
from .metrics import MetricInfo, MetricsEvaluator, QualityReport, psnr, ssim
from .pipeline import ImagePipeline
from .raster import load_image, save_image
from .transformations import (
    Lanczos4Scaler,
    Transformation,
    TransformationKind,
    TwoDOtsuBinarizer,
    create_transformation,
)

__all__ = [
    # Config
    "PipelineConfig",
    "DEFAULT_CONFIG",
    # Errors
    "RestorationError",
    "InvalidInput",
    "NoImageLoaded",
    "TransformationFailed",
    "UnsupportedConversion",
    # Pipeline and transformations
    "ImagePipeline",
    "Transformation",
    "TransformationKind",
    "TwoDOtsuBinarizer",
    "Lanczos4Scaler",
    "create_transformation",
    # Metrics
    "QualityReport",
    "MetricInfo",
    "MetricsEvaluator",
    "psnr",
    "ssim",
    # Raster I/O
    "load_image",
    "save_image",
]
