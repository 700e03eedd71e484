"""
Image pipeline: the single source of truth for what the current image looks
like under the active transformation stack.

The pipeline owns three buffers:
- original: a private copy of the image passed to set_original()
- processed: original run through every transformation's apply()
- preview: original run through every transformation's apply_preview()

Derived buffers are always recomputed by replaying the whole chain from a
fresh copy of the original. Buffers are never modified in place; a replay
builds a new array and swaps the reference, so a reader holding the old
array is unaffected.

Locking:
- a ReadWriteLock guards all state; mutations hold the write lock for the
  whole replay, accessors hold the read lock only long enough to copy
- a separate preview lock serializes preview replays. It is always taken
  before the main lock.

Usage:
    from restoration import ImagePipeline, TwoDOtsuBinarizer

    with ImagePipeline() as pipeline:
        pipeline.set_original(image)
        pipeline.add_transformation(TwoDOtsuBinarizer())
        binary = pipeline.get_processed()
"""

from __future__ import annotations

import logging
import threading

import numpy as np

from logging_utils import log_duration

from .config import DEFAULT_CONFIG, PipelineConfig
from .errors import NoImageLoaded, RestorationError, TransformationFailed
from .images import channel_count, is_empty, normalize_image, validate_image
from .locks import ReadWriteLock
from .metrics import QualityReport, psnr, ssim
from .transformations.base import Transformation

logger = logging.getLogger(__name__)


class ImagePipeline:
    """Ordered, mutable transformation chain over one original image.

    Every method is safe to call from several threads. Heavy calls
    (set_original, add_transformation, reprocess) run synchronously on the
    calling thread; the pipeline starts no threads of its own.

    Args:
        config: Shared configuration. Defaults to PipelineConfig().

    Raises:
        ValueError: If config fails validation.
    """

    def __init__(self, config: PipelineConfig | None = None):
        self._config = config or DEFAULT_CONFIG
        self._config.validate()

        self._lock = ReadWriteLock()
        self._preview_lock = threading.Lock()

        self._original: np.ndarray | None = None
        self._processed: np.ndarray | None = None
        self._preview: np.ndarray | None = None
        self._transformations: list[Transformation] = []
        # Bumped on every state change so a preview computed under the read
        # lock can tell whether it is still current when it comes to swap.
        self._generation = 0

    @property
    def config(self) -> PipelineConfig:
        return self._config

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def set_original(self, image: np.ndarray) -> None:
        """Load a new original image and replay the chain against it.

        The image is normalized to 8-bit gray or BGR and copied; the caller
        keeps ownership of its array.

        Raises:
            InvalidInput: If image is empty, malformed or larger than
                          config.max_image_dimension on either side. The
                          prior state is kept.
            UnsupportedConversion: If image cannot be brought to 8-bit gray
                                   or BGR. The prior state is kept.
            TransformationFailed: If the full-resolution replay fails. The
                                  pipeline is left without an image.
        """
        original = normalize_image(image)
        validate_image(original, self._config.max_image_dimension)

        with self._preview_lock, self._lock.write():
            self._release_images()
            self._original = original
            self._generation += 1

            if self._transformations:
                try:
                    self._processed = self._replay(preview=False)
                except TransformationFailed:
                    self._release_images()
                    raise
                self._preview = self._replay_preview_or_keep(original)
            else:
                self._processed = original.copy()
                self._preview = original.copy()

        logger.info(
            "Original image set: %dx%d, %d channel(s)",
            original.shape[1],
            original.shape[0],
            channel_count(original),
        )

    def add_transformation(self, transformation: Transformation) -> None:
        """Append a transformation and replay both chains.

        Raises:
            TypeError: If transformation is not a Transformation.
            NoImageLoaded: If no original is set.
            TransformationFailed: If the full-resolution replay fails. The
                                  transformation is removed again and the
                                  processed image is unchanged.
        """
        if not isinstance(transformation, Transformation):
            raise TypeError(
                f"Expected Transformation, got {type(transformation).__name__}"
            )

        with self._preview_lock, self._lock.write():
            self._require_image()
            self._transformations.append(transformation)
            try:
                processed = self._replay(preview=False)
            except TransformationFailed:
                self._transformations.pop()
                logger.warning(
                    "Rolled back %s after a failed replay", transformation.name
                )
                raise
            self._processed = processed
            self._generation += 1
            self._preview = self._replay_preview_or_keep(self._preview)
            count = len(self._transformations)

        logger.info("Added transformation %s (%d total)", transformation.name, count)

    def remove_transformation(self, index: int) -> None:
        """Remove the transformation at index, close it, and replay.

        Raises:
            IndexError: If index is out of range.
            TransformationFailed: If the replay of the remaining chain fails;
                                  the removal itself stands.
        """
        with self._preview_lock, self._lock.write():
            if not 0 <= index < len(self._transformations):
                raise IndexError(
                    f"Transformation index {index} out of range "
                    f"(0..{len(self._transformations) - 1})"
                )
            removed = self._transformations.pop(index)
            removed.close()
            self._generation += 1
            logger.info("Removed transformation %s at index %d", removed.name, index)

            if self._original is not None:
                self._processed = self._replay(preview=False)
                self._preview = self._replay_preview_or_keep(self._preview)

    def clear_transformations(self) -> None:
        """Close and remove every transformation; derived images revert to the original."""
        with self._preview_lock, self._lock.write():
            for transformation in self._transformations:
                transformation.close()
            count = len(self._transformations)
            self._transformations.clear()
            self._generation += 1

            if self._original is not None:
                self._processed = self._original.copy()
                self._preview = self._original.copy()

        logger.info("Cleared %d transformation(s)", count)

    def reprocess(self) -> None:
        """Replay the full-resolution chain.

        Call before export so the processed image reflects the latest
        parameter edits.

        Raises:
            NoImageLoaded: If no original is set.
            TransformationFailed: If a stage fails; the processed image is
                                  unchanged.
        """
        with self._lock.write():
            self._require_image()
            self._processed = self._replay(preview=False)

    def reprocess_preview(self) -> None:
        """Replay the preview chain.

        The chain runs under the read lock, so readers are not blocked for
        its duration; the result is swapped in under the write lock unless
        a mutation replaced the state in the meantime.

        Raises:
            NoImageLoaded: If no original is set.
            TransformationFailed: If a stage fails; the preview is unchanged.
        """
        with self._preview_lock:
            with self._lock.read():
                self._require_image()
                generation = self._generation
                preview = self._replay(preview=True)

            with self._lock.write():
                if self._generation != generation:
                    logger.debug("Discarding stale preview (state changed during replay)")
                    return
                self._preview = preview

    def close(self) -> None:
        """Release all images and close every transformation."""
        with self._preview_lock, self._lock.write():
            for transformation in self._transformations:
                transformation.close()
            self._transformations.clear()
            self._release_images()
            self._generation += 1

    def __enter__(self) -> "ImagePipeline":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    def has_image(self) -> bool:
        with self._lock.read():
            return self._original is not None

    def get_original(self) -> np.ndarray:
        """Return a copy of the original image.

        Raises:
            NoImageLoaded: If no original is set.
        """
        with self._lock.read():
            self._require_image()
            return self._original.copy()

    def get_processed(self) -> np.ndarray:
        """Return a copy of the processed image (or of the original if absent).

        Raises:
            NoImageLoaded: If no original is set.
        """
        with self._lock.read():
            self._require_image()
            source = self._processed if self._processed is not None else self._original
            return source.copy()

    def get_preview(self) -> np.ndarray:
        """Return a copy of the preview image (or of the original if absent).

        Raises:
            NoImageLoaded: If no original is set.
        """
        with self._lock.read():
            self._require_image()
            source = self._preview if self._preview is not None else self._original
            return source.copy()

    @property
    def transformations(self) -> tuple[Transformation, ...]:
        with self._lock.read():
            return tuple(self._transformations)

    @property
    def transformation_count(self) -> int:
        with self._lock.read():
            return len(self._transformations)

    def quality_report(self) -> QualityReport:
        """PSNR and SSIM of the processed image against the original.

        Both are 0 when the chain changed the image dimensions.

        Raises:
            NoImageLoaded: If no original is set.
        """
        with self._lock.read():
            self._require_image()
            original = self._original
            processed = self._processed if self._processed is not None else self._original

        # Buffers are swapped, never written, so the references stay valid.
        return QualityReport(psnr=psnr(original, processed), ssim=ssim(original, processed))

    # -------------------------------------------------------------------------
    # Internals (callers hold the appropriate lock)
    # -------------------------------------------------------------------------

    def _require_image(self) -> None:
        if self._original is None:
            raise NoImageLoaded("No image loaded")

    def _release_images(self) -> None:
        self._original = None
        self._processed = None
        self._preview = None

    def _replay(self, preview: bool) -> np.ndarray:
        """Run the chain from a fresh copy of the original."""
        mode = "preview" if preview else "full"
        working = self._original.copy()

        with log_duration(logger, f"{mode} replay", enabled=self._config.log_step_timings):
            for transformation in self._transformations:
                label = f"{transformation.name} ({mode})"
                with log_duration(logger, label, enabled=self._config.log_step_timings):
                    working = self._run_stage(transformation, working, preview)

        return working

    def _run_stage(
        self, transformation: Transformation, working: np.ndarray, preview: bool
    ) -> np.ndarray:
        try:
            if preview:
                result = transformation.apply_preview(working)
            else:
                result = transformation.apply(working)
        except Exception as e:
            logger.error("%s failed: %s", transformation.name, e)
            raise TransformationFailed(transformation.name, e) from e

        if is_empty(result):
            logger.error("%s returned an empty result", transformation.name)
            raise TransformationFailed(transformation.name)
        try:
            validate_image(result)
        except RestorationError as e:
            logger.error("%s returned an invalid image: %s", transformation.name, e)
            raise TransformationFailed(transformation.name, e) from e
        return result

    def _replay_preview_or_keep(self, fallback: np.ndarray | None) -> np.ndarray | None:
        """Replay the preview chain; on failure log and keep fallback."""
        try:
            return self._replay(preview=True)
        except TransformationFailed as e:
            logger.warning("Preview replay failed, keeping previous preview: %s", e)
            return fallback
