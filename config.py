"""Central configuration for document restoration.

All tunable parameters are defined here with descriptive names.
These values can be adjusted to fine-tune binarization and scaling.

Transformations read their defaults from this module; the allowed ranges
below are the validation boundary for parameter dictionaries.
"""

# =============================================================================
# IMAGE BOUNDS
# =============================================================================

# Largest width or height accepted as a pipeline original
MAX_IMAGE_DIMENSION = 65536

# Largest width or height a scaling step may produce (bounds memory)
MAX_SCALED_DIMENSION = 32768

# =============================================================================
# PREVIEW
# =============================================================================

# Linear downsample factor used by the binarizer's preview path
PREVIEW_SCALE = 0.5

# Cap on the scale factor used by the scaler's preview path
PREVIEW_MAX_SCALE_FACTOR = 3.0

# =============================================================================
# 2D OTSU BINARIZATION
# =============================================================================

# Guided filter window radius (square window of side 2r+1)
TWOD_OTSU_WINDOW_RADIUS = 5
TWOD_OTSU_WINDOW_RADIUS_RANGE = (1, 20)

# Guided filter regularizer, on intensities normalized to [0, 1]
# Lower bound is exclusive
TWOD_OTSU_EPSILON = 0.02
TWOD_OTSU_EPSILON_RANGE = (0.001, 1.0)

# Square structuring element for close-then-open cleanup (<=1 disables)
TWOD_OTSU_MORPH_KERNEL_SIZE = 3
TWOD_OTSU_MORPH_KERNEL_RANGE = (1, 15)

# Bilateral + median denoising before the guidance image is built
TWOD_OTSU_NOISE_REDUCTION = True
TWOD_OTSU_BILATERAL_DIAMETER = 9
TWOD_OTSU_BILATERAL_SIGMA = 75.0
TWOD_OTSU_MEDIAN_KERNEL = 3

# Summed-area-table threshold search instead of the row-sweep search
TWOD_OTSU_ACCELERATED_SEARCH = True

# Tiles per side for regional processing (1 = one global threshold pair)
TWOD_OTSU_REGION_COUNT = 4
TWOD_OTSU_REGION_COUNT_RANGE = (1, 8)

# Score shaping for the threshold search
# Mixed (transition) quadrant mass is penalized relative to the main separation,
# and pairs near the diagonal s == t earn a small coherence bonus
TWOD_OTSU_MIXED_PENALTY = 0.05
TWOD_OTSU_COHERENCE_WEIGHT = 0.1
TWOD_OTSU_COHERENCE_FALLOFF = 0.01

# Class mass below this counts as empty
TWOD_OTSU_CLASS_WEIGHT_EPSILON = 1e-10

# Scores within this relative distance of the best are ties; the first pair
# in ascending (s, t) order wins
TWOD_OTSU_SCORE_TIE_TOLERANCE = 1e-9

# =============================================================================
# LANCZOS4 SCALING
# =============================================================================

LANCZOS_SCALE_FACTOR = 2.0
LANCZOS_SCALE_RANGE = (0.1, 10.0)

LANCZOS_TARGET_DPI = 300.0
LANCZOS_ORIGINAL_DPI = 150.0
LANCZOS_DPI_RANGE = (72.0, 2400.0)

# A DPI-derived ratio outside this open interval falls back to the scale factor
LANCZOS_DPI_RATIO_RANGE = (0.01, 100.0)

LANCZOS_ITERATIVE_DOWNSCALE = False

# Per-step shrink factor and step cap for iterative downscaling
LANCZOS_ITERATIVE_STEP = 0.6
LANCZOS_ITERATIVE_MAX_STEPS = 15

# Pre-filter Gaussian kernel by smallest image side: (min_side_below, kernel)
# Images smaller than LANCZOS_PREFILTER_MIN_SIDE are not pre-filtered
LANCZOS_PREFILTER_MIN_SIDE = 100
LANCZOS_PREFILTER_KERNELS = ((500, 3), (1000, 5))
LANCZOS_PREFILTER_LARGE_KERNEL = 7

# Post-filter bilateral settings by smallest image side:
# (min_side_below, diameter, sigma_color, sigma_space)
LANCZOS_POSTFILTER_SETTINGS = ((500, 5, 50.0, 50.0), (1000, 7, 75.0, 75.0))
LANCZOS_POSTFILTER_LARGE = (9, 100.0, 100.0)

# =============================================================================
# QUALITY METRICS
# =============================================================================

# Peak signal value for 8-bit images
METRIC_PEAK_VALUE = 255.0

# PSNR reported for identical (or numerically identical) images
PSNR_MAX_DB = 100.0

# MSE below this is treated as zero
PSNR_MSE_EPSILON = 1e-15

# Gaussian window for local SSIM
SSIM_WINDOW_SIZE = 11
SSIM_SIGMA = 1.5

# Stabilizing constants as fractions of the dynamic range
SSIM_K1 = 0.01
SSIM_K2 = 0.03
