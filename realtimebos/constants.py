"""Constants for real-time background-oriented schlieren processing."""

DEFAULT_REFERENCE_WEIGHT = 0.1  # EMA weight of a new frame into the reference
DEFAULT_OUTPUT_WEIGHT = 0.05    # EMA weight of a new differential into the output

DEFAULT_DELTA_THRESHOLD = 2.0 / 255.0
DEFAULT_DELTA_GAIN = 1.0

MACROBLOCK_SIZE = 8
DEFAULT_SEARCH_RADIUS = 2

LUMA_WEIGHTS = (0.299, 0.587, 0.114)

MOTION_DY = 0
MOTION_DX = 1
MOTION_COST = 2
