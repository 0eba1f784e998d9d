"""
Configuration and constants for the OptiCut cutting optimizer.
"""

import os

# Saw blade width used when a material does not specify one
DEFAULT_KERF_MM = 3.0

# Orientation search over the leading rotatable panels
MAX_LOOKAHEAD_PANELS = 3

# Part ordering strategies understood by part_expander
SORT_STRATEGIES = ('area', 'longest_side', 'height', 'width', 'perimeter')
DEFAULT_SORT_STRATEGY = 'area'

# Reasons attached to unplaced parts
REASON_EXCEEDS_BOARD = "exceeds board dimensions"
REASON_TIMEOUT = "timeout"

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_LEVEL = os.environ.get('OPTICUT_LOG_LEVEL', 'INFO')
