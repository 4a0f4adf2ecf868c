import os
from typing import Dict, Tuple

DEFAULT_MAX_COLORS = 40
MAX_GRID_DIM = 200
DEFAULT_GRID_SIZE: Tuple[int, int] = (50, 50)  # (width, height) in cells
DEFAULT_METHOD = "mediancut"
QUANTIZE_METHODS = ("mediancut", "kmeans")

# Complexity presets for the CLI. Explicit options always win over these.
PRESETS: Dict[str, Dict[str, int]] = {
    "small": {"grid_width": 30, "grid_height": 30, "max_colors": 20},
    "medium": {"grid_width": 60, "grid_height": 60, "max_colors": 40},
    "large": {"grid_width": 120, "grid_height": 120, "max_colors": 60},
}

_GEMGEN_MAX_COLORS_ENV = os.environ.get("GEMGEN_MAX_COLORS", "").strip()
if _GEMGEN_MAX_COLORS_ENV.isdigit() and int(_GEMGEN_MAX_COLORS_ENV) > 0:
    DEFAULT_MAX_COLORS = int(_GEMGEN_MAX_COLORS_ENV)

_GEMGEN_METHOD_ENV = os.environ.get("GEMGEN_METHOD", "").strip().lower()
if _GEMGEN_METHOD_ENV in QUANTIZE_METHODS:
    DEFAULT_METHOD = _GEMGEN_METHOD_ENV
