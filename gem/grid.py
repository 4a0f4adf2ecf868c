from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from PIL import Image

from gem import quantize, sample
from gem.config import DEFAULT_MAX_COLORS, DEFAULT_METHOD
from gem.palette_tools import palette_usage, rgb_to_hex

Grid = List[List[str]]


@dataclass(frozen=True)
class GridResult:
    """One generated template: the hex grid plus the palette it was drawn from."""
    grid: Grid
    palette: Tuple[str, ...]  # generation order
    usage: Tuple[Tuple[str, int], ...]  # (hex, cell count), most used first

    @property
    def width(self) -> int:
        return len(self.grid[0]) if self.grid else 0

    @property
    def height(self) -> int:
        return len(self.grid)

    def distinct_colors(self) -> int:
        return len({cell for row in self.grid for cell in row})


def assemble_grid(hex_colors: Sequence[str], width: int, height: int) -> Grid:
    """Reshape a flat row-major sequence into `height` rows of `width` cells."""
    if len(hex_colors) != width * height:
        raise ValueError(f"Expected {width * height} colors for a {width}x{height} grid, got {len(hex_colors)}.")
    return [list(hex_colors[row * width:(row + 1) * width]) for row in range(height)]


def generate_grid(
    image: Optional[Image.Image],
    region: sample.Region,
    width: int,
    height: int,
    max_colors: int = DEFAULT_MAX_COLORS,
    method: str = DEFAULT_METHOD,
) -> GridResult:
    """
    Turn the region of an image into a width x height grid of palette colors.

    Raises:
        ImageLoadError, InvalidRegion, InvalidGridSize: From the sampler.
        EmptyInput: From the quantizer (not reachable with a valid grid size).
    """
    samples = sample.sample(image, region, width, height)
    quantizer = quantize.quantize(samples, max_colors=max_colors, method=method)
    mapped = quantizer.map_colors(samples)

    hex_cells = [rgb_to_hex(color) for color in mapped]
    usage = palette_usage(mapped, quantizer.palette)
    return GridResult(
        grid=assemble_grid(hex_cells, width, height),
        palette=tuple(rgb_to_hex(color) for color in quantizer.palette),
        usage=tuple((rgb_to_hex(color), count) for color, count in usage),
    )
