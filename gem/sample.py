from typing import NamedTuple, Optional, Tuple, Union

import numpy as np
import typer
from PIL import Image

from gem.config import MAX_GRID_DIM
from gem.image_source import ImageLoadError, to_rgb

Number = Union[int, float]


class InvalidRegion(ValueError):
    """Raised when the region of interest is empty after clamping to the image."""


class InvalidGridSize(ValueError):
    """Raised when the requested grid has fewer than one cell per side."""


class Region(NamedTuple):
    """Axis-aligned rectangle in source-image pixel coordinates."""
    x: Number
    y: Number
    width: Number
    height: Number

    @property
    def box(self) -> Tuple[Number, Number, Number, Number]:
        """(left, upper, right, lower), the form Pillow takes for crop/resize boxes."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)


def full_region(image_size: Tuple[int, int]) -> Region:
    w, h = image_size
    return Region(0, 0, w, h)


def centered_region(image_size: Tuple[int, int], aspect: float) -> Region:
    """
    Largest region centred in the image whose width/height ratio is `aspect`.
    This is the crop box offered before the user moves it.
    """
    source_w, source_h = image_size
    if source_w <= 0 or source_h <= 0 or aspect <= 0:
        raise InvalidRegion(f"Cannot centre a region in a {source_w}x{source_h} image (aspect {aspect}).")

    img_aspect_ratio = source_w / source_h
    if img_aspect_ratio > aspect:
        region_h = source_h
        region_w = round(region_h * aspect)
    else:
        region_w = source_w
        region_h = round(region_w / aspect)
    region_w, region_h = max(1, min(region_w, source_w)), max(1, min(region_h, source_h))
    return Region((source_w - region_w) // 2, (source_h - region_h) // 2, region_w, region_h)


def clamp_region(region: Region, image_size: Tuple[int, int]) -> Region:
    """
    Clamp a region to the image bounds.

    Raises:
        InvalidRegion: If nothing of the region lies inside the image, or its size is not positive.
    """
    if region.width <= 0 or region.height <= 0:
        raise InvalidRegion(f"Region {tuple(region)} has non-positive width or height.")
    img_w, img_h = image_size
    left = max(0, region.x)
    upper = max(0, region.y)
    right = min(img_w, region.x + region.width)
    lower = min(img_h, region.y + region.height)
    if right - left <= 0 or lower - upper <= 0:
        raise InvalidRegion(f"Region {tuple(region)} lies outside the {img_w}x{img_h} image.")
    return Region(left, upper, right - left, lower - upper)


def clamp_grid_size(width: int, height: int, max_dim: int = MAX_GRID_DIM) -> Tuple[int, int]:
    """Clamp grid dimensions to [1, max_dim], warning when a value had to change."""
    clamped_w = max(1, min(int(width), max_dim))
    clamped_h = max(1, min(int(height), max_dim))
    if (clamped_w, clamped_h) != (width, height):
        typer.secho(f"Warning: grid size {width}x{height} is out of range (1-{max_dim}). "
                    f"Using {clamped_w}x{clamped_h}.", fg=typer.colors.YELLOW, err=True)
    return clamped_w, clamped_h


def sample(image: Optional[Image.Image], region: Region, width: int, height: int) -> np.ndarray:
    """
    Resample the region of interest down to a width x height raster.

    Each output cell is the area average of the source pixels it covers (Pillow's BOX filter),
    so small grids do not alias the way nearest-pixel picking would.

    Args:
        image (PIL.Image.Image): Decoded source bitmap. Not modified.
        region (Region): Region of interest, clamped to the image bounds.
        width (int): Grid columns.
        height (int): Grid rows.

    Returns:
        np.ndarray: uint8 array of shape (width * height, 3), row-major (top-to-bottom, left-to-right).

    Raises:
        ImageLoadError: If there is no decoded image.
        InvalidRegion: If the clamped region is empty.
        InvalidGridSize: If width or height is below 1.
    """
    if image is None:
        raise ImageLoadError("No decoded image to sample from.")
    if width < 1 or height < 1:
        raise InvalidGridSize(f"Grid size must be at least 1x1, got {width}x{height}.")

    clamped = clamp_region(region, image.size)
    rgb_image = image if image.mode == "RGB" else to_rgb(image)
    resized = rgb_image.resize((int(width), int(height)), resample=Image.Resampling.BOX, box=clamped.box)
    return np.asarray(resized, dtype=np.uint8).reshape(-1, 3)
