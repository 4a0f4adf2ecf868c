from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import typer
from PIL import Image

from gem import image_source
from gem.config import DEFAULT_GRID_SIZE, DEFAULT_MAX_COLORS, DEFAULT_METHOD, QUANTIZE_METHODS
from gem.grid import GridResult, generate_grid
from gem.image_source import ImageLoadError
from gem.quantize import EmptyInput
from gem.sample import InvalidGridSize, InvalidRegion, Region, centered_region, clamp_grid_size, full_region


@dataclass
class GemSession:
    """
    Everything the single-screen form keeps between clicks: the uploaded image, the crop box,
    the grid parameters, the "generating" flag and the last grid. Owned by the caller; the
    generation pipeline itself keeps no state.
    """
    image: Optional[Image.Image] = None
    region: Optional[Region] = None
    grid_width: int = DEFAULT_GRID_SIZE[0]
    grid_height: int = DEFAULT_GRID_SIZE[1]
    max_colors: int = DEFAULT_MAX_COLORS
    method: str = DEFAULT_METHOD
    is_generating: bool = False
    result: Optional[GridResult] = None

    def __post_init__(self) -> None:
        self.set_method(self.method)

    def set_method(self, method: str) -> None:
        if method not in QUANTIZE_METHODS:
            typer.secho(f"Warning: Unknown quantization method '{method}'. Using '{DEFAULT_METHOD}'.",
                        fg=typer.colors.YELLOW, err=True)
            method = DEFAULT_METHOD
        self.method = method

    def _reset_region(self) -> None:
        if self.image is not None:
            self.region = centered_region(self.image.size, self.grid_width / self.grid_height)

    def _set_image(self, image: Image.Image) -> None:
        self.image = image
        self._reset_region()

    def load_bytes(self, data: bytes) -> bool:
        """Decode an upload. On failure the previous image and grid are kept."""
        try:
            self._set_image(image_source.decode(data))
        except ImageLoadError as e:
            typer.secho(f"Warning: {e}", fg=typer.colors.YELLOW, err=True)
            return False
        return True

    def load_file(self, path: Union[str, Path]) -> bool:
        try:
            self._set_image(image_source.load_image(path))
        except ImageLoadError as e:
            typer.secho(f"Warning: {e}", fg=typer.colors.YELLOW, err=True)
            return False
        return True

    async def load_bytes_async(self, data: bytes) -> bool:
        try:
            self._set_image(await image_source.decode_async(data))
        except ImageLoadError as e:
            typer.secho(f"Warning: {e}", fg=typer.colors.YELLOW, err=True)
            return False
        return True

    def set_region(self, region: Region) -> None:
        self.region = Region(*region)

    def set_grid_size(self, width: int, height: int) -> None:
        self.grid_width, self.grid_height = clamp_grid_size(width, height)

    def set_max_colors(self, max_colors: int) -> None:
        if max_colors < 1:
            typer.secho(f"Warning: max colors ({max_colors}) must be at least 1. Using 1.", fg=typer.colors.YELLOW, err=True)
        self.max_colors = max(1, int(max_colors))

    def generate(self) -> Optional[GridResult]:
        """
        Build a fresh grid from the current state.

        Returns:
            The new GridResult, or None if generation failed. A failure only prints a warning:
            the previous result stays in place and `is_generating` is cleared either way.
        """
        if self.image is None:
            typer.secho("Warning: upload an image before generating a grid.", fg=typer.colors.YELLOW, err=True)
            return None

        self.is_generating = True
        try:
            region = self.region if self.region is not None else full_region(self.image.size)
            result = generate_grid(
                self.image, region, self.grid_width, self.grid_height,
                max_colors=self.max_colors, method=self.method,
            )
        except (ImageLoadError, InvalidRegion, InvalidGridSize, EmptyInput) as e:
            typer.secho(f"Warning: grid generation failed: {e}", fg=typer.colors.YELLOW, err=True)
            return None
        finally:
            self.is_generating = False

        self.result = result
        return result
