import asyncio
from io import BytesIO
from pathlib import Path
from typing import Union

from PIL import Image, ImageOps, UnidentifiedImageError


class ImageLoadError(ValueError):
    """Raised when the source image cannot be read or decoded."""


def to_rgb(image: Image.Image) -> Image.Image:
    # Transparent areas are painted over white, like a blank canvas.
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        canvas = Image.new("RGB", rgba.size, (255, 255, 255))
        canvas.paste(rgba, (0, 0), mask=rgba)
        return canvas
    return image.convert("RGB")


def decode(data: bytes) -> Image.Image:
    """
    Decode raw image bytes into an RGB bitmap.

    Args:
        data (bytes): Encoded image data (PNG, JPEG, ... anything Pillow reads).

    Returns:
        PIL.Image.Image: Fully loaded RGB image with EXIF orientation applied.

    Raises:
        ImageLoadError: If the data is empty or cannot be decoded.
    """
    if not data:
        raise ImageLoadError("Error decoding image: no data")
    try:
        with Image.open(BytesIO(data)) as opened:
            opened.load()
            oriented = ImageOps.exif_transpose(opened)
            return to_rgb(oriented)
    except UnidentifiedImageError as e:
        raise ImageLoadError(f"Error decoding image: unrecognized format ({e})") from e
    except Image.DecompressionBombError as e:
        raise ImageLoadError(f"Error decoding image: too large ({e})") from e
    except (OSError, SyntaxError, ValueError, EOFError) as e:
        # Truncated or corrupt files surface as any of these from the plugins.
        raise ImageLoadError(f"Error decoding image: {e}") from e


def load_image(path: Union[str, Path]) -> Image.Image:
    """Read an image file from disk and decode it with `decode`."""
    try:
        data = Path(path).read_bytes()
    except FileNotFoundError as e:
        raise ImageLoadError(f"Error: Input file not found at {path}") from e
    except OSError as e:
        raise ImageLoadError(f"Error opening image {path}: {e}") from e
    return decode(data)


async def decode_async(data: bytes) -> Image.Image:
    return await asyncio.to_thread(decode, data)
