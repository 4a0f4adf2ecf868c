import re
from typing import List, Sequence, Tuple, Union

import numpy as np

RGB = Tuple[int, int, int]

_HEX_RE = re.compile(r"#?([0-9a-fA-F]{6})")


def as_rgb_array(colors: Union[np.ndarray, Sequence[Sequence[int]]]) -> np.ndarray:
    """
    Normalize a sequence of RGB triples (or an HxWx3 image array) to a flat (N, 3) uint8 array.

    Raises:
        ValueError: If the data is not made of 3-channel values in 0-255.
    """
    arr = np.asarray(colors)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.uint8)
    if arr.shape[-1] != 3:
        raise ValueError(f"Expected RGB triples, got array of shape {arr.shape}.")
    if arr.dtype != np.uint8:
        if arr.min() < 0 or arr.max() > 255:
            raise ValueError("RGB channel values must lie in 0-255.")
        arr = arr.astype(np.uint8)
    return arr.reshape(-1, 3)


def map_to_palette(colors: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """
    Map every color to the nearest color in the palette.

    Distance is Euclidean over (r, g, b); on a tie the earliest palette entry wins.

    Args:
        colors (np.ndarray): Nx3 RGB data
        palette (np.ndarray): Mx3 palette array

    Returns:
        np.ndarray: Nx3 uint8 array of palette colors
    """
    flat = as_rgb_array(colors).astype(np.int32)
    pal = as_rgb_array(palette)

    dists = np.linalg.norm(flat[:, None, :] - pal[None, :, :].astype(np.int32), axis=2)
    nearest = np.argmin(dists, axis=1)  # argmin returns the first minimum
    return pal[nearest]


def rgb_to_hex(rgb: Sequence[int]) -> str:
    r, g, b = (int(c) for c in rgb)
    return f"#{r:02x}{g:02x}{b:02x}"


def hex_to_rgb(token: str) -> RGB:
    match = _HEX_RE.fullmatch(token.strip())
    if not match:
        raise ValueError(f"Invalid hex color: '{token}'. Expected '#rrggbb'.")
    value = match.group(1)
    return int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16)


def palette_usage(mapped: np.ndarray, palette: np.ndarray) -> List[Tuple[RGB, int]]:
    """
    Count how often each palette color occurs in the mapped data.

    Returns:
        List of (rgb, count), most used first. Equal counts keep palette order;
        colors that never occur are left out.
    """
    mapped_flat = as_rgb_array(mapped)
    unique_colors, counts = np.unique(mapped_flat, axis=0, return_counts=True)
    color_to_count = {tuple(int(c) for c in color): int(n) for color, n in zip(unique_colors, counts)}

    usage = []
    for color in as_rgb_array(palette):
        key = tuple(int(c) for c in color)
        count = color_to_count.pop(key, 0)  # pop so duplicate palette entries count once
        if count > 0:
            usage.append((key, count))
    return sorted(usage, key=lambda entry: entry[1], reverse=True)
