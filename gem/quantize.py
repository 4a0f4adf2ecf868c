import numpy as np
from sklearn.cluster import KMeans
from typing import List, Optional, Sequence, Tuple, Union

from gem.config import DEFAULT_MAX_COLORS, QUANTIZE_METHODS
from gem.palette_tools import RGB, as_rgb_array, map_to_palette


class EmptyInput(ValueError):
    """Raised when there are no samples to build a palette from."""


class _Box:
    """
    A box of the median-cut tree. Holds the distinct colors that fall in it and their pixel counts.
    Once split it remembers the cut plane so any color can be routed down to a leaf.
    """

    def __init__(self, colors: np.ndarray, counts: np.ndarray):
        self.colors = colors  # (M, 3) int64, distinct
        self.counts = counts  # (M,) pixel count per color
        self.axis: Optional[int] = None
        self.threshold: Optional[int] = None
        self.lower: Optional["_Box"] = None
        self.upper: Optional["_Box"] = None
        self.slot: Optional[int] = None  # palette index once the box is a leaf

    @property
    def population(self) -> int:
        return int(self.counts.sum())

    def widest_axis(self) -> Tuple[int, int]:
        ranges = self.colors.max(axis=0) - self.colors.min(axis=0)
        axis = int(np.argmax(ranges))
        return axis, int(ranges[axis])

    def can_split(self) -> bool:
        return len(self.colors) >= 2

    def priority(self) -> int:
        # Busy boxes with a wide spread get split first.
        return self.population * self.widest_axis()[1]

    def split(self) -> Tuple["_Box", "_Box"]:
        axis, _ = self.widest_axis()
        values = self.colors[:, axis]
        levels = np.unique(values)
        weights = np.bincount(values, weights=self.counts, minlength=256)[levels]
        cumulative = np.cumsum(weights)

        # First level whose cumulative weight reaches half the box. The top level is never
        # used as the cut so the upper half is never empty.
        cut = int(np.searchsorted(cumulative, cumulative[-1] / 2.0))
        cut = min(cut, len(levels) - 2)

        self.axis = axis
        self.threshold = int(levels[cut])
        below = values <= self.threshold
        self.lower = _Box(self.colors[below], self.counts[below])
        self.upper = _Box(self.colors[~below], self.counts[~below])
        return self.lower, self.upper

    def mean_color(self) -> np.ndarray:
        weighted = (self.colors * self.counts[:, None]).sum(axis=0) / self.counts.sum()
        return np.rint(weighted).astype(np.uint8)


class MedianCutQuantizer:
    """
    Median-cut palette over the RGB cube.

    The box with the largest population x channel range is split at the pixel-weighted median of its
    widest channel until `max_colors` boxes exist or no box holds two distinct colors. Each leaf's
    color is the weighted mean of its colors. Split planes are kept, so the leaves partition the
    whole color cube and mapping is a tree walk rather than a distance search.
    """

    def __init__(self, samples: Union[np.ndarray, Sequence[Sequence[int]]], max_colors: int = DEFAULT_MAX_COLORS):
        flat = as_rgb_array(samples)
        if len(flat) == 0:
            raise EmptyInput("Cannot build a palette from zero samples.")
        if max_colors < 1:
            raise ValueError(f"max_colors must be at least 1, got {max_colors}.")

        unique_colors, counts = np.unique(flat, axis=0, return_counts=True)
        self._root = _Box(unique_colors.astype(np.int64), counts.astype(np.int64))

        leaves: List[_Box] = [self._root]
        while len(leaves) < max_colors:
            splittable = [i for i, box in enumerate(leaves) if box.can_split()]
            if not splittable:
                break
            chosen = max(splittable, key=lambda i: leaves[i].priority())  # first maximum wins
            lower, upper = leaves[chosen].split()
            leaves[chosen] = lower
            leaves.append(upper)

        for slot, box in enumerate(leaves):
            box.slot = slot
        self.palette = np.array([box.mean_color() for box in leaves], dtype=np.uint8).reshape(-1, 3)

    def _leaf_for(self, color: Sequence[int]) -> _Box:
        box = self._root
        while box.axis is not None:
            box = box.lower if int(color[box.axis]) <= box.threshold else box.upper
        return box

    def map_color(self, rgb: Sequence[int]) -> RGB:
        r, g, b = self.palette[self._leaf_for(rgb).slot]
        return int(r), int(g), int(b)

    def map_colors(self, samples: Union[np.ndarray, Sequence[Sequence[int]]]) -> np.ndarray:
        """Map each RGB triple to its palette color. Returns an (N, 3) uint8 array in input order."""
        flat = as_rgb_array(samples)
        if len(flat) == 0:
            return np.zeros((0, 3), dtype=np.uint8)
        unique_colors, inverse = np.unique(flat, axis=0, return_inverse=True)
        slots = np.array([self._leaf_for(color).slot for color in unique_colors], dtype=np.intp)
        return self.palette[slots[inverse.reshape(-1)]]


class KMeansQuantizer:
    """
    K-means palette with a fixed random_state, mapped by nearest palette color.
    """

    def __init__(self, samples: Union[np.ndarray, Sequence[Sequence[int]]], max_colors: int = DEFAULT_MAX_COLORS):
        flat = as_rgb_array(samples)
        if len(flat) == 0:
            raise EmptyInput("Cannot build a palette from zero samples.")
        if max_colors < 1:
            raise ValueError(f"max_colors must be at least 1, got {max_colors}.")

        # More clusters than distinct colors would leave KMeans with duplicate centers.
        distinct = len(np.unique(flat, axis=0))
        n_clusters = min(max_colors, distinct)
        kmeans = KMeans(n_clusters=n_clusters, random_state=42, n_init="auto")
        kmeans.fit(flat.astype(np.float64))
        centers = np.clip(np.rint(kmeans.cluster_centers_), 0, 255).astype(np.uint8)

        # Rounding can merge centers; keep the first of each.
        _, first_index = np.unique(centers, axis=0, return_index=True)
        self.palette = centers[np.sort(first_index)]

    def map_color(self, rgb: Sequence[int]) -> RGB:
        r, g, b = map_to_palette(np.array([rgb]), self.palette)[0]
        return int(r), int(g), int(b)

    def map_colors(self, samples: Union[np.ndarray, Sequence[Sequence[int]]]) -> np.ndarray:
        flat = as_rgb_array(samples)
        if len(flat) == 0:
            return np.zeros((0, 3), dtype=np.uint8)
        return map_to_palette(flat, self.palette)


def quantize(
    samples: Union[np.ndarray, Sequence[Sequence[int]]],
    max_colors: int = DEFAULT_MAX_COLORS,
    method: str = "mediancut",
) -> Union[MedianCutQuantizer, KMeansQuantizer]:
    """
    Build a palette of at most `max_colors` colors from the samples.

    Args:
        samples: RGB triples, any shape ending in 3.
        max_colors (int): Upper bound on the palette size. Fewer distinct sample colors give a smaller palette.
        method (str): "mediancut" (default) or "kmeans".

    Returns:
        A quantizer exposing `palette` (Mx3 uint8, generation order), `map_colors()` and `map_color()`.

    Raises:
        EmptyInput: If there are no samples.
        ValueError: If max_colors < 1 or the method is unknown.
    """
    if method == "mediancut":
        return MedianCutQuantizer(samples, max_colors)
    if method == "kmeans":
        return KMeansQuantizer(samples, max_colors)
    raise ValueError(f"Unknown quantization method '{method}'. Choose from: {', '.join(QUANTIZE_METHODS)}.")
