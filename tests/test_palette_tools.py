# tests/test_palette_tools.py
import numpy as np
import pytest
from gem import palette_tools


def test_map_to_palette_picks_nearest_color():
    palette = np.array([[0, 0, 0], [255, 255, 255], [255, 0, 0]], dtype=np.uint8)
    colors = np.array([[10, 10, 10], [240, 250, 245], [200, 30, 20]], dtype=np.uint8)

    mapped = palette_tools.map_to_palette(colors, palette)
    assert mapped.tolist() == [[0, 0, 0], [255, 255, 255], [255, 0, 0]]


def test_map_to_palette_breaks_ties_by_first_entry():
    color = np.array([[1, 0, 0]], dtype=np.uint8)
    forward = np.array([[0, 0, 0], [2, 0, 0]], dtype=np.uint8)
    backward = forward[::-1]

    assert palette_tools.map_to_palette(color, forward).tolist() == [[0, 0, 0]]
    assert palette_tools.map_to_palette(color, backward).tolist() == [[2, 0, 0]]


def test_map_to_palette_handles_image_shaped_input():
    image_array = np.zeros((4, 5, 3), dtype=np.uint8)
    palette = np.array([[3, 3, 3]], dtype=np.uint8)
    mapped = palette_tools.map_to_palette(image_array, palette)
    assert mapped.shape == (20, 3)


def test_rgb_to_hex_is_lowercase_and_zero_padded():
    assert palette_tools.rgb_to_hex((255, 0, 171)) == "#ff00ab"
    assert palette_tools.rgb_to_hex(np.array([1, 2, 3], dtype=np.uint8)) == "#010203"


def test_hex_to_rgb_round_trips_and_rejects_garbage():
    assert palette_tools.hex_to_rgb("#0A0b0C") == (10, 11, 12)
    with pytest.raises(ValueError):
        palette_tools.hex_to_rgb("#12345")
    with pytest.raises(ValueError):
        palette_tools.hex_to_rgb("red")


def test_as_rgb_array_validates_values():
    arr = palette_tools.as_rgb_array([(1, 2, 3), (4, 5, 6)])
    assert arr.dtype == np.uint8
    assert arr.shape == (2, 3)

    with pytest.raises(ValueError):
        palette_tools.as_rgb_array([(1, 2, 300)])
    with pytest.raises(ValueError):
        palette_tools.as_rgb_array([(1, 2)])


def test_palette_usage_sorts_by_count_and_drops_unused():
    palette = np.array([[0, 0, 0], [9, 9, 9], [255, 255, 255], [1, 1, 1]], dtype=np.uint8)
    mapped = np.array([[255, 255, 255]] * 2 + [[0, 0, 0]] * 5 + [[1, 1, 1]] * 2, dtype=np.uint8)

    usage = palette_tools.palette_usage(mapped, palette)
    # Equal counts keep palette order: white (index 2) before (1,1,1) (index 3).
    assert usage == [((0, 0, 0), 5), ((255, 255, 255), 2), ((1, 1, 1), 2)]
