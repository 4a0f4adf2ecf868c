import os
from typing import Optional, Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont
from rich.text import Text

from gem.palette_tools import hex_to_rgb


def _contrasting_text_color(rgb: Tuple[int, int, int]) -> Tuple[int, int, int]:
    r, g, b = rgb
    luminance = 0.299 * r + 0.587 * g + 0.114 * b
    return (0, 0, 0) if luminance > 140 else (255, 255, 255)


def _load_font(font_path: Optional[str], font_size: int):
    loaded_font = None
    try:
        if font_path and os.path.isfile(font_path):
            loaded_font = ImageFont.truetype(font_path, font_size)
    except IOError:
        pass  # fall through to the default font

    if not loaded_font:
        try:
            loaded_font = ImageFont.load_default(size=font_size)
        except TypeError:  # Pillow < 10.1 has no size argument
            loaded_font = ImageFont.load_default()
    return loaded_font


def render_grid_image(
    grid: Sequence[Sequence[str]],
    cell_size: int = 16,
    gap: int = 1,
    outline: Optional[Tuple[int, int, int]] = None,
    background: Tuple[int, int, int] = (255, 255, 255),
) -> Optional[Image.Image]:
    """
    Lay the grid out as colored boxes.

    Args:
        grid: Rows of '#rrggbb' strings.
        cell_size (int): Width/height of each box in pixels.
        gap (int): Background pixels between boxes.
        outline (tuple, optional): Box outline color; None draws no outline.
        background (tuple): Color showing through the gaps.

    Returns:
        PIL.Image.Image, or None for an empty grid.
    """
    rows = len(grid)
    cols = len(grid[0]) if rows else 0
    if rows == 0 or cols == 0:
        return None

    width = cols * cell_size + (cols + 1) * gap
    height = rows * cell_size + (rows + 1) * gap
    image = Image.new("RGB", (width, height), color=background)
    draw = ImageDraw.Draw(image)

    for row_idx, row in enumerate(grid):
        y0 = gap + row_idx * (cell_size + gap)
        for col_idx, cell in enumerate(row):
            x0 = gap + col_idx * (cell_size + gap)
            draw.rectangle(
                [x0, y0, x0 + cell_size - 1, y0 + cell_size - 1],
                fill=hex_to_rgb(cell),
                outline=outline,
            )
    return image


def create_legend_image(usage, font_path=None, font_size=14, swatch_size=40, padding=10):
    """
    Creates a palette legend PIL Image object: one numbered swatch per palette color.

    Args:
        usage (list): (hex color, count) pairs in legend order, as GridResult.usage holds them.
        font_path (str, optional): Path to a TTF font file.
        font_size (int): Font size for the index numbers.
        swatch_size (int): Width/height of each color swatch.
        padding (int): Space around elements and between swatches.

    Returns:
        PIL.Image.Image: The generated legend image, or None if there are no colors.
    """
    num_colors = len(usage)
    if num_colors == 0:
        return None

    width = (swatch_size * num_colors) + (padding * (num_colors + 1))
    height = swatch_size + (2 * padding)

    image = Image.new("RGB", (width, height), color=(255, 255, 255))
    draw = ImageDraw.Draw(image)
    loaded_font = _load_font(font_path, font_size)

    for idx, (hex_color, _count) in enumerate(usage):
        x_start_swatch = padding + idx * (swatch_size + padding)
        y_start_swatch = padding
        fill_color = hex_to_rgb(hex_color)

        draw.rectangle(
            [x_start_swatch, y_start_swatch, x_start_swatch + swatch_size, y_start_swatch + swatch_size],
            fill=fill_color,
            outline=(0, 0, 0)
        )

        text_content = str(idx + 1)
        # Center on the glyph box, not the text origin.
        bbox = loaded_font.getbbox(text_content)
        text_w = bbox[2] - bbox[0]
        text_h = bbox[3] - bbox[1]
        text_x_position = x_start_swatch + (swatch_size - text_w) / 2.0 - bbox[0]
        text_y_position = y_start_swatch + (swatch_size - text_h) / 2.0 - bbox[1]

        draw.text((text_x_position, text_y_position), text_content,
                  fill=_contrasting_text_color(fill_color), font=loaded_font)

    return image


def grid_to_text(grid: Sequence[Sequence[str]], cell: str = "  ") -> Text:
    """Colored blocks for a terminal; each cell is `cell` drawn on its color."""
    text = Text()
    for row_idx, row in enumerate(grid):
        if row_idx:
            text.append("\n")
        for hex_color in row:
            text.append(cell, style=f"on {hex_color}")
    return text
