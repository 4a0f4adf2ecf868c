import typer
from gem import config, render
from gem.sample import Region
from gem.session import GemSession
from pathlib import Path
import json
import re
from typing import Optional

import rich.traceback
from rich.console import Console
from rich.table import Table


def parse_crop_to_region(crop_str: str) -> Optional[Region]:
    match = re.fullmatch(r"\s*(-?[\d.]+)\s*,\s*(-?[\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*", crop_str)
    if not match:
        typer.secho(f"Error: Invalid --crop format: '{crop_str}'. "
                    "Expected 'x,y,width,height' in source pixels, e.g. '120,40,600,600'.",
                    fg=typer.colors.RED)
        return None
    try:
        x, y, width, height = (float(match.group(i)) for i in range(1, 5))
    except ValueError:
        typer.secho(f"Error: Invalid numeric values in --crop: '{crop_str}'.", fg=typer.colors.RED)
        return None
    if width <= 0 or height <= 0:
        typer.secho("Error: Crop width and height must be positive.", fg=typer.colors.RED); return None
    # Whole-pixel crops stay ints so they echo back cleanly.
    return Region(*(int(v) if v.is_integer() else v for v in (x, y, width, height)))


def print_legend(console: Console, usage) -> None:
    table = Table(title="Palette", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("Swatch")
    table.add_column("Color")
    table.add_column("Cells", justify="right")
    for idx, (hex_color, count) in enumerate(usage, start=1):
        table.add_row(str(idx), f"[on {hex_color}]      [/]", hex_color, str(count))
    console.print(table)


def gem_cli(
    input_path: Path = typer.Argument(
        ...,
        help="Input image file (e.g., photo.jpg).",
        metavar="INPUT_FILE",
        exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
    ),
    preset: Optional[str] = typer.Option(
        None, help="Preset grid complexity: small, medium, large."
    ),
    grid_width: Optional[int] = typer.Option(
        None, "--grid-width", "-W", help=f"Number of grid columns (1-{config.MAX_GRID_DIM}). Default: {config.DEFAULT_GRID_SIZE[0]}."
    ),
    grid_height: Optional[int] = typer.Option(
        None, "--grid-height", "-H", help=f"Number of grid rows (1-{config.MAX_GRID_DIM}). Default: {config.DEFAULT_GRID_SIZE[1]}."
    ),
    max_colors: Optional[int] = typer.Option(
        None, "--max-colors", help=f"Maximum number of palette colors. Default: {config.DEFAULT_MAX_COLORS}."
    ),
    crop: Optional[str] = typer.Option(
        None, "--crop", help="Region of interest 'x,y,width,height' in source pixels. Default: largest centered region matching the grid aspect."
    ),
    method: str = typer.Option(
        config.DEFAULT_METHOD, "--method", help="Quantization method: mediancut or kmeans."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the grid as JSON instead of colored blocks."),
    legend: bool = typer.Option(True, "--legend/--no-legend", help="Print the palette legend. Default: True."),
    show: bool = typer.Option(False, "--show", help="Open a preview image of the grid in the system viewer."),
    cell_size: int = typer.Option(16, "--cell-size", min=2, help="Preview box size for --show. Default: 16px."),
):
    """
    Generates a gem painting template grid from an input image.
    """
    # In JSON mode stdout carries only the document; progress goes to stderr.
    echo_err = as_json

    if method not in config.QUANTIZE_METHODS:
        typer.secho(f"Error: Unknown --method '{method}'. Choose from: {', '.join(config.QUANTIZE_METHODS)}.",
                    fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    effective_width = grid_width
    effective_height = grid_height
    effective_max_colors = max_colors
    if preset:
        if preset not in config.PRESETS:
            typer.secho(f"Warning: Unknown preset '{preset}', ignoring it.", fg=typer.colors.YELLOW, err=True)
        else:
            typer.echo(f"Applying preset: '{preset}'", err=echo_err)
            preset_values = config.PRESETS[preset]
            if effective_width is None: effective_width = preset_values["grid_width"]
            if effective_height is None: effective_height = preset_values["grid_height"]
            if effective_max_colors is None: effective_max_colors = preset_values["max_colors"]
    if effective_width is None: effective_width = config.DEFAULT_GRID_SIZE[0]
    if effective_height is None: effective_height = config.DEFAULT_GRID_SIZE[1]
    if effective_max_colors is None: effective_max_colors = config.DEFAULT_MAX_COLORS

    session = GemSession(method=method)
    session.set_grid_size(effective_width, effective_height)
    session.set_max_colors(effective_max_colors)

    if not session.load_file(input_path):
        typer.secho(f"Error: Could not load image {input_path}.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Loaded {input_path.name} ({session.image.width}x{session.image.height} px).", err=echo_err)

    if crop:
        region = parse_crop_to_region(crop)
        if region is None: raise typer.Exit(code=1)
        session.set_region(region)
    typer.echo(f"Region of interest: {tuple(session.region)}", err=echo_err)
    typer.echo(f"Generating {session.grid_width}x{session.grid_height} grid with at most "
               f"{session.max_colors} colors ({session.method})...", err=echo_err)

    result = session.generate()
    if result is None:
        typer.secho("Error: Grid generation failed.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if as_json:
        typer.echo(json.dumps({
            "width": result.width,
            "height": result.height,
            "palette": list(result.palette),
            "grid": result.grid,
        }))
    else:
        console = Console()
        console.print(render.grid_to_text(result.grid))
        if legend:
            print_legend(console, result.usage)

    if show:
        preview = render.render_grid_image(result.grid, cell_size=cell_size)
        if preview is not None:
            preview.show(title=f"{input_path.stem} {result.width}x{result.height}")
        if legend:
            legend_image = render.create_legend_image(result.usage)
            if legend_image is not None:
                legend_image.show(title=f"{input_path.stem} palette")
            else:
                typer.secho("Warning: Palette legend image could not be generated.", fg=typer.colors.YELLOW, err=True)

    typer.secho(f"Completed: {result.width}x{result.height} grid, {len(result.usage)} colors used.",
                fg=typer.colors.GREEN, err=echo_err)


def main():
    rich.traceback.install(show_locals=False, suppress=[typer])
    typer.run(gem_cli)


if __name__ == "__main__":
    main()
