# tests/test_cli.py
import json
import os
import subprocess
import sys
from pathlib import Path
from PIL import Image, ImageDraw

REPO_ROOT = Path(__file__).resolve().parent.parent
CLI = str(REPO_ROOT / "gemgen.py")


def create_dummy_image(path: Path):
    img = Image.new("RGB", (256, 256), color=(150, 120, 200))
    draw = ImageDraw.Draw(img)
    draw.rectangle([(50, 50), (150, 150)], fill=(200, 50, 50))
    draw.ellipse([(100, 100), (200, 200)], fill=(50, 200, 50))
    img.save(path)


def run_cli(*args, env_overrides=None):
    env = dict(os.environ)
    for key in ("GEMGEN_MAX_COLORS", "GEMGEN_METHOD"):
        env.pop(key, None)
    env.update(env_overrides or {})
    return subprocess.run(
        [sys.executable, CLI, *args],
        capture_output=True,
        text=True,
        cwd=REPO_ROOT,
        env=env,
    )


def test_gemgen_cli_json_output(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--grid-width", "12", "--grid-height", "8", "--max-colors", "5", "--json")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"

    payload = json.loads(result.stdout)
    assert payload["width"] == 12
    assert payload["height"] == 8
    assert len(payload["grid"]) == 8
    assert all(len(row) == 12 for row in payload["grid"])
    assert len({cell for row in payload["grid"] for cell in row}) <= 5
    assert "Completed" in result.stderr


def test_gemgen_cli_crop_and_blocks(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--crop", "0,0,40,40", "-W", "4", "-H", "4")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert "Region of interest: (0, 0, 40, 40)" in result.stdout
    assert "#9678c8" in result.stdout  # the legend lists the background color
    assert "Completed" in result.stdout


def test_gemgen_cli_rejects_bad_crop(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--crop", "10,10")
    assert result.returncode == 1
    assert "Invalid --crop" in result.stdout


def test_gemgen_cli_rejects_undecodable_file(tmp_path):
    bogus = tmp_path / "not_an_image.png"
    bogus.write_text("hello")

    result = run_cli(str(bogus))
    assert result.returncode == 1


def test_gemgen_cli_help_output():
    result = run_cli("--help")
    assert result.returncode == 0
    assert "usage:" in result.stdout.lower()


def test_gemgen_cli_preset_sets_grid_size(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--preset", "small", "--json")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"

    payload = json.loads(result.stdout)
    assert (payload["width"], payload["height"]) == (30, 30)
    assert len(payload["palette"]) <= 20
    assert "Applying preset: 'small'" in result.stderr


def test_gemgen_cli_options_override_preset(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--preset", "small", "-W", "7", "--json")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"

    payload = json.loads(result.stdout)
    assert (payload["width"], payload["height"]) == (7, 30)


def test_gemgen_cli_unknown_preset_warns_and_uses_defaults(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--preset", "huge", "--json")
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert "Unknown preset 'huge'" in result.stderr

    payload = json.loads(result.stdout)
    assert (payload["width"], payload["height"]) == (50, 50)


def test_gemgen_cli_env_overrides_defaults(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(
        str(input_image), "-W", "16", "-H", "16", "--json",
        env_overrides={"GEMGEN_MAX_COLORS": "3", "GEMGEN_METHOD": "kmeans"},
    )
    assert result.returncode == 0, f"CLI failed: {result.stderr}"
    assert "at most 3 colors (kmeans)" in result.stderr

    payload = json.loads(result.stdout)
    assert len({cell for row in payload["grid"] for cell in row}) <= 3


def test_gemgen_cli_rejects_unknown_method(tmp_path):
    input_image = tmp_path / "dummy_input.png"
    create_dummy_image(input_image)

    result = run_cli(str(input_image), "--method", "octree")
    assert result.returncode == 1
    assert "Unknown --method 'octree'" in result.stderr
