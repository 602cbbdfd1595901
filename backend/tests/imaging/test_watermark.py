# tests/imaging/test_watermark.py
import pytest

from axioscan.errors import InvalidArgument
from axioscan.imaging import Size, WatermarkOptions, composite_over, generate_watermark_layer
from axioscan.imaging.watermark import MAX_ANCHORS, MIN_SPACING
from conftest import make_image


def test_layer_matches_canvas_and_draws_tiles():
    canvas = Size(400, 300)

    result = generate_watermark_layer(WatermarkOptions(text="CONFIDENTIAL", opacity=0.6), canvas)

    assert result.image.size == (400, 300)
    assert result.image.mode == "RGBA"
    assert 0 < result.tiles_drawn <= result.anchors_evaluated
    assert result.image.getchannel("A").getextrema()[1] > 0


def test_zero_opacity_is_visual_no_op_but_still_tiles():
    base = make_image(size=(400, 300))

    result = generate_watermark_layer(WatermarkOptions(text="DRAFT", opacity=0.0), Size(400, 300))

    assert result.tiles_drawn > 0
    assert result.image.getchannel("A").getextrema() == (0, 0)
    assert composite_over(base, result.image).tobytes() == base.tobytes()


def test_grid_covers_rotated_canvas():
    canvas = Size(300, 200)
    options = WatermarkOptions(text="A", spacing=0.25)
    spacing = 0.25 * canvas.min_side
    rings = -(-canvas.diagonal // spacing) + 1

    result = generate_watermark_layer(options, canvas)

    assert result.anchors_evaluated == (2 * rings + 1) ** 2
    # Off-canvas anchors are skipped rather than drawn
    assert result.tiles_drawn < result.anchors_evaluated


def test_same_function_runs_at_preview_and_full_resolution():
    options = WatermarkOptions(text="SAMPLE", angle_degrees=30)

    preview = generate_watermark_layer(options, Size(150, 100))
    full = generate_watermark_layer(options, Size(1500, 1000))

    assert preview.image.size == (150, 100)
    assert full.image.size == (1500, 1000)
    assert preview.tiles_drawn > 0 and full.tiles_drawn > 0


@pytest.mark.parametrize("options", [
    WatermarkOptions(text=""),
    WatermarkOptions(text="   "),
    WatermarkOptions(text="X", opacity=1.5),
    WatermarkOptions(text="X", relative_size=0.0),
    WatermarkOptions(text="X", spacing=0.0),
    WatermarkOptions(text="X", spacing=1e-6),
    WatermarkOptions(text="X", spacing=0.019),
    WatermarkOptions(text="X", angle_degrees=float("inf")),
])
def test_rejects_bad_options(options):
    with pytest.raises(InvalidArgument):
        generate_watermark_layer(options, Size(100, 100))


def test_densest_allowed_spacing_stays_bounded():
    layer = generate_watermark_layer(WatermarkOptions(text="X", spacing=MIN_SPACING), Size(400, 300))

    assert layer.anchors_evaluated <= MAX_ANCHORS
    assert layer.tiles_drawn > 0


def test_rejects_grids_too_dense_for_the_canvas():
    # Spacing is relative to the short side, so a sliver canvas needs a huge grid
    with pytest.raises(InvalidArgument):
        generate_watermark_layer(WatermarkOptions(text="X", spacing=MIN_SPACING), Size(20000, 20))
