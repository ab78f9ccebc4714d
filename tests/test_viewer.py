import numpy as np
import PIL.Image
import pytest

import viewer

pytestmark = pytest.mark.integration

BASE_ARGS = ["--width", "24", "--height", "16", "--iterations", "32", "--device", "/CPU:0"]


def test_writes_final_frame(tmp_path):
    output = tmp_path / "frame.png"
    assert viewer.main([*BASE_ARGS, "--command", "ArrowUp", "--command", "right", "--output", str(output)]) == 0
    with PIL.Image.open(output) as image:
        assert image.size == (24, 16)
        assert image.mode == "RGBA"


def test_pixel_ratio_is_clamped(tmp_path):
    output = tmp_path / "retina.png"
    assert viewer.main([*BASE_ARGS, "--pixel-ratio", "3", "--output", str(output)]) == 0
    with PIL.Image.open(output) as image:
        assert image.size == (48, 32)


def test_records_gif_with_colormap(tmp_path):
    output = tmp_path / "final"
    gif = tmp_path / "session.gif"
    args = [*BASE_ARGS, "--command", "in", "--command", "in", "--colormap", "viridis", "--gif", str(gif), "--output", str(output)]
    assert viewer.main(args) == 0
    assert (tmp_path / "final.png").exists()
    with PIL.Image.open(gif) as image:
        assert image.n_frames == 3
    with PIL.Image.open(tmp_path / "final.png") as image:
        assert np.all(np.array(image)[..., 3] == 255)


def test_empty_surface_writes_nothing(tmp_path):
    output = tmp_path / "empty.png"
    assert viewer.main([*BASE_ARGS, "--width", "0", "--output", str(output)]) == 1
    assert not output.exists()


@pytest.mark.parametrize(
    "extra",
    [
        ["--iterations", "0"],
        ["--zoom", "-1"],
        ["--height", "-4"],
        ["--command", "sideways"],
        ["--output", "frame.jpg"],
    ],
)
def test_invalid_options_exit(extra, tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        viewer.main([*BASE_ARGS, "--output", str(tmp_path / "x.png"), *extra])
    assert excinfo.value.code == 2


def test_burst_coalesce_matches_sequential_session(tmp_path):
    commands = ["--command", "in", "--command", "KeyD", "--command", "in"]
    sequential = tmp_path / "sequential.png"
    burst = tmp_path / "burst.png"
    assert viewer.main([*BASE_ARGS, *commands, "--output", str(sequential)]) == 0
    assert viewer.main([*BASE_ARGS, *commands, "--policy", "coalesce", "--burst", "--output", str(burst)]) == 0
    with PIL.Image.open(sequential) as expected, PIL.Image.open(burst) as actual:
        np.testing.assert_array_equal(np.array(actual), np.array(expected))


def test_burst_drop_still_writes_a_frame(tmp_path):
    output = tmp_path / "dropped.png"
    args = [*BASE_ARGS, "--command", "in", "--command", "in", "--policy", "drop", "--burst", "--output", str(output)]
    assert viewer.main(args) == 0
    with PIL.Image.open(output) as image:
        assert image.size == (24, 16)


def test_nan_pixel_ratio_falls_back_to_one(tmp_path):
    output = tmp_path / "nan.png"
    assert viewer.main([*BASE_ARGS, "--pixel-ratio", "nan", "--output", str(output)]) == 0
    with PIL.Image.open(output) as image:
        assert image.size == (24, 16)
