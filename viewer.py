import os
import sys
import warnings
from pathlib import Path
from typing import Any, Optional

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import logging

import tensorflow as tf
import numpy as np

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")
    for handler in tf.get_logger().handlers:
        handler.setLevel("ERROR")

import PIL.Image
import imageio
from matplotlib import colormaps as _mpl_colormaps

from mandelview import (
    PixelBuffer,
    RenderCoordinator,
    RenderPolicy,
    ViewportError,
    ViewportState,
    device_dimensions,
    parse_command,
    to_image,
)
from mandelview.state import DEFAULT_CENTER_X, DEFAULT_CENTER_Y, DEFAULT_ITERATIONS


def get_colormap(name):
    return _mpl_colormaps[name]


def select_device() -> str:
    """Use the first GPU TensorFlow can see, otherwise the CPU."""

    gpus = tf.config.list_physical_devices('GPU')
    if not gpus:
        log("No GPU found, using CPU")
        return '/CPU:0'
    try:
        for gpu in gpus:
            tf.config.experimental.set_memory_growth(gpu, True)
    except RuntimeError as e:
        # Memory growth can only be set before the GPU is initialized.
        log(e)
        return '/CPU:0'
    log("GPU found, using %s" % gpus[0].name)
    return '/GPU:0'


from argparse import ArgumentParser


def build_parser():
    parser = ArgumentParser(description='Render a navigable Mandelbrot viewport.')

    parser.add_argument('--width', type=int,
                        dest='width', help='client width of the output surface in CSS-style pixels',
                        metavar='WIDTH', default=480)

    parser.add_argument('--height', type=int,
                        dest='height', help='client height of the output surface in CSS-style pixels',
                        metavar='HEIGHT', default=320)

    parser.add_argument('--pixel-ratio', type=float,
                        dest='pixel_ratio', help='device pixel ratio; oversampling is clamped between 1x and 2x',
                        metavar='RATIO', default=1.0)

    parser.add_argument('--iterations', type=int,
                        dest='iterations', help='escape-time iteration budget per pixel',
                        metavar='ITERATIONS', default=DEFAULT_ITERATIONS)

    parser.add_argument('--center-x', type=float,
                        dest='center_x', help='complex-plane offset subtracted from the x axis',
                        metavar='CENTER_X', default=DEFAULT_CENTER_X)

    parser.add_argument('--center-y', type=float,
                        dest='center_y', help='complex-plane offset subtracted from the y axis',
                        metavar='CENTER_Y', default=DEFAULT_CENTER_Y)

    parser.add_argument('--zoom', type=float,
                        dest='zoom', help='initial zoom factor',
                        metavar='ZOOM', default=1.0)

    parser.add_argument('--command', dest='commands', action='append', metavar='COMMAND',
                        help='Navigation command to apply after the first render. May be repeated. '
                             'Accepts key codes (KeyW, ArrowUp, Escape, ...), names (zoom_in) or tags (in).')

    parser.add_argument('--policy', choices=[policy.value for policy in RenderPolicy], default='drop',
                        help='What to do with commands issued while a render is in flight.')

    parser.add_argument('--burst', action='store_true',
                        help='Issue all commands without waiting for renders, letting the policy drop or coalesce them.')

    parser.add_argument('--output', dest='output', type=str,
                        help='Destination for the final frame. Default: mandelbrot.<format>.')

    parser.add_argument('--gif', dest='gif', type=str,
                        help='Also write every rendered frame to this GIF file.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for the final frame. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('--colormap', type=str,
                        dest='colormap', help='matplotlib colormap to colorize the fractal (e.g. "viridis"); '
                                              'without it frames keep the flat base tone with intensity as alpha',
                        metavar='COLORMAP', default=None)

    parser.add_argument('--device', type=str, default=None,
                        help='TensorFlow device for rendering, e.g. "/CPU:0". Default: first GPU if available.')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    return parser


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def resolve_output_path(opt, parser: ArgumentParser) -> tuple[Path, str]:
    image_format = (opt.format or "png").lower().lstrip(".") or "png"
    if opt.output is None:
        return Path(f"mandelbrot.{image_format}").expanduser().resolve(), image_format

    output_path = Path(opt.output).expanduser()
    if output_path.exists() and output_path.is_dir():
        parser.error("--output must point to a file, not a directory.")
    expected_suffix = f".{image_format}"
    if output_path.suffix:
        if output_path.suffix.lower() != expected_suffix.lower():
            parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
    else:
        output_path = output_path.with_suffix(expected_suffix)
    return output_path.resolve(), image_format


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    if pil_format == "JPEG" and image.mode == "RGBA":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)


def write_gif(writer: Any, frame_array: np.ndarray) -> None:
    """Append ``frame_array`` to an active GIF writer."""

    writer.append_data(frame_array)


class FrameRecorder:
    """Display callback that keeps the latest frame and optionally records a GIF."""

    def __init__(self, gif_path: Optional[Path] = None, colormap=None) -> None:
        self.colormap = colormap
        self.frames = 0
        self.last_image: Optional[PIL.Image.Image] = None
        self._gif_writer = None
        if gif_path is not None:
            gif_path.parent.mkdir(parents=True, exist_ok=True)
            self._gif_writer = imageio.get_writer(str(gif_path), mode='I', duration=0.25, loop=0)

    def __call__(self, buffer: PixelBuffer) -> None:
        self.frames += 1
        image = to_image(buffer, self.colormap)
        self.last_image = image
        if self._gif_writer is not None and len(buffer):
            write_gif(self._gif_writer, np.array(image, copy=True))

    def close(self) -> None:
        if self._gif_writer is not None:
            self._gif_writer.close()
            self._gif_writer = None


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)
    if VERBOSE:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s %(threadName)s %(name)s: %(message)s')
        log("TensorFlow version: %s" % tf.__version__)

    try:
        commands = [parse_command(text) for text in opt.commands or []]
    except ValueError as exc:
        parser.error(str(exc))

    width, height = device_dimensions(opt.width, opt.height, opt.pixel_ratio)
    try:
        state = ViewportState(
            iterations=opt.iterations,
            width=width,
            height=height,
            center_x=opt.center_x,
            center_y=opt.center_y,
            zoom=opt.zoom,
        )
    except ViewportError as exc:
        parser.error(str(exc))

    output_path, image_format = resolve_output_path(opt, parser)
    gif_path = Path(opt.gif).expanduser().resolve() if opt.gif else None
    cmap = get_colormap(opt.colormap) if opt.colormap else None
    device = opt.device or select_device()

    recorder = FrameRecorder(gif_path, colormap=cmap)
    try:
        with RenderCoordinator(recorder, state=state, policy=RenderPolicy(opt.policy), device=device) as coordinator:
            coordinator.resize(width, height)
            for i, command in enumerate(commands):
                if not opt.burst:
                    coordinator.wait_idle()
                log("command {0} out of {1}: {2}".format(i + 1, len(commands), command.value))
                if not coordinator.submit(command):
                    print(f"Command '{command.value}' not applied.")
            coordinator.wait_idle()
            final_state = coordinator.state
    finally:
        recorder.close()

    log("rendered {0} frame(s), final state: {1}".format(recorder.frames, final_state))

    if recorder.last_image is None or width == 0 or height == 0:
        print("Nothing to write: the output surface is empty or no frame was rendered.")
        return 1

    write_single_image(recorder.last_image, output_path, image_format)
    print(f"Wrote {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
