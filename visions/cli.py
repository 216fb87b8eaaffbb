"""Headless host: replay view commands and write the resulting frames to disk."""

from __future__ import annotations

from argparse import Action, ArgumentParser
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import PIL.Image
import imageio
from matplotlib.colors import to_rgb

from . import console
from .config import COLORINGS, DEFAULT_HEIGHT, DEFAULT_MAX_ITERATIONS, DEFAULT_WIDTH, ViewConfig
from .console import log
from .controller import MandelbrotView
from .planner import compute_zoom_factors, pixel_to_pointer, select_zoom_center
from .renderer import select_device


class _CommandAction(Action):
    """Collect view commands in the order they appear on the command line."""

    def __call__(self, parser, namespace, values, option_string=None):
        commands = list(getattr(namespace, self.dest, None) or [])
        commands.append((self.const, values))
        setattr(namespace, self.dest, commands)


@dataclass
class OutputConfig:
    path: Path
    image_format: str
    animated: bool


def build_parser():
    parser = ArgumentParser(prog="visions", description="Render the Mandelbrot set through the interactive view core.")

    parser.add_argument('--width', type=int,
                        dest='width', help='width of the frame in pixels',
                        metavar='WIDTH', default=DEFAULT_WIDTH)

    parser.add_argument('--height', type=int,
                        dest='height', help='height of the frame in pixels',
                        metavar='HEIGHT', default=DEFAULT_HEIGHT)

    parser.add_argument('--max-iterations', type=int,
                        dest='max_iterations', help='iteration cap before a point counts as inside the set',
                        metavar='MAX_ITERATIONS', default=DEFAULT_MAX_ITERATIONS)

    parser.add_argument('--palette', type=str,
                        dest='palette', help='"rainbow", "random" or any matplotlib colormap name',
                        metavar='PALETTE', default='rainbow')

    parser.add_argument('--seed', type=int,
                        dest='seed', help='seed for random palettes', metavar='SEED', default=None)

    parser.add_argument('--coloring', choices=COLORINGS, default='smooth',
                        help='Coloring strategy: "smooth" iteration counts or "histogram" equalization.')

    parser.add_argument('--inside-color', type=str, default=None,
                        help='Hex color for points inside the Mandelbrot set (default: last palette color).')

    parser.add_argument('--zoom', dest='commands', action=_CommandAction, const='zoom', nargs=3,
                        type=float, metavar=('PX', 'PY', 'FACTOR'),
                        help='Zoom around the pointer position (PX, PY) by FACTOR. May be repeated.')

    parser.add_argument('--resize', dest='commands', action=_CommandAction, const='resize', nargs=2,
                        type=int, metavar=('WIDTH', 'HEIGHT'),
                        help='Resize the view, keeping the plane distance per pixel. May be repeated.')

    parser.add_argument('--randomize-palette', dest='commands', action=_CommandAction, const='randomize_palette',
                        nargs=0, help='Switch to a freshly randomized palette.')

    parser.add_argument('--reset', dest='commands', action=_CommandAction, const='reset', nargs=0,
                        help='Restore the default bounds and the rainbow palette.')

    parser.add_argument('--frames', type=int,
                        dest='frames', help='number of frames to generate; more than one writes a GIF',
                        metavar='FRAMES', default=1)

    parser.add_argument('--zoom-factor', type=float,
                        dest='zoom_factor', help='per-frame zoom factor for animations. Choose < 1 for zoom in, >1 for zoom out',
                        metavar='ZOOM_FACTOR', default=0.8)

    parser.add_argument('--final-zoom', type=float, default=None,
                        help='Overall scale applied by the last frame (e.g., 1e-4 narrows the window by 10000x). If set, overrides --zoom-factor.')

    parser.add_argument('--easing', choices=['linear', 'ease'], default='ease',
                        help='Temporal curve used with --final-zoom.')

    parser.add_argument('--auto-focus', dest='auto_focus', action='store_true',
                        help='Zoom animations follow the set boundary nearest the center instead of the frame center.')

    parser.add_argument('--output', dest='output', type=str, default=None,
                        help='Destination file. Defaults to mandelbrot.<format>, or movie.gif for animations.')

    parser.add_argument('--format', type=str,
                        dest='format', help='file format for single images. Can be any extension supported by Pillow. Default: "png".',
                        metavar='FORMAT', default='png')

    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow and hardware diagnostics.')

    parser.set_defaults(commands=[])
    return parser


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    if opt.frames <= 0:
        parser.error("--frames must be at least 1.")

    animated = opt.frames > 1
    image_format = (getattr(opt, "format", "png") or "png").lower().lstrip(".") or "png"
    expected_suffix = ".gif" if animated else f".{image_format}"

    if opt.output:
        output_path = Path(opt.output).expanduser()
        if output_path.exists() and output_path.is_dir():
            parser.error("--output must point to a file, not a directory.")
        if output_path.suffix:
            if output_path.suffix.lower() != expected_suffix:
                if animated:
                    parser.error("GIF outputs must end with .gif.")
                parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
        else:
            output_path = output_path.with_suffix(expected_suffix)
    else:
        output_path = Path("movie.gif" if animated else f"mandelbrot.{image_format}")

    return OutputConfig(path=output_path.resolve(), image_format=image_format, animated=animated)


# Pillow format names for extensions it does not accept verbatim.
PIL_FORMATS = {"jpg": "JPEG", "tif": "TIFF"}


def save_frame(frame: np.ndarray, output_path: Path, image_format: str) -> None:
    """Save one RGBA frame as a still image; JPEG drops the alpha channel."""

    pil_format = PIL_FORMATS.get(image_format, image_format.upper())
    image = PIL.Image.fromarray(frame)
    if pil_format == "JPEG":
        image = image.convert("RGB")
    output_path.parent.mkdir(parents=True, exist_ok=True)
    image.save(str(output_path), format=pil_format)


def apply_commands(view: MandelbrotView, commands) -> None:
    for name, values in commands:
        if name == "zoom":
            px, py, factor = values
            view.zoom((px, py), factor)
        elif name == "resize":
            view.resize(*values)
        else:
            getattr(view, name)()
        log("applied %s %s -> %s" % (name, list(values), view.viewport))


def render(view: MandelbrotView) -> np.ndarray:
    """Draw the current frame into a fresh ``(height, width, 4)`` array."""

    buffer = bytearray(view.width * view.height * 4)
    view.draw(buffer)
    return np.frombuffer(bytes(buffer), dtype=np.uint8).reshape(view.height, view.width, 4)


def _checked_inside_color(value):
    if value is None:
        return None
    try:
        to_rgb(value)
    except ValueError:
        print(f"Invalid inside_color '{value}', using the palette's own color.")
        return None
    return value


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    output_config = resolve_output_config(opt, parser)

    console.set_verbose(opt.verbose)
    if not opt.verbose:
        console.quiet_tensorflow_logger()

    try:
        config = ViewConfig(
            width=opt.width,
            height=opt.height,
            max_iterations=opt.max_iterations,
            palette=opt.palette,
            coloring=opt.coloring,
            inside_color=_checked_inside_color(opt.inside_color),
            seed=opt.seed,
            device=select_device(),
        )
        view = MandelbrotView(config)
        apply_commands(view, opt.commands)
    except ValueError as exc:
        parser.error(str(exc))

    if not output_config.animated:
        frame = render(view)
        save_frame(frame, output_config.path, output_config.image_format)
        log("wrote %s" % output_config.path)
        return

    per_frame_factors = compute_zoom_factors(
        opt.frames,
        opt.zoom_factor,
        final_zoom=opt.final_zoom,
        easing=opt.easing,
    )

    output_config.path.parent.mkdir(parents=True, exist_ok=True)
    writer = imageio.get_writer(str(output_config.path), mode='I', duration=0.1, loop=0)
    try:
        for i in range(opt.frames):
            print("frame {0} out of {1}".format(i, opt.frames), end='\r')
            writer.append_data(render(view))
            if i == opt.frames - 1:
                break
            if opt.auto_focus:
                row, col = select_zoom_center(view.field, view.max_iterations)
                pointer = pixel_to_pointer(int(row), int(col), view.width, view.height)
            else:
                pointer = (view.width / 2.0, view.height / 2.0)
            view.zoom(pointer, float(per_frame_factors[i]))
    finally:
        writer.close()
    log("wrote %s" % output_config.path)


if __name__ == '__main__':
    main()
