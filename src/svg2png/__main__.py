import argparse
import logging
import sys

from svg2png.errors import SVG2PNGError
from svg2png.rasterizer import RASTERIZERS, create_rasterizer
from svg2png.version import __version__

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Convert SVG file to PNG")
    parser.add_argument(
        "input", metavar="INPUT", type=str, help="Input SVG file path, or - for stdin"
    )
    parser.add_argument(
        "output",
        metavar="PATH",
        type=str,
        nargs="?",
        default="output.png",
        help="Output PNG file, or - for stdout. Default: output.png",
    )
    parser.add_argument(
        "--rasterizer",
        metavar="NAME",
        type=str,
        choices=sorted(RASTERIZERS),
        default="numpy",
        help="Rasterizer backend (numpy, resvg). Default: numpy",
    )
    parser.add_argument(
        "--supersample",
        metavar="N",
        type=int,
        default=4,
        help="Samples per pixel along each axis, numpy rasterizer only. Default: 4",
    )
    parser.add_argument(
        "--loglevel",
        metavar="LEVEL",
        default="WARNING",
        help="Logging level, default WARNING",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main function to convert SVG to PNG."""
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.loglevel.upper(), "WARNING"))

    kwargs = {"supersample": args.supersample} if args.rasterizer == "numpy" else {}
    try:
        rasterizer = create_rasterizer(args.rasterizer, **kwargs)
        if args.input == "-":
            image = rasterizer.from_string(sys.stdin.buffer.read())
        else:
            image = rasterizer.from_file(args.input)
    except (SVG2PNGError, ImportError, ValueError, OSError) as e:
        logger.error("Failed to convert %s: %s", args.input, e)
        return 1

    if args.output == "-":
        sys.stdout.buffer.write(image.data)
        sys.stdout.buffer.flush()
    else:
        image.save(args.output)
        logger.info("Saved %dx%d image to %s", image.width, image.height, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
