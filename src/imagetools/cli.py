"""
Command line interface for imagetools.

Splits an image into left and right halves and writes, for each half, the
half itself, its histogram-equalized version and its edge map as PNG files.
"""

import argparse
import logging
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from . import __version__
from .io_utils import load_surface, save_surface
from .kernels import KERNELS
from .pipeline import split_and_analyze

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imagetools",
        description="Split an image into halves and write equalized and edge-map versions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write L.png, LH.png, LE.png, R.png, RH.png, RE.png into ./example/
  imagetools example.jpg

  # Choose output directory and edge kernel
  imagetools example.jpg -o out --kernel sobel

  # Split top/bottom instead of left/right
  imagetools example.jpg --vertical
        """,
    )

    parser.add_argument("input", help="Input image file")

    parser.add_argument(
        "-o", "--output", help="Output directory (default: input file name without extension)"
    )

    parser.add_argument(
        "-k",
        "--kernel",
        default="laplace12",
        choices=sorted(KERNELS),
        help="Edge detection kernel (default: laplace12)",
    )

    parser.add_argument(
        "--vertical", action="store_true", help="Split into top and bottom halves"
    )

    parser.add_argument(
        "-w",
        "--workers",
        type=int,
        default=4,
        help="Number of concurrent writers (default: 4)",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser


def write_outputs(outputs: dict, output_dir: Path, workers: int) -> list[Path]:
    """Write every surface to ``<output_dir>/<name>.png`` and wait for all writes."""
    output_dir.mkdir(parents=True, exist_ok=True)
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(save_surface, output_dir / f"{name}.png", surface)
            for name, surface in outputs.items()
        ]
        return [future.result() for future in futures]


def main(argv: list[str] | None = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    input_path = Path(args.input)
    output_dir = Path(args.output) if args.output else input_path.with_suffix("")

    try:
        if args.workers < 1:
            raise ValueError("--workers must be at least 1")

        surface = load_surface(input_path)
        outputs = split_and_analyze(surface, kernel=args.kernel, vertical=args.vertical)
        written = write_outputs(outputs, output_dir, args.workers)

        print(f"Successfully processed '{input_path}' -> '{output_dir}' ({len(written)} files)")

    except Exception as e:
        print(f"Error processing image: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
