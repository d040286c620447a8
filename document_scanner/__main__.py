#!/usr/bin/env python3
"""
CLI for the document scanner.

Usage:
    python -m document_scanner -i photo.jpg
    python -m document_scanner -i photo.jpg -o page.png --format "A4 Portrait"
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import ScannerConfig
from .errors import InvalidGeometry, ScannerError
from .formats import DEFAULT_FORMAT, STANDARD_FORMATS, find_format
from .geometry import parse_corners
from .page_manager import PageManager
from .visualizer import QuadVisualizer


def parse_args(argv=None):
    """Parse command line arguments"""
    parser = argparse.ArgumentParser(
        prog='document_scanner',
        description='Detect a document in a photo and rectify it',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:

  # Detect and rectify (writes temp/photo_scanned.png)
  python -m document_scanner -i photo.jpg

  # Rotate right, A4 output, save the detected outline too
  python -m document_scanner -i photo.jpg --rotate 90 --format "A4 Portrait" --overlay outline.png

  # Use hand picked corners (in the rotated view)
  python -m document_scanner -i photo.jpg --corners 10,12,590,8,600,790,4,800
        """
    )

    parser.add_argument('-i', '--input', help='Input image')
    parser.add_argument('-o', '--output', help='Output file (default: temp/<input>_scanned.png)')
    parser.add_argument(
        '--format',
        default=DEFAULT_FORMAT.name,
        help=f'Output paper format, or "none" to keep the measured size (default: {DEFAULT_FORMAT.name})'
    )
    parser.add_argument(
        '--rotate',
        type=int,
        default=0,
        choices=[0, 90, 180, 270],
        help='Clockwise rotation applied before rectification'
    )
    parser.add_argument('--corners', help='8 comma separated numbers: x1,y1,...,x4,y4')
    parser.add_argument('--overlay', help='Also save the image with the detected outline drawn on it')
    parser.add_argument('--list-formats', action='store_true', help='List paper formats and exit')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    args = parser.parse_args(argv)
    if not args.list_formats and not args.input:
        parser.error('the following arguments are required: -i/--input')
    return args


def default_output_path(input_path: str) -> Path:
    return Path('temp') / f"{Path(input_path).stem}_scanned.png"


def main(argv=None):
    """Main CLI function"""
    args = parse_args(argv)
    config = ScannerConfig.from_env()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level.upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )

    if args.list_formats:
        for fmt in STANDARD_FORMATS:
            print(f"{fmt.name:<18} {fmt.dimensions:<14} ratio {fmt.ratio:.4f}")
        return

    if not Path(args.input).exists():
        print(f"❌ Error: input file not found: {args.input}")
        sys.exit(1)

    output_format = None
    if args.format.lower() != 'none':
        output_format = find_format(args.format)
        if output_format is None:
            print(f"❌ Error: unknown format: {args.format}")
            print("   Use --list-formats to see the available formats")
            sys.exit(1)

    corners = None
    if args.corners:
        try:
            corners = parse_corners([float(v) for v in args.corners.split(',')])
        except (ValueError, InvalidGeometry) as e:
            print(f"❌ Error: invalid --corners: {e}")
            sys.exit(1)

    with PageManager(config=config) as manager:
        try:
            print(f"📄 Processing: {Path(args.input).name}")
            page_id = manager.add_file(args.input)
        except ScannerError as e:
            print(f"❌ Error: {e}")
            sys.exit(1)

        page = manager.get_page(page_id)
        print(f"   {page.status}")

        if args.rotate:
            manager.set_rotation(page_id, args.rotate)
        if corners is not None:
            manager.update_corners(page_id, corners)
        manager.set_output_format(page_id, output_format)

        if args.overlay:
            overlay = QuadVisualizer().draw_with_info(
                manager.rotated_image(page_id), page.corners, page.detected_strategy
            )
            manager.primitives.save(overlay, args.overlay)
            print(f"   Outline saved: {args.overlay}")

        result = manager.rectify_page(page_id)
        if result is None:
            print(f"❌ Error: {page.status}")
            sys.exit(1)

        output_path = Path(args.output) if args.output else default_output_path(args.input)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            manager.primitives.save(result.image, output_path)
        except ScannerError as e:
            print(f"❌ Error: {e}")
            sys.exit(1)

        print(f"✅ Done: {output_path} ({result.width}x{result.height})")


if __name__ == '__main__':
    main()
