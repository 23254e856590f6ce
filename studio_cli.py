#!/usr/bin/env python3
"""
Command-line access to the image geometry pipeline.
"""

import os
import sys
import argparse
import logging

from studio_imaging import (
    ImagingError, RawImageBuffer, ReflectionOptions,
    correct_orientation, read_orientation, resize_and_compress, generate_reflection, stack_reflection, rotate_image
)
from studio_imaging.resize import DEFAULT_MAX_DIMENSION, DEFAULT_TARGET_BYTES


def _default_output(input_path, suffix, ext=None):
    name, original_ext = os.path.splitext(input_path)
    return f"{name}_{suffix}{ext or original_ext}"


def _write(path, data):
    with open(path, 'wb') as f:
        f.write(data)


def run_orient(args):
    image = RawImageBuffer.from_path(args.input_image)
    orientation = read_orientation(image.data)
    corrected = correct_orientation(image)

    if corrected is image:
        print(f"✅ Orientation {orientation}: no correction applied")
    else:
        print(f"✅ Corrected orientation {orientation} -> 1")

    output = args.output or _default_output(args.input_image, 'corrected')
    _write(output, corrected.data)
    print(f"Output: {output}")


def run_resize(args):
    image = RawImageBuffer.from_path(args.input_image)
    result = resize_and_compress(image.data, args.max_dimension, args.target_bytes)

    output = args.output or _default_output(args.input_image, 'compressed', '.jpg')
    _write(output, result.data)
    print(f"✅ {result.width}x{result.height} at quality {round(result.quality * 100)}% "
          f"({result.size / (1024 * 1024):.2f}MB)")
    print(f"Output: {output}")


def run_reflect(args):
    image = RawImageBuffer.from_path(args.input_image)
    options = ReflectionOptions(
        intensity=args.intensity,
        height=args.height,
        blur=args.blur,
        fade_strength=args.fade_strength,
        offset=args.offset
    )
    result = generate_reflection(image.data, options)
    if args.stack:
        result = stack_reflection(image.data, result.data, options.offset)

    output = args.output or _default_output(args.input_image, 'reflection', '.png')
    _write(output, result.data)
    print(f"✅ Reflection {result.width}x{result.height}")
    print(f"Output: {output}")


def run_rotate(args):
    image = RawImageBuffer.from_path(args.input_image)
    result = rotate_image(image.data, args.degrees)

    output = args.output or _default_output(args.input_image, 'rotated', '.png')
    _write(output, result.data)
    print(f"✅ Rotated {args.degrees}° -> {result.width}x{result.height}")
    print(f"Output: {output}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Product photo geometry pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python studio_cli.py orient photo.jpg
  python studio_cli.py resize photo.jpg --max-dimension 2048 --target-bytes 5242880
  python studio_cli.py reflect cutout.png --intensity 0.65 --height 0.6 --blur 4
  python studio_cli.py rotate cutout.png --degrees -90
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show pipeline logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    orient = subparsers.add_parser("orient", help="Bake EXIF orientation into the pixels")
    orient.add_argument("input_image", help="Path to the input image file")
    orient.add_argument("-o", "--output", help="Output path (default: <input>_corrected.<ext>)")
    orient.set_defaults(func=run_orient)

    resize = subparsers.add_parser("resize", help="Downscale and compress under a size ceiling")
    resize.add_argument("input_image", help="Path to the input image file")
    resize.add_argument("-o", "--output", help="Output path (default: <input>_compressed.jpg)")
    resize.add_argument("--max-dimension", type=int, default=DEFAULT_MAX_DIMENSION,
                        help=f"Largest width or height in pixels (default: {DEFAULT_MAX_DIMENSION})")
    resize.add_argument("--target-bytes", type=int, default=DEFAULT_TARGET_BYTES,
                        help=f"Size ceiling in bytes (default: {DEFAULT_TARGET_BYTES})")
    resize.set_defaults(func=run_resize)

    defaults = ReflectionOptions()
    reflect = subparsers.add_parser("reflect", help="Generate a floor reflection strip")
    reflect.add_argument("input_image", help="Path to a transparent-background subject")
    reflect.add_argument("-o", "--output", help="Output path (default: <input>_reflection.png)")
    reflect.add_argument("--intensity", type=float, default=defaults.intensity,
                         help=f"0.0 to 1.0 (default: {defaults.intensity})")
    reflect.add_argument("--height", type=float, default=defaults.height,
                         help=f"Strip height as a fraction of the subject (default: {defaults.height})")
    reflect.add_argument("--blur", type=float, default=defaults.blur,
                         help=f"Blur radius in pixels, 0 to 20 (default: {defaults.blur})")
    reflect.add_argument("--fade-strength", type=float, default=defaults.fade_strength,
                         help=f"Position of the middle fade stop (default: {defaults.fade_strength})")
    reflect.add_argument("--offset", type=int, default=defaults.offset,
                         help=f"Gap between subject and reflection with --stack (default: {defaults.offset})")
    reflect.add_argument("--stack", action="store_true", help="Output the subject with its reflection below")
    reflect.set_defaults(func=run_reflect)

    rotate = subparsers.add_parser("rotate", help="Rotate a quarter turn")
    rotate.add_argument("input_image", help="Path to the input image file")
    rotate.add_argument("-o", "--output", help="Output path (default: <input>_rotated.png)")
    rotate.add_argument("--degrees", type=int, default=90, choices=[90, -90],
                        help="90 for clockwise, -90 for counter-clockwise (default: 90)")
    rotate.set_defaults(func=run_rotate)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')

    if not os.path.exists(args.input_image):
        print(f"Error: Input image '{args.input_image}' not found.")
        return 1

    try:
        args.func(args)
    except ImagingError as e:
        print(f"\n❌ {e.code}: {e.message}")
        return 1
    except ValueError as e:
        print(f"\n❌ Invalid argument: {e}")
        return 1
    except OSError as e:
        print(f"\n❌ File error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
