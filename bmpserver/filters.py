"""Image filters that stream a bitmap from one binary stream to another."""

from __future__ import annotations

import sys
from typing import BinaryIO, Callable, Sequence

from bmpserver.bitmap import (
    Bitmap,
    BitmapFormatError,
    Pixel,
    apply_edge_detection_kernel,
    apply_gaussian_kernel,
    read_pixels,
    run_filter,
    write_pixels,
)

Kernel = Callable[[Sequence[Pixel], Sequence[Pixel], Sequence[Pixel]], Pixel]


def copy_filter(bmp: Bitmap, instream: BinaryIO, outstream: BinaryIO) -> None:
    """Copy every pixel unchanged."""
    for _ in range(bmp.height):
        write_pixels(outstream, read_pixels(instream, bmp.width))


def greyscale(bmp: Bitmap, instream: BinaryIO, outstream: BinaryIO) -> None:
    """Replace each pixel with the average of its channels."""
    for _ in range(bmp.height):
        row = read_pixels(instream, bmp.width)
        grey = ((p.blue + p.green + p.red) // 3 for p in row)
        write_pixels(outstream, (Pixel(v, v, v) for v in grey))


def _convolve(
    bmp: Bitmap, instream: BinaryIO, outstream: BinaryIO, kernel: Kernel
) -> None:
    if bmp.width < 3 or bmp.height < 3:
        raise BitmapFormatError(
            f"a 3x3 filter needs at least 3x3 pixels, got {bmp.width}x{bmp.height}"
        )
    width = bmp.width
    above = read_pixels(instream, width)
    middle = read_pixels(instream, width)
    below = read_pixels(instream, width)
    transformed: list[Pixel] = []

    for j in range(1, bmp.height - 1):
        inner = [
            kernel(above[i - 1 : i + 2], middle[i - 1 : i + 2], below[i - 1 : i + 2])
            for i in range(1, width - 1)
        ]
        transformed = [inner[0], *inner, inner[-1]]
        if j == 1:
            write_pixels(outstream, transformed)
        write_pixels(outstream, transformed)

        above, middle = middle, below
        if j < bmp.height - 2:
            below = read_pixels(instream, width)

    write_pixels(outstream, transformed)


def gaussian_filter(bmp: Bitmap, instream: BinaryIO, outstream: BinaryIO) -> None:
    """Apply a 3x3 Gaussian blur, repeating the border rows and columns."""
    _convolve(bmp, instream, outstream, apply_gaussian_kernel)


def edge_detection(bmp: Bitmap, instream: BinaryIO, outstream: BinaryIO) -> None:
    """Apply Sobel edge detection, repeating the border rows and columns."""
    _convolve(bmp, instream, outstream, apply_edge_detection_kernel)


def _run_main(filter_func: Callable[[Bitmap, BinaryIO, BinaryIO], None]) -> int:
    outstream = sys.stdout.buffer
    try:
        run_filter(filter_func, 1, sys.stdin.buffer, outstream)
    except BitmapFormatError as exc:
        print(f"bad bitmap: {exc}", file=sys.stderr)
        return 1
    finally:
        outstream.flush()
    return 0


def main_copy(argv: list[str] | None = None) -> int:
    """Copy a bitmap from stdin to stdout."""
    return _run_main(copy_filter)


def main_greyscale(argv: list[str] | None = None) -> int:
    """Greyscale a bitmap from stdin to stdout."""
    return _run_main(greyscale)


def main_gaussian_blur(argv: list[str] | None = None) -> int:
    """Blur a bitmap from stdin to stdout."""
    return _run_main(gaussian_filter)


def main_edge_detection(argv: list[str] | None = None) -> int:
    """Edge-detect a bitmap from stdin to stdout."""
    return _run_main(edge_detection)