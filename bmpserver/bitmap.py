"""Reading, writing and convolving 24-bit BMP images streamed row by row."""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Iterable, Sequence

BMP_FILE_SIZE_OFFSET = 2
BMP_HEADER_SIZE_OFFSET = 10
BMP_WIDTH_OFFSET = 18
BMP_HEIGHT_OFFSET = 22
_MIN_HEADER_SIZE = BMP_HEIGHT_OFFSET + 4

PIXEL_SIZE = 3

GAUSSIAN_KERNEL = ((1, 2, 1), (2, 4, 2), (1, 2, 1))
KERNEL_DX = ((1, 0, -1), (2, 0, -2), (1, 0, -1))
KERNEL_DY = ((1, 2, 1), (0, 0, 0), (-1, -2, -1))
GAUSSIAN_NORMALIZING_FACTOR = 16

_INT = struct.Struct("<i")


class BitmapFormatError(ValueError):
    """Raised when bitmap data is truncated or malformed."""


@dataclass(frozen=True)
class Pixel:
    """One pixel in the on-disk BGR channel order."""

    blue: int
    green: int
    red: int

    def to_bytes(self) -> bytes:
        return bytes((self.blue, self.green, self.red))


@dataclass
class Bitmap:
    """Header and dimensions of a bitmap; pixel data stays on the stream."""

    header: bytes
    header_size: int
    file_size: int
    width: int
    height: int
    scale_factor: int = field(default=1)

    def write_header(self, stream: BinaryIO) -> None:
        """Write the raw header bytes to the stream."""
        stream.write(self.header[: self.header_size])

    def scale(self, scale_factor: int) -> None:
        """Multiply the dimensions by scale_factor and update the header."""
        self.scale_factor = scale_factor
        self.width *= scale_factor
        self.height *= scale_factor
        self.file_size = self.header_size + self.width * self.height * PIXEL_SIZE
        header = bytearray(self.header)
        _INT.pack_into(header, BMP_FILE_SIZE_OFFSET, self.file_size)
        _INT.pack_into(header, BMP_WIDTH_OFFSET, self.width)
        _INT.pack_into(header, BMP_HEIGHT_OFFSET, self.height)
        self.header = bytes(header)


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if data is None or len(data) != size:
        got = 0 if data is None else len(data)
        raise BitmapFormatError(f"expected {size} bytes, got {got}")
    return data


def read_header(stream: BinaryIO) -> Bitmap:
    """Read a bitmap header from the stream, leaving it at the pixel data."""
    prefix = _read_exact(stream, _MIN_HEADER_SIZE)
    (file_size,) = _INT.unpack_from(prefix, BMP_FILE_SIZE_OFFSET)
    (header_size,) = _INT.unpack_from(prefix, BMP_HEADER_SIZE_OFFSET)
    (width,) = _INT.unpack_from(prefix, BMP_WIDTH_OFFSET)
    (height,) = _INT.unpack_from(prefix, BMP_HEIGHT_OFFSET)
    if header_size < _MIN_HEADER_SIZE:
        raise BitmapFormatError(f"header size {header_size} is too small")
    rest = _read_exact(stream, header_size - _MIN_HEADER_SIZE)
    return Bitmap(
        header=prefix + rest,
        header_size=header_size,
        file_size=file_size,
        width=width,
        height=height,
    )


def read_pixels(stream: BinaryIO, count: int) -> list[Pixel]:
    """Read count pixels from the stream."""
    data = _read_exact(stream, count * PIXEL_SIZE)
    return [Pixel(*data[i : i + PIXEL_SIZE]) for i in range(0, len(data), PIXEL_SIZE)]


def write_pixels(stream: BinaryIO, pixels: Iterable[Pixel]) -> None:
    """Write pixels to the stream in BGR order."""
    stream.write(b"".join(p.to_bytes() for p in pixels))


def run_filter(
    filter_func: Callable[[Bitmap, BinaryIO, BinaryIO], None],
    scale_factor: int,
    instream: BinaryIO,
    outstream: BinaryIO,
) -> None:
    """Read a header, optionally scale it, write it, then run the filter."""
    bmp = read_header(instream)
    if scale_factor > 1:
        bmp.scale(scale_factor)
    bmp.write_header(outstream)
    filter_func(bmp, instream, outstream)


def _weighted_sums(
    rows: Sequence[Sequence[Pixel]], kernel: Sequence[Sequence[int]]
) -> tuple[int, int, int]:
    b = g = r = 0
    for row, weights in zip(rows, kernel):
        for pixel, weight in zip(row[:3], weights):
            b += pixel.blue * weight
            g += pixel.green * weight
            r += pixel.red * weight
    return b, g, r


def apply_gaussian_kernel(
    row0: Sequence[Pixel], row1: Sequence[Pixel], row2: Sequence[Pixel]
) -> Pixel:
    """Blur the 3x3 neighbourhood whose top-left corner starts each row."""
    b, g, r = _weighted_sums((row0, row1, row2), GAUSSIAN_KERNEL)
    return Pixel(
        b // GAUSSIAN_NORMALIZING_FACTOR,
        g // GAUSSIAN_NORMALIZING_FACTOR,
        r // GAUSSIAN_NORMALIZING_FACTOR,
    )


def apply_edge_detection_kernel(
    row0: Sequence[Pixel], row1: Sequence[Pixel], row2: Sequence[Pixel]
) -> Pixel:
    """Sobel edge magnitude of the 3x3 neighbourhood, as a grey pixel."""
    rows = (row0, row1, row2)
    dx = _weighted_sums(rows, KERNEL_DX)
    dy = _weighted_sums(rows, KERNEL_DY)
    magnitudes = [math.floor(math.sqrt(x * x + y * y)) for x, y in zip(dx, dy)]
    # The channel is a single byte, so large magnitudes wrap around.
    edge = max(magnitudes) & 0xFF
    return Pixel(edge, edge, edge)