import io
import struct

import pytest

from bmpserver.bitmap import (
    Bitmap,
    BitmapFormatError,
    Pixel,
    apply_edge_detection_kernel,
    apply_gaussian_kernel,
    read_header,
    read_pixels,
    run_filter,
    write_pixels,
)

HEADER_SIZE = 54


def make_header(width, height):
    file_size = HEADER_SIZE + width * height * 3
    header = (
        b"BM"
        + struct.pack("<i", file_size)
        + b"\x00" * 4
        + struct.pack("<i", HEADER_SIZE)
        + struct.pack("<i", 40)
        + struct.pack("<ii", width, height)
    )
    return header + b"\x07" * (HEADER_SIZE - len(header))


def uniform_row(value, width=3):
    return [Pixel(value, value, value)] * width


def test_read_header_fields():
    raw = make_header(4, 5)
    stream = io.BytesIO(raw + b"rest")
    bmp = read_header(stream)
    assert bmp.width == 4
    assert bmp.height == 5
    assert bmp.header_size == HEADER_SIZE
    assert bmp.file_size == HEADER_SIZE + 4 * 5 * 3
    assert bmp.header == raw
    assert stream.read() == b"rest"


def test_write_header_round_trip():
    raw = make_header(3, 3)
    bmp = read_header(io.BytesIO(raw))
    out = io.BytesIO()
    bmp.write_header(out)
    assert out.getvalue() == raw


def test_truncated_header_raises():
    with pytest.raises(BitmapFormatError):
        read_header(io.BytesIO(make_header(3, 3)[:20]))
    with pytest.raises(BitmapFormatError):
        read_header(io.BytesIO(make_header(3, 3)[:40]))


def test_header_size_too_small_raises():
    raw = bytearray(make_header(3, 3))
    struct.pack_into("<i", raw, 10, 12)
    with pytest.raises(BitmapFormatError):
        read_header(io.BytesIO(bytes(raw)))


def test_scale_updates_fields_and_header():
    bmp = read_header(io.BytesIO(make_header(3, 4)))
    bmp.scale(2)
    assert bmp.scale_factor == 2
    assert (bmp.width, bmp.height) == (6, 8)
    assert bmp.file_size == HEADER_SIZE + 6 * 8 * 3
    reread = read_header(io.BytesIO(bmp.header))
    assert (reread.width, reread.height, reread.file_size) == (6, 8, bmp.file_size)
    assert bmp.header[26:] == make_header(3, 4)[26:]


def test_pixel_byte_order():
    pixels = read_pixels(io.BytesIO(b"\x01\x02\x03"), 1)
    assert pixels == [Pixel(blue=1, green=2, red=3)]


def test_pixels_round_trip():
    data = bytes(range(18))
    pixels = read_pixels(io.BytesIO(data), 6)
    out = io.BytesIO()
    write_pixels(out, pixels)
    assert out.getvalue() == data


def test_read_pixels_short_raises():
    with pytest.raises(BitmapFormatError):
        read_pixels(io.BytesIO(b"\x00" * 5), 2)


def test_run_filter_writes_header_then_calls_filter():
    raw = make_header(2, 2)
    seen = []

    def record(bmp, instream, outstream):
        seen.append((bmp.width, bmp.height))
        outstream.write(instream.read())

    out = io.BytesIO()
    run_filter(record, 1, io.BytesIO(raw + b"pixels"), out)
    assert out.getvalue() == raw + b"pixels"
    assert seen == [(2, 2)]


def test_run_filter_scales_header():
    out = io.BytesIO()
    run_filter(lambda bmp, i, o: None, 3, io.BytesIO(make_header(2, 2)), out)
    bmp = read_header(io.BytesIO(out.getvalue()))
    assert (bmp.width, bmp.height) == (6, 6)


@pytest.mark.parametrize("value", [0, 17, 255])
def test_gaussian_on_uniform_is_identity(value):
    row = uniform_row(value)
    assert apply_gaussian_kernel(row, row, row) == Pixel(value, value, value)


def test_gaussian_uses_only_first_three_columns():
    wide = uniform_row(50, 3) + uniform_row(200, 2)
    assert apply_gaussian_kernel(wide, wide, wide) == Pixel(50, 50, 50)


@pytest.mark.parametrize("value", [0, 99, 255])
def test_edge_detection_on_uniform_is_zero(value):
    row = uniform_row(value)
    assert apply_edge_detection_kernel(row, row, row) == Pixel(0, 0, 0)


def test_edge_detection_vertical_edge():
    row = [Pixel(10, 10, 10), Pixel(5, 5, 5), Pixel(0, 0, 0)]
    result = apply_edge_detection_kernel(row, row, row)
    assert result == Pixel(40, 40, 40)


def test_edge_detection_channels_equal_and_in_byte_range():
    row0 = [Pixel(255, 0, 0), Pixel(0, 255, 0), Pixel(0, 0, 255)]
    row1 = [Pixel(0, 0, 0), Pixel(255, 255, 255), Pixel(0, 0, 0)]
    row2 = [Pixel(0, 0, 255), Pixel(255, 0, 0), Pixel(0, 255, 0)]
    result = apply_edge_detection_kernel(row0, row1, row2)
    assert result.blue == result.green == result.red
    assert 0 <= result.blue <= 255


def test_bitmap_write_header_truncates_to_header_size():
    bmp = Bitmap(header=b"ABCDEF", header_size=4, file_size=0, width=0, height=0)
    out = io.BytesIO()
    bmp.write_header(out)
    assert out.getvalue() == b"ABCD"