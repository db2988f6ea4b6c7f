"""PNG helpers: Apple "CgBI" optimization reversal and raster decoding.

Xcode stores app icons as CgBI PNGs: a leading ``CgBI`` chunk, image data
compressed as raw deflate (no zlib header), pixels in BGRA order with
premultiplied alpha. Such files are not valid PNGs for standard decoders.
"""

import struct
import zlib
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from appmeta.exceptions import IconDecodeError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Chunks that only make sense for the optimized encoding
_DROPPED_CHUNKS = {b"CgBI", b"iDOT"}

# Supported IHDR color types -> bytes per pixel at bit depth 8
_BYTES_PER_PIXEL = {2: 3, 6: 4}


def _read_chunks(data: bytes) -> list[tuple[bytes, bytes]]:
    if not data.startswith(PNG_SIGNATURE):
        raise IconDecodeError("Not a PNG file (bad signature)")

    chunks: list[tuple[bytes, bytes]] = []
    offset = len(PNG_SIGNATURE)
    while offset < len(data):
        if offset + 8 > len(data):
            raise IconDecodeError("Truncated PNG chunk header")
        length, chunk_type = struct.unpack(">I4s", data[offset : offset + 8])
        body_end = offset + 8 + length
        if body_end + 4 > len(data):
            raise IconDecodeError(f"Truncated PNG chunk {chunk_type!r}")
        chunks.append((chunk_type, data[offset + 8 : body_end]))
        offset = body_end + 4
        if chunk_type == b"IEND":
            break
    return chunks


def _write_chunk(out: BytesIO, chunk_type: bytes, body: bytes) -> None:
    out.write(struct.pack(">I", len(body)))
    out.write(chunk_type)
    out.write(body)
    out.write(struct.pack(">I", zlib.crc32(chunk_type + body) & 0xFFFFFFFF))


def _paeth(a: int, b: int, c: int) -> int:
    p = a + b - c
    pa, pb, pc = abs(p - a), abs(p - b), abs(p - c)
    if pa <= pb and pa <= pc:
        return a
    if pb <= pc:
        return b
    return c


def _unfilter(raw: bytes, width: int, height: int, bpp: int) -> list[bytearray]:
    """Undo per-scanline PNG filters, returning raw pixel rows."""
    stride = width * bpp
    if len(raw) < height * (stride + 1):
        raise IconDecodeError("Image data shorter than declared dimensions")

    rows: list[bytearray] = []
    prev = bytearray(stride)
    pos = 0
    for _ in range(height):
        filter_type = raw[pos]
        row = bytearray(raw[pos + 1 : pos + 1 + stride])
        pos += stride + 1

        if filter_type == 1:  # Sub
            for i in range(bpp, stride):
                row[i] = (row[i] + row[i - bpp]) & 0xFF
        elif filter_type == 2:  # Up
            for i in range(stride):
                row[i] = (row[i] + prev[i]) & 0xFF
        elif filter_type == 3:  # Average
            for i in range(stride):
                left = row[i - bpp] if i >= bpp else 0
                row[i] = (row[i] + ((left + prev[i]) >> 1)) & 0xFF
        elif filter_type == 4:  # Paeth
            for i in range(stride):
                left = row[i - bpp] if i >= bpp else 0
                up_left = prev[i - bpp] if i >= bpp else 0
                row[i] = (row[i] + _paeth(left, prev[i], up_left)) & 0xFF
        elif filter_type != 0:
            raise IconDecodeError(f"Unknown PNG filter type {filter_type}")

        rows.append(row)
        prev = row
    return rows


def _restore_pixels(row: bytearray, bpp: int) -> None:
    """BGR(A) premultiplied -> RGB(A) straight alpha, in place."""
    for i in range(0, len(row), bpp):
        row[i], row[i + 2] = row[i + 2], row[i]
        if bpp == 4:
            alpha = row[i + 3]
            if alpha and alpha != 0xFF:
                for c in range(3):
                    row[i + c] = min(0xFF, row[i + c] * 0xFF // alpha)


def is_optimized_png(data: bytes) -> bool:
    """Check whether PNG bytes use the CgBI encoding."""
    return data.startswith(PNG_SIGNATURE) and data[12:16] == b"CgBI"


def revert_png_optimization(data: bytes) -> bytes:
    """Convert a CgBI PNG into a standard PNG.

    Bytes without a CgBI chunk are returned unchanged.

    Raises:
        IconDecodeError: If the data is malformed or uses an unsupported
            pixel format.
    """
    if not is_optimized_png(data):
        return data

    chunks = _read_chunks(data)
    header = next((body for kind, body in chunks if kind == b"IHDR"), None)
    if header is None or len(header) != 13:
        raise IconDecodeError("PNG is missing a valid IHDR chunk")

    width, height, bit_depth, color_type, _, _, interlace = struct.unpack(
        ">IIBBBBB", header
    )
    bpp = _BYTES_PER_PIXEL.get(color_type)
    if bit_depth != 8 or bpp is None:
        raise IconDecodeError(
            f"Unsupported CgBI pixel format (depth={bit_depth}, color={color_type})"
        )
    if interlace:
        raise IconDecodeError("Interlaced CgBI images are not supported")

    compressed = b"".join(body for kind, body in chunks if kind == b"IDAT")
    try:
        raw = zlib.decompressobj(-zlib.MAX_WBITS).decompress(compressed)
    except zlib.error as e:
        raise IconDecodeError(f"Failed to inflate CgBI image data: {e}") from e

    rows = _unfilter(raw, width, height, bpp)
    restored = bytearray()
    for row in rows:
        _restore_pixels(row, bpp)
        restored.append(0)
        restored.extend(row)

    out = BytesIO()
    out.write(PNG_SIGNATURE)
    idat_written = False
    for kind, body in chunks:
        if kind in _DROPPED_CHUNKS:
            continue
        if kind == b"IDAT":
            if not idat_written:
                _write_chunk(out, b"IDAT", zlib.compress(bytes(restored)))
                idat_written = True
            continue
        _write_chunk(out, kind, body)
    return out.getvalue()


def decode_image(data: bytes) -> Image.Image:
    """Decode standard raster image bytes with Pillow.

    Raises:
        IconDecodeError: If Pillow cannot identify or load the image.
    """
    try:
        image = Image.open(BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as e:
        raise IconDecodeError(f"Failed to decode image: {e}") from e
    return image
