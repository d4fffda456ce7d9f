"""Minimal KTX2 container helpers: identification, size, and DFD primaries."""

import struct
from typing import Optional, Tuple

KTX2_IDENTIFIER = b"\xabKTX 20\xbb\r\n\x1a\n"
KTX2_HEADER_SIZE = 80

KHR_DF_PRIMARIES_UNSPECIFIED = 0
KHR_DF_PRIMARIES_BT709 = 1

# dfdTotalSize (4) + vendor/type (4) + version/blockSize (4) + colorModel (1)
_DFD_PRIMARIES_OFFSET = 13


def _u32_le(raw: bytes, offset: int) -> int:
    return struct.unpack_from("<I", raw, offset)[0]


def is_ktx2(raw: Optional[bytes]) -> bool:
    """Return True when ``raw`` starts with the KTX2 file identifier."""
    return bool(raw) and raw[:12] == KTX2_IDENTIFIER


def read_ktx2_size(raw: bytes) -> Optional[Tuple[int, int]]:
    """Return ``(width, height)`` from a KTX2 header, or None if malformed."""
    if not is_ktx2(raw) or len(raw) < KTX2_HEADER_SIZE:
        return None
    width = _u32_le(raw, 20)
    height = max(_u32_le(raw, 24), 1)
    if width <= 0:
        return None
    return width, height


def _primaries_offset(raw: bytes) -> Optional[int]:
    if not is_ktx2(raw) or len(raw) < KTX2_HEADER_SIZE:
        return None
    dfd_offset = _u32_le(raw, 48)
    dfd_length = _u32_le(raw, 52)
    if dfd_length < _DFD_PRIMARIES_OFFSET + 1:
        return None
    offset = dfd_offset + _DFD_PRIMARIES_OFFSET
    if offset >= len(raw):
        return None
    return offset


def get_color_primaries(raw: bytes) -> Optional[int]:
    """Return the basic DFD block's ``colorPrimaries`` value."""
    offset = _primaries_offset(raw)
    if offset is None:
        return None
    return raw[offset]


def set_color_primaries(raw: bytes, primaries: int) -> bytes:
    """Return a copy of ``raw`` with ``colorPrimaries`` replaced."""
    offset = _primaries_offset(raw)
    if offset is None:
        raise ValueError("Not a KTX2 file with a basic data format descriptor")
    patched = bytearray(raw)
    patched[offset] = primaries & 0xFF
    return bytes(patched)
