"""Texture and asset records consumed by the compression batch."""

import threading
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Dict, List, Optional, Tuple

from .paths import normalize_uri

KTX2_MIME_TYPE = "image/ktx2"
KHR_TEXTURE_BASISU = "KHR_texture_basisu"

_EXTENSION_MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".ktx2": KTX2_MIME_TYPE,
}
_MIME_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/avif": "avif",
    KTX2_MIME_TYPE: "ktx2",
}


class TextureChannel(IntFlag):
    """Bitmask of channels carrying meaningful data."""

    NONE = 0
    R = 0x1000
    G = 0x0100
    B = 0x0010
    A = 0x0001
    RGB = R | G | B
    RGBA = R | G | B | A


class ColorSpace:
    """Declared texture color spaces. ``None`` means non-color data."""

    SRGB = "srgb"


def mime_type_for_extension(ext: str) -> Optional[str]:
    """Return the MIME type for a file extension (with or without a dot)."""
    ext = ext.lower()
    if not ext.startswith("."):
        ext = "." + ext
    return _EXTENSION_MIME_TYPES.get(ext)


def extension_for_mime_type(mime_type: str) -> str:
    """Return the bare file extension for a MIME type."""
    return _MIME_EXTENSIONS.get(mime_type, mime_type.rsplit("/", 1)[-1])


@dataclass
class Texture:
    """Single image resource of an asset.

    Only this read/write surface is touched by the compression batch.
    ``size`` is ``(width, height)`` or ``None`` when the header could not be
    read. ``color_space`` is ``ColorSpace.SRGB`` or ``None`` (non-color).
    """

    image: Optional[bytes]
    mime_type: str
    uri: Optional[str] = None
    name: str = ""
    size: Optional[Tuple[int, int]] = None
    slots: List[str] = field(default_factory=list)
    color_space: Optional[str] = None
    channels: TextureChannel = TextureChannel.NONE

    def __post_init__(self) -> None:
        """Normalize the stored URI to a relative POSIX path."""
        if self.uri:
            self.uri = normalize_uri(self.uri)

    @property
    def label(self) -> str:
        """Return the URI or name used to identify this texture in logs."""
        return self.uri or self.name

    def to_dict(self) -> dict:
        """Return a JSON-friendly summary without the payload."""
        return {
            "uri": self.uri,
            "name": self.name,
            "mimeType": self.mime_type,
            "slots": list(self.slots),
            "colorSpace": self.color_space,
            "size": list(self.size) if self.size else None,
            "byteLength": len(self.image) if self.image else 0,
        }


@dataclass
class Asset:
    """Texture collection plus container-level extension markers.

    ``extensions`` maps extension name to its "required" flag.
    """

    textures: List[Texture] = field(default_factory=list)
    extensions: Dict[str, bool] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def add_extension(self, name: str, required: bool = False) -> None:
        """Attach (or update) an extension marker."""
        with self._lock:
            self.extensions[name] = self.extensions.get(name, False) or required

    def remove_extension(self, name: str) -> None:
        """Retract an extension marker if present."""
        with self._lock:
            self.extensions.pop(name, None)

    def has_extension(self, name: str) -> bool:
        """Return whether the extension marker is attached."""
        return name in self.extensions

    @property
    def extensions_used(self) -> List[str]:
        """Return sorted names of every attached extension."""
        return sorted(self.extensions)

    @property
    def extensions_required(self) -> List[str]:
        """Return sorted names of required extensions."""
        return sorted(k for k, v in self.extensions.items() if v)
