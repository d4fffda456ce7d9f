"""Texture role classification by filename suffix, plus derived color data."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np
from PIL import Image

from ..config import SRGB_SLOT_PATTERN, TEXTURE_PATTERNS, TEXTURE_SLOTS, TextureType
from .records import ColorSpace, TextureChannel

logger = logging.getLogger("ktxbrew.classify")

# Channels each material slot reads.
SLOT_CHANNELS = {
    "baseColorTexture": TextureChannel.RGBA,
    "emissiveTexture": TextureChannel.RGB,
    "normalTexture": TextureChannel.RGB,
    "occlusionTexture": TextureChannel.R,
    "metallicRoughnessTexture": TextureChannel.G | TextureChannel.B,
}


def classify_texture(filepath: str) -> TextureType:
    """Classify texture type based on filename suffix patterns.

    Uses longest-match suffix strategy to avoid false positives from
    short patterns matching mid-word substrings.
    """
    name = Path(filepath).stem.lower()
    best_type = TextureType.UNKNOWN
    best_len = 0
    for tex_type, patterns in TEXTURE_PATTERNS.items():
        for pattern in patterns:
            if name.endswith(pattern) and len(pattern) > best_len:
                best_len = len(pattern)
                best_type = tex_type
    return best_type


def slots_for_type(tex_type: TextureType) -> List[str]:
    return list(TEXTURE_SLOTS.get(tex_type, []))


def color_space_for_slots(slots: Iterable[str]) -> Optional[str]:
    """Return ``ColorSpace.SRGB`` if any slot holds color data, else None."""
    if any(SRGB_SLOT_PATTERN.search(slot) for slot in slots):
        return ColorSpace.SRGB
    return None


def has_effective_alpha(img: "Image.Image") -> bool:
    """Return True when the image has an alpha band that is not fully opaque."""
    bands = img.getbands()
    if "A" not in bands and img.mode != "P":
        return False
    try:
        with img.convert("RGBA") as rgba:
            alpha = np.asarray(rgba.getchannel("A"))
    except Exception as e:
        logger.debug("Alpha inspection failed: %s", e)
        return False
    return bool(alpha.size) and int(alpha.min()) < 255


def channel_mask_for(slots: Iterable[str], has_alpha: bool = True) -> TextureChannel:
    """Union of channels read by ``slots``.

    Alpha of a base color texture only counts when the image has any.
    """
    mask = TextureChannel.NONE
    for slot in slots:
        channels = SLOT_CHANNELS.get(slot, TextureChannel.NONE)
        if slot == "baseColorTexture" and not has_alpha:
            channels &= ~TextureChannel.A
        mask |= channels
    return mask
