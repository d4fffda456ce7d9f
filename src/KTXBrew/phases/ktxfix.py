"""Repair KTX2 color metadata from the texture's declared usage."""

import logging

from ..core.ktx2 import (
    KHR_DF_PRIMARIES_BT709, KHR_DF_PRIMARIES_UNSPECIFIED,
    get_color_primaries, set_color_primaries,
)
from ..core.records import KTX2_MIME_TYPE, Asset, ColorSpace

logger = logging.getLogger("ktxbrew.ktxfix")


def ktxfix(asset: Asset) -> int:
    """Set DFD ``colorPrimaries`` on KTX2 textures to match their color space.

    Textures with no known slot are left alone. Returns the number changed.
    """
    num_changed = 0
    for texture in asset.textures:
        if texture.mime_type != KTX2_MIME_TYPE or not texture.image:
            continue
        # No information to act on.
        if not texture.slots:
            continue
        current = get_color_primaries(texture.image)
        if current is None:
            logger.warning(
                "ktxfix: Texture \"%s\" has no readable data format descriptor.",
                texture.label,
            )
            continue
        primaries = (
            KHR_DF_PRIMARIES_BT709 if texture.color_space == ColorSpace.SRGB
            else KHR_DF_PRIMARIES_UNSPECIFIED
        )
        if current != primaries:
            texture.image = set_color_primaries(texture.image, primaries)
            logger.info(
                "ktxfix: Set colorPrimaries=%d for texture \"%s\"",
                primaries, texture.label,
            )
            num_changed += 1

    logger.info("ktxfix: Found and repaired issues in %d textures", num_changed)
    return num_changed
