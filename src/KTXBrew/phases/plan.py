"""Derive toktx command-line parameters for one texture.

`plan_texture` first applies the eligibility filter, then hands eligible
textures to `create_params`. Only options that differ from their defaults
are emitted, so logged invocations stay short and readable.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

from ..config import (
    ETC1S_DEFAULTS, GLOBAL_DEFAULTS, UASTC_DEFAULTS, EncodingOptions, Mode,
)
from ..core.records import KTX2_MIME_TYPE, ColorSpace, Texture, TextureChannel
from ..core.sizing import (
    MAX_RECOMMENDED_DIMENSION, ceil_multiple_of_four, is_multiple_of_four,
    is_power_of_two, preferred_power_of_two, thread_count,
)
from ..core.version import ToolVersion
from .encode import BatchContext

logger = logging.getLogger("ktxbrew.plan")

# Source formats toktx reads.
ACCEPTED_MIME_TYPES = ("image/png", "image/jpeg")

NORMAL_SLOT_PATTERN = re.compile(r"normal", re.IGNORECASE)


@dataclass(frozen=True)
class Skip:
    """A texture left out of the batch, and why."""

    reason: str
    level: int = logging.DEBUG


def texture_prefix(texture: Texture, index: int, count: int) -> str:
    """Log prefix naming the texture by URI, name, or position."""
    label = texture.uri or texture.name or f"{index + 1}/{count}"
    return f"toktx:texture({label})"


def _fmt(value) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def check_eligibility(texture: Texture, options: EncodingOptions) -> Optional[Skip]:
    """Return a `Skip` for textures the batch must not touch, else None."""
    slots = texture.slots
    if texture.mime_type == KTX2_MIME_TYPE:
        return Skip("Skipping, already KTX.")
    if texture.mime_type not in ACCEPTED_MIME_TYPES:
        return Skip(
            f'Skipping, unsupported texture type "{texture.mime_type}".',
            logging.WARNING,
        )
    if options.slots is not None and not any(options.slots.search(s) for s in slots):
        return Skip(f'Skipping, [{", ".join(slots)}] excluded by "slots" parameter.')
    if options.pattern is not None and not (
        options.pattern.search(texture.uri or "")
        or options.pattern.search(texture.name or "")
    ):
        return Skip('Skipping, excluded by "pattern" parameter.')
    if not texture.image or not (options.resize or texture.size):
        return Skip("Skipping, unreadable texture.", logging.WARNING)
    return None


def plan_texture(
    texture: Texture,
    index: int,
    context: "BatchContext",
    options: EncodingOptions,
) -> Union[List[str], Skip]:
    """Return the toktx flags for ``texture``, or a `Skip`."""
    prefix = texture_prefix(texture, index, context.num_textures)
    logger.debug("%s: Slots → [%s]", prefix, ", ".join(texture.slots))

    skip = check_eligibility(texture, options)
    if skip is not None:
        logger.log(skip.level, "%s: %s", prefix, skip.reason)
        return skip

    size = options.resize or texture.size
    return create_params(
        slots=texture.slots,
        channels=texture.channels,
        color_space=texture.color_space,
        size=size,
        num_textures=context.num_textures,
        options=options,
        tool_version=context.tool_version,
        cpu_count=context.cpu_count,
    )


def _mode_params(options: EncodingOptions) -> List[str]:
    s = options.settings
    params: List[str] = []
    if options.mode is Mode.UASTC:
        params += ["--uastc", _fmt(s.level)]
        if s.rdo != UASTC_DEFAULTS.rdo:
            params += ["--uastc_rdo_l", _fmt(s.rdo)]
        if s.rdo_dictionary_size != UASTC_DEFAULTS.rdo_dictionary_size:
            params += ["--uastc_rdo_d", _fmt(s.rdo_dictionary_size)]
        if s.rdo_block_scale != UASTC_DEFAULTS.rdo_block_scale:
            params += ["--uastc_rdo_b", _fmt(s.rdo_block_scale)]
        if s.rdo_std_dev != UASTC_DEFAULTS.rdo_std_dev:
            params += ["--uastc_rdo_s", _fmt(s.rdo_std_dev)]
        if not s.rdo_multithreading:
            params.append("--uastc_rdo_m")
        if s.zstd and s.zstd > 0:
            params += ["--zcmp", _fmt(s.zstd)]
        return params

    params.append("--bcmp")
    if s.quality != ETC1S_DEFAULTS.quality:
        params += ["--qlevel", _fmt(s.quality)]
    if s.compression != ETC1S_DEFAULTS.compression:
        params += ["--clevel", _fmt(s.compression)]
    if s.max_endpoints:
        params += ["--max_endpoints", _fmt(s.max_endpoints)]
    if s.max_selectors:
        params += ["--max_selectors", _fmt(s.max_selectors)]
    if s.rdo_off:
        params += ["--no_endpoint_rdo", "--no_selector_rdo"]
    elif s.rdo_threshold:
        params += ["--endpoint_rdo_threshold", _fmt(s.rdo_threshold)]
        params += ["--selector_rdo_threshold", _fmt(s.rdo_threshold)]
    return params


def target_size(size: Tuple[int, int], power_of_two: bool) -> Tuple[int, int]:
    """Round ``size`` to encoder-friendly dimensions.

    Block compression needs at least 4px and multiples of four; with
    ``power_of_two`` each side snaps to the nearest power of two instead.
    """
    width, height = size
    if power_of_two:
        return preferred_power_of_two(width), preferred_power_of_two(height)
    if not is_power_of_two(width) or not is_power_of_two(height):
        logger.warning(
            "toktx: Texture dimensions %dx%d are NPOT, and may fail in older "
            "APIs (including WebGL 1.0) on certain devices.",
            width, height,
        )
    return (
        width if is_multiple_of_four(width) else ceil_multiple_of_four(width),
        height if is_multiple_of_four(height) else ceil_multiple_of_four(height),
    )


def create_params(
    slots: Sequence[str],
    channels: TextureChannel,
    color_space: Optional[str],
    size: Tuple[int, int],
    num_textures: int,
    options: EncodingOptions,
    tool_version: ToolVersion,
    cpu_count: int,
) -> List[str]:
    """Build the flag list for one toktx invocation (paths not included)."""
    params = ["--genmipmap"]
    if options.filter != GLOBAL_DEFAULTS.filter:
        params += ["--filter", options.filter]
    if options.filter_scale != GLOBAL_DEFAULTS.filter_scale:
        params += ["--fscale", _fmt(options.filter_scale)]

    params += _mode_params(options)

    if any(NORMAL_SLOT_PATTERN.search(slot) for slot in slots):
        if tool_version.supports_active_flags:
            params += ["--normal_mode", "--input_swizzle", "rgb1"]
        elif options.mode is Mode.ETC1S:
            params.append("--normal_map")

    if slots and color_space != ColorSpace.SRGB:
        params += ["--assign_oetf", "linear", "--assign_primaries", "none"]

    if channels == TextureChannel.R:
        params += ["--target_type", "R"]
    elif channels in (TextureChannel.G, TextureChannel.R | TextureChannel.G):
        params += ["--target_type", "RG"]

    width, height = target_size(size, options.power_of_two)
    if (width, height) != tuple(size) or options.resize:
        if width > MAX_RECOMMENDED_DIMENSION or height > MAX_RECOMMENDED_DIMENSION:
            logger.warning(
                "toktx: Resizing to %dx%dpx. Texture dimensions greater than "
                "%dpx may not render on some mobile devices. Resize to a lower "
                "resolution before compressing, if needed.",
                width, height, MAX_RECOMMENDED_DIMENSION,
            )
        params += ["--resize", f"{width}x{height}"]

    if options.jobs > 1 and num_textures > 1:
        params += ["--threads", str(thread_count(cpu_count, num_textures))]

    return params
