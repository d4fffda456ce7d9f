"""Core utilities -- re-exports all public symbols for convenience."""

from .records import (
    KHR_TEXTURE_BASISU, KTX2_MIME_TYPE,
    Asset, ColorSpace, Texture, TextureChannel,
)
from .classify import (
    classify_texture, slots_for_type, color_space_for_slots,
    channel_mask_for, has_effective_alpha,
)
from .ktx2 import is_ktx2, read_ktx2_size, get_color_primaries, set_color_primaries
from .sizing import (
    is_power_of_two, floor_power_of_two, ceil_power_of_two,
    preferred_power_of_two, is_multiple_of_four, ceil_multiple_of_four,
    thread_count,
)
from .process import ProcessResult, ProcessRunner, ToolLocator
from .version import (
    SemVer, ToolVersion, VersionGate, ToolNotFoundError, VersionParseError,
    parse_tool_version,
)
from .workspace import Workspace
from .scheduler import JobOutcome, run_bounded
from .scanning import scan_asset, write_asset, save_manifest, load_manifest
from .paths import get_output_path, normalize_uri, replace_uri_extension, unique_uri
from .logging import setup_logging

__all__ = [
    "KHR_TEXTURE_BASISU", "KTX2_MIME_TYPE",
    "Asset", "ColorSpace", "Texture", "TextureChannel",
    "classify_texture", "slots_for_type", "color_space_for_slots",
    "channel_mask_for", "has_effective_alpha",
    "is_ktx2", "read_ktx2_size", "get_color_primaries", "set_color_primaries",
    "is_power_of_two", "floor_power_of_two", "ceil_power_of_two",
    "preferred_power_of_two", "is_multiple_of_four", "ceil_multiple_of_four",
    "thread_count",
    "ProcessResult", "ProcessRunner", "ToolLocator",
    "SemVer", "ToolVersion", "VersionGate", "ToolNotFoundError", "VersionParseError",
    "parse_tool_version",
    "Workspace",
    "JobOutcome", "run_bounded",
    "scan_asset", "write_asset", "save_manifest", "load_manifest",
    "get_output_path", "normalize_uri", "replace_uri_extension", "unique_uri",
    "setup_logging",
]
