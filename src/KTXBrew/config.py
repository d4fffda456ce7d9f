"""Define typed configuration models for KTX2 texture compression.

Use `PipelineConfig` to load, validate, and persist runtime settings, and
`PipelineConfig.encoding_options()` to obtain the immutable options a batch
runs with.
"""

import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger("ktxbrew.config")

NUM_CPUS = os.cpu_count() or 1


class Mode(Enum):
    """Enumerate the two Basis Universal bitstreams toktx can emit."""

    ETC1S = "etc1s"
    UASTC = "uastc"


class Filter(Enum):
    """Enumerate mipmap filters accepted by `toktx --filter`."""

    BOX = "box"
    TENT = "tent"
    BELL = "bell"
    BSPLINE = "b-spline"
    MITCHELL = "mitchell"
    LANCZOS3 = "lanczos3"
    LANCZOS4 = "lanczos4"
    LANCZOS6 = "lanczos6"
    LANCZOS12 = "lanczos12"
    BLACKMAN = "blackman"
    KAISER = "kaiser"
    GAUSSIAN = "gaussian"
    CATMULLROM = "catmullrom"
    QUADRATIC_INTERP = "quadratic_interp"
    QUADRATIC_APPROX = "quadratic_approx"
    QUADRATIC_MIX = "quadratic_mix"


class TextureType(Enum):
    """Enumerate texture roles recognized from filename suffixes."""

    BASE_COLOR = "base_color"
    NORMAL = "normal"
    OCCLUSION = "occlusion"
    METALLIC_ROUGHNESS = "metallic_roughness"
    ORM = "orm"
    EMISSIVE = "emissive"
    UNKNOWN = "unknown"


TEXTURE_PATTERNS: Dict[TextureType, List[str]] = {
    TextureType.BASE_COLOR: [
        "_diff", "_diffuse", "_color", "_col", "_c", "_d", "_basecolor",
        "_base", "_bc", "_albedo", "_alb",
    ],
    TextureType.NORMAL: ["_norm", "_normal", "_nrm", "_n"],
    TextureType.OCCLUSION: ["_ao", "_ambient", "_occlusion", "_ambientocclusion"],
    TextureType.METALLIC_ROUGHNESS: [
        "_mr", "_rm", "_metalrough", "_metallicroughness",
    ],
    TextureType.ORM: ["_orm", "_rma", "_arm"],
    TextureType.EMISSIVE: ["_emissive", "_emit", "_glow", "_e"],
}

# Material slot names each role occupies, as a glTF material would list them.
TEXTURE_SLOTS: Dict[TextureType, List[str]] = {
    TextureType.BASE_COLOR: ["baseColorTexture"],
    TextureType.NORMAL: ["normalTexture"],
    TextureType.OCCLUSION: ["occlusionTexture"],
    TextureType.METALLIC_ROUGHNESS: ["metallicRoughnessTexture"],
    TextureType.ORM: ["occlusionTexture", "metallicRoughnessTexture"],
    TextureType.EMISSIVE: ["emissiveTexture"],
    TextureType.UNKNOWN: [],
}

# Slots holding color data. Everything else is non-color data.
SRGB_SLOT_PATTERN = re.compile(r"color|emissive|diffuse", re.IGNORECASE)


def pattern_from_glob(glob: str) -> "re.Pattern[str]":
    """Compile a glob into a case-insensitive, unanchored regex.

    Supports ``*``, ``?`` and ``{a,b}`` alternation, so that ``*normal*``
    and ``{normalTexture,occlusionTexture}`` both work as slot filters.
    """
    out = []
    depth = 0
    for ch in glob:
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        elif ch == "{":
            depth += 1
            out.append("(?:")
        elif ch == "}" and depth:
            depth -= 1
            out.append(")")
        elif ch == "," and depth:
            out.append("|")
        else:
            out.append(re.escape(ch))
    if depth:
        raise ValueError(f"Unbalanced braces in pattern: {glob!r}")
    return re.compile("".join(out), re.IGNORECASE)


@dataclass
class ToolConfig:
    """Store settings for locating and running the external encoder."""

    name: str = "toktx"
    path: str = ""
    timeout_seconds: int = 0  # 0 = wait indefinitely
    workspace_dir: str = ""  # "" = system temp dir
    keep_workspace: bool = False
    ci_env_var: str = "CI"


@dataclass
class KTXConfig:
    """Store options shared by both encoding modes."""

    mode: str = "uastc"
    filter: str = Filter.LANCZOS4.value
    filter_scale: float = 1.0
    power_of_two: bool = False
    resize: List[int] = field(default_factory=list)
    pattern: str = ""
    slots: str = ""
    jobs: int = 0  # 0 = 2 x cpu count


@dataclass
class ETC1SConfig:
    """Store ETC1S (low-size) encoder settings."""

    quality: int = 128
    compression: int = 1
    max_endpoints: int = 0
    max_selectors: int = 0
    rdo_threshold: float = 0.0
    rdo_off: bool = False


@dataclass
class UASTCConfig:
    """Store UASTC (high-quality) encoder settings."""

    level: int = 2
    rdo: float = 0.0
    rdo_dictionary_size: int = 32768
    rdo_block_scale: float = 10.0
    rdo_std_dev: float = 18.0
    rdo_multithreading: bool = True
    zstd: int = 18


GLOBAL_DEFAULTS = KTXConfig()
ETC1S_DEFAULTS = ETC1SConfig()
UASTC_DEFAULTS = UASTCConfig()


def _normalize_pattern(value, option_name: str):
    if value is None or isinstance(value, re.Pattern):
        return value
    if isinstance(value, str):
        if not value:
            return None
        logger.warning(
            "toktx: Argument %r should be a compiled pattern or None; "
            "compiling string %r as a glob.",
            option_name, value,
        )
        return pattern_from_glob(value)
    raise TypeError(
        f"{option_name} must be a compiled pattern, string, or None, "
        f"got {type(value).__name__}"
    )


@dataclass(frozen=True)
class EncodingOptions:
    """Immutable options for one compression batch.

    ``settings`` holds the active mode's section (`ETC1SConfig` or
    `UASTCConfig`); fields left at their defaults are omitted from toktx
    invocations.
    """

    mode: Mode = Mode.UASTC
    settings: object = field(default_factory=UASTCConfig)
    filter: str = GLOBAL_DEFAULTS.filter
    filter_scale: float = GLOBAL_DEFAULTS.filter_scale
    power_of_two: bool = False
    resize: Optional[Tuple[int, int]] = None
    pattern: Optional["re.Pattern[str]"] = None
    slots: Optional["re.Pattern[str]"] = None
    jobs: int = 2 * NUM_CPUS

    def __post_init__(self):
        """Normalize legacy string patterns once, at construction."""
        object.__setattr__(self, "pattern", _normalize_pattern(self.pattern, "pattern"))
        object.__setattr__(self, "slots", _normalize_pattern(self.slots, "slots"))
        if self.resize is not None:
            object.__setattr__(self, "resize", (int(self.resize[0]), int(self.resize[1])))
        expected = ETC1SConfig if self.mode is Mode.ETC1S else UASTCConfig
        if not isinstance(self.settings, expected):
            raise TypeError(
                f"settings for mode {self.mode.value} must be {expected.__name__}, "
                f"got {type(self.settings).__name__}"
            )

    @classmethod
    def for_mode(cls, mode: Mode, **overrides) -> "EncodingOptions":
        """Build options from the mode's defaults plus keyword overrides."""
        settings = ETC1SConfig() if mode is Mode.ETC1S else UASTCConfig()
        mode_fields = {f.name for f in dataclasses.fields(settings)}
        mode_overrides = {k: v for k, v in overrides.items() if k in mode_fields}
        rest = {k: v for k, v in overrides.items() if k not in mode_fields}
        settings = dataclasses.replace(settings, **mode_overrides)
        return cls(mode=mode, settings=settings, **rest)


_SUPPORTED_CONFIG_VERSION = 1


@dataclass
class PipelineConfig:
    """Master configuration."""

    config_version: int = 1
    input_dir: str = "./assets/source"
    output_dir: str = "./assets/output"
    manifest_name: str = "asset.json"
    supported_formats: List[str] = field(default_factory=lambda: [
        ".png", ".jpg", ".jpeg", ".webp", ".ktx2",
    ])
    log_level: str = "INFO"
    dry_run: bool = False
    max_image_pixels: int = 67108864  # 8192x8192

    tool: ToolConfig = field(default_factory=ToolConfig)
    ktx: KTXConfig = field(default_factory=KTXConfig)
    etc1s: ETC1SConfig = field(default_factory=ETC1SConfig)
    uastc: UASTCConfig = field(default_factory=UASTCConfig)

    @classmethod
    def from_yaml(cls, path: str) -> "PipelineConfig":
        """Load configuration from YAML or return defaults."""
        if not os.path.exists(path):
            logger.info("Config file '%s' not found. Using defaults.", path)
            config = cls()
            config.validate()
            return config
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValueError(
                f"Failed to parse YAML config '{path}': {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise ValueError(
                f"Config file '{path}' must contain a YAML mapping, "
                f"got {type(data).__name__}"
            )
        yaml_version = data.get("config_version", 1)
        if isinstance(yaml_version, int) and yaml_version > _SUPPORTED_CONFIG_VERSION:
            logger.warning(
                "Config file '%s' has config_version=%d, but this build only "
                "supports up to version %d. Some settings may be ignored.",
                path, yaml_version, _SUPPORTED_CONFIG_VERSION,
            )
        config = cls()
        _merge_dict_to_dataclass(config, data)
        try:
            config.validate()
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        return config

    def to_yaml(self, path: str):
        """Write configuration to a YAML file."""
        import threading as _th
        data = dataclasses.asdict(self)
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        ext = os.path.splitext(path)[1]
        tmp_path = f"{path}.tmp.{os.getpid()}.{_th.get_ident()}{ext}"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        finally:
            if os.path.exists(tmp_path):
                try:
                    os.remove(tmp_path)
                except OSError:
                    pass

    def resolve_jobs(self) -> int:
        """Return the configured job limit, defaulting to 2 x cpu count."""
        if self.ktx.jobs > 0:
            return self.ktx.jobs
        return 2 * NUM_CPUS

    def encoding_options(self) -> EncodingOptions:
        """Merge global and mode-specific sections into batch options."""
        mode = Mode(self.ktx.mode.strip().lower())
        section = self.etc1s if mode is Mode.ETC1S else self.uastc
        return EncodingOptions(
            mode=mode,
            settings=dataclasses.replace(section),
            filter=self.ktx.filter,
            filter_scale=float(self.ktx.filter_scale),
            power_of_two=self.ktx.power_of_two,
            resize=tuple(self.ktx.resize) if self.ktx.resize else None,
            pattern=pattern_from_glob(self.ktx.pattern) if self.ktx.pattern else None,
            slots=pattern_from_glob(self.ktx.slots) if self.ktx.slots else None,
            jobs=self.resolve_jobs(),
        )

    def validate(self):
        """Validate configuration values. Raises ValueError on invalid config."""
        errors = []

        valid_log_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.log_level.upper() not in valid_log_levels:
            errors.append(
                f"log_level must be one of {sorted(valid_log_levels)}, "
                f"got '{self.log_level}'"
            )
        if not self.supported_formats:
            errors.append(
                "supported_formats must not be empty; no files would be processed"
            )
        if self.max_image_pixels < 0:
            errors.append("max_image_pixels must be >= 0 (0 = unlimited)")
        if not self.manifest_name or os.path.basename(self.manifest_name) != self.manifest_name:
            errors.append("manifest_name must be a plain file name")

        # Tool
        if not self.tool.name.strip():
            errors.append("tool.name must not be empty")
        if self.tool.timeout_seconds < 0:
            errors.append("tool.timeout_seconds must be >= 0 (0 = no timeout)")

        # Shared KTX options
        valid_modes = {m.value for m in Mode}
        if self.ktx.mode.strip().lower() not in valid_modes:
            errors.append(
                f"ktx.mode must be one of {sorted(valid_modes)}, got '{self.ktx.mode}'"
            )
        valid_filters = {f.value for f in Filter}
        if self.ktx.filter not in valid_filters:
            errors.append(
                f"ktx.filter must be one of {sorted(valid_filters)}, "
                f"got '{self.ktx.filter}'"
            )
        if self.ktx.filter_scale <= 0:
            errors.append("ktx.filter_scale must be > 0")
        if self.ktx.resize:
            if (
                len(self.ktx.resize) != 2
                or not all(isinstance(v, int) and v > 0 for v in self.ktx.resize)
            ):
                errors.append(
                    "ktx.resize must be empty or [width, height] with positive integers"
                )
        if self.ktx.jobs < 0:
            errors.append("ktx.jobs must be >= 0 (0 = 2 x cpu count)")
        if self.ktx.jobs > 256:
            errors.append("ktx.jobs must be <= 256")
        for name in ("pattern", "slots"):
            value = getattr(self.ktx, name)
            if value:
                try:
                    pattern_from_glob(value)
                except ValueError as exc:
                    errors.append(f"ktx.{name}: {exc}")

        # ETC1S
        if not (1 <= self.etc1s.quality <= 255):
            errors.append("etc1s.quality must be in [1, 255]")
        if not (0 <= self.etc1s.compression <= 5):
            errors.append("etc1s.compression must be in [0, 5]")
        for name in ("max_endpoints", "max_selectors"):
            value = getattr(self.etc1s, name)
            if value and not (1 <= value <= 16128):
                errors.append(f"etc1s.{name} must be 0 (unset) or in [1, 16128]")
        if self.etc1s.rdo_threshold < 0:
            errors.append("etc1s.rdo_threshold must be >= 0 (0 = unset)")
        if self.etc1s.rdo_off and self.etc1s.rdo_threshold:
            logger.warning(
                "etc1s.rdo_off is set; etc1s.rdo_threshold=%.2f will be ignored.",
                self.etc1s.rdo_threshold,
            )

        # UASTC
        if not (0 <= self.uastc.level <= 4):
            errors.append("uastc.level must be in [0, 4]")
        if self.uastc.rdo < 0 or self.uastc.rdo > 10.0:
            errors.append("uastc.rdo must be 0 (off) or in [0.001, 10.0]")
        if not (256 <= self.uastc.rdo_dictionary_size <= 65536):
            errors.append("uastc.rdo_dictionary_size must be in [256, 65536]")
        if not (1.0 <= self.uastc.rdo_block_scale <= 300.0):
            errors.append("uastc.rdo_block_scale must be in [1.0, 300.0]")
        if not (0.01 <= self.uastc.rdo_std_dev <= 65536.0):
            errors.append("uastc.rdo_std_dev must be in [0.01, 65536.0]")
        if not (0 <= self.uastc.zstd <= 22):
            errors.append("uastc.zstd must be in [0, 22] (0 = uncompressed)")

        if errors:
            raise ValueError(
                "Configuration validation failed:\n" +
                "\n".join(f"  - {e}" for e in errors)
            )


def _merge_dict_to_dataclass(obj, data: dict, _path: str = ""):
    for key, value in data.items():
        if hasattr(obj, key):
            field_val = getattr(obj, key)
            if dataclasses.is_dataclass(field_val) and isinstance(value, dict):
                _merge_dict_to_dataclass(field_val, value, f"{_path}{key}.")
            else:
                full_key = f"{_path}{key}"
                if value is None and field_val is not None:
                    logger.warning(
                        f"Config key '{full_key}' is null but field default is "
                        f"{type(field_val).__name__}. Using default value."
                    )
                    continue
                expected_type = type(field_val)
                # Allow int->float and exact float->int promotion.
                if (field_val is not None
                        and not isinstance(value, expected_type)
                        and not (expected_type is float
                                 and isinstance(value, int))
                        and not (expected_type is int
                                 and isinstance(value, float)
                                 and value == int(value))):
                    logger.warning(
                        f"Config type mismatch for '{full_key}': "
                        f"expected {expected_type.__name__}, "
                        f"got {type(value).__name__} ({value!r}). "
                        f"Using default value."
                    )
                    continue
                if (expected_type is int and isinstance(value, float)
                        and value == int(value)):
                    value = int(value)
                if expected_type is float and isinstance(value, int):
                    value = float(value)
                setattr(obj, key, value)
        else:
            full_key = f"{_path}{key}"
            logger.warning(f"Unknown config key ignored: '{full_key}'")
