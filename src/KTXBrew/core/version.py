"""Confirm a usable KTX-Software `toktx` is installed.

The gate runs once per batch, before any texture is touched. A missing
binary or an unusable version aborts the whole batch; a version between the
minimum and the "active" threshold is accepted but newer command-line flags
are withheld from parameter planning.
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Mapping, NamedTuple, Optional, Tuple

from .process import ProcessRunner, ToolLocator

logger = logging.getLogger("ktxbrew.version")

KTX_SOFTWARE_URL = "https://github.com/KhronosGroup/KTX-Software"

_SEMVER_RE = re.compile(
    r"v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z.-]+)?"
)


class ToolNotFoundError(RuntimeError):
    """Raised when the encoder binary cannot be located."""


class VersionParseError(RuntimeError):
    """Raised when the encoder version is unreadable or too old."""


class SemVer(NamedTuple):
    """Semantic version with prerelease-aware ordering."""

    major: int
    minor: int
    patch: int
    prerelease: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        m = _SEMVER_RE.fullmatch(text.strip())
        if not m:
            raise ValueError(f"Not a semantic version: {text!r}")
        pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()
        return cls(int(m.group("major")), int(m.group("minor")), int(m.group("patch")), pre)

    def _key(self):
        # A release sorts after all of its prereleases. Numeric identifiers
        # sort before alphanumeric ones and compare numerically.
        pre_key = tuple(
            (0, int(part), "") if part.isdigit() else (1, 0, part)
            for part in self.prerelease
        )
        return (self.major, self.minor, self.patch, not self.prerelease, pre_key)

    def __lt__(self, other):
        return self._key() < other._key()

    def __le__(self, other):
        return self._key() <= other._key()

    def __gt__(self, other):
        return self._key() > other._key()

    def __ge__(self, other):
        return self._key() >= other._key()

    def __str__(self):
        core = f"{self.major}.{self.minor}.{self.patch}"
        return f"{core}-{'.'.join(self.prerelease)}" if self.prerelease else core


KTX_SOFTWARE_VERSION_MIN = SemVer.parse("4.0.0-rc1")
KTX_SOFTWARE_VERSION_ACTIVE = SemVer.parse("4.1.0-rc1")


@dataclass(frozen=True)
class ToolVersion:
    """Resolved encoder binary and its reported version."""

    path: str
    version: SemVer
    raw: str = ""

    @property
    def supports_active_flags(self) -> bool:
        """Whether `--normal_mode` and `--input_swizzle` may be used."""
        return self.version >= KTX_SOFTWARE_VERSION_ACTIVE


def parse_tool_version(output: str, tool_name: str = "toktx") -> Optional[SemVer]:
    """Extract the semantic version from ``toktx --version`` output.

    Accepts forms like ``toktx v4.1.0-rc1~3`` or ``v4.0.0``; the ``~N`` build
    suffix and the tool-name prefix are dropped.
    """
    text = (output or "").strip()
    text = re.sub(rf"^{re.escape(tool_name)}\s+", "", text)
    text = re.sub(r"~\d+", "", text).strip()
    m = _SEMVER_RE.search(text)
    if not m:
        return None
    try:
        return SemVer.parse(m.group(0))
    except ValueError:
        return None


class VersionGate:
    """Locate the encoder and verify its version once per batch."""

    def __init__(
        self,
        tool_name: str = "toktx",
        runner: Optional[ProcessRunner] = None,
        locator: Optional[ToolLocator] = None,
        env: Optional[Mapping[str, str]] = None,
        ci_env_var: str = "CI",
    ):
        self.tool_name = tool_name
        self.runner = runner or ProcessRunner()
        self.locator = locator or ToolLocator()
        self.env = os.environ if env is None else env
        self.ci_env_var = ci_env_var

    def check_tool(self) -> ToolVersion:
        """Return the resolved tool version or raise a batch-level error."""
        tool_path = self.locator.find(self.tool_name)
        if not tool_path:
            if not self.env.get(self.ci_env_var):
                raise ToolNotFoundError(
                    f'Command "{self.tool_name}" not found. Please install '
                    f"KTX-Software, from:\n\n{KTX_SOFTWARE_URL}"
                )
            logger.debug(
                "%s not located; %s is set, probing it by name.",
                self.tool_name, self.ci_env_var,
            )
            tool_path = self.tool_name

        result = self.runner.run(tool_path, ["--version"], quiet=True)
        raw = (result.stdout or result.stderr or "").strip()
        version = parse_tool_version(raw, self.tool_name) if result.ok else None
        if version is None:
            raise VersionParseError(
                f'Unable to find "{self.tool_name}" version. Confirm KTX-Software '
                f"is installed: {KTX_SOFTWARE_URL}"
            )
        if version < KTX_SOFTWARE_VERSION_MIN:
            raise VersionParseError(
                f"{self.tool_name}: Expected KTX-Software >= v{KTX_SOFTWARE_VERSION_MIN}, "
                f"found {version}. Output from this version cannot be trusted; "
                f"upgrade from {KTX_SOFTWARE_URL}"
            )
        if version < KTX_SOFTWARE_VERSION_ACTIVE:
            logger.warning(
                "%s: Found KTX-Software %s; v%s or later is recommended. "
                "Newer normal-map flags are disabled.",
                self.tool_name, version, KTX_SOFTWARE_VERSION_ACTIVE,
            )
        else:
            logger.debug("%s: Found KTX-Software %s.", self.tool_name, version)
        return ToolVersion(path=tool_path, version=version, raw=raw)
