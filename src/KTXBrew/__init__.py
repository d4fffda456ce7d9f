"""KTXBrew: batch KTX2 texture compression with toktx."""

import os as _os
from pathlib import Path as _Path

__version__ = "0.4.0"


def _resolve_bin_dir() -> _Path:
    """Locate a bundled tool directory; ``KTXBrew_BIN_DIR`` wins when set."""
    pkg_dir = _Path(__file__).resolve().parent
    env = _os.environ.get("KTXBrew_BIN_DIR")
    candidates = [_Path(env).expanduser()] if env else []
    candidates += [pkg_dir / "bin", pkg_dir.parent.parent / "bin", _Path.cwd() / "bin"]
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    # Missing is normal when toktx lives on PATH.
    return pkg_dir / "bin"


BIN_DIR = _resolve_bin_dir()

__all__ = ["__version__", "BIN_DIR"]
