"""URI normalization and output path helpers."""

import os
from pathlib import PurePosixPath, PureWindowsPath


def normalize_uri(uri: str) -> str:
    """Return ``uri`` as a canonical relative POSIX path.

    Raises ValueError for absolute URIs, drive letters, UNC roots, and
    ``..`` segments that climb above the asset root.
    """
    original = str(uri)
    raw = original.replace("\\", "/")
    p = PurePosixPath(raw)
    drive_like = len(raw) >= 2 and raw[1] == ":"
    if p.is_absolute() or PureWindowsPath(original).is_absolute() or drive_like \
            or raw.startswith("//"):
        raise ValueError(f"Texture URI must be relative, got: {uri}")

    parts = []
    for part in p.parts:
        if part in ("", "."):
            continue
        if part == "..":
            if not parts:
                raise ValueError(f"Texture URI escapes root via '..': {uri}")
            parts.pop()
            continue
        parts.append(part)
    if not parts:
        raise ValueError(f"Texture URI is empty after normalization: {uri}")
    return "/".join(parts)


def get_output_path(uri: str, output_dir: str, ext: str = None) -> str:
    """Return where the texture at ``uri`` lands under ``output_dir``."""
    rel = PurePosixPath(normalize_uri(uri))
    return os.path.join(output_dir, *rel.parent.parts, rel.stem + (ext or rel.suffix))


def replace_uri_extension(uri: str, extension: str) -> str:
    """Swap the extension of a URI, keeping its directory and base name."""
    return str(PurePosixPath(uri).with_suffix("." + extension.lstrip(".")))


def unique_uri(uri: str, extension: str, taken) -> str:
    """Swap the extension of ``uri`` without landing on a URI in ``taken``.

    On collision the source extension joins the stem (``a.jpg`` becomes
    ``a_jpg.ktx2``), then a counter is appended.
    """
    target = replace_uri_extension(uri, extension)
    if target not in taken:
        return target
    p = PurePosixPath(uri)
    ext = "." + extension.lstrip(".")
    base = f"{p.stem}_{p.suffix.lstrip('.')}" if p.suffix else p.stem
    target = str(p.with_name(base + ext))
    n = 2
    while target in taken:
        target = str(p.with_name(f"{base}_{n}{ext}"))
        n += 1
    return target
