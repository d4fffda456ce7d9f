"""Directory assets: scanning textures in, writing textures and manifest out."""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image, UnidentifiedImageError

from ..config import PipelineConfig
from .classify import (
    channel_mask_for, classify_texture, color_space_for_slots,
    has_effective_alpha, slots_for_type,
)
from .ktx2 import read_ktx2_size
from .paths import get_output_path
from .records import KTX2_MIME_TYPE, Asset, Texture, mime_type_for_extension

logger = logging.getLogger("ktxbrew.scanning")


def _read_image_info(fpath: str, max_pixels: int) -> Tuple[Optional[Tuple[int, int]], bool]:
    """Return ``(size, has_alpha)`` from the image header, or ``(None, False)``."""
    try:
        with Image.open(fpath) as img:
            w, h = img.size
            if max_pixels > 0 and w * h > max_pixels:
                logger.warning(
                    f"{os.path.basename(fpath)}: {w}x{h} = {w * h:,} pixels "
                    f"exceeds max_image_pixels ({max_pixels:,}); size left unresolved"
                )
                return None, False
            return (w, h), has_effective_alpha(img)
    except (UnidentifiedImageError, OSError) as exc:
        logger.warning("Unreadable image %s: %s", fpath, exc)
        return None, False


def scan_asset(input_dir: str, config: PipelineConfig) -> Asset:
    """Scan ``input_dir`` into an `Asset`, one `Texture` per supported file."""
    asset = Asset()
    supported = {ext.lower() for ext in config.supported_formats}
    input_root_real = os.path.realpath(input_dir)

    for root, dirs, files in os.walk(input_dir):
        dirs.sort()
        for fname in sorted(files):
            ext = Path(fname).suffix.lower()
            if ext not in supported:
                continue
            mime_type = mime_type_for_extension(ext)
            if mime_type is None:
                logger.debug("No MIME type known for %s; skipping.", fname)
                continue

            fpath = os.path.join(root, fname)
            real_fpath = os.path.realpath(fpath)
            try:
                if os.path.commonpath([input_root_real, real_fpath]) != input_root_real:
                    logger.warning(
                        "Skipping file outside input root via symlink/path traversal: "
                        f"{fpath}"
                    )
                    continue
            except ValueError:
                logger.warning(f"Skipping file with incompatible path root: {fpath}")
                continue

            rel_path = Path(os.path.relpath(fpath, input_dir)).as_posix()
            with open(fpath, "rb") as f:
                payload = f.read()

            if mime_type == KTX2_MIME_TYPE:
                size, has_alpha = read_ktx2_size(payload), True
            else:
                size, has_alpha = _read_image_info(fpath, config.max_image_pixels)

            slots = slots_for_type(classify_texture(fname))
            texture = Texture(
                image=payload or None,
                mime_type=mime_type,
                uri=rel_path,
                name=Path(fname).stem,
                size=size,
                slots=slots,
                color_space=color_space_for_slots(slots),
                channels=channel_mask_for(slots, has_alpha),
            )
            logger.debug(
                "Scanned %s: %s, slots=[%s], size=%s",
                rel_path, mime_type, ", ".join(slots), size,
            )
            asset.textures.append(texture)

    logger.info("Scanned %d textures from %s", len(asset.textures), input_dir)
    return asset


def write_asset(asset: Asset, output_dir: str, manifest_name: str = "asset.json") -> str:
    """Write every texture payload plus a JSON manifest; return the manifest path."""
    os.makedirs(output_dir, exist_ok=True)
    for index, texture in enumerate(asset.textures):
        if not texture.image:
            logger.warning("Texture %s has no payload; not written.", texture.label or index)
            continue
        uri = texture.uri or f"texture_{index}"
        dst = get_output_path(uri, output_dir)
        os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
        _atomic_write_bytes(dst, texture.image)
    return save_manifest(asset, os.path.join(output_dir, manifest_name))


def _atomic_write_bytes(path: str, data: bytes) -> None:
    tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}"
    try:
        with open(tmp_path, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass


def save_manifest(asset: Asset, path: str) -> str:
    """Save texture summaries and extension markers as JSON."""
    data = {
        "extensionsUsed": asset.extensions_used,
        "extensionsRequired": asset.extensions_required,
        "textures": [t.to_dict() for t in asset.textures],
    }
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp_path = f"{path}.tmp.{os.getpid()}.{threading.get_ident()}"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)
    finally:
        if os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
    logger.info("Manifest saved: %s (%d textures)", path, len(asset.textures))
    return path


def load_manifest(path: str) -> dict:
    """Load a manifest written by `save_manifest`."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or "textures" not in data:
        raise ValueError(f"Not a texture manifest: {path}")
    return data
