"""Batch-scoped temporary files for encoder input and output.

Every batch gets a unique id; file names are ``<batch_id>_<index>.<ext>`` so
concurrent batches sharing one directory never collide. Files still on disk
at interpreter exit are removed by an `atexit` hook.
"""

import atexit
import logging
import os
import tempfile
import threading
from typing import List, Optional, Tuple
from uuid import uuid4

logger = logging.getLogger("ktxbrew.workspace")

WORKSPACE_DIRNAME = "ktxbrew"

_registry_lock = threading.Lock()
_live_workspaces: List["Workspace"] = []


def _cleanup_at_exit():
    with _registry_lock:
        workspaces = list(_live_workspaces)
    for workspace in workspaces:
        workspace.cleanup()


atexit.register(_cleanup_at_exit)


class Workspace:
    """Temporary directory and unique per-texture file paths for one batch."""

    def __init__(self, directory: str, batch_id: str):
        self.directory = directory
        self.batch_id = batch_id
        self._lock = threading.Lock()
        self._paths: List[str] = []

    @classmethod
    def create(cls, root: Optional[str] = None) -> "Workspace":
        """Allocate the batch directory under ``root`` (system temp by default)."""
        base = root or tempfile.gettempdir()
        directory = os.path.join(base, WORKSPACE_DIRNAME)
        os.makedirs(directory, exist_ok=True)
        workspace = cls(directory, uuid4().hex)
        with _registry_lock:
            _live_workspaces.append(workspace)
        logger.debug("Workspace %s ready in %s", workspace.batch_id, directory)
        return workspace

    def paths_for(self, index: int, extension: str) -> Tuple[str, str]:
        """Return ``(input_path, output_path)`` for texture ``index``."""
        stem = os.path.join(self.directory, f"{self.batch_id}_{index}")
        in_path = f"{stem}.{extension.lstrip('.')}"
        out_path = f"{stem}.ktx2"
        with self._lock:
            self._paths.extend((in_path, out_path))
        return in_path, out_path

    def cleanup(self) -> None:
        """Remove every file this batch allocated. Safe to call twice."""
        with self._lock:
            paths, self._paths = self._paths, []
        for path in paths:
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Failed to remove temp file %s: %s", path, exc)
        with _registry_lock:
            if self in _live_workspaces:
                _live_workspaces.remove(self)
