"""Per-texture encoding jobs and the batch state they share."""

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from ..core.process import ProcessRunner
from ..core.version import ToolVersion
from ..core.workspace import Workspace

logger = logging.getLogger("ktxbrew.encode")


class TextureEncodeError(RuntimeError):
    """Raised when one texture's encode cannot complete.

    Covers spawn failures, timeouts, and a missing output file. Scoped to a
    single job; the batch carries on.
    """


@dataclass
class BatchContext:
    """State for one pass over an asset's textures."""

    workspace: Workspace
    limit: int
    tool_version: ToolVersion
    num_textures: int
    cpu_count: int
    num_compressed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @property
    def batch_id(self) -> str:
        return self.workspace.batch_id

    @property
    def directory(self) -> str:
        return self.workspace.directory

    def record_success(self) -> int:
        with self._lock:
            self.num_compressed += 1
            return self.num_compressed


@dataclass
class EncodingJob:
    """One toktx invocation for the texture at ``index``."""

    index: int
    prefix: str
    input_path: str
    output_path: str
    params: List[str]
    payload: bytes = b""
    target_uri: Optional[str] = None
    returncode: Optional[int] = None
    stderr: str = ""

    @property
    def input_bytes(self) -> int:
        return len(self.payload)

    @property
    def command(self) -> List[str]:
        """Flags followed by ``<output> <input>``, as passed to toktx."""
        return [*self.params, self.output_path, self.input_path]


def execute_job(job: EncodingJob, runner: ProcessRunner, tool_path: str) -> EncodingJob:
    """Write the input file, run toktx, and record its exit status.

    A non-zero exit is recorded on the job rather than raised, so the caller
    can log the captured stderr. Conditions that leave no usable exit
    status raise `TextureEncodeError`.
    """
    with open(job.input_path, "wb") as f:
        f.write(job.payload)

    logger.debug("%s: Spawning → toktx %s", job.prefix, " ".join(job.command))
    result = runner.run(tool_path, job.params, job.input_path, job.output_path)
    job.returncode = result.returncode
    job.stderr = result.stderr or ""

    if result.spawn_error:
        raise TextureEncodeError(f"{job.prefix}: toktx could not be started: {job.stderr}")
    if result.timed_out:
        raise TextureEncodeError(
            f"{job.prefix}: toktx timed out after {runner.timeout}s"
        )
    if result.returncode == 0 and not os.path.isfile(job.output_path):
        raise TextureEncodeError(
            f"{job.prefix}: toktx exited cleanly but wrote no output: {job.output_path}"
        )
    return job
