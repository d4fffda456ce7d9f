"""Apply finished encoding jobs back onto their textures."""

import logging
from typing import List

from ..core.paths import replace_uri_extension
from ..core.records import KHR_TEXTURE_BASISU, KTX2_MIME_TYPE, Asset, Texture
from ..core.scheduler import JobOutcome
from .encode import BatchContext, EncodingJob

logger = logging.getLogger("ktxbrew.integrate")

ZERO_RESULTS_MESSAGE = "toktx: No textures were found, or none were selected for compression."

_BYTE_UNITS = ["Bytes", "KB", "MB", "GB", "TB", "PB"]


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Format a byte count with decimal (1000-based) units."""
    if num_bytes <= 0:
        return "0 Bytes"
    i = 0
    while num_bytes >= 1000 ** (i + 1) and i < len(_BYTE_UNITS) - 1:
        i += 1
    value = round(num_bytes / 1000 ** i, max(decimals, 0))
    if value == int(value):
        value = int(value)
    return f"{value} {_BYTE_UNITS[i]}"


class ResultIntegrator:
    """Replace payloads of successfully encoded textures; leave failures alone.

    `integrate` is called once per job from the scheduler's control thread.
    `finalize` runs after every job has settled.
    """

    def __init__(self, context: BatchContext):
        self.context = context
        self.warnings: List[str] = []
        self.failures: List[str] = []

    def integrate(self, texture: Texture, job: EncodingJob, outcome: JobOutcome) -> bool:
        """Apply ``outcome`` to ``texture``. Returns True when replaced."""
        if not outcome.ok:
            logger.error("%s: Failed → %s", job.prefix, outcome.error)
            self.failures.append(job.prefix)
            return False
        if job.returncode != 0:
            logger.error("%s: Failed → \n\n%s", job.prefix, job.stderr)
            self.failures.append(job.prefix)
            return False

        try:
            with open(job.output_path, "rb") as f:
                compressed = f.read()
        except OSError as exc:
            logger.error("%s: Failed → unable to read %s: %s", job.prefix, job.output_path, exc)
            self.failures.append(job.prefix)
            return False

        texture.image = compressed
        texture.mime_type = KTX2_MIME_TYPE
        if texture.uri:
            texture.uri = job.target_uri or replace_uri_extension(texture.uri, "ktx2")
        self.context.record_success()
        logger.debug(
            "%s: %s → %s bytes",
            job.prefix, format_bytes(job.input_bytes), format_bytes(len(compressed)),
        )
        return True

    def finalize(self, asset: Asset) -> int:
        """Warn on zero results and retract the extension marker if unused."""
        count = self.context.num_compressed
        if count == 0:
            logger.warning(ZERO_RESULTS_MESSAGE)
            self.warnings.append(ZERO_RESULTS_MESSAGE)
        if not any(t.mime_type == KTX2_MIME_TYPE for t in asset.textures):
            asset.remove_extension(KHR_TEXTURE_BASISU)
        return count
