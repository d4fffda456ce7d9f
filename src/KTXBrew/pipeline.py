"""Orchestrate KTX2 compression of an asset's textures.

`TextureCompressor` runs one batch over an in-memory `Asset`: version gate,
workspace, per-texture planning, bounded parallel toktx invocations, and
result integration. `KTXPipeline` wraps it with directory scanning and
output writing for the command line.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from functools import partial
from pathlib import PurePosixPath
from typing import List, Mapping, Optional

from .config import NUM_CPUS, EncodingOptions, PipelineConfig, ToolConfig
from .core.paths import replace_uri_extension, unique_uri
from .core.process import ProcessRunner, ToolLocator
from .core.records import KHR_TEXTURE_BASISU, Asset, Texture, extension_for_mime_type
from .core.scanning import scan_asset, write_asset
from .core.scheduler import JobOutcome, run_bounded
from .core.version import VersionGate
from .core.workspace import Workspace
from .phases.encode import BatchContext, EncodingJob, execute_job
from .phases.integrate import ResultIntegrator
from .phases.ktxfix import ktxfix
from .phases.plan import Skip, plan_texture, texture_prefix

logger = logging.getLogger("ktxbrew")


def _get_version() -> str:
    """Read version from package."""
    from . import __version__
    return __version__


@dataclass
class BatchSummary:
    """What one compression batch did."""

    batch_id: str = ""
    total: int = 0
    planned: int = 0
    skipped: int = 0
    compressed: int = 0
    failed: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    commands: List[List[str]] = field(default_factory=list)
    dry_run: bool = False
    elapsed: float = 0.0


def _source_extension(texture: Texture) -> str:
    if texture.uri:
        suffix = PurePosixPath(texture.uri).suffix.lstrip(".")
        if suffix:
            return suffix
    return extension_for_mime_type(texture.mime_type)


class TextureCompressor:
    """Compress every eligible texture of an asset with toktx.

    Collaborators (runner, locator, environment) are injectable so tests can
    substitute fakes without touching module state.
    """

    def __init__(
        self,
        options: EncodingOptions,
        tool_config: Optional[ToolConfig] = None,
        runner: Optional[ProcessRunner] = None,
        locator: Optional[ToolLocator] = None,
        env: Optional[Mapping[str, str]] = None,
        cpu_count: Optional[int] = None,
        dry_run: bool = False,
        progress: bool = True,
    ):
        self.options = options
        self.tool_config = tool_config or ToolConfig()
        self.runner = runner or ProcessRunner(
            timeout=self.tool_config.timeout_seconds or None,
        )
        self.locator = locator or ToolLocator(explicit_path=self.tool_config.path)
        self.gate = VersionGate(
            tool_name=self.tool_config.name,
            runner=self.runner,
            locator=self.locator,
            env=env,
            ci_env_var=self.tool_config.ci_env_var,
        )
        self.cpu_count = cpu_count or NUM_CPUS
        self.dry_run = dry_run
        self.progress = progress

    def _plan_jobs(self, asset: Asset, context: BatchContext, summary: BatchSummary):
        jobs: List[EncodingJob] = []
        # Any texture may keep its URI, so compressed URIs must avoid all of them.
        taken = {t.uri for t in asset.textures if t.uri}
        for index, texture in enumerate(asset.textures):
            planned = plan_texture(texture, index, context, self.options)
            if isinstance(planned, Skip):
                summary.skipped += 1
                continue
            prefix = texture_prefix(texture, index, context.num_textures)
            target_uri = None
            if texture.uri:
                target_uri = unique_uri(texture.uri, "ktx2", taken)
                if target_uri != replace_uri_extension(texture.uri, "ktx2"):
                    logger.warning(
                        "%s: %s is already in use; writing %s instead.",
                        prefix, replace_uri_extension(texture.uri, "ktx2"), target_uri,
                    )
                taken.add(target_uri)
            in_path, out_path = context.workspace.paths_for(index, _source_extension(texture))
            jobs.append(EncodingJob(
                index=index,
                prefix=prefix,
                input_path=in_path,
                output_path=out_path,
                params=planned,
                payload=texture.image,
                target_uri=target_uri,
            ))
        summary.planned = len(jobs)
        summary.commands = [job.command for job in jobs]
        return jobs

    def transform(self, asset: Asset) -> BatchSummary:
        """Run one batch over ``asset``, mutating its textures in place.

        Raises `ToolNotFoundError` / `VersionParseError` before any texture is
        touched. Per-texture failures are logged and leave that texture as is.
        """
        start = time.time()
        tool = self.gate.check_tool()
        workspace = Workspace.create(self.tool_config.workspace_dir or None)
        context = BatchContext(
            workspace=workspace,
            limit=self.options.jobs,
            tool_version=tool,
            num_textures=len(asset.textures),
            cpu_count=self.cpu_count,
        )
        summary = BatchSummary(
            batch_id=workspace.batch_id,
            total=len(asset.textures),
            dry_run=self.dry_run,
        )

        try:
            jobs = self._plan_jobs(asset, context, summary)
            if self.dry_run:
                for job in jobs:
                    logger.info("%s: [DRY RUN] toktx %s", job.prefix, " ".join(job.params))
                summary.elapsed = time.time() - start
                return summary

            asset.add_extension(KHR_TEXTURE_BASISU, required=True)
            integrator = ResultIntegrator(context)

            def _on_complete(outcome: JobOutcome) -> None:
                job = jobs[outcome.index]
                integrator.integrate(asset.textures[job.index], job, outcome)

            run_bounded(
                [partial(execute_job, job, self.runner, tool.path) for job in jobs],
                limit=context.limit,
                on_complete=_on_complete,
                desc="toktx",
                progress=self.progress,
            )
            summary.compressed = integrator.finalize(asset)
            summary.failed = list(integrator.failures)
            summary.warnings = list(integrator.warnings)
        finally:
            if self.tool_config.keep_workspace:
                logger.info("Keeping workspace files in %s", workspace.directory)
            else:
                workspace.cleanup()

        summary.elapsed = time.time() - start
        logger.info(
            "toktx: %d/%d textures compressed (%d skipped, %d failed) in %.1fs",
            summary.compressed, summary.total, summary.skipped,
            len(summary.failed), summary.elapsed,
        )
        return summary


class KTXPipeline:
    """Scan a directory asset, compress it, and write the result."""

    def __init__(
        self,
        config: PipelineConfig,
        runner: Optional[ProcessRunner] = None,
        locator: Optional[ToolLocator] = None,
        env: Optional[Mapping[str, str]] = None,
        progress: bool = True,
    ):
        self.config = config
        self.runner = runner
        self.locator = locator
        self.env = env
        self.progress = progress
        self.asset: Optional[Asset] = None

    def _log_header(self, command: str) -> None:
        logger.info("=" * 60)
        logger.info(f"KTXBrew v{_get_version()} :: {command}")
        logger.info("=" * 60)
        logger.info(f"Input:  {self.config.input_dir}")
        logger.info(f"Output: {self.config.output_dir}")
        if self.config.dry_run:
            logger.info("*** DRY RUN MODE ***")

    def _write(self) -> Optional[str]:
        if self.config.dry_run:
            return None
        return write_asset(self.asset, self.config.output_dir, self.config.manifest_name)

    def run(self) -> BatchSummary:
        """Compress every eligible texture under ``input_dir``."""
        options = self.config.encoding_options()
        self._log_header(options.mode.value)
        logger.info(f"Jobs:   {options.jobs}")

        if not os.path.isdir(self.config.input_dir):
            raise FileNotFoundError(f"Input directory not found: {self.config.input_dir}")
        self.asset = scan_asset(self.config.input_dir, self.config)

        compressor = TextureCompressor(
            options,
            tool_config=self.config.tool,
            runner=self.runner,
            locator=self.locator,
            env=self.env,
            dry_run=self.config.dry_run,
            progress=self.progress,
        )
        summary = compressor.transform(self.asset)
        manifest = self._write()
        if manifest:
            logger.info(f"Output: {self.config.output_dir}")
        logger.info("=" * 60)
        return summary

    def run_ktxfix(self) -> int:
        """Repair color primaries of KTX2 textures under ``input_dir``."""
        self._log_header("ktxfix")
        if not os.path.isdir(self.config.input_dir):
            raise FileNotFoundError(f"Input directory not found: {self.config.input_dir}")
        self.asset = scan_asset(self.config.input_dir, self.config)
        changed = ktxfix(self.asset)
        self._write()
        return changed
