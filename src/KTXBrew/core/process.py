"""Run and locate the external encoder over a process boundary.

`ProcessRunner` composes two injectable callables: a *spawner* that starts
the child process and a *waiter* that collects its exit status and output.
Tests substitute fakes for either one through the constructor.
"""

import logging
import platform
import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger("ktxbrew.process")

# Known Windows NTSTATUS crash codes (as signed int32)
_CRASH_CODES_WIN = {
    -1073741819: "ACCESS_VIOLATION (0xC0000005)",
    -1073741795: "ILLEGAL_INSTRUCTION (0xC000001D)",
    -1073740791: "STACK_BUFFER_OVERRUN (0xC0000409)",
    -1073741571: "STACK_OVERFLOW (0xC00000FD)",
    -1073741515: "DLL_NOT_FOUND (0xC0000135)",
    -1073741502: "DLL_INIT_FAILED (0xC0000142)",
}

# Placeholder exit status for results flagged `spawn_error` or `timed_out`.
SPAWN_FAILED = 127
TIMED_OUT = 124


def _is_crash_code(returncode: int) -> Optional[str]:
    """Return a human-readable crash description, or None if not a crash."""
    if sys.platform == "win32":
        desc = _CRASH_CODES_WIN.get(returncode)
        if desc:
            return desc
        if returncode < 0:
            return f"NTSTATUS 0x{returncode & 0xFFFFFFFF:08X}"
        return None
    # Unix: negative returncode means killed by signal
    if returncode < 0:
        sig_num = -returncode
        try:
            import signal
            return f"{signal.Signals(sig_num).name} (signal {sig_num})"
        except (ValueError, AttributeError):
            return f"signal {sig_num}"
    return None


def forward_output(text: str, tool_label: str, stream_name: str,
                   level: int, max_lines: int = 120) -> None:
    """Log subprocess output line-by-line at the given level."""
    if not text or not text.strip():
        return
    lines = text.splitlines()
    if len(lines) > max_lines:
        omitted = len(lines) - max_lines
        logger.log(level, "[%s] ... %d earlier %s lines omitted",
                   tool_label, omitted, stream_name)
        lines = lines[-max_lines:]
    for line in lines:
        if len(line) > 500:
            line = line[:500] + "..."
        logger.log(level, "[%s] %s: %s", tool_label, stream_name, line)


@dataclass
class ProcessResult:
    """Exit status and fully collected output of one child process."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    spawn_error: bool = False
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not (self.spawn_error or self.timed_out)


ProcessSpawner = Callable[[List[str]], "subprocess.Popen"]
ProcessWaiter = Callable[["subprocess.Popen", Optional[float]], ProcessResult]


def spawn_process(cmd: List[str]) -> "subprocess.Popen":
    """Start ``cmd`` with both output streams piped as text."""
    return subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )


def wait_process(proc: "subprocess.Popen", timeout: Optional[float] = None) -> ProcessResult:
    """Wait for exit and drain stdout/stderr completely.

    On timeout the process is killed and the result is flagged `timed_out`.
    """
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        stdout, stderr = proc.communicate()
        message = f"Timed out after {timeout}s; process killed."
        return ProcessResult(
            TIMED_OUT, stdout or "", f"{stderr or ''}\n{message}".strip(), timed_out=True,
        )
    return ProcessResult(proc.returncode, stdout or "", stderr or "")


class ProcessRunner:
    """Spawn a tool, wait for it, and return its status and output."""

    def __init__(
        self,
        spawner: Optional[ProcessSpawner] = None,
        waiter: Optional[ProcessWaiter] = None,
        timeout: Optional[float] = None,
    ):
        self.spawner = spawner or spawn_process
        self.waiter = waiter or wait_process
        self.timeout = timeout or None

    def run(
        self,
        tool: str,
        params: Sequence[str],
        input_path: Optional[str] = None,
        output_path: Optional[str] = None,
        quiet: bool = False,
    ) -> ProcessResult:
        """Run ``tool [params...] [output_path input_path]``.

        Never retries. Spawn failures come back as `spawn_error` results so
        one broken invocation stays scoped to its caller.
        """
        cmd = [tool, *(str(p) for p in params)]
        if output_path is not None and input_path is not None:
            cmd += [str(output_path), str(input_path)]
        tool_label = Path(tool).stem
        logger.debug("Running %s: %s", tool_label, " ".join(cmd))

        try:
            proc = self.spawner(cmd)
        except FileNotFoundError:
            logger.debug("%s tool not found: %s", tool_label, tool)
            return ProcessResult(SPAWN_FAILED, "", f"Command not found: {tool}", spawn_error=True)
        except PermissionError:
            logger.debug("%s tool is not executable: %s", tool_label, tool)
            return ProcessResult(
                SPAWN_FAILED, "", f"Command not executable: {tool}", spawn_error=True,
            )
        except OSError as exc:
            logger.debug("%s could not be started: %s", tool_label, exc)
            return ProcessResult(SPAWN_FAILED, "", str(exc), spawn_error=True)

        result = self.waiter(proc, self.timeout)
        if quiet:
            return result
        if result.ok:
            forward_output(result.stdout, tool_label, "stdout", logging.DEBUG)
            forward_output(result.stderr, tool_label, "stderr", logging.DEBUG)
            return result

        crash = _is_crash_code(result.returncode)
        if crash:
            logger.debug("%s crashed: %s (exit code %d)", tool_label, crash, result.returncode)
        elif result.timed_out:
            logger.debug("%s timed out after %ss", tool_label, self.timeout)
        return result


class ToolLocator:
    """Resolve an executable from an explicit path, PATH, or bundled bin/."""

    def __init__(self, explicit_path: str = "", bin_dir: Optional[Path] = None):
        self.explicit_path = explicit_path
        self.bin_dir = bin_dir
        self._cache = {}

    def find(self, name: str) -> Optional[str]:
        """Return the executable path for ``name``, or None if absent."""
        if name in self._cache:
            return self._cache[name]

        tool_path = None
        if self.explicit_path:
            if Path(self.explicit_path).is_file():
                tool_path = self.explicit_path
            else:
                logger.warning(
                    "Configured tool path %s does not exist; searching PATH.",
                    self.explicit_path,
                )

        if not tool_path:
            tool_path = shutil.which(name)

        # Fallback: check bundled tools in bin/ (platform-aware)
        if not tool_path:
            bin_dir = self.bin_dir
            if bin_dir is None:
                from .. import BIN_DIR
                bin_dir = BIN_DIR
            exe_suffix = ".exe" if platform.system() == "Windows" else ""
            candidates = []
            for ktx_dir in sorted(bin_dir.glob("KTX-Software*"), reverse=True):
                candidates.append(ktx_dir / "bin" / f"{name}{exe_suffix}")
                candidates.append(ktx_dir / f"{name}{exe_suffix}")
            candidates.append(bin_dir / f"{name}{exe_suffix}")
            for candidate in candidates:
                if candidate.is_file():
                    tool_path = str(candidate)
                    logger.info("Using bundled %s: %s", name, tool_path)
                    break

        self._cache[name] = tool_path
        return tool_path
