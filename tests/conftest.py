"""Shared test fixtures."""

import shutil
import tempfile
import threading
from typing import Callable, List, Optional

import numpy as np
import pytest
from PIL import Image

from KTXBrew.config import PipelineConfig, ToolConfig
from KTXBrew.core.ktx2 import KTX2_IDENTIFIER
from KTXBrew.core.process import ProcessResult, ProcessRunner
from KTXBrew.core.records import Texture, TextureChannel

FAKE_TOOL_PATH = "/opt/ktx/bin/toktx"


def fake_ktx2_bytes(payload: bytes = b"", primaries: int = 1,
                    width: int = 16, height: int = 16) -> bytes:
    """Build a minimal KTX2 file: header, index, and a basic DFD block."""
    header = bytearray(80)
    header[0:12] = KTX2_IDENTIFIER
    header[20:24] = width.to_bytes(4, "little")
    header[24:28] = height.to_bytes(4, "little")
    dfd_offset = 104
    dfd = bytearray(28)
    dfd[0:4] = len(dfd).to_bytes(4, "little")
    dfd[12] = 166  # colorModel: UASTC
    dfd[13] = primaries
    dfd[14] = 2  # transfer: sRGB
    header[48:52] = dfd_offset.to_bytes(4, "little")
    header[52:56] = len(dfd).to_bytes(4, "little")
    return bytes(header) + bytes(24) + bytes(dfd) + payload


class FakeToktx:
    """Stand-in for the toktx binary, wired into `ProcessRunner` callables.

    Encoding "succeeds" by writing a fake KTX2 file derived from the input,
    unless ``fail_when(input_bytes)`` is true. Peak concurrency of encode
    calls is recorded.
    """

    def __init__(
        self,
        version: str = "toktx v4.1.0~12",
        fail_when: Optional[Callable[[bytes], bool]] = None,
        returncode: int = 1,
        stderr: str = "toktx: encoding failed",
        delay: float = 0.0,
        spawn_error: bool = False,
        timed_out: bool = False,
        write_output: bool = True,
    ):
        self.version = version
        self.fail_when = fail_when or (lambda data: False)
        self.returncode = returncode
        self.stderr = stderr
        self.delay = delay
        self.spawn_error = spawn_error
        self.timed_out = timed_out
        self.write_output = write_output
        self.calls: List[List[str]] = []
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def spawn(self, cmd):
        with self._lock:
            self.calls.append(list(cmd))
        if self.spawn_error and cmd[1:] != ["--version"]:
            raise OSError(24, "Too many open files")
        return cmd

    def wait(self, cmd, timeout=None):
        if cmd[1:] == ["--version"]:
            return ProcessResult(0, self.version + "\n", "")
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            if self.delay:
                threading.Event().wait(self.delay)
            out_path, in_path = cmd[-2], cmd[-1]
            with open(in_path, "rb") as f:
                data = f.read()
            if self.timed_out:
                return ProcessResult(124, "", "Timed out after 1s; process killed.", timed_out=True)
            if self.fail_when(data):
                return ProcessResult(self.returncode, "", self.stderr)
            if not self.write_output:
                return ProcessResult(0, "", "")
            with open(out_path, "wb") as f:
                f.write(fake_ktx2_bytes(data[:8]))
            return ProcessResult(0, "", "")
        finally:
            with self._lock:
                self.active -= 1

    def runner(self, timeout=None) -> ProcessRunner:
        return ProcessRunner(spawner=self.spawn, waiter=self.wait, timeout=timeout)

    @property
    def encode_calls(self) -> List[List[str]]:
        return [c for c in self.calls if c[1:] != ["--version"]]


class FakeLocator:
    """`ToolLocator` replacement with a fixed answer."""

    def __init__(self, path: Optional[str] = FAKE_TOOL_PATH):
        self.path = path

    def find(self, name):
        return self.path


@pytest.fixture
def tmp_dir():
    d = tempfile.mkdtemp()
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def default_config():
    return PipelineConfig()


@pytest.fixture
def fake_toktx():
    return FakeToktx()


@pytest.fixture
def fake_locator():
    return FakeLocator()


@pytest.fixture
def tool_config(tmp_dir):
    return ToolConfig(workspace_dir=tmp_dir)


def make_texture(
    name: str = "texture",
    uri: Optional[str] = "texture.png",
    mime_type: str = "image/png",
    size=(256, 256),
    slots=("baseColorTexture",),
    color_space: Optional[str] = "srgb",
    channels: TextureChannel = TextureChannel.RGBA,
    image: Optional[bytes] = b"\x89PNG fake payload",
) -> Texture:
    return Texture(
        image=image,
        mime_type=mime_type,
        uri=uri,
        name=name,
        size=size,
        slots=list(slots),
        color_space=color_space,
        channels=channels,
    )


def save_test_png(path, width=64, height=64, channels=3, alpha=None):
    """Write a random PNG; ``alpha`` fixes the alpha channel value if given."""
    arr = (np.random.rand(height, width, channels) * 255).astype(np.uint8)
    if channels == 4 and alpha is not None:
        arr[..., 3] = alpha
    if channels == 1:
        arr = arr[..., 0]
    Image.fromarray(arr).save(path)
    return arr
