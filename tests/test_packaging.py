"""Tests for packaging and pyproject.toml correctness."""

import os
import tomllib
import unittest

_TOML_PATH = os.path.join(os.path.dirname(os.path.dirname(__file__)), "pyproject.toml")


def _load():
    with open(_TOML_PATH, "rb") as f:
        return tomllib.load(f)


class TestPyproject(unittest.TestCase):
    def test_runtime_deps(self):
        base_deps = _load()["project"]["dependencies"]
        for name in ("numpy", "Pillow", "PyYAML", "tqdm"):
            self.assertTrue(any(d.startswith(name) for d in base_deps), name)

    def test_no_ml_stack_in_base_deps(self):
        base_deps = _load()["project"]["dependencies"]
        for name in ("onnxruntime", "torch", "opencv", "PyQt6"):
            self.assertFalse(any(name in d for d in base_deps), name)

    def test_test_extra_has_pytest(self):
        test_deps = _load()["project"]["optional-dependencies"]["test"]
        self.assertTrue(any(d.startswith("pytest") for d in test_deps))

    def test_console_script(self):
        self.assertEqual(_load()["project"]["scripts"]["KTXBrew"], "KTXBrew.cli:main")


if __name__ == "__main__":
    unittest.main(verbosity=2)
