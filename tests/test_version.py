"""Tests for toktx version detection and gating."""

import unittest

from conftest import FakeLocator, FakeToktx

from KTXBrew.core.process import ProcessResult, ProcessRunner
from KTXBrew.core.version import (
    KTX_SOFTWARE_VERSION_ACTIVE, KTX_SOFTWARE_VERSION_MIN, SemVer,
    ToolNotFoundError, VersionGate, VersionParseError, parse_tool_version,
)


class TestSemVer(unittest.TestCase):
    def test_prerelease_sorts_before_release(self):
        self.assertLess(SemVer.parse("4.1.0-rc1"), SemVer.parse("4.1.0"))
        self.assertLess(SemVer.parse("4.0.0"), SemVer.parse("4.1.0-rc1"))

    def test_numeric_prerelease_parts(self):
        self.assertLess(SemVer.parse("4.1.0-rc2"), SemVer.parse("4.1.0-rc10"))
        self.assertLess(SemVer.parse("1.0.0-alpha.2"), SemVer.parse("1.0.0-alpha.10"))

    def test_thresholds(self):
        self.assertEqual(str(KTX_SOFTWARE_VERSION_MIN), "4.0.0-rc1")
        self.assertEqual(str(KTX_SOFTWARE_VERSION_ACTIVE), "4.1.0-rc1")

    def test_invalid(self):
        with self.assertRaises(ValueError):
            SemVer.parse("four")


class TestParseToolVersion(unittest.TestCase):
    def test_name_prefix_and_build_suffix(self):
        self.assertEqual(parse_tool_version("toktx v4.1.0-rc1~3\n"), SemVer(4, 1, 0, ("rc1",)))

    def test_bare_version(self):
        self.assertEqual(parse_tool_version("v4.3.2"), SemVer(4, 3, 2))

    def test_unparseable(self):
        self.assertIsNone(parse_tool_version("toktx: unknown option"))
        self.assertIsNone(parse_tool_version(""))


def _gate(toktx, locator=None, env=None):
    return VersionGate(
        runner=toktx.runner(),
        locator=locator or FakeLocator(),
        env=env if env is not None else {},
    )


class TestVersionGate(unittest.TestCase):
    def test_active_version(self):
        result = _gate(FakeToktx("toktx v4.1.0~12")).check_tool()
        self.assertEqual(result.version, SemVer(4, 1, 0))
        self.assertTrue(result.supports_active_flags)
        self.assertEqual(result.path, "/opt/ktx/bin/toktx")

    def test_between_min_and_active_warns(self):
        with self.assertLogs("ktxbrew.version", level="WARNING") as cm:
            result = _gate(FakeToktx("toktx v4.0.0")).check_tool()
        self.assertFalse(result.supports_active_flags)
        self.assertTrue(any("recommended" in line for line in cm.output))

    def test_below_minimum_is_fatal(self):
        with self.assertRaises(VersionParseError):
            _gate(FakeToktx("toktx v3.9.9")).check_tool()

    def test_unparseable_is_fatal(self):
        with self.assertRaises(VersionParseError):
            _gate(FakeToktx("garbage")).check_tool()

    def test_nonzero_version_exit_is_fatal(self):
        runner = ProcessRunner(
            spawner=lambda cmd: cmd,
            waiter=lambda proc, timeout: ProcessResult(1, "toktx v4.1.0", ""),
        )
        gate = VersionGate(runner=runner, locator=FakeLocator(), env={})
        with self.assertRaises(VersionParseError):
            gate.check_tool()

    def test_missing_tool(self):
        with self.assertRaises(ToolNotFoundError) as cm:
            _gate(FakeToktx(), locator=FakeLocator(None)).check_tool()
        self.assertIn("KTX-Software", str(cm.exception))

    def test_ci_bypasses_presence_check(self):
        toktx = FakeToktx()
        result = _gate(toktx, locator=FakeLocator(None), env={"CI": "true"}).check_tool()
        self.assertEqual(result.path, "toktx")
        self.assertEqual(toktx.calls, [["toktx", "--version"]])

    def test_version_from_stderr(self):
        runner = ProcessRunner(
            spawner=lambda cmd: cmd,
            waiter=lambda proc, timeout: ProcessResult(0, "", "toktx v4.2.1"),
        )
        gate = VersionGate(runner=runner, locator=FakeLocator(), env={})
        self.assertEqual(gate.check_tool().version, SemVer(4, 2, 1))


if __name__ == "__main__":
    unittest.main(verbosity=2)
