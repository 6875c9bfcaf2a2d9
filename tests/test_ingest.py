import json
import os
import sys
import tempfile
import unittest
from pathlib import Path


class TestIngest(unittest.TestCase):
    def setUp(self) -> None:
        from carbon.kernel.settings import CarbonSettings

        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name)
        self.settings = CarbonSettings()

    def tearDown(self) -> None:
        self._td.cleanup()

    def _ingest(self, files, settings=None):
        from carbon.kernel.ingest import ingest_files

        return ingest_files(self.root, files, settings=settings or self.settings)

    def test_writes_files_and_sourcemap(self) -> None:
        report = self._ingest(
            [
                ("game/ReplicatedStorage/Utils.luau", "return {}\n"),
                ("game/ServerScriptService/init.server.luau", "print('hi')\n"),
            ]
        )
        self.assertEqual(
            (self.root / "game/ReplicatedStorage/Utils.luau").read_text(encoding="utf-8"), "return {}\n"
        )
        self.assertEqual([r.status for r in report.results], ["written", "written"])
        self.assertTrue(report.sourcemap_written)
        doc = json.loads((self.root / "sourcemap.json").read_text(encoding="utf-8"))
        names = {c["name"]: c for c in doc["children"]}
        self.assertEqual(names["ServerScriptService"]["filePaths"], ["game/ServerScriptService/init.server.luau"])
        self.assertEqual(names["ReplicatedStorage"]["children"][0]["name"], "Utils")

    def test_overwrites_existing_file(self) -> None:
        target = self.root / "game/Workspace/A.luau"
        target.parent.mkdir(parents=True)
        target.write_text("old", encoding="utf-8")
        self._ingest([("game/Workspace/A.luau", "new")])
        self.assertEqual(target.read_text(encoding="utf-8"), "new")

    def test_traversal_is_rejected_and_batch_continues(self) -> None:
        with self.assertLogs("carbon.ingest", level="WARNING") as logs:
            report = self._ingest(
                [
                    ("../escape.luau", "x"),
                    ("game/a/../../escape2.luau", "x"),
                    ("game/odd..name.luau", "x"),
                    ("game/Lighting/ok.luau", "y"),
                ]
            )
        self.assertEqual([r.status for r in report.results], ["rejected", "rejected", "rejected", "written"])
        self.assertFalse((self.root.parent / "escape.luau").exists())
        self.assertFalse((self.root / "escape2.luau").exists())
        self.assertFalse((self.root / "game/odd..name.luau").exists())
        self.assertTrue((self.root / "game/Lighting/ok.luau").exists())
        self.assertTrue(any("unsafe path" in line for line in logs.output))

    def test_mkdir_failure_skips_entry(self) -> None:
        (self.root / "blocker").write_text("file, not a directory", encoding="utf-8")
        with self.assertLogs("carbon.ingest", level="ERROR"):
            report = self._ingest([("blocker/child.luau", "x"), ("game/Chat/c.luau", "y")])
        self.assertEqual(report.results[0].status, "mkdir_failed")
        self.assertIsNotNone(report.results[0].error)
        self.assertEqual(report.results[1].status, "written")
        self.assertEqual(report.written, ["game/Chat/c.luau"])

    def test_write_failure_skips_entry(self) -> None:
        (self.root / "game/Dir.luau").mkdir(parents=True)
        report = self._ingest([("game/Dir.luau", "x")])
        self.assertEqual(report.results[0].status, "write_failed")
        self.assertEqual(len(report.failed), 1)
        self.assertTrue(report.sourcemap_written)

    def test_sourcemap_failure_does_not_raise(self) -> None:
        (self.root / "sourcemap.json").mkdir()
        with self.assertLogs("carbon.ingest", level="ERROR"):
            report = self._ingest([("game/Workspace/a.luau", "x")])
        self.assertEqual(report.results[0].status, "written")
        self.assertFalse(report.sourcemap_written)
        self.assertIsNotNone(report.sourcemap_error)

    def test_empty_batch_still_regenerates(self) -> None:
        report = self._ingest([])
        self.assertEqual(report.results, [])
        self.assertTrue((self.root / "sourcemap.json").exists())

    def test_custom_manifest_path(self) -> None:
        from carbon.kernel.settings import CarbonSettings

        settings = CarbonSettings(sourcemap_path="out/map.json")
        report = self._ingest([("game/Workspace/a.luau", "x")], settings=settings)
        self.assertTrue((self.root / "out/map.json").exists())
        self.assertEqual(Path(report.sourcemap_path), self.root / "out/map.json")

    def test_nul_in_path_is_skipped_and_batch_continues(self) -> None:
        with self.assertLogs("carbon.ingest", level="ERROR"):
            report = self._ingest([("game/Workspace/a\x00b.luau", "x"), ("game/Workspace/ok.luau", "y")])
        self.assertEqual(report.results[0].status, "write_failed")
        self.assertEqual(report.results[1].status, "written")
        self.assertEqual((self.root / "game/Workspace/ok.luau").read_text(encoding="utf-8"), "y")
        self.assertEqual(sorted(p.name for p in (self.root / "game/Workspace").iterdir()), ["ok.luau"])
        self.assertTrue(report.sourcemap_written)

    def test_unencodable_content_keeps_existing_file(self) -> None:
        target = self.root / "game/Workspace/a.luau"
        target.parent.mkdir(parents=True)
        target.write_text("keep me", encoding="utf-8")
        lone_surrogate = json.loads('"\\ud800"')
        report = self._ingest([("game/Workspace/a.luau", lone_surrogate), ("game/Workspace/b.luau", "ok")])
        self.assertEqual(report.results[0].status, "write_failed")
        self.assertEqual(target.read_text(encoding="utf-8"), "keep me")
        self.assertEqual(report.results[1].status, "written")
        self.assertTrue(report.sourcemap_written)

    def test_unencodable_new_file_is_not_created(self) -> None:
        report = self._ingest([("game/Workspace/new.luau", json.loads('"\\udcff"'))])
        self.assertEqual(report.results[0].status, "write_failed")
        self.assertFalse((self.root / "game/Workspace/new.luau").exists())

    def test_absolute_paths_are_rejected(self) -> None:
        outside = tempfile.TemporaryDirectory()
        self.addCleanup(outside.cleanup)
        abs_target = Path(outside.name) / "abs.luau"
        report = self._ingest(
            [
                (str(abs_target), "x"),
                ("/etc/carbon.luau", "x"),
                ("C:\\game\\x.luau", "x"),
                ("game/Workspace/rel.luau", "y"),
            ]
        )
        self.assertEqual([r.status for r in report.results], ["rejected", "rejected", "rejected", "written"])
        self.assertFalse(abs_target.exists())

    @unittest.skipIf(os.name == "nt" or sys.platform == "darwin", "needs a filesystem that stores raw bytes")
    def test_undecodable_name_on_disk_does_not_break_refresh(self) -> None:
        ws = self.root / "game" / "Workspace"
        ws.mkdir(parents=True)
        try:
            fd = os.open(os.fsencode(str(ws)) + b"/\xff.luau", os.O_CREAT | os.O_WRONLY, 0o644)
        except OSError:
            self.skipTest("filesystem rejects non-UTF-8 names")
        os.close(fd)
        report = self._ingest([("game/Workspace/ok.luau", "y")])
        self.assertEqual(report.results[0].status, "written")
        self.assertTrue(report.sourcemap_written, report.sourcemap_error)
        doc = json.loads((self.root / "sourcemap.json").read_text(encoding="utf-8"))
        self.assertEqual([c["name"] for c in doc["children"][0]["children"]], ["ok"])
        self.assertTrue(any("\\xff" in path or "\udcff" in path for path, _ in report.diagnostics.errors))



if __name__ == "__main__":
    unittest.main()
