import os
import tempfile
import unittest
from pathlib import Path


class TestCoordinator(unittest.TestCase):
    def test_for_project_reads_settings_from_root(self) -> None:
        from carbon.daemon.coordinator import Coordinator

        old = os.environ.pop("CARBON_SOURCEMAP", None)
        try:
            with tempfile.TemporaryDirectory() as td:
                root = Path(td)
                (root / "carbon.yaml").write_text("sourcemap_path: build/sm.json\n", encoding="utf-8")
                coord = Coordinator.for_project(root)
                self.assertEqual(coord.root, root.resolve())
                self.assertEqual(coord.manifest_path, root.resolve() / "build" / "sm.json")
                self.assertEqual(coord.generate_sourcemap(), coord.manifest_path)
                self.assertTrue(coord.manifest_path.exists())
        finally:
            if old is not None:
                os.environ["CARBON_SOURCEMAP"] = old

    def test_mailbox_is_owned_per_coordinator(self) -> None:
        from carbon.contracts.v1 import SyncCommand
        from carbon.daemon.coordinator import Coordinator
        from carbon.kernel.settings import CarbonSettings

        a = Coordinator(root=Path("."), settings=CarbonSettings())
        b = Coordinator(root=Path("."), settings=CarbonSettings())
        a.submit_command("sourcemap")
        self.assertIsNone(b.consume_command())
        self.assertEqual(a.pending_command(), SyncCommand.SOURCEMAP)
        self.assertEqual(a.consume_command(), SyncCommand.SOURCEMAP)
        self.assertIsNone(a.consume_command())

    def test_ingest_uses_coordinator_root(self) -> None:
        from carbon.daemon.coordinator import Coordinator
        from carbon.kernel.settings import CarbonSettings

        with tempfile.TemporaryDirectory() as td:
            coord = Coordinator(root=Path(td), settings=CarbonSettings())
            report = coord.ingest([("game/Workspace/Part.server.luau", "print(1)")])
            self.assertEqual(report.written, ["game/Workspace/Part.server.luau"])
            ws = coord.build_sourcemap().find("Workspace")
            self.assertEqual(ws.children[0].class_name, "Script")


if __name__ == "__main__":
    unittest.main()
