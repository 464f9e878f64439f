import os
import tempfile
import time
import unittest
from pathlib import Path

from agent_runtime.agent.context_builder import CONTEXT_ROOT_FILES, ContextBuilder, ContextError
from agent_runtime.execution.sandbox import PathSandbox


class TestContextBuilder(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(os.path.realpath(self._tmp.name))
        self.root = self.base / "ws"
        self.root.mkdir()
        self.sandbox = PathSandbox((str(self.root),))

    def tearDown(self):
        self._tmp.cleanup()

    def _daily(self, name: str, text: str, mtime: float) -> None:
        path = self.root / "memory" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        os.utime(path, (mtime, mtime))

    def test_root_files_in_fixed_order_then_newest_daily(self):
        for name in reversed(CONTEXT_ROOT_FILES):
            (self.root / name).write_text(f"  {name} body  \n", encoding="utf-8")
        now = time.time()
        self._daily("2024-01-01.md", "oldest", now - 300)
        self._daily("2024-01-02.md", "middle", now - 200)
        self._daily("2024-01-03.md", "newest", now - 100)

        output = ContextBuilder(str(self.root), self.sandbox).build()
        headers = [line for line in output.split("\n") if line.startswith("## ")]
        self.assertEqual(
            headers,
            [f"## {name}" for name in CONTEXT_ROOT_FILES] + ["## memory/2024-01-03.md", "## memory/2024-01-02.md"],
        )
        self.assertIn("## SOUL.md\nSOUL.md body\n\n## USER.md", output)

    def test_daily_ties_break_on_path_ascending(self):
        now = time.time()
        self._daily("a.md", "a", now)
        self._daily("b.md", "b", now)
        output = ContextBuilder(str(self.root), self.sandbox, daily_limit=1).build()
        self.assertEqual(output, "## memory/a.md\na")

    def test_symlinks_and_directories_are_skipped(self):
        outside = self.base / "outside.md"
        outside.write_text("leak", encoding="utf-8")
        (self.root / "memory" / "sub.md").mkdir(parents=True)
        os.symlink(outside, self.root / "memory" / "link.md")
        self.assertEqual(ContextBuilder(str(self.root), self.sandbox).build(), "")

    def test_per_file_cap(self):
        (self.root / "SOUL.md").write_text("é" * 100, encoding="utf-8")
        output = ContextBuilder(str(self.root), self.sandbox, max_file_bytes=40).build()
        body = output.split("\n", 1)[1]
        self.assertTrue(body.endswith("...(truncated)"))
        self.assertLessEqual(len(body.encode("utf-8")), 40)

    def test_total_cap(self):
        for name in CONTEXT_ROOT_FILES:
            (self.root / name).write_text("x" * 200, encoding="utf-8")
        output = ContextBuilder(str(self.root), self.sandbox, max_total_bytes=300).build()
        self.assertLessEqual(len(output.encode("utf-8")), 300)
        self.assertTrue(output.endswith("...(truncated)"))

    def test_source_root_must_be_directory(self):
        (self.root / "file.txt").write_text("x", encoding="utf-8")
        with self.assertRaises(ContextError) as ctx:
            ContextBuilder(str(self.root / "file.txt"), self.sandbox).build()
        self.assertEqual(str(ctx.exception), "source root is not a directory")

    def test_source_root_outside_sandbox(self):
        with self.assertRaises(ContextError):
            ContextBuilder(str(self.base), self.sandbox).build()


if __name__ == "__main__":
    unittest.main()
