import os
import tempfile
import unittest
from pathlib import Path

from agent_runtime.execution.sandbox import PathSandbox, SandboxError, is_windows_abs_path


class TestPathSandbox(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.base = Path(os.path.realpath(self._tmp.name))
        self.root = self.base / "root"
        self.root.mkdir()
        self.sandbox = PathSandbox((str(self.root),))

    def tearDown(self):
        self._tmp.cleanup()

    def test_relative_path_is_joined_under_root(self):
        (self.root / "note.txt").write_text("hi", encoding="utf-8")
        self.assertEqual(self.sandbox.validate("note.txt"), str(self.root / "note.txt"))

    def test_root_itself_is_accepted(self):
        self.assertEqual(self.sandbox.validate(str(self.root)), str(self.root))
        self.assertEqual(self.sandbox.validate("."), str(self.root))

    def test_non_existent_suffix_is_resolved_through_ancestor(self):
        resolved = self.sandbox.validate("new/dir/file.txt")
        self.assertEqual(resolved, str(self.root / "new" / "dir" / "file.txt"))
        self.assertFalse((self.root / "new").exists())

    def test_parent_traversal_is_rejected(self):
        with self.assertRaises(SandboxError) as ctx:
            self.sandbox.validate("../outside.txt")
        self.assertEqual(str(ctx.exception), "path escapes sandbox root")

    def test_absolute_path_outside_root_is_rejected(self):
        with self.assertRaises(SandboxError):
            self.sandbox.validate(str(self.base / "elsewhere.txt"))

    def test_sibling_with_common_prefix_is_rejected(self):
        sibling = self.base / "root-other"
        sibling.mkdir()
        with self.assertRaises(SandboxError):
            self.sandbox.validate(str(sibling / "x.txt"))

    def test_symlink_escape_is_rejected(self):
        outside = self.base / "outside"
        outside.mkdir()
        (outside / "secret.txt").write_text("s", encoding="utf-8")
        os.symlink(outside, self.root / "link")
        with self.assertRaises(SandboxError) as ctx:
            self.sandbox.validate("link/secret.txt")
        self.assertEqual(str(ctx.exception), "path escapes sandbox root")

    def test_symlink_escape_for_new_file_is_rejected(self):
        outside = self.base / "outside"
        outside.mkdir()
        os.symlink(outside, self.root / "link")
        with self.assertRaises(SandboxError):
            self.sandbox.validate("link/new.txt")

    def test_dangling_symlink_pointing_outside_is_rejected(self):
        os.symlink(self.base / "missing-target.txt", self.root / "dangling")
        with self.assertRaises(SandboxError):
            self.sandbox.validate("dangling")

    def test_symlink_inside_root_is_allowed(self):
        (self.root / "real").mkdir()
        os.symlink(self.root / "real", self.root / "alias")
        self.assertEqual(self.sandbox.validate("alias/x.txt"), str(self.root / "real" / "x.txt"))

    def test_file_used_as_directory_is_rejected(self):
        (self.root / "plain.txt").write_text("x", encoding="utf-8")
        with self.assertRaises(SandboxError) as ctx:
            self.sandbox.validate("plain.txt/child")
        self.assertEqual(str(ctx.exception), "failed to resolve parent path")

    def test_blank_path_is_rejected(self):
        with self.assertRaises(SandboxError) as ctx:
            self.sandbox.validate("   ")
        self.assertEqual(str(ctx.exception), "path is required")

    def test_no_roots_fails_closed(self):
        with self.assertRaises(SandboxError) as ctx:
            PathSandbox().validate("note.txt")
        self.assertIn("sandbox roots are not configured", str(ctx.exception))

    def test_blank_roots_fail_closed(self):
        with self.assertRaises(SandboxError) as ctx:
            PathSandbox(("  ",)).validate("note.txt")
        self.assertIn("sandbox roots are not configured", str(ctx.exception))

    def test_missing_root_fails(self):
        sandbox = PathSandbox((str(self.base / "nope"),))
        with self.assertRaises(SandboxError) as ctx:
            sandbox.validate("x.txt")
        self.assertEqual(str(ctx.exception), "failed to resolve sandbox root")

    def test_second_root_accepts_when_first_rejects(self):
        other = self.base / "other"
        other.mkdir()
        sandbox = PathSandbox((str(self.root), str(other)))
        target = other / "data.txt"
        self.assertEqual(sandbox.validate(str(target)), str(target))

    def test_symlinked_root_is_canonicalized(self):
        os.symlink(self.root, self.base / "root-link")
        sandbox = PathSandbox((str(self.base / "root-link"),))
        self.assertEqual(sandbox.validate("a.txt"), str(self.root / "a.txt"))

    @unittest.skipIf(os.name == "nt", "drive spellings are native on Windows")
    def test_windows_spellings_never_join_under_root(self):
        for candidate in ("C:\\Windows\\system32", "c:/temp/x", "\\\\host\\share\\file"):
            with self.subTest(candidate=candidate):
                with self.assertRaises(SandboxError):
                    self.sandbox.validate(candidate)

    def test_windows_path_detection(self):
        self.assertTrue(is_windows_abs_path("C:\\x"))
        self.assertTrue(is_windows_abs_path("d:/x"))
        self.assertTrue(is_windows_abs_path("\\\\server\\share"))
        self.assertFalse(is_windows_abs_path("notes/c:/x"))
        self.assertFalse(is_windows_abs_path("relative.txt"))

    def test_validate_returns_a_plain_string(self):
        self.assertIsInstance(self.sandbox.validate("note.txt"), str)

    def test_parent_segments_are_cleaned_before_resolution(self):
        self.assertEqual(self.sandbox.validate("missing/../note.txt"), str(self.root / "note.txt"))

    def test_symlink_loop_is_rejected(self):
        os.symlink(self.root / "loop-b", self.root / "loop-a")
        os.symlink(self.root / "loop-a", self.root / "loop-b")
        with self.assertRaises(SandboxError):
            self.sandbox.validate("loop-a/file.txt")

    def test_scoped_confines_to_single_root(self):
        inner = self.root / "memory"
        inner.mkdir()
        scoped = self.sandbox.scoped(str(inner))
        self.assertEqual(scoped.roots, (str(inner),))
        with self.assertRaises(SandboxError):
            scoped.validate("../outside.txt")


if __name__ == "__main__":
    unittest.main()
