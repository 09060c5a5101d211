import os
from unittest.mock import patch

import pytest

from blueprintflow.constants import EntryOrigin, WriteMode
from blueprintflow.exceptions import (
    CommitError,
    FileExistsInWorkspaceError,
    PathOutsideRootError,
    WorkspaceClosedError,
    WorkspaceError,
)
from blueprintflow.workspace import VirtualWorkspace


class TestWorkspaceReads:
    def test_read_through_caches_disk_content(self, workspace, project_dir):
        """Test that a read loads the file from disk and later reads use the cached entry."""
        content = workspace.read("package.json")
        assert '"demo-app"' in content

        (project_dir / "package.json").write_text("{}")
        assert workspace.read("package.json") == content
        assert workspace.get_entry("package.json").origin is EntryOrigin.PRELOADED

    def test_read_missing_file_returns_none(self, workspace):
        """Test that reading an absent file returns None and tracks nothing."""
        assert workspace.read("missing.txt") is None
        assert "missing.txt" not in workspace
        assert workspace.exists("missing.txt") is False

    def test_preload_skips_missing_and_tracked_files(self, workspace):
        """Test preload only inserts existing, untracked files."""
        workspace.write("notes.txt", "hello")
        loaded = workspace.preload(["package.json", "./package.json", "notes.txt", "nope.json"])

        assert loaded == ["package.json"]
        assert workspace.get_entry("notes.txt").origin is EntryOrigin.CREATED

    def test_preload_skips_outside_and_undecodable_paths(self, workspace, project_dir, caplog):
        """Test that preload leaves out paths it cannot load instead of raising."""
        (project_dir / "logo.png").write_bytes(b"\x89PNG\xff\xfe")
        with caplog.at_level("WARNING"):
            loaded = workspace.preload(["../outside.txt", "logo.png", "package.json"])

        assert loaded == ["package.json"]
        assert "logo.png" not in workspace
        assert "not preloading '../outside.txt'" in caplog.text
        assert "not preloading 'logo.png'" in caplog.text
        with pytest.raises(WorkspaceError):
            workspace.read("logo.png")

    def test_equivalent_paths_share_an_entry(self, workspace, project_dir):
        """Test that different spellings of one path address a single entry."""
        workspace.write("src/app.ts", "a")
        workspace.write("./src//app.ts", "b")
        workspace.write(str(project_dir / "src" / "app.ts"), "c")

        assert len(workspace) == 1
        assert workspace.read("src\\app.ts") == "c"

    def test_path_outside_root_is_rejected(self, workspace):
        """Test that escaping the project root raises."""
        with pytest.raises(PathOutsideRootError):
            workspace.write("../outside.txt", "x")
        with pytest.raises(PathOutsideRootError):
            workspace.read("/etc/passwd")


class TestWorkspaceWrites:
    def test_write_does_not_touch_disk(self, workspace, project_dir):
        """Test that writes only change memory until commit."""
        workspace.write("README.md", "# Demo\n")
        assert not (project_dir / "README.md").exists()
        assert workspace.dirty_paths == ["README.md"]

    def test_create_over_existing_file_fails(self, workspace):
        """Test that 'create' refuses to replace an existing file."""
        with pytest.raises(FileExistsInWorkspaceError, match="already exists"):
            workspace.write("package.json", "{}", WriteMode.CREATE)

        workspace.write("package.json", "{}", WriteMode.CREATE, allow_overwrite=True)
        assert workspace.read("package.json") == "{}"

    def test_append_and_prepend(self, workspace):
        """Test append and prepend on existing and absent files."""
        workspace.write(".env", "A=1\n", WriteMode.APPEND)
        workspace.write(".env", "# header\n", WriteMode.PREPEND)
        workspace.write("new.txt", "first\n", WriteMode.APPEND)

        assert workspace.read(".env") == "# header\n# Local settings\nNODE_ENV=development\nA=1\n"
        assert workspace.read("new.txt") == "first\n"

    def test_origin_tracking(self, workspace):
        """Test that preloaded entries become modified while created entries stay created."""
        workspace.write("package.json", "{}")
        workspace.write("fresh.txt", "1")
        workspace.write("fresh.txt", "2")

        assert workspace.get_entry("package.json").origin is EntryOrigin.MODIFIED
        assert workspace.get_entry("fresh.txt").origin is EntryOrigin.CREATED

    def test_last_write_wins(self, workspace):
        """Test that a later write to the same path replaces the earlier one."""
        workspace.write("a.txt", "one")
        workspace.write("a.txt", "two")
        assert workspace.read("a.txt") == "two"
        assert workspace.dirty_paths == ["a.txt"]


class TestWorkspaceLifecycle:
    def test_commit_writes_dirty_entries_only(self, workspace, project_dir):
        """Test that commit writes in insertion order and creates parent directories."""
        workspace.read("package.json")
        workspace.write("src/lib/util.ts", "export {};\n")
        workspace.write(".env", "A=1\n", WriteMode.APPEND)

        written = workspace.commit()

        assert written == ["src/lib/util.ts", ".env"]
        assert (project_dir / "src" / "lib" / "util.ts").read_text() == "export {};\n"
        assert (project_dir / ".env").read_text().endswith("A=1\n")
        assert workspace.closed

    def test_commit_preserves_line_endings(self, workspace, project_dir):
        """Test that content is written byte for byte."""
        workspace.write("crlf.txt", "a\r\nb\r\n")
        workspace.commit()
        assert (project_dir / "crlf.txt").read_bytes() == b"a\r\nb\r\n"

    def test_discard_leaves_disk_unchanged(self, workspace, project_dir):
        """Test that discard drops every pending write."""
        before = {p.name: p.read_bytes() for p in project_dir.iterdir()}
        workspace.write("package.json", "{}")
        workspace.write("new.txt", "x")

        workspace.discard()

        assert {p.name: p.read_bytes() for p in project_dir.iterdir()} == before
        assert len(workspace) == 0

    def test_closed_workspace_rejects_access(self, workspace):
        """Test that a committed workspace cannot be used again."""
        workspace.commit()
        with pytest.raises(WorkspaceClosedError):
            workspace.read("package.json")
        with pytest.raises(WorkspaceClosedError):
            workspace.write("a.txt", "x")
        workspace.discard()

    def test_commit_failure_reports_written_paths(self, workspace, project_dir):
        """Test that a failing disk write stops the commit and reports what was written."""
        workspace.write("first.txt", "1")
        workspace.write("second.txt", "2")
        workspace.write("third.txt", "3")

        real_replace = os.replace

        def failing_replace(src, dst):
            if str(dst).endswith("second.txt"):
                raise OSError("disk full")
            return real_replace(src, dst)

        with patch("blueprintflow.utils.os.replace", side_effect=failing_replace):
            with pytest.raises(CommitError, match="disk full") as exc_info:
                workspace.commit()

        assert exc_info.value.written_paths == ["first.txt"]
        assert exc_info.value.path == "second.txt"
        assert (project_dir / "first.txt").exists()
        assert not (project_dir / "third.txt").exists()
        assert workspace.closed

    def test_non_text_content_is_rejected(self, project_dir):
        """Test that writing bytes raises a workspace error."""
        workspace = VirtualWorkspace("bytes", project_dir)
        with pytest.raises(WorkspaceError, match="Content must be text"):
            workspace.write("a.bin", b"\x00")
