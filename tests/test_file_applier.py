# tests/test_file_applier.py
import os
import stat
import pytest
from unittest.mock import MagicMock, patch

from llmpal import file_applier
from llmpal.data_models import EditKind, FileEdit, FileSnapshot
from llmpal.errors import (
    ConcurrentModificationError,
    FileAlreadyExistsError,
    FileWriteError,
)
from llmpal.file_applier import TEMP_SUFFIX, apply_edits

# Define a mock console object fixture
@pytest.fixture
def mock_console():
    """Fixture for a mock Rich console object."""
    return MagicMock()

@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path

def leftover_temp_files(root):
    return [p for p in root.rglob(f"*{TEMP_SUFFIX}")]


def test_modify_existing_file(workdir, mock_console):
    (workdir / "a.txt").write_text("old", encoding="utf-8")
    written = apply_edits([FileEdit(path="a.txt", content="hello", kind=EditKind.MODIFY)], mock_console)

    assert written == ["a.txt"]
    assert (workdir / "a.txt").read_text(encoding="utf-8") == "hello"
    assert "Updated file" in mock_console.print.call_args[0][0]
    assert leftover_temp_files(workdir) == []


def test_create_file_in_new_directories(workdir, mock_console):
    edit = FileEdit(path=os.path.join("docs", "guide", "intro.md"), content="# Intro\n", kind=EditKind.CREATE)
    written = apply_edits([edit], mock_console)

    assert written == [edit.path]
    assert (workdir / "docs" / "guide" / "intro.md").read_text(encoding="utf-8") == "# Intro\n"
    assert "Created file" in mock_console.print.call_args[0][0]


def test_content_is_written_byte_exact(workdir):
    (workdir / "win.txt").write_bytes(b"a\r\nb\r\n")
    apply_edits([FileEdit(path="win.txt", content="x\r\ny\r\n", kind=EditKind.MODIFY)])
    assert (workdir / "win.txt").read_bytes() == b"x\r\ny\r\n"


def test_mode_of_modified_file_is_kept(workdir):
    script = workdir / "run.sh"
    script.write_text("#!/bin/sh\n", encoding="utf-8")
    script.chmod(0o755)
    apply_edits([FileEdit(path="run.sh", content="#!/bin/sh\necho hi\n", kind=EditKind.MODIFY)])
    assert stat.S_IMODE(script.stat().st_mode) == 0o755


def test_modify_missing_target_raises(workdir):
    with pytest.raises(ConcurrentModificationError) as exc_info:
        apply_edits([FileEdit(path="gone.txt", content="x", kind=EditKind.MODIFY)])
    assert exc_info.value.path == "gone.txt"


def test_create_existing_target_raises(workdir):
    (workdir / "out.txt").write_text("keep me", encoding="utf-8")
    with pytest.raises(FileAlreadyExistsError):
        apply_edits([FileEdit(path="out.txt", content="x", kind=EditKind.CREATE)])
    assert (workdir / "out.txt").read_text(encoding="utf-8") == "keep me"


def test_unresolved_edit_is_refused(workdir):
    with pytest.raises(FileWriteError):
        apply_edits([FileEdit(path="secret.env", content="x", kind=EditKind.UNRESOLVED)])
    assert not (workdir / "secret.env").exists()


def test_content_changed_since_snapshot_raises(workdir):
    (workdir / "a.txt").write_text("changed by someone else", encoding="utf-8")
    snapshots = [FileSnapshot(path="a.txt", content="original")]
    with pytest.raises(ConcurrentModificationError, match="modified by another process"):
        apply_edits([FileEdit(path="a.txt", content="new", kind=EditKind.MODIFY)], snapshots=snapshots)
    assert (workdir / "a.txt").read_text(encoding="utf-8") == "changed by someone else"


def test_size_limit(workdir):
    (workdir / "a.txt").write_text("old", encoding="utf-8")
    with pytest.raises(FileWriteError, match="exceeds"):
        apply_edits([FileEdit(path="a.txt", content="x" * 2048, kind=EditKind.MODIFY)], max_file_size_bytes=1024)
    assert (workdir / "a.txt").read_text(encoding="utf-8") == "old"


@pytest.mark.parametrize("second_edit, expected_error", [
    (FileEdit(path="missing.txt", content="new B", kind=EditKind.MODIFY), ConcurrentModificationError),
    (FileEdit(path="taken.txt", content="new B", kind=EditKind.CREATE), FileAlreadyExistsError),
])
def test_failed_precheck_of_second_edit_leaves_first_untouched(workdir, second_edit, expected_error):
    (workdir / "a.txt").write_text("A", encoding="utf-8")
    (workdir / "taken.txt").write_text("already here", encoding="utf-8")
    edits = [FileEdit(path="a.txt", content="new A", kind=EditKind.MODIFY), second_edit]
    with pytest.raises(expected_error):
        apply_edits(edits)
    assert (workdir / "taken.txt").read_text(encoding="utf-8") == "already here"
    assert (workdir / "a.txt").read_text(encoding="utf-8") == "A"
    assert leftover_temp_files(workdir) == []


def test_failed_write_of_second_edit_leaves_first_untouched(workdir):
    (workdir / "a.txt").write_text("A", encoding="utf-8")
    (workdir / "b.txt").write_text("B", encoding="utf-8")
    edits = [
        FileEdit(path="a.txt", content="new A", kind=EditKind.MODIFY),
        FileEdit(path="b.txt", content="new B", kind=EditKind.MODIFY),
    ]
    real_fsync = os.fsync
    calls = []

    def failing_fsync(fd):
        calls.append(fd)
        if len(calls) == 2:
            raise OSError(28, "No space left on device")
        real_fsync(fd)

    with patch("llmpal.file_applier.os.fsync", side_effect=failing_fsync):
        with pytest.raises(FileWriteError, match="b.txt") as exc_info:
            apply_edits(edits)

    assert exc_info.value.path == "b.txt"
    assert (workdir / "a.txt").read_text(encoding="utf-8") == "A"
    assert (workdir / "b.txt").read_text(encoding="utf-8") == "B"
    assert leftover_temp_files(workdir) == []


def test_failure_removes_created_directories(workdir):
    edits = [
        FileEdit(path=os.path.join("new_dir", "c.txt"), content="C", kind=EditKind.CREATE),
        FileEdit(path="missing.txt", content="x", kind=EditKind.MODIFY),
    ]
    # missing.txt disappears between staging and the commit re-check
    (workdir / "missing.txt").write_text("x", encoding="utf-8")
    real_stage = file_applier._stage

    def stage_then_delete(edit, created_dirs, staged):
        real_stage(edit, created_dirs, staged)
        if edit.path == "missing.txt":
            os.remove("missing.txt")

    with patch("llmpal.file_applier._stage", side_effect=stage_then_delete):
        with pytest.raises(ConcurrentModificationError):
            apply_edits(edits)

    assert not (workdir / "new_dir").exists()
    assert leftover_temp_files(workdir) == []


def test_keyboard_interrupt_during_prepare_cleans_up(workdir):
    (workdir / "a.txt").write_text("A", encoding="utf-8")
    edits = [
        FileEdit(path="a.txt", content="new A", kind=EditKind.MODIFY),
        FileEdit(path=os.path.join("out", "b.txt"), content="B", kind=EditKind.CREATE),
    ]
    with patch("llmpal.file_applier.shutil.copymode", side_effect=KeyboardInterrupt):
        with pytest.raises(KeyboardInterrupt):
            apply_edits(edits)
    assert (workdir / "a.txt").read_text(encoding="utf-8") == "A"
    assert not (workdir / "out").exists()
    assert leftover_temp_files(workdir) == []


def appear_after_recheck(path, content):
    """Wraps _check_target so that `path` is created right after its second (commit-time) check."""
    real_check = file_applier._check_target
    seen = []

    def check(edit, snapshots):
        real_check(edit, snapshots)
        if edit.path == path:
            seen.append(edit)
            if len(seen) == 2:
                with open(path, "w", encoding="utf-8") as f:
                    f.write(content)

    return patch("llmpal.file_applier._check_target", side_effect=check)


def test_create_does_not_overwrite_file_that_appears_before_commit(workdir):
    with appear_after_recheck("out.md", "someone else's"):
        with pytest.raises(FileAlreadyExistsError) as exc_info:
            apply_edits([FileEdit(path="out.md", content="mine", kind=EditKind.CREATE)])

    assert exc_info.value.path == "out.md"
    assert (workdir / "out.md").read_text(encoding="utf-8") == "someone else's"
    assert leftover_temp_files(workdir) == []


def test_create_refused_at_commit_leaves_modified_files_untouched(workdir):
    (workdir / "a.txt").write_text("A", encoding="utf-8")
    edits = [
        FileEdit(path="a.txt", content="new A", kind=EditKind.MODIFY),
        FileEdit(path="out.md", content="mine", kind=EditKind.CREATE),
    ]
    with appear_after_recheck("out.md", "someone else's"):
        with pytest.raises(FileAlreadyExistsError):
            apply_edits(edits)

    assert (workdir / "a.txt").read_text(encoding="utf-8") == "A"
    assert (workdir / "out.md").read_text(encoding="utf-8") == "someone else's"
    assert leftover_temp_files(workdir) == []


def test_modify_writes_through_symlink(workdir):
    (workdir / "real.txt").write_text("old", encoding="utf-8")
    os.symlink("real.txt", workdir / "link.txt")

    written = apply_edits([FileEdit(path="link.txt", content="new", kind=EditKind.MODIFY)])

    assert written == ["link.txt"]
    assert (workdir / "link.txt").is_symlink()
    assert (workdir / "real.txt").read_text(encoding="utf-8") == "new"
    assert leftover_temp_files(workdir) == []


def test_modify_symlink_into_other_directory(workdir):
    (workdir / "shared").mkdir()
    (workdir / "shared" / "config.ini").write_text("[a]\n", encoding="utf-8")
    os.symlink(os.path.join("shared", "config.ini"), workdir / "config.ini")

    apply_edits(
        [FileEdit(path="config.ini", content="[b]\n", kind=EditKind.MODIFY)],
        snapshots=[FileSnapshot(path="config.ini", content="[a]\n")],
    )

    assert (workdir / "config.ini").is_symlink()
    assert (workdir / "shared" / "config.ini").read_text(encoding="utf-8") == "[b]\n"
    assert leftover_temp_files(workdir) == []


def test_modify_dangling_symlink_raises(workdir):
    os.symlink("nowhere.txt", workdir / "link.txt")
    with pytest.raises(ConcurrentModificationError):
        apply_edits([FileEdit(path="link.txt", content="new", kind=EditKind.MODIFY)])
    assert not (workdir / "nowhere.txt").exists()
