# llmpal/file_applier.py
"""
All-or-nothing application of a validated edit batch.

Phase 1 (prepare) writes every new content to a temporary file next to its
target. Phase 2 (commit) moves the temporaries into place, and only starts
once every temporary write succeeded and every target still looks the way
the validator saw it. New files are hard-linked into place so that a file
someone else created in the meantime is never overwritten. Until the first
commit step no target path is touched.
"""
import contextlib
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from llmpal.config_utils import MAX_FILE_SIZE_BYTES
from llmpal.data_models import EditKind, FileEdit, FileSnapshot
from llmpal.errors import ConcurrentModificationError, FileAlreadyExistsError, FileWriteError
from llmpal.file_utils import read_local_file

TEMP_SUFFIX = ".llmpal-tmp"


@dataclass
class _StagedWrite:
    edit: FileEdit
    temp_path: str
    target: str


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


def _check_target(edit: FileEdit, snapshots: Dict[str, str]):
    if edit.kind == EditKind.MODIFY:
        if not os.path.isfile(edit.path):
            raise ConcurrentModificationError(
                f"'{edit.path}' was removed or replaced after it was read; no file was written",
                path=edit.path,
            )
        if edit.path in snapshots:
            try:
                unchanged = read_local_file(edit.path) == snapshots[edit.path]
            except (OSError, UnicodeDecodeError) as e:
                raise ConcurrentModificationError(
                    f"'{edit.path}' can no longer be read ({e}); no file was written", path=edit.path
                ) from e
            if not unchanged:
                raise ConcurrentModificationError(
                    f"'{edit.path}' was modified by another process after it was read; no file was written",
                    path=edit.path,
                )
    elif edit.kind == EditKind.CREATE:
        if os.path.lexists(edit.path):
            raise FileAlreadyExistsError(
                f"Output file '{edit.path}' already exists; refusing to overwrite it. No file was written",
                path=edit.path,
            )
    else:
        raise FileWriteError(f"Refusing to apply an unauthorized edit to '{edit.path}'", path=edit.path)


def _make_missing_dirs(directory: Path, created_dirs: List[Path]):
    missing = []
    while not directory.exists():
        missing.append(directory)
        directory = directory.parent
    for d in reversed(missing):
        d.mkdir()
        created_dirs.append(d)


def _write_target(edit: FileEdit) -> Path:
    """The path that receives the new bytes. A symlinked MODIFY target is written through the link."""
    if edit.kind == EditKind.MODIFY:
        return Path(os.path.realpath(edit.path))
    return Path(edit.path)


def _stage(edit: FileEdit, created_dirs: List[Path], staged: List[_StagedWrite]):
    target = _write_target(edit)
    parent = target.parent
    if edit.kind == EditKind.CREATE:
        _make_missing_dirs(parent, created_dirs)

    fd, temp_path = tempfile.mkstemp(dir=str(parent), prefix=f".{target.name}.", suffix=TEMP_SUFFIX)
    staged.append(_StagedWrite(edit=edit, temp_path=temp_path, target=str(target)))
    with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
        f.write(edit.content)
        f.flush()
        os.fsync(f.fileno())

    if edit.kind == EditKind.MODIFY:
        shutil.copymode(target, temp_path)
    else:
        os.chmod(temp_path, 0o666 & ~_current_umask())


def _commit(staged_write: _StagedWrite, written: List[str]):
    path = staged_write.edit.path
    try:
        if staged_write.edit.kind == EditKind.CREATE:
            # link() refuses an existing target, unlike replace()
            os.link(staged_write.temp_path, staged_write.target)
            os.remove(staged_write.temp_path)
        else:
            os.replace(staged_write.temp_path, staged_write.target)
    except FileExistsError as e:
        raise FileAlreadyExistsError(
            f"Output file '{path}' was created by another process; refusing to overwrite it. "
            f"Files already written: {', '.join(written) or 'none'}",
            path=path,
        ) from e
    except OSError as e:
        raise FileWriteError(
            f"Failed to move new content into '{path}': {e.strerror or e}. "
            f"Files already written: {', '.join(written) or 'none'}",
            path=path,
        ) from e
    written.append(path)


def apply_edits(
    edits: Sequence[FileEdit],
    console_obj=None,
    snapshots: Optional[Sequence[FileSnapshot]] = None,
    max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
) -> List[str]:
    """Writes every edit or none of them. Returns the written paths in commit order."""
    snapshot_contents = {s.path: s.content for s in (snapshots or ())}

    for edit in edits:
        if len(edit.content.encode("utf-8")) > max_file_size_bytes:
            raise FileWriteError(
                f"Content for '{edit.path}' exceeds {max_file_size_bytes // (1000 * 1000)}MB size limit",
                path=edit.path,
            )
        _check_target(edit, snapshot_contents)

    staged: List[_StagedWrite] = []
    created_dirs: List[Path] = []
    written: List[str] = []
    try:
        for edit in edits:
            try:
                _stage(edit, created_dirs, staged)
            except OSError as e:
                raise FileWriteError(f"Failed to write file '{edit.path}': {e.strerror or e}", path=edit.path) from e

        for staged_write in staged:
            _check_target(staged_write.edit, snapshot_contents)

        # Creations go first: the only commit step that can still be refused runs before any existing file changes
        for staged_write in sorted(staged, key=lambda s: s.edit.kind != EditKind.CREATE):
            _commit(staged_write, written)
            if console_obj:
                verb = "Created" if staged_write.edit.kind == EditKind.CREATE else "Updated"
                console_obj.print(f"[bold blue]✓[/bold blue] {verb} file '[bright_cyan]{staged_write.edit.path}[/bright_cyan]'")
    finally:
        for staged_write in staged:
            with contextlib.suppress(OSError):
                if os.path.lexists(staged_write.temp_path):
                    os.remove(staged_write.temp_path)
        if not written:
            for d in reversed(created_dirs):
                with contextlib.suppress(OSError):
                    d.rmdir()

    return written
