# llmpal/write_set_validator.py
import os
from collections import Counter
from typing import Callable, Sequence

from llmpal.data_models import EditBatch, EditKind, FileEdit, PermissionSet
from llmpal.errors import (
    DuplicateEditError,
    NoEditsProduced,
    UnauthorizedCreateError,
    UnauthorizedWriteError,
)


def validate_edits(
    permission_set: PermissionSet,
    edits: Sequence[FileEdit],
    exists: Callable[[str], bool] = os.path.exists,
) -> EditBatch:
    """
    Accepts the whole batch or raises; never partially accepts.
    Rules are checked in order and the first failure wins:
    1. duplicate paths
    2. MODIFY outside the modifiable set
    3. CREATE of anything but the declared output file
    4. paths the parser could not attribute to either set
    5. empty batch
    """
    counts = Counter(edit.path for edit in edits)
    for edit in edits:
        if counts[edit.path] > 1:
            raise DuplicateEditError(
                f"The model produced {counts[edit.path]} versions of '{edit.path}'; refusing to guess which one to write",
                path=edit.path,
            )

    for edit in edits:
        if edit.kind == EditKind.MODIFY and edit.path not in permission_set.modifiable:
            raise UnauthorizedWriteError(f"attempting to write to disallowed file: {edit.path}", path=edit.path)

    for edit in edits:
        if edit.kind == EditKind.CREATE and edit.path != permission_set.creatable:
            raise UnauthorizedCreateError(f"attempting to create disallowed file: {edit.path}", path=edit.path)

    for edit in edits:
        if edit.kind == EditKind.UNRESOLVED:
            if exists(edit.path):
                raise UnauthorizedWriteError(f"attempting to write to disallowed file: {edit.path}", path=edit.path)
            raise UnauthorizedCreateError(f"attempting to create disallowed file: {edit.path}", path=edit.path)

    if not edits:
        raise NoEditsProduced("The model did not produce any file edits")

    return tuple(edits)
