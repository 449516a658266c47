# llmpal/permissions.py
import os
from typing import Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from llmpal.data_models import PermissionSet
from llmpal.errors import FileReadError, InvalidPermissionSetError
from llmpal.file_utils import expand_input_paths


def build_permission_set(files: Sequence[str], output: Optional[str] = None, console_obj=None) -> PermissionSet:
    """Turns -f/-o arguments into the write boundary of this invocation.

    Directories given with -f stand for the text files directly inside them.
    """
    try:
        modifiable = expand_input_paths(files, console_obj)
    except OSError as e:
        raise FileReadError(f"Error: cannot read directory '{e.filename}': {e.strerror or e}", path=e.filename) from e

    try:
        permission_set = PermissionSet(modifiable=modifiable, creatable=output)
    except InvalidPermissionSetError:
        raise
    except PydanticValidationError as e:
        raise InvalidPermissionSetError(f"Invalid file arguments: {e.errors()[0].get('msg', e)}") from e

    if permission_set.creatable and os.path.lexists(permission_set.creatable) and console_obj:
        console_obj.print(
            f"[yellow]Warning: Output file '[bright_cyan]{permission_set.creatable}[/bright_cyan]' already exists; "
            "it will not be overwritten.[/yellow]"
        )
    return permission_set
