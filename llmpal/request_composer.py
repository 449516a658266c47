# llmpal/request_composer.py
import secrets
from typing import List, Optional, Sequence

from llmpal.data_models import ConversationRequest, FileSnapshot, ModelConfig, PermissionSet
from llmpal.errors import FileReadError
from llmpal.file_utils import read_local_file
from llmpal.prompts import (
    RULES_END,
    RULES_START,
    USER_PROMPT_TEMPLATE,
    file_block,
    output_format_section,
    system_PROMPT_PREAMBLE,
)


def new_fence() -> str:
    """A per-request tag that makes block markers unlikely to occur inside file content."""
    return f"#{secrets.token_hex(4)}"


def snapshot_files(permission_set: PermissionSet) -> List[FileSnapshot]:
    """Reads every modifiable file. Raises FileReadError naming the first unreadable path."""
    snapshots = []
    for path in permission_set.sorted_modifiable():
        try:
            content = read_local_file(path)
        except FileNotFoundError:
            raise FileReadError(f"Error: cannot read file '{path}': No such file or directory", path=path) from None
        except UnicodeDecodeError as e:
            raise FileReadError(f"Error: cannot read file '{path}': not a UTF-8 text file ({e.reason})", path=path) from e
        except OSError as e:
            raise FileReadError(f"Error: cannot read file '{path}': {e.strerror or e}", path=path) from e
        snapshots.append(FileSnapshot(path=path, content=content))
    return snapshots


def build_system_prompt(
    permission_set: PermissionSet,
    snapshots: Sequence[FileSnapshot],
    rules: Sequence[str],
    fence: str,
) -> str:
    parts = [system_PROMPT_PREAMBLE]

    parts.append("## Files you may modify\n")
    if permission_set.modifiable:
        parts.extend(f" {path}\n" for path in permission_set.sorted_modifiable())
    else:
        parts.append(" none\n")

    parts.append("## File you may create\n")
    parts.append(f" {permission_set.creatable}\n" if permission_set.creatable else " none\n")
    parts.append("\n")

    parts.append(output_format_section(fence))
    parts.append("\n")

    if rules:
        parts.append(f"{RULES_START}\n")
        parts.extend(f"{rule}\n" for rule in rules)
        parts.append(f"{RULES_END}\n\n")

    parts.append("# User input files:\n")
    for snapshot in snapshots:
        parts.append(file_block(snapshot.path, snapshot.content, fence))
        parts.append("\n")

    return "".join(parts)


def compose_request(
    permission_set: PermissionSet,
    snapshots: Sequence[FileSnapshot],
    rules: Sequence[str],
    instruction: str,
    model_config: ModelConfig,
    fence: Optional[str] = None,
) -> ConversationRequest:
    fence = fence or new_fence()
    return ConversationRequest(
        system_prompt=build_system_prompt(permission_set, snapshots, rules, fence),
        user_prompt=USER_PROMPT_TEMPLATE.format(instruction=instruction),
        max_tokens=model_config.max_tokens,
        fence=fence,
    )
