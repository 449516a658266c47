# llmpal/file_utils.py
import os
from pathlib import Path
from typing import Iterable, List


def normalize_path(path_str: str) -> str:
    """Return the canonical spelling of a path as used in permission checks.

    Paths stay relative when given relative, so the names the model sees in
    the prompt are the names it is expected to echo back.
    """
    if not path_str or not path_str.strip():
        raise ValueError("Path cannot be empty.")
    return os.path.normpath(os.path.expanduser(path_str.strip()))


def is_binary_file(file_path: str, peek_size: int = 1024) -> bool:
    """Checks if a file is likely binary by looking for null bytes."""
    try:
        with open(file_path, 'rb') as f:
            chunk = f.read(peek_size)
        return b'\0' in chunk
    except OSError:
        return True  # Err on the side of caution


def read_local_file(file_path: str) -> str:
    """Return the text content of a local file.
    Raises FileNotFoundError, OSError or UnicodeDecodeError on issues.
    """
    with open(file_path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def expand_input_paths(paths: Iterable[str], console_obj=None) -> List[str]:
    """Expands `-f` arguments: a directory stands for the text files directly inside it."""
    expanded: List[str] = []
    for path_str in paths:
        path_obj = Path(path_str)
        if not path_obj.is_dir():
            expanded.append(path_str)
            continue
        for entry in sorted(path_obj.iterdir()):
            if entry.is_dir():
                continue
            if is_binary_file(str(entry)):
                if console_obj:
                    console_obj.print(f"[yellow]⚠ Skipping binary file '[bright_cyan]{entry}[/bright_cyan]'[/yellow]")
                continue
            expanded.append(str(entry))
    return expanded
