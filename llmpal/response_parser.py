# llmpal/response_parser.py
"""
Extraction of per-file write intents from the model's free-form reply.

The reply is untrusted text. Parsing never raises: anything that is not a
complete, correctly fenced file block is commentary. Authorization is not
decided here; paths outside the permission set come back as UNRESOLVED edits
so the validator can reject them loudly.
"""
import re
from typing import List, Optional, Tuple

from llmpal.data_models import FileEdit, ParsedReply, PermissionSet
from llmpal.file_utils import normalize_path
from llmpal.prompts import EXPLAIN_END, EXPLAIN_START

_THINK_RE = re.compile(r"\A\s*<think>.*?</think>", re.DOTALL | re.IGNORECASE)
_START_RE = re.compile(r"^[ \t]*=== (?P<path>\S.*?) === START (?P<fence>#\w+) ===[ \t]*(?P<cr>\r?)$", re.MULTILINE)
_END_RE = re.compile(r"^[ \t]*=== (?P<path>\S.*?) === END (?P<fence>#\w+) ===[ \t]*\r?$", re.MULTILINE)
_EXPLAIN_RE = re.compile(
    r"^[ \t]*" + re.escape(EXPLAIN_START) + r"[ \t]*\r?\n(?P<body>.*?)^[ \t]*" + re.escape(EXPLAIN_END) + r"[ \t]*\r?$",
    re.DOTALL | re.MULTILINE,
)


def _canonical(path: str) -> Optional[str]:
    try:
        return normalize_path(path)
    except ValueError:
        return None


def _find_block_end(text: str, content_start: int, path: str, fence: str) -> Tuple[Optional[re.Match], int]:
    """Returns the END marker closing `path`, or None if another block of this reply starts first.

    The second value is the offset of the next START marker with the same fence (or len(text)).
    """
    next_start = len(text)
    for start_match in _START_RE.finditer(text, content_start):
        if start_match.group("fence") == fence:
            next_start = start_match.start()
            break
    for end_match in _END_RE.finditer(text, content_start, next_start):
        if end_match.group("fence") == fence and _canonical(end_match.group("path")) == path:
            return end_match, next_start
    return None, next_start


def _extract_explanation(commentary: str) -> str:
    match = _EXPLAIN_RE.search(commentary)
    if match:
        return match.group("body").strip()
    return commentary.strip()


def parse_reply(text: str, permission_set: PermissionSet, fence: str) -> ParsedReply:
    """Scans reply text for fenced file blocks and classifies each against the permission set."""
    text = _THINK_RE.sub("", text or "", count=1).strip()

    edits: List[FileEdit] = []
    unterminated: List[str] = []
    commentary_parts: List[str] = []
    pos = 0
    scan_from = 0

    while True:
        start_match = _START_RE.search(text, scan_from)
        if start_match is None:
            break
        scan_from = start_match.end()
        if start_match.group("fence") != fence:
            continue  # a marker from some other request is just text
        path = _canonical(start_match.group("path"))
        if path is None:
            continue

        content_start = start_match.end() + 1
        if content_start > len(text):
            unterminated.append(path)
            break

        end_match, next_start = _find_block_end(text, content_start, path, fence)
        if end_match is None:
            unterminated.append(path)
            scan_from = next_start
            continue

        content_end = end_match.start()
        if content_end > content_start and text[content_end - 1] == "\n":
            content_end -= 1
            if start_match.group("cr") and content_end > content_start and text[content_end - 1] == "\r":
                content_end -= 1

        commentary_parts.append(text[pos:start_match.start()])
        edits.append(FileEdit(
            path=path,
            content=text[content_start:content_end],
            kind=permission_set.kind_for(path),
        ))
        pos = scan_from = end_match.end()

    commentary_parts.append(text[pos:])

    return ParsedReply(
        edits=tuple(edits),
        explanation=_extract_explanation("".join(commentary_parts)),
        unterminated=tuple(unterminated),
    )
