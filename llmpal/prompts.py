# llmpal/prompts.py
from textwrap import dedent

EXPLAIN_START = "=== EXPLAIN START ==="
EXPLAIN_END = "=== EXPLAIN END ==="
RULES_START = "=== RULES START ==="
RULES_END = "=== RULES END ==="


def start_marker(path: str, fence: str) -> str:
    return f"=== {path} === START {fence} ==="


def end_marker(path: str, fence: str) -> str:
    return f"=== {path} === END {fence} ==="


def file_block(path: str, content: str, fence: str) -> str:
    """Renders one file block. The newline before the END line belongs to the delimiter."""
    return f"{start_marker(path, fence)}\n{content}\n{end_marker(path, fence)}"


system_PROMPT_PREAMBLE = dedent("""\
    You are llmpal, a careful software engineering assistant that edits files on request.
    Follow user instructions. When asked to make changes, apply changes to the given files.
    When asked to create a file, create it. When asked questions, just answer them without creating or modifying files.
    When changing files, output an explanation with brief and blunt information about the changes.
    Then output the modified files. Always output the FULL contents of every changed file, never a diff or an excerpt.
    Never output files other than the allowed ones listed below.
    When the task requires creating or changing a file you are not allowed to write, mention the issue in the EXPLAIN section instead.
    When asked to explain code, answer questions, or suggest improvements, output only the EXPLAIN section without any file blocks.
    Never explain things by adding comments to the code unless directly asked to do so.
    Do not make unnecessary changes. Do not add code comments when not requested. Omit files that need no changes.
    Do not change file formatting (spaces, tabs, line endings). New code must match the style of existing code.
    Always use the defined output format. Do not output anything outside of it.
    """)

OUTPUT_FORMAT_TEMPLATE = dedent("""\
    ## Output format
    Each file block starts with a line `=== <path> === START {fence} ===` and ends with a line `=== <path> === END {fence} ===`.
    <path> must be written exactly as listed above, and the tag {fence} must be copied exactly.
    Marker lines stand alone on their own line. Everything between them is written to the file verbatim.
    Example:
    {explain_start}
    Brief explanations and answers to questions
    {explain_end}
    {example_one}
    {example_two}
    """)


def output_format_section(fence: str) -> str:
    return OUTPUT_FORMAT_TEMPLATE.format(
        fence=fence,
        explain_start=EXPLAIN_START,
        explain_end=EXPLAIN_END,
        example_one=file_block("file1.txt", "full content of the edited file", fence),
        example_two=file_block("file2.txt", "full content of the edited file", fence),
    )


USER_PROMPT_TEMPLATE = dedent("""\
    === USER INSTRUCTIONS START
    {instruction}
    === USER INSTRUCTIONS END
    """)
