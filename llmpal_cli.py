#!/usr/bin/env python3

"""
llmpal: edit files from the command line with an LLM.

Sends the given instructions together with the files named by -f to a chat
model, then writes back only the files the user allowed it to touch.
"""
import argparse
import sys
from typing import List, Optional

from llmpal.app_state import AppState
from llmpal.errors import LlmpalError
from llmpal.pipeline import run
from llmpal.ui_display import display_error

__version__ = "0.1.0"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="llmpal",
        description="Apply natural-language instructions to files using an LLM.",
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=(
            "examples:\n"
            "  llmpal -f a.txt \"replace the content with hello\"\n"
            "  llmpal -f src/app.py -o tests/test_app.py \"write tests for app.py\"\n"
            "  llmpal -f README.md \"what does this project do?\""
        ),
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('-f', '--file', dest='files', metavar='PATH', action='append', default=[],
                        help='File the model may modify (repeatable). A directory adds the files directly inside it.')
    parser.add_argument('-o', '--output', metavar='PATH', help='New file the model may create.')
    parser.add_argument('-m', '--model', metavar='CODE', help='Model code from .llmpal.json.')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print prompts and raw model output to stderr.')
    parser.add_argument('--trace', action='store_true', help='Print the raw API request and response to stderr.')
    parser.add_argument('instructions', nargs='+', help='What the model should do.')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    app_state = AppState(verbose=args.verbose, trace=args.trace)
    instruction = " ".join(args.instructions)

    try:
        run(instruction, files=args.files, output=args.output, model_code=args.model, app_state=app_state)
    except KeyboardInterrupt:
        app_state.err_console.print("\n[bold yellow]Interrupted.[/bold yellow]")
        return EXIT_INTERRUPTED
    except LlmpalError as e:
        display_error(app_state, str(e))
        return EXIT_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
