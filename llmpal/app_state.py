# llmpal/app_state.py
from rich.console import Console


class AppState:
    """Per-invocation output channels and verbosity flags. Holds nothing across runs."""

    def __init__(self, verbose: bool = False, trace: bool = False):
        self.console = Console()  # explanation and results
        self.err_console = Console(stderr=True)  # status, debug output and errors
        self.VERBOSE: bool = verbose  # -v: prompts and raw model output
        self.TRACE: bool = trace  # --trace: raw request/response JSON
        self.DIAGNOSTIC: bool = False  # set from .llmpal.json
