# llmpal/pipeline.py
"""
One llmpal invocation: compose the request, call the model once, parse the
reply, validate the edit batch against what the user authorized, and apply
it to disk. The cost report is printed whenever the model answered, whether
or not the edits were applied.
"""
import time
from pathlib import Path
from typing import List, Optional, Sequence

from llmpal.app_state import AppState
from llmpal.config_utils import load_configuration, resolve_api_key, resolve_model_config
from llmpal.cost_tracker import estimate_cost
from llmpal.diagnostics import dump_rejected_reply, write_diagnostic_log
from llmpal.errors import ValidationError
from llmpal.file_applier import apply_edits
from llmpal.llm_interaction import estimate_input_tokens, send_request
from llmpal.permissions import build_permission_set
from llmpal.request_composer import compose_request, snapshot_files
from llmpal.response_parser import parse_reply
from llmpal.ui_display import (
    display_cost_report,
    display_explanation,
    display_model_banner,
    display_prompts,
    display_raw_reply,
    display_unterminated,
)
from llmpal.write_set_validator import validate_edits


def run(
    instruction: str,
    files: Sequence[str] = (),
    output: Optional[str] = None,
    model_code: Optional[str] = None,
    app_state: Optional[AppState] = None,
    home: Optional[Path] = None,
) -> List[str]:
    """Executes one request/response cycle. Returns the paths written, in batch order."""
    app_state = app_state or AppState()

    config = load_configuration(app_state.err_console, home=home)
    app_state.DIAGNOSTIC = config.diagnostic
    model_config = resolve_model_config(config, model_code, app_state.err_console)

    permission_set = build_permission_set(files, output, app_state.err_console)
    snapshots = snapshot_files(permission_set)
    request = compose_request(permission_set, snapshots, config.rules, instruction, model_config)
    api_key = resolve_api_key(model_config)

    display_model_banner(app_state, model_config, estimate_input_tokens(request, model_config))
    if app_state.VERBOSE:
        display_prompts(app_state, request)

    start_time = time.monotonic()
    with app_state.err_console.status("[bold green]Waiting for the model...[/bold green]"):
        reply = send_request(request, model_config, api_key, app_state)
    elapsed = time.monotonic() - start_time

    try:
        if app_state.DIAGNOSTIC:
            try:
                write_diagnostic_log(request, reply, model_config, home=home)
            except OSError as e:
                app_state.err_console.print(f"[yellow]Warning: Could not write diagnostic log: {e}[/yellow]")

        if app_state.VERBOSE:
            display_raw_reply(app_state, reply.text)

        parsed = parse_reply(reply.text, permission_set, request.fence)
        display_explanation(app_state, parsed.explanation)
        display_unterminated(app_state, parsed.unterminated)

        if permission_set.is_empty and not parsed.edits:
            return []

        try:
            edits = validate_edits(permission_set, parsed.edits)
        except ValidationError:
            _save_rejected_reply(app_state, reply.text, home)
            raise

        return apply_edits(edits, app_state.console, snapshots)
    finally:
        display_cost_report(app_state, model_config, estimate_cost(model_config, reply.usage), elapsed, reply.provider)


def _save_rejected_reply(app_state: AppState, reply_text: str, home: Optional[Path]):
    try:
        dump_path = dump_rejected_reply(reply_text, home=home)
    except OSError as e:
        app_state.err_console.print(f"[yellow]Warning: Could not save the model output: {e}[/yellow]")
        return
    if dump_path:
        app_state.err_console.print(f"[yellow]Model output saved to '[bright_cyan]{dump_path}[/bright_cyan]'[/yellow]")
