# llmpal/ui_display.py
from typing import Optional, Sequence

from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from llmpal.app_state import AppState
from llmpal.cost_tracker import completion_limit_reached, format_cost_report
from llmpal.data_models import ConversationRequest, CostEstimate, ModelConfig


def display_model_banner(app_state: AppState, model_config: ModelConfig, estimated_tokens: Optional[int]):
    """Prints which model is about to be called, where, and at what price."""
    model_string = model_config.model
    if model_config.provider:
        model_string += f" [provider: {model_config.provider}]"
    tokens_str = str(estimated_tokens) if estimated_tokens is not None else "unknown"
    app_state.err_console.print(
        Text(
            f"Model: {model_string} | URL: {model_config.api_url} | "
            f"Cost $/1M tokens: prompt {model_config.prompt_cost:.2f}, completion {model_config.completion_cost:.2f} | "
            f"Estimated input tokens: {tokens_str}",
            style="dim",
        )
    )


def display_prompts(app_state: AppState, request: ConversationRequest):
    app_state.err_console.print(Panel(
        Text(request.system_prompt),
        title="[bold blue]System prompt[/bold blue]",
        border_style="blue",
        title_align="left",
    ))
    app_state.err_console.print(Panel(
        Text(request.user_prompt),
        title="[bold blue]User prompt[/bold blue]",
        border_style="blue",
        title_align="left",
    ))


def display_raw_reply(app_state: AppState, reply_text: str):
    app_state.err_console.print(Panel(
        Text(reply_text),
        title="[bold yellow]Model output[/bold yellow]",
        border_style="yellow",
        title_align="left",
    ))


def display_explanation(app_state: AppState, explanation: str):
    if explanation:
        # Plain Text so that brackets in model output are not read as Rich markup
        app_state.console.print(Text(explanation))


def display_unterminated(app_state: AppState, paths: Sequence[str]):
    for path in paths:
        app_state.err_console.print(
            f"[yellow]⚠ Block for '[bright_cyan]{escape(path)}[/bright_cyan]' was never closed; it was not written.[/yellow]"
        )


def display_cost_report(
    app_state: AppState,
    model_config: ModelConfig,
    estimate: CostEstimate,
    elapsed_seconds: float,
    provider: Optional[str] = None,
):
    app_state.err_console.print(Text(format_cost_report(model_config, estimate, elapsed_seconds, provider), style="dim"))
    if completion_limit_reached(model_config, estimate):
        app_state.err_console.print(
            f"[yellow]Warning: Completion tokens ({estimate.completion_tokens}) equal or exceed max token limit "
            f"({model_config.max_tokens}). Output might be missing or incomplete.[/yellow]"
        )


def display_error(app_state: AppState, message: str):
    app_state.err_console.print(f"[bold red]✗[/bold red] {escape(message)}")
