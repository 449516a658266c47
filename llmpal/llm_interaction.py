# llmpal/llm_interaction.py
import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

import litellm
from litellm import completion, token_counter
from rich.json import JSON as RichJSON

from llmpal.data_models import ConversationRequest, ModelConfig, ModelReply, Usage
from llmpal.errors import TransportError

if TYPE_CHECKING:
    from llmpal.app_state import AppState

# Suppress LiteLLM debug info
litellm.suppress_debug_info = True
logging.getLogger("LiteLLM").setLevel(logging.WARNING)

APP_REFERER = "https://github.com/00dev-org/llmpal"
APP_TITLE = "llmpal"
CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


def api_base_from_url(api_url: str) -> str:
    """litellm wants the API base; configs carry the full chat-completions endpoint."""
    base = api_url.rstrip("/")
    if base.endswith(CHAT_COMPLETIONS_SUFFIX):
        base = base[: -len(CHAT_COMPLETIONS_SUFFIX)]
    return base


def build_completion_params(request: ConversationRequest, model_config: ModelConfig, api_key: str) -> Dict[str, Any]:
    completion_params: Dict[str, Any] = {
        # Every configured endpoint speaks the OpenAI chat-completions protocol
        "model": f"openai/{model_config.model}",
        "messages": request.messages(),
        "max_tokens": request.max_tokens,
        "api_base": api_base_from_url(model_config.api_url),
        "api_key": api_key,
        "stream": False,
        "extra_headers": {"HTTP-Referer": APP_REFERER, "X-Title": APP_TITLE},
    }

    provider: Dict[str, Any] = {}
    if model_config.provider:
        provider["only"] = [model_config.provider]
    if model_config.uses_default_api_url:
        provider["data_collection"] = "deny"
    if provider:
        completion_params["extra_body"] = {"provider": provider}
    return completion_params


def estimate_input_tokens(request: ConversationRequest, model_config: ModelConfig) -> Optional[int]:
    try:
        return token_counter(model=model_config.model, messages=request.messages())
    except Exception:  # the estimate is informational only
        return None


def _print_trace(app_state: 'AppState', title: str, payload: Dict[str, Any]):
    app_state.err_console.print(f"[dim bold red]::DEBUG:: === {title} ===[/dim bold red]")
    app_state.err_console.print(RichJSON(json.dumps(payload, indent=2, default=str)))


def reply_from_response(response: Any) -> ModelReply:
    """Pulls text, usage and the upstream provider name out of a litellm response."""
    try:
        text = response.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError):
        text = None
    if not isinstance(text, str):
        raise TransportError("Invalid response format from API: no message content")

    usage = None
    usage_obj = getattr(response, "usage", None)
    prompt_tokens = getattr(usage_obj, "prompt_tokens", None)
    completion_tokens = getattr(usage_obj, "completion_tokens", None)
    if isinstance(prompt_tokens, int) and isinstance(completion_tokens, int):
        usage = Usage(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)

    provider = getattr(response, "provider", None)
    raw = response.model_dump() if hasattr(response, "model_dump") else {}
    return ModelReply(
        text=text,
        usage=usage,
        provider=provider if isinstance(provider, str) else None,
        raw=raw if isinstance(raw, dict) else {},
    )


def send_request(
    request: ConversationRequest,
    model_config: ModelConfig,
    api_key: str,
    app_state: 'AppState',
) -> ModelReply:
    """One blocking chat-completion round trip. Any provider failure becomes TransportError."""
    completion_params = build_completion_params(request, model_config, api_key)

    if app_state.TRACE:
        debug_params_log = dict(completion_params, api_key="***")
        _print_trace(app_state, "RAW LLM REQUEST", debug_params_log)

    try:
        response = completion(**completion_params)
    except Exception as e:  # litellm maps provider, status and network failures onto many exception types
        raise TransportError(f"LLM API error: {e}") from e

    reply = reply_from_response(response)
    if app_state.TRACE:
        _print_trace(app_state, "RAW LLM RESPONSE", reply.raw or {"content": reply.text})
    return reply
