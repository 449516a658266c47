# llmpal/cost_tracker.py
from typing import Optional

from llmpal.data_models import CostEstimate, ModelConfig, Usage

TOKENS_PER_PRICE_UNIT = 1_000_000


def estimate_cost(model_config: ModelConfig, usage: Optional[Usage]) -> CostEstimate:
    """Converts reported token usage into USD using the model's per-1M-token rates."""
    if usage is None:
        return CostEstimate(known=False)
    prompt_usd = usage.prompt_tokens * model_config.prompt_cost / TOKENS_PER_PRICE_UNIT
    completion_usd = usage.completion_tokens * model_config.completion_cost / TOKENS_PER_PRICE_UNIT
    return CostEstimate(
        usd=prompt_usd + completion_usd,
        prompt_usd=prompt_usd,
        completion_usd=completion_usd,
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
    )


def completion_limit_reached(model_config: ModelConfig, estimate: CostEstimate) -> bool:
    """True when the reply used up max_tokens, so its file blocks may be cut short."""
    return estimate.known and estimate.completion_tokens >= model_config.max_tokens


def format_cost_report(
    model_config: ModelConfig,
    estimate: CostEstimate,
    elapsed_seconds: float,
    provider: Optional[str] = None,
) -> str:
    model_string = f"{model_config.model} [provider: {provider}]" if provider else model_config.model
    if not estimate.known:
        return f"Model: {model_string} | Tokens: unknown | Cost: unknown | Time: {elapsed_seconds:.2f}s"

    total_tokens = estimate.prompt_tokens + estimate.completion_tokens
    tokens_per_second = total_tokens / elapsed_seconds if elapsed_seconds > 0 else 0.0
    return (
        f"Model: {model_string} | "
        f"Prompt tokens: {estimate.prompt_tokens} (${estimate.prompt_usd:.4f}) | "
        f"Completion tokens: {estimate.completion_tokens} (${estimate.completion_usd:.4f}) | "
        f"Total tokens: {total_tokens} (${estimate.usd:.4f}) | "
        f"Time: {elapsed_seconds:.2f}s | Speed: {tokens_per_second:.2f} tokens/s"
    )
