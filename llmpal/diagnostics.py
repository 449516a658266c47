# llmpal/diagnostics.py
import json
import logging
import time
from pathlib import Path
from typing import Optional

from llmpal.config_utils import DIAGNOSTIC_DIR_NAME, home_dir
from llmpal.data_models import ConversationRequest, ModelConfig, ModelReply

DIAGNOSTIC_LOG_NAME = "prompt.log"

logger = logging.getLogger("llmpal.diagnostic")
logger.setLevel(logging.INFO)
logger.propagate = False


def diagnostic_dir(home: Optional[Path] = None) -> Optional[Path]:
    home = home if home is not None else home_dir()
    if home is None:
        return None
    return home / DIAGNOSTIC_DIR_NAME


def write_diagnostic_log(
    request: ConversationRequest,
    reply: ModelReply,
    model_config: ModelConfig,
    home: Optional[Path] = None,
) -> Optional[Path]:
    """Appends the request/response pair to ~/.llmpal/prompt.log. Raises OSError if the log cannot be opened."""
    log_dir = diagnostic_dir(home)
    if log_dir is None:
        return None
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / DIAGNOSTIC_LOG_NAME

    entry = {
        "model": model_config.model,
        "api_url": model_config.api_url,
        "max_tokens": request.max_tokens,
        "messages": request.messages(),
        "response": reply.text,
        "usage": reply.usage.model_dump() if reply.usage else None,
        "provider": reply.provider,
    }

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter("=== %(asctime)s ===\n%(message)s"))
    logger.addHandler(handler)
    try:
        logger.info(json.dumps(entry, indent=2, ensure_ascii=False))
    finally:
        logger.removeHandler(handler)
        handler.close()
    return log_path


def dump_rejected_reply(reply_text: str, home: Optional[Path] = None) -> Optional[Path]:
    """Saves a reply whose edits were rejected, so the user can inspect what the model tried to write."""
    dump_dir = diagnostic_dir(home)
    if dump_dir is None:
        return None
    dump_dir.mkdir(parents=True, exist_ok=True)
    dump_path = dump_dir / f"dump_{int(time.time())}.log"
    with open(dump_path, "w", encoding="utf-8") as f:
        f.write(reply_text)
    return dump_path
