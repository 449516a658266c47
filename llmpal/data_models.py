# llmpal/data_models.py
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from llmpal.errors import InvalidPermissionSetError
from llmpal.file_utils import normalize_path

OPEN_ROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MAX_TOKENS = 16384


class ModelConfig(BaseModel):
    code: str
    model: str
    provider: Optional[str] = None
    prompt_cost: float = 0.0  # USD per 1M prompt tokens
    completion_cost: float = 0.0  # USD per 1M completion tokens
    api_url: str = OPEN_ROUTER_URL
    api_key_ref: Optional[str] = Field(default=None, alias="api_key")
    max_tokens: int = DEFAULT_MAX_TOKENS
    model_config = ConfigDict(extra='ignore', frozen=True, populate_by_name=True)

    @property
    def uses_default_api_url(self) -> bool:
        return self.api_url == OPEN_ROUTER_URL


class LlmpalConfig(BaseModel):
    diagnostic: bool = False
    rules: List[str] = Field(default_factory=list)
    models: List[ModelConfig] = Field(default_factory=list)
    model_config = ConfigDict(extra='ignore', frozen=True)


class PermissionSet(BaseModel):
    """The user-authorized write boundary of one invocation."""
    modifiable: FrozenSet[str] = frozenset()
    creatable: Optional[str] = None
    model_config = ConfigDict(frozen=True)

    @field_validator("modifiable", mode="before")
    @classmethod
    def _normalize_modifiable(cls, value):
        return frozenset(normalize_path(p) for p in (value or ()))

    @field_validator("creatable", mode="before")
    @classmethod
    def _normalize_creatable(cls, value):
        return normalize_path(value) if value else None

    @model_validator(mode="after")
    def _check_exclusive(self):
        if self.creatable is not None and self.creatable in self.modifiable:
            raise InvalidPermissionSetError(
                f"'{self.creatable}' cannot be both an input file (-f) and the output file (-o)",
                path=self.creatable,
            )
        return self

    @property
    def is_empty(self) -> bool:
        return not self.modifiable and self.creatable is None

    def sorted_modifiable(self) -> List[str]:
        return sorted(self.modifiable)

    def kind_for(self, path: str) -> "EditKind":
        if self.creatable is not None and path == self.creatable:
            return EditKind.CREATE
        if path in self.modifiable:
            return EditKind.MODIFY
        return EditKind.UNRESOLVED


class FileSnapshot(BaseModel):
    path: str
    content: str
    model_config = ConfigDict(frozen=True)


class ConversationRequest(BaseModel):
    system_prompt: str
    user_prompt: str
    max_tokens: int = DEFAULT_MAX_TOKENS
    fence: str
    model_config = ConfigDict(frozen=True)

    def messages(self) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_prompt},
        ]


class Usage(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    model_config = ConfigDict(extra='ignore', frozen=True)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ModelReply(BaseModel):
    text: str
    usage: Optional[Usage] = None
    provider: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)
    model_config = ConfigDict(frozen=True)


class EditKind(str, Enum):
    MODIFY = "modify"
    CREATE = "create"
    UNRESOLVED = "unresolved"  # path outside the permission set, rejected by the validator


class FileEdit(BaseModel):
    path: str
    content: str
    kind: EditKind
    model_config = ConfigDict(frozen=True)


EditBatch = Tuple[FileEdit, ...]


class ParsedReply(BaseModel):
    edits: EditBatch = ()
    explanation: str = ""
    unterminated: Tuple[str, ...] = ()
    model_config = ConfigDict(frozen=True)


class CostEstimate(BaseModel):
    usd: float = 0.0
    prompt_usd: float = 0.0
    completion_usd: float = 0.0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    known: bool = True
    model_config = ConfigDict(frozen=True)
