"""Text completions: models, request and response types, and the endpoint call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from gptclient.client import Usage

COMPLETIONS_SUFFIX = "/completions"
CHAT_COMPLETIONS_SUFFIX = "/chat/completions"

GPT432K0613 = "gpt-4-32k-0613"
GPT432K0314 = "gpt-4-32k-0314"
GPT432K = "gpt-4-32k"
GPT40613 = "gpt-4-0613"
GPT40314 = "gpt-4-0314"
GPT4O = "gpt-4o"
GPT4O_20240513 = "gpt-4o-2024-05-13"
GPT4O_20240806 = "gpt-4o-2024-08-06"
GPT4O_LATEST = "chatgpt-4o-latest"
GPT4O_MINI = "gpt-4o-mini"
GPT4O_MINI_20240718 = "gpt-4o-mini-2024-07-18"
GPT4_TURBO = "gpt-4-turbo"
GPT4_TURBO_20240409 = "gpt-4-turbo-2024-04-09"
GPT4_TURBO_0125 = "gpt-4-0125-preview"
GPT4_TURBO_1106 = "gpt-4-1106-preview"
GPT4_TURBO_PREVIEW = "gpt-4-turbo-preview"
GPT4_VISION_PREVIEW = "gpt-4-vision-preview"
GPT4 = "gpt-4"
GPT3DOT5_TURBO_0125 = "gpt-3.5-turbo-0125"
GPT3DOT5_TURBO_1106 = "gpt-3.5-turbo-1106"
GPT3DOT5_TURBO_0613 = "gpt-3.5-turbo-0613"
GPT3DOT5_TURBO_0301 = "gpt-3.5-turbo-0301"
GPT3DOT5_TURBO_16K = "gpt-3.5-turbo-16k"
GPT3DOT5_TURBO_16K_0613 = "gpt-3.5-turbo-16k-0613"
GPT3DOT5_TURBO = "gpt-3.5-turbo"
GPT3DOT5_TURBO_INSTRUCT = "gpt-3.5-turbo-instruct"
GPT3_TEXT_DAVINCI_003 = "text-davinci-003"
GPT3_TEXT_DAVINCI_002 = "text-davinci-002"
GPT3_TEXT_CURIE_001 = "text-curie-001"
GPT3_TEXT_BABBAGE_001 = "text-babbage-001"
GPT3_TEXT_ADA_001 = "text-ada-001"
GPT3_TEXT_DAVINCI_001 = "text-davinci-001"
GPT3_DAVINCI_INSTRUCT_BETA = "davinci-instruct-beta"
GPT3_DAVINCI = "davinci"
GPT3_DAVINCI_002 = "davinci-002"
GPT3_CURIE_INSTRUCT_BETA = "curie-instruct-beta"
GPT3_CURIE = "curie"
GPT3_CURIE_002 = "curie-002"
GPT3_ADA = "ada"
GPT3_ADA_002 = "ada-002"
GPT3_BABBAGE = "babbage"
GPT3_BABBAGE_002 = "babbage-002"

CODEX_CODE_DAVINCI_002 = "code-davinci-002"
CODEX_CODE_CUSHMAN_001 = "code-cushman-001"
CODEX_CODE_DAVINCI_001 = "code-davinci-001"

DISABLED_MODELS_FOR_ENDPOINTS: dict[str, frozenset[str]] = {
    COMPLETIONS_SUFFIX: frozenset(
        {
            GPT3DOT5_TURBO,
            GPT3DOT5_TURBO_0301,
            GPT3DOT5_TURBO_0613,
            GPT3DOT5_TURBO_1106,
            GPT3DOT5_TURBO_0125,
            GPT3DOT5_TURBO_16K,
            GPT3DOT5_TURBO_16K_0613,
            GPT4,
            GPT4O,
            GPT4O_20240513,
            GPT4O_20240806,
            GPT4O_LATEST,
            GPT4O_MINI,
            GPT4O_MINI_20240718,
            GPT4_TURBO_PREVIEW,
            GPT4_VISION_PREVIEW,
            GPT4_TURBO_1106,
            GPT4_TURBO_0125,
            GPT4_TURBO,
            GPT4_TURBO_20240409,
            GPT40314,
            GPT40613,
            GPT432K,
            GPT432K0314,
            GPT432K0613,
        }
    ),
    CHAT_COMPLETIONS_SUFFIX: frozenset(
        {
            CODEX_CODE_DAVINCI_002,
            CODEX_CODE_CUSHMAN_001,
            CODEX_CODE_DAVINCI_001,
            GPT3_TEXT_DAVINCI_003,
            GPT3_TEXT_DAVINCI_002,
            GPT3_TEXT_CURIE_001,
            GPT3_TEXT_BABBAGE_001,
            GPT3_TEXT_ADA_001,
            GPT3_TEXT_DAVINCI_001,
            GPT3_DAVINCI_INSTRUCT_BETA,
            GPT3_DAVINCI,
            GPT3_CURIE_INSTRUCT_BETA,
            GPT3_CURIE,
            GPT3_ADA,
            GPT3_BABBAGE,
        }
    ),
}


class CompletionUnsupportedModelError(ValueError):
    """The model cannot be used with the completions endpoint."""

    def __init__(self) -> None:
        super().__init__(
            "this model is not supported with this method, "
            "please use CreateChatCompletion client method instead"
        )


class CompletionStreamNotSupportedError(ValueError):
    """Streaming was requested from the non-streaming completion call."""

    def __init__(self) -> None:
        super().__init__(
            "streaming is not supported with this method, please use CreateCompletionStream"
        )


class CompletionPromptTypeError(TypeError):
    """The prompt is neither a string nor a list of strings."""

    def __init__(self) -> None:
        super().__init__("the type of CompletionRequest.Prompt only supports string and []string")


def check_endpoint_supports_model(endpoint: str, model: str) -> bool:
    """Tell whether ``model`` may be used with ``endpoint``."""
    return model not in DISABLED_MODELS_FOR_ENDPOINTS.get(endpoint, frozenset())


def check_prompt_type(prompt: Any) -> bool:
    """Tell whether ``prompt`` is a string or a list of strings."""
    if isinstance(prompt, str):
        return True
    return isinstance(prompt, list) and all(isinstance(item, str) for item in prompt)


@dataclass
class CompletionRequest:
    """Parameters of a completion request."""

    model: str = ""
    prompt: Any = None
    best_of: int = 0
    echo: bool = False
    frequency_penalty: float = 0.0
    logit_bias: dict[str, int] = field(default_factory=dict)
    logprobs: int = 0
    max_tokens: int = 0
    n: int = 0
    presence_penalty: float = 0.0
    seed: int | None = None
    stop: list[str] = field(default_factory=list)
    stream: bool = False
    suffix: str = ""
    temperature: float = 0.0
    top_p: float = 0.0
    user: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body, leaving out fields that are unset."""
        body: dict[str, Any] = {"model": self.model}
        if self.prompt is not None:
            body["prompt"] = self.prompt
        optional = (
            ("best_of", self.best_of),
            ("echo", self.echo),
            ("frequency_penalty", self.frequency_penalty),
            ("logit_bias", dict(self.logit_bias)),
            ("logprobs", self.logprobs),
            ("max_tokens", self.max_tokens),
            ("n", self.n),
            ("presence_penalty", self.presence_penalty),
        )
        body.update((key, value) for key, value in optional if value)
        if self.seed is not None:
            body["seed"] = self.seed
        rest = (
            ("stop", list(self.stop)),
            ("stream", self.stream),
            ("suffix", self.suffix),
            ("temperature", self.temperature),
            ("top_p", self.top_p),
            ("user", self.user),
        )
        body.update((key, value) for key, value in rest if value)
        return body


@dataclass
class LogprobResult:
    """Log probabilities attached to a completion choice."""

    tokens: list[str] = field(default_factory=list)
    token_logprobs: list[float] = field(default_factory=list)
    top_logprobs: list[dict[str, float]] = field(default_factory=list)
    text_offset: list[int] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "LogprobResult":
        data = data or {}
        return cls(
            tokens=list(data.get("tokens") or []),
            token_logprobs=list(data.get("token_logprobs") or []),
            top_logprobs=[dict(item or {}) for item in data.get("top_logprobs") or []],
            text_offset=list(data.get("text_offset") or []),
        )


@dataclass
class CompletionChoice:
    """One of the possible completions."""

    text: str = ""
    index: int = 0
    finish_reason: str = ""
    logprobs: LogprobResult = field(default_factory=LogprobResult)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CompletionChoice":
        return cls(
            text=data.get("text") or "",
            index=data.get("index") or 0,
            finish_reason=data.get("finish_reason") or "",
            logprobs=LogprobResult.from_dict(data.get("logprobs")),
        )


@dataclass
class CompletionResponse:
    """Result of a completion request."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[CompletionChoice] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "CompletionResponse":
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            created=data.get("created") or 0,
            model=data.get("model") or "",
            choices=[CompletionChoice.from_dict(item) for item in data.get("choices") or []],
            usage=Usage.from_dict(data.get("usage")),
            headers=httpx.Headers(headers or {}),
        )


class CompletionMixin:
    """Adds the completions endpoint to a client built on ``BaseClient``."""

    def create_completion(self, request: CompletionRequest) -> CompletionResponse:
        """Create a completion for the request's prompt."""
        if request.stream:
            raise CompletionStreamNotSupportedError()
        if not check_endpoint_supports_model(COMPLETIONS_SUFFIX, request.model):
            raise CompletionUnsupportedModelError()
        if not check_prompt_type(request.prompt):
            raise CompletionPromptTypeError()
        url = self.full_url(COMPLETIONS_SUFFIX, model=request.model)  # type: ignore[attr-defined]
        data, headers = self.send("POST", url, body=request)  # type: ignore[attr-defined]
        return CompletionResponse.from_dict(data, headers)