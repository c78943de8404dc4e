"""Chat completions: messages, request and response types, stream chunks and the endpoint call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from gptclient.client import Usage
from gptclient.completion import CHAT_COMPLETIONS_SUFFIX, check_endpoint_supports_model

CHAT_MESSAGE_ROLE_SYSTEM = "system"
CHAT_MESSAGE_ROLE_USER = "user"
CHAT_MESSAGE_ROLE_ASSISTANT = "assistant"
CHAT_MESSAGE_ROLE_FUNCTION = "function"
CHAT_MESSAGE_ROLE_TOOL = "tool"

IMAGE_URL_DETAIL_HIGH = "high"
IMAGE_URL_DETAIL_LOW = "low"
IMAGE_URL_DETAIL_AUTO = "auto"

CHAT_MESSAGE_PART_TYPE_TEXT = "text"
CHAT_MESSAGE_PART_TYPE_IMAGE_URL = "image_url"

RESPONSE_FORMAT_TYPE_JSON_OBJECT = "json_object"
RESPONSE_FORMAT_TYPE_JSON_SCHEMA = "json_schema"
RESPONSE_FORMAT_TYPE_TEXT = "text"

TOOL_TYPE_FUNCTION = "function"

FINISH_REASON_STOP = "stop"
FINISH_REASON_LENGTH = "length"
FINISH_REASON_FUNCTION_CALL = "function_call"
FINISH_REASON_TOOL_CALLS = "tool_calls"
FINISH_REASON_CONTENT_FILTER = "content_filter"
FINISH_REASON_NULL = "null"


class ChatCompletionInvalidModelError(ValueError):
    """The model cannot be used with the chat completions endpoint."""

    def __init__(self) -> None:
        super().__init__(
            "this model is not supported with this method, "
            "please use CreateCompletion client method instead"
        )


class ChatCompletionStreamNotSupportedError(ValueError):
    """Streaming was requested from the non-streaming chat completion call."""

    def __init__(self) -> None:
        super().__init__(
            "streaming is not supported with this method, please use CreateChatCompletionStream"
        )


class ContentFieldsMisusedError(ValueError):
    """A message sets both plain content and multi-part content."""

    def __init__(self) -> None:
        super().__init__("can't use both Content and MultiContent properties simultaneously")


def _jsonable(value: Any) -> Any:
    return value.to_dict() if hasattr(value, "to_dict") else value


@dataclass
class ChatMessageImageURL:
    """An image referenced from a message part."""

    url: str = ""
    detail: str = ""

    def _to_dict(self) -> dict[str, str]:
        body = {}
        if self.url:
            body["url"] = self.url
        if self.detail:
            body["detail"] = self.detail
        return body

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "ChatMessageImageURL":
        return cls(url=data.get("url") or "", detail=data.get("detail") or "")


@dataclass
class ChatMessagePart:
    """One part of a multi-part message: text or an image."""

    type: str = ""
    text: str = ""
    image_url: ChatMessageImageURL | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.type:
            body["type"] = self.type
        if self.text:
            body["text"] = self.text
        if self.image_url is not None:
            body["image_url"] = self.image_url._to_dict()
        return body

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatMessagePart":
        if not isinstance(data, Mapping):
            raise TypeError(f"message part must be an object, got {type(data).__name__}")
        image = data.get("image_url")
        return cls(
            type=data.get("type") or "",
            text=data.get("text") or "",
            image_url=ChatMessageImageURL._from_dict(image) if image is not None else None,
        )


@dataclass
class FunctionCall:
    """A function call: its name and its arguments as a JSON string."""

    name: str = ""
    arguments: str = ""

    def to_dict(self) -> dict[str, str]:
        body = {}
        if self.name:
            body["name"] = self.name
        if self.arguments:
            body["arguments"] = self.arguments
        return body

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "FunctionCall":
        data = data or {}
        return cls(name=data.get("name") or "", arguments=data.get("arguments") or "")


@dataclass
class ToolCall:
    """A tool call made by the model; ``index`` is set only in stream chunks."""

    id: str = ""
    type: str = TOOL_TYPE_FUNCTION
    function: FunctionCall = field(default_factory=FunctionCall)
    index: int | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.index is not None:
            body["index"] = self.index
        body["id"] = self.id
        body["type"] = self.type
        body["function"] = self.function.to_dict()
        return body

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ToolCall":
        return cls(
            id=data.get("id") or "",
            type=data.get("type") or "",
            function=FunctionCall.from_dict(data.get("function")),
            index=data.get("index"),
        )


@dataclass
class ChatCompletionMessage:
    """A chat message with either plain ``content`` or ``multi_content`` parts."""

    role: str = ""
    content: str = ""
    multi_content: list[ChatMessagePart] | None = None
    name: str = ""
    function_call: FunctionCall | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON form; raise if both content fields are used."""
        if self.content and self.multi_content is not None:
            raise ContentFieldsMisusedError()
        body: dict[str, Any] = {"role": self.role}
        if self.multi_content:
            body["content"] = [part.to_dict() for part in self.multi_content]
        else:
            body["content"] = self.content
        if self.name:
            body["name"] = self.name
        if self.function_call is not None:
            body["function_call"] = self.function_call.to_dict()
        if self.tool_calls:
            body["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id:
            body["tool_call_id"] = self.tool_call_id
        return body

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatCompletionMessage":
        """Build a message whose content is either a string or a list of parts."""
        if not isinstance(data, Mapping):
            raise TypeError(f"message must be an object, got {type(data).__name__}")
        content = data.get("content")
        text = ""
        multi: list[ChatMessagePart] | None = None
        if isinstance(content, list):
            multi = [ChatMessagePart.from_dict(part) for part in content]
        elif content is None or isinstance(content, str):
            text = content or ""
        else:
            raise TypeError(f"message content must be a string or a list, got {content!r}")
        function_call = data.get("function_call")
        return cls(
            role=data.get("role") or "",
            content=text,
            multi_content=multi,
            name=data.get("name") or "",
            function_call=FunctionCall.from_dict(function_call) if function_call is not None else None,
            tool_calls=[ToolCall.from_dict(call) for call in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id") or "",
        )


@dataclass
class FunctionDefinition:
    """A function the model may call; ``parameters`` describes it as JSON Schema."""

    name: str = ""
    description: str = ""
    strict: bool = False
    parameters: Any = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name}
        if self.description:
            body["description"] = self.description
        if self.strict:
            body["strict"] = True
        body["parameters"] = _jsonable(self.parameters)
        return body


@dataclass
class Tool:
    """A tool offered to the model."""

    type: str = TOOL_TYPE_FUNCTION
    function: FunctionDefinition | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"type": self.type}
        if self.function is not None:
            body["function"] = self.function.to_dict()
        return body


@dataclass
class StreamOptions:
    """Streaming options; ``include_usage`` adds a final usage chunk."""

    include_usage: bool = False

    def _to_dict(self) -> dict[str, bool]:
        return {"include_usage": True} if self.include_usage else {}


@dataclass
class ChatCompletionResponseFormat:
    """The format the model must answer in; ``json_schema`` holds name, schema and strictness."""

    type: str = ""
    json_schema: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if self.type:
            body["type"] = self.type
        if self.json_schema is not None:
            body["json_schema"] = {key: _jsonable(value) for key, value in self.json_schema.items()}
        return body


@dataclass
class ChatCompletionRequest:
    """Parameters of a chat completion request."""

    model: str = ""
    messages: list[ChatCompletionMessage] | None = None
    max_tokens: int = 0
    temperature: float = 0.0
    top_p: float = 0.0
    n: int = 0
    stream: bool = False
    stop: list[str] = field(default_factory=list)
    presence_penalty: float = 0.0
    response_format: ChatCompletionResponseFormat | None = None
    seed: int | None = None
    frequency_penalty: float = 0.0
    logit_bias: dict[str, int] = field(default_factory=dict)
    logprobs: bool = False
    top_logprobs: int = 0
    user: str = ""
    functions: list[FunctionDefinition] = field(default_factory=list)
    function_call: Any = None
    tools: list[Tool] = field(default_factory=list)
    tool_choice: Any = None
    stream_options: StreamOptions | None = None
    parallel_tool_calls: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body, leaving out fields that are unset."""
        body: dict[str, Any] = {
            "model": self.model,
            "messages": None
            if self.messages is None
            else [message.to_dict() for message in self.messages],
        }

        def put(key: str, value: Any) -> None:
            if value:
                body[key] = value

        put("max_tokens", self.max_tokens)
        put("temperature", self.temperature)
        put("top_p", self.top_p)
        put("n", self.n)
        put("stream", self.stream)
        put("stop", list(self.stop))
        put("presence_penalty", self.presence_penalty)
        if self.response_format is not None:
            body["response_format"] = self.response_format.to_dict()
        if self.seed is not None:
            body["seed"] = self.seed
        put("frequency_penalty", self.frequency_penalty)
        put("logit_bias", dict(self.logit_bias))
        put("logprobs", self.logprobs)
        put("top_logprobs", self.top_logprobs)
        put("user", self.user)
        put("functions", [function.to_dict() for function in self.functions])
        if self.function_call is not None:
            body["function_call"] = _jsonable(self.function_call)
        put("tools", [tool.to_dict() for tool in self.tools])
        if self.tool_choice is not None:
            body["tool_choice"] = _jsonable(self.tool_choice)
        if self.stream_options is not None:
            body["stream_options"] = self.stream_options._to_dict()
        if self.parallel_tool_calls is not None:
            body["parallel_tool_calls"] = self.parallel_tool_calls
        return body


def finish_reason_to_json(reason: str) -> str | None:
    """Return the JSON value of a finish reason: ``None`` for an empty or null one."""
    if reason in ("", FINISH_REASON_NULL):
        return None
    return reason


@dataclass
class ChatCompletionChoice:
    """One choice of a chat completion."""

    index: int = 0
    message: ChatCompletionMessage = field(default_factory=ChatCompletionMessage)
    finish_reason: str = ""
    logprobs: Mapping[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "index": self.index,
            "message": self.message.to_dict(),
            "finish_reason": finish_reason_to_json(self.finish_reason),
        }
        if self.logprobs is not None:
            body["logprobs"] = dict(self.logprobs)
        return body

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatCompletionChoice":
        return cls(
            index=data.get("index") or 0,
            message=ChatCompletionMessage.from_dict(data.get("message") or {}),
            finish_reason=data.get("finish_reason") or "",
            logprobs=data.get("logprobs"),
        )


@dataclass
class ChatCompletionResponse:
    """Result of a chat completion request."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[ChatCompletionChoice] = field(default_factory=list)
    usage: Usage = field(default_factory=Usage)
    system_fingerprint: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "ChatCompletionResponse":
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            created=data.get("created") or 0,
            model=data.get("model") or "",
            choices=[ChatCompletionChoice.from_dict(item) for item in data.get("choices") or []],
            usage=Usage.from_dict(data.get("usage")),
            system_fingerprint=data.get("system_fingerprint") or "",
            headers=httpx.Headers(headers or {}),
        )


@dataclass
class ChatCompletionStreamChoiceDelta:
    """The piece of a message carried by one stream chunk."""

    content: str = ""
    role: str = ""
    function_call: FunctionCall | None = None
    tool_calls: list[ToolCall] = field(default_factory=list)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any] | None) -> "ChatCompletionStreamChoiceDelta":
        data = data or {}
        function_call = data.get("function_call")
        return cls(
            content=data.get("content") or "",
            role=data.get("role") or "",
            function_call=FunctionCall.from_dict(function_call) if function_call is not None else None,
            tool_calls=[ToolCall.from_dict(call) for call in data.get("tool_calls") or []],
        )


@dataclass
class ChatCompletionStreamChoice:
    """One choice within a stream chunk."""

    index: int = 0
    delta: ChatCompletionStreamChoiceDelta = field(default_factory=ChatCompletionStreamChoiceDelta)
    finish_reason: str = ""
    content_filter_results: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any]) -> "ChatCompletionStreamChoice":
        return cls(
            index=data.get("index") or 0,
            delta=ChatCompletionStreamChoiceDelta._from_dict(data.get("delta")),
            finish_reason=data.get("finish_reason") or "",
            content_filter_results=dict(data.get("content_filter_results") or {}),
        )


@dataclass
class ChatCompletionStreamResponse:
    """One chunk of a streamed chat completion."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[ChatCompletionStreamChoice] = field(default_factory=list)
    system_fingerprint: str = ""
    prompt_annotations: list[dict[str, Any]] = field(default_factory=list)
    prompt_filter_results: list[dict[str, Any]] = field(default_factory=list)
    usage: Usage | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChatCompletionStreamResponse":
        usage = data.get("usage")
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            created=data.get("created") or 0,
            model=data.get("model") or "",
            choices=[ChatCompletionStreamChoice._from_dict(item) for item in data.get("choices") or []],
            system_fingerprint=data.get("system_fingerprint") or "",
            prompt_annotations=[dict(item) for item in data.get("prompt_annotations") or []],
            prompt_filter_results=[dict(item) for item in data.get("prompt_filter_results") or []],
            usage=Usage.from_dict(usage) if usage is not None else None,
        )


class ChatMixin:
    """Adds the chat completions endpoint to a client built on ``BaseClient``."""

    def create_chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Create a completion for the request's chat messages."""
        if request.stream:
            raise ChatCompletionStreamNotSupportedError()
        if not check_endpoint_supports_model(CHAT_COMPLETIONS_SUFFIX, request.model):
            raise ChatCompletionInvalidModelError()
        url = self.full_url(CHAT_COMPLETIONS_SUFFIX, model=request.model)  # type: ignore[attr-defined]
        data, headers = self.send("POST", url, body=request)  # type: ignore[attr-defined]
        return ChatCompletionResponse.from_dict(data, headers)