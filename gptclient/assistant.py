"""Assistants: tool and assistant types, request bodies and the assistant endpoints."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from gptclient.chat import FunctionDefinition

ASSISTANTS_SUFFIX = "/assistants"
ASSISTANTS_FILES_SUFFIX = "/files"


class AssistantToolType(str, enum.Enum):
    """Kinds of tools an assistant can use."""

    CODE_INTERPRETER = "code_interpreter"
    RETRIEVAL = "retrieval"
    FUNCTION = "function"
    FILE_SEARCH = "file_search"


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _tool_type(value: Any) -> AssistantToolType | str:
    try:
        return AssistantToolType(value)
    except ValueError:
        return value or ""


def _function_from_dict(data: Mapping[str, Any]) -> FunctionDefinition:
    return FunctionDefinition(
        name=data.get("name") or "",
        description=data.get("description") or "",
        strict=bool(data.get("strict")),
        parameters=data.get("parameters"),
    )


@dataclass
class AssistantTool:
    """A tool enabled on an assistant; ``function`` is set for function tools."""

    type: AssistantToolType | str = ""
    function: FunctionDefinition | None = None

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"type": _plain(self.type)}
        if self.function is not None:
            body["function"] = self.function.to_dict()
        return body

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AssistantTool":
        function = data.get("function")
        return cls(
            type=_tool_type(data.get("type")),
            function=_function_from_dict(function) if function is not None else None,
        )


def _tools_from(data: Any) -> list[AssistantTool] | None:
    if data is None:
        return None
    return [AssistantTool.from_dict(item) for item in data]


@dataclass
class Assistant:
    """An assistant as returned by the API.

    ``tools`` is ``None`` when the API returned no tool list at all.
    """

    id: str = ""
    object: str = ""
    created_at: int = 0
    name: str | None = None
    description: str | None = None
    model: str = ""
    instructions: str | None = None
    tools: list[AssistantTool] | None = None
    file_ids: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    tool_resources: dict[str, Any] | None = None
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "Assistant":
        resources = data.get("tool_resources")
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            created_at=data.get("created_at") or 0,
            name=data.get("name"),
            description=data.get("description"),
            model=data.get("model") or "",
            instructions=data.get("instructions"),
            tools=_tools_from(data.get("tools")),
            file_ids=list(data.get("file_ids") or []),
            metadata=dict(data.get("metadata") or {}),
            tool_resources=dict(resources) if resources is not None else None,
            headers=httpx.Headers(headers or {}),
        )


@dataclass
class AssistantRequest:
    """Parameters for creating or modifying an assistant.

    ``tools`` left as ``None`` keeps the assistant's tools unchanged; an empty
    list removes them all; a populated list replaces them.
    """

    model: str = ""
    name: str | None = None
    description: str | None = None
    instructions: str | None = None
    tools: list[AssistantTool] | None = None
    file_ids: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    tool_resources: Mapping[str, Any] | None = None
    response_format: Any = None
    temperature: float | None = None
    top_p: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body; an empty tool list is kept, a missing one left out."""
        body: dict[str, Any] = {}
        if self.tools is not None:
            body["tools"] = [tool.to_dict() for tool in self.tools]
        body["model"] = self.model
        for key, value in (
            ("name", self.name),
            ("description", self.description),
            ("instructions", self.instructions),
        ):
            if value is not None:
                body[key] = value
        if self.file_ids:
            body["file_ids"] = list(self.file_ids)
        if self.metadata:
            body["metadata"] = dict(self.metadata)
        if self.tool_resources is not None:
            body["tool_resources"] = dict(self.tool_resources)
        if self.response_format is not None:
            rf = self.response_format
            body["response_format"] = rf.to_dict() if hasattr(rf, "to_dict") else rf
        if self.temperature is not None:
            body["temperature"] = self.temperature
        if self.top_p is not None:
            body["top_p"] = self.top_p
        return body


@dataclass
class AssistantsList:
    """A page of assistants."""

    assistants: list[Assistant] = field(default_factory=list)
    last_id: str | None = None
    first_id: str | None = None
    has_more: bool = False
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "AssistantsList":
        return cls(
            assistants=[Assistant.from_dict(item) for item in data.get("data") or []],
            last_id=data.get("last_id"),
            first_id=data.get("first_id"),
            has_more=bool(data.get("has_more")),
            headers=httpx.Headers(headers or {}),
        )


@dataclass
class AssistantDeleteResponse:
    """Confirmation that an assistant was deleted."""

    id: str = ""
    object: str = ""
    deleted: bool = False
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "AssistantDeleteResponse":
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            deleted=bool(data.get("deleted")),
            headers=httpx.Headers(headers or {}),
        )


@dataclass
class AssistantFile:
    """A file attached to an assistant."""

    id: str = ""
    object: str = ""
    created_at: int = 0
    assistant_id: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "AssistantFile":
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            created_at=data.get("created_at") or 0,
            assistant_id=data.get("assistant_id") or "",
            headers=httpx.Headers(headers or {}),
        )


@dataclass
class AssistantFileRequest:
    """The file to attach to an assistant."""

    file_id: str = ""


@dataclass
class AssistantFilesList:
    """The files attached to an assistant."""

    assistant_files: list[AssistantFile] = field(default_factory=list)
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "AssistantFilesList":
        return cls(
            assistant_files=[AssistantFile.from_dict(item) for item in data.get("data") or []],
            headers=httpx.Headers(headers or {}),
        )


def _list_query(
    limit: int | None, order: str | None, after: str | None, before: str | None
) -> str:
    params = [
        (key, value)
        for key, value in (
            ("limit", None if limit is None else f"{int(limit)}"),
            ("order", order),
            ("after", after),
            ("before", before),
        )
        if value is not None
    ]
    if not params:
        return ""
    params.sort(key=lambda pair: pair[0])
    return "?" + urlencode(params)


class AssistantMixin:
    """Adds the assistant endpoints to a client built on ``BaseClient``."""

    def _assistant_call(
        self, method: str, suffix: str, body: Any = None, kind: str | None = "json"
    ) -> tuple[Any, httpx.Headers]:
        url = self.full_url(suffix)  # type: ignore[attr-defined]
        return self.send(  # type: ignore[attr-defined]
            method, url, body=body, beta_assistant=True, kind=kind
        )

    def create_assistant(self, request: AssistantRequest) -> Assistant:
        """Create a new assistant."""
        data, headers = self._assistant_call("POST", ASSISTANTS_SUFFIX, body=request)
        return Assistant.from_dict(data, headers)

    def retrieve_assistant(self, assistant_id: str) -> Assistant:
        """Retrieve an assistant."""
        data, headers = self._assistant_call("GET", f"{ASSISTANTS_SUFFIX}/{assistant_id}")
        return Assistant.from_dict(data, headers)

    def modify_assistant(self, assistant_id: str, request: AssistantRequest) -> Assistant:
        """Modify an assistant."""
        data, headers = self._assistant_call(
            "POST", f"{ASSISTANTS_SUFFIX}/{assistant_id}", body=request
        )
        return Assistant.from_dict(data, headers)

    def delete_assistant(self, assistant_id: str) -> AssistantDeleteResponse:
        """Delete an assistant."""
        data, headers = self._assistant_call("DELETE", f"{ASSISTANTS_SUFFIX}/{assistant_id}")
        return AssistantDeleteResponse.from_dict(data, headers)

    def list_assistants(
        self,
        limit: int | None = None,
        order: str | None = None,
        after: str | None = None,
        before: str | None = None,
    ) -> AssistantsList:
        """List the available assistants."""
        suffix = ASSISTANTS_SUFFIX + _list_query(limit, order, after, before)
        data, headers = self._assistant_call("GET", suffix)
        return AssistantsList.from_dict(data, headers)

    def create_assistant_file(
        self, assistant_id: str, request: AssistantFileRequest
    ) -> AssistantFile:
        """Attach a file to an assistant."""
        suffix = f"{ASSISTANTS_SUFFIX}/{assistant_id}{ASSISTANTS_FILES_SUFFIX}"
        data, headers = self._assistant_call("POST", suffix, body={"file_id": request.file_id})
        return AssistantFile.from_dict(data, headers)

    def retrieve_assistant_file(self, assistant_id: str, file_id: str) -> AssistantFile:
        """Retrieve a file attached to an assistant."""
        suffix = f"{ASSISTANTS_SUFFIX}/{assistant_id}{ASSISTANTS_FILES_SUFFIX}/{file_id}"
        data, headers = self._assistant_call("GET", suffix)
        return AssistantFile.from_dict(data, headers)

    def delete_assistant_file(self, assistant_id: str, file_id: str) -> None:
        """Detach a file from an assistant; the response body is not read."""
        suffix = f"{ASSISTANTS_SUFFIX}/{assistant_id}{ASSISTANTS_FILES_SUFFIX}/{file_id}"
        self._assistant_call("DELETE", suffix, kind=None)

    def list_assistant_files(
        self,
        assistant_id: str,
        limit: int | None = None,
        order: str | None = None,
        after: str | None = None,
        before: str | None = None,
    ) -> AssistantFilesList:
        """List the files attached to an assistant."""
        suffix = (
            f"{ASSISTANTS_SUFFIX}/{assistant_id}{ASSISTANTS_FILES_SUFFIX}"
            + _list_query(limit, order, after, before)
        )
        data, headers = self._assistant_call("GET", suffix)
        return AssistantFilesList.from_dict(data, headers)