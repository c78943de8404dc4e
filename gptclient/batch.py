"""Batches: JSONL input files, batch objects and the batch endpoints."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field, replace
from typing import Any, Mapping
from urllib.parse import urlencode

import httpx

from gptclient.chat import ChatCompletionRequest
from gptclient.completion import CompletionRequest

BATCHES_SUFFIX = "/batches"
DEFAULT_COMPLETION_WINDOW = "24h"
DEFAULT_BATCH_FILE_NAME = "@batchinput.jsonl"

_HTML_SAFE = str.maketrans(
    {
        "<": "\\u003c",
        ">": "\\u003e",
        "&": "\\u0026",
        "\u2028": "\\u2028",
        "\u2029": "\\u2029",
    }
)


class BatchEndpoint(str, enum.Enum):
    """Endpoints a batch can run its requests against."""

    CHAT_COMPLETIONS = "/v1/chat/completions"
    COMPLETIONS = "/v1/completions"
    EMBEDDINGS = "/v1/embeddings"


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, enum.Enum) else value


def _endpoint(value: Any) -> BatchEndpoint | str:
    try:
        return BatchEndpoint(value)
    except ValueError:
        return value or ""


def _compact_json(value: Any) -> bytes:
    """Encode compactly, escaping HTML-sensitive characters inside strings."""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return text.translate(_HTML_SAFE).encode("utf-8")


@dataclass
class BatchLineItem:
    """One request line of a batch input file."""

    custom_id: str
    body: Any
    url: BatchEndpoint | str
    method: str = "POST"

    def to_json(self) -> bytes:
        """Return the line as compact JSON bytes."""
        body = self.body.to_dict() if hasattr(self.body, "to_dict") else self.body
        return _compact_json(
            {
                "custom_id": self.custom_id,
                "body": body,
                "method": self.method,
                "url": _plain(self.url),
            }
        )


@dataclass
class UploadBatchFileRequest:
    """The lines of a batch input file and the name to upload it under."""

    file_name: str = ""
    lines: list[BatchLineItem] = field(default_factory=list)

    def add_chat_completion(self, custom_id: str, body: ChatCompletionRequest) -> None:
        """Append a chat completion request."""
        self.lines.append(BatchLineItem(custom_id, body, BatchEndpoint.CHAT_COMPLETIONS))

    def add_completion(self, custom_id: str, body: CompletionRequest) -> None:
        """Append a completion request."""
        self.lines.append(BatchLineItem(custom_id, body, BatchEndpoint.COMPLETIONS))

    def marshal_jsonl(self) -> bytes:
        """Return the file contents: one JSON object per line, no trailing newline."""
        return b"\n".join(line.to_json() for line in self.lines)


@dataclass
class BatchRequestCounts:
    """How many requests of a batch ran, completed and failed."""

    total: int = 0
    completed: int = 0
    failed: int = 0

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any] | None) -> "BatchRequestCounts":
        data = data or {}
        return cls(
            total=data.get("total") or 0,
            completed=data.get("completed") or 0,
            failed=data.get("failed") or 0,
        )


@dataclass
class Batch:
    """A batch as returned by the API."""

    id: str = ""
    object: str = ""
    endpoint: BatchEndpoint | str = ""
    errors: dict[str, Any] | None = None
    input_file_id: str = ""
    completion_window: str = ""
    status: str = ""
    output_file_id: str | None = None
    error_file_id: str | None = None
    created_at: int = 0
    in_progress_at: int | None = None
    expires_at: int | None = None
    finalizing_at: int | None = None
    completed_at: int | None = None
    failed_at: int | None = None
    expired_at: int | None = None
    cancelling_at: int | None = None
    cancelled_at: int | None = None
    request_counts: BatchRequestCounts = field(default_factory=BatchRequestCounts)
    metadata: dict[str, Any] | None = None
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "Batch":
        errors = data.get("errors")
        metadata = data.get("metadata")
        return cls(
            id=data.get("id") or "",
            object=data.get("object") or "",
            endpoint=_endpoint(data.get("endpoint")),
            errors=dict(errors) if errors is not None else None,
            input_file_id=data.get("input_file_id") or "",
            completion_window=data.get("completion_window") or "",
            status=data.get("status") or "",
            output_file_id=data.get("output_file_id"),
            error_file_id=data.get("error_file_id"),
            created_at=data.get("created_at") or 0,
            in_progress_at=data.get("in_progress_at"),
            expires_at=data.get("expires_at"),
            finalizing_at=data.get("finalizing_at"),
            completed_at=data.get("completed_at"),
            failed_at=data.get("failed_at"),
            expired_at=data.get("expired_at"),
            cancelling_at=data.get("cancelling_at"),
            cancelled_at=data.get("cancelled_at"),
            request_counts=BatchRequestCounts._from_dict(data.get("request_counts")),
            metadata=dict(metadata) if metadata is not None else None,
            headers=httpx.Headers(headers or {}),
        )


@dataclass
class CreateBatchRequest:
    """Parameters for creating a batch from an uploaded input file."""

    input_file_id: str = ""
    endpoint: BatchEndpoint | str = ""
    completion_window: str = ""
    metadata: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_file_id": self.input_file_id,
            "endpoint": _plain(self.endpoint),
            "completion_window": self.completion_window,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
        }


@dataclass
class ListBatchResponse:
    """A page of batches."""

    object: str = ""
    data: list[Batch] = field(default_factory=list)
    first_id: str = ""
    last_id: str = ""
    has_more: bool = False
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "ListBatchResponse":
        return cls(
            object=data.get("object") or "",
            data=[Batch.from_dict(item) for item in data.get("data") or []],
            first_id=data.get("first_id") or "",
            last_id=data.get("last_id") or "",
            has_more=bool(data.get("has_more")),
            headers=httpx.Headers(headers or {}),
        )


class BatchMixin:
    """Adds the batch endpoints to a client built on ``BaseClient``."""

    def create_batch(self, request: CreateBatchRequest) -> Batch:
        """Create a batch; the completion window defaults to 24 hours."""
        if not request.completion_window:
            request = replace(request, completion_window=DEFAULT_COMPLETION_WINDOW)
        url = self.full_url(BATCHES_SUFFIX)  # type: ignore[attr-defined]
        data, headers = self.send("POST", url, body=request)  # type: ignore[attr-defined]
        return Batch.from_dict(data, headers)

    def retrieve_batch(self, batch_id: str) -> Batch:
        """Retrieve a batch."""
        url = self.full_url(f"{BATCHES_SUFFIX}/{batch_id}")  # type: ignore[attr-defined]
        data, headers = self.send("GET", url)  # type: ignore[attr-defined]
        return Batch.from_dict(data, headers)

    def cancel_batch(self, batch_id: str) -> Batch:
        """Cancel a batch."""
        url = self.full_url(f"{BATCHES_SUFFIX}/{batch_id}/cancel")  # type: ignore[attr-defined]
        data, headers = self.send("POST", url)  # type: ignore[attr-defined]
        return Batch.from_dict(data, headers)

    def list_batch(self, after: str | None = None, limit: int | None = None) -> ListBatchResponse:
        """List batches, optionally after a given one and up to a limit."""
        params = [
            (key, value)
            for key, value in (
                ("after", after),
                ("limit", None if limit is None else f"{int(limit)}"),
            )
            if value is not None
        ]
        query = "?" + urlencode(params) if params else ""
        url = self.full_url(f"{BATCHES_SUFFIX}{query}")  # type: ignore[attr-defined]
        data, headers = self.send("GET", url)  # type: ignore[attr-defined]
        return ListBatchResponse.from_dict(data, headers)