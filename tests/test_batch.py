import json

import httpx
import pytest

from gptclient.batch import (
    Batch,
    BatchEndpoint,
    BatchLineItem,
    BatchMixin,
    CreateBatchRequest,
    ListBatchResponse,
    UploadBatchFileRequest,
)
from gptclient.chat import ChatCompletionMessage, ChatCompletionRequest
from gptclient.client import APIError, BaseClient, default_config
from gptclient.completion import GPT3DOT5_TURBO, CompletionRequest

BATCH_JSON = {
    "id": "batch_abc123",
    "object": "batch",
    "endpoint": "/v1/completions",
    "errors": None,
    "input_file_id": "file-abc123",
    "completion_window": "24h",
    "status": "completed",
    "output_file_id": "file-cvaTdG",
    "error_file_id": "file-HOWS94",
    "created_at": 1711471533,
    "in_progress_at": 1711471538,
    "expires_at": 1711557933,
    "finalizing_at": 1711493133,
    "completed_at": 1711493163,
    "failed_at": None,
    "expired_at": None,
    "cancelling_at": None,
    "cancelled_at": None,
    "request_counts": {"total": 100, "completed": 95, "failed": 5},
    "metadata": {"customer_id": "user_123456789", "batch_description": "Nightly eval job"},
}

CANCEL_JSON = dict(
    BATCH_JSON,
    endpoint="/v1/chat/completions",
    status="cancelling",
    output_file_id=None,
    error_file_id=None,
    finalizing_at=None,
    completed_at=None,
    cancelling_at=1711475133,
    request_counts={"total": 100, "completed": 23, "failed": 1},
)

LIST_JSON = {
    "object": "list",
    "data": [dict(BATCH_JSON, endpoint="/v1/chat/completions")],
    "first_id": "batch_abc123",
    "last_id": "batch_abc456",
    "has_more": True,
}


class _BatchClient(BatchMixin, BaseClient):
    pass


def _client(handler):
    config = default_config("token")
    config.base_url = "http://localhost/v1"
    return _BatchClient(config, httpx.Client(transport=httpx.MockTransport(handler)))


def _chat_request():
    return ChatCompletionRequest(
        max_tokens=5,
        model=GPT3DOT5_TURBO,
        messages=[ChatCompletionMessage(role="user", content="Hello!")],
    )


def test_add_chat_completion_marshals_jsonl():
    request = UploadBatchFileRequest()
    request.add_chat_completion("req-1", _chat_request())
    request.add_chat_completion("req-2", _chat_request())
    expected = (
        b'{"custom_id":"req-1","body":{"model":"gpt-3.5-turbo","messages":[{"role":"user",'
        b'"content":"Hello!"}],"max_tokens":5},"method":"POST","url":"/v1/chat/completions"}\n'
        b'{"custom_id":"req-2","body":{"model":"gpt-3.5-turbo","messages":[{"role":"user",'
        b'"content":"Hello!"}],"max_tokens":5},"method":"POST","url":"/v1/chat/completions"}'
    )
    assert request.marshal_jsonl() == expected


def test_add_completion_marshals_jsonl():
    request = UploadBatchFileRequest()
    request.add_completion("req-1", CompletionRequest(model=GPT3DOT5_TURBO, user="Hello"))
    request.add_completion("req-2", CompletionRequest(model=GPT3DOT5_TURBO, user="Hello"))
    expected = (
        b'{"custom_id":"req-1","body":{"model":"gpt-3.5-turbo","user":"Hello"},'
        b'"method":"POST","url":"/v1/completions"}\n'
        b'{"custom_id":"req-2","body":{"model":"gpt-3.5-turbo","user":"Hello"},'
        b'"method":"POST","url":"/v1/completions"}'
    )
    assert request.marshal_jsonl() == expected


def test_empty_request_marshals_to_nothing():
    assert UploadBatchFileRequest().marshal_jsonl() == b""


def test_line_item_escapes_html_characters():
    body = ChatCompletionRequest(
        model=GPT3DOT5_TURBO,
        messages=[ChatCompletionMessage(role="user", content="a<b&c>")],
    )
    line = BatchLineItem("req-1", body, BatchEndpoint.CHAT_COMPLETIONS).to_json()
    assert b'"content":"a\\u003cb\\u0026c\\u003e"' in line
    assert json.loads(line)["body"]["messages"][0]["content"] == "a<b&c>"


def test_create_batch_defaults_completion_window():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=BATCH_JSON)

    request = CreateBatchRequest(input_file_id="file-abc", endpoint=BatchEndpoint.CHAT_COMPLETIONS)
    batch = _client(handler).create_batch(request)
    assert seen["method"] == "POST"
    assert seen["path"] == "/v1/batches"
    assert seen["body"] == {
        "input_file_id": "file-abc",
        "endpoint": "/v1/chat/completions",
        "completion_window": "24h",
        "metadata": None,
    }
    assert request.completion_window == ""
    assert batch.id == "batch_abc123"
    assert batch.endpoint == BatchEndpoint.COMPLETIONS
    assert batch.request_counts.total == 100
    assert batch.request_counts.failed == 5
    assert batch.failed_at is None
    assert batch.metadata == {
        "customer_id": "user_123456789",
        "batch_description": "Nightly eval job",
    }


def test_retrieve_batch():
    def handler(request):
        assert request.method == "GET"
        assert request.url.path == "/v1/batches/file-id-1"
        return httpx.Response(200, json=BATCH_JSON)

    batch = _client(handler).retrieve_batch("file-id-1")
    assert batch.status == "completed"
    assert batch.output_file_id == "file-cvaTdG"


def test_cancel_batch():
    def handler(request):
        assert request.method == "POST"
        assert request.url.path == "/v1/batches/file-id-1/cancel"
        return httpx.Response(200, json=CANCEL_JSON)

    batch = _client(handler).cancel_batch("file-id-1")
    assert batch.status == "cancelling"
    assert batch.cancelling_at == 1711475133
    assert batch.output_file_id is None
    assert batch.request_counts.completed == 23


def test_list_batch_sends_query():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=LIST_JSON)

    result = _client(handler).list_batch("batch_abc123", 10)
    assert seen["params"] == {"after": "batch_abc123", "limit": "10"}
    assert result.has_more is True
    assert result.last_id == "batch_abc456"
    assert [item.endpoint for item in result.data] == [BatchEndpoint.CHAT_COMPLETIONS]


def test_list_batch_without_query():
    seen = {}

    def handler(request):
        seen["query"] = request.url.query
        return httpx.Response(200, json=LIST_JSON)

    result = _client(handler).list_batch()
    assert seen["query"] == b""
    assert result.first_id == "batch_abc123"
    assert [item.id for item in result.data] == ["batch_abc123"]


def test_batch_error_response():
    def handler(request):
        return httpx.Response(
            429, json={"error": {"message": "slow down", "type": "rate_limit_reached"}}
        )

    with pytest.raises(APIError) as info:
        _client(handler).retrieve_batch("file-id-1")
    assert info.value.http_status_code == 429


def test_from_dict_keeps_unknown_endpoint_and_headers():
    batch = Batch.from_dict(dict(BATCH_JSON, endpoint="/v1/other"), {"X-Test": "yes"})
    assert batch.endpoint == "/v1/other"
    assert batch.headers["x-test"] == "yes"
    listing = ListBatchResponse.from_dict({"data": []})
    assert listing.data == []
    assert listing.has_more is False