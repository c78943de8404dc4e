"""HTTP plumbing shared by every endpoint: configuration, URLs, headers and errors."""

from __future__ import annotations

import enum
import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit

import httpx

OPENAI_API_URL_V1 = "https://api.openai.com/v1"
AZURE_HEADER = "api-key"
AZURE_API_PREFIX = "openai"
AZURE_DEPLOYMENTS_PREFIX = "deployments"
DEFAULT_ASSISTANT_VERSION = "v2"
DEFAULT_EMPTY_MESSAGES_LIMIT = 300

AZURE_DEPLOYMENTS_ENDPOINTS = (
    "/completions",
    "/embeddings",
    "/chat/completions",
    "/audio/transcriptions",
    "/audio/translations",
    "/audio/speech",
    "/images/generations",
)

_SCHEME_RE = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")
_RESPONSE_KINDS = frozenset({"json", "text", "bytes"})


class APIType(str, enum.Enum):
    """Flavour of the remote API, which decides URLs and authentication."""

    OPEN_AI = "OPEN_AI"
    AZURE = "AZURE"
    AZURE_AD = "AZURE_AD"
    CLOUDFLARE_AZURE = "CLOUDFLARE_AZURE"


@dataclass
class ClientConfig:
    """Settings a client is built from."""

    auth_token: str = field(default_factory=str, repr=False)
    base_url: str = OPENAI_API_URL_V1
    org_id: str = ""
    api_type: APIType = APIType.OPEN_AI
    api_version: str = ""
    assistant_version: str = DEFAULT_ASSISTANT_VERSION
    azure_model_mapper: Callable[[str], str] | None = None
    empty_messages_limit: int = DEFAULT_EMPTY_MESSAGES_LIMIT

    def get_azure_deployment_by_model(self, model: str) -> str:
        """Return the Azure deployment name serving ``model``."""
        if self.azure_model_mapper is not None:
            return self.azure_model_mapper(model)
        return model


def default_config(auth_token: str) -> ClientConfig:
    """Return the configuration for the public API with the given token."""
    return ClientConfig(auth_token=auth_token)


class APIError(Exception):
    """An error reported by the API in its JSON error envelope."""

    def __init__(
        self,
        message: str = "",
        code: Any = None,
        param: str | None = None,
        error_type: str = "",
        http_status_code: int = 0,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.param = param
        self.error_type = error_type
        self.http_status_code = http_status_code

    @classmethod
    def _from_dict(cls, data: Mapping[str, Any], http_status_code: int) -> "APIError":
        message = data.get("message")
        return cls(
            message="" if message is None else str(message),
            code=data.get("code"),
            param=data.get("param"),
            error_type=data.get("type") or "",
            http_status_code=http_status_code,
        )

    def __str__(self) -> str:
        if self.http_status_code > 0:
            return f"error, status code: {self.http_status_code}, message: {self.message}"
        return self.message


class RequestError(Exception):
    """A failed request whose body carried no usable API error."""

    def __init__(self, http_status_code: int, err: BaseException | None = None) -> None:
        super().__init__(http_status_code, err)
        self.http_status_code = http_status_code
        self.err = err
        self.__cause__ = err

    def __str__(self) -> str:
        detail = "" if self.err is None else str(self.err)
        return f"error, status code: {self.http_status_code}, message: {detail}"


@dataclass
class Usage:
    """Token usage of one request."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Usage":
        data = data or {}
        return cls(
            prompt_tokens=data.get("prompt_tokens") or 0,
            completion_tokens=data.get("completion_tokens") or 0,
            total_tokens=data.get("total_tokens") or 0,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


def decode_response(body: Any, kind: str | None = "json") -> Any:
    """Decode a response body read from bytes or a readable object.

    ``kind`` is ``"json"``, ``"text"``, ``"bytes"`` or ``None`` (nothing decoded).
    """
    if kind is None:
        return None
    if kind not in _RESPONSE_KINDS:
        raise ValueError(f"unknown response kind: {kind!r}")
    data = body.read() if hasattr(body, "read") else body
    if kind == "bytes":
        return bytes(data)
    if kind == "text":
        return data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)
    return json.loads(data)


def is_failure_status_code(status_code: int) -> bool:
    """Tell whether an HTTP status code denotes failure."""
    return status_code < 200 or status_code >= 400


def _encode_body(body: Any) -> bytes | None:
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return bytes(body)
    if hasattr(body, "to_dict"):
        body = body.to_dict()
    return json.dumps(body, separators=(",", ":")).encode("utf-8")


class BaseClient:
    """Builds URLs and headers, sends requests and turns failures into exceptions."""

    def __init__(self, config: ClientConfig, http_client: httpx.Client | None = None) -> None:
        self.config = config
        self._owns_http_client = http_client is None
        self.http_client = http_client if http_client is not None else httpx.Client()

    def full_url(self, suffix: str, model: str = "") -> str:
        """Return the full URL of an endpoint."""
        base_url = self.config.base_url.rstrip("/")
        if self.config.api_type in (APIType.AZURE, APIType.AZURE_AD):
            base_url = self.base_url_with_azure_deployment(base_url, suffix, model)
        if self.config.api_version:
            suffix = self.suffix_with_api_version(suffix)
        return f"{base_url}{suffix}"

    def suffix_with_api_version(self, suffix: str) -> str:
        """Add the configured ``api-version`` to a path's query, keys sorted."""
        head = re.split(r"[/?#]", suffix, maxsplit=1)[0]
        if ":" in head and not _SCHEME_RE.fullmatch(head.split(":", 1)[0]):
            raise ValueError("failed to parse url suffix")
        parts = urlsplit(suffix)
        path = parts.path
        if parts.scheme and not path.startswith("/"):
            path = ""
        query = parse_qsl(parts.query, keep_blank_values=True)
        query.append(("api-version", self.config.api_version))
        query.sort(key=lambda pair: pair[0])
        return f"{path}?{urlencode(query)}"

    def base_url_with_azure_deployment(self, base_url: str, suffix: str, model: str) -> str:
        """Return the Azure base URL, with a deployment for endpoints that need one."""
        base_url = f"{base_url.rstrip('/')}/{AZURE_API_PREFIX}"
        if any(endpoint in suffix for endpoint in AZURE_DEPLOYMENTS_ENDPOINTS):
            deployment = self.config.get_azure_deployment_by_model(model) or "UNKNOWN"
            base_url = f"{base_url}/{AZURE_DEPLOYMENTS_PREFIX}/{deployment}"
        return base_url

    def build_headers(
        self, content_type: str | None = None, beta_assistant: bool = False
    ) -> dict[str, str]:
        """Return the headers of a request, authentication included."""
        headers = {
            "Accept": "application/json",
            "Content-Type": content_type or "application/json",
        }
        if beta_assistant:
            headers["OpenAI-Beta"] = f"assistants={self.config.assistant_version}"
        if self.config.api_type in (APIType.AZURE, APIType.CLOUDFLARE_AZURE):
            headers[AZURE_HEADER] = self.config.auth_token
        elif self.config.auth_token:
            headers["Authorization"] = f"Bearer {self.config.auth_token}"
        if self.config.org_id:
            headers["OpenAI-Organization"] = self.config.org_id
        return headers

    def send(
        self,
        method: str,
        url: str,
        body: Any = None,
        content_type: str | None = None,
        beta_assistant: bool = False,
        kind: str | None = "json",
    ) -> tuple[Any, httpx.Headers]:
        """Send a request; return the decoded body and the response headers."""
        headers = self.build_headers(content_type, beta_assistant)
        response = self.http_client.request(
            method, url, content=_encode_body(body), headers=headers
        )
        if is_failure_status_code(response.status_code):
            raise self.error_from_response(response.status_code, response.content)
        return decode_response(response.content, kind), response.headers

    def error_from_response(self, status_code: int, body: bytes | str) -> Exception:
        """Build the exception describing a failed response."""
        try:
            payload = json.loads(body)
        except ValueError as exc:
            return RequestError(status_code, exc)
        error = payload.get("error") if isinstance(payload, dict) else None
        if not isinstance(error, dict):
            return RequestError(status_code, None)
        return APIError._from_dict(error, status_code)

    def close(self) -> None:
        """Close the HTTP client if this object created it."""
        if self._owns_http_client:
            self.http_client.close()

    def __enter__(self) -> "BaseClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()