"""Audio transcription and translation: multipart form building and the endpoint calls."""

from __future__ import annotations

import enum
import io
import os
import secrets
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Iterator, Mapping

import httpx

WHISPER_1 = "whisper-1"

_OCTET_STREAM = "application/octet-stream"


class AudioResponseFormat(str, enum.Enum):
    """Formats the audio endpoints can answer in; JSON is the default."""

    JSON = "json"
    TEXT = "text"
    SRT = "srt"
    VERBOSE_JSON = "verbose_json"
    VTT = "vtt"


class TranscriptionTimestampGranularity(str, enum.Enum):
    """Granularities of the timestamps a transcription may carry."""

    WORD = "word"
    SEGMENT = "segment"


class AudioFormError(Exception):
    """Building the multipart form of an audio request failed."""


def _plain(value: Any) -> str:
    return value.value if isinstance(value, enum.Enum) else str(value)


def _escape_quotes(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class FormBuilder:
    """Writes a ``multipart/form-data`` body into memory."""

    def __init__(self, boundary: str | None = None) -> None:
        self.boundary = boundary or secrets.token_hex(30)
        self._buffer = io.BytesIO()
        self._has_parts = False
        self._closed = False

    def _begin_part(self, headers: list[tuple[str, str]]) -> None:
        if self._closed:
            raise ValueError("form is already closed")
        prefix = "\r\n" if self._has_parts else ""
        self._has_parts = True
        lines = [f"{prefix}--{self.boundary}"]
        lines.extend(f"{key}: {value}" for key, value in headers)
        self._buffer.write(("\r\n".join(lines) + "\r\n\r\n").encode("utf-8"))

    def _write_file_part(self, fieldname: str, data: bytes, filename: str) -> None:
        disposition = (
            f'form-data; name="{_escape_quotes(fieldname)}"; '
            f'filename="{_escape_quotes(os.path.basename(filename))}"'
        )
        self._begin_part(
            [("Content-Disposition", disposition), ("Content-Type", _OCTET_STREAM)]
        )
        self._buffer.write(data)

    def create_form_file(self, fieldname: str, file: BinaryIO) -> None:
        """Add a file part holding the whole contents of an open file."""
        self._write_file_part(fieldname, file.read(), getattr(file, "name", ""))

    def create_form_file_reader(self, fieldname: str, reader: BinaryIO, filename: str) -> None:
        """Add a file part holding everything read from ``reader``."""
        self._write_file_part(fieldname, reader.read(), filename)

    def write_field(self, fieldname: str, value: str) -> None:
        """Add a plain text field."""
        disposition = f'form-data; name="{_escape_quotes(fieldname)}"'
        self._begin_part([("Content-Disposition", disposition)])
        self._buffer.write(value.encode("utf-8"))

    def close(self) -> None:
        """Write the closing boundary; no part can be added afterwards."""
        if self._closed:
            return
        prefix = "\r\n" if self._has_parts else ""
        self._buffer.write(f"{prefix}--{self.boundary}--\r\n".encode("utf-8"))
        self._closed = True

    def content_type(self) -> str:
        """Return the ``Content-Type`` header value for this form."""
        return f"multipart/form-data; boundary={self.boundary}"

    def getvalue(self) -> bytes:
        """Return the body written so far."""
        return self._buffer.getvalue()


@dataclass
class AudioRequest:
    """Parameters of a transcription or translation request.

    ``file_path`` names a file on disk, or only gives the file name when
    ``reader`` supplies the contents.
    """

    model: str = ""
    file_path: str = ""
    reader: BinaryIO | None = None
    prompt: str = ""
    temperature: float = 0.0
    language: str = ""
    format: AudioResponseFormat | str = ""
    timestamp_granularities: list[TranscriptionTimestampGranularity | str] = field(
        default_factory=list
    )

    def has_json_response(self) -> bool:
        """Tell whether the response will be JSON."""
        return _plain(self.format) in ("", "json", "verbose_json")


@dataclass
class AudioResponse:
    """Result of a transcription or translation."""

    task: str = ""
    language: str = ""
    duration: float = 0.0
    segments: list[dict[str, Any]] = field(default_factory=list)
    words: list[dict[str, Any]] = field(default_factory=list)
    text: str = ""
    headers: httpx.Headers = field(default_factory=httpx.Headers, repr=False)

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], headers: Mapping[str, str] | None = None
    ) -> "AudioResponse":
        return cls(
            task=data.get("task") or "",
            language=data.get("language") or "",
            duration=float(data.get("duration") or 0.0),
            segments=[dict(item) for item in data.get("segments") or []],
            words=[dict(item) for item in data.get("words") or []],
            text=data.get("text") or "",
            headers=httpx.Headers(headers or {}),
        )


@contextmanager
def _wrapped(prefix: str) -> Iterator[None]:
    try:
        yield
    except Exception as exc:
        raise AudioFormError(f"{prefix}: {exc}") from exc


def create_file_field(request: AudioRequest, builder: Any) -> None:
    """Add the ``file`` part, from the request's reader or from its file path."""
    if request.reader is not None:
        with _wrapped("creating form using reader"):
            builder.create_form_file_reader("file", request.reader, request.file_path)
        return
    with _wrapped("opening audio file"):
        handle = open(request.file_path, "rb")
    with handle, _wrapped("creating form file"):
        builder.create_form_file("file", handle)


def audio_multipart_form(request: AudioRequest, builder: Any) -> None:
    """Write the audio file and the request's parameters into ``builder`` and close it."""
    create_file_field(request, builder)
    with _wrapped("writing model name"):
        builder.write_field("model", request.model)
    if request.prompt:
        with _wrapped("writing prompt"):
            builder.write_field("prompt", request.prompt)
    if _plain(request.format):
        with _wrapped("writing format"):
            builder.write_field("response_format", _plain(request.format))
    if request.temperature != 0:
        with _wrapped("writing temperature"):
            builder.write_field("temperature", f"{request.temperature:.2f}")
    if request.language:
        with _wrapped("writing language"):
            builder.write_field("language", request.language)
    for granularity in request.timestamp_granularities:
        with _wrapped("writing timestamp_granularities[]"):
            builder.write_field("timestamp_granularities[]", _plain(granularity))
    builder.close()


class AudioMixin:
    """Adds the audio endpoints to a client built on ``BaseClient``."""

    def _call_audio_api(self, request: AudioRequest, endpoint: str) -> AudioResponse:
        builder = FormBuilder()
        audio_multipart_form(request, builder)
        url = self.full_url(f"/audio/{endpoint}", model=request.model)  # type: ignore[attr-defined]
        if request.has_json_response():
            data, headers = self.send(  # type: ignore[attr-defined]
                "POST", url, body=builder.getvalue(), content_type=builder.content_type()
            )
            return AudioResponse.from_dict(data, headers)
        text, headers = self.send(  # type: ignore[attr-defined]
            "POST",
            url,
            body=builder.getvalue(),
            content_type=builder.content_type(),
            kind="text",
        )
        return AudioResponse(text=text, headers=httpx.Headers(headers))

    def create_transcription(self, request: AudioRequest) -> AudioResponse:
        """Transcribe audio into text."""
        return self._call_audio_api(request, "transcriptions")

    def create_translation(self, request: AudioRequest) -> AudioResponse:
        """Translate audio into English."""
        return self._call_audio_api(request, "translations")