import io
import json

import httpx
import pytest

from gptclient.audio import (
    AudioFormError,
    AudioMixin,
    AudioRequest,
    AudioResponse,
    AudioResponseFormat,
    FormBuilder,
    TranscriptionTimestampGranularity,
    audio_multipart_form,
    create_file_field,
)
from gptclient.client import BaseClient, default_config


class MockFormBuilder:
    def __init__(self, create_form_file=None, create_form_file_reader=None, write_field=None):
        self._create_form_file = create_form_file
        self._create_form_file_reader = create_form_file_reader
        self._write_field = write_field
        self.closed = False

    def create_form_file(self, fieldname, file):
        if self._create_form_file:
            self._create_form_file(fieldname, file)

    def create_form_file_reader(self, fieldname, reader, filename):
        if self._create_form_file_reader:
            self._create_form_file_reader(fieldname, reader, filename)

    def write_field(self, fieldname, value):
        if self._write_field:
            self._write_field(fieldname, value)

    def close(self):
        self.closed = True


@pytest.fixture
def fake_mp3(tmp_path):
    path = tmp_path / "fake.mp3"
    path.write_bytes(b"hello")
    return str(path)


def _full_request(path):
    return AudioRequest(
        file_path=path,
        prompt="test",
        temperature=0.5,
        language="en",
        format=AudioResponseFormat.SRT,
        timestamp_granularities=[
            TranscriptionTimestampGranularity.SEGMENT,
            TranscriptionTimestampGranularity.WORD,
        ],
    )


def test_audio_form_fails_when_create_form_file_fails(fake_mp3):
    mock_err = RuntimeError("mock form builder fail")

    def fail(*_):
        raise mock_err

    with pytest.raises(AudioFormError) as excinfo:
        audio_multipart_form(_full_request(fake_mp3), MockFormBuilder(create_form_file=fail))
    assert excinfo.value.__cause__ is mock_err


@pytest.mark.parametrize(
    "failing_field",
    ["model", "prompt", "temperature", "language", "response_format", "timestamp_granularities[]"],
)
def test_audio_form_fails_on_each_field(fake_mp3, failing_field):
    mock_err = RuntimeError(f"mock form builder fail on field {failing_field}")

    def write_field(fieldname, _value):
        if fieldname == failing_field:
            raise mock_err

    builder = MockFormBuilder(write_field=write_field)
    with pytest.raises(AudioFormError) as excinfo:
        audio_multipart_form(_full_request(fake_mp3), builder)
    assert excinfo.value.__cause__ is mock_err
    assert builder.closed is False


def test_create_file_field_failing_file(fake_mp3):
    mock_err = RuntimeError("mock form builder fail")

    def fail(*_):
        raise mock_err

    with pytest.raises(AudioFormError) as excinfo:
        create_file_field(AudioRequest(file_path=fake_mp3), MockFormBuilder(create_form_file=fail))
    assert excinfo.value.__cause__ is mock_err
    assert str(excinfo.value).startswith("creating form file")


def test_create_file_field_failing_reader():
    mock_err = RuntimeError("mock form builder fail")

    def fail(*_):
        raise mock_err

    request = AudioRequest(file_path="test.wav", reader=io.BytesIO(b"wav test contents"))
    with pytest.raises(AudioFormError) as excinfo:
        create_file_field(request, MockFormBuilder(create_form_file_reader=fail))
    assert excinfo.value.__cause__ is mock_err
    assert str(excinfo.value).startswith("creating form using reader")


def test_create_file_field_failing_open(tmp_path):
    request = AudioRequest(file_path=str(tmp_path / "non_existing_file.wav"))
    with pytest.raises(AudioFormError) as excinfo:
        create_file_field(request, MockFormBuilder())
    assert isinstance(excinfo.value.__cause__, FileNotFoundError)


def test_form_builder_exact_bytes():
    builder = FormBuilder(boundary="b")
    builder.write_field("model", "whisper-1")
    builder.create_form_file_reader("file", io.BytesIO(b"abc"), "dir/a.wav")
    builder.close()
    assert builder.getvalue() == (
        b'--b\r\nContent-Disposition: form-data; name="model"\r\n\r\nwhisper-1'
        b'\r\n--b\r\nContent-Disposition: form-data; name="file"; filename="a.wav"\r\n'
        b"Content-Type: application/octet-stream\r\n\r\nabc\r\n--b--\r\n"
    )
    assert builder.content_type() == "multipart/form-data; boundary=b"


def test_form_builder_rejects_parts_after_close():
    builder = FormBuilder(boundary="b")
    builder.close()
    with pytest.raises(ValueError):
        builder.write_field("model", "x")


def test_form_builder_file_uses_basename(fake_mp3):
    builder = FormBuilder(boundary="b")
    with open(fake_mp3, "rb") as handle:
        builder.create_form_file("file", handle)
    body = builder.getvalue()
    assert b'filename="fake.mp3"' in body
    assert body.endswith(b"\r\n\r\nhello")


def test_audio_multipart_form_fields_in_order(fake_mp3):
    request = _full_request(fake_mp3)
    request.model = "whisper-1"
    builder = FormBuilder(boundary="xyz")
    audio_multipart_form(request, builder)
    body = builder.getvalue()
    markers = [
        b'name="file"',
        b'name="model"\r\n\r\nwhisper-1',
        b'name="prompt"\r\n\r\ntest',
        b'name="response_format"\r\n\r\nsrt',
        b'name="temperature"\r\n\r\n0.50',
        b'name="language"\r\n\r\nen',
        b'name="timestamp_granularities[]"\r\n\r\nsegment',
        b'name="timestamp_granularities[]"\r\n\r\nword',
    ]
    positions = [body.index(marker) for marker in markers]
    assert positions == sorted(positions)
    assert body.endswith(b"--xyz--\r\n")


def test_audio_multipart_form_omits_unset_fields():
    request = AudioRequest(model="whisper-1", file_path="a.wav", reader=io.BytesIO(b"x"))
    builder = FormBuilder(boundary="b")
    audio_multipart_form(request, builder)
    body = builder.getvalue()
    assert b'name="model"' in body
    for name in (b"prompt", b"response_format", b"temperature", b"language", b"timestamp"):
        assert name not in body


@pytest.mark.parametrize(
    ("fmt", "expected"),
    [
        ("", True),
        (AudioResponseFormat.JSON, True),
        (AudioResponseFormat.VERBOSE_JSON, True),
        (AudioResponseFormat.TEXT, False),
        (AudioResponseFormat.SRT, False),
        (AudioResponseFormat.VTT, False),
        ("verbose_json", True),
    ],
)
def test_has_json_response(fmt, expected):
    assert AudioRequest(format=fmt).has_json_response() is expected


def test_audio_response_from_dict():
    response = AudioResponse.from_dict(
        {"task": "transcribe", "language": "english", "duration": 1.5, "text": "hi",
         "words": [{"word": "hi", "start": 0.0, "end": 0.5}]},
        {"X-Test": "1"},
    )
    assert response.task == "transcribe"
    assert response.duration == 1.5
    assert response.words[0]["word"] == "hi"
    assert response.text == "hi"
    assert response.headers["x-test"] == "1"


class _AudioClient(AudioMixin, BaseClient):
    pass


def _client(handler):
    config = default_config("token")
    config.base_url = "http://localhost/v1"
    return _AudioClient(config, http_client=httpx.Client(transport=httpx.MockTransport(handler)))


def test_create_transcription_json():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["content_type"] = request.headers["content-type"]
        seen["body"] = request.content
        return httpx.Response(200, content=json.dumps({"text": "hello", "task": "transcribe"}))

    request = AudioRequest(model="whisper-1", file_path="a.wav", reader=io.BytesIO(b"wav"))
    with _client(handler) as client:
        response = client.create_transcription(request)
    assert response.text == "hello"
    assert response.task == "transcribe"
    assert seen["url"] == "http://localhost/v1/audio/transcriptions"
    assert seen["content_type"].startswith("multipart/form-data; boundary=")
    assert b"wav" in seen["body"]


def test_create_translation_text_format():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        return httpx.Response(200, content=b"1\n00:00:00,000 --> 00:00:01,000\nhi\n")

    request = AudioRequest(
        model="whisper-1", file_path="a.wav", reader=io.BytesIO(b"wav"),
        format=AudioResponseFormat.SRT,
    )
    with _client(handler) as client:
        response = client.create_translation(request)
    assert response.text == "1\n00:00:00,000 --> 00:00:01,000\nhi\n"
    assert seen["url"] == "http://localhost/v1/audio/translations"


def test_create_transcription_missing_file_sends_nothing(tmp_path):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(200, content=b"{}")

    with _client(handler) as client:
        with pytest.raises(AudioFormError):
            client.create_transcription(AudioRequest(file_path=str(tmp_path / "missing.wav")))
    assert calls == []