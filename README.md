# gptclient

A small, synchronous Python client, built on `httpx`, for the OpenAI HTTP API and
compatible services (Azure OpenAI included). It covers text completions, chat
completions, assistants and assistant files, audio transcription and translation,
and batches.

## Installation

```
pip install gptclient
```

The tests need the `test` extra:

```
pip install "gptclient[test]"
```

## Quick start

```python
from gptclient.api import new_client
from gptclient.chat import ChatCompletionMessage, ChatCompletionRequest

with new_client("token") as client:
    response = client.create_chat_completion(
        ChatCompletionRequest(
            model="gpt-3.5-turbo",
            messages=[ChatCompletionMessage(role="user", content="Hello!")],
            max_tokens=5,
        )
    )
    print(response.choices[0].message.content)
```

`Client` (in `gptclient.api`) is a context manager; leaving the `with` block
closes the underlying `httpx.Client` if the client created it.

## Configuration

`default_config(auth_token)` in `gptclient.client` returns a `ClientConfig`
that you can adjust before building a client with `new_client_with_config`:

```python
from gptclient.api import new_client_with_config
from gptclient.client import APIType, default_config

config = default_config("token")
config.base_url = "https://example.com/v1"
client = new_client_with_config(config)
```

`new_client_with_config(config, http_client)` also accepts an `httpx.Client` of
your own (for instance one with a custom transport); it is then left open when
the client is closed.

`new_org_client(auth_token, org)` sets `org_id`, sent as the
`OpenAI-Organization` header.

The `ClientConfig` fields are `auth_token`, `base_url`, `org_id`, `api_type`,
`api_version`, `assistant_version` (sent in the `OpenAI-Beta` header of
assistant calls, `v2` by default), `azure_model_mapper` and
`empty_messages_limit`.

### Azure

With `api_type` set to `APIType.AZURE` or `APIType.AZURE_AD`, URLs are built
under `<base_url>/openai`, and the completion, chat, audio and similar endpoints
go through `/deployments/<name>`. The deployment name comes from
`ClientConfig.get_azure_deployment_by_model`: `azure_model_mapper(model)` when a
mapper is set, the model name otherwise, and `UNKNOWN` when that is empty.
With `APIType.AZURE` or `APIType.CLOUDFLARE_AZURE` the token goes in the
`api-key` header; otherwise it is sent as `Authorization: Bearer ...`.
A non-empty `api_version` is added to every URL as the `api-version` query
parameter.

## Endpoints

- **Completions** (`gptclient.completion`) – `create_completion(CompletionRequest(...))`.
  Chat-only models raise `CompletionUnsupportedModelError`, `stream=True` raises
  `CompletionStreamNotSupportedError`, and a prompt that is not a string or a
  list of strings raises `CompletionPromptTypeError`.
- **Chat** (`gptclient.chat`) – `create_chat_completion(ChatCompletionRequest(...))`.
  Completion-only models raise `ChatCompletionInvalidModelError` and
  `stream=True` raises `ChatCompletionStreamNotSupportedError`. A message holds
  either plain `content` or a list of `ChatMessagePart` items (text and image
  URLs), not both (`ContentFieldsMisusedError`). Functions and tools are given
  with `FunctionDefinition` and `Tool`.
- **Assistants** (`gptclient.assistant`) – `create_assistant`,
  `retrieve_assistant`, `modify_assistant`, `delete_assistant`,
  `list_assistants`, and `create_assistant_file`, `retrieve_assistant_file`,
  `list_assistant_files`, `delete_assistant_file`. In an `AssistantRequest`,
  `tools=None` leaves the tools out of the body, while an empty list is sent as
  `[]` to remove them all.
- **Audio** (`gptclient.audio`) – `create_transcription` and
  `create_translation` from an `AudioRequest` that names a file on disk
  (`file_path`) or carries a readable binary object (`reader`). Text, SRT and VTT
  formats come back in `AudioResponse.text`.
- **Batches** (`gptclient.batch`) – `UploadBatchFileRequest` collects chat and
  completion requests (`add_chat_completion`, `add_completion`) and renders them
  with `marshal_jsonl()`. `create_batch` (the completion window defaults to
  `24h`), `retrieve_batch`, `cancel_batch` and `list_batch` manage batches.

## Errors

A response with a failing status code raises `APIError` when its body holds a
JSON `error` object, and `RequestError` otherwise. Both carry
`http_status_code`, and their messages read like
`error, status code: 401, message: ...`.

## Response headers

Every response object keeps the HTTP headers it arrived with in its `headers`
field, so values such as rate-limit headers can be read after a call.

## What this package does not do

- It has no streaming calls. `ChatCompletionStreamResponse.from_dict` parses one
  already-decoded stream chunk, but nothing here opens or reads an event stream.
- It has no file upload. `create_batch` needs the ID of an input file that is
  already on the server; `marshal_jsonl()` only produces the file's contents.
- It has no embeddings, images, models, fine-tuning, threads, runs or speech
  endpoints, and no command-line program.