"""The API client joining every endpoint group, and its constructors."""

from __future__ import annotations

import httpx

from gptclient.assistant import AssistantMixin
from gptclient.audio import AudioMixin
from gptclient.batch import BatchMixin
from gptclient.chat import ChatMixin
from gptclient.client import BaseClient, ClientConfig, default_config
from gptclient.completion import CompletionMixin


class Client(CompletionMixin, ChatMixin, AssistantMixin, AudioMixin, BatchMixin, BaseClient):
    """Client for the completion, chat, assistant, audio and batch endpoints."""


def new_client(auth_token: str) -> Client:
    """Create a client for the public API with the given token."""
    return new_client_with_config(default_config(auth_token))


def new_client_with_config(
    config: ClientConfig, http_client: httpx.Client | None = None
) -> Client:
    """Create a client from a configuration, optionally over a given HTTP client."""
    return Client(config, http_client)


def new_org_client(auth_token: str, org: str) -> Client:
    """Create a client that sends requests on behalf of an organization."""
    config = default_config(auth_token)
    config.org_id = org
    return new_client_with_config(config)