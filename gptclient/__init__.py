"""A synchronous client for the OpenAI-compatible HTTP API: completions, chat, assistants, audio and batches."""

__version__ = "0.1.0"