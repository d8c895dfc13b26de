"""
AI service - handles chat completions against the configured LLM provider.
"""

from .llm_client import (
    CompletionClient,
    CompletionError,
    CompletionNetworkError,
    MissingCredentialError,
    UpstreamError,
    get_completion_client
)

__all__ = [
    'CompletionClient',
    'CompletionError',
    'CompletionNetworkError',
    'MissingCredentialError',
    'UpstreamError',
    'get_completion_client'
]
