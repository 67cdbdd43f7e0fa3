"""LLM-facing abstractions for chapter subdivision.

This package defines the prompt library, response parser, chat and token
counting collaborators, and the OpenAI HTTP client.
"""

from .chat import ChatCompleter, OpenAIChatCompleter
from .openai_client import OpenAIChatClient, OpenAIProviderError
from .prompts import PromptLibrary
from .rate_limiter import RateLimiter
from .response_parser import AIResponseParser, ResponseParseResult
from .token_counter import ApproximateTokenCounter, TiktokenTokenCounter, TokenCounter

__all__ = [
    "AIResponseParser",
    "ApproximateTokenCounter",
    "ChatCompleter",
    "OpenAIChatClient",
    "OpenAIChatCompleter",
    "OpenAIProviderError",
    "PromptLibrary",
    "RateLimiter",
    "ResponseParseResult",
    "TiktokenTokenCounter",
    "TokenCounter",
]
