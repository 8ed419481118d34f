"""Model service client and chat."""

from .base import ModelService
from .chat import ChatSession
from .ollama_client import OllamaClient, OllamaConfig, create_client

__all__ = ["ModelService", "ChatSession", "OllamaClient", "OllamaConfig", "create_client"]
