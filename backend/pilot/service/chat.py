"""Chat with retrieved project context."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from ..core.errors import PilotError
from ..scheduling import CancellationToken
from ..search import Retriever, format_context
from .base import ModelService

logger = logging.getLogger(__name__)


class ChatSession:
    """A single running chat transcript.

    The transcript starts with the system message and holds user and
    assistant turns. Retrieved project context is sent along with each
    question but not kept. ``history_limit`` caps the number of non-system
    messages kept (0 keeps everything); the oldest go first.
    """

    def __init__(
        self,
        service: ModelService,
        retriever: Retriever,
        system_message: str = "",
        history_limit: int = 0,
    ):
        self.service = service
        self.retriever = retriever
        self.system_message = system_message
        self.history_limit = max(0, history_limit)
        self.conversation_history: List[Dict[str, str]] = []

    def messages(self) -> List[Dict[str, str]]:
        return list(self.conversation_history)

    def reset(self) -> None:
        self.conversation_history = []

    def _append(self, message: Dict[str, str]) -> None:
        self.conversation_history.append(message)
        if self.history_limit and len(self.conversation_history) > self.history_limit:
            del self.conversation_history[: len(self.conversation_history) - self.history_limit]

    async def _project_context(self, prompt: str, cancellation: Optional[CancellationToken]) -> str:
        try:
            hits = await self.retriever.search(prompt, cancellation=cancellation)
        except PilotError as e:
            logger.warning(f"Retrieval failed, answering without project context: {e}")
            return ""
        return format_context(hits)

    async def ask(self, prompt: str, cancellation: Optional[CancellationToken] = None) -> Optional[Dict[str, str]]:
        """Send ``prompt``; returns the assistant message, or None if cancelled."""
        project_context = await self._project_context(prompt, cancellation)

        outgoing: List[Dict[str, str]] = []
        if self.system_message.strip():
            outgoing.append({"role": "system", "content": self.system_message.strip()})
        outgoing.extend(self.conversation_history)
        if project_context:
            outgoing.append({
                "role": "system",
                "content": f"<code_from_other_files>\n{project_context}\n</code_from_other_files>",
            })
        user_message = {"role": "user", "content": prompt.strip()}
        outgoing.append(user_message)

        reply = await self.service.chat(outgoing, cancellation)
        if reply is None:
            return None
        self._append(user_message)
        self._append(reply)
        return reply
