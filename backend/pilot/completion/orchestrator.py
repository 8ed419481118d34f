"""Retrieval-augmented inline completion."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..core import Chunk
from ..core.errors import PilotError
from ..prompt import PromptBuilder, clean_completion
from ..scheduling import CancellationToken
from ..search import Retriever
from ..service import ModelService

logger = logging.getLogger(__name__)


def _cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.is_cancellation_requested


class CompletionOrchestrator:
    """Retriever + prompt + model call + cleanup as one cancellable unit.

    ``complete`` returns None when cancelled at any checkpoint and a
    (possibly empty) string otherwise. Retrieval is best effort; model
    service failures propagate.
    """

    def __init__(
        self,
        service: ModelService,
        retriever: Retriever,
        prompt_builder: PromptBuilder,
        system_message: str = "",
    ):
        self.service = service
        self.retriever = retriever
        self.prompt_builder = prompt_builder
        self.system_message = system_message

    async def _project_context(
        self, context_window: str, cancellation: Optional[CancellationToken]
    ) -> List[Tuple[float, Chunk]]:
        try:
            return await self.retriever.search(context_window, cancellation=cancellation)
        except PilotError as e:
            logger.warning(f"Retrieval failed, completing without project context: {e}")
            return []

    async def complete(
        self,
        context_window: str,
        document: str,
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[str]:
        if _cancelled(cancellation):
            return None

        hits = await self._project_context(context_window, cancellation)
        if _cancelled(cancellation):
            return None

        prompt = self.prompt_builder.build_prompt(document, context_window, hits)
        raw = await self.service.generate_completion(prompt, cancellation, system=self.system_message or None)
        if raw is None or _cancelled(cancellation):
            return None

        completion = clean_completion(context_window, raw)
        logger.debug(f"Completion for {document}: {len(raw)} chars raw, {len(completion)} kept")
        return completion
