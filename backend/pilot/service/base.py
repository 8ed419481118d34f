"""Model service interface."""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from ..scheduling import CancellationToken


class ModelService(Protocol):
    """What the core needs from a generative-model backend.

    Generation calls return None when ``cancellation`` fired before the
    backend answered; cancellation is never reported as an error.
    """

    async def generate_completion(
        self,
        prompt: str,
        cancellation: Optional[CancellationToken] = None,
        system: Optional[str] = None,
    ) -> Optional[str]: ...

    async def chat(
        self,
        messages: List[Dict[str, str]],
        cancellation: Optional[CancellationToken] = None,
    ) -> Optional[Dict[str, str]]: ...

    async def embed(self, text: str) -> List[float]: ...

    async def load_model(self, name: str) -> Dict: ...

    async def unload_model(self, name: str) -> Dict: ...
