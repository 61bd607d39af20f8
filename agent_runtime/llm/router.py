# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""
Routes each completion request to one of several named backends.

Routing is a cheap keyword heuristic over the user prompt and the history
length; it never calls a model itself.
"""

import asyncio
import logging

from .base import ChatBackend
from ..types.llm_types import ChatMessage, ModelResponse

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

CODE_KEYWORDS = ("code", "function")
REASONING_KEYWORDS = ("browse", "search", "analyze")
LONG_CONTEXT_TURNS = 10


def choose_route(user_prompt: str, history: list[ChatMessage]) -> str:
    prompt = user_prompt.lower()
    if any(k in prompt for k in CODE_KEYWORDS):
        return "code"
    if any(k in prompt for k in REASONING_KEYWORDS):
        return "reasoning"
    if len(history) > LONG_CONTEXT_TURNS:
        return "long_context"
    return "cheap"


class BackendRouter(ChatBackend):
    """A ChatBackend that delegates to a named backend per request.

    Routes without a registered backend fall back to the first backend
    registered.
    """

    def __init__(self, backends: dict[str, ChatBackend] | None = None):
        self._backends: dict[str, ChatBackend] = dict(backends or {})

    def register(self, route: str, backend: ChatBackend) -> None:
        self._backends[route] = backend

    def select(self, user_prompt: str, history: list[ChatMessage]) -> ChatBackend:
        if not self._backends:
            raise RuntimeError("No model backends are registered")

        route = choose_route(user_prompt, history)
        backend = self._backends.get(route)
        if backend is None:
            fallback = next(iter(self._backends))
            logger.debug(f"No backend for route {route}, using {fallback}")
            return self._backends[fallback]
        logger.debug(f"Routing request to {route}")
        return backend

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        history: list[ChatMessage],
        cancellation: asyncio.Event | None = None,
    ) -> ModelResponse:
        backend = self.select(user_prompt, history)
        return await backend.complete(system_prompt, user_prompt, history, cancellation)
