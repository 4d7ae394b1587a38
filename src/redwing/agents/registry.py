"""Closed mapping from origin-agent tag to the live handler instance."""

from __future__ import annotations

import logging
from typing import Mapping

from redwing.core.protocols import IOriginAgent
from redwing.models.escalation import OriginAgent

logger = logging.getLogger(__name__)


class OriginAgentRegistry:
    """Static registry built once at startup; no plugin discovery."""

    def __init__(self, handlers: Mapping[OriginAgent | str, IOriginAgent] | None = None) -> None:
        self._handlers: dict[OriginAgent, IOriginAgent] = {}
        for tag, handler in (handlers or {}).items():
            self.register(tag, handler)

    def register(self, tag: OriginAgent | str, handler: IOriginAgent) -> None:
        try:
            key = OriginAgent(tag)
        except ValueError:
            raise ValueError(f"{tag!r} is not an origin agent tag") from None
        if not isinstance(handler, IOriginAgent):
            raise TypeError(f"Handler for {key} has no async handle(message)")
        self._handlers[key] = handler

    def resolve(self, tag: OriginAgent | str) -> IOriginAgent | None:
        try:
            key = OriginAgent(tag)
        except ValueError:
            logger.warning("Unknown origin agent type %r", tag, extra={"origin_agent": str(tag)})
            return None
        return self._handlers.get(key)

    def missing(self) -> list[OriginAgent]:
        return [tag for tag in OriginAgent if tag not in self._handlers]

    def __contains__(self, tag: object) -> bool:
        try:
            return OriginAgent(tag) in self._handlers
        except (TypeError, ValueError):
            return False
