"""Reply normalisation shared by every origin agent call site."""

from __future__ import annotations

from typing import Any

from redwing.models.messages import AgentReply


def coerce_reply(result: Any) -> AgentReply | None:
    """Normalise whatever an origin agent returned into an ``AgentReply``."""
    if result is None:
        return None
    if isinstance(result, AgentReply):
        return result
    if isinstance(result, str):
        return AgentReply(reply_text=result)
    if isinstance(result, dict):
        return AgentReply.model_validate(result)
    reply_text = getattr(result, "reply_text", None)
    if reply_text is not None:
        return AgentReply(reply_text=str(reply_text))
    raise TypeError(f"Unsupported origin agent reply type: {type(result).__name__}")

