"""Redaction of sensitive values before conversation history is persisted."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from redwing.models.messages import HistoryEnvelope

INTERNAL_PREFIXES = ("SYSTEM COMMAND:", "SYSTEM EVENT:")


@dataclass(frozen=True)
class MaskingRules:
    """Patterns replaced by :func:`mask_sensitive`."""

    phone: re.Pattern[str] = re.compile(r"\+?[0-9]{10,15}")
    amount: re.Pattern[str] = re.compile(
        r"(?:₦|NGN|[Nn]aira)\s*\d{1,3}(?:,\d{3})*(?:\.\d{2})?"
        r"|\d{1,3}(?:,\d{3})*(?:\.\d{2})?\s*(?:naira|ngn)\b",
        re.IGNORECASE,
    )
    transaction_id: re.Pattern[str] = re.compile(
        r"(?:transaction|ref|payment|txn)[-_\s]?(?:id)?[:\s]+((?-i:[A-Z0-9]{6,20}))",
        re.IGNORECASE,
    )
    student_name: re.Pattern[str] = re.compile(
        r"(?:student|learner|pupil)[:\s]+([A-Za-z]+(?:\s+[A-Za-z]+){0,2})",
        re.IGNORECASE,
    )
    access_tokens: tuple[re.Pattern[str], ...] = field(default_factory=lambda: (
        re.compile(r"(?:Bearer|Token|Auth)[:\s]+[A-Za-z0-9\-_.]{10,}", re.IGNORECASE),
        re.compile(r"(?:api[_-]?key|apikey|secret)[:\s]+[A-Za-z0-9]{16,}", re.IGNORECASE),
        re.compile(r"eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*"),
    ))


DEFAULT_RULES = MaskingRules()


def _replace_group(pattern: re.Pattern[str], text: str, placeholder: str) -> str:
    def sub(match: re.Match[str]) -> str:
        whole = match.group(0)
        return whole.replace(match.group(1), placeholder)

    return pattern.sub(sub, text)


def mask_sensitive(text: str, rules: MaskingRules = DEFAULT_RULES) -> str:
    """Return ``text`` with phone numbers, amounts, ids, names and tokens redacted."""
    if not text:
        return text
    masked = rules.phone.sub("[REDACTED_PHONE]", text)
    masked = rules.amount.sub("[REDACTED_AMOUNT]", masked)
    masked = _replace_group(rules.transaction_id, masked, "[REDACTED_TXN_ID]")
    masked = _replace_group(rules.student_name, masked, "[REDACTED_NAME]")
    for pattern in rules.access_tokens:
        masked = pattern.sub("[REDACTED_ACCESS_TOKEN]", masked)
    return masked


def render_history_body(envelope: HistoryEnvelope, mask: bool = True) -> tuple[str, bool]:
    """Body to persist for a history envelope and whether it is internal-only.

    System-sourced bodies are prefixed ``[SYSTEM BRIEFING]``; ``SYSTEM EVENT:``
    and ``SYSTEM COMMAND:`` bodies never show up in the user-visible window.
    """
    body = envelope.body
    is_internal = (
        body.startswith(INTERNAL_PREFIXES)
        or envelope.source == "system_internal"
    )
    if envelope.source == "system":
        body = f"[SYSTEM BRIEFING] {body}"
    if mask:
        body = mask_sensitive(body)
    return body, is_internal
