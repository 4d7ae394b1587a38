"""Origin-specific heads-up messages sent alongside the conversational resume."""

from __future__ import annotations

from typing import Callable, Mapping

from redwing.models.context import MarkAmendmentContext, parse_context
from redwing.models.escalation import Decision, Escalation, OriginAgent
from redwing.models.messages import AdminDecision

# Returns the text to push to the requester, or None to skip.
SideNotifier = Callable[[Escalation, AdminDecision], "str | None"]


def mark_amendment_notice(escalation: Escalation, decision: AdminDecision) -> str | None:
    ctx = parse_context(escalation.escalation_type, escalation.context)
    if not isinstance(ctx, MarkAmendmentContext):
        ctx = MarkAmendmentContext()
    subject_line = f"*{ctx.student_name}* ({ctx.subject})"
    if decision.decision is Decision.APPROVED:
        new_score = f"\nNew score: {ctx.new_score:g}" if ctx.new_score is not None else ""
        return (
            "*Amendment Approved*\n\n"
            f"Your amendment request for {subject_line} has been approved by the admin.{new_score}"
        )
    reason = (
        f"Reason: {decision.instruction}" if decision.instruction
        else "Please contact the admin if you have questions."
    )
    return (
        "*Amendment Denied*\n\n"
        f"Your amendment request for {subject_line} has been denied by the admin.\n\n{reason}"
    )


DEFAULT_SIDE_NOTIFIERS: Mapping[tuple[OriginAgent, str], SideNotifier] = {
    (OriginAgent.TA, "MARK_AMENDMENT"): mark_amendment_notice,
}
