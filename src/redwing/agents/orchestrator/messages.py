"""Synthetic messages injected into origin agents and delivery targets."""

from __future__ import annotations

from redwing.core.config import EscalationConfig
from redwing.models.escalation import Escalation
from redwing.models.messages import AdminDecision, InjectionPurpose, SyntheticResumeMessage


def resume_body(escalation: Escalation, decision: AdminDecision) -> str:
    requester = escalation.user_name or escalation.from_phone
    return (
        "SYSTEM EVENT: ESCALATION_RESOLVED\n"
        f"Admin Decision: {decision.decision}\n"
        f"Admin Instruction: {decision.instruction}\n"
        f"Original Request: {escalation.reason}\n"
        "\n"
        f"TASK: Inform the user ({requester}) of this outcome politely. "
        "Acknowledge the admin's decision and provide next steps."
    )


def clarification_body(escalation: Escalation, question: str) -> str:
    return (
        "SYSTEM EVENT: ESCALATION_CLARIFICATION_REQUESTED\n"
        f"Admin Question: {question}\n"
        f"Original Request: {escalation.reason}\n"
        f"What You Needed: {escalation.what_agent_needed}\n"
        "\n"
        "TASK: Answer the admin's question from the conversation so far. "
        "Reply with the clarification only."
    )


def synthetic_message(
    escalation: Escalation,
    body: str,
    purpose: InjectionPurpose = InjectionPurpose.RESUME,
) -> SyntheticResumeMessage:
    return SyntheticResumeMessage(
        from_=escalation.from_phone,
        body=body,
        context=escalation.origin_agent,
        school_id=escalation.school_id,
        system_injection=True,
        escalation_resume_id=escalation.id,
        purpose=purpose,
        user_role=escalation.user_role,
    )


def delivery_target(escalation: Escalation, config: EscalationConfig) -> str:
    """Requester address in the form the transport expects (group JIDs get a suffix)."""
    target = escalation.from_phone
    if escalation.origin_agent in config.group_origin_agents and "@" not in target:
        return f"{target}{config.group_suffix}"
    return target


def resolution_record(decision: AdminDecision, reply_text: str | None) -> str:
    lines = [
        "SYSTEM EVENT: ESCALATION_RESOLVED",
        f"Admin Decision: {decision.decision}",
        f"Admin Instruction: {decision.instruction}",
    ]
    if reply_text:
        lines.append(f"Agent Response: {reply_text}")
    return "\n".join(lines)
