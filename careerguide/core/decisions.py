"""
Admission decision state machine.

    pending  --admit-->    admitted   (institution; only if the application is qualified)
    pending  --reject-->   rejected   (institution)
    pending  --waitlist--> waitlisted (institution)
    admitted --accept-->   accepted   (student; one accepted application per student)
    pending | admitted | waitlisted --withdraw--> withdrawn (student)

Nothing else moves. Asking for the status an application already has is a
no-op, so retried requests are harmless.

The machine only plans transitions; it never writes. Each TransitionPlan
carries the status it expects to find so the repository can refuse the write
if another request got there first.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from careerguide.core.errors import IllegalTransitionError, ValidationError
from careerguide.core.models import Application, ApplicationStatus, RequestContext, Role

logger = logging.getLogger(__name__)

S = ApplicationStatus

ACTIONS = {
    "admit": S.ADMITTED,
    "reject": S.REJECTED,
    "waitlist": S.WAITLISTED,
    "accept": S.ACCEPTED,
    "withdraw": S.WITHDRAWN,
}

INSTITUTION_ACTIONS = frozenset({"admit", "reject", "waitlist"})
STUDENT_ACTIONS = frozenset({"accept", "withdraw"})

ALLOWED_FROM = {
    S.ADMITTED: frozenset({S.PENDING}),
    S.REJECTED: frozenset({S.PENDING}),
    S.WAITLISTED: frozenset({S.PENDING}),
    S.ACCEPTED: frozenset({S.ADMITTED}),
    S.WITHDRAWN: frozenset({S.PENDING, S.ADMITTED, S.WAITLISTED}),
}

TIMESTAMP_FIELDS = {
    S.ADMITTED: "admitted_at",
    S.REJECTED: "rejected_at",
    S.WAITLISTED: "waitlisted_at",
    S.ACCEPTED: "accepted_at",
    S.WITHDRAWN: "withdrawn_at",
}

CASCADE_NOTE = "Student accepted admission elsewhere"


@dataclass
class TransitionPayload:
    notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    waitlist_position: Optional[int] = None


@dataclass
class TransitionPlan:
    application_id: str
    expected_status: ApplicationStatus
    new_status: ApplicationStatus
    fields: Dict[str, Any] = field(default_factory=dict)


def target_status(action: str) -> ApplicationStatus:
    try:
        return ACTIONS[(action or "").strip().lower()]
    except KeyError:
        raise IllegalTransitionError(f"Unknown action: {action!r}", action=action) from None


class DecisionStateMachine:

    def authorize(self, application: Application, action: str, context: RequestContext) -> None:
        if action in STUDENT_ACTIONS:
            if context.role != Role.STUDENT or context.actor_id != application.student_id:
                raise IllegalTransitionError(
                    f"Only the applicant can {action} this application",
                    current_status=application.status.value, action=action,
                )
            return

        if context.role == Role.ADMIN:
            return
        if context.role not in (Role.INSTITUTION, Role.COMPANY) or context.actor_id != application.institution_id:
            raise IllegalTransitionError(
                f"Only the receiving institution can {action} this application",
                current_status=application.status.value, action=action,
            )

    def plan(
        self,
        application: Application,
        action: str,
        payload: Optional[TransitionPayload],
        context: RequestContext,
        student_applications: Iterable[Application],
        now: datetime,
    ) -> Optional[TransitionPlan]:
        """Return the write needed for `action`, or None when the application is already there."""
        action = (action or "").strip().lower()
        new_status = target_status(action)
        self.authorize(application, action, context)

        current = application.status
        if current == new_status:
            logger.info("Application %s already %s; nothing to do", application.id, current.value)
            return None

        if current not in ALLOWED_FROM[new_status]:
            raise IllegalTransitionError(
                f"Cannot {action} an application that is {current.value}",
                current_status=current.value, action=action,
            )

        if new_status == S.ADMITTED and not application.is_qualified:
            raise IllegalTransitionError(
                "Cannot admit unqualified student",
                current_status=current.value, action=action,
            )

        if new_status == S.ACCEPTED:
            for other in student_applications:
                if other.id != application.id and other.status == S.ACCEPTED:
                    raise IllegalTransitionError(
                        f"Student has already accepted application {other.id}",
                        current_status=current.value, action=action,
                    )

        fields = {TIMESTAMP_FIELDS[new_status]: now}
        payload = payload or TransitionPayload()
        if payload.notes:
            fields["notes"] = payload.notes
        if new_status == S.REJECTED and payload.rejection_reason:
            fields["rejection_reason"] = payload.rejection_reason
        if new_status == S.WAITLISTED and payload.waitlist_position is not None:
            if int(payload.waitlist_position) < 1:
                raise ValidationError("waitlist_position must be a positive integer")
            fields["waitlist_position"] = int(payload.waitlist_position)

        return TransitionPlan(application.id, current, new_status, fields)

    def cascade_plans(
        self,
        accepted: Application,
        student_applications: Iterable[Application],
        now: datetime,
    ) -> List[TransitionPlan]:
        """Withdrawals for the student's other open applications after `accepted` is accepted."""
        plans = []
        for other in student_applications:
            if other.id == accepted.id or other.status not in ALLOWED_FROM[S.WITHDRAWN]:
                continue
            plans.append(TransitionPlan(
                other.id, other.status, S.WITHDRAWN,
                {"withdrawn_at": now, "notes": CASCADE_NOTE},
            ))
        return plans
