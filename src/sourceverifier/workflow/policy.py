"""Capability policy: who may do what to which submission.

Plain functions over ``Actor`` and ``Submission`` so the rules are
testable without HTTP. Callers raise ``ForbiddenError`` on a False.
"""

from __future__ import annotations

from enum import Flag, auto

from sourceverifier.constants import Role, SubmissionStatus
from sourceverifier.workflow.value_objects import Actor, Submission


class Capability(Flag):
    CONTRIBUTE = auto()
    VERIFY = auto()
    ADMINISTER = auto()


_ROLE_CAPABILITIES: dict[Role, Capability] = {
    Role.CONTRIBUTOR: Capability.CONTRIBUTE,
    Role.VERIFIER: Capability.CONTRIBUTE | Capability.VERIFY,
    Role.ADMIN: (
        Capability.CONTRIBUTE
        | Capability.VERIFY
        | Capability.ADMINISTER
    ),
}


def capabilities(actor: Actor) -> Capability:
    return _ROLE_CAPABILITIES.get(actor.role, Capability(0))


def is_admin(actor: Actor) -> bool:
    return Capability.ADMINISTER in capabilities(actor)


def can_verify(actor: Actor, submission: Submission) -> bool:
    """Admins verify anything; verifiers only their own country."""
    caps = capabilities(actor)
    if Capability.ADMINISTER in caps:
        return True
    if Capability.VERIFY not in caps:
        return False
    return submission.country == actor.country


def can_override(actor: Actor) -> bool:
    """Only admins may change or re-open a terminal decision."""
    return is_admin(actor)


def can_delete(actor: Actor, submission: Submission) -> bool:
    """Submitter while pending, or an admin in any state."""
    if is_admin(actor):
        return True
    return (
        submission.submitter_id == actor.user_id
        and submission.status == SubmissionStatus.PENDING
    )


def can_receive(
    actor: Actor, submission_country: str, submitter_id: str
) -> bool:
    """Audience rule for live events about one submission."""
    if submitter_id == actor.user_id:
        return True
    caps = capabilities(actor)
    if Capability.ADMINISTER in caps:
        return True
    if Capability.VERIFY in caps:
        return submission_country == actor.country
    return False
