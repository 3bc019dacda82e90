"""Point and badge ledger.

Every award is recorded once per (user, submission, rule) and the
user's total moves only through an atomic increment in the caller's
unit of work. Badge rules read aggregate counters from the award
ledger, so counters and points always agree.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass

from sourceverifier.constants import APPROVAL_RULES, Badge, PointRule
from sourceverifier.repositories.scope import Repos
from sourceverifier.workflow.errors import NotFoundError
from sourceverifier.workflow.value_objects import UserStanding

logger = logging.getLogger(__name__)

# Badge -> aggregate counter it is measured against
_BADGE_COUNTERS: dict[Badge, str] = {
    Badge.FIRST_SUBMISSION: "submissions",
    Badge.RELIABLE_HUNTER: "approved_submissions",
    Badge.QUALITY_VERIFIER: "verifications",
    Badge.SOURCE_GUARDIAN: "verifications",
    Badge.CITATION_CHAMPION: "points",
}


@dataclass(frozen=True)
class Award:
    """Result of one applied award."""

    user_id: str
    submission_id: str
    rule: PointRule
    points: int
    total: int
    new_badges: tuple[str, ...] = ()


class PointLedger:
    def __init__(
        self,
        point_values: Mapping[PointRule, int],
        badge_thresholds: Mapping[Badge, int],
    ) -> None:
        self._point_values = dict(point_values)
        self._badge_thresholds = dict(badge_thresholds)

    def value(self, rule: PointRule) -> int:
        return self._point_values[rule]

    async def award(
        self,
        repos: Repos,
        user_id: str,
        rule: PointRule,
        submission_id: str,
    ) -> Award | None:
        """Apply ``rule`` for ``user_id`` once per submission.

        Returns None when the same award was already recorded, so a
        replayed transition never moves points twice. Must run inside
        the same unit of work as the transition that earned it.
        """
        if await repos.award.has(user_id, submission_id, rule):
            logger.info(
                "event=award_skipped user=%s submission=%s rule=%s",
                user_id,
                submission_id,
                rule,
            )
            return None

        points = self.value(rule)
        await repos.user.ensure(user_id)
        await repos.award.record(user_id, submission_id, rule, points)
        total = await repos.user.increment_points(user_id, points)
        new_badges = await self._evaluate_badges(repos, user_id, total)

        logger.info(
            "event=points_awarded user=%s submission=%s rule=%s"
            " points=%d total=%d badges=%s",
            user_id,
            submission_id,
            rule,
            points,
            total,
            ",".join(new_badges) or "-",
        )
        return Award(
            user_id=user_id,
            submission_id=submission_id,
            rule=rule,
            points=points,
            total=total,
            new_badges=new_badges,
        )

    async def counters(
        self, repos: Repos, user_id: str, points: int | None = None
    ) -> dict[str, int]:
        """Aggregate counters the badge rules are measured against."""
        if points is None:
            points = await repos.award.total(user_id)
        return {
            "submissions": await repos.award.count(
                user_id, {PointRule.SUBMISSION_CREATED}
            ),
            "approved_submissions": await repos.award.count(
                user_id, set(APPROVAL_RULES)
            ),
            "verifications": await repos.award.count(
                user_id, {PointRule.VERIFICATION}
            ),
            "points": points,
        }

    async def standing(
        self, repos: Repos, user_id: str
    ) -> UserStanding:
        standing = await repos.user.get(user_id)
        if standing is None:
            raise NotFoundError("User not found")
        return standing

    async def _evaluate_badges(
        self, repos: Repos, user_id: str, total: int
    ) -> tuple[str, ...]:
        counters = await self.counters(repos, user_id, points=total)
        earned: list[str] = []
        for badge, threshold in self._badge_thresholds.items():
            counter = _BADGE_COUNTERS[badge]
            if counters[counter] < threshold:
                continue
            if await repos.user.add_badge(user_id, badge):
                earned.append(badge)
        return tuple(earned)
