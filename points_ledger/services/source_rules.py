"""
Per-source rules, kept as data.

Each point source declares which metadata.sourceType values it
accepts, which per-source daily limit (if any) applies to it, and
what a valid sourceRef looks like. Validation and limit enforcement
iterate this table instead of branching on source names, so adding
a source is a new row here.
"""

import re
from dataclasses import dataclass

from points_ledger.exceptions import InvalidSourceType, InvalidSourceRefFormat
from points_ledger.models.enums import PointSource


# 24 hex characters, the shape of the ids issued by the task and
# badge services.
OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


@dataclass(frozen=True)
class SourceRule:
    source_types: frozenset[str]
    daily_limit_key: str | None = None
    ref_pattern: re.Pattern | None = None


SOURCE_RULES: dict[PointSource, SourceRule] = {
    PointSource.TASK: SourceRule(
        source_types=frozenset({"task_completion", "task_bonus", "task_streak"}),
        daily_limit_key="task",
        ref_pattern=OBJECT_ID_PATTERN,
    ),
    PointSource.ATTENDANCE: SourceRule(
        source_types=frozenset({"daily_check_in", "perfect_week", "streak_bonus"}),
        daily_limit_key="attendance",
    ),
    PointSource.BEHAVIOR: SourceRule(
        source_types=frozenset(
            {"class_participation", "helping_others", "good_conduct"}
        ),
    ),
    PointSource.BADGE: SourceRule(
        source_types=frozenset(
            {"achievement_badge", "milestone_badge", "special_badge"}
        ),
        ref_pattern=OBJECT_ID_PATTERN,
    ),
    PointSource.REDEMPTION: SourceRule(
        source_types=frozenset({"reward_purchase", "reward_refund"}),
    ),
    PointSource.MANUAL_ADJUSTMENT: SourceRule(
        source_types=frozenset(
            {"correction", "bonus", "penalty", "system_adjustment"}
        ),
    ),
}


def validate_source(
    source: PointSource,
    source_type: str | None,
    source_ref: str | None,
) -> SourceRule:
    """Check sourceType and sourceRef against the source's rule."""
    rule = SOURCE_RULES[source]

    if source_type is not None and (
        not isinstance(source_type, str) or source_type not in rule.source_types
    ):
        raise InvalidSourceType(source.value, str(source_type))

    if source_ref and rule.ref_pattern and not rule.ref_pattern.match(source_ref):
        raise InvalidSourceRefFormat(source.value, source_ref)

    return rule
