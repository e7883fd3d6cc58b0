"""Splits synthesized rules into confirmed and needs-review buckets."""

import logging
from typing import Iterable, Optional

from .models import AnalysisConfig, BrandRule, ReviewPartition

logger = logging.getLogger(__name__)


def partition(rules: Iterable[BrandRule], config: Optional[AnalysisConfig] = None) -> ReviewPartition:
    """
    Partition rules by confidence.

    Rules at or above ``confirm_threshold`` are confirmed, rules at or above
    ``review_threshold`` need review, and the rest are dropped. When nothing
    clears the review threshold but rules exist, every rule goes to review so
    the reviewer still sees the low-confidence guesses.

    Args:
        rules: Synthesized rules, in synthesis order
        config: Analysis configuration holding the thresholds

    Returns:
        ReviewPartition preserving the input order within each bucket
    """
    config = config or AnalysisConfig()
    rules = list(rules)

    confirmed = [r for r in rules if r.confidence >= config.confirm_threshold]
    needs_review = [
        r for r in rules
        if config.review_threshold <= r.confidence < config.confirm_threshold
    ]
    dropped = [r for r in rules if r.confidence < config.review_threshold]

    if not confirmed and not needs_review and rules:
        logger.info(f"No rule reached {config.review_threshold}; sending all {len(rules)} rules to review")
        return ReviewPartition(confirmed=[], needs_review=rules, dropped=[])

    if dropped:
        logger.debug(f"Dropped low-confidence rules: {[(r.name, r.confidence) for r in dropped]}")

    return ReviewPartition(confirmed=confirmed, needs_review=needs_review, dropped=dropped)
