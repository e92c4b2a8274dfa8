"""Pick the primary (size-like) dimension out of the discovered ones."""

import logging

from variant_stock.labels import DEFAULT_POLICY, LabelPolicy, size_score

logger = logging.getLogger(__name__)


def score_dimensions(dimensions, policy: LabelPolicy = DEFAULT_POLICY) -> list:
    return [size_score((o.display for o in d.options), policy) for d in dimensions]


def choose_primary(dimensions, policy: LabelPolicy = DEFAULT_POLICY):
    """
    Return (primary, secondaries).

    The dimension with the highest size score wins; ties go to the earliest one.
    Below `policy.size_threshold` no dimension is trusted as "size" and the
    first-discovered dimension is used, which is what two-dimension pages
    historically relied on. Secondaries keep their discovery order.
    """
    dimensions = list(dimensions)
    if not dimensions:
        return None, []

    scores = score_dimensions(dimensions, policy)
    best = 0
    for i, score in enumerate(scores):
        if score > scores[best]:
            best = i

    if scores[best] < policy.size_threshold:
        best = 0

    primary = dimensions[best]
    secondaries = [d for i, d in enumerate(dimensions) if i != best]
    logger.info(
        "[classifier] primary=%s scores=%s",
        primary.name,
        {d.name: round(s, 2) for d, s in zip(dimensions, scores)},
    )
    return primary, secondaries
