"""Assemble anchor resources and their paired content into placement blocks."""

from __future__ import annotations

import logging
from collections import deque

from studyplan.models import Block, Resource

from .classifier import (
    CATEGORY_PRECEDENCE,
    category_rank,
    classify_resource,
    is_anchor,
)

logger = logging.getLogger(__name__)

# Keyword groups: two titles sharing any keyword are treated as the same topic.
TOPIC_KEYWORDS: tuple[str, ...] = (
    "breast",
    "mammo",
    "chest",
    "lung",
    "thorac",
    "mediastin",
    "cardiac",
    "heart",
    "vascular",
    "aort",
    "liver",
    "bowel",
    "pancrea",
    "biliary",
    "esophag",
    "kidney",
    "renal",
    "bladder",
    "prostate",
    "uter",
    "ovar",
    "brain",
    "spine",
    "head and neck",
    "bone",
    "joint",
    "knee",
    "shoulder",
    "pediatric",
    "neonat",
    "thyroid",
    "ultrasound",
    "doppler",
    "mri",
    "radiation",
    "contrast",
)


def _sequence(resource: Resource) -> int:
    return resource.sequence_order if resource.sequence_order is not None else 10**9


def _title_keywords(resource: Resource) -> set[str]:
    title = f" {resource.title.lower()} "
    return {keyword for keyword in TOPIC_KEYWORDS if keyword in title}


def is_topically_related(anchor: Resource, candidate: Resource) -> bool:
    """Same domain, same chapter number, or a shared topic keyword."""
    if anchor.domain and anchor.domain == candidate.domain:
        return True
    if anchor.chapter_number is not None and anchor.chapter_number == candidate.chapter_number:
        return True
    return bool(_title_keywords(anchor) & _title_keywords(candidate))


def _collect_members(
    anchor: Resource,
    arena: dict[str, Resource],
    unassigned: set[str],
) -> list[Resource]:
    members: list[Resource] = []
    visited: set[str] = {anchor.id}
    queue: deque[str] = deque(anchor.paired_resource_ids)

    while queue:
        candidate_id = queue.popleft()
        if candidate_id in visited:
            continue
        visited.add(candidate_id)

        candidate = arena.get(candidate_id)
        if candidate is None or candidate.is_archived or candidate_id not in unassigned:
            continue
        if not is_topically_related(anchor, candidate):
            continue

        members.append(candidate)
        unassigned.discard(candidate_id)
        queue.extend(candidate.paired_resource_ids)

    members.sort(key=lambda r: (_sequence(r), category_rank(classify_resource(r)), r.id))
    return members


def assemble_blocks(
    classified: dict[str, list[Resource]],
    arena: dict[str, Resource],
    remaining: dict[str, int],
) -> list[Block]:
    """Build one block per anchor, then singleton blocks for everything left.

    ``remaining`` is read, never mutated: it only decides which resources are
    still available. No resource ends up in two blocks.
    """
    unassigned = {rid for rid, minutes in remaining.items() if minutes > 0}
    blocks: list[Block] = []

    for category in CATEGORY_PRECEDENCE:
        for resource in classified.get(category, []):
            if resource.id not in unassigned or not is_anchor(resource, category):
                continue
            unassigned.discard(resource.id)
            members = _collect_members(resource, arena, unassigned)
            blocks.append(Block(anchor_id=resource.id, members=[resource, *members], category=category))

    anchored = len(blocks)
    for category in CATEGORY_PRECEDENCE:
        for resource in classified.get(category, []):
            if resource.id not in unassigned:
                continue
            unassigned.discard(resource.id)
            blocks.append(Block(anchor_id=resource.id, members=[resource], category=category))

    # Stable: keeps the classifier order inside each category.
    blocks.sort(key=lambda block: category_rank(block.category))
    logger.debug("Assembled %d anchored and %d singleton blocks", anchored, len(blocks) - anchored)
    return blocks
