"""Proactive splitting of long splittable resources into ordered parts."""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from studyplan.models import SEVERITY_WARNING, Notification, Resource

logger = logging.getLogger(__name__)

SPLIT_THRESHOLD_FACTOR = 1.5


def _part_durations(total: int, max_chunk_minutes: int, min_part_minutes: int) -> list[int]:
    # Capped so every part reaches the minimum, even past the max chunk.
    count = max(1, min(math.ceil(total / max_chunk_minutes), total // max(1, min_part_minutes)))
    base, extra = divmod(total, count)
    return [base + 1 if idx < extra else base for idx in range(count)]


def chunk_resources(
    resources: list[Resource],
    *,
    max_chunk_minutes: int,
    min_part_minutes: int,
) -> tuple[list[Resource], list[Notification]]:
    """Replace long splittable resources by ``<id>_part_<k>`` parts.

    Parts are never splittable again and carry no pairing: pairings apply to
    whole resources only. Part durations always sum to the parent duration.
    """
    out: list[Resource] = []
    notifications: list[Notification] = []

    for resource in resources:
        if resource.duration_minutes <= 0:
            notifications.append(
                Notification(
                    severity=SEVERITY_WARNING,
                    code="WARN_NON_POSITIVE_DURATION",
                    message=f'Resource "{resource.title}" has a non-positive duration ({resource.duration_minutes} min).',
                )
            )
            out.append(resource)
            continue

        if not resource.is_splittable or resource.duration_minutes <= SPLIT_THRESHOLD_FACTOR * max_chunk_minutes:
            out.append(resource)
            continue

        durations = _part_durations(resource.duration_minutes, max_chunk_minutes, min_part_minutes)
        total_parts = len(durations)
        for idx, minutes in enumerate(durations, start=1):
            out.append(
                replace(
                    resource,
                    id=f"{resource.id}_part_{idx}",
                    title=f"{resource.title} (Part {idx}/{total_parts})",
                    duration_minutes=minutes,
                    is_splittable=False,
                    paired_resource_ids=[],
                    original_resource_id=resource.root_id,
                )
            )
        logger.debug("Chunked %s into %d parts", resource.id, total_parts)

    return out, notifications
