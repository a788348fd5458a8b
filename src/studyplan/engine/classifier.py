"""Resource categories, precedence and the source-label mapping table.

A resource carries an explicit ``category`` tag when the editor assigned one.
Untagged resources go through an ordered table of source-label and domain
rules and fall back to general domain content.
"""

from __future__ import annotations

from typing import Iterable

from studyplan.models import Resource, Task

PRIMARY_LECTURE = "primary_lecture"
PAIRED_TEXTBOOK = "paired_textbook"
PAIRED_CASES = "paired_cases"
PAIRED_QUESTIONS = "paired_questions"
SECONDARY_TRACK = "secondary_track"
DAILY_EXCLUSIVE = "daily_exclusive"
DAILY_QUOTA = "daily_quota"
AGGREGATE_QUOTA = "aggregate_quota"
GENERAL_CONTENT = "general_content"
SUPPLEMENTARY_LECTURE = "supplementary_lecture"
SUPPLEMENTARY_READING = "supplementary_reading"

CATEGORY_PRECEDENCE: tuple[str, ...] = (
    PRIMARY_LECTURE,
    PAIRED_TEXTBOOK,
    PAIRED_CASES,
    PAIRED_QUESTIONS,
    SECONDARY_TRACK,
    DAILY_EXCLUSIVE,
    DAILY_QUOTA,
    AGGREGATE_QUOTA,
    GENERAL_CONTENT,
    SUPPLEMENTARY_LECTURE,
    SUPPLEMENTARY_READING,
)

LECTURE_SERIES_CATEGORIES = frozenset({PRIMARY_LECTURE, SECONDARY_TRACK})
DAILY_CATEGORIES = frozenset({DAILY_EXCLUSIVE, DAILY_QUOTA})
LOW_PRIORITY_CATEGORIES = frozenset({SUPPLEMENTARY_LECTURE, SUPPLEMENTARY_READING, SECONDARY_TRACK})

# Fixed priority used by the mop-up pass.
MOP_UP_PRIORITY: tuple[str, ...] = (
    PRIMARY_LECTURE,
    PAIRED_TEXTBOOK,
    PAIRED_CASES,
    PAIRED_QUESTIONS,
    DAILY_EXCLUSIVE,
    AGGREGATE_QUOTA,
    DAILY_QUOTA,
    SECONDARY_TRACK,
)
REQUIRED_CATEGORIES = frozenset(MOP_UP_PRIORITY)

VIDEO_TYPES = frozenset({"Video Lecture", "High-Yield Video"})
READING_TYPES = frozenset({"Textbook Reading", "Study Guide Reading"})
QUESTION_TYPES = frozenset({"Question Bank", "Review Questions", "Question Review", "Exam Simulation"})
CASE_TYPES = frozenset({"Case Review"})

TASK_TYPE_PRIORITY: dict[str, int] = {
    "Video Lecture": 1,
    "High-Yield Video": 2,
    "Textbook Reading": 3,
    "Study Guide Reading": 4,
    "Case Review": 5,
    "Question Bank": 6,
    "Review Questions": 7,
    "Question Review": 8,
    "Exam Simulation": 9,
    "Practice Topic": 10,
    "Flip Through": 11,
    "Personal Notes": 12,
}
UNKNOWN_TYPE_PRIORITY = 99

# (category, match field, needle, accepted resource types or None for any).
# Rules are checked in this order; the first match wins.
CLASSIFICATION_RULES: tuple[tuple[str, str, str, frozenset[str] | None], ...] = (
    (PRIMARY_LECTURE, "source", "titan radiology", VIDEO_TYPES),
    (PAIRED_TEXTBOOK, "source", "crack the core", READING_TYPES),
    (PAIRED_CASES, "source", "case companion", CASE_TYPES),
    (PAIRED_QUESTIONS, "source", "qevlar", QUESTION_TYPES),
    (SECONDARY_TRACK, "source", "huda", VIDEO_TYPES | QUESTION_TYPES | READING_TYPES),
    (SECONDARY_TRACK, "source", "review of physics", READING_TYPES),
    (DAILY_EXCLUSIVE, "domain", "nuclear medicine", None),
    (DAILY_EXCLUSIVE, "source", "nucs app", QUESTION_TYPES),
    (DAILY_QUOTA, "domain", "nis", None),
    (DAILY_QUOTA, "domain", "risc", None),
    (AGGREGATE_QUOTA, "source", "board vitals", None),
    (SUPPLEMENTARY_LECTURE, "source", "discord", None),
    (SUPPLEMENTARY_READING, "source", "core radiology", None),
)

DEFAULT_TOPIC_ORDER: tuple[str, ...] = (
    "Physics",
    "Breast Imaging",
    "GI Imaging",
    "GU Imaging",
    "Thoracic Imaging",
    "Cardiac & Vascular",
    "MSK Imaging",
    "Neuroradiology",
    "Pediatric Radiology",
    "Nuclear Medicine",
    "Ultrasound Imaging",
    "IR",
    "NIS",
    "RISC",
)

_CATEGORY_RANK = {category: rank for rank, category in enumerate(CATEGORY_PRECEDENCE, start=1)}


def category_rank(category: str | None) -> int:
    return _CATEGORY_RANK.get(category or GENERAL_CONTENT, _CATEGORY_RANK[GENERAL_CONTENT])


def type_priority(resource_type: str) -> int:
    return TASK_TYPE_PRIORITY.get(resource_type, UNKNOWN_TYPE_PRIORITY)


def classify_resource(resource: Resource) -> str:
    """Map one resource to exactly one category."""
    if resource.category in _CATEGORY_RANK:
        return str(resource.category)

    label = resource.source.strip().lower()
    domain = resource.domain.strip().lower()
    for category, match_field, needle, types in CLASSIFICATION_RULES:
        if match_field == "domain":
            if domain != needle:
                continue
        elif needle not in label:
            continue
        if types is not None and resource.resource_type not in types:
            continue
        return category

    return GENERAL_CONTENT


def task_category(task: Task) -> str:
    return task.category if task.category in _CATEGORY_RANK else GENERAL_CONTENT


def is_anchor(resource: Resource, category: str) -> bool:
    if category == PRIMARY_LECTURE:
        return True
    return category == SECONDARY_TRACK and resource.resource_type in VIDEO_TYPES


def is_required(resource: Resource, category: str) -> bool:
    return category in REQUIRED_CATEGORIES or resource.is_primary


def topic_index(domain: str, topic_order: Iterable[str]) -> int:
    order = list(topic_order)
    try:
        return order.index(domain)
    except ValueError:
        return len(order)


def _sort_key(resource: Resource, category: str, topic_order: list[str]) -> tuple[int, int, str]:
    sequence = resource.sequence_order if resource.sequence_order is not None else 10**9
    topic = topic_index(resource.domain, topic_order) if category in LECTURE_SERIES_CATEGORIES else 0
    return (sequence, topic, resource.id)


def classify_pool(resources: Iterable[Resource], topic_order: Iterable[str]) -> dict[str, list[Resource]]:
    """Partition resources into categories, in precedence order, each group sorted."""
    order = list(topic_order)
    grouped: dict[str, list[Resource]] = {category: [] for category in CATEGORY_PRECEDENCE}
    for resource in resources:
        grouped[classify_resource(resource)].append(resource)
    for category, items in grouped.items():
        items.sort(key=lambda r, c=category: _sort_key(r, c, order))
    return grouped
