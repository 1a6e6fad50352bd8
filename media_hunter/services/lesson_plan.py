"""Printable lesson plans built from a media item and the topic it belongs to."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .models import Media, Topic


@dataclass
class LessonPlan:
    title: str
    year: Optional[int]
    objectives: List[str] = field(default_factory=list)
    connection: str = ""
    before_viewing: List[str] = field(default_factory=list)
    discussion_questions: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=list)


def _override(embedded: Mapping[str, Any], name: str) -> Optional[List[str]]:
    value = embedded.get(name)
    if isinstance(value, list) and value:
        return [str(item) for item in value]
    return None


def generate_lesson_plan(media: Media, topic: Optional[Topic] = None) -> LessonPlan:
    """Return the default plan, replacing any section the media embeds itself."""

    embedded: Mapping[str, Any] = media.lesson_plan or {}
    topic_name = topic.name if topic is not None and topic.name else "this topic"
    subtopics = topic.subtopics if topic is not None else []

    objectives = _override(embedded, "objectives") or [
        f'Understand key aspects of {topic_name} as portrayed in "{media.title}"',
        "Analyze perspectives on historical events",
        "Evaluate accuracy of historical media",
        "Connect content to broader curriculum themes",
    ]

    connection_parts = [f"Supports study of {topic_name}."]
    if media.relevance:
        connection_parts.append(media.relevance)
    if subtopics:
        connection_parts.append(f"Subtopics: {', '.join(subtopics[:3])}.")

    before_viewing = _override(embedded, "preActivities") or [
        item
        for item in (
            f"Review background on {topic_name}",
            "Introduce key vocabulary",
            "Discuss fact vs. dramatization",
            f"Note: {media.notes}" if media.notes else "",
        )
        if item
    ]

    discussion_questions = _override(embedded, "discussionQuestions") or [
        f"What did you learn about {topic_name}?",
        "How did filmmakers want you to feel?",
        "What might differ from actual history?",
        "How does this connect to class content?",
    ]

    extensions = _override(embedded, "extensions") or [
        "Compare film to primary sources",
        "Write from a character's perspective",
        "Create visual timeline of events",
        "Research related topic",
    ]

    return LessonPlan(
        title=media.title,
        year=media.year,
        objectives=objectives,
        connection=" ".join(connection_parts),
        before_viewing=before_viewing,
        discussion_questions=discussion_questions,
        extensions=extensions,
    )


def format_lesson_plan(plan: LessonPlan) -> str:
    """Render *plan* as plain text suitable for printing."""

    lines = ["LESSON PLAN", f"{plan.title} ({plan.year or 'N/A'})", ""]

    def section(heading: str, items: List[str], *, numbered: bool = False) -> None:
        lines.append(heading)
        lines.append("-" * len(heading))
        for index, item in enumerate(items, start=1):
            bullet = f"{index}." if numbered else "-"
            lines.append(f"  {bullet} {item}")
        lines.append("")

    section("Learning Objectives", plan.objectives)
    lines.extend(["Curriculum Connection", "-" * len("Curriculum Connection"), f"  {plan.connection}", ""])
    section("Before Viewing", plan.before_viewing)
    section("Discussion Questions", plan.discussion_questions, numbered=True)
    section("Extension Activities", plan.extensions)
    return "\n".join(lines).rstrip() + "\n"


__all__ = ["LessonPlan", "format_lesson_plan", "generate_lesson_plan"]
