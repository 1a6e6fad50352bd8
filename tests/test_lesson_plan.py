from __future__ import annotations

from media_hunter.services.lesson_plan import format_lesson_plan, generate_lesson_plan
from media_hunter.services.models import Media, Topic


def _topic() -> Topic:
    return Topic(
        "home-front",
        "The Home Front",
        subtopics=["Rationing", "Women in the workforce", "Victory gardens", "War bonds"],
    )


def test_default_plan_uses_topic_and_media() -> None:
    media = Media(title="The War", year=2007, relevance="Four American towns.", notes="Graphic footage.")

    plan = generate_lesson_plan(media, _topic())

    assert plan.objectives[0] == 'Understand key aspects of The Home Front as portrayed in "The War"'
    assert plan.connection == (
        "Supports study of The Home Front. Four American towns. "
        "Subtopics: Rationing, Women in the workforce, Victory gardens."
    )
    assert plan.before_viewing[-1] == "Note: Graphic footage."
    assert plan.discussion_questions[0] == "What did you learn about The Home Front?"


def test_embedded_sections_replace_defaults() -> None:
    media = Media(
        title="John Adams",
        year=2008,
        lesson_plan={"discussionQuestions": ["Why defend the soldiers?"], "objectives": []},
    )

    plan = generate_lesson_plan(media, _topic())

    assert plan.discussion_questions == ["Why defend the soldiers?"]
    assert len(plan.objectives) == 4
    assert len(plan.extensions) == 4


def test_plan_without_topic_is_generic() -> None:
    plan = generate_lesson_plan(Media(title="Selma"))

    assert plan.connection == "Supports study of this topic."
    assert "Note:" not in " ".join(plan.before_viewing)


def test_formatted_plan_is_printable() -> None:
    text = format_lesson_plan(generate_lesson_plan(Media(title="Selma"), _topic()))

    assert text.startswith("LESSON PLAN\nSelma (N/A)\n")
    assert "Discussion Questions\n--------------------\n  1. What did you learn about The Home Front?" in text
    assert "  - Compare film to primary sources" in text
    assert text.endswith("\n")
