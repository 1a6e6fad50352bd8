"""A Rich-powered console front-end for browsing a grade's curriculum."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from rich import box
from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from ..services.catalog import RatingClass, filter_media, rating_class, type_icon
from ..services.models import Category, Media, MediaType, Topic
from ..services.moderation import present_media
from ..services.session import CatalogSession


RATING_STYLES: Dict[RatingClass, str] = {
    RatingClass.SAFE: "green",
    RatingClass.CAUTION: "yellow",
    RatingClass.RESTRICTED: "red",
    RatingClass.UNRATED: "dim",
}


@dataclass
class TopicOverview:
    topic: Topic
    media: List[Media]


@dataclass
class CategoryOverview:
    category: Category
    topics: List[TopicOverview]


@dataclass
class OverviewSnapshot:
    categories: List[CategoryOverview]
    type_totals: Dict[MediaType, int]
    watched_count: int


class ModernUI:
    """Render the session's grade as a Rich tree with an at-a-glance panel."""

    def __init__(self, session: CatalogSession, *, console: Optional[Console] = None) -> None:
        self._session = session
        self._console = console or Console()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def run(self, query: str = "") -> None:
        tree = self._session.tree
        console = self._console

        title = f"Grade {tree.grade}" + (f" · {tree.name}" if tree.name else "")
        console.rule(f"[bold magenta]{title}")

        if tree.is_empty:
            console.print(
                Panel(
                    "No curriculum is available for this grade.\n"
                    "Check the backend or run [bold]python run.py seed[/bold].",
                    border_style="yellow",
                    box=box.ROUNDED,
                )
            )
            return

        snapshot = self._collect_snapshot(query)
        tree_panel = Panel(
            self._build_tree(snapshot.categories),
            title=" > ".join(self._session.breadcrumb()),
            border_style="cyan",
            box=box.ROUNDED,
        )
        console.print(Columns([tree_panel, self._build_stats_panel(snapshot)], expand=True, equal=True))
        if tree.curriculum_focus:
            console.print()
            console.print(Text(tree.curriculum_focus, style="dim"), justify="center")

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------
    def _build_tree(self, categories: List[CategoryOverview]) -> Tree:
        root = Tree("[bold cyan]Curriculum", guide_style="cyan")
        if not categories:
            root.add("[dim]No matching topics")
            return root

        for overview in categories:
            category_node = root.add(
                Text(f"{overview.category.name} ({overview.category.media_count} media)", style="bold")
            )
            for topic_overview in overview.topics:
                topic_node = category_node.add(self._build_topic_label(topic_overview.topic))
                if not topic_overview.media:
                    topic_node.add("[dim]No matching media")
                    continue
                for media in topic_overview.media:
                    topic_node.add(self._build_media_label(media))
        return root

    @staticmethod
    def _build_topic_label(topic: Topic) -> Text:
        label = Text(topic.name, style="bright_cyan")
        if topic.description:
            label.append("\n")
            label.append(topic.description, style="dim")
        return label

    def _build_media_label(self, media: Media) -> Text:
        view = present_media(media, self._session.viewer)
        watched = self._session.is_watched(media)
        label = Text("✔ " if watched else "· ", style="green" if watched else "dim")
        if view.redacted:
            label.append(view.title, style="italic dim")
            return label

        label.append(f"{type_icon(media.type)} {view.title}", style="white")
        if media.year:
            label.append(f" ({media.year})", style="dim")
        if media.rating:
            label.append("  ")
            label.append(media.rating, style=RATING_STYLES[rating_class(media.rating)])
        if view.reported:
            label.append("  reported", style="bold red")
        return label

    def _build_stats_panel(self, snapshot: OverviewSnapshot) -> Panel:
        tree = self._session.tree
        metrics = Table.grid(expand=True, padding=(0, 1))
        metrics.add_column(style="dim")
        metrics.add_column(justify="right", style="bold")
        metrics.add_row("Categories", str(tree.category_count))
        metrics.add_row("Topics", str(tree.topic_count))
        metrics.add_row("Media", str(tree.media_count))
        metrics.add_row("Watched", str(snapshot.watched_count))

        type_table = Table.grid(expand=True, padding=(0, 1))
        type_table.add_column(style="dim")
        type_table.add_column(justify="right", style="bold")
        for media_type in MediaType:
            type_table.add_row(
                f"{type_icon(media_type)} {media_type.value.title()}",
                str(snapshot.type_totals.get(media_type, 0)),
            )

        body = Group(metrics, Rule(style="magenta"), type_table)
        return Panel(body, title="At a glance", border_style="magenta", box=box.ROUNDED)

    # ------------------------------------------------------------------
    # Data aggregation
    # ------------------------------------------------------------------
    def _collect_snapshot(self, query: str) -> OverviewSnapshot:
        categories: List[CategoryOverview] = []
        type_totals = {media_type: 0 for media_type in MediaType}

        for media in self._session.tree.iter_media():
            type_totals[media.type] += 1

        for category, topic in self._session.visible_topics(query):
            if not categories or categories[-1].category is not category:
                categories.append(CategoryOverview(category=category, topics=[]))
            media = filter_media(topic, self._session.filters)
            categories[-1].topics.append(TopicOverview(topic=topic, media=media))

        return OverviewSnapshot(
            categories=categories,
            type_totals=type_totals,
            watched_count=self._session.watched_count(),
        )


__all__ = ["ModernUI"]
