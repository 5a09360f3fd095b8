"""
Digest Renderer - HTML and plain-text email bodies
"""
import html as html_escape
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence

from newsagent.core.entities import Item, Source
from newsagent.core.markdown import markdown_to_html, strip_markdown


@dataclass(frozen=True)
class SourceStyle:
    label: str
    icon: str
    color: str
    score_label: str
    secondary_label: str


SOURCE_STYLES: Dict[Source, SourceStyle] = {
    Source.HACKER_NEWS: SourceStyle(
        label="Hacker News",
        icon="🔥",
        color="#ff6600",
        score_label="points",
        secondary_label="comments",
    ),
    Source.GITHUB_TRENDING: SourceStyle(
        label="GitHub Trending",
        icon="⭐",
        color="#24292f",
        score_label="stars",
        secondary_label="open issues",
    ),
    Source.ARXIV: SourceStyle(
        label="arXiv",
        icon="📄",
        color="#b31b1b",
        score_label="score",
        secondary_label="authors",
    ),
}


@dataclass(frozen=True)
class RenderedDigest:
    subject: str
    html: str
    text: str


def group_by_source(items: Sequence[Item]) -> List[tuple]:
    """Items grouped by source, in Source declaration order, rank order kept."""
    groups = []
    for source in Source:
        members = [item for item in items if item.source == source]
        if members:
            groups.append((source, members))
    return groups


def display_date(run_date: str) -> str:
    day = date.fromisoformat(run_date)
    return f"{day:%A, %B} {day.day}, {day.year}"


def format_count(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.1f}"


class DigestRenderer:

    DEFAULT_COLORS = {
        "primary": "#ff6600",
        "primary_dark": "#e65c00",
        "background": "#f8fafc",
        "card_bg": "#ffffff",
        "text_primary": "#1e293b",
        "text_secondary": "#64748b",
        "border": "#e2e8f0",
        "accent": "#f59e0b",
        "cta_bg": "#4f46e5",
    }

    def __init__(self, colors: Optional[Dict[str, str]] = None, title: str = "NewsAgent Daily Digest"):
        self.colors = {**self.DEFAULT_COLORS, **(colors or {})}
        self.title = title

    def subject(self, run_date: str) -> str:
        return f"📰 {self.title} – {run_date}"

    def render(
        self,
        items: Sequence[Item],
        run_date: str,
        combined_audio_url: Optional[str] = None,
    ) -> RenderedDigest:
        return RenderedDigest(
            subject=self.subject(run_date),
            html=self.render_html(items, run_date, combined_audio_url),
            text=self.render_text(items, run_date, combined_audio_url),
        )

    def _meta_line(self, item: Item, style: SourceStyle) -> str:
        parts = []
        if item.author:
            parts.append(f"👤 {item.author}")
        parts.append(f"{format_count(item.score)} {style.score_label}")
        parts.append(f"{item.secondary_count} {style.secondary_label}")
        return " | ".join(parts)

    def _item_card(self, idx: int, item: Item, style: SourceStyle) -> str:
        c = self.colors

        summary_html = ""
        if item.has_summary:
            summary_html = f'''
                <div style="color: {c['text_primary']}; font-size: 15px; line-height: 1.6; margin: 0 0 12px 0;">
                    {markdown_to_html(item.summary, heading_style="margin: 8px 0 4px 0; font-size: 15px;")}
                </div>'''

        audio_html = ""
        if item.audio_url:
            audio_html = f'''
                <a href="{html_escape.escape(item.audio_url)}"
                   style="display: inline-block; padding: 6px 12px; background-color: {c['background']};
                          color: {style.color}; text-decoration: none; border-radius: 6px; font-size: 13px;
                          border: 1px solid {c['border']};">
                    🎧 Listen
                </a>'''

        return f'''
            <div style="background-color: {c['card_bg']}; border-radius: 12px; padding: 20px;
                        margin-bottom: 16px; box-shadow: 0 1px 3px rgba(0,0,0,0.1);
                        border-left: 4px solid {style.color};">
                <h3 style="margin: 0 0 8px 0; font-size: 17px; line-height: 1.4;">
                    {idx}. <a href="{html_escape.escape(item.url)}" style="color: {c['text_primary']}; text-decoration: none;">{html_escape.escape(item.title)}</a>
                </h3>
                <p style="margin: 0 0 12px 0; color: {c['text_secondary']}; font-size: 13px;">
                    {html_escape.escape(self._meta_line(item, style))}
                </p>{summary_html}{audio_html}
            </div>'''

    def render_html(
        self,
        items: Sequence[Item],
        run_date: str,
        combined_audio_url: Optional[str] = None,
    ) -> str:
        c = self.colors

        cta_html = ""
        if combined_audio_url:
            cta_html = f'''
        <div style="background-color: {c['card_bg']}; padding: 24px; text-align: center;
                    border-bottom: 1px solid {c['border']};">
            <a href="{html_escape.escape(combined_audio_url)}"
               style="display: inline-block; padding: 14px 28px; background-color: {c['cta_bg']};
                      color: white; font-size: 17px; font-weight: 600; text-decoration: none;
                      border-radius: 999px;">
                🎧 Listen to today's digest
            </a>
        </div>'''

        sections = []
        for source, members in group_by_source(items):
            style = SOURCE_STYLES[source]
            cards = "".join(self._item_card(idx, item, style) for idx, item in enumerate(members, 1))
            sections.append(f'''
            <h2 style="margin: 24px 0 12px 0; color: {style.color}; font-size: 20px;">
                {style.icon} {html_escape.escape(style.label)}
            </h2>
            {cards}''')

        if not sections:
            sections.append(f'''
            <p style="color: {c['text_secondary']}; text-align: center;">No stories today.</p>''')

        return f'''
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html_escape.escape(self.title)}</title>
</head>
<body style="margin: 0; padding: 0; background-color: {c['background']};
             font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto,
                          'Helvetica Neue', Arial, sans-serif;">
    <div style="max-width: 680px; margin: 0 auto; padding: 20px;">

        <div style="background: linear-gradient(135deg, {c['primary']} 0%, {c['primary_dark']} 100%);
                    border-radius: 16px 16px 0 0; padding: 32px; text-align: center;">
            <h1 style="margin: 0 0 8px 0; color: white; font-size: 28px; font-weight: 700;">
                📰 {html_escape.escape(self.title)}
            </h1>
            <p style="margin: 0; color: rgba(255,255,255,0.85); font-size: 14px;">
                📅 {display_date(run_date)} · {len(items)} stories
            </p>
        </div>
{cta_html}
        <div style="background-color: {c['background']}; padding: 8px 24px 24px 24px;
                    border-radius: 0 0 16px 16px;">
            {"".join(sections)}
        </div>

        <div style="text-align: center; padding: 24px; color: {c['text_secondary']}; font-size: 12px;">
            <p style="margin: 0;">Generated automatically by NewsAgent.</p>
        </div>

    </div>
</body>
</html>
'''

    def render_text(
        self,
        items: Sequence[Item],
        run_date: str,
        combined_audio_url: Optional[str] = None,
    ) -> str:
        lines = [
            f"{'=' * 60}",
            self.title.upper(),
            display_date(run_date),
            f"{'=' * 60}",
            "",
        ]

        if combined_audio_url:
            lines.extend([
                f"🎧 Listen to today's digest: {combined_audio_url}",
                "",
            ])

        groups = group_by_source(items)
        if not groups:
            lines.extend(["No stories today.", ""])

        for source, members in groups:
            style = SOURCE_STYLES[source]
            lines.extend([
                f"{style.icon} {style.label.upper()}",
                f"{'-' * 60}",
            ])
            for idx, item in enumerate(members, 1):
                lines.append(f"{idx}. {item.title}")
                lines.append(f"   {self._meta_line(item, style)}")
                lines.append(f"   URL: {item.url}")
                if item.has_summary:
                    lines.append("")
                    for summary_line in strip_markdown(item.summary).splitlines():
                        lines.append(f"   {summary_line}".rstrip())
                if item.audio_url:
                    lines.append(f"   Listen: {item.audio_url}")
                lines.append("")

        lines.extend([
            f"{'=' * 60}",
            "Generated automatically by NewsAgent.",
        ])
        return "\n".join(lines)
