"""
The small markdown subset LLM summaries use: headings, bold, italic and
line breaks.
"""
import html
import re

_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]*(.*?)[ \t#]*$", re.MULTILINE)
_BOLD = re.compile(r"(\*\*|__)(.+?)\1", re.DOTALL)
_ITALIC = re.compile(r"(?<![\w*])([*_])(?!\s)(.+?)(?<!\s)\1(?![\w*])", re.DOTALL)


def strip_markdown(text: str) -> str:
    """Remove heading, bold and italic markers, keeping line breaks."""
    text = _HEADING.sub(r"\1", text)
    text = _BOLD.sub(r"\2", text)
    text = _ITALIC.sub(r"\2", text)
    return text.strip()


def markdown_to_html(text: str, heading_style: str = "") -> str:
    """Escape `text` and render headings, bold, italic and line breaks."""
    style = f' style="{heading_style}"' if heading_style else ""
    rendered = html.escape(text.strip(), quote=False)
    rendered = _HEADING.sub(lambda m: f"<h4{style}>{m.group(1)}</h4>", rendered)
    rendered = _BOLD.sub(r"<strong>\2</strong>", rendered)
    rendered = _ITALIC.sub(r"<em>\2</em>", rendered)
    rendered = re.sub(r"(</h4>)\n", r"\1", rendered)
    return rendered.replace("\n", "<br>\n")
