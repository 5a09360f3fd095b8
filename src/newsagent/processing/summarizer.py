import logging
import re
from typing import Protocol, Dict, Any

from pydantic import ValidationError

from newsagent.core.entities import UNAVAILABLE
from newsagent.core.schemas import SummaryOutput

logger = logging.getLogger(__name__)


class LLMClient(Protocol):
    async def evaluate(self, prompt: str) -> Dict[str, Any]:
        ...


PROMPT_TEMPLATE = """You are a technology news editor writing for busy engineers.
Summarize the article below in two parts:
- overview: 2-3 sentences on what the article is about
- insight: 1 sentence with the single most interesting or surprising takeaway

Do not repeat the title. Do not use markdown.
Return ONLY a JSON object: {{"overview": "...", "insight": "..."}}

TITLE: {title}

CONTENT:
{content}

JSON object:"""


def _extract_json(content: str) -> str:
    """
    Extract JSON from LLM response, stripping markdown code blocks if present.
    """
    content = content.strip()

    pattern = r'^```(?:json)?\s*\n?(.*?)\n?```$'
    match = re.match(pattern, content, re.DOTALL)
    if match:
        return match.group(1).strip()

    object_match = re.search(r'\{.*\}', content, re.DOTALL)
    if object_match:
        return object_match.group(0)

    return content


def _normalize(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", " ", text.lower()).strip()


def _strip_title_echo(title: str, output: SummaryOutput) -> SummaryOutput:
    """Drop a leading verbatim copy of the title from the overview."""
    overview = output.overview.strip()
    if title and overview.lower().startswith(title.strip().lower()):
        rest = overview[len(title.strip()):].lstrip(" :.-–—")
        if _normalize(rest):
            overview = rest[:1].upper() + rest[1:]
    return SummaryOutput(overview=overview, insight=output.insight)


def parse_summary(title: str, raw: str) -> str:
    """
    Validate raw LLM output and render it as markdown.

    Raises:
        ValueError: if the output is malformed or only repeats the title
    """
    try:
        output = SummaryOutput.model_validate_json(_extract_json(raw))
    except ValidationError as e:
        raise ValueError(f"Malformed summary: {e.error_count()} validation errors") from e

    output = _strip_title_echo(title, output)
    if _normalize(output.overview) == _normalize(title):
        raise ValueError("Summary overview only repeats the title")

    return output.to_markdown()


class Summarizer:
    """
    Single-attempt, best-effort summarization. Never raises.
    """

    def __init__(self, llm: LLMClient):
        self.llm = llm

    async def summarize(self, title: str, content: str) -> str:
        prompt = PROMPT_TEMPLATE.format(title=title, content=content)

        try:
            response = await self.llm.evaluate(prompt)
            summary = parse_summary(title, str(response["content"]))
        except Exception as e:
            logger.warning(f"Summarization failed for '{title}': {e}")
            return UNAVAILABLE

        logger.info(f"Summarized '{title}' ({response.get('latency_ms', 0)}ms)")
        return summary
