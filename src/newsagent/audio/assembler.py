"""
Audio Assembler - builds narrated tracks from text under the synthesizer's
per-request ceiling.
"""
import logging
from datetime import date
from typing import List, Optional, Sequence

from newsagent.audio.chunking import chunk_text, clean_for_speech
from newsagent.audio.synthesizer import SpeechSynthesizer
from newsagent.core.entities import Item

logger = logging.getLogger(__name__)

TRANSITION_LINE = "Next up."
OUTRO_LINE = "That's all for today's digest. Thanks for listening, and see you tomorrow."


def spoken_date(run_date: str) -> str:
    day = date.fromisoformat(run_date)
    return f"{day:%A, %B} {day.day}, {day.year}"


def intro_line(run_date: str, story_count: int) -> str:
    noun = "story" if story_count == 1 else "stories"
    return (
        f"Welcome to your NewsAgent daily digest for {spoken_date(run_date)}. "
        f"Today we have {story_count} {noun}."
    )


def title_line(position: int, item: Item) -> str:
    title = item.title.strip().rstrip(".!?")
    return f"Story {position}: {title}."


def narration_segments(items: Sequence[Item], run_date: str) -> List[str]:
    """
    Ordered script of the combined track: intro, then per summarized item
    its title line and cleaned summary, a transition between items, and
    the outro. Items without a usable summary are left out.
    """
    narrated = [item for item in items if item.has_summary]

    segments = [intro_line(run_date, len(narrated))]
    for position, item in enumerate(narrated, 1):
        segments.append(title_line(position, item))
        segments.append(clean_for_speech(item.summary or ""))
        if position < len(narrated):
            segments.append(TRANSITION_LINE)
    segments.append(OUTRO_LINE)
    return segments


def item_narration(item: Item) -> str:
    title = item.title.strip().rstrip(".!?")
    return f"{title}. {clean_for_speech(item.summary or '')}"


class AudioAssembler:
    def __init__(self, synthesizer: SpeechSynthesizer):
        self.synthesizer = synthesizer

    @property
    def ceiling(self) -> int:
        return self.synthesizer.ceiling

    async def _synthesize_buffers(self, text: str) -> List[bytes]:
        """
        Synthesize each chunk of `text` in order. A failed or empty chunk
        is skipped; the remaining buffers keep their order.
        """
        buffers: List[bytes] = []

        for chunk in chunk_text(text, self.ceiling):
            if not chunk.text.strip():
                continue
            try:
                audio = await self.synthesizer.synthesize(chunk.text)
            except Exception as e:
                logger.warning(f"Synthesis failed for chunk {chunk.ordinal}: {e}")
                continue

            if not audio:
                logger.warning(f"Synthesis returned no audio for chunk {chunk.ordinal}")
                continue
            buffers.append(audio)

        return buffers

    async def synthesize_text(self, text: str) -> Optional[bytes]:
        """Return one concatenated track for `text`, or None if nothing was synthesized."""
        buffers = await self._synthesize_buffers(text)
        if not buffers:
            return None
        return b"".join(buffers)

    async def synthesize_item(self, item: Item) -> Optional[bytes]:
        return await self.synthesize_text(item_narration(item))

    async def build_combined_track(self, items: Sequence[Item], run_date: str) -> Optional[bytes]:
        """
        Concatenate every narration segment in script order. Returns None
        when zero buffers were produced.
        """
        buffers: List[bytes] = []
        segments = narration_segments(items, run_date)

        for segment in segments:
            buffers.extend(await self._synthesize_buffers(segment))

        logger.info(f"Combined track: {len(buffers)} audio buffers from {len(segments)} segments")

        if not buffers:
            return None
        return b"".join(buffers)
