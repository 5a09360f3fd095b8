"""
Text preparation for speech synthesis.

The synthesizer rejects any request longer than its ceiling, so long
narration is split on sentence boundaries into ordered chunks.
"""
import re
from typing import List

from newsagent.core.entities import AudioChunk
from newsagent.core.markdown import strip_markdown

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")
_NEWLINES = re.compile(r"\s*\n+\s*")
_SPACES = re.compile(r"[ \t]{2,}")


def clean_for_speech(text: str) -> str:
    """Strip heading, bold and italic markers and collapse newlines."""
    text = strip_markdown(text)
    text = _NEWLINES.sub(" ", text)
    text = _SPACES.sub(" ", text)
    return text.strip()


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_END.split(text.strip()) if s.strip()]


def _wrap_sentence(sentence: str, ceiling: int) -> List[str]:
    """Word-wrap a single sentence that is longer than the ceiling."""
    pieces: List[str] = []
    current = ""

    for word in sentence.split():
        while len(word) > ceiling:
            if current:
                pieces.append(current)
                current = ""
            pieces.append(word[:ceiling])
            word = word[ceiling:]

        if not current:
            current = word
        elif len(current) + 1 + len(word) <= ceiling:
            current = f"{current} {word}"
        else:
            pieces.append(current)
            current = word

    if current:
        pieces.append(current)
    return pieces


def chunk_text(text: str, ceiling: int) -> List[AudioChunk]:
    """
    Split `text` into ordered chunks no longer than `ceiling`.

    Sentences are accumulated greedily; a chunk is closed when the next
    sentence would push it past the ceiling. Sentences are never split
    unless a single sentence alone exceeds the ceiling.
    """
    if ceiling <= 0:
        raise ValueError("ceiling must be positive")

    if len(text) <= ceiling:
        return [AudioChunk(text=text, ordinal=0)] if text.strip() else []

    pieces: List[str] = []
    current = ""

    for sentence in split_sentences(text):
        if len(sentence) > ceiling:
            if current:
                pieces.append(current)
                current = ""
            pieces.extend(_wrap_sentence(sentence, ceiling))
            continue

        if not current:
            current = sentence
        elif len(current) + 1 + len(sentence) <= ceiling:
            current = f"{current} {sentence}"
        else:
            pieces.append(current)
            current = sentence

    if current:
        pieces.append(current)

    if not pieces:
        # Degenerate input: fall back to the raw text, truncated.
        pieces = [text[:ceiling]]

    return [AudioChunk(text=piece, ordinal=idx) for idx, piece in enumerate(pieces)]
