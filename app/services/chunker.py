from typing import List
import logging
import math
import re

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE_END = re.compile(r"[.!?]+")


def estimate_tokens(text: str) -> int:
    """Rough token estimate, four characters per token"""
    return math.ceil(len(text) / 4)


def _overlap_tail(text: str, overlap: int) -> str:
    """The last ceil(overlap / 5) space-separated words of text"""
    count = math.ceil(overlap / 5)
    if count <= 0:
        return ""
    return " ".join(text.split(" ")[-count:])


def _chunk_paragraphs(text: str, target_size: int, overlap: int) -> List[str]:
    chunks = []
    current = ""

    for paragraph in _PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue

        if current and len(current) + len(paragraph) > target_size:
            chunks.append(current.strip())
            tail = _overlap_tail(current, overlap)
            current = f"{tail} {paragraph}" if tail else paragraph
        else:
            current = f"{current}\n\n{paragraph}" if current else paragraph

    if current.strip():
        chunks.append(current.strip())
    return chunks


def _chunk_sentences(text: str, target_size: int) -> List[str]:
    chunks = []
    current = ""

    for sentence in _SENTENCE_END.split(text):
        sentence = sentence.strip()
        if not sentence:
            continue

        if current and len(current) + len(sentence) > target_size:
            chunks.append(current.strip())
            current = sentence
        else:
            current = f"{current}. {sentence}" if current else sentence

    if current.strip():
        chunks.append(current.strip())
    return chunks


def chunk_text(text: str, target_size: int = 500, overlap: int = 50) -> List[str]:
    """
    Split text into chunks of roughly target_size characters.

    Paragraphs (separated by blank lines) are accumulated until the next one
    would overflow the target. Each new chunk is seeded with the last
    ceil(overlap / 5) words of the previous one. A single paragraph longer
    than the target is kept whole. Never raises; blank input gives [""].
    """
    chunks = _chunk_paragraphs(text, target_size, overlap)

    if not chunks and text.strip():
        chunks = _chunk_sentences(text, target_size)

    if not chunks:
        return [text.strip()]

    logger.debug(f"Split {len(text)} characters into {len(chunks)} chunks")
    return chunks
