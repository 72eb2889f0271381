"""
Transcript Format

Messages are serialized as paragraphs of the form "<role>: <content>"
separated by blank lines. A paragraph without a role prefix continues the
message before it, so content may contain blank lines; paragraphs before
the first message are dropped on parse.
"""
import logging
import re
from typing import Iterable, List

from .state import Message, Role

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
_PARAGRAPH_RE = re.compile(r"^(user|assistant): (.+)$", re.DOTALL)


def format_transcript(messages: Iterable[Message]) -> str:
    """Serialize messages into the paragraph transcript format."""
    return PARAGRAPH_SEPARATOR.join(
        f"{message.role.value}: {message.content}" for message in messages
    )


def parse_transcript(text: str) -> List[Message]:
    """Parse a paragraph transcript back into messages."""
    if not text:
        return []

    turns: List[List[str]] = []
    skipped = 0
    for paragraph in text.split(PARAGRAPH_SEPARATOR):
        match = _PARAGRAPH_RE.match(paragraph)
        if match:
            turns.append([match.group(1), match.group(2)])
        elif turns:
            turns[-1][1] += PARAGRAPH_SEPARATOR + paragraph
        else:
            skipped += 1

    if skipped:
        logger.debug(f"Dropped {skipped} transcript paragraph(s) before the first message")
    return [Message(role=Role(role), content=content) for role, content in turns]
