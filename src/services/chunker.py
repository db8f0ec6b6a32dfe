"""Sentence-aligned text chunking for generation requests.

Splits extracted text into chunks that fit a character budget so each chunk
can be sent to the generation service on its own.  Boundaries always fall
between sentences:

1. **Sentence split** -- the text is cut on every run of ``.``, ``!`` or
   ``?``; fragments that are blank after trimming are dropped.

2. **Greedy accumulation** -- sentences are appended to a buffer, joined
   with ``". "``.  When the next sentence would push the buffer past the
   budget and the buffer is not empty, the buffer is emitted and a new one
   starts with that sentence.

A sentence longer than the budget on its own is emitted whole rather than
truncated.  Joining the chunks with ``". "`` and splitting on that separator
gives back exactly :meth:`TextChunker.sentences`.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

_SENTENCE_END_RE = re.compile(r"[.!?]+")
SENTENCE_SEPARATOR = ". "


class TextChunker:
    """Splits text into sentence-aligned chunks of bounded size."""

    def sentences(self, text: str) -> list[str]:
        """Return the trimmed, non-blank sentences of *text* in order."""
        fragments = (fragment.strip() for fragment in _SENTENCE_END_RE.split(text))
        return [fragment for fragment in fragments if fragment]

    def split(self, text: str, max_chunk_size: int) -> list[str]:
        """Split *text* into chunks of at most *max_chunk_size* characters.

        Parameters
        ----------
        text:
            The full extracted text.
        max_chunk_size:
            Character budget per chunk.  Must be positive.

        Returns
        -------
        list[str]
            Chunks in document order.  Empty or sentence-less input returns
            an empty list.
        """
        if max_chunk_size <= 0:
            raise ValueError("max_chunk_size must be positive")

        chunks: list[str] = []
        buffer = ""
        for sentence in self.sentences(text):
            if buffer and len(buffer) + len(SENTENCE_SEPARATOR) + len(sentence) > max_chunk_size:
                chunks.append(buffer)
                buffer = sentence
            elif buffer:
                buffer = f"{buffer}{SENTENCE_SEPARATOR}{sentence}"
            else:
                buffer = sentence

        if buffer:
            chunks.append(buffer)

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            max_chunk_size=max_chunk_size,
            text_length=len(text),
        )
        return chunks
