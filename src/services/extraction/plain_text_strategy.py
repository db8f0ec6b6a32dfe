"""Extraction strategy for plain text and markdown: decode bytes verbatim."""

from __future__ import annotations

from src.utils.errors import ExtractionError
from src.utils.text_normalizer import decode_text


class PlainTextStrategy:
    """Decodes UTF-8 text without altering it."""

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    def extract(self, data: bytes) -> str:
        try:
            return decode_text(data, self._encoding)
        except UnicodeDecodeError as exc:
            raise ExtractionError(
                message=f"File is not valid {self._encoding} text: {exc.reason}"
            ) from exc
