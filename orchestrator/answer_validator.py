import re

from models.search_types import AnswerValidation, DocumentContent
from utils.prompts import NOT_FOUND_SENTENCE

_MARKDOWN_LINK_RE = re.compile(r"\[[^\]]+\]\((https?://[^)\s]+|/[^)\s]*)\)")
_SOURCE_REF_RE = re.compile(r"\b(source|document)\s+\d+\b", re.I)


class AnswerValidator:
    """Derives an AnswerValidation locally when the answer backend sends none."""

    def __init__(self, thresholds: dict[str, int] | None = None):
        self._thresholds = thresholds or {}

    def validate(self, answer: str, documents: list[DocumentContent]) -> AnswerValidation:
        text = answer or ""
        warnings: list[str] = []

        is_not_found = self._looks_like_not_found(text)
        has_sources = self._cites_sources(text, documents)

        min_chars = self._thresholds.get("short_answer_chars", 80)
        if not is_not_found and len(text.strip()) < min_chars:
            warnings.append("Answer is unusually short")
        if not is_not_found and not has_sources:
            warnings.append("Answer does not cite the provided documentation")

        if is_not_found:
            confidence = "low"
        elif has_sources and not warnings:
            confidence = "high"
        else:
            confidence = "medium"

        return AnswerValidation(
            confidence=confidence,
            is_not_found=is_not_found,
            has_sources=has_sources,
            warnings=tuple(warnings),
        )

    def _looks_like_not_found(self, text: str) -> bool:
        text_lower = text.lower()
        not_found_phrases = [
            NOT_FOUND_SENTENCE.lower(),
            "couldn't find this in the",
            "could not find this in the",
            "not covered in the provided documentation",
            "not mentioned in the provided documentation",
            "the documentation does not contain",
            "the provided documentation doesn't",
            "no information about",
        ]
        if any(phrase in text_lower for phrase in not_found_phrases):
            return True

        return bool(
            re.search(
                r"\b(couldn't|could not|can't|cannot|unable to)\b.{0,30}\b(find|locate)\b.{0,60}\bdocumentation\b",
                text_lower,
                re.S,
            )
        )

    def _cites_sources(self, text: str, documents: list[DocumentContent]) -> bool:
        for document in documents:
            if document.url and document.url in text:
                return True
        if _MARKDOWN_LINK_RE.search(text):
            return True
        return bool(_SOURCE_REF_RE.search(text))
