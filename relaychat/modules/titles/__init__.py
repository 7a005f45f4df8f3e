"""Conversation title generation."""

from .title_generator import MAX_TITLE_LENGTH, TITLE_FALLBACK, TitleGenerator, parse_title_content

__all__ = ["TitleGenerator", "TITLE_FALLBACK", "MAX_TITLE_LENGTH", "parse_title_content"]
