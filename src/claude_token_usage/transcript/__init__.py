"""Transcript decoding, aggregation and quota-notice classification."""

from .errors import TranscriptError, TranscriptReadError
from .limit_classifier import LimitClassification, classify_limit_text, extract_token_count
from .parser import parse_transcript, parse_transcript_stream
from .schemas import LimitEvent, LimitEventType, LimitType, ParsedTranscript, SessionStatistics

__all__ = [
    "LimitClassification",
    "LimitEvent",
    "LimitEventType",
    "LimitType",
    "ParsedTranscript",
    "SessionStatistics",
    "TranscriptError",
    "TranscriptReadError",
    "classify_limit_text",
    "extract_token_count",
    "parse_transcript",
    "parse_transcript_stream",
]
