"""Conversation thread history and summary cache."""

from .models import Message, MessageValidationError, Summary, Thread
from .registry import ThreadRegistry, ThreadSnapshot
from .summarizer import Summarizer, LLMProtocol, NO_SUMMARY_TEXT
from .summary_cache import SummaryCache
from .aggregator import ContextAggregator
from .service import MessageHistoryService, create_history_service

__all__ = [
    "Message",
    "MessageValidationError",
    "Summary",
    "Thread",
    "ThreadRegistry",
    "ThreadSnapshot",
    "Summarizer",
    "LLMProtocol",
    "NO_SUMMARY_TEXT",
    "SummaryCache",
    "ContextAggregator",
    "MessageHistoryService",
    "create_history_service",
]
