"""
Email processing package initialization.
"""

from .models import (
    EmailAnalysis,
    EmailGenerationOptions,
    GeneratedReply,
    Intent,
    ParsedEmail,
    ReplyLength,
    ReplyTone,
)
from .handlers.parser import EmailParser
from .handlers.writer import ReplyComposer
from .analyzers.email_analyzer import EmailAnalyzer
from .processor import EmailProcessor, ReplyDraft, build_processor

__all__ = [
    'EmailAnalysis',
    'EmailGenerationOptions',
    'GeneratedReply',
    'Intent',
    'ParsedEmail',
    'ReplyLength',
    'ReplyTone',
    'EmailParser',
    'ReplyComposer',
    'EmailAnalyzer',
    'EmailProcessor',
    'ReplyDraft',
    'build_processor'
]
