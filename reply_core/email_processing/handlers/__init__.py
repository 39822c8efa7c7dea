from .date_service import EmailDateService
from .parser import EmailParser
from .writer import ReplyComposer

__all__ = [
    'EmailDateService',
    'EmailParser',
    'ReplyComposer'
]
