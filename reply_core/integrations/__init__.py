from .groq.client_wrapper import GroqReplyProvider

__all__ = [
    'GroqReplyProvider',
]
