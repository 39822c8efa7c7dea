from .email_analyzer import EmailAnalyzer
from .review import ReviewVerdict, assess_review

__all__ = [
    'EmailAnalyzer',
    'ReviewVerdict',
    'assess_review'
]
