from .logging import RedactingFormatter, configure_logging, mask_email

__all__ = [
    'RedactingFormatter',
    'configure_logging',
    'mask_email'
]
