"""
Privacy-Safe Logging Utility

Configures reply-core loggers with a formatter that masks email addresses
in every emitted record, since log messages routinely quote email content,
senders and error context.
"""

import logging
import os
import re
from typing import Optional, Union

EMAIL_ADDRESS_PATTERN = re.compile(r'([\w.+-]+)@([\w-]+)((?:\.[\w-]+)+)')


def mask_email(address: str) -> str:
    """
    Mask an email address while keeping it recognizable for debugging.

    Args:
        address: Email address to mask

    Returns:
        Masked address, e.g. 'j**n@e******.com'
    """
    if not address or '@' not in address:
        return address

    try:
        username, domain = address.split('@', 1)
        if len(username) <= 2:
            masked_username = '*' * len(username)
        else:
            masked_username = username[0] + '*' * (len(username) - 2) + username[-1]

        domain_parts = domain.split('.')
        masked_domain = domain_parts[0][0] + '*' * (len(domain_parts[0]) - 1)

        return f"{masked_username}@{masked_domain}.{'.'.join(domain_parts[1:])}"
    except (IndexError, ValueError):
        return "***@***.***"


class RedactingFormatter(logging.Formatter):
    """
    Log formatter that masks email addresses in the formatted output.

    Applied after standard formatting, so addresses in messages, arguments
    and exception tracebacks are all covered.
    """

    def format(self, record: logging.LogRecord) -> str:
        formatted_message = super().format(record)
        return EMAIL_ADDRESS_PATTERN.sub(lambda match: mask_email(match.group(0)), formatted_message)


def configure_logging(
    name: Optional[str] = "reply_core",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    format_str: Optional[str] = None
) -> logging.Logger:
    """
    Configure a logger with console and optional file output.

    Args:
        name: Logger name (defaults to the reply_core package logger)
        level: Logging level, as a number or a name such as "DEBUG"
        log_file: Optional log file path, written as UTF-8
        format_str: Custom format string for log messages

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # Clear any existing handlers to avoid duplication
    if logger.hasHandlers():
        logger.handlers.clear()

    if format_str is None:
        format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    formatter = RedactingFormatter(format_str)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        try:
            directory = os.path.dirname(log_file)
            if directory:
                os.makedirs(directory, exist_ok=True)

            file_handler = logging.FileHandler(log_file, encoding='utf-8')
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f"Failed to create log file handler: {e}")

    return logger
