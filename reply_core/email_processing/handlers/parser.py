import logging
import re
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple

from bs4 import BeautifulSoup

from reply_core.email_processing.handlers.date_service import EmailDateService
from reply_core.email_processing.models import ParsedEmail, Sender

logger = logging.getLogger(__name__)

UNKNOWN_SENDER = "unknown@example.com"

HTML_PATTERN = re.compile(r'<\s*(?:html|body|div|p|br|span|table)\b', re.IGNORECASE)
HEADER_LINE_PATTERN = re.compile(r'^[A-Za-z][A-Za-z-]*:[ \t]', re.MULTILINE)
LEADING_HEADERS_PATTERN = re.compile(
    r'(?:(?:From|Sender|To|Cc|Bcc|Reply-To|Subject|Re|Fwd|Date|Sent):[^\n]*(?:\n|\Z))+',
    re.IGNORECASE
)
SENDER_PATTERN = re.compile(
    r'^(?:From|Sender):[ \t]*'
    r'(?:"?([^"<\n]*?)"?[ \t]*<([^>\n]+)>|([^\s,<>]+@[^\s,<>]+))',
    re.IGNORECASE | re.MULTILINE
)
BARE_ADDRESS_PATTERN = re.compile(r'[\w.+-]+@[\w-]+(?:\.[\w-]+)+')
SUBJECT_PATTERN = re.compile(r'^(?:Subject|Re|Fwd):[ \t]*(.*)$', re.IGNORECASE | re.MULTILINE)
SUBJECT_PREFIX_PATTERN = re.compile(r'^(?:(?:Re|Fwd?|Fw):\s*)+', re.IGNORECASE)
DATE_PATTERN = re.compile(r'^(?:Date|Sent):[ \t]*(.+)$', re.IGNORECASE | re.MULTILINE)
SIGNATURE_PATTERN = re.compile(r'(?:^|\n)[ \t]*(?:-{2,}|_{2,})[ \t]*(?:\n[\s\S]*)?\Z')
SIGN_OFF_PATTERN = re.compile(
    r'\n[ \t]*(?:Best|Kind regards|Regards|Sincerely|Thank you)\b[^\n]{0,20}(?:\n[\s\S]*)?\Z',
    re.IGNORECASE
)
ATTACHMENT_PATTERN = re.compile(
    r'\b(?:attached|attachments?|enclosed)\b|\.(?:docx?|pdf|xlsx?|pptx?|csv|zip|jpe?g|png)\b',
    re.IGNORECASE
)


class EmailParser:
    """
    Turns raw email text into a normalized ParsedEmail.

    Never raises: empty input yields a placeholder record, and any failure
    inside extraction yields a placeholder flagged as degraded.
    """

    def __init__(self, date_service: Optional[EmailDateService] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.date_service = date_service or EmailDateService()
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def _now(self) -> datetime:
        return self.clock().replace(microsecond=0)

    def _empty(self, degraded: bool) -> ParsedEmail:
        return ParsedEmail(
            sender=Sender(email=UNKNOWN_SENDER),
            subject="",
            body="",
            timestamp=self._now(),
            has_attachments=False,
            degraded=degraded
        )

    def parse(self, raw_text: str) -> ParsedEmail:
        """
        Parse raw email text into sender, subject, body, timestamp and
        attachment flag.

        Args:
            raw_text: Email as pasted or fetched, headers optional

        Returns:
            ParsedEmail, with placeholder values for anything not found
        """
        if not isinstance(raw_text, str):
            logger.warning(f"Cannot parse non-string email content of type {type(raw_text).__name__}")
            return self._empty(degraded=True)
        if not raw_text.strip():
            return self._empty(degraded=False)

        try:
            content = self._normalize(self._clean_html(raw_text))
            sender = self._extract_sender(content)
            subject = self._extract_subject(content)
            timestamp = self._extract_timestamp(content)
            body = self._extract_body(content)

            return ParsedEmail(
                sender=sender,
                subject=subject,
                body=body,
                timestamp=timestamp,
                has_attachments=bool(ATTACHMENT_PATTERN.search(content)),
                degraded=False
            )
        except Exception as e:
            logger.error(f"Email parsing failed, using placeholder record: {e}")
            return self._empty(degraded=True)

    def _clean_html(self, content: str) -> str:
        """Flatten HTML content to text, leaving plain text untouched."""
        if not HTML_PATTERN.search(content):
            return content
        try:
            soup = BeautifulSoup(content, 'html.parser')
            for element in soup(["script", "style"]):
                element.decompose()
            return soup.get_text("\n")
        except Exception as e:
            logger.warning(f"HTML cleaning failed: {e}, using original content")
            return content

    @staticmethod
    def _normalize(content: str) -> str:
        content = content.replace('\r\n', '\n').replace('\r', '\n')
        content = re.sub(r'^[ \t]+|[ \t]+$', '', content, flags=re.MULTILINE)
        content = re.sub(r'\n{3,}', '\n\n', content)
        return content.strip()

    @staticmethod
    def _extract_sender(content: str) -> Sender:
        match = SENDER_PATTERN.search(content)
        if match:
            name = (match.group(1) or '').strip() or None
            address = (match.group(2) or match.group(3)).strip()
            return Sender(name=name, email=address)

        bare = BARE_ADDRESS_PATTERN.search(content)
        if bare:
            return Sender(email=bare.group(0))
        return Sender(email=UNKNOWN_SENDER)

    @staticmethod
    def _extract_subject(content: str) -> str:
        match = SUBJECT_PATTERN.search(content)
        if not match:
            return ""
        return SUBJECT_PREFIX_PATTERN.sub('', match.group(1).strip()).strip()

    def _extract_timestamp(self, content: str) -> datetime:
        match = DATE_PATTERN.search(content)
        if match:
            parsed, success = self.date_service.parse_email_date(match.group(1))
            if success:
                return parsed
            logger.debug(f"Unparseable date header '{match.group(1)}', using current time")
        return self._now()

    @staticmethod
    def _split_headers(content: str) -> Tuple[str, str]:
        """Split off a leading header block when the text has one."""
        parts = re.split(r'\n\s*\n', content, maxsplit=1)
        if len(parts) > 1 and HEADER_LINE_PATTERN.search(parts[0]):
            return parts[0], parts[1]

        # Headers pasted without a separating blank line
        headers = LEADING_HEADERS_PATTERN.match(content)
        if headers:
            return headers.group(0), content[headers.end():]
        return "", content

    def _extract_body(self, content: str) -> str:
        _, body = self._split_headers(content)
        body = SIGNATURE_PATTERN.sub('', body)
        body = SIGN_OFF_PATTERN.sub('', body)
        return body.strip()
