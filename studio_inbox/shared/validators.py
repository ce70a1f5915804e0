"""Shared validation utilities"""

import re
from typing import Iterable, Optional

MAX_SUBJECT_LENGTH = 300
MAX_MESSAGE_LENGTH = 10000
MAX_PREFERRED_DATES_LENGTH = 500

# Control characters other than tab/newline/carriage return
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def clean_text(value: Optional[str]) -> str:
    """Strip surrounding whitespace and control characters"""
    if not value:
        return ""
    return _CONTROL_CHARS.sub("", str(value)).strip()


def validate_message_body(body: Optional[str], max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Validate a message body.

    Returns:
        The cleaned body

    Raises:
        ValueError: If the body is empty or too long
    """
    cleaned = clean_text(body)
    if not cleaned:
        raise ValueError("Message body cannot be empty")
    if len(cleaned) > max_length:
        raise ValueError(f"Message body exceeds maximum length of {max_length} characters")
    return cleaned


def validate_subject(subject: Optional[str]) -> str:
    """
    Validate a thread subject line.

    Raises:
        ValueError: If the subject is empty or longer than the column allows
    """
    cleaned = clean_text(subject)
    if not cleaned:
        raise ValueError("Subject is required")
    if len(cleaned) > MAX_SUBJECT_LENGTH:
        raise ValueError(f"Subject exceeds maximum length of {MAX_SUBJECT_LENGTH} characters")
    return cleaned


def normalize_participant_ids(participant_ids: Iterable[str]) -> list[str]:
    """De-duplicate participant ids, keeping first-seen order and dropping blanks"""
    seen: dict[str, None] = {}
    for pid in participant_ids:
        pid = (pid or "").strip()
        if pid:
            seen.setdefault(pid, None)
    return list(seen)
