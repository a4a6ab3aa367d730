"""
Keyword-based content moderation for user-submitted text.

Checks run in order: banned keywords, excessive capitals, repeated
characters. The first failing check wins.
"""

import re
from dataclasses import dataclass

from fastapi import HTTPException, status

BANNED_KEYWORDS = (
    # Offensive / hate speech
    "fuck",
    "shit",
    "bitch",
    "asshole",
    "bastard",
    "damn",
    "hell",
    "crap",
    "piss",
    "dick",
    "nigger",
    "faggot",
    "retard",
    "cunt",
    # Spam indicators
    "buy now",
    "click here",
    "limited time",
    "free money",
)

# Whole-word match, so "hello" or "shell" are not caught by "hell"
_KEYWORD_PATTERNS = [(k, re.compile(rf"\b{re.escape(k)}\b")) for k in BANNED_KEYWORDS]

CAPS_RATIO_LIMIT = 0.7
CAPS_MIN_LENGTH = 10
_REPEATED_CHARS = re.compile(r"(.)\1{4,}")


@dataclass(frozen=True)
class FilterResult:
    clean: bool
    reason: str | None = None
    keyword: str | None = None


def check_content(content: str) -> FilterResult:
    if not content:
        return FilterResult(clean=True)

    lowered = content.lower()
    for keyword, pattern in _KEYWORD_PATTERNS:
        if pattern.search(lowered):
            return FilterResult(clean=False, reason="inappropriate_content", keyword=keyword)

    caps = sum(1 for c in content if "A" <= c <= "Z")
    if len(content) > CAPS_MIN_LENGTH and caps / len(content) > CAPS_RATIO_LIMIT:
        return FilterResult(clean=False, reason="spam", keyword="EXCESSIVE_CAPS")

    if _REPEATED_CHARS.search(content):
        return FilterResult(clean=False, reason="spam", keyword="REPEATED_CHARS")

    return FilterResult(clean=True)


def sanitize(content: str) -> str:
    """Strip angle brackets and surrounding whitespace."""
    return re.sub(r"[<>]", "", content).strip()


def validate_message_content(content: str, max_length: int) -> str:
    """Run the full write-path check and return sanitized text.

    Raises HTTPException(400) for empty, oversized or filtered content.
    """
    if not content or not content.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content is required")
    if len(content) > max_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message is too long (max {max_length} characters)",
        )
    result = check_content(content)
    if not result.clean:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Your message contains inappropriate content or spam",
                "reason": result.reason,
                "detail": f"Detected: {result.keyword}",
            },
        )
    cleaned = sanitize(content)
    if not cleaned:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Message content is required")
    return cleaned
