from streamui.sanitizers.text import (
    sanitize_patch,
    sanitize_unknown_text,
    strip_leading_emoji_tokens,
)
from streamui.sanitizers.url_policy import UrlSanitizationResult, sanitize_url

__all__ = [
    "sanitize_patch",
    "sanitize_unknown_text",
    "strip_leading_emoji_tokens",
    "UrlSanitizationResult",
    "sanitize_url",
]
