"""
URL policy for external navigation.

Safe by default: only absolute URLs with an allowed scheme (http/https) and
relative URLs pass. Protocol-relative URLs and every other scheme
(javascript:, data:, file:, ...) are blocked.
"""

import re
from dataclasses import dataclass
from typing import Optional

from streamui.vars import ALLOWED_URL_SCHEMES

SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:")
# Browsers drop these anywhere in a URL and trim C0 controls and spaces at
# both ends before resolving the scheme.
TAB_OR_NEWLINE_RE = re.compile(r"[\t\n\r]")
C0_CONTROL_OR_SPACE = "".join(chr(c) for c in range(0x21))


@dataclass(frozen=True)
class UrlSanitizationResult:
    ok: bool
    url: Optional[str] = None
    reason: Optional[str] = None


def sanitize_url(raw: str) -> UrlSanitizationResult:
    if not isinstance(raw, str):
        return UrlSanitizationResult(ok=False, reason="empty")
    trimmed = TAB_OR_NEWLINE_RE.sub("", raw).strip(C0_CONTROL_OR_SPACE).strip()
    if not trimmed:
        return UrlSanitizationResult(ok=False, reason="empty")

    # Scheme-relative URLs inherit the current page scheme; browsers read a
    # backslash there as a slash.
    if trimmed[:2].replace("\\", "/") == "//":
        return UrlSanitizationResult(ok=False, reason="protocol-relative")

    match = SCHEME_RE.match(trimmed)
    if match:
        scheme = match.group(0)[:-1].lower()
        if scheme in ALLOWED_URL_SCHEMES:
            return UrlSanitizationResult(ok=True, url=trimmed)
        return UrlSanitizationResult(ok=False, reason=f"disallowed-scheme:{scheme}")

    return UrlSanitizationResult(ok=True, url=trimmed)
