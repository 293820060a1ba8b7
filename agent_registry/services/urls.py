from __future__ import annotations

import re
import time
import urllib.parse
from typing import Optional

from agent_registry.settings import MANIFEST_PATH

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def normalize_domain(domain: str) -> str:
    """'HTTPS://Example.com/' -> 'example.com'. Anything after the host is dropped."""
    d = _SCHEME_RE.sub("", (domain or "").strip())
    d = d.split("/", 1)[0]
    return d.lower()


def normalize_agent_url(url: str) -> str:
    """Trim whitespace and one trailing slash; scheme, host and path case are kept."""
    u = (url or "").strip()
    if u.endswith("/"):
        u = u[:-1]
    return u


def hostname_of(url: str) -> Optional[str]:
    try:
        host = urllib.parse.urlsplit(url).hostname
    except ValueError:
        return None
    return host or None


def manifest_url(domain: str) -> str:
    return f"https://{normalize_domain(domain)}{MANIFEST_PATH}"
