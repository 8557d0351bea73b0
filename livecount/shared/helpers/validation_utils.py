"""
Validation utility functions for LiveCount
"""

import re
from typing import Optional

# One or more dot-separated DNS labels, lowercase, no leading/trailing hyphen
DOMAIN_PATTERN = re.compile(
    r"^(?=.{1,253}$)[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?"
    r"(?:\.[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?)+$"
)


def normalize_domain(domain: str) -> str:
    """Normalize domain for consistent lookups"""
    domain = domain.strip()

    # Remove protocol
    if domain.startswith(("http://", "https://")):
        domain = domain.split("://", 1)[1]

    # Remove trailing slash
    domain = domain.rstrip("/")

    return domain.lower()


def is_valid_shop_domain(domain: Optional[str]) -> bool:
    """Check a normalized shop domain against the strict domain-token pattern"""
    if not domain:
        return False
    return bool(DOMAIN_PATTERN.match(domain))


def classify_device(user_agent: Optional[str]) -> Optional[str]:
    """Coarse device class from a user agent string"""
    if not user_agent:
        return None

    ua_lower = user_agent.lower()
    if "ipad" in ua_lower or "tablet" in ua_lower:
        return "tablet"
    if "mobile" in ua_lower or "android" in ua_lower or "iphone" in ua_lower:
        return "mobile"
    return "desktop"
