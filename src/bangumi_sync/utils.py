"""Small helpers shared by the HTTP-facing modules."""

from typing import Dict, Optional


def proxies_for(proxy_url: Optional[str]) -> Optional[Dict[str, str]]:
    """Build a requests ``proxies`` mapping for a single proxy URL."""
    if not proxy_url:
        return None
    return {"http": proxy_url, "https": proxy_url}
