"""
Utility helpers shared across routers/services.
"""

from typing import Mapping, Optional
from urllib.parse import urlencode

from .config import get_settings


def absolute_url(path: str, base: Optional[str] = None, query: Optional[Mapping[str, str]] = None) -> str:
    """
    Turn a relative path into an absolute URL using PUBLIC_BASE_URL.
    Query values are percent-encoded.
    """
    base_url = (base if base is not None else get_settings().public_base_url).rstrip("/")
    if not path:
        url = base_url + "/"
    elif path.startswith("http://") or path.startswith("https://"):
        url = path
    else:
        if not path.startswith("/"):
            path = "/" + path
        url = base_url + path
    if query:
        url = f"{url}?{urlencode(query)}"
    return url
