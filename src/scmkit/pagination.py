"""
Pagination normalizer.

Reads provider-specific paging signals and reports one canonical ``Page``.
Signals are consulted in this order, the first one present wins:

1. ``Link`` header (GitHub, Gitea)
2. page echo headers such as ``X-Next-Page`` (GitLab) or ``X-HasMore`` (Gitea)
3. body envelope with ``isLastPage``/``nextPageStart`` (Bitbucket Server)

Total-count headers are advisory and never imply a further page, and
neither does a full page of results.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qs, urlparse

from .models import ListOptions, Page, Rate

logger = logging.getLogger(__name__)

LINK_PATTERN = re.compile(r'<([^>]*)>\s*;\s*rel="?([^";]+)"?')

PAGING_HEADERS = (
    "link",
    "x-page",
    "x-per-page",
    "x-next-page",
    "x-prev-page",
    "x-total",
    "x-total-pages",
    "x-total-count",
    "x-hasmore",
)


def _lower(headers: Mapping[str, str]) -> dict[str, str]:
    return {k.lower(): v for k, v in headers.items()}


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _page_from_url(url: str) -> int | None:
    query = parse_qs(urlparse(url).query)
    values = query.get("page")
    return _to_int(values[0]) if values else None


def parse_link_header(value: str) -> dict[str, str]:
    """Map each ``rel`` of an RFC 8288 ``Link`` header to its target URL."""
    links: dict[str, str] = {}
    for url, rels in LINK_PATTERN.findall(value):
        for rel in rels.split():
            links[rel] = url
    return links


def parse_rate(headers: Mapping[str, str]) -> Rate | None:
    """Parse ``X-RateLimit-*`` headers, if present."""
    lowered = _lower(headers)
    limit = _to_int(lowered.get("x-ratelimit-limit"))
    remaining = _to_int(lowered.get("x-ratelimit-remaining"))
    if limit is None and remaining is None:
        return None
    return Rate(
        limit=limit or 0,
        remaining=remaining or 0,
        reset=_to_int(lowered.get("x-ratelimit-reset")) or 0,
    )


def _from_link(link: str, current: int, size: int, total: int | None, hints: dict[str, str]) -> Page:
    links = parse_link_header(link)
    next_url = links.get("next", "")
    return Page(
        page=current,
        size=size,
        next=_page_from_url(next_url) if next_url else None,
        prev=_page_from_url(links["prev"]) if "prev" in links else None,
        first=_page_from_url(links["first"]) if "first" in links else None,
        last=_page_from_url(links["last"]) if "last" in links else None,
        total=total,
        next_url=next_url,
        hints=hints,
    )


def _from_echo_headers(
    lowered: dict[str, str],
    current: int,
    size: int,
    total: int | None,
    hints: dict[str, str],
) -> Page | None:
    has_echo = any(
        lowered.get(name, "").strip()
        for name in ("x-next-page", "x-prev-page", "x-page", "x-hasmore")
    )
    if not has_echo:
        return None

    page = _to_int(lowered.get("x-page")) or current
    next_page = _to_int(lowered.get("x-next-page"))
    if next_page is None and lowered.get("x-hasmore", "").strip().lower() == "true":
        next_page = page + 1

    total_pages = _to_int(lowered.get("x-total-pages"))
    return Page(
        page=page,
        size=_to_int(lowered.get("x-per-page")) or size,
        next=next_page,
        prev=_to_int(lowered.get("x-prev-page")),
        first=1 if total_pages else None,
        last=total_pages,
        total=total,
        hints=hints,
    )


def _from_body(body: Any, current: int, size: int, total: int | None, hints: dict[str, str]) -> Page | None:
    if not isinstance(body, dict) or "isLastPage" not in body:
        return None

    limit = _to_int(body.get("limit")) or size
    start = _to_int(body.get("start"))
    if start is not None and limit:
        page = start // limit + 1
    else:
        page = current or 1
    next_page = None if body.get("isLastPage") else page + 1

    for key in ("start", "limit", "size", "isLastPage", "nextPageStart"):
        if key in body:
            hints[key] = str(body[key])

    return Page(
        page=page,
        size=limit,
        next=next_page,
        prev=page - 1 if page > 1 else None,
        first=1,
        total=total,
        hints=hints,
    )


def normalize(
    headers: Mapping[str, str],
    body: Any = None,
    options: ListOptions | None = None,
) -> Page:
    """
    Produce a canonical pagination descriptor for a list response.

    Args:
        headers: Raw response headers
        body: Decoded response body (only envelope bodies are inspected)
        options: The list options that were requested

    Returns:
        Page describing the current page and whether another exists
    """
    options = options or ListOptions()
    lowered = _lower(headers)
    hints = {name: lowered[name] for name in PAGING_HEADERS if name in lowered}

    current = options.page or 1
    size = options.size
    total = _to_int(lowered.get("x-total-count"))
    if total is None:
        total = _to_int(lowered.get("x-total"))

    link = lowered.get("link", "").strip()
    if link:
        return _from_link(link, current, size, total, hints)

    page = _from_echo_headers(lowered, current, size, total, hints)
    if page is not None:
        return page

    page = _from_body(body, options.page, size, total, hints)
    if page is not None:
        return page

    if total is not None:
        logger.debug(f"Only an advisory total ({total}) was sent; reporting no further page")
    return Page(page=current, size=size, total=total, hints=hints)
