# src/source/markup.py — v1
"""Markup scraping primitives over BeautifulSoup.

Shared by the HTTP source collaborator (current page state) and by the
out-of-band discovery strategy (retrieved markup).
"""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qsl, urlsplit

from bs4 import BeautifulSoup, Tag

from lexingest.source.models import RawAnchor

logger = logging.getLogger(__name__)

IDENTITY_PARAM = "idProcessoDocumento"
FILENAME_PARAM = "nomeArqProcDocBin"

_LEGACY_DOCUMENT_PATH = re.compile(r"/documento/download/(\d+)")
_CASE_NUMBER = re.compile(r"\d{7}-\d{2}\.\d{4}\.\d\.\d{2}\.\d{4}")
_CASE_ID_IN_HREF = re.compile(r"idProcesso=(\d+)")
_CASE_ID_IN_SCRIPT = re.compile(r"idProcesso[\"\s:=]+(\d+)", re.IGNORECASE)
_DOCUMENTS_VIEW_TEXT = re.compile(r"\b(documentos|autos digitais|documents)\b", re.IGNORECASE)


def parse_markup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup or "", "html.parser")


def _query_params(href: str) -> dict[str, str]:
    try:
        return dict(parse_qsl(urlsplit(href).query, keep_blank_values=False))
    except ValueError:
        return {}


def _is_document_href(href: str) -> bool:
    return IDENTITY_PARAM in href or "/documento/" in href


def _row_cells(element: Tag) -> list[str]:
    row = element.find_parent("tr")
    if row is None:
        return []
    return [cell.get_text(" ", strip=True) for cell in row.find_all("td")]


def _anchor_from(element: Tag, href: str, link_text: str) -> RawAnchor:
    params = _query_params(href)
    return RawAnchor(
        href=href,
        identity_param=params.get(IDENTITY_PARAM),
        filename_param=params.get(FILENAME_PARAM),
        link_text=link_text,
        title=element.get("title") or element.get("alt"),
        row_cells=_row_cells(element),
        params=params,
    )


def scrape_anchors(soup: BeautifulSoup | str) -> list[RawAnchor]:
    """Collect every anchor or embedded frame that may reference a document.

    No identity filtering happens here; entries without a recoverable
    identity are discarded later by the descriptor builder.
    """
    if isinstance(soup, str):
        soup = parse_markup(soup)

    anchors: list[RawAnchor] = []
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if _is_document_href(href):
            anchors.append(_anchor_from(link, href, link.get_text(" ", strip=True)))

    for frame in soup.find_all(["embed", "iframe"], src=True):
        src = frame["src"]
        if "/documento/" in src:
            anchors.append(_anchor_from(frame, src, ""))

    return anchors


def has_document_anchors(soup: BeautifulSoup | str) -> bool:
    """Structural probe: does this markup expose at least one document link?"""
    if isinstance(soup, str):
        soup = parse_markup(soup)
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if IDENTITY_PARAM in href or _LEGACY_DOCUMENT_PATH.search(href):
            return True
    return False


def legacy_document_id(href: str) -> str | None:
    match = _LEGACY_DOCUMENT_PATH.search(href)
    return match.group(1) if match else None


def detect_page_count(soup: BeautifulSoup | str) -> int:
    """Highest numeric link text inside pagination containers (1 if none)."""
    if isinstance(soup, str):
        soup = parse_markup(soup)

    def _is_pagination(tag: Tag) -> bool:
        classes = " ".join(tag.get("class") or [])
        ident = tag.get("id") or ""
        return "paginat" in classes.lower() or "paginat" in ident.lower()

    for container in soup.find_all(_is_pagination):
        max_page = 1
        for link in container.find_all("a"):
            text = link.get_text(strip=True)
            if text.isdigit():
                max_page = max(max_page, int(text))
        if max_page > 1:
            return max_page
    return 1


def extract_case_number(soup: BeautifulSoup | str) -> str | None:
    """CNJ case number (NNNNNNN-DD.AAAA.J.TR.OOOO) found in page text."""
    if isinstance(soup, str):
        soup = parse_markup(soup)
    match = _CASE_NUMBER.search(soup.get_text(" "))
    return match.group(0) if match else None


def extract_case_identifier(soup: BeautifulSoup | str, page_url: str = "") -> str | None:
    """Internal case id (``idProcesso``) used by the documents-view locator.

    Looked up, in order: page URL, hidden inputs, data attributes, links,
    inline scripts, iframes.
    """
    if isinstance(soup, str):
        soup = parse_markup(soup)

    from_url = _query_params(page_url).get("idProcesso")
    if from_url:
        return from_url

    for hidden in soup.find_all("input", attrs={"type": "hidden"}):
        name = (hidden.get("name") or hidden.get("id") or "").lower()
        value = hidden.get("value") or ""
        if "processo" in name and value.isdigit():
            return value

    for attr in ("data-id-processo", "data-processo-id", "data-idprocesso"):
        for el in soup.find_all(attrs={attr: True}):
            value = el.get(attr) or ""
            if value.isdigit():
                return value

    for link in soup.find_all("a", href=True):
        match = _CASE_ID_IN_HREF.search(link["href"])
        if match:
            return match.group(1)

    for script in soup.find_all("script"):
        match = _CASE_ID_IN_SCRIPT.search(script.get_text())
        if match:
            return match.group(1)

    for frame in soup.find_all("iframe", src=True):
        match = _CASE_ID_IN_HREF.search(frame["src"])
        if match:
            return match.group(1)

    return None


def find_documents_view_link(soup: BeautifulSoup | str) -> str | None:
    """In-page control leading to the documents view, if any."""
    if isinstance(soup, str):
        soup = parse_markup(soup)
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if "ConsultaDocumento" in href or "listAutosDigitais" in href:
            return href
    for link in soup.find_all("a", href=True):
        if _DOCUMENTS_VIEW_TEXT.search(link.get_text(" ", strip=True)):
            href = link["href"]
            if href and not href.startswith(("#", "javascript:")):
                return href
    return None
