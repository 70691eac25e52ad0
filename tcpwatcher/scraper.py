"""Session-backed scraper for the TCP Haryana e-draw portal."""

from __future__ import annotations

import logging
import re
import time
from typing import Dict, List, Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from .errors import FetchError
from .models import HOME_PATH, MISSING_LINK, TCP_BASE, ProjectRecord, Snapshot

logger = logging.getLogger(__name__)

SEARCH_PATH = "/tcp-dms/ajax/search-scheme"
DEFAULT_PER_PAGE = 10
DEFAULT_MAX_PAGES = 20
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

START_DATE_LABEL = "Online Application Start Date"
END_DATE_LABEL = "Online Application End Date & Time"
DRAW_LINK_TITLE = "Details of Draw"
BROCHURE_LINK_TITLE = "Building Plan & Brochure"


class TCPPortalClient:
    """Lightweight wrapper around the portal's home page and search endpoint."""

    def __init__(self,
                 base_url: str = TCP_BASE,
                 session: requests.Session | None = None,
                 timeout: float = 20,
                 deadline: float | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.deadline = deadline
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})

    @property
    def home_url(self) -> str:
        return self.base_url + HOME_PATH

    @property
    def search_url(self) -> str:
        return self.base_url + SEARCH_PATH

    def request_timeout(self) -> float:
        """Clamp the per-request timeout to whatever is left of the run budget."""
        if self.deadline is None:
            return self.timeout
        remaining = self.deadline - time.monotonic()
        if remaining <= 0:
            raise FetchError("Fetch exceeded the run time budget")
        return min(self.timeout, remaining)

    def fetch_csrf_token(self) -> str:
        logger.debug("Fetching home page %s", self.home_url)
        try:
            response = self.session.get(self.home_url, timeout=self.request_timeout())
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Home page request failed: {exc}", exc) from exc

        token = extract_csrf_token(response.text)
        if not token:
            raise FetchError("Could not retrieve CSRF token from homepage.")
        logger.info("Session tokens acquired (CSRF %s...)", token[:10])
        return token

    def search_payload(self, token: str, page: int, per_page: int) -> Dict[str, str]:
        # xStatus=6 selects schemes that are currently open.
        return {
            "keywrdSearch": "",
            "district": "",
            "town": "",
            "colonizer": "",
            "moduleType": "2",
            "searchType": "1",
            "lstType": "1",
            "totalPages": "",
            "xStatus": "6",
            "perPage": str(per_page),
            "currentPage": str(page),
            "clientID": "2",
            "langID": "1",
            "langCode": "en",
            "_csrf": token,
        }

    def fetch_page(self, token: str, page: int, per_page: int = DEFAULT_PER_PAGE) -> str:
        try:
            response = self.session.post(
                self.search_url,
                data=self.search_payload(token, page, per_page),
                headers={
                    "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
                    "X-CSRF-TOKEN": token,
                    "Origin": self.base_url,
                    "Referer": self.home_url,
                    "X-Requested-With": "XMLHttpRequest",
                },
                timeout=self.request_timeout(),
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"Search request failed (page {page}): {exc}", exc) from exc
        return response.text


def extract_csrf_token(html_text: str) -> Optional[str]:
    soup = BeautifulSoup(html_text, "html.parser")
    field = soup.find("input", attrs={"name": "_csrf"})
    if field and field.get("value"):
        return field["value"]
    meta = soup.find("meta", attrs={"name": "_csrf"})
    if meta and meta.get("content"):
        return meta["content"]
    return None


def normalize_project_id(text: str) -> str:
    return re.sub(r"[^0-9]", "", text or "")


def strip_label(text: str, label: str) -> str:
    """Remove a field label and its colon, leaving the raw value untouched."""
    value = " ".join((text or "").split())
    value = value.replace(label, "", 1).strip()
    if value.startswith(":"):
        value = value[1:]
    return value.strip()


def parse_projects(html_text: str, base_url: str = TCP_BASE) -> List[ProjectRecord]:
    """Extract project records from a search result fragment."""
    soup = BeautifulSoup(html_text, "html.parser")
    projects: List[ProjectRecord] = []
    for block in soup.select(".eproc-listing-main"):
        label = block.select_one(".index label")
        project_id = normalize_project_id(label.get_text() if label else "")
        if not project_id:
            logger.debug("Skipping listing block without a numeric id")
            continue

        name_span = block.select_one(".ref-dept .department span")
        start = block.select_one(".start-date")
        end = block.select_one(".end-date")
        projects.append(
            ProjectRecord(
                project_id=project_id,
                name=name_span.get_text(strip=True) if name_span else "",
                start_date=strip_label(start.get_text() if start else "", START_DATE_LABEL),
                end_date=strip_label(end.get_text() if end else "", END_DATE_LABEL),
                draw_link=_resolve_link(block, DRAW_LINK_TITLE, base_url),
                brochure_link=_resolve_link(block, BROCHURE_LINK_TITLE, base_url),
                full_html=block.decode_contents(),
            )
        )
    return projects


def _resolve_link(block, title: str, base_url: str) -> str:
    anchor = block.find("a", attrs={"title": title})
    href = anchor.get("href") if anchor else None
    if not href:
        return MISSING_LINK
    return urljoin(base_url.rstrip("/") + "/", href)


def scrape_projects(
    base_url: str = TCP_BASE,
    timeout: float = 20,
    deadline: float | None = None,
    per_page: int = DEFAULT_PER_PAGE,
    max_pages: int = DEFAULT_MAX_PAGES,
    session: requests.Session | None = None,
) -> Snapshot:
    """Fetch every open scheme from the portal as a snapshot keyed by project id."""
    client = TCPPortalClient(base_url=base_url,
                             session=session,
                             timeout=timeout,
                             deadline=deadline)
    token = client.fetch_csrf_token()

    snapshot: Snapshot = {}
    page = 1
    while page <= max_pages:
        projects = parse_projects(client.fetch_page(token, page, per_page), client.base_url)
        if not projects:
            break

        new_ids = {project.project_id for project in projects} - snapshot.keys()
        for project in projects:
            snapshot[project.project_id] = project
        logger.debug("Page %d yielded %d listing(s), %d new", page, len(projects), len(new_ids))

        # The endpoint may ignore currentPage and keep returning the first page.
        if not new_ids or len(projects) < per_page:
            break
        page += 1

    logger.info("Found %d active project(s) at %s", len(snapshot), client.base_url)
    return snapshot
