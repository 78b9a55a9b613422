"""
Open Library lookups used to help fill in a book's summary from its ISBN.
"""

import logging

import requests

logger = logging.getLogger(__name__)


# Reuse one HTTP session for better performance and to set consistent headers.
SESSION = requests.Session()
SESSION.headers.update({
    "User-Agent": "LendingCatalog/1.0",
    "Accept": "application/json",
})


def normalize_isbn(isbn: str) -> str:
    """
    Normalize ISBN input by removing hyphens and spaces.
    """
    return (isbn or "").replace("-", "").replace(" ", "").strip()


def extract_summary(data: dict) -> str | None:
    """
    Extract a summary from an Open Library edition or work document.

    The "description" field is either a plain string or a dict holding the
    text under "value".
    """
    desc = data.get("description")

    if isinstance(desc, str):
        return desc.strip() or None

    if isinstance(desc, dict):
        return (desc.get("value") or "").strip() or None

    return None


def _get_json(url: str, timeout: float):
    try:
        response = SESSION.get(url, timeout=timeout)
        if response.status_code != 200:
            logger.debug("Open Library returned %s for %s", response.status_code, url)
            return None
        return response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.warning("Open Library lookup failed for %s: %s", url, exc)
        return None


def fetch_summary_by_isbn(isbn: str, base_url: str = "https://openlibrary.org", timeout: float = 8) -> str | None:
    """
    Fetch a book summary from Open Library using ISBN.

    Strategy:
    1) Try the edition endpoint: /isbn/{isbn}.json
    2) If it has no description, fall back to the linked work: /works/{id}.json
    """
    isbn = normalize_isbn(isbn)
    if not isbn:
        return None

    base_url = base_url.rstrip("/")
    edition = _get_json(f"{base_url}/isbn/{isbn}.json", timeout)
    if not isinstance(edition, dict):
        return None

    summary = extract_summary(edition)
    if summary:
        return summary

    works = edition.get("works") or []
    if works and isinstance(works[0], dict) and "key" in works[0]:
        work = _get_json(f"{base_url}{works[0]['key']}.json", timeout)
        if isinstance(work, dict):
            return extract_summary(work)

    return None
