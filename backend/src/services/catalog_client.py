"""HTTP client for the public product catalog search API."""

import logging
import os
import time
from typing import Any, Callable
from urllib.parse import urlencode

import requests

from models.product import CatalogRecord

logger = logging.getLogger(__name__)

CATALOG_API_URL = os.environ.get(
    "CATALOG_API_URL", "https://world.openfoodfacts.org/api/v2/search"
)
CATALOG_USER_AGENT = os.environ.get(
    "CATALOG_USER_AGENT", "EcoScoreTrainer/1.0 (training data collection)"
)
CATALOG_TIMEOUT_SECONDS = float(os.environ.get("CATALOG_TIMEOUT_SECONDS", "30"))
CATALOG_PAGE_SIZE = int(os.environ.get("CATALOG_PAGE_SIZE", "100"))

# Retry configuration: attempt N waits N * base delay before the next try
MAX_RETRIES = int(os.environ.get("CATALOG_MAX_RETRIES", "3"))
RETRY_BASE_DELAY = float(os.environ.get("CATALOG_RETRY_BASE_DELAY", "2.0"))

SORT_KEY = "popularity_key"

# Response payload is restricted to what the extractor and encoder read
CATALOG_FIELDS = [
    "code",
    "product_name",
    "brands",
    "categories_tags",
    "ecoscore_score",
    "ecoscore_grade",
    "nova_group",
    "labels_tags",
    "packaging_tags",
    "packaging_text",
    "origins",
    "origins_tags",
    "manufacturing_places",
    "ingredients_n",
    "nutrient_levels_tags",
]


class NetworkError(Exception):
    """A single catalog request failed: timeout, transport error, bad body."""


def build_query_url(
    page: int,
    page_size: int = CATALOG_PAGE_SIZE,
    base_url: str = CATALOG_API_URL,
) -> str:
    """Build the popularity-sorted search URL for one page."""
    params = {
        "sort_by": SORT_KEY,
        "page_size": page_size,
        "page": page,
        "fields": ",".join(CATALOG_FIELDS),
    }
    return f"{base_url}?{urlencode(params, safe=',')}"


def fetch_json(
    url: str,
    timeout: float = CATALOG_TIMEOUT_SECONDS,
    session: requests.Session | None = None,
) -> dict[str, Any]:
    """GET a URL once and decode the JSON object body.

    Raises:
        NetworkError: On timeout, connection failure, error status or a body
            that is not a JSON object.
    """
    http = session or requests
    try:
        response = http.get(
            url, timeout=timeout, headers={"User-Agent": CATALOG_USER_AGENT}
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        raise NetworkError(f"GET {url} failed: {e}") from e
    except ValueError as e:
        raise NetworkError(f"GET {url} returned malformed JSON: {e}") from e

    if not isinstance(data, dict):
        raise NetworkError(
            f"GET {url} returned {type(data).__name__}, expected a JSON object"
        )
    return data


def fetch_with_retry(
    url: str,
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    fetch: Callable[[str], dict[str, Any]] = fetch_json,
) -> dict[str, Any]:
    """Call ``fetch`` up to ``max_retries`` times with linear backoff.

    The failure of the final attempt propagates to the caller.
    """
    for attempt in range(1, max_retries + 1):
        try:
            return fetch(url)
        except NetworkError as e:
            if attempt >= max_retries:
                raise
            delay = attempt * base_delay
            logger.warning(
                f"Catalog request failed (attempt {attempt}/{max_retries}): {e}. "
                f"Retrying in {delay}s..."
            )
            time.sleep(delay)

    raise NetworkError(f"No attempts made for {url} (max_retries={max_retries})")


class CatalogClient:
    """Fetches pages of raw records from the catalog search endpoint."""

    def __init__(
        self,
        base_url: str = CATALOG_API_URL,
        page_size: int = CATALOG_PAGE_SIZE,
        timeout: float = CATALOG_TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        self.base_url = base_url
        self.page_size = page_size
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.session = requests.Session()

    def _fetch(self, url: str) -> dict[str, Any]:
        return fetch_json(url, timeout=self.timeout, session=self.session)

    def fetch_page(self, page: int) -> list[CatalogRecord]:
        """Fetch one page of raw records.

        An absent or non-list ``products`` field is treated as an empty page.
        Raises NetworkError once retries are exhausted.
        """
        url = build_query_url(page, self.page_size, self.base_url)
        data = fetch_with_retry(
            url,
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            fetch=self._fetch,
        )
        products = data.get("products")
        if not isinstance(products, list):
            return []
        return [p for p in products if isinstance(p, dict)]

    def describe(self) -> str:
        """Source identifier recorded in the corpus provenance."""
        return f"{self.base_url} (sort_by={SORT_KEY}, page_size={self.page_size})"
