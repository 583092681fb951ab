"""Pagination driver that mines a deduplicated product corpus.

Pages are fetched strictly one after another. Each page is validated, folded
into the running corpus (skipping codes already seen) and reported through a
progress callback before the next request is issued. The run stops when the
corpus reaches its target, the page budget is spent, or three consecutive
pages come back empty. A page whose retries are exhausted is logged and
skipped without aborting the run.
"""

import logging
import os
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from models.product import CanonicalProduct, CatalogRecord
from services.catalog_client import NetworkError
from services.product_extractor import extract_page
from utils.constants import ECO_GRADES

logger = logging.getLogger(__name__)

TARGET_PRODUCTS = int(os.environ.get("MINING_TARGET_PRODUCTS", "10000"))
MAX_PAGES = int(os.environ.get("MINING_MAX_PAGES", "300"))
PAGE_DELAY_SECONDS = float(os.environ.get("MINING_PAGE_DELAY", "1.0"))
MAX_CONSECUTIVE_EMPTY = 3


class MinerState(str, Enum):
    """States of the pagination state machine."""

    FETCHING = "fetching"
    PAGE_EMPTY = "page_empty"
    PAGE_VALID = "page_valid"
    STOPPED = "stopped"


class StopReason(str, Enum):
    """Why a mining run ended."""

    TARGET_REACHED = "target_reached"
    MAX_PAGES = "max_pages"
    EMPTY_PAGES = "empty_pages"


@dataclass
class PageProgress:
    """Snapshot emitted after every page."""

    page: int
    attempted: int
    valid: int
    added: int
    duplicates: int
    total: int
    target: int
    grade_counts: dict[str, int]
    state: MinerState

    @property
    def failed(self) -> bool:
        """The page never left FETCHING because its retries were exhausted."""
        return self.state == MinerState.FETCHING

    @property
    def rejected(self) -> int:
        return self.attempted - self.valid

    @property
    def yield_ratio(self) -> float:
        """Valid records over attempted records for this page."""
        return self.valid / self.attempted if self.attempted else 0.0


@dataclass
class MiningState:
    """Running accumulation state owned by a single mining run."""

    products: list[CanonicalProduct] = field(default_factory=list)
    seen_codes: set[str] = field(default_factory=set)
    grade_counts: dict[str, int] = field(
        default_factory=lambda: {g: 0 for g in ECO_GRADES}
    )
    total_scanned: int = 0
    consecutive_empty: int = 0
    pages_attempted: int = 0
    pages_failed: int = 0
    state: MinerState = MinerState.FETCHING


@dataclass
class MiningResult:
    """Outcome of a mining run, ready for the dataset writer."""

    products: list[CanonicalProduct]
    grade_counts: dict[str, int]
    total_scanned: int
    pages_attempted: int
    pages_failed: int
    stop_reason: StopReason
    state: MinerState = MinerState.STOPPED

    @property
    def pages_succeeded(self) -> int:
        return self.pages_attempted - self.pages_failed


class CorpusMiner:
    """Drives page fetches and folds valid, unseen products into a corpus."""

    def __init__(
        self,
        fetch_page: Callable[[int], list[CatalogRecord]],
        target_products: int = TARGET_PRODUCTS,
        max_pages: int = MAX_PAGES,
        page_delay: float = PAGE_DELAY_SECONDS,
        on_progress: Callable[[PageProgress], None] | None = None,
        estimate_missing_scores: bool = False,
    ):
        self.fetch_page = fetch_page
        self.target_products = target_products
        self.max_pages = max_pages
        self.page_delay = page_delay
        self.on_progress = on_progress
        self.estimate_missing_scores = estimate_missing_scores

    def absorb_page(
        self, state: MiningState, records: list[CatalogRecord]
    ) -> tuple[int, int, int]:
        """Fold one page into ``state``.

        Returns (valid, added, duplicates) counts for the page.
        """
        state.total_scanned += len(records)
        valid = extract_page(records, self.estimate_missing_scores)
        added = 0
        duplicates = 0
        for product in valid:
            if len(state.products) >= self.target_products:
                break
            if product.code in state.seen_codes:
                duplicates += 1
                continue
            state.seen_codes.add(product.code)
            state.products.append(product)
            state.grade_counts[product.ecoscore_grade] += 1
            added += 1
        return len(valid), added, duplicates

    def _emit(self, progress: PageProgress) -> None:
        logger.info(
            f"Page {progress.page}: {progress.valid}/{progress.attempted} valid, "
            f"+{progress.added} new ({progress.duplicates} dup), "
            f"total {progress.total}/{progress.target}"
        )
        if self.on_progress is not None:
            self.on_progress(progress)

    def run(self) -> MiningResult:
        """Mine pages 1..max_pages until a stop condition is met."""
        state = MiningState()
        stop_reason = StopReason.MAX_PAGES
        page = 1

        while page <= self.max_pages:
            if len(state.products) >= self.target_products:
                stop_reason = StopReason.TARGET_REACHED
                break

            state.state = MinerState.FETCHING
            state.pages_attempted += 1
            try:
                records = self.fetch_page(page)
            except NetworkError as e:
                state.pages_failed += 1
                logger.error(f"Skipping page {page} after exhausted retries: {e}")
                self._emit(
                    PageProgress(
                        page=page,
                        attempted=0,
                        valid=0,
                        added=0,
                        duplicates=0,
                        total=len(state.products),
                        target=self.target_products,
                        grade_counts=dict(state.grade_counts),
                        state=state.state,
                    )
                )
            else:
                if not records:
                    state.state = MinerState.PAGE_EMPTY
                    state.consecutive_empty += 1
                    valid = added = duplicates = 0
                else:
                    state.state = MinerState.PAGE_VALID
                    state.consecutive_empty = 0
                    valid, added, duplicates = self.absorb_page(state, records)

                self._emit(
                    PageProgress(
                        page=page,
                        attempted=len(records),
                        valid=valid,
                        added=added,
                        duplicates=duplicates,
                        total=len(state.products),
                        target=self.target_products,
                        grade_counts=dict(state.grade_counts),
                        state=state.state,
                    )
                )

                if state.consecutive_empty >= MAX_CONSECUTIVE_EMPTY:
                    logger.info(
                        f"{MAX_CONSECUTIVE_EMPTY} consecutive empty pages, stopping"
                    )
                    stop_reason = StopReason.EMPTY_PAGES
                    break

            if len(state.products) >= self.target_products:
                stop_reason = StopReason.TARGET_REACHED
                break

            page += 1
            if page <= self.max_pages:
                time.sleep(self.page_delay)

        state.state = MinerState.STOPPED
        logger.info(
            f"Mining stopped ({stop_reason.value}): {len(state.products)} products "
            f"from {state.total_scanned} scanned records, "
            f"{state.pages_failed}/{state.pages_attempted} pages failed"
        )
        return MiningResult(
            products=state.products,
            grade_counts=state.grade_counts,
            total_scanned=state.total_scanned,
            pages_attempted=state.pages_attempted,
            pages_failed=state.pages_failed,
            stop_reason=stop_reason,
            state=state.state,
        )
