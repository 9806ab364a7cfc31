"""Turn one model batch into finished recommendations."""
import asyncio
import logging
from typing import List, Optional, Protocol, Sequence, Tuple
from urllib.parse import quote

import httpx

from paperpharmacy.async_client import AsyncAladinClient
from paperpharmacy.covers import resolve_cover
from paperpharmacy.isbn import validate_isbn
from paperpharmacy.matcher import match_candidate
from paperpharmacy.models import (
    BookDraft,
    BookRecommendation,
    Location,
    PurchaseLinks,
    UserInput,
)

logger = logging.getLogger(__name__)

CATALOG_MAX_RESULTS = 5


class Recommender(Protocol):
    async def recommend(
        self,
        user_input: UserInput,
        region: str,
        exclude_titles: Sequence[str] = (),
        location: Optional[Location] = None
    ) -> List[BookDraft]:
        ...


def _encode(text: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent
    return quote(text, safe="!~*'()")


def purchase_links(title: str) -> PurchaseLinks:
    """Search-by-title links for Yes24, Kyobo and Aladin."""
    encoded = _encode(title)
    return PurchaseLinks(
        yes24=f"https://www.yes24.com/Product/Search?query={encoded}",
        kyobo=f"https://search.kyobobook.co.kr/search?keyword={encoded}",
        aladin=f"https://www.aladin.co.kr/search/wsearchresult.aspx?SearchWord={encoded}",
    )


async def resolve_isbn(
    draft: BookDraft,
    catalog: AsyncAladinClient,
    max_results: int = CATALOG_MAX_RESULTS
) -> Tuple[str, str]:
    """
    Find a reliable ISBN-13 for a model-suggested book.

    Args:
        draft: Book as the model described it
        catalog: Async catalog client
        max_results: Candidates to consider from the title search

    Returns:
        (isbn, publisher). isbn is "" when nothing valid was found; publisher
        is filled from the catalog only if the model left it empty.
    """
    existing = validate_isbn(draft.isbn)
    if existing:
        logger.info(f"[ISBN] Using existing ISBN {existing} for \"{draft.title}\"")
        return existing, draft.publisher

    logger.info(f"[ISBN] Searching for: \"{draft.title}\" by {draft.author or 'Unknown'}")
    try:
        candidates = await catalog.search_candidates(draft.title, draft.author, max_results)
    except (httpx.HTTPError, AttributeError, KeyError, TypeError, ValueError) as e:
        # One bad catalog answer only costs this book its ISBN
        logger.warning(f"[ISBN] Catalog search failed for \"{draft.title}\": {e!r}")
        return "", draft.publisher

    match = match_candidate(draft.title, draft.author, candidates)

    isbn = validate_isbn(match.isbn13) if match else None
    if not isbn:
        logger.warning(f"[ISBN] Could not find valid ISBN for: \"{draft.title}\" by {draft.author or 'Unknown'}")
        return "", draft.publisher

    logger.info(f"[ISBN] Found ISBN {isbn} for \"{draft.title}\"")
    publisher = draft.publisher or match.publisher
    return isbn, publisher


async def assemble_book(
    draft: BookDraft,
    catalog: AsyncAladinClient,
    verify_covers: bool = True,
    max_results: int = CATALOG_MAX_RESULTS
) -> BookRecommendation:
    """ISBN, cover and purchase links for one book. Never raises on catalog trouble."""
    isbn, publisher = await resolve_isbn(draft, catalog, max_results)
    probe = catalog.probe if verify_covers else None
    cover = await resolve_cover(draft.title, draft.author, isbn, probe=probe)

    return BookRecommendation(
        title=draft.title,
        author=draft.author,
        publisher=publisher,
        isbn=isbn,
        description=draft.description,
        ai_reason=draft.ai_reason,
        vibe=list(draft.vibe),
        libraries=list(draft.libraries),
        purchase_links=purchase_links(draft.title),
        cover_image=cover.url,
        generated_cover=cover.synthetic if cover.is_synthetic else None,
    )


async def assemble(
    user_input: UserInput,
    region: str,
    exclude_titles: Sequence[str],
    location: Optional[Location],
    *,
    recommender: Recommender,
    catalog: AsyncAladinClient,
    verify_covers: bool = True,
    max_results: int = CATALOG_MAX_RESULTS
) -> List[BookRecommendation]:
    """
    Run the full pipeline for one batch.

    Args:
        user_input: What the reader asked for
        region: Region name for library suggestions
        exclude_titles: Titles the model should avoid
        location: Optional precise location
        recommender: Model wrapper producing the drafts
        catalog: Async catalog client for ISBN and cover lookups
        verify_covers: Probe image hosts instead of trusting the first one
        max_results: Candidates per catalog search

    Returns:
        The assembled books, in model order

    Raises:
        RecommendationError: when the model call fails; the batch is all or nothing
    """
    drafts = await recommender.recommend(user_input, region, list(exclude_titles), location)

    books = await asyncio.gather(*[
        assemble_book(draft, catalog, verify_covers, max_results)
        for draft in drafts
    ])

    for book in books:
        logger.info(f"Book: {book.title} | ISBN: {book.isbn or '-'} | Cover: {book.cover_image or 'generated'}")

    return list(books)
