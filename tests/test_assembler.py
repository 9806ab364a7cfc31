"""End-to-end tests for batch assembly against a mock catalog."""
import asyncio
from dataclasses import astuple
from urllib.parse import quote, urlparse

import httpx
import pytest

from paperpharmacy import session
from paperpharmacy.assembler import assemble, purchase_links, resolve_isbn
from paperpharmacy.async_client import AsyncAladinClient
from paperpharmacy.errors import RecommendationError
from paperpharmacy.models import UserInput

from conftest import FIRST_BATCH, FakeRecommender, malformed_search_handler


def run_assemble(recommender, transport, exclude_titles=(), verify_covers=True):
    async def run():
        async with AsyncAladinClient("test-key", transport=transport) as catalog:
            return await assemble(
                UserInput(mood="우울함"),
                "서울",
                exclude_titles,
                None,
                recommender=recommender,
                catalog=catalog,
                verify_covers=verify_covers,
            )
    return asyncio.run(run())


def test_purchase_links_encode_title():
    """Test all three retailer links carry the percent-encoded title."""
    links = purchase_links("달러구트 꿈 백화점")
    encoded = quote("달러구트 꿈 백화점", safe="")

    assert encoded in links.yes24
    assert links.yes24.startswith("https://www.yes24.com/Product/Search?query=")
    assert links.kyobo.startswith("https://search.kyobobook.co.kr/search?keyword=")
    assert links.aladin.startswith("https://www.aladin.co.kr/search/wsearchresult.aspx?SearchWord=")
    assert " " not in links.aladin


def test_mood_only_batch(recommender, aladin_transport):
    """Test a mood-only request yields three complete records."""
    books = run_assemble(recommender, aladin_transport)

    assert len(books) == 3
    for book in books:
        assert book.title and book.author
        links = astuple(book.purchase_links)
        assert len(links) == 3
        for link in links:
            parsed = urlparse(link)
            assert parsed.scheme == "https" and parsed.netloc
            assert quote(book.title, safe="") in link

    assert recommender.calls[0]["user_input"].mood == "우울함"
    assert recommender.calls[0]["exclude_titles"] == []


def test_isbn_resolution(recommender, aladin_transport):
    """Test catalog matching, kept ISBNs and degraded lookups."""
    almond, vegetarian, unknown = run_assemble(recommender, aladin_transport)

    # Found through the catalog; publisher filled in from the match
    assert almond.isbn == "9788936434267"
    assert almond.publisher == "창비"

    # Model ISBN was already valid, so it is only cleaned
    assert vegetarian.isbn == "9788936433598"

    # Catalog search failed for this one; the batch still succeeds
    assert unknown.isbn == ""


def test_cover_resolution(recommender, aladin_transport):
    """Test probing falls through to Open Library and degrades to a generated cover."""
    almond, vegetarian, unknown = run_assemble(recommender, aladin_transport)

    assert almond.cover_image == "https://covers.openlibrary.org/b/isbn/9788936434267-L.jpg?default=false"
    assert almond.generated_cover is None
    assert unknown.cover_image is None
    assert unknown.generated_cover is not None
    assert "generatedCover" in unknown.to_dict()
    assert "coverImage" not in unknown.to_dict()


def test_unverified_covers_use_first_source(recommender, aladin_transport):
    books = run_assemble(recommender, aladin_transport, verify_covers=False)

    assert "kyobobook" in books[1].cover_image


def test_model_failure_fails_batch(aladin_transport):
    """Test a model error propagates with no partial results."""
    with pytest.raises(RecommendationError):
        run_assemble(FakeRecommender(fail=True), aladin_transport)


def test_regenerate_passes_history_titles(recommender, aladin_transport):
    """Test the second run excludes every title from the first."""
    state, request = session.submit(session.SessionState(), UserInput(mood="우울함"))
    first = run_assemble(recommender, aladin_transport, request.exclude_titles)
    state = session.recommendations_received(state, first)

    state, request = session.regenerate(state)
    second = run_assemble(recommender, aladin_transport, request.exclude_titles)
    state = session.recommendations_received(state, second)

    first_titles = [book.title for book in first]
    assert recommender.calls[1]["exclude_titles"] == first_titles
    assert not set(first_titles) & {book.title for book in second}
    assert len(state.history) == 6


def test_to_dict_wire_format(recommender, aladin_transport):
    book = run_assemble(recommender, aladin_transport)[0].to_dict()

    assert set(book["purchaseLinks"]) == {"yes24", "kyobo", "aladin"}
    assert book["aiReason"]
    assert book["libraries"][0] == {"name": "서울도서관", "available": True, "distance": "1.2km"}
    assert book["libraries"][1] == {"name": "마포중앙도서관", "available": False, "waitlist": 3}


def test_malformed_catalog_answer_degrades_books(recommender):
    """Test a search body that is not an object only blanks the affected ISBNs."""
    transport = httpx.MockTransport(malformed_search_handler)

    almond, vegetarian, unknown = run_assemble(recommender, transport)

    assert almond.isbn == ""
    assert almond.generated_cover is not None
    assert unknown.isbn == ""
    # The model's own ISBN never needed the catalog
    assert vegetarian.isbn == "9788936433598"


class BrokenCatalog:
    async def search_candidates(self, title, author="", max_results=5):
        raise httpx.ReadError("connection reset")


def test_resolve_isbn_absorbs_catalog_errors():
    """Test a raising catalog search leaves the book without an ISBN."""
    draft = FIRST_BATCH[0]

    isbn, publisher = asyncio.run(resolve_isbn(draft, BrokenCatalog()))

    assert isbn == ""
    assert publisher == draft.publisher
