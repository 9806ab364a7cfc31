"""Shared fakes: a scripted recommender and a mock Aladin/image-host transport."""
import httpx
import pytest

from paperpharmacy.errors import RecommendationError
from paperpharmacy.models import BookDraft, LibraryInfo

LIBRARIES = [
    LibraryInfo(name="서울도서관", available=True, distance="1.2km"),
    LibraryInfo(name="마포중앙도서관", available=False, waitlist=3),
    LibraryInfo(name="정독도서관", available=True, distance="3.4km"),
]

FIRST_BATCH = [
    BookDraft(title="아몬드", author="손원평", publisher="", isbn="",
              description="감정을 느끼지 못하는 소년의 성장기", ai_reason="천천히 마음을 여는 이야기예요.",
              vibe=["성장", "공감", "위로"], libraries=LIBRARIES),
    BookDraft(title="채식주의자", author="한강", publisher="창비", isbn="978-89-364-3359-8",
              description="한 여성의 조용한 저항", ai_reason="깊이 머무를 수 있는 책이에요.",
              vibe=["문학", "내면", "저항"], libraries=LIBRARIES),
    BookDraft(title="존재하지 않는 책", author="무명", publisher="", isbn="12345",
              description="설명", ai_reason="이유", vibe=["a", "b", "c"], libraries=LIBRARIES),
]

SECOND_BATCH = [
    BookDraft(title="불편한 편의점", author="김호연", vibe=["온기", "일상", "회복"]),
    BookDraft(title="달러구트 꿈 백화점", author="이미예", vibe=["꿈", "판타지", "휴식"]),
    BookDraft(title="미드나잇 라이브러리", author="매트 헤이그", vibe=["선택", "후회", "희망"]),
]

ALMOND_ITEMS = [
    {"title": "아몬드 (양장)", "author": "손원평 (지은이)", "isbn13": "9788936434267",
     "isbn": "8936434268", "publisher": "창비", "cover": "https://image.aladin.co.kr/almond.jpg"},
    {"title": "아몬드 나무 아래서", "author": "다른 작가", "isbn13": "9791111111111", "publisher": "다른출판"},
]


class FakeRecommender:
    """Returns scripted batches in order and records what it was asked."""

    def __init__(self, batches=None, fail=False, error=None):
        self.batches = batches or [FIRST_BATCH, SECOND_BATCH]
        self.fail = fail
        self.error = error
        self.calls = []

    async def recommend(self, user_input, region, exclude_titles=(), location=None):
        self.calls.append({
            "user_input": user_input,
            "region": region,
            "exclude_titles": list(exclude_titles),
            "location": location,
        })
        if self.error is not None:
            raise self.error
        if self.fail:
            raise RecommendationError()
        batch = self.batches[(len(self.calls) - 1) % len(self.batches)]
        return [BookDraft(**vars(draft)) for draft in batch]


def malformed_search_handler(request: httpx.Request) -> httpx.Response:
    """Aladin answering searches with a body that is not the documented object."""
    if request.url.path.endswith("ItemSearch.aspx"):
        return httpx.Response(200, json=["unexpected"])
    return aladin_handler(request)


def aladin_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path

    if path.endswith("ItemSearch.aspx"):
        query = request.url.params.get("Query", "")
        if query.startswith("아몬드"):
            return httpx.Response(200, json={"item": ALMOND_ITEMS})
        if query.startswith("존재하지"):
            return httpx.Response(500)
        return httpx.Response(200, json={"item": []})

    if path.endswith("ItemLookUp.aspx"):
        if request.url.params.get("ItemId") == "9788936433598":
            return httpx.Response(200, json={"item": [{"cover": "https://image.aladin.co.kr/vegetarian_big.jpg"}]})
        return httpx.Response(200, json={"item": []})

    # Image hosts: Kyobo misses, Open Library has everything
    if "kyobobook" in request.url.host:
        return httpx.Response(404)
    if "openlibrary" in request.url.host:
        return httpx.Response(200, headers={"content-type": "image/jpeg"})

    return httpx.Response(404)


@pytest.fixture
def recommender():
    return FakeRecommender()


@pytest.fixture
def aladin_transport():
    return httpx.MockTransport(aladin_handler)
