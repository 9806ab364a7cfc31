"""Data models for book recommendations."""
from dataclasses import dataclass, field, asdict
from typing import Optional, List, Dict, Any


@dataclass(frozen=True)
class UserInput:
    """What the reader told us about themselves."""
    mood: str
    situation: str = ""
    genre: str = ""
    purpose: str = ""


@dataclass(frozen=True)
class Location:
    """Approximate reader position from the browser geolocation API."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class LibraryInfo:
    """
    Availability of a book at one public library.

    ``distance`` only means something when the book is available and
    ``waitlist`` only when it is not; ``from_dict`` drops whichever one
    does not apply so both are never set together.
    """
    name: str
    available: bool
    distance: Optional[str] = None
    waitlist: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LibraryInfo":
        available = bool(data.get("available", False))
        distance = data.get("distance") if available else None
        waitlist = None
        if not available and data.get("waitlist") is not None:
            try:
                waitlist = int(data["waitlist"])
            except (TypeError, ValueError):
                waitlist = None
        return cls(
            name=str(data.get("name") or ""),
            available=available,
            distance=str(distance) if distance else None,
            waitlist=waitlist,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "available": self.available}
        if self.distance is not None:
            result["distance"] = self.distance
        if self.waitlist is not None:
            result["waitlist"] = self.waitlist
        return result


@dataclass(frozen=True)
class PurchaseLinks:
    """Search-by-title links for the three retailers."""
    yes24: str
    kyobo: str
    aladin: str


@dataclass
class CatalogCandidate:
    """One result of a catalog title search. Thrown away after matching."""
    title: str
    author: str
    isbn13: str
    publisher: str = ""
    cover: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class CoverPalette:
    name: str
    start: str
    end: str
    text: str


@dataclass(frozen=True)
class CoverPattern:
    name: str
    image: str


@dataclass(frozen=True)
class SyntheticCover:
    """Generated placeholder cover, fully determined by title and author."""
    title: str
    author: str
    palette: CoverPalette
    pattern: CoverPattern

    def to_dict(self) -> Dict[str, str]:
        return {
            "from": self.palette.start,
            "to": self.palette.end,
            "text": self.palette.text,
            "palette": self.palette.name,
            "pattern": self.pattern.name,
            "patternImage": self.pattern.image,
        }


@dataclass(frozen=True)
class CoverReference:
    """Either a real cover image URL or a synthetic placeholder."""
    url: Optional[str] = None
    synthetic: Optional[SyntheticCover] = None

    @property
    def is_synthetic(self) -> bool:
        return self.url is None


@dataclass(frozen=True)
class BookRecommendation:
    """A single assembled recommendation, as returned to the caller."""
    title: str
    author: str
    publisher: str
    isbn: str
    description: str
    ai_reason: str
    vibe: List[str]
    libraries: List[LibraryInfo]
    purchase_links: PurchaseLinks
    cover_image: Optional[str] = None
    generated_cover: Optional[SyntheticCover] = None

    @property
    def vibe_str(self) -> str:
        """Format tags as comma-separated string."""
        return ", ".join(self.vibe) if self.vibe else "None"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON shape the web client expects."""
        result: Dict[str, Any] = {
            "title": self.title,
            "author": self.author,
            "publisher": self.publisher,
            "isbn": self.isbn,
            "description": self.description,
            "aiReason": self.ai_reason,
            "vibe": list(self.vibe),
            "libraries": [library.to_dict() for library in self.libraries],
            "purchaseLinks": asdict(self.purchase_links),
        }
        if self.cover_image:
            result["coverImage"] = self.cover_image
        if self.generated_cover is not None:
            result["generatedCover"] = self.generated_cover.to_dict()
        return result


@dataclass(frozen=True)
class BookRecommendationWithId:
    """A recommendation plus its history identity key."""
    id: str
    book: BookRecommendation

    @property
    def title(self) -> str:
        return self.book.title

    @property
    def author(self) -> str:
        return self.book.author

    @property
    def isbn(self) -> str:
        return self.book.isbn

    def to_dict(self) -> Dict[str, Any]:
        result = self.book.to_dict()
        result["id"] = self.id
        return result


@dataclass
class BookDraft:
    """Raw book object as produced by the generative model, before assembly."""
    title: str
    author: str
    publisher: str = ""
    isbn: str = ""
    description: str = ""
    ai_reason: str = ""
    vibe: List[str] = field(default_factory=list)
    libraries: List[LibraryInfo] = field(default_factory=list)
