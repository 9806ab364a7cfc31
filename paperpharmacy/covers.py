"""
Cover image resolution.

A book with a valid ISBN-13 is tried against a fixed, ordered list of image
hosts. When there is no ISBN, or every host fails, a placeholder cover is
generated from the title and author. The placeholder is a pure function of
those two strings, so a given book always gets the same colors and pattern.
"""
import logging
from typing import Awaitable, Callable, List, Optional

from paperpharmacy.isbn import validate_isbn
from paperpharmacy.models import CoverPalette, CoverPattern, CoverReference, SyntheticCover

logger = logging.getLogger(__name__)

COVER_SOURCE_TEMPLATES = [
    "https://contents.kyobobook.co.kr/sih/fit-in/400x0/pdt/{isbn}.jpg",
    "https://covers.openlibrary.org/b/isbn/{isbn}-L.jpg?default=false",
]

PALETTES = [
    CoverPalette("Cotton Candy", "#ff9a9e", "#fecfef", "#5e3449"),
    CoverPalette("Gentle Sky", "#a1c4fd", "#c2e9fb", "#2c3e50"),
    CoverPalette("Ocean Mist", "#84fab0", "#8fd3f4", "#13547a"),
    CoverPalette("Warm Sunset", "#f6d365", "#fda085", "#8c520a"),
    CoverPalette("Fresh Lime", "#d4fc79", "#96e6a1", "#2c522c"),
    CoverPalette("Lavender Dream", "#c3a3f4", "#fbc2eb", "#4a2c52"),
    CoverPalette("Soft Peach", "#fccb90", "#d57eeb", "#522c4a"),
    CoverPalette("Deep Ocean", "#48c6ef", "#6f86d6", "#073352"),
    CoverPalette("Raspberry Fizz", "#ff758c", "#ff7eb3", "#6d1839"),
    CoverPalette("Lush Meadow", "#56ab2f", "#a8e063", "#193a0d"),
    CoverPalette("Galaxy Night", "#30cfd0", "#330867", "#ffffff"),
    CoverPalette("Royal Amethyst", "#20002c", "#cbb4d4", "#ffffff"),
    CoverPalette("Starry Night", "#1e3c72", "#2a5298", "#ffffff"),
    CoverPalette("Rose Petals", "#ffdde1", "#ee9ca7", "#7d3c47"),
    CoverPalette("Electric Pop", "#00c3ff", "#ffff1c", "#004c66"),
]

_SVG_PREFIX = "url(\"data:image/svg+xml,"

PATTERNS = [
    CoverPattern(
        "plus",
        _SVG_PREFIX + "%3Csvg xmlns='http://www.w3.org/2000/svg' width='20' height='20' viewBox='0 0 20 20'%3E"
        "%3Cpath fill='%239C92AC' fill-opacity='0.4' d='M2 9h6V3h2v6h6v2H10v6H8V11H2V9z'/%3E%3C/svg%3E\")",
    ),
    CoverPattern(
        "dots",
        _SVG_PREFIX + "%3Csvg width='20' height='20' viewBox='0 0 20 20' xmlns='http://www.w3.org/2000/svg'%3E"
        "%3Cg fill='%239C92AC' fill-opacity='0.4' fill-rule='evenodd'%3E%3Ccircle cx='3' cy='3' r='3'/%3E"
        "%3Ccircle cx='13' cy='13' r='3'/%3E%3C/g%3E%3C/svg%3E\")",
    ),
    CoverPattern(
        "zigzag",
        _SVG_PREFIX + "%3Csvg xmlns='http://www.w3.org/2000/svg' width='20' height='20' viewBox='0 0 20 20'%3E"
        "%3Cpath fill='%239C92AC' fill-opacity='0.4' d='M0 0h20L0 20zM20 20H0L20 0z'/%3E%3C/svg%3E\")",
    ),
    CoverPattern(
        "diagonal",
        _SVG_PREFIX + "%3Csvg width='20' height='20' viewBox='0 0 20 20' xmlns='http://www.w3.org/2000/svg'%3E"
        "%3Cpath d='M0 0l20 20M20 0L0 20' stroke='%239C92AC' stroke-width='1' fill='none' stroke-opacity='0.4'/%3E"
        "%3C/svg%3E\")",
    ),
]

Probe = Callable[[str], Awaitable[bool]]


def string_hash(text: str) -> int:
    """
    32-bit polynomial string hash (h = h * 31 + c).

    Runs over UTF-16 code units and wraps like a signed 32-bit integer, so
    the value matches what a browser computes for the same string.
    """
    data = text.encode("utf-16-le")
    value = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value >= 0x80000000:
        value -= 0x100000000
    return abs(value)


def synthetic_cover(title: str, author: str) -> SyntheticCover:
    """Pick a palette and a background pattern from the title/author hash."""
    value = string_hash((title or "") + (author or ""))
    return SyntheticCover(
        title=title,
        author=author,
        palette=PALETTES[value % len(PALETTES)],
        pattern=PATTERNS[value % len(PATTERNS)],
    )


def cover_sources(isbn: Optional[str]) -> List[str]:
    """Ordered image URLs to try for an ISBN. Empty when the ISBN is not valid."""
    cleaned = validate_isbn(isbn)
    if not cleaned:
        return []
    return [template.format(isbn=cleaned) for template in COVER_SOURCE_TEMPLATES]


class CoverSourceIterator:
    """
    Walks an ordered list of image URLs.

    ``current`` is the URL to show; after a load failure call ``try_next``.
    It returns False once the list is used up, at which point the caller
    should render the synthetic cover.
    """

    def __init__(self, sources: List[str]):
        self.sources = list(sources)
        self.index = 0

    @classmethod
    def for_isbn(cls, isbn: Optional[str]) -> "CoverSourceIterator":
        return cls(cover_sources(isbn))

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.sources)

    @property
    def current(self) -> Optional[str]:
        if self.exhausted:
            return None
        return self.sources[self.index]

    def try_next(self) -> bool:
        if not self.exhausted:
            self.index += 1
        return not self.exhausted


async def resolve_cover(
    title: str,
    author: str,
    isbn: Optional[str],
    probe: Optional[Probe] = None
) -> CoverReference:
    """
    Resolve a cover for one book.

    Args:
        title: Book title (feeds the placeholder)
        author: Book author (feeds the placeholder)
        isbn: Candidate ISBN; anything that is not 13 digits skips the network
        probe: Async callable answering "does this URL load?". Without one the
            first source is trusted as-is, which is what a browser would try first.

    Returns:
        CoverReference with ``url`` set, or with ``synthetic`` set
    """
    fallback = synthetic_cover(title, author)
    sources = CoverSourceIterator.for_isbn(isbn)

    if sources.exhausted:
        return CoverReference(synthetic=fallback)

    if probe is None:
        return CoverReference(url=sources.current, synthetic=fallback)

    while not sources.exhausted:
        url = sources.current
        if await probe(url):
            return CoverReference(url=url, synthetic=fallback)
        logger.info(f"Cover source failed for \"{title}\": {url}")
        sources.try_next()

    logger.info(f"No cover image for \"{title}\", using generated cover")
    return CoverReference(synthetic=fallback)
