"""Session recommendation history with composite-key deduplication."""
from typing import List, Sequence

from paperpharmacy.models import BookRecommendation, BookRecommendationWithId


def identity_key(title: str, author: str, isbn: str) -> str:
    """
    History key for a book: ``title-author-isbn``.

    The separator can also occur inside a title or author, so two different
    books may in principle share a key.
    """
    return f"{title}-{author}-{isbn}"


def with_id(book: BookRecommendation) -> BookRecommendationWithId:
    return BookRecommendationWithId(
        id=identity_key(book.title, book.author, book.isbn),
        book=book,
    )


def merge_history(
    existing: Sequence[BookRecommendationWithId],
    new_batch: Sequence[BookRecommendationWithId]
) -> List[BookRecommendationWithId]:
    """
    Append the records of ``new_batch`` whose key is not in history yet.

    Args:
        existing: History so far, oldest first
        new_batch: Freshly assembled records

    Returns:
        New list; ``existing`` is a prefix of it and neither input is modified
    """
    seen_ids = {book.id for book in existing}
    merged = list(existing)

    for book in new_batch:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            merged.append(book)

    return merged


def history_titles(history: Sequence[BookRecommendationWithId]) -> List[str]:
    """Titles to exclude when asking for a fresh batch."""
    return [book.title for book in history]
