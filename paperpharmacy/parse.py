"""Parse and normalize Aladin catalog responses and model output."""
import json
import logging
from typing import Dict, Any, List, Optional

from paperpharmacy.isbn import clean_isbn
from paperpharmacy.models import BookDraft, CatalogCandidate, LibraryInfo

logger = logging.getLogger(__name__)


def parse_candidate(item: Dict[str, Any]) -> Optional[CatalogCandidate]:
    """
    Parse a single item from an Aladin ItemSearch/ItemLookUp response.

    Args:
        item: Single entry of the response's ``item`` array

    Returns:
        CatalogCandidate or None if the item has no title
    """
    if not isinstance(item, dict):
        return None

    title = item.get("title") or ""
    if not title:
        return None

    # Older records only carry the 10-digit "isbn" field
    isbn13 = clean_isbn(item.get("isbn13") or item.get("isbn"))

    return CatalogCandidate(
        title=title,
        author=item.get("author") or "",
        isbn13=isbn13,
        publisher=item.get("publisher") or "",
        cover=item.get("cover") or None,
        description=item.get("description") or None,
    )


def parse_search_response(response_json: Optional[Dict[str, Any]], limit: int = 5) -> List[CatalogCandidate]:
    """
    Parse a full ItemSearch response.

    Args:
        response_json: Complete API response JSON
        limit: Keep at most this many candidates

    Returns:
        List of candidates in the order the catalog ranked them
    """
    if not isinstance(response_json, dict):
        return []

    items = response_json.get("item") or []
    if not isinstance(items, list):
        logger.warning(f"Unexpected item field in search response: {type(items).__name__}")
        return []

    candidates = []
    for item in items:
        candidate = parse_candidate(item)
        if candidate:
            candidates.append(candidate)
        if len(candidates) >= limit:
            break

    return candidates


def parse_cover(response_json: Optional[Dict[str, Any]]) -> Optional[str]:
    """Pull the cover URL out of an ItemLookUp response."""
    if not isinstance(response_json, dict):
        return None
    items = response_json.get("item") or []
    if not isinstance(items, list) or not items or not isinstance(items[0], dict):
        return None
    return items[0].get("cover") or None


def parse_book_draft(data: Dict[str, Any]) -> Optional[BookDraft]:
    """
    Parse one book object produced by the generative model.

    Returns:
        BookDraft, or None when the object has no title
    """
    if not isinstance(data, dict):
        return None

    title = str(data.get("title") or "").strip()
    if not title:
        return None

    vibe = data.get("vibe") or []
    if not isinstance(vibe, list):
        vibe = [str(vibe)]

    libraries = [
        LibraryInfo.from_dict(library)
        for library in data.get("libraries") or []
        if isinstance(library, dict)
    ]

    return BookDraft(
        title=title,
        author=str(data.get("author") or "").strip(),
        publisher=str(data.get("publisher") or "").strip(),
        isbn=str(data.get("isbn") or "").strip(),
        description=str(data.get("description") or ""),
        ai_reason=str(data.get("aiReason") or ""),
        vibe=[str(tag) for tag in vibe],
        libraries=libraries,
    )


def parse_model_output(text: Optional[str]) -> List[BookDraft]:
    """
    Decode the model's JSON array of books.

    Raises:
        ValueError: if the text is not a JSON array of book objects
    """
    if not text:
        raise ValueError("empty model response")

    payload = text.strip()
    # Models occasionally wrap JSON in a markdown fence despite the mime type
    if payload.startswith("```"):
        payload = payload.strip("`")
        if payload.startswith("json"):
            payload = payload[len("json"):]

    data = json.loads(payload)
    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")

    drafts = []
    for entry in data:
        draft = parse_book_draft(entry)
        if draft:
            drafts.append(draft)
        else:
            logger.warning(f"Skipping malformed book entry: {entry!r}")

    return drafts
