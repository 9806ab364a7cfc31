"""Pick the catalog search result that best matches an AI-suggested book."""
import re
from typing import List, Optional

from paperpharmacy.models import CatalogCandidate

# Heuristic weights. A title hit always outranks an author hit.
TITLE_MATCH_WEIGHT = 10
AUTHOR_MATCH_WEIGHT = 5

_WHITESPACE = re.compile(r"\s+")


def normalize(text: Optional[str]) -> str:
    """Remove all whitespace and lower-case, for loose comparison."""
    if not text:
        return ""
    return _WHITESPACE.sub("", text).lower()


def score_candidate(title: str, author: str, candidate: CatalogCandidate) -> int:
    """
    Score one candidate against the target book.

    Args:
        title: Title suggested by the model
        author: Author suggested by the model (may be empty)
        candidate: Search result to score

    Returns:
        Sum of the weights that apply (0, 5, 10 or 15)
    """
    target_title = normalize(title)
    target_author = normalize(author)
    candidate_title = normalize(candidate.title)
    candidate_author = normalize(candidate.author)

    score = 0
    if candidate_title in target_title or target_title in candidate_title:
        score += TITLE_MATCH_WEIGHT
    if target_author and target_author in candidate_author:
        score += AUTHOR_MATCH_WEIGHT
    return score


def match_candidate(
    title: str,
    author: str,
    candidates: List[CatalogCandidate]
) -> Optional[CatalogCandidate]:
    """
    Return the best-scoring candidate.

    Ties go to the earlier candidate, and when nothing scores at all the
    first candidate is returned. Only an empty list yields None.
    """
    if not candidates:
        return None

    best_match = candidates[0]
    best_score = 0
    for candidate in candidates:
        score = score_candidate(title, author, candidate)
        if score > best_score:
            best_score = score
            best_match = candidate

    return best_match
