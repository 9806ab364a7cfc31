"""Gemini-backed book picker: prompt, response schema and the model call."""
import logging
from typing import List, Optional, Sequence

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from paperpharmacy.errors import ConfigurationError, RecommendationError
from paperpharmacy.models import BookDraft, Location, UserInput
from paperpharmacy.parse import parse_model_output

logger = logging.getLogger(__name__)

BATCH_SIZE = 3

RESPONSE_SCHEMA = {
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "title": {"type": "STRING", "description": "The book title in Korean."},
            "author": {"type": "STRING", "description": "The author's name in Korean."},
            "publisher": {"type": "STRING", "description": "The publisher's name in Korean."},
            "isbn": {
                "type": "STRING",
                "description": "OPTIONAL: If you know the exact ISBN-13, provide it. "
                               "Otherwise, leave empty and the system will search for it.",
            },
            "description": {
                "type": "STRING",
                "description": "A short, insightful one-sentence description of the book.",
            },
            "aiReason": {
                "type": "STRING",
                "description": "An empathetic reason for recommending this book, "
                               "written in a calm and thoughtful tone.",
            },
            "vibe": {
                "type": "ARRAY",
                "description": "An array of 3 relevant keywords or themes in Korean.",
                "items": {"type": "STRING"},
            },
            "libraries": {
                "type": "ARRAY",
                "description": "An array of 3 plausible public libraries located near the user's specified location.",
                "items": {
                    "type": "OBJECT",
                    "properties": {
                        "name": {"type": "STRING", "description": "The library's full name."},
                        "available": {
                            "type": "BOOLEAN",
                            "description": "A boolean indicating if the book is available.",
                        },
                        "distance": {
                            "type": "STRING",
                            "description": "Optional. A plausible distance like '2.3km' if available is true.",
                        },
                        "waitlist": {
                            "type": "INTEGER",
                            "description": "Optional. A plausible number on the waitlist if available is false.",
                        },
                    },
                    "required": ["name", "available"],
                },
            },
        },
        "required": ["title", "author", "publisher", "description", "aiReason", "vibe", "libraries"],
    },
}


def build_prompt(
    user_input: UserInput,
    region: str,
    exclude_titles: Sequence[str] = (),
    location: Optional[Location] = None
) -> str:
    """
    Build the curator prompt for one batch.

    Args:
        user_input: Mood, situation, genre and purpose
        region: Region name used when no precise location is known
        exclude_titles: Titles already shown in this session
        location: Browser coordinates, preferred over ``region``

    Returns:
        Prompt text
    """
    if user_input.genre:
        genre_preference = f"They have expressed a preference for the {user_input.genre} genre."
    else:
        genre_preference = ("They have not specified a preferred genre, "
                            "so recommend from any genre that fits their needs.")

    if location is not None:
        location_info = (f"Their current location is approximately latitude: {location.latitude}, "
                         f"longitude: {location.longitude}. "
                         "Base the library recommendations on this precise location.")
    else:
        location_info = f"They are interested in libraries in the {region} area of South Korea."

    prompt = f"""You are a sophisticated and thoughtful book curator for "종이약국" (The Paper Pharmacy). \
Your tone is calm, empathetic, and knowledgeable, like a trusted librarian. \
Your goal is to prescribe the perfect book for a user's state of mind.

The user's current mood is: {user_input.mood}
Their situation is: {user_input.situation or "Not specified."}
{genre_preference}
Their goal for reading is: {user_input.purpose or "Not specified."}
{location_info}

Based on this, recommend exactly {BATCH_SIZE} books. For each book, provide the title, author, publisher, \
description, and other requested information.

IMPORTANT: Only recommend real books that actually exist. Provide accurate book titles and author names in Korean. \
The ISBN field is optional - if you know the exact ISBN-13, you can provide it, but it's better to leave it empty \
and let the system search for the correct ISBN based on the title and author.

Ensure the library information is plausible for major public libraries near the user's specified location."""

    if exclude_titles:
        prompt += ("\n\nImportant: Please provide a completely new set of recommendations. "
                   f"Do NOT include any of the following titles: {', '.join(exclude_titles)}.")

    prompt += ("\n\nYour entire output must be a single JSON array, adhering strictly to the provided schema. "
               "Do not include any markdown formatting like ```json.")
    return prompt


class GeminiRecommender:
    """Asks Gemini for one batch of books."""

    def __init__(self, api_key: Optional[str], model_name: str = "gemini-2.5-flash"):
        if not api_key:
            raise ConfigurationError("API key is not configured")
        self.model_name = model_name
        self.client = genai.Client(api_key=api_key)

    async def recommend(
        self,
        user_input: UserInput,
        region: str,
        exclude_titles: Sequence[str] = (),
        location: Optional[Location] = None
    ) -> List[BookDraft]:
        """
        Get exactly three book drafts from the model.

        Raises:
            RecommendationError: on any model, transport or schema failure
        """
        prompt = build_prompt(user_input, region, exclude_titles, location)
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=RESPONSE_SCHEMA,
        )

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
            text = response.text
        except (genai_errors.APIError, httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini call failed ({self.model_name}): {e}")
            raise RecommendationError() from e

        return drafts_from_text(text)


def drafts_from_text(text: Optional[str]) -> List[BookDraft]:
    """
    Turn raw model output into a batch.

    Extra books are dropped; fewer than three is a schema violation.
    """
    try:
        drafts = parse_model_output(text)
    except ValueError as e:
        logger.error(f"Model output is not a valid book array: {e}")
        raise RecommendationError() from e

    if len(drafts) < BATCH_SIZE:
        logger.error(f"Model returned {len(drafts)} usable books, expected {BATCH_SIZE}")
        raise RecommendationError()

    return drafts[:BATCH_SIZE]
