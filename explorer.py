#!/usr/bin/env python3
"""Paper Pharmacy CLI - mood-based book recommendations."""
import argparse
import asyncio
import sys
import json
from tabulate import tabulate
from paperpharmacy.client import AladinClient
from paperpharmacy.async_client import AsyncAladinClient
from paperpharmacy.assembler import assemble
from paperpharmacy.config import Config
from paperpharmacy.errors import ConfigurationError, RecommendationError
from paperpharmacy.gemini import GeminiRecommender
from paperpharmacy.matcher import match_candidate
from paperpharmacy import session
from paperpharmacy.models import UserInput
import logging

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


async def run_session(args, config: Config) -> session.SessionState:
    """Submit once, then regenerate ``args.regenerate`` times."""
    recommender = GeminiRecommender(config.GEMINI_API_KEY, config.GEMINI_MODEL)

    state = session.select_region(session.SessionState(), args.region, nationwide=args.nationwide)
    if args.lat is not None and args.lon is not None:
        state = session.request_location(state)
        state = session.location_resolved(state, args.lat, args.lon)

    user_input = UserInput(
        mood=args.mood,
        situation=args.situation,
        genre=args.genre,
        purpose=args.purpose
    )

    async with AsyncAladinClient(
        ttb_key=config.ALADIN_TTB_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_concurrent=config.MAX_CONCURRENT
    ) as catalog:

        for round_number in range(args.regenerate + 1):
            if round_number == 0:
                state, request = session.submit(state, user_input)
            else:
                state, request = session.regenerate(state)

            if request is None:
                break

            if request.exclude_titles:
                logger.info(f"Regenerating, excluding {len(request.exclude_titles)} titles")

            try:
                books = await assemble(
                    request.user_input,
                    request.region,
                    request.exclude_titles,
                    request.location,
                    recommender=recommender,
                    catalog=catalog,
                    verify_covers=config.VERIFY_COVERS,
                    max_results=config.CATALOG_MAX_RESULTS
                )
            except RecommendationError as e:
                state = session.recommendations_failed(state, e.message)
                break

            state = session.recommendations_received(state, books)
            display_books([record.book for record in state.recommendations], args.format)

    return state


def recommend(args, config: Config):
    state = asyncio.run(run_session(args, config))

    if state.error:
        logger.error(state.error)
        sys.exit(1)

    if args.history:
        print(f"\nHistory ({len(state.history)} books)")
        display_books([record.book for record in state.history], "compact")


def search_catalog(args, config: Config):
    """Search the catalog and show the candidates, best match first."""
    with AladinClient(
        ttb_key=config.ALADIN_TTB_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:
        candidates = client.search_candidates(args.title, args.author, args.limit)

    if not candidates:
        logger.error("No results found")
        sys.exit(1)

    best = match_candidate(args.title, args.author, candidates)
    ordered = [best] + [c for c in candidates if c is not best]

    if args.format == "json":
        print(json.dumps([
            {"title": c.title, "author": c.author, "isbn13": c.isbn13, "publisher": c.publisher}
            for c in ordered
        ], indent=2, ensure_ascii=False))
    else:
        rows = [
            ["*" if c is best else "", c.title[:50], c.author[:30], c.isbn13 or "N/A", c.publisher]
            for c in ordered
        ]
        print("\n" + tabulate(rows, headers=["", "Title", "Author", "ISBN-13", "Publisher"], tablefmt="grid"))


def show_cover(args, config: Config):
    with AladinClient(
        ttb_key=config.ALADIN_TTB_KEY,
        timeout=config.DEFAULT_TIMEOUT,
        max_retries=config.DEFAULT_MAX_RETRIES
    ) as client:
        cover = client.lookup_cover(args.isbn)

    print(json.dumps({"cover": cover}))


def serve(args, config: Config):
    import uvicorn
    uvicorn.run("paperpharmacy.api:app", host=args.host, port=args.port)


def display_books(books, format_type: str):
    """Display books in specified format."""
    if format_type == "table":
        headers = ["Title", "Author", "Publisher", "ISBN", "Vibe", "Cover"]
        rows = [
            [
                book.title[:40] + "..." if len(book.title) > 40 else book.title,
                book.author[:20] + "..." if len(book.author) > 20 else book.author,
                book.publisher or "Unknown",
                book.isbn or "N/A",
                book.vibe_str,
                book.cover_image or (book.generated_cover.palette.name if book.generated_cover else "N/A")
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2, ensure_ascii=False))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            print(f"{i}. {book.title} - {book.author}")


def main():
    """Main CLI entry point."""
    config = Config()

    parser = argparse.ArgumentParser(
        description="Paper Pharmacy - book prescriptions for your mood",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Three books for a mood
  %(prog)s recommend 우울함

  # With more context, then two fresh batches
  %(prog)s recommend 지침 --situation 퇴근길 --genre 에세이 --regenerate 2

  # Catalog lookups
  %(prog)s search "채식주의자" --author 한강
  %(prog)s cover 9788936433598

  # Run the HTTP API
  %(prog)s serve --port 8000
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Recommend command
    recommend_parser = subparsers.add_parser("recommend", help="Get three book recommendations")
    recommend_parser.add_argument("mood", help="Current mood")
    recommend_parser.add_argument("--situation", default="", help="Current situation")
    recommend_parser.add_argument("--genre", default="", help="Preferred genre")
    recommend_parser.add_argument("--purpose", default="", help="Reason for reading")
    recommend_parser.add_argument("--region", default=config.DEFAULT_REGION, help="Region for library suggestions")
    recommend_parser.add_argument("--nationwide", action="store_true", help="Suggest libraries nationwide")
    recommend_parser.add_argument("--lat", type=float, help="Latitude (overrides region)")
    recommend_parser.add_argument("--lon", type=float, help="Longitude (overrides region)")
    recommend_parser.add_argument("--regenerate", type=int, default=0, help="Extra batches excluding seen titles")
    recommend_parser.add_argument("--history", action="store_true", help="Print the session history at the end")
    recommend_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search the Aladin catalog by title")
    search_parser.add_argument("title", help="Book title")
    search_parser.add_argument("--author", default="", help="Author name")
    search_parser.add_argument("--limit", type=int, default=config.CATALOG_MAX_RESULTS, help="Max results (default: 5)")
    search_parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    # Cover command
    cover_parser = subparsers.add_parser("cover", help="Look up a cover image by ISBN-13")
    cover_parser.add_argument("isbn", help="ISBN-13 (hyphens allowed)")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(config.LOG_LEVEL)

    try:
        if args.command == "recommend":
            recommend(args, config)

        elif args.command == "search":
            search_catalog(args, config)

        elif args.command == "cover":
            show_cover(args, config)

        elif args.command == "serve":
            serve(args, config)

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
