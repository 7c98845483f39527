"""
Film extraction engine
"""
from ..exceptions import ExtractionError
from ..logging_config import setup_logging
from ..models import DetailContent, FilmRecord, ListingEntry
from .fields import extract_language, extract_poster_url, extract_subtitles, parse_title
from .variants import DEFAULT_WINDOW, assemble_variants

logger = setup_logging(__name__)


def extract_film(
    detail: DetailContent,
    entry: ListingEntry,
    *,
    default_language: str = "Tamil",
    window: int = DEFAULT_WINDOW,
) -> FilmRecord:
    """
    Build a FilmRecord from a parsed detail page

    Args:
        detail: First post of the topic page
        entry: Listing entry the page was opened from
        default_language: Language used when the post names none
        window: Look-back window handed to the variant assembler

    Returns:
        FilmRecord, possibly with no downloads; dropping those is the caller's call

    Raises:
        ExtractionError: The page carried no post content at all
    """
    if detail.is_empty:
        raise ExtractionError(f"No post content found for film {entry.id}")

    parsed = parse_title(detail.post_title or entry.raw_title)

    # Link URIs are only guaranteed verbatim in the markup rendering
    downloads = assemble_variants(detail.markup or detail.text, window=window)

    film = FilmRecord(
        id=entry.id,
        title=parsed.title,
        year=parsed.year,
        language=extract_language(detail.text, default=default_language),
        subtitles=extract_subtitles(detail.text),
        poster_url=detail.poster_url or extract_poster_url(detail.markup),
        source_url=entry.source_url,
        downloads=downloads,
    )

    logger.debug(
        f"Extracted {film.display_title} with {len(downloads)} download options",
        extra={"film_id": film.id},
    )
    return film
