"""
Detail page parsing - reduces a topic page to its first post
"""
from typing import Optional

from bs4 import BeautifulSoup

from ..models import DetailContent

POST_WRAPPER_SELECTOR = ".cPost_contentWrap"
PAGE_TITLE_SELECTOR = ".ipsType_pageTitle"
POSTER_SELECTOR = 'img[src*=".jpg"], img[src*=".png"], img[src*=".jpeg"]'

# Tried in order inside the first post; the wrapper itself is the last resort
CONTENT_SELECTORS = [
    '[data-role="commentContent"]',
    '.cPost_post',
    '.cPost_article',
    '.ipsComment_content',
    '.ipsType_richText',
]


def parse_detail(markup: str) -> DetailContent:
    """Return the title, poster and body (markup and text) of the first post.

    An empty ``DetailContent`` is returned when the page has no post wrapper.
    """
    soup = BeautifulSoup(markup or "", "html.parser")

    title_el = soup.select_one(PAGE_TITLE_SELECTOR)
    post_title = title_el.get_text(" ", strip=True) if title_el else ""

    first_post = soup.select_one(POST_WRAPPER_SELECTOR)
    if first_post is None:
        return DetailContent(post_title=post_title)

    poster_url: Optional[str] = None
    poster = first_post.select_one(POSTER_SELECTOR)
    if poster is not None:
        poster_url = poster.get("src")

    body = None
    for selector in CONTENT_SELECTORS:
        candidate = first_post.select_one(selector)
        if candidate is not None and candidate.decode_contents().strip():
            body = candidate
            break
    if body is None:
        body = first_post

    return DetailContent(
        post_title=post_title,
        markup=body.decode_contents(),
        text=body.get_text("\n"),
        poster_url=poster_url,
    )
