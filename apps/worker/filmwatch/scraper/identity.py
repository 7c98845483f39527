"""Topic id resolution for forum URLs."""

import re
from typing import Optional

from ..exceptions import ResolutionError

# /forums/topic/12345-movie-name/ -> 12345
TOPIC_ID_PATTERN = re.compile(r"/topic/(\d+)-")


def resolve_id(url: str) -> str:
    """Return the numeric topic id embedded in ``url``.

    Any two URLs carrying the same topic number resolve to the same id,
    whatever their slug, query string or fragment.
    """
    m = TOPIC_ID_PATTERN.search(url or "")
    if not m:
        raise ResolutionError(url)
    return m.group(1)


def try_resolve_id(url: str) -> Optional[str]:
    try:
        return resolve_id(url)
    except ResolutionError:
        return None
