"""
Telegram HTML message formatting for film records
"""
from typing import List

from ..logging_config import setup_logging
from ..models import DownloadVariant, FilmRecord

logger = setup_logging(__name__)

MAX_CAPTION_LENGTH = 1024
MAX_MESSAGE_LENGTH = 4096


def escape_html(text) -> str:
    """Escape the characters Telegram's HTML parse mode reserves"""
    if not text:
        return ""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
    )


def variant_label(download: DownloadVariant) -> str:
    """File size when the post gave one, the resolution otherwise"""
    return download.file_size or download.resolution.value


def format_download_option(download: DownloadVariant) -> str:
    parts = [f"\n<b>{escape_html(download.resolution.value)}</b>"]

    tech_details = [d for d in (download.file_size, download.codec, download.audio) if d]
    if tech_details:
        parts.append(escape_html(" | ".join(tech_details)))

    links = []
    if download.magnet_link:
        links.append(f"🧲 <code>{escape_html(download.magnet_link)}</code>")
    if download.direct_link:
        links.append(f'⬇️ <a href="{escape_html(download.direct_link)}">Direct</a>')
    if links:
        parts.append("\n".join(links))

    return "\n".join(parts)


def format_film_caption(film: FilmRecord) -> str:
    """Full caption, or the truncated one when it would not fit a photo caption"""
    caption = build_full_caption(film)
    if needs_split(caption):
        logger.warning(
            f"Caption too long ({len(caption)} chars), truncating...",
            extra={"film_id": film.id},
        )
        return truncate_caption(film)
    return caption


def build_full_caption(film: FilmRecord) -> str:
    parts: List[str] = []

    title_text = escape_html(film.title) or "Unknown"
    if film.year:
        title_text += f" ({film.year})"
    if film.language:
        title_text += f" | {escape_html(film.language)}"
    parts.append(f"<b>{title_text}</b>\n")

    direct = [d for d in film.downloads if d.direct_link]
    torrents = [d for d in film.downloads if d.magnet_link]

    if direct:
        parts.append("<b>DIRECT DOWNLOAD:</b>")
        for d in direct:
            parts.append(f'{escape_html(variant_label(d))} - <a href="{escape_html(d.direct_link)}">Download Link</a> 📥')
        parts.append("")

    if torrents:
        parts.append("<b>TORRENT:</b>")
        for d in torrents:
            # magnet: is not a clickable scheme in Telegram, so it goes in a code block
            parts.append(f"{escape_html(variant_label(d))} - 🧲\n<code>{escape_html(d.magnet_link)}</code>")

    return "\n".join(parts)


def truncate_caption(film: FilmRecord) -> str:
    parts = [f"🎬 <b>{escape_html(film.display_title)}</b>\n"]

    if film.language:
        parts.append(f"📝 Language: {escape_html(film.language)}")
    if film.subtitles:
        parts.append(f"💬 Subtitles: {escape_html(film.subtitles)}")

    qualities = ", ".join(d.resolution.value for d in film.downloads)
    if qualities:
        parts.append(f"\n📥 Available: {escape_html(qualities)}")

    parts.append(f'\n🔗 <a href="{escape_html(film.source_url)}">View Full Details & Downloads</a>')
    return "\n".join(parts)


def format_download_links(film: FilmRecord) -> List[str]:
    """Every variant, split into messages that fit Telegram's text limit"""
    messages: List[str] = []
    current = "<b>Download Links:</b>\n"
    for download in film.downloads:
        block = format_download_option(download)
        if len(current) + len(block) + 1 > MAX_MESSAGE_LENGTH:
            messages.append(current)
            current = ""
        current = f"{current}\n{block}" if current else block
    if current.strip():
        messages.append(current)
    return messages


def needs_split(caption: str) -> bool:
    return len(caption) > MAX_CAPTION_LENGTH


def format_error_message(error: str) -> str:
    return f"❌ <b>Error:</b> {escape_html(error)}"


def format_success_message(message: str) -> str:
    return f"✅ {escape_html(message)}"


def format_info_message(message: str) -> str:
    return f"ℹ️ {escape_html(message)}"
