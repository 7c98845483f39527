import unittest
from unittest import mock

from filmwatch.exceptions import ConfigurationError, PublishError
from filmwatch.models import DownloadVariant, FilmRecord, Resolution
from filmwatch.publisher import TelegramPublisher
from filmwatch.publisher.formatting import (
    MAX_CAPTION_LENGTH,
    build_full_caption,
    escape_html,
    format_download_links,
    format_film_caption,
)


def make_film(variants=1, poster_url=None, title="Leo"):
    downloads = [
        DownloadVariant(
            resolution=Resolution.FHD_1080P,
            file_size=f"{n + 1}.5GB",
            codec="x264",
            magnet_link=f"magnet:?xt=urn:btih:{'A' * 40}{n}&dn=" + "Leo.2023.Tamil.1080p" * 5,
            direct_link=f"https://cyberloom.best/l/leo{n}",
        )
        for n in range(variants)
    ]
    return FilmRecord(
        id="100",
        title=title,
        year=2023,
        language="Tamil + Telugu",
        subtitles="ESub",
        poster_url=poster_url,
        source_url="https://forum.example/index.php?/forums/topic/100-leo/",
        downloads=downloads,
    )


class TestFormatting(unittest.TestCase):
    def test_escape_html(self):
        self.assertEqual(escape_html("Tom & Jerry <3>"), "Tom &amp; Jerry &lt;3&gt;")
        self.assertEqual(escape_html(None), "")

    def test_full_caption_sections(self):
        caption = format_film_caption(make_film())

        self.assertTrue(caption.startswith("<b>Leo (2023) | Tamil + Telugu</b>"))
        self.assertIn("<b>DIRECT DOWNLOAD:</b>", caption)
        self.assertIn('<a href="https://cyberloom.best/l/leo0">Download Link</a>', caption)
        self.assertIn("<b>TORRENT:</b>", caption)
        self.assertIn("<code>magnet:?xt=urn:btih:", caption)

    def test_title_is_escaped(self):
        caption = format_film_caption(make_film(title="Fast & Furious"))
        self.assertIn("Fast &amp; Furious", caption)

    def test_variants_without_size_keep_their_links(self):
        film = make_film(variants=0)
        film.downloads = [
            DownloadVariant(resolution=Resolution.HD_720P, magnet_link="magnet:?xt=urn:btih:NOSIZE"),
            DownloadVariant(direct_link="https://cyberloom.best/l/nosize"),
        ]
        caption = format_film_caption(film)

        self.assertIn("720p - 🧲\n<code>magnet:?xt=urn:btih:NOSIZE</code>", caption)
        self.assertIn('Unknown - <a href="https://cyberloom.best/l/nosize">Download Link</a>', caption)

    def test_long_caption_is_truncated(self):
        film = make_film(variants=6)
        self.assertGreater(len(build_full_caption(film)), MAX_CAPTION_LENGTH)

        caption = format_film_caption(film)
        self.assertLessEqual(len(caption), MAX_CAPTION_LENGTH)
        self.assertIn("Leo (2023)", caption)
        self.assertIn("View Full Details", caption)
        self.assertIn(film.source_url, caption)

    def test_download_links_cover_every_variant(self):
        film = make_film(variants=6)
        messages = format_download_links(film)
        joined = "\n".join(messages)
        for download in film.downloads:
            self.assertIn(download.direct_link, joined)


class TestTelegramPublisher(unittest.IsolatedAsyncioTestCase):
    def make_publisher(self):
        publisher = TelegramPublisher(bot_token="123:abc", chat_id="-100200", api_url="https://api.example")
        publisher._call = mock.AsyncMock(return_value={"message_id": 1})
        return publisher

    def test_missing_credentials(self):
        with mock.patch("filmwatch.publisher.telegram.settings") as cfg:
            cfg.TELEGRAM_BOT_TOKEN = None
            cfg.TELEGRAM_CHAT_ID = None
            cfg.TELEGRAM_API_URL = "https://api.example"
            with self.assertRaises(ConfigurationError):
                TelegramPublisher()

    async def test_publish_with_poster(self):
        publisher = self.make_publisher()
        await publisher.publish(make_film(poster_url="https://img.example/leo.jpg"))

        publisher._call.assert_awaited_once()
        method, payload = publisher._call.await_args.args
        self.assertEqual(method, "sendPhoto")
        self.assertEqual(payload["photo"], "https://img.example/leo.jpg")
        self.assertEqual(payload["chat_id"], "-100200")
        self.assertEqual(payload["parse_mode"], "HTML")

    async def test_rejected_poster_falls_back_to_text(self):
        publisher = self.make_publisher()
        publisher._call.side_effect = [PublishError("wrong file identifier"), {"message_id": 2}]

        await publisher.publish(make_film(poster_url="https://img.example/missing.jpg"))

        methods = [c.args[0] for c in publisher._call.await_args_list]
        self.assertEqual(methods, ["sendPhoto", "sendMessage"])

    async def test_truncated_caption_sends_link_follow_up(self):
        publisher = self.make_publisher()
        await publisher.publish(make_film(variants=6))

        methods = [c.args[0] for c in publisher._call.await_args_list]
        self.assertEqual(methods[0], "sendMessage")
        self.assertGreaterEqual(len(methods), 2)

    async def test_main_message_failure_raises(self):
        publisher = self.make_publisher()
        publisher._call.side_effect = PublishError("chat not found")

        with self.assertRaises(PublishError):
            await publisher.publish(make_film())

    async def test_follow_up_failure_is_not_raised(self):
        publisher = self.make_publisher()
        publisher._call.side_effect = [{"message_id": 1}, PublishError("flood wait")]

        await publisher.publish(make_film(variants=6))


if __name__ == "__main__":
    unittest.main()
