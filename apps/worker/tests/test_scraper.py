import unittest

from filmwatch.exceptions import ExtractionError
from filmwatch.models import DetailContent, ListingEntry, Resolution
from filmwatch.scraper import extract_film, parse_detail, parse_listing

BASE_URL = "https://forum.example/index.php?/forums/forum/9-tamil-language/"

LISTING = """
<html><body>
<div class="ipsBox">
  <a href="https://forum.example/index.php?/forums/topic/100-leo-2023/">Leo (2023) [Tamil]</a>
  <a href="https://forum.example/index.php?/forums/topic/100-leo-2023/">Leo (2023) [Tamil]</a>
  <a href="https://forum.example/index.php?/forums/topic/100-leo-2023/?do=getLastComment">Last</a>
  <a href="/index.php?/forums/topic/200-jailer/">Jailer [Tamil]</a>
  <a href="https://forum.example/index.php?/forums/topic/rules/">Forum rules</a>
  <a href="https://forum.example/index.php?/forums/topic/300-vikram/"><img src="thumb.jpg"></a>
  <a href="https://forum.example/index.php?/forums/topic/300-vikram/">Vikram (2022)</a>
</div>
<a href="https://forum.example/index.php?/forums/topic/999-sidebar/">Sidebar post</a>
</body></html>
"""

DETAIL = """
<html><body>
<h1 class="ipsType_pageTitle">Leo (2023) [Tamil + Telugu] HQ HDRip</h1>
<div class="cPost_contentWrap">
  <div data-role="commentContent" class="ipsType_richText">
    <p><img src="https://img.example/leo.jpg" alt="poster"></p>
    <p>Leo (2023) [Tamil + Telugu] HQ HDRip - ESub</p>
    <p>1080p - HEVC x265 - 2.5GB - DD+5.1
      <a href="magnet:?xt=urn:btih:HASH1080&amp;dn=Leo">Magnet</a>
      <a href="https://cyberloom.best/l/Leo1080">Direct</a>
    </p>
  </div>
</div>
</body></html>
"""


class TestParseListing(unittest.TestCase):
    def test_entries_are_distinct_and_resolvable(self):
        entries = parse_listing(LISTING, base_url=BASE_URL)

        self.assertEqual([e.id for e in entries], ["100", "200", "300"])
        self.assertEqual(entries[0].raw_title, "Leo (2023) [Tamil]")
        self.assertEqual(
            entries[1].source_url, "https://forum.example/index.php?/forums/topic/200-jailer/"
        )
        self.assertEqual(entries[2].raw_title, "Vikram (2022)")

    def test_max_films_caps_entries(self):
        entries = parse_listing(LISTING, base_url=BASE_URL, max_films=2)
        self.assertEqual([e.id for e in entries], ["100", "200"])

    def test_falls_back_to_any_topic_link(self):
        markup = '<ul><li><a href="https://forum.example/forums/topic/7-kaithi/">Kaithi</a></li></ul>'
        entries = parse_listing(markup)
        self.assertEqual([e.id for e in entries], ["7"])

    def test_empty_listing(self):
        self.assertEqual(parse_listing("<html><body>Maintenance</body></html>"), [])


class TestParseDetail(unittest.TestCase):
    def test_first_post_content(self):
        detail = parse_detail(DETAIL)

        self.assertEqual(detail.post_title, "Leo (2023) [Tamil + Telugu] HQ HDRip")
        self.assertEqual(detail.poster_url, "https://img.example/leo.jpg")
        self.assertIn("magnet:?xt=urn:btih:HASH1080", detail.markup)
        self.assertIn("ESub", detail.text)
        self.assertFalse(detail.is_empty)

    def test_page_without_post(self):
        detail = parse_detail("<html><body><h1 class='ipsType_pageTitle'>Gone</h1></body></html>")
        self.assertTrue(detail.is_empty)
        self.assertEqual(detail.post_title, "Gone")


class TestExtractFilm(unittest.TestCase):
    def setUp(self):
        self.entry = ListingEntry(
            id="100",
            source_url="https://forum.example/index.php?/forums/topic/100-leo-2023/",
            raw_title="Leo (2023) [Tamil]",
        )

    def test_full_record(self):
        film = extract_film(parse_detail(DETAIL), self.entry)

        self.assertEqual(film.id, "100")
        self.assertEqual(film.title, "Leo")
        self.assertEqual(film.year, 2023)
        self.assertEqual(film.language, "Tamil + Telugu")
        self.assertEqual(film.subtitles, "ESub")
        self.assertEqual(film.poster_url, "https://img.example/leo.jpg")
        self.assertEqual(film.source_url, self.entry.source_url)

        self.assertEqual(len(film.downloads), 1)
        variant = film.downloads[0]
        self.assertEqual(variant.resolution, Resolution.FHD_1080P)
        self.assertEqual(variant.file_size, "2.5GB")
        self.assertEqual(variant.codec, "HEVC x265")
        self.assertEqual(variant.audio, "DD+5.1")
        self.assertEqual(variant.magnet_link, "magnet:?xt=urn:btih:HASH1080&dn=Leo")
        self.assertEqual(variant.direct_link, "https://cyberloom.best/l/Leo1080")

    def test_listing_title_used_without_page_title(self):
        detail = DetailContent(markup="<p>1080p 2GB</p>", text="1080p 2GB")
        film = extract_film(detail, self.entry, default_language="Hindi")

        self.assertEqual(film.title, "Leo")
        self.assertEqual(film.language, "Hindi")
        self.assertEqual(film.downloads, [])

    def test_empty_detail_raises(self):
        with self.assertRaises(ExtractionError):
            extract_film(DetailContent(post_title="Leo"), self.entry)


if __name__ == "__main__":
    unittest.main()
