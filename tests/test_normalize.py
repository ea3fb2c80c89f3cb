"""
Unit tests for text and URL normalization.
"""

import time
import unittest

from bs4 import BeautifulSoup

from extractors.normalize import clean_text, element_text, normalize, to_absolute_url, to_text


class TestNormalize(unittest.TestCase):
    """Test field value normalization."""

    def test_empty_values(self):
        """Absent, empty and whitespace-only input becomes None."""
        self.assertIsNone(normalize(None))
        self.assertIsNone(normalize(""))
        self.assertIsNone(normalize("  \n\t "))

    def test_collapse_whitespace(self):
        """Whitespace runs collapse to one space and the ends are trimmed."""
        self.assertEqual(normalize("  Staff \n\t Nurse  "), "Staff Nurse")
        self.assertEqual(normalize("Band 5"), "Band 5")

    def test_non_string_values(self):
        """Numbers are stringified."""
        self.assertEqual(normalize(28407), "28407")

    def test_doubled_token(self):
        """A repeated single token collapses."""
        self.assertEqual(normalize("Full-time Full-time"), "Full-time")

    def test_doubled_word_with_extra_space(self):
        """Whitespace is collapsed before the doubling rules run."""
        self.assertEqual(normalize("Nurse  Nurse"), "Nurse")

    def test_no_false_positive(self):
        """Text without repetition is left alone."""
        self.assertEqual(normalize("Band 6 Nurse"), "Band 6 Nurse")
        self.assertEqual(normalize("£28,407 to £34,581 a year"), "£28,407 to £34,581 a year")

    def test_identical_halves(self):
        """A string made of two identical halves collapses to one."""
        self.assertEqual(normalize("PermanentPermanent"), "Permanent")

    def test_short_halves_kept(self):
        """Single-character halves are not treated as doubled text."""
        self.assertEqual(normalize("55"), "55")

    def test_doubled_phrase(self):
        """'<phrase> <phrase>' collapses to the phrase."""
        self.assertEqual(normalize("Staff Nurse Staff Nurse"), "Staff Nurse")
        self.assertEqual(
            normalize("Leeds Teaching Hospitals Leeds Teaching Hospitals"),
            "Leeds Teaching Hospitals"
        )

    def test_repeated_token_run_inside_text(self):
        """A run of tokens repeated back to back collapses, keeping the rest."""
        self.assertEqual(normalize("Band 5 Band 5 Nurse"), "Band 5 Nurse")
        self.assertEqual(normalize("Senior Staff Staff Nurse"), "Senior Staff Nurse")

    def test_non_adjacent_repeats_kept(self):
        """Repeated tokens that aren't adjacent runs are not collapsed."""
        self.assertEqual(normalize("5 Band 6 Band"), "5 Band 6 Band")
        self.assertEqual(normalize("Monday to Friday or Saturday to Sunday"),
                         "Monday to Friday or Saturday to Sunday")

    def test_idempotent(self):
        """normalize(normalize(x)) == normalize(x)."""
        samples = [
            None,
            "",
            "Full-time Full-time",
            "Nurse  Nurse",
            "Band 6 Nurse",
            "abababab",
            "Nurse Nurse Nurse Nurse",
            "Band 5 Band 5 Nurse",
            "x y x y x y",
            "PermanentPermanent Permanent",
            "  The closing date is  30 November 2026 ",
            "aa bb aa bb",
        ]
        for sample in samples:
            with self.subTest(sample=sample):
                once = normalize(sample)
                self.assertEqual(normalize(once), once)

    def test_repeated_many_times(self):
        """Text repeated more than twice collapses all the way."""
        self.assertEqual(normalize("Nurse Nurse Nurse Nurse"), "Nurse")
        self.assertEqual(normalize("abababab"), "ab")

    def test_long_text_is_fast(self):
        """A long field (e.g. a whole page section) normalizes quickly."""
        text = ' '.join(f'word{i}' for i in range(2000))

        start = time.perf_counter()
        self.assertEqual(normalize(text), text)
        self.assertLess(time.perf_counter() - start, 1.0)

    def test_long_text_keeps_run_repair(self):
        """Repeated runs inside long text are still collapsed."""
        prefix = ' '.join(f'word{i}' for i in range(1000))
        self.assertEqual(normalize(f"{prefix} Band 5 Band 5 Nurse"), f"{prefix} Band 5 Nurse")


class TestElementText(unittest.TestCase):
    """Test element text layout."""

    def text(self, html):
        return to_text(element_text(BeautifulSoup(html, 'lxml')))

    def test_inline_markup_joins_words(self):
        self.assertEqual(self.text("<p>Nur<b>se</b></p>"), "Nurse")
        self.assertEqual(self.text("<p><a href='/t'>NHS</a>'s trust</p>"), "NHS's trust")

    def test_block_elements_separate_words(self):
        self.assertEqual(self.text("<div><p>Band</p><p>5</p></div>"), "Band 5")
        self.assertEqual(self.text("<ul><li>Leeds</li><li>Bradford</li></ul>"), "Leeds Bradford")
        self.assertEqual(self.text("Line one<br>Line two"), "Line one Line two")

    def test_comments_ignored(self):
        self.assertEqual(self.text("<p>Porter<!-- band 2 --></p>"), "Porter")


class TestToText(unittest.TestCase):
    """Test whitespace-only cleanup."""

    def test_keeps_doubled_text(self):
        """to_text doesn't repair doubled text."""
        self.assertEqual(to_text(" Nurse   Nurse "), "Nurse Nurse")

    def test_empty(self):
        self.assertIsNone(to_text("   "))
        self.assertIsNone(to_text(None))


class TestCleanText(unittest.TestCase):
    """Test HTML to plain text conversion."""

    def test_strips_non_text_tags(self):
        """Script, style, noscript and iframe content is removed."""
        html = """
        <p>Join   our team.</p>
        <script>var tracking = 1;</script>
        <style>p { color: red; }</style>
        <noscript>Enable JavaScript</noscript>
        <iframe src="https://example.com/video">Video</iframe>
        <ul><li>Flexible hours</li></ul>
        """
        self.assertEqual(clean_text(html), "Join our team. Flexible hours")

    def test_inline_markup(self):
        """Inline tags don't split words; block tags separate them."""
        self.assertEqual(clean_text("<p>Nur<b>se</b> Band<em>s</em></p><p>5 and 6</p>"),
                         "Nurse Bands 5 and 6")

    def test_none(self):
        self.assertIsNone(clean_text(None))

    def test_markup_without_text(self):
        """Markup without text gives an empty string, not None."""
        self.assertEqual(clean_text("<p><br></p>"), "")


class TestToAbsoluteUrl(unittest.TestCase):
    """Test link resolution."""

    def test_relative_url(self):
        """Relative URLs are resolved against the base."""
        result = to_absolute_url("/candidate/jobadvert/C1", "https://www.jobs.nhs.uk/candidate/search/results")
        self.assertEqual(result, "https://www.jobs.nhs.uk/candidate/jobadvert/C1")

    def test_default_base(self):
        """Without a base, links resolve against the site root."""
        self.assertEqual(to_absolute_url("candidate/jobadvert/C1"),
                         "https://www.jobs.nhs.uk/candidate/jobadvert/C1")

    def test_absolute_url(self):
        """Absolute URLs are returned as-is."""
        result = to_absolute_url("https://other.example/page", "https://www.jobs.nhs.uk/")
        self.assertEqual(result, "https://other.example/page")

    def test_fragment_removed(self):
        result = to_absolute_url("/candidate/jobadvert/C1#apply")
        self.assertEqual(result, "https://www.jobs.nhs.uk/candidate/jobadvert/C1")

    def test_unresolvable_links(self):
        """javascript:, mailto:, anchors and empty hrefs give None."""
        for href in [None, "", "   ", "#top", "javascript:void(0)", "mailto:jobs@nhs.net", "ftp://files.example/x"]:
            with self.subTest(href=href):
                self.assertIsNone(to_absolute_url(href))

    def test_malformed_url(self):
        """URLs that urllib can't parse give None."""
        self.assertIsNone(to_absolute_url("http://[::1"))


if __name__ == '__main__':
    unittest.main()
