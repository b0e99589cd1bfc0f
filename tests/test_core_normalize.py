"""
Unit tests for catalog_dedupe.core.matching.normalize.
"""

import unittest

from catalog_dedupe.core.matching import InvalidArgumentError
from catalog_dedupe.core.matching.normalize import core_title, normalize_title, strip_qualifiers


class TestNormalizeTitle(unittest.TestCase):
    """Test title normalization."""

    def test_basic_normalization(self):
        self.assertEqual(normalize_title("The Great Gatsby"), "the great gatsby")

    def test_trailing_punctuation_dropped(self):
        self.assertEqual(normalize_title("the great gatsby!!"), "the great gatsby")

    def test_punctuation_becomes_word_break(self):
        self.assertEqual(
            normalize_title("Harry Potter/Philosopher's Stone"),
            "harry potter philosopher s stone",
        )
        self.assertEqual(normalize_title("snake_case_title"), "snake case title")

    def test_collapse_whitespace(self):
        self.assertEqual(normalize_title("  Too   Many\t\nSpaces "), "too many spaces")

    def test_accents_folded(self):
        self.assertEqual(normalize_title("Café Society"), "cafe society")
        self.assertEqual(normalize_title("Dvořák"), "dvorak")
        self.assertEqual(normalize_title("Tiếng Việt"), "tieng viet")

    def test_non_latin_letters_kept(self):
        self.assertEqual(normalize_title("東京物語"), "東京物語")
        self.assertEqual(normalize_title("Война и мир"), "война и мир")

    def test_indic_and_thai_words_stay_whole(self):
        self.assertEqual(normalize_title("हिन्दी"), "हिन्दी")
        self.assertEqual(normalize_title("हिन्दी, भाषा!"), "हिन्दी भाषा")
        self.assertEqual(normalize_title("สวัสดี"), "สวัสดี")

    def test_preserves_numbers(self):
        self.assertEqual(normalize_title("Catch-22"), "catch 22")

    def test_empty_string(self):
        self.assertEqual(normalize_title(""), "")
        self.assertEqual(normalize_title("?!"), "")

    def test_none_rejected(self):
        with self.assertRaises(InvalidArgumentError):
            normalize_title(None)

    def test_non_string_rejected(self):
        with self.assertRaises(InvalidArgumentError):
            normalize_title(42)

    def test_idempotent(self):
        samples = [
            "The Great Gatsby",
            "the great gatsby!!",
            "  A  Tale -- of Two   Cities ",
            "Café Society",
            "ℌello İstanbul",
            "Vol. 1: Beginnings (2nd ed.)",
            "東京物語",
            "हिन्दी, भाषा!",
            "สวัสดี",
            "Tiếng Việt",
            "",
        ]
        for sample in samples:
            once = normalize_title(sample)
            self.assertEqual(normalize_title(once), once, sample)


class TestStripQualifiers(unittest.TestCase):
    def test_trailing_parenthetical(self):
        self.assertEqual(strip_qualifiers("Dune (Deluxe Edition)"), "Dune")

    def test_stacked_qualifiers(self):
        self.assertEqual(strip_qualifiers("Book Title (Author) [Kindle]"), "Book Title")

    def test_separated_author_credit(self):
        self.assertEqual(strip_qualifiers("Emma, by Jane Austen"), "Emma")

    def test_by_inside_title_kept(self):
        self.assertEqual(strip_qualifiers("Stand by Me"), "Stand by Me")

    def test_never_strips_to_empty(self):
        self.assertEqual(strip_qualifiers("(Untitled)"), "(Untitled)")

    def test_core_title_is_normalized(self):
        self.assertEqual(core_title("DUNE (Deluxe Edition)"), "dune")


if __name__ == "__main__":
    unittest.main()
