import itertools
import unittest
from datetime import datetime, timezone

from services.identifiers import (
    RECEIPT_NUMBER_PATTERN,
    REFERENCE_NUMBER_PATTERN,
    RandomNumberGenerator,
    SequentialNumberGenerator,
    format_number,
    receipt_prefix,
)

WHEN = datetime(2025, 6, 15, tzinfo=timezone.utc)


class TestNumberFormat(unittest.TestCase):
    def test_prefix_year_month_suffix(self):
        self.assertEqual(format_number("LA", WHEN, 42), "LA-202506-00042")
        self.assertEqual(format_number("OR", datetime(2024, 12, 1), 99999), "OR-202412-99999")

    def test_suffix_wraps_to_five_digits(self):
        self.assertEqual(format_number("CR", WHEN, 100_007), "CR-202506-00007")

    def test_receipt_prefix(self):
        self.assertEqual(receipt_prefix("OFFICIAL_RECEIPT"), "OR")
        self.assertEqual(receipt_prefix("COLLECTION_RECEIPT"), "CR")
        with self.assertRaises(ValueError):
            receipt_prefix("INVOICE")


class TestGenerators(unittest.TestCase):
    def test_random_numbers_match_patterns(self):
        gen = RandomNumberGenerator()
        for _ in range(20):
            self.assertRegex(gen.reference_number(WHEN), REFERENCE_NUMBER_PATTERN)
            self.assertRegex(gen.receipt_number("COLLECTION_RECEIPT", WHEN), RECEIPT_NUMBER_PATTERN)
        self.assertNotEqual(gen.new_id("app"), gen.new_id("app"))

    def test_sequential_counts_up(self):
        gen = SequentialNumberGenerator(start=42)
        self.assertEqual(gen.reference_number(WHEN), "LA-202506-00042")
        self.assertEqual(gen.receipt_number("OFFICIAL_RECEIPT", WHEN), "OR-202506-00043")
        self.assertEqual(gen.new_id("app"), "app-000000000001")
        self.assertEqual(gen.new_id("rcpt"), "rcpt-000000000002")

    def test_sequential_from_given_suffixes(self):
        gen = SequentialNumberGenerator(suffixes=itertools.repeat(7))
        self.assertEqual(gen.reference_number(WHEN), gen.reference_number(WHEN))


if __name__ == "__main__":
    unittest.main()
