"""
Unit tests for per-district statistics.
"""

from __future__ import annotations

import unittest

from fountainfeed.district_stats import UNSPECIFIED_DISTRICT, DatasetSummary, district_statistics, summarize

from .test_common import make_record


class TestDistrictStatistics(unittest.TestCase):

    def setUp(self):
        self.records = [
            make_record(1, district="CENTRO", usage="PERSONAS", status="OPERATIVO"),
            make_record(2, district="CENTRO", usage="PERSONAS_Y_MASCOTAS", status="OPERATIVO"),
            make_record(3, district="CENTRO", usage="Personas y mascotas", status="NO OPERATIVO"),
            make_record(4, district="RETIRO", usage="PERSONAS", status="OPERATIVO"),
            make_record(5, district="", usage="", status=""),
        ]

    def test_grouped_and_sorted_by_size(self):
        stats = district_statistics(self.records)
        self.assertEqual([s.district for s in stats], ["CENTRO", "RETIRO", UNSPECIFIED_DISTRICT])

    def test_counts(self):
        centro = district_statistics(self.records)[0]
        self.assertEqual(centro.total, 3)
        self.assertEqual(centro.people_only, 1)
        self.assertEqual(centro.people_and_pets, 2)
        self.assertEqual(centro.operational, 2)
        self.assertEqual(centro.non_operational, 1)
        self.assertEqual(centro.operational_percent, 67)
        self.assertEqual(centro.people_and_pets_percent, 67)
        self.assertEqual(centro.people_only_percent, 33)

    def test_ties_sorted_by_name(self):
        stats = district_statistics([make_record(1, district="B"), make_record(2, district="A")])
        self.assertEqual([s.district for s in stats], ["A", "B"])

    def test_empty_collection(self):
        self.assertEqual(district_statistics([]), [])
        self.assertEqual(summarize([]), DatasetSummary())
        self.assertEqual(DatasetSummary().operational_percent, 0)

    def test_summary(self):
        summary = summarize(self.records)
        self.assertEqual(summary.total, 5)
        self.assertEqual(summary.districts, 3)
        self.assertEqual(summary.operational, 3)
        self.assertEqual(summary.people_and_pets, 2)
        self.assertEqual(summary.people_only, 3)
        self.assertEqual(summary.operational_percent, 60)


if __name__ == "__main__":
    unittest.main()
