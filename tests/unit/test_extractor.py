# SPDX-License-Identifier: MIT
"""Tests for merge pair extraction."""

import pytest

from fhir_link.connectors.types import Link, MergePair, Record
from fhir_link.extractor import LinkExtractor, MergePairSet


def record(record_id, *links):
    return Record(id=record_id, links=tuple(Link(t, ref) for t, ref in links))


class TestMergePairSet:
    """Test insert-if-absent semantics."""

    def test_add_returns_true_for_new_pair(self):
        pairs = MergePairSet()
        assert pairs.add(MergePair("A", "B")) is True
        assert len(pairs) == 1

    def test_add_returns_false_for_existing_pair(self):
        """Second insertion is a no-op, not an error."""
        pairs = MergePairSet()
        pairs.add(MergePair("A", "B"))
        assert pairs.add(MergePair("A", "B")) is False
        assert len(pairs) == 1

    def test_iterates_in_first_seen_order(self):
        pairs = MergePairSet([MergePair("Z", "1"), MergePair("A", "2")])
        assert list(pairs) == [MergePair("Z", "1"), MergePair("A", "2")]

    def test_sorted_uses_key_order(self):
        pairs = MergePairSet([MergePair("Z", "1"), MergePair("A", "2"), MergePair("A", "1")])
        assert pairs.sorted() == [MergePair("A", "1"), MergePair("A", "2"), MergePair("Z", "1")]

    def test_equality_ignores_order(self):
        first = MergePairSet([MergePair("A", "B"), MergePair("C", "D")])
        second = MergePairSet([MergePair("C", "D"), MergePair("A", "B")])
        assert first == second
        assert first == {MergePair("A", "B"), MergePair("C", "D")}


class TestLinkExtractor:
    """Test replaced-by link extraction."""

    def test_only_replaced_by_links_are_used(self):
        records = [
            record(
                "A",
                ("replaces", "Patient/R"),
                ("seealso", "Patient/S"),
                ("refer", "Patient/F"),
                ("replaced-by", "Patient/B"),
            )
        ]
        assert LinkExtractor().extract(records) == {MergePair("A", "B")}

    def test_records_without_links_contribute_nothing(self):
        records = [record("A"), record("B", ("replaces", "Patient/C"))]
        assert len(LinkExtractor().extract(records)) == 0

    def test_one_pair_per_replaced_by_link(self):
        records = [record("A", ("replaced-by", "Patient/B"), ("replaced-by", "Patient/C"))]
        assert LinkExtractor().extract(records) == {MergePair("A", "B"), MergePair("A", "C")}

    def test_target_is_last_reference_segment(self):
        records = [
            record("A", ("replaced-by", "https://fhir.example.test/Patient/B")),
            record("C", ("replaced-by", "D")),
        ]
        assert LinkExtractor().extract(records) == {MergePair("A", "B"), MergePair("C", "D")}

    def test_empty_reference_yields_empty_target(self):
        """Malformed references are tolerated and processing continues."""
        records = [
            record("A", ("replaced-by", "")),
            record("C", ("replaced-by", "Patient/D")),
        ]
        extractor = LinkExtractor()
        pairs = extractor.extract(records)

        assert pairs == {MergePair("A", ""), MergePair("C", "D")}
        assert extractor.stats.empty_targets == 1

    def test_trailing_slash_yields_empty_target(self):
        pairs = LinkExtractor().extract([record("A", ("replaced-by", "Patient/"))])
        assert pairs == {MergePair("A", "")}

    def test_duplicates_are_collapsed(self):
        records = [
            record("A", ("replaced-by", "Patient/B")),
            record("A", ("replaced-by", "B")),
        ]
        extractor = LinkExtractor()
        pairs = extractor.extract(records)

        assert pairs == {MergePair("A", "B")}
        assert extractor.stats.duplicates == 1

    def test_consumes_input_once(self):
        """The input may be a one-shot generator."""
        consumed = []

        def generate():
            for r in [record("A", ("replaced-by", "Patient/B")), record("C")]:
                consumed.append(r.id)
                yield r

        pairs = LinkExtractor().extract(generate())
        assert consumed == ["A", "C"]
        assert pairs == {MergePair("A", "B")}

    def test_extraction_is_idempotent(self, sample_patients):
        records = [Record.from_fhir(p) for p in sample_patients]
        assert LinkExtractor().extract(records) == LinkExtractor().extract(records)

    def test_source_errors_propagate(self):
        def failing():
            yield record("A", ("replaced-by", "Patient/B"))
            raise ConnectionError("page 2 unavailable")

        with pytest.raises(ConnectionError):
            LinkExtractor().extract(failing())

    def test_stats_reset_between_runs(self):
        extractor = LinkExtractor()
        extractor.extract([record("A", ("replaced-by", "Patient/B"))])
        extractor.extract([])
        assert extractor.stats.records_seen == 0


class TestScenarios:
    """End-to-end extraction scenarios."""

    def test_single_merge(self):
        records = [record("A", ("replaced-by", "Patient/B")), record("C")]
        assert LinkExtractor().extract(records) == {MergePair("A", "B")}

    def test_two_sources_same_target_stay_distinct(self):
        records = [
            record("P1", ("replaced-by", "Patient/X")),
            record("P2", ("replaced-by", "Patient/X")),
        ]
        assert LinkExtractor().extract(records) == {MergePair("P1", "X"), MergePair("P2", "X")}

    def test_self_link_is_kept(self):
        pairs = LinkExtractor().extract([record("A", ("replaced-by", "Patient/A"))])
        assert pairs == {MergePair("A", "A")}

    def test_inconsistent_identifier_formats(self, sample_patients):
        records = [Record.from_fhir(p) for p in sample_patients]
        assert LinkExtractor().extract(records) == {
            MergePair("D000000001-1", "D000000001"),
            MergePair(
                "4be15074-a29b-45b0-a0f9-ebd8157266a9",
                "a75e08fd-cf79-4396-934c-4b427e71156c",
            ),
            MergePair("2fab9a03-c932-4a05-a2ab-343193f72d9c", "12345"),
            MergePair("WDT0000000016", "WDT000000001"),
        }
