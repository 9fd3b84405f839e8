"""
Unit tests for duplicate page detection (Step 9).
"""
import pytest

from packages.shared.models import PageFingerprint, PageText
from apps.worker.lib.text_hash import compute_text_hash, fingerprint_to_hex
from apps.worker.steps.step09_dedup import (
    duplicate_confidence,
    find_duplicates,
    page_fingerprint,
)

HASH_A = "a" * 64
HASH_B = "b" * 64
HASH_C = "c" * 64


def _fp(n: int, text_hash: str | None = None, sim: int | None = None) -> PageFingerprint:
    return PageFingerprint(id=f"page-{n}", page_number=n, text_hash=text_hash, sim_fingerprint=sim)


class TestExactDuplicates:
    def test_pair(self):
        report = find_duplicates([_fp(1, HASH_A, 0), _fp(2, HASH_A, 0), _fp(3, HASH_B, (1 << 64) - 1)])
        assert len(report.exact_groups) == 1
        group = report.exact_groups[0]
        assert group.primary_page_number == 1
        assert [m.page_number for m in group.pages] == [1, 2]
        assert all(m.similarity == 1.0 for m in group.pages)
        assert report.near_groups == []

    def test_primary_is_lowest_page_number(self):
        report = find_duplicates([_fp(5, HASH_A), _fp(2, HASH_A), _fp(9, HASH_A)])
        group = report.exact_groups[0]
        assert group.primary_page_id == "page-2"
        assert [m.page_number for m in group.pages] == [2, 5, 9]

    def test_pages_without_hash_ignored(self):
        report = find_duplicates([_fp(1), _fp(2)])
        assert report.exact_groups == []
        assert report.near_groups == []


class TestNearDuplicates:
    def test_close_fingerprints_grouped(self):
        report = find_duplicates([
            _fp(1, HASH_A, 0),
            _fp(2, HASH_B, 0b111),
            _fp(3, HASH_C, (1 << 64) - 1),
        ])
        assert report.exact_groups == []
        assert len(report.near_groups) == 1
        group = report.near_groups[0]
        assert group.primary_page_number == 1
        assert [m.page_number for m in group.pages] == [1, 2]
        assert group.pages[0].similarity == 1.0
        assert group.pages[1].similarity == pytest.approx(1 - 3 / 64)

    def test_exact_members_excluded_from_near_pass(self):
        report = find_duplicates([
            _fp(1, HASH_A, 0),
            _fp(2, HASH_A, 0),
            _fp(3, HASH_B, 0b1),
        ])
        assert len(report.exact_groups) == 1
        assert report.near_groups == []

    def test_below_threshold_not_grouped(self):
        # 7 differing bits -> similarity 0.890625
        report = find_duplicates([_fp(1, HASH_A, 0), _fp(2, HASH_B, 0b1111111)])
        assert report.near_groups == []

    def test_greedy_single_link(self):
        # page 3 is close to page 2 only; page 2 is claimed by page 1 first
        far = (1 << 12) - 1
        report = find_duplicates([
            _fp(1, HASH_A, 0),
            _fp(2, HASH_B, 0b111111),
            _fp(3, HASH_C, far),
        ])
        assert len(report.near_groups) == 1
        assert [m.page_number for m in report.near_groups[0].pages] == [1, 2]

    def test_each_page_in_at_most_one_group(self):
        pages = [_fp(i, None, 0) for i in range(1, 6)]
        report = find_duplicates(pages)
        seen = [m.id for g in report.exact_groups + report.near_groups for m in g.pages]
        assert len(seen) == len(set(seen)) == 5


class TestHelpers:
    def test_duplicate_confidence(self):
        assert duplicate_confidence(fingerprint_to_hex(0), fingerprint_to_hex(0b11)) == pytest.approx(1 - 2 / 64)
        assert duplicate_confidence(None, fingerprint_to_hex(0)) is None

    def test_page_fingerprint(self):
        fp = page_fingerprint("p1", PageText(page_number=1, text="Exam Date: 03/18/2024"))
        assert fp.text_hash == compute_text_hash("Exam Date: 03/18/2024")
        assert fp.sim_fingerprint is not None

    def test_blank_page_fingerprint(self):
        fp = page_fingerprint("p1", PageText(page_number=1, text="   "))
        assert fp.text_hash == compute_text_hash("")
        assert fp.sim_fingerprint == 0


class TestBlankPages:
    def test_blank_scans_group_as_exact_duplicates(self):
        pages = [
            page_fingerprint("p1", PageText(page_number=1, text="")),
            page_fingerprint("p2", PageText(page_number=2, text="  -- ")),
            page_fingerprint("p3", PageText(page_number=3, text="Progress note")),
        ]
        report = find_duplicates(pages)
        assert len(report.exact_groups) == 1
        assert [m.page_number for m in report.exact_groups[0].pages] == [1, 2]
        assert report.near_groups == []
