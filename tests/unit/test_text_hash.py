"""
Unit tests for page content hashing.
"""
import pytest

from apps.worker.lib.text_hash import (
    FINGERPRINT_BITS,
    compute_fingerprint,
    compute_sim_fingerprint,
    compute_text_hash,
    fingerprint_from_hex,
    fingerprint_to_hex,
    hamming_distance,
    normalize_text,
    similarity,
)

NOTE = (
    "Patient presents with lower back pain radiating to the left leg following "
    "a motor vehicle accident. Lumbar tenderness at L4-L5, straight leg raise "
    "positive on the left. Plan: MRI lumbar spine, naproxen, physical therapy."
)


class TestNormalizeText:
    def test_basic(self):
        assert normalize_text("  Hello,   WORLD!\n\tAgain. ") == "hello world again"

    def test_empty(self):
        assert normalize_text("") == ""
        assert normalize_text("  ...  ") == ""

    @pytest.mark.parametrize("text", [NOTE, "A-B  c", "x\n\ny", ""])
    def test_idempotent(self, text):
        once = normalize_text(text)
        assert normalize_text(once) == once


class TestTextHash:
    def test_equal_when_normalized_equal(self):
        assert compute_text_hash("Hello, World") == compute_text_hash("hello   world!")

    def test_differs_when_normalized_differs(self):
        assert compute_text_hash("hello world") != compute_text_hash("hello there world")

    def test_hex_digest(self):
        h = compute_text_hash(NOTE)
        assert len(h) == 64
        int(h, 16)


class TestSimFingerprint:
    def test_empty_text_is_zero(self):
        assert compute_sim_fingerprint("") == 0
        assert compute_sim_fingerprint("!!!") == 0

    def test_fits_in_64_bits(self):
        assert 0 <= compute_sim_fingerprint(NOTE) < 2 ** FINGERPRINT_BITS

    def test_formatting_does_not_matter(self):
        assert compute_sim_fingerprint(NOTE) == compute_sim_fingerprint(NOTE.upper().replace(" ", "  "))

    def test_small_edit_stays_similar(self):
        edited = NOTE.replace("naproxen", "ibuprofen")
        assert similarity(compute_sim_fingerprint(NOTE), compute_sim_fingerprint(edited)) >= 0.8

    def test_compute_fingerprint(self):
        fp = compute_fingerprint(NOTE)
        assert fp.text_hash == compute_text_hash(NOTE)
        assert fp.sim_fingerprint == compute_sim_fingerprint(NOTE)


class TestSimilarity:
    def test_reflexive(self):
        fp = compute_sim_fingerprint(NOTE)
        assert similarity(fp, fp) == 1.0

    def test_symmetric(self):
        a = compute_sim_fingerprint(NOTE)
        b = compute_sim_fingerprint("completely unrelated billing statement for services")
        assert similarity(a, b) == similarity(b, a)

    def test_hamming(self):
        assert hamming_distance(0, 0b1011) == 3
        assert similarity(0, (1 << 64) - 1) == 0.0
        assert similarity(0, 0b1) == pytest.approx(1 - 1 / 64)


class TestHex:
    def test_round_trip(self):
        fp = compute_sim_fingerprint(NOTE)
        assert fingerprint_from_hex(fingerprint_to_hex(fp)) == fp

    def test_zero_padded(self):
        assert fingerprint_to_hex(1) == "0000000000000001"



class TestAsciiWords:
    def test_accented_letters_stripped(self):
        assert normalize_text("Café Noël") == "caf nol"

    def test_unicode_space_still_collapses(self):
        assert normalize_text("left\u00a0 knee") == "left knee"
