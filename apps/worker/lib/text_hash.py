"""
Page content hashing for duplicate detection.

Two fingerprints per page, both derived from normalized text:
  - text_hash: SHA-256 hex digest, equal iff normalized text is equal.
  - sim_fingerprint: 64-bit simhash, Hamming distance tracks dissimilarity.
"""
from __future__ import annotations

import hashlib
import re

from packages.shared.models import ContentFingerprint

FINGERPRINT_BITS = 64
_FINGERPRINT_MASK = (1 << FINGERPRINT_BITS) - 1

# Word characters are ASCII only; accented letters are stripped like punctuation.
_NON_WORD_RE = re.compile(r"[^A-Za-z0-9_\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Lowercase, strip punctuation, collapse whitespace, trim."""
    if not text:
        return ""
    lowered = text.lower()
    stripped = _NON_WORD_RE.sub("", lowered)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def compute_text_hash(text: str) -> str:
    return hashlib.sha256(normalize_text(text).encode("utf-8")).hexdigest()


def _word_hash(word: str) -> int:
    # First 8 bytes of MD5, bit i = bit (i % 8) of byte (i // 8).
    digest = hashlib.md5(word.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "little")


def compute_sim_fingerprint(text: str) -> int:
    """
    64-bit simhash over the words of the normalized text.

    Each word votes +1/-1 per bit position according to its own hash;
    the fingerprint keeps the bits with a positive tally. Text without
    words yields 0.
    """
    words = [w for w in normalize_text(text).split(" ") if w]
    if not words:
        return 0

    counters = [0] * FINGERPRINT_BITS
    for word in words:
        h = _word_hash(word)
        for i in range(FINGERPRINT_BITS):
            counters[i] += 1 if (h >> i) & 1 else -1

    fingerprint = 0
    for i, count in enumerate(counters):
        if count > 0:
            fingerprint |= 1 << i
    return fingerprint


def compute_fingerprint(text: str) -> ContentFingerprint:
    return ContentFingerprint(
        text_hash=compute_text_hash(text),
        sim_fingerprint=compute_sim_fingerprint(text),
    )


def hamming_distance(fp1: int, fp2: int) -> int:
    return bin((fp1 ^ fp2) & _FINGERPRINT_MASK).count("1")


def similarity(fp1: int, fp2: int) -> float:
    """1.0 for identical fingerprints, ~0.5 for unrelated text."""
    return 1.0 - hamming_distance(fp1, fp2) / FINGERPRINT_BITS


def fingerprint_to_hex(fp: int) -> str:
    return format(fp & _FINGERPRINT_MASK, "016x")


def fingerprint_from_hex(value: str) -> int:
    return int(value, 16) & _FINGERPRINT_MASK
