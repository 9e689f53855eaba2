"""Tests for hashing module."""

import hashlib
from pathlib import Path

from mirrorhash.config import ScannerConfig
from mirrorhash.hashing import (
    EMPTY_FILE_HASH,
    INTRO_SIZE,
    READ_BUFFER_SIZE,
    aggregate_hash,
    compute_checksums,
    compute_full_hash,
)


def _sha512(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()


class TestComputeChecksums:
    def test_small_file(self, tmp_path: Path):
        path = tmp_path / "small.txt"
        path.write_bytes(b"hello")

        checksums = compute_checksums(path)

        assert checksums.full_hash == _sha512(b"hello")
        assert checksums.intro_hash == _sha512(b"hello")

    def test_intro_hash_covers_first_100_kib(self, tmp_path: Path):
        data = bytes(range(256)) * 1000
        path = tmp_path / "large.bin"
        path.write_bytes(data)

        checksums = compute_checksums(path)

        assert INTRO_SIZE == 100 * 1024
        assert checksums.intro_hash == _sha512(data[:INTRO_SIZE])
        assert checksums.full_hash == _sha512(data)

    def test_small_buffer_gives_same_result(self, tmp_path: Path):
        data = b"0123456789" * 50
        path = tmp_path / "data.bin"
        path.write_bytes(data)

        checksums = compute_checksums(path, intro_size=64, buffer_size=7)

        assert checksums.intro_hash == _sha512(data[:64])
        assert checksums.full_hash == _sha512(data)

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty"
        path.write_bytes(b"")

        checksums = compute_checksums(path)

        assert checksums.intro_hash == ""
        assert checksums.full_hash == EMPTY_FILE_HASH

    def test_lowercase_hex(self, tmp_path: Path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"X")

        full_hash = compute_checksums(path).full_hash

        assert len(full_hash) == 128
        assert full_hash == full_hash.lower()


class TestComputeFullHash:
    def test_matches_checksums(self, tmp_path: Path):
        path = tmp_path / "a.txt"
        path.write_bytes(b"content")

        assert compute_full_hash(path) == compute_checksums(path).full_hash


class TestAggregateHash:
    def test_file_order_does_not_matter(self):
        a, b = _sha512(b"a"), _sha512(b"b")
        assert aggregate_hash([a, b], []) == aggregate_hash([b, a], [])

    def test_concatenates_sorted_files_then_subfolders(self):
        a, b, sub = _sha512(b"a"), _sha512(b"b"), _sha512(b"sub")
        expected = _sha512(
            b"".join(bytes.fromhex(h) for h in sorted([b, a])) + bytes.fromhex(sub)
        )

        assert aggregate_hash([b, a], [sub]) == expected

    def test_empty_subfolder_hashes_are_skipped(self):
        a, sub = _sha512(b"a"), _sha512(b"sub")
        assert aggregate_hash([a], [None, sub, ""]) == aggregate_hash([a], [sub])

    def test_subfolder_order_matters(self):
        first, second = _sha512(b"1"), _sha512(b"2")
        assert aggregate_hash([], [first, second]) != aggregate_hash([], [second, first])


class TestScannerConfigDefaults:
    def test_defaults_follow_hashing_constants(self):
        config = ScannerConfig()

        assert config.intro_size == INTRO_SIZE
        assert config.read_buffer_size == READ_BUFFER_SIZE == 1_200_000
