"""Content hashing for files and folders.

All digests are SHA-512, hex encoded in lowercase.
"""

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

INTRO_SIZE = 100 * 1024
READ_BUFFER_SIZE = 1_200_000

EMPTY_FILE_HASH = hashlib.sha512(b"").hexdigest()


@dataclass(frozen=True)
class Checksums:
    intro_hash: str
    full_hash: str


def compute_checksums(
    path: Path | str,
    intro_size: int = INTRO_SIZE,
    buffer_size: int = READ_BUFFER_SIZE,
) -> Checksums:
    """Hash the first ``intro_size`` bytes and the whole content in one read pass.

    The intro hash of an empty file is the empty string.
    """
    intro = hashlib.sha512()
    full = hashlib.sha512()
    intro_remaining = intro_size
    intro_seen = False

    with open(path, "rb", buffering=buffer_size) as stream:
        while chunk := stream.read(buffer_size):
            if intro_remaining > 0:
                intro.update(chunk[:intro_remaining])
                intro_remaining -= len(chunk[:intro_remaining])
                intro_seen = True
            full.update(chunk)

    return Checksums(
        intro_hash=intro.hexdigest() if intro_seen else "",
        full_hash=full.hexdigest(),
    )


def compute_full_hash(path: Path | str, buffer_size: int = READ_BUFFER_SIZE) -> str:
    digest = hashlib.sha512()
    with open(path, "rb", buffering=buffer_size) as stream:
        while chunk := stream.read(buffer_size):
            digest.update(chunk)
    return digest.hexdigest()


def aggregate_hash(file_hashes: Iterable[str], subfolder_hashes: Iterable[str | None]) -> str:
    """Digest of a folder's recursive content.

    File hashes are sorted so that enumeration order does not matter; subfolder
    hashes keep the order given and empty ones are left out.
    """
    content = bytearray()
    for file_hash in sorted(file_hashes):
        content += bytes.fromhex(file_hash)
    for subfolder_hash in subfolder_hashes:
        if subfolder_hash:
            content += bytes.fromhex(subfolder_hash)
    return hashlib.sha512(content).hexdigest()
