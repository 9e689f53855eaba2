"""Folder classification rules shared by duplicate analysis and orphan scan."""

from collections.abc import Sequence

from mirrorhash.database import Folder, FolderDuplicationLevel
from mirrorhash.hashing import aggregate_hash


def classify_folder(
    file_is_duplicate: Sequence[bool], subfolders: Sequence[Folder]
) -> FolderDuplicationLevel:
    """Derive a folder's duplication level from its direct files and subfolders.

    A folder without files and subfolders is classified as entirely
    duplicate. Only subfolders that are themselves entirely duplicate keep
    their parent entirely duplicate; a hash identical subfolder does not.
    """
    has_duplicates = any(file_is_duplicate) or any(
        s.duplication_level > FolderDuplicationLevel.NONE for s in subfolders
    )
    all_are_duplicates = all(file_is_duplicate) and all(
        s.duplication_level == FolderDuplicationLevel.ENTIRE_CONTENT_ARE_DUPLICATES
        for s in subfolders
    )

    if all_are_duplicates:
        return FolderDuplicationLevel.ENTIRE_CONTENT_ARE_DUPLICATES
    if has_duplicates:
        return FolderDuplicationLevel.CONTAINS_DUPLICATES
    return FolderDuplicationLevel.NONE


def compute_folder_hash(file_hashes: Sequence[str], subfolders: Sequence[Folder]) -> str | None:
    """Aggregate hash of a folder, or None when there is nothing to hash."""
    subfolder_hashes = [s.hash for s in subfolders if s.hash]
    if not file_hashes and not subfolder_hashes:
        return None
    return aggregate_hash(file_hashes, subfolder_hashes)
