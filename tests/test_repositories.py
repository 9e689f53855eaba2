"""Tests for folder, file and orphaned file repositories."""

from collections.abc import Iterator
from pathlib import Path

import pytest

from mirrorhash.database import (
    Database,
    DriveType,
    File,
    FileRepository,
    Folder,
    FolderDuplicationLevel,
    FolderRepository,
    OrphanedFile,
    OrphanedFileRepository,
    split_path,
)
from mirrorhash.hashing import EMPTY_FILE_HASH

HASH_A = "aa" * 64
HASH_B = "bb" * 64


@pytest.fixture
def db(tmp_path: Path) -> Iterator[Database]:
    with Database(tmp_path / "test.db") as database:
        yield database


@pytest.fixture
def folders(db: Database) -> FolderRepository:
    return FolderRepository(db)


@pytest.fixture
def files(db: Database) -> FileRepository:
    return FileRepository(db)


def _file(folder: Folder, name: str, file_hash: str, touched: bool = True, size: int = 1) -> File:
    assert folder.id is not None
    return File(parent_id=folder.id, name=name, hash=file_hash, size=size, touched=touched)


class TestSplitPath:
    def test_posix_path(self):
        assert split_path("/data/photos/2024") == ["/", "data", "photos", "2024"]

    def test_trailing_separator_is_ignored(self):
        assert split_path("/data/photos/") == ["/", "data", "photos"]

    def test_posix_root(self):
        assert split_path("/") == ["/"]

    def test_relative_path_raises(self):
        with pytest.raises(ValueError):
            split_path("data/photos")


class TestFolderRepository:
    def test_save_full_path_creates_ancestors(self, folders: FolderRepository):
        leaf = folders.save_full_path("/data/photos/2024", DriveType.WORKING)

        chain = folders.get_full_path(leaf)

        assert [f.name for f in chain] == ["/", "data", "photos", "2024"]
        assert chain[0].parent_id is None
        assert all(child.parent_id == parent.id for parent, child in zip(chain, chain[1:]))

    def test_save_full_path_reuses_existing_folders(self, folders: FolderRepository):
        first = folders.save_full_path("/data/photos", DriveType.WORKING)
        second = folders.save_full_path("/data/photos", DriveType.WORKING)

        assert first.id == second.id
        assert folders.count(DriveType.WORKING) == 3

    def test_drive_types_have_separate_trees(self, folders: FolderRepository):
        working = folders.save_full_path("/data", DriveType.WORKING)
        mirror = folders.save_full_path("/data", DriveType.MIRROR)

        assert working.id != mirror.id
        assert folders.find_by_path("/data", DriveType.MIRROR) == mirror

    def test_find_by_path(self, folders: FolderRepository):
        leaf = folders.save_full_path("/data/photos", DriveType.WORKING)

        assert folders.find_by_path("/data/photos") == leaf
        assert folders.find_by_path("/data/videos") is None
        assert folders.find_by_path("/other/photos") is None

    def test_get_subfolders_returns_touched_in_insertion_order(self, folders: FolderRepository):
        parent = folders.save_full_path("/data", DriveType.WORKING)
        zebra = folders.save_full_path("/data/zebra", DriveType.WORKING)
        apple = folders.save_full_path("/data/apple", DriveType.WORKING)
        folders.save_full_path("/data/untouched", DriveType.WORKING)
        folders.touch(zebra)
        folders.touch(apple)

        assert [f.name for f in folders.get_subfolders(parent)] == ["zebra", "apple"]

    def test_mark_all_untouched(self, folders: FolderRepository):
        working = folders.save_full_path("/data", DriveType.WORKING)
        mirror = folders.save_full_path("/data", DriveType.MIRROR)
        folders.touch(working)
        folders.touch(mirror)

        folders.mark_all_untouched(DriveType.MIRROR)
        assert folders.count_touched(DriveType.WORKING) == 1
        assert folders.count_touched(DriveType.MIRROR) == 0

        folders.mark_all_untouched()
        assert folders.count_touched(DriveType.WORKING) == 0

    def test_save_hash_level_and_size(self, folders: FolderRepository):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        folders.save_hash(folder, HASH_A)
        folders.save_duplication_level(folder, FolderDuplicationLevel.CONTAINS_DUPLICATES)
        folders.save_size(folder, 1234)

        assert folder.id is not None
        loaded = folders.get(folder.id)

        assert loaded is not None
        assert loaded.hash == HASH_A
        assert loaded.duplication_level == FolderDuplicationLevel.CONTAINS_DUPLICATES
        assert loaded.size == 1234

    def test_remove_duplicate_marks_only_affects_drive(self, folders: FolderRepository):
        working = folders.save_full_path("/data", DriveType.WORKING)
        mirror = folders.save_full_path("/data", DriveType.MIRROR)
        for folder in (working, mirror):
            folders.save_hash(folder, HASH_A)
            folders.save_duplication_level(folder, FolderDuplicationLevel.CONTAINS_DUPLICATES)

        folders.remove_duplicate_marks(DriveType.WORKING)

        assert folders.find_by_path("/data", DriveType.WORKING).hash is None
        assert folders.find_by_path("/data", DriveType.MIRROR).hash == HASH_A

    def test_find_duplicate_folders(self, folders: FolderRepository):
        a = folders.save_full_path("/data/a", DriveType.WORKING)
        b = folders.save_full_path("/data/b", DriveType.WORKING)
        c = folders.save_full_path("/data/c", DriveType.WORKING)
        mirror = folders.save_full_path("/data/c", DriveType.MIRROR)
        folders.save_hash(a, HASH_A)
        folders.save_hash(b, HASH_A)
        folders.save_hash(c, HASH_B)
        folders.save_hash(mirror, HASH_B)

        duplicates = folders.find_duplicate_folders(DriveType.WORKING)

        assert {f.name for f in duplicates} == {"a", "b"}

    def test_find_duplicates_of_folder_uses_requested_drive(self, folders: FolderRepository):
        working = folders.save_full_path("/data/a", DriveType.WORKING)
        mirror = folders.save_full_path("/backup/a", DriveType.MIRROR)
        folders.save_hash(working, HASH_A)
        folders.save_hash(mirror, HASH_A)

        assert folders.find_duplicates_of_folder(mirror, DriveType.WORKING) == [working]
        assert folders.find_duplicates_of_folder(mirror, DriveType.MIRROR) == []

    def test_find_duplicates_of_folder_without_hash(self, folders: FolderRepository):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        assert folders.find_duplicates_of_folder(folder, DriveType.WORKING) == []

    def test_delete_untouched(self, folders: FolderRepository):
        kept = folders.save_full_path("/data", DriveType.WORKING)
        for folder in folders.get_full_path(kept):
            folders.touch(folder)
        folders.save_full_path("/data/gone", DriveType.WORKING)

        assert folders.delete_untouched() == 1
        assert folders.find_by_path("/data/gone") is None
        assert folders.find_by_path("/data") is not None


class TestFileRepository:
    def test_save_inserts_and_updates(self, folders: FolderRepository, files: FileRepository):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        file = _file(folder, "a.txt", HASH_A)
        files.save(file)

        file.hash = HASH_B
        file.last_write_time = 42
        files.save(file)

        loaded = files.find(folder, "a.txt")
        assert loaded == file
        assert files.count() == 1

    def test_mark_all_untouched_and_touch(self, folders: FolderRepository, files: FileRepository):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        file = _file(folder, "a.txt", HASH_A)
        files.save(file)

        files.mark_all_untouched()
        assert files.find(folder, "a.txt").touched is False
        assert files.list_by_folder(folder) == []

        files.touch(file)
        assert files.find(folder, "a.txt").touched is True

    def test_duplicate_hashes_ignore_untouched_files(
        self, folders: FolderRepository, files: FileRepository
    ):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        files.save(_file(folder, "a.txt", HASH_A))
        files.save(_file(folder, "b.txt", HASH_A))
        files.save(_file(folder, "c.txt", HASH_B))
        files.save(_file(folder, "deleted.txt", HASH_B, touched=False))

        assert files.find_hashes_of_duplicate_files() == {HASH_A}

    def test_find_duplicates_of_file_excludes_itself(
        self, folders: FolderRepository, files: FileRepository
    ):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        a = _file(folder, "a.txt", HASH_A)
        b = _file(folder, "b.txt", HASH_A)
        files.save(a)
        files.save(b)

        assert files.find_duplicates_of_file(a) == [b]

    def test_empty_files_are_never_duplicates_of_each_other(
        self, folders: FolderRepository, files: FileRepository
    ):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        empty = _file(folder, "a.txt", EMPTY_FILE_HASH, size=0)
        files.save(empty)
        files.save(_file(folder, "b.txt", EMPTY_FILE_HASH, size=0))

        assert files.find_duplicates_of_file(empty) == []

    def test_duplicate_marks(self, folders: FolderRepository, files: FileRepository):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        file = _file(folder, "a.txt", HASH_A)
        files.save(file)

        files.mark_duplicate(file)
        assert [f.name for f in files.list_duplicates()] == ["a.txt"]

        files.remove_duplicate_marks()
        assert files.list_duplicates() == []

    def test_find_duplicate_groups(self, folders: FolderRepository, files: FileRepository):
        first = folders.save_full_path("/data/first", DriveType.WORKING)
        second = folders.save_full_path("/data/second", DriveType.WORKING)
        files.save(_file(first, "a.txt", HASH_A))
        files.save(_file(second, "a-copy.txt", HASH_A))
        files.save(_file(first, "unique.txt", HASH_B))

        groups = files.find_duplicate_groups()

        assert len(groups) == 1
        assert groups[0].hash == HASH_A
        assert {f.name for f in groups[0].files} == {"a.txt", "a-copy.txt"}

    def test_delete_untouched(self, folders: FolderRepository, files: FileRepository):
        folder = folders.save_full_path("/data", DriveType.WORKING)
        files.save(_file(folder, "kept.txt", HASH_A))
        files.save(_file(folder, "gone.txt", HASH_B, touched=False))

        assert files.delete_untouched() == 1
        assert files.find(folder, "gone.txt") is None


class TestOrphanedFileRepository:
    def test_counts_live_copies(self, db: Database, folders: FolderRepository, files: FileRepository):
        working = folders.save_full_path("/data", DriveType.WORKING)
        mirror = folders.save_full_path("/backup/data", DriveType.MIRROR)
        files.save(_file(working, "a.txt", HASH_A))
        files.save(_file(working, "a-copy.txt", HASH_A))
        files.save(_file(working, "deleted.txt", HASH_A, touched=False))

        orphaned = OrphanedFileRepository(db, files)
        assert mirror.id is not None
        orphaned.save(OrphanedFile(parent_id=mirror.id, name="old.txt", hash=HASH_A, size=5))
        orphaned.save(OrphanedFile(parent_id=mirror.id, name="lost.txt", hash=HASH_B, size=7))

        by_name = {f.name: f for f in orphaned.list_all()}

        assert by_name["old.txt"].num_copies_on_live_drive == 2
        assert by_name["lost.txt"].num_copies_on_live_drive == 0
        assert orphaned.count() == 2

    def test_list_by_folder_loads_working_copies(
        self, db: Database, folders: FolderRepository, files: FileRepository
    ):
        working = folders.save_full_path("/data", DriveType.WORKING)
        mirror = folders.save_full_path("/backup/data", DriveType.MIRROR)
        files.save(_file(working, "a.txt", HASH_A))
        orphaned = OrphanedFileRepository(db, files)
        assert mirror.id is not None
        orphaned.save(OrphanedFile(parent_id=mirror.id, name="old.txt", hash=HASH_A))

        lazy = orphaned.list_by_folder(mirror)
        eager = orphaned.list_by_folder(mirror, load_working_copies=True)

        assert lazy[0].duplicates_on_live_drive == []
        assert [f.name for f in eager[0].duplicates_on_live_drive] == ["a.txt"]
        assert eager[0].num_copies_on_live_drive == 1

    def test_delete_all(self, db: Database, folders: FolderRepository, files: FileRepository):
        mirror = folders.save_full_path("/backup", DriveType.MIRROR)
        orphaned = OrphanedFileRepository(db, files)
        assert mirror.id is not None
        orphaned.save(OrphanedFile(parent_id=mirror.id, name="old.txt", hash=HASH_A))

        orphaned.delete_all()

        assert orphaned.list_all() == []
