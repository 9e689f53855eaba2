"""Tests for the duplicate file analysis."""

import hashlib
from collections.abc import Iterator
from pathlib import Path

import pytest

from mirrorhash.database import DriveType, Folder, FolderDuplicationLevel
from mirrorhash.hashing import aggregate_hash
from mirrorhash.project import BackupProject, create_project
from mirrorhash.scanner import DuplicateFileAnalysis, FileScan, FolderScan


def _write(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


@pytest.fixture
def working(tmp_path: Path) -> Path:
    root = tmp_path / "working"
    _write(root / "F" / "unique.txt", b"only here")
    _write(root / "F" / "X" / "a.txt", b"A")
    _write(root / "F" / "X" / "b.txt", b"B")
    _write(root / "F" / "Y" / "copy-of-a.txt", b"A")
    _write(root / "F" / "Y" / "copy-of-b.txt", b"B")
    _write(root / "G" / "lonely.txt", b"nobody else")
    (root / "Empty").mkdir()
    (tmp_path / "mirror").mkdir()
    return root


@pytest.fixture
def project(tmp_path: Path, working: Path) -> Iterator[BackupProject]:
    with create_project(tmp_path / "project.db") as project:
        project.save_settings(str(working), str(tmp_path / "mirror"))
        project.create_scan()
        FolderScan(project).enumerate_folders()
        FileScan(project).enumerate_files()
        yield project


def _folder(project: BackupProject, path: Path) -> Folder:
    folder = project.folder_repository.find_by_path(str(path))
    assert folder is not None
    return folder


def _sha512(data: bytes) -> str:
    return hashlib.sha512(data).hexdigest()


class TestDuplicateFileAnalysis:
    def test_marks_duplicate_files_symmetrically(self, project: BackupProject):
        stats = DuplicateFileAnalysis(project).run()

        duplicates = {f.name for f in project.file_repository.list_duplicates()}
        assert duplicates == {"a.txt", "b.txt", "copy-of-a.txt", "copy-of-b.txt"}
        assert stats.duplicate_hashes == 2
        assert stats.duplicate_files == 4

    def test_identical_subfolders(self, project: BackupProject, working: Path):
        stats = DuplicateFileAnalysis(project).run()

        x = _folder(project, working / "F" / "X")
        y = _folder(project, working / "F" / "Y")
        f = _folder(project, working / "F")

        assert x.hash == y.hash
        assert x.duplication_level == FolderDuplicationLevel.HASH_IDENTICAL_TO_OTHER_FOLDER
        assert y.duplication_level == FolderDuplicationLevel.HASH_IDENTICAL_TO_OTHER_FOLDER
        assert f.duplication_level == FolderDuplicationLevel.CONTAINS_DUPLICATES
        assert stats.identical_folders == 2

    def test_folder_without_duplicates(self, project: BackupProject, working: Path):
        DuplicateFileAnalysis(project).run()

        g = _folder(project, working / "G")
        assert g.duplication_level == FolderDuplicationLevel.NONE
        assert g.hash == aggregate_hash([_sha512(b"nobody else")], [])

    def test_empty_folder_is_entirely_duplicate(self, project: BackupProject, working: Path):
        DuplicateFileAnalysis(project).run()

        empty = _folder(project, working / "Empty")
        assert empty.duplication_level == FolderDuplicationLevel.ENTIRE_CONTENT_ARE_DUPLICATES
        assert empty.hash is None

    def test_folder_hash_includes_subfolders(self, project: BackupProject, working: Path):
        DuplicateFileAnalysis(project).run()

        f = _folder(project, working / "F")
        x = _folder(project, working / "F" / "X")
        y = _folder(project, working / "F" / "Y")
        assert f.hash == aggregate_hash([_sha512(b"only here")], [x.hash, y.hash])

    def test_folder_sizes(self, project: BackupProject, working: Path):
        DuplicateFileAnalysis(project).run()

        assert _folder(project, working / "F" / "X").size == 2
        assert _folder(project, working / "F").size == len(b"only here") + 4
        assert _folder(project, working).size == len(b"only here") + 4 + len(b"nobody else")

    def test_deleted_files_do_not_count(self, project: BackupProject, working: Path):
        (working / "F" / "Y" / "copy-of-a.txt").unlink()
        FileScan(project).enumerate_files()

        DuplicateFileAnalysis(project).run()

        a = project.file_repository.find(_folder(project, working / "F" / "X"), "a.txt")
        assert a is not None
        assert not a.is_duplicate
        x = _folder(project, working / "F" / "X")
        assert x.duplication_level == FolderDuplicationLevel.CONTAINS_DUPLICATES

    def test_rerun_clears_previous_marks(self, project: BackupProject, working: Path):
        DuplicateFileAnalysis(project).run()
        (working / "F" / "Y" / "copy-of-a.txt").write_bytes(b"no longer A")
        (working / "F" / "Y" / "copy-of-b.txt").write_bytes(b"no longer B")
        FileScan(project).enumerate_files()

        stats = DuplicateFileAnalysis(project).run()

        assert stats.duplicate_files == 0
        assert project.file_repository.list_duplicates() == []
        x = _folder(project, working / "F" / "X")
        assert x.duplication_level == FolderDuplicationLevel.NONE

    def test_hash_is_independent_of_file_names(self, tmp_path: Path):
        working = tmp_path / "other"
        _write(working / "one" / "z.txt", b"1")
        _write(working / "one" / "a.txt", b"2")
        _write(working / "two" / "first.txt", b"2")
        _write(working / "two" / "second.txt", b"1")
        (tmp_path / "mirror").mkdir(exist_ok=True)

        with create_project(tmp_path / "other.db") as project:
            project.save_settings(str(working), str(tmp_path / "mirror"))
            project.create_scan()
            FolderScan(project).enumerate_folders()
            FileScan(project).enumerate_files()
            DuplicateFileAnalysis(project).run()

            one = _folder(project, working / "one")
            two = _folder(project, working / "two")

        assert one.hash == two.hash

    def test_marks_stage_finished(self, project: BackupProject):
        DuplicateFileAnalysis(project).run()

        scan = project.require_current_scan().scan
        assert scan.duplicate_analysis_finished
        assert scan.duplicate_analysis_finished_at >= scan.duplicate_analysis_started_at

    def test_mirror_folders_are_left_alone(self, project: BackupProject):
        mirror = project.folder_repository.save_full_path("/backup", DriveType.MIRROR)
        project.folder_repository.save_hash(mirror, "ab" * 64)
        project.db.conn.commit()

        DuplicateFileAnalysis(project).run()

        assert project.folder_repository.find_by_path("/backup", DriveType.MIRROR).hash == "ab" * 64
