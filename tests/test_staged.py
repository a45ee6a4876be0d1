"""Tests for staged change listing."""

from pathlib import Path

from qraftbox.git.models import FileChangeStatus, StagedFile
from qraftbox.git.staged import _parse_numstat, get_staged_diff, get_staged_files, has_staged_changes

from conftest import git


class TestNumstat:
    def test_plain_and_binary(self):
        out = "3\t1\tsrc/a.py\0-\t-\timg.png\0"
        assert _parse_numstat(out) == {"src/a.py": (3, 1), "img.png": (0, 0)}

    def test_rename_uses_new_path(self):
        out = "0\t0\t\0old.txt\0new.txt\0"
        assert _parse_numstat(out) == {"new.txt": (0, 0)}


class TestStagedFiles:
    def test_nothing_staged(self, tmp_git_repo: Path):
        (tmp_git_repo / "README.md").write_text("unstaged edit\n")
        assert get_staged_files(tmp_git_repo) == []
        assert has_staged_changes(tmp_git_repo) is False

    def test_added_and_modified(self, tmp_git_repo: Path):
        (tmp_git_repo / "new.txt").write_text("a\nb\n")
        (tmp_git_repo / "README.md").write_text("# Test\nline\n")
        git(tmp_git_repo, "add", "new.txt", "README.md")
        files = {f.path: f for f in get_staged_files(tmp_git_repo)}
        assert files["new.txt"] == StagedFile("new.txt", FileChangeStatus.ADDED, 2, 0)
        assert files["README.md"].status == FileChangeStatus.MODIFIED
        assert files["README.md"].additions == 1
        assert has_staged_changes(tmp_git_repo) is True

    def test_rename(self, tmp_git_repo: Path):
        git(tmp_git_repo, "mv", "src/app.py", "src/main.py")
        files = get_staged_files(tmp_git_repo)
        assert files == [
            StagedFile(
                path="src/main.py",
                status=FileChangeStatus.RENAMED,
                old_path="src/app.py",
            )
        ]

    def test_deleted(self, tmp_git_repo: Path):
        git(tmp_git_repo, "rm", "-q", "README.md")
        files = get_staged_files(tmp_git_repo)
        assert files[0].status == FileChangeStatus.DELETED
        assert files[0].deletions == 1


class TestStagedDiff:
    def test_parsed(self, tmp_git_repo: Path):
        (tmp_git_repo / "README.md").write_text("# Test\nline\n")
        (tmp_git_repo / "unstaged.txt").write_text("not staged\n")
        git(tmp_git_repo, "add", "README.md")
        files = get_staged_diff(tmp_git_repo)
        assert [f.path for f in files] == ["README.md"]
        assert files[0].additions == 1
