"""Tests for the unified diff parser."""

import pytest

from qraftbox.git.diff_parser import DiffParser, parse_chunk_header, parse_diff, parse_file_diff
from qraftbox.git.models import ChangeType, FileChangeStatus


def _assert_counts_consistent(files):
    for f in files:
        changes = [c for chunk in f.chunks for c in chunk.changes]
        assert f.additions == sum(1 for c in changes if c.type == ChangeType.ADD)
        assert f.deletions == sum(1 for c in changes if c.type == ChangeType.DELETE)
        for chunk in f.chunks:
            old = sum(1 for c in chunk.changes if c.type != ChangeType.ADD)
            new = sum(1 for c in chunk.changes if c.type != ChangeType.DELETE)
            assert old == chunk.old_lines
            assert new == chunk.new_lines


class TestChunkHeader:
    def test_full_form(self):
        rng = parse_chunk_header("@@ -10,4 +11,3 @@ def main():")
        assert (rng.old_start, rng.old_lines, rng.new_start, rng.new_lines) == (10, 4, 11, 3)

    def test_single_number_means_one_line(self):
        rng = parse_chunk_header("@@ -1 +1 @@")
        assert rng.old_lines == 1
        assert rng.new_lines == 1

    def test_zero_counts(self):
        rng = parse_chunk_header("@@ -0,0 +1,3 @@")
        assert rng.old_start == 0
        assert rng.old_lines == 0
        assert rng.new_lines == 3

    def test_not_a_header(self):
        with pytest.raises(ValueError):
            parse_chunk_header("@@ nonsense @@")


class TestModified:
    def test_modified_file(self, sample_diff_modified):
        files = parse_diff(sample_diff_modified)
        assert len(files) == 1
        f = files[0]
        assert f.path == "x.txt"
        assert f.status == FileChangeStatus.MODIFIED
        assert f.old_path is None
        assert f.additions == 2
        assert f.deletions == 1
        assert len(f.chunks) == 1
        assert f.chunks[0].old_lines == 2
        assert f.chunks[0].new_lines == 3

    def test_line_numbers_advance(self, sample_diff_modified):
        changes = parse_diff(sample_diff_modified)[0].chunks[0].changes
        normal, deleted, added1, added2 = changes
        assert normal.type == ChangeType.NORMAL
        assert (normal.old_line, normal.new_line) == (1, 1)
        assert deleted.type == ChangeType.DELETE
        assert (deleted.old_line, deleted.new_line) == (2, None)
        assert (added1.old_line, added1.new_line) == (None, 2)
        assert added2.new_line == 3
        assert added2.content == "qux"

    def test_header_kept(self, sample_diff_modified):
        assert parse_diff(sample_diff_modified)[0].chunks[0].header == "@@ -1,2 +1,3 @@"


class TestStatus:
    def test_new_file(self, sample_diff_new_file):
        f = parse_diff(sample_diff_new_file)[0]
        assert f.status == FileChangeStatus.ADDED
        assert f.path == "hello.py"
        assert f.additions == 3
        assert f.deletions == 0

    def test_deleted_file(self, sample_diff_deleted_file):
        f = parse_diff(sample_diff_deleted_file)[0]
        assert f.status == FileChangeStatus.DELETED
        assert f.path == "gone.txt"
        assert f.deletions == 2

    def test_pure_rename(self, sample_diff_rename):
        f = parse_diff(sample_diff_rename)[0]
        assert f.status == FileChangeStatus.RENAMED
        assert f.path == "new_name.py"
        assert f.old_path == "old_name.py"
        assert f.chunks == ()

    def test_rename_with_changes_is_one_record(self, sample_diff_rename_with_changes):
        files = parse_diff(sample_diff_rename_with_changes)
        assert len(files) == 1
        f = files[0]
        assert f.status == FileChangeStatus.RENAMED
        assert f.old_path == "lib/old.py"
        assert f.path == "lib/new.py"
        assert len(f.chunks) == 1
        assert (f.additions, f.deletions) == (1, 1)

    def test_copy(self, sample_diff_copy):
        f = parse_diff(sample_diff_copy)[0]
        assert f.status == FileChangeStatus.COPIED
        assert f.old_path == "a.cfg"
        assert f.path == "b.cfg"

    def test_mode_only(self, sample_diff_mode_only):
        f = parse_diff(sample_diff_mode_only)[0]
        assert f.status == FileChangeStatus.MODIFIED
        assert f.path == "script.sh"
        assert f.chunks == ()


class TestBinary:
    def test_binary_marker(self, sample_diff_binary):
        f = parse_diff(sample_diff_binary)[0]
        assert f.is_binary is True
        assert f.chunks == ()
        assert (f.additions, f.deletions) == (0, 0)

    def test_binary_marker_without_known_extension(self):
        raw = (
            "diff --git a/blob.dat b/blob.dat\n"
            "index 1234567..89abcde 100644\n"
            "Binary files a/blob.dat and b/blob.dat differ\n"
        )
        assert parse_diff(raw)[0].is_binary is True

    def test_binary_extension_skips_text_hunks(self):
        raw = (
            "diff --git a/logo.svg b/logo.svg\n"
            "--- a/logo.svg\n"
            "+++ b/logo.svg\n"
            "@@ -1 +1 @@\n"
            "-<svg/>\n"
            "+<svg></svg>\n"
        )
        f = parse_diff(raw)[0]
        assert f.is_binary is True
        assert f.chunks == ()
        assert f.additions == 0


class TestEdgeCases:
    def test_empty_input(self):
        assert parse_diff("") == []
        assert parse_diff("\n  \n") == []

    def test_no_newline_marker_is_not_a_change(self, sample_diff_no_newline):
        f = parse_diff(sample_diff_no_newline)[0]
        contents = [c.content for c in f.chunks[0].changes]
        assert contents == ["old last line", "new last line"]
        assert (f.additions, f.deletions) == (1, 1)

    def test_multi_file_multi_chunk(self, sample_diff_multi):
        files = parse_diff(sample_diff_multi)
        assert [f.path for f in files] == ["src/app.py", "README.md"]
        app = files[0]
        assert len(app.chunks) == 2
        assert (app.additions, app.deletions) == (1, 1)
        second = app.chunks[1]
        assert second.header == "@@ -10,4 +11,3 @@ def main():"
        assert second.changes[0].old_line == 10
        assert second.changes[0].new_line == 11
        _assert_counts_consistent(files)

    def test_malformed_header_does_not_block_other_files(self, caplog):
        raw = (
            "diff --git a/bad.txt b/bad.txt\n"
            "--- a/bad.txt\n"
            "+++ b/bad.txt\n"
            "@@ broken @@\n"
            "+ignored\n"
            "diff --git a/good.txt b/good.txt\n"
            "--- a/good.txt\n"
            "+++ b/good.txt\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )
        with caplog.at_level("WARNING", logger="qraftbox"):
            files = parse_diff(raw)
        assert [f.path for f in files] == ["bad.txt", "good.txt"]
        assert files[0].chunks == ()
        assert files[1].additions == 1
        assert "malformed chunk header" in caplog.text

    def test_truncated_chunk_keeps_only_real_lines(self):
        raw = (
            "diff --git a/t.txt b/t.txt\n"
            "--- a/t.txt\n"
            "+++ b/t.txt\n"
            "@@ -1,3 +1,3 @@\n"
            " a\n"
        )
        changes = parse_diff(raw)[0].chunks[0].changes
        assert len(changes) == 1
        assert changes[0].content == "a"

    def test_blank_context_without_space(self):
        raw = (
            "diff --git a/t.txt b/t.txt\n"
            "--- a/t.txt\n"
            "+++ b/t.txt\n"
            "@@ -1,2 +1,2 @@\n"
            "\n"
            "-x\n"
            "+y\n"
        )
        changes = parse_diff(raw)[0].chunks[0].changes
        assert [c.type for c in changes] == [ChangeType.NORMAL, ChangeType.DELETE, ChangeType.ADD]
        assert changes[0].content == ""

    def test_old_header_strips_only_a_prefix(self):
        section = (
            "--- a/b/x.txt\n"
            "+++ /dev/null\n"
            "@@ -1 +0,0 @@\n"
            "-gone\n"
        )
        f = parse_file_diff(section)
        assert f.status == FileChangeStatus.DELETED
        assert f.path == "b/x.txt"

    def test_new_header_strips_only_b_prefix(self):
        section = (
            "--- /dev/null\n"
            "+++ b/a/y.txt\n"
            "@@ -0,0 +1 @@\n"
            "+new\n"
        )
        f = parse_file_diff(section)
        assert f.status == FileChangeStatus.ADDED
        assert f.path == "a/y.txt"

    def test_identical_content_has_no_chunks(self):
        raw = "diff --git a/same.txt b/same.txt\nindex 1111111..1111111 100644\n"
        f = parse_diff(raw)[0]
        assert f.chunks == ()
        assert (f.additions, f.deletions) == (0, 0)

    def test_quoted_paths(self):
        raw = (
            'diff --git "a/dir/h\\303\\251llo world.txt" "b/dir/h\\303\\251llo world.txt"\n'
            "--- \"a/dir/h\\303\\251llo world.txt\"\n"
            "+++ \"b/dir/h\\303\\251llo world.txt\"\n"
            "@@ -1 +1 @@\n"
            "-x\n"
            "+y\n"
        )
        f = parse_diff(raw)[0]
        assert f.path == "dir/héllo world.txt"

    def test_path_containing_b_slash(self):
        raw = "diff --git a/a b/c.txt b/a b/c.txt\nold mode 100644\nnew mode 100755\n"
        assert parse_diff(raw)[0].path == "a b/c.txt"

    def test_leading_noise_is_ignored(self, sample_diff_modified):
        files = parse_diff("warning: something\n" + sample_diff_modified)
        assert len(files) == 1

    def test_crlf_content_is_preserved(self):
        raw = (
            "diff --git a/w.txt b/w.txt\n"
            "--- a/w.txt\n"
            "+++ b/w.txt\n"
            "@@ -1 +1 @@\n"
            "-a\r\n"
            "+b\r\n"
        )
        f = parse_diff(raw)[0]
        assert f.chunks[0].changes[1].content == "b\r"


class TestDiffParserClass:
    def test_parse(self, sample_diff_multi):
        files = DiffParser(sample_diff_multi).parse()
        assert len(files) == 2

    def test_parse_file_diff_directly(self, sample_diff_modified):
        f = parse_file_diff(sample_diff_modified)
        assert f.path == "x.txt"
        assert f.additions == 2
