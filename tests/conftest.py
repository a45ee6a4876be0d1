"""Shared test fixtures — sample diffs, temp git repos."""

from __future__ import annotations

import logging
import subprocess
import textwrap
from pathlib import Path

import pytest


def git(repo: Path, *args: str) -> str:
    """Run git in *repo* for test setup; fails the test on error."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout


@pytest.fixture(autouse=True)
def _reset_qraftbox_logger():
    """Undo setup_logging so caplog sees records in later tests."""
    yield
    root = logging.getLogger("qraftbox")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True


@pytest.fixture
def sample_diff_modified() -> str:
    """One modified file, one chunk."""
    return (
        "diff --git a/x.txt b/x.txt\n"
        "--- a/x.txt\n"
        "+++ b/x.txt\n"
        "@@ -1,2 +1,3 @@\n"
        " foo\n"
        "-bar\n"
        "+baz\n"
        "+qux\n"
    )


@pytest.fixture
def sample_diff_binary() -> str:
    """A diff with a binary file."""
    return textwrap.dedent("""\
        diff --git a/img.png b/img.png
        index 1234567..89abcde 100644
        Binary files a/img.png and b/img.png differ
    """)


@pytest.fixture
def sample_diff_new_file() -> str:
    return textwrap.dedent("""\
        diff --git a/hello.py b/hello.py
        new file mode 100644
        index 0000000..e69de29
        --- /dev/null
        +++ b/hello.py
        @@ -0,0 +1,3 @@
        +def greet(name):
        +    return f"Hello, {name}!"
        +
    """)


@pytest.fixture
def sample_diff_deleted_file() -> str:
    return textwrap.dedent("""\
        diff --git a/gone.txt b/gone.txt
        deleted file mode 100644
        index abc1234..0000000
        --- a/gone.txt
        +++ /dev/null
        @@ -1,2 +0,0 @@
        -first
        -second
    """)


@pytest.fixture
def sample_diff_rename() -> str:
    """A pure rename, no content change."""
    return textwrap.dedent("""\
        diff --git a/old_name.py b/new_name.py
        similarity index 100%
        rename from old_name.py
        rename to new_name.py
    """)


@pytest.fixture
def sample_diff_rename_with_changes() -> str:
    return textwrap.dedent("""\
        diff --git a/lib/old.py b/lib/new.py
        similarity index 91%
        rename from lib/old.py
        rename to lib/new.py
        index abc1234..def5678 100644
        --- a/lib/old.py
        +++ b/lib/new.py
        @@ -1,3 +1,3 @@
         import os
        -VALUE = 1
        +VALUE = 2
         print(VALUE)
    """)


@pytest.fixture
def sample_diff_copy() -> str:
    return textwrap.dedent("""\
        diff --git a/a.cfg b/b.cfg
        similarity index 100%
        copy from a.cfg
        copy to b.cfg
    """)


@pytest.fixture
def sample_diff_mode_only() -> str:
    """A diff with only file mode change."""
    return textwrap.dedent("""\
        diff --git a/script.sh b/script.sh
        old mode 100644
        new mode 100755
    """)


@pytest.fixture
def sample_diff_no_newline() -> str:
    """A diff with 'No newline at end of file' markers on both sides."""
    return textwrap.dedent("""\
        diff --git a/data.txt b/data.txt
        index 1111111..2222222 100644
        --- a/data.txt
        +++ b/data.txt
        @@ -1 +1 @@
        -old last line
        \\ No newline at end of file
        +new last line
        \\ No newline at end of file
    """)


@pytest.fixture
def sample_diff_multi() -> str:
    """Two files; the first has two chunks."""
    return textwrap.dedent("""\
        diff --git a/src/app.py b/src/app.py
        index 1111111..2222222 100644
        --- a/src/app.py
        +++ b/src/app.py
        @@ -1,3 +1,4 @@
         import sys
        +import os

         def main():
        @@ -10,4 +11,3 @@ def main():
             a = 1
        -    b = 2
             return a

        diff --git a/README.md b/README.md
        index 3333333..4444444 100644
        --- a/README.md
        +++ b/README.md
        @@ -1 +1,2 @@
         # Title
        +More text.
    """)


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository with one commit on ``main``."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "test@test.com")
    git(repo, "config", "user.name", "Test")
    git(repo, "config", "commit.gpgsign", "false")
    (repo / "README.md").write_text("# Test\n")
    (repo / "src").mkdir()
    (repo / "src" / "app.py").write_text("print('hello')\nx = 1\n")
    git(repo, "add", ".")
    git(repo, "commit", "-q", "-m", "init")
    git(repo, "branch", "-M", "main")
    return repo


@pytest.fixture
def empty_git_repo(tmp_path: Path) -> Path:
    """A freshly initialised repository with no commits."""
    repo = tmp_path / "empty"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.email", "test@test.com")
    git(repo, "config", "user.name", "Test")
    return repo
