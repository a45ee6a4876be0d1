"""Git subprocess wrapper — buffered and streaming execution, repo checks."""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterable, Iterator, Optional, Sequence, Union

from qraftbox.logging_config import log_timing

logger = logging.getLogger(__name__)

GIT_BINARY = "git"
DEFAULT_TIMEOUT_MS = 30_000
STREAM_CHUNK_SIZE = 64 * 1024

PathLike = Union[str, Path]


class GitExecError(Exception):
    """Raised when a git invocation cannot complete successfully."""

    def __init__(self, message: str, command: str, stderr: str = "", exit_code: int = -1) -> None:
        super().__init__(message)
        self.command = command
        self.stderr = stderr
        self.exit_code = exit_code


class GitSpawnError(GitExecError):
    """git could not be started (not installed, bad cwd, ...)."""


class GitTimeoutError(GitExecError):
    """git did not finish before the timeout and was killed."""


class GitCommandFailed(GitExecError):
    """git exited with a code the caller did not expect."""


@dataclass(frozen=True)
class GitResult:
    raw_stdout: bytes
    stderr: str
    exit_code: int

    @property
    def stdout(self) -> str:
        return self.raw_stdout.decode("utf-8", errors="replace")


def _command_str(args: Sequence[str]) -> str:
    return " ".join([GIT_BINARY, *args])


def _git_env() -> dict[str, str]:
    # Stable English messages so stderr can be classified.
    env = dict(os.environ)
    env["LC_ALL"] = "C"
    env["LANGUAGE"] = ""
    env["GIT_TERMINAL_PROMPT"] = "0"
    return env


def execute(
    args: Sequence[str],
    cwd: PathLike,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    *,
    ok_codes: Iterable[int] = (0,),
) -> GitResult:
    """Run ``git *args`` in *cwd* and return its captured output.

    Raises GitSpawnError if git cannot start, GitTimeoutError if it runs past
    *timeout_ms*, and GitCommandFailed if the exit code is not in *ok_codes*.
    """
    command = _command_str(args)
    try:
        with log_timing(logger, command):
            proc = subprocess.run(
                [GIT_BINARY, *args],
                cwd=cwd,
                capture_output=True,
                stdin=subprocess.DEVNULL,
                timeout=timeout_ms / 1000,
                env=_git_env(),
            )
    except OSError as exc:
        raise GitSpawnError(
            f"Failed to spawn git process: {exc}", command, str(exc)
        ) from exc
    except subprocess.TimeoutExpired as exc:
        # subprocess.run has already killed and reaped the child here.
        raise GitTimeoutError(
            f"git command timed out after {timeout_ms}ms: {command}", command
        ) from exc

    stderr = proc.stderr.decode("utf-8", errors="replace")
    if proc.returncode not in tuple(ok_codes):
        raise GitCommandFailed(
            f"git exited with code {proc.returncode}: {stderr.strip() or command}",
            command,
            stderr,
            proc.returncode,
        )
    return GitResult(raw_stdout=proc.stdout, stderr=stderr, exit_code=proc.returncode)


class GitStream:
    """Iterator over the stdout of a running git process.

    ``close()`` kills git if it is still running and reaps it; it is safe to
    call more than once and works whether or not iteration ever started. A
    non-zero exit after stdout is fully read raises GitCommandFailed carrying
    git's stderr.
    """

    def __init__(
        self,
        proc: subprocess.Popen,
        command: str,
        chunk_size: int,
        stderr_file: IO[bytes],
    ) -> None:
        self._proc = proc
        self._command = command
        self._chunk_size = chunk_size
        self._stderr_file = stderr_file
        self._closed = False

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        if self._closed:
            raise StopIteration
        assert self._proc.stdout is not None
        chunk = self._proc.stdout.read1(self._chunk_size)
        if chunk:
            return chunk

        self._closed = True
        self._proc.stdout.close()
        exit_code = self._proc.wait()
        stderr = self._read_stderr()
        if exit_code != 0:
            raise GitCommandFailed(
                f"git exited with code {exit_code}: {stderr.strip() or self._command}",
                self._command,
                stderr,
                exit_code,
            )
        raise StopIteration

    def _read_stderr(self) -> str:
        if self._stderr_file.closed:
            return ""
        self._stderr_file.seek(0)
        data = self._stderr_file.read()
        self._stderr_file.close()
        return data.decode("utf-8", errors="replace")

    def close(self) -> None:
        if self._closed:
            self._stderr_file.close()
            return
        self._closed = True
        if self._proc.poll() is None:
            logger.debug("stream consumer stopped early, killing %s", self._command)
            self._proc.kill()
        if self._proc.stdout is not None:
            self._proc.stdout.close()
        self._proc.wait()
        self._stderr_file.close()

    def __enter__(self) -> "GitStream":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def execute_stream(
    args: Sequence[str],
    cwd: PathLike,
    chunk_size: int = STREAM_CHUNK_SIZE,
) -> GitStream:
    """Run ``git *args`` and return a GitStream over its stdout.

    The process is started before this function returns, so spawn errors are
    raised here rather than on first iteration. stderr goes to a temporary
    file so a chatty git cannot block on a full pipe.
    """
    command = _command_str(args)
    stderr_file = tempfile.TemporaryFile()
    try:
        proc = subprocess.Popen(
            [GIT_BINARY, *args],
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=stderr_file,
            stdin=subprocess.DEVNULL,
            env=_git_env(),
        )
    except OSError as exc:
        stderr_file.close()
        raise GitSpawnError(
            f"Failed to spawn git process: {exc}", command, str(exc)
        ) from exc
    logger.debug("streaming %s (pid %s)", command, proc.pid)
    return GitStream(proc, command, chunk_size, stderr_file)


def is_repository(path: PathLike) -> bool:
    """Return True if *path* is inside a git work tree or git dir."""
    try:
        execute(["rev-parse", "--git-dir"], cwd=path)
    except GitExecError:
        return False
    return True


def get_repo_root(path: Optional[PathLike] = None) -> Path:
    """Return the root of the repository containing *path* (default: cwd)."""
    cwd = path or Path.cwd()
    out = execute(["rev-parse", "--show-toplevel"], cwd=cwd).stdout
    return Path(out.strip())


_ESCAPES = {
    "a": b"\a",
    "b": b"\b",
    "f": b"\f",
    "n": b"\n",
    "r": b"\r",
    "t": b"\t",
    "v": b"\v",
    "\\": b"\\",
    '"': b'"',
}


def unquote_git_path(path: str) -> str:
    """Decode a C-style quoted path as printed by git.

    Unquoted input is returned unchanged. Octal escapes are raw bytes and are
    decoded as UTF-8 once the whole path has been collected.
    """
    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path

    body = path[1:-1]
    out = bytearray()
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out += ch.encode("utf-8")
            i += 1
            continue
        nxt = body[i + 1]
        if nxt in _ESCAPES:
            out += _ESCAPES[nxt]
            i += 2
        elif nxt.isdigit():
            digits = body[i + 1 : i + 4]
            out.append(int(digits, 8) & 0xFF)
            i += 1 + len(digits)
        else:
            out += nxt.encode("utf-8")
            i += 2
    return out.decode("utf-8", errors="replace")
