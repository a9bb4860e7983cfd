"""Exception hierarchy for magickmeta."""

from __future__ import annotations


class MagickMetaError(Exception):
    """Base exception for all magickmeta errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(MagickMetaError):
    """Configuration validation or resolution failed."""


class DecodeError(MagickMetaError):
    """ImageMagick JSON could not be decoded, even after sanitization."""


class ChannelClosed(MagickMetaError):
    """A channel was used after it was closed."""


class ParserError(MagickMetaError):
    """An ImageMagick invocation or decode failed for one or more files.

    Instances are raised by the single-batch API and streamed as values on the
    errors channel by the parallel pipeline. They carry everything needed to
    reproduce the failure: the file(s) involved, the exact command line, and
    both captured output streams.
    """

    def __init__(
        self,
        msg: str,
        file: str = "",
        cmd: str = "",
        stdout: bytes = b"",
        stderr: bytes = b"",
        *,
        hint: str | None = None,
    ) -> None:
        super().__init__(msg, hint=hint)
        self._msg = msg
        self._file = file
        self._cmd = cmd
        self._stdout = bytes(stdout)
        self._stderr = bytes(stderr)

    @property
    def msg(self) -> str:
        """The error message."""
        return self._msg

    @property
    def file(self) -> str:
        """The file(s) that caused the error, joined with ``", "``."""
        return self._file

    @property
    def cmd(self) -> str:
        """The full command line that failed, or ``""`` for decode failures."""
        return self._cmd

    @property
    def stdout(self) -> bytes:
        """Standard output produced by the failed command (if any)."""
        return self._stdout

    @property
    def stderr(self) -> bytes:
        """Standard error produced by the failed command (if any)."""
        return self._stderr

    def __str__(self) -> str:
        return (
            f"Error: {self._msg}; File: {self._file!r}; Cmd: {self._cmd!r}; "
            f"StdOut: {_as_text(self._stdout)!r}; StdErr: {_as_text(self._stderr)!r}"
        )

    def __repr__(self) -> str:
        return f"ParserError(msg={self._msg!r}, file={self._file!r}, cmd={self._cmd!r})"


def _as_text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


NIL_ERROR = "<nil>"


def describe_error(err: BaseException | None) -> str:
    """Render *err* for logs and reports, tolerating a missing error.

    Callers often format an error slot generically without checking it first,
    so ``None`` renders as the ``<nil>`` sentinel instead of ``"None"``.
    """
    if err is None:
        return NIL_ERROR
    return str(err)
