from enum import Enum
from pathlib import Path
from typing import Iterable, Optional, Sequence


class FailureKind(Enum):
    NOT_FOUND = "not-found"
    PARSE_FAILURE = "parse-failure"
    MISMATCH = "mismatch"
    EXTERNAL_TOOL_FAILURE = "external-tool-failure"


class MasVerifyError(Exception):
    """Base class for every error raised by masverify"""

    kind: FailureKind = FailureKind.MISMATCH

    def __init__(self, message: str, hints: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.message = message
        self.hints = list(hints or [])


class ArtifactNotFoundError(MasVerifyError):
    """A required artifact or path could not be located"""

    kind = FailureKind.NOT_FOUND

    def __init__(
        self,
        message: str,
        searched: Optional[Sequence[Path]] = None,
        hints: Optional[Iterable[str]] = None,
    ):
        super().__init__(message, hints)
        self.searched = list(searched or [])


class MetadataParseError(MasVerifyError):
    """Tool output could not be matched to the expected fields"""

    kind = FailureKind.PARSE_FAILURE


class IdentifierMismatchError(MasVerifyError):
    """An extracted value differs from the value it must equal"""

    kind = FailureKind.MISMATCH

    def __init__(self, field: str, expected: str, found, hints=None):
        super().__init__(f"{field} mismatch", hints)
        self.field = field
        self.expected = expected
        self.found = found


class ExternalToolError(MasVerifyError):
    """An external signing tool failed or could not be started"""

    kind = FailureKind.EXTERNAL_TOOL_FAILURE

    def __init__(
        self,
        command: Sequence[str],
        returncode: Optional[int] = None,
        stderr: str = "",
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr
        if returncode is None:
            message = f"Could not run {self.command[0]}: {stderr}".rstrip(": ")
        else:
            message = f"{self.command[0]} failed with status {returncode}"
            if stderr:
                message += f": {stderr.strip()}"
        super().__init__(message)
