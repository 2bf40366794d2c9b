import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional

from masverify.src.core.errors import ExternalToolError


def decode_clean(b: bytes) -> str:
    """Clean up command output"""
    return "" if not b else b.decode("utf-8", errors="replace").strip()


@dataclass
class ToolResult:
    """Outcome of one external tool invocation"""

    command: List[str]
    returncode: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def text(self) -> str:
        return decode_clean(self.stdout)

    @property
    def error_text(self) -> str:
        return decode_clean(self.stderr)

    @property
    def combined_text(self) -> str:
        """stdout and stderr together, like running the tool with 2>&1"""
        return "\n".join(part for part in (self.text, self.error_text) if part)


class ToolRunner:
    """Runs signing utilities as blocking child processes."""

    def available(self, tool: str) -> bool:
        return shutil.which(tool) is not None

    def run(
        self, *cmd: str, input: Optional[bytes] = None, check: bool = True
    ) -> ToolResult:
        """Run a process and return its captured output"""
        try:
            proc = subprocess.run(list(cmd), input=input, capture_output=True)
        except OSError as e:
            raise ExternalToolError(cmd, None, str(e))

        result = ToolResult(list(cmd), proc.returncode, proc.stdout, proc.stderr)
        if check and not result.ok:
            raise ExternalToolError(
                cmd, result.returncode, result.error_text or result.text
            )
        return result
