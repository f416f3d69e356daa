"""
Operator Output Module

Line-oriented output the operator reads: every definitively wrong
candidate, and the accepted value with its composed message.
"""

import logging
import sys
import threading
from pathlib import Path
from typing import Optional, TextIO

logger = logging.getLogger(__name__)


class OperatorOutput:
    """Serialized writer for the non-match stream and the success report."""

    def __init__(self, stream: Optional[TextIO] = None, mirror_file: Optional[str] = None):
        """
        Initialize the output.

        Args:
            stream: Text stream to write to (default: stdout)
            mirror_file: Optional file every line is also appended to
        """
        self.stream = stream if stream is not None else sys.stdout
        self.mirror_path = Path(mirror_file) if mirror_file else None
        if self.mirror_path:
            self.mirror_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _write_line(self, line: str) -> None:
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()
            if self.mirror_path:
                try:
                    with self.mirror_path.open("a", encoding="utf-8") as f:
                        f.write(line + "\n")
                except OSError as e:
                    logger.warning(f"Failed to mirror output to {self.mirror_path}: {e}")

    def non_match(self, candidate: str) -> None:
        """Report a candidate the target definitively rejected."""
        self._write_line(candidate)

    def accepted(self, value: str, message: Optional[str] = None) -> None:
        """Report the accepted candidate and a human-readable message."""
        self._write_line(value)
        if message:
            self._write_line(message)
