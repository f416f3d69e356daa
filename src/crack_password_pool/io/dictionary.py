"""
Password Dictionary Module

File-backed candidate store: one candidate per line, UTF-8. The candidate
dictionary is generated from the full keyspace when its file is missing,
and the tested dictionary only ever grows.
"""

import fcntl
import itertools
import logging
import os
import string
import threading
from pathlib import Path
from typing import Iterable, Iterator, Set

from ..core.errors import DictionaryError
from ..core.interfaces import DictionaryStore

logger = logging.getLogger(__name__)

DEFAULT_ALPHABET = string.digits + string.ascii_lowercase
DEFAULT_LENGTH = 4


def generate_keyspace(length: int = DEFAULT_LENGTH, alphabet: str = DEFAULT_ALPHABET) -> Iterator[str]:
    """Yield every string of ``length`` characters drawn from ``alphabet``."""
    for chars in itertools.product(alphabet, repeat=length):
        yield "".join(chars)


class PasswordDictionary(DictionaryStore):
    """Line-oriented candidate file with shared/exclusive file locking."""

    def __init__(self, file_path: str, length: int = DEFAULT_LENGTH, alphabet: str = DEFAULT_ALPHABET):
        """
        Initialize the dictionary.

        Args:
            file_path: Path of the dictionary file
            length: Candidate length used when generating the keyspace
            alphabet: Characters used when generating the keyspace
        """
        if length < 1:
            raise DictionaryError("length must be at least 1")
        if not alphabet:
            raise DictionaryError("alphabet must not be empty")

        self.file_path = Path(file_path)
        self.length = int(length)
        self.alphabet = "".join(dict.fromkeys(alphabet))
        self._lock = threading.Lock()
        self._disposed = False

    def exists(self) -> bool:
        """True if the backing file exists and is not empty."""
        return self.file_path.exists() and self.file_path.stat().st_size > 0

    def load(self) -> Set[str]:
        """
        Read every candidate from the file.

        Returns:
            Set[str]: Stored candidates, empty if the file is absent
        """
        if not self.file_path.exists():
            return set()
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    candidates = {line.rstrip("\r\n") for line in f}
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            raise DictionaryError(f"Failed to read {self.file_path}: {e}") from e

        candidates.discard("")
        logger.info(f"[DICT] loaded {len(candidates)} candidates from {self.file_path}")
        return candidates

    def append(self, candidates: Set[str]) -> None:
        """Append the candidates not already stored. Safe to call repeatedly with the same set."""
        if self._disposed:
            raise DictionaryError(f"Dictionary {self.file_path} has been disposed")

        with self._lock:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                with open(self.file_path, "a+", encoding="utf-8") as f:
                    fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                    try:
                        f.seek(0)
                        content = f.read()
                        existing = set(content.splitlines())
                        new = sorted(c for c in candidates if c and c not in existing)
                        if new:
                            f.seek(0, os.SEEK_END)
                            # Files written by other tools may lack a trailing newline
                            if content and not content.endswith("\n"):
                                f.write("\n")
                            f.write("\n".join(new) + "\n")
                            f.flush()
                            os.fsync(f.fileno())
                    finally:
                        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            except OSError as e:
                raise DictionaryError(f"Failed to append to {self.file_path}: {e}") from e

        logger.info(f"[DICT] appended {len(new)} new candidates to {self.file_path}")

    def write_keyspace(self) -> int:
        """
        Generate the full keyspace and write it to the file, replacing its contents.

        Returns:
            int: Number of candidates written
        """
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.file_path.with_suffix(self.file_path.suffix + ".tmp")
        count = 0
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                for candidate in generate_keyspace(self.length, self.alphabet):
                    f.write(candidate + "\n")
                    count += 1
                f.flush()
                os.fsync(f.fileno())
            temp_path.replace(self.file_path)
        except OSError as e:
            raise DictionaryError(f"Failed to generate {self.file_path}: {e}") from e

        logger.info(
            f"[DICT] generated {count} candidates of length {self.length} into {self.file_path}"
        )
        return count

    def ensure_generated(self) -> None:
        """Generate the keyspace if the file is missing or empty."""
        if not self.exists():
            self.write_keyspace()

    def dispose(self) -> None:
        self._disposed = True
        logger.debug(f"[DICT] disposed {self.file_path}")


def create_password_dictionary(file_path: str, length: int = DEFAULT_LENGTH,
                               alphabet: Iterable[str] = DEFAULT_ALPHABET) -> PasswordDictionary:
    """
    Factory function to create a PasswordDictionary instance.

    Args:
        file_path: Path of the dictionary file
        length: Candidate length for keyspace generation
        alphabet: Characters for keyspace generation

    Returns:
        PasswordDictionary: Configured dictionary
    """
    return PasswordDictionary(file_path, length=length, alphabet="".join(alphabet))
