"""
Tests for the file-backed PasswordDictionary.

Checklist:
- Absent or empty file loads as an empty set
- Keyspace generation covers every combination
- Append is idempotent (load -> append(X) -> load contains X exactly once)
- Append after dispose fails loudly
"""

import pytest

from crack_password_pool.core.errors import DictionaryError
from crack_password_pool.io.dictionary import (
    PasswordDictionary,
    create_password_dictionary,
    generate_keyspace,
)


def test_missing_file_loads_empty(tmp_path):
    dictionary = PasswordDictionary(str(tmp_path / "missing.txt"))

    assert dictionary.load() == set()
    assert not dictionary.exists()


def test_generate_keyspace():
    assert list(generate_keyspace(2, "ab")) == ["aa", "ab", "ba", "bb"]
    assert sum(1 for _ in generate_keyspace(3, "0123456789")) == 1000


def test_ensure_generated_writes_full_keyspace(tmp_path):
    path = tmp_path / "dicts" / "passwords.txt"
    dictionary = PasswordDictionary(str(path), length=2, alphabet="abc")

    dictionary.ensure_generated()

    assert dictionary.load() == {a + b for a in "abc" for b in "abc"}
    assert not path.with_suffix(".txt.tmp").exists()


def test_ensure_generated_keeps_existing_file(tmp_path):
    path = tmp_path / "passwords.txt"
    path.write_text("zz\nyy\n", encoding="utf-8")
    dictionary = PasswordDictionary(str(path), length=2, alphabet="ab")

    dictionary.ensure_generated()

    assert dictionary.load() == {"zz", "yy"}


def test_append_is_idempotent(tmp_path):
    path = tmp_path / "tested.txt"
    dictionary = PasswordDictionary(str(path))
    batch = {"0a1b", "9zzz", "abcd"}

    dictionary.append(batch)
    dictionary.append(batch)
    dictionary.append({"abcd", "ffff"})

    lines = path.read_text(encoding="utf-8").splitlines()
    assert sorted(lines) == sorted(batch | {"ffff"})
    assert len(lines) == len(set(lines))
    assert dictionary.load() >= batch


def test_append_handles_missing_trailing_newline(tmp_path):
    path = tmp_path / "tested.txt"
    path.write_text("aaaa", encoding="utf-8")
    dictionary = PasswordDictionary(str(path))

    dictionary.append({"bbbb"})

    assert path.read_text(encoding="utf-8").splitlines() == ["aaaa", "bbbb"]


def test_append_empty_set_creates_nothing_new(tmp_path):
    path = tmp_path / "tested.txt"
    dictionary = PasswordDictionary(str(path))

    dictionary.append(set())

    assert dictionary.load() == set()


def test_append_after_dispose_raises(tmp_path):
    dictionary = PasswordDictionary(str(tmp_path / "tested.txt"))
    dictionary.dispose()

    with pytest.raises(DictionaryError):
        dictionary.append({"aaaa"})


def test_invalid_parameters_rejected(tmp_path):
    with pytest.raises(DictionaryError):
        PasswordDictionary(str(tmp_path / "x.txt"), length=0)
    with pytest.raises(DictionaryError):
        PasswordDictionary(str(tmp_path / "x.txt"), alphabet="")


def test_factory_deduplicates_alphabet(tmp_path):
    dictionary = create_password_dictionary(str(tmp_path / "x.txt"), length=1, alphabet="aab")

    assert dictionary.alphabet == "ab"
    assert dictionary.write_keyspace() == 2
