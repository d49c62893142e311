import json
import os
import sys

import pytest

from services.credentials import (
    CredentialStoreError,
    CredentialValidationError,
    FileCredentialStore,
    MemoryCredentialStore,
    MissingCredentialError,
    require_credential,
    validate_credential,
)


def test_validate_credential():
    assert validate_credential("  alice:ABC  ") == "alice:ABC"
    for bad in ("", "   ", None, "alice"):
        with pytest.raises(CredentialValidationError):
            validate_credential(bad)


def test_require_credential():
    assert require_credential(MemoryCredentialStore("alice:ABC")) == "alice:ABC"
    with pytest.raises(MissingCredentialError):
        require_credential(MemoryCredentialStore())
    with pytest.raises(MissingCredentialError):
        require_credential(MemoryCredentialStore(""))


def test_file_store_round_trip(tmp_path):
    store = FileCredentialStore(tmp_path / "secrets" / "token.json")
    assert store.get() is None

    store.set("alice:ABC")
    assert store.get() == "alice:ABC"
    assert json.loads(store.path.read_text(encoding="utf-8")) == {"auth_token": "alice:ABC"}
    assert not store.path.with_suffix(".tmp").exists()

    store.clear()
    assert store.get() is None
    store.clear()


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX permissions")
def test_file_store_is_private(tmp_path):
    store = FileCredentialStore(tmp_path / "token.json")
    store.set("alice:ABC")
    assert os.stat(store.path).st_mode & 0o077 == 0


def test_corrupt_file_is_reported(tmp_path):
    path = tmp_path / "token.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(CredentialStoreError):
        FileCredentialStore(path).get()


def test_file_without_token_reads_as_unset(tmp_path):
    path = tmp_path / "token.json"
    path.write_text(json.dumps({"other": 1}), encoding="utf-8")
    assert FileCredentialStore(path).get() is None
