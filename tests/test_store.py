"""Tests for tuyalink.store."""

from __future__ import annotations

import json
import os
import time
from unittest.mock import patch

import pytest
from conftest import make_credential

from tuyalink.errors import NotFoundError
from tuyalink.store import Credential, FileCredentialStore, MemoryCredentialStore


@pytest.fixture(params=["memory", "file"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return MemoryCredentialStore()
    return FileCredentialStore(tmp_path / "config" / "credentials.json")


class TestCredential:
    def test_expires_within(self):
        cred = make_credential(expires_in=30)
        assert cred.expires_within(60)
        assert not cred.expires_within(10)

    def test_expires_within_boundary_counts_as_expiring(self):
        cred = make_credential()
        assert cred.expires_within(0, now=cred.expires_at)

    def test_dict_round_trip_uses_camel_case(self):
        cred = make_credential()
        data = cred.to_dict()
        assert set(data) == {"uid", "accessToken", "refreshToken", "expiresAt", "createdAt", "updatedAt"}
        assert Credential.from_dict(data) == cred


class TestStoreContract:
    def test_get_missing_returns_none(self, any_store):
        assert any_store.get("nope") is None

    def test_set_and_get(self, any_store):
        cred = make_credential("u1")
        any_store.set(cred)
        assert any_store.get("u1") == cred

    def test_set_replaces(self, any_store):
        any_store.set(make_credential("u1", access_token="old"))
        any_store.set(make_credential("u1", access_token="new"))
        assert any_store.get("u1").access_token == "new"
        assert len(any_store.list()) == 1

    def test_list(self, any_store):
        any_store.set(make_credential("u1"))
        any_store.set(make_credential("u2"))
        assert sorted(c.uid for c in any_store.list()) == ["u1", "u2"]

    def test_delete(self, any_store):
        any_store.set(make_credential("u1"))
        any_store.delete("u1")
        assert any_store.get("u1") is None
        assert any_store.list() == []

    def test_delete_missing_is_noop(self, any_store):
        any_store.delete("nope")
        assert any_store.list() == []

    def test_update_changes_fields_and_bumps_updated_at(self, any_store):
        original = make_credential("u1")
        any_store.set(original)
        before = time.time()

        updated = any_store.update("u1", access_token="A2", refresh_token="R2", expires_at=123.0)

        assert updated.access_token == "A2"
        assert updated.refresh_token == "R2"
        assert updated.expires_at == 123.0
        assert updated.uid == "u1"
        assert updated.created_at == original.created_at
        assert updated.updated_at >= before
        assert any_store.get("u1") == updated

    def test_update_missing_raises_not_found(self, any_store):
        with pytest.raises(NotFoundError, match="No credential found for uid ghost"):
            any_store.update("ghost", access_token="x")

    def test_update_rejects_identity_fields(self, any_store):
        any_store.set(make_credential("u1"))
        with pytest.raises(TypeError, match="uid"):
            any_store.update("u1", uid="u2")


class TestFileCredentialStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "credentials.json"
        FileCredentialStore(path).set(make_credential("u1", access_token="A"))

        reloaded = FileCredentialStore(path)
        assert reloaded.get("u1").access_token == "A"

    def test_file_permissions(self, tmp_path):
        path = tmp_path / "config" / "credentials.json"
        FileCredentialStore(path).set(make_credential("u1"))

        assert path.exists()
        assert oct(path.stat().st_mode & 0o777) == "0o600"
        saved = json.loads(path.read_text())
        assert saved["u1"]["accessToken"] == "A"

    def test_default_path(self, tmp_path, monkeypatch):
        cred_file = tmp_path / "credentials.json"
        monkeypatch.setattr("tuyalink.store.CRED_FILE", cred_file)
        assert FileCredentialStore().path == cred_file

    def test_created_owner_only(self, tmp_path):
        path = tmp_path / "credentials.json"
        with patch("tuyalink.store.os.open", wraps=os.open) as opened:
            FileCredentialStore(path).set(make_credential("u1"))

        [call] = opened.call_args_list
        assert call.args[0] == path
        assert call.args[2] == 0o600

    def test_tightens_existing_file(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("{}")
        path.chmod(0o644)

        FileCredentialStore(path).set(make_credential("u1"))

        assert oct(path.stat().st_mode & 0o777) == "0o600"
        assert FileCredentialStore(path).get("u1") is not None
