"""Tests for the encrypted credential store."""

import os
import time

import pytest

from jarvis.auth.credentials import CredentialStore, OAuthTokens


@pytest.fixture
def store(tmp_path):
    return CredentialStore(tmp_path)


class TestOAuthTokens:
    def test_no_expiry_never_expires(self):
        assert OAuthTokens("a").is_expired() is False

    def test_expired_within_buffer(self):
        soon = int(time.time() * 1000) + 60_000
        assert OAuthTokens("a", expires_at=soon).is_expired() is True

    def test_valid_outside_buffer(self):
        later = int(time.time() * 1000) + 60 * 60_000
        assert OAuthTokens("a", expires_at=later).is_expired() is False


class TestCredentialStore:
    def test_save_and_load(self, store):
        store.save("spotify", OAuthTokens("access", "refresh", 123))
        assert store.load("spotify") == OAuthTokens("access", "refresh", 123)
        assert store.load("google") is None

    def test_file_is_encrypted(self, store):
        store.save("spotify", OAuthTokens("very-secret-token"))
        assert b"very-secret-token" not in store.path.read_bytes()

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_files_are_owner_only(self, store, tmp_path):
        store.save("spotify", OAuthTokens("a"))
        assert store.path.stat().st_mode & 0o777 == 0o600
        assert (tmp_path / ".key").stat().st_mode & 0o777 == 0o600

    def test_key_reused_across_instances(self, store, tmp_path):
        store.save("spotify", OAuthTokens("a"))
        assert CredentialStore(tmp_path).load("spotify").access_token == "a"

    def test_services_sorted(self, store):
        store.save("spotify", OAuthTokens("a"))
        store.save("google", OAuthTokens("b"))
        assert store.services() == ["google", "spotify"]

    def test_delete(self, store):
        store.save("spotify", OAuthTokens("a"))
        store.save("google", OAuthTokens("b"))
        assert store.delete("spotify") is True
        assert store.delete("spotify") is False
        assert store.services() == ["google"]

    def test_deleting_last_service_removes_file(self, store):
        store.save("spotify", OAuthTokens("a"))
        store.delete("spotify")
        assert not store.path.exists()

    def test_corrupt_file_treated_as_empty(self, store):
        store.save("spotify", OAuthTokens("a"))
        store.path.write_bytes(b"garbage")
        assert store.load("spotify") is None
        assert store.services() == []
