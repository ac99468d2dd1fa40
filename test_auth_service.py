#!/usr/bin/env python3
"""
Tests for the identity provider client.
HTTP calls are mocked; no network access is needed.
"""

import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

# Add the project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

import requests

from bankvocab.engine.db import MemoryKeyValueStore
from bankvocab.services.auth import SESSION_KEY, AuthService, AuthUser, encode_session


def response(status_code, payload):
    mock = MagicMock()
    mock.status_code = status_code
    mock.json.return_value = payload
    return mock


SIGN_IN_OK = response(200, {
    "localId": "user-a",
    "email": "a@example.com",
    "idToken": "token-a",
    "refreshToken": "refresh-a",
})
LOOKUP_VERIFIED = response(200, {"users": [{"localId": "user-a", "emailVerified": True}]})
LOOKUP_UNVERIFIED = response(200, {"users": [{"localId": "user-a", "emailVerified": False}]})


def test_sign_in_sets_user_and_persists_session():
    store = MemoryKeyValueStore()
    auth = AuthService("key", store)
    users = []
    auth.user_changed.connect(lambda user: users.append(user))

    with patch("bankvocab.services.auth.requests.post",
               side_effect=[SIGN_IN_OK, LOOKUP_VERIFIED]) as post:
        assert auth.sign_in("a@example.com", "secret") is True

    assert auth.user.id == "user-a"
    assert auth.verified is True
    assert auth.error is None
    assert users == [auth.user]
    assert store.get(SESSION_KEY) == encode_session(auth.user)

    url = post.call_args_list[0][0][0]
    assert "accounts:signInWithPassword" in url
    assert url.endswith("key=key")
    assert post.call_args_list[0][1]["json"]["email"] == "a@example.com"
    assert post.call_args_list[1][1]["json"] == {"idToken": "token-a"}


def test_rejected_sign_in_sets_message():
    auth = AuthService("key")
    rejected = response(400, {"error": {"code": 400, "message": "INVALID_PASSWORD"}})

    with patch("bankvocab.services.auth.requests.post", return_value=rejected):
        assert auth.sign_in("a@example.com", "wrong") is False

    assert auth.user is None
    assert auth.error == "Incorrect password."


def test_error_is_cleared_on_next_attempt():
    auth = AuthService("key")
    rejected = response(400, {"error": {"message": "TOO_MANY_ATTEMPTS_TRY_LATER : Access disabled"}})

    with patch("bankvocab.services.auth.requests.post", return_value=rejected):
        auth.sign_in("a@example.com", "wrong")
    assert auth.error == "Too many attempts. Try again later."

    with patch("bankvocab.services.auth.requests.post",
               side_effect=[SIGN_IN_OK, LOOKUP_UNVERIFIED]):
        assert auth.sign_in("a@example.com", "secret") is True

    assert auth.error is None
    assert auth.verified is False


def test_network_failure_sets_message():
    auth = AuthService("key")
    with patch("bankvocab.services.auth.requests.post",
               side_effect=requests.exceptions.ConnectionError("offline")):
        assert auth.sign_in("a@example.com", "secret") is False

    assert auth.error.startswith("Could not reach the sign-in service")


def test_missing_api_key_is_reported():
    auth = AuthService(None)
    with patch("bankvocab.services.auth.requests.post") as post:
        assert auth.sign_in("a@example.com", "secret") is False
        post.assert_not_called()

    assert auth.error == "Sign-in is not configured."


def test_session_is_restored_from_store():
    user = AuthUser(id="user-a", email="a@example.com", verified=True, id_token="t")
    store = MemoryKeyValueStore({SESSION_KEY: encode_session(user)})
    auth = AuthService("key", store)

    assert auth.user == user
    assert auth.loading is False


def test_corrupted_session_is_ignored():
    store = MemoryKeyValueStore({SESSION_KEY: '{"email": "a@example.com"}'})
    auth = AuthService("key", store)
    assert auth.user is None


def test_send_verification():
    auth = AuthService("key")
    auth.user = AuthUser(id="user-a", email="a@example.com", id_token="token-a")
    states = []
    auth.verifying_changed.connect(lambda value: states.append(value))

    with patch("bankvocab.services.auth.requests.post", return_value=response(200, {})) as post:
        assert auth.send_verification() is True

    assert post.call_args[1]["json"] == {"requestType": "VERIFY_EMAIL", "idToken": "token-a"}
    assert states == [True, False]
    assert auth.verifying is False


def test_send_verification_without_user_does_nothing():
    auth = AuthService("key")
    with patch("bankvocab.services.auth.requests.post") as post:
        assert auth.send_verification() is False
        post.assert_not_called()


def test_refresh_updates_verification():
    auth = AuthService("key")
    auth.user = AuthUser(id="user-a", email="a@example.com", id_token="token-a")

    with patch("bankvocab.services.auth.requests.post", return_value=LOOKUP_VERIFIED):
        assert auth.refresh() is True

    assert auth.verified is True
    assert auth.user.id_token == "token-a"


def test_logout_clears_user_and_stored_session():
    store = MemoryKeyValueStore()
    auth = AuthService("key", store)
    with patch("bankvocab.services.auth.requests.post",
               side_effect=[SIGN_IN_OK, LOOKUP_VERIFIED]):
        auth.sign_in("a@example.com", "secret")

    auth.logout()

    assert auth.user is None
    assert store.get(SESSION_KEY) == "null"
    assert AuthService("key", store).user is None


if __name__ == "__main__":
    import pytest
    sys.exit(pytest.main([__file__, "-v"]))
