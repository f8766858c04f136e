import json
import logging

import pytest
from starlette.requests import Request

from dealer_portal.core.exceptions import StorageUnavailableError
from dealer_portal.core.security import sign_cookie_value
from dealer_portal.schemas.client import ClientIdentity
from dealer_portal.services.session_store import (
    CLIENT_SESSION_KEY,
    IMPERSONATION_MARKER_KEY,
    PENDING_COOKIES_ATTR,
    CookieStorage,
    MemoryStorage,
    SessionStore,
)

COOKIE_NAMES = {
    CLIENT_SESSION_KEY: "client_session",
    IMPERSONATION_MARKER_KEY: "impersonation_marker",
}


def make_request(cookies=None):
    header = "; ".join(f"{name}={value}" for name, value in (cookies or {}).items())
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/portal",
        "headers": [(b"cookie", header.encode())] if header else [],
    }
    return Request(scope)


def test_client_session_uses_storage_shape(store, durable):
    identity = ClientIdentity(id="42", name="Ada Lovelace", email="ada@example.com")

    store.save_client_session(identity)

    stored = json.loads(durable.data[CLIENT_SESSION_KEY])
    assert stored == {"id": "42", "name": "Ada Lovelace", "email": "ada@example.com", "isPreview": False}
    assert store.load_client_session() == identity


def test_phone_is_stored_only_when_present(store, durable):
    store.save_client_session(ClientIdentity(id="42", name="Ada", phone="+1 555 0100"))

    assert json.loads(durable.data[CLIENT_SESSION_KEY])["phone"] == "+1 555 0100"


def test_marker_and_session_live_in_separate_scopes(store, durable, volatile):
    store.save_impersonation_marker("42")

    assert volatile.data == {IMPERSONATION_MARKER_KEY: "42"}
    assert durable.data == {}

    store.clear_impersonation_marker()
    assert store.load_impersonation_marker() is None


def test_unreadable_session_is_ignored(store, durable, caplog):
    durable.data[CLIENT_SESSION_KEY] = "{not json"

    with caplog.at_level(logging.WARNING):
        assert store.load_client_session() is None
    assert "Discarding unreadable client session" in caplog.text


def test_session_without_id_is_ignored(store, durable):
    durable.data[CLIENT_SESSION_KEY] = json.dumps({"name": "Nobody", "isPreview": False})

    assert store.load_client_session() is None


def test_disabled_storage_degrades_to_memory_and_warns_once(caplog):
    store = SessionStore(durable=MemoryStorage(available=False), volatile=MemoryStorage())

    with caplog.at_level(logging.WARNING, logger="dealer_portal.services.session_store"):
        store.save_client_session(ClientIdentity(id="42", name="Ada"))
        store.save_client_session(ClientIdentity(id="43", name="Bea"))
        loaded = store.load_client_session()

    assert loaded.id == "43"
    assert store.degraded
    assert caplog.text.count("continuing in memory") == 1


def test_quota_exceeded_degrades_only_that_scope():
    durable = MemoryStorage(quota=10)
    volatile = MemoryStorage()
    store = SessionStore(durable=durable, volatile=volatile)

    store.save_client_session(ClientIdentity(id="42", name="A rather long client name"))
    store.save_impersonation_marker("42")

    assert durable.data == {}
    assert volatile.data == {IMPERSONATION_MARKER_KEY: "42"}
    assert store.load_client_session().id == "42"


def test_cookie_storage_reads_signed_cookie():
    signed = sign_cookie_value(IMPERSONATION_MARKER_KEY, "42")
    storage = CookieStorage(make_request({"impersonation_marker": signed}), COOKIE_NAMES)

    assert storage.get(IMPERSONATION_MARKER_KEY) == "42"


def test_cookie_storage_rejects_tampered_or_replayed_cookies():
    replayed = sign_cookie_value(CLIENT_SESSION_KEY, "42")
    request = make_request({"impersonation_marker": replayed, "client_session": "garbage"})
    storage = CookieStorage(request, COOKIE_NAMES)

    assert storage.get(IMPERSONATION_MARKER_KEY) is None
    assert storage.get(CLIENT_SESSION_KEY) is None


def test_cookie_storage_queues_writes_and_sees_them():
    request = make_request()
    storage = CookieStorage(request, COOKIE_NAMES, max_age=3600)

    storage.set(IMPERSONATION_MARKER_KEY, "42")
    assert storage.get(IMPERSONATION_MARKER_KEY) == "42"

    pending = getattr(request.state, PENDING_COOKIES_ATTR)
    assert pending["impersonation_marker"].max_age == 3600

    storage.delete(IMPERSONATION_MARKER_KEY)
    assert storage.get(IMPERSONATION_MARKER_KEY) is None
    assert pending["impersonation_marker"].signed is None


def test_oversized_cookie_is_refused():
    storage = CookieStorage(make_request(), COOKIE_NAMES)

    with pytest.raises(StorageUnavailableError):
        storage.set(CLIENT_SESSION_KEY, "x" * 5000)


def test_session_store_over_cookies_survives_oversized_session():
    request = make_request()
    store = SessionStore(
        durable=CookieStorage(request, COOKIE_NAMES, max_age=3600),
        volatile=CookieStorage(request, COOKIE_NAMES),
    )

    store.save_client_session(ClientIdentity(id="42", name="x" * 5000))

    assert store.degraded
    assert store.load_client_session().id == "42"
