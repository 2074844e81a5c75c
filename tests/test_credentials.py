import asyncio

import pytest

from creative_studio.errors import CapabilityUnavailable, ValidationError
from creative_studio.services.credentials import CredentialSession, EnvironmentKeySelector


def test_initialize_reads_selector_state():
    session = CredentialSession(EnvironmentKeySelector("abc"))
    assert session.checking

    assert asyncio.run(session.initialize()) is True
    assert session.selected
    assert not session.checking


def test_initialize_without_key():
    session = CredentialSession(EnvironmentKeySelector(None))

    asyncio.run(session.initialize())

    assert not session.selected
    assert not session.checking


def test_initialize_without_capability():
    session = CredentialSession(None, fallback_key="abc")

    asyncio.run(session.initialize())

    assert not session.selected
    assert not session.capability_available
    assert session.api_key() == "abc"


def test_request_selection_without_capability_fails():
    session = CredentialSession(None)

    with pytest.raises(CapabilityUnavailable):
        asyncio.run(session.request_selection("abc"))
    assert not session.selected


def test_request_selection_marks_selected_and_uses_new_key():
    session = CredentialSession(EnvironmentKeySelector("old"), fallback_key="old")

    asyncio.run(session.request_selection("new"))

    assert session.selected
    assert session.api_key() == "new"


def test_request_selection_rejects_blank_key():
    session = CredentialSession(EnvironmentKeySelector(None))

    with pytest.raises(ValidationError):
        asyncio.run(session.request_selection("   "))
    assert not session.selected


def test_invalidate_resets_selection():
    session = CredentialSession(EnvironmentKeySelector("abc"))
    asyncio.run(session.initialize())

    session.invalidate()

    assert not session.selected


def test_missing_key_is_a_validation_error():
    session = CredentialSession(EnvironmentKeySelector(None))

    with pytest.raises(ValidationError):
        session.api_key()
