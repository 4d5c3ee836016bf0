"""Tests for the confirmation store and the validate/consume protocol."""

import pytest

from forge_mcp.confirmation import (
    ConfirmationStore,
    claim_confirmation,
    create_confirmation,
    mark_confirmation_used,
    validate_confirmation,
)

EXPIRY = 600.0


def _same(expected):
    return lambda stored: stored == expected


def test_created_tokens_are_unique_and_pending():
    store = ConfirmationStore()
    tokens = {create_confirmation(store, {"n": i}).token for i in range(200)}

    assert len(tokens) == 200
    assert len(store) == 200
    assert all(not store.get(t).consumed for t in tokens)


def test_token_is_single_use():
    store = ConfirmationStore()
    entry = create_confirmation(store, {"server_id": "1"})

    assert validate_confirmation(store, entry.token, _same({"server_id": "1"})) is entry
    mark_confirmation_used(store, entry.token)

    assert validate_confirmation(store, entry.token, _same({"server_id": "1"})) is None
    assert validate_confirmation(store, entry.token) is None


def test_validate_alone_does_not_consume():
    store = ConfirmationStore()
    entry = create_confirmation(store, {"server_id": "1"})

    for _ in range(5):
        assert validate_confirmation(store, entry.token, _same({"server_id": "1"})) is entry
    assert entry.consumed is False


def test_mismatched_parameters_are_rejected_without_consuming():
    store = ConfirmationStore()
    entry = create_confirmation(store, {"server_id": "1"})

    assert validate_confirmation(store, entry.token, _same({"server_id": "2"})) is None
    assert entry.consumed is False
    assert validate_confirmation(store, entry.token, _same({"server_id": "1"})) is entry


@pytest.mark.parametrize(
    "age, usable",
    [
        (0.0, True),
        (EXPIRY - 1, True),
        (EXPIRY, True),
        (EXPIRY + 0.001, False),
        (EXPIRY * 2, False),
    ],
)
def test_expiry_window(clock, age, usable):
    store = ConfirmationStore(clock=clock)
    entry = create_confirmation(store, {"x": 1})
    clock.advance(age)

    result = validate_confirmation(store, entry.token, expiry_seconds=EXPIRY)
    assert (result is not None) is usable


def test_expired_entry_is_removed(clock):
    store = ConfirmationStore(clock=clock)
    entry = create_confirmation(store, {"x": 1})
    clock.advance(EXPIRY + 1)

    assert validate_confirmation(store, entry.token, expiry_seconds=EXPIRY) is None
    assert store.get(entry.token) is None
    assert len(store) == 0


def test_unknown_token_is_rejected():
    store = ConfirmationStore()
    create_confirmation(store, {"x": 1})

    assert validate_confirmation(store, "not-a-token") is None
    assert validate_confirmation(store, "") is None


def test_tokens_do_not_cross_stores():
    deletes = ConfirmationStore()
    reboots = ConfirmationStore()
    entry = create_confirmation(deletes, {"server_id": "1"})

    assert validate_confirmation(reboots, entry.token) is None
    assert validate_confirmation(deletes, entry.token) is entry


def test_claim_succeeds_once():
    store = ConfirmationStore()
    entry = create_confirmation(store, {"server_id": "1"})

    first = claim_confirmation(store, entry.token, _same({"server_id": "1"}))
    second = claim_confirmation(store, entry.token, _same({"server_id": "1"}))

    assert first is entry
    assert first.consumed is True
    assert second is None


def test_claim_with_wrong_parameters_leaves_token_pending():
    store = ConfirmationStore()
    entry = create_confirmation(store, {"server_id": "1"})

    assert claim_confirmation(store, entry.token, _same({"server_id": "9"})) is None
    assert entry.consumed is False


def test_stored_parameters_are_the_proposed_ones():
    store = ConfirmationStore()
    params = {"server_id": "1", "name": "web"}
    entry = create_confirmation(store, params)

    assert store.get(entry.token).parameters == {"server_id": "1", "name": "web"}
