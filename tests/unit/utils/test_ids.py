"""Tests for random id generation."""

import pytest

from devrun.utils.ids import DEFAULT_ID_LENGTH, ID_ALPHABET, create_id


def test_default_length() -> None:
    assert len(create_id()) == DEFAULT_ID_LENGTH


def test_custom_length_uses_url_safe_alphabet() -> None:
    identifier = create_id(64)

    assert len(identifier) == 64
    assert set(identifier) <= set(ID_ALPHABET)


def test_ids_differ() -> None:
    assert create_id() != create_id()


@pytest.mark.parametrize("length", [0, -3])
def test_rejects_non_positive_length(length: int) -> None:
    with pytest.raises(ValueError, match="must be positive"):
        create_id(length)
