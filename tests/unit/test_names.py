"""Unit tests for spoke cluster name generation."""

from __future__ import annotations

import collections.abc as cabc
import typing as typ

import pytest

from spoke_cluster.names import (
    LETTERS,
    RandomNameSource,
    generate_name,
    pull_secret_name,
)

_T = typ.TypeVar("_T")


class FirstChoice:
    """Name source that always picks the first element."""

    def choice(self, seq: cabc.Sequence[_T]) -> _T:
        """Return ``seq[0]``."""
        return seq[0]


@pytest.mark.parametrize("length", [0, 1, 5, 12, 64])
def test_generated_name_length_and_alphabet(length: int) -> None:
    """Names have exactly the requested number of lowercase letters."""
    name = generate_name(length, RandomNameSource())

    assert len(name) == length
    assert set(name) <= set(LETTERS)


def test_generation_uses_injected_source() -> None:
    """Every letter comes from the injected source."""
    assert generate_name(4, FirstChoice()) == "aaaa"


def test_seeded_sources_agree() -> None:
    """Sources with the same seed produce the same names."""
    first = RandomNameSource(seed="fixture")
    second = RandomNameSource(seed="fixture")

    assert [generate_name(12, first) for _ in range(3)] == [
        generate_name(12, second) for _ in range(3)
    ]


def test_negative_length_is_rejected() -> None:
    """A negative length raises ValueError."""
    with pytest.raises(ValueError, match="non-negative"):
        generate_name(-1, RandomNameSource())


def test_pull_secret_name_convention() -> None:
    """Pull secrets are named after their spoke cluster."""
    assert pull_secret_name("abc") == "abc-pull-secret"
