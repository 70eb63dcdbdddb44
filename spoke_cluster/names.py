"""Spoke cluster naming helpers.

Auto-generated names are drawn from an injected ``NameSource`` rather than
the process-global ``random`` state, so tests can seed generation and get
the same name every run.

Examples
--------
>>> generate_name(6, RandomNameSource(seed=7)) == generate_name(
...     6, RandomNameSource(seed=7)
... )
True
>>> pull_secret_name("abc")
'abc-pull-secret'

"""

from __future__ import annotations

import random
import string
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

LETTERS = string.ascii_lowercase
DEFAULT_NAME_LENGTH = 12

_T_co = typ.TypeVar("_T_co", covariant=True)


class NameSource(typ.Protocol):
    """Source of pseudo-random choices used for name generation."""

    def choice(self, seq: cabc.Sequence[_T_co]) -> _T_co:
        """Return one element of ``seq``."""
        ...


class RandomNameSource:
    """``NameSource`` backed by a private ``random.Random`` instance."""

    def __init__(self, seed: int | str | None = None) -> None:
        """Create a source, seeded explicitly when ``seed`` is given."""
        # S311: names only need to be varied, not unpredictable
        self._random = random.Random(seed)  # noqa: S311

    def choice(self, seq: cabc.Sequence[_T_co]) -> _T_co:
        """Return one element of ``seq``."""
        return self._random.choice(seq)


def generate_name(length: int, source: NameSource) -> str:
    """Generate a lowercase alphabetic name of exactly ``length`` letters.

    No uniqueness check is performed; avoiding collisions with existing
    resources is the caller's responsibility.

    Parameters
    ----------
    length : int
        Number of letters. Zero yields an empty string.
    source : NameSource
        Source of pseudo-random choices.

    Returns
    -------
    str
        The generated name.

    Raises
    ------
    ValueError
        If ``length`` is negative.

    """
    if length < 0:
        msg = f"name length must be non-negative, got {length}"
        raise ValueError(msg)
    return "".join(source.choice(LETTERS) for _ in range(length))


def pull_secret_name(spoke_name: str) -> str:
    """Return the pull secret name used for a spoke cluster."""
    return f"{spoke_name}-pull-secret"
