# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Arguments contracts a token's payload must meet before it is saved."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


def is_present(value: Any) -> bool:
    """False for None, False, whitespace-only strings and empty collections."""
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return len(value) > 0
    return True


def _missing(arguments: Any, names: tuple[str, ...]) -> list[str]:
    if not isinstance(arguments, Mapping):
        return ["must be a hash"] + [f"is missing {name}" for name in names]
    return [f"is missing {name}" for name in names if not is_present(arguments.get(name))]


class Expectation:
    """Base for the arguments contract variants."""

    def problems(self, arguments: Any) -> list[str]:
        """Return error messages (for the arguments field) describing violations."""
        raise NotImplementedError


@dataclass(frozen=True)
class NoRequirement(Expectation):
    def problems(self, arguments: Any) -> list[str]:
        return []

    def __bool__(self) -> bool:
        return False


@dataclass(frozen=True)
class RequiredKey(Expectation):
    name: str

    def problems(self, arguments: Any) -> list[str]:
        return _missing(arguments, (self.name,))


@dataclass(frozen=True)
class RequiredKeys(Expectation):
    names: tuple[str, ...]

    def problems(self, arguments: Any) -> list[str]:
        return _missing(arguments, self.names)


@dataclass(frozen=True)
class Predicate(Expectation):
    check: Callable[[Any], Any]

    def problems(self, arguments: Any) -> list[str]:
        return [] if self.check(arguments) else ["is invalid"]


NO_REQUIREMENT = NoRequirement()


def as_expectation(value: Any) -> Expectation:
    """Normalize a key, list of keys, callable or Expectation into an Expectation."""
    if isinstance(value, Expectation):
        return value
    if value is None or value == "" or value == [] or value == ():
        return NO_REQUIREMENT
    if isinstance(value, str):
        return RequiredKey(value)
    if isinstance(value, (list, tuple)):
        return RequiredKeys(tuple(str(name) for name in value))
    if callable(value):
        return Predicate(value)
    raise TypeError(f"expects must be a key, a list of keys or a callable, not {type(value).__name__}")
