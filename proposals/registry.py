# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Lookups for the records a proposal token points at.

A token names its proposable type (e.g. "User") as a string. The registry
resolves that name to a lookup capable of finding one record by email; the
repository is the storage-facing side that lookups delegate to.
"""

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from proposals.errors import UnknownProposableType


class ResourceRepository(Protocol):
    def entity_types(self) -> list[str]: ...

    async def find_one_by_email(self, entity_type: str, email: str) -> Any | None: ...


class ProposableLookup(Protocol):
    name: str

    async def find_one_by_email(self, email: str) -> Any | None: ...


class SQLAlchemyResourceRepository:
    """Repository over ORM models that have an ``email`` column."""

    def __init__(self, db: AsyncSession, models: Mapping[str, type]) -> None:
        self.db = db
        self.models = dict(models)

    def entity_types(self) -> list[str]:
        return list(self.models)

    async def find_one_by_email(self, entity_type: str, email: str) -> Any | None:
        model = self.models.get(entity_type)
        if model is None:
            raise UnknownProposableType(entity_type)
        result = await self.db.execute(select(model).where(model.email == email).limit(1))
        return result.scalars().first()


class RepositoryLookup:
    """Lookup for one entity type, backed by a repository."""

    def __init__(self, repository: ResourceRepository, entity_type: str) -> None:
        self.repository = repository
        self.name = entity_type

    async def find_one_by_email(self, email: str) -> Any | None:
        return await self.repository.find_one_by_email(self.name, email)

    def __repr__(self) -> str:
        return f"RepositoryLookup({self.name!r})"


class ResourceRegistry:
    """Maps proposable type names to lookups."""

    def __init__(self) -> None:
        self._lookups: dict[str, ProposableLookup] = {}

    @classmethod
    def from_repository(
        cls,
        repository: ResourceRepository,
        names: Iterable[str] | None = None,
    ) -> "ResourceRegistry":
        """Registry with a RepositoryLookup per name (default: every type the repository knows)."""
        registry = cls()
        if names is None:
            names = repository.entity_types()
        for name in names:
            registry.register(name, RepositoryLookup(repository, name))
        return registry

    def register(self, name: str, lookup: ProposableLookup) -> None:
        self._lookups[name] = lookup

    def resolve(self, name: str) -> ProposableLookup:
        try:
            return self._lookups[name]
        except KeyError:
            raise UnknownProposableType(name) from None

    def names(self) -> list[str]:
        return sorted(self._lookups)

    def __contains__(self, name: object) -> bool:
        return name in self._lookups
