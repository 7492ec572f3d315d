# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Proposal token model - single-use invite/remind/notify token bound to an email."""

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Select, String, func, inspect, select
from sqlalchemy.orm import Mapped, mapped_column, validates

from proposals.errors import InvalidExpiryInput
from proposals.expectations import NO_REQUIREMENT, Expectation, as_expectation
from proposals.models.base import Base
from proposals.models.timestamp import TimestampMixin
from proposals.tokens import as_utc, utcnow


def resource_reference(resource: Any) -> tuple[str, str] | None:
    """(type name, id) for an owning resource, or None if it has no id."""
    if resource is None or getattr(resource, "id", None) is None:
        return None
    return type(resource).__name__, str(resource.id)


def proposable_name(value: Any) -> str:
    """Type name for a proposable given as a name, a class or a lookup."""
    if isinstance(value, str):
        return value
    if isinstance(value, type):
        return value.__name__
    return str(value.name)


class ProposalToken(Base, TimestampMixin):
    """Token proposing that an email join or use a proposable, optionally within an owning resource.

    At most one token exists per (email, proposable_type, resource_type,
    resource_id); the unique index below compares NULL resource fields as
    equal.
    """

    __tablename__ = "proposal_tokens"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    token: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    proposable_type: Mapped[str] = mapped_column(String(128), nullable=False)
    resource_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    arguments: Mapped[Any] = mapped_column(JSON, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    reminded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    context: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    @validates("token")
    def _keep_token(self, key: str, value: str) -> str:
        current = self.__dict__.get("token")
        if current is not None and value != current:
            raise ValueError("token cannot be changed once assigned")
        return value

    @validates("accepted_at")
    def _keep_accepted_at(self, key: str, value: datetime | None) -> datetime | None:
        current = self.__dict__.get("accepted_at")
        if current is not None and value != current:
            raise ValueError("accepted_at cannot be changed once set")
        return value

    # Transient state, not persisted

    @property
    def expects(self) -> Expectation:
        return getattr(self, "_expects", NO_REQUIREMENT)

    @expects.setter
    def expects(self, value: Any) -> None:
        self._expects = as_expectation(value)

    @property
    def proposable(self) -> Any | None:
        """Cached lookup for proposable_type, once resolved."""
        return getattr(self, "_proposable", None)

    @proposable.setter
    def proposable(self, value: Any) -> None:
        self.proposable_type = proposable_name(value)
        self._proposable = None if isinstance(value, (str, type)) else value
        self._instance = None

    def cache_proposable(self, lookup: Any) -> None:
        """Remember the lookup resolved for proposable_type on this instance."""
        self._proposable = lookup

    @property
    def cached_instance(self) -> Any | None:
        return getattr(self, "_instance", None)

    def cache_instance(self, record: Any | None) -> None:
        self._instance = record

    @property
    def resource(self) -> tuple[str, str] | None:
        if self.resource_type is None and self.resource_id is None:
            return None
        return self.resource_type, self.resource_id

    @resource.setter
    def resource(self, value: Any) -> None:
        ref = resource_reference(value)
        self.resource_type, self.resource_id = ref if ref else (None, None)

    @property
    def expires(self) -> datetime | None:
        return self.expires_at

    @expires.setter
    def expires(self, compute: Callable[[], datetime]) -> None:
        if not callable(compute):
            raise InvalidExpiryInput("expires must be a callable returning a datetime")
        self.expires_at = compute()

    # State

    @property
    def is_persisted(self) -> bool:
        return inspect(self).has_identity

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return utcnow() >= as_utc(self.expires_at)

    @property
    def is_accepted(self) -> bool:
        return self.accepted_at is not None

    @property
    def is_acceptable(self) -> bool:
        return not self.is_expired and not self.is_accepted

    def with_(self, *args: Any) -> "ProposalToken":
        """Attach arguments: a single mapping is stored as a dict, anything else as a list."""
        if len(args) == 1 and isinstance(args[0], Mapping):
            self.arguments = dict(args[0])
        else:
            self.arguments = list(args)
        return self

    with_args = with_

    @classmethod
    def in_context(cls, *tags: Any) -> Select:
        """Query for tokens whose context is the tags joined by ':'."""
        return select(cls).where(cls.context == ":".join(str(tag) for tag in tags))

    def __str__(self) -> str:
        return self.token or ""

    def __repr__(self) -> str:
        return (
            f"<ProposalToken id={self.id} email={self.email!r} "
            f"proposable_type={self.proposable_type!r} resource={self.resource!r}>"
        )


Index(
    "uq_proposal_tokens_scope",
    ProposalToken.__table__.c.email,
    ProposalToken.__table__.c.proposable_type,
    func.coalesce(ProposalToken.__table__.c.resource_type, ""),
    func.coalesce(ProposalToken.__table__.c.resource_id, ""),
    unique=True,
)
