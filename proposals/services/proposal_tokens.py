# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Proposal token engine: lookup, validation and accept/remind transitions."""

import logging
import re
from typing import Any, Literal

from sqlalchemy import Select, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from proposals.errors import (
    ReminderNotApplicable,
    TargetRecordNotFound,
    TokenAlreadyAccepted,
    TokenExpired,
    UnknownProposableType,
    ValidationFailed,
)
from proposals.expectations import is_present
from proposals.models import ProposalToken
from proposals.models.proposal_token import resource_reference
from proposals.registry import ProposableLookup, ResourceRegistry
from proposals.tokens import default_expiry, generate_token, utcnow

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"\A([^@\s]+)@((?:[-a-z0-9]+\.)+[a-z]{2,})\Z", re.IGNORECASE | re.ASCII)

OUTSTANDING_MESSAGE = "already has an outstanding proposal"

Action = Literal["invite", "remind", "notify"]


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.match(email) is not None


def scope_query(
    email: str | None,
    proposable_type: str | None,
    resource_type: str | None,
    resource_id: str | None,
) -> Select:
    """Tokens sharing a uniqueness scope. NULL resource fields match NULL."""
    stmt = select(ProposalToken).where(
        ProposalToken.email == email,
        ProposalToken.proposable_type == proposable_type,
    )
    if resource_type is None:
        stmt = stmt.where(ProposalToken.resource_type.is_(None))
    else:
        stmt = stmt.where(ProposalToken.resource_type == resource_type)
    if resource_id is None:
        stmt = stmt.where(ProposalToken.resource_id.is_(None))
    else:
        stmt = stmt.where(ProposalToken.resource_id == resource_id)
    return stmt


class ProposalTokens:
    """Token store bound to one session and one resource registry.

    Nothing here locks: the check in validate() is advisory and the unique
    scope index decides races between concurrent writers.
    """

    def __init__(self, db: AsyncSession, registry: ResourceRegistry) -> None:
        self.db = db
        self.registry = registry

    # Lookup

    async def find_or_new(
        self,
        email: str,
        proposable_type: str,
        resource: Any = None,
        **attrs: Any,
    ) -> ProposalToken:
        """Existing token for email/type (and resource, if it has an id), else a new unsaved one."""
        stmt = select(ProposalToken).where(
            ProposalToken.email == email,
            ProposalToken.proposable_type == proposable_type,
        )
        ref = resource_reference(resource)
        if ref is not None:
            resource_type, resource_id = ref
            stmt = stmt.where(
                ProposalToken.resource_type == resource_type,
                ProposalToken.resource_id == resource_id,
            )
        result = await self.db.execute(stmt.order_by(ProposalToken.id).limit(1))
        token = result.scalars().first()
        if token is not None:
            return token
        return ProposalToken(email=email, proposable_type=proposable_type, resource=resource, **attrs)

    async def to(self, token: ProposalToken, resource: Any) -> ProposalToken:
        """Token for the same email and proposable type within another owning resource."""
        return await self.find_or_new(token.email, token.proposable_type, resource=resource)

    async def find_by_token(self, value: str) -> ProposalToken | None:
        result = await self.db.execute(select(ProposalToken).where(ProposalToken.token == value))
        return result.scalar_one_or_none()

    async def context(self, *tags: Any) -> list[ProposalToken]:
        result = await self.db.execute(ProposalToken.in_context(*tags).order_by(ProposalToken.id))
        return list(result.scalars().all())

    # Target

    def proposable(self, token: ProposalToken) -> ProposableLookup:
        """Resolve token.proposable_type once per token instance."""
        lookup = token.proposable
        if lookup is None:
            lookup = self.registry.resolve(token.proposable_type)
            token.cache_proposable(lookup)
        return lookup

    async def instance(self, token: ProposalToken) -> Any | None:
        """Record of the proposable type with the token's email, or None. Cached per token."""
        found = token.cached_instance
        if found is None:
            found = await self.proposable(token).find_one_by_email(token.email)
            token.cache_instance(found)
        return found

    async def require_instance(self, token: ProposalToken) -> Any:
        found = await self.instance(token)
        if found is None:
            raise TargetRecordNotFound(f"no {token.proposable_type} with email {token.email}")
        return found

    async def instance_for(self, token: ProposalToken, name: str) -> Any:
        """Strict instance lookup addressed by the lowercased proposable type, e.g. "user"."""
        if token.proposable_type and name == token.proposable_type.lower():
            return await self.require_instance(token)
        raise AttributeError(f"{type(token).__name__} has no target named {name!r}")

    # Action

    async def action(self, token: ProposalToken) -> Action:
        if token.is_persisted:
            return "remind"
        if await self.instance(token) is None:
            return "invite"
        return "notify"

    async def is_invite(self, token: ProposalToken) -> bool:
        return await self.action(token) == "invite"

    async def is_remind(self, token: ProposalToken) -> bool:
        return await self.action(token) == "remind"

    async def is_notify(self, token: ProposalToken) -> bool:
        return await self.action(token) == "notify"

    # Validation and persistence

    def prepare(self, token: ProposalToken) -> None:
        """Assign the token value and default expiry on a new instance."""
        if token.is_persisted:
            return
        if token.token is None:
            token.token = generate_token()
        if token.expires_at is None:
            token.expires_at = default_expiry()

    async def validate(self, token: ProposalToken) -> None:
        """Raise ValidationFailed listing every problem with token."""
        self.prepare(token)
        errors: list[tuple[str, str]] = []

        for field in ("email", "token", "proposable_type", "expires_at"):
            if not is_present(getattr(token, field)):
                errors.append((field, "can't be blank"))
        if token.proposable_type:
            try:
                self.proposable(token)
            except UnknownProposableType:
                errors.append(("proposable", "can't be blank"))

        if not is_valid_email(token.email):
            errors.append(("email", "is not valid"))

        if token.expects:
            errors.extend(("arguments", message) for message in token.expects.problems(token.arguments))

        if await self._has_conflict(token):
            errors.append(("email", OUTSTANDING_MESSAGE))

        if errors:
            raise ValidationFailed(errors)

    async def _has_conflict(self, token: ProposalToken) -> bool:
        stmt = scope_query(token.email, token.proposable_type, token.resource_type, token.resource_id)
        if token.id is not None:
            stmt = stmt.where(ProposalToken.id != token.id)
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first() is not None

    async def save(self, token: ProposalToken) -> ProposalToken:
        """Validate and flush token. Scope index violations raise ValidationFailed."""
        creating = not token.is_persisted
        await self.validate(token)
        self.db.add(token)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            logger.warning(
                "Concurrent proposal for %s (%s, resource=%s)",
                token.email, token.proposable_type, token.resource,
            )
            raise ValidationFailed([("email", OUTSTANDING_MESSAGE)]) from None
        if creating:
            logger.info("Created proposal token %s for %s (%s)", token.id, token.email, token.proposable_type)
        return token

    # Transitions

    async def _stamp(self, token: ProposalToken, field: str) -> None:
        setattr(token, field, utcnow())
        if token.is_persisted:
            await self.db.flush()

    async def try_accept(self, token: ProposalToken) -> bool:
        """Accept if acceptable; False (no error) otherwise."""
        if not token.is_acceptable:
            return False
        await self._stamp(token, "accepted_at")
        logger.info("Accepted proposal token %s for %s", token.id, token.email)
        return True

    async def accept(self, token: ProposalToken) -> bool:
        if token.is_expired:
            raise TokenExpired()
        if token.is_accepted:
            raise TokenAlreadyAccepted()
        await self._stamp(token, "accepted_at")
        logger.info("Accepted proposal token %s for %s", token.id, token.email)
        return True

    async def try_remind(self, token: ProposalToken) -> bool:
        """Record a reminder if the token's action is remind."""
        if not await self.is_remind(token):
            return False
        await self._stamp(token, "reminded_at")
        logger.info("Reminded %s of proposal token %s", token.email, token.id)
        return True

    async def remind(self, token: ProposalToken) -> bool:
        if not await self.is_remind(token):
            raise ReminderNotApplicable()
        return await self.try_remind(token)
