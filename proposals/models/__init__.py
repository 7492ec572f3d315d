# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Database models."""

from proposals.models.base import Base
from proposals.models.proposal_token import ProposalToken

__all__ = [
    "Base",
    "ProposalToken",
]
