# Copyright (C) 2024 RompMusic Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Token value generation and expiry defaults."""

from datetime import datetime, timezone

from proposals.tokens import as_utc, default_expiry, generate_token


def test_generated_tokens_avoid_ambiguous_characters():
    """No +, /, =, l, I, O or 0 ever appears; length stays at 20."""
    for _ in range(500):
        token = generate_token()
        assert len(token) == 20
        assert not set(token) & set("+/=lIO0")


def test_generated_tokens_differ():
    assert len({generate_token() for _ in range(100)}) == 100


def test_default_expiry_is_one_year_out():
    now = datetime(2026, 3, 5, 12, 30, tzinfo=timezone.utc)
    assert default_expiry(now) == datetime(2027, 3, 5, 12, 30, tzinfo=timezone.utc)


def test_default_expiry_from_leap_day():
    now = datetime(2028, 2, 29, tzinfo=timezone.utc)
    assert default_expiry(now) == datetime(2029, 2, 28, tzinfo=timezone.utc)


def test_default_expiry_is_in_the_future():
    assert default_expiry() > datetime.now(timezone.utc)


def test_as_utc_attaches_timezone_to_naive_values():
    naive = datetime(2026, 1, 1, 8, 0)
    assert as_utc(naive).tzinfo is timezone.utc
    aware = datetime(2026, 1, 1, 8, 0, tzinfo=timezone.utc)
    assert as_utc(aware) is aware
