"""Test helpers for refdesk tests.

This package contains reusable builders for platform events and a seeded
chat platform stub.

Usage:
    from tests.helpers import seeded_platform, trigger_message
"""

from tests.helpers.relay_factories import (
    BRITAIN,
    CANADA,
    GB_STAFF,
    JUNIOR_REFEREE,
    REFEREE,
    RETAG,
    TRIGGER,
    make_session,
    private_message,
    seeded_platform,
    trigger_message,
)

__all__ = [
    "BRITAIN",
    "CANADA",
    "GB_STAFF",
    "JUNIOR_REFEREE",
    "REFEREE",
    "RETAG",
    "TRIGGER",
    "make_session",
    "private_message",
    "seeded_platform",
    "trigger_message",
]
