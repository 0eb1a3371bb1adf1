from __future__ import annotations


class CheckinError(Exception):
    """Base class for failures the check-in core knows how to handle."""


class StoreUnavailable(CheckinError):
    """A read or write against the document store failed."""


class DeliveryFailed(CheckinError):
    """A single outbound message could not be sent."""

    def __init__(self, user_id: str, reason: str = "") -> None:
        super().__init__(f"delivery to {user_id} failed: {reason}" if reason else f"delivery to {user_id} failed")
        self.user_id = user_id


class ProfileUnavailable(CheckinError):
    """The messaging platform did not return a profile for the user."""
