"""
Screen state for the login and feed pages.

The controllers hold form fields and loading flags and talk to the backend
through ``GuestbookClient``; the Streamlit layer only renders them.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

from .sdk import GuestbookClient, Session, Subscription, User


logger = logging.getLogger(__name__)

LOGIN = "login"
SIGNUP = "signup"
PASSWORD_MIN_LENGTH = 6
ENTRY_COLUMNS = "id, author_id, nickname, message, created_at"


def format_date(value: str) -> str:
    try:
        parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return value or ""
    return parsed.strftime("%b %d, %Y %H:%M")


def nickname_of(user: Optional[User]) -> str:
    if user is None:
        return ""
    return user.user_metadata.get("nickname") or ""


class AuthController:
    def __init__(self, client: GuestbookClient) -> None:
        self.client = client
        self.email = ""
        self.password = ""
        self.error = ""
        self.loading = False
        self.mode = LOGIN

    def switch_mode(self, mode: str) -> None:
        if mode not in (LOGIN, SIGNUP):
            raise ValueError(f"Unknown auth mode: {mode}")
        self.mode = mode
        self.error = ""

    def field_error(self) -> Optional[str]:
        if not self.email.strip():
            return "Please enter your email."
        if not self.password:
            return "Please enter your password."
        if len(self.password) < PASSWORD_MIN_LENGTH:
            return f"Password should be at least {PASSWORD_MIN_LENGTH} characters."
        return None

    def submit(self) -> bool:
        """Sign in or sign up; True means the caller should navigate to the feed."""
        if self.loading:
            return False
        self.error = self.field_error() or ""
        if self.error:
            return False

        self.loading = True
        try:
            if self.mode == LOGIN:
                response = self.client.auth.sign_in_with_password(self.email, self.password)
            else:
                response = self.client.auth.sign_up(self.email, self.password)
        finally:
            self.loading = False

        if response.error:
            self.error = response.error.message
            return False
        self.password = ""
        return True


class FeedController:
    def __init__(self, client: GuestbookClient) -> None:
        self.client = client
        self.user: Optional[User] = None
        self.entries: List[Dict[str, Any]] = []
        self.message = ""
        self.loading = False
        self.nickname = ""
        self.editing_nickname = False
        self.new_nickname = ""
        self.nickname_loading = False
        self._subscription: Optional[Subscription] = None

    @property
    def mounted(self) -> bool:
        return self._subscription is not None

    @property
    def can_post(self) -> bool:
        return self.user is not None and bool(self.nickname)

    @property
    def needs_nickname(self) -> bool:
        return self.user is not None and not self.nickname

    def mount(self) -> None:
        if self.mounted:
            return
        response = self.client.auth.get_user()
        self._set_user(response.data)
        self._subscription = self.client.auth.on_auth_state_change(self._on_auth_change)
        self.fetch_entries()

    def unmount(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def _set_user(self, user: Optional[User]) -> None:
        self.user = user
        if user is not None:
            self.nickname = nickname_of(user)

    def _on_auth_change(self, event: str, session: Optional[Session]) -> None:
        self._set_user(session.user if session else None)

    def can_delete(self, entry: Dict[str, Any]) -> bool:
        return self.user is not None and self.user.id == entry.get("author_id")

    def fetch_entries(self) -> None:
        response = (
            self.client.table("guestbook")
            .select(ENTRY_COLUMNS)
            .order("created_at", desc=True)
            .execute()
        )
        if response.error:
            logger.warning("Could not load entries: %s", response.error.message)
        if response.data is not None:
            self.entries = response.data

    def submit_post(self) -> bool:
        if self.loading or self.user is None:
            return False
        nickname = self.nickname.strip()
        message = self.message.strip()
        if not nickname or not message:
            return False

        self.loading = True
        try:
            response = (
                self.client.table("guestbook")
                .insert({"author_id": self.user.id, "nickname": nickname, "message": message})
                .execute()
            )
            if response.error:
                logger.warning("Post was not saved: %s", response.error.message)
                return False
            self.message = ""
            self.fetch_entries()
            return True
        finally:
            self.loading = False

    def delete_entry(self, entry_id: int) -> bool:
        response = self.client.table("guestbook").delete().eq("id", entry_id).execute()
        if response.error:
            logger.warning("Entry %s was not deleted: %s", entry_id, response.error.message)
            return False
        self.fetch_entries()
        return True

    def logout(self) -> None:
        self.client.auth.sign_out()
        self.user = None
        self.nickname = ""

    def start_nickname_edit(self) -> None:
        self.new_nickname = self.nickname
        self.editing_nickname = True

    def cancel_nickname_edit(self) -> None:
        self.editing_nickname = False

    def save_nickname(self) -> bool:
        """Store the nickname on the profile, then rewrite it on the user's entries.

        The two writes are not atomic: if the second fails the profile keeps
        the new nickname while older entries show the previous one until the
        next successful change.
        """
        trimmed = self.new_nickname.strip()
        if not trimmed or self.nickname_loading:
            return False

        self.nickname_loading = True
        try:
            response = self.client.auth.update_user({"nickname": trimmed})
            if response.error:
                logger.warning("Nickname was not updated: %s", response.error.message)
                return False

            if self.user is not None:
                cascade = (
                    self.client.table("guestbook")
                    .update({"nickname": trimmed})
                    .eq("author_id", self.user.id)
                    .execute()
                )
                if cascade.error:
                    logger.warning(
                        "Nickname changed but entries kept the old one: %s",
                        cascade.error.message,
                    )

            self.nickname = trimmed
            self.editing_nickname = False
            self.new_nickname = ""
            self.fetch_entries()
            return True
        finally:
            self.nickname_loading = False


__all__ = [
    "AuthController",
    "FeedController",
    "format_date",
    "nickname_of",
    "LOGIN",
    "SIGNUP",
]
