"""
Streamlit frontend for the guestbook.
"""

from __future__ import annotations

import html
import os
import re
from typing import Optional, Tuple

import streamlit as st

from guestbook_web.controllers import SIGNUP, LOGIN, AuthController, FeedController, format_date
from guestbook_web.sdk import GuestbookClient


FEED = "feed"
MESSAGE_MAX_LENGTH = 500
NICKNAME_MAX_LENGTH = 50
MARKDOWN_SPECIALS = re.compile(r"([\\`*_{}\[\]()#+\-.!|~])")


def build_client() -> GuestbookClient:
    return GuestbookClient(
        os.getenv("BACKEND_URL", "http://127.0.0.1:5000"),
        api_prefix=os.getenv("API_PREFIX", "/api"),
        timeout=float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
    )


def inject_styles() -> None:
    st.markdown(
        """
        <style>
        .flash-message {
            padding: 0.9rem 1.2rem;
            border-radius: 0.75rem;
            margin-bottom: 1.5rem;
            font-weight: 500;
            animation: flash-fade 10s forwards;
        }
        .flash-success {
            background-color: rgba(46, 204, 113, 0.2);
            color: #2ecc71;
        }
        .flash-info {
            background-color: rgba(52, 152, 219, 0.2);
            color: #3498db;
        }
        @keyframes flash-fade {
            0%, 90% { opacity: 1; }
            100% { opacity: 0; display: none; }
        }
        .auth-wrapper {
            max-width: 420px;
            margin: 0 auto;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


def ensure_session_defaults() -> None:
    if "client" not in st.session_state:
        st.session_state["client"] = build_client()
    client = st.session_state["client"]
    defaults = {
        "page": lambda: FEED,
        "flash": lambda: None,
        "post_form_version": lambda: 0,
        "auth": lambda: AuthController(client),
        "feed": lambda: FeedController(client),
    }
    for key, factory in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = factory()


def set_flash(level: str, message: str) -> None:
    st.session_state["flash"] = (level, message)


def pop_flash() -> Optional[Tuple[str, str]]:
    flash = st.session_state.get("flash")
    st.session_state["flash"] = None
    return flash


def display_flash() -> None:
    flash = pop_flash()
    if not flash:
        return
    level, message = flash
    css_class = {"success": "flash-success"}.get(level, "flash-info")
    st.markdown(
        f"<div class='flash-message {css_class}'>{message}</div>",
        unsafe_allow_html=True,
    )


def navigate(page: str, flash: Optional[Tuple[str, str]] = None) -> None:
    feed: FeedController = st.session_state["feed"]
    if page != FEED:
        feed.unmount()
    st.session_state["page"] = page
    if flash:
        set_flash(*flash)
    st.rerun()


def render_login(auth: AuthController) -> None:
    is_login = auth.mode == LOGIN
    st.header("Login" if is_login else "Sign Up")
    st.markdown(
        "Sign in to leave a message" if is_login else "Create an account to get started"
    )

    _, center, _ = st.columns([1, 2, 1])
    with center:
        st.markdown("<div class='auth-wrapper'>", unsafe_allow_html=True)
        with st.form("auth_form"):
            email = st.text_input("Email", value=auth.email, key="auth_email")
            password = st.text_input("Password", type="password", key="auth_password")
            submitted = st.form_submit_button(
                "Login" if is_login else "Sign Up",
                disabled=auth.loading,
                use_container_width=True,
            )
            if submitted:
                auth.email = email
                auth.password = password
                if auth.submit():
                    navigate(FEED)
        if auth.error:
            st.error(auth.error)
        st.markdown("</div>", unsafe_allow_html=True)

    st.divider()
    if is_login:
        st.write("Don't have an account?")
        if st.button("Sign Up", key="switch_signup"):
            auth.switch_mode(SIGNUP)
            st.rerun()
    else:
        st.write("Already have an account?")
        if st.button("Login", key="switch_login"):
            auth.switch_mode(LOGIN)
            st.rerun()
    if st.button("Back to guestbook", key="back_to_feed"):
        navigate(FEED)


def render_header(feed: FeedController) -> None:
    title_col, nick_col, account_col = st.columns([4, 2, 2])
    title_col.header("Guestbook")
    if feed.user is None:
        if account_col.button("Login", key="header_login", use_container_width=True):
            navigate(LOGIN)
        return

    if feed.nickname and not feed.editing_nickname:
        if nick_col.button(f"{escape_markdown(feed.nickname)} ✎", key="edit_nickname", help="Change nickname"):
            feed.start_nickname_edit()
            st.rerun()
    account_col.caption(feed.user.email)
    if account_col.button("Log out", key="logout", use_container_width=True):
        feed.logout()
        set_flash("info", "You have been logged out.")
        st.rerun()


def render_nickname_edit(feed: FeedController) -> None:
    st.subheader("Change nickname")
    with st.form("nickname_edit_form"):
        new_nickname = st.text_input(
            "New nickname", value=feed.new_nickname, max_chars=NICKNAME_MAX_LENGTH
        )
        cols = st.columns([1, 1])
        submitted = cols[0].form_submit_button(
            "Saving..." if feed.nickname_loading else "Save",
            disabled=feed.nickname_loading,
        )
        cancelled = cols[1].form_submit_button("Cancel")
    st.caption("Your earlier messages will show the new nickname as well.")
    if submitted:
        feed.new_nickname = new_nickname
        if feed.save_nickname():
            set_flash("success", "Nickname updated.")
        st.rerun()
    if cancelled:
        feed.cancel_nickname_edit()
        st.rerun()


def render_nickname_setup(feed: FeedController) -> None:
    st.subheader("Choose a nickname")
    st.caption("This is the name shown next to your messages.")
    with st.form("nickname_setup_form"):
        new_nickname = st.text_input(
            "Nickname", value=feed.new_nickname, max_chars=NICKNAME_MAX_LENGTH
        )
        submitted = st.form_submit_button(
            "Saving..." if feed.nickname_loading else "Set nickname",
            disabled=feed.nickname_loading,
        )
    if submitted:
        feed.new_nickname = new_nickname
        feed.save_nickname()
        st.rerun()


def escape_markdown(text: str) -> str:
    return MARKDOWN_SPECIALS.sub(r"\\\1", text)


def render_post_form(feed: FeedController) -> None:
    # A new key after each successful post gives an empty text area; a failed
    # post keeps the same key, so the typed text stays on screen.
    key = f"post_message_{st.session_state['post_form_version']}"
    with st.form("post_form"):
        message = st.text_area(
            "Message",
            value=feed.message,
            key=key,
            placeholder="Leave a message",
            max_chars=MESSAGE_MAX_LENGTH,
            height=100,
            label_visibility="collapsed",
        )
        submitted = st.form_submit_button(
            "Posting..." if feed.loading else "Post", disabled=feed.loading
        )
    if submitted:
        feed.message = message
        if feed.submit_post():
            st.session_state["post_form_version"] += 1
            st.rerun()


def render_entries(feed: FeedController) -> None:
    if not feed.entries:
        st.info("No messages yet. Be the first to write one!")
        return
    for entry in feed.entries:
        with st.container(border=True):
            head_col, action_col = st.columns([6, 1])
            nickname = escape_markdown(html.escape(entry["nickname"]))
            head_col.markdown(
                f"**{nickname}** &nbsp; "
                f"<small>{html.escape(format_date(entry['created_at']))}</small>",
                unsafe_allow_html=True,
            )
            if feed.can_delete(entry):
                if action_col.button("Delete", key=f"delete_{entry['id']}"):
                    feed.delete_entry(entry["id"])
                    st.rerun()
            st.text(entry["message"])


def render_feed(feed: FeedController) -> None:
    feed.mount()
    render_header(feed)

    if feed.editing_nickname:
        render_nickname_edit(feed)
        st.divider()

    if feed.needs_nickname:
        render_nickname_setup(feed)
    elif feed.can_post:
        render_post_form(feed)
    elif feed.user is None:
        st.info("Log in to leave a message.")
        if st.button("Login", key="prompt_login"):
            navigate(LOGIN)

    st.divider()
    render_entries(feed)


def main():
    st.set_page_config(page_title="Guestbook", page_icon="📝")
    ensure_session_defaults()
    inject_styles()

    display_flash()

    if st.session_state["page"] == LOGIN:
        render_login(st.session_state["auth"])
    else:
        render_feed(st.session_state["feed"])


if __name__ == "__main__":
    main()
