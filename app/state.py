from __future__ import annotations

from typing import Optional
import streamlit as st


def queue_page_navigation(page_name: str) -> None:
    st.session_state["next_page"] = page_name


def pop_page_navigation() -> Optional[str]:
    return st.session_state.pop("next_page", None)


def queue_person_navigation(person_id: int) -> None:
    """Re-center the person network page on another person."""
    st.session_state["active_person"] = int(person_id)
    queue_page_navigation("Person Network")


def get_active_person() -> Optional[int]:
    return st.session_state.get("active_person")
