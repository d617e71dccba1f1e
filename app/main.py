from __future__ import annotations

import sys
from pathlib import Path

import streamlit as st

ROOT_DIR = Path(__file__).resolve().parents[1]

# Make the api package importable when run with `streamlit run app/main.py`
sys.path.insert(0, str(ROOT_DIR))

from api.config import load_settings
from api.services.db import Database
from state import pop_page_navigation
from views.person_network import page_multi_person_network, page_person_network

st.set_page_config(page_title="CBDB Network Explorer", layout="wide")


def main() -> None:
    st.title("CBDB Network Explorer")

    settings = load_settings()
    db = Database(settings.db_path)
    if not db.exists():
        st.warning(
            f"No database at {settings.db_path}. Set CBDB_DB_PATH or run "
            "`python -m cli init-db` and load the CBDB tables first."
        )
        return

    st.sidebar.caption(f"Database: {settings.db_path.name}")
    pages = {
        "Person Network": page_person_network,
        "Multi-Person Network": page_multi_person_network,
    }
    names = list(pages.keys())
    next_page = pop_page_navigation()
    index = names.index(next_page) if next_page in names else 0
    page = st.sidebar.radio("Page", names, index=index)
    pages[page](db, settings)


if __name__ == "__main__":
    main()
