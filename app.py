from contextlib import contextmanager
from typing import List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from core.auth import AuthFailure, FirebaseAuthGate
from core.charts import staff_bar_chart, status_pie_chart
from core.metrics_summary import status_breakdown
from core.records import (
    CATALOG_COLUMNS,
    EDITABLE_FIELDS,
    InvalidEdit,
    STAFF,
    STAFF_OPTIONS,
    STATUS,
    STATUS_OPTIONS,
)
from core.session import ChangePage, DashboardSession, Refresh, Tick, page_edits
from core.settings import load_settings
from core.store import CollectionStore, OutOfRange

alt.data_transformers.disable_max_rows()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 3px solid #003366;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.6rem;font-weight: 700;color: #003366;}
        .app-top-bar .subtitle {color: #6b7280;font-size: 0.95rem;}
        .clock {text-align: right;color: #003366;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #003366;}
        .card-actions {font-size: 0.9rem;color: #2563eb;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str, actions: Optional[str] = None):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
            <div class="card-actions">{actions or ""}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def get_dashboard_session() -> DashboardSession:
    """One session per browser tab, started on first render."""
    if "dashboard" not in st.session_state:
        settings = load_settings()
        session = DashboardSession(
            CollectionStore(),
            FirebaseAuthGate(settings.firebase_api_key),
            settings=settings,
        )
        session.start()
        st.session_state["dashboard"] = session
    return st.session_state["dashboard"]


# ---------- Login ----------
def render_login(session: DashboardSession):
    inject_base_styles()
    _, mid, _ = st.columns([1, 2, 1])
    with mid:
        with st.form("login"):
            st.subheader("IKU System Login")
            email = st.text_input("Email", placeholder="Email")
            password = st.text_input("Password", type="password", placeholder="Password")
            submitted = st.form_submit_button("LOGIN", use_container_width=True)
        if submitted:
            try:
                session.sign_in(email, password)
            except AuthFailure as exc:
                st.error(str(exc))
            else:
                st.rerun()


# ---------- Dashboard ----------
@st.fragment(run_every="1s")
def render_clock(session: DashboardSession):
    session.dispatch(Tick())
    now = session.current_time
    if now is None:
        return
    st.markdown(
        f"<div class='clock'><div>{now.strftime('%d %B %Y')}</div>"
        f"<div style='font-weight:bold'>{now.strftime('%I:%M:%S %p')}</div></div>",
        unsafe_allow_html=True,
    )


def render_page_header(session: DashboardSession):
    inject_base_styles()
    c1, c2 = st.columns([7, 3])
    with c1:
        st.markdown(
            "<div class='app-top-bar'><div class='page-title'>Senarai Buku IKU</div>"
            "<div class='subtitle'>Sistem Pengurusan Koleksi Buku – Tukar DDC kepada NLM/LC</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        render_clock(session)
        who = session.user.email if session.user else ""
        if session.is_admin:
            who += " (admin)"
        st.caption(who)
        if st.button("Sign out", key="sign_out"):
            session.sign_out()
            st.rerun()


def render_kpi_tiles(session: DashboardSession):
    summary = session.summary()
    cols = st.columns(4)
    cols[0].metric("Total Records", f"{summary.total_records:,}")
    cols[1].metric("Complete", f"{summary.complete_count:,}")
    cols[2].metric("Incomplete", f"{summary.incomplete_count:,}")
    cols[3].metric("Staff Active", f"{summary.active_staff:,}", help="Distinct non-blank STAFF values across all records.")

    chart_cols = st.columns(2)
    with chart_cols[0]:
        with card("Conversion Status"):
            st.altair_chart(status_pie_chart(status_breakdown(summary)), use_container_width=True)
    with chart_cols[1]:
        with card("Staff Performance"):
            if summary.staff_tally:
                st.altair_chart(staff_bar_chart(summary.staff_tally), use_container_width=True)
            else:
                st.info("No records have a staff member assigned yet.")


def grid_column_config():
    config = {
        STATUS: st.column_config.SelectboxColumn(STATUS, options=STATUS_OPTIONS),
        STAFF: st.column_config.SelectboxColumn(STAFF, options=STAFF_OPTIONS),
    }
    for col in CATALOG_COLUMNS:
        config.setdefault(col, st.column_config.TextColumn(col))
    return config


def render_grid(session: DashboardSession):
    top = st.columns([8, 2])
    top[0].markdown("<h3 style='color:#003366'>Pangkalan Data Koleksi</h3>", unsafe_allow_html=True)
    if top[1].button("🔄 Refresh Data", key="refresh"):
        with st.spinner("Loading catalog…"):
            session.dispatch(Refresh())
        st.rerun()

    if session.last_error:
        st.warning(f"Could not refresh the catalog; showing the last loaded data. {session.last_error}")

    visible: List[dict] = session.visible_records()
    page_df = pd.DataFrame(visible, columns=CATALOG_COLUMNS)
    edited = st.data_editor(
        page_df,
        key=f"grid_{session.page}_{session.store.version}",
        column_config=grid_column_config(),
        disabled=[c for c in CATALOG_COLUMNS if c not in EDITABLE_FIELDS],
        hide_index=True,
        num_rows="fixed",
        use_container_width=True,
    )
    edits = page_edits(visible, edited.to_dict(orient="records"))
    if edits:
        try:
            for edit in edits:
                session.dispatch(edit)
        except (InvalidEdit, OutOfRange) as exc:
            st.error(f"Edit could not be applied: {exc}")
        else:
            st.rerun()

    nav = st.columns([2, 6, 2])
    if nav[0].button("Previous", disabled=not session.has_previous, key="prev_page"):
        session.dispatch(ChangePage(session.page - 1))
        st.rerun()
    nav[1].markdown(
        f"<div style='text-align:center'>Page {session.page} of {session.page_count}</div>",
        unsafe_allow_html=True,
    )
    if nav[2].button("Next", disabled=not session.has_next, key="next_page"):
        session.dispatch(ChangePage(session.page + 1))
        st.rerun()


# ---------- UI setup ----------
st.set_page_config(page_title="Senarai Buku IKU", layout="wide")
dashboard = get_dashboard_session()

if dashboard.loading:
    st.stop()

if dashboard.user is None:
    render_login(dashboard)
    st.stop()

render_page_header(dashboard)
render_kpi_tiles(dashboard)
render_grid(dashboard)
