"""ES: Interfaz Streamlit del cliente Urna.

EN: Streamlit UI shell for the Urna client.

Run with ``streamlit run dashboard/streamlit_app.py``. Each rerun opens a
short-lived session, reads one snapshot and renders it; the status panel is
refreshed on the configured polling interval.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import streamlit as st

from urna.adapter import InputSurface, RawBallotInput
from urna.config import load_settings
from urna.errors import ElectionAlreadyClosedError, UrnaError
from urna.logging import setup_logging
from urna.models import CANDIDATES
from urna.ranking import RankingList
from urna.results import build_figure
from urna.session import Session, open_session
from urna.submitter import acknowledge_registration, describe_receipt
from urna.sync import ClientView


def run_with_session(action: Callable[[Session], Awaitable[Any]]) -> Any:
    async def runner() -> Any:
        session = await open_session(settings)
        async with session:
            await session.connect(start_polling=False)
            return await action(session)

    return asyncio.run(runner())


async def _read_view(session: Session) -> ClientView | None:
    if session.sync.latest is None and session.sync.last_error is not None:
        raise session.sync.last_error
    return session.sync.latest


def submit(action: Callable[[Session], Awaitable[Any]], failure_prefix: str) -> None:
    try:
        receipt = run_with_session(action)
    except ElectionAlreadyClosedError as exc:
        st.error(str(exc))
        return
    except UrnaError as exc:
        st.error(f"{failure_prefix}{exc}")
        return
    # The refreshed snapshot is read on the rerun; the message survives it.
    st.session_state.flash = describe_receipt(receipt)
    st.rerun()


@st.cache_resource
def configure_logging(log_level: str, log_dir: Any) -> None:
    setup_logging(log_level, log_dir)


st.set_page_config(page_title="Urna", page_icon="🗳️", layout="wide")
st.title("Urna election client")

try:
    settings = load_settings()
except ValueError as exc:
    st.error(f"Contract initialization error: {exc}")
    st.stop()

configure_logging(settings.LOG_LEVEL, settings.LOG_DIR)

if "flash" in st.session_state:
    st.success(st.session_state.pop("flash"))

if "ranking" not in st.session_state:
    st.session_state.ranking = RankingList()


@st.fragment(run_every=settings.POLL_INTERVAL_SECONDS)
def status_panel() -> None:
    try:
        view = run_with_session(_read_view)
    except UrnaError as exc:
        st.error(f"Error loading status: {exc}")
        return
    if view is None:
        return
    st.session_state.view = view

    st.caption(f"Account: {view.identity}")
    cols = st.columns(4)
    cols[0].metric("Voting system", view.election.voting_system.label)
    cols[1].metric("Election status", view.election.status_label)
    cols[2].metric("Total registered", view.election.total_registered)
    cols[3].metric("Total cast", view.election.total_cast)
    st.write(f"Voter status: **{view.voter.status_label}** · {view.voter.vote_label}")

    if view.results is not None:
        st.subheader(f"{view.results.style.heading}: {view.results.outcome.label}")
        st.plotly_chart(build_figure(view.results), use_container_width=True)


status_panel()

view: ClientView | None = st.session_state.get("view")
if view is not None and view.surface is not None:
    st.header("Vote")
    card_id = st.text_input("ID Carte", key="vote_id")
    if view.surface is InputSurface.RANKED_CHOICE:
        ranking: RankingList = st.session_state.ranking
        for position, candidate in enumerate(ranking.as_tuple()):
            row = st.columns([0.6, 0.2, 0.2])
            row[0].write(f"{position + 1}. Candidate {candidate}")
            if row[1].button("▲", key=f"up_{candidate}"):
                ranking.move_up(candidate)
                st.rerun()
            if row[2].button("▼", key=f"down_{candidate}"):
                ranking.move_down(candidate)
                st.rerun()
        raw = RawBallotInput(ranking=ranking.as_tuple())
    else:
        choice = st.radio("Candidate", CANDIDATES, index=None, format_func=lambda c: f"Candidate {c}")
        raw = RawBallotInput(selected=() if choice is None else (choice,))
    if st.button("Cast vote"):
        submit(lambda session: session.submit_ballot(raw, card_id), "Vote failed: ")

    st.header("Register")
    reg_id = st.text_input("Card ID", key="reg_id")
    if st.button("Send ID"):
        try:
            st.info(acknowledge_registration(reg_id))
        except UrnaError as exc:
            st.error(str(exc))

if view is not None and view.actions.panel_visible:
    st.header("Administration")
    close_action = view.actions.close_election
    if close_action is not None:
        if st.button(close_action.label, disabled=not close_action.enabled, help=close_action.title):
            submit(lambda session: session.propose_close(), "Proposal failed: ")
    if view.actions.validate_voter is not None:
        with st.form("validate_voter"):
            voter_address = st.text_input("Voter Address")
            voter_id = st.text_input("ID Carte")
            if st.form_submit_button(view.actions.validate_voter.label):
                submit(lambda session: session.validate_voter(voter_address, voter_id), "Validation failed: ")
