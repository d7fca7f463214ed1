"""Tests for the polling cycle and view publication."""

import asyncio

import pytest

from urna.adapter import InputSurface
from urna.errors import ReadError
from urna.models import RoleSnapshot, SingleChoice, VotingSystem
from urna.results import ChartKind, OutcomeKind
from urna.submitter import BallotSubmitter
from urna.sync import ElectionStateSync


def test_poll_once_publishes_open_view(gateway, fakes) -> None:
    sync = ElectionStateSync(gateway, fakes.alice)
    seen = []
    sync.subscribe(seen.append)

    view = asyncio.run(sync.poll_once())

    assert view is not None
    assert sync.latest is view
    assert seen == [view]
    assert view.surface is InputSurface.SINGLE_CHOICE
    assert view.results is None
    assert gateway.count("get_results") == 0
    assert not view.actions.panel_visible


def test_closed_election_replaces_form_with_results(gateway, fakes) -> None:
    gateway.closed = True
    gateway.role_state = RoleSnapshot(is_admin=True)
    sync = ElectionStateSync(gateway, fakes.alice)

    view = asyncio.run(sync.poll_once())

    assert view.surface is None
    assert view.results.chart_kind is ChartKind.BAR
    assert view.results.outcome.kind is OutcomeKind.WINNER
    assert view.tally.candidate_scores == (10, 5, 20, 8, 1)
    assert not view.actions.close_election.enabled


def test_unknown_results_label_falls_back_to_current_system(gateway, fakes) -> None:
    gateway.closed = True
    gateway.voting_system = VotingSystem.PROPORTIONAL
    gateway.results = ("Mystere", "Aucun vote", [0, 0, 0, 0, 0, 0])
    view = asyncio.run(ElectionStateSync(gateway, fakes.alice).poll_once())
    assert view.results.chart_kind is ChartKind.PIE
    assert view.results.empty


def test_read_failure_keeps_previous_view(gateway, fakes) -> None:
    sync = ElectionStateSync(gateway, fakes.alice)
    errors = []
    sync.subscribe_errors(errors.append)

    async def scenario():
        first = await sync.poll_once()
        gateway.failures["voter"] = RuntimeError("node down")
        second = await sync.poll_once()
        return first, second

    first, second = asyncio.run(scenario())

    assert second is None
    assert sync.latest is first
    assert isinstance(sync.last_error, ReadError)
    assert "Error loading status: node down" in str(sync.last_error)
    assert errors == [sync.last_error]


def test_results_failure_publishes_nothing(gateway, fakes) -> None:
    gateway.closed = True
    gateway.failures["get_results"] = RuntimeError("revert")
    sync = ElectionStateSync(gateway, fakes.alice)
    assert asyncio.run(sync.poll_once()) is None
    assert sync.latest is None
    assert str(sync.last_error).startswith("Error loading results:")


def test_role_failure_hides_privileged_panel(gateway, fakes) -> None:
    gateway.role_state = RoleSnapshot(is_admin=True)
    gateway.failures["roles"] = RuntimeError("timeout")
    view = asyncio.run(ElectionStateSync(gateway, fakes.alice).poll_once())
    assert view is not None
    assert view.role == RoleSnapshot()
    assert not view.actions.panel_visible


def test_failing_listener_does_not_block_others(gateway, fakes) -> None:
    sync = ElectionStateSync(gateway, fakes.alice)
    seen = []

    def broken(view):
        raise RuntimeError("listener bug")

    sync.subscribe(broken)
    unsubscribe = sync.subscribe(seen.append)
    asyncio.run(sync.poll_once())
    assert len(seen) == 1

    unsubscribe()
    asyncio.run(sync.poll_once())
    assert len(seen) == 1


def test_reentrant_poll_is_skipped(gateway, fakes) -> None:
    async def scenario():
        gateway.gate = asyncio.Event()
        gateway.entered = asyncio.Event()
        sync = ElectionStateSync(gateway, fakes.alice)
        first = asyncio.create_task(sync.poll_once())
        await gateway.entered.wait()
        skipped = await sync.poll_once()
        gateway.gate.set()
        return skipped, await first

    skipped, first = asyncio.run(scenario())
    assert skipped is None
    assert first is not None
    assert gateway.count("election") == 1


def test_polling_continues_after_failure(gateway, fakes) -> None:
    async def scenario():
        sync = ElectionStateSync(gateway, fakes.alice, interval=0.02)
        seen = []
        sync.subscribe(seen.append)
        gateway.failures["election"] = RuntimeError("flaky")
        sync.start_polling()
        await fakes.wait_until(lambda: gateway.count("election") >= 2)
        del gateway.failures["election"]
        published = await fakes.wait_until(lambda: len(seen) >= 1)
        sync.stop_polling()
        await sync.drain()
        return published, sync

    published, sync = asyncio.run(scenario())
    assert published
    assert sync.last_error is None
    assert not sync.is_polling


def test_restart_replaces_timer(gateway, fakes) -> None:
    async def scenario():
        sync = ElectionStateSync(gateway, fakes.alice, interval=0.05)
        sync.start_polling()
        sync.start_polling()
        sync.start_polling()
        await asyncio.sleep(0.12)
        sync.stop_polling()
        await sync.drain()

    asyncio.run(scenario())
    # A single timer fires at most twice in 0.12s; three layered timers would fire six times.
    assert gateway.count("election") <= 3


def test_stop_discards_in_flight_result(gateway, fakes) -> None:
    async def scenario():
        gateway.gate = asyncio.Event()
        gateway.entered = asyncio.Event()
        sync = ElectionStateSync(gateway, fakes.alice, interval=0.01)
        seen = []
        sync.subscribe(seen.append)
        sync.start_polling()
        await gateway.entered.wait()
        sync.stop_polling()
        gateway.gate.set()
        await sync.drain()
        return sync, seen

    sync, seen = asyncio.run(scenario())
    assert seen == []
    assert sync.latest is None


def test_start_polling_rejects_non_positive_interval(gateway, fakes) -> None:
    async def scenario():
        ElectionStateSync(gateway, fakes.alice).start_polling(0)

    with pytest.raises(ValueError):
        asyncio.run(scenario())


def test_refresh_requested_during_tick_runs_after_it(gateway, fakes) -> None:
    async def scenario():
        gateway.gate = asyncio.Event()
        gateway.entered = asyncio.Event()
        sync = ElectionStateSync(gateway, fakes.alice)
        seen = []
        sync.subscribe(seen.append)
        tick = asyncio.create_task(sync.poll_once())
        await gateway.entered.wait()

        submitter = BallotSubmitter(gateway, on_success=sync.request_refresh)
        await submitter.submit(fakes.alice, SingleChoice(candidate_id=1), "card-1")
        gateway.gate.set()
        await tick
        await sync.drain()
        return seen

    seen = asyncio.run(scenario())
    assert gateway.count("election") == 2
    assert len(seen) == 2
    assert seen[-1].election.total_cast == 4


def test_vote_receipt_does_not_wait_for_refresh(gateway, fakes) -> None:
    async def scenario():
        gateway.gate = asyncio.Event()
        sync = ElectionStateSync(gateway, fakes.alice)
        submitter = BallotSubmitter(gateway, on_success=sync.request_refresh)
        receipt = await asyncio.wait_for(
            submitter.submit(fakes.alice, SingleChoice(candidate_id=2), "card-2"), timeout=0.5
        )
        reads_before_release = gateway.count("election")
        gateway.gate.set()
        await sync.drain()
        return receipt, reads_before_release, sync

    receipt, reads_before_release, sync = asyncio.run(scenario())
    assert receipt.tx_hash.startswith("0x")
    assert reads_before_release == 0
    assert gateway.count("election") == 1
    assert sync.latest.election.total_cast == 4


def test_stop_drops_pending_refresh(gateway, fakes) -> None:
    async def scenario():
        gateway.gate = asyncio.Event()
        gateway.entered = asyncio.Event()
        sync = ElectionStateSync(gateway, fakes.alice)
        tick = asyncio.create_task(sync.poll_once())
        await gateway.entered.wait()
        sync.request_refresh()
        sync.stop_polling()
        gateway.gate.set()
        await tick
        await sync.drain()

    asyncio.run(scenario())
    assert gateway.count("election") == 1
