"""Fixtures compartidos: gateway y wallet en memoria.

English:
    Shared fixtures: in-memory gateway and wallet standing in for the
    contract and the identity provider.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

import pytest

from urna.models import ElectionSnapshot, RoleSnapshot, TallyResult, VoterSnapshot, VotingSystem

ALICE = "0x" + "a1" * 20
BOB = "0x" + "b2" * 20


class FakeGateway:
    """Gateway en memoria con fallos configurables / In-memory gateway with configurable failures."""

    def __init__(self) -> None:
        self.voting_system = VotingSystem.PLURALITY_QUORUM
        self.closed = False
        self.total_registered = 10
        self.total_cast = 3
        self.voter_state = VoterSnapshot(is_registered=True, validation_count=2, has_voted=False)
        self.role_state = RoleSnapshot()
        self.results = ("FPTP_Quorum", "Gagnant: Candidat 3", [0, 10, 5, 20, 8, 1])
        self.failures: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.gate: Optional[asyncio.Event] = None
        self.entered: Optional[asyncio.Event] = None
        self.disconnected = False
        self.tx_counter = 0

    def _check(self, name: str) -> None:
        self.calls.append((name,))
        if name in self.failures:
            raise self.failures[name]

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def election(self) -> ElectionSnapshot:
        if self.entered is not None:
            self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        self._check("election")
        return ElectionSnapshot(
            voting_system=self.voting_system,
            is_closed=self.closed,
            total_registered=self.total_registered,
            total_cast=self.total_cast,
        )

    async def current_system(self) -> VotingSystem:
        self._check("current_system")
        return self.voting_system

    async def election_closed(self) -> bool:
        self._check("election_closed")
        return self.closed

    async def voter(self, identity: str) -> VoterSnapshot:
        self._check("voter")
        return self.voter_state

    async def roles(self, identity: str) -> RoleSnapshot:
        self._check("roles")
        return self.role_state

    async def get_results(self, fallback_system: Optional[VotingSystem] = None) -> TallyResult:
        self._check("get_results")
        label, message, scores = self.results
        try:
            system = VotingSystem.from_label(label)
        except ValueError:
            system = fallback_system
        return TallyResult(voting_system=system, system_label=label, outcome_message=message, scores=tuple(scores))

    def _tx(self) -> str:
        self.tx_counter += 1
        return f"0x{self.tx_counter:064x}"

    async def cast_vote(self, ballot: Sequence[int], voter_identifier: str, sender: str) -> str:
        self.calls.append(("cast_vote", list(ballot), voter_identifier, sender))
        if "cast_vote" in self.failures:
            raise self.failures["cast_vote"]
        self.total_cast += 1
        return self._tx()

    async def propose_and_close_election(self, sender: str) -> str:
        self.calls.append(("propose_and_close_election", sender))
        if "propose_and_close_election" in self.failures:
            raise self.failures["propose_and_close_election"]
        return self._tx()

    async def validate_voter(self, target_identity: str, voter_identifier: str, sender: str) -> str:
        self.calls.append(("validate_voter", target_identity, voter_identifier, sender))
        if "validate_voter" in self.failures:
            raise self.failures["validate_voter"]
        return self._tx()

    async def disconnect(self) -> None:
        self.disconnected = True


class FakeWallet:
    def __init__(self, accounts: Optional[List[str]] = None, error: Optional[Exception] = None) -> None:
        self.accounts = [ALICE] if accounts is None else accounts
        self.error = error
        self.requests = 0

    async def request_accounts(self) -> List[str]:
        self.requests += 1
        if self.error is not None:
            raise self.error
        return list(self.accounts)

    async def transact(self, call: Any, sender: str, gas: int) -> str:
        return "0x" + "00" * 32


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> bool:
    """Espera activa acotada sobre el event loop / Bounded wait on the event loop."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if predicate():
            return True
        await asyncio.sleep(0.005)
    return predicate()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def wallet() -> FakeWallet:
    return FakeWallet()


@pytest.fixture
def fakes() -> Any:
    """Expone las clases y helpers a los módulos de test.

    English: Exposes the fake classes and helpers to test modules.
    """

    class _Fakes:
        Gateway = FakeGateway
        Wallet = FakeWallet
        wait_until = staticmethod(wait_until)
        alice = ALICE
        bob = BOB

    return _Fakes
