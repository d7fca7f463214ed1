"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/urna/gateway.py`.
Acceso tipado y asíncrono a los métodos del contrato electoral.

Componentes detectados:
  - load_abi
  - ContractGateway

Notas:
- Las lecturas no tienen efectos secundarios.
- Las escrituras se delegan al wallet con un límite de gas fijo.

======================== ENGLISH ========================
File: `src/urna/gateway.py`.
Typed async accessor over the election contract methods.

Detected components:
  - load_abi
  - ContractGateway

Notes:
- Reads are side-effect free.
- Writes are delegated to the wallet with a fixed gas ceiling.
"""

# Gateway Module
# AUTO-DOC-INDEX
#
# ES: Índice rápido
#   1) Propósito del módulo
#   2) Componentes principales
#   3) Puntos de extensión
#
# EN: Quick index
#   1) Module purpose
#   2) Main components
#   3) Extension points
#
# Secciones / Sections:
#   - Configuración / Configuration
#   - Lógica principal / Core logic
#   - Integraciones / Integrations



from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

import structlog

from urna.errors import InitializationError
from urna.models import (
    DEFAULT_GAS_LIMIT,
    ElectionSnapshot,
    RoleSnapshot,
    TallyResult,
    VoterSnapshot,
    VotingSystem,
)

if TYPE_CHECKING:
    from web3 import AsyncWeb3

    from urna.config import UrnaSettings
    from urna.wallet import WalletProvider

logger = structlog.get_logger(__name__)

_VOTER_FIELDS = ("isRegistered", "validationCount", "hasVoted")


def load_abi(path: Path) -> List[dict[str, Any]]:
    """Carga el ABI del contrato desde JSON.

    English:
        Loads the contract ABI from JSON. Both a bare list and a Truffle/Hardhat
        artifact (``{"abi": [...]}``) are accepted.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise InitializationError(f"Contract initialization error: {exc}") from exc
    if isinstance(raw, dict):
        raw = raw.get("abi")
    if not isinstance(raw, list):
        raise InitializationError(f"Contract initialization error: {path.name} has no ABI list")
    return raw


def _voter_from_raw(raw: Any) -> VoterSnapshot:
    """Normaliza la estructura ``voters(address)`` devuelta por web3.

    English:
        Normalizes the ``voters(address)`` struct returned by web3: a plain
        tuple, a named tuple or a mapping.
    """
    if hasattr(raw, "_asdict"):
        raw = raw._asdict()
    if isinstance(raw, dict):
        values = [raw[name] for name in _VOTER_FIELDS]
    else:
        values = list(raw)[: len(_VOTER_FIELDS)]
    is_registered, validation_count, has_voted = values
    return VoterSnapshot(
        is_registered=bool(is_registered),
        validation_count=int(validation_count),
        has_voted=bool(has_voted),
    )


class ContractGateway:
    """Fachada sobre el contrato electoral / Facade over the election contract."""

    def __init__(
        self,
        web3: "AsyncWeb3",
        contract: Any,
        *,
        wallet: Optional["WalletProvider"] = None,
        gas_limit: int = DEFAULT_GAS_LIMIT,
    ) -> None:
        self._web3 = web3
        self._contract = contract
        self._wallet = wallet
        self._gas_limit = gas_limit

    @classmethod
    def from_settings(cls, settings: "UrnaSettings") -> "ContractGateway":
        """Construye web3, contrato y wallet a partir de la configuración.

        English: Builds web3, contract and wallet from settings.
        """
        from web3 import AsyncHTTPProvider, AsyncWeb3

        from urna.wallet import build_wallet

        abi = load_abi(settings.ABI_PATH)
        web3 = AsyncWeb3(AsyncHTTPProvider(settings.RPC_URL))
        try:
            address = web3.to_checksum_address(settings.CONTRACT_ADDRESS)
        except ValueError as exc:
            raise InitializationError(f"Contract initialization error: {exc}") from exc
        contract = web3.eth.contract(address=address, abi=abi)
        wallet = build_wallet(settings, web3)
        return cls(web3, contract, wallet=wallet, gas_limit=settings.GAS_LIMIT)

    @property
    def web3(self) -> "AsyncWeb3":
        return self._web3

    @property
    def wallet(self) -> Optional["WalletProvider"]:
        return self._wallet

    @property
    def gas_limit(self) -> int:
        return self._gas_limit

    async def ensure_available(self) -> None:
        if not await self._web3.is_connected():
            raise InitializationError("Unable to connect to blockchain provider.")

    async def disconnect(self) -> None:
        provider = self._web3.provider
        disconnect = getattr(provider, "disconnect", None)
        if disconnect is not None:
            await disconnect()

    def _address(self, identity: str) -> str:
        return self._web3.to_checksum_address(identity)

    # Lecturas / Reads

    async def current_system(self) -> VotingSystem:
        return VotingSystem(int(await self._contract.functions.currentSystem().call()))

    async def election_closed(self) -> bool:
        return bool(await self._contract.functions.electionClosed().call())

    async def total_voters_registered(self) -> int:
        return int(await self._contract.functions.totalVotersRegistered().call())

    async def total_votes_cast(self) -> int:
        return int(await self._contract.functions.totalVotesCast().call())

    async def election(self) -> ElectionSnapshot:
        """Lee los cuatro campos globales en secuencia.

        English: Reads the four global fields in sequence.
        """
        return ElectionSnapshot(
            voting_system=await self.current_system(),
            is_closed=await self.election_closed(),
            total_registered=await self.total_voters_registered(),
            total_cast=await self.total_votes_cast(),
        )

    async def voter(self, identity: str) -> VoterSnapshot:
        raw = await self._contract.functions.voters(self._address(identity)).call()
        return _voter_from_raw(raw)

    async def is_admin(self, identity: str) -> bool:
        return bool(await self._contract.functions.isAdmin(self._address(identity)).call())

    async def is_registrar(self, identity: str) -> bool:
        return bool(await self._contract.functions.isRegistrar(self._address(identity)).call())

    async def roles(self, identity: str) -> RoleSnapshot:
        return RoleSnapshot(
            is_admin=await self.is_admin(identity),
            is_registrar=await self.is_registrar(identity),
        )

    async def get_results(self, fallback_system: Optional[VotingSystem] = None) -> TallyResult:
        """Lee ``getResults()`` y lo convierte en ``TallyResult``.

        English:
            Reads ``getResults()`` into a ``TallyResult``. When the system label
            is not recognised, ``fallback_system`` is used.
        """
        system_label, outcome_message, scores = await self._contract.functions.getResults().call()
        try:
            voting_system = VotingSystem.from_label(str(system_label))
        except ValueError:
            if fallback_system is None:
                raise
            logger.warning("results_system_label_unknown", label=system_label)
            voting_system = fallback_system
        return TallyResult(
            voting_system=voting_system,
            system_label=str(system_label),
            outcome_message=str(outcome_message),
            scores=tuple(int(score) for score in scores),
        )

    # Escrituras / Writes

    async def _send(self, call: Any, sender: str) -> str:
        if self._wallet is None:
            raise RuntimeError("No wallet configured for state-changing calls.")
        return await self._wallet.transact(call, self._address(sender), self._gas_limit)

    async def cast_vote(self, ballot: Sequence[int], voter_identifier: str, sender: str) -> str:
        call = self._contract.functions.castVote(list(ballot), voter_identifier)
        return await self._send(call, sender)

    async def propose_and_close_election(self, sender: str) -> str:
        return await self._send(self._contract.functions.proposeAndCloseElection(), sender)

    async def validate_voter(self, target_identity: str, voter_identifier: str, sender: str) -> str:
        call = self._contract.functions.validateVoter(self._address(target_identity), voter_identifier)
        return await self._send(call, sender)
