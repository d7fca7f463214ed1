"""Contexto de sesión: identidad conectada, sondeo activo y puntos de entrada.

English:
    Session context holding the connected identity and the active polling
    handle. Created at connect, torn down on close; independent sessions can
    coexist, which keeps tests isolated.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

import structlog

from urna.adapter import RawBallotInput, encode_input
from urna.config import UrnaSettings, load_settings
from urna.errors import InitializationError, WalletConnectionError
from urna.gateway import ContractGateway
from urna.logging import bind_context
from urna.models import TransactionReceipt
from urna.results import DEFAULT_PATTERNS, OutcomePatterns
from urna.submitter import BallotSubmitter
from urna.sync import DEFAULT_POLL_INTERVAL_SECONDS, ClientView, ElectionStateSync

if TYPE_CHECKING:
    from urna.wallet import WalletProvider

logger = structlog.get_logger(__name__)


class Session:
    """Sesión de un votante contra un contrato electoral.

    English: A voter session against one election contract.
    """

    def __init__(
        self,
        gateway: ContractGateway,
        wallet: "WalletProvider",
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        patterns: OutcomePatterns = DEFAULT_PATTERNS,
        redact_identifiers: bool = False,
        contract_address: Optional[str] = None,
    ) -> None:
        self._gateway = gateway
        self._wallet = wallet
        self._contract_address = contract_address
        self._poll_interval = poll_interval
        self._patterns = patterns
        self._redact = redact_identifiers
        self._identity: Optional[str] = None
        self._sync: Optional[ElectionStateSync] = None
        self._submitter: Optional[BallotSubmitter] = None

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.close()

    @property
    def identity(self) -> Optional[str]:
        return self._identity

    @property
    def contract_address(self) -> Optional[str]:
        return self._contract_address

    @property
    def gateway(self) -> ContractGateway:
        return self._gateway

    @property
    def sync(self) -> ElectionStateSync:
        if self._sync is None:
            raise WalletConnectionError("Wallet not connected.")
        return self._sync

    @property
    def submitter(self) -> BallotSubmitter:
        if self._submitter is None:
            raise WalletConnectionError("Wallet not connected.")
        return self._submitter

    def _require_identity(self) -> str:
        if self._identity is None:
            raise WalletConnectionError("Wallet not connected.")
        return self._identity

    async def connect(self, *, start_polling: bool = True) -> str:
        """Solicita cuentas al wallet; la primera es la identidad activa.

        English:
            Requests accounts from the wallet; the first one is the active
            identity. Loads the status once and starts polling. May be called
            again after a failure; a reconnect restarts polling.
        """
        try:
            accounts = await self._wallet.request_accounts()
        except Exception as exc:  # noqa: BLE001
            raise WalletConnectionError(f"Connection failed: {exc}") from exc
        if not accounts:
            raise WalletConnectionError("Connection failed: wallet returned no accounts")

        if self._sync is not None:
            self._sync.stop_polling()

        self._identity = accounts[0]
        self._sync = ElectionStateSync(
            self._gateway,
            self._identity,
            interval=self._poll_interval,
            patterns=self._patterns,
            redact_identifiers=self._redact,
        )
        self._submitter = BallotSubmitter(
            self._gateway,
            on_success=self._sync.request_refresh,
            redact_identifiers=self._redact,
        )
        bind_context(logger, self._identity, self._contract_address, redact=self._redact).info("wallet_connected")

        await self._sync.poll_once()
        if start_polling:
            self._sync.start_polling()
        return self._identity

    async def close(self) -> None:
        """Detiene el sondeo y reinicia el contexto de sesión.

        English: Stops polling and resets the session context.
        """
        if self._sync is not None:
            self._sync.stop_polling()
            await self._sync.drain()
        self._identity = None
        self._sync = None
        self._submitter = None
        await self._gateway.disconnect()
        logger.info("session_closed")

    async def refresh(self) -> Optional[ClientView]:
        return await self.sync.poll_once()

    async def submit_ballot(self, raw: RawBallotInput, voter_identifier: str) -> TransactionReceipt:
        """Valida la entrada cruda contra el sistema vigente y emite el voto.

        English:
            Validates raw input against the current voting system and casts
            the vote. The system comes from the latest snapshot, or from a
            direct read before the first one.
        """
        identity = self._require_identity()
        latest = self.sync.latest
        if latest is not None:
            voting_system = latest.election.voting_system
        else:
            voting_system = await self._gateway.current_system()
        ballot = encode_input(raw, voting_system)
        return await self.submitter.submit(identity, ballot, voter_identifier)

    async def propose_close(self) -> TransactionReceipt:
        return await self.submitter.propose_close(self._require_identity())

    async def validate_voter(self, target_identity: str, voter_identifier: str) -> TransactionReceipt:
        return await self.submitter.validate_voter(self._require_identity(), target_identity, voter_identifier)

    def register(self, voter_identifier: str) -> str:
        return self.submitter.acknowledge_registration(voter_identifier)


async def open_session(settings: Optional[UrnaSettings] = None, config_path: Optional[Path] = None) -> Session:
    """Construye gateway y wallet y verifica el proveedor.

    English:
        Builds gateway and wallet and checks the provider. Configuration or
        provider problems raise ``InitializationError``.
    """
    if settings is None:
        try:
            settings = load_settings(config_path)
        except ValueError as exc:
            raise InitializationError(str(exc)) from exc

    gateway = ContractGateway.from_settings(settings)
    try:
        await gateway.ensure_available()
    except InitializationError:
        await gateway.disconnect()
        raise
    except Exception as exc:  # noqa: BLE001
        await gateway.disconnect()
        raise InitializationError(f"Unable to connect to blockchain provider: {exc}") from exc

    wallet = gateway.wallet
    if wallet is None:
        raise InitializationError("No wallet available.")
    return Session(
        gateway,
        wallet,
        poll_interval=settings.POLL_INTERVAL_SECONDS,
        redact_identifiers=settings.LOG_REDACT_IDENTIFIERS,
        contract_address=settings.CONTRACT_ADDRESS,
    )
