"""Envío de boletas y acciones privilegiadas al contrato.

English:
    Ballot and privileged action submission. Each entry point performs at
    most one state-changing call per invocation; failures are surfaced with
    the underlying message and never retried automatically.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable, Optional

import structlog

from urna.errors import BallotValidationError, ElectionAlreadyClosedError, SubmissionError
from urna.logging import redact_identifier
from urna.models import BallotInput, TransactionReceipt

if TYPE_CHECKING:
    from urna.gateway import ContractGateway

logger = structlog.get_logger(__name__)

ACTION_CAST_VOTE = "cast_vote"
ACTION_PROPOSE_CLOSE = "propose_close"
ACTION_VALIDATE_VOTER = "validate_voter"

SUCCESS_MESSAGES = {
    ACTION_CAST_VOTE: "Vote successful! Tx: {tx_hash}",
    ACTION_PROPOSE_CLOSE: "Proposal sent successfully! Waiting for multi-sig. Tx: {tx_hash}",
    ACTION_VALIDATE_VOTER: "Validation successful! Tx: {tx_hash}",
}
FAILURE_PREFIXES = {
    ACTION_CAST_VOTE: "Vote failed: ",
    ACTION_PROPOSE_CLOSE: "Proposal failed: ",
    ACTION_VALIDATE_VOTER: "Validation failed: ",
}
REGISTRATION_ACK = "ID has been sent. Waiting for registrar verification. Status will update automatically."


def describe_receipt(receipt: TransactionReceipt) -> str:
    return SUCCESS_MESSAGES[receipt.action].format(tx_hash=receipt.tx_hash)


def _require(value: Optional[str], message: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise BallotValidationError(message)
    return cleaned


class BallotSubmitter:
    """Envía boletas validadas y acciones del panel privilegiado.

    English:
        Sends validated ballots and privileged panel actions. ``on_success``
        runs after an accepted vote so the view refreshes out of cycle; it
        only schedules the refresh, the receipt never waits for that read.
    """

    def __init__(
        self,
        gateway: "ContractGateway",
        *,
        on_success: Optional[Callable[[], None]] = None,
        redact_identifiers: bool = False,
    ) -> None:
        self._gateway = gateway
        self._on_success = on_success
        self._redact = redact_identifiers

    async def _write(self, action: str, identity: str, call: Callable[[], Awaitable[str]]) -> TransactionReceipt:
        sender = redact_identifier(identity, self._redact)
        try:
            tx_hash = await call()
        except Exception as exc:  # noqa: BLE001
            logger.error("submission_failed", action=action, sender=sender, error=str(exc))
            raise SubmissionError(str(exc)) from exc
        logger.info("submission_ok", action=action, sender=sender, tx_hash=tx_hash)
        return TransactionReceipt(action=action, tx_hash=tx_hash, sender=identity)

    async def submit(self, identity: str, ballot: BallotInput, voter_identifier: str) -> TransactionReceipt:
        """Emite el voto; ``ballot`` ya fue validado por el adaptador.

        English: Casts the vote; ``ballot`` was already validated by the adapter.
        """
        card_id = _require(voter_identifier, "Enter Card ID!")
        choices = ballot.to_contract_args()
        receipt = await self._write(
            ACTION_CAST_VOTE,
            identity,
            lambda: self._gateway.cast_vote(choices, card_id, identity),
        )
        if self._on_success is not None:
            self._on_success()
        return receipt

    async def propose_close(self, identity: str) -> TransactionReceipt:
        """Propone el cierre (multi-firma). Cerrar es irreversible.

        English: Proposes closing the election (multi-sig). Closing is one-way.
        """
        try:
            closed = await self._gateway.election_closed()
        except Exception as exc:  # noqa: BLE001
            raise SubmissionError(str(exc)) from exc
        if closed:
            raise ElectionAlreadyClosedError("Election already closed!")
        return await self._write(
            ACTION_PROPOSE_CLOSE,
            identity,
            lambda: self._gateway.propose_and_close_election(identity),
        )

    async def validate_voter(self, identity: str, target_identity: str, voter_identifier: str) -> TransactionReceipt:
        target = _require(target_identity, "Voter address and card ID are required!")
        card_id = _require(voter_identifier, "Voter address and card ID are required!")
        return await self._write(
            ACTION_VALIDATE_VOTER,
            identity,
            lambda: self._gateway.validate_voter(target, card_id, identity),
        )

    def acknowledge_registration(self, voter_identifier: str) -> str:
        return acknowledge_registration(voter_identifier)


def acknowledge_registration(voter_identifier: str) -> str:
    """Acusa recibo del ID; el registrador valida fuera de este cliente.

    English:
        Acknowledges the card ID. No call is made; the registrar validates
        it and the voter status updates through polling.
    """
    _require(voter_identifier, "Enter Card ID!")
    logger.info("registration_acknowledged")
    return REGISTRATION_ACK
