"""Proveedores de identidad y firma de transacciones.

English:
    Identity providers and transaction signers. ``NodeWallet`` relies on the
    accounts unlocked in the node (Ganache style, the node signs);
    ``LocalKeyWallet`` signs locally with a key taken from the environment.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List, Protocol

import structlog
from eth_account import Account

from urna.config import UrnaSettings, WalletMode, resolve_private_key
from urna.errors import InitializationError

if TYPE_CHECKING:
    from web3 import AsyncWeb3

logger = structlog.get_logger(__name__)


class WalletProvider(Protocol):
    """Interfaz consumida por la sesión y el gateway.

    English: Interface consumed by the session and the gateway.
    """

    async def request_accounts(self) -> List[str]:
        ...

    async def transact(self, call: Any, sender: str, gas: int) -> str:
        ...


class NodeWallet:
    """Usa las cuentas desbloqueadas del nodo / Uses the node's unlocked accounts."""

    def __init__(self, web3: "AsyncWeb3") -> None:
        self._web3 = web3

    async def request_accounts(self) -> List[str]:
        accounts = await self._web3.eth.accounts
        return [str(account) for account in accounts]

    async def transact(self, call: Any, sender: str, gas: int) -> str:
        tx_hash = await call.transact({"from": sender, "gas": gas})
        return self._web3.to_hex(tx_hash)


class LocalKeyWallet:
    """Firma localmente con ``eth_account`` / Signs locally with ``eth_account``."""

    def __init__(self, web3: "AsyncWeb3", private_key: str, chain_id: int) -> None:
        self._web3 = web3
        self._private_key = private_key
        self._account = Account.from_key(private_key)
        self._chain_id = chain_id

    @property
    def address(self) -> str:
        return self._account.address

    async def request_accounts(self) -> List[str]:
        return [self._account.address]

    async def transact(self, call: Any, sender: str, gas: int) -> str:
        """Construye, firma y envía la transacción.

        English:
            Builds, signs and sends the transaction. The sender must be the
            account owning the local key.
        """
        if sender.lower() != self._account.address.lower():
            raise ValueError(f"Sender {sender} does not match the local signing key")
        nonce = await self._web3.eth.get_transaction_count(self._account.address)
        tx = await call.build_transaction(
            {
                "from": self._account.address,
                "nonce": nonce,
                "chainId": self._chain_id,
                "gas": gas,
                "gasPrice": await self._web3.eth.gas_price,
            }
        )
        signed = Account.sign_transaction(tx, self._private_key)
        raw_tx = getattr(signed, "raw_transaction", None) or signed.rawTransaction
        tx_hash = await self._web3.eth.send_raw_transaction(raw_tx)
        return self._web3.to_hex(tx_hash)


def build_wallet(settings: UrnaSettings, web3: "AsyncWeb3") -> WalletProvider:
    """Construye el wallet configurado / Builds the configured wallet."""
    if settings.WALLET_MODE is WalletMode.LOCAL_KEY:
        private_key = resolve_private_key()
        if not private_key:
            raise InitializationError("Missing private key: set URNA_PRIVATE_KEY for local_key wallet mode.")
        try:
            wallet = LocalKeyWallet(web3, private_key, settings.CHAIN_ID)
        except Exception as exc:  # noqa: BLE001
            raise InitializationError(f"Invalid private key: {exc}") from exc
        logger.info("wallet_ready", mode=settings.WALLET_MODE.value)
        return wallet
    logger.info("wallet_ready", mode=settings.WALLET_MODE.value)
    return NodeWallet(web3)
