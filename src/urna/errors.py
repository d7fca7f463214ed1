"""Jerarquía de errores del cliente Urna.

English:
    Error hierarchy for the Urna client.
"""

from __future__ import annotations


class UrnaError(Exception):
    """Error base del cliente.

    English: Base client error.
    """


class InitializationError(UrnaError):
    """Proveedor o metadatos del contrato no disponibles. Fatal para la sesión.

    English: Provider or contract metadata unavailable. Fatal to the session.
    """


class WalletConnectionError(UrnaError):
    """La solicitud de identidad fue rechazada o falló. Reintentable.

    English: Identity request rejected or failed. Retryable.
    """


class ReadError(UrnaError):
    """Falló una lectura del ciclo de sondeo.

    English: A poll-tick read failed.
    """


class BallotValidationError(UrnaError):
    """Entrada inválida detectada antes de cualquier llamada de red.

    English: Invalid input detected before any network call.
    """


class SubmissionError(UrnaError):
    """Falló una escritura (rechazo del wallet, revert o transporte).

    English: A write failed (wallet rejection, revert or transport).
    """


class ElectionAlreadyClosedError(SubmissionError):
    """La propuesta de cierre llegó con la elección ya cerrada.

    English: Close proposal attempted on an already closed election.
    """
