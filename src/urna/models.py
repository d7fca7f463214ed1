"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/urna/models.py`.
Snapshots inmutables del estado electoral leído desde el contrato y
las boletas construidas por el cliente.

Componentes detectados:
  - VotingSystem
  - ElectionSnapshot
  - VoterSnapshot
  - RoleSnapshot
  - TallyResult
  - SingleChoice / RankedChoice
  - TransactionReceipt

Notas:
- Los snapshots nunca se mutan; cada ciclo de sondeo produce uno nuevo.

======================== ENGLISH ========================
File: `src/urna/models.py`.
Immutable snapshots of election state read from the contract and the
ballots built by the client.

Detected components:
  - VotingSystem
  - ElectionSnapshot
  - VoterSnapshot
  - RoleSnapshot
  - TallyResult
  - SingleChoice / RankedChoice
  - TransactionReceipt

Notes:
- Snapshots are never mutated; every poll tick produces a new one.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

CANDIDATES: Tuple[int, ...] = (1, 2, 3, 4, 5)
DEFAULT_GAS_LIMIT = 5_000_000


class VotingSystem(IntEnum):
    """Sistemas de votación soportados, con el índice acordado con el contrato.

    English: Supported voting systems, indexed as agreed with the contract.
    """

    PLURALITY_QUORUM = 0
    PROPORTIONAL = 1
    INSTANT_RUNOFF = 2

    @property
    def label(self) -> str:
        return _SYSTEM_LABELS[self]

    @classmethod
    def from_label(cls, text: str) -> "VotingSystem":
        """Resuelve la etiqueta devuelta por ``getResults``.

        English:
            Resolves the system label returned by ``getResults``. Matching is
            by substring, the same way the contract labels are consumed.
        """
        for system, label in _SYSTEM_LABELS.items():
            if label in text:
                return system
        raise ValueError(f"Unknown voting system label: {text!r}")


_SYSTEM_LABELS = {
    VotingSystem.PLURALITY_QUORUM: "FPTP_Quorum",
    VotingSystem.PROPORTIONAL: "Proportionnel",
    VotingSystem.INSTANT_RUNOFF: "InstantRunoff",
}


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)


class ElectionSnapshot(_Snapshot):
    """Estado global de la elección / Global election state."""

    voting_system: VotingSystem
    is_closed: bool
    total_registered: int = Field(ge=0)
    total_cast: int = Field(ge=0)

    @property
    def status_label(self) -> str:
        return "Closed" if self.is_closed else "Open"


class VoterSnapshot(_Snapshot):
    """Estado del votante conectado / Connected voter state."""

    is_registered: bool
    validation_count: int = Field(ge=0, le=2)
    has_voted: bool

    @model_validator(mode="after")
    def voted_implies_registered(self) -> "VoterSnapshot":
        """has_voted must imply is_registered."""
        if self.has_voted and not self.is_registered:
            raise ValueError("has_voted requires is_registered")
        return self

    @property
    def status_label(self) -> str:
        if self.is_registered:
            return "Registered"
        return f"Awaiting verification ({self.validation_count}/2)"

    @property
    def vote_label(self) -> str:
        return "Voted" if self.has_voted else "Not yet voted"


class RoleSnapshot(_Snapshot):
    """Roles privilegiados de la identidad / Privileged roles of the identity."""

    is_admin: bool = False
    is_registrar: bool = False


class TallyResult(_Snapshot):
    """Resultado final publicado por el contrato al cerrar.

    English:
        Final result published by the contract once closed. ``scores`` keeps
        the raw contract sequence; slot 0 is reserved and never rendered.
    """

    voting_system: VotingSystem
    system_label: str
    outcome_message: str
    scores: Tuple[int, ...]

    @model_validator(mode="after")
    def scores_non_negative(self) -> "TallyResult":
        if any(score < 0 for score in self.scores):
            raise ValueError("scores must be non-negative")
        return self

    @property
    def candidate_scores(self) -> Tuple[int, ...]:
        return self.scores[1:]


@dataclass(frozen=True)
class SingleChoice:
    """Boleta de una sola opción (mayoría con quórum o proporcional).

    English: Single-choice ballot (plurality with quorum or proportional).
    """

    candidate_id: int

    def to_contract_args(self) -> list[int]:
        return [self.candidate_id]


@dataclass(frozen=True)
class RankedChoice:
    """Boleta ordenada para segunda vuelta instantánea.

    English: Ranked ballot for instant-runoff.
    """

    ordered_candidate_ids: Tuple[int, ...]

    def to_contract_args(self) -> list[int]:
        return list(self.ordered_candidate_ids)


BallotInput = Union[SingleChoice, RankedChoice]


@dataclass(frozen=True)
class TransactionReceipt:
    """Transacción aceptada por el proveedor / Transaction accepted by the provider."""

    action: str
    tx_hash: str
    sender: str
