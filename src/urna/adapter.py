"""Selección del formulario activo y codificación de boletas por sistema.

English:
    Active input surface selection and per-system ballot encoding. Validation
    happens here, before any submission attempt, so the contract is never
    called with a malformed ballot.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Sequence, Union

from urna.errors import BallotValidationError
from urna.models import CANDIDATES, BallotInput, RankedChoice, SingleChoice, VotingSystem
from urna.ranking import RankingList


class InputSurface(str, Enum):
    """Superficies de entrada del formulario de voto / Vote form input surfaces."""

    SINGLE_CHOICE = "single_choice"
    RANKED_CHOICE = "ranked_choice"


@dataclass(frozen=True)
class RawBallotInput:
    """Valores crudos del formulario / Raw form values.

    ``selected`` holds the checked single-choice values (zero or one for a
    radio group), a bare value or ``None`` for an empty radio group;
    ``ranking`` holds the ranked-choice order.
    """

    selected: Union[Sequence[Any], Any] = ()
    ranking: Union[Sequence[Any], RankingList] = field(default_factory=tuple)


def select_surface(voting_system: VotingSystem) -> InputSurface:
    if voting_system is VotingSystem.INSTANT_RUNOFF:
        return InputSurface.RANKED_CHOICE
    return InputSurface.SINGLE_CHOICE


def _as_candidate(value: Any) -> int:
    try:
        candidate = int(value)
    except (TypeError, ValueError) as exc:
        raise BallotValidationError(f"Invalid candidate: {value!r}") from exc
    if candidate not in CANDIDATES:
        raise BallotValidationError(f"Unknown candidate: {candidate}")
    return candidate


def _encode_ranking(raw_ranking: Union[Sequence[Any], RankingList]) -> RankedChoice:
    values: List[Any] = list(raw_ranking)
    try:
        choices = [int(value) for value in values]
    except (TypeError, ValueError) as exc:
        raise BallotValidationError("Must rank all 5 different candidates!") from exc
    if len(choices) != len(CANDIDATES) or set(choices) != set(CANDIDATES):
        raise BallotValidationError("Must rank all 5 different candidates!")
    return RankedChoice(ordered_candidate_ids=tuple(choices))


def _encode_single(selected: Any) -> SingleChoice:
    if selected is None:
        selected = ()
    elif isinstance(selected, (str, bytes)) or not isinstance(selected, Iterable):
        selected = (selected,)
    values = [value for value in selected if value is not None and value != ""]
    if len(values) != 1:
        raise BallotValidationError("Select a candidate!")
    return SingleChoice(candidate_id=_as_candidate(values[0]))


def encode_input(raw: RawBallotInput, voting_system: VotingSystem) -> BallotInput:
    """Valida y codifica la entrada cruda según el sistema de votación.

    English:
        Validates and encodes raw input for the voting system. Raises
        ``BallotValidationError`` when the ranking is not a permutation of the
        fixed candidates (instant-runoff) or when not exactly one candidate is
        selected (single-choice systems).
    """
    if select_surface(voting_system) is InputSurface.RANKED_CHOICE:
        return _encode_ranking(raw.ranking)
    return _encode_single(raw.selected)
