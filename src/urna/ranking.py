"""Lista ordenada de candidatos para la boleta de segunda vuelta instantánea.

English:
    Ordered candidate list backing the instant-runoff ballot. Any input
    surface (pointer drag, keyboard reordering, numeric rank fields) edits the
    ranking through these operations; the list always stays a permutation of
    the candidate set and is read at submission time.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Sequence, Tuple

from urna.errors import BallotValidationError
from urna.models import CANDIDATES


class RankingList:
    """Permutación mutable del conjunto fijo de candidatos.

    English: Mutable permutation of the fixed candidate set.
    """

    def __init__(self, order: Optional[Iterable[int]] = None, candidates: Sequence[int] = CANDIDATES) -> None:
        self._candidates = tuple(candidates)
        items = list(self._candidates if order is None else order)
        if sorted(items) != sorted(self._candidates):
            raise BallotValidationError("Must rank all 5 different candidates!")
        self._items = items

    def __iter__(self) -> Iterator[int]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"RankingList({self._items!r})"

    def as_tuple(self) -> Tuple[int, ...]:
        return tuple(self._items)

    def rank_of(self, candidate: int) -> int:
        """Rango 1-based del candidato / 1-based rank of the candidate."""
        return self._index(candidate) + 1

    def _index(self, candidate: int) -> int:
        try:
            return self._items.index(candidate)
        except ValueError as exc:
            raise BallotValidationError(f"Unknown candidate: {candidate}") from exc

    def move(self, candidate: int, position: int) -> None:
        """Mueve el candidato a la posición 0-based indicada (acotada).

        English: Moves the candidate to the given 0-based position (clamped).
        """
        self._items.pop(self._index(candidate))
        position = max(0, min(position, len(self._items)))
        self._items.insert(position, candidate)

    def insert_before(self, candidate: int, target: int) -> None:
        """Soltar ``candidate`` sobre ``target`` (semántica de arrastrar y soltar).

        English: Drops ``candidate`` onto ``target`` (drag-and-drop semantics).
        """
        if candidate == target:
            return
        self._index(target)
        self._items.pop(self._index(candidate))
        self._items.insert(self._items.index(target), candidate)

    def move_up(self, candidate: int) -> None:
        self.move(candidate, self._index(candidate) - 1)

    def move_down(self, candidate: int) -> None:
        self.move(candidate, self._index(candidate) + 1)

    def set_rank(self, candidate: int, rank: int) -> None:
        """Asigna un rango 1-based (campo numérico) / Assigns a 1-based rank."""
        if not 1 <= rank <= len(self._items):
            raise BallotValidationError(f"Rank must be between 1 and {len(self._items)}")
        self.move(candidate, rank - 1)
