"""Visibilidad de acciones privilegiadas según rol y fase de la elección.

English:
    Privileged action visibility from role and election phase. Recomputed
    from scratch on every snapshot; nothing is cached.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from urna.models import RoleSnapshot


@dataclass(frozen=True)
class ActionState:
    """Estado de un botón privilegiado / State of a privileged button."""

    enabled: bool
    label: str
    title: str = ""


@dataclass(frozen=True)
class ActionSet:
    """Acciones expuestas en el panel privilegiado.

    English: Actions exposed in the privileged panel. ``None`` means hidden.
    """

    panel_visible: bool
    close_election: Optional[ActionState] = None
    validate_voter: Optional[ActionState] = None


HIDDEN = ActionSet(panel_visible=False)


def compute_visibility(role: RoleSnapshot, election_closed: bool) -> ActionSet:
    """Calcula el panel privilegiado / Computes the privileged panel.

    Closing is one-way: once closed, admins still see the action but it is
    disabled with an explanatory label.
    """
    if not (role.is_admin or role.is_registrar):
        return HIDDEN

    close_action = None
    if role.is_admin:
        if election_closed:
            close_action = ActionState(enabled=False, label="Election Closed", title="Election already closed")
        else:
            close_action = ActionState(enabled=True, label="Close Election", title="Propose to close election")

    validate_action = None
    if role.is_registrar:
        validate_action = ActionState(enabled=True, label="Validate Voter")

    return ActionSet(panel_visible=True, close_election=close_action, validate_voter=validate_action)
