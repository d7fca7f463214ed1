"""
======================== ÍNDICE / INDEX ========================
1. Descripción general / Overview
2. Componentes principales / Main components
3. Notas de mantenimiento / Maintenance notes

======================== ESPAÑOL ========================
Archivo: `src/urna/sync.py`.
Sondeo periódico del contrato y publicación de la vista del cliente
(elección, votante, roles, formulario activo y resultados).

Componentes detectados:
  - ClientView
  - ElectionStateSync

Notas:
- Un solo temporizador activo; reiniciar cancela el anterior.
- Un solo poll_once en vuelo publica a la vez (guardia de reentrada).
- Un refresco pedido durante un ciclo en vuelo se ejecuta al terminar este.
- Un error de lectura afecta solo a ese ciclo; el sondeo continúa.

======================== ENGLISH ========================
File: `src/urna/sync.py`.
Periodic contract polling and publication of the client view (election,
voter, roles, active form and results).

Detected components:
  - ClientView
  - ElectionStateSync

Notes:
- One active timer; restarting cancels the previous one.
- One in-flight poll_once publishes at a time (reentrancy guard).
- A refresh requested while a tick is in flight runs once that tick ends.
- A read error only affects its own tick; polling continues.
"""

# Sync Module
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

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, List, Optional, Set

import structlog

from urna.adapter import InputSurface, select_surface
from urna.errors import ReadError
from urna.logging import redact_identifier
from urna.models import ElectionSnapshot, RoleSnapshot, TallyResult, VoterSnapshot
from urna.results import DEFAULT_PATTERNS, OutcomePatterns, RenderedResults, render
from urna.roles import ActionSet, compute_visibility

if TYPE_CHECKING:
    from urna.gateway import ContractGateway

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0


@dataclass(frozen=True)
class ClientView:
    """Snapshot publicado a la interfaz / Snapshot published to the UI.

    ``surface`` is ``None`` once the election is closed, when ``results``
    replaces the vote form.
    """

    identity: str
    election: ElectionSnapshot
    voter: VoterSnapshot
    role: RoleSnapshot
    actions: ActionSet
    surface: Optional[InputSurface]
    tally: Optional[TallyResult]
    results: Optional[RenderedResults]
    observed_at: datetime


ViewListener = Callable[[ClientView], None]
ErrorListener = Callable[[ReadError], None]


class ElectionStateSync:
    """Dueño del ciclo de sondeo y del último snapshot publicado.

    English: Owner of the polling cycle and of the last published snapshot.
    """

    def __init__(
        self,
        gateway: "ContractGateway",
        identity: str,
        *,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        patterns: OutcomePatterns = DEFAULT_PATTERNS,
        redact_identifiers: bool = False,
    ) -> None:
        self._gateway = gateway
        self._identity = identity
        self._interval = interval
        self._patterns = patterns
        self._redact = redact_identifiers
        self._latest: Optional[ClientView] = None
        self._last_error: Optional[ReadError] = None
        self._listeners: List[ViewListener] = []
        self._error_listeners: List[ErrorListener] = []
        self._timer: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()
        self._in_flight = False
        self._refresh_pending = False
        self._generation = 0

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def latest(self) -> Optional[ClientView]:
        return self._latest

    @property
    def last_error(self) -> Optional[ReadError]:
        return self._last_error

    @property
    def is_polling(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def subscribe_errors(self, listener: ErrorListener) -> Callable[[], None]:
        self._error_listeners.append(listener)
        return lambda: self._error_listeners.remove(listener)

    # Ciclo de vida / Lifecycle

    def start_polling(self, interval: Optional[float] = None) -> None:
        """Inicia el temporizador; un inicio previo se cancela, no se apila.

        English: Starts the timer; a previous one is cancelled, not layered.
        """
        if interval is not None:
            if interval <= 0:
                raise ValueError("Polling interval must be positive")
            self._interval = interval
        if self._timer is not None:
            self._timer.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._run(self._interval))
        logger.info("polling_started", interval_seconds=self._interval)

    def stop_polling(self) -> None:
        """Cancela solo el temporizador; lecturas en vuelo se descartan al terminar.

        English:
            Cancels the timer only. Reads already in flight finish and their
            result is discarded.
        """
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.info("polling_stopped")
        self._refresh_pending = False
        self._generation += 1

    async def drain(self) -> None:
        """Espera a que terminen los ciclos en vuelo / Waits for in-flight ticks."""
        while self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)

    def _spawn_tick(self) -> asyncio.Task:
        tick = asyncio.get_running_loop().create_task(self.poll_once())
        self._ticks.add(tick)
        tick.add_done_callback(self._ticks.discard)
        return tick

    def request_refresh(self) -> None:
        """Programa un ciclo fuera de calendario sin esperarlo.

        English:
            Schedules an out-of-cycle tick without awaiting it. When a tick is
            already in flight the request is kept and served right after it,
            so the refresh is never dropped by the reentrancy guard.
        """
        if self._in_flight:
            self._refresh_pending = True
            return
        self._spawn_tick()

    async def _run(self, interval: float) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            now = loop.time()
            while next_fire <= now:
                next_fire += interval
            # Ticks run as their own tasks so a slow read never delays the timer.
            self._spawn_tick()

    # Lecturas / Reads

    async def _read_roles(self) -> RoleSnapshot:
        try:
            return await self._gateway.roles(self._identity)
        except Exception as exc:  # noqa: BLE001
            # Least privilege: a failed role check hides the privileged panel.
            logger.warning("role_check_failed", error=str(exc))
            return RoleSnapshot()

    async def _read_view(self) -> ClientView:
        try:
            election = await self._gateway.election()
            voter = await self._gateway.voter(self._identity)
        except Exception as exc:  # noqa: BLE001
            raise ReadError(f"Error loading status: {exc}") from exc

        role = await self._read_roles()

        tally = None
        results = None
        if election.is_closed:
            try:
                tally = await self._gateway.get_results(fallback_system=election.voting_system)
            except Exception as exc:  # noqa: BLE001
                raise ReadError(f"Error loading results: {exc}") from exc
            results = render(tally, self._patterns)

        return ClientView(
            identity=self._identity,
            election=election,
            voter=voter,
            role=role,
            actions=compute_visibility(role, election.is_closed),
            surface=None if election.is_closed else select_surface(election.voting_system),
            tally=tally,
            results=results,
            observed_at=datetime.now(timezone.utc),
        )

    async def poll_once(self) -> Optional[ClientView]:
        """Lee un snapshot completo y lo publica.

        English:
            Reads one full snapshot and publishes it. Never raises for read
            failures: the error goes to error listeners and the previously
            published view stays as it was. Returns ``None`` when skipped,
            failed or discarded.
        """
        if self._in_flight:
            logger.debug("poll_tick_skipped", reason="in_flight")
            return None
        self._in_flight = True
        generation = self._generation
        try:
            view = await self._read_view()
        except ReadError as exc:
            if generation != self._generation:
                logger.info("poll_tick_discarded", reason="polling_stopped")
                return None
            self._last_error = exc
            logger.warning("poll_tick_failed", error=str(exc))
            self._notify_error(exc)
            return None
        finally:
            self._in_flight = False
            if self._refresh_pending and generation == self._generation:
                self._refresh_pending = False
                self._spawn_tick()

        if generation != self._generation:
            logger.info("poll_tick_discarded", reason="polling_stopped")
            return None

        self._latest = view
        self._last_error = None
        logger.debug(
            "poll_tick_ok",
            identity=redact_identifier(self._identity, self._redact),
            system=view.election.voting_system.label,
            closed=view.election.is_closed,
            total_registered=view.election.total_registered,
            total_cast=view.election.total_cast,
        )
        self._notify(view)
        return view

    def _notify(self, view: ClientView) -> None:
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:  # noqa: BLE001
                logger.exception("view_listener_failed")

    def _notify_error(self, error: ReadError) -> None:
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception:  # noqa: BLE001
                logger.exception("error_listener_failed")
