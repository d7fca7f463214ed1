"""ES: Clasificación del resultado final y visualización del escrutinio.

EN: Final outcome classification and tally visualization.

This module centralizes:
- ES: Clasificación del mensaje del contrato (ganador, sin quórum, sin votos).
- EN: Contract message classification (winner, no quorum, no votes).
- ES: Geometría de barras y sectores, leyenda y colores deterministas.
- EN: Bar and slice geometry, legend and deterministic colours.
- ES: Figuras Plotly para el dashboard y la exportación HTML.
- EN: Plotly figures for the dashboard and HTML export.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

import plotly.graph_objects as go

from urna.models import TallyResult, VotingSystem

BAR_MAX_HEIGHT = 200.0
FULL_CIRCLE = 2 * math.pi


class OutcomeKind(str, Enum):
    WINNER = "winner"
    NO_QUORUM = "no_quorum"
    NO_VOTES = "no_votes"


class ChartKind(str, Enum):
    BAR = "bar"
    PIE = "pie"


@dataclass(frozen=True)
class OutcomePatterns:
    """Marcadores del mensaje humano devuelto por ``getResults``.

    English:
        Markers of the human-readable message returned by ``getResults``.
        Matching is by substring, in priority order: quorum, then no votes.
    """

    no_quorum: str = "Quorum non atteint"
    no_votes: str = "Aucun vote"
    winner_prefix: str = "Gagnant: "


DEFAULT_PATTERNS = OutcomePatterns()


@dataclass(frozen=True)
class Outcome:
    kind: OutcomeKind
    label: str
    message: str


@dataclass(frozen=True)
class OutcomeStyle:
    icon: str
    color: str
    heading: str


OUTCOME_STYLES = {
    OutcomeKind.WINNER: OutcomeStyle(icon="fa-crown", color="#f59e0b", heading="Winner"),
    OutcomeKind.NO_QUORUM: OutcomeStyle(icon="fa-exclamation-triangle", color="#ef4444", heading="Result"),
    OutcomeKind.NO_VOTES: OutcomeStyle(icon="fa-inbox", color="#ef4444", heading="Result"),
}


@dataclass(frozen=True)
class Bar:
    index: int
    score: int
    height: float
    color: str
    label: str


@dataclass(frozen=True)
class PieSlice:
    index: int
    score: int
    start_angle: float
    end_angle: float
    color: str
    label: str

    @property
    def sweep(self) -> float:
        return self.end_angle - self.start_angle


@dataclass(frozen=True)
class LegendEntry:
    index: int
    color: str
    label: str


@dataclass(frozen=True)
class RenderedResults:
    """Salida pura del renderizado; dos llamadas iguales producen valores iguales.

    English: Pure render output; equal inputs give equal values.
    """

    outcome: Outcome
    style: OutcomeStyle
    system_label: str
    chart_kind: ChartKind
    bars: Tuple[Bar, ...] = ()
    slices: Tuple[PieSlice, ...] = ()
    legend: Tuple[LegendEntry, ...] = ()
    empty: bool = False


def classify_outcome(message: str, patterns: OutcomePatterns = DEFAULT_PATTERNS) -> Outcome:
    """Clasifica el mensaje del contrato.

    English:
        Classifies the contract message. The winner label is the message with
        the winner prefix stripped.
    """
    if patterns.no_quorum in message:
        return Outcome(kind=OutcomeKind.NO_QUORUM, label=message, message=message)
    if patterns.no_votes in message:
        return Outcome(kind=OutcomeKind.NO_VOTES, label=message, message=message)
    return Outcome(kind=OutcomeKind.WINNER, label=message.replace(patterns.winner_prefix, "", 1), message=message)


def candidate_color(index: int) -> str:
    return f"hsl({index * 72}, 50%, 50%)"


def candidate_label(index: int, score: int, suffix: str = "") -> str:
    return f"Cand {index + 1}: {score}{suffix}"


def compute_bars(scores: Sequence[int], max_height: float = BAR_MAX_HEIGHT) -> Tuple[Bar, ...]:
    """Altura proporcional al máximo; con máximo 0 todas las barras miden 0.

    English: Height proportional to the maximum; all zero when the maximum is 0.
    """
    top = max(scores, default=0)
    return tuple(
        Bar(
            index=index,
            score=score,
            height=(score / top) * max_height if top > 0 else 0.0,
            color=candidate_color(index),
            label=candidate_label(index, score),
        )
        for index, score in enumerate(scores)
    )


def compute_pie_slices(scores: Sequence[int]) -> Tuple[PieSlice, ...]:
    """Sectores contiguos en orden de índice que cubren exactamente 2π.

    English:
        Contiguous slices in index order covering exactly 2π. Angles come from
        cumulative sums so the last slice ends on 2π without drift. A zero sum
        yields no slices.
    """
    total = sum(scores)
    if total <= 0:
        return ()
    slices = []
    running = 0
    for index, score in enumerate(scores):
        start = FULL_CIRCLE * running / total
        running += score
        slices.append(
            PieSlice(
                index=index,
                score=score,
                start_angle=start,
                end_angle=FULL_CIRCLE * running / total,
                color=candidate_color(index),
                label=candidate_label(index, score, "%"),
            )
        )
    return tuple(slices)


def render(tally: TallyResult, patterns: OutcomePatterns = DEFAULT_PATTERNS) -> RenderedResults:
    """Renderiza el escrutinio: pastel para proporcional, barras en otro caso.

    English: Renders the tally: pie for proportional, bars otherwise.
    """
    outcome = classify_outcome(tally.outcome_message, patterns)
    scores = tally.candidate_scores
    if tally.voting_system is VotingSystem.PROPORTIONAL:
        slices = compute_pie_slices(scores)
        legend = tuple(
            LegendEntry(index=index, color=candidate_color(index), label=candidate_label(index, score, "%"))
            for index, score in enumerate(scores)
        )
        return RenderedResults(
            outcome=outcome,
            style=OUTCOME_STYLES[outcome.kind],
            system_label=tally.system_label,
            chart_kind=ChartKind.PIE,
            slices=slices,
            legend=legend,
            empty=not slices,
        )
    bars = compute_bars(scores)
    return RenderedResults(
        outcome=outcome,
        style=OUTCOME_STYLES[outcome.kind],
        system_label=tally.system_label,
        chart_kind=ChartKind.BAR,
        bars=bars,
        legend=tuple(LegendEntry(index=bar.index, color=bar.color, label=bar.label) for bar in bars),
        empty=not bars,
    )


def build_figure(rendered: RenderedResults, title: Optional[str] = None) -> go.Figure:
    """ES: Construye la figura Plotly del escrutinio.

    EN: Build the Plotly figure for the tally.
    """
    fig = go.Figure()
    heading = title or f"{rendered.style.heading}: {rendered.outcome.label}"

    if rendered.empty:
        fig.add_annotation(
            x=0.5,
            y=0.5,
            xref="paper",
            yref="paper",
            text="No votes to display",
            showarrow=False,
        )
    elif rendered.chart_kind is ChartKind.PIE:
        fig.add_trace(
            go.Pie(
                labels=[entry.label for entry in rendered.legend],
                values=[piece.score for piece in rendered.slices],
                marker=dict(colors=[piece.color for piece in rendered.slices]),
                sort=False,
                direction="clockwise",
                rotation=90,
                textinfo="percent",
            )
        )
    else:
        fig.add_trace(
            go.Bar(
                x=[f"Cand {bar.index + 1}" for bar in rendered.bars],
                y=[bar.score for bar in rendered.bars],
                marker_color=[bar.color for bar in rendered.bars],
                text=[bar.label for bar in rendered.bars],
                textposition="outside",
                name=rendered.system_label,
            )
        )

    fig.update_layout(
        title=heading,
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        showlegend=rendered.chart_kind is ChartKind.PIE,
        margin=dict(l=20, r=20, t=60, b=20),
    )
    if rendered.outcome.kind is not OutcomeKind.WINNER:
        fig.update_layout(title_font=dict(color=rendered.style.color))
    return fig
