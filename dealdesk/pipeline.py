"""Deal pipeline rules: stage probabilities, weighted value and stage moves.

Stages are ordered in name only. Any stage may move to any other stage,
including out of the closed stages.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from .errors import ValidationError
from .models.enums import DealStage

if TYPE_CHECKING:
    from .models.deal import Deal

STAGE_PROBABILITY: dict[DealStage, int] = {
    DealStage.PROSPECTING: 10,
    DealStage.QUALIFICATION: 25,
    DealStage.NEEDS_ANALYSIS: 40,
    DealStage.VALUE_PROPOSITION: 50,
    DealStage.PROPOSAL: 60,
    DealStage.NEGOTIATION: 75,
    DealStage.CLOSED_WON: 100,
    DealStage.CLOSED_LOST: 0,
}

CLOSED_STAGES = frozenset({DealStage.CLOSED_WON, DealStage.CLOSED_LOST})


def default_probability(stage: DealStage | str) -> int:
    return STAGE_PROBABILITY[DealStage(stage)]


def validate_probability(probability: int) -> int:
    if isinstance(probability, bool) or not isinstance(probability, int):
        raise ValidationError("Probability must be an integer", field="probability")
    if not 0 <= probability <= 100:
        raise ValidationError("Probability must be between 0 and 100", field="probability")
    return probability


def weighted_value(value: Decimal | int | float | None, probability: int | None) -> int:
    """Return ``value * probability / 100`` rounded half-up to a whole unit."""
    if value is None or probability is None:
        return 0
    amount = Decimal(str(value)) * Decimal(probability) / Decimal(100)
    return int(amount.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def move_stage(deal: Deal, new_stage: DealStage | str, new_probability: int | None = None) -> Deal:
    """Set the deal's stage and probability in place.

    Without an explicit probability the stage default is applied, even when
    the stage does not change. ``actual_close_date`` is left alone.
    """
    stage = DealStage(new_stage)
    if new_probability is None:
        probability = default_probability(stage)
    else:
        probability = validate_probability(new_probability)
    deal.stage = stage
    deal.probability = probability
    return deal
