from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Iterable

EXPLODING_FACE = 6


@dataclass
class Dice:
    seed: int
    roll_log: list[dict] = field(default_factory=list)
    rng: random.Random = field(init=False)

    def __post_init__(self) -> None:
        self.rng = random.Random(self.seed)

    def draws(self) -> int:
        total = 0
        for entry in self.roll_log:
            rolls = entry.get("rolls", [])
            if isinstance(rolls, list):
                total += len(rolls)
        return total


def restore_dice(seed: int, roll_index: int) -> Dice:
    dice = Dice(seed=seed)
    for _ in range(roll_index):
        dice.rng.random()
    return dice


def _log_roll(
    dice: Dice,
    *,
    formula: str,
    result: int,
    rolls: Iterable[int],
    label: str | None,
) -> None:
    dice.roll_log.append(
        {
            "formula": formula,
            "result": result,
            "rolls": list(rolls),
            "label": label,
        }
    )


def die_roll(dice: Dice, sides: int = 6, *, label: str | None = None) -> int:
    if sides <= 0:
        raise ValueError(f"Invalid die size: {sides}")
    result = dice.rng.randint(1, sides)
    _log_roll(dice, formula=f"1d{sides}", result=result, rolls=[result], label=label)
    return result


def exploding_die_roll(dice: Dice, *, label: str | None = None) -> dict:
    rolls = []
    while True:
        value = dice.rng.randint(1, EXPLODING_FACE)
        rolls.append(value)
        if value != EXPLODING_FACE:
            break
    total = sum(rolls)
    _log_roll(dice, formula="1d6!", result=total, rolls=rolls, label=label)
    return {"sum": total, "rolls": rolls}


def swerve(dice: Dice, *, label: str | None = None) -> dict:
    positives = exploding_die_roll(dice, label=f"{label}:positive" if label else "positive")
    negatives = exploding_die_roll(dice, label=f"{label}:negative" if label else "negative")
    boxcars = (
        positives["rolls"][0] == EXPLODING_FACE and negatives["rolls"][0] == EXPLODING_FACE
    )
    return {
        "positives": positives,
        "negatives": negatives,
        "total": positives["sum"] - negatives["sum"],
        "boxcars": boxcars,
    }
