from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from rules.combatants import CombatantRegistry
from rules.core import Dice, die_roll
from rules.settings import EncounterConfig, InitiativePolicy

logger = logging.getLogger(__name__)


@dataclass
class InitiativeResult:
    combatant_id: int
    name: str
    roll: int
    speed: int
    shot: int

    def to_dict(self) -> dict:
        return asdict(self)


def roll_initiative(
    registry: CombatantRegistry,
    dice: Dice,
    config: EncounterConfig,
) -> list[InitiativeResult]:
    results = []
    for combatant in registry:
        roll = die_roll(dice, config.initiative_die, label=f"initiative:{combatant.id}")
        speed = combatant.effective_speed
        if config.initiative_policy is InitiativePolicy.ACCUMULATE:
            shot = combatant.current_shots + roll + speed
        else:
            shot = roll + speed
        combatant.current_shots = shot
        combatant.defense_bonus = 0
        results.append(
            InitiativeResult(
                combatant_id=combatant.id,
                name=combatant.name,
                roll=roll,
                speed=speed,
                shot=shot,
            )
        )
    logger.debug("Rolled initiative for %d combatants", len(results))
    return results
