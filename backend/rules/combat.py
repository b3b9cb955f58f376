from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from rules.combatants import Combatant, CombatantRegistry
from rules.core import Dice, swerve
from rules.errors import InvalidActionType, NotApplicable, UnknownTarget
from rules.settings import EncounterConfig
from rules.statuses import apply_wounds

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    ATTACK = "attack"
    DEFEND = "defend"


@dataclass
class ActionOutcome:
    action_type: ActionType
    actor_id: int
    actor_name: str
    target_id: int | None
    target_name: str | None
    narrative: str
    hit: bool
    damage: int | None = None
    shot_cost: int = 0
    dice: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        payload = {
            "action_type": self.action_type.value,
            "actor_id": self.actor_id,
            "actor_name": self.actor_name,
            "target_id": self.target_id,
            "target_name": self.target_name,
            "narrative": self.narrative,
            "hit": self.hit,
            "shot_cost": self.shot_cost,
            "dice": self.dice,
        }
        if self.damage is not None:
            payload["damage"] = self.damage
        return payload


def parse_action_type(value: object) -> ActionType:
    if isinstance(value, ActionType):
        return value
    key = str(value or "").strip().lower()
    try:
        return ActionType(key)
    except ValueError as exc:
        raise InvalidActionType(f"Unknown action type: {value}") from exc


def calculate_outcome(action_value: int, swerve_total: int, defense: int) -> tuple[int, int]:
    action_result = action_value + swerve_total
    return action_result - defense, action_result


def calculate_damage(base_damage: int, outcome: int, toughness: int) -> tuple[int, int]:
    smackdown = base_damage + outcome - toughness
    return max(0, smackdown), smackdown


def resolve_action(
    registry: CombatantRegistry,
    actor_id: int,
    target_id: int | None,
    action_type: str | ActionType,
    dice: Dice,
    config: EncounterConfig,
    *,
    swerve_override: int | None = None,
) -> ActionOutcome:
    kind = parse_action_type(action_type)
    actor = registry.actor(actor_id)
    target = None
    if target_id is not None:
        target = registry.target(target_id)
    if kind is ActionType.ATTACK and target is None:
        raise UnknownTarget("An attack needs a target.")
    if not actor.in_fight:
        raise NotApplicable(f"{actor.name} is out of the fight.")
    if kind is ActionType.ATTACK and not target.in_fight:
        raise NotApplicable(f"{target.name} is already out of the fight.")

    if kind is ActionType.ATTACK:
        outcome = _resolve_attack(actor, target, dice, swerve_override=swerve_override)
    else:
        outcome = _resolve_defend(actor, target, config)

    cost = config.action_cost(kind.value)
    actor.current_shots -= cost
    outcome.shot_cost = cost
    logger.info(
        "%s by %s (%s): hit=%s damage=%s shots=%s",
        kind.value,
        actor.name,
        actor.id,
        outcome.hit,
        outcome.damage,
        actor.current_shots,
    )
    return outcome


def _resolve_attack(
    actor: Combatant,
    target: Combatant,
    dice: Dice,
    *,
    swerve_override: int | None,
) -> ActionOutcome:
    if swerve_override is None:
        rolled = swerve(dice, label=f"attack:{actor.id}")
        swerve_total = rolled["total"]
    else:
        rolled = None
        swerve_total = swerve_override

    action_value = actor.stats.attack - actor.wound.impairments
    defense = target.stats.defense - target.wound.impairments + target.defense_bonus
    outcome, action_result = calculate_outcome(action_value, swerve_total, defense)
    hit = action_result >= defense

    damage = 0
    smackdown = 0
    if hit:
        damage, smackdown = calculate_damage(actor.stats.damage, outcome, target.stats.toughness)
        target.wound = apply_wounds(target.wound, target.character_type, damage)

    return ActionOutcome(
        action_type=ActionType.ATTACK,
        actor_id=actor.id,
        actor_name=actor.name,
        target_id=target.id,
        target_name=target.name,
        narrative=_attack_narrative(actor, target, hit, damage),
        hit=hit,
        damage=damage,
        dice={
            "swerve": rolled if rolled is not None else {"total": swerve_total},
            "action_value": action_value,
            "action_result": action_result,
            "defense": defense,
            "outcome": outcome,
            "smackdown": smackdown,
        },
    )


def _resolve_defend(
    actor: Combatant,
    target: Combatant | None,
    config: EncounterConfig,
) -> ActionOutcome:
    actor.defense_bonus = config.defend_bonus
    if target is not None and target.id != actor.id:
        narrative = f"{actor.name} braces against {target.name}, gaining +{config.defend_bonus} Defense."
    else:
        narrative = f"{actor.name} takes a defensive stance, gaining +{config.defend_bonus} Defense."
    return ActionOutcome(
        action_type=ActionType.DEFEND,
        actor_id=actor.id,
        actor_name=actor.name,
        target_id=target.id if target is not None else None,
        target_name=target.name if target is not None else None,
        narrative=narrative,
        hit=False,
        dice={"defense_bonus": actor.defense_bonus},
    )


def _attack_narrative(actor: Combatant, target: Combatant, hit: bool, damage: int) -> str:
    if not hit:
        return f"{actor.name} attacks {target.name} but misses!"
    text = f"{actor.name} attacks {target.name} for {damage} damage!"
    if not target.in_fight:
        text += f" {target.name} is out of the fight."
    elif target.wound.impairments:
        text += f" {target.name} is impaired ({target.wound.impairments})."
    return text
