from __future__ import annotations

import logging
from typing import Any

from models import Character, Fight, FightEvent, Shot, Vehicle
from rules.combat import ActionOutcome
from rules.combatants import Combatant, CombatantRegistry, StatBlock, to_int
from rules.encounter import EncounterSession
from rules.statuses import CharacterType, WoundState, apply_wounds, normalize_character_type

logger = logging.getLogger(__name__)


def load_shots(db, fight_id: int) -> list[Shot]:
    return (
        db.query(Shot)
        .filter(Shot.fight_id == fight_id)
        .order_by(Shot.id.asc())
        .all()
    )


def vehicle_stats(action_values: dict | None) -> StatBlock:
    values = action_values or {}
    # vehicles fight on Driving, Handling, Crunch, Frame and Acceleration
    return StatBlock(
        attack=to_int(values.get("Driving", 0)),
        defense=to_int(values.get("Handling", 0)),
        damage=to_int(values.get("Crunch", 0)),
        toughness=to_int(values.get("Frame", 0)),
        speed=to_int(values.get("Acceleration", 0)),
    )


def _initial_wounds(character_type: CharacterType, wounds: int, tags: Any) -> WoundState:
    state = WoundState(tags={str(tag) for tag in tags or [] if isinstance(tag, str)})
    return apply_wounds(state, character_type, wounds)


def combatant_from_shot(db, shot: Shot) -> Combatant | None:
    if shot.character_id is not None:
        character = db.get(Character, shot.character_id)
        if character is None:
            logger.warning("Shot %s references missing character %s", shot.id, shot.character_id)
            return None
        values = character.action_values or {}
        character_type = normalize_character_type(values.get("Type", "PC"))
        if character_type is CharacterType.PC:
            wounds = to_int(values.get("Wounds", 0))
        else:
            wounds = shot.count or 0
        return Combatant(
            id=shot.id,
            name=character.name,
            kind="character",
            entity_id=character.id,
            owner_id=character.user_id,
            character_type=character_type,
            stats=StatBlock.from_action_values(values, defense=character.defense),
            current_shots=shot.shot or 0,
            wound=_initial_wounds(character_type, wounds, character.status),
        )

    if shot.vehicle_id is not None:
        vehicle = db.get(Vehicle, shot.vehicle_id)
        if vehicle is None:
            logger.warning("Shot %s references missing vehicle %s", shot.id, shot.vehicle_id)
            return None
        values = vehicle.action_values or {}
        character_type = normalize_character_type(values.get("Type", "NPC"))
        return Combatant(
            id=shot.id,
            name=vehicle.name,
            kind="vehicle",
            entity_id=vehicle.id,
            owner_id=vehicle.user_id,
            character_type=character_type,
            stats=vehicle_stats(values),
            current_shots=shot.shot or 0,
            wound=_initial_wounds(character_type, shot.count or 0, None),
        )
    return None


def build_session(db, fight: Fight) -> EncounterSession:
    combatants = []
    for shot in load_shots(db, fight.id):
        combatant = combatant_from_shot(db, shot)
        if combatant is not None:
            combatants.append(combatant)

    player_character_ids = {int(value) for value in fight.solo_player_character_ids or []}
    pc_ids = {
        combatant.id
        for combatant in combatants
        if combatant.kind == "character"
        and (combatant.entity_id in player_character_ids or combatant.is_pc)
    }
    return EncounterSession(
        fight_id=fight.id,
        registry=CombatantRegistry(combatants),
        pc_ids=pc_ids,
    )


def write_back(db, session: EncounterSession) -> None:
    for combatant in session.registry:
        shot = db.get(Shot, combatant.id)
        if shot is None:
            continue
        shot.shot = combatant.current_shots
        if combatant.kind == "character" and combatant.is_pc:
            character = db.get(Character, combatant.entity_id)
            if character is None:
                continue
            values = dict(character.action_values or {})
            values["Wounds"] = combatant.wound.wounds
            character.action_values = values
            character.impairments = combatant.wound.impairments
            character.status = sorted(combatant.wound.tags)
        else:
            shot.count = combatant.wound.wounds
            shot.impairments = combatant.wound.impairments


def log_action(db, fight_id: int, outcome: ActionOutcome, *, event_type: str) -> FightEvent:
    event = FightEvent(
        fight_id=fight_id,
        event_type=event_type,
        description=outcome.narrative,
        details_json=outcome.to_dict(),
    )
    db.add(event)
    return event
