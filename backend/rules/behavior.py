from __future__ import annotations

from rules.combat import ActionType
from rules.combatants import Combatant
from rules.encounter import EncounterSession


def is_player_side(session: EncounterSession, combatant: Combatant) -> bool:
    return combatant.id in session.pc_ids or combatant.is_pc


def find_target(session: EncounterSession, actor: Combatant) -> Combatant | None:
    candidates = [
        combatant
        for combatant in session.registry
        if combatant.id != actor.id
        and combatant.in_fight
        and is_player_side(session, combatant)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda item: (-item.current_shots, item.id))


def choose_action(
    session: EncounterSession,
    actor_id: int,
) -> tuple[ActionType, int | None]:
    actor = session.registry.actor(actor_id)
    target = find_target(session, actor)
    if target is None:
        return ActionType.DEFEND, None
    return ActionType.ATTACK, target.id
