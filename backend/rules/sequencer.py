from __future__ import annotations

from rules.combatants import Combatant, CombatantRegistry


def _order_key(combatant: Combatant) -> tuple[int, int, int]:
    return (-combatant.current_shots, -combatant.stats.speed, combatant.id)


def turn_order(registry: CombatantRegistry, threshold: int = 0) -> list[Combatant]:
    eligible = [
        combatant
        for combatant in registry
        if combatant.in_fight and combatant.current_shots > threshold
    ]
    return sorted(eligible, key=_order_key)


def next_actor(registry: CombatantRegistry, threshold: int = 0) -> int | None:
    order = turn_order(registry, threshold)
    if not order:
        return None
    return order[0].id
