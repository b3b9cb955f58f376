from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

from rules.errors import UnknownActor, UnknownTarget
from rules.statuses import (
    OUT_OF_FIGHT,
    CharacterType,
    WoundState,
    normalize_character_type,
)

DEFAULT_MAIN_ATTACK = "Guns"
DEFAULT_DAMAGE = 7


def to_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        digits = value.strip()
        sign = ""
        if digits[:1] in {"-", "+"}:
            sign, digits = digits[:1], digits[1:]
        prefix = ""
        for char in digits:
            if not char.isdigit():
                break
            prefix += char
        if prefix:
            return int(sign + prefix)
    return default


@dataclass
class StatBlock:
    attack: int = 0
    defense: int = 0
    damage: int = DEFAULT_DAMAGE
    toughness: int = 0
    speed: int = 0

    @classmethod
    def from_action_values(
        cls,
        action_values: dict | None,
        *,
        defense: int | None = None,
    ) -> "StatBlock":
        values = action_values or {}
        main_attack = values.get("MainAttack") or DEFAULT_MAIN_ATTACK
        raw_defense = defense if defense is not None else values.get("Defense", 0)
        return cls(
            attack=to_int(values.get(main_attack, 0)),
            defense=to_int(raw_defense),
            damage=to_int(values.get("Damage", DEFAULT_DAMAGE), DEFAULT_DAMAGE),
            toughness=to_int(values.get("Toughness", 0)),
            speed=to_int(values.get("Speed", 0)),
        )


@dataclass
class Combatant:
    id: int
    name: str
    stats: StatBlock
    character_type: CharacterType = CharacterType.NPC
    kind: str = "character"
    entity_id: int | None = None
    owner_id: int | None = None
    current_shots: int = 0
    wound: WoundState = field(default_factory=WoundState)
    defense_bonus: int = 0

    @property
    def is_pc(self) -> bool:
        return self.character_type is CharacterType.PC

    @property
    def in_fight(self) -> bool:
        return OUT_OF_FIGHT not in self.wound.tags

    @property
    def effective_speed(self) -> int:
        return self.stats.speed - self.wound.impairments

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "entity_id": self.entity_id,
            "owner_id": self.owner_id,
            "character_type": self.character_type.value,
            "stats": {
                "attack": self.stats.attack,
                "defense": self.stats.defense,
                "damage": self.stats.damage,
                "toughness": self.stats.toughness,
                "speed": self.stats.speed,
            },
            "current_shots": self.current_shots,
            "wound": self.wound.to_dict(),
            "defense_bonus": self.defense_bonus,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "Combatant":
        stats = payload.get("stats") or {}
        return cls(
            id=int(payload["id"]),
            name=str(payload.get("name", "")),
            kind=payload.get("kind", "character"),
            entity_id=payload.get("entity_id"),
            owner_id=payload.get("owner_id"),
            character_type=normalize_character_type(payload.get("character_type")),
            stats=StatBlock(
                attack=int(stats.get("attack", 0)),
                defense=int(stats.get("defense", 0)),
                damage=int(stats.get("damage", DEFAULT_DAMAGE)),
                toughness=int(stats.get("toughness", 0)),
                speed=int(stats.get("speed", 0)),
            ),
            current_shots=int(payload.get("current_shots", 0)),
            wound=WoundState.from_dict(payload.get("wound")),
            defense_bonus=int(payload.get("defense_bonus", 0)),
        )


class CombatantRegistry:
    def __init__(self, combatants: Iterable[Combatant] = ()) -> None:
        self._combatants: dict[int, Combatant] = {}
        for combatant in combatants:
            self.add(combatant)

    def __iter__(self) -> Iterator[Combatant]:
        return iter(self._combatants.values())

    def __len__(self) -> int:
        return len(self._combatants)

    def __contains__(self, combatant_id: object) -> bool:
        return combatant_id in self._combatants

    def add(self, combatant: Combatant) -> None:
        if combatant.id in self._combatants:
            raise ValueError(f"Duplicate combatant id: {combatant.id}")
        self._combatants[combatant.id] = combatant

    def get(self, combatant_id: int | None) -> Combatant | None:
        if combatant_id is None:
            return None
        return self._combatants.get(combatant_id)

    def actor(self, combatant_id: int | None) -> Combatant:
        combatant = self.get(combatant_id)
        if combatant is None:
            raise UnknownActor(f"Actor {combatant_id} is not in this fight.")
        return combatant

    def target(self, combatant_id: int | None) -> Combatant:
        combatant = self.get(combatant_id)
        if combatant is None:
            raise UnknownTarget(f"Target {combatant_id} is not in this fight.")
        return combatant

    def to_list(self) -> list[dict]:
        return [combatant.to_dict() for combatant in self]

    @classmethod
    def from_list(cls, payload: list[dict] | None) -> "CombatantRegistry":
        return cls(Combatant.from_dict(item) for item in payload or [])
