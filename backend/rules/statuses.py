from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable


class CharacterType(str, Enum):
    PC = "PC"
    NPC = "NPC"
    ALLY = "Ally"
    MOOK = "Mook"
    FEATURED_FOE = "Featured Foe"
    BOSS = "Boss"
    UBER_BOSS = "Uber-Boss"


IMPAIRED = "impaired"
SERIOUSLY_WOUNDED = "seriously_wounded"
UP_CHECK_REQUIRED = "up_check_required"
OUT_OF_FIGHT = "out_of_fight"

DERIVED_TAGS = {IMPAIRED, SERIOUSLY_WOUNDED, UP_CHECK_REQUIRED, OUT_OF_FIGHT}

TYPE_ALIASES = {
    "pc": CharacterType.PC,
    "npc": CharacterType.NPC,
    "ally": CharacterType.ALLY,
    "mook": CharacterType.MOOK,
    "featured foe": CharacterType.FEATURED_FOE,
    "featured_foe": CharacterType.FEATURED_FOE,
    "boss": CharacterType.BOSS,
    "uber-boss": CharacterType.UBER_BOSS,
    "uber boss": CharacterType.UBER_BOSS,
    "uber_boss": CharacterType.UBER_BOSS,
}

# wounds at which impairment 1 and 2 begin
IMPAIRMENT_THRESHOLDS = {
    CharacterType.BOSS: (40, 45),
    CharacterType.UBER_BOSS: (40, 45),
}
DEFAULT_IMPAIRMENT_THRESHOLDS = (25, 30)

UP_CHECK_THRESHOLDS = {
    CharacterType.PC: 35,
    CharacterType.BOSS: 50,
    CharacterType.UBER_BOSS: 50,
}

OUT_OF_FIGHT_THRESHOLDS = {
    CharacterType.ALLY: 35,
    CharacterType.FEATURED_FOE: 35,
    CharacterType.NPC: 35,
}


def normalize_character_type(value: Any) -> CharacterType:
    if isinstance(value, CharacterType):
        return value
    key = str(value or "").strip().lower()
    return TYPE_ALIASES.get(key, CharacterType.NPC)


@dataclass
class WoundState:
    wounds: int = 0
    impairments: int = 0
    tags: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "wounds": self.wounds,
            "impairments": self.impairments,
            "tags": sorted(self.tags),
        }

    @classmethod
    def from_dict(cls, payload: dict | None) -> "WoundState":
        payload = payload or {}
        return cls(
            wounds=int(payload.get("wounds", 0)),
            impairments=int(payload.get("impairments", 0)),
            tags=set(payload.get("tags") or []),
        )


def impairments_for(character_type: CharacterType, wounds: int) -> int:
    first, second = IMPAIRMENT_THRESHOLDS.get(character_type, DEFAULT_IMPAIRMENT_THRESHOLDS)
    if wounds >= second:
        return 2
    if wounds >= first:
        return 1
    return 0


def derived_tags(character_type: CharacterType, wounds: int) -> set[str]:
    tags: set[str] = set()
    impairments = impairments_for(character_type, wounds)
    if impairments >= 1:
        tags.add(IMPAIRED)
    if impairments >= 2:
        tags.add(SERIOUSLY_WOUNDED)

    up_check = UP_CHECK_THRESHOLDS.get(character_type)
    if up_check is not None and wounds >= up_check:
        tags.add(UP_CHECK_REQUIRED)

    if character_type is CharacterType.MOOK and wounds > 0:
        tags.add(OUT_OF_FIGHT)
    out_at = OUT_OF_FIGHT_THRESHOLDS.get(character_type)
    if out_at is not None and wounds >= out_at:
        tags.add(OUT_OF_FIGHT)
    return tags


def apply_wounds(
    state: WoundState,
    character_type: CharacterType,
    amount: int,
) -> WoundState:
    wounds = max(0, state.wounds + amount)
    narrative_tags = {tag for tag in state.tags if tag not in DERIVED_TAGS}
    return WoundState(
        wounds=wounds,
        impairments=impairments_for(character_type, wounds),
        tags=narrative_tags | derived_tags(character_type, wounds),
    )


def add_tags(state: WoundState, tags: Iterable[str]) -> WoundState:
    cleaned = {str(tag).strip().lower() for tag in tags if str(tag).strip()}
    return WoundState(
        wounds=state.wounds,
        impairments=state.impairments,
        tags=state.tags | cleaned,
    )
