from rules.behavior import choose_action, find_target, is_player_side
from rules.combat import ActionType
from rules.combatants import Combatant, CombatantRegistry, StatBlock
from rules.encounter import EncounterSession
from rules.statuses import OUT_OF_FIGHT, CharacterType, WoundState


def _combatant(combatant_id: int, shots: int, character_type: CharacterType) -> Combatant:
    return Combatant(
        id=combatant_id,
        name=f"C{combatant_id}",
        stats=StatBlock(speed=5),
        character_type=character_type,
        current_shots=shots,
    )


def test_targets_player_with_highest_shot() -> None:
    session = EncounterSession(
        fight_id=1,
        registry=CombatantRegistry(
            [
                _combatant(1, 6, CharacterType.PC),
                _combatant(2, 11, CharacterType.PC),
                _combatant(3, 14, CharacterType.NPC),
            ]
        ),
    )
    assert choose_action(session, 3) == (ActionType.ATTACK, 2)


def test_listed_player_characters_count_as_player_side() -> None:
    ally = _combatant(4, 9, CharacterType.ALLY)
    session = EncounterSession(
        fight_id=1,
        registry=CombatantRegistry([ally, _combatant(5, 12, CharacterType.BOSS)]),
        pc_ids={4},
    )
    assert is_player_side(session, ally)
    assert choose_action(session, 5) == (ActionType.ATTACK, 4)


def test_ties_go_to_lowest_id() -> None:
    session = EncounterSession(
        fight_id=1,
        registry=CombatantRegistry(
            [
                _combatant(7, 8, CharacterType.PC),
                _combatant(3, 8, CharacterType.PC),
                _combatant(9, 10, CharacterType.MOOK),
            ]
        ),
    )
    assert find_target(session, session.registry.actor(9)).id == 3


def test_defends_when_no_player_is_standing() -> None:
    downed = _combatant(1, 10, CharacterType.PC)
    downed.wound = WoundState(wounds=40, impairments=2, tags={OUT_OF_FIGHT})
    session = EncounterSession(
        fight_id=1,
        registry=CombatantRegistry([downed, _combatant(2, 5, CharacterType.NPC)]),
    )
    assert choose_action(session, 2) == (ActionType.DEFEND, None)
