"""Solo encounter session state machine.

A session is a plain record keyed by fight id. Every operation here takes the
session explicitly and mutates it in place; persistence is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from rules.combat import ActionOutcome, resolve_action
from rules.combatants import CombatantRegistry
from rules.core import Dice
from rules.errors import NotApplicable, NotRunning
from rules.initiative import InitiativeResult, roll_initiative
from rules.sequencer import next_actor
from rules.settings import EncounterConfig, RoundEndPolicy

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    STOPPED = "stopped"


@dataclass
class EncounterSession:
    fight_id: int
    registry: CombatantRegistry = field(default_factory=CombatantRegistry)
    status: SessionStatus = SessionStatus.NOT_STARTED
    round: int = 0
    pc_ids: set[int] = field(default_factory=set)

    @property
    def running(self) -> bool:
        return self.status is SessionStatus.RUNNING

    def to_dict(self) -> dict:
        return {
            "fight_id": self.fight_id,
            "status": self.status.value,
            "round": self.round,
            "pc_ids": sorted(self.pc_ids),
            "combatants": self.registry.to_list(),
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "EncounterSession":
        return cls(
            fight_id=payload["fight_id"],
            registry=CombatantRegistry.from_list(payload.get("combatants")),
            status=SessionStatus(payload.get("status", SessionStatus.NOT_STARTED.value)),
            round=int(payload.get("round", 0)),
            pc_ids={int(value) for value in payload.get("pc_ids") or []},
        )


@dataclass
class AdvanceResult:
    actor_id: int | None
    new_round: bool = False
    initiative: list[InitiativeResult] = field(default_factory=list)


def status(session: EncounterSession, config: EncounterConfig | None = None) -> dict:
    threshold = config.shot_threshold if config else 0
    current = next_actor(session.registry, threshold) if session.running else None
    return {
        "fight_id": session.fight_id,
        "running": session.running,
        "status": session.status.value,
        "round": session.round,
        "current_actor_id": current,
    }


def start(
    session: EncounterSession,
    *,
    solo_mode: bool,
    dice: Dice,
    config: EncounterConfig,
) -> list[InitiativeResult]:
    if not solo_mode:
        raise NotApplicable("Fight is not in solo mode.")
    if session.running:
        logger.info("Solo session for fight %s already running", session.fight_id)
        return []
    # a fresh session counts from zero, whatever earlier rolls left behind
    for combatant in session.registry:
        combatant.current_shots = 0
    results = _new_round(session, dice, config)
    session.status = SessionStatus.RUNNING
    logger.info(
        "Solo session started for fight %s with %d combatants",
        session.fight_id,
        len(session.registry),
    )
    return results


def roll_new_round(
    session: EncounterSession,
    dice: Dice,
    config: EncounterConfig,
) -> list[InitiativeResult]:
    if session.status is SessionStatus.STOPPED:
        raise NotRunning("Solo session is not running.")
    return _new_round(session, dice, config)


def advance(
    session: EncounterSession,
    dice: Dice,
    config: EncounterConfig,
) -> AdvanceResult:
    if not session.running:
        raise NotRunning("Solo session is not running.")

    actor_id = next_actor(session.registry, config.shot_threshold)
    if actor_id is not None:
        return AdvanceResult(actor_id=actor_id)

    if config.round_end is RoundEndPolicy.NEW_ROUND:
        results = _new_round(session, dice, config)
        return AdvanceResult(
            actor_id=next_actor(session.registry, config.shot_threshold),
            new_round=True,
            initiative=results,
        )
    if config.round_end is RoundEndPolicy.STOP:
        stop(session)
    return AdvanceResult(actor_id=None)


def perform_action(
    session: EncounterSession,
    actor_id: int,
    target_id: int | None,
    action_type: str,
    dice: Dice,
    config: EncounterConfig,
) -> ActionOutcome:
    if not session.running:
        raise NotRunning("Solo session is not running.")
    return resolve_action(session.registry, actor_id, target_id, action_type, dice, config)


def stop(session: EncounterSession) -> bool:
    if not session.running:
        return False
    session.status = SessionStatus.STOPPED
    logger.info("Solo session stopped for fight %s", session.fight_id)
    return True


def _new_round(
    session: EncounterSession,
    dice: Dice,
    config: EncounterConfig,
) -> list[InitiativeResult]:
    results = roll_initiative(session.registry, dice, config)
    session.round += 1
    logger.info("Fight %s: initiative round %d rolled", session.fight_id, session.round)
    return results
