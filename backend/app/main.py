import logging
import os
import random

from fastapi import FastAPI, Header, HTTPException
from pydantic import BaseModel

from app.auth import Access, campaign_access, require_actor, require_view
from app.roster import build_session, log_action, write_back
from db import SessionLocal, check_db_connection
from models import Fight, SoloSession, User
from rules.behavior import choose_action, is_player_side
from rules.core import Dice, restore_dice
from rules.encounter import (
    EncounterSession,
    advance,
    perform_action,
    roll_new_round,
    start,
    status,
    stop,
)
from rules.errors import EncounterError, NotApplicable
from rules.settings import EncounterConfig, resolve_fight_config

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="chiwar-solo API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


@app.get("/health")
def health() -> dict:
    try:
        check_db_connection()
    except Exception as exc:
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"status": "ok"}


class ActionRequest(BaseModel):
    action_type: str = "attack"
    actor_id: int
    target_id: int | None = None


def _http_error(exc: EncounterError) -> HTTPException:
    logger.warning("Solo request rejected (%s): %s", exc.code, exc)
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def _require_user_id(x_user_id: int | None) -> int:
    if x_user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return x_user_id


def _load_fight(
    db,
    fight_id: int,
    user_id: int,
    *,
    lock: bool = False,
) -> tuple[Fight, Access]:
    # lock the fight row; the solo_sessions row may not exist yet
    fight = db.get(Fight, fight_id, with_for_update=lock)
    if fight is None:
        raise HTTPException(status_code=404, detail="Fight not found")
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    access = campaign_access(db, user, fight.campaign_id)
    try:
        require_view(access)
    except EncounterError as exc:
        raise _http_error(exc) from exc
    return fight, access


def _fight_config(fight: Fight) -> EncounterConfig:
    try:
        return resolve_fight_config(fight.solo_settings_json)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=f"Invalid solo settings: {exc}") from exc


def _load_session(db, fight: Fight) -> tuple[SoloSession | None, EncounterSession]:
    record = db.get(SoloSession, fight.id, with_for_update=True)
    if record is None or not isinstance(record.state_json, dict):
        return record, build_session(db, fight)
    return record, EncounterSession.from_dict(record.state_json)


def _dice_for(record: SoloSession | None) -> tuple[Dice, int, int]:
    if record is None:
        seed = random.randint(1, 2**31 - 1)
        return Dice(seed=seed), seed, 0
    roll_index = record.roll_index or 0
    return restore_dice(record.rng_seed, roll_index), record.rng_seed, roll_index


def _save_session(
    db,
    record: SoloSession | None,
    session: EncounterSession,
    *,
    seed: int,
    roll_index: int,
) -> SoloSession:
    if record is None:
        record = SoloSession(fight_id=session.fight_id, rng_seed=seed)
        db.add(record)
    record.status = session.status.value
    record.roll_index = roll_index
    record.state_json = session.to_dict()
    write_back(db, session)
    db.commit()
    return record


def _status_payload(session: EncounterSession, config: EncounterConfig) -> dict:
    payload = status(session, config)
    actor_id = payload.pop("current_actor_id")
    actor = session.registry.get(actor_id)
    payload["current_actor"] = (
        {
            "id": actor.id,
            "name": actor.name,
            "shot": actor.current_shots,
            "player": is_player_side(session, actor),
        }
        if actor is not None
        else None
    )
    return payload


@app.get("/api/v2/fights/{fight_id}/solo/status")
def solo_status(fight_id: int, x_user_id: int | None = Header(default=None)) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, _ = _load_fight(db, fight_id, user_id)
        config = _fight_config(fight)
        _, session = _load_session(db, fight)
        return _status_payload(session, config)


@app.post("/api/v2/fights/{fight_id}/solo/start")
def solo_start(fight_id: int, x_user_id: int | None = Header(default=None)) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, _ = _load_fight(db, fight_id, user_id, lock=True)
        config = _fight_config(fight)
        record, session = _load_session(db, fight)
        already_running = session.running
        if not already_running:
            session = build_session(db, fight)
            session.round = 0
        dice, seed, roll_index = _dice_for(record)
        try:
            results = start(session, solo_mode=fight.solo_mode, dice=dice, config=config)
        except EncounterError as exc:
            raise _http_error(exc) from exc
        if not already_running:
            _save_session(db, record, session, seed=seed, roll_index=roll_index + dice.draws())
        return {
            "success": True,
            "message": "Solo session already running" if already_running else "Solo session started",
            "initiative": [result.to_dict() for result in results],
            **_status_payload(session, config),
        }


@app.post("/api/v2/fights/{fight_id}/solo/roll_initiative")
def solo_roll_initiative(fight_id: int, x_user_id: int | None = Header(default=None)) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, _ = _load_fight(db, fight_id, user_id, lock=True)
        if not fight.solo_mode:
            raise _http_error(NotApplicable("Fight is not in solo mode."))
        config = _fight_config(fight)
        record, session = _load_session(db, fight)
        dice, seed, roll_index = _dice_for(record)
        try:
            results = roll_new_round(session, dice, config)
        except EncounterError as exc:
            raise _http_error(exc) from exc
        _save_session(db, record, session, seed=seed, roll_index=roll_index + dice.draws())
        return {
            "success": True,
            "round": session.round,
            "results": [
                {
                    "combatant_id": result.combatant_id,
                    "name": result.name,
                    "roll": result.roll,
                    "speed": result.speed,
                    "shot": result.shot,
                }
                for result in results
            ],
        }


@app.post("/api/v2/fights/{fight_id}/solo/advance")
def solo_advance(fight_id: int, x_user_id: int | None = Header(default=None)) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, _ = _load_fight(db, fight_id, user_id, lock=True)
        config = _fight_config(fight)
        record, session = _load_session(db, fight)
        dice, seed, roll_index = _dice_for(record)
        try:
            result = advance(session, dice, config)
        except EncounterError as exc:
            raise _http_error(exc) from exc
        if result.new_round or not session.running:
            _save_session(db, record, session, seed=seed, roll_index=roll_index + dice.draws())
        return {
            "success": True,
            "new_round": result.new_round,
            "initiative": [item.to_dict() for item in result.initiative],
            **_status_payload(session, config),
        }


@app.post("/api/v2/fights/{fight_id}/solo/action")
def solo_action(
    fight_id: int,
    payload: ActionRequest,
    x_user_id: int | None = Header(default=None),
) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, access = _load_fight(db, fight_id, user_id, lock=True)
        config = _fight_config(fight)
        record, session = _load_session(db, fight)
        dice, seed, roll_index = _dice_for(record)
        try:
            actor = session.registry.get(payload.actor_id)
            if actor is not None:
                require_actor(access, actor)
            outcome = perform_action(
                session,
                payload.actor_id,
                payload.target_id,
                payload.action_type,
                dice,
                config,
            )
        except EncounterError as exc:
            raise _http_error(exc) from exc
        log_action(db, fight.id, outcome, event_type="solo_action")
        _save_session(db, record, session, seed=seed, roll_index=roll_index + dice.draws())
        return {"success": True, "action": outcome.to_dict()}


@app.post("/api/v2/fights/{fight_id}/solo/npc_turn")
def solo_npc_turn(fight_id: int, x_user_id: int | None = Header(default=None)) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, _ = _load_fight(db, fight_id, user_id, lock=True)
        config = _fight_config(fight)
        record, session = _load_session(db, fight)
        dice, seed, roll_index = _dice_for(record)
        try:
            result = advance(session, dice, config)
            actor = session.registry.get(result.actor_id)
            outcome = None
            if actor is not None and not is_player_side(session, actor):
                action_type, target_id = choose_action(session, actor.id)
                outcome = perform_action(session, actor.id, target_id, action_type, dice, config)
        except EncounterError as exc:
            raise _http_error(exc) from exc
        if outcome is not None:
            logger.info("NPC %s acted in fight %s", outcome.actor_name, fight.id)
            log_action(db, fight.id, outcome, event_type="solo_npc_action")
        if outcome is not None or result.new_round or not session.running:
            _save_session(db, record, session, seed=seed, roll_index=roll_index + dice.draws())
        return {
            "success": True,
            "action": outcome.to_dict() if outcome is not None else None,
            "new_round": result.new_round,
            **_status_payload(session, config),
        }


@app.post("/api/v2/fights/{fight_id}/solo/stop")
def solo_stop(fight_id: int, x_user_id: int | None = Header(default=None)) -> dict:
    user_id = _require_user_id(x_user_id)
    with SessionLocal() as db:
        fight, _ = _load_fight(db, fight_id, user_id, lock=True)
        config = _fight_config(fight)
        record, session = _load_session(db, fight)
        _, seed, roll_index = _dice_for(record)
        stopped = stop(session)
        if stopped:
            _save_session(db, record, session, seed=seed, roll_index=roll_index)
        return {
            "success": True,
            "message": "Solo session stopped" if stopped else "Solo session was not running",
            **_status_payload(session, config),
        }
