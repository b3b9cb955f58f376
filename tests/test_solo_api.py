import pytest
from fastapi.testclient import TestClient

from app.main import app
from models import (
    Campaign,
    CampaignMembership,
    Character,
    Fight,
    FightEvent,
    Shot,
    SoloSession,
    User,
)

GM = {"X-User-Id": "1"}
PLAYER = {"X-User-Id": "2"}
OUTSIDER = {"X-User-Id": "3"}


class DummyQuery:
    def __init__(self, data):
        self.data = list(data)

    def filter(self, *args, **kwargs):
        for expr in args:
            key = getattr(getattr(expr, "left", None), "key", None)
            value = getattr(getattr(expr, "right", None), "value", None)
            if key is not None:
                self.data = [item for item in self.data if getattr(item, key) == value]
        return self

    def order_by(self, *args, **kwargs):
        return self

    def all(self):
        return self.data

    def first(self):
        return self.data[0] if self.data else None


class DummySession:
    def __init__(self):
        self.records = {}
        self.events = []
        self.commits = 0
        self.locked = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def put(self, obj, key=None):
        self.records.setdefault(type(obj), {})[key if key is not None else obj.id] = obj
        return obj

    def add(self, obj):
        if isinstance(obj, SoloSession):
            self.put(obj, obj.fight_id)
            return
        if isinstance(obj, FightEvent):
            obj.id = len(self.events) + 1
            self.events.append(obj)
            return
        if getattr(obj, "id", None) is None:
            obj.id = len(self.records.get(type(obj), {})) + 1
        self.put(obj)

    def commit(self):
        self.commits += 1

    def refresh(self, obj):
        return None

    def get(self, model, record_id, **kwargs):
        if kwargs.get("with_for_update"):
            self.locked.append((model, record_id))
        return self.records.get(model, {}).get(record_id)

    def query(self, model):
        return DummyQuery(self.records.get(model, {}).values())


def _character(character_id, user_id, name, values):
    return Character(
        id=character_id,
        campaign_id=5,
        user_id=user_id,
        name=name,
        active=True,
        defense=None,
        impairments=0,
        action_values=values,
        status=[],
    )


def _shot(shot_id, fight_id, character_id):
    return Shot(
        id=shot_id,
        fight_id=fight_id,
        character_id=character_id,
        vehicle_id=None,
        shot=0,
        count=0,
        impairments=0,
    )


def _fight(fight_id, solo_mode):
    return Fight(
        id=fight_id,
        campaign_id=5,
        name="Teahouse Ambush",
        description=None,
        active=True,
        sequence=1,
        solo_mode=solo_mode,
        solo_behavior_type="simple",
        solo_player_character_ids=[100],
        solo_settings_json={},
    )


@pytest.fixture
def db(monkeypatch):
    session = DummySession()
    for user_id, email in ((1, "gm@example.com"), (2, "player@example.com"), (3, "nobody@example.com")):
        session.put(
            User(
                id=user_id,
                email=email,
                first_name=None,
                last_name=None,
                gamemaster=user_id == 1,
                admin=False,
            )
        )
    session.put(Campaign(id=5, user_id=1, name="Hong Kong 1850", description=None))
    session.put(CampaignMembership(id=1, campaign_id=5, user_id=2))
    session.put(
        _character(
            100,
            2,
            "Johnny Tsunami",
            {"Type": "PC", "Guns": 13, "Defense": 13, "Toughness": 6, "Speed": 7, "Damage": 9, "Wounds": 0},
        )
    )
    session.put(
        _character(
            101,
            1,
            "Triad Enforcer",
            {"Type": "Featured Foe", "Guns": 12, "Defense": 12, "Toughness": 5, "Speed": 6, "Damage": 8},
        )
    )
    session.put(_fight(10, True))
    session.put(_fight(11, False))
    session.put(_shot(1, 10, 100))
    session.put(_shot(2, 10, 101))
    session.put(_shot(3, 11, 100))

    monkeypatch.setattr("app.main.SessionLocal", lambda: session)
    return session


@pytest.fixture
def client():
    return TestClient(app)


def test_status_before_start(db, client):
    response = client.get("/api/v2/fights/10/solo/status", headers=PLAYER)
    assert response.status_code == 200
    assert response.json() == {
        "fight_id": 10,
        "running": False,
        "status": "not_started",
        "round": 0,
        "current_actor": None,
    }


def test_status_access_rules(db, client):
    assert client.get("/api/v2/fights/10/solo/status").status_code == 401
    assert client.get("/api/v2/fights/10/solo/status", headers=OUTSIDER).status_code == 403
    assert client.get("/api/v2/fights/99/solo/status", headers=GM).status_code == 404
    assert client.get("/api/v2/fights/10/solo/status", headers={"X-User-Id": "42"}).status_code == 401


def test_start_requires_solo_mode(db, client):
    response = client.post("/api/v2/fights/11/solo/start", headers=GM)
    assert response.status_code == 422
    assert "solo mode" in response.json()["detail"]
    assert db.get(SoloSession, 11) is None

    response = client.post("/api/v2/fights/11/solo/roll_initiative", headers=GM)
    assert response.status_code == 422


def test_start_rolls_initiative_and_persists(db, client):
    response = client.post("/api/v2/fights/10/solo/start", headers=GM)
    assert response.status_code == 200
    payload = response.json()
    assert payload["message"] == "Solo session started"
    assert payload["running"] is True
    assert payload["round"] == 1
    assert [entry["combatant_id"] for entry in payload["initiative"]] == [1, 2]

    shots = {entry["combatant_id"]: entry["shot"] for entry in payload["initiative"]}
    assert db.get(Shot, 1).shot == shots[1]
    assert db.get(Shot, 2).shot == shots[2]
    assert shots[1] - 7 in range(1, 7)
    assert shots[2] - 6 in range(1, 7)

    record = db.get(SoloSession, 10)
    assert record.status == "running"
    assert record.roll_index == 2
    assert payload["current_actor"]["id"] in shots

    again = client.post("/api/v2/fights/10/solo/start", headers=GM)
    assert again.json()["message"] == "Solo session already running"
    assert again.json()["initiative"] == []
    assert again.json()["round"] == 1


def test_advance_requires_running_session(db, client):
    response = client.post("/api/v2/fights/10/solo/advance", headers=GM)
    assert response.status_code == 422
    assert "not running" in response.json()["detail"]


def test_roll_initiative_starts_next_round(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)
    response = client.post("/api/v2/fights/10/solo/roll_initiative", headers=GM)
    assert response.status_code == 200
    payload = response.json()
    assert payload["round"] == 2
    assert {entry["combatant_id"] for entry in payload["results"]} == {1, 2}
    assert db.get(SoloSession, 10).roll_index == 4


def test_player_attack_is_logged(db, client):
    start = client.post("/api/v2/fights/10/solo/start", headers=GM).json()
    opening = {entry["combatant_id"]: entry["shot"] for entry in start["initiative"]}

    response = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 1, "target_id": 2},
        headers=PLAYER,
    )
    assert response.status_code == 200
    action = response.json()["action"]
    assert action["actor_name"] == "Johnny Tsunami"
    assert action["target_name"] == "Triad Enforcer"
    assert action["shot_cost"] == 3
    assert db.get(Shot, 1).shot == opening[1] - 3

    assert len(db.events) == 1
    assert db.events[0].event_type == "solo_action"
    assert db.events[0].description == action["narrative"]
    if action["hit"]:
        assert db.get(Shot, 2).count == action["damage"]


def test_player_defend_has_no_damage(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)
    response = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "defend", "actor_id": 1},
        headers=PLAYER,
    )
    assert response.status_code == 200
    action = response.json()["action"]
    assert action["hit"] is False
    assert action["shot_cost"] == 1
    assert "damage" not in action


def test_action_errors(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)
    before = db.get(SoloSession, 10).state_json

    unknown_target = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 1, "target_id": 99},
        headers=GM,
    )
    assert unknown_target.status_code == 404

    unknown_actor = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 77, "target_id": 2},
        headers=GM,
    )
    assert unknown_actor.status_code == 404

    invalid = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "stunt", "actor_id": 1, "target_id": 2},
        headers=GM,
    )
    assert invalid.status_code == 400

    forbidden = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 2, "target_id": 1},
        headers=PLAYER,
    )
    assert forbidden.status_code == 403

    assert db.get(SoloSession, 10).state_json == before
    assert db.events == []


def test_action_before_start_is_rejected(db, client):
    response = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 1, "target_id": 2},
        headers=GM,
    )
    assert response.status_code == 422


def test_npc_turn_attacks_player(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)
    state = db.get(SoloSession, 10).state_json
    for combatant in state["combatants"]:
        combatant["current_shots"] = 10 if combatant["id"] == 2 else 2

    response = client.post("/api/v2/fights/10/solo/npc_turn", headers=PLAYER)
    assert response.status_code == 200
    payload = response.json()
    assert payload["action"]["actor_id"] == 2
    assert payload["action"]["action_type"] == "attack"
    assert payload["action"]["target_id"] == 1
    assert db.get(Shot, 2).shot == 7
    assert db.events[-1].event_type == "solo_npc_action"


def test_npc_turn_waits_for_player(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)
    state = db.get(SoloSession, 10).state_json
    for combatant in state["combatants"]:
        combatant["current_shots"] = 10 if combatant["id"] == 1 else 2

    response = client.post("/api/v2/fights/10/solo/npc_turn", headers=GM)
    assert response.status_code == 200
    payload = response.json()
    assert payload["action"] is None
    assert payload["current_actor"]["id"] == 1
    assert payload["current_actor"]["player"] is True
    assert db.events == []


def test_stop_is_idempotent(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)

    first = client.post("/api/v2/fights/10/solo/stop", headers=GM)
    assert first.status_code == 200
    assert first.json()["message"] == "Solo session stopped"
    assert first.json()["status"] == "stopped"

    second = client.post("/api/v2/fights/10/solo/stop", headers=GM)
    assert second.status_code == 200
    assert second.json()["message"] == "Solo session was not running"

    assert client.post("/api/v2/fights/10/solo/advance", headers=GM).status_code == 422


def test_mutating_calls_lock_the_fight_row(db, client):
    client.get("/api/v2/fights/10/solo/status", headers=GM)
    assert (Fight, 10) not in db.locked
    db.locked.clear()

    client.post("/api/v2/fights/10/solo/start", headers=GM)
    assert db.locked[0] == (Fight, 10)
    assert (SoloSession, 10) in db.locked


def test_downed_combatants_cannot_act(db, client):
    client.post("/api/v2/fights/10/solo/start", headers=GM)
    state = db.get(SoloSession, 10).state_json
    for combatant in state["combatants"]:
        if combatant["id"] == 2:
            combatant["wound"]["tags"] = ["out_of_fight"]

    attack_downed = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 1, "target_id": 2},
        headers=PLAYER,
    )
    assert attack_downed.status_code == 422
    assert "out of the fight" in attack_downed.json()["detail"]

    downed_attacks = client.post(
        "/api/v2/fights/10/solo/action",
        json={"action_type": "attack", "actor_id": 2, "target_id": 1},
        headers=GM,
    )
    assert downed_attacks.status_code == 422
    assert db.events == []


def test_roll_before_start_does_not_double_count(db, client):
    early = client.post("/api/v2/fights/10/solo/roll_initiative", headers=GM)
    assert early.status_code == 200
    assert db.get(SoloSession, 10).status == "not_started"

    start = client.post("/api/v2/fights/10/solo/start", headers=GM).json()
    shots = {entry["combatant_id"]: entry["shot"] for entry in start["initiative"]}
    assert shots[1] - 7 in range(1, 7)
    assert shots[2] - 6 in range(1, 7)
    assert db.get(Shot, 1).shot == shots[1]
