import sys
from pathlib import Path
from typing import Any

SCRIPT_DIR = Path(__file__).resolve().parent
sys.path = [path for path in sys.path if Path(path).resolve() != SCRIPT_DIR]

REPO_ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(REPO_ROOT))
sys.path.insert(0, str(BACKEND_DIR))

from db import SessionLocal  # noqa: E402
from models import (  # noqa: E402
    Campaign,
    CampaignMembership,
    Character,
    Fight,
    Shot,
    User,
)

DEMO_USERS = [
    {
        "email": "gm@example.com",
        "first_name": "Game",
        "last_name": "Master",
        "gamemaster": True,
    },
    {
        "email": "player@example.com",
        "first_name": "Player",
        "last_name": "One",
        "gamemaster": False,
    },
]

DEMO_CHARACTERS = [
    {
        "name": "Johnny Tsunami",
        "owner": "player@example.com",
        "action_values": {
            "Type": "PC",
            "MainAttack": "Guns",
            "Guns": 13,
            "Defense": 13,
            "Speed": 7,
            "Toughness": 6,
            "Damage": 10,
            "Wounds": 0,
        },
    },
    {
        "name": "Shadowy Triad Enforcer",
        "owner": "gm@example.com",
        "action_values": {
            "Type": "Featured Foe",
            "MainAttack": "Martial Arts",
            "Martial Arts": 12,
            "Defense": 12,
            "Speed": 6,
            "Toughness": 5,
            "Damage": 8,
        },
    },
]


def upsert_by_field(session, model, field: str, value: Any, **fields: Any):
    exists = session.query(model).filter_by(**{field: value}).first()
    if exists:
        return exists
    record = model(**{field: value}, **fields)
    session.add(record)
    session.flush()
    return record


def seed_users(session) -> dict[str, User]:
    users = {}
    for payload in DEMO_USERS:
        data = dict(payload)
        email = data.pop("email")
        users[email] = upsert_by_field(session, User, "email", email, admin=False, **data)
    return users


def seed_campaign(session, users: dict[str, User]) -> Campaign:
    gm = users["gm@example.com"]
    campaign = upsert_by_field(
        session,
        Campaign,
        "name",
        "Demo Campaign",
        user_id=gm.id,
        description="Seeded campaign for solo play.",
    )
    player = users["player@example.com"]
    membership = (
        session.query(CampaignMembership)
        .filter_by(campaign_id=campaign.id, user_id=player.id)
        .first()
    )
    if membership is None:
        session.add(CampaignMembership(campaign_id=campaign.id, user_id=player.id))
    return campaign


def seed_solo_fight(session, campaign: Campaign, users: dict[str, User]) -> Fight:
    existing = session.query(Fight).filter_by(campaign_id=campaign.id, name="Teahouse Ambush").first()
    if existing:
        return existing

    characters = []
    for payload in DEMO_CHARACTERS:
        character = upsert_by_field(
            session,
            Character,
            "name",
            payload["name"],
            campaign_id=campaign.id,
            user_id=users[payload["owner"]].id,
            action_values=payload["action_values"],
            impairments=0,
            status=[],
        )
        characters.append(character)

    pc_ids = [
        character.id
        for character in characters
        if (character.action_values or {}).get("Type") == "PC"
    ]
    fight = Fight(
        campaign_id=campaign.id,
        name="Teahouse Ambush",
        description="A solo-mode fight against a Triad enforcer.",
        solo_mode=True,
        solo_behavior_type="simple",
        solo_player_character_ids=pc_ids,
        solo_settings_json={"round_end": "new_round"},
    )
    session.add(fight)
    session.flush()
    for character in characters:
        session.add(Shot(fight_id=fight.id, character_id=character.id, shot=0, count=0))
    return fight


def main() -> None:
    with SessionLocal() as session:
        users = seed_users(session)
        campaign = seed_campaign(session, users)
        fight = seed_solo_fight(session, campaign, users)
        session.commit()
        print(f"Seeded solo fight {fight.id} in campaign {campaign.id}.")


if __name__ == "__main__":
    main()
