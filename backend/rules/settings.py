from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping


class InitiativePolicy(str, Enum):
    ACCUMULATE = "accumulate"
    REPLACE = "replace"


class RoundEndPolicy(str, Enum):
    WAIT = "wait"
    NEW_ROUND = "new_round"
    STOP = "stop"


INITIATIVE_SYNONYMS: dict[InitiativePolicy, set[str]] = {
    InitiativePolicy.ACCUMULATE: {"accumulate", "add", "carry", "carry over"},
    InitiativePolicy.REPLACE: {"replace", "reset", "set"},
}

ROUND_END_SYNONYMS: dict[RoundEndPolicy, set[str]] = {
    RoundEndPolicy.WAIT: {"wait", "manual", "explicit"},
    RoundEndPolicy.NEW_ROUND: {"new round", "auto", "reroll", "roll"},
    RoundEndPolicy.STOP: {"stop", "end"},
}

DEFAULT_ACTION_COSTS = {"attack": 3, "defend": 1}


@dataclass(frozen=True)
class EncounterConfig:
    initiative_die: int = 6
    initiative_policy: InitiativePolicy = InitiativePolicy.ACCUMULATE
    round_end: RoundEndPolicy = RoundEndPolicy.WAIT
    shot_threshold: int = 0
    defend_bonus: int = 3
    action_costs: dict[str, int] = field(default_factory=lambda: dict(DEFAULT_ACTION_COSTS))

    def action_cost(self, action_type: str) -> int:
        return self.action_costs.get(action_type, DEFAULT_ACTION_COSTS["attack"])


def _clean(value: Any) -> str:
    cleaned = str(value).strip().lower().replace("_", " ").replace("-", " ")
    return " ".join(cleaned.split())


def normalize_initiative_policy(value: Any) -> InitiativePolicy:
    cleaned = _clean(value)
    for policy, synonyms in INITIATIVE_SYNONYMS.items():
        if cleaned == policy.value or cleaned in synonyms:
            return policy
    raise ValueError(f"Unknown initiative policy: {value}")


def normalize_round_end(value: Any) -> RoundEndPolicy:
    cleaned = _clean(value)
    for policy, synonyms in ROUND_END_SYNONYMS.items():
        if cleaned == _clean(policy.value) or cleaned in synonyms:
            return policy
    raise ValueError(f"Unknown round end policy: {value}")


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be an integer") from exc


def config_from_mapping(
    values: Mapping[str, Any] | None,
    *,
    base: EncounterConfig | None = None,
) -> EncounterConfig:
    config = base or EncounterConfig()
    if not values:
        return config

    updates: dict[str, Any] = {}
    if values.get("initiative_die") is not None:
        die = _as_int(values["initiative_die"], "initiative_die")
        if die <= 0:
            raise ValueError("initiative_die must be positive")
        updates["initiative_die"] = die
    if values.get("initiative_policy") is not None:
        updates["initiative_policy"] = normalize_initiative_policy(values["initiative_policy"])
    if values.get("round_end") is not None:
        updates["round_end"] = normalize_round_end(values["round_end"])
    if values.get("shot_threshold") is not None:
        updates["shot_threshold"] = _as_int(values["shot_threshold"], "shot_threshold")
    if values.get("defend_bonus") is not None:
        updates["defend_bonus"] = _as_int(values["defend_bonus"], "defend_bonus")
    costs = values.get("action_costs")
    if isinstance(costs, Mapping):
        merged = dict(config.action_costs)
        for action_type, cost in costs.items():
            merged[str(action_type)] = _as_int(cost, f"action_costs.{action_type}")
        updates["action_costs"] = merged
    return replace(config, **updates)


def config_from_env(environ: Mapping[str, str] | None = None) -> EncounterConfig:
    env = os.environ if environ is None else environ
    return config_from_mapping(
        {
            "initiative_die": env.get("ENCOUNTER_INITIATIVE_DIE"),
            "initiative_policy": env.get("ENCOUNTER_INITIATIVE_POLICY"),
            "round_end": env.get("ENCOUNTER_ROUND_END"),
            "shot_threshold": env.get("ENCOUNTER_SHOT_THRESHOLD"),
            "defend_bonus": env.get("ENCOUNTER_DEFEND_BONUS"),
        }
    )


def resolve_fight_config(
    settings_json: dict | None,
    *,
    environ: Mapping[str, str] | None = None,
) -> EncounterConfig:
    base = config_from_env(environ)
    if not isinstance(settings_json, dict):
        return base
    return config_from_mapping(settings_json, base=base)
