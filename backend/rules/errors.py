from __future__ import annotations


class EncounterError(ValueError):
    code = "encounter_error"
    status_code = 422


class NotApplicable(EncounterError):
    code = "not_applicable"
    status_code = 422


class NotAuthorized(EncounterError):
    code = "not_authorized"
    status_code = 403


class NotRunning(EncounterError):
    code = "not_running"
    status_code = 422


class UnknownActor(EncounterError):
    code = "unknown_actor"
    status_code = 404


class UnknownTarget(EncounterError):
    code = "unknown_target"
    status_code = 404


class InvalidActionType(EncounterError):
    code = "invalid_action_type"
    status_code = 400
