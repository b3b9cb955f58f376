from __future__ import annotations

from dataclasses import dataclass

from models import Campaign, CampaignMembership, User
from rules.combatants import Combatant
from rules.errors import NotAuthorized


@dataclass(frozen=True)
class Access:
    user_id: int
    is_member: bool
    is_gamemaster: bool
    is_admin: bool

    @property
    def can_view(self) -> bool:
        return self.is_member or self.is_gamemaster or self.is_admin

    def can_act_for(self, combatant: Combatant) -> bool:
        if self.is_gamemaster or self.is_admin:
            return True
        return self.is_member and combatant.owner_id == self.user_id


def campaign_access(db, user: User, campaign_id: int) -> Access:
    campaign = db.get(Campaign, campaign_id)
    is_owner = campaign is not None and campaign.user_id == user.id
    membership = (
        db.query(CampaignMembership)
        .filter(
            CampaignMembership.campaign_id == campaign_id,
            CampaignMembership.user_id == user.id,
        )
        .first()
    )
    return Access(
        user_id=user.id,
        is_member=is_owner or membership is not None,
        is_gamemaster=is_owner,
        is_admin=bool(user.admin),
    )


def require_view(access: Access) -> None:
    if not access.can_view:
        raise NotAuthorized("Not authorized to access this fight.")


def require_actor(access: Access, combatant: Combatant) -> None:
    if not access.can_act_for(combatant):
        raise NotAuthorized(f"Not authorized to act for {combatant.name}.")
