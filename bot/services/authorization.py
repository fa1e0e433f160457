from __future__ import annotations

import discord

from core.errors import StaffRequiredError
from core.models import AuthorizationConfig
from services.config_store import ConfigStore


def member_is_staff(member: discord.Member, config: AuthorizationConfig) -> bool:
    if member.guild_permissions.manage_channels:
        return True
    staff_ids = set(config.staff_group_ids)
    return any(role.id in staff_ids for role in member.roles)


class AuthorizationPolicy:
    def __init__(self, store: ConfigStore) -> None:
        self.store = store

    def current(self) -> AuthorizationConfig:
        return self.store.load_authorization().value

    def is_staff(self, member: discord.Member) -> bool:
        return member_is_staff(member, self.current())

    def require_staff(self, member: discord.Member) -> None:
        if not self.is_staff(member):
            raise StaffRequiredError()
