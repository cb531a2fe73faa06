"""Capability directory shared by every protocol contract"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Protocol, Set

from ..chain import Chain, Contract, transactional
from ..errors import (
    MissingRoleError,
    NotBurnerError,
    NotConfigAdminError,
    NotEmergencyAdminError,
    NotMinterError,
    NotPriceUpdaterError,
    NotRiskAdminError,
)

logger = logging.getLogger(__name__)


class Role(Enum):
    DEFAULT_ADMIN = "DEFAULT_ADMIN"
    MINTER = "MINTER"
    BURNER = "BURNER"
    PRICE_UPDATER = "PRICE_UPDATER"
    RISK_ADMIN = "RISK_ADMIN"
    CONFIG_ADMIN = "CONFIG_ADMIN"
    EMERGENCY_ADMIN = "EMERGENCY_ADMIN"


class AuthorizationProvider(Protocol):
    """Yes/no capability checks; each raises a role-specific error on refusal."""

    def check_minter(self, account: str) -> None: ...

    def check_burner(self, account: str) -> None: ...

    def check_price_updater(self, account: str) -> None: ...

    def check_risk_admin(self, account: str) -> None: ...

    def check_config_admin(self, account: str) -> None: ...

    def check_emergency_admin(self, account: str) -> None: ...


@dataclass
class RoleTable:
    members: Dict[str, Set[str]] = field(default_factory=dict)  # role -> accounts


class AccessManager(Contract):
    """Role table answering capability checks for the whole protocol"""

    def __init__(self, chain: Chain, admin: str):
        super().__init__(chain, RoleTable())
        self.state.members[Role.DEFAULT_ADMIN.value] = {admin}

    def has_role(self, role: Role, account: str) -> bool:
        return account in self.state.members.get(role.value, set())

    @transactional
    def grant_role(self, caller: str, role: Role, account: str) -> None:
        self._require(Role.DEFAULT_ADMIN, caller, MissingRoleError)
        if self.has_role(role, account):
            return
        self.state.members.setdefault(role.value, set()).add(account)
        logger.info("Granted %s to %s", role.value, account)
        self.emit("RoleGranted", role=role.value, account=account, sender=caller)

    @transactional
    def revoke_role(self, caller: str, role: Role, account: str) -> None:
        self._require(Role.DEFAULT_ADMIN, caller, MissingRoleError)
        self._remove(role, account, caller)

    @transactional
    def renounce_role(self, caller: str, role: Role) -> None:
        self._remove(role, caller, caller)

    def _remove(self, role: Role, account: str, sender: str) -> None:
        if not self.has_role(role, account):
            return
        self.state.members[role.value].discard(account)
        logger.info("Revoked %s from %s", role.value, account)
        self.emit("RoleRevoked", role=role.value, account=account, sender=sender)

    def _require(self, role: Role, account: str, error: type) -> None:
        if not self.has_role(role, account):
            if error is MissingRoleError:
                raise MissingRoleError(account, role.value)
            raise error(account)

    def check_minter(self, account: str) -> None:
        self._require(Role.MINTER, account, NotMinterError)

    def check_burner(self, account: str) -> None:
        self._require(Role.BURNER, account, NotBurnerError)

    def check_price_updater(self, account: str) -> None:
        self._require(Role.PRICE_UPDATER, account, NotPriceUpdaterError)

    def check_risk_admin(self, account: str) -> None:
        self._require(Role.RISK_ADMIN, account, NotRiskAdminError)

    def check_config_admin(self, account: str) -> None:
        self._require(Role.CONFIG_ADMIN, account, NotConfigAdminError)

    def check_emergency_admin(self, account: str) -> None:
        self._require(Role.EMERGENCY_ADMIN, account, NotEmergencyAdminError)


class AllowAllAuthorization:
    """Authorization provider that grants every capability"""

    def check_minter(self, account: str) -> None:
        pass

    def check_burner(self, account: str) -> None:
        pass

    def check_price_updater(self, account: str) -> None:
        pass

    def check_risk_admin(self, account: str) -> None:
        pass

    def check_config_admin(self, account: str) -> None:
        pass

    def check_emergency_admin(self, account: str) -> None:
        pass
