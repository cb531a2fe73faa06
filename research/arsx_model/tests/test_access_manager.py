"""Capability directory"""
import pytest

from arsx_model.src.contracts.access_manager import AccessManager, AllowAllAuthorization, Role
from arsx_model.src.contracts.token import StableAsset
from arsx_model.src.errors import (
    MissingRoleError,
    NotBurnerError,
    NotConfigAdminError,
    NotEmergencyAdminError,
    NotMinterError,
    NotPriceUpdaterError,
    NotRiskAdminError,
    UnauthorizedError,
)

from conftest import ADMIN, ALICE, BOB


@pytest.fixture()
def access_manager(chain):
    return AccessManager(chain, ADMIN)


class TestRoleManagement:
    def test_deployer_holds_default_admin(self, access_manager):
        assert access_manager.has_role(Role.DEFAULT_ADMIN, ADMIN)
        assert not access_manager.has_role(Role.DEFAULT_ADMIN, ALICE)

    def test_admin_grants_and_revokes(self, access_manager, chain):
        access_manager.grant_role(ADMIN, Role.MINTER, ALICE)
        assert access_manager.has_role(Role.MINTER, ALICE)
        access_manager.check_minter(ALICE)

        access_manager.revoke_role(ADMIN, Role.MINTER, ALICE)
        assert not access_manager.has_role(Role.MINTER, ALICE)
        assert [e.name for e in chain.events()] == ["RoleGranted", "RoleRevoked"]

    def test_grant_is_idempotent(self, access_manager, chain):
        access_manager.grant_role(ADMIN, Role.BURNER, ALICE)
        access_manager.grant_role(ADMIN, Role.BURNER, ALICE)
        assert len(chain.events("RoleGranted")) == 1

    def test_non_admin_cannot_grant(self, access_manager):
        with pytest.raises(MissingRoleError) as exc_info:
            access_manager.grant_role(ALICE, Role.MINTER, ALICE)
        assert exc_info.value.role == "DEFAULT_ADMIN"
        assert exc_info.value.account == ALICE
        assert not access_manager.has_role(Role.MINTER, ALICE)

    def test_non_admin_cannot_revoke(self, access_manager):
        access_manager.grant_role(ADMIN, Role.MINTER, BOB)
        with pytest.raises(MissingRoleError):
            access_manager.revoke_role(ALICE, Role.MINTER, BOB)
        assert access_manager.has_role(Role.MINTER, BOB)

    def test_renounce_own_role(self, access_manager):
        access_manager.grant_role(ADMIN, Role.PRICE_UPDATER, ALICE)
        access_manager.renounce_role(ALICE, Role.PRICE_UPDATER)
        assert not access_manager.has_role(Role.PRICE_UPDATER, ALICE)


class TestCapabilityChecks:
    @pytest.mark.parametrize(
        "check, error, role",
        [
            ("check_minter", NotMinterError, "MINTER"),
            ("check_burner", NotBurnerError, "BURNER"),
            ("check_price_updater", NotPriceUpdaterError, "PRICE_UPDATER"),
            ("check_risk_admin", NotRiskAdminError, "RISK_ADMIN"),
            ("check_config_admin", NotConfigAdminError, "CONFIG_ADMIN"),
            ("check_emergency_admin", NotEmergencyAdminError, "EMERGENCY_ADMIN"),
        ],
    )
    def test_missing_capability_raises_specific_error(self, access_manager, check, error, role):
        with pytest.raises(error) as exc_info:
            getattr(access_manager, check)(ALICE)
        assert isinstance(exc_info.value, UnauthorizedError)
        assert exc_info.value.role == role
        assert role in str(exc_info.value)

    def test_default_admin_is_not_implicitly_minter(self, access_manager):
        with pytest.raises(NotMinterError):
            access_manager.check_minter(ADMIN)

    def test_allow_all_grants_everything(self, chain):
        stable = StableAsset(chain, AllowAllAuthorization())
        stable.mint(ALICE, ALICE, 10)
        stable.burn(ALICE, 4)
        assert stable.balance_of(ALICE) == 6
        assert stable.total_supply == 6
