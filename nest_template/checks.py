"""
Read-only checks of the permissions and app wiring of a Nest DAO.

Each check raises SetupMismatch on the first difference found; the same
checks back the integration tests and the check_dao script.
"""

from typing import Any, Sequence

from ape.api import ReceiptAPI
from ape.contracts import ContractInstance
from ape.utils import ZERO_ADDRESS
from eth_utils import keccak, to_checksum_address
from hexbytes import HexBytes

from nest_template.apps import APP_IDS
from nest_template.constants import ANY_ADDRESS, ARAGON_ID_DOMAIN
from nest_template.ens import resolve_name
from nest_template.utils import get_contract_container


class SetupMismatch(AssertionError):
    """Raised when a deployed DAO does not match the expected configuration."""


def _expect(condition: bool, message: str) -> None:
    if not condition:
        raise SetupMismatch(message)


def _address(entity: Any) -> str:
    """Accepts contract instances, accounts or plain addresses."""
    return to_checksum_address(getattr(entity, "address", entity))


def get_role(app: ContractInstance, role_name: str) -> bytes:
    """
    Returns the id of an Aragon role. Roles are keccak256 hashes of their
    names, so apps loaded through the base AragonApp interface still work.
    """
    try:
        role_getter = getattr(app, role_name)
    except AttributeError:
        return keccak(text=role_name)
    return role_getter()


def assert_role(acl, app, manager, role_name: str, grantee=None) -> None:
    """Checks that `manager` manages `role_name` on `app` and that `grantee` holds it."""
    grantee = grantee if grantee is not None else manager
    role = get_role(app, role_name)
    role_manager = acl.getPermissionManager(_address(app), role)
    _expect(_address(role_manager) == _address(manager), f"{role_name} manager should match")
    _expect(
        acl.hasPermission(_address(grantee), _address(app), role),
        f"Grantee should have {role_name} role",
    )


def assert_missing_role(acl, app, role_name: str) -> None:
    role_manager = acl.getPermissionManager(_address(app), get_role(app, role_name))
    _expect(role_manager == ZERO_ADDRESS, f"{role_name} should not exist")


def assert_role_not_granted(acl, app, role_name: str, to) -> None:
    _expect(
        not acl.hasPermission(_address(to), _address(app), get_role(app, role_name)),
        f"{role_name} should not be granted to {_address(to)}",
    )


def assert_gas_at_most(receipt: ReceiptAPI, limit: int, label: str) -> int:
    _expect(
        receipt.gas_used <= limit,
        f"{label} should cost up to {limit} gas, used {receipt.gas_used}",
    )
    return receipt.gas_used


def check_ens_name(dao, ens: ContractInstance, dao_id: str) -> None:
    name = f"{dao_id}.{ARAGON_ID_DOMAIN}"
    _expect(resolve_name(ens, name) == dao.dao.address, f"{name} does not resolve to the DAO")


def check_token(dao, name: str, symbol: str, members: Sequence[str]) -> None:
    token = dao.token
    _expect(token.name() == name, f"token name should be {name}")
    _expect(token.symbol() == symbol, f"token symbol should be {symbol}")
    _expect(not token.transfersEnabled(), "token transfers should be disabled")
    _expect(token.decimals() == 0, "token should have 0 decimals")
    _expect(token.totalSupply() == len(members), "one token should be minted per member")
    for holder in members:
        _expect(token.balanceOf(_address(holder)) == 1, f"{holder} should hold 1 token")


def check_voting(dao, voting_settings) -> None:
    voting, acl = dao.voting, dao.acl
    _expect(voting.hasInitialized(), "voting not initialized")
    _expect(
        voting.supportRequiredPct() == voting_settings.support_required,
        "unexpected support required",
    )
    _expect(
        voting.minAcceptQuorumPct() == voting_settings.min_acceptance_quorum,
        "unexpected minimum acceptance quorum",
    )
    _expect(voting.voteTime() == voting_settings.vote_duration, "unexpected vote duration")

    assert_role(acl, voting, voting, "CREATE_VOTES_ROLE", dao.token_manager)
    assert_role(acl, voting, voting, "MODIFY_QUORUM_ROLE")
    assert_role(acl, voting, voting, "MODIFY_SUPPORT_ROLE")


def check_token_manager(dao) -> None:
    token_manager, acl = dao.token_manager, dao.acl
    _expect(token_manager.hasInitialized(), "token manager not initialized")
    _expect(token_manager.token() == dao.token.address, "token manager should control the token")

    assert_role(acl, token_manager, dao.voting, "MINT_ROLE")
    assert_role(acl, token_manager, dao.voting, "BURN_ROLE")

    assert_missing_role(acl, token_manager, "ISSUE_ROLE")
    assert_missing_role(acl, token_manager, "ASSIGN_ROLE")
    assert_missing_role(acl, token_manager, "REVOKE_VESTINGS_ROLE")


def check_finance(dao, finance_period: int) -> None:
    finance, acl = dao.finance, dao.acl
    _expect(finance.hasInitialized(), "finance not initialized")
    _expect(
        finance.getPeriodDuration() == finance_period,
        f"finance period should be {finance_period} seconds",
    )

    assert_role(acl, finance, dao.voting, "CREATE_PAYMENTS_ROLE")
    assert_role(acl, finance, dao.voting, "EXECUTE_PAYMENTS_ROLE")
    assert_role(acl, finance, dao.voting, "MANAGE_PAYMENTS_ROLE")

    assert_missing_role(acl, finance, "CHANGE_PERIOD_ROLE")
    assert_missing_role(acl, finance, "CHANGE_BUDGETS_ROLE")


def check_dao_permissions(dao, template) -> None:
    acl = dao.acl
    assert_role(acl, dao.dao, dao.voting, "APP_MANAGER_ROLE")
    assert_role(acl, acl, dao.voting, "CREATE_PERMISSIONS_ROLE")

    assert_role_not_granted(acl, dao.dao, "APP_MANAGER_ROLE", template)
    assert_role_not_granted(acl, acl, "CREATE_PERMISSIONS_ROLE", template)


def check_evm_scripts_registry(dao) -> None:
    acl = dao.acl
    registry = get_contract_container("EVMScriptRegistry").at(acl.getEVMScriptRegistry())
    assert_role(acl, registry, dao.voting, "REGISTRY_ADD_EXECUTOR_ROLE")
    assert_role(acl, registry, dao.voting, "REGISTRY_MANAGER_ROLE")


def check_vault(dao) -> None:
    vault, acl = dao.vault, dao.acl
    _expect(vault.hasInitialized(), "vault not initialized")
    _expect(
        HexBytes(dao.dao.recoveryVaultAppId()) == APP_IDS["vault"],
        "vault app is not being used as the vault app of the DAO",
    )
    _expect(_address(dao.finance.vault()) == vault.address, "finance vault is not the vault app")
    _expect(
        _address(dao.dao.getRecoveryVault()) == vault.address,
        "vault app is not being used as the recovery vault of the DAO",
    )

    assert_role(acl, vault, dao.voting, "TRANSFER_ROLE", dao.finance)


def check_approvals(dao, aa_account) -> None:
    approvals, acl = dao.approvals, dao.acl
    _expect(approvals.hasInitialized(), "approvals not initialized")

    assert_role(acl, approvals, aa_account, "SUBMIT_ROLE", ANY_ADDRESS)
    assert_role(acl, approvals, aa_account, "APPROVE_ROLE")
    assert_role(acl, approvals, aa_account, "REJECT_ROLE")


def check_dao(
    dao,
    template,
    voting_settings,
    finance_period: int,
    aa_account,
    token_name: str,
    token_symbol: str,
    members: Sequence[str],
    ens: ContractInstance = None,
    dao_id: str = None,
) -> None:
    """Runs every token, app and permission check; the ENS check needs both `ens` and `dao_id`."""
    if ens is not None and dao_id:
        check_ens_name(dao, ens, dao_id)
    check_token(dao, token_name, token_symbol, members)
    check_voting(dao, voting_settings)
    check_token_manager(dao)
    check_finance(dao, finance_period)
    check_dao_permissions(dao, template)
    check_evm_scripts_registry(dao)
    check_vault(dao)
    check_approvals(dao, aa_account)
