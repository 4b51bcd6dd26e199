from typing import NamedTuple

import ape
import pytest
from ape.api import ReceiptAPI
from ape.utils import EMPTY_BYTES32, ZERO_ADDRESS
from hexbytes import HexBytes

from nest_template.apps import APP_IDS, random_id
from nest_template.checks import (
    assert_gas_at_most,
    assert_missing_role,
    assert_role,
    assert_role_not_granted,
    check_dao,
)
from nest_template.constants import (
    ANY_ADDRESS,
    DAO_CREATION_GAS_LIMIT,
    ERROR_BAD_AA_ACCOUNT,
    ERROR_BAD_ACCEPTANCE,
    ERROR_BAD_APPROVALS,
    ERROR_BAD_DURATION,
    ERROR_BAD_FINANCE_PERIOD,
    ERROR_BAD_SUPPORT,
    ERROR_INVALID_ID,
    ERROR_MISSING_MEMBERS,
    ERROR_MISSING_TOKEN_CACHE,
    TOKEN_CREATION_GAS_LIMIT,
    TOTAL_CREATION_GAS_LIMIT,
)
from nest_template.dao import load_dao
from nest_template.ens import resolve_name
from nest_template.params import Transactor
from nest_template.template import TemplateClient
from nest_template.utils import get_contract_container
from tests.conftest import (
    FINANCE_PERIOD,
    MIN_ACCEPTANCE_QUORUM,
    SUPPORT_REQUIRED,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    VOTE_DURATION,
    VOTING_SETTINGS,
)

SEPARATE_TRANSACTIONS = "separate-transactions"
SINGLE_TRANSACTION = "single-transaction"

INSTANCE_PARAMS = [
    "dao_id",
    "members",
    "voting_settings",
    "finance_period",
    "approvals_app_id",
    "aa_account",
]


class Creation(NamedTuple):
    dao_id: str
    token_receipt: ReceiptAPI
    instance_receipt: ReceiptAPI


@pytest.fixture(scope="module")
def instance_params(members, approvals_app_id, aa_account):
    return {
        "members": members,
        "voting_settings": list(VOTING_SETTINGS),
        "finance_period": FINANCE_PERIOD,
        "approvals_app_id": approvals_app_id,
        "aa_account": aa_account.address,
    }


def instance_args(params, **overrides):
    """Positional newInstance arguments, with a fresh aragonID unless overridden."""
    params = {**params, "dao_id": random_id(), **overrides}
    return [params[name] for name in INSTANCE_PARAMS]


@pytest.fixture(scope="module", params=[SEPARATE_TRANSACTIONS, SINGLE_TRANSACTION])
def creation(request, template, owner, instance_params):
    args = instance_args(instance_params)
    dao_id = args[0]
    if request.param == SEPARATE_TRANSACTIONS:
        token_receipt = template.newToken(TOKEN_NAME, TOKEN_SYMBOL, sender=owner)
        instance_receipt = template.newInstance(*args, sender=owner)
    else:
        instance_receipt = template.newTokenAndInstance(
            TOKEN_NAME, TOKEN_SYMBOL, *args, sender=owner
        )
        token_receipt = instance_receipt
    return Creation(dao_id, token_receipt, instance_receipt)


@pytest.fixture(scope="module")
def nest_dao(template, creation, approvals_app_id):
    return load_dao(
        template, creation.token_receipt, creation.instance_receipt, approvals_app_id
    )


#
# Failures
#

FAILURES = [
    pytest.param({"members": []}, ERROR_MISSING_MEMBERS, id="no-members"),
    pytest.param({"dao_id": ""}, ERROR_INVALID_ID, id="empty-id"),
    pytest.param({"finance_period": 0}, ERROR_BAD_FINANCE_PERIOD, id="zero-finance-period"),
    pytest.param({"approvals_app_id": EMPTY_BYTES32}, ERROR_BAD_APPROVALS, id="zero-approvals"),
    pytest.param({"aa_account": ZERO_ADDRESS}, ERROR_BAD_AA_ACCOUNT, id="zero-aa-account"),
    pytest.param(
        {"voting_settings": [0, MIN_ACCEPTANCE_QUORUM, VOTE_DURATION]},
        ERROR_BAD_SUPPORT,
        id="zero-support",
    ),
    pytest.param(
        {"voting_settings": [SUPPORT_REQUIRED, 0, VOTE_DURATION]},
        ERROR_BAD_ACCEPTANCE,
        id="zero-quorum",
    ),
    pytest.param(
        {"voting_settings": [SUPPORT_REQUIRED, MIN_ACCEPTANCE_QUORUM, 0]},
        ERROR_BAD_DURATION,
        id="zero-duration",
    ),
]


def test_new_instance_without_token_reverts(template, stranger, instance_params):
    with ape.reverts(ERROR_MISSING_TOKEN_CACHE):
        template.newInstance(*instance_args(instance_params), sender=stranger)


@pytest.mark.parametrize("overrides, reason", FAILURES)
def test_new_instance_reverts(template, owner, instance_params, overrides, reason):
    template.newToken(TOKEN_NAME, TOKEN_SYMBOL, sender=owner)
    with ape.reverts(reason):
        template.newInstance(*instance_args(instance_params, **overrides), sender=owner)


@pytest.mark.parametrize("overrides, reason", FAILURES)
def test_new_token_and_instance_reverts(template, owner, instance_params, overrides, reason):
    with ape.reverts(reason):
        template.newTokenAndInstance(
            TOKEN_NAME,
            TOKEN_SYMBOL,
            *instance_args(instance_params, **overrides),
            sender=owner,
        )


#
# Gas
#


def test_gas_costs(template, owner, instance_params):
    token_receipt = template.newToken(TOKEN_NAME, TOKEN_SYMBOL, sender=owner)
    instance_receipt = template.newInstance(*instance_args(instance_params), sender=owner)

    token_cost = assert_gas_at_most(
        token_receipt, TOKEN_CREATION_GAS_LIMIT, "token creation call"
    )
    dao_cost = assert_gas_at_most(instance_receipt, DAO_CREATION_GAS_LIMIT, "dao creation call")
    assert token_cost + dao_cost <= TOTAL_CREATION_GAS_LIMIT


#
# Setup
#


def test_setup_dao_event(template, creation, nest_dao):
    setup_logs = creation.instance_receipt.decode_logs(template.contract_type.events["SetupDao"])
    assert len(setup_logs) == 1
    assert setup_logs[0].event_arguments["dao"] == nest_dao.dao.address


def test_registers_dao_on_ens(ens, creation, nest_dao):
    resolved_address = resolve_name(ens, f"{creation.dao_id}.aragonid.eth")
    assert resolved_address == nest_dao.dao.address, "aragonId ENS name does not match"


def test_creates_token(nest_dao):
    token = nest_dao.token
    assert token.name() == TOKEN_NAME
    assert token.symbol() == TOKEN_SYMBOL
    assert not token.transfersEnabled()
    assert token.decimals() == 0


def test_mints_requested_amounts_for_members(nest_dao, members):
    token = nest_dao.token
    assert token.totalSupply() == len(members)
    for holder in members:
        assert token.balanceOf(holder) == 1


def test_voting_setup(nest_dao):
    acl, voting = nest_dao.acl, nest_dao.voting
    assert voting.hasInitialized(), "voting not initialized"
    assert voting.supportRequiredPct() == SUPPORT_REQUIRED
    assert voting.minAcceptQuorumPct() == MIN_ACCEPTANCE_QUORUM
    assert voting.voteTime() == VOTE_DURATION

    assert_role(acl, voting, voting, "CREATE_VOTES_ROLE", nest_dao.token_manager)
    assert_role(acl, voting, voting, "MODIFY_QUORUM_ROLE")
    assert_role(acl, voting, voting, "MODIFY_SUPPORT_ROLE")


def test_token_manager_setup(nest_dao):
    acl, voting, token_manager = nest_dao.acl, nest_dao.voting, nest_dao.token_manager
    assert token_manager.hasInitialized(), "token manager not initialized"
    assert token_manager.token() == nest_dao.token.address

    assert_role(acl, token_manager, voting, "MINT_ROLE")
    assert_role(acl, token_manager, voting, "BURN_ROLE")

    assert_missing_role(acl, token_manager, "ISSUE_ROLE")
    assert_missing_role(acl, token_manager, "ASSIGN_ROLE")
    assert_missing_role(acl, token_manager, "REVOKE_VESTINGS_ROLE")


def test_finance_setup(nest_dao):
    acl, voting, finance = nest_dao.acl, nest_dao.voting, nest_dao.finance
    assert finance.hasInitialized(), "finance not initialized"
    assert finance.getPeriodDuration() == FINANCE_PERIOD, "finance period should be 30 days"

    assert_role(acl, finance, voting, "CREATE_PAYMENTS_ROLE")
    assert_role(acl, finance, voting, "EXECUTE_PAYMENTS_ROLE")
    assert_role(acl, finance, voting, "MANAGE_PAYMENTS_ROLE")

    assert_missing_role(acl, finance, "CHANGE_PERIOD_ROLE")
    assert_missing_role(acl, finance, "CHANGE_BUDGETS_ROLE")


def test_dao_and_acl_permissions(template, nest_dao):
    acl, dao, voting = nest_dao.acl, nest_dao.dao, nest_dao.voting
    assert_role(acl, dao, voting, "APP_MANAGER_ROLE")
    assert_role(acl, acl, voting, "CREATE_PERMISSIONS_ROLE")

    assert_role_not_granted(acl, dao, "APP_MANAGER_ROLE", template)
    assert_role_not_granted(acl, acl, "CREATE_PERMISSIONS_ROLE", template)


def test_evm_scripts_registry_permissions(nest_dao):
    acl = nest_dao.acl
    registry = get_contract_container("EVMScriptRegistry").at(acl.getEVMScriptRegistry())
    assert_role(acl, registry, nest_dao.voting, "REGISTRY_ADD_EXECUTOR_ROLE")
    assert_role(acl, registry, nest_dao.voting, "REGISTRY_MANAGER_ROLE")


def test_vault_setup(nest_dao):
    acl, dao, vault = nest_dao.acl, nest_dao.dao, nest_dao.vault
    assert vault.hasInitialized(), "vault not initialized"

    assert HexBytes(dao.recoveryVaultAppId()) == APP_IDS["vault"]
    assert nest_dao.finance.vault() == vault.address, "finance vault is not the vault app"
    assert dao.getRecoveryVault() == vault.address

    assert_role(acl, vault, nest_dao.voting, "TRANSFER_ROLE", nest_dao.finance)


def test_approvals_setup(nest_dao, aa_account):
    acl, approvals = nest_dao.acl, nest_dao.approvals
    assert approvals.hasInitialized(), "approvals not initialized"

    assert_role(acl, approvals, aa_account, "SUBMIT_ROLE", ANY_ADDRESS)
    assert_role(acl, approvals, aa_account, "APPROVE_ROLE")
    assert_role(acl, approvals, aa_account, "REJECT_ROLE")


def test_check_dao(template, ens, creation, nest_dao, aa_account, members):
    check_dao(
        nest_dao,
        template,
        VOTING_SETTINGS,
        FINANCE_PERIOD,
        aa_account,
        token_name=TOKEN_NAME,
        token_symbol=TOKEN_SYMBOL,
        members=members,
        ens=ens,
        dao_id=creation.dao_id,
    )


def test_template_client(template, owner, members, approvals_app_id, aa_account, ens):
    client = TemplateClient(template=template, transactor=Transactor(account=owner, autosign=True))
    dao_id = random_id()

    token_receipt = client.new_token(TOKEN_NAME, TOKEN_SYMBOL)
    instance_receipt = client.new_instance(
        dao_id, members, VOTING_SETTINGS, FINANCE_PERIOD, approvals_app_id, aa_account.address
    )

    dao = load_dao(template, token_receipt, instance_receipt, approvals_app_id)
    check_dao(
        dao,
        template,
        VOTING_SETTINGS,
        FINANCE_PERIOD,
        aa_account,
        token_name=TOKEN_NAME,
        token_symbol=TOKEN_SYMBOL,
        members=members,
        ens=ens,
        dao_id=dao_id,
    )
