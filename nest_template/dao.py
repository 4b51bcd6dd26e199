from typing import NamedTuple

from ape.api import ReceiptAPI
from ape.contracts import ContractInstance

from nest_template.apps import get_event_argument, get_installed_apps, get_installed_apps_by_id
from nest_template.checks import SetupMismatch
from nest_template.utils import get_contract_container

# app name -> contract the app instance is loaded as
APP_CONTRACTS = {
    "voting": "Voting",
    "finance": "Finance",
    "token-manager": "TokenManager",
    "vault": "Vault",
    # no ABI is published for approvals; the base interface covers initialization checks
    "approvals": "AragonApp",
}


class NestDAO(NamedTuple):
    dao: ContractInstance
    acl: ContractInstance
    token: ContractInstance
    voting: ContractInstance
    finance: ContractInstance
    token_manager: ContractInstance
    vault: ContractInstance
    approvals: ContractInstance


def load_dao(
    template: ContractInstance,
    token_receipt: ReceiptAPI,
    instance_receipt: ReceiptAPI,
    approvals_app_id: bytes,
) -> NestDAO:
    """
    Locates the DAO, its token and its apps from the template events.

    When the DAO was created in a single transaction both receipts are the same.
    """
    dao_address = get_event_argument(instance_receipt, template, "DeployDao", "dao")
    token_address = get_event_argument(token_receipt, template, "DeployToken", "token")
    setup_dao = get_event_argument(instance_receipt, template, "SetupDao", "dao")
    if setup_dao != dao_address:
        raise SetupMismatch("should have emitted a SetupDao event")

    installed_apps = get_installed_apps_by_id(instance_receipt)
    installed_apps["approvals"] = get_installed_apps(instance_receipt, approvals_app_id)

    apps = dict()
    for name, contract_name in APP_CONTRACTS.items():
        proxies = installed_apps.get(name, [])
        if len(proxies) != 1:
            raise SetupMismatch(f"should have installed 1 {name} app, found {len(proxies)}")
        apps[name] = get_contract_container(contract_name).at(proxies[0])

    dao = get_contract_container("Kernel").at(dao_address)
    return NestDAO(
        dao=dao,
        acl=get_contract_container("ACL").at(dao.acl()),
        token=get_contract_container("MiniMeToken").at(token_address),
        voting=apps["voting"],
        finance=apps["finance"],
        token_manager=apps["token-manager"],
        vault=apps["vault"],
        approvals=apps["approvals"],
    )
