import secrets
import string
from typing import Dict, List, NamedTuple, Optional

from ape.api import ReceiptAPI
from ape.contracts import ContractContainer
from ens import ENS
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from nest_template.constants import APM_DOMAIN
from nest_template.utils import get_contract_container

ARAGON_ID_ALPHABET = string.ascii_lowercase + string.digits


def namehash(name: str) -> HexBytes:
    """EIP-137 namehash of an ENS name."""
    return ENS.namehash(name)


class App(NamedTuple):
    """An app published on APM under <name>.aragonpm.eth."""

    name: str
    contract_name: str

    @property
    def ens_name(self) -> str:
        return f"{self.name}.{APM_DOMAIN}"

    @property
    def app_id(self) -> HexBytes:
        return namehash(self.ens_name)


APPS = [
    App("agent", "Agent"),
    App("finance", "Finance"),
    App("token-manager", "TokenManager"),
    App("vault", "Vault"),
    App("voting", "Voting"),
]

APP_IDS = {app.name: app.app_id for app in APPS}


def random_id(length: int = 10) -> str:
    """Returns a random aragonID label."""
    return "".join(secrets.choice(ARAGON_ID_ALPHABET) for _ in range(length))


def get_event_argument(receipt: ReceiptAPI, contract, event_name: str, argument: str):
    """
    Returns an argument of the first `event_name` log emitted in the transaction,
    decoded with the ABI of `contract` (a container or an instance).
    """
    event_abi = contract.contract_type.events[event_name]
    logs = receipt.decode_logs(event_abi)
    if not logs:
        raise ValueError(f"No {event_name} event found in transaction {receipt.txn_hash}")
    return logs[0].event_arguments[argument]


def get_installed_apps(
    receipt: ReceiptAPI, app_id: bytes, kernel: Optional[ContractContainer] = None
) -> List[ChecksumAddress]:
    """Returns the proxy addresses of every app installed with `app_id`, in emission order."""
    if kernel is None:
        kernel = get_contract_container("Kernel")
    event_abi = kernel.contract_type.events["InstalledApp"]
    app_id = HexBytes(app_id)
    return [
        to_checksum_address(log.event_arguments["appProxy"])
        for log in receipt.decode_logs(event_abi)
        if HexBytes(log.event_arguments["appId"]) == app_id
    ]


def get_installed_apps_by_id(
    receipt: ReceiptAPI, apps: Optional[List[App]] = None
) -> Dict[str, List[ChecksumAddress]]:
    """Groups the apps installed in the transaction by app name."""
    apps = apps or APPS
    return {app.name: get_installed_apps(receipt, app.app_id) for app in apps}
