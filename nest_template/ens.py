from ape import chain
from ape.contracts import ContractInstance
from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from nest_template.apps import namehash
from nest_template.constants import APM_DOMAIN
from nest_template.utils import get_contract_container


def apm_name(app_name: str) -> str:
    """Returns the full APM repo name of an app (e.g. voting.aragonpm.eth)."""
    if app_name.endswith(f".{APM_DOMAIN}"):
        return app_name
    return f"{app_name}.{APM_DOMAIN}"


def get_ens(address: ChecksumAddress) -> ContractInstance:
    """Returns the ENS registry at `address`, making sure something is deployed there."""
    if not chain.provider.get_code(address):
        raise ValueError(f"No ENS registry deployed at {address}")
    return get_contract_container("ENS").at(address)


def resolve_name(ens: ContractInstance, name: str) -> ChecksumAddress:
    """
    Resolves an ENS name to an address through its public resolver.
    Returns the zero address when the name has no resolver.
    """
    node = namehash(name)
    resolver_address = ens.resolver(node)
    if resolver_address == ZERO_ADDRESS:
        return ZERO_ADDRESS
    resolver = get_contract_container("PublicResolver").at(resolver_address)
    return to_checksum_address(resolver.addr(node))
