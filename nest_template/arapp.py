import json
from pathlib import Path
from typing import NamedTuple, Optional

from ape import networks
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from nest_template.constants import ARAPP_FILEPATH, ARAPP_LOCAL_ENVIRONMENT, LOCAL_NETWORKS
from nest_template.utils import _load_json

ARAPP_JSON_FORMAT = {"indent": 2}


class DeployedAddresses(NamedTuple):
    """ENS registry and template address recorded for one arapp environment."""

    registry: ChecksumAddress
    address: ChecksumAddress


def environment_name(network_name: Optional[str] = None) -> str:
    """Maps an ape network name to its arapp environment name."""
    if network_name is None:
        network_name = networks.provider.network.name
    if network_name in LOCAL_NETWORKS:
        return ARAPP_LOCAL_ENVIRONMENT
    return network_name


def read_arapp(filepath: Path = ARAPP_FILEPATH) -> dict:
    if not filepath.exists():
        raise FileNotFoundError(f"No arapp file found at {filepath}")
    return _load_json(filepath)


def write_arapp(data: dict, filepath: Path = ARAPP_FILEPATH) -> Path:
    with open(filepath, "w") as file:
        json.dump(data, file, **ARAPP_JSON_FORMAT)
        file.write("\n")
    return filepath


def deployed_addresses(
    filepath: Path = ARAPP_FILEPATH, environment: Optional[str] = None
) -> DeployedAddresses:
    """Returns the ENS registry and the template deployed for an environment."""
    environment = environment or environment_name()
    environments = read_arapp(filepath).get("environments", {})
    try:
        env = environments[environment]
    except KeyError:
        raise ValueError(f"No '{environment}' environment found in {filepath}")

    registry, address = env.get("registry"), env.get("address")
    if not registry:
        raise ValueError(f"No ENS registry set for '{environment}' environment in {filepath}")
    if not address:
        raise ValueError(f"Template not yet deployed for '{environment}' environment")

    return DeployedAddresses(
        registry=to_checksum_address(registry), address=to_checksum_address(address)
    )


def record_deployment(
    environment: str,
    registry: ChecksumAddress,
    app_name: str,
    address: ChecksumAddress,
    network: str,
    filepath: Path = ARAPP_FILEPATH,
) -> Path:
    """Records a template deployment in the arapp file, keeping every other environment."""
    data = read_arapp(filepath) if filepath.exists() else dict()
    environments = data.setdefault("environments", dict())
    env = environments.setdefault(environment, dict())
    env.update(
        {
            "registry": registry,
            "appName": app_name,
            "address": address,
            "network": network,
        }
    )
    write_arapp(data, filepath)
    print(f"(i) Recorded {app_name} at {address} for '{environment}' in {filepath}")
    return filepath
