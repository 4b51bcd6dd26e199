import json
import os
from pathlib import Path
from typing import Dict, List

import yaml
from ape import networks, project
from ape.contracts import ContractContainer, ContractInstance

from nest_template.constants import (
    ARTIFACTS_DIR,
    CONSTRUCTOR_PARAMETER_KEY,
    ENVIRONMENT_OVERRIDES,
)
from nest_template.networks import is_local_network


def _load_yaml(filepath: Path) -> dict:
    """Loads a YAML file."""
    with open(filepath, "r") as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    """Loads a JSON file."""
    with open(filepath, "r") as file:
        return json.load(file)


def get_artifact_filepath(config: Dict) -> Path:
    """Returns the filepath of the artifact file."""
    artifact_config = config.get("artifacts", {})
    artifact_dir = Path(artifact_config.get("dir", ARTIFACTS_DIR))
    filename = artifact_config.get("filename")
    if not filename:
        raise ValueError("artifact filename is not set in params file.")
    return artifact_dir / filename


def validate_config(config: Dict) -> Path:
    """
    Checks that the params file targets the connected chain and, for live
    networks, that the deployment has not already been published for it.
    """
    print("Validating parameters YAML...")

    deployment = config.get("deployment")
    if not deployment:
        raise ValueError("deployment is not set in params file.")

    config_chain_id = deployment.get("chain_id")
    if not config_chain_id:
        raise ValueError("chain_id is not set in params file.")

    contracts = config.get("contracts")
    if not contracts:
        raise ValueError("Constructor parameters file missing 'contracts' field.")

    config_chain_id = int(config_chain_id)
    chain_mismatch = config_chain_id != networks.provider.network.chain_id
    live_deployment = not is_local_network()
    if chain_mismatch and live_deployment:
        raise ValueError(
            f"chain_id in params file ({config_chain_id}) does not match "
            f"chain_id of current network ({networks.provider.network.chain_id})."
        )

    registry_filepath = get_artifact_filepath(config=config)
    if not registry_filepath.exists() or not live_deployment:
        # local registries are overwritten on every deployment
        return registry_filepath

    registry_chain_ids = map(int, _load_json(registry_filepath).keys())
    if config_chain_id in registry_chain_ids:
        raise ValueError(f"Deployment is already published for chain_id {config_chain_id}.")

    return registry_filepath


def _replace_variable(value, variable: str, replacement: str):
    if isinstance(value, list):
        return [_replace_variable(item, variable, replacement) for item in value]
    return replacement if value == f"${variable}" else value


def _override_contracts(contracts: List, replaced: str, constant: str) -> List:
    """
    Drops the contract an override replaces and points every constructor
    parameter that referred to it at the override constant instead.
    """
    overridden = list()
    for contract_info in contracts:
        contract = contract_info if isinstance(contract_info, str) else next(iter(contract_info))
        if contract == replaced:
            print(f"(i) Skipping {replaced} deployment, using ${constant}")
            continue
        if isinstance(contract_info, dict):
            ((contract_name, settings),) = contract_info.items()
            settings = dict(settings or {})
            parameters = settings.get(CONSTRUCTOR_PARAMETER_KEY) or {}
            settings[CONSTRUCTOR_PARAMETER_KEY] = {
                name: _replace_variable(value, replaced, f"${constant}")
                for name, value in parameters.items()
            }
            contract_info = {contract_name: settings}
        overridden.append(contract_info)
    return overridden


def apply_environment_overrides(config: Dict) -> Dict:
    """
    Returns a copy of the params config using the addresses exported in the
    environment: each one becomes a constant of the same name and replaces the
    contract deployment or ENS lookup it stands for.
    """
    constants = dict(config.get("constants") or {})
    contracts = list(config.get("contracts") or [])
    for name, replaced in ENVIRONMENT_OVERRIDES.items():
        value = os.environ.get(name)
        if not value:
            continue
        print(f"(i) Using {name}={value} from environment")
        constants[name] = value
        if replaced:
            contracts = _override_contracts(contracts, replaced, name)
    return {**config, "constants": constants, "contracts": contracts}


def check_etherscan_plugin() -> None:
    """Source verification needs ape-etherscan and an explorer API key for the ecosystem."""
    try:
        from ape_etherscan.utils import API_KEY_ENV_KEY_MAP
    except ImportError:
        raise ImportError("Please install the ape-etherscan plugin to verify contracts.")
    envvar = API_KEY_ENV_KEY_MAP.get(networks.provider.network.ecosystem.name)
    if not envvar or not os.environ.get(envvar):
        raise ValueError(f"{envvar or 'Explorer API key'} is not set.")


def check_infura_plugin() -> None:
    """Connecting through infura needs ape-infura and one of its API key variables."""
    if networks.provider.name != "infura":
        return
    try:
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES
    except ImportError:
        raise ImportError("Please install the ape-infura plugin to use this script.")
    if not any(os.environ.get(envvar) for envvar in _ENVIRONMENT_VARIABLE_NAMES):
        raise ValueError(
            f"No Infura API key found in "
            f"environment variables: {', '.join(_ENVIRONMENT_VARIABLE_NAMES)}"
        )


def check_plugins(verify: bool = False) -> None:
    if is_local_network():
        return
    print("Checking plugins...")
    if verify:
        check_etherscan_plugin()
    check_infura_plugin()


def verify_contracts(contracts: List[ContractInstance]) -> None:
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Verifying {instance.contract_type.name} at {instance.address}...")
        explorer.publish_contract(instance.address)


def _get_dependency_contract_container(contract: str) -> ContractContainer:
    for dependency_name, dependency_versions in project.dependencies.items():
        if len(dependency_versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        try:
            dependency_api = list(dependency_versions.values())[0]
            contract_container = getattr(dependency_api, contract)
            return contract_container
        except AttributeError:
            continue
    raise ValueError(f"No contract found with name '{contract}'.")


def get_contract_container(contract: str) -> ContractContainer:
    """
    Returns the container of a contract compiled either in this project or in
    one of the aragonOS / apps dependencies.
    """
    try:
        contract_container = getattr(project, contract)
    except AttributeError:
        # not in root project; check dependencies
        contract_container = _get_dependency_contract_container(contract)

    return contract_container
