import json
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, NamedTuple, Optional

from ape.contracts import ContractInstance
from eth_typing import ABI, ChecksumAddress
from eth_utils import to_checksum_address

from nest_template.utils import _load_json, get_contract_container

ChainId = int
ContractName = str

STANDARD_REGISTRY_JSON_FORMAT = {"indent": 4, "separators": (",", ": ")}


class RegistryEntry(NamedTuple):
    """One deployed contract in a deployment registry."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str

    @classmethod
    def from_artifact(cls, chain_id: str, name: ContractName, artifact: Dict) -> "RegistryEntry":
        return cls(
            chain_id=int(chain_id),
            name=name,
            address=artifact["address"],
            abi=artifact["abi"],
            tx_hash=artifact["tx_hash"],
            block_number=artifact["block_number"],
            deployer=artifact["deployer"],
        )

    def artifact(self) -> Dict:
        """The JSON representation of the entry, with a deterministically ordered ABI."""
        return {
            "address": self.address,
            "abi": sorted(self.abi, key=lambda item: (item["type"], item.get("name", ""))),
            "tx_hash": self.tx_hash,
            "block_number": int(self.block_number),
            "deployer": self.deployer,
        }


def _get_entry(
    contract_instance: ContractInstance, registry_names: Dict[ContractName, ContractName]
) -> RegistryEntry:
    """Builds a registry entry from a deployment, optionally renaming the contract."""
    contract_name = contract_instance.contract_type.name
    receipt = contract_instance.receipt
    return RegistryEntry(
        chain_id=receipt.chain_id,
        name=registry_names.get(contract_name, contract_name),
        address=to_checksum_address(contract_instance.address),
        abi=[
            item.model_dump(mode="json", by_alias=True)
            for item in contract_instance.contract_type.abi
        ],
        tx_hash=receipt.txn_hash,
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    return [
        RegistryEntry.from_artifact(chain_id, name, artifact)
        for chain_id, artifacts in _load_json(filepath).items()
        for name, artifact in artifacts.items()
    ]


def write_registry(
    entries: List[RegistryEntry], filepath: Path, overwrite: bool = False, silent: bool = False
) -> Path:
    """
    Writes a deployment registry keyed by chain id, then contract name.

    Chains already present in an existing registry are only replaced when
    `overwrite` is set; otherwise the new registry is written next to it as
    `<name>.unmerged.json`.
    """
    log = (lambda *args: None) if silent else print
    if not entries:
        log("No entries provided.")
        return filepath

    data = defaultdict(dict)
    for entry in sorted(entries, key=lambda e: (str(e.chain_id), e.name)):
        data[str(entry.chain_id)][entry.name] = entry.artifact()

    filepath.parent.mkdir(parents=True, exist_ok=True)
    if not filepath.exists():
        log(f"Creating new registry at {filepath}.")
    else:
        log(f"Updating existing registry at {filepath}.")
        existing = _load_json(filepath)
        if overwrite or not any(chain_id in existing for chain_id in data):
            data = {**existing, **data}
        else:
            filepath = filepath.with_suffix(".unmerged.json")
            log(
                "Cannot merge registries with overlapping chain IDs.\n"
                f"Writing to {filepath} to avoid overwriting existing data."
            )

    with open(filepath, "w") as file:
        json.dump(data, file, **STANDARD_REGISTRY_JSON_FORMAT)
    return filepath


def registry_from_ape_deployments(
    deployments: List[ContractInstance],
    output_filepath: Path,
    registry_names: Optional[Dict[ContractName, ContractName]] = None,
    overwrite: bool = False,
) -> Path:
    """Writes the registry of the contracts deployed in this run."""
    registry_names = registry_names or dict()
    entries = [_get_entry(instance, registry_names) for instance in deployments]
    output_filepath = write_registry(entries=entries, filepath=output_filepath, overwrite=overwrite)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


def contracts_from_registry(filepath: Path, chain_id: ChainId) -> Dict[str, ContractInstance]:
    """Returns the contracts a registry lists for `chain_id`, keyed by name."""
    return {
        entry.name: get_contract_container(entry.name).at(entry.address)
        for entry in read_registry(filepath=filepath)
        if entry.chain_id == chain_id
    }
