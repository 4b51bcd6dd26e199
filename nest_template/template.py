import typing
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence

from ape import networks
from ape.api import AccountAPI, ReceiptAPI
from ape.contracts import ContractInstance
from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress

from nest_template.arapp import deployed_addresses, environment_name, record_deployment
from nest_template.constants import (
    APM_DOMAIN,
    ARAGON_ID_DOMAIN,
    ARAPP_FILEPATH,
    CONTRACT_NAME,
    NEST_APPS,
    TEMPLATE_NAME,
)
from nest_template.ens import apm_name, get_ens, resolve_name
from nest_template.params import Deployer, Transactor
from nest_template.registry import contracts_from_registry
from nest_template.utils import apply_environment_overrides, get_contract_container

INITIAL_VERSION = [1, 0, 0]
EMPTY_CONTENT_URI = b""


class VotingSettings(NamedTuple):
    """Voting app parameters; percentages are expressed with 18 decimals (66% == 66e16)."""

    support_required: int
    min_acceptance_quorum: int
    vote_duration: int


class TemplateDeployer(Deployer):
    """
    Deploys a DAO template (and whatever framework contracts the params file
    lists before it), publishes it to APM and records it in the arapp file.
    """

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        verify: bool,
        account: Optional[AccountAPI] = None,
        autosign: bool = False,
        arapp_filepath: Path = ARAPP_FILEPATH,
    ):
        config = apply_environment_overrides(config)
        template_config = config.get("template") or dict()
        self.template_name = template_config.get("name", TEMPLATE_NAME)
        self.template_contract = template_config.get("contract", CONTRACT_NAME)
        self.apps = list(template_config.get("apps", NEST_APPS))
        self.register = bool(template_config.get("register", False))
        self.arapp_filepath = arapp_filepath

        ens_address = config["constants"].get("ENS")
        if not ens_address:
            raise ValueError("ENS is not set in params file or environment.")
        self.ens = get_ens(ens_address)

        super().__init__(
            config=config, path=path, verify=verify, account=account, autosign=autosign
        )
        if self.template_contract not in self.contract_names:
            raise ValueError(f"{self.template_contract} is not listed in the params contracts.")
        self.deployments: List[ContractInstance] = list()

    @property
    def app_name(self) -> str:
        return apm_name(self.template_name)

    def check_dependencies(self) -> None:
        """Checks that aragonID, APM and every app the template installs are published on ENS."""
        print("Checking Aragon dependencies...")
        for name in (APM_DOMAIN, ARAGON_ID_DOMAIN):
            address = resolve_name(self.ens, name)
            if address == ZERO_ADDRESS:
                raise ValueError(f"{name} is not registered on ENS at {self.ens.address}")
            print(f"(i) {name} at {address}")

        missing = list()
        for app in self.apps:
            repo = resolve_name(self.ens, apm_name(app))
            if repo == ZERO_ADDRESS:
                missing.append(app)
            else:
                print(f"(i) Found {app} repo at {repo}")
        if missing:
            raise ValueError(f"Missing apps on APM: {', '.join(missing)}")

    def deploy_template(self) -> ContractInstance:
        """Deploys every configured contract in order and returns the template instance."""
        self.check_dependencies()
        self.deployments = list()
        template = None
        for contract_name in self.contract_names:
            instance = self.deploy(get_contract_container(contract_name))
            self.deployments.append(instance)
            if contract_name == self.template_contract:
                template = instance
        print(f"(i) {self.template_contract} deployed at {template.address}")
        return template

    def register_template(self, template: ContractInstance) -> ReceiptAPI:
        """
        Publishes the template on APM, creating its repo at version 1.0.0
        or bumping the major version of an existing one.
        """
        repo_address = resolve_name(self.ens, self.app_name)
        if repo_address == ZERO_ADDRESS:
            apm = get_contract_container("APMRegistry").at(resolve_name(self.ens, APM_DOMAIN))
            print(f"(i) Registering {self.app_name} on APM")
            return self.transact(
                apm.newRepoWithVersion,
                self.template_name,
                self.get_account().address,
                INITIAL_VERSION,
                template.address,
                EMPTY_CONTENT_URI,
            )

        repo = get_contract_container("Repo").at(repo_address)
        latest_version = repo.getLatest()[0]
        next_version = [latest_version[0] + 1, 0, 0]
        print(f"(i) Publishing {self.app_name} version {'.'.join(map(str, next_version))}")
        return self.transact(repo.newVersion, next_version, template.address, EMPTY_CONTENT_URI)

    def finalize(self, deployments: List[ContractInstance]) -> None:
        super().finalize(deployments=deployments)
        template = next(d for d in deployments if d.contract_type.name == self.template_contract)
        network = networks.provider.network.name
        record_deployment(
            environment=environment_name(network),
            registry=self.ens.address,
            app_name=self.app_name,
            address=template.address,
            network=network,
            filepath=self.arapp_filepath,
        )


class TemplateClient:
    """Creates Nest DAOs through a deployed template."""

    def __init__(self, template: ContractInstance, transactor: Transactor):
        self.template = template
        self.transactor = transactor

    @classmethod
    def from_arapp(
        cls, transactor: Transactor, filepath: Path = ARAPP_FILEPATH
    ) -> "TemplateClient":
        """Loads the template recorded for the connected network."""
        addresses = deployed_addresses(filepath=filepath)
        template = get_contract_container(CONTRACT_NAME).at(addresses.address)
        return cls(template=template, transactor=transactor)

    @classmethod
    def from_registry(cls, transactor: Transactor, filepath: Path) -> "TemplateClient":
        """Loads the template from a deployment registry for the connected chain."""
        chain_id = networks.provider.network.chain_id
        deployments = contracts_from_registry(filepath=filepath, chain_id=chain_id)
        try:
            template = deployments[CONTRACT_NAME]
        except KeyError:
            raise ValueError(f"No {CONTRACT_NAME} found for chain {chain_id} in {filepath}")
        return cls(template=template, transactor=transactor)

    def new_token(self, name: str, symbol: str) -> ReceiptAPI:
        """Deploys and caches the membership token for the next `new_instance` call."""
        return self.transactor.transact(self.template.newToken, name, symbol)

    def new_instance(
        self,
        dao_id: str,
        members: Sequence[ChecksumAddress],
        voting_settings: VotingSettings,
        finance_period: int,
        approvals_app_id: bytes,
        aa_account: ChecksumAddress,
    ) -> ReceiptAPI:
        return self.transactor.transact(
            self.template.newInstance,
            dao_id,
            list(members),
            list(voting_settings),
            finance_period,
            approvals_app_id,
            aa_account,
        )

    def new_token_and_instance(
        self,
        token_name: str,
        token_symbol: str,
        dao_id: str,
        members: Sequence[ChecksumAddress],
        voting_settings: VotingSettings,
        finance_period: int,
        approvals_app_id: bytes,
        aa_account: ChecksumAddress,
    ) -> ReceiptAPI:
        return self.transactor.transact(
            self.template.newTokenAndInstance,
            token_name,
            token_symbol,
            dao_id,
            list(members),
            list(voting_settings),
            finance_period,
            approvals_app_id,
            aa_account,
        )
