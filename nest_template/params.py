import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, List, NamedTuple, Tuple

from ape import networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.utils import ZERO_ADDRESS
from ape_accounts import KeyfileAccount
from ethpm_types import MethodABI
from web3 import Web3

from nest_template.confirm import _confirm_resolution, _continue
from nest_template.constants import CONSTRUCTOR_PARAMETER_KEY
from nest_template.ens import get_ens, resolve_name
from nest_template.networks import is_local_network
from nest_template.registry import registry_from_ape_deployments
from nest_template.utils import (
    _load_yaml,
    check_plugins,
    get_contract_container,
    validate_config,
    verify_contracts,
)

w3 = Web3()


class VariableContext(NamedTuple):
    """What a `$variable` in the params file may refer to."""

    contract_names: List[str]
    constants: typing.Dict[str, Any] = dict()


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class DeployerAccount(Variable):
    """$deployer: the address of the account running the deployment."""

    INDICATOR = "deployer"

    @classmethod
    def matches(cls, name: str) -> bool:
        return name == cls.INDICATOR

    def resolve(self) -> Any:
        account = Deployer.get_account()
        return ZERO_ADDRESS if account is None else account.address


class Constant(Variable):
    """$NAME: a value from the `constants` section (or the environment)."""

    def __init__(self, name: str, context: VariableContext):
        if name not in context.constants:
            raise ValueError(f"Constant '{name}' not found in deployment file.")
        self.value = context.constants[name]
        if self.value is None:
            raise ValueError(f"Constant '{name}' is not set in the params file or environment.")

    @classmethod
    def matches(cls, name: str) -> bool:
        return name.isupper()

    def resolve(self) -> Any:
        return self.value


class ENSName(Variable):
    """$ens:<name>: the address <name> resolves to on the ENS registry set as the ENS constant."""

    ENS_PREFIX = "ens:"
    ENS_CONSTANT = "ENS"

    def __init__(self, variable: str, context: VariableContext):
        self.name = variable[len(self.ENS_PREFIX) :]
        if not self.name:
            raise ValueError(f"Missing ENS name in variable '{variable}'.")
        self.registry = context.constants.get(self.ENS_CONSTANT)
        if not self.registry:
            raise ValueError(
                f"Constant '{self.ENS_CONSTANT}' is required to resolve ENS name '{self.name}'."
            )

    @classmethod
    def matches(cls, name: str) -> bool:
        return name.startswith(cls.ENS_PREFIX)

    def resolve(self) -> Any:
        return resolve_name(get_ens(self.registry), self.name)


class ContractName(Variable):
    """$ContractName: the latest deployment of a contract listed in the params file."""

    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise ValueError(f"Contract name {contract_name} not found")
        self.contract_name = contract_name

    def resolve(self) -> Any:
        instance = _get_contract_instance(get_contract_container(self.contract_name))
        # not deployed yet during eager validation
        return getattr(instance, "address", ZERO_ADDRESS)


def _get_contract_instance(
    contract_container: ContractContainer,
) -> typing.Union[ContractInstance, str]:
    """Returns the latest deployment of a contract, or the zero address if there is none."""
    deployments = contract_container.deployments
    if not deployments:
        return ZERO_ADDRESS
    return deployments[-1]


def _variable_from_value(variable: str, context: VariableContext) -> Variable:
    name = variable.strip(Variable.VARIABLE_PREFIX)
    if DeployerAccount.matches(name):
        return DeployerAccount()
    if ENSName.matches(name):
        return ENSName(name, context)
    if name in context.contract_names:
        return ContractName(name, context)
    if Constant.matches(name):
        return Constant(name, context)
    return ContractName(name, context)


def _resolve_param(value: Any) -> Any:
    if isinstance(value, list):
        return [_resolve_param(item) for item in value]
    if isinstance(value, Variable):
        return value.resolve()
    return value


def _resolve_params(parameters: OrderedDict) -> OrderedDict:
    return OrderedDict((name, _resolve_param(value)) for name, value in parameters.items())


def _process_raw_value(value: Any, context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(item, context) for item in value]
    if Variable.is_variable(value):
        return _variable_from_value(value, context)
    return value


def _process_raw_values(values: OrderedDict, context: VariableContext) -> OrderedDict:
    return OrderedDict((name, _process_raw_value(value, context)) for name, value in values.items())


def _parse_contracts(config: typing.Dict) -> List[Tuple[str, typing.Dict]]:
    """
    Returns the (contract name, raw constructor parameters) pairs of the
    `contracts` section, in deployment order. Entries are either a bare
    contract name or a single-key mapping of the name to its settings.
    """
    contracts = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contracts.append((contract_info, OrderedDict()))
            continue
        if not isinstance(contract_info, dict) or len(contract_info) != 1:
            raise ValueError("Malformed constructor parameters YAML.")
        ((contract_name, settings),) = contract_info.items()
        parameters = (settings or dict()).get(CONSTRUCTOR_PARAMETER_KEY) or dict()
        contracts.append((contract_name, OrderedDict(parameters)))
    return contracts


def _get_contract_names(config: typing.Dict) -> List[str]:
    return [contract_name for contract_name, _ in _parse_contracts(config)]


def _is_encodable(abi_inputs, args: typing.Sequence[Any]) -> bool:
    return all(w3.is_encodable(abi_input.type, arg) for abi_input, arg in zip(abi_inputs, args))


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Returns the arguments keyed by name for the first overload whose ABI accepts them."""
    if not method_abis:
        raise ValueError("No method abis provided for validation of args")

    for abi in method_abis:
        if len(abi.inputs) == len(args) and _is_encodable(abi.inputs, args):
            return {abi_input.name: arg for abi_input, arg in zip(abi.inputs, args)}
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Checks the parameter count, then the name and type of each positional parameter."""
    if len(resolved_parameters) != len(abi_inputs):
        raise ConstructorParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    for position, abi_input in enumerate(abi_inputs):
        name, value = list(resolved_parameters.items())[position]
        if name != abi_input.name:
            raise ConstructorParameters.Invalid(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.name}'."
            )
        if not w3.is_encodable(abi_input.type, value):
            raise ConstructorParameters.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


def validate_constructor_parameters(contracts_parameters: OrderedDict) -> None:
    for contract_name, parameters in contracts_parameters.items():
        if not isinstance(parameters, dict):
            raise ValueError(f"Malformed constructor parameter config for {contract_name}.")
        container = get_contract_container(contract_name)
        _validate_constructor_abi_inputs(
            contract_name=contract_name,
            abi_inputs=container.constructor.abi.inputs,
            resolved_parameters=_resolve_params(parameters),
        )


class ConstructorParameters:
    """Constructor parameters of every contract in a params file, with unresolved variables."""

    class Invalid(Exception):
        """Raised when the constructor parameters do not match a contract ABI"""

    def __init__(self, parameters: OrderedDict):
        self.parameters = parameters
        validate_constructor_parameters(parameters)

    @classmethod
    def from_config(cls, config: typing.Dict) -> "ConstructorParameters":
        print("Processing contract constructor parameters...")
        contracts = _parse_contracts(config)
        context = VariableContext(
            contract_names=[contract_name for contract_name, _ in contracts],
            constants=config.get("constants") or dict(),
        )

        parameters = OrderedDict()
        for contract_name, raw_parameters in contracts:
            parameters[contract_name] = _process_raw_values(raw_parameters, context)
        return cls(parameters=parameters)

    def resolve(self, contract_name: str) -> OrderedDict:
        return _resolve_params(self.parameters[contract_name])


class Transactor:
    """
    An ape account that prints each transaction before sending it and,
    unless autosigning, asks for confirmation first.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        self._account = account if account is not None else select_account()
        self._autosign = autosign
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        if isinstance(self._account, KeyfileAccount):
            self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        contract = method.contract
        print(f"\nTransacting {contract.contract_type.name}[{contract.address[:10]}].{method}")
        for name, value in named_args.items():
            print(f"\t{name}={value}")
        if not self._autosign:
            _continue()

        receipt = method(*args, sender=self._account)
        print(f"(i) {receipt.txn_hash} used {receipt.gas_used} gas")
        return receipt


class Deployer(Transactor):
    """
    A Transactor that deploys the contracts of a params file in order,
    then publishes them to the registry and optionally the block explorer.
    """

    __DEPLOYER_ACCOUNT: AccountAPI = None

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
    ):
        super().__init__(account, autosign)

        check_plugins(verify=verify)
        self.path = path
        self.config = config
        self.verify = verify
        self.registry_filepath = validate_config(config=self.config)
        self.contract_names = _get_contract_names(self.config)

        # $deployer resolves against this account from now on
        self._set_account(self._account)
        self.constructor_parameters = ConstructorParameters.from_config(self.config)
        self._print_deployment_info()

        if not self._autosign:
            _continue()

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "Deployer":
        return cls(config=_load_yaml(filepath), path=filepath, *args, **kwargs)

    @classmethod
    def get_account(cls) -> AccountAPI:
        return cls.__DEPLOYER_ACCOUNT

    @classmethod
    def _set_account(cls, deployer: AccountAPI) -> None:
        cls.__DEPLOYER_ACCOUNT = deployer

    def deploy(self, container: ContractContainer) -> ContractInstance:
        contract_name = container.contract_type.name
        resolved_params = self.constructor_parameters.resolve(contract_name)
        if not self._autosign:
            _confirm_resolution(resolved_params, contract_name)
        return self.get_account().deploy(container, *resolved_params.values())

    def finalize(self, deployments: List[ContractInstance]) -> None:
        registry_from_ape_deployments(
            deployments=deployments,
            output_filepath=self.registry_filepath,
            overwrite=is_local_network(),
        )
        if self.verify:
            verify_contracts(contracts=deployments)

    def _print_deployment_info(self):
        network = networks.provider.network
        print(
            f"Account: {self.get_account().address}",
            f"Config: {self.path}",
            f"Registry: {self.registry_filepath}",
            f"Verify: {self.verify}",
            f"Network: {network.ecosystem.name}:{network.name} (chain {network.chain_id})",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )
