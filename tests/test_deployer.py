from types import SimpleNamespace

import pytest
from ape.utils import ZERO_ADDRESS
from eth_utils import to_checksum_address

from nest_template import params, template as template_module
from nest_template.arapp import deployed_addresses
from nest_template.constants import NEST_APPS
from nest_template.template import EMPTY_CONTENT_URI, INITIAL_VERSION, TemplateDeployer

ENS_ADDRESS = to_checksum_address("0x5f6f7e8cc7346a11ca2def8f827b7a0b612c56a1")
APM_ADDRESS = to_checksum_address("0x" + "a1" * 20)
ARAGON_ID_ADDRESS = to_checksum_address("0x" + "a2" * 20)
REPO_ADDRESS = to_checksum_address("0x" + "a3" * 20)
TEMPLATE_ADDRESS = to_checksum_address("0x" + "ab" * 20)
DEPLOYER_ADDRESS = to_checksum_address("0x" + "de" * 20)

FRAMEWORK = {
    "aragonpm.eth": APM_ADDRESS,
    "aragonid.eth": ARAGON_ID_ADDRESS,
    "voting.aragonpm.eth": to_checksum_address("0x" + "b1" * 20),
    "finance.aragonpm.eth": to_checksum_address("0x" + "b2" * 20),
}


@pytest.fixture
def names():
    return dict(FRAMEWORK)


@pytest.fixture
def instances():
    apm = SimpleNamespace(address=APM_ADDRESS, newRepoWithVersion="newRepoWithVersion")
    return {"APMRegistry": apm}


@pytest.fixture
def transactions():
    return list()


@pytest.fixture
def deployer(monkeypatch, tmp_path, names, instances, transactions):
    monkeypatch.setattr(
        template_module, "resolve_name", lambda ens, name: names.get(name, ZERO_ADDRESS)
    )
    monkeypatch.setattr(
        template_module,
        "get_contract_container",
        lambda name: SimpleNamespace(at=lambda address: instances[name]),
    )

    instance = TemplateDeployer.__new__(TemplateDeployer)
    instance.template_name = "nest-template"
    instance.template_contract = "NestTemplate"
    instance.apps = list(NEST_APPS)
    instance.ens = SimpleNamespace(address=ENS_ADDRESS)
    instance.arapp_filepath = tmp_path / "arapp.json"
    instance.registry_filepath = tmp_path / "local.json"
    instance.verify = False
    instance.get_account = lambda: SimpleNamespace(address=DEPLOYER_ADDRESS)
    instance.transact = lambda method, *args: transactions.append((method, args))
    return instance


@pytest.fixture
def nest_template():
    contract_type = SimpleNamespace(name="NestTemplate")
    return SimpleNamespace(address=TEMPLATE_ADDRESS, contract_type=contract_type)


def test_missing_apps(deployer):
    with pytest.raises(ValueError, match="Missing apps on APM: token-manager, vault, approvals"):
        deployer.check_dependencies()


def test_dependencies_published(deployer, names):
    for app in ("token-manager", "vault", "approvals"):
        names[f"{app}.aragonpm.eth"] = to_checksum_address("0x" + "c0" * 20)
    deployer.check_dependencies()


def test_missing_aragon_id(deployer, names):
    del names["aragonid.eth"]
    with pytest.raises(ValueError, match="aragonid.eth is not registered on ENS"):
        deployer.check_dependencies()


def test_register_new_repo(deployer, nest_template, transactions):
    deployer.register_template(nest_template)

    ((method, args),) = transactions
    assert method == "newRepoWithVersion"
    assert args == (
        "nest-template",
        DEPLOYER_ADDRESS,
        INITIAL_VERSION,
        TEMPLATE_ADDRESS,
        EMPTY_CONTENT_URI,
    )
    assert INITIAL_VERSION == [1, 0, 0]


def test_register_new_major_version(deployer, nest_template, names, instances, transactions):
    repo = SimpleNamespace(
        getLatest=lambda: ([2, 1, 0], TEMPLATE_ADDRESS, b""), newVersion="newVersion"
    )
    names["nest-template.aragonpm.eth"] = REPO_ADDRESS
    instances["Repo"] = repo

    deployer.register_template(nest_template)

    ((method, args),) = transactions
    assert method == "newVersion"
    assert args == ([3, 0, 0], TEMPLATE_ADDRESS, EMPTY_CONTENT_URI)


def test_finalize_records_deployment(monkeypatch, deployer, nest_template):
    published = list()
    monkeypatch.setattr(
        params,
        "registry_from_ape_deployments",
        lambda deployments, output_filepath, overwrite: published.append(
            (deployments, output_filepath, overwrite)
        ),
    )
    monkeypatch.setattr(params, "is_local_network", lambda: True)
    monkeypatch.setattr(
        template_module,
        "networks",
        SimpleNamespace(provider=SimpleNamespace(network=SimpleNamespace(name="local"))),
    )

    deployer.finalize(deployments=[nest_template])

    assert published == [([nest_template], deployer.registry_filepath, True)]
    recorded = deployed_addresses(filepath=deployer.arapp_filepath, environment="default")
    assert recorded.registry == ENS_ADDRESS
    assert recorded.address == TEMPLATE_ADDRESS
