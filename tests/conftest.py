import pytest

from nest_template.apps import namehash
from nest_template.arapp import deployed_addresses
from nest_template.constants import (
    APPROVALS_APP_NAME,
    CONTRACT_NAME,
    DEFAULT_FINANCE_PERIOD,
    DEFAULT_MIN_ACCEPTANCE_QUORUM,
    DEFAULT_SUPPORT_REQUIRED,
    DEFAULT_VOTE_DURATION,
)
from nest_template.ens import get_ens
from nest_template.template import VotingSettings
from nest_template.utils import get_contract_container

# Common constants
TOKEN_NAME = "Member Token"
TOKEN_SYMBOL = "Member"

SUPPORT_REQUIRED = DEFAULT_SUPPORT_REQUIRED
MIN_ACCEPTANCE_QUORUM = DEFAULT_MIN_ACCEPTANCE_QUORUM
VOTE_DURATION = DEFAULT_VOTE_DURATION
VOTING_SETTINGS = VotingSettings(SUPPORT_REQUIRED, MIN_ACCEPTANCE_QUORUM, VOTE_DURATION)

FINANCE_PERIOD = DEFAULT_FINANCE_PERIOD


# Fixtures
@pytest.fixture(scope="session")
def deployed():
    """ENS registry and template recorded in arapp.json for the connected network."""
    try:
        return deployed_addresses()
    except (FileNotFoundError, ValueError) as e:
        pytest.skip(f"Nest template not deployed on this network: {e}")


@pytest.fixture(scope="session")
def template(deployed):
    return get_contract_container(CONTRACT_NAME).at(deployed.address)


@pytest.fixture(scope="session")
def ens(deployed):
    return get_ens(deployed.registry)


@pytest.fixture(scope="session")
def approvals_app_id():
    return namehash(APPROVALS_APP_NAME)


@pytest.fixture(scope="session")
def owner(accounts):
    return accounts[0]


@pytest.fixture(scope="session")
def member1(accounts):
    return accounts[1]


@pytest.fixture(scope="session")
def member2(accounts):
    return accounts[2]


@pytest.fixture(scope="session")
def aa_account(accounts):
    return accounts[3]


@pytest.fixture(scope="session")
def stranger(accounts):
    return accounts[4]


@pytest.fixture(scope="session")
def members(member1, member2):
    return [member1.address, member2.address]
