from pathlib import Path

from eth_utils import to_checksum_address

import nest_template

#
# Filesystem
#

PACKAGE_DIR = Path(nest_template.__file__).parent
PROJECT_ROOT = PACKAGE_DIR.parent
CONSTRUCTOR_PARAMS_DIR = PACKAGE_DIR / "constructor_params"
ARTIFACTS_DIR = PACKAGE_DIR / "artifacts"
ARAPP_FILEPATH = PROJECT_ROOT / "arapp.json"

#
# Networks
#

LOCAL_NETWORKS = ["local"]
ARAPP_LOCAL_ENVIRONMENT = "default"

#
# Template
#

TEMPLATE_NAME = "nest-template"
CONTRACT_NAME = "NestTemplate"

APM_DOMAIN = "aragonpm.eth"
ARAGON_ID_DOMAIN = "aragonid.eth"

# apps the template installs; every one needs a published APM repo
NEST_APPS = ["voting", "finance", "token-manager", "vault", "approvals"]

APPROVALS_APP_NAME = f"approvals.{APM_DOMAIN}"

# addresses that can be supplied through the environment, mapped to the params
# file variable each one replaces (a contract to deploy or an ENS name)
ENVIRONMENT_OVERRIDES = {
    "ENS": None,
    "DAO_FACTORY": "DAOFactory",
    "MINIME_FACTORY": "MiniMeTokenFactory",
    "ARAGON_ID": "ens:aragonid.eth",
}

CONSTRUCTOR_PARAMETER_KEY = "constructor"

#
# Units
#

ONE_DAY = 60 * 60 * 24
ONE_MONTH = 30 * ONE_DAY
PCT_BASE = 10**18
ONE_PERCENT = PCT_BASE // 100

ANY_ADDRESS = to_checksum_address("0x" + "f" * 40)

#
# Nest defaults
#

DEFAULT_TOKEN_NAME = "Member Token"
DEFAULT_TOKEN_SYMBOL = "Member"
DEFAULT_SUPPORT_REQUIRED = 66 * ONE_PERCENT
DEFAULT_MIN_ACCEPTANCE_QUORUM = 50 * ONE_PERCENT
DEFAULT_VOTE_DURATION = 15 * ONE_DAY
DEFAULT_FINANCE_PERIOD = ONE_MONTH

#
# Gas ceilings
#

TOKEN_CREATION_GAS_LIMIT = 1_710_000
DAO_CREATION_GAS_LIMIT = 5_440_000
TOTAL_CREATION_GAS_LIMIT = 7_150_000

#
# Revert reasons as defined in the template contracts
#

ERROR_MISSING_MEMBERS = "NEST_TEMPLATE_MISSING_MEMBERS"
ERROR_INVALID_ID = "TEMPLATE_INVALID_ID"
ERROR_BAD_FINANCE_PERIOD = "NEST_TEMPLATE_BAD_FINANCE_PERIOD"
ERROR_BAD_APPROVALS = "NEST_TEMPLATE_BAD_APPROVALS"
ERROR_BAD_AA_ACCOUNT = "NEST_TEMPLATE_BAD_AA_ACCOUNT"
ERROR_BAD_SUPPORT = "NEST_TEMPLATE_BAD_SUPPORT"
ERROR_BAD_ACCEPTANCE = "NEST_TEMPLATE_BAD_ACCEPTANCE"
ERROR_BAD_DURATION = "NEST_TEMPLATE_BAD_DURATION"
ERROR_MISSING_TOKEN_CACHE = "TEMPLATE_MISSING_TOKEN_CACHE"
