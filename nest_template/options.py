from pathlib import Path

import click

from nest_template.constants import (
    APPROVALS_APP_NAME,
    DEFAULT_FINANCE_PERIOD,
    DEFAULT_MIN_ACCEPTANCE_QUORUM,
    DEFAULT_SUPPORT_REQUIRED,
    DEFAULT_TOKEN_NAME,
    DEFAULT_TOKEN_SYMBOL,
    DEFAULT_VOTE_DURATION,
)
from nest_template.types import ChecksumAddress, MinInt, Percentage

params_filepath_option = click.option(
    "--params-filepath",
    "-p",
    help="Deployment params YAML; defaults to constructor_params/<network>.yml",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

auto_option = click.option(
    "--auto",
    help="Automatically sign transactions.",
    is_flag=True,
)

support_option = click.option(
    "--support",
    help="Support required for a vote to pass, in percent.",
    type=Percentage(),
    default=DEFAULT_SUPPORT_REQUIRED,
    show_default=True,
)

quorum_option = click.option(
    "--quorum",
    help="Minimum acceptance quorum, in percent.",
    type=Percentage(),
    default=DEFAULT_MIN_ACCEPTANCE_QUORUM,
    show_default=True,
)

vote_duration_option = click.option(
    "--vote-duration",
    help="Vote duration in seconds.",
    type=MinInt(1),
    default=DEFAULT_VOTE_DURATION,
    show_default=True,
)

finance_period_option = click.option(
    "--finance-period",
    help="Finance accounting period in seconds.",
    type=MinInt(1),
    default=DEFAULT_FINANCE_PERIOD,
    show_default=True,
)

aa_account_option = click.option(
    "--aa-account",
    help="Account managing the approvals app.",
    type=ChecksumAddress(),
    required=True,
)

approvals_app_option = click.option(
    "--approvals-app",
    help="APM name of the approvals app.",
    default=APPROVALS_APP_NAME,
    show_default=True,
)

members_option = click.option(
    "--member",
    "-m",
    "members",
    help="Address of a member; holds one membership token.",
    type=ChecksumAddress(),
    multiple=True,
    required=True,
)

token_name_option = click.option("--token-name", default=DEFAULT_TOKEN_NAME, show_default=True)

token_symbol_option = click.option(
    "--token-symbol", default=DEFAULT_TOKEN_SYMBOL, show_default=True
)


def voting_settings_options(func):
    """Adds the support, quorum and vote duration options."""
    for option in (vote_duration_option, quorum_option, support_option):
        func = option(func)
    return func
