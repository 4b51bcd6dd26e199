#!/usr/bin/python3

import click
from ape import chain
from ape.cli import ConnectedProviderCommand, network_option

from nest_template import checks
from nest_template.apps import namehash
from nest_template.arapp import deployed_addresses
from nest_template.constants import CONTRACT_NAME
from nest_template.dao import load_dao
from nest_template.ens import get_ens
from nest_template.options import (
    aa_account_option,
    approvals_app_option,
    finance_period_option,
    members_option,
    token_name_option,
    token_symbol_option,
    voting_settings_options,
)
from nest_template.template import VotingSettings
from nest_template.utils import get_contract_container


@click.command(cls=ConnectedProviderCommand, name="check-dao")
@network_option(required=True)
@click.option(
    "--instance-tx",
    help="Hash of the newInstance or newTokenAndInstance transaction.",
    required=True,
)
@click.option(
    "--token-tx",
    help="Hash of the newToken transaction; defaults to the instance transaction.",
    required=False,
)
@click.option(
    "--id",
    "dao_id",
    help="aragonID label of the DAO, to check its ENS name.",
    required=False,
)
@members_option
@token_name_option
@token_symbol_option
@voting_settings_options
@finance_period_option
@aa_account_option
@approvals_app_option
def cli(
    network,
    instance_tx,
    token_tx,
    dao_id,
    members,
    token_name,
    token_symbol,
    support,
    quorum,
    vote_duration,
    finance_period,
    aa_account,
    approvals_app,
):
    """Checks the permissions and app wiring of a Nest DAO."""
    click.echo(f"Connected to {network.name} network.")

    addresses = deployed_addresses()
    template = get_contract_container(CONTRACT_NAME).at(addresses.address)
    ens = get_ens(addresses.registry)

    instance_receipt = chain.provider.get_receipt(instance_tx)
    token_receipt = chain.provider.get_receipt(token_tx) if token_tx else instance_receipt
    dao = load_dao(template, token_receipt, instance_receipt, namehash(approvals_app))
    click.echo(f"Checking DAO at {dao.dao.address}")

    voting_settings = VotingSettings(support, quorum, vote_duration)
    steps = [
        ("token", lambda: checks.check_token(dao, token_name, token_symbol, members)),
        ("voting", lambda: checks.check_voting(dao, voting_settings)),
        ("token manager", lambda: checks.check_token_manager(dao)),
        ("finance", lambda: checks.check_finance(dao, finance_period)),
        ("DAO and ACL permissions", lambda: checks.check_dao_permissions(dao, template)),
        ("EVM scripts registry", lambda: checks.check_evm_scripts_registry(dao)),
        ("vault", lambda: checks.check_vault(dao)),
        ("approvals", lambda: checks.check_approvals(dao, aa_account)),
    ]
    if dao_id:
        steps.insert(0, ("ENS name", lambda: checks.check_ens_name(dao, ens, dao_id)))

    failures = 0
    for label, step in steps:
        try:
            step()
        except checks.SetupMismatch as e:
            failures += 1
            click.secho(f"    ✗ {label}: {e}", fg="red")
        else:
            click.secho(f"    ✓ {label}", fg="green")

    if failures:
        raise click.ClickException(f"{failures} check(s) failed")


if __name__ == "__main__":
    cli()
