#!/usr/bin/python3

from pathlib import Path

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from nest_template.apps import namehash, random_id
from nest_template.constants import ARAGON_ID_DOMAIN
from nest_template.dao import load_dao
from nest_template.options import (
    aa_account_option,
    approvals_app_option,
    auto_option,
    finance_period_option,
    members_option,
    token_name_option,
    token_symbol_option,
    voting_settings_options,
)
from nest_template.params import Transactor
from nest_template.template import TemplateClient, VotingSettings


@click.command(cls=ConnectedProviderCommand, name="new-dao")
@account_option()
@network_option(required=True)
@click.option(
    "--id",
    "dao_id",
    help="aragonID label of the DAO; random when omitted.",
    required=False,
)
@members_option
@token_name_option
@token_symbol_option
@voting_settings_options
@finance_period_option
@aa_account_option
@approvals_app_option
@click.option(
    "--separate-transactions",
    help="Create the token and the DAO in two transactions.",
    is_flag=True,
)
@click.option(
    "--registry-filepath",
    help="Deployment registry to load the template from instead of arapp.json.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)
@auto_option
def cli(
    account,
    network,
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
    separate_transactions,
    registry_filepath,
    auto,
):
    """Creates a Nest DAO from the template deployed on the connected network."""
    click.echo(f"Connected to {network.name} network.")

    dao_id = dao_id or random_id()
    voting_settings = VotingSettings(support, quorum, vote_duration)
    approvals_app_id = namehash(approvals_app)

    transactor = Transactor(account=account, autosign=auto)
    if registry_filepath:
        client = TemplateClient.from_registry(transactor=transactor, filepath=registry_filepath)
    else:
        client = TemplateClient.from_arapp(transactor=transactor)

    if separate_transactions:
        token_receipt = client.new_token(token_name, token_symbol)
        instance_receipt = client.new_instance(
            dao_id, members, voting_settings, finance_period, approvals_app_id, aa_account
        )
    else:
        instance_receipt = client.new_token_and_instance(
            token_name,
            token_symbol,
            dao_id,
            members,
            voting_settings,
            finance_period,
            approvals_app_id,
            aa_account,
        )
        token_receipt = instance_receipt

    dao = load_dao(client.template, token_receipt, instance_receipt, approvals_app_id)

    click.secho(f"\nDAO {dao_id}.{ARAGON_ID_DOMAIN} created", fg="green")
    for name, instance in dao._asdict().items():
        click.secho(f"    {name}: {instance.address}", fg="cyan")
    click.echo(f"Instance transaction: {instance_receipt.txn_hash}")
    if separate_transactions:
        click.echo(f"Token transaction: {token_receipt.txn_hash}")


if __name__ == "__main__":
    cli()
