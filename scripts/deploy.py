#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from nest_template.constants import CONSTRUCTOR_PARAMS_DIR
from nest_template.options import auto_option, params_filepath_option
from nest_template.template import TemplateDeployer


@click.command(cls=ConnectedProviderCommand, name="deploy")
@account_option()
@network_option(required=True)
@params_filepath_option
@click.option(
    "--verify",
    help="Publish the deployed contracts to the block explorer.",
    is_flag=True,
)
@auto_option
def cli(account, network, params_filepath, verify, auto):
    """
    Deploys the Nest template and records it in arapp.json.

    ape run deploy --network ethereum:local:node --account TEST::0
    """
    params_filepath = params_filepath or CONSTRUCTOR_PARAMS_DIR / f"{network.name}.yml"
    if not params_filepath.exists():
        raise click.BadOptionUsage(
            option_name="--params-filepath",
            message=f"No params file found for {network.name} at {params_filepath}",
        )

    deployer = TemplateDeployer.from_yaml(
        filepath=params_filepath,
        verify=verify,
        account=account,
        autosign=auto,
    )

    template = deployer.deploy_template()
    if deployer.register:
        deployer.register_template(template)

    deployer.finalize(deployments=deployer.deployments)


if __name__ == "__main__":
    cli()
