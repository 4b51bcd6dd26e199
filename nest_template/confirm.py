from collections import OrderedDict

import click
from ape.utils import ZERO_ADDRESS


def _continue() -> None:
    """Asks the user to continue; aborts the deployment otherwise."""
    click.confirm("Continue?", default=True, abort=True)


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """Asks the user to confirm the resolved constructor parameters for a single contract."""
    if len(resolved_params) == 0:
        print(f"\n(i) No constructor parameters for {contract_name}")
    else:
        print(f"\nConstructor parameters for {contract_name}")
        for name, resolved_value in resolved_params.items():
            print(f"\t{name}={resolved_value}")

    click.confirm(f"Deploy {contract_name}?", default=True, abort=True)
    if ZERO_ADDRESS in resolved_params.values():
        click.confirm(
            "Zero Address detected for deployment parameter; Continue?", default=False, abort=True
        )
