from ape import networks

from nest_template.constants import LOCAL_NETWORKS


def is_local_network() -> bool:
    """Returns True if the connected network is a local development chain."""
    return networks.provider.network.name in LOCAL_NETWORKS
