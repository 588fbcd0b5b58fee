from collections import namedtuple, OrderedDict
from functools import partial

from uraiden.constants import TX_POLL_INTERVAL

# these are default values for network config
network_config_defaults = OrderedDict(
    (('channel_manager_address', None),
     # channel discovery never looks for ChannelCreated events before this block
     ('start_sync_block', 0),
     ('poll_interval', TX_POLL_INTERVAL))
)
# create network config type that supports defaults
NetworkConfig = partial(
    namedtuple(
        'NetworkConfig',
        network_config_defaults
    ),
    **network_config_defaults
)

LOCAL_NETWORK_ID = 65536

# network-specific configuration
NETWORK_CONFIG_DEFAULTS = {
    # mainnet
    1: NetworkConfig(
        channel_manager_address='0x1440317CB15499083dEE3dDf49C2bD51D0d92e33',
        start_sync_block=4958602,
        poll_interval=15
    ),
    # ropsten
    3: NetworkConfig(
        channel_manager_address='0x74434527b8e6c8296506d61d0faf3d18c9e4649a',
        start_sync_block=2507629
    ),
    # rinkeby
    4: NetworkConfig(
        channel_manager_address='0xbec8fb898e6da01152576d1a1acdd2c957e56fb1',
        start_sync_block=1642336
    ),
    # kovan
    42: NetworkConfig(
        channel_manager_address='0xed94e711e9de1ff1e7dd34c39f0d4338a6a6ef92',
        start_sync_block=5523491
    ),
    # internal - used only with local test chains
    LOCAL_NETWORK_ID: NetworkConfig(
        channel_manager_address=None,
        start_sync_block=0,
        poll_interval=0.1
    )
}


def get_defaults(network_id: int) -> NetworkConfig:
    """Defaults of a known network. Any other id is treated as a local test chain."""
    return NETWORK_CONFIG_DEFAULTS.get(network_id, NETWORK_CONFIG_DEFAULTS[LOCAL_NETWORK_ID])


class NetworkRuntime:
    """
    Mutable settings of the network the client talks to, initialized from its defaults.

    Settings are attributes and case-insensitive, so `NETWORK_CFG.START_SYNC_BLOCK` and
    `NETWORK_CFG.start_sync_block` are the same value. Unknown settings can't be assigned.
    """

    def __init__(self, network_id: int):
        self.set_defaults(network_id)

    def set_defaults(self, network_id: int):
        self.__dict__['network_id'] = network_id
        self.__dict__['cfg'] = dict(get_defaults(network_id)._asdict())

    def __getattr__(self, attr):
        try:
            return self.__dict__['cfg'][attr.lower()]
        except KeyError:
            raise AttributeError(attr) from None

    def __setattr__(self, attr, value):
        if attr in ('cfg', 'network_id'):
            self.__dict__[attr] = value
        elif attr.lower() in self.cfg:
            self.cfg[attr.lower()] = value
        else:
            raise AttributeError('Unknown network setting: {}'.format(attr))


# default config is ropsten
NETWORK_CFG = NetworkRuntime(3)
