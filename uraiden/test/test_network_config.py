import pytest

from uraiden.client import Context
from uraiden.config import (
    LOCAL_NETWORK_ID,
    NETWORK_CFG,
    NETWORK_CONFIG_DEFAULTS,
    get_defaults
)

TEST_POLL_INTERVAL = 0.5


def test_network_config():
    mainnet_start_block = NETWORK_CONFIG_DEFAULTS[1].start_sync_block
    ropsten_start_block = NETWORK_CONFIG_DEFAULTS[3].start_sync_block

    # don't forget to restore existing network config
    old_cfg, old_network_id = NETWORK_CFG.cfg, NETWORK_CFG.network_id

    NETWORK_CFG.set_defaults(1)
    assert NETWORK_CFG.start_sync_block == mainnet_start_block
    assert NETWORK_CFG.START_SYNC_BLOCK == mainnet_start_block
    NETWORK_CFG.poll_interval = TEST_POLL_INTERVAL
    assert NETWORK_CFG.poll_interval == TEST_POLL_INTERVAL
    NETWORK_CFG.set_defaults(1)
    assert NETWORK_CFG.poll_interval == get_defaults(1).poll_interval
    NETWORK_CFG.set_defaults(3)
    assert NETWORK_CFG.start_sync_block == ropsten_start_block

    # unknown networks are treated as local test chains
    NETWORK_CFG.set_defaults(1337)
    assert NETWORK_CFG.network_id == 1337
    assert NETWORK_CFG.channel_manager_address is None
    assert get_defaults(1337) == NETWORK_CONFIG_DEFAULTS[LOCAL_NETWORK_ID]

    with pytest.raises(AttributeError):
        NETWORK_CFG.gas_price = 1
    with pytest.raises(AttributeError):
        NETWORK_CFG.gas_price
    assert NETWORK_CFG.poll_interval == get_defaults(LOCAL_NETWORK_ID).poll_interval

    NETWORK_CFG.cfg, NETWORK_CFG.network_id = old_cfg, old_network_id


def test_context_defaults(web3, channel_manager, token):
    old_cfg, old_network_id = NETWORK_CFG.cfg, NETWORK_CFG.network_id
    NETWORK_CFG.set_defaults(4)
    NETWORK_CFG.poll_interval = TEST_POLL_INTERVAL

    context = Context(web3, channel_manager, token)
    assert context.start_block == get_defaults(4).start_sync_block
    assert context.poll_interval == TEST_POLL_INTERVAL
    assert context.max_wait_attempts is None

    NETWORK_CFG.cfg, NETWORK_CFG.network_id = old_cfg, old_network_id
