import logging
from typing import Union

from eth_utils import to_checksum_address
from web3 import Web3, HTTPProvider
from web3.providers.base import BaseProvider

from uraiden.client import ChannelStore, Client, Context
from uraiden.config import NETWORK_CFG
from uraiden.constants import (
    CHANNEL_MANAGER_ABI_NAME,
    CONTRACT_METADATA,
    TOKEN_ABI_NAME,
    WEB3_PROVIDER_DEFAULT
)
from uraiden.contract_proxy import ChannelManagerProxy, TokenProxy
from uraiden.exceptions import InvalidProvider

log = logging.getLogger(__name__)


def make_web3(provider: Union[None, str, Web3] = None) -> Web3:
    """Accepts a node URL, a web3 provider or anything carrying one, e.g. a Web3 instance."""
    if provider is None:
        provider = WEB3_PROVIDER_DEFAULT
    if isinstance(provider, Web3):
        return provider
    elif isinstance(provider, str):
        return Web3(HTTPProvider(provider, request_kwargs={'timeout': 60}))
    elif isinstance(provider, BaseProvider):
        return Web3(provider)
    elif isinstance(getattr(provider, 'provider', None), BaseProvider):
        return Web3(provider.provider)
    raise InvalidProvider('Invalid web3 provider: {!r}'.format(provider))


def make_channel_manager_proxy(web3: Web3, channel_manager_address: str) -> ChannelManagerProxy:
    return ChannelManagerProxy(
        web3,
        to_checksum_address(channel_manager_address),
        CONTRACT_METADATA[CHANNEL_MANAGER_ABI_NAME]['abi']
    )


def make_token_proxy(web3: Web3, token_address: str) -> TokenProxy:
    return TokenProxy(
        web3,
        to_checksum_address(token_address),
        CONTRACT_METADATA[TOKEN_ABI_NAME]['abi']
    )


def make_context(
        web3: Web3,
        channel_manager_address: str = None,
        token_address: str = None,
        state_filename: str = ':memory:',
        **kwargs
) -> Context:
    channel_manager_address = channel_manager_address or NETWORK_CFG.channel_manager_address
    if channel_manager_address is None:
        raise InvalidProvider('No channel manager address known for the connected network.')
    channel_manager = make_channel_manager_proxy(web3, channel_manager_address)
    if token_address is None:
        token_address = channel_manager.token_address()
    token = make_token_proxy(web3, token_address)
    log.debug('Using channel manager %s, token %s', channel_manager.address, token.address)
    return Context(web3, channel_manager, token, store=ChannelStore(state_filename), **kwargs)


def make_client(
        provider: Union[None, str, Web3] = None,
        channel_manager_address: str = None,
        token_address: str = None,
        state_filename: str = ':memory:',
        **kwargs
) -> Client:
    web3 = make_web3(provider)
    context = make_context(
        web3,
        channel_manager_address,
        token_address,
        state_filename=state_filename,
        **kwargs
    )
    return Client(context)
