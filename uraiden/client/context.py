import logging
from typing import Any, List

from web3 import Web3
from web3.exceptions import Web3Exception

from uraiden.config import NETWORK_CFG
from uraiden.constants import ERC223_TRANSFER
from uraiden.contract_proxy import ChannelManagerProxy, TokenProxy
from uraiden.exceptions import SigningRequestError, UserRejectedSigning
from .store import ChannelStore

log = logging.getLogger(__name__)

REJECTION_MESSAGES = ('user denied', 'user rejected')


class Context(object):
    """Collaborators shared by the scanner, the signer and the client."""

    def __init__(
            self,
            web3: Web3,
            channel_manager: ChannelManagerProxy,
            token: TokenProxy,
            store: ChannelStore = None,
            start_block: int = None,
            poll_interval: float = None,
            max_wait_attempts: int = None,
            erc223: bool = None
    ):
        self.web3 = web3
        self.channel_manager = channel_manager
        self.token = token
        self.store = store if store is not None else ChannelStore()
        if start_block is None:
            start_block = NETWORK_CFG.start_sync_block
        self.start_block = start_block
        if poll_interval is None:
            poll_interval = NETWORK_CFG.poll_interval
        self.poll_interval = poll_interval
        self.max_wait_attempts = max_wait_attempts

        # the funding path is fixed for the lifetime of the context
        if erc223 is None:
            erc223 = self.token.has_function(ERC223_TRANSFER)
        self.erc223 = erc223
        log.debug('Token %s uses %s deposits', token.address, 'ERC223' if erc223 else 'ERC20')

    def rpc_request(self, method: str, params: List[Any]):
        """Send a raw JSON-RPC request, used for signing requests the node handles."""
        try:
            response = self.web3.provider.make_request(method, params)
        except (ValueError, NotImplementedError, Web3Exception) as e:
            raise _signing_error(method, str(e)) from e

        error = response.get('error')
        if error:
            message = error.get('message', str(error)) if isinstance(error, dict) else str(error)
            raise _signing_error(method, message)
        return response['result']


def _signing_error(method: str, message: str) -> Exception:
    if any(rejection in message.lower() for rejection in REJECTION_MESSAGES):
        return UserRejectedSigning(message)
    return SigningRequestError('{} failed: {}'.format(method, message))
