import logging
from typing import Any, Dict, List, Union

from web3 import Web3

from uraiden.utils import get_logs

log = logging.getLogger(__name__)


class ContractProxy:
    """Thin wrapper around a web3 contract.

    Transactions are sent from accounts managed by the connected node, so no private key
    is ever handled here.
    """

    def __init__(self, web3: Web3, address: str, abi: List[Dict[str, Any]]) -> None:
        self.web3 = web3
        self.abi = abi
        self.contract = self.web3.eth.contract(address=address, abi=abi)

    @property
    def address(self) -> str:
        return self.contract.address

    def _function(self, func_name: str):
        # overloaded functions are addressed by their full signature
        if '(' in func_name:
            return self.contract.get_function_by_signature(func_name)
        return getattr(self.contract.functions, func_name)

    def has_function(self, signature: str) -> bool:
        for abi_element in self.abi:
            if abi_element['type'] != 'function':
                continue
            element_signature = '{}({})'.format(
                abi_element['name'],
                ','.join(arg['type'] for arg in abi_element['inputs'])
            )
            if element_signature == signature:
                return True
        return False

    def call(self, func_name: str, *args):
        return self._function(func_name)(*args).call()

    def transact(self, func_name: str, *args, sender: str, gas: int = None, value: int = 0) -> str:
        tx_params = {'from': sender, 'value': value}
        if gas is not None:
            tx_params['gas'] = gas
        tx_hash = self._function(func_name)(*args).transact(tx_params)
        return Web3.to_hex(tx_hash)

    def get_logs(
            self,
            event_name: str,
            from_block: Union[int, str] = 0,
            to_block: Union[int, str] = 'latest',
            argument_filters: Dict[str, Any] = None
    ) -> List[Dict[str, Any]]:
        return get_logs(
            self.contract,
            event_name,
            from_block=from_block,
            to_block=to_block,
            argument_filters=argument_filters
        )


class ChannelManagerProxy(ContractProxy):
    def challenge_period(self) -> int:
        return self.call('challenge_period')

    def token_address(self) -> str:
        return self.call('token')

    def get_channel_info(self, sender: str, receiver: str, open_block_number: int):
        """Returns (key, deposit, settle_block_number, closing_balance, withdrawn_balance)."""
        return self.call('getChannelInfo', sender, receiver, open_block_number)

    def get_channel_created_logs(self, from_block=0, to_block='latest', filters=None):
        return self.get_logs('ChannelCreated', from_block, to_block, filters)

    def get_channel_close_requested_logs(self, from_block=0, to_block='latest', filters=None):
        return self.get_logs('ChannelCloseRequested', from_block, to_block, filters)

    def get_channel_settled_logs(self, from_block=0, to_block='latest', filters=None):
        return self.get_logs('ChannelSettled', from_block, to_block, filters)


class TokenProxy(ContractProxy):
    def balance_of(self, address: str) -> int:
        return self.call('balanceOf', address)
