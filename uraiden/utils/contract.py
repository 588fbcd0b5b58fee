import logging
from typing import Any, Union, Dict, List

import gevent
import gevent.event
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import TransactionNotFound

from uraiden.constants import TX_POLL_INTERVAL
from uraiden.exceptions import TransactionWaitAborted

log = logging.getLogger(__name__)


def get_logs(
        contract: Contract,
        event_name: str,
        from_block: Union[int, str] = 0,
        to_block: Union[int, str] = 'latest',
        argument_filters: Dict[str, Any] = None
) -> List[Dict[str, Any]]:
    event_abi = [
        abi_element for abi_element in contract.abi
        if abi_element['type'] == 'event' and abi_element['name'] == event_name
    ]
    assert len(event_abi) == 1, 'No event found matching name {}.'.format(event_name)

    event = getattr(contract.events, event_name)
    logs = event().get_logs(
        from_block=from_block,
        to_block=to_block,
        argument_filters=argument_filters or {}
    )
    logs = [dict(log) for log in logs]
    for log_ in logs:
        log_['args'] = dict(log_['args'])
    return logs


def _wait(duration: float):
    """For easy patching."""
    gevent.sleep(duration)


def _get_receipt(web3: Web3, tx_hash: str):
    try:
        return web3.eth.get_transaction_receipt(tx_hash)
    except TransactionNotFound:
        return None


def wait_for_transaction(
        web3: Web3,
        tx_hash: str,
        confirmations: int = 0,
        polling_interval: float = TX_POLL_INTERVAL,
        max_attempts: int = None,
        cancel: gevent.event.Event = None
):
    """Block until the transaction is mined and buried under `confirmations` blocks.

    A missing receipt only means the transaction is still pending. Without `max_attempts`
    and `cancel` this polls forever; setting the `cancel` event or running out of attempts
    raises TransactionWaitAborted.
    """
    attempts = 0
    block_start = web3.eth.block_number
    while True:
        tx_receipt = _get_receipt(web3, tx_hash)
        current_block = web3.eth.block_number

        if tx_receipt is None or tx_receipt['blockNumber'] is None:
            log.debug('Waiting tx %s.. (%d blocks)', tx_hash, current_block - block_start)
        elif current_block - tx_receipt['blockNumber'] < confirmations:
            log.debug(
                'Waiting confirmations of tx %s.. (%d/%d)',
                tx_hash,
                current_block - tx_receipt['blockNumber'],
                confirmations
            )
        else:
            return tx_receipt

        attempts += 1
        if max_attempts is not None and attempts >= max_attempts:
            raise TransactionWaitAborted(
                'Transaction {} not confirmed after {} attempts.'.format(tx_hash, attempts)
            )
        if cancel is not None:
            if cancel.wait(timeout=polling_interval):
                raise TransactionWaitAborted(
                    'Waiting for transaction {} was cancelled.'.format(tx_hash)
                )
        else:
            _wait(polling_interval)
