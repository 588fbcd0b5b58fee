import logging
from decimal import Decimal, localcontext
from typing import List, Optional, Union

import gevent.event
from eth_utils import decode_hex, is_same_address
from web3.exceptions import Web3Exception

from uraiden.constants import (
    CLOSE_CONFIRMATIONS,
    DEPOSIT_CONFIRMATIONS,
    ERC223_TRANSFER,
    GAS_LIMITS,
    MINT_VALUE
)
from uraiden.exceptions import (
    ChannelAlreadyClosed,
    ChannelAlreadySettled,
    ChannelNotOpen,
    DepositNotFound,
    InsufficientChannelFunds,
    InsufficientTokenBalance,
    InvalidBalanceAmount,
    InvalidChannel,
    InvalidPendingProof,
    SettleTooEarly,
    SignatureMismatch
)
from uraiden.utils import verify_closing_sig, wait_for_transaction
from .channel import BalanceProof, Channel, ChannelInfo, ChannelState, TokenInfo
from .context import Context
from .scanner import ChainScanner
from .signer import ProofSigner

log = logging.getLogger(__name__)

# enough precision for any uint256 token amount
UINT256_DIGITS = 78


class Client:
    """
    Drives channels through open -> closed -> settled and signs payments on them.

    Every operation takes the channel it acts on, so one client can manage channels to
    several receivers. Operations on the same channel are not serialized.
    """

    def __init__(self, context: Context) -> None:
        self.context = context
        self.scanner = ChainScanner(context)
        self.signer = ProofSigner(context)
        self.decimals = 0

    # persistence

    def load_stored_channel(self, sender: str, receiver: str) -> Optional[Channel]:
        return self.context.store.load(sender, receiver)

    def set_channel(self, channel: Channel):
        """Stores an externally persisted channel."""
        self.context.store.save(channel)

    def forget_stored_channel(self, channel: Channel):
        self.context.store.forget(channel.sender, channel.receiver)

    def load_channel_from_blockchain(self, sender: str, receiver: str) -> Channel:
        channel = self.scanner.discover(sender, receiver)
        self.context.store.save(channel)
        return channel

    @staticmethod
    def is_channel_valid(channel: Optional[Channel]) -> bool:
        return channel is not None and channel.is_valid()

    def _require_valid(self, channel: Channel):
        if not self.is_channel_valid(channel):
            raise InvalidChannel('No valid channel: {}'.format(channel))

    # chain queries

    def get_accounts(self) -> List[str]:
        return self.context.web3.eth.accounts

    def get_challenge_period(self) -> int:
        return self.scanner.get_challenge_period()

    def get_channel_info(self, channel: Channel) -> ChannelInfo:
        return self.scanner.get_info(channel)

    def get_token_info(self, account: str = None) -> TokenInfo:
        token = self.context.token
        decimals = token.call('decimals')
        balance = token.balance_of(account) if account else None
        self.decimals = decimals
        return TokenInfo(token.call('name'), token.call('symbol'), decimals, balance)

    def num_to_token(self, value: Union[int, str, Decimal]) -> int:
        """Converts a token amount to its smallest unit, e.g. '1.5' -> 1500000000000000000."""
        with localcontext() as ctx:
            ctx.prec = UINT256_DIGITS
            return int(Decimal(value or 0).scaleb(self.decimals))

    def token_to_num(self, balance: int) -> Decimal:
        with localcontext() as ctx:
            ctx.prec = UINT256_DIGITS
            return Decimal(balance).scaleb(-self.decimals)

    def wait_tx(self, tx_hash: str, confirmations: int = 0, cancel: gevent.event.Event = None):
        return wait_for_transaction(
            self.context.web3,
            tx_hash,
            confirmations=confirmations,
            polling_interval=self.context.poll_interval,
            max_attempts=self.context.max_wait_attempts,
            cancel=cancel
        )

    # deposits

    def _check_token_balance(self, account: str, deposit: int):
        balance = self.context.token.balance_of(account)
        if not balance >= deposit:
            raise InsufficientTokenBalance(
                'Not enough tokens. Token balance = {}, required = {}'.format(balance, deposit)
            )
        log.debug('Token balance of %s: %d', account, balance)

    def open_channel(
            self,
            sender: str,
            receiver: str,
            deposit: int,
            cancel: gevent.event.Event = None
    ) -> Channel:
        """
        Opens a channel from sender to receiver with an initial deposit and blocks until the
        creation is confirmed. A channel already stored for the pair is replaced.
        """
        if deposit <= 0:
            raise InvalidBalanceAmount('Deposit must be positive: {}'.format(deposit))
        tracked = self.load_stored_channel(sender, receiver)
        if self.is_channel_valid(tracked):
            log.warning('Already valid channel will be forgotten: %s', tracked)

        self._check_token_balance(sender, deposit)

        channel_manager = self.context.channel_manager
        token = self.context.token
        log.info('Creating channel to %s with an initial deposit of %d', receiver, deposit)
        if self.context.erc223:
            # payload is sender (20B) + receiver (20B)
            data = decode_hex(sender) + decode_hex(receiver)
            tx_hash = token.transact(
                ERC223_TRANSFER,
                channel_manager.address,
                deposit,
                data,
                sender=sender,
                gas=GAS_LIMITS['transfer_create']
            )
        else:
            token.transact(
                'approve',
                channel_manager.address,
                deposit,
                sender=sender,
                gas=GAS_LIMITS['approve']
            )
            tx_hash = channel_manager.transact(
                'createChannel',
                receiver,
                deposit,
                sender=sender,
                gas=GAS_LIMITS['createChannel']
            )
        log.debug('Waiting for channel creation tx %s', tx_hash)
        receipt = self.wait_tx(tx_hash, DEPOSIT_CONFIRMATIONS, cancel=cancel)
        block = receipt['blockNumber']

        try:
            info = channel_manager.get_channel_info(sender, receiver, block)
        except (Web3Exception, ValueError) as e:
            raise DepositNotFound('No channel found at block {}: {}'.format(block, e)) from e
        if not info[1] > 0:
            raise DepositNotFound('No deposit found!')

        channel = Channel(sender, receiver, block)
        self.context.store.save(channel)
        log.info('Channel created in block %d', block)
        return channel

    def top_up_channel(
            self,
            channel: Channel,
            deposit: int,
            cancel: gevent.event.Event = None
    ) -> str:
        """Deposits more tokens to the channel. Blocks until confirmation."""
        self._require_valid(channel)
        if deposit <= 0:
            raise InvalidBalanceAmount('Deposit must be positive: {}'.format(deposit))
        self._check_token_balance(channel.sender, deposit)

        channel_manager = self.context.channel_manager
        token = self.context.token
        log.info('Topping up channel to %s created at block #%d by %d tokens.',
                 channel.receiver, channel.block, deposit)
        if self.context.erc223:
            # payload is sender (20B) + receiver (20B) + open block number (4B)
            data = (decode_hex(channel.sender) +
                    decode_hex(channel.receiver) +
                    channel.block.to_bytes(4, byteorder='big'))
            tx_hash = token.transact(
                ERC223_TRANSFER,
                channel_manager.address,
                deposit,
                data,
                sender=channel.sender,
                gas=GAS_LIMITS['transfer_topup']
            )
        else:
            token.transact(
                'approve',
                channel_manager.address,
                deposit,
                sender=channel.sender,
                gas=GAS_LIMITS['approve']
            )
            tx_hash = channel_manager.transact(
                'topUp',
                channel.receiver,
                channel.block,
                deposit,
                sender=channel.sender,
                gas=GAS_LIMITS['topUp']
            )
        self.wait_tx(tx_hash, DEPOSIT_CONFIRMATIONS, cancel=cancel)
        return tx_hash

    # payments

    def sign_message(self, channel: Channel, message: str) -> bytes:
        self._require_valid(channel)
        return self.signer.sign_personal_message(channel, message)

    def sign_new_proof(self, channel: Channel, proof: BalanceProof = None) -> BalanceProof:
        """
        Signs a balance proof. Notice a proof carries the final balance, not the increment.
        A new balance is only persisted as current after confirm_payment.
        """
        self._require_valid(channel)
        if proof is None:
            proof = channel.proof
        self._check_new_balance(channel, proof.balance)
        return self.signer.sign(channel, proof)

    def increment_balance_and_sign(self, channel: Channel, amount: int) -> BalanceProof:
        self._require_valid(channel)
        if amount < 0:
            raise InvalidBalanceAmount('Payment amount must not be negative: {}'.format(amount))
        proof = BalanceProof(channel.proof.balance + amount)
        self._check_new_balance(channel, proof.balance)
        return self.signer.sign(channel, proof)

    def _check_new_balance(self, channel: Channel, balance: int):
        """Rejects a balance below the confirmed one or above the current deposit."""
        if balance < channel.proof.balance:
            raise InvalidBalanceAmount(
                'Balance {} is lower than the confirmed balance {}'.format(
                    balance, channel.proof.balance
                )
            )
        info = self.get_channel_info(channel)
        if info.state != ChannelState.opened:
            raise _not_open_error(info, 'Tried signing on {} channel'.format(info.state.value))
        elif balance > info.deposit:
            raise InsufficientChannelFunds(info.deposit, balance)

    def confirm_payment(self, channel: Channel, proof: BalanceProof):
        """
        Persists the pending proof as the current one. Must be called after the receiver
        accepted the payment signed by increment_balance_and_sign.
        """
        pending = channel.pending_proof
        if not pending or not pending.sig or pending.sig != proof.sig:
            raise InvalidPendingProof('Invalid provided or stored pending signature')
        channel.proof = pending
        channel.pending_proof = None
        self.context.store.save(channel)

    def set_balance(self, channel: Channel, value: int):
        """
        Resets the channel balance to the one reported by the receiver, without any
        verification. Prefer verify_proof if the receiver provides a signed proof.
        """
        channel.proof = BalanceProof(value)
        channel.pending_proof = None
        self.context.store.save(channel)

    def verify_proof(self, channel: Channel, proof: BalanceProof) -> bool:
        self._require_valid(channel)
        return self.signer.verify(channel, proof)

    # closing

    def close_channel(
            self,
            channel: Channel,
            closing_sig: bytes = None,
            cancel: gevent.event.Event = None
    ) -> str:
        """
        Closes the channel. With the receiver's closing signature the channel is settled right
        away, otherwise it enters the challenge period and must be settled afterwards.
        """
        self._require_valid(channel)
        info = self.get_channel_info(channel)
        if info.state != ChannelState.opened:
            raise _not_open_error(
                info,
                'Tried closing already {} channel'.format(info.state.value)
            )

        supplied = closing_sig is not None
        if not supplied:
            closing_sig = channel.closing_sig
        log.info('Closing channel to %s created at block #%d. Cooperative = %s',
                 channel.receiver, channel.block, bool(closing_sig))

        channel_manager = self.context.channel_manager
        if closing_sig:
            proof = channel.proof
            if not proof.sig:
                proof = self.signer.sign(channel, proof)
            try:
                receiver_recovered = verify_closing_sig(
                    channel.sender,
                    channel.block,
                    proof.balance,
                    closing_sig,
                    channel_manager.address
                )
            except ValueError:
                receiver_recovered = None
            if receiver_recovered is None or \
                    not is_same_address(receiver_recovered, channel.receiver):
                log.error('Invalid closing signature.')
                raise SignatureMismatch(
                    'Closing signature recovers to {} instead of the receiver {}'.format(
                        receiver_recovered, channel.receiver
                    )
                )
            if supplied:
                channel.closing_sig = closing_sig
                self.context.store.save(channel)
            tx_hash = channel_manager.transact(
                'cooperativeClose',
                channel.receiver,
                channel.block,
                proof.balance,
                proof.sig,
                closing_sig,
                sender=channel.sender,
                gas=GAS_LIMITS['cooperativeClose']
            )
        else:
            proof = channel.proof
            tx_hash = channel_manager.transact(
                'uncooperativeClose',
                channel.receiver,
                channel.block,
                proof.balance,
                proof.sig or b'',
                sender=channel.sender,
                gas=GAS_LIMITS['uncooperativeClose']
            )

        log.debug('Waiting for close tx %s', tx_hash)
        self.wait_tx(tx_hash, CLOSE_CONFIRMATIONS, cancel=cancel)
        return tx_hash

    def settle_channel(self, channel: Channel, cancel: gevent.event.Event = None) -> str:
        """
        Settles a channel closed without the receiver's signature once the challenge period
        is over, distributing the deposit to sender and receiver.
        """
        self._require_valid(channel)
        info = self.get_channel_info(channel)
        current_block = self.context.web3.eth.block_number
        if info.state == ChannelState.settled:
            raise ChannelAlreadySettled('Tried settling already settled channel')
        elif info.state != ChannelState.closed:
            raise SettleTooEarly('Tried settling {} channel'.format(info.state.value))

        challenge = self.scanner.challenge or self.scanner.get_challenge_period()
        if current_block < info.block + challenge:
            raise SettleTooEarly(
                'Tried settling inside challenge period: {} < {} + {}'.format(
                    current_block, info.block, challenge
                )
            )

        log.info('Settling channel to %s created at block #%d.', channel.receiver, channel.block)
        tx_hash = self.context.channel_manager.transact(
            'settle',
            channel.receiver,
            channel.block,
            sender=channel.sender,
            gas=GAS_LIMITS['settle']
        )
        log.debug('Waiting for settle tx %s', tx_hash)
        self.wait_tx(tx_hash, CLOSE_CONFIRMATIONS, cancel=cancel)
        return tx_hash

    def buy_token(self, account: str, cancel: gevent.event.Event = None):
        """Test tokens only: sends ether to the token's mint function."""
        tx_hash = self.context.token.transact(
            'mint',
            sender=account,
            gas=GAS_LIMITS['mint'],
            value=MINT_VALUE
        )
        log.debug('Waiting for mint tx %s', tx_hash)
        return self.wait_tx(tx_hash, DEPOSIT_CONFIRMATIONS, cancel=cancel)


def _not_open_error(info: ChannelInfo, message: str) -> ChannelNotOpen:
    if info.state == ChannelState.closed:
        return ChannelAlreadyClosed(message)
    elif info.state == ChannelState.settled:
        return ChannelAlreadySettled(message)
    return ChannelNotOpen(message)
