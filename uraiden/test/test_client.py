from decimal import Decimal

import pytest
from eth_utils import decode_hex

from uraiden import Client
from uraiden.client import BalanceProof, Channel, ChannelState, Context
from uraiden.constants import ERC223_TRANSFER, GAS_LIMITS, MINT_VALUE
from uraiden.exceptions import (
    ChannelAlreadyClosed,
    ChannelAlreadySettled,
    DepositNotFound,
    InsufficientChannelFunds,
    InsufficientTokenBalance,
    InvalidBalanceAmount,
    InvalidChannel,
    InvalidPendingProof,
    SettleTooEarly,
    SignatureMismatch
)
from uraiden.test.fixtures.chain import (
    CHALLENGE_PERIOD,
    SENDER_TOKENS,
    FakeChain,
    FakeTokenProxy
)
from uraiden.utils import sign_close, verify_balance_proof


def close_sig(receiver_privkey, channel: Channel, balance: int, chain: FakeChain) -> bytes:
    return sign_close(
        receiver_privkey,
        channel.sender,
        channel.block,
        balance,
        chain.channel_manager_address
    )


def test_client(client: Client, chain: FakeChain, sender_address, receiver_address):
    """Full channel lifecycle with a non-cooperative close."""
    channel = client.open_channel(sender_address, receiver_address, 10)
    assert channel.block > 0
    assert client.get_channel_info(channel).deposit == 10

    proof = client.increment_balance_and_sign(channel, 5)
    client.confirm_payment(channel, proof)
    assert channel.balance == 5

    client.top_up_channel(channel, 10)
    assert client.get_channel_info(channel).deposit == 20

    client.close_channel(channel)
    assert client.get_channel_info(channel).state == ChannelState.closed

    chain.mine(CHALLENGE_PERIOD)
    client.settle_channel(channel)
    assert client.get_channel_info(channel).state == ChannelState.settled
    assert chain.balances[receiver_address] == 5
    assert chain.balances[sender_address] == SENDER_TOKENS - 5


def test_open_channel_erc223(client: Client, chain: FakeChain, sender_address,
                             receiver_address):
    channel = client.open_channel(sender_address, receiver_address, 10)
    assert [tx.func_name for tx in chain.transactions] == [ERC223_TRANSFER]
    tx = chain.transactions[0]
    assert tx.args == (
        chain.channel_manager_address,
        10,
        decode_hex(sender_address) + decode_hex(receiver_address)
    )
    assert tx.gas == GAS_LIMITS['transfer_create']
    assert channel.block == chain.receipts[list(chain.receipts)[0]]['blockNumber']
    assert channel.proof == BalanceProof(0)
    assert channel.pending_proof is None


@pytest.mark.parametrize('erc223', [False])
def test_open_channel_erc20(client: Client, chain: FakeChain, sender_address,
                            receiver_address):
    channel = client.open_channel(sender_address, receiver_address, 10)
    assert [tx.func_name for tx in chain.transactions] == ['approve', 'createChannel']
    assert chain.transactions[1].args == (receiver_address, 10)
    assert client.get_channel_info(channel).deposit == 10


def test_erc223_detected_from_abi(web3, channel_manager, chain: FakeChain, token):
    assert Context(web3, channel_manager, token).erc223 is True

    erc20_abi = [
        abi_element for abi_element in token.abi
        if not (abi_element.get('name') == 'transfer' and len(abi_element['inputs']) == 3)
    ]
    assert Context(web3, channel_manager, FakeTokenProxy(chain, erc20_abi)).erc223 is False


def test_open_channel_stored(client: Client, store, sender_address, receiver_address):
    channel = client.open_channel(sender_address, receiver_address, 10)
    assert client.load_stored_channel(sender_address, receiver_address) == channel
    assert store.load(sender_address, receiver_address).block == channel.block


def test_open_channel_replaces_tracked(client: Client, sender_address, receiver_address):
    first = client.open_channel(sender_address, receiver_address, 10)
    second = client.open_channel(sender_address, receiver_address, 10)
    assert second.block > first.block
    assert client.load_stored_channel(sender_address, receiver_address).block == second.block


def test_open_channel_insufficient_tokens(client: Client, chain: FakeChain, sender_address,
                                          receiver_address):
    with pytest.raises(InsufficientTokenBalance):
        client.open_channel(sender_address, receiver_address, SENDER_TOKENS + 1)
    assert chain.transactions == []
    assert client.load_stored_channel(sender_address, receiver_address) is None


def test_open_channel_invalid_deposit(client: Client, sender_address, receiver_address):
    with pytest.raises(InvalidBalanceAmount):
        client.open_channel(sender_address, receiver_address, 0)


def test_open_channel_deposit_not_found(client: Client, chain: FakeChain, monkeypatch,
                                        sender_address, receiver_address):
    monkeypatch.setattr(chain, 'create_channel', lambda *args: None)
    with pytest.raises(DepositNotFound):
        client.open_channel(sender_address, receiver_address, 10)
    assert client.load_stored_channel(sender_address, receiver_address) is None


def test_top_up_erc223(client: Client, channel: Channel, chain: FakeChain):
    client.top_up_channel(channel, 5)
    tx = chain.transactions[-1]
    assert tx.func_name == ERC223_TRANSFER
    assert tx.args[2] == (
        decode_hex(channel.sender) +
        decode_hex(channel.receiver) +
        channel.block.to_bytes(4, byteorder='big')
    )
    assert tx.gas == GAS_LIMITS['transfer_topup']
    assert client.get_channel_info(channel).deposit == 15


@pytest.mark.parametrize('erc223', [False])
def test_top_up_erc20(client: Client, channel: Channel, chain: FakeChain):
    client.top_up_channel(channel, 5)
    assert [tx.func_name for tx in chain.transactions[-2:]] == ['approve', 'topUp']
    assert chain.transactions[-1].args == (channel.receiver, channel.block, 5)
    assert client.get_channel_info(channel).deposit == 15


def test_top_up_insufficient_tokens(client: Client, channel: Channel):
    with pytest.raises(InsufficientTokenBalance):
        client.top_up_channel(channel, SENDER_TOKENS)


def test_increment_balance(client: Client, channel: Channel, chain: FakeChain):
    proof = client.increment_balance_and_sign(channel, 3)
    assert proof.balance == 3
    assert channel.pending_proof == proof
    assert channel.proof.balance == 0
    assert verify_balance_proof(
        channel.receiver,
        channel.block,
        3,
        proof.sig,
        chain.channel_manager_address
    ) == channel.sender

    client.confirm_payment(channel, proof)
    assert channel.proof == proof
    assert channel.pending_proof is None

    # balances are cumulative
    proof = client.increment_balance_and_sign(channel, 4)
    assert proof.balance == 7


def test_increment_balance_zero(client: Client, channel: Channel):
    proof = client.increment_balance_and_sign(channel, 0)
    assert proof.balance == 0
    assert channel.proof == proof
    assert channel.pending_proof is None


def test_increment_balance_negative(client: Client, channel: Channel):
    with pytest.raises(InvalidBalanceAmount):
        client.increment_balance_and_sign(channel, -1)


def test_increment_balance_over_deposit(client: Client, channel: Channel, store,
                                        signing_provider):
    with pytest.raises(InsufficientChannelFunds) as exc_info:
        client.increment_balance_and_sign(channel, 11)
    assert exc_info.value.current == 10
    assert exc_info.value.required == 11
    assert channel.proof == BalanceProof(0)
    assert channel.pending_proof is None
    assert store.load(channel.sender, channel.receiver) == channel
    assert signing_provider.requests == []

    # the whole deposit can be spent
    assert client.increment_balance_and_sign(channel, 10).balance == 10


def test_increment_balance_closed(client: Client, channel: Channel):
    client.close_channel(channel)
    with pytest.raises(ChannelAlreadyClosed):
        client.increment_balance_and_sign(channel, 1)


def test_increment_balance_invalid_channel(client: Client, sender_address, receiver_address):
    with pytest.raises(InvalidChannel):
        client.increment_balance_and_sign(Channel(sender_address, receiver_address, 0), 1)


def test_confirm_payment_mismatch(client: Client, channel: Channel):
    with pytest.raises(InvalidPendingProof):
        client.confirm_payment(channel, BalanceProof(3, b'\x01' * 65))

    proof = client.increment_balance_and_sign(channel, 3)
    with pytest.raises(InvalidPendingProof):
        client.confirm_payment(channel, proof._replace(sig=b'\x01' * 65))
    assert channel.pending_proof == proof
    assert channel.proof.balance == 0


def test_unconfirmed_payment_is_replaced(client: Client, channel: Channel):
    client.increment_balance_and_sign(channel, 3)
    proof = client.increment_balance_and_sign(channel, 4)
    # an unconfirmed payment is not part of the next balance
    assert proof.balance == 4
    assert channel.pending_proof == proof


def test_set_balance(client: Client, channel: Channel, store):
    client.increment_balance_and_sign(channel, 3)
    client.set_balance(channel, 2)
    assert channel.proof == BalanceProof(2)
    assert channel.pending_proof is None
    assert store.load(channel.sender, channel.receiver).balance == 2


def test_cooperative_close(client: Client, channel: Channel, chain: FakeChain, store,
                           receiver_privkey, receiver_address):
    proof = client.increment_balance_and_sign(channel, 3)
    client.confirm_payment(channel, proof)

    sig = close_sig(receiver_privkey, channel, 3, chain)
    client.close_channel(channel, sig)
    assert chain.transactions[-1].func_name == 'cooperativeClose'
    assert chain.transactions[-1].args == (
        channel.receiver, channel.block, 3, proof.sig, sig
    )
    assert client.get_channel_info(channel).state == ChannelState.settled
    assert chain.balances[receiver_address] == 3
    assert store.load(channel.sender, channel.receiver).closing_sig == sig


def test_cooperative_close_stored_sig(client: Client, channel: Channel, chain: FakeChain,
                                      receiver_privkey):
    channel.closing_sig = close_sig(receiver_privkey, channel, 0, chain)
    client.close_channel(channel)
    assert chain.transactions[-1].func_name == 'cooperativeClose'
    assert client.get_channel_info(channel).state == ChannelState.settled


def test_cooperative_close_invalid_sig(client: Client, channel: Channel, chain: FakeChain,
                                       sender_privkey, receiver_privkey):
    tx_count = len(chain.transactions)
    with pytest.raises(SignatureMismatch):
        client.close_channel(channel, close_sig(sender_privkey, channel, 0, chain))
    with pytest.raises(SignatureMismatch):
        # signed for another balance
        client.close_channel(channel, close_sig(receiver_privkey, channel, 5, chain))
    with pytest.raises(SignatureMismatch):
        client.close_channel(channel, b'wrong')
    assert len(chain.transactions) == tx_count
    assert channel.closing_sig is None
    assert client.get_channel_info(channel).state == ChannelState.opened


def test_uncooperative_close(client: Client, channel: Channel, chain: FakeChain):
    proof = client.increment_balance_and_sign(channel, 3)
    client.confirm_payment(channel, proof)

    client.close_channel(channel)
    tx = chain.transactions[-1]
    assert tx.func_name == 'uncooperativeClose'
    assert tx.args == (channel.receiver, channel.block, 3, proof.sig)
    assert tx.gas == GAS_LIMITS['uncooperativeClose']
    assert client.get_channel_info(channel).state == ChannelState.closed


def test_close_twice(client: Client, channel: Channel, chain: FakeChain, receiver_privkey):
    client.close_channel(channel)
    with pytest.raises(ChannelAlreadyClosed):
        client.close_channel(channel)

    chain.mine(CHALLENGE_PERIOD)
    client.settle_channel(channel)
    with pytest.raises(ChannelAlreadySettled):
        client.close_channel(channel, close_sig(receiver_privkey, channel, 0, chain))


def test_settle_too_early(client: Client, channel: Channel, chain: FakeChain):
    with pytest.raises(SettleTooEarly):
        client.settle_channel(channel)

    client.close_channel(channel)
    with pytest.raises(SettleTooEarly):
        client.settle_channel(channel)

    chain.mine(CHALLENGE_PERIOD - 1)
    with pytest.raises(SettleTooEarly):
        client.settle_channel(channel)

    chain.mine()
    client.settle_channel(channel)
    assert chain.transactions[-1].func_name == 'settle'


def test_settle_settled(client: Client, channel: Channel, chain: FakeChain, receiver_privkey):
    client.close_channel(channel, close_sig(receiver_privkey, channel, 0, chain))
    with pytest.raises(ChannelAlreadySettled):
        client.settle_channel(channel)


def test_forget_and_set_channel(client: Client, channel: Channel, sender_address,
                                receiver_address):
    client.forget_stored_channel(channel)
    assert client.load_stored_channel(sender_address, receiver_address) is None

    client.set_channel(channel)
    assert client.load_stored_channel(sender_address, receiver_address) == channel


def test_is_channel_valid(client: Client, channel: Channel, sender_address, receiver_address):
    assert client.is_channel_valid(channel)
    assert not client.is_channel_valid(None)
    assert not client.is_channel_valid(Channel(sender_address, receiver_address, 0))


def test_token_info(client: Client, sender_address):
    info = client.get_token_info(sender_address)
    assert info.name == 'Raiden Network Token'
    assert info.symbol == 'RDN'
    assert info.decimals == 18
    assert info.balance == SENDER_TOKENS
    assert client.get_token_info().balance is None


def test_token_conversion(client: Client):
    client.get_token_info()
    assert client.num_to_token('1.5') == 1500000000000000000
    assert client.num_to_token(2) == 2 * 10**18
    assert client.token_to_num(1500000000000000000) == Decimal('1.5')
    assert client.token_to_num(1) == Decimal('0.000000000000000001')


def test_accounts(client: Client, sender_address, receiver_address):
    assert client.get_accounts() == [sender_address, receiver_address]


def test_buy_token(client: Client, chain: FakeChain, receiver_address):
    receipt = client.buy_token(receiver_address)
    assert receipt['blockNumber'] < chain.block
    tx = chain.transactions[-1]
    assert tx.func_name == 'mint'
    assert tx.value == MINT_VALUE
    assert chain.balances[receiver_address] == MINT_VALUE
