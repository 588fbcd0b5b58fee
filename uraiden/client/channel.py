from collections import namedtuple
from enum import Enum
from typing import Any, Dict

from eth_utils import decode_hex, encode_hex


class BalanceProof(namedtuple('BalanceProof', ['balance', 'sig'])):
    """Cumulative amount owed to the receiver, signed by the sender once `sig` is set."""
    __slots__ = ()

    def __new__(cls, balance: int, sig: bytes = None):
        return super().__new__(cls, balance, sig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'balance': str(self.balance),
            'sig': encode_hex(self.sig) if self.sig is not None else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BalanceProof':
        sig = data.get('sig')
        return cls(int(data['balance']), decode_hex(sig) if sig else None)


class ChannelState(Enum):
    opened = 'opened'
    closed = 'closed'
    settled = 'settled'


ChannelInfo = namedtuple('ChannelInfo', ['state', 'block', 'deposit', 'withdrawn'])

TokenInfo = namedtuple('TokenInfo', ['name', 'symbol', 'decimals', 'balance'])


class Channel:
    """Off-chain state of one channel from sender to receiver, opened at `block`."""

    def __init__(
            self,
            sender: str,
            receiver: str,
            block: int,
            proof: BalanceProof = None,
            pending_proof: BalanceProof = None,
            closing_sig: bytes = None
    ) -> None:
        self.sender = sender
        self.receiver = receiver
        self.block = block
        self.proof = proof if proof is not None else BalanceProof(0)
        self.pending_proof = pending_proof
        self.closing_sig = closing_sig

    @property
    def key(self) -> str:
        return channel_key(self.sender, self.receiver)

    @property
    def balance(self) -> int:
        return self.proof.balance

    def is_valid(self) -> bool:
        return bool(self.sender and self.receiver and self.block and self.proof is not None)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sender': self.sender,
            'receiver': self.receiver,
            'block': self.block,
            'proof': self.proof.to_dict(),
            'pending_proof': self.pending_proof.to_dict() if self.pending_proof else None,
            'closing_sig': encode_hex(self.closing_sig) if self.closing_sig else None
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Channel':
        pending_proof = data.get('pending_proof')
        closing_sig = data.get('closing_sig')
        return cls(
            data['sender'],
            data['receiver'],
            int(data['block']),
            proof=BalanceProof.from_dict(data['proof']),
            pending_proof=BalanceProof.from_dict(pending_proof) if pending_proof else None,
            closing_sig=decode_hex(closing_sig) if closing_sig else None
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, Channel):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return '<Channel(sender={}, receiver={}, block={}, balance={}, pending={})>'.format(
            self.sender,
            self.receiver,
            self.block,
            self.proof.balance,
            self.pending_proof.balance if self.pending_proof else None
        )


def channel_key(sender: str, receiver: str) -> str:
    return '{}|{}'.format(sender, receiver)
