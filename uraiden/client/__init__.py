from .channel import (
    BalanceProof,
    Channel,
    ChannelInfo,
    ChannelState,
    TokenInfo
)
from .client import Client
from .context import Context
from .scanner import ChainScanner
from .signer import ProofSigner
from .store import ChannelStore

__all__ = [
    BalanceProof,
    Channel,
    ChannelInfo,
    ChannelState,
    TokenInfo,
    Client,
    Context,
    ChainScanner,
    ProofSigner,
    ChannelStore
]
