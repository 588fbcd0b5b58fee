from .client import (
    BalanceProof,
    Channel,
    ChannelState,
    Client,
    Context
)

__all__ = [
    BalanceProof,
    Channel,
    ChannelState,
    Client,
    Context
]
