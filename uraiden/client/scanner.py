import logging

from web3.exceptions import Web3Exception

from uraiden.exceptions import (
    UraidenException,
    InvalidChannel,
    InvalidChallenge,
    NoOpenChannel
)
from .channel import Channel, ChannelInfo, ChannelState
from .context import Context

log = logging.getLogger(__name__)


class ChainScanner:
    """Reads channel state from the channel manager's event history."""

    def __init__(self, context: Context):
        self.context = context
        self.challenge = 0

    def get_challenge_period(self) -> int:
        """
        Reads the challenge period configured in the channel manager. As it calls the contract,
        it also tells whether the contract address has code on the current network.
        """
        challenge = self.context.channel_manager.challenge_period()
        if not challenge > 0:
            raise InvalidChallenge('Invalid challenge period: {}'.format(challenge))
        self.challenge = challenge
        return challenge

    def discover(self, sender: str, receiver: str, from_block: int = None) -> Channel:
        """
        Scans the blockchain for an open channel from sender to receiver and returns it with a
        zero balance. The balance may be corrected later through the receiver's reported
        balance.
        """
        if from_block is None:
            from_block = self.context.start_block
        channel_manager = self.context.channel_manager
        filters = {'_sender_address': sender, '_receiver_address': receiver}

        open_events = channel_manager.get_channel_created_logs(
            from_block=from_block,
            filters=filters
        )
        if not open_events:
            raise NoOpenChannel('No channel found from {} to {}'.format(sender, receiver))

        min_block = min(event['blockNumber'] for event in open_events)
        close_events = channel_manager.get_channel_close_requested_logs(
            from_block=min_block,
            filters=filters
        )
        settle_events = channel_manager.get_channel_settled_logs(
            from_block=min_block,
            filters=filters
        )
        current_block = self.context.web3.eth.block_number
        challenge = self.get_challenge_period()

        def still_open(open_event) -> bool:
            block = open_event['blockNumber']
            for event in settle_events:
                if event['args']['_open_block_number'] == block:
                    return False
            for event in close_events:
                # The challenge window is measured from the open block here, not from the
                # close request block.
                if event['args']['_open_block_number'] == block and \
                        block + challenge > current_block:
                    return False
            return True

        candidates = [event for event in open_events if still_open(event)]

        for event in candidates:
            channel = Channel(sender, receiver, event['blockNumber'])
            try:
                self.get_info(channel)
            except (UraidenException, Web3Exception, ValueError) as e:
                log.debug('Invalid channel %s: %s', channel, e)
                continue
            log.info('Found channel from %s to %s opened at block #%d', sender, receiver,
                     channel.block)
            return channel

        raise NoOpenChannel(
            'No open and valid channels found from {} candidates'.format(len(candidates))
        )

    def get_info(self, channel: Channel) -> ChannelInfo:
        """
        Returns the current state of the channel (opened, closed or settled), the block in which
        it was reached, the deposited sum and the sum already withdrawn by the receiver.
        """
        if not channel.is_valid():
            raise InvalidChannel('No valid channel: {}'.format(channel))
        channel_manager = self.context.channel_manager
        filters = {
            '_sender_address': channel.sender,
            '_receiver_address': channel.receiver,
            '_open_block_number': channel.block
        }

        close_events = channel_manager.get_channel_close_requested_logs(
            from_block=channel.block,
            filters=filters
        )
        closed = close_events[0]['blockNumber'] if close_events else 0

        settle_events = channel_manager.get_channel_settled_logs(
            from_block=closed or channel.block,
            filters=filters
        )
        settled = settle_events[0]['blockNumber'] if settle_events else 0

        # getChannelInfo fails for settled channels, so return before calling it
        if settled:
            return ChannelInfo(ChannelState.settled, settled, 0, 0)

        info = channel_manager.get_channel_info(channel.sender, channel.receiver, channel.block)
        deposit, withdrawn = info[1], info[4]
        if not deposit > 0:
            raise InvalidChannel('Invalid channel deposit: {}'.format(info))
        return ChannelInfo(
            ChannelState.closed if closed else ChannelState.opened,
            closed or channel.block,
            deposit,
            withdrawn
        )
