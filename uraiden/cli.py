"""Command line access to the channels of one sender account.

Example::

    python -m uraiden --sender 0x... open 0x<receiver> 1.5
    python -m uraiden --sender 0x... close 0x<receiver>
"""
import functools
import logging
import os
import sys

import click
import requests
from eth_utils import decode_hex, is_address, to_checksum_address

from uraiden.client import Channel, ChannelState, Client
from uraiden.config import NETWORK_CFG
from uraiden.constants import URAIDEN_VERSION, WEB3_PROVIDER_DEFAULT
from uraiden.exceptions import UraidenException
from uraiden.make_helpers import make_client, make_web3

log = logging.getLogger(__name__)


class App:
    def __init__(self, client: Client, sender: str):
        self.client = client
        self.sender = sender

    def get_channel(self, receiver: str) -> Channel:
        """Stored channel to the receiver, or the one found on chain."""
        channel = self.client.load_stored_channel(self.sender, receiver)
        if self.client.is_channel_valid(channel):
            return channel
        return self.client.load_channel_from_blockchain(self.sender, receiver)


pass_app = click.make_pass_decorator(App)


def validate_address(ctx, param, value):
    if value is None:
        return None
    if not is_address(value):
        raise click.BadParameter('{} is not an ethereum address'.format(value))
    return to_checksum_address(value)


def handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except UraidenException as ex:
            raise click.ClickException('{}: {}'.format(type(ex).__name__, ex))
        except requests.exceptions.ConnectionError as ex:
            raise click.ClickException('Ethereum node refused connection: {}'.format(ex))
    return wrapper


def format_tokens(value) -> str:
    return '{:f}'.format(value.normalize())


def default_state_file(channel_manager_address: str, sender: str) -> str:
    app_dir = click.get_app_dir('uraiden')
    if not os.path.exists(app_dir):
        os.makedirs(app_dir)
    return os.path.join(
        app_dir,
        '{}_{}.db'.format(channel_manager_address[:10], sender[:10])
    )


@click.group()
@click.version_option(URAIDEN_VERSION, prog_name='uraiden')
@click.option(
    '--rpc-provider',
    default=WEB3_PROVIDER_DEFAULT,
    help='Address of the Ethereum RPC provider'
)
@click.option(
    '--channel-manager-address',
    default=None,
    callback=validate_address,
    help='Ethereum address of the channel manager contract.'
)
@click.option(
    '--state-file',
    default=None,
    help='Channel store of the client'
)
@click.option(
    '--sender',
    default=None,
    callback=validate_address,
    help='Node-managed account paying through the channels. Defaults to the first account.'
)
@click.pass_context
def main(ctx, rpc_provider, channel_manager_address, state_file, sender):
    try:
        web3 = make_web3(rpc_provider)
        NETWORK_CFG.set_defaults(int(web3.net.version))
        channel_manager_address = channel_manager_address or NETWORK_CFG.channel_manager_address
        if channel_manager_address is None:
            raise click.UsageError('No channel manager known for this network.')
        channel_manager_address = to_checksum_address(channel_manager_address)
        if sender is None:
            accounts = web3.eth.accounts
            if not accounts:
                raise click.UsageError('The node manages no accounts, use --sender.')
            sender = to_checksum_address(accounts[0])
        if not state_file:
            state_file = default_state_file(channel_manager_address, sender)
        client = make_client(web3, channel_manager_address, state_filename=state_file)
    except requests.exceptions.ConnectionError as ex:
        log.fatal('Ethereum node refused connection: %s', ex)
        sys.exit(1)
    except UraidenException as ex:
        log.fatal(str(ex))
        sys.exit(1)
    ctx.obj = App(client, sender)


@main.command()
@click.argument('receiver', callback=validate_address)
@pass_app
@handle_errors
def info(app: App, receiver: str):
    """Show the channel to RECEIVER."""
    client = app.client
    token_info = client.get_token_info(app.sender)
    channel = app.get_channel(receiver)
    channel_info = client.get_channel_info(channel)
    click.echo('Channel {} -> {} opened at block #{}'.format(
        channel.sender, channel.receiver, channel.block
    ))
    click.echo('State: {} since block #{}'.format(channel_info.state.value, channel_info.block))

    def tokens(value: int) -> str:
        return '{} {}'.format(format_tokens(client.token_to_num(value)), token_info.symbol)

    click.echo('Deposit: {}'.format(tokens(channel_info.deposit)))
    click.echo('Balance: {}'.format(tokens(channel.balance)))
    if channel_info.state == ChannelState.opened:
        click.echo('Remaining: {}'.format(tokens(channel_info.deposit - channel.balance)))


@main.command('open')
@click.argument('receiver', callback=validate_address)
@click.argument('deposit')
@pass_app
@handle_errors
def open_(app: App, receiver: str, deposit: str):
    """Open a channel to RECEIVER with DEPOSIT tokens."""
    client = app.client
    client.get_token_info()
    channel = client.open_channel(app.sender, receiver, client.num_to_token(deposit))
    click.echo('Opened channel to {} at block #{}'.format(receiver, channel.block))


@main.command()
@click.argument('receiver', callback=validate_address)
@click.argument('deposit')
@pass_app
@handle_errors
def topup(app: App, receiver: str, deposit: str):
    """Deposit DEPOSIT more tokens to the channel to RECEIVER."""
    client = app.client
    client.get_token_info()
    channel = app.get_channel(receiver)
    tx_hash = client.top_up_channel(channel, client.num_to_token(deposit))
    click.echo('Topped up channel at block #{}: {}'.format(channel.block, tx_hash))


@main.command()
@click.argument('receiver', callback=validate_address)
@click.option(
    '--closing-sig',
    default=None,
    help='Closing signature of the receiver, hex-encoded. Settles the channel immediately.'
)
@pass_app
@handle_errors
def close(app: App, receiver: str, closing_sig: str):
    """Close the channel to RECEIVER."""
    channel = app.get_channel(receiver)
    tx_hash = app.client.close_channel(
        channel,
        closing_sig=decode_hex(closing_sig) if closing_sig else None
    )
    click.echo('Closed channel at block #{}: {}'.format(channel.block, tx_hash))


@main.command()
@click.argument('receiver', callback=validate_address)
@pass_app
@handle_errors
def settle(app: App, receiver: str):
    """Settle the closed channel to RECEIVER after the challenge period."""
    channel = app.get_channel(receiver)
    tx_hash = app.client.settle_channel(channel)
    click.echo('Settled channel at block #{}: {}'.format(channel.block, tx_hash))


@main.command()
@click.argument('receiver', callback=validate_address)
@pass_app
@handle_errors
def forget(app: App, receiver: str):
    """Remove the stored channel to RECEIVER."""
    channel = app.client.load_stored_channel(app.sender, receiver)
    if channel is None:
        click.echo('No stored channel to {}'.format(receiver))
        return
    app.client.forget_stored_channel(channel)
    click.echo('Forgot channel to {} opened at block #{}'.format(receiver, channel.block))
