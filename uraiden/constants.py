"""
This file contains configuration constants you probably don't need to change
"""
import json
import os

# absolute path to this directory. Used to find the bundled contract ABIs
URAIDEN_DIR = os.path.abspath(os.path.dirname(__file__))

# ethereum node RPC interface should be available here
WEB3_PROVIDER_DEFAULT = "http://127.0.0.1:8545"

# name of the channel manager contract
CHANNEL_MANAGER_ABI_NAME = 'RaidenMicroTransferChannels'
# name of the token contract
TOKEN_ABI_NAME = 'CustomToken'
# compiled contracts path
CONTRACTS_ABI_JSON = 'data/contracts.json'

with open(os.path.join(URAIDEN_DIR, CONTRACTS_ABI_JSON)) as metadata_file:
    CONTRACT_METADATA = json.load(metadata_file)

with open(os.path.join(URAIDEN_DIR, 'VERSION')) as version_file:
    URAIDEN_VERSION = version_file.read().strip()

# message identifiers of the typed data signed by sender and receiver
BALANCE_PROOF_MESSAGE_ID = 'Sender balance proof signature'
CLOSING_MESSAGE_ID = 'Receiver closing signature'

# ERC223 tokens accept a payload and forward it to the channel manager
ERC223_TRANSFER = 'transfer(address,uint256,bytes)'

# seconds between two receipt polls of a pending transaction
TX_POLL_INTERVAL = 2
# confirmations required for deposits. Closing and settling only wait for inclusion.
DEPOSIT_CONFIRMATIONS = 1
CLOSE_CONFIRMATIONS = 0

# gas limits of outbound transactions
GAS_LIMITS = {
    'transfer_create': 100000,
    'transfer_topup': 70000,
    'approve': 130000,
    'createChannel': 130000,
    'topUp': 100000,
    'cooperativeClose': 120000,
    'uncooperativeClose': 100000,
    'settle': 120000,
    'mint': 100000,
}

# the test token issues tokens for ether sent to its mint function
MINT_VALUE = 10**17
