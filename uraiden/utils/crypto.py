"""
Convention within this module is to only add the '0x' hex prefix to addresses while other
hex-encoded values, such as hashes and private keys, come without a 0x prefix.
"""
from typing import List, Tuple, Any, Dict, Union

from coincurve import PrivateKey, PublicKey
from eth_utils import (
    encode_hex,
    decode_hex,
    remove_0x_prefix,
    keccak,
    is_0x_prefixed,
    to_checksum_address
)

from uraiden.constants import BALANCE_PROOF_MESSAGE_ID, CLOSING_MESSAGE_ID


Type = str
Name = str
TypedData = Tuple[Type, Name, Any]


def pubkey_to_addr(pubkey) -> str:
    if isinstance(pubkey, PublicKey):
        pubkey = pubkey.format(compressed=False)
    assert isinstance(pubkey, bytes)
    return to_checksum_address(keccak256(pubkey[1:])[-20:])


def privkey_to_addr(privkey: str) -> str:
    return pubkey_to_addr(PrivateKey.from_hex(remove_0x_prefix(privkey)).public_key)


def addr_from_sig(sig: bytes, msg: bytes) -> str:
    if len(sig) != 65:
        raise ValueError('Invalid signature length: {}'.format(len(sig)))
    # Support Ethereum's EC v value of 27 and EIP 155 values of > 35.
    if sig[-1] >= 35:
        network_id = (sig[-1] - 35) // 2
        sig = sig[:-1] + bytes([sig[-1] - 35 - 2 * network_id])
    elif sig[-1] >= 27:
        sig = sig[:-1] + bytes([sig[-1] - 27])

    sender_pubkey = PublicKey.from_signature_and_message(sig, msg, hasher=None)
    return pubkey_to_addr(sender_pubkey)


def pack(*args) -> bytes:
    """
    Simulates Solidity's keccak256 packing. Integers can be passed as tuples where the second tuple
    element specifies the variable's size in bits, e.g.:
    keccak256((5, 32))
    would be equivalent to Solidity's
    keccak256(uint32(5))
    Default size is 256.
    """
    def format_int(value, size):
        assert isinstance(value, int)
        assert isinstance(size, int)
        if value >= 0:
            return decode_hex('{:x}'.format(value).zfill(size // 4))
        else:
            return decode_hex('{:x}'.format((1 << size) + value))

    msg = b''
    for arg in args:
        assert arg is not None
        if isinstance(arg, bytes):
            msg += arg
        elif isinstance(arg, str):
            if is_0x_prefixed(arg):
                msg += decode_hex(arg)
            else:
                msg += arg.encode()
        elif isinstance(arg, bool):
            msg += format_int(int(arg), 8)
        elif isinstance(arg, int):
            msg += format_int(arg, 256)
        elif isinstance(arg, tuple):
            msg += format_int(arg[0], arg[1])
        else:
            raise ValueError('Unsupported type: {}.'.format(type(arg)))

    return msg


def keccak256(*args) -> bytes:
    return keccak(pack(*args))


def keccak256_hex(*args) -> str:
    return encode_hex(keccak256(*args))


def sign(privkey: str, msg: bytes, v=0) -> bytes:
    assert isinstance(msg, bytes)
    assert isinstance(privkey, str)

    pk = PrivateKey.from_hex(remove_0x_prefix(privkey))
    assert len(msg) == 32

    sig = pk.sign_recoverable(msg, hasher=None)
    assert len(sig) == 65

    sig = sig[:-1] + bytes([sig[-1] + v])

    return sig


def eth_message_hash(msg: Union[str, bytes]) -> bytes:
    """Hash of a message as signed by personal_sign/eth_sign (EIP 191, version 0x45)."""
    if isinstance(msg, str):
        msg = msg.encode()
    return keccak(b'\x19Ethereum Signed Message:\n' + str(len(msg)).encode() + msg)


def eth_sign(privkey: str, msg: Union[str, bytes]) -> bytes:
    return sign(privkey, eth_message_hash(msg), v=27)


def eth_verify(sig: bytes, msg: Union[str, bytes]) -> str:
    return addr_from_sig(sig, eth_message_hash(msg))


def eth_sign_typed_data_message(typed_data: List[TypedData]) -> bytes:
    typed_data = [('{} {}'.format(type_, name), data) for type_, name, data in typed_data]
    schema, data = [list(zipped) for zipped in zip(*typed_data)]

    return keccak256(keccak256(*schema), keccak256(*data))


def typed_data_params(typed_data: List[TypedData]) -> List[Dict[str, str]]:
    """Convert typed data to the parameter format of an eth_signTypedData request.

    Sized integers are passed as base-10 strings so they survive JSON encoding.
    """
    params = []
    for type_, name, data in typed_data:
        if isinstance(data, tuple):
            data = str(data[0])
        params.append({'type': type_, 'name': name, 'value': data})
    return params


def get_balance_typed_data(
        receiver: str, open_block_number: int, balance: int, contract_address: str
) -> List[TypedData]:
    return [
        ('string', 'message_id', BALANCE_PROOF_MESSAGE_ID),
        ('address', 'receiver', receiver),
        ('uint32', 'block_created', (open_block_number, 32)),
        ('uint192', 'balance', (balance, 192)),
        ('address', 'contract', contract_address)
    ]


def get_balance_message(
        receiver: str, open_block_number: int, balance: int, contract_address: str
) -> bytes:
    return eth_sign_typed_data_message(
        get_balance_typed_data(receiver, open_block_number, balance, contract_address)
    )


def sign_balance_proof(
        privkey: str, receiver: str, open_block_number: int, balance: int, contract_address: str
) -> bytes:
    msg = get_balance_message(receiver, open_block_number, balance, contract_address)
    return sign(privkey, msg, v=27)


def verify_balance_proof(
        receiver: str,
        open_block_number: int,
        balance: int,
        balance_sig: bytes,
        contract_address: str
) -> str:
    msg = get_balance_message(receiver, open_block_number, balance, contract_address)
    return addr_from_sig(balance_sig, msg)


def get_closing_message(
        sender: str,
        open_block_number: int,
        balance: int,
        contract_address: str
) -> bytes:
    return eth_sign_typed_data_message([
        ('string', 'message_id', CLOSING_MESSAGE_ID),
        ('address', 'sender', sender),
        ('uint32', 'block_created', (open_block_number, 32)),
        ('uint192', 'balance', (balance, 192)),
        ('address', 'contract', contract_address)
    ])


def sign_close(
        privkey: str,
        sender: str,
        open_block_number: int,
        balance: int,
        contract_address: str
) -> bytes:
    msg = get_closing_message(sender, open_block_number, balance, contract_address)
    return sign(privkey, msg, v=27)


def verify_closing_sig(
        sender: str,
        open_block_number: int,
        balance: int,
        closing_sig: bytes,
        contract_address: str
) -> str:
    msg = get_closing_message(sender, open_block_number, balance, contract_address)
    return addr_from_sig(closing_sig, msg)
