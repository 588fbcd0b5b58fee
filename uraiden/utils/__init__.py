from .crypto import (
    pubkey_to_addr,
    privkey_to_addr,
    addr_from_sig,
    pack,
    keccak256,
    keccak256_hex,
    sign,
    eth_message_hash,
    eth_sign,
    eth_verify,
    eth_sign_typed_data_message,
    typed_data_params,
    get_balance_typed_data,
    get_balance_message,
    sign_balance_proof,
    verify_balance_proof,
    sign_close,
    verify_closing_sig
)

from .contract import (
    get_logs,
    wait_for_transaction
)

__all__ = [
    pubkey_to_addr,
    privkey_to_addr,
    addr_from_sig,
    pack,
    keccak256,
    keccak256_hex,
    sign,
    eth_message_hash,
    eth_sign,
    eth_verify,
    eth_sign_typed_data_message,
    typed_data_params,
    get_balance_typed_data,
    get_balance_message,
    sign_balance_proof,
    verify_balance_proof,
    sign_close,
    verify_closing_sig,

    get_logs,
    wait_for_transaction,
]
