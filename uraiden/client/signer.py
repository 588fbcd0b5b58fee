import logging
from typing import List

from eth_utils import decode_hex, encode_hex, is_same_address

from uraiden.exceptions import (
    MissingSignature,
    SignatureMismatch,
    SigningRequestError
)
from uraiden.utils import (
    addr_from_sig,
    eth_sign_typed_data_message,
    get_balance_typed_data,
    typed_data_params
)
from uraiden.utils.crypto import TypedData
from .channel import BalanceProof, Channel
from .context import Context

log = logging.getLogger(__name__)

UNSUPPORTED_METHOD_MESSAGES = ('not found', 'not a function', 'not supported')


class ProofSigner:
    """Produces and checks balance proofs over the channel's canonical typed data."""

    def __init__(self, context: Context):
        self.context = context

    def typed_data(self, channel: Channel, proof: BalanceProof) -> List[TypedData]:
        return get_balance_typed_data(
            channel.receiver,
            channel.block,
            proof.balance,
            self.context.channel_manager.address
        )

    def recover(self, channel: Channel, proof: BalanceProof) -> str:
        """Address that signed the proof, or None if the signature can't be recovered."""
        msg = eth_sign_typed_data_message(self.typed_data(channel, proof))
        try:
            return addr_from_sig(proof.sig, msg)
        except ValueError as e:
            log.debug('Unrecoverable signature %s: %s', encode_hex(proof.sig), e)
            return None

    def sign_personal_message(self, channel: Channel, message: str) -> bytes:
        """
        Asks the node to sign a message with personal_sign, falling back to eth_sign if the
        node doesn't provide personal_sign.
        """
        if message.startswith('0x'):
            data = message
        else:
            data = encode_hex(message.encode())
        log.debug('Signing "%s" => %s, account: %s', message, data, channel.sender)

        try:
            sig = self.context.rpc_request('personal_sign', [data, channel.sender, ''])
        except SigningRequestError as e:
            if not any(reason in str(e).lower() for reason in UNSUPPORTED_METHOD_MESSAGES):
                raise
            log.debug('personal_sign unavailable (%s), using eth_sign', e)
            sig = self.context.rpc_request('eth_sign', [channel.sender, data])
        return decode_hex(sig)

    def sign(self, channel: Channel, proof: BalanceProof = None) -> BalanceProof:
        """
        Asks the sender to sign the balance proof with eth_signTypedData, or to sign the typed
        data hash as a personal message if the node can't sign typed data.

        A new balance is kept in `channel.pending_proof` until the payment is confirmed. Signing
        the current balance again drops any pending proof.
        """
        if proof is None:
            proof = channel.proof
        if proof.sig:
            return proof

        typed_data = self.typed_data(channel, proof)
        try:
            sig = decode_hex(self.context.rpc_request(
                'eth_signTypedData',
                [typed_data_params(typed_data), channel.sender]
            ))
        except SigningRequestError as e:
            log.info('Error on eth_signTypedData, signing the typed data hash instead: %s', e)
            msg_hash = eth_sign_typed_data_message(typed_data)
            sig = self.sign_personal_message(channel, encode_hex(msg_hash))

        proof = proof._replace(sig=sig)
        recovered = self.recover(channel, proof)
        if recovered is None or not is_same_address(recovered, channel.sender):
            log.error('Invalid recovered signature: %s != %s', recovered, channel.sender)
            raise SignatureMismatch(
                'Invalid recovered signature: {} != {}. Does your provider support '
                'eth_signTypedData?'.format(recovered, channel.sender)
            )

        if proof.balance == channel.proof.balance:
            # a stale higher proof must not be confirmed after this one
            channel.proof = proof
            channel.pending_proof = None
        else:
            channel.pending_proof = proof
        self.context.store.save(channel)
        return proof

    def verify(self, channel: Channel, proof: BalanceProof) -> bool:
        """
        Checks a proof reported by the receiver and makes it the current one if it was signed
        by the sender.
        """
        if not proof.sig:
            raise MissingSignature('Proof must contain a signature and its respective balance')

        recovered = self.recover(channel, proof)
        log.debug('Verifying proof %s, recovered %s', proof, recovered)
        if recovered is None or not is_same_address(recovered, channel.sender):
            return False

        channel.proof = proof
        channel.pending_proof = None
        self.context.store.save(channel)
        return True
