class UraidenException(Exception):
    pass


class InvalidProvider(UraidenException):
    pass


class InvalidChannel(UraidenException):
    pass


class NoOpenChannel(UraidenException):
    pass


class InvalidChallenge(UraidenException):
    pass


class InvalidBalanceAmount(UraidenException):
    pass


class InsufficientTokenBalance(UraidenException):
    pass


class InsufficientChannelFunds(UraidenException):
    """The channel deposit can't cover the requested cumulative balance."""

    def __init__(self, current: int, required: int):
        super().__init__(
            'Insufficient funds: current = {}, required = {}'.format(current, required)
        )
        self.current = current
        self.required = required


class DepositNotFound(UraidenException):
    pass


class SignatureMismatch(UraidenException):
    pass


class SigningRequestError(UraidenException):
    pass


class UserRejectedSigning(UraidenException):
    pass


class MissingSignature(UraidenException):
    pass


class InvalidPendingProof(UraidenException):
    pass


class ChannelNotOpen(UraidenException):
    pass


class ChannelAlreadyClosed(ChannelNotOpen):
    pass


class ChannelAlreadySettled(ChannelNotOpen):
    pass


class SettleTooEarly(UraidenException):
    pass


class TransactionWaitAborted(UraidenException):
    pass
