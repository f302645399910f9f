"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class AuctionStatus(str, Enum):
    """Lifecycle of one auction round for a pair.

    AUCTION_CLOSED is both the initial state of a new pair and the terminal
    state of a settled round; a new round may only be opened from it.
    """
    STARTED = "STARTED"
    FINISHED = "FINISHED"
    CLOSING = "CLOSING"
    AUCTION_CLOSED = "AUCTION_CLOSED"


class TargetOverrideStrategy(str, Enum):
    PROPORTIONAL = "PROPORTIONAL"
    PRIORITY = "PRIORITY"


class PauseReasonKind(str, Enum):
    EMPTY_BALANCE = "EMPTY_BALANCE"
    ACCOUNT_REASON = "ACCOUNT_REASON"


class SystemStatusKind(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    PROCESSING = "PROCESSING"
    FINISHED = "FINISHED"


class TransferReason(str, Enum):
    """Why native balance moved; stored on every transfers row."""
    EXTERNAL_DEPOSIT = "EXTERNAL_DEPOSIT"
    AUCTION_DEPOSIT = "AUCTION_DEPOSIT"
    AUCTION_WITHDRAW = "AUCTION_WITHDRAW"
    BID_PAYMENT = "BID_PAYMENT"
    BID_FILL = "BID_FILL"
    BID_REFUND = "BID_REFUND"
    SETTLEMENT_PAYOUT = "SETTLEMENT_PAYOUT"
    SETTLEMENT_REFUND = "SETTLEMENT_REFUND"
