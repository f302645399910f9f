"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Authorization
  2xxx: Auction
  3xxx: Price feed
  4xxx: Rebalancer
  5xxx: System rebalance cycle
  6xxx: Ledger
  9xxx: System / arithmetic
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Authorization ---

class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Invalid or expired token", 401)


class NotAdminError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Only the admin can perform this action", 403)


class NotServicesManagerError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Only the services manager can perform this action", 403)


# --- 2xxx: Auction ---

class InvalidPairError(AppError):
    def __init__(self, sell_denom: str, buy_denom: str) -> None:
        super().__init__(2001, f"Invalid pair: ({sell_denom!r}, {buy_denom!r})", 422)


class AuctionNotFoundError(AppError):
    def __init__(self, pair: str) -> None:
        super().__init__(2002, f"Auction not found for pair {pair}", 404)


class AuctionExistsError(AppError):
    def __init__(self, pair: str) -> None:
        super().__init__(2003, f"Auction already exists for pair {pair}", 409)


class InvalidAuctionStrategyError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(2004, f"Invalid auction strategy: {detail}", 422)


class AuctionIsPausedError(AppError):
    def __init__(self) -> None:
        super().__init__(2005, "Auction is paused", 422)


class AuctionAmountTooLowError(AppError):
    def __init__(self, minimum: int) -> None:
        super().__init__(2006, f"Amount is below the minimum auction amount {minimum}", 422)


class NoTokenMinAmountError(AppError):
    def __init__(self, denom: str) -> None:
        super().__init__(2007, f"No minimum auction amount set for {denom}", 422)


class NoFundsToWithdrawError(AppError):
    def __init__(self) -> None:
        super().__init__(2008, "No funds to withdraw", 422)


class AuctionNotClosedError(AppError):
    def __init__(self) -> None:
        super().__init__(2009, "Auction must be closed before opening a new round", 409)


class AuctionClosedError(AppError):
    def __init__(self) -> None:
        super().__init__(2010, "Auction is already closed", 409)


class AuctionFinishedError(AppError):
    def __init__(self) -> None:
        super().__init__(2011, "Auction is finished", 409)


class AuctionNotStartedError(AppError):
    def __init__(self) -> None:
        super().__init__(2012, "Auction has not started yet", 409)


class AuctionStillGoingError(AppError):
    def __init__(self) -> None:
        super().__init__(2013, "Auction is still accepting bids", 409)


class NoFundsForAuctionError(AppError):
    def __init__(self) -> None:
        super().__init__(2014, "No funds deposited for the next auction", 422)


class InvalidAuctionEndBlockError(AppError):
    def __init__(self) -> None:
        super().__init__(2015, "Auction end block must be after its start block", 422)


class PriceTooOldError(AppError):
    def __init__(self, days: int, limit: int) -> None:
        super().__init__(2016, f"Price is {days} days old, limit is {limit} days", 422)


class InvalidLimitError(AppError):
    def __init__(self) -> None:
        super().__init__(2017, "Limit must be at least 1", 422)


# --- 3xxx: Price feed ---

class PriceNotFoundError(AppError):
    def __init__(self, pair: str) -> None:
        super().__init__(3001, f"No price for pair {pair}", 404)


class PriceIsZeroError(AppError):
    def __init__(self, pair: str) -> None:
        super().__init__(3002, f"Price for pair {pair} is zero", 422)


# --- 4xxx: Rebalancer ---

class AccountAlreadyRegisteredError(AppError):
    def __init__(self, account: str) -> None:
        super().__init__(4001, f"Account {account} is already registered", 409)


class AccountNotRegisteredError(AppError):
    def __init__(self, account: str) -> None:
        super().__init__(4002, f"Account {account} is not registered", 404)


class BaseDenomNotWhitelistedError(AppError):
    def __init__(self, denom: str) -> None:
        super().__init__(4003, f"Base denom {denom} is not whitelisted", 422)


class DenomNotWhitelistedError(AppError):
    def __init__(self, denom: str) -> None:
        super().__init__(4004, f"Denom {denom} is not whitelisted", 422)


class TwoTargetsMinimumError(AppError):
    def __init__(self) -> None:
        super().__init__(4005, "At least 2 targets are required", 422)


class TargetsMustBeUniqueError(AppError):
    def __init__(self) -> None:
        super().__init__(4006, "Target denoms must be unique", 422)


class MultipleMinBalanceTargetsError(AppError):
    def __init__(self) -> None:
        super().__init__(4007, "Only one target may have a minimum balance", 422)


class InvalidTargetPercentageError(AppError):
    def __init__(self, total: str) -> None:
        super().__init__(4008, f"Target percentages must sum to 1, got {total}", 422)


class InvalidMaxLimitRangeError(AppError):
    def __init__(self) -> None:
        super().__init__(4009, "max_limit_bps must be between 1 and 10000", 422)


class PIDErrorOverError(AppError):
    def __init__(self) -> None:
        super().__init__(4010, "PID p and i values must not exceed 1", 422)


class AccountAlreadyPausedError(AppError):
    def __init__(self) -> None:
        super().__init__(4011, "Account is already paused", 409)


class NotAuthorizedToPauseError(AppError):
    def __init__(self) -> None:
        super().__init__(4012, "Only the account or its trustee can pause", 403)


class NotAuthorizedToResumeError(AppError):
    def __init__(self) -> None:
        super().__init__(4013, "Only the account or its pausing trustee can resume", 403)


class NotPausedError(AppError):
    def __init__(self) -> None:
        super().__init__(4014, "Account is not paused", 409)


class NoMinBalanceTargetFoundError(AppError):
    def __init__(self) -> None:
        super().__init__(4015, "No target with a minimum balance was found", 422)


class NoMinAuctionAmountFoundError(AppError):
    def __init__(self, denom: str) -> None:
        super().__init__(4016, f"No minimum auction amount for {denom}", 422)


class MissingPriceForDenomError(AppError):
    def __init__(self, denom: str) -> None:
        super().__init__(4017, f"No price in the snapshot for {denom}", 422)


class InvalidOverrideSumError(AppError):
    def __init__(self, total: str) -> None:
        super().__init__(4018, f"Overridden target percentages sum to {total}", 422)


# --- 5xxx: System rebalance cycle ---

class CycleNotStartedYetError(AppError):
    def __init__(self, starts_at: int) -> None:
        super().__init__(5001, f"Rebalance cycle not started yet, starts at {starts_at}", 409)


class LimitIsZeroError(AppError):
    def __init__(self) -> None:
        super().__init__(5002, "Limit cannot be zero", 422)


class CantUpdateStatusToProcessingError(AppError):
    def __init__(self) -> None:
        super().__init__(5003, "System status cannot be set to processing", 422)


class PairPriceIsZeroError(AppError):
    def __init__(self, pair: str) -> None:
        super().__init__(5004, f"Snapshot price for {pair} is zero", 422)


class InvalidCyclePeriodError(AppError):
    def __init__(self) -> None:
        super().__init__(5005, "Cycle period must be positive", 422)


# --- 6xxx: Ledger ---

class InsufficientBalanceError(AppError):
    def __init__(self, holder: str, denom: str, required: int, available: int) -> None:
        super().__init__(
            6001,
            f"Insufficient {denom} balance for {holder}: "
            f"required {required}, available {available}",
            422,
        )


class InvalidAmountError(AppError):
    def __init__(self) -> None:
        super().__init__(6002, "Amount must be positive", 422)


# --- 9xxx: System / arithmetic ---

class ArithmeticFailureError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(9003, f"Arithmetic failure: {detail}", 422)
