"""Block clock.

Heights and block times are derived from wall-clock time, so every
invocation can compute the height it runs at:

    height = (now - GENESIS_TIME) // BLOCK_TIME_SECONDS
"""

from dataclasses import dataclass

from config.settings import settings
from src.ar_common.datetime_utils import utc_now


@dataclass(frozen=True)
class BlockInfo:
    height: int
    time: int  # unix seconds


def current_block() -> BlockInfo:
    now = int(utc_now().timestamp())
    return block_at_time(now)


def block_at_time(timestamp: int) -> BlockInfo:
    elapsed = max(timestamp - settings.GENESIS_TIME, 0)
    return BlockInfo(height=elapsed // settings.BLOCK_TIME_SECONDS, time=timestamp)

