"""Aggregator-style collateral price feeds and their staleness guard"""
from dataclasses import dataclass
from typing import Optional

from ..chain import Chain, Contract, transactional
from ..constants import FEED_DECIMALS
from ..errors import InvalidPriceError, StalePriceError


@dataclass(frozen=True)
class RoundData:
    round_id: int
    answer: int
    started_at: int
    updated_at: int
    answered_in_round: int


@dataclass
class FeedState:
    round_id: int = 0
    answer: int = 0
    started_at: int = 0
    updated_at: int = 0
    answered_in_round: int = 0


class PriceFeed(Contract):
    """USD price of one collateral asset, FEED_DECIMALS decimals"""

    def __init__(self, chain: Chain, description: str, answer: int, decimals: int = FEED_DECIMALS):
        super().__init__(chain, FeedState())
        self.description = description
        self.decimals = decimals
        self._record(answer)

    @transactional
    def update_answer(self, answer: int) -> None:
        self._record(answer)

    @transactional
    def update_round_data(
        self,
        round_id: int,
        answer: int,
        started_at: int,
        updated_at: int,
        answered_in_round: Optional[int] = None,
    ) -> None:
        self.state = FeedState(
            round_id=round_id,
            answer=answer,
            started_at=started_at,
            updated_at=updated_at,
            answered_in_round=round_id if answered_in_round is None else answered_in_round,
        )

    def _record(self, answer: int) -> None:
        round_id = self.state.round_id + 1
        self.state = FeedState(
            round_id=round_id,
            answer=answer,
            started_at=self.chain.timestamp,
            updated_at=self.chain.timestamp,
            answered_in_round=round_id,
        )
        self.emit("AnswerUpdated", feed=self.description, answer=answer, round_id=round_id)

    def latest_round_data(self) -> RoundData:
        return RoundData(
            round_id=self.state.round_id,
            answer=self.state.answer,
            started_at=self.state.started_at,
            updated_at=self.state.updated_at,
            answered_in_round=self.state.answered_in_round,
        )


def stale_checked_round_data(feed: PriceFeed, now: int, max_delay: int) -> RoundData:
    """Latest round of `feed`, refusing non-positive, incomplete or stale answers"""
    data = feed.latest_round_data()
    if data.answer <= 0:
        raise InvalidPriceError(f"{feed.description} answer is not positive")
    if data.updated_at == 0 or data.answered_in_round < data.round_id:
        raise StalePriceError(f"{feed.description} round {data.round_id} is incomplete")
    if now - data.updated_at > max_delay:
        raise StalePriceError(
            f"{feed.description} is {now - data.updated_at}s old, max {max_delay}s"
        )
    return data
