from typing import Iterable

from quantflow.constants import FeedbackResult

class OutcomeTally:
    """Win/loss counts over a batch of feedback records."""

    def __init__(self):
        self.wins = 0
        self.losses = 0

    @classmethod
    def of(cls, records: Iterable) -> "OutcomeTally":
        tally = cls()
        for r in records:
            tally.record(r.result)
        return tally

    @property
    def total(self):
        return self.wins + self.losses

    @property
    def win_rate(self):
        return self.wins / self.total if self.total > 0 else 0.5

    def record(self, result: FeedbackResult):
        if result == FeedbackResult.WIN:
            self.wins += 1
        elif result == FeedbackResult.LOSS:
            self.losses += 1

    def adjustment(self, loss_weight: float = 2.0, win_weight: float = 1.0) -> float:
        """Winrate tilt: losing streaks cost twice what winning streaks earn."""
        if self.losses > self.wins:
            return -(self.losses - self.wins) * loss_weight
        if self.wins > self.losses:
            return (self.wins - self.losses) * win_weight
        return 0.0

    def summary(self) -> str:
        return f"W:{self.wins} L:{self.losses} WR:{self.win_rate:.1%}"
