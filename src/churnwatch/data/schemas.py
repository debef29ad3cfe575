# src/churnwatch/data/schemas.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Iterable

# "days since" fields use 999 for "never happened"; display form is "Never"
NEVER: Final[float] = 999.0
NEVER_LABEL: Final[str] = "Never"


@dataclass(frozen=True)
class RawUserSchema:
    """
    Field names of one upstream user record (/v2/ml/churns).
    Keep this stable: the scorer and ingestion both read through it.
    """
    USER_ID: Final[str] = "id"
    EMAIL: Final[str] = "email"
    NAME: Final[str] = "name"
    FIRST_NAME: Final[str] = "first_name"
    LAST_NAME: Final[str] = "last_name"
    COUNTRY: Final[str] = "country"
    CREATED_AT: Final[str] = "created_at"
    KYC_STATUS: Final[str] = "kyc_status"
    IS_VIP: Final[str] = "is_vip"

    DAYS_SINCE_LAST_GAME: Final[str] = "days_since_last_game"
    DAYS_SINCE_LAST_DEPOSIT: Final[str] = "days_since_last_deposit"
    GAMES_LAST_7_DAYS: Final[str] = "games_last_7_days"
    GAMES_LAST_30_DAYS: Final[str] = "games_last_30_days"
    TOTAL_GAMES: Final[str] = "total_games_played"

    TOTAL_DEPOSITS: Final[str] = "total_deposits"
    TOTAL_DEPOSIT_AMOUNT: Final[str] = "total_deposit_amount"
    TOTAL_WAGERED: Final[str] = "total_wagered"

    TOTAL_BONUSES: Final[str] = "total_bonuses"
    BONUS_CANCEL_RATE: Final[str] = "bonus_cancellation_rate"
    BONUS_COMPLETION_RATE: Final[str] = "bonus_completion_rate"

    @property
    def days_fields(self) -> Iterable[str]:
        return (self.DAYS_SINCE_LAST_GAME, self.DAYS_SINCE_LAST_DEPOSIT)

    @property
    def count_fields(self) -> Iterable[str]:
        return (
            self.GAMES_LAST_7_DAYS,
            self.GAMES_LAST_30_DAYS,
            self.TOTAL_GAMES,
            self.TOTAL_DEPOSITS,
            self.TOTAL_BONUSES,
        )

    @property
    def amount_fields(self) -> Iterable[str]:
        return (
            self.TOTAL_DEPOSIT_AMOUNT,
            self.TOTAL_WAGERED,
            self.BONUS_CANCEL_RATE,
            self.BONUS_COMPLETION_RATE,
        )


SCHEMA = RawUserSchema()
