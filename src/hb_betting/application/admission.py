"""BetAdmissionService — validates, debits and opens bets; serves bet history.

The stake debit and the bet insert share one transaction under the address
lock: either both commit or neither does, so a failed placement never
leaves an orphaned debit.
"""

import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.hb_betting.application.schemas import (
    BetHistoryResponse,
    BetSummary,
    PlaceBetRequest,
    PlaceBetResponse,
    bet_cursor_decode,
    bet_cursor_encode,
)
from src.hb_betting.domain.models import Bet
from src.hb_betting.domain.outcome import validate_bet
from src.hb_betting.domain.repository import BetRepositoryProtocol
from src.hb_betting.domain.targets import resolve_target
from src.hb_betting.infrastructure.persistence import BetRepository
from src.hb_common.amounts import from_units, to_bps, to_units
from src.hb_common.database import unit_of_work
from src.hb_common.datetime_utils import now_ms
from src.hb_common.enums import Asset
from src.hb_common.errors import BetNotFoundError, InvalidAmountError, InvalidTargetError
from src.hb_common.id_generator import SnowflakeIdGenerator
from src.hb_common.locks import AddressLocks
from src.hb_ledger.domain.repository import LedgerRepositoryProtocol
from src.hb_ledger.infrastructure.persistence import LedgerRepository
from src.hb_oracle.domain.models import PriceOracle

logger = logging.getLogger(__name__)


class BetAdmissionService:
    def __init__(
        self,
        locks: AddressLocks,
        oracle: PriceOracle,
        id_generator: SnowflakeIdGenerator,
        round_duration_seconds: int = 30,
        ledger_repo: LedgerRepositoryProtocol | None = None,
        bet_repo: BetRepositoryProtocol | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._locks = locks
        self._oracle = oracle
        self._ids = id_generator
        self._round_ms = round_duration_seconds * 1000
        self._ledger: LedgerRepositoryProtocol = ledger_repo or LedgerRepository()
        self._bets: BetRepositoryProtocol = bet_repo or BetRepository()
        self._clock = clock

    async def place_bet(
        self,
        db: AsyncSession,
        address: str,
        amount: int,
        direction: str,
        multiplier_bps: int,
        price_change_target: int,
        reference_price: int,
        asset: Asset = Asset.BTC,
        target_id: str | None = None,
    ) -> PlaceBetResponse:
        """Open a PENDING bet, debiting the stake. All amounts in units."""
        validate_bet(amount, direction, multiplier_bps, price_change_target)

        bet_id = self._ids.next_id()
        async with self._locks.hold(address):
            async with unit_of_work(db):
                mutation = await self._ledger.debit_for_bet(db, address, amount, bet_id)
                placed_at = self._clock()
                bet = await self._bets.insert(
                    db,
                    Bet(
                        id=bet_id,
                        address=address,
                        asset=asset.value,
                        amount=amount,
                        direction=str(direction),
                        multiplier_bps=multiplier_bps,
                        price_change_target=price_change_target,
                        reference_price=reference_price,
                        placed_at_ms=placed_at,
                        deadline_ms=placed_at + self._round_ms,
                        target_id=target_id,
                    ),
                )

        logger.info(
            "Bet %s placed: %s %s %d units x%d bps target %d, balance %d",
            bet.id, address, bet.direction, amount, multiplier_bps,
            price_change_target, mutation.new_balance,
        )
        return PlaceBetResponse(
            bet_id=bet.id,
            balance=from_units(mutation.new_balance),
            balance_units=mutation.new_balance,
            bet=BetSummary.from_bet(bet),
        )

    async def place_bet_for_request(
        self, db: AsyncSession, body: PlaceBetRequest
    ) -> PlaceBetResponse:
        """HTTP entry point: decode the target, price the bet off the oracle, place it."""
        try:
            amount = to_units(body.amount)
        except ValueError:
            raise InvalidAmountError(0) from None

        if body.target_id is not None:
            cell = resolve_target(body.target_id)
            direction, multiplier_bps, target = (
                cell.direction.value, cell.multiplier_bps, cell.price_change
            )
        else:
            if (
                body.direction is None
                or body.multiplier is None
                or body.price_change_target is None
            ):
                raise InvalidTargetError(
                    "direction, multiplier and price_change_target are required without target_id"
                )
            try:
                multiplier_bps = to_bps(body.multiplier)
                target = to_units(body.price_change_target)
            except ValueError as exc:
                raise InvalidTargetError(str(exc)) from None
            direction = body.direction.value

        # Oracle read happens before any lock or transaction is taken.
        reference = await self._oracle.latest(body.asset)
        return await self.place_bet(
            db,
            body.address,
            amount,
            direction,
            multiplier_bps,
            target,
            reference.price,
            asset=body.asset,
            target_id=body.target_id,
        )

    async def get_bet(self, db: AsyncSession, bet_id: str) -> BetSummary:
        bet = await self._bets.get(db, bet_id)
        if bet is None:
            raise BetNotFoundError(bet_id)
        return BetSummary.from_bet(bet)

    async def list_bets(
        self,
        db: AsyncSession,
        address: str,
        cursor: str | None,
        limit: int,
        status: str | None,
    ) -> BetHistoryResponse:
        cursor_id = bet_cursor_decode(cursor)
        bets = await self._bets.list_by_address(db, address, cursor_id, limit + 1, status)
        has_more = len(bets) > limit
        page = bets[:limit]
        return BetHistoryResponse(
            items=[BetSummary.from_bet(b) for b in page],
            next_cursor=bet_cursor_encode(page[-1].id) if has_more and page else None,
            has_more=has_more,
        )
