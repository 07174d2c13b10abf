import asyncio
import logging
import re
from decimal import Decimal, InvalidOperation
from enum import Enum

from application.services.state import RatesState
from domain.exceptions.rates import RateError
from domain.models.rates import MarketAggregate, round2
from infrastructure.providers.binance_p2p import BinanceP2PAggregator

logger = logging.getLogger(__name__)

AMOUNT_INPUT = re.compile(r'[0-9]*\.?[0-9]*')
UNEXPECTED_ERROR_MESSAGE = 'Error al buscar anuncios: Ocurrió un error inesperado.'


class SchedulerPhase(str, Enum):
	IDLE = 'idle'
	DEBOUNCING = 'debouncing'
	FETCHING = 'fetching'
	ERROR = 'error'


def parse_amount(text: str) -> Decimal | None:
	"""Return the amount as a Decimal if it is a finite positive number."""
	if not text:
		return None
	try:
		value = Decimal(text)
	except InvalidOperation:
		return None
	if not value.is_finite() or value <= 0:
		return None
	return value


class RecomputeScheduler:
	"""
	Debounces amount edits into amount-filtered marketplace searches.

	Every accepted edit cancels the pending timer; edits that parse to a
	positive amount while a fiat rate is loaded start a new one. When the
	timer fires the fiat equivalent of the amount is used as the search
	filter. If that search fails, one unfiltered search is tried before the
	error reaches the state. Requests already sent are never cancelled.
	"""

	def __init__(
		self,
		aggregator: BinanceP2PAggregator,
		state: RatesState,
		debounce_seconds: float = 0.5,
		min_required_ads: int = 5,
		page_size: int = 20,
	):
		self.aggregator = aggregator
		self.state = state
		self.debounce_seconds = debounce_seconds
		self.min_required_ads = min_required_ads
		self.page_size = page_size
		self.phase = SchedulerPhase.IDLE

		self._timer: asyncio.TimerHandle | None = None
		self._tasks: set[asyncio.Task] = set()
		self._last_outcome = SchedulerPhase.IDLE

	@property
	def has_pending_timer(self) -> bool:
		return self._timer is not None

	def submit(self, text: str) -> bool:
		"""Handle an amount edit. Returns False if the text is not a plain decimal."""
		if not AMOUNT_INPUT.fullmatch(text):
			return False

		self.state.update(amount=text)
		self._cancel_timer()
		self._arm(parse_amount(text))
		return True

	def rearm(self) -> None:
		"""Restart the debounce for the current amount, e.g. after a new fiat rate."""
		self._cancel_timer()
		self._arm(parse_amount(self.state.amount))

	def close(self) -> None:
		self._cancel_timer()

	async def drain(self) -> None:
		"""Wait for searches already in flight."""
		if self._tasks:
			await asyncio.gather(*self._tasks, return_exceptions=True)

	def _arm(self, amount: Decimal | None) -> None:
		if amount is None or self.state.fiat_rate is None:
			return
		loop = asyncio.get_running_loop()
		self._timer = loop.call_later(self.debounce_seconds, self._fire, amount)
		self.phase = SchedulerPhase.DEBOUNCING

	def _cancel_timer(self) -> None:
		if self._timer is not None:
			self._timer.cancel()
			self._timer = None
		self.phase = self._resting_phase()

	def _resting_phase(self) -> SchedulerPhase:
		if self._timer is not None:
			return SchedulerPhase.DEBOUNCING
		if self._tasks:
			return SchedulerPhase.FETCHING
		return self._last_outcome

	def _fire(self, amount: Decimal) -> None:
		self._timer = None
		task = asyncio.get_running_loop().create_task(self._recompute(amount))
		self._tasks.add(task)
		task.add_done_callback(self._tasks.discard)
		self.phase = SchedulerPhase.FETCHING

	async def _recompute(self, amount: Decimal) -> None:
		outcome = self._last_outcome
		try:
			fiat_rate = self.state.fiat_rate
			if fiat_rate is None:
				return

			filter_amount = round2(amount * fiat_rate.rate_value)
			ticket = self.state.begin_market_fetch()
			self.state.update(loading_market=True)
			try:
				aggregate = await self._search_with_fallback(filter_amount)
			except RateError as e:
				logger.error(f'Market search for amount {filter_amount} failed twice: {e}')
				failed = self.state.fail_market(f'Error al buscar anuncios: {e.user_message}', ticket)
				outcome = SchedulerPhase.ERROR if failed else SchedulerPhase.IDLE
			else:
				if self.state.commit_market(aggregate, ticket):
					self.state.update(error=None)
				outcome = SchedulerPhase.IDLE
		except Exception as e:
			logger.error(f'Unexpected error recomputing market rate for {amount}: {e}', exc_info=True)
			self.state.update(error=UNEXPECTED_ERROR_MESSAGE)
			outcome = SchedulerPhase.ERROR
		finally:
			self._settle(outcome)

	async def _search_with_fallback(self, filter_amount: Decimal) -> MarketAggregate:
		try:
			return await self.aggregator.search(filter_amount, self.min_required_ads, self.page_size)
		except RateError as e:
			logger.warning(f'Filtered search for {filter_amount} failed ({e}); retrying without amount filter')
		return await self.aggregator.search(None, self.min_required_ads, self.page_size)

	def _settle(self, outcome: SchedulerPhase) -> None:
		self._last_outcome = outcome
		current = asyncio.current_task()
		if current is not None:
			self._tasks.discard(current)
		self.state.update(loading_market=bool(self._tasks))
		self.phase = self._resting_phase()
