import logging
from collections.abc import Callable
from dataclasses import dataclass, field, fields

from domain.models.rates import FiatRate, MarketAggregate

logger = logging.getLogger(__name__)

StateListener = Callable[['RatesState'], None]


@dataclass
class RatesState:
	"""
	Current rate snapshots plus loading flags, owned by one controller and
	shared by reference with the scheduler and the HTTP surface.

	Snapshots are only ever replaced whole. Market snapshot writes go through
	``commit_market`` so a fetch that started earlier can never overwrite the
	result of one that started later.
	"""

	fiat_rate: FiatRate | None = None
	market: MarketAggregate | None = None
	amount: str = ''
	loading: bool = True
	refreshing: bool = False
	loading_market: bool = False
	error: str | None = None

	_listeners: list[StateListener] = field(default_factory=list, repr=False)
	_market_ticket: int = field(default=0, repr=False)
	_committed_ticket: int = field(default=0, repr=False)

	def subscribe(self, listener: StateListener) -> Callable[[], None]:
		self._listeners.append(listener)

		def unsubscribe() -> None:
			if listener in self._listeners:
				self._listeners.remove(listener)

		return unsubscribe

	def update(self, **changes) -> None:
		for name, value in changes.items():
			if name.startswith('_') or name not in _PUBLIC_FIELDS:
				raise AttributeError(f'Unknown state field: {name}')
			setattr(self, name, value)
		self._notify()

	def begin_market_fetch(self) -> int:
		self._market_ticket += 1
		return self._market_ticket

	def commit_market(self, aggregate: MarketAggregate, ticket: int) -> bool:
		if ticket < self._committed_ticket:
			logger.info(f'Discarding market result #{ticket}; #{self._committed_ticket} is newer')
			return False
		self._committed_ticket = ticket
		self.update(market=aggregate)
		return True

	def fail_market(self, message: str, ticket: int) -> bool:
		if ticket < self._committed_ticket:
			logger.info(f'Ignoring failure of market search #{ticket}; #{self._committed_ticket} already succeeded')
			return False
		self.update(error=message)
		return True

	def _notify(self) -> None:
		for listener in list(self._listeners):
			try:
				listener(self)
			except Exception as e:
				logger.error(f'State listener {listener!r} failed: {e}')


_PUBLIC_FIELDS = frozenset(f.name for f in fields(RatesState) if not f.name.startswith('_'))
