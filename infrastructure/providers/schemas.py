"""
Wire schemas for the Binance P2P search endpoint.

Every listing field is optional. Per-field rules applied when mapping to a
``MarketAd``:

- price, min/max single trade amount, surplus amount: missing or unparseable -> 0
- monthFinishRate, monthOrderCount: missing or unparseable -> None
- nickname: ``nickName``, then ``nick``, then an em dash placeholder
- max trade amount: ``dynamicMaxSingleTransAmount`` wins over ``maxSingleTransAmount``
- tradeMethods: each entry reduced to its display name
"""
from decimal import Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.models.rates import CounterpartyType, MarketAd

MERCHANT_USER_TYPE = 'merchant'
VERIFIED_IDENTITY = 'verified'
NAME_PLACEHOLDER = '—'


def _lenient_decimal(value: Any) -> Decimal | None:
	if value is None or value == '' or isinstance(value, bool):
		return None
	try:
		result = Decimal(str(value))
	except (InvalidOperation, ValueError):
		return None
	return result if result.is_finite() else None


def _lenient_int(value: Any) -> int | None:
	parsed = _lenient_decimal(value)
	return int(parsed) if parsed is not None else None


class _Payload(BaseModel):
	model_config = ConfigDict(extra='ignore', populate_by_name=True)


class TradeMethodPayload(_Payload):
	identifier: str | None = None
	trade_method_name: str | None = Field(None, alias='tradeMethodName')
	trade_method_short_name: str | None = Field(None, alias='tradeMethodShortName')

	@property
	def display_name(self) -> str | None:
		return self.trade_method_name or self.trade_method_short_name or self.identifier


class AdvPayload(_Payload):
	price: Decimal | None = None
	min_single_trans_amount: Decimal | None = Field(None, alias='minSingleTransAmount')
	max_single_trans_amount: Decimal | None = Field(None, alias='maxSingleTransAmount')
	dynamic_max_single_trans_amount: Decimal | None = Field(None, alias='dynamicMaxSingleTransAmount')
	surplus_amount: Decimal | None = Field(None, alias='surplusAmount')
	trade_methods: list[TradeMethodPayload] = Field(default_factory=list, alias='tradeMethods')

	@field_validator(
		'price',
		'min_single_trans_amount',
		'max_single_trans_amount',
		'dynamic_max_single_trans_amount',
		'surplus_amount',
		mode='before',
	)
	@classmethod
	def coerce_decimal(cls, v: Any) -> Decimal | None:
		return _lenient_decimal(v)

	@field_validator('trade_methods', mode='before')
	@classmethod
	def coerce_trade_methods(cls, v: Any) -> list[Any]:
		if not isinstance(v, list):
			return []
		methods = []
		for item in v:
			if isinstance(item, str):
				methods.append({'identifier': item})
			elif isinstance(item, dict):
				methods.append(item)
		return methods


class AdvertiserPayload(_Payload):
	nick_name: str | None = Field(None, alias='nickName')
	nick: str | None = None
	user_type: str | None = Field(None, alias='userType')
	user_identity: str | None = Field(None, alias='userIdentity')
	month_finish_rate: Decimal | None = Field(None, alias='monthFinishRate')
	month_order_count: int | None = Field(None, alias='monthOrderCount')

	@field_validator('month_finish_rate', mode='before')
	@classmethod
	def coerce_rate(cls, v: Any) -> Decimal | None:
		return _lenient_decimal(v)

	@field_validator('month_order_count', mode='before')
	@classmethod
	def coerce_count(cls, v: Any) -> int | None:
		return _lenient_int(v)

	@field_validator('nick_name', 'nick', 'user_type', 'user_identity', mode='before')
	@classmethod
	def coerce_text(cls, v: Any) -> str | None:
		return str(v) if v is not None else None


class ListingPayload(_Payload):
	adv: AdvPayload = Field(default_factory=AdvPayload)
	advertiser: AdvertiserPayload | None = None

	@field_validator('adv', mode='before')
	@classmethod
	def default_adv(cls, v: Any) -> Any:
		return v if isinstance(v, dict) else {}

	@field_validator('advertiser', mode='before')
	@classmethod
	def drop_malformed_advertiser(cls, v: Any) -> Any:
		return v if isinstance(v, dict) else None

	@property
	def is_merchant(self) -> bool:
		return self.advertiser is not None and self.advertiser.user_type == MERCHANT_USER_TYPE

	def to_market_ad(self) -> MarketAd:
		advertiser = self.advertiser or AdvertiserPayload()
		adv = self.adv
		zero = Decimal('0')
		return MarketAd(
			counterparty_name=advertiser.nick_name or advertiser.nick or NAME_PLACEHOLDER,
			counterparty_type=CounterpartyType.MERCHANT if self.is_merchant else CounterpartyType.OTHER,
			is_verified=self.is_merchant or advertiser.user_identity == VERIFIED_IDENTITY,
			monthly_completion_rate=advertiser.month_finish_rate,
			monthly_order_count=advertiser.month_order_count,
			unit_price=adv.price if adv.price is not None else zero,
			min_trade_amount=adv.min_single_trans_amount or zero,
			max_trade_amount=adv.dynamic_max_single_trans_amount or adv.max_single_trans_amount or zero,
			available_supply=adv.surplus_amount or zero,
			payment_methods=tuple(m.display_name for m in adv.trade_methods if m.display_name),
		)


class SearchResponsePayload(_Payload):
	success: bool = False
	code: str | None = None
	message: str | None = None
	data: list[ListingPayload] = Field(default_factory=list)

	@field_validator('success', mode='before')
	@classmethod
	def coerce_success(cls, v: Any) -> bool:
		return v is True

	@field_validator('data', mode='before')
	@classmethod
	def coerce_data(cls, v: Any) -> list[Any]:
		if not isinstance(v, list):
			return []
		return [item for item in v if isinstance(item, dict)]

	@field_validator('code', 'message', mode='before')
	@classmethod
	def coerce_text(cls, v: Any) -> str | None:
		return str(v) if v is not None else None
