from decimal import Decimal

from domain.models.rates import ConversionResult, FiatRate, MarketAggregate, round2

ZERO = Decimal('0')


def derive(amount_usd: Decimal, fiat_rate: FiatRate | None, market_rate: MarketAggregate | None) -> ConversionResult:
	"""Combine a dollar amount with both rate snapshots. Missing snapshots count as rate 0."""
	fiat_value = fiat_rate.rate_value if fiat_rate is not None else ZERO
	market_value = market_rate.average_price if market_rate is not None else ZERO

	fiat_equivalent = round2(amount_usd * fiat_value)
	crypto_units_needed = fiat_equivalent / market_value if market_value > 0 else ZERO
	rate_delta = market_value - fiat_value
	rate_delta_percent = (rate_delta / fiat_value) * 100 if fiat_value > 0 else ZERO

	return ConversionResult(
		fiat_equivalent=fiat_equivalent,
		crypto_units_needed=round2(crypto_units_needed),
		rate_delta=round2(rate_delta),
		rate_delta_percent=round2(rate_delta_percent),
	)
