from enum import Enum


class RateError(Exception):
	"""Base error for rate acquisition. ``user_message`` is safe to display."""

	user_message = 'No se pudo obtener la tasa.'

	def __init__(self, message: str, user_message: str | None = None):
		super().__init__(message)
		if user_message is not None:
			self.user_message = user_message


class RequestTimeoutError(RateError):
	user_message = 'Tiempo de espera agotado. Verifica tu conexión.'


class ConnectivityError(RateError):
	user_message = 'No se pudo conectar con el servidor.'


class HttpError(RateError):
	def __init__(self, status: int, message: str | None = None):
		self.status = status
		super().__init__(
			message or f'HTTP {status}',
			user_message=f'El servidor respondió con un error ({status}).',
		)


class ParseError(RateError):
	user_message = 'La respuesta del servidor no es válida.'


class AggregationReason(str, Enum):
	NO_VERIFIED_ADS = 'no verified ads'
	NO_VALID_PRICES = 'no valid prices'


_AGGREGATION_MESSAGES = {
	AggregationReason.NO_VERIFIED_ADS: 'No se encontraron anuncios verificados.',
	AggregationReason.NO_VALID_PRICES: 'No hay precios válidos entre los anuncios verificados.',
}


class AggregationError(RateError):
	def __init__(self, reason: AggregationReason | str):
		self.reason = AggregationReason(reason)
		super().__init__(self.reason.value, user_message=_AGGREGATION_MESSAGES[self.reason])
