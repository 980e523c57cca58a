"""
Runtime configuration

Values come from the environment (optionally a .env file) and are
collected into a GEXConfig instance.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

SUPPORTED_CURRENCIES = ('BTC', 'ETH')

DEFAULT_BASE_URL = 'https://test.deribit.com/api/v2/public'


def _env_bool(name: str, default: str = 'false') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


@dataclass
class GEXConfig:
    """Settings for one GEX computation"""
    currency: str = 'BTC'
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 15.0      # seconds per attempt
    max_retries: int = 2               # retries after the first attempt
    retry_backoff: float = 1.0         # seconds, multiplied by attempt number
    risk_free_rate: float = 0.0
    use_exchange_greeks: bool = False
    order_book_batch_size: int = 50
    log_level: str = 'INFO'

    def __post_init__(self):
        self.currency = normalize_currency(self.currency)
        self.base_url = self.base_url.rstrip('/')
        self.validate()

    @classmethod
    def from_env(cls, env_file: str = None) -> 'GEXConfig':
        """
        Build a config from environment variables

        Args:
            env_file: Optional path to a .env file (defaults to ./.env)
        """
        load_dotenv(env_file)

        try:
            config = cls(
                currency=os.getenv('GEX_CURRENCY', 'BTC'),
                base_url=os.getenv('DERIBIT_BASE_URL', DEFAULT_BASE_URL),
                request_timeout=float(os.getenv('DERIBIT_REQUEST_TIMEOUT', '15')),
                max_retries=int(os.getenv('DERIBIT_MAX_RETRIES', '2')),
                retry_backoff=float(os.getenv('DERIBIT_RETRY_BACKOFF', '1.0')),
                risk_free_rate=float(os.getenv('GEX_RISK_FREE_RATE', '0.0')),
                use_exchange_greeks=_env_bool('GEX_USE_EXCHANGE_GREEKS'),
                order_book_batch_size=int(os.getenv('GEX_ORDER_BOOK_BATCH_SIZE', '50')),
                log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            )
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid GEX configuration: {e}") from e

        return config

    def validate(self):
        """Raise ValueError if any setting is out of range"""
        if not self.base_url.startswith(('http://', 'https://')):
            raise ValueError(f"Invalid base URL: {self.base_url}")
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive: {self.request_timeout}")
        if self.max_retries < 0:
            raise ValueError(f"Retry count cannot be negative: {self.max_retries}")
        if self.retry_backoff < 0:
            raise ValueError(f"Retry backoff cannot be negative: {self.retry_backoff}")
        if self.order_book_batch_size < 1:
            raise ValueError(f"Order book batch size must be at least 1: {self.order_book_batch_size}")


def normalize_currency(currency: str) -> str:
    """Upper-case a currency code and check it is supported"""
    if not currency:
        raise ValueError("Currency is required")

    code = currency.strip().upper()
    if code not in SUPPORTED_CURRENCIES:
        raise ValueError(
            f"Unsupported currency '{currency}'. Supported: {', '.join(SUPPORTED_CURRENCIES)}"
        )
    return code
