import os
from decimal import Decimal


class Settings:
    def __init__(self):
        self.app_name = "Event Ledger"
        self.api_version = "1.0.0"
        self.environment = os.getenv("EVENTLEDGER_ENVIRONMENT", "development")
        self.database_url = os.getenv("EVENTLEDGER_DATABASE_URL", "sqlite:///./eventledger.db")
        self.log_level = os.getenv("EVENTLEDGER_LOG_LEVEL", "INFO")
        self.currency_symbol = os.getenv("EVENTLEDGER_CURRENCY_SYMBOL", "₹")
        self.default_tax_rate = Decimal(os.getenv("EVENTLEDGER_DEFAULT_TAX_RATE", "18"))
        self.invoice_number_prefix = os.getenv("EVENTLEDGER_INVOICE_PREFIX", "INV")


_settings_instance = None


def get_settings():
    """Return a singleton Settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
