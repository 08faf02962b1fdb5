"""
Service layer constants - API timeouts, job states, sync sentinels.

All magic numbers extracted from services to centralize configuration
and improve maintainability.
"""

# HTTP API Timeouts (seconds)
API_TIMEOUT = 30  # Standard HTTP request timeout (exchange REST API)

# Job owner tag used for scheduled/system-triggered syncs
SYSTEM_OWNER_TAG = "system"

# Exchange trade windows are capped at 24h per request
EXCHANGE_WINDOW_MS = 24 * 60 * 60 * 1000

# Decimal places kept for prices, quantities and realized PnL
TRADE_DECIMAL_PLACES = 8
