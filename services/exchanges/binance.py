"""
Binance trade history client and account ingestion.

The exchange caps each trade-history request at a 24 hour window, so an
account sync walks the requested date range one day at a time for every
symbol. Requests are HMAC-SHA256 signed with the account's API secret, or,
when ``BINANCE_PROXY_URL`` is configured and the caller forwarded its
``Authorization`` header, sent unsigned to the proxy which holds the keys.
"""

import hashlib
import hmac
import math
import time
from datetime import UTC, date, datetime
from datetime import time as dt_time
from urllib.parse import urlencode

from django.conf import settings
from django.db import transaction

import httpx
from asgiref.sync import sync_to_async

from accounts.models import ExchangeAccount
from services.core.constants import API_TIMEOUT, EXCHANGE_WINDOW_MS
from services.core.exceptions import (
    ExchangeAccountNotFoundError,
    ExchangeAPIError,
    MissingExchangeCredentialsError,
)
from services.core.logging import get_logger
from services.core.utils.decimal_utils import to_decimal
from services.jobs.registry import JobState, set_progress
from trading.models import Trade

logger = get_logger(__name__)

TRADE_ENDPOINTS = {
    "SPOT": "/api/v3/myTrades",
    "FUTURES": "/fapi/v1/userTrades",
}


def sign_query(query_string: str, api_secret: str) -> str:
    return hmac.new(api_secret.encode(), query_string.encode(), hashlib.sha256).hexdigest()


class BinanceClient:
    """Async client for the signed trade-history endpoints."""

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        *,
        proxy_url: str | None = None,
        credential_header: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = API_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.proxy_url = (proxy_url or "").rstrip("/")
        self.credential_header = credential_header
        self.transport = transport
        self.timeout = timeout

    @classmethod
    def for_account(
        cls,
        account: ExchangeAccount,
        credential_header: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "BinanceClient":
        client = cls(
            api_key=account.api_key or "",
            api_secret=account.api_secret or "",
            proxy_url=settings.BINANCE_PROXY_URL,
            credential_header=credential_header,
            transport=transport,
        )
        if not client.uses_proxy and not account.is_configured:
            raise MissingExchangeCredentialsError(account_id=account.pk)
        return client

    @property
    def uses_proxy(self) -> bool:
        return bool(self.proxy_url and self.credential_header)

    def _base_url(self, market: str) -> str:
        if market == "FUTURES":
            return settings.BINANCE_FUTURES_BASE_URL.rstrip("/")
        return settings.BINANCE_SPOT_BASE_URL.rstrip("/")

    async def _get(self, url: str, headers: dict) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            response = await client.get(url, headers=headers)
        if response.status_code >= 400:
            raise ExchangeAPIError(status_code=response.status_code, body=response.text)
        return response

    async def fetch_trades(
        self,
        market: str,
        symbol: str,
        start_time: int | None = None,
        end_time: int | None = None,
    ) -> list[dict]:
        """Fetch raw trade dicts for one symbol within ``[start_time, end_time]`` (epoch ms)."""
        params = {"symbol": symbol}
        if start_time:
            params["startTime"] = start_time
        if end_time:
            params["endTime"] = end_time
        params["limit"] = settings.BINANCE_TRADES_LIMIT

        if self.uses_proxy:
            query = urlencode({"market": market, **params})
            response = await self._get(
                f"{self.proxy_url}/trades?{query}",
                headers={"Authorization": self.credential_header},
            )
            return response.json().get("data") or []

        params["recvWindow"] = settings.BINANCE_RECV_WINDOW
        params["timestamp"] = int(time.time() * 1000)
        query = urlencode(params)
        signature = sign_query(query, self.api_secret)
        url = f"{self._base_url(market)}{TRADE_ENDPOINTS[market]}?{query}&signature={signature}"

        response = await self._get(url, headers={"X-MBX-APIKEY": self.api_key})
        return response.json()


def normalize_trade(raw: dict, market: str) -> dict:
    """Map an exchange trade payload onto ``Trade`` field values."""
    trade_id = raw.get("id")
    if trade_id is None:
        trade_id = f"{raw.get('orderId')}_{raw.get('symbol')}"

    side = raw.get("side")
    if not side and raw.get("isBuyer") is not None:
        side = "BUY" if raw["isBuyer"] else "SELL"
    if not side:
        side = "BUY"

    is_maker = raw.get("isMaker")
    if is_maker is True:
        order_type = "LIMIT"
    elif is_maker is False:
        order_type = "MARKET"
    else:
        order_type = None

    order_id = raw.get("orderId")
    return {
        "market": market,
        "symbol": raw["symbol"],
        "side": side.upper(),
        "quantity": to_decimal(raw.get("qty") or raw.get("quantity") or "0"),
        "price": to_decimal(raw.get("price") or "0"),
        "fee_value": to_decimal(raw.get("commission") or "0"),
        "fee_asset": raw.get("commissionAsset") or "",
        "realized_pnl": to_decimal(raw.get("realizedPnl") or "0"),
        "order_type": order_type,
        "executed_at": datetime.fromtimestamp(int(raw["time"]) / 1000, tz=UTC),
        "order_id": str(order_id) if order_id is not None else None,
        "trade_id": str(trade_id),
    }


def day_windows(start_date: date, end_date: date) -> list[tuple[int, int]]:
    """Split ``[start_date 00:00, end_date 23:59:59]`` UTC into 24h windows in epoch ms."""
    start_ms = int(datetime.combine(start_date, dt_time.min, tzinfo=UTC).timestamp() * 1000)
    end_ms = int(datetime.combine(end_date, dt_time(23, 59, 59), tzinfo=UTC).timestamp() * 1000)
    day_count = math.ceil((end_ms - start_ms) / EXCHANGE_WINDOW_MS)
    return [
        (
            start_ms + i * EXCHANGE_WINDOW_MS,
            min(start_ms + (i + 1) * EXCHANGE_WINDOW_MS, end_ms),
        )
        for i in range(day_count)
    ]


def upsert_trades(account: ExchangeAccount, trades: list[dict]) -> dict:
    """
    Insert or refresh normalized trades keyed by ``(account, trade_id)``.

    Existing rows keep their ``realized_pnl``; it is owned by reconciliation
    once a trade is stored.
    """
    inserted = updated = 0
    with transaction.atomic():
        for fields in trades:
            trade_id = fields["trade_id"]
            refresh = {k: v for k, v in fields.items() if k not in ("trade_id", "realized_pnl")}
            if Trade.objects.filter(account=account, trade_id=trade_id).update(**refresh):
                updated += 1
            else:
                Trade.objects.create(account=account, exchange=account.exchange, **fields)
                inserted += 1
    return {"inserted": inserted, "updated": updated}


def _load_account(account_id: int) -> ExchangeAccount:
    try:
        return ExchangeAccount.objects.get(pk=account_id)
    except ExchangeAccount.DoesNotExist as e:
        raise ExchangeAccountNotFoundError(account_id=account_id) from e


async def sync_account(
    account_id: int,
    start_date: date,
    end_date: date,
    symbols: list[str],
    credential_header: str | None = None,
    job_id: str | None = None,
    owner_id: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict:
    """
    Pull one account's trades for the window and store them.

    Publishes ``running`` progress when ``job_id`` and ``owner_id`` are given;
    completing the job is left to the caller. Failed symbol/day fetches are
    logged and skipped.
    """
    account = await sync_to_async(_load_account)(account_id)
    client = BinanceClient.for_account(account, credential_header, transport=transport)
    windows = day_windows(start_date, end_date)
    total_steps = len(windows) * len(symbols)
    track = bool(job_id and owner_id)

    async def report(**state):
        if track:
            await sync_to_async(set_progress)(
                job_id, JobState(owner_tag=owner_id, total_steps=total_steps, **state)
            )

    logger.info(
        f"Syncing account {account.pk} ({account.market}) {start_date}..{end_date} "
        f"for {len(symbols)} symbols, {len(windows)} days"
    )
    await report(current_step=0, message="Starting sync...")

    fetched: list[dict] = []
    step = 0
    for window_start, window_end in windows:
        day = datetime.fromtimestamp(window_start / 1000, tz=UTC).date().isoformat()
        for symbol in symbols:
            step += 1
            await report(
                current_step=step,
                current_symbol=symbol,
                current_date=day,
                message=f"Fetching {symbol} for {day}...",
            )
            for market in account.markets:
                try:
                    raw_trades = await client.fetch_trades(market, symbol, window_start, window_end)
                except (ExchangeAPIError, httpx.HTTPError, ValueError) as e:
                    logger.warning(
                        f"Skipping {symbol} {market} on {day} for account {account.pk}: {e}"
                    )
                    continue
                fetched.extend(normalize_trade(raw, market) for raw in raw_trades)

    await report(current_step=total_steps, message=f"Processing {len(fetched)} trades found...")

    result = await sync_to_async(upsert_trades)(account, fetched)
    logger.info(
        f"Account {account.pk} synced: {result['inserted']} inserted, {result['updated']} updated"
    )
    return result
