"""Solana JSON-RPC client for the token account scan.

One `getProgramAccounts` call per snapshot, filtered server side to the
target mint (`memcmp` at offset 0) and the full token account size
(`dataSize`). Transport errors, HTTP 429 and 5xx are retried with exponential
backoff; a JSON-RPC `error` object is surfaced immediately as `RpcError`.
"""
from __future__ import annotations

import asyncio
import base64
import itertools
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger

from .addresses import decode_address
from .token_accounts import MINT_OFFSET, TOKEN_ACCOUNT_SIZE, TOKEN_PROGRAM_ID

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class RpcError(Exception):
    """JSON-RPC call failed (error object, bad payload or retries exhausted)."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class SolanaRpcClient:
    def __init__(
        self,
        endpoint: str,
        commitment: str = 'confirmed',
        timeout_sec: float = 120.0,
        max_retries: int = 3,
        backoff_sec: float = 1.0,
        max_backoff_sec: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.endpoint = endpoint
        self.commitment = commitment
        self.timeout = aiohttp.ClientTimeout(total=timeout_sec)
        self.max_retries = max_retries
        self.backoff_sec = backoff_sec
        self.max_backoff_sec = max_backoff_sec
        self._session = session
        self._owns_session = session is None
        self._ids = itertools.count(1)

    @classmethod
    def from_settings(cls, rpc_settings) -> 'SolanaRpcClient':
        return cls(
            endpoint=rpc_settings.endpoint,
            commitment=rpc_settings.commitment,
            timeout_sec=rpc_settings.timeout_sec,
            max_retries=rpc_settings.max_retries,
            backoff_sec=rpc_settings.backoff_sec,
            max_backoff_sec=rpc_settings.max_backoff_sec,
        )

    async def __aenter__(self) -> 'SolanaRpcClient':
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def call(self, method: str, params: List[Any]) -> Any:
        payload = {'jsonrpc': '2.0', 'id': next(self._ids), 'method': method, 'params': params}
        session = self._get_session()
        backoff = self.backoff_sec
        attempt = 0
        while True:
            try:
                async with session.post(self.endpoint, json=payload) as resp:
                    if resp.status in _RETRYABLE_STATUS:
                        raise aiohttp.ClientResponseError(
                            resp.request_info, resp.history, status=resp.status, message=resp.reason or ''
                        )
                    if resp.status != 200:
                        raise RpcError(f"{method} returned HTTP {resp.status}", code=resp.status)
                    body = await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt >= self.max_retries:
                    raise RpcError(f"{method} failed after {attempt + 1} attempt(s): {e}") from e
                attempt += 1
                logger.warning(f"RPC {method} error: {e} (retry {attempt}/{self.max_retries}, backoff {backoff:.1f}s)")
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.max_backoff_sec)
                continue

            if not isinstance(body, dict):
                raise RpcError(f"{method} returned a non-object payload")
            if body.get('error'):
                err = body['error']
                raise RpcError(f"{method} error: {err.get('message', err)}", code=err.get('code'))
            if 'result' not in body:
                raise RpcError(f"{method} response has no result")
            return body['result']

    async def get_program_accounts(self, program_id: str, filters: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        config = {'encoding': 'base64', 'commitment': self.commitment, 'filters': filters}
        result = await self.call('getProgramAccounts', [program_id, config])
        if not isinstance(result, list):
            raise RpcError('getProgramAccounts result is not a list')
        return result

    async def fetch_token_account_records(self, mint: str) -> List[bytes]:
        """Raw account data for every token account of `mint`."""
        decode_address(mint)
        filters = [
            {'dataSize': TOKEN_ACCOUNT_SIZE},
            {'memcmp': {'offset': MINT_OFFSET, 'bytes': mint}},
        ]
        logger.info(f"Scanning token accounts for mint {mint}")
        accounts = await self.get_program_accounts(TOKEN_PROGRAM_ID, filters)

        records: List[bytes] = []
        for acc in accounts:
            data = _account_data(acc)
            if len(data) != TOKEN_ACCOUNT_SIZE:
                logger.warning(f"Dropping account {acc.get('pubkey')} with {len(data)} bytes of data")
                continue
            records.append(data)
        logger.info(f"Found {len(records)} token accounts")
        return records


def _account_data(acc: Dict[str, Any]) -> bytes:
    data = (acc.get('account') or {}).get('data')
    # base64 encoding returns [payload, "base64"]
    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, str):
        raise RpcError(f"Account {acc.get('pubkey')} has no base64 data")
    return base64.b64decode(data)


__all__ = ['RpcError', 'SolanaRpcClient']
