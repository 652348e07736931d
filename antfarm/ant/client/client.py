from __future__ import annotations

import asyncio
from typing import Any, TypeVar

import aiohttp
import msgspec

from antfarm.errors import NodeAPIError

from .models import (
    ChainTip,
    ConsensusInfo,
    GatewayInfo,
    MinerInfo,
    RenterInfo,
    WalletAddress,
    WalletInfo,
    WalletInitResponse,
)

T = TypeVar("T")


USER_AGENT = "Sia-Agent"


def to_base_url(address: str) -> str:
    host, _, port = address.rpartition(":")
    if host in ("", "0.0.0.0", "[::]"):
        host = "127.0.0.1"

    return f"http://{host}:{port}"


class NodeClient:
    """
    Typed client for a single node's HTTP API.

    Every request carries the node's user agent and, when configured, the
    API password as basic auth. Transport failures and non-2xx responses
    raise NodeAPIError.
    """

    def __init__(
        self,
        address: str,
        password: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.address = address
        self._base_url = to_base_url(address)
        self._auth = aiohttp.BasicAuth("", password) if password else None
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None
        self._session_lock = asyncio.Lock()

    async def _get_session(self) -> aiohttp.ClientSession:
        async with self._session_lock:
            if self._session is None or self._session.closed:
                self._session = aiohttp.ClientSession(
                    base_url=self._base_url,
                    auth=self._auth,
                    timeout=self._timeout,
                    headers={"User-Agent": USER_AGENT},
                )

            return self._session

    async def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        response_type: type[T] | None = None,
    ) -> T | None:
        session = await self._get_session()

        try:
            async with session.request(method, path, params=params) as response:
                body = await response.read()

                if response.status >= 300:
                    raise NodeAPIError(
                        method,
                        path,
                        status=response.status,
                        body=body.decode(errors="replace"),
                    )

        except aiohttp.ClientError as err:
            raise NodeAPIError(method, path, cause=err) from err

        except asyncio.TimeoutError as err:
            raise NodeAPIError(method, path, cause=err) from err

        if response_type is None:
            return None

        try:
            return msgspec.json.decode(body, type=response_type)

        except msgspec.DecodeError as err:
            raise NodeAPIError(
                method,
                path,
                status=response.status,
                body=body.decode(errors="replace"),
                cause=err,
            ) from err

    async def close(self):
        async with self._session_lock:
            if self._session and not self._session.closed:
                await self._session.close()

            self._session = None

    # Daemon

    async def daemon_ready(self) -> bool:
        """Return True once the node answers its consensus endpoint."""
        try:
            await self.consensus_get()
            return True

        except NodeAPIError:
            return False

    # Wallet

    async def wallet_get(self) -> WalletInfo:
        return await self._request("GET", "/wallet", response_type=WalletInfo)

    async def wallet_init(self, encryption_password: str = "", force: bool = False) -> WalletInitResponse:
        return await self._request(
            "POST",
            "/wallet/init",
            params={
                "encryptionpassword": encryption_password,
                "force": str(force).lower(),
            },
            response_type=WalletInitResponse,
        )

    async def wallet_init_seed(self, seed: str, encryption_password: str = "", force: bool = False):
        await self._request(
            "POST",
            "/wallet/init/seed",
            params={
                "seed": seed,
                "encryptionpassword": encryption_password,
                "force": str(force).lower(),
            },
        )

    async def wallet_unlock(self, encryption_password: str):
        await self._request(
            "POST",
            "/wallet/unlock",
            params={"encryptionpassword": encryption_password},
        )

    async def wallet_address(self) -> WalletAddress:
        return await self._request("GET", "/wallet/address", response_type=WalletAddress)

    # Miner

    async def miner_get(self) -> MinerInfo:
        return await self._request("GET", "/miner", response_type=MinerInfo)

    async def miner_start(self):
        await self._request("GET", "/miner/start")

    async def miner_stop(self):
        await self._request("GET", "/miner/stop")

    # Gateway

    async def gateway_get(self) -> GatewayInfo:
        return await self._request("GET", "/gateway", response_type=GatewayInfo)

    async def gateway_connect(self, netaddress: str):
        await self._request("POST", f"/gateway/connect/{netaddress}")

    # Consensus

    async def consensus_get(self) -> ConsensusInfo:
        return await self._request("GET", "/consensus", response_type=ConsensusInfo)

    async def chain_tip(self) -> ChainTip:
        consensus = await self.consensus_get()
        return ChainTip(consensus.height, consensus.currentblock)

    # Renter

    async def renter_set_ip_violation_check(self, enabled: bool):
        await self._request(
            "POST",
            "/renter",
            params={"checkforipviolation": str(enabled).lower()},
        )

    async def renter_get(self) -> RenterInfo:
        return await self._request("GET", "/renter", response_type=RenterInfo)
