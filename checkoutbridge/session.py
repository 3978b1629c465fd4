"""
Bridge session: builds one transport, native host and client.

There is no process-wide bridge instance; every session is an explicit
object handed to whoever needs it.
"""

"""
Copyright (c) 2025 Firefly Software Solutions Inc.

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at:

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

import dataclasses
import logging
from typing import Optional

from .client import BridgeClient
from .config.bridge_config import BridgeConfig
from .integration.channel import ChannelTransport
from .native.capability import CapabilityRegistry, CardCapability, PaymentPlatform, WalletCapability
from .native.host import NativeHost

logger = logging.getLogger(__name__)


class BridgeSession:
    """
    One bridge session: transport, native host and client wired together.

    Use :meth:`create` and close the session when done, or use it as an
    async context manager:

        >>> async with await BridgeSession.create() as session:
        ...     await session.client.init_card_view(config)
    """

    def __init__(self, config: BridgeConfig, transport: ChannelTransport, host: NativeHost,
                 client: BridgeClient):
        self.config = config
        self.transport = transport
        self.host = host
        self.client = client
        self._closed = False

    @classmethod
    async def create(
        cls,
        config: Optional[BridgeConfig] = None,
        platform: Optional[PaymentPlatform] = None,
        registry: Optional[CapabilityRegistry] = None,
        card_capability: Optional[CardCapability] = None,
        wallet_capability: Optional[WalletCapability] = None,
        initialize: bool = True,
    ) -> "BridgeSession":
        """
        Build a session for the running event loop.

        The platform comes from ``registry`` (default: the built-in registry)
        by ``config.platform`` unless given directly; ``card_capability`` and
        ``wallet_capability`` override its parts.

        Raises:
            InitError: No capability is registered for ``config.platform``
        """
        config = config or BridgeConfig()
        if platform is None:
            registry = registry or CapabilityRegistry.with_defaults()
            platform = registry.create(config.platform)
        if card_capability is not None:
            platform = dataclasses.replace(platform, card=card_capability)
        if wallet_capability is not None:
            platform = dataclasses.replace(platform, wallet=wallet_capability)

        transport = ChannelTransport(config.channel_name)
        host = NativeHost(transport, platform, config)
        host.attach()
        client = BridgeClient(transport, config=config)

        session = cls(config, transport, host, client)
        if initialize:
            await client.initialize()
        logger.info(f"Bridge session created (platform={platform.name})")
        return session

    async def close(self) -> None:
        """Dispose the client and every controller, then close the channel."""
        if self._closed:
            return
        self._closed = True
        await self.client.dispose()
        self.host.dispose_all()
        self.host.detach()
        await self.transport.close()
        logger.info("Bridge session closed")

    async def __aenter__(self) -> "BridgeSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
