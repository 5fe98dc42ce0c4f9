"""
Exchange Adapter Factory.

============================================================
PURPOSE
============================================================
Registry mapping exchange ids to adapter builders.

============================================================
USAGE
============================================================
```python
# Credentials from ZB_API_KEY / ZB_API_SECRET / ZB_PASSWORD (.env aware)
adapter = AdapterFactory.create("zb")

# Explicit config, tuning overrides
config = AdapterConfig(api_key="...", api_secret="...")
adapter = AdapterFactory.create("yobit", config=config, timeout_seconds=5)

# Custom exchange
AdapterFactory.register("myliqui", lambda config, transport, **kw: LiquiAdapter(desc, config, transport, **kw))
```

============================================================
"""

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..config import AdapterConfig
from ..transport import Transport
from .base import ExchangeAdapter


logger = logging.getLogger(__name__)


class ExchangeId(Enum):
    """Built-in exchange identifiers."""

    ZB = "zb"
    YOBIT = "yobit"
    TIDEX = "tidex"


AdapterBuilder = Callable[..., ExchangeAdapter]

# Keyword arguments handed to the adapter rather than the config
ADAPTER_KWARGS = ("clock", "monotonic", "sleep", "rng")


def _build_zb(config, transport, **kwargs) -> ExchangeAdapter:
    from .zb import ZBAdapter
    return ZBAdapter(config, transport, **kwargs)


def _build_yobit(config, transport, **kwargs) -> ExchangeAdapter:
    from .yobit import create_yobit_adapter
    return create_yobit_adapter(config, transport, **kwargs)


def _build_tidex(config, transport, **kwargs) -> ExchangeAdapter:
    from .tidex import create_tidex_adapter
    return create_tidex_adapter(config, transport, **kwargs)


_BUILTIN: Dict[str, AdapterBuilder] = {
    ExchangeId.ZB.value: _build_zb,
    ExchangeId.YOBIT.value: _build_yobit,
    ExchangeId.TIDEX.value: _build_tidex,
}


class AdapterFactory:
    """
    Factory for creating exchange adapters.
    """

    _registry: Dict[str, AdapterBuilder] = {}

    @classmethod
    def register(cls, exchange_id: str, builder: AdapterBuilder) -> None:
        """
        Register a builder(config, transport, **kwargs) -> ExchangeAdapter.

        Registered builders take precedence over built-ins.
        """
        cls._registry[exchange_id.lower()] = builder

    @classmethod
    def unregister(cls, exchange_id: str) -> None:
        cls._registry.pop(exchange_id.lower(), None)

    @classmethod
    def create(
        cls,
        exchange_id: str,
        config: Optional[AdapterConfig] = None,
        transport: Optional[Transport] = None,
        **overrides: Any,
    ) -> ExchangeAdapter:
        """
        Create an exchange adapter.

        Args:
            exchange_id: Exchange identifier
            config: Adapter configuration (default: from environment)
            transport: HTTP transport (default: aiohttp)
            **overrides: AdapterConfig fields, adapter clocks/sleep/rng,
                anything else goes to config.options

        Returns:
            ExchangeAdapter instance

        Raises:
            ValueError: If exchange not supported
        """
        exchange_id = exchange_id.lower()
        builder = cls._registry.get(exchange_id) or _BUILTIN.get(exchange_id)
        if builder is None:
            raise ValueError(f"Unsupported exchange: {exchange_id}")

        if config is None:
            config = AdapterConfig.from_env(exchange_id)
        else:
            # Overrides apply to this adapter only
            config = replace(config, options=dict(config.options), retry=replace(config.retry))

        adapter_kwargs = {}
        for key, value in overrides.items():
            if key in ADAPTER_KWARGS:
                adapter_kwargs[key] = value
            elif hasattr(config, key) and key != "options":
                setattr(config, key, value)
            else:
                config.options[key] = value

        logger.debug(f"Creating {exchange_id} adapter")
        return builder(config, transport, **adapter_kwargs)

    @classmethod
    def list_supported(cls) -> List[str]:
        """List supported exchanges (built-in + registered)."""
        return sorted(set(_BUILTIN) | set(cls._registry))


def create_adapter(
    exchange_id: str,
    config: Optional[AdapterConfig] = None,
    transport: Optional[Transport] = None,
    **overrides: Any,
) -> ExchangeAdapter:
    """
    Create exchange adapter.

    Convenience wrapper for AdapterFactory.create().
    """
    return AdapterFactory.create(exchange_id, config, transport, **overrides)
