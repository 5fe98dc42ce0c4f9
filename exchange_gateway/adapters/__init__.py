"""
Exchange Gateway - Adapters Package.

============================================================
PURPOSE
============================================================
Exchange adapter implementations.

AVAILABLE ADAPTERS:
- ZBAdapter: ZB REST API
- LiquiAdapter: Liqui wire protocol, configured for
  - yobit (create_yobit_adapter)
  - tidex (create_tidex_adapter)

UTILITIES:
- AdapterFactory: Factory for creating adapters by exchange id

============================================================
"""

# Base
from .base import ExchangeAdapter, filter_by_since_limit

# Adapters
from .zb import ZBAdapter, ZB_DESCRIPTION
from .liqui import LiquiAdapter, LIQUI_DESCRIPTION, liqui_description
from .yobit import YOBIT_DESCRIPTION, create_yobit_adapter
from .tidex import TIDEX_DESCRIPTION, create_tidex_adapter

# Factory
from .factory import (
    AdapterFactory,
    ExchangeId,
    create_adapter,
)


__all__ = [
    # Base
    "ExchangeAdapter",
    "filter_by_since_limit",
    # Adapters
    "ZBAdapter",
    "ZB_DESCRIPTION",
    "LiquiAdapter",
    "LIQUI_DESCRIPTION",
    "liqui_description",
    "YOBIT_DESCRIPTION",
    "create_yobit_adapter",
    "TIDEX_DESCRIPTION",
    "create_tidex_adapter",
    # Factory
    "AdapterFactory",
    "ExchangeId",
    "create_adapter",
]
