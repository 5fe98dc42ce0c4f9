"""
Exchange Gateway - Currency Code Mapping.

Bidirectional native <-> canonical currency code translation.

Forward (native -> canonical) comes from the exchange's
common_currencies table. The inverse is derived only for one-to-one
entries: a canonical code reached from several native codes gets no
derived inverse and does not round-trip. An explicit inverse table
wins over the derived one. Codes not in any table map to themselves.
"""

import logging
from collections import defaultdict
from typing import Dict, Mapping, Optional, Set


logger = logging.getLogger(__name__)


class CurrencyCodeMapper:
    """Table-driven currency code translation."""

    def __init__(
        self,
        common_currencies: Optional[Mapping[str, str]] = None,
        currency_ids: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            common_currencies: native -> canonical
            currency_ids: explicit canonical -> native
        """
        self._forward: Dict[str, str] = {
            k.upper(): v for k, v in (common_currencies or {}).items()
        }

        sources: Dict[str, Set[str]] = defaultdict(set)
        for native, canonical in self._forward.items():
            sources[canonical].add(native)

        self._inverse: Dict[str, str] = {}
        self._ambiguous: Set[str] = set()
        for canonical, natives in sources.items():
            if len(natives) == 1:
                self._inverse[canonical] = next(iter(natives))
            else:
                self._ambiguous.add(canonical)

        for canonical, native in (currency_ids or {}).items():
            self._inverse[canonical] = native
            self._ambiguous.discard(canonical)

    @property
    def ambiguous_codes(self) -> Set[str]:
        """Canonical codes with several native sources and no explicit inverse."""
        return set(self._ambiguous)

    def to_canonical(self, native: Optional[str]) -> Optional[str]:
        if native is None:
            return None
        code = native.upper()
        return self._forward.get(code, code)

    def to_native(self, canonical: Optional[str]) -> Optional[str]:
        if canonical is None:
            return None
        if canonical in self._inverse:
            return self._inverse[canonical]
        if canonical in self._ambiguous:
            logger.debug(f"No unique native code for {canonical}, using identity")
        return canonical
