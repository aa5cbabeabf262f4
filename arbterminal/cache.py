"""
TTL Cache
=========

Cache em memória com expiração por entrada.

Não existe instância global: quem precisa de cache recebe um TTLCache
(ArbitrageScanner, API), o que mantém o engine testável isoladamente.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional


@dataclass
class CacheEntry:
    data: Any
    expires_at: float


class TTLCache:
    """
    Cache chave/valor com TTL.

    Uso:
        cache = TTLCache(default_ttl=600)
        cache.set("markets", data)
        cache.get("markets")  # None depois de expirar
    """

    def __init__(self, default_ttl: float = 600.0, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            default_ttl: TTL padrão em segundos
            clock: Fonte de tempo em segundos (injetável em testes)
        """
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        """Valor da chave, ou None se ausente ou expirado."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() > entry.expires_at:
            del self._entries[key]
            return None
        return entry.data

    def set(self, key: str, data: Any, ttl: Optional[float] = None):
        """Guarda o valor; ttl=None usa o TTL padrão."""
        ttl = self.default_ttl if ttl is None else ttl
        self._entries[key] = CacheEntry(data=data, expires_at=self._clock() + ttl)

    def clear_expired(self) -> int:
        """Remove entradas expiradas. Retorna quantas foram removidas."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self):
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
