"""
Semantic Market Verifier
========================

Usa um LLM (via OpenRouter) para confirmar se dois títulos de mercados
se referem ao MESMO EVENTO, não apenas à mesma pessoa/empresa.

Exemplo:
- "Musk visit Mars" vs "Musk win election" -> DIFERENTES
- "Bitcoin 100k by Dec" vs "BTC reaches $100,000 December" -> MESMO EVENTO

Implementa o contrato de verificador do MarketMatcher:
    await verifier(polymarket_title, kalshi_title) -> VerificationResult

Nunca levanta exceção por erro de HTTP ou de JSON: registra o erro e
responde "sem match" com confiança 0.
"""

import hashlib
import json
import logging
import re
from typing import Dict, Optional

import httpx

from arbterminal.models import VerificationResult

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "openai/gpt-4o-mini"  # Rápido e barato

SYSTEM_PROMPT = (
    "You are an expert at analyzing prediction market questions. You determine "
    "if two questions refer to the same event, even if worded differently."
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class OpenRouterVerifier:
    """
    Verificador externo baseado em LLM.

    Uso:
        async with OpenRouterVerifier(api_key) as verifier:
            result = await verifier("Will Trump win?", "Trump wins 2024")
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_MODEL,
        base_url: str = OPENROUTER_URL,
        app_url: str = "http://localhost:3000",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            api_key: Chave OpenRouter. Sem chave, toda verificação responde "sem match".
            model: Modelo usado na chamada
            base_url: Endpoint de chat completions
            app_url: Enviado como HTTP-Referer
            timeout: Timeout HTTP em segundos
            client: Cliente httpx já configurado (testes)
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.app_url = app_url
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._cache: Dict[str, VerificationResult] = {}

        if not self.api_key:
            logger.warning("OPENROUTER_API_KEY não configurada - verificação semântica desabilitada")

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "OpenRouterVerifier deve ser usado como context manager: "
                "async with OpenRouterVerifier(api_key) as verifier:"
            )
        return self._client

    def _cache_key(self, title1: str, title2: str) -> str:
        """Chave de cache para um par de títulos."""
        combined = f"{title1.lower().strip()}|||{title2.lower().strip()}"
        return hashlib.md5(combined.encode()).hexdigest()

    async def __call__(self, polymarket_title: str, kalshi_title: str) -> VerificationResult:
        return await self.verify(polymarket_title, kalshi_title)

    async def verify(self, polymarket_title: str, kalshi_title: str) -> VerificationResult:
        """
        Pergunta ao LLM se os dois títulos são o mesmo evento.

        Returns:
            VerificationResult com match, confiança em [0, 1] e justificativa
        """
        if not self.api_key:
            return VerificationResult(match=False, confidence=0.0)

        cache_key = self._cache_key(polymarket_title, kalshi_title)
        if cache_key in self._cache:
            return self._cache[cache_key]

        result = await self._call_openrouter(polymarket_title, kalshi_title)
        self._cache[cache_key] = result
        return result

    def _build_prompt(self, polymarket_title: str, kalshi_title: str) -> str:
        return f"""You are an expert at matching prediction market questions. Determine if these two market questions refer to the same event:

Polymarket: "{polymarket_title}"
Kalshi: "{kalshi_title}"

Respond with a JSON object in this exact format:
{{
  "match": true or false,
  "confidence": 0.0 to 1.0,
  "reasoning": "brief explanation"
}}

Only respond with the JSON object, nothing else."""

    async def _call_openrouter(self, polymarket_title: str, kalshi_title: str) -> VerificationResult:
        """Chama a API e interpreta a resposta."""
        try:
            response = await self.client.post(
                self.base_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {self.api_key}",
                    "HTTP-Referer": self.app_url,
                    "X-Title": "Arbitrage Terminal",
                },
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": self._build_prompt(polymarket_title, kalshi_title)},
                    ],
                    "temperature": 0.3,
                    "max_tokens": 200,
                },
            )

            if response.status_code != 200:
                logger.error(f"Erro OpenRouter API: {response.status_code} - {response.text}")
                return VerificationResult(match=False, confidence=0.0)

            data = response.json()
            choices = data.get("choices") or []
            content = choices[0].get("message", {}).get("content") if choices else None
            if not content:
                return VerificationResult(match=False, confidence=0.0)

            return parse_verification(content)

        except httpx.HTTPError as e:
            logger.error(f"Erro chamando OpenRouter: {e}")
            return VerificationResult(match=False, confidence=0.0)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error(f"Resposta inválida do OpenRouter: {e}")
            return VerificationResult(match=False, confidence=0.0)

    async def close(self):
        """Fecha o cliente HTTP (só se foi criado aqui)."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def parse_verification(content: str) -> VerificationResult:
    """
    Extrai o JSON da resposta do LLM (tolera blocos de código markdown).

    Confiança é limitada a [0, 1]; match só é True se vier literalmente true.
    """
    found = _JSON_OBJECT.search(content)
    json_str = found.group(0) if found else content

    try:
        result = json.loads(json_str)
    except json.JSONDecodeError:
        logger.error(f"Falha ao interpretar resposta do LLM: {content[:200]}")
        return VerificationResult(match=False, confidence=0.0)

    if not isinstance(result, dict):
        return VerificationResult(match=False, confidence=0.0)

    try:
        confidence = float(result.get("confidence") or 0)
    except (TypeError, ValueError):
        confidence = 0.0

    return VerificationResult(
        match=result.get("match") is True,
        confidence=max(0.0, min(1.0, confidence)),
        reasoning=result.get("reasoning"),
    )
