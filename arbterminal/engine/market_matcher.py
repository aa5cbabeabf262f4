"""
Market Matcher
==============

Casa mercados brutos da Polymarket com mercados brutos da Kalshi.

Fluxo:
1. Candidatos: todo par com títulos não vazios e similaridade >= 0.25
   (pré-filtro solto, não é a decisão de match)
2. Ranking por similaridade, maior primeiro
3. Verificação externa opcional (LLM) dos top 100, em lotes de 10
4. Conjunto final: pares verificados, se houver algum;
   senão candidatos com similaridade >= 0.4
5. Consumo guloso: cada mercado Kalshi (e cada mercado Polymarket)
   é usado no máximo uma vez
6. Expansão: um MatchedOutcomePair por outcome presente nos dois lados

O matching guloso não é ótimo (não é atribuição bipartida), e isso é
intencional: trocar por atribuição ótima muda os pares escolhidos.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Set, Union

from arbterminal.models import (
    BASIC_SIMILARITY_THRESHOLD,
    CANDIDATE_SIMILARITY_THRESHOLD,
    VERIFICATION_BATCH_DELAY_SECONDS,
    VERIFICATION_BATCH_SIZE,
    VERIFICATION_CONFIDENCE_THRESHOLD,
    VERIFICATION_LIMIT,
    CandidatePair,
    MatchedOutcomePair,
    VerificationResult,
)
from .normalizer import normalize_kalshi_market, normalize_polymarket_market
from .similarity import similarity_score

logger = logging.getLogger(__name__)

# (titulo_polymarket, titulo_kalshi) -> resultado, síncrono ou assíncrono
Verifier = Callable[
    [str, str],
    Union[VerificationResult, dict, Awaitable[Union[VerificationResult, dict]]],
]


def _default(value, fallback):
    """None significa 'usar padrão'; 0 explícito é respeitado."""
    return fallback if value is None else value


def _as_verification(result) -> VerificationResult:
    """Aceita VerificationResult ou dict {match, confidence, reasoning}."""
    if isinstance(result, VerificationResult):
        return result
    if isinstance(result, dict):
        return VerificationResult(
            match=result.get("match") is True,
            confidence=float(result.get("confidence") or 0),
            reasoning=result.get("reasoning"),
        )
    raise TypeError(f"Resposta de verificador inválida: {type(result).__name__}")


class MarketMatcher:
    """
    Encontra mercados equivalentes entre Polymarket e Kalshi.

    Não guarda estado entre chamadas: o conjunto de mercados consumidos
    vive apenas dentro de uma chamada de match().
    """

    def __init__(
        self,
        candidate_threshold: Optional[float] = None,
        basic_threshold: Optional[float] = None,
        verification_limit: Optional[int] = None,
        verification_batch_size: Optional[int] = None,
        verification_confidence: Optional[float] = None,
        batch_delay_seconds: Optional[float] = None,
    ):
        """
        Args:
            candidate_threshold: Similaridade mínima para virar candidato
            basic_threshold: Similaridade mínima para match sem verificação
            verification_limit: Quantos candidatos (top N) vão ao verificador
            verification_batch_size: Chamadas concorrentes por lote
            verification_confidence: Confiança mínima para aceitar a verificação
            batch_delay_seconds: Pausa entre lotes (rate limit)
        """
        self.candidate_threshold = _default(candidate_threshold, CANDIDATE_SIMILARITY_THRESHOLD)
        self.basic_threshold = _default(basic_threshold, BASIC_SIMILARITY_THRESHOLD)
        self.verification_limit = _default(verification_limit, VERIFICATION_LIMIT)
        self.verification_batch_size = max(1, _default(verification_batch_size, VERIFICATION_BATCH_SIZE))
        self.verification_confidence = _default(verification_confidence, VERIFICATION_CONFIDENCE_THRESHOLD)
        self.batch_delay_seconds = _default(batch_delay_seconds, VERIFICATION_BATCH_DELAY_SECONDS)

    def find_candidates(
        self,
        polymarket_markets: List[dict],
        kalshi_markets: List[dict],
    ) -> List[CandidatePair]:
        """
        Gera e ordena candidatos (passos 1 e 2).

        Returns:
            Candidatos com similaridade >= candidate_threshold, maior primeiro
        """
        candidates = []
        total_comparisons = len(polymarket_markets) * len(kalshi_markets)

        logger.info(
            f"Iniciando matching: {len(polymarket_markets)} Poly x {len(kalshi_markets)} Kalshi "
            f"= {total_comparisons} comparações possíveis"
        )

        for poly in polymarket_markets:
            poly_title = poly.get("question") or ""
            if not poly_title:
                continue

            for kalshi in kalshi_markets:
                kalshi_title = kalshi.get("event_title") or ""
                if not kalshi_title:
                    continue

                similarity = similarity_score(poly_title, kalshi_title)
                if similarity >= self.candidate_threshold:
                    candidates.append(CandidatePair(poly, kalshi, similarity))

        # sort é estável: empates mantêm a ordem de entrada
        candidates.sort(key=lambda c: c.similarity, reverse=True)

        self._log_candidate_stats(candidates)
        return candidates

    def _log_candidate_stats(self, candidates: List[CandidatePair]):
        logger.info(f"Candidatos com similaridade >= {self.candidate_threshold}: {len(candidates)}")
        if not candidates:
            return

        scores = [c.similarity for c in candidates]
        logger.info(
            f"Similaridade: média={sum(scores) / len(scores):.3f} "
            f"máx={max(scores):.3f} mín={min(scores):.3f}"
        )
        for i, candidate in enumerate(candidates[:10], 1):
            logger.debug(
                f"  #{i} {candidate.similarity:.3f} | "
                f"{candidate.polymarket.get('question')} <-> {candidate.kalshi.get('event_title')}"
            )

    async def verify_candidates(
        self,
        candidates: List[CandidatePair],
        verifier: Verifier,
    ) -> Set[str]:
        """
        Verifica os top candidatos em lotes (passo 3).

        Lotes rodam em ordem de ranking; as chamadas de um lote são
        concorrentes. Falha de uma chamada = par não verificado.

        Returns:
            Chaves (CandidatePair.key) dos pares aceitos pelo verificador
        """
        to_verify = candidates[:self.verification_limit]
        verified: Set[str] = set()
        batch_size = self.verification_batch_size

        logger.info(f"Verificando {len(to_verify)} candidatos (lotes de {batch_size})")

        for start in range(0, len(to_verify), batch_size):
            batch = to_verify[start:start + batch_size]
            results = await asyncio.gather(
                *(self._verify_one(verifier, c) for c in batch),
                return_exceptions=True,
            )

            for candidate, result in zip(batch, results):
                if isinstance(result, Exception):
                    logger.warning(
                        f"Verificação falhou para {candidate.key}: {result}"
                    )
                    continue
                if result.match and result.confidence >= self.verification_confidence:
                    verified.add(candidate.key)
                    logger.debug(
                        f"Verificado ({result.confidence:.2f}): "
                        f"{candidate.polymarket.get('question')} <-> {candidate.kalshi.get('event_title')}"
                    )

            if start + batch_size < len(to_verify) and self.batch_delay_seconds > 0:
                await asyncio.sleep(self.batch_delay_seconds)

        logger.info(f"Pares verificados: {len(verified)} de {len(to_verify)}")
        return verified

    async def _verify_one(self, verifier: Verifier, candidate: CandidatePair) -> VerificationResult:
        result = verifier(
            candidate.polymarket.get("question") or "",
            candidate.kalshi.get("event_title") or "",
        )
        if inspect.isawaitable(result):
            result = await result
        return _as_verification(result)

    def select_final(
        self,
        candidates: List[CandidatePair],
        verified_keys: Set[str],
    ) -> List[CandidatePair]:
        """
        Conjunto final (passo 4).

        Verificação manda: se algum par foi verificado, o limiar básico
        é ignorado por completo.
        """
        if verified_keys:
            final = [c for c in candidates if c.key in verified_keys]
            logger.info(f"Usando {len(final)} pares verificados")
        else:
            final = [c for c in candidates if c.similarity >= self.basic_threshold]
            logger.info(f"Usando {len(final)} pares com similaridade >= {self.basic_threshold}")
        return final

    def consume(self, final_candidates: List[CandidatePair]) -> List[MatchedOutcomePair]:
        """
        Consumo guloso e expansão em outcomes (passos 5 e 6).
        """
        used_kalshi: Set[str] = set()
        used_poly: Set[str] = set()
        matched: List[MatchedOutcomePair] = []

        for candidate in final_candidates:
            kalshi_id = candidate.kalshi_id
            poly_id = str(candidate.polymarket.get("id", ""))
            if kalshi_id in used_kalshi or poly_id in used_poly:
                continue

            used_kalshi.add(kalshi_id)
            used_poly.add(poly_id)

            poly_outcomes = normalize_polymarket_market(candidate.polymarket)
            kalshi_by_outcome: Dict = {}
            for outcome in normalize_kalshi_market(candidate.kalshi):
                kalshi_by_outcome.setdefault(outcome.outcome, outcome)

            for poly_outcome in poly_outcomes:
                kalshi_outcome = kalshi_by_outcome.get(poly_outcome.outcome)
                if kalshi_outcome is None:
                    continue
                matched.append(MatchedOutcomePair(
                    event_title=candidate.polymarket.get("question") or poly_outcome.event_title,
                    polymarket=poly_outcome,
                    kalshi=kalshi_outcome,
                ))
                logger.debug(
                    f"Par casado [{poly_outcome.outcome.value}] {poly_outcome.event_title}: "
                    f"Poly {poly_outcome.price} / Kalshi {kalshi_outcome.price}"
                )

        logger.info(
            f"Mercados casados: {len(used_kalshi)} | pares de outcome: {len(matched)}"
        )
        return matched

    async def match(
        self,
        polymarket_markets: List[dict],
        kalshi_markets: List[dict],
        verifier: Optional[Verifier] = None,
    ) -> List[MatchedOutcomePair]:
        """
        Casa as duas coleções de mercados brutos.

        Args:
            polymarket_markets: Registros brutos da Gamma API
            kalshi_markets: Registros brutos da Kalshi
            verifier: Verificador externo opcional

        Returns:
            Lista de MatchedOutcomePair

        Raises:
            TypeError: se alguma coleção não for lista/tupla
        """
        for name, markets in (("polymarket_markets", polymarket_markets), ("kalshi_markets", kalshi_markets)):
            if not isinstance(markets, (list, tuple)):
                raise TypeError(f"{name} deve ser uma lista, recebido: {type(markets).__name__}")

        candidates = self.find_candidates(list(polymarket_markets), list(kalshi_markets))

        verified_keys: Set[str] = set()
        if verifier is not None and candidates:
            verified_keys = await self.verify_candidates(candidates, verifier)

        return self.consume(self.select_final(candidates, verified_keys))
