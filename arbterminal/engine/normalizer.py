"""
Market Normalizer
=================

Converte registros brutos de cada plataforma em NormalizedOutcome
(um por lado YES/NO resolvível).

Polymarket (Gamma API):
- outcomes e outcomePrices chegam como arrays paralelos,
  possivelmente como strings JSON
- preços exatamente 0 ou 1 são MANTIDOS aqui; mercados resolvidos
  são filtrados depois, no cálculo de arbitragem

Kalshi (search/series):
- preço YES = mid de bid/ask em dólares, com fallbacks
- preço NO = 1 - YES, sempre
- só emite lados com preço estritamente dentro de (0, 1)

A assimetria entre as duas plataformas é intencional: registros
Polymarket resolvidos continuam visíveis na saída normalizada para auditoria.

POLÍTICA DE ERROS: registro (ou lado) malformado é pulado, nunca aborta o lote.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from arbterminal.models import NormalizedOutcome, Outcome, Platform, kalshi_market_id

logger = logging.getLogger(__name__)

# Timestamps inteiros abaixo disto (ano 2000 em segundos) são segundos;
# acima, milissegundos.
EPOCH_SECONDS_THRESHOLD = 946684800


def to_decimal(value: Any) -> Optional[Decimal]:
    """
    Converte um valor numérico (ou string numérica) para Decimal.

    Retorna None para valores ausentes, não numéricos, NaN ou infinitos.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def to_float(value: Any) -> Optional[float]:
    """Como to_decimal, mas para quantidades não monetárias (liquidez, volume)."""
    result = to_decimal(value)
    return float(result) if result is not None else None


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Converte string ISO ou timestamp inteiro em datetime (UTC).

    Inteiros abaixo de EPOCH_SECONDS_THRESHOLD são tratados como segundos,
    os demais como milissegundos.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None

    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    try:
        timestamp = int(value)
    except (TypeError, ValueError):
        return None

    try:
        if timestamp < EPOCH_SECONDS_THRESHOLD:
            return datetime.fromtimestamp(timestamp, tz=timezone.utc)
        return datetime.fromtimestamp(timestamp / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def normalize_outcome_label(label: Any) -> Optional[Outcome]:
    """
    Mapeia um rótulo de outcome para YES/NO.

    Heurística case-insensitive: contém "YES", "TRUE" ou "1" -> YES;
    contém "NO", "FALSE" ou "0" -> NO; qualquer outro -> None.
    """
    if label is None:
        return None
    upper = str(label).upper()
    if "YES" in upper or upper == "TRUE" or upper == "1":
        return Outcome.YES
    if "NO" in upper or upper == "FALSE" or upper == "0":
        return Outcome.NO
    return None


def _parse_json_list(value: Any) -> Optional[list]:
    """Aceita lista ou string JSON de lista. Retorna None se não for possível."""
    if isinstance(value, list):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except (json.JSONDecodeError, ValueError):
            return None
        return parsed if isinstance(parsed, list) else None
    return None


def _outcome_labels(market: dict) -> List[str]:
    """Extrai rótulos de outcome (strings ou objetos com title/outcome/name)."""
    raw = _parse_json_list(market.get("outcomes"))
    if raw is None:
        return []

    labels = []
    for item in raw:
        if isinstance(item, dict):
            labels.append(item.get("title") or item.get("outcome") or item.get("name") or "")
        else:
            labels.append(str(item) if item is not None else "")
    return labels


def _polymarket_closes_at(market: dict) -> Optional[datetime]:
    """endDateIso -> endDateISO -> closedTime -> endDate (ISO ou timestamp)."""
    for key in ("endDateIso", "endDateISO", "closedTime"):
        if market.get(key):
            return parse_timestamp(market[key])

    end_date = market.get("endDate")
    if not end_date:
        return None
    if isinstance(end_date, str) and "T" in end_date:
        return parse_timestamp(end_date)
    try:
        return parse_timestamp(int(str(end_date)))
    except ValueError:
        return None


def normalize_polymarket_market(market: dict) -> List[NormalizedOutcome]:
    """
    Converte um mercado da Gamma API em outcomes normalizados.

    Returns:
        Lista com 0..N outcomes (tipicamente YES e NO)
    """
    question = market.get("question")
    if not question:
        return []

    labels = _outcome_labels(market)
    if not labels:
        return []

    raw_prices = market.get("outcomePrices")
    prices: List[Optional[Decimal]] = []
    if isinstance(raw_prices, str):
        parsed = _parse_json_list(raw_prices)
        if parsed is None:
            logger.warning(
                f"Pulando mercado Polymarket {market.get('id')}: outcomePrices ilegível"
            )
            return []
        prices = [to_decimal(p) for p in parsed]
    elif isinstance(raw_prices, list):
        prices = [to_decimal(p) for p in raw_prices]

    # Liquidez: campo numérico tem preferência sobre o textual
    liquidity = market.get("liquidityNum")
    liquidity = to_float(liquidity) if liquidity is not None else to_float(market.get("liquidity"))

    closes_at = _polymarket_closes_at(market)

    normalized = []
    for i, label in enumerate(labels):
        outcome = normalize_outcome_label(label)
        if outcome is None:
            continue

        if len(prices) > i:
            price = prices[i]
        elif market.get("last_price_dollars"):
            price = to_decimal(market["last_price_dollars"])
        elif market.get("last_price") is not None:
            price = to_decimal(market["last_price"])
        else:
            continue

        # Único filtro de validade; 0 e 1 passam
        if price is None or price < 0 or price > 1:
            continue

        normalized.append(NormalizedOutcome(
            platform=Platform.POLYMARKET,
            market_id=str(market.get("id", "")),
            event_title=question,
            outcome=outcome,
            price=price,
            liquidity=liquidity,
            closes_at=closes_at,
            slug=market.get("slug") or market.get("eventSlug"),
            condition_id=market.get("conditionId"),
        ))

    return normalized


def _kalshi_yes_price(market: dict) -> Optional[Decimal]:
    """
    Preço YES da Kalshi, em ordem de preferência:
    1. mid de yes_bid_dollars/yes_ask_dollars
    2. yes_ask_dollars ou yes_bid_dollars sozinhos
    3. mid de yes_bid/yes_ask em centavos
    4. last_price_dollars, depois last_price em centavos
    """
    bid = to_decimal(market.get("yes_bid_dollars"))
    ask = to_decimal(market.get("yes_ask_dollars"))
    if bid is not None and ask is not None:
        return (bid + ask) / 2
    if ask is not None:
        return ask
    if bid is not None:
        return bid

    bid_cents = to_decimal(market.get("yes_bid"))
    ask_cents = to_decimal(market.get("yes_ask"))
    if bid_cents is not None and ask_cents is not None:
        return (bid_cents + ask_cents) / 2 / 100

    last = to_decimal(market.get("last_price_dollars"))
    if last is not None:
        return last
    last_cents = to_decimal(market.get("last_price"))
    if last_cents is not None:
        return last_cents / 100

    return None


def normalize_kalshi_market(market: dict) -> List[NormalizedOutcome]:
    """
    Converte um mercado Kalshi em outcomes normalizados.

    NO é sempre derivado como 1 - YES, então yes + no == 1 por construção.
    """
    yes_price = _kalshi_yes_price(market)
    if yes_price is None:
        return []

    event_title = market.get("event_title") or ""
    if not event_title:
        logger.warning(f"Pulando mercado Kalshi {market.get('ticker')}: sem event_title")
        return []

    no_price = Decimal("1") - yes_price
    closes_at = parse_timestamp(market.get("close_ts") or market.get("expected_expiration_ts"))

    normalized = []
    for outcome, price in ((Outcome.YES, yes_price), (Outcome.NO, no_price)):
        if not (Decimal("0") < price < Decimal("1")):
            continue
        normalized.append(NormalizedOutcome(
            platform=Platform.KALSHI,
            market_id=kalshi_market_id(market),
            event_title=event_title,
            outcome=outcome,
            price=price,
            liquidity=to_float(market.get("volume")),
            closes_at=closes_at,
            series_ticker=market.get("series_ticker"),
            series_title=market.get("series_title"),
            event_ticker=market.get("event_ticker"),
        ))

    return normalized


def normalize(record: dict, platform: Platform) -> List[NormalizedOutcome]:
    """Normaliza um registro bruto da plataforma indicada."""
    if platform == Platform.POLYMARKET:
        return normalize_polymarket_market(record)
    return normalize_kalshi_market(record)


def normalize_all_markets(
    polymarket_markets: List[dict],
    kalshi_markets: List[dict],
) -> List[NormalizedOutcome]:
    """Normaliza as duas coleções, Polymarket primeiro."""
    logger.info(
        f"Normalizando {len(polymarket_markets)} mercados Polymarket "
        f"e {len(kalshi_markets)} mercados Kalshi"
    )

    normalized = []
    for platform, markets in (
        (Platform.POLYMARKET, polymarket_markets),
        (Platform.KALSHI, kalshi_markets),
    ):
        markets_with_outcomes = 0
        outcomes = 0
        for market in markets:
            result = normalize(market, platform)
            if result:
                markets_with_outcomes += 1
                outcomes += len(result)
            normalized.extend(result)
        logger.info(
            f"{platform.value}: {markets_with_outcomes} mercados normalizados "
            f"em {outcomes} outcomes"
        )

    return normalized
