"""
batch_classifier.py
-------------------
Moves transactions from the provisional ``Uncategorized`` state to a
classified one.  Unclassified transactions are split into bounded
batches and each batch goes through:

    PENDING -> AI call -> SUCCESS (merge AI guesses)
                       -> FAILURE (keyword classifier for every item)
            -> DONE

A batch either trusts the AI answer completely or not at all.  Results
are merged back by transaction id and returned in input order.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from pydantic import ValidationError

from ai_classifier import AIClassifierError
from categories import FALLBACK_CATEGORY, FALLBACK_SUBCATEGORY, category_type, is_known_pair
from classifier import classify
from config import AI_BATCH_SIZE
from models import Classification, Transaction

logger = logging.getLogger(__name__)

AIClassifier = Callable[[List[dict]], object]


def chunked(items: Sequence, size: int) -> Iterator[Sequence]:
    size = max(int(size), 1)
    for start in range(0, len(items), size):
        yield items[start:start + size]


def to_ai_request(txn: Transaction) -> dict:
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "description": txn.description,
        "amount": float(txn.amount),
        "type": txn.type.value,
    }


def coerce_to_taxonomy(guess: Classification) -> Classification:
    """Keep an AI guess only if its category/subcategory pair exists.

    The type always follows the tree the category belongs to.
    """
    if not is_known_pair(guess.category, guess.subcategory):
        return Classification(
            category=FALLBACK_CATEGORY,
            subcategory=FALLBACK_SUBCATEGORY,
            type=category_type(FALLBACK_CATEGORY),
            confidence=guess.confidence,
        )
    return guess.model_copy(update={"type": category_type(guess.category)})


def validate_ai_results(raw, expected: int) -> List[Classification]:
    if not isinstance(raw, list):
        raise AIClassifierError(f"expected a JSON array, got {type(raw).__name__}")
    if len(raw) != expected:
        raise AIClassifierError(f"expected {expected} results, got {len(raw)}")
    try:
        return [coerce_to_taxonomy(Classification.model_validate(item)) for item in raw]
    except ValidationError as exc:
        raise AIClassifierError(f"malformed AI result: {exc.error_count()} errors") from exc


def apply_classification(txn: Transaction, result: Classification) -> Transaction:
    return txn.model_copy(
        update={"category": result.category, "subcategory": result.subcategory, "type": result.type}
    )


def classify_transaction(txn: Transaction) -> Transaction:
    """Keyword-classify a single transaction."""
    return apply_classification(txn, classify(txn.description, txn.subcategory))


def _classify_chunk(batch: Sequence[Transaction], ai_classifier: Optional[AIClassifier]) -> List[Transaction]:
    if ai_classifier is None:
        return [classify_transaction(t) for t in batch]
    try:
        raw = ai_classifier([to_ai_request(t) for t in batch])
        results = validate_ai_results(raw, len(batch))
    except Exception as exc:
        logger.warning("AI classification failed for batch of %d, using keyword rules: %s", len(batch), exc)
        return [classify_transaction(t) for t in batch]
    return [apply_classification(t, r) for t, r in zip(batch, results)]


def classify_batch(
    transactions: Sequence[Transaction],
    ai_classifier: Optional[AIClassifier] = None,
    batch_size: int = AI_BATCH_SIZE,
) -> List[Transaction]:
    """Classify every unclassified transaction; never raises.

    Already-classified transactions pass through untouched.  Each batch
    succeeds or falls back independently of the others.
    """
    pending = [t for t in transactions if not t.is_classified]
    classified: Dict[str, Transaction] = {}

    for batch in chunked(pending, batch_size):
        for txn in _classify_chunk(batch, ai_classifier):
            classified[txn.id] = txn

    if pending:
        logger.info("Classified %d of %d transactions", len(classified), len(transactions))
    return [classified.get(t.id, t) for t in transactions]
