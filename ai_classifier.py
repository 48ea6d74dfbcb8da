"""
ai_classifier.py
----------------
Client for an OpenAI-compatible chat-completions endpoint that guesses
category, subcategory and type for a batch of transaction descriptions.

The client makes exactly one request per batch and raises
``AIClassifierError`` on anything unexpected; deciding what to do about
a failure is the orchestrator's job (see ``batch_classifier.py``).
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

import requests

from categories import EXPENSE_CATEGORIES, INCOME_CATEGORIES
from config import AI_API_URL, AI_MODEL, AI_TIMEOUT_SECONDS, OPENAI_API_KEY

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a financial categorization expert. Always respond with valid JSON only."


class AIClassifierError(RuntimeError):
    """The external classifier could not produce a usable answer."""


def _taxonomy_lines(tree) -> str:
    return "\n".join(f"- {category} ({', '.join(subs)})" for category, subs in tree.items())


def build_prompt(batch: Sequence[dict]) -> str:
    listing = "\n".join(
        f"- {item.get('description') or '(no description)'} (${item.get('amount')}) [{item.get('type')}]"
        for item in batch
    )
    return f"""Categorize the following transactions into the categories and subcategories below.

EXPENSE CATEGORIES:
{_taxonomy_lines(EXPENSE_CATEGORIES)}

INCOME CATEGORIES:
{_taxonomy_lines(INCOME_CATEGORIES)}

Transactions to categorize:
{listing}

Rules:
1. Decide whether each transaction is "income" or "expense" from its description
2. Salary, dividend and rental income go to Salary, Dividend and Rental Income
3. House rent goes to Rental; car and home loans go to Debt
4. SIPs, mutual funds, stocks, fixed and recurring deposits go to Savings
5. Use only the category and subcategory names listed above

Return a JSON array in the same order with exactly {len(batch)} objects, each:
{{"category": "...", "subcategory": "...", "type": "income" or "expense", "confidence": 0.0-1.0}}

Only return the JSON array, no other text."""


def _strip_fences(content: str) -> str:
    return content.replace("```json", "").replace("```", "").strip()


class ChatCompletionClassifier:
    """Callable AI classifier: list of request dicts in, list of raw guesses out."""

    def __init__(
        self,
        api_key: Optional[str] = OPENAI_API_KEY,
        api_url: str = AI_API_URL,
        model: str = AI_MODEL,
        timeout: float = AI_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self) -> None:
        self.session.close()

    def __call__(self, batch: Sequence[dict]) -> List[dict]:
        if not self.api_key:
            raise AIClassifierError("AI classifier credentials are not configured")

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": build_prompt(batch)},
            ],
            "temperature": 0.1,
            "max_tokens": 1000,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self.session.post(self.api_url, headers=headers, json=payload, timeout=self.timeout)
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except requests.RequestException as exc:
            raise AIClassifierError(f"AI request failed: {exc}") from exc
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise AIClassifierError(f"Unexpected AI response envelope: {exc}") from exc

        try:
            result = json.loads(_strip_fences(content or ""))
        except ValueError as exc:
            raise AIClassifierError("AI response content is not valid JSON") from exc

        logger.debug("AI classified %d transactions", len(batch))
        return result


def default_classifier() -> ChatCompletionClassifier:
    return ChatCompletionClassifier()
