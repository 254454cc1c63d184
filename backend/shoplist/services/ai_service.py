import json
import logging
import os
import random
import re
from typing import Optional, Sequence

from google import genai
from google.genai import types
from pydantic import TypeAdapter, ValidationError

from shoplist.db.models import Product
from shoplist.models.suggestion import Suggestion, SuggestedProductName

logger = logging.getLogger(__name__)

MOCK_API_KEY = "mock-key"
MOCK_REASON = "Based on your monthly consumption habits (Mock AI)"
MOCK_SUGGESTION_COUNT = 3

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
_suggestion_list = TypeAdapter(list[SuggestedProductName])


class SuggestionParseError(ValueError):
    """The model reply could not be read as a list of suggestions."""


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes wraps JSON in."""
    return _FENCE_RE.sub("", text).strip()


def parse_suggestions(text: str, products: Sequence[Product]) -> list[Suggestion]:
    """
    Parse a model reply and map product names back to catalog ids.

    Accepts either a bare JSON array or an object wrapping it under
    "suggestions". Entries without a name, or whose name doesn't match a
    catalog product exactly, are dropped.
    """
    try:
        data = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise SuggestionParseError(f"Model reply is not valid JSON: {exc}") from exc

    if isinstance(data, dict):
        data = data.get("suggestions", [])
    try:
        items = _suggestion_list.validate_python(data)
    except ValidationError as exc:
        raise SuggestionParseError(f"Unexpected suggestion shape: {exc}") from exc

    by_name = {p.name: p for p in products}
    suggestions: list[Suggestion] = []
    seen = set()
    for item in items:
        product = by_name.get(item.product_name)
        if product is None or product.id in seen:
            continue
        seen.add(product.id)
        suggestions.append(Suggestion(product=product.id, reason=item.reason))
    return suggestions


def build_suggestion_prompt(products: Sequence[Product]) -> str:
    product_list = "\n".join(
        f"- {p.name} (Brand: {p.brand or 'N/A'}, "
        f"Avg Monthly: {p.average_monthly_consumption:g} {p.unit})"
        for p in products
    )
    return f"""I have a master list of grocery items with their average monthly consumption.
            Please suggest a shopping list for this week based on this data.
            Return the result as a JSON array of objects, where each object has:
            - "productName": The exact name of the product from the list
            - "reason": A brief reason for the suggestion

            Master List:
            {product_list}

            Output JSON only, no markdown formatting.
            """


class GeminiService:
    """Product suggestions from Google Gemini, or a random pick in mock mode."""

    def __init__(self, api_key: Optional[str] = None, rng: Optional[random.Random] = None):
        key = api_key if api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.mock = not key or key == MOCK_API_KEY
        self.model_name = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self.client = None if self.mock else genai.Client(api_key=key)
        self._rng = rng or random.Random()

    @property
    def mode(self) -> str:
        return "mock" if self.mock else "gemini"

    async def suggest_products(self, products: Sequence[Product]) -> list[Suggestion]:
        """Suggest a few products to buy this week from the given catalog."""
        if not products:
            return []
        if self.mock:
            return self._mock_suggestions(products)

        prompt = build_suggestion_prompt(products)
        logger.info("🤖 AI CALL: suggest_products (products=%d, model=%s)", len(products), self.model_name)
        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                temperature=0.4,
            ),
        )
        suggestions = parse_suggestions(response.text or "", products)
        logger.info("✅ AI RESPONSE: suggest_products → %d suggestions", len(suggestions))
        return suggestions

    def _mock_suggestions(self, products: Sequence[Product]) -> list[Suggestion]:
        picks = self._rng.sample(list(products), min(MOCK_SUGGESTION_COUNT, len(products)))
        return [Suggestion(product=p.id, reason=MOCK_REASON) for p in picks]
