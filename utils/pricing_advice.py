"""Price recommendation for new menu items via the Gemini REST API.

Any failure collapses to a fixed markup so adding a menu item never blocks
on the advisory service.
"""
import json
import logging
import os
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import requests

LOG = logging.getLogger(__name__)

API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT = 20

PROMPT = """
I am running a Nasi Goreng / Fried Rice stall in Indonesia.
I want to add a new menu item: "{name}".
My ingredients are: {ingredients}.
My calculated HPP (Cost of Goods Sold) is IDR {hpp}.

Please analyze this and provide a recommended selling price.
Target a healthy profit margin for a food stall (typically 40-60% or more depending on market).

Provide the output in JSON format.
"""

RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "suggestedPrice": {"type": "NUMBER", "description": "Recommended selling price in IDR"},
        "marginPercentage": {"type": "NUMBER", "description": "The profit margin percentage based on suggested price"},
        "reasoning": {"type": "STRING", "description": "Short explanation of why this price is good"},
        "competitorAnalysis": {"type": "STRING", "description": "Brief thought on how this compares to typical market prices"},
    },
    "required": ["suggestedPrice", "marginPercentage", "reasoning", "competitorAnalysis"],
}


@dataclass
class PricingAdvice:
    suggested_price: float
    margin_percentage: float
    reasoning: str
    competitor_analysis: str

    def to_dict(self) -> Dict:
        d = asdict(self)
        return {
            "suggestedPrice": d["suggested_price"],
            "marginPercentage": d["margin_percentage"],
            "reasoning": d["reasoning"],
            "competitorAnalysis": d["competitor_analysis"],
        }


def fallback_advice(hpp) -> PricingAdvice:
    return PricingAdvice(
        suggested_price=hpp * 2,
        margin_percentage=50,
        reasoning="AI service unavailable. Defaulting to standard 50% margin.",
        competitor_analysis="N/A",
    )


def _parse_response(body: Dict) -> PricingAdvice:
    text = body["candidates"][0]["content"]["parts"][0]["text"]
    advice = json.loads(text)
    return PricingAdvice(
        suggested_price=float(advice["suggestedPrice"]),
        margin_percentage=float(advice["marginPercentage"]),
        reasoning=str(advice["reasoning"]),
        competitor_analysis=str(advice["competitorAnalysis"]),
    )


def get_pricing_recommendation(item_name: str, ingredients: str, hpp, api_key: Optional[str] = None,
                               model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT) -> PricingAdvice:
    api_key = api_key or os.environ.get("GEMINI_API_KEY")
    prompt = PROMPT.format(name=item_name, ingredients=ingredients or "Standard ingredients", hpp=hpp)
    payload = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }
    try:
        if not api_key:
            raise RuntimeError("GEMINI_API_KEY is not set")
        resp = requests.post(
            API_URL.format(model=model),
            params={"key": api_key},
            json=payload,
            timeout=timeout,
        )
        resp.raise_for_status()
        return _parse_response(resp.json())
    except (requests.RequestException, RuntimeError, ValueError, KeyError, IndexError, TypeError) as exc:
        LOG.error("Error fetching pricing advice: %s", exc)
        return fallback_advice(hpp)
