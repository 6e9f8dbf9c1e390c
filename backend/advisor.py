"""
Pricing advice — powered by Gemini.

Takes a product snapshot and the pricing engine's output, renders them into a
coaching prompt, and returns Gemini's text. No numbers are computed here;
every figure in the prompt comes straight from CalculatedPricing.
"""

import json
import logging
import threading
import time
import urllib.error
import urllib.request

from fastapi import HTTPException

from .config import settings
from .formatting import format_currency, format_percent
from .pricing_engine import PRICE_MODE

logger = logging.getLogger(__name__)

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent?key={key}"

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topP": 1,
    "topK": 32,
    "maxOutputTokens": 512,
}

SAFETY_CATEGORIES = [
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
]

ADVICE_TEMPLATE = """
You are a friendly pricing coach for small Filipino business owners.
Analyze the following product cost and pricing data.

**Product:** {product_name}

**Cost Breakdown (per unit):**
- Materials: {material_cost}
- Packaging: {packaging_cost}
- Labor: {labor_cost} (at {hourly_rate} per hour)
- Other Fees: {other_fees_cost}
- Total Base Cost: {base_cost}

**Pricing Strategy:** {strategy}

**Results:**
- Price Before Discount: {final_price}
- Discount: {discount}
- Final Selling Price: {discounted_price}
- Profit Per Unit: {profit}
- Profit Margin: {margin}

**Instructions:**
1. Start with a short, encouraging greeting.
2. Give 2-3 tips. Separate each tip with a line containing only `---`.
   Title each tip `**Presyo Tip N: <title>**` and write its points as lines starting with `* `.
3. If the profit is negative, the first tip must explain the loss and how to fix it.
4. End with a one-line sign-off after a final `---`.
"""


def _field(obj, name: str, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def describe_strategy(product, symbol: str = None) -> str:
    mode = _field(product, "calculation_mode")
    mode = getattr(mode, "value", mode)
    if mode == PRICE_MODE:
        return f"Target price of {format_currency(_field(product, 'target_price', 0), symbol)}"
    return f"Target margin of {format_percent(_field(product, 'target_margin', 0))}"


def build_advice_prompt(product, pricing: dict, symbol: str = None) -> str:
    """Render the coaching prompt from a product snapshot and its CalculatedPricing."""
    def money(value):
        return format_currency(value, symbol)

    return ADVICE_TEMPLATE.format(
        product_name=_field(product, "product_name") or "Unnamed product",
        material_cost=money(pricing["total_material_cost"]),
        packaging_cost=money(pricing["total_packaging_cost"]),
        labor_cost=money(pricing["total_labor_cost"]),
        hourly_rate=money(_field(product, "hourly_labor_rate", 0)),
        other_fees_cost=money(pricing["total_other_fees_cost"]),
        base_cost=money(pricing["total_base_cost"]),
        strategy=describe_strategy(product, symbol),
        final_price=money(pricing["final_price"]),
        discount=format_percent(_field(product, "discount", 0)),
        discounted_price=money(pricing["discounted_price"]),
        profit=money(pricing["profit"]),
        margin=format_percent(pricing["required_margin"]),
    )


def _extract_text(result: dict) -> str:
    """Candidate text, or 502 with the block reason / empty-response message."""
    candidates = result.get("candidates") or []
    text = ""
    if candidates:
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(p.get("text", "") for p in parts)

    if not text.strip():
        block_reason = (result.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise HTTPException(
                status_code=502,
                detail=f"Request was blocked for safety reasons: {block_reason}.",
            )
        raise HTTPException(status_code=502, detail="The AI returned an empty response.")
    return text


def call_gemini(prompt: str) -> str:
    """Call Gemini and return the generated advice text."""
    api_key = settings.GEMINI_API_KEY
    if not api_key:
        raise HTTPException(status_code=500, detail="GEMINI_API_KEY not configured")

    url = GEMINI_URL.format(model=settings.GEMINI_MODEL, key=api_key)
    payload = json.dumps({
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": GENERATION_CONFIG,
        "safetySettings": [
            {"category": category, "threshold": "BLOCK_NONE"}
            for category in SAFETY_CATEGORIES
        ],
    }).encode("utf-8")

    req = urllib.request.Request(
        url,
        data=payload,
        headers={"Content-Type": "application/json"},
        method="POST",
    )

    try:
        with urllib.request.urlopen(req, timeout=settings.GEMINI_TIMEOUT_SECONDS) as response:
            result = json.loads(response.read())
    except urllib.error.HTTPError as e:
        error_body = e.read().decode()
        logger.warning(f"Gemini API error {e.code}: {error_body}")
        raise HTTPException(status_code=502, detail=f"Failed to get pricing advice: {error_body}")
    except (urllib.error.URLError, TimeoutError, ValueError) as e:
        logger.warning(f"Gemini call failed: {e}")
        raise HTTPException(status_code=502, detail=f"Failed to get pricing advice: {e}")

    return _extract_text(result)


class AdviceRateLimiter:
    """
    Minimum interval between advice requests.

    Process-wide, one Gemini call per cooldown window. acquire() returns the
    seconds still to wait (0.0 when the call may proceed and the window restarts).
    release() hands a failed call's window back.
    """

    def __init__(self, cooldown_seconds: float, clock=time.monotonic):
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._last_call = None
        self._previous_call = None
        self._lock = threading.Lock()

    def acquire(self) -> float:
        with self._lock:
            now = self._clock()
            if self._last_call is not None:
                remaining = self.cooldown_seconds - (now - self._last_call)
                if remaining > 0:
                    return remaining
            self._previous_call, self._last_call = self._last_call, now
            return 0.0

    def release(self):
        with self._lock:
            self._last_call = self._previous_call

    def reset(self):
        with self._lock:
            self._last_call = None
            self._previous_call = None


rate_limiter = AdviceRateLimiter(settings.ADVICE_COOLDOWN_SECONDS)


def get_pricing_advice(product, pricing: dict, symbol: str = None) -> str:
    """Rate-limited advice for one product. 429 while the cooldown runs.

    Only a successful call starts the cooldown; a failed one can be retried at once.
    """
    wait = rate_limiter.acquire()
    if wait > 0:
        raise HTTPException(
            status_code=429,
            detail=f"Please wait {wait:.0f}s before asking for more advice.",
            headers={"Retry-After": str(max(1, round(wait)))},
        )
    try:
        return call_gemini(build_advice_prompt(product, pricing, symbol))
    except HTTPException:
        rate_limiter.release()
        raise
