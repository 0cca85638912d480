"""
Vision-model pricing extraction.

Renders the page in a regional browser context, screenshots it, and asks a
vision-capable model to return the pricing table as JSON. Used when DOM
extraction is unreliable on heavily client-rendered pages.
"""

from __future__ import annotations

import asyncio
import base64
import io
import json
import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from openai import AsyncOpenAI, OpenAIError
from PIL import Image, UnidentifiedImageError
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from pydantic import ValidationError

from pricewatch.config import VisionSettings
from pricewatch.crawler.browser import BrowserHandle
from pricewatch.crawler.pricing_extractor import parse_price_numeric
from pricewatch.crawler.regions import RegionContext, browser_context_options
from pricewatch.domain.crawl import CrawlerSource, CrawlFailure
from pricewatch.domain.pricing import BillingPeriod, PricingPlan, PricingSchema
from pricewatch.failure_codes import CrawlErrorCode
from pricewatch.logging_utils import log_event
from pricewatch.schemas.vision import VisionPricingPayload

logger = logging.getLogger(__name__)

PRICING_EXTRACTION_PROMPT = """You are reading a screenshot of a software pricing page.
Return ONLY a JSON object, no prose and no markdown, with this shape:

{
  "currency": "ISO 4217 code shown on the page, e.g. USD",
  "currencySymbol": "symbol as displayed, e.g. $",
  "plans": [
    {
      "name": "plan name exactly as shown",
      "price": "display price exactly as shown, e.g. $49/mo, Free, Contact us",
      "priceNumeric": 49,
      "period": "monthly | yearly | one-time | unknown",
      "credits": "usage allowance if shown, else null",
      "features": ["up to 10 listed features"],
      "isHighlighted": false,
      "isFree": false,
      "isEnterprise": false
    }
  ],
  "hasFreeTier": false,
  "billingOptions": ["monthly", "yearly"],
  "promotions": ["discount or trial offers shown"],
  "confidence": "high | medium | low"
}

Rules:
- priceNumeric is null for contact-sales or custom pricing.
- Report the price for the billing period currently selected on the page.
- isHighlighted is true for the plan marked popular, recommended or best value.
- If the page shows no pricing plans, return "plans": [].
"""

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

SleepFn = Callable[[float], Awaitable[None]]


class VisionModelAdapter(ABC):
    """Abstract base for vision-capable model clients."""

    @abstractmethod
    async def complete(self, *, image_base64: str, prompt: str) -> str:
        """Send one JPEG image plus instructions and return the raw text reply.

        Args:
            image_base64: Base64-encoded JPEG bytes.
            prompt: Extraction instructions.

        Returns:
            Raw string response from the model (expected to be JSON).
        """


class OpenAIVisionAdapter(VisionModelAdapter):
    """Adapter for OpenAI chat completions with image input."""

    def __init__(self, *, settings: VisionSettings, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings
        self._client = client or AsyncOpenAI(
            api_key=settings.api_key,
            timeout=settings.timeout_seconds,
        )

    async def complete(self, *, image_base64: str, prompt: str) -> str:
        response = await self._client.chat.completions.create(
            model=self._settings.model,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {
                            "type": "image_url",
                            "image_url": {
                                "url": f"data:image/jpeg;base64,{image_base64}",
                                "detail": "high",
                            },
                        },
                    ],
                }
            ],
            temperature=self._settings.temperature,
            max_tokens=self._settings.max_tokens,
        )
        return response.choices[0].message.content or ""


@dataclass(frozen=True)
class VisionExtraction:
    schema: PricingSchema
    region: str
    confidence: str
    billing_options: list[str] = field(default_factory=list)
    promotions: list[str] = field(default_factory=list)

    success = True


def compress_screenshot(image_bytes: bytes, *, max_width: int = 1200, quality: int = 75) -> bytes:
    """
    Downscale to `max_width` and re-encode as JPEG; the original is kept on failure.
    """

    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            converted = image.convert("RGB")
            if converted.width > max_width:
                height = round(converted.height * max_width / converted.width)
                converted = converted.resize((max_width, height), Image.Resampling.LANCZOS)
            buffer = io.BytesIO()
            converted.save(buffer, format="JPEG", quality=quality, optimize=True)
            return buffer.getvalue()
    except (OSError, UnidentifiedImageError, ValueError) as exc:
        log_event(logger, logging.WARNING, "screenshot_compression_failed", error=str(exc))
        return image_bytes


def _vision_failure(error: CrawlErrorCode, message: str) -> CrawlFailure:
    return CrawlFailure(error=error, message=message, source=CrawlerSource.VISION)


def parse_vision_response(
    content: str,
    *,
    region: RegionContext,
    source_url: str,
    captured_at: datetime | None = None,
) -> VisionExtraction | CrawlFailure:
    """
    Validate a model reply and convert it into a `PricingSchema`.
    """

    text = _CODE_FENCE.sub("", content.strip()).strip()
    if not text:
        return _vision_failure(CrawlErrorCode.AI_ERROR, "Empty response from vision model")

    try:
        payload = VisionPricingPayload.model_validate(json.loads(text))
    except json.JSONDecodeError as exc:
        return _vision_failure(CrawlErrorCode.AI_ERROR, f"Failed to parse model JSON: {exc}")
    except ValidationError as exc:
        return _vision_failure(CrawlErrorCode.AI_ERROR, f"Model JSON failed validation: {exc.error_count()} errors")

    if not payload.plans:
        return _vision_failure(CrawlErrorCode.NO_PRICING, "No pricing plans found in screenshot")

    plans = []
    for item in payload.plans:
        numeric = None if item.is_enterprise else item.price_numeric
        if numeric is None and not item.is_enterprise:
            numeric = parse_price_numeric(item.price)
        plans.append(
            PricingPlan(
                name=item.name,
                price_raw=item.price,
                price_numeric=numeric,
                billing=BillingPeriod.coerce(item.period),
                features=tuple(item.features[:10]),
                credits=item.credits,
                badges=("Popular",) if item.is_highlighted else (),
            )
        )

    highlighted = next((item.name for item in payload.plans if item.is_highlighted), None)
    schema = PricingSchema(
        plans=tuple(plans),
        has_free_tier=payload.has_free_tier or any(item.is_free for item in payload.plans),
        highlighted_plan=highlighted,
        currency=payload.currency.upper(),
        captured_at=captured_at or datetime.now(timezone.utc),
        source_url=source_url,
        extras={"confidence": payload.confidence, "promotions": list(payload.promotions)},
    )
    return VisionExtraction(
        schema=schema,
        region=region.key,
        confidence=payload.confidence,
        billing_options=list(payload.billing_options),
        promotions=list(payload.promotions),
    )


class VisionPricingExtractor:
    """
    Screenshot-and-ask pricing extraction.
    """

    def __init__(
        self,
        *,
        settings: VisionSettings,
        browser: BrowserHandle,
        adapter: VisionModelAdapter | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._browser = browser
        if adapter is None and settings.api_key:
            adapter = OpenAIVisionAdapter(settings=settings)
        self._adapter = adapter
        self._sleep = sleep

    async def extract(self, url: str, region: RegionContext) -> VisionExtraction | CrawlFailure:
        if self._adapter is None:
            return _vision_failure(CrawlErrorCode.AI_ERROR, "OPENAI_API_KEY is not configured")

        screenshot = await self._capture(url, region)
        if isinstance(screenshot, CrawlFailure):
            return screenshot

        compressed = compress_screenshot(
            screenshot,
            max_width=self._settings.max_image_width,
            quality=self._settings.compressed_quality,
        )
        image_base64 = base64.b64encode(compressed).decode("ascii")
        try:
            content = await self._adapter.complete(
                image_base64=image_base64,
                prompt=PRICING_EXTRACTION_PROMPT,
            )
        except OpenAIError as exc:
            return _vision_failure(CrawlErrorCode.AI_ERROR, f"Vision model request failed: {exc}")

        result = parse_vision_response(content, region=region, source_url=url)
        log_event(
            logger,
            logging.INFO if isinstance(result, VisionExtraction) else logging.WARNING,
            "vision_extraction_finished",
            url=url,
            region=region.key,
            success=result.success,
            error=None if isinstance(result, VisionExtraction) else result.error.value,
        )
        return result

    async def extract_multi_region(
        self,
        url: str,
        regions: Sequence[RegionContext],
    ) -> dict[str, VisionExtraction | CrawlFailure]:
        """
        Extract sequentially per region with a pause between model calls.
        """

        results: dict[str, VisionExtraction | CrawlFailure] = {}
        for index, region in enumerate(regions):
            if index > 0:
                await self._sleep(self._settings.region_delay_seconds)
            results[region.key] = await self.extract(url, region)
        return results

    async def _capture(self, url: str, region: RegionContext) -> bytes | CrawlFailure:
        try:
            async with self._browser.new_page(**browser_context_options(region)) as page:
                await page.goto(url, timeout=30_000, wait_until="networkidle")
                await page.wait_for_timeout(3000)
                await page.evaluate("window.scrollTo(0, document.body.scrollHeight / 3)")
                await page.wait_for_timeout(1000)
                await page.evaluate("window.scrollTo(0, 0)")
                await page.wait_for_timeout(500)
                return await page.screenshot(
                    full_page=True,
                    type="jpeg",
                    quality=self._settings.screenshot_quality,
                )
        except PlaywrightTimeoutError as exc:
            return _vision_failure(CrawlErrorCode.TIMEOUT, f"Navigation timed out: {exc}")
        except PlaywrightError as exc:
            return _vision_failure(CrawlErrorCode.UNKNOWN, f"Screenshot failed: {exc}")
