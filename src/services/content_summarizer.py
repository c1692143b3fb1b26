import logging
from typing import Optional

from pydantic import BaseModel

from src.models.analysis_models import UrlSummary, UrlSummaryBasic
from src.prompts.system_prompts import get_url_summary_prompt
from src.services.ai_provider import StructuredGenerationError, StructuredGenerator, get_structured_generator
from src.utils.config import Settings, get_settings
from src.utils.formatters import ResponseFormatter
from src.utils.validators import looks_like_bare_url

FALLBACK_CONTENT_CHARS = 2000


class ContentSummary(BaseModel):
    summary: str
    optimized_content: str
    trip_type: Optional[str] = None
    error: Optional[str] = None


class ContentSummarizer:
    """Turns extracted page text into a display summary and a detailed extract for analysis"""

    def __init__(self, generator: Optional[StructuredGenerator] = None, settings: Optional[Settings] = None):
        self._generator = generator
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(__name__)

    @property
    def generator(self) -> StructuredGenerator:
        """Backend selected by AI_PROVIDER; raises AIConfigurationError when unusable"""
        if self._generator is None:
            self._generator = get_structured_generator(self.settings)
        return self._generator

    def ensure_configured(self) -> StructuredGenerator:
        """Build the backend now so misconfiguration surfaces before any network call"""
        return self.generator

    async def summarize(self, content: str, title: Optional[str] = None, url: Optional[str] = None) -> ContentSummary:
        """Never raises on generation failure; the fallback carries an error instead.

        AIConfigurationError is not a generation failure and propagates.
        """
        try:
            result = await self.generator.generate(
                get_url_summary_prompt(content, title, url, include_trip_type=True),
                UrlSummary,
                "url_summary",
            )
            summary = ContentSummary(
                summary=result.data.summary,
                optimized_content=result.data.optimized_content,
                trip_type=result.data.trip_type,
            )
        except StructuredGenerationError as e:
            self.logger.warning(f"[summarizer] full schema failed, retrying with basic schema: {e}")
            try:
                result = await self.generator.generate(
                    get_url_summary_prompt(content, title, url, include_trip_type=False),
                    UrlSummaryBasic,
                    "url_summary_basic",
                )
                summary = ContentSummary(
                    summary=result.data.summary,
                    optimized_content=result.data.optimized_content,
                )
            except StructuredGenerationError as retry_error:
                self.logger.error(f"[summarizer] basic schema failed, using fallback: {retry_error}")
                return self._fallback(content, title, str(retry_error))

        if looks_like_bare_url(summary.summary):
            self.logger.error("[summarizer] model returned a URL as summary", extra={"summary": summary.summary})
            summary.summary = ResponseFormatter.readable_fallback(title=title, prefix="Information from")

        self.logger.info(
            "[summarizer] summary ready",
            extra={
                "summary_len": len(summary.summary),
                "optimized_len": len(summary.optimized_content),
                "trip_type": summary.trip_type,
            },
        )
        return summary

    def _fallback(self, content: str, title: Optional[str], error: str) -> ContentSummary:
        if title and title.strip():
            text = f"Trip information from: {title.strip()}"
        else:
            text = "Trip information from the provided link"

        optimized = content[:FALLBACK_CONTENT_CHARS]
        if len(content) > FALLBACK_CONTENT_CHARS:
            optimized += "..."

        return ContentSummary(summary=text, optimized_content=optimized, error=error)
