"""
Structured generation backends.

Every backend takes a prompt and a pydantic schema and returns a validated
instance of that schema together with a JSON-serializable copy of the raw
provider response (kept for the trip debug view).
"""
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

from anthropic import AsyncAnthropic
from google import genai
from google.genai import types
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from src.utils.config import Settings


class AIConfigurationError(Exception):
    """Raised when the selected provider is unknown or has no credential"""
    pass


class StructuredGenerationError(Exception):
    """Raised when a call fails or its output does not match the schema"""

    def __init__(self, message: str, raw_response: Any = None):
        super().__init__(message)
        self.raw_response = raw_response


class GenerationResult(BaseModel):
    data: Any
    raw_response: Any = None
    provider: str
    model: str


JSON_SYSTEM_PROMPT = (
    "You are a precise assistant that replies with a single JSON object and nothing else. "
    "The object must conform to this JSON schema:\n{schema}"
)


def schema_for(schema: Type[BaseModel]) -> Dict[str, Any]:
    """JSON schema using field names (snake_case), which is what the prompts ask for"""
    return schema.model_json_schema(by_alias=False)


def extract_json_text(text: Optional[str]) -> Optional[str]:
    """Strip markdown fences and surrounding chatter from a model's JSON reply"""
    if not text:
        return None
    combined = text.strip()
    if not combined:
        return None
    if combined.startswith("```") or not combined.startswith("{"):
        start = combined.find('{')
        end = combined.rfind('}')
        if start != -1 and end != -1 and end > start:
            return combined[start:end + 1]
    return combined


def _to_serializable(response: Any) -> Any:
    """Convert an SDK response object to plain JSON types for logging/storage"""
    dump = getattr(response, "model_dump", None)
    if callable(dump):
        try:
            return dump(mode="json", exclude_none=True)
        except TypeError:
            return dump()
    if isinstance(response, (dict, list, str, int, float, bool)) or response is None:
        return response
    return {"repr": repr(response)}


class StructuredGenerator(ABC):
    """One structured-generation backend"""

    provider_name: str = "unknown"

    def __init__(self, model: str, temperature: float = 0.7):
        self.model = model
        self.temperature = temperature
        self.logger = logging.getLogger(__name__)

    @abstractmethod
    async def _complete(self, prompt: str, schema: Dict[str, Any], schema_name: str) -> tuple:
        """Return (payload, raw_response); payload is a dict or a JSON string"""
        pass

    async def generate(self, prompt: str, schema: Type[BaseModel], schema_name: str) -> GenerationResult:
        """Call the model and validate its output against schema.

        Raises StructuredGenerationError on any call, parse or validation failure.
        """
        self.logger.debug(
            f"[{self.provider_name}] generate called",
            extra={"schema": schema_name, "prompt_len": len(prompt), "model": self.model},
        )
        try:
            payload, raw = await self._complete(prompt, schema_for(schema), schema_name)
        except StructuredGenerationError:
            raise
        except Exception as e:
            self.logger.error(f"[{self.provider_name}] call failed: {e}")
            raise StructuredGenerationError(f"{self.provider_name} call failed: {e}") from e

        raw_serialized = _to_serializable(raw)
        self.logger.debug(f"[{self.provider_name}] raw response\n%s", json.dumps(raw_serialized, default=str)[:4000])

        if payload is None or isinstance(payload, str):
            text = extract_json_text(payload)
            if not text:
                raise StructuredGenerationError("Empty response from model", raw_response=raw_serialized)
            try:
                payload = json.loads(text)
            except json.JSONDecodeError as e:
                raise StructuredGenerationError(f"Model returned invalid JSON: {e}", raw_response=raw_serialized) from e

        if not isinstance(payload, dict):
            raise StructuredGenerationError("Model output is not a JSON object", raw_response=raw_serialized)

        try:
            data = schema.model_validate(payload)
        except ValidationError as e:
            raise StructuredGenerationError(
                f"Model output does not match {schema_name}: {e.error_count()} validation error(s)",
                raw_response=raw_serialized,
            ) from e

        self.logger.info(
            f"[{self.provider_name}] structured output parsed",
            extra={"schema": schema_name, "top_level_keys": list(payload.keys())[:20]},
        )
        return GenerationResult(data=data, raw_response=raw_serialized, provider=self.provider_name, model=self.model)


class OpenAIStructuredGenerator(StructuredGenerator):
    """Chat completions in JSON mode; the schema travels in the system message"""

    provider_name = "openai"

    def __init__(self, api_key: str, model: str, temperature: float = 0.7, client: Any = None):
        super().__init__(model, temperature)
        if client is None:
            client = AsyncOpenAI(api_key=api_key)
        self.client = client

    async def _complete(self, prompt: str, schema: Dict[str, Any], schema_name: str) -> tuple:
        response = await self.client.chat.completions.create(
            model=self.model,
            temperature=self.temperature,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": JSON_SYSTEM_PROMPT.format(schema=json.dumps(schema))},
                {"role": "user", "content": prompt},
            ],
        )
        content = response.choices[0].message.content if response.choices else None
        return content, response


class AnthropicStructuredGenerator(StructuredGenerator):
    """Messages API with a single forced tool whose input schema is the output schema"""

    provider_name = "anthropic"

    def __init__(self, api_key: str, model: str, temperature: float = 0.7, max_tokens: int = 4096, client: Any = None):
        super().__init__(model, temperature)
        self.max_tokens = max_tokens
        if client is None:
            client = AsyncAnthropic(api_key=api_key)
        self.client = client

    async def _complete(self, prompt: str, schema: Dict[str, Any], schema_name: str) -> tuple:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            tools=[{
                "name": schema_name,
                "description": f"Record the {schema_name} result",
                "input_schema": schema,
            }],
            tool_choice={"type": "tool", "name": schema_name},
            messages=[{"role": "user", "content": prompt}],
        )
        for block in getattr(response, "content", None) or []:
            if getattr(block, "type", None) == "tool_use":
                return block.input, response
        # No tool call; fall back to whatever text came back
        texts = [getattr(b, "text", "") for b in getattr(response, "content", None) or [] if getattr(b, "text", None)]
        return "\n".join(texts), response


class GeminiStructuredGenerator(StructuredGenerator):
    """Gemini on Vertex AI through google-genai, JSON response MIME type"""

    provider_name = "gemini"

    def __init__(self, project: str, location: str, model: str, temperature: float = 0.7, client: Any = None):
        super().__init__(model, temperature)
        if client is None:
            client = genai.Client(vertexai=True, project=project, location=location)
            self.logger.info(f"[gemini] Vertex AI client initialized for project {project}")
        self.client = client

    async def _complete(self, prompt: str, schema: Dict[str, Any], schema_name: str) -> tuple:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=[JSON_SYSTEM_PROMPT.format(schema=json.dumps(schema)), prompt],
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                response_mime_type="application/json",
                candidate_count=1,
            ),
        )
        return self._extract_response_text(response), response

    def _extract_response_text(self, response: Any) -> Optional[str]:
        """Text of the response, joining multi-part candidates when needed"""
        text_attr = getattr(response, "text", None)
        if isinstance(text_attr, str) and text_attr.strip():
            return text_attr

        parts_text = []
        for cand in getattr(response, "candidates", None) or []:
            content = getattr(cand, "content", None)
            for part in getattr(content, "parts", None) or []:
                t = getattr(part, "text", None)
                if t:
                    parts_text.append(t)
        return "\n".join(parts_text).strip() or None


def get_structured_generator(settings: Settings) -> StructuredGenerator:
    """Build the backend selected by AI_PROVIDER.

    Raises AIConfigurationError before any network call when the provider is
    unknown or its credential is missing.
    """
    provider = (settings.AI_PROVIDER or "openai").strip().lower()

    if provider in ("openai", "gpt"):
        if not settings.OPENAI_API_KEY:
            raise AIConfigurationError("OPENAI_API_KEY is not configured")
        return OpenAIStructuredGenerator(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            temperature=settings.AI_TEMPERATURE,
        )

    if provider in ("anthropic", "claude"):
        if not settings.ANTHROPIC_API_KEY:
            raise AIConfigurationError("ANTHROPIC_API_KEY is not configured")
        return AnthropicStructuredGenerator(
            api_key=settings.ANTHROPIC_API_KEY,
            model=settings.ANTHROPIC_MODEL,
            temperature=settings.AI_TEMPERATURE,
            max_tokens=settings.ANTHROPIC_MAX_TOKENS,
        )

    if provider in ("gemini", "vertex"):
        if not settings.GOOGLE_CLOUD_PROJECT:
            raise AIConfigurationError("GOOGLE_CLOUD_PROJECT is not configured")
        return GeminiStructuredGenerator(
            project=settings.GOOGLE_CLOUD_PROJECT,
            location=settings.GOOGLE_CLOUD_LOCATION,
            model=settings.GEMINI_MODEL,
            temperature=settings.AI_TEMPERATURE,
        )

    raise AIConfigurationError(f"Unknown AI_PROVIDER '{settings.AI_PROVIDER}'")
