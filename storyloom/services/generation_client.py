"""
Generation client for the Grok chat-completions API.

Wraps the OpenAI-compatible endpoint with the storytelling operations the
application offers: enhancing and summarizing chapters, weaving in new
thoughts, drafting chapters, book summaries, writing analysis and free chat.

A single instance is built at start-up and shared through
``app.state.generation_client``. Each public coroutine issues exactly one
chat-completion request; there are no retries.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

import httpx
import openai
from openai import AsyncOpenAI
from pydantic.alias_generators import to_camel

from storyloom.core.config import Settings, settings as default_settings
from storyloom.core.exceptions import ServiceUnavailableError
from storyloom.services.statistics import readability_score
from storyloom.utils.text import count_words

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"
CONNECTION_TEST_PROMPT = (
    'Hello, please respond with "Grok API is working!" to test the connection.'
)


class GenerationError(ServiceUnavailableError):
    """Base for failures talking to the generation API."""

    default_message = "AI service error"
    default_detail = "Grok API error"

    def __init__(self, message: Optional[str] = None, *, detail: Any = None) -> None:
        super().__init__(message, detail=detail or self.default_detail)


class GenerationUnavailableError(GenerationError):
    default_message = "Grok AI service is not available"
    default_detail = "Grok API key not configured"


class GenerationAuthError(GenerationError):
    default_detail = "Grok API authentication failed - check API key"


class GenerationRateLimitError(GenerationError):
    default_detail = "Grok API rate limit exceeded - please try again later"


class GenerationQuotaError(GenerationError):
    default_detail = "Grok API quota exceeded - check billing"


class GenerationTimeoutError(GenerationError):
    status_code = 504
    default_detail = "Grok API request timeout"


class GenerationUpstreamError(GenerationError):
    pass


def _camel_dict(result: Any) -> dict:
    return {to_camel(key): value for key, value in asdict(result).items()}


@dataclass
class EnhancementResult:
    enhanced_content: str
    suggestions: list[str] = field(default_factory=list)
    word_count: int = 0

    def to_dict(self) -> dict:
        return _camel_dict(self)


@dataclass
class IntegrationResult:
    integrated_content: str
    original_length: int
    new_length: int

    def to_dict(self) -> dict:
        return _camel_dict(self)


@dataclass
class SummaryResult:
    summary: str
    original_word_count: int
    summary_word_count: int

    def to_dict(self) -> dict:
        return _camel_dict(self)


@dataclass
class ChapterDraftResult:
    content: str
    word_count: int
    estimated_reading_time: int

    def to_dict(self) -> dict:
        return _camel_dict(self)


@dataclass
class BookSummaryResult:
    summary: str
    book_title: str
    chapter_count: int
    total_words: int

    def to_dict(self) -> dict:
        return _camel_dict(self)


@dataclass
class AnalysisResult:
    analysis: str
    word_count: int
    readability_score: int

    def to_dict(self) -> dict:
        return _camel_dict(self)


@dataclass
class ConnectionReport:
    success: bool
    timestamp: str
    model: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {key: value for key, value in _camel_dict(self).items() if value is not None}


SYSTEM_PROMPTS: dict[str, dict[str, str]] = {
    "en": {
        "enhance": (
            "You are a professional storytelling assistant. Enhance the provided chapter "
            "content while maintaining the original tone and style. Make it more engaging, "
            "descriptive, and well-structured. Keep the core story intact."
        ),
        "integrate": (
            "You are a storytelling assistant. Seamlessly integrate the new thought or idea "
            "into the existing content. Make it flow naturally as if it was always part of "
            "the story."
        ),
        "summarize": (
            "You are a professional summarizer. Create clear, engaging summaries that "
            "capture the essence and key points of the content."
        ),
        "generate": (
            "You are a creative writing assistant. Generate engaging, well-structured "
            "chapter content based on the provided outline and context."
        ),
        "email_summary": (
            "You are a professional book summarizer. Create compelling email summaries "
            "that would interest readers and provide clear progress updates."
        ),
        "analyze": (
            "You are a professional writing coach. Provide constructive, specific feedback "
            "to help improve the writing quality and storytelling."
        ),
    },
    "de": {
        "enhance": (
            "Du bist ein professioneller Geschichtenerzähler-Assistent. Verbessere den "
            "bereitgestellten Kapitelinhalt, während du den ursprünglichen Ton und Stil "
            "beibehältst. Mache ihn ansprechender, beschreibender und gut strukturiert."
        ),
        "integrate": (
            "Du bist ein Geschichtenerzähler-Assistent. Integriere den neuen Gedanken oder "
            "die Idee nahtlos in den bestehenden Inhalt. Lass es natürlich fließen, als "
            "wäre es schon immer Teil der Geschichte gewesen."
        ),
        "summarize": (
            "Du bist ein professioneller Zusammenfasser. Erstelle klare, ansprechende "
            "Zusammenfassungen, die das Wesentliche und die Kernpunkte des Inhalts erfassen."
        ),
        "generate": (
            "Du bist ein kreativer Schreibassistent. Erstelle ansprechende, gut "
            "strukturierte Kapitelinhalte basierend auf der bereitgestellten Gliederung "
            "und dem Kontext."
        ),
        "email_summary": (
            "Du bist ein professioneller Buchzusammenfasser. Erstelle überzeugende "
            "E-Mail-Zusammenfassungen, die Leser interessieren und klare "
            "Fortschrittsupdates bieten."
        ),
        "analyze": (
            "Du bist ein professioneller Schreibcoach. Gib konstruktives, spezifisches "
            "Feedback, um die Schreibqualität und das Geschichtenerzählen zu verbessern."
        ),
    },
    "es": {
        "enhance": (
            "Eres un asistente profesional de narración. Mejora el contenido del capítulo "
            "proporcionado manteniendo el tono y estilo original. Hazlo más atractivo, "
            "descriptivo y bien estructurado."
        ),
        "integrate": (
            "Eres un asistente de narración. Integra perfectamente el nuevo pensamiento o "
            "idea en el contenido existente. Haz que fluya naturalmente como si siempre "
            "hubiera sido parte de la historia."
        ),
        "summarize": (
            "Eres un resumidor profesional. Crea resúmenes claros y atractivos que capturen "
            "la esencia y puntos clave del contenido."
        ),
        "generate": (
            "Eres un asistente de escritura creativa. Genera contenido de capítulo "
            "atractivo y bien estructurado basado en el esquema y contexto proporcionados."
        ),
        "email_summary": (
            "Eres un resumidor profesional de libros. Crea resúmenes de email convincentes "
            "que interesen a los lectores y proporcionen actualizaciones claras del progreso."
        ),
        "analyze": (
            "Eres un coach profesional de escritura. Proporciona retroalimentación "
            "constructiva y específica para ayudar a mejorar la calidad de escritura y "
            "narrativa."
        ),
    },
}

CHAT_PERSONAS = {
    "en": (
        "You are Grok, a helpful AI assistant for creative writing and storytelling. "
        "Respond in English."
    ),
    "de": (
        "Du bist Grok, ein hilfreicher KI-Assistent für kreatives Schreiben und "
        "Geschichtenerzählen. Antworte auf Deutsch."
    ),
    "es": (
        "Eres Grok, un asistente de IA útil para escritura creativa y narración. "
        "Responde en español."
    ),
}

SUMMARY_LENGTHS = {
    "short": "1-2 sentences",
    "medium": "1 paragraph (3-4 sentences)",
    "long": "2-3 paragraphs",
}


def get_system_prompt(kind: str, language: Optional[str]) -> str:
    """System prompt for an operation; unsupported languages use English."""
    prompts = SYSTEM_PROMPTS.get(language or DEFAULT_LANGUAGE, SYSTEM_PROMPTS[DEFAULT_LANGUAGE])
    return prompts.get(kind) or SYSTEM_PROMPTS[DEFAULT_LANGUAGE][kind]


def extract_suggestions(content: str) -> list[str]:
    """Cheap heuristics over generated text, surfaced as editor hints."""
    suggestions = []
    if "consider" in content:
        suggestions.append("Content includes suggestions for further development")
    if len(content) < 500:
        suggestions.append("Chapter could be expanded for better depth")
    if '"' not in content and len(content) > 200:
        suggestions.append("Consider adding dialogue to make the chapter more dynamic")
    return suggestions


def _optional_line(label: str, value: Optional[str]) -> str:
    return f"{label}: {value}" if value else ""


def build_enhancement_prompt(
    title: str,
    content: Optional[str],
    *,
    book_title: Optional[str] = None,
    genre: Optional[str] = None,
    previous_chapter: Optional[str] = None,
) -> str:
    previous = (
        f"Previous Chapter Context: {previous_chapter[:200]}..." if previous_chapter else ""
    )
    return f"""Please enhance this chapter content:

Chapter Title: {title}
{_optional_line("Book", book_title)}
{_optional_line("Genre", genre)}

Current Content:
{content or "No content yet - please create engaging content based on the title."}

{previous}

Requirements:
- Keep the original story and characters intact
- Enhance descriptions and dialogue
- Improve pacing and flow
- Add sensory details where appropriate
- Maintain consistent tone
- Target 800-1200 words"""


def build_integration_prompt(current_content: str, new_thought: str, tone: str) -> str:
    return f"""Please integrate this new thought into the existing content:

Existing Content:
{current_content}

New Thought to Integrate:
"{new_thought}"

Requirements:
- Seamlessly blend the new thought into the story
- Maintain narrative flow
- Keep the {tone} tone
- Ensure logical placement
- Expand naturally around the new idea"""


def build_summary_prompt(content: str, length: str) -> str:
    guide = SUMMARY_LENGTHS.get(length, SUMMARY_LENGTHS["medium"])
    return f"""Please create a {length} summary of this content:

{content}

Summary length: {guide}
Focus on key plot points, character development, and important themes."""


def build_generation_prompt(
    title: str,
    outline: str,
    *,
    book_title: Optional[str] = None,
    genre: Optional[str] = None,
    style: str = "narrative",
) -> str:
    return f"""Please write a complete chapter based on this outline:

Chapter Title: {title}
{_optional_line("Book", book_title)}
{_optional_line("Genre", genre)}
Writing Style: {style}

Chapter Outline:
{outline}

Requirements:
- Write a complete, engaging chapter (800-1200 words)
- Include dialogue and character development
- Create vivid descriptions and scenes
- Maintain consistent pacing
- End with a compelling transition or hook"""


def build_book_summary_prompt(chapters: list[dict], *, title: str, genre: Optional[str]) -> str:
    chapters_text = "\n\n".join(
        f"Chapter {chapter['chapter_number']}: {chapter['title']}\n"
        f"{chapter.get('content') or 'No content yet'}"
        for chapter in chapters
    )
    return f"""Create a comprehensive summary of this book for email sharing:

Book Title: {title}
Genre: {genre or "Fiction"}
Total Chapters: {len(chapters)}

Chapters:
{chapters_text}

Please provide:
1. A compelling book summary (2-3 paragraphs)
2. Key themes and highlights
3. Progress overview
4. Next steps or recommendations"""


def build_analysis_prompt(content: str, focus: str) -> str:
    return f"""Please analyze this writing and provide constructive feedback:

Content to analyze:
{content}

Focus areas: {focus}

Please provide:
1. Overall assessment
2. Strengths
3. Areas for improvement
4. Specific suggestions
5. Style recommendations"""


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class GenerationClient:
    """Async client for the storytelling operations backed by Grok."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = default_settings.GROK_BASE_URL,
        model: str = default_settings.GROK_MODEL,
        max_tokens: int = default_settings.GROK_MAX_TOKENS,
        temperature: float = default_settings.GROK_TEMPERATURE,
        timeout: float = default_settings.GROK_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client: Optional[AsyncOpenAI] = None
        if api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=0,
                http_client=http_client,
            )
        logger.info(
            "Generation client initialized (available=%s, model=%s, max_tokens=%s)",
            self.is_available,
            self.model,
            self.max_tokens,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: Optional[httpx.AsyncClient] = None
    ) -> "GenerationClient":
        return cls(
            settings.GROK_API_KEY,
            base_url=settings.GROK_BASE_URL,
            model=settings.GROK_MODEL,
            max_tokens=settings.GROK_MAX_TOKENS,
            temperature=settings.GROK_TEMPERATURE,
            timeout=settings.GROK_TIMEOUT_SECONDS,
            http_client=http_client,
        )

    @property
    def is_available(self) -> bool:
        return self._client is not None

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def _complete(
        self,
        messages: Iterable[dict],
        *,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Send one chat-completion request and return the trimmed reply text."""
        if self._client is None:
            raise GenerationUnavailableError()

        messages = list(messages)
        logger.info("Calling generation API with %d messages", len(messages))
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens or self.max_tokens,
                temperature=self.temperature if temperature is None else temperature,
            )
        except openai.AuthenticationError as exc:
            raise GenerationAuthError() from exc
        except openai.RateLimitError as exc:
            raise GenerationRateLimitError() from exc
        except openai.APITimeoutError as exc:
            raise GenerationTimeoutError() from exc
        except openai.APIStatusError as exc:
            if exc.status_code == 402:
                raise GenerationQuotaError() from exc
            raise GenerationUpstreamError(detail=f"Grok API error: {exc.message}") from exc
        except openai.APIConnectionError as exc:
            raise GenerationUpstreamError(detail=f"Grok API error: {exc.message}") from exc
        except openai.OpenAIError as exc:
            raise GenerationUpstreamError(detail=f"Grok API error: {exc}") from exc

        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None) if message else None
        if not content or not content.strip():
            raise GenerationUpstreamError(detail="Invalid response from Grok API")

        content = content.strip()
        logger.info("Generation API response received (%d characters)", len(content))
        return content

    async def enhance_content(
        self,
        title: str,
        current_content: Optional[str],
        *,
        book_title: Optional[str] = None,
        genre: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
        previous_chapter: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> EnhancementResult:
        prompt = build_enhancement_prompt(
            title,
            current_content,
            book_title=book_title,
            genre=genre,
            previous_chapter=previous_chapter,
        )
        response = await self._complete(
            [
                {"role": "system", "content": get_system_prompt("enhance", language)},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return EnhancementResult(
            enhanced_content=response,
            suggestions=extract_suggestions(response),
            word_count=count_words(response),
        )

    async def integrate_thought(
        self,
        current_content: str,
        new_thought: str,
        *,
        language: str = DEFAULT_LANGUAGE,
        tone: str = "narrative",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> IntegrationResult:
        response = await self._complete(
            [
                {"role": "system", "content": get_system_prompt("integrate", language)},
                {
                    "role": "user",
                    "content": build_integration_prompt(current_content, new_thought, tone),
                },
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return IntegrationResult(
            integrated_content=response,
            original_length=count_words(current_content),
            new_length=count_words(response),
        )

    async def summarize_content(
        self,
        content: str,
        *,
        language: str = DEFAULT_LANGUAGE,
        length: str = "medium",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> SummaryResult:
        response = await self._complete(
            [
                {"role": "system", "content": get_system_prompt("summarize", language)},
                {"role": "user", "content": build_summary_prompt(content, length)},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return SummaryResult(
            summary=response,
            original_word_count=count_words(content),
            summary_word_count=count_words(response),
        )

    async def generate_chapter(
        self,
        title: str,
        outline: str,
        *,
        book_title: Optional[str] = None,
        genre: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
        style: str = "narrative",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ChapterDraftResult:
        prompt = build_generation_prompt(
            title, outline, book_title=book_title, genre=genre, style=style
        )
        response = await self._complete(
            [
                {"role": "system", "content": get_system_prompt("generate", language)},
                {"role": "user", "content": prompt},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        words = count_words(response)
        return ChapterDraftResult(
            content=response,
            word_count=words,
            estimated_reading_time=math.ceil(words / 200),
        )

    async def generate_book_summary(
        self,
        chapters: list[dict],
        *,
        title: str,
        genre: Optional[str] = None,
        language: str = DEFAULT_LANGUAGE,
    ) -> BookSummaryResult:
        """Summarize a whole book for sharing by email.

        ``chapters`` are plain dicts with ``chapter_number``, ``title``,
        ``content`` and ``word_count`` keys, in reading order.
        """
        response = await self._complete(
            [
                {"role": "system", "content": get_system_prompt("email_summary", language)},
                {
                    "role": "user",
                    "content": build_book_summary_prompt(chapters, title=title, genre=genre),
                },
            ]
        )
        return BookSummaryResult(
            summary=response,
            book_title=title,
            chapter_count=len(chapters),
            total_words=sum(chapter.get("word_count") or 0 for chapter in chapters),
        )

    async def analyze_writing(
        self,
        content: str,
        *,
        language: str = DEFAULT_LANGUAGE,
        focus: str = "general",
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> AnalysisResult:
        response = await self._complete(
            [
                {"role": "system", "content": get_system_prompt("analyze", language)},
                {"role": "user", "content": build_analysis_prompt(content, focus)},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return AnalysisResult(
            analysis=response,
            word_count=count_words(content),
            readability_score=readability_score(content),
        )

    async def chat(
        self,
        message: str,
        *,
        language: str = DEFAULT_LANGUAGE,
        context: Optional[str] = None,
    ) -> str:
        messages = [
            {"role": "system", "content": CHAT_PERSONAS.get(language, CHAT_PERSONAS["en"])}
        ]
        if context:
            messages.append({"role": "assistant", "content": f"Context: {context}"})
        messages.append({"role": "user", "content": message})
        return await self._complete(messages)

    async def test_connection(self) -> ConnectionReport:
        """Round-trip a trivial prompt. Failures are reported, never raised."""
        if not self.is_available:
            return ConnectionReport(
                success=False, error="API key not configured", timestamp=_utc_timestamp()
            )

        try:
            response = await self._complete(
                [
                    {"role": "system", "content": "You are a helpful assistant."},
                    {"role": "user", "content": CONNECTION_TEST_PROMPT},
                ]
            )
        except GenerationError as exc:
            logger.warning("Generation API connection test failed: %s", exc.detail)
            return ConnectionReport(
                success=False, error=str(exc.detail), timestamp=_utc_timestamp()
            )

        return ConnectionReport(
            success=True, message=response, model=self.model, timestamp=_utc_timestamp()
        )
