"""
Analysis Client - AI classification of new tickets

Wraps the Gemini text model behind a single `analyze` call that never fails
outward:
- a successful response is parsed and projected field-by-field onto
  AnalysisResult, substituting defaults for anything out of range
- any provider failure (missing key, timeout, network, non-JSON text) is
  replaced by a deterministic keyword-based analysis
"""
import asyncio
import json
from typing import Any, Callable, Dict, List, Optional

from ticketflow.config import get_settings
from ticketflow.models.schemas import (
    MAX_REQUIRED_SKILLS,
    MAX_SUGGESTED_TAGS,
    MAX_SUMMARY_LENGTH,
    AnalysisResult,
    Category,
    Priority,
)
from ticketflow.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()

DEFAULT_SUMMARY = "AI analysis summary not available"

HIGH_PRIORITY_KEYWORDS = ("urgent", "critical", "down", "error", "security", "hack")
LOW_PRIORITY_KEYWORDS = ("request", "question", "help")

# keyword -> tag/skill, in match order
SKILL_KEYWORDS = {
    "react": "React",
    "node": "Node.js",
    "javascript": "JavaScript",
    "database": "Database",
    "api": "API",
    "frontend": "Frontend",
    "backend": "Backend",
    "mobile": "Mobile",
    "web": "Web Development",
}
FALLBACK_MAX_TAGS = 5
FALLBACK_MAX_SKILLS = 3

PROMPT_TEMPLATE = """
Analyze this support ticket and provide the following information in JSON format:

Ticket Details:
- Subject: "{subject}"
- Description: "{description}"
- User Category: "{category}"

Please analyze and return ONLY a valid JSON object with these fields:
{{
  "aiCategory": "The most appropriate category for this ticket",
  "aiPriority": "low, medium, or high based on urgency and impact",
  "aiSummary": "A brief 2-3 sentence summary of the issue",
  "suggestedTags": ["array", "of", "relevant", "tags"],
  "requiredSkills": ["array", "of", "technical", "skills", "needed"]
}}

Allowed categories: {categories}

Consider these factors:
- Priority: high for critical system issues, security problems, or service outages
- Priority: medium for feature requests, account issues, or moderate bugs
- Priority: low for general questions, documentation requests, or minor issues
- Tags should be technical keywords related to the issue
- Required skills should match common technical competencies
"""

try:
    import google.generativeai as genai
    GENAI_AVAILABLE = True
except ImportError:
    GENAI_AVAILABLE = False
    logger.warning("google-generativeai not available, ticket analysis will use keyword fallback")


def extract_json(text: str) -> str:
    """
    Pull the JSON object out of a model response

    Strips Markdown code fences and keeps everything from the first "{" to
    the last "}".

    Raises:
        ValueError: If no object boundaries are present
    """
    cleaned = text.replace("```json", "").replace("```", "")
    start = cleaned.find("{")
    end = cleaned.rfind("}") + 1

    if start == -1 or end == 0:
        raise ValueError("No JSON object found in response")

    return cleaned[start:end]


def _string_list(value: Any, limit: int) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value[:limit] if isinstance(item, str)]


def validate_analysis(raw: Dict[str, Any]) -> AnalysisResult:
    """
    Project a loosely typed provider payload onto AnalysisResult

    Args:
        raw: Parsed JSON object from the provider

    Returns:
        AnalysisResult with every field coerced into range
    """
    if not isinstance(raw, dict):
        raw = {}

    categories = {c.value for c in Category}
    priorities = {p.value for p in Priority}

    category = raw.get("aiCategory")
    priority = raw.get("aiPriority")
    summary = raw.get("aiSummary")

    if isinstance(summary, str) and summary.strip():
        summary = summary[:MAX_SUMMARY_LENGTH]
    else:
        summary = DEFAULT_SUMMARY

    return AnalysisResult(
        category=Category(category) if isinstance(category, str) and category in categories else Category.OTHER,
        priority=Priority(priority) if isinstance(priority, str) and priority in priorities else Priority.MEDIUM,
        summary=summary,
        suggested_tags=_string_list(raw.get("suggestedTags"), MAX_SUGGESTED_TAGS),
        required_skills=_string_list(raw.get("requiredSkills"), MAX_REQUIRED_SKILLS),
    )


def fallback_analysis(subject: str, description: str, category: Optional[str]) -> AnalysisResult:
    """
    Keyword-based analysis used whenever the provider cannot be used

    Args:
        subject: Ticket subject
        description: Ticket description
        category: User-supplied category

    Returns:
        Deterministic AnalysisResult for the same inputs
    """
    subject = subject or ""
    text = f"{subject} {description or ''}".lower()

    if any(keyword in text for keyword in HIGH_PRIORITY_KEYWORDS):
        priority = Priority.HIGH
    elif any(keyword in text for keyword in LOW_PRIORITY_KEYWORDS):
        priority = Priority.LOW
    else:
        priority = Priority.MEDIUM

    tags = [tag for keyword, tag in SKILL_KEYWORDS.items() if keyword in text]

    categories = {c.value for c in Category}
    summary = f"Ticket regarding {subject.lower()}. Requires technical assistance."

    return AnalysisResult(
        category=Category(category) if category in categories else Category.GENERAL_INQUIRY,
        priority=priority,
        summary=summary[:MAX_SUMMARY_LENGTH],
        suggested_tags=tags[:FALLBACK_MAX_TAGS],
        required_skills=tags[:FALLBACK_MAX_SKILLS],
    )


class AnalysisClient:
    """
    Ticket analysis backed by Gemini

    Args:
        provider: Optional callable (prompt) -> response text. Defaults to the
            configured Gemini model; tests inject their own.
        timeout: Seconds to wait for the provider
    """

    def __init__(
        self,
        provider: Optional[Callable[[str], str]] = None,
        timeout: Optional[float] = None
    ):
        self.timeout = timeout if timeout is not None else settings.analysis_timeout_seconds
        self.provider = provider or self._default_provider()

    def _default_provider(self) -> Optional[Callable[[str], str]]:
        if not GENAI_AVAILABLE:
            return None
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY not set, ticket analysis will use keyword fallback")
            return None

        genai.configure(api_key=settings.gemini_api_key)
        model = genai.GenerativeModel(settings.gemini_model)

        def _generate(prompt: str) -> str:
            response = model.generate_content(
                prompt,
                generation_config=genai.GenerationConfig(
                    temperature=0.2,
                    max_output_tokens=1024,
                    response_mime_type="application/json",
                ),
            )
            return response.text

        return _generate

    def build_prompt(self, subject: str, description: str, category: Optional[str]) -> str:
        return PROMPT_TEMPLATE.format(
            subject=subject,
            description=description,
            category=category or "",
            categories=", ".join(c.value for c in Category),
        )

    async def analyze(self, subject: str, description: str, category: Optional[str] = None) -> AnalysisResult:
        """
        Classify a ticket

        Returns:
            AnalysisResult; never raises
        """
        if self.provider is None:
            return fallback_analysis(subject, description, category)

        prompt = self.build_prompt(subject, description, category)

        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self.provider, prompt),
                timeout=self.timeout
            )
            analysis = validate_analysis(json.loads(extract_json(text)))
            logger.info(
                f"AI analysis complete: category={analysis.category.value}, "
                f"priority={analysis.priority.value}, skills={analysis.required_skills}"
            )
            return analysis

        except asyncio.TimeoutError:
            logger.error(f"Ticket analysis timed out after {self.timeout}s, using fallback")
        except Exception as e:
            logger.error(f"Ticket analysis failed, using fallback: {e}")

        return fallback_analysis(subject, description, category)
