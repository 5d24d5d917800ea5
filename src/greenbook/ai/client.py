from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from greenbook.exceptions import ConfigError, DataSourceError

SYSTEM_PROMPT = (
    "You are GreenBookAAR, a specialized military training analysis system. Extract specific, substantive "
    "insights from After Action Reports (AARs). Never use generic language about 'trends were found'. "
    "Always focus on what was actually observed and documented."
)


@dataclass
class AIResult:
    content: str
    source: str  # "remote"
    cached: bool = False


class BaseAIClient:
    available = True

    def generate(self, prompt: str, context: str) -> AIResult:  # pragma: no cover - interface
        raise NotImplementedError


class OfflineAIClient(BaseAIClient):
    """
    Stand-in used when no generative service is configured.
    Callers check `available` and go straight to the rule-based analysis.
    """
    available = False

    def generate(self, prompt: str, context: str) -> AIResult:
        raise DataSourceError("AI analysis unavailable: no provider configured")


class HTTPAIClient(BaseAIClient):
    """
    Chat-completion client for OpenAI-compatible endpoints.

    The AAR prompt and the serialized AARs travel as one user message under a
    fixed system prompt, and the provider is asked for a JSON object. The raw
    message text is returned; validating it as a report is the caller's job.
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str],
        model: str,
        max_tokens: int = 1500,
        temperature: float = 0.4,
        timeout: int = 30,
    ):
        if not base_url:
            raise ConfigError("AI base_url must be configured for HTTP provider.")
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _payload(self, prompt: str, context: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": f"{prompt}\n\n{context}"},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "response_format": {"type": "json_object"},
        }

    @staticmethod
    def _message_content(data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise DataSourceError(f"Invalid AI response shape: {exc!r}") from exc
        if not isinstance(content, str) or not content.strip():
            raise DataSourceError("AI response contained no message content")
        return content

    def generate(self, prompt: str, context: str) -> AIResult:
        try:
            resp = requests.post(
                self.base_url,
                json=self._payload(prompt, context),
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise DataSourceError(f"AI provider unreachable: {exc}") from exc

        if resp.status_code == 429:
            raise DataSourceError("AI provider quota exceeded")
        if resp.status_code != 200:
            raise DataSourceError(f"AI provider error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise DataSourceError(f"AI response is not JSON: {exc}") from exc
        return AIResult(content=self._message_content(data), source="remote")


def build_ai_client(settings) -> BaseAIClient:
    provider = settings.ai.provider
    if not settings.ai.enabled or provider == "offline":
        return OfflineAIClient()
    if provider == "http":
        return HTTPAIClient(
            base_url=settings.ai.base_url,
            api_key=settings.ai.api_key,
            model=settings.ai.model,
            max_tokens=settings.ai.max_tokens,
            temperature=settings.ai.temperature,
        )
    raise ConfigError(f"Unknown AI provider: {provider}")
