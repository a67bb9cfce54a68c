import logging
from datetime import datetime, timedelta
from typing import Any, Optional, Sequence

import httpx

from moodtrack.config import Settings
from moodtrack.errors import ExternalServiceError
from moodtrack.models.mood import Insight, MoodEntry, ensure_aware, utc_now
from moodtrack.services.trend_service import analyze_trend, classify_mood, filter_window

logger = logging.getLogger(__name__)

FALLBACK_INSIGHT = "Unable to generate insights at this time."

SYSTEM_INSTRUCTION = (
    "You are a supportive mood tracking assistant. Provide brief, encouraging "
    "insights and personalized recommendations based on the user's mood. Keep "
    "your response concise and focused on emotional well-being."
)


def build_user_prompt(entry: MoodEntry) -> str:
    feeling = f"I'm feeling {entry.mood_label.lower()}"
    if entry.note:
        feeling += f" and here's why: {entry.note}"
    else:
        feeling += "."
    return (
        f"{feeling} Please provide insights and suggestions for maintaining "
        f"or improving my emotional well-being."
    )


def extract_completion_text(data: Any) -> str:
    """Pull choices[0].message.content out of a chat-completion body."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise ExternalServiceError(f"Malformed completion response: {e!r}") from e
    if not isinstance(content, str) or not content.strip():
        raise ExternalServiceError("Completion response has no text")
    return content.strip()


def describe_window(window_days: int) -> str:
    return "the past week" if window_days == 7 else f"the past {window_days} days"


class InsightGenerator:
    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client
        self._owns_client = client is None
        self.configuration_error: Optional[str] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.settings.ai_timeout)
        return self._client

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
        self._client = None

    def build_request(self, entry: MoodEntry) -> dict:
        return {
            "model": self.settings.openai_model,
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": build_user_prompt(entry)},
            ],
            "temperature": self.settings.ai_temperature,
            "max_tokens": self.settings.ai_max_tokens,
        }

    async def generate_entry_insight(self, entry: MoodEntry) -> str:
        """One completion call for a new entry; any failure yields FALLBACK_INSIGHT."""
        api_key = self.settings.openai_api_key
        if not api_key:
            self._report_missing_key()
            return FALLBACK_INSIGHT

        try:
            return await self._request_completion(entry, api_key)
        except ExternalServiceError as e:
            logger.warning("AI insight unavailable: %s", e.message)
        except Exception:
            logger.exception("Unexpected error while generating AI insight")
        return FALLBACK_INSIGHT

    async def _request_completion(self, entry: MoodEntry, api_key: str) -> str:
        try:
            response = await self.client.post(
                self.settings.openai_url,
                headers={
                    "Content-Type": "application/json",
                    "Authorization": f"Bearer {api_key}",
                },
                json=self.build_request(entry),
                timeout=self.settings.ai_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ExternalServiceError(
                f"Completion endpoint returned {e.response.status_code}",
                details={"status": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(f"Completion request failed: {e!r}") from e
        except ValueError as e:
            raise ExternalServiceError(f"Completion response is not JSON: {e}") from e

        return extract_completion_text(data)

    def _report_missing_key(self) -> None:
        if self.configuration_error is None:
            self.configuration_error = "OPENAI_API_KEY is not set; AI insights are disabled"
            logger.warning(self.configuration_error)

    # --- insight records ---

    @staticmethod
    def build_entry_insight(
        entry: MoodEntry, ai_response: Optional[str], now: Optional[datetime] = None
    ) -> Insight:
        now = ensure_aware(now) if now is not None else utc_now()
        return Insight(
            id=now.isoformat(),
            timestamp=now,
            mood_entry=entry,
            analysis=f"Mood: {entry.mood_label}",
            recommendations=[],
            mood_trend=classify_mood(entry.mood_value),
            ai_response=ai_response,
        )

    def generate_period_insight(
        self,
        entries: Sequence[MoodEntry],
        window_days: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Insight]:
        """Summarize the trailing window, or None when there is too little data.

        `entries` is the whole collection, newest first; the minimum entry count
        applies to it, not to the window.
        """
        if len(entries) < self.settings.min_entries_for_insight:
            return None

        if window_days is None:
            window_days = self.settings.insight_window_days
        now = ensure_aware(now) if now is not None else utc_now()
        period_start = now - timedelta(days=window_days)

        summary = analyze_trend(entries, period_start, now)
        if summary is None:
            return None

        newest = max(filter_window(entries, period_start, now), key=lambda e: e.timestamp)
        return Insight(
            id=now.isoformat(),
            timestamp=now,
            mood_entry=newest,
            analysis=(
                f"Your mood has been {summary.trend.value} over {describe_window(window_days)}. "
                f"Average mood rating: {summary.mean_value:.1f}"
            ),
            recommendations=summary.recommendations,
            mood_trend=summary.trend,
            period_start=period_start,
            period_end=now,
        )
