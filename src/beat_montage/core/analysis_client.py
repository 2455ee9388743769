"""
Key moment analysis via Gemini generateContent (REST).

The model watches the source video and answers with a JSON array of
moments, each carrying at least ``start_timestamp`` and ``end_timestamp``.
The raw text is returned untouched; validation lives in clip_pool.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import requests

from ..config import AnalysisConfig, get_settings
from ..exceptions import AnalysisFailure
from ..logger import logger


DEFAULT_SYSTEM_PROMPT = """You are a sports video editor.

Watch the whole video and pick the key moments a highlight reel must show.

You MUST respond with ONLY a valid JSON array, one object per moment:
[
  {
    "start_timestamp": "HH:MM:SS",
    "end_timestamp": "HH:MM:SS",
    "description": "one short sentence"
  }
]

Rules:
- Timestamps are positions in this video, start before end.
- Moments do not overlap and are listed in chronological order.
"""

USER_PROMPT = "Analyze this video and identify key moments with timestamps and descriptions."


class GeminiAnalysisClient:
    """Calls the video understanding model for one source at a time."""

    def __init__(self, config: Optional[AnalysisConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or get_settings().analysis
        self.session = session or requests.Session()
        self.system_prompt = self._load_system_prompt()

    def _load_system_prompt(self) -> str:
        prompt_file = self.config.system_prompt_file
        if prompt_file:
            try:
                return Path(prompt_file).read_text(encoding="utf-8")
            except OSError as e:
                logger.warning(f"Could not read system prompt {prompt_file}: {e}; using built-in prompt")
        return DEFAULT_SYSTEM_PROMPT

    def source_uri_for(self, source_id: str) -> str:
        """Cloud Storage URI of the 480p source the model reads."""
        return f"gs://{self.config.bucket}/source_{source_id}_480p.mp4"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.access_token:
            headers["Authorization"] = f"Bearer {self.config.access_token}"
        elif self.config.api_key:
            headers["X-goog-api-key"] = self.config.api_key
        return headers

    def build_payload(self, source_uri: str, duration_hint: Optional[float] = None) -> Dict[str, Any]:
        prompt = USER_PROMPT
        if duration_hint:
            prompt += f" The video is {duration_hint:.0f} seconds long."
        return {
            "systemInstruction": {"parts": [{"text": self.system_prompt}]},
            "contents": [{
                "role": "user",
                "parts": [
                    {"fileData": {"fileUri": source_uri, "mimeType": "video/mp4"}},
                    {"text": prompt},
                ],
            }],
            "generationConfig": {
                "temperature": 0,
                "topP": 0.95,
                "topK": 40,
                "maxOutputTokens": 8192,
                "responseMimeType": "application/json",
            },
        }

    def analyze(self, source_uri: str, duration_hint: Optional[float] = None) -> str:
        """
        Ask the model for key moments of a video.

        Returns:
            Raw response text (expected to be a JSON array)

        Raises:
            AnalysisFailure: on transport errors, non-200 responses or an empty answer
        """
        logger.info(f"🔎 Requesting key moments for {source_uri}")
        try:
            response = self.session.post(
                self.config.generate_content_url,
                json=self.build_payload(source_uri, duration_hint),
                headers=self._headers(),
                timeout=self.config.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise AnalysisFailure(f"analysis request timed out ({self.config.timeout}s)") from e
        except requests.exceptions.RequestException as e:
            raise AnalysisFailure(f"analysis request failed: {e}") from e

        if response.status_code != 200:
            try:
                error_msg = response.json().get("error", {}).get("message", response.text)
            except ValueError:
                error_msg = response.text
            raise AnalysisFailure(f"analysis backend returned {response.status_code}: {error_msg}")

        try:
            result = response.json()
            text = result["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise AnalysisFailure("analysis backend returned an unexpected response shape") from e

        if not isinstance(text, str):
            raise AnalysisFailure("analysis backend returned no text")
        logger.debug(f"Analysis response for {source_uri}: {text[:500]}")
        return text
