import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncAzureOpenAI

from ..core.config import settings
from ..proctoring.interfaces import ClassifierError
from ..proctoring.types import BehaviorVerdict

logger = logging.getLogger(__name__)

BEHAVIOR_ANALYSIS_PROMPT = """
You are an AI proctor analyzing a student's webcam feed during an exam. Your primary goal is to detect behaviors indicative of cheating.

Analyze the provided webcam snapshot and determine if the student is exhibiting any suspicious behavior.

Strictly consider the following as suspicious activities:
1. Multiple Faces: more than one distinct face is clearly visible in the webcam feed.
2. Unauthorized Sounds: the student is visibly talking or whispering, or another person is speaking to them. Brief, quiet self-muttering is acceptable.
3. Looking Away: the student's gaze is consistently directed away from the screen, suggesting notes, another device, or another person.
4. Use of Unauthorized Devices: any visual evidence of a cell phone, tablet, smartwatch, or other electronic device not permitted for the exam.
5. Leaving the View: the student's face is partially or fully out of the camera's view.

If ANY of these activities is detected, set "isSuspicious" to true and give a clear, concise "reason" naming the observed activity,
for example "Multiple faces detected in the webcam feed." or "Student was observed talking."
Otherwise set "isSuspicious" to false and use a neutral reason such as "No suspicious behavior detected."

Return ONLY valid JSON in this EXACT format with no extra text:
{"isSuspicious": false, "reason": "No suspicious behavior detected."}
"""


class BehaviorAnalysisService:
    """Behavior classifier backed by an Azure OpenAI vision-capable chat deployment."""

    def __init__(self, client: Optional[AsyncAzureOpenAI] = None, deployment: Optional[str] = None):
        self.client: Optional[AsyncAzureOpenAI] = client or self._initialize_client()
        self.deployment = deployment or settings.azure_openai_deployment

    def _initialize_client(self) -> Optional[AsyncAzureOpenAI]:
        if not settings.azure_openai_endpoint or not settings.azure_openai_api_key:
            logger.warning("Azure OpenAI not configured (endpoint/api_key missing). Behavior analysis disabled.")
            return None
        return AsyncAzureOpenAI(
            api_version=settings.azure_openai_api_version,
            azure_endpoint=settings.azure_openai_endpoint,
            api_key=settings.azure_openai_api_key,
        )

    def _build_messages(self, frame_data_uri: str, elapsed_seconds: int, question_number: int) -> List[Dict[str, Any]]:
        context = (
            "Exam Session Context:\n"
            f"Time elapsed: {elapsed_seconds} seconds\n"
            f"Current Question: {question_number}\n"
            "Based only on the webcam snapshot and the criteria above, determine if the examinee is exhibiting suspicious behavior."
        )
        return [
            {"role": "system", "content": BEHAVIOR_ANALYSIS_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": context},
                    {"type": "image_url", "image_url": {"url": frame_data_uri}},
                ],
            },
        ]

    def parse_verdict(self, response: Optional[str]) -> BehaviorVerdict:
        """Parses the model's JSON answer; anything unusable is a ClassifierError."""
        if not response:
            raise ClassifierError("Empty response from behavior classifier")
        try:
            data = json.loads(response)
        except json.JSONDecodeError:
            raise ClassifierError(f"Behavior classifier returned invalid JSON: {response[:200]}")

        if not isinstance(data, dict):
            raise ClassifierError("Behavior classifier returned a non-object verdict")

        is_suspicious = data.get("isSuspicious", data.get("is_suspicious"))
        reason = data.get("reason")
        if not isinstance(is_suspicious, bool):
            raise ClassifierError(f"Verdict is missing a boolean isSuspicious: {data}")
        if not isinstance(reason, str) or not reason.strip():
            if is_suspicious:
                raise ClassifierError(f"Suspicious verdict without a reason: {data}")
            reason = "No suspicious behavior detected."

        return BehaviorVerdict(is_suspicious=is_suspicious, reason=reason.strip())

    async def classify(self, frame_data_uri: str, elapsed_seconds: int, question_number: int) -> BehaviorVerdict:
        if not self.client:
            raise ClassifierError("Azure OpenAI is not configured")

        messages = self._build_messages(frame_data_uri, elapsed_seconds, question_number)
        try:
            response = await self.client.chat.completions.create(
                model=self.deployment,
                messages=messages,
                max_tokens=200,
                temperature=0.0,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except Exception as e:
            raise ClassifierError(f"Error calling Azure OpenAI chat completion: {e}") from e

        verdict = self.parse_verdict(content)
        logger.debug(f"Behavior verdict at {elapsed_seconds}s (question {question_number}): {verdict}")
        return verdict


behavior_analysis_service = BehaviorAnalysisService()
