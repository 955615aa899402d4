"""
Intent classifier: turns a user message plus recent dialogue into an Intent.

The model is asked for a JSON object. Anything that does not parse as an
Intent degrades to a plain "message" intent carrying the raw reply, so the
user still gets an answer.
"""

import json
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import openai
from openai import AsyncOpenAI
from pydantic import ValidationError

from calendar_bot.agents.prompts import build_system_prompt
from calendar_bot.agents.schemas import Action, Intent
from calendar_bot.config import get_settings
from calendar_bot.errors import ClassificationError
from calendar_bot.logging_config import get_logger

logger = get_logger("classifier")


class IntentClassifier:
    """OpenAI chat completion wrapper returning structured intents."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        temperature: float = 0.7,
        timezone: str = "UTC",
        client: Optional[AsyncOpenAI] = None
    ):
        self.client = client or AsyncOpenAI(api_key=api_key)
        self.model = model
        self.temperature = temperature
        self.timezone = timezone

    def _system_prompt(self) -> str:
        now = datetime.now(ZoneInfo(self.timezone)).strftime("%Y-%m-%d %H:%M:%S")
        return build_system_prompt(now, self.timezone)

    async def classify(self, context: str, message: str) -> Intent:
        """
        Classify a message in the light of prior dialogue.

        Raises:
            ClassificationError: API failure or an empty completion
        """
        user_prompt = message
        if context:
            user_prompt = context + "\n\nUser: " + message

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self._system_prompt()},
                    {"role": "user", "content": user_prompt}
                ],
                response_format={"type": "json_object"},
                temperature=self.temperature
            )
        except openai.OpenAIError as e:
            raise ClassificationError(f"OpenAI API error: {e}") from e

        if not response.choices:
            raise ClassificationError("no response from OpenAI")

        content = response.choices[0].message.content
        if not content:
            raise ClassificationError("empty response from OpenAI")

        intent = parse_intent(content)

        if intent.kind is Action.GET_EVENTS and not intent.event_date:
            intent.event_date = "today"
            logger.info("Model omitted event_date for getEvents, defaulting to 'today'")

        return intent


def parse_intent(content: str) -> Intent:
    """Parse model output; non-JSON or off-schema replies become a plain message."""
    try:
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("expected a JSON object")
        return Intent.model_validate(data)
    except (ValueError, ValidationError) as e:
        logger.warning(f"Model reply is not a valid intent ({e}), treating as message")
        return Intent(action=Action.MESSAGE.value, message=content)


_classifier: Optional[IntentClassifier] = None


def get_intent_classifier() -> IntentClassifier:
    global _classifier
    if _classifier is None:
        settings = get_settings()
        _classifier = IntentClassifier(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
            timezone=settings.timezone
        )
    return _classifier
