from __future__ import annotations

from openai import OpenAI

from buildnotes_core.providers.base import BaseNotesWriter


class OpenAINotesWriter(BaseNotesWriter):
    MODEL = "gpt-4.1-mini"
    # Low temperature keeps bullet labels and section layout consistent
    # between builds.
    TEMPERATURE = 0.2

    def __init__(self, api_key: str, model: str | None = None):
        self.client = OpenAI(api_key=api_key)
        self.model = model or self.MODEL

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        return response.choices[0].message.content or ""
