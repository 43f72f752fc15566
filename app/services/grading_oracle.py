"""
Grading oracle — rubric + submission text in, per-criterion scores out.

GradingOracle is the capability the orchestrator depends on; OpenAIGradingOracle
is the production implementation backed by a chat completion in JSON mode.
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from openai import (
    APIConnectionError,
    APIStatusError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)
from pydantic import ValidationError

from app.core.errors import OracleFailure, OracleMalformedResponse
from app.schemas.tasks import OracleResponse, RubricCriterion

logger = logging.getLogger(__name__)

GRADING_PROMPT = """
You are a grading assistant for a programming teacher. Grade the student's
submission against the structured rubric below. Give a score for every
criterion, a general piece of feedback and a total score.

Rubric:
{rubric}

Student submission (may be HTML, CSS, JavaScript, etc.):
```
{content}
```

Return your evaluation as JSON with exactly this structure and nothing else:
{{
  "score_details": {{ "criterion_id_1": score_1, "criterion_id_2": score_2, ... }},
  "total_score": number,
  "feedback": "string"
}}

Rules:
1. Every key in "score_details" must be an "id" from the rubric.
2. Every rubric "id" must appear in "score_details".
3. "total_score" MUST be the sum of the scores in "score_details".
4. "feedback" must be constructive and explain strengths and weaknesses.
5. No criterion score may exceed that criterion's points.
"""


def parse_oracle_response(payload: Union[str, dict], rubric: List[RubricCriterion]) -> OracleResponse:
    """Validate a raw oracle payload; anything off-contract is OracleMalformedResponse."""
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as e:
            raise OracleMalformedResponse(f"Grading response is not valid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise OracleMalformedResponse("Grading response must be a JSON object")

    try:
        response = OracleResponse.model_validate(payload)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise OracleMalformedResponse(f"Grading response failed validation ({fields})") from e

    known = {criterion.id for criterion in rubric}
    unknown = sorted(set(response.score_details) - known)
    if unknown:
        raise OracleMalformedResponse(f"Grading response scored unknown criteria: {', '.join(unknown)}")
    missing = [criterion.id for criterion in rubric if criterion.id not in response.score_details]
    if missing:
        raise OracleMalformedResponse(f"Grading response left criteria unscored: {', '.join(missing)}")
    return response


class GradingOracle(ABC):
    @abstractmethod
    async def grade(self, rubric: List[RubricCriterion], content: str) -> OracleResponse:
        """Raise OracleFailure for call errors and OracleMalformedResponse for bad payloads."""


class OpenAIGradingOracle(GradingOracle):
    def __init__(self, api_key: str, model: str = "gpt-4-turbo", client: Optional[AsyncOpenAI] = None):
        self.api_key = api_key
        self.model = model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise OracleFailure("OPENAI_API_KEY is not configured", transient=False)
            # Retries are the orchestrator's job
            self._client = AsyncOpenAI(api_key=self.api_key, max_retries=0)
        return self._client

    def build_prompt(self, rubric: List[RubricCriterion], content: str) -> str:
        rubric_json = json.dumps([c.model_dump() for c in rubric], indent=2, ensure_ascii=False)
        return GRADING_PROMPT.format(rubric=rubric_json, content=content)

    async def grade(self, rubric: List[RubricCriterion], content: str) -> OracleResponse:
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": self.build_prompt(rubric, content)}],
                response_format={"type": "json_object"},
            )
        except (APIConnectionError, RateLimitError, InternalServerError) as e:
            raise OracleFailure(f"Grading service unavailable: {e}", transient=True) from e
        except APIStatusError as e:
            raise OracleFailure(f"Grading service rejected the request ({e.status_code})", transient=False) from e

        if not completion.choices or not completion.choices[0].message.content:
            raise OracleMalformedResponse("Grading service returned an empty response")
        return parse_oracle_response(completion.choices[0].message.content, rubric)
