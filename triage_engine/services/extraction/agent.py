"""
Fact extractor backed by an OpenAI agent.
"""

import json
from typing import Optional

import openai
from agents import Agent, RunConfig, Runner, set_default_openai_key

from ...core.exceptions import ExtractorTimeout
from ...core.models import ConversationRecord, ExtractedUpdate
from ...utils.logging import get_logger

logger = get_logger("extraction.agent")

EXTRACTOR_INSTRUCTIONS = """
Extract structured facts from ONE patient message sent to a hospital booking assistant.

RULES
- Return ONLY facts stated in the new message; never repeat facts already present in CURRENT STATE.
- symptoms: short lowercase English noun phrases (e.g. "chest pain", "cough"); no diagnoses.
- risk_factors: chronic conditions or situations (e.g. "diabetes", "pregnancy", "smoker").
- duration: how long the symptoms have lasted, as the user phrased it.
- booking_intent: true only if the user clearly wants to book/schedule an appointment.
- booking_request: only ids or times the user gives explicitly; preferred_time as ISO 8601 when possible.
- booking_location / booking_date: city and date the user wants to be seen, if stated.
- patient_info.gender ∈ {"male","female","other","unknown"}.
- summary: 1-2 neutral sentences updating the running digest, or null if nothing new.
- Leave every unknown field null. Do not invent values.
"""


class AgentFactExtractor:
    """Ask a language model to fill an :class:`ExtractedUpdate`."""

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        agent: Optional[Agent] = None,
        api_key: Optional[str] = None,
    ):
        if api_key:
            set_default_openai_key(api_key)
        self.agent = agent or self._create_agent(model)

    def _create_agent(self, model: str) -> Agent:
        """Create the extraction agent."""
        return Agent(
            name="Triage fact extractor",
            instructions=EXTRACTOR_INSTRUCTIONS,
            output_type=ExtractedUpdate,
            model=model,
        )

    def _build_input(self, raw_text: str, current: ConversationRecord) -> str:
        state = {
            "phase": current.phase.value,
            "symptoms": current.symptoms,
            "risk_factors": current.risk_factors,
            "duration": current.duration,
            "patient_info": current.to_dict()["patient_info"],
            "booking_intent": current.booking_intent,
            "booking_request": current.to_dict()["booking_request"],
            "summary": current.summary,
        }
        return (
            "### CURRENT STATE\n"
            f"{json.dumps(state, ensure_ascii=False)}\n"
            "### NEW MESSAGE\n"
            f"{raw_text}"
        )

    async def extract(self, raw_text: str, current: ConversationRecord) -> ExtractedUpdate:
        try:
            result = await Runner.run(
                self.agent,
                input=self._build_input(raw_text, current),
                run_config=RunConfig(trace_include_sensitive_data=False),
            )
        except openai.APITimeoutError as e:
            raise ExtractorTimeout(f"Extractor model timed out: {e}") from e
        update: ExtractedUpdate = result.final_output
        logger.debug(f"extractor: {current.session_id} -> {update.model_dump(exclude_none=True)}")
        return update
