from groq import Groq
from typing import Dict, List, Optional
import asyncio
import json
import logging
import os
from dotenv import load_dotenv

from reply_core.email_processing.handlers.writer import ReplyComposer
from reply_core.email_processing.models import EmailAnalysis, EmailGenerationOptions, GeneratedReply
from reply_core.exceptions import UpstreamGenerationError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"

SMART_REPLIES_PROMPT = """You are an email assistant. Suggest exactly three short, distinct replies
to the email the user provides. Each reply is one or two sentences and can be sent as-is.

Respond in JSON format:
{
    "replies": [string, string, string]
}"""

FULL_REPLY_PROMPT = """You are an email assistant drafting a reply on behalf of the user.
Answer every question in the email, acknowledge every request, and keep to the
requested tone and length. Do not invent facts; use a [bracketed placeholder]
where information is missing. Do not add a name after the closing line.

Respond in JSON format:
{
    "reply": string
}"""


class GroqReplyProvider:
    """Upstream reply generation backed by the Groq chat completions API.

    Does not retry; failed or malformed calls raise UpstreamGenerationError
    and the resilience guard decides what happens next.
    """

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODEL,
                 composer: Optional[ReplyComposer] = None, client: Optional[Groq] = None):
        """Initialize the provider with API key from environment or parameter."""
        load_dotenv(override=True)
        self.model = model
        self.composer = composer or ReplyComposer()
        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.getenv('GROQ_API_KEY')
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided either through initialization or environment")
        self.client = Groq(api_key=self.api_key)

    async def _complete_json(self, messages: List[Dict], temperature: float) -> Dict:
        """Run one chat completion and decode its JSON body."""
        params = {
            'model': self.model,
            'messages': messages,
            'temperature': temperature,
            'response_format': {"type": "json_object"}
        }
        try:
            response = await asyncio.to_thread(self.client.chat.completions.create, **params)
            content = response.choices[0].message.content
        except Exception as e:
            raise UpstreamGenerationError(f"Groq request failed: {e}") from e

        try:
            result = json.loads(content)
        except (TypeError, json.JSONDecodeError) as e:
            raise UpstreamGenerationError(f"Groq returned non-JSON content: {e}") from e
        if not isinstance(result, dict):
            raise UpstreamGenerationError("Groq returned JSON that is not an object")
        return result

    async def generate_smart_replies(self, text: str) -> List[str]:
        """Ask the model for three short reply suggestions."""
        result = await self._complete_json(
            messages=[
                {"role": "system", "content": SMART_REPLIES_PROMPT},
                {"role": "user", "content": text}
            ],
            temperature=0.7
        )

        replies = result.get("replies")
        if not isinstance(replies, list):
            raise UpstreamGenerationError("Groq response is missing a 'replies' list")
        replies = [reply.strip() for reply in replies if isinstance(reply, str) and reply.strip()]
        if len(replies) < 3:
            raise UpstreamGenerationError(f"Groq returned {len(replies)} usable replies, expected 3")

        logger.debug(f"Received {len(replies)} smart replies from {self.model}")
        return replies[:3]

    async def generate_full_reply(self, text: str, options: EmailGenerationOptions,
                                  analysis: EmailAnalysis) -> GeneratedReply:
        """
        Ask the model for a complete reply draft.

        Args:
            text: Raw email text being answered
            options: Tone, length and section toggles
            analysis: Local analysis used for instructions and scoring

        Returns:
            GeneratedReply scored against the local analysis
        """
        instructions = [
            f"Tone: {options.tone.value}",
            f"Length: {options.length.value}",
            f"Open with a greeting: {'yes' if options.include_intro else 'no'}",
            f"End with a closing line: {'yes' if options.include_outro else 'no'}",
        ]
        if options.include_action_items and analysis.action_items:
            instructions.append("Confirm these action items: " + "; ".join(analysis.action_items))
        if options.include_deadlines and analysis.deadlines:
            instructions.append("Confirm these deadlines: " + "; ".join(d.text for d in analysis.deadlines))
        if options.context:
            instructions.append(f"Additional context from the user: {options.context}")

        result = await self._complete_json(
            messages=[
                {"role": "system", "content": FULL_REPLY_PROMPT},
                {"role": "user", "content": "\n".join(instructions) + f"\n\nEmail:\n{text}"}
            ],
            temperature=0.4
        )

        reply_text = result.get("reply")
        if not isinstance(reply_text, str) or not reply_text.strip():
            raise UpstreamGenerationError("Groq response is missing a 'reply' string")
        reply_text = reply_text.strip()

        return GeneratedReply(
            text=reply_text,
            metadata=self.composer.build_metadata(
                analysis,
                reply_text,
                include_action_items=options.include_action_items and bool(analysis.action_items),
                include_deadlines=options.include_deadlines and bool(analysis.deadlines)
            )
        )
