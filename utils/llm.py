"""Claude API client for phase artifact generation."""

import logging
import os
import re
import time

import anthropic

from config.defaults import DEFAULTS
from core.errors import GenerationFailure, PipelineCancelled
from core.state import GenerationOptions, GenerationResponse

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You write production source files for a web application. "
    "Return exactly one file inside a single fenced code block, with no commentary."
)

_FENCE_RE = re.compile(r"```[\w+.-]*[ \t]*(?:[^\n`]*)\n(.*?)```", re.DOTALL)


def get_client():
    """Return an Anthropic client. Raises GenerationFailure if no API key is set."""
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise GenerationFailure(
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )
    return anthropic.Anthropic(api_key=api_key)


def extract_code(response):
    """Return the body of the first fenced code block, or the stripped raw text."""
    if not response:
        return ""
    match = _FENCE_RE.search(response)
    if match:
        return match.group(1).strip()
    return response.strip()


class AnthropicCollaborator:
    """Generation collaborator backed by the Anthropic messages API.

    Every failure mode (missing key, API error after one retry, empty
    response) surfaces as GenerationFailure so the executor can fall back.
    """

    name = "anthropic"

    def __init__(self, model=None, client=None, system_prompt=SYSTEM_PROMPT, retry_delay=2):
        self.model = model or DEFAULTS["model"]
        self.client = client
        self.system_prompt = system_prompt
        self.retry_delay = retry_delay

    def generate(self, prompt, options=None, cancel_event=None):
        options = options or GenerationOptions()
        client = self.client or get_client()

        last_error = None
        for attempt in range(2):
            try:
                text, stop_reason = self._stream(client, prompt, options, cancel_event)
            except anthropic.APIError as e:
                last_error = e
                logger.warning("Generation attempt %d for %s failed: %s",
                               attempt + 1, options.target_name or "artifact", e)
                if attempt == 0:
                    time.sleep(self.retry_delay)
                    continue
                raise GenerationFailure(f"Generation service error: {e}") from e

            if not text.strip():
                raise GenerationFailure(f"Empty response for {options.target_name or 'artifact'}")

            warning = None
            # Cut off at the token limit, the artifact may be incomplete
            if stop_reason == "max_tokens":
                warning = f"Response for {options.target_name or 'artifact'} hit the token limit"
            return GenerationResponse(text=text, warning=warning)

        raise GenerationFailure(f"Generation service error: {last_error}")

    def _stream(self, client, prompt, options, cancel_event):
        # Streaming avoids the SDK timeout for large max_tokens
        text = ""
        with client.messages.stream(
            model=self.model,
            max_tokens=options.max_tokens,
            temperature=options.temperature,
            system=self.system_prompt,
            messages=[{"role": "user", "content": prompt}],
        ) as stream:
            for chunk in stream.text_stream:
                if cancel_event is not None and cancel_event.is_set():
                    raise PipelineCancelled("Cancelled during generation")
                text += chunk
            stop_reason = stream.get_final_message().stop_reason
        return text, stop_reason
