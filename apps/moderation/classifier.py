"""
Chat safety classifier backed by Gemini.

The marketplace forbids sharing contact details in ticket chat so that
clients and technicians do not settle outside the platform escrow.
"""
import json
import logging
from collections import namedtuple

from apps.cores.ai import ask_gemini
from apps.cores.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

Verdict = namedtuple("Verdict", ["is_safe", "reason"])

SAFETY_PROMPT = """
You review chat messages exchanged on a remote tech-support platform.
Decide whether the message below shares forbidden contact information:
phone numbers, e-mail addresses, links to external social networks or
messaging apps, or PIX keys.

Respond ONLY with valid JSON of the form:
{{"isSafe": true|false, "reason": "<short reason in the user's language, only when not safe>"}}

Message:
\"\"\"{text}\"\"\"
"""


def parse_verdict(raw: str) -> Verdict:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise CollaboratorUnavailable("Classifier returned malformed output.")

    if not isinstance(data, dict) or not isinstance(data.get("isSafe"), bool):
        raise CollaboratorUnavailable("Classifier output is missing 'isSafe'.")

    reason = data.get("reason") or ""
    return Verdict(is_safe=data["isSafe"], reason=str(reason).strip())


def classify(text: str) -> Verdict:
    """
    Ask the model whether `text` is safe to post.
    Raises CollaboratorUnavailable on any failure.
    """
    raw = ask_gemini(SAFETY_PROMPT.format(text=text), response_mime_type="application/json")
    verdict = parse_verdict(raw)
    if not verdict.is_safe:
        logger.info("Classifier flagged a message: %s", verdict.reason or "no reason given")
    return verdict
