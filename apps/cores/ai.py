import logging
import re
import time
from concurrent.futures import ThreadPoolExecutor

import google.generativeai as genai
from django.conf import settings

from apps.cores.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

_configured_key = None


def _ensure_configured():
    global _configured_key
    api_key = settings.GOOGLE_API_KEY
    if not api_key:
        raise CollaboratorUnavailable("GOOGLE_API key not configured.")
    if api_key != _configured_key:
        try:
            genai.configure(api_key=api_key)
        except Exception as e:
            logger.error("Gemini client setup failed: %s", e)
            raise CollaboratorUnavailable(f"AI service unavailable: {e}")
        _configured_key = api_key


def sanitize_text(text: str) -> str:
    """Strip code fences and markdown markers the model likes to add."""
    if not text:
        return ""
    text = re.sub(r"```(?:json)?", "", text)
    text = re.sub(r"\*\*|__|~~|`", "", text)
    return text.strip()


# -------------------------------
# AI call (threaded + timeout + retries)
# -------------------------------
def _call_ai_sync(prompt: str, response_mime_type: str = None) -> str:
    """Synchronous call to Gemini. Kept small to run in thread."""
    model = genai.GenerativeModel(settings.GEMINI_MODEL)
    config = {"max_output_tokens": 256, "temperature": 0.0}
    if response_mime_type:
        config["response_mime_type"] = response_mime_type
    response = model.generate_content(
        prompt,
        generation_config=genai.types.GenerationConfig(**config),
    )
    return response.text or ""


def ask_gemini(prompt: str, response_mime_type: str = None) -> str:
    """
    Resilient wrapper around the Gemini client:
    - runs the synchronous client in a ThreadPoolExecutor
    - enforces a per-call timeout
    - retries with exponential backoff

    Raises CollaboratorUnavailable once every attempt has failed; callers
    decide whether that is fatal.
    """
    _ensure_configured()

    retries = settings.AI_RETRIES
    backoff = 1.0
    last_error = None
    for attempt in range(1, retries + 2):
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(_call_ai_sync, prompt, response_mime_type)
            raw = sanitize_text(future.result(timeout=settings.AI_TIMEOUT_SECONDS))
            logger.debug("AI raw output (len=%d)", len(raw))
            return raw
        except Exception as e:
            last_error = e
            logger.warning("AI attempt %s failed: %s", attempt, e)
            if attempt > retries:
                break
            time.sleep(backoff)
            backoff *= settings.AI_RETRY_BACKOFF
        finally:
            # a timed-out call keeps running in its thread; don't wait for it
            executor.shutdown(wait=False)

    logger.error("AI failed after %s attempts.", retries + 1)
    raise CollaboratorUnavailable(f"AI service unavailable: {last_error}")
