import logging

from apps.cores.ai import ask_gemini
from apps.cores.exceptions import CollaboratorUnavailable
from apps.tickets.constants import default_category, ticket_categories

logger = logging.getLogger(__name__)

CATEGORY_PROMPT = """
Based on the description of a technical problem, pick the best category
from this list:
{categories}

Respond ONLY with the category name exactly as written in the list.

Description:
\"\"\"{description}\"\"\"
"""


def match_category(answer, categories):
    answer = (answer or "").strip().strip('"').strip("'").strip().lower()
    for category in categories:
        if category.lower() == answer:
            return category
    return None


def suggest_category(description: str) -> str:
    """Best-guess category for a problem description; never fails."""
    fallback = default_category()
    description = (description or "").strip()
    if not description:
        return fallback

    categories = ticket_categories()
    prompt = CATEGORY_PROMPT.format(
        categories="\n".join(f"- {c}" for c in categories),
        description=description,
    )
    try:
        answer = ask_gemini(prompt)
    except CollaboratorUnavailable as e:
        logger.warning("Category suggestion unavailable, using %r: %s", fallback, e.detail)
        return fallback

    category = match_category(answer, categories)
    if category is None:
        logger.info("Model suggested unknown category %r, using %r", answer, fallback)
        return fallback
    return category
