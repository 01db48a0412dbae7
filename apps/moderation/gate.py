import logging

from apps.cores.exceptions import CollaboratorUnavailable, ValidationError

from . import classifier

logger = logging.getLogger(__name__)

DEFAULT_REJECTION = "Message contains forbidden contact information."


class MessageRejected(ValidationError):
    default_detail = DEFAULT_REJECTION
    default_code = "message_rejected"


def admit(text: str) -> None:
    """
    Let `text` through or raise MessageRejected.

    Fail-open: when the classifier cannot answer the message is admitted
    and a warning is logged.
    """
    try:
        verdict = classifier.classify(text)
    except CollaboratorUnavailable as e:
        logger.warning("Moderation unavailable, admitting message: %s", e.detail)
        return
    except Exception:
        logger.warning("Moderation failed, admitting message", exc_info=True)
        return

    if not verdict.is_safe:
        raise MessageRejected(verdict.reason or DEFAULT_REJECTION)
