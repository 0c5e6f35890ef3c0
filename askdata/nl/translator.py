# askdata/nl/translator.py
"""
Question -> Intent via the language model, with the rule-based parser as
the safety net.

Any model problem (no model configured, generation error, non-JSON reply,
reply that does not fit the Intent schema) is a TranslationFailure: it is
logged and answered by `parse_basic` instead. The one reply that is NOT
replaced by the fallback is an explicit error-mode answer, because the
model is telling us the question cannot be answered as asked.
"""
import json
import logging
import re
from datetime import date
from typing import Any, Dict, Optional

from pydantic import ValidationError

from askdata.errors import TranslationFailure
from askdata.nl.base import TextGenerator
from askdata.nl.fallback import parse_basic
from askdata.nl.prompts import build_system_prompt, build_user_prompt
from askdata.nl.types import ErrorIntent, parse_intent
from askdata.settings import MAX_NEW_TOKENS

log = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json|sql)?[ \t]*\n?", re.I)


def strip_fences(text: str) -> str:
    """Remove markdown code fences the model sometimes wraps around its JSON."""
    return _FENCE.sub("", text or "").strip()


def _first_json_object(text: str) -> Dict[str, Any]:
    cleaned = strip_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # tolerate chatter around the object: take the outermost {...}
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            raise TranslationFailure(f"model reply is not JSON: {cleaned[:120]!r}")
        try:
            data = json.loads(cleaned[start:end + 1])
        except json.JSONDecodeError as e:
            raise TranslationFailure(f"model reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise TranslationFailure(f"model reply is a JSON {type(data).__name__}, expected an object")
    return data


def intent_from_reply(text: str):
    """
    Parse and validate one model reply.
    Raises TranslationFailure when the reply cannot be used.
    """
    data = _first_json_object(text)

    # only an explicit error mode or a non-empty error message marks the question unanswerable
    error = data.get("error")
    if data.get("mode") == "error" or (isinstance(error, str) and error.strip()):
        message = data.get("explanation") or data.get("error")
        return ErrorIntent(explanation=message) if isinstance(message, str) and message else ErrorIntent()

    # missing keys and explicit nulls both mean "use the default"
    data = {k: v for k, v in data.items() if v is not None}
    data.setdefault("mode", "sql" if "sql" in data else "builder")

    try:
        return parse_intent(data)
    except ValidationError as e:
        raise TranslationFailure(f"model reply does not match the intent schema: {e}") from e


class IntentTranslator:
    def __init__(self, generator: Optional[TextGenerator] = None, today: Optional[date] = None,
                 max_new_tokens: int = MAX_NEW_TOKENS):
        self.generator = generator
        self.today = today
        self.max_new_tokens = max_new_tokens

    def _today(self) -> date:
        return self.today or date.today()

    def translate(self, query: str, parameters: Optional[str] = None):
        """
        Single model attempt, then fallback. Never raises for model problems.
        """
        today = self._today()
        if self.generator is None:
            log.info("no language model configured; using rule-based parser")
            return parse_basic(query, today=today)

        try:
            reply = self.generator.complete(
                build_system_prompt(today),
                build_user_prompt(query, parameters),
                max_new_tokens=self.max_new_tokens,
            )
            log.debug("model reply: %s", reply)
            return intent_from_reply(reply)
        except TranslationFailure as e:
            log.warning("translation failed, using fallback: %s", e.message)
        except Exception:
            log.exception("model call failed, using fallback")
        return parse_basic(query, today=today)
