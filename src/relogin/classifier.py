import enum
import json
import logging
import math
from typing import Union

from .state import RequestContext
from .whitelist import WhitelistFilter


class Outcome(enum.Enum):
    PASS_THROUGH = "pass_through"
    BYPASS = "bypass"
    AUTH_FAILURE = "auth_failure"


def is_json_content_type(value: Union[str, None]) -> bool:
    if not value:
        return False
    return value.split(";", 1)[0].strip().lower() == "application/json"


def _coerce_code(value: object) -> Union[float, None]:
    """Numeric view of a body `code`: numbers as-is, numeric strings parsed, bools as 0/1.

    An explicit null counts as 0; a missing code never matches.
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            number = float(value.strip() or 0)
        except ValueError:
            return None
        return None if math.isnan(number) else number
    return None


class ResponseClassifier:
    def __init__(self, whitelist: WhitelistFilter, intercept_codes: frozenset[int]):
        self.whitelist = whitelist
        self.intercept_codes = intercept_codes
        self._logger = logging.getLogger("relogin")

    def classify(
        self,
        context: RequestContext,
        content_type: Union[str, None],
        body: Union[bytes, str, None],
    ) -> Outcome:
        """Decide what happens to a completed response.

        Args:
            context (RequestContext): the request the response belongs to
            content_type (str | None): raw Content-Type header of the response
            body (bytes | str | None): response body; only looked at for JSON responses

        Returns:
            Outcome: BYPASS for whitelisted requests, AUTH_FAILURE when the JSON body
            carries an intercept code, PASS_THROUGH otherwise.
        """
        if self.whitelist.is_exempt(context.method, context.url):
            return Outcome.BYPASS
        if not is_json_content_type(content_type) or not body:
            return Outcome.PASS_THROUGH
        try:
            payload = json.loads(body)
        except ValueError as e:
            self._logger.warning(f"unparseable JSON body for {context.describe()}: {e}")
            return Outcome.PASS_THROUGH
        if not isinstance(payload, dict):
            return Outcome.PASS_THROUGH
        if "code" not in payload:
            return Outcome.PASS_THROUGH
        code = _coerce_code(payload["code"])
        if code is not None and code in self.intercept_codes:
            return Outcome.AUTH_FAILURE
        return Outcome.PASS_THROUGH
