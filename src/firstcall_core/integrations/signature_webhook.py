"""E-signature provider webhook adapter.

Translates callbacks from the e-signature provider into workflow signals.
The provider posts a JSON document (form field ``json``) shaped like:

    {
      "event": {"event_type": "...", "event_time": "...", "event_hash": "..."},
      "signature_request": {
        "signature_request_id": "...",
        "metadata": {"case_id": "...", "document_type": "..."}
      }
    }

``event_hash`` is HMAC-SHA256(api_key, event_time + event_type), hex encoded.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field

from firstcall_core.exceptions import WebhookSignatureError
from firstcall_core.models.case import FirstCallCase
from firstcall_core.models.stages import FirstCallStage
from firstcall_core.workflow.engine import WorkflowEngine

logger = logging.getLogger(__name__)

# Body the provider expects back to stop re-sending the callback
ACKNOWLEDGEMENT = "Hello API Event Received"

SIGNED_EVENTS = frozenset({"signature_request_signed", "signature_request_all_signed"})
INFORMATIONAL_EVENTS = frozenset({
    "signature_request_sent",
    "signature_request_viewed",
    "signature_request_declined",
})


class SignatureEvent(BaseModel):
    event_type: str
    event_time: str = ""
    event_hash: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class SignatureRequestInfo(BaseModel):
    signature_request_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class SignatureWebhookPayload(BaseModel):
    event: SignatureEvent
    signature_request: Optional[SignatureRequestInfo] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def case_id(self) -> Optional[str]:
        if self.signature_request is None:
            return None
        case_id = self.signature_request.metadata.get("case_id")
        return str(case_id) if case_id else None

    @property
    def document_type(self) -> Optional[str]:
        if self.signature_request is None:
            return None
        return self.signature_request.metadata.get("document_type")


class WebhookResult(BaseModel):
    """Outcome of one webhook delivery."""

    event_type: str
    case_id: Optional[str] = None
    handled: bool = Field(default=False, description="The event changed the case")
    case: Optional[FirstCallCase] = None
    acknowledgement: str = Field(
        default=ACKNOWLEDGEMENT,
        description="Response body to return to the provider"
    )


def compute_event_hash(api_key: str, event_time: str, event_type: str) -> str:
    return hmac.new(
        api_key.encode("utf-8"),
        f"{event_time}{event_type}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class SignatureWebhookHandler:
    """Routes verified signature callbacks to the workflow engine.

    Usage:
        handler = SignatureWebhookHandler(engine, api_key=settings.signature_api_key)
        result = handler.handle(request_form["json"])
    """

    def __init__(self, engine: WorkflowEngine, api_key: Optional[str] = None):
        """Initialize handler.

        Args:
            engine: Workflow engine receiving signature signals
            api_key: Provider API key; when unset, event hashes are not checked
        """
        self.engine = engine
        self.api_key = api_key
        # Request ids already counted, per case still collecting signatures.
        # The provider sends both "signed" and "all_signed" for one request.
        self._counted_requests: Dict[str, Set[str]] = {}

    @staticmethod
    def parse(raw: Union[str, bytes, Dict[str, Any]]) -> SignatureWebhookPayload:
        """Parse a callback body.

        Raises:
            pydantic.ValidationError: If the payload does not have an event
            json.JSONDecodeError: If a string body is not valid JSON
        """
        if isinstance(raw, (str, bytes)):
            raw = json.loads(raw)
        return SignatureWebhookPayload.model_validate(raw)

    def verify(self, payload: SignatureWebhookPayload) -> None:
        """Check the event hash against the configured API key.

        Raises:
            WebhookSignatureError: If the hash is missing or does not match
        """
        if not self.api_key:
            return

        expected = compute_event_hash(
            self.api_key, payload.event.event_time, payload.event.event_type
        )
        if not payload.event.event_hash or not hmac.compare_digest(
            expected, payload.event.event_hash
        ):
            logger.warning(f"Invalid webhook signature for {payload.event.event_type}")
            raise WebhookSignatureError("Invalid webhook signature")

    def handle(self, raw: Union[str, bytes, Dict[str, Any]]) -> WebhookResult:
        """Verify a callback and apply it to the addressed case.

        Signed events record one signature. Sent/viewed/declined events are
        acknowledged without touching the case.
        """
        payload = self.parse(raw)
        self.verify(payload)

        event_type = payload.event.event_type
        case_id = payload.case_id
        result = WebhookResult(event_type=event_type, case_id=case_id)

        if case_id is None:
            logger.warning(f"Ignoring {event_type} webhook without a case_id")
            return result

        if event_type in SIGNED_EVENTS:
            return self._apply_signature(payload, result)

        if event_type in INFORMATIONAL_EVENTS:
            logger.info(f"Signature webhook {event_type} for case {case_id}")
        else:
            logger.warning(f"Unhandled signature webhook type {event_type} for case {case_id}")
        return result

    def _apply_signature(
        self, payload: SignatureWebhookPayload, result: WebhookResult
    ) -> WebhookResult:
        case_id = result.case_id
        request_id = payload.signature_request.signature_request_id
        counted = self._counted_requests.get(case_id, set())
        if request_id and request_id in counted:
            logger.info(f"Signature request {request_id} already counted for case {case_id}")
            return result

        before = self.engine.get_case(case_id)
        case = self.engine.record_signature(case_id)
        handled = case is not None and case is not before

        if case is None or case.current_stage != FirstCallStage.SIGNATURES:
            # Later deliveries are no-ops in the engine, so stop tracking the case
            self._counted_requests.pop(case_id, None)
        elif handled and request_id:
            self._counted_requests[case_id] = counted | {request_id}

        if handled:
            logger.info(
                f"Signature webhook for case {case_id} "
                f"({payload.document_type or 'document'}) applied"
            )
        else:
            logger.info(f"Signature webhook for case {case_id} not applicable, ignoring")
        return result.model_copy(update={"handled": handled, "case": case})
