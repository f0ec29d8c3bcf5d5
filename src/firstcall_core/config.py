"""Environment-driven settings for the First Call workflow.

Environment Variables:
    FIRSTCALL_CASE_NUMBER_PREFIX: Case number prefix (default: "RTP")
    FIRSTCALL_CASE_SERVICE_URL: Case Management base URL (default: "http://case-service:8000")
    FIRSTCALL_HTTP_TIMEOUT: Timeout for Case Management calls in seconds (default: 30.0)
    FIRSTCALL_SIGNATURE_API_KEY: E-signature provider key for webhook verification (default: unset)
    FIRSTCALL_AUTO_DISPATCH: Dispatch finalization events after each mutation (default: "true")
    FIRSTCALL_USE_REMOTE_RECORDS: Publish case records to the Case Management service
        instead of the in-process record book (default: "false")
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if not value:
        return default
    if value.strip().lower() in _TRUE:
        return True
    if value.strip().lower() in _FALSE:
        return False
    logger.warning(f"Invalid {name}: {value}")
    return default


@dataclass(frozen=True)
class WorkflowSettings:
    """Settings for wiring the workflow engine and its collaborators."""

    case_number_prefix: str = "RTP"
    case_service_url: str = "http://case-service:8000"
    http_timeout: float = 30.0
    signature_api_key: Optional[str] = None
    auto_dispatch: bool = True
    use_remote_records: bool = False

    @classmethod
    def from_env(cls) -> "WorkflowSettings":
        """Build settings from FIRSTCALL_* environment variables.

        Invalid values fall back to the defaults with a warning.
        """
        defaults = cls()

        prefix = os.getenv("FIRSTCALL_CASE_NUMBER_PREFIX", defaults.case_number_prefix).strip().upper()
        if not re.match(r"^[A-Z][A-Z0-9]*$", prefix):
            logger.warning(
                f"Invalid FIRSTCALL_CASE_NUMBER_PREFIX '{prefix}', "
                f"defaulting to '{defaults.case_number_prefix}'"
            )
            prefix = defaults.case_number_prefix

        timeout = defaults.http_timeout
        timeout_str = os.getenv("FIRSTCALL_HTTP_TIMEOUT")
        if timeout_str:
            try:
                timeout = float(timeout_str)
            except ValueError:
                logger.warning(f"Invalid FIRSTCALL_HTTP_TIMEOUT: {timeout_str}")

        auto_dispatch = _env_flag("FIRSTCALL_AUTO_DISPATCH", defaults.auto_dispatch)
        use_remote_records = _env_flag(
            "FIRSTCALL_USE_REMOTE_RECORDS", defaults.use_remote_records
        )

        settings = cls(
            case_number_prefix=prefix,
            case_service_url=os.getenv("FIRSTCALL_CASE_SERVICE_URL", defaults.case_service_url),
            http_timeout=timeout,
            signature_api_key=os.getenv("FIRSTCALL_SIGNATURE_API_KEY") or None,
            auto_dispatch=auto_dispatch,
            use_remote_records=use_remote_records,
        )

        logger.info(
            f"WorkflowSettings loaded: prefix={settings.case_number_prefix}, "
            f"case_service_url={settings.case_service_url}, "
            f"auto_dispatch={settings.auto_dispatch}, "
            f"use_remote_records={settings.use_remote_records}"
        )
        return settings
