"""Service clients for downstream funeral-home services."""

from firstcall_core.clients.base import BaseServiceClient
from firstcall_core.clients.case_record_client import CaseRecordServiceClient

__all__ = ["BaseServiceClient", "CaseRecordServiceClient"]
