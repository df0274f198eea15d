"""
Services Module - application services for the lead capture platform.

Application Services (orchestration):
- LeadCaptureService: admin workspace and public capture page facade

Infrastructure Services:
- Logging and observability
"""

from .capture_service import (
    LeadCaptureService,
    Workspace,
    daily_lead_counts,
    filter_leads,
    form_display_name,
)
from .logging_config import configure_logging, user_context

__all__ = [
    "LeadCaptureService",
    "Workspace",
    "daily_lead_counts",
    "filter_leads",
    "form_display_name",
    "configure_logging",
    "user_context",
]
