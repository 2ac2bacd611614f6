from src.console.services.analytics_service import AnalyticsService
from src.console.services.audit_service import AuditService
from src.console.services.guard_service import GuardService
from src.console.services.impersonation_service import ImpersonationService
from src.console.services.notification_service import ImpersonationNotifier

__all__ = [
    "AnalyticsService",
    "AuditService",
    "GuardService",
    "ImpersonationNotifier",
    "ImpersonationService",
]
