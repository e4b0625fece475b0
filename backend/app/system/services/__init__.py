# System Services
from app.system.services.audit_service import AuditService
from app.system.services.config_service import ConfigService
from app.system.services.navigation_service import NavigationService

__all__ = ['AuditService', 'ConfigService', 'NavigationService']
