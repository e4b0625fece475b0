# Security module
from app.security.context import UserContext, get_client_ip, get_user_context

__all__ = ['UserContext', 'get_client_ip', 'get_user_context']
