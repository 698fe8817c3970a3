"""
FastAPI dependencies for authentication and shared logic
"""
from .auth import get_current_member_id, get_linkedin_token, get_token_payload

__all__ = ["get_current_member_id", "get_linkedin_token", "get_token_payload"]
