"""
Utility modules for CanuckLingo.
"""

from .session import SessionState, ViewState, FlowState, ChatMessage

__all__ = ['SessionState', 'ViewState', 'FlowState', 'ChatMessage']
