"""
Notebook storage for CanuckLingo.
"""

from .notebook_store import NotebookStore, Entry, Example

__all__ = [
    'NotebookStore',
    'Entry',
    'Example',
]
