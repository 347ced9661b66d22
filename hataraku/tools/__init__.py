from .base import BaseTool

__all__ = ["BaseTool"]
