"""Client-side cache and live sync loop."""
from .live import LiveSync, websocket_url
from .reconciler import ClientReconciler

__all__ = ['ClientReconciler', 'LiveSync', 'websocket_url']
