"""
EstateMap - shared property map backend

A collaborative real estate map with:
- Property records pinned to map coordinates
- Thumbs up / thumbs down voting
- Live updates pushed to every connected client over WebSockets
- Role-based access (admin, editor, viewer) with JWT sessions
- Feature request intake with email notification
"""

__version__ = "1.0.0"
