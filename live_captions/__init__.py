"""Live caption sessions for smart glasses.

WHY: The display_captions engine formats text; a running service also has
to track each connected user, persist their settings, follow device
changes, clear stale captions, and mirror everything to a web dashboard.

HOW: live_captions.session holds the per-user objects (DisplayManager,
SettingsManager, TranscriptsManager, UserSession, SessionRegistry);
live_captions.server exposes them through FastAPI; live_captions.config
holds environment-driven settings.

RULES:
- Run the HTTP service with: python -m live_captions
"""

__version__ = "0.1.0"
