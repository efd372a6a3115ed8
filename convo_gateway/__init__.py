"""Gateway that mints channel tokens and starts/stops Conversational AI agents."""

__version__ = "1.0.0"
