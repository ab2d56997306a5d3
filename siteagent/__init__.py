"""SiteAgent website builder.

A thin loop where Gemini plans a website step by step through a single
executeCommand tool, with commands run locally and progress streamed to the
browser over a WebSocket.
"""

__version__ = "0.1.0"
