"""
Polyglot Proxy - Translation and Speech Proxy

This package provides secure API proxy endpoints for:
- Microsoft Translator single and batch text translation
- ElevenLabs Text-to-Speech
"""

__version__ = "1.0.0"
