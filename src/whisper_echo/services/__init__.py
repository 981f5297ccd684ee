# src/whisper_echo/services/__init__.py
"""Business logic for the whisper-echo application.

Modules here work on a SQLAlchemy session and raise the errors defined in
``whisper_echo.services.errors``; they never import the web framework.
"""
