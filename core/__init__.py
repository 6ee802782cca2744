"""
Core utilities and configuration for the Suflate backend.

Modules:
    config: Application configuration and environment variable management
    database: Database engine and session management
    exceptions: Custom exception hierarchy for error handling
    logging: Logging configuration
    permissions: Workspace role to capability mapping

Usage:
    from core.config import settings
    from core.database import get_session
    from core.exceptions import LinkedInError, NotFoundError
    from core.logging import setup_logging
"""
