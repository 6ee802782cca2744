"""
Third-party service clients.

Modules:
    base: Shared httpx request handling with retry and error mapping
    linkedin: OAuth and post publishing
    openrouter: LLM generation of post variations and carousels
    assemblyai: Speech-to-text
    email: Resend email delivery
    storage: Local audio file storage
"""
