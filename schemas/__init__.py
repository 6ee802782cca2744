"""
Pydantic schemas for API request and response validation.

Modules:
    api: Shared response models (health, errors, pagination)
    posts: Posts, drafts and scheduling
    content: Recordings, transcriptions, amplification and carousels
    workspaces: Workspaces, members and settings

Usage:
    from schemas.posts import PostResponse
    PostResponse.model_validate(post)
"""
